"""
Domain models for vocabcore: word records, memory state and review inputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import (
    ADAPTIVE_MAX_LEVEL,
    BASIC_MAX_LEVEL,
    DEFAULT_EASINESS_FACTOR,
    MIN_EASINESS_FACTOR,
    NEUTRAL_DIFFICULTY,
)
from .exceptions import ValidationError


def ensure_utc(ts: datetime) -> datetime:
    """Ensures the given datetime is UTC. Assumes UTC if naive."""
    if ts.tzinfo is None or ts.tzinfo.utcoffset(ts) is None:
        return ts.replace(tzinfo=timezone.utc)
    if ts.tzinfo != timezone.utc:
        return ts.astimezone(timezone.utc)
    return ts


class SchedulingStrategy(str, Enum):
    """
    Deployment-wide choice of scheduling strategy.
    """

    Basic = "basic"
    Adaptive = "adaptive"

    @property
    def max_level(self) -> int:
        """Highest proficiency level reachable under this strategy."""
        if self is SchedulingStrategy.Adaptive:
            return ADAPTIVE_MAX_LEVEL
        return BASIC_MAX_LEVEL


class AddReason(str, Enum):
    """
    Why a word entered the wordbook.
    """

    TranslationLookup = "translation_lookup"
    PronunciationError = "pronunciation_error"
    ListeningDifficulty = "listening_difficulty"

    @property
    def priority(self) -> int:
        """Severity used when the same word is added again for another reason."""
        return _ADD_REASON_PRIORITY[self]


_ADD_REASON_PRIORITY = {
    AddReason.TranslationLookup: 1,
    AddReason.ListeningDifficulty: 2,
    AddReason.PronunciationError: 3,
}


class ReviewOutcome(str, Enum):
    """
    Coarse outcome of a single review in the discrete review flow.
    """

    Unknown = "unknown"
    Familiar = "familiar"
    Known = "known"


class MasteryStage(str, Enum):
    New = "new"
    Learning = "learning"
    Mastered = "mastered"


class ActivityType(str, Enum):
    """
    Category of a learning activity written to the activity log.
    """

    Reading = "reading"
    Listening = "listening"
    Speaking = "speaking"
    Translation = "translation"


@dataclass(frozen=True)
class ReviewResult:
    """
    Continuous review measurement consumed by the adaptive formula.

    Attributes:
        accuracy_score: Fraction of the answer that was correct, in [0, 1].
        response_time_ms: Time to answer in milliseconds, >= 0.
        subjective_difficulty: Learner-reported difficulty, 1 (easy) to 5 (hard).
    """

    accuracy_score: float
    response_time_ms: int = 0
    subjective_difficulty: float = NEUTRAL_DIFFICULTY

    def __post_init__(self) -> None:
        if not (0.0 <= self.accuracy_score <= 1.0):
            raise ValidationError(
                f"Invalid accuracy_score: {self.accuracy_score}. Must be within [0, 1]."
            )
        if self.response_time_ms < 0:
            raise ValidationError(
                f"Invalid response_time_ms: {self.response_time_ms}. Must be >= 0."
            )
        if not (1 <= self.subjective_difficulty <= 5):
            raise ValidationError(
                f"Invalid subjective_difficulty: {self.subjective_difficulty}. Must be within [1, 5]."
            )


class MemoryState(BaseModel):
    """
    Adaptive memory state of a single word.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    proficiency_level: int = Field(
        default=0,
        ge=0,
        le=ADAPTIVE_MAX_LEVEL,
        description="Mastery tier driving queue priority.",
    )
    easiness_factor: float = Field(
        default=DEFAULT_EASINESS_FACTOR,
        ge=MIN_EASINESS_FACTOR,
        description="Multiplier controlling interval growth.",
    )
    interval: int = Field(
        default=0, ge=0, description="Current interval in days."
    )
    repetitions: int = Field(
        default=0,
        ge=0,
        description="Consecutive successful reviews; reset on failure.",
    )


class WordRecord(BaseModel):
    """
    A vocabulary item together with its review schedule.

    Text fields are opaque to the scheduler. The adaptive memory state is
    embedded as plain columns so the record maps to a single table row.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: int = Field(..., description="Identifier assigned by the record store.")
    text: str = Field(..., min_length=1, description="The word itself.")
    definition: str = Field(..., description="Meaning shown on review.")
    pronunciation: Optional[str] = Field(
        default=None, description="Optional phonetic transcription."
    )
    add_reason: AddReason = Field(
        default=AddReason.TranslationLookup,
        description="Why the word was added to the wordbook.",
    )
    proficiency_level: int = Field(
        default=0,
        ge=0,
        le=ADAPTIVE_MAX_LEVEL,
        description="Mastery tier; clamped to the active strategy's range.",
    )
    review_count: int = Field(
        default=0, ge=0, description="Number of applied review outcomes."
    )
    last_review_at: Optional[datetime] = Field(
        default=None, description="UTC timestamp of the last review."
    )
    next_review_at: Optional[datetime] = Field(
        default=None,
        description="UTC timestamp of the next review (None: due now).",
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC timestamp when the word was created.",
    )
    easiness_factor: float = Field(
        default=DEFAULT_EASINESS_FACTOR, ge=MIN_EASINESS_FACTOR
    )
    interval_days: int = Field(default=0, ge=0)
    repetitions: int = Field(default=0, ge=0)

    @field_validator("last_review_at", "next_review_at", "created_at")
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Store every timestamp as timezone-aware UTC."""
        return ensure_utc(v) if v is not None else None

    @property
    def memory_state(self) -> MemoryState:
        """The adaptive memory state embedded in this record."""
        return MemoryState(
            proficiency_level=self.proficiency_level,
            easiness_factor=self.easiness_factor,
            interval=self.interval_days,
            repetitions=self.repetitions,
        )


class ActivityEntry(BaseModel):
    """
    A single activity-log row, written once per applied review.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    activity_id: Optional[int] = Field(
        default=None,
        description="Auto-incrementing PK from activity_log (None if new).",
    )
    activity_type: ActivityType = Field(default=ActivityType.Reading)
    word_id: Optional[int] = Field(default=None)
    accuracy_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    time_spent_seconds: float = Field(default=0.0, ge=0.0)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)
