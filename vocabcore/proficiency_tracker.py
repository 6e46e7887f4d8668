"""
Per-word review state machine for vocabcore.

The module-level transition functions are pure: they take a WordRecord and a
review score and return the updated record plus the fields that changed.
ProficiencyTracker pushes those changes through the record store and emits
one activity-log entry per applied review.

Accepted review scores:
1. ReviewOutcome (unknown / familiar / known), the discrete session flow
2. ReviewResult, the continuous measurement fed to the adaptive formula
3. A bare accuracy float in [0, 1]
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Union

from .config import settings
from .constants import (
    ACCURACY_LEVEL_DOWN_THRESHOLD,
    ACCURACY_LEVEL_UP_THRESHOLD,
    DEFAULT_EASINESS_FACTOR,
    NEUTRAL_DIFFICULTY,
    NEUTRAL_RESPONSE_TIME_MS,
)
from .exceptions import InvariantViolation, ValidationError
from .interfaces import ActivityLog, RecordStore
from .models import (
    ActivityType,
    MasteryStage,
    ReviewOutcome,
    ReviewResult,
    SchedulingStrategy,
    WordRecord,
    ensure_utc,
)
from .scheduler import compute_adaptive_state, compute_next_review

logger = logging.getLogger(__name__)

ReviewScore = Union[ReviewOutcome, ReviewResult, float]

# Accuracy written to the activity log for discrete outcomes. Logging only.
OUTCOME_ACCURACY: Dict[ReviewOutcome, float] = {
    ReviewOutcome.Known: 1.0,
    ReviewOutcome.Familiar: 0.7,
    ReviewOutcome.Unknown: 0.3,
}


@dataclass
class ReviewApplication:
    record: WordRecord
    fields: Dict[str, Any] = field(default_factory=dict)
    accuracy_score: Optional[float] = None
    time_spent_seconds: float = 0.0


def mastery_stage(
    record: WordRecord, strategy: SchedulingStrategy
) -> MasteryStage:
    """Coarse stage of a word: never reviewed, learning, or at the ceiling."""
    if record.proficiency_level >= strategy.max_level:
        return MasteryStage.Mastered
    if record.proficiency_level == 0 and record.review_count == 0:
        return MasteryStage.New
    return MasteryStage.Learning


def _check_level(level: int, strategy: SchedulingStrategy) -> None:
    if not (0 <= level <= strategy.max_level):
        raise InvariantViolation(
            f"Proficiency level {level} outside [0, {strategy.max_level}] "
            f"for the {strategy.value} strategy."
        )


def _apply_fields(
    record: WordRecord,
    fields: Dict[str, Any],
    strategy: SchedulingStrategy,
    accuracy_score: Optional[float],
    time_spent_seconds: float,
) -> ReviewApplication:
    _check_level(fields["proficiency_level"], strategy)
    return ReviewApplication(
        record=record.model_copy(update=fields),
        fields=fields,
        accuracy_score=accuracy_score,
        time_spent_seconds=time_spent_seconds,
    )


def transition_outcome(
    record: WordRecord,
    outcome: ReviewOutcome,
    now: datetime,
    strategy: SchedulingStrategy = SchedulingStrategy.Basic,
    familiar_delay: timedelta = timedelta(hours=2),
    time_spent_seconds: float = 0.0,
) -> ReviewApplication:
    """
    Applies a discrete outcome to a record.

    unknown  -> level - 1 (floor 0), due again immediately
    familiar -> level unchanged, due again after `familiar_delay`
    known    -> level + 1 (ceiling per strategy), due per the fixed table
    """
    now = ensure_utc(now)
    level = min(record.proficiency_level, strategy.max_level)

    if outcome is ReviewOutcome.Unknown:
        level = max(0, level - 1)
        next_review_at = now
    elif outcome is ReviewOutcome.Familiar:
        next_review_at = now + familiar_delay
    elif outcome is ReviewOutcome.Known:
        level = min(strategy.max_level, level + 1)
        next_review_at = compute_next_review(strategy, level, now)
    else:
        raise ValidationError(f"Unknown review outcome: {outcome!r}")

    fields = {
        "proficiency_level": level,
        "review_count": record.review_count + 1,
        "last_review_at": now,
        "next_review_at": next_review_at,
    }
    return _apply_fields(
        record, fields, strategy, OUTCOME_ACCURACY[outcome], time_spent_seconds
    )


def transition_result(
    record: WordRecord,
    result: ReviewResult,
    now: datetime,
    strategy: SchedulingStrategy = SchedulingStrategy.Adaptive,
) -> ReviewApplication:
    """
    Applies a continuous review result through the adaptive formula.

    Level, interval, easiness and repetitions all come from the formula; the
    level is then clamped to the active strategy's ceiling.
    """
    now = ensure_utc(now)
    new_state, next_review_at = compute_adaptive_state(
        record.memory_state, result, now
    )
    fields = {
        "proficiency_level": min(new_state.proficiency_level, strategy.max_level),
        "review_count": record.review_count + 1,
        "last_review_at": now,
        "next_review_at": next_review_at,
        "easiness_factor": new_state.easiness_factor,
        "interval_days": new_state.interval,
        "repetitions": new_state.repetitions,
    }
    return _apply_fields(
        record,
        fields,
        strategy,
        result.accuracy_score,
        result.response_time_ms / 1000.0,
    )


def transition_accuracy(
    record: WordRecord,
    accuracy_score: float,
    now: datetime,
    strategy: SchedulingStrategy = SchedulingStrategy.Basic,
    time_spent_seconds: float = 0.0,
) -> ReviewApplication:
    """
    Applies a bare accuracy score.

    Under the basic strategy an accuracy of 0.8 or more raises the level,
    below 0.5 lowers it, and anything in between keeps it; the fixed table
    schedules the next review. Under the adaptive strategy the score is fed
    to the adaptive formula with a neutral response time and difficulty.
    """
    if not (0.0 <= accuracy_score <= 1.0):
        raise ValidationError(
            f"Invalid accuracy score: {accuracy_score}. Must be within [0, 1]."
        )

    if strategy is SchedulingStrategy.Adaptive:
        result = ReviewResult(
            accuracy_score=accuracy_score,
            response_time_ms=NEUTRAL_RESPONSE_TIME_MS,
            subjective_difficulty=NEUTRAL_DIFFICULTY,
        )
        return transition_result(record, result, now, strategy)

    now = ensure_utc(now)
    level = min(record.proficiency_level, strategy.max_level)
    if accuracy_score >= ACCURACY_LEVEL_UP_THRESHOLD:
        level = min(strategy.max_level, level + 1)
    elif accuracy_score < ACCURACY_LEVEL_DOWN_THRESHOLD:
        level = max(0, level - 1)

    fields = {
        "proficiency_level": level,
        "review_count": record.review_count + 1,
        "last_review_at": now,
        "next_review_at": compute_next_review(strategy, level, now),
    }
    return _apply_fields(
        record, fields, strategy, accuracy_score, time_spent_seconds
    )


def transition(
    record: WordRecord,
    score: ReviewScore,
    now: datetime,
    strategy: SchedulingStrategy = SchedulingStrategy.Basic,
    familiar_delay: timedelta = timedelta(hours=2),
    time_spent_seconds: float = 0.0,
) -> ReviewApplication:
    """Dispatches a review score to the matching transition."""
    if isinstance(score, ReviewOutcome):
        return transition_outcome(
            record, score, now, strategy, familiar_delay, time_spent_seconds
        )
    if isinstance(score, ReviewResult):
        return transition_result(record, score, now, strategy)
    if isinstance(score, (int, float)) and not isinstance(score, bool):
        return transition_accuracy(
            record, float(score), now, strategy, time_spent_seconds
        )
    raise ValidationError(
        f"Unsupported review score {score!r} ({type(score).__name__})."
    )


class ProficiencyTracker:
    """
    Applies review scores to word records and persists the results.

    The tracker owns no state besides its collaborators and configuration;
    every call computes the new record first and only then writes it, so a
    validation failure never reaches the record store.
    """

    def __init__(
        self,
        store: RecordStore,
        activity_log: Optional[ActivityLog] = None,
        strategy: Optional[SchedulingStrategy] = None,
        familiar_delay: Optional[timedelta] = None,
        activity_type: Optional[ActivityType] = None,
    ):
        """
        Initialize the ProficiencyTracker.

        Args:
            store: Record store receiving the updated fields.
            activity_log: Optional sink for one entry per applied review.
            strategy: Scheduling strategy; defaults to settings.strategy.
            familiar_delay: Delay for "familiar" outcomes; defaults to
                settings.familiar_delay_hours.
            activity_type: Activity type written to the log; defaults to
                settings.activity_type.
        """
        self.store = store
        self.activity_log = activity_log
        self.strategy = strategy or settings.strategy
        self.familiar_delay = (
            familiar_delay
            if familiar_delay is not None
            else timedelta(hours=settings.familiar_delay_hours)
        )
        self.activity_type = activity_type or settings.activity_type

    def _transition(
        self,
        record: WordRecord,
        score: ReviewScore,
        now: datetime,
        time_spent_seconds: float = 0.0,
    ) -> ReviewApplication:
        return transition(
            record,
            score,
            now,
            strategy=self.strategy,
            familiar_delay=self.familiar_delay,
            time_spent_seconds=time_spent_seconds,
        )

    def _log_activity(self, application: ReviewApplication) -> None:
        if self.activity_log is None:
            return
        try:
            self.activity_log.record(
                self.activity_type,
                word_id=application.record.id,
                accuracy_score=application.accuracy_score,
                time_spent_seconds=application.time_spent_seconds,
            )
        except Exception as e:
            logger.warning(
                f"Failed to record activity for word {application.record.id}: {e}"
            )

    def apply_outcome(
        self,
        record: WordRecord,
        outcome: ReviewScore,
        now: Optional[datetime] = None,
        time_spent_seconds: float = 0.0,
    ) -> WordRecord:
        """
        Apply one review to a record and persist it.

        Args:
            record: The record being reviewed.
            outcome: A ReviewOutcome, a ReviewResult or an accuracy float.
            now: Review timestamp (defaults to current time).
            time_spent_seconds: Time logged for discrete outcomes.

        Returns:
            The updated WordRecord.

        Raises:
            ValidationError: If the score is malformed; nothing is written.
            WordNotFoundError: Propagated unchanged from the record store.
        """
        ts = ensure_utc(now) if now else datetime.now(timezone.utc)
        application = self._transition(record, outcome, ts, time_spent_seconds)

        logger.debug(
            f"Applying {outcome!r} to word {record.id}: "
            f"level {record.proficiency_level}->{application.record.proficiency_level}, "
            f"next review {application.record.next_review_at}"
        )
        try:
            self.store.update(record.id, application.fields)
        except Exception:
            logger.exception(f"Failed to persist review for word {record.id}")
            raise

        self._log_activity(application)
        return application.record

    def batch_apply(
        self,
        records: Sequence[WordRecord],
        scores: Sequence[ReviewScore],
        now: Optional[datetime] = None,
    ) -> List[WordRecord]:
        """
        Apply one score per record as a single atomic unit.

        Every transition is computed (and validated) before the first write.
        The writes then run inside one store transaction, and activity entries
        are emitted only once it has committed. A record id appearing more than
        once continues from its previously computed state.

        Raises:
            ValidationError: If the lengths differ or any score is malformed;
                the record store is not called.
        """
        if len(records) != len(scores):
            raise ValidationError(
                f"Batch length mismatch: {len(records)} records, {len(scores)} scores."
            )
        if not records:
            return []

        ts = ensure_utc(now) if now else datetime.now(timezone.utc)
        latest: Dict[int, WordRecord] = {}
        applications: List[ReviewApplication] = []
        for record, score in zip(records, scores):
            base = latest.get(record.id, record)
            application = self._transition(base, score, ts)
            latest[record.id] = application.record
            applications.append(application)

        def _write_all() -> None:
            for application in applications:
                self.store.update(application.record.id, application.fields)

        try:
            self.store.transaction(_write_all)
        except Exception:
            logger.exception(
                f"Batch review of {len(applications)} words failed; nothing was persisted."
            )
            raise

        logger.info(f"Applied batch review to {len(applications)} words.")
        for application in applications:
            self._log_activity(application)
        return [application.record for application in applications]

    def set_proficiency(
        self,
        record: WordRecord,
        level: int,
        now: Optional[datetime] = None,
    ) -> WordRecord:
        """
        Manually set a word's level and reschedule it from the fixed table.

        The review count and last review time are left untouched.

        Raises:
            ValidationError: If the level is outside the strategy's range.
        """
        if not (0 <= level <= self.strategy.max_level):
            raise ValidationError(
                f"Proficiency level must be within [0, {self.strategy.max_level}], got {level}."
            )
        ts = ensure_utc(now) if now else datetime.now(timezone.utc)
        fields = {
            "proficiency_level": level,
            "next_review_at": compute_next_review(self.strategy, level, ts),
        }
        self.store.update(record.id, fields)
        return record.model_copy(update=fields)

    def mark_mastered(
        self, record: WordRecord, now: Optional[datetime] = None
    ) -> WordRecord:
        """Set the word to the strategy's highest level."""
        return self.set_proficiency(record, self.strategy.max_level, now)

    def reset_progress(
        self, record: WordRecord, now: Optional[datetime] = None
    ) -> WordRecord:
        """Send the word back to level 0 with a fresh adaptive state."""
        ts = ensure_utc(now) if now else datetime.now(timezone.utc)
        fields = {
            "proficiency_level": 0,
            "next_review_at": compute_next_review(self.strategy, 0, ts),
            "easiness_factor": DEFAULT_EASINESS_FACTOR,
            "interval_days": 0,
            "repetitions": 0,
        }
        self.store.update(record.id, fields)
        return record.model_copy(update=fields)
