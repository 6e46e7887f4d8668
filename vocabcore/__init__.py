"""Vocabcore - Spaced-repetition scheduling for vocabulary learning."""

from .models import (
    ActivityEntry,
    ActivityType,
    AddReason,
    MasteryStage,
    MemoryState,
    ReviewOutcome,
    ReviewResult,
    SchedulingStrategy,
    WordRecord,
)
from .scheduler import compute_adaptive_state, compute_next_review
from .queue_builder import build_due_queue, build_today_queue, priority_of
from .proficiency_tracker import ProficiencyTracker
from .exceptions import InvariantViolation, ValidationError, WordNotFoundError
from .db import DuckDBActivityLog, VocabularyDatabase

__all__ = [
    "ActivityEntry",
    "ActivityType",
    "AddReason",
    "MasteryStage",
    "MemoryState",
    "ReviewOutcome",
    "ReviewResult",
    "SchedulingStrategy",
    "WordRecord",
    "compute_adaptive_state",
    "compute_next_review",
    "build_due_queue",
    "build_today_queue",
    "priority_of",
    "ProficiencyTracker",
    "InvariantViolation",
    "ValidationError",
    "WordNotFoundError",
    "DuckDBActivityLog",
    "VocabularyDatabase",
]
