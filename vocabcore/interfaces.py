"""Collaborator interfaces consumed by the vocabcore scheduling core.

The core only issues calls through these protocols; storage engines and
activity sinks live outside it (see vocabcore.db for the DuckDB versions).
"""

from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Protocol, TypeVar, runtime_checkable

from .models import ActivityType, WordRecord

__all__ = [
    "RecordStore",
    "ActivityLog",
]

T = TypeVar("T")


@runtime_checkable
class RecordStore(Protocol):
    """Contract for durable per-word state.

    `update` must raise WordNotFoundError for unknown ids, and `transaction`
    must run its callable with all-or-nothing commit semantics.
    """

    def get_by_id(self, word_id: int) -> Optional[WordRecord]:
        ...

    def get_by_text(self, text: str) -> Optional[WordRecord]:
        ...

    def list_due(self, now: datetime) -> List[WordRecord]:
        ...

    def update(self, word_id: int, fields: Mapping[str, Any]) -> None:
        ...

    def transaction(self, fn: Callable[[], T]) -> T:
        ...


@runtime_checkable
class ActivityLog(Protocol):
    """Write-only sink for review events."""

    def record(
        self,
        activity_type: ActivityType,
        word_id: Optional[int] = None,
        accuracy_score: Optional[float] = None,
        time_spent_seconds: float = 0.0,
    ) -> None:
        ...
