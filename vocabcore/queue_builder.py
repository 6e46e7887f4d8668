"""
Review queue construction for vocabcore.

The builders operate on a snapshot of word records supplied by the caller and
never touch storage. Python's sort is stable, so records whose sort keys are
equal keep their input order.
"""

import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional, Tuple

from .config import settings
from .constants import PROFICIENCY_PRIORITY_WEIGHT, SECONDS_PER_DAY
from .models import SchedulingStrategy, WordRecord, ensure_utc

logger = logging.getLogger(__name__)


def _nulls_first(ts: Optional[datetime]) -> Tuple[bool, Any]:
    """Sort key placing unset timestamps before every set one."""
    return (ts is not None, ts)


def is_due(record: WordRecord, now: datetime) -> bool:
    """A record is due when it has no next review or it has passed."""
    if record.next_review_at is None:
        return True
    return record.next_review_at <= ensure_utc(now)


def is_due_today(record: WordRecord, now: datetime) -> bool:
    """
    A record belongs to today's queue when it has no next review or its next
    review falls on or before the calendar day of `now`.

    The calendar day is taken in `now`'s own timezone (UTC for naive values).
    """
    if record.next_review_at is None:
        return True
    if now.tzinfo is None:
        now = ensure_utc(now)
    return record.next_review_at.astimezone(now.tzinfo).date() <= now.date()


def overdue_days(record: WordRecord, now: datetime) -> float:
    """Fractional days past the next review time, never negative."""
    if record.next_review_at is None:
        return 0.0
    elapsed = (ensure_utc(now) - record.next_review_at).total_seconds()
    return max(0.0, elapsed / SECONDS_PER_DAY)


def priority_of(
    record: WordRecord,
    now: datetime,
    strategy: Optional[SchedulingStrategy] = None,
) -> float:
    """
    Priority used to order the due queue; higher is reviewed first.

    priority = overdue days + (strategy ceiling - proficiency level) * 0.1

    The ceiling comes from `strategy`, or from settings.strategy when omitted.
    """
    strategy = strategy or settings.strategy
    proficiency_weight = (
        strategy.max_level - record.proficiency_level
    ) * PROFICIENCY_PRIORITY_WEIGHT
    return overdue_days(record, now) + proficiency_weight


def build_due_queue(
    records: Iterable[WordRecord],
    now: datetime,
    strategy: Optional[SchedulingStrategy] = None,
    limit: Optional[int] = None,
) -> List[WordRecord]:
    """
    Builds the recommended-review queue.

    Keeps the due records, ordered by descending priority, then ascending
    proficiency level, then ascending last review time (never reviewed first).

    Args:
        records: Snapshot of word records.
        now: Reference time.
        strategy: Active strategy, providing the proficiency ceiling.
            Defaults to settings.strategy.
        limit: Optional maximum queue length. None means unlimited.
    """
    strategy = strategy or settings.strategy
    due = [record for record in records if is_due(record, now)]
    queue = sorted(
        due,
        key=lambda r: (
            -priority_of(r, now, strategy),
            r.proficiency_level,
            _nulls_first(r.last_review_at),
        ),
    )
    if limit is not None:
        queue = queue[: max(0, limit)]
    logger.debug(f"Built due queue with {len(queue)} of {len(due)} due records.")
    return queue


def build_today_queue(
    records: Iterable[WordRecord],
    now: datetime,
    limit: Optional[int] = None,
) -> List[WordRecord]:
    """
    Builds today's review queue.

    Keeps the records due on or before today, ordered by ascending next review
    time (unset first), then ascending proficiency level, then ascending
    creation time. The tie-breaks differ from the due queue's.
    """
    todays = [record for record in records if is_due_today(record, now)]
    queue = sorted(
        todays,
        key=lambda r: (
            _nulls_first(r.next_review_at),
            r.proficiency_level,
            r.created_at,
        ),
    )
    if limit is not None:
        queue = queue[: max(0, limit)]
    logger.debug(f"Built today queue with {len(queue)} records.")
    return queue
