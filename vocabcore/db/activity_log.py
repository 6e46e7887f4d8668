"""Activity log backed by the activity_log table of a VocabularyDatabase."""

import logging
from datetime import datetime, timezone
from typing import Optional

from ..models import ActivityEntry, ActivityType
from .database import VocabularyDatabase

logger = logging.getLogger(__name__)


class DuckDBActivityLog:
    """Writes one row per applied review to the activity_log table."""

    def __init__(self, db: VocabularyDatabase):
        self.db = db

    def record(
        self,
        activity_type: ActivityType,
        word_id: Optional[int] = None,
        accuracy_score: Optional[float] = None,
        time_spent_seconds: float = 0.0,
    ) -> None:
        entry = ActivityEntry(
            activity_type=activity_type,
            word_id=word_id,
            accuracy_score=accuracy_score,
            time_spent_seconds=time_spent_seconds,
            created_at=datetime.now(timezone.utc),
        )
        self.db.add_activity(entry)
        logger.debug(
            f"Recorded {activity_type.value} activity {entry.activity_id} for word {word_id}"
        )
