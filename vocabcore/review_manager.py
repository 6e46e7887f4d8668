"""
This module defines the ReviewSessionManager class, which is responsible for
managing an interactive review session. It fetches a snapshot of words from
the database, orders it with the queue builders, and records review outcomes
through the ProficiencyTracker.
"""

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

from .db.database import VocabularyDatabase
from .models import ReviewOutcome, SchedulingStrategy, WordRecord, ensure_utc
from .proficiency_tracker import ProficiencyTracker
from .queue_builder import build_due_queue, build_today_queue

# Initialize logger
logger = logging.getLogger(__name__)

SESSION_MODES = ("due", "today")


class ReviewSessionManager:
    """
    Manages a review session for vocabulary words.

    This class is responsible for:
    - Initializing a review session from the due or today queue.
    - Providing words one by one for review.
    - Applying outcomes through the tracker, re-queueing unknown words.
    """

    def __init__(
        self,
        db_manager: VocabularyDatabase,
        tracker: ProficiencyTracker,
        strategy: Optional[SchedulingStrategy] = None,
    ):
        """
        Create a ReviewSessionManager.

        Parameters:
            db_manager (VocabularyDatabase): Source of the word snapshot.
            tracker (ProficiencyTracker): Applies and persists review outcomes.
            strategy (SchedulingStrategy | None): Strategy used for queue
                priorities; defaults to the tracker's strategy.
        """
        self.db = db_manager
        self.tracker = tracker
        self.strategy = strategy or tracker.strategy
        self.review_queue: List[WordRecord] = []
        self.session_word_ids: Set[int] = set()
        self.reviewed_word_ids: Set[int] = set()
        self.outcome_counts: Counter = Counter()
        self.session_start_time = datetime.now(timezone.utc)

    def initialize_session(
        self,
        limit: Optional[int] = 20,
        now: Optional[datetime] = None,
        mode: str = "due",
    ) -> None:
        """
        Fetch a snapshot and populate the session queue.

        Parameters:
            limit (int | None): Maximum number of words in the session.
            now (datetime | None): Reference time; defaults to the current time.
            mode (str): "due" for the priority-ordered due queue, "today" for
                today's queue.

        Raises:
            ValueError: If the mode is unknown.
        """
        if mode not in SESSION_MODES:
            raise ValueError(
                f"Unknown session mode '{mode}'. Expected one of {SESSION_MODES}."
            )
        ts = ensure_utc(now) if now else datetime.now(timezone.utc)
        logger.info(f"Initializing {mode} review session (limit={limit}).")

        if mode == "due":
            snapshot = self.db.list_due(ts)
            self.review_queue = build_due_queue(
                snapshot, ts, strategy=self.strategy, limit=limit
            )
        else:
            snapshot = self.db.get_all_words()
            self.review_queue = build_today_queue(snapshot, ts, limit=limit)

        self.session_word_ids = {word.id for word in self.review_queue}
        self.reviewed_word_ids = set()
        self.outcome_counts = Counter()
        self.session_start_time = ts
        logger.info(f"Initialized session with {len(self.review_queue)} words.")

    def get_next_word(self) -> Optional[WordRecord]:
        """
        Retrieves the next word to be reviewed.

        Returns:
            The next WordRecord, or None if the queue is empty.
        """
        if not self.review_queue:
            logger.info("Review queue is empty. Session may be complete.")
            return None
        return self.review_queue[0]

    def _get_word_from_queue(self, word_id: int) -> Optional[WordRecord]:
        for word in self.review_queue:
            if word.id == word_id:
                return word
        return None

    def submit_outcome(
        self,
        word_id: int,
        outcome: ReviewOutcome,
        now: Optional[datetime] = None,
        time_spent_seconds: float = 0.0,
    ) -> WordRecord:
        """
        Submit an outcome for a word in the current session.

        The word leaves the queue; an unknown word is appended again at the
        end so it comes back later in the same session.

        Returns:
            WordRecord: The updated record.

        Raises:
            ValueError: If the word is not part of the current session queue.
        """
        word = self._get_word_from_queue(word_id)
        if word is None:
            raise ValueError(
                f"Word {word_id} not found in the current review session."
            )

        try:
            updated = self.tracker.apply_outcome(
                word, outcome, now=now, time_spent_seconds=time_spent_seconds
            )
        except Exception as e:
            logger.error(f"Failed to submit outcome for word {word_id}: {e}")
            raise

        self.review_queue = [w for w in self.review_queue if w.id != word_id]
        if outcome is ReviewOutcome.Unknown:
            self.review_queue.append(updated)
        self.reviewed_word_ids.add(word_id)
        self.outcome_counts[outcome] += 1
        return updated

    def get_session_stats(self) -> Dict[str, int]:
        """
        Provide aggregated statistics for the active review session.

        Returns:
            dict: Mapping containing session statistics:
                - "total_words": words in the session when it started
                - "reviewed_words": distinct words reviewed at least once
                - "remaining_words": entries still in the queue
                - "unknown" / "familiar" / "known": outcome counts
        """
        stats = {
            "total_words": len(self.session_word_ids),
            "reviewed_words": len(self.reviewed_word_ids),
            "remaining_words": len(self.review_queue),
        }
        for outcome in ReviewOutcome:
            stats[outcome.value] = self.outcome_counts[outcome]
        return stats
