from pathlib import Path
from typing import Optional

from vocabcore.cli.review_ui import start_review_flow
from vocabcore.db import DuckDBActivityLog, VocabularyDatabase
from vocabcore.models import SchedulingStrategy
from vocabcore.proficiency_tracker import ProficiencyTracker
from vocabcore.review_manager import ReviewSessionManager


def review_logic(
    db_path: Path,
    limit: Optional[int] = None,
    mode: str = "due",
    strategy: Optional[SchedulingStrategy] = None,
):
    """
    Set up and start a review session.

    Opens the database, wires a ProficiencyTracker that logs to the
    activity_log table, and launches the interactive review flow.

    Parameters:
        db_path (Path): Path to the vocabulary database file.
        limit (Optional[int]): Maximum number of words in the session.
        mode (str): "due" or "today".
        strategy (Optional[SchedulingStrategy]): Overrides settings.strategy.
    """
    with VocabularyDatabase(db_path=db_path) as db_manager:
        db_manager.initialize_schema()
        tracker = ProficiencyTracker(
            db_manager,
            activity_log=DuckDBActivityLog(db_manager),
            strategy=strategy,
        )
        manager = ReviewSessionManager(db_manager=db_manager, tracker=tracker)
        start_review_flow(manager, limit=limit, mode=mode)
