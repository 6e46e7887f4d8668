"""
Utility functions for data marshalling between Pydantic models and database formats.
This module keeps the core database logic independent of the specifics of data conversion.
"""

import shutil
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import MarshallingError
from ..models import ActivityEntry, WordRecord

WORD_TIMESTAMP_COLUMNS = ("last_review_at", "next_review_at", "created_at")


def to_db_timestamp(ts: Optional[datetime]) -> Optional[datetime]:
    """Convert a datetime to the naive UTC value stored in TIMESTAMP columns."""
    if ts is None:
        return None
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.replace(tzinfo=None)


def from_db_timestamp(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to a naive TIMESTAMP value read from the database."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_db_value(value: Any) -> Any:
    """Convert a model value (enum, datetime, ...) to its column value."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return to_db_timestamp(value)
    return value


def transform_db_row_for_word(row_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Prepare a database row dictionary for constructing a WordRecord model.

    Returns a copy of the row with timestamp columns converted to
    timezone-aware UTC datetimes.
    """
    data = row_dict.copy()
    for column in WORD_TIMESTAMP_COLUMNS:
        if column in data:
            data[column] = from_db_timestamp(data[column])
    return data


def db_row_to_word(row_dict: Dict[str, Any]) -> WordRecord:
    """
    Create a WordRecord model from a database row dictionary.

    Field presence and types are validated here, at the storage boundary.

    Raises:
        MarshallingError: If the row cannot be validated into a WordRecord.
    """
    data = transform_db_row_for_word(row_dict)
    try:
        return WordRecord(**data)
    except PydanticValidationError as e:
        raise MarshallingError(
            f"Failed to parse word from DB row: {row_dict}. Error: {e}",
            original_exception=e,
        ) from e


def word_fields_to_db_params(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert a mapping of WordRecord field values to column values."""
    return {name: to_db_value(value) for name, value in fields.items()}


def activity_to_db_params_tuple(entry: ActivityEntry) -> Tuple:
    """
    Convert an ActivityEntry into a tuple suitable for database insertion.

    Returns:
        tuple: (activity_type, word_id, accuracy_score, time_spent_seconds, created_at)
    """
    return (
        entry.activity_type.value,
        entry.word_id,
        entry.accuracy_score,
        entry.time_spent_seconds,
        to_db_timestamp(entry.created_at),
    )


def db_row_to_activity(row_dict: Dict[str, Any]) -> ActivityEntry:
    """
    Create an ActivityEntry from a raw database row dictionary.

    Raises:
        MarshallingError: If model validation fails.
    """
    data = row_dict.copy()
    data["created_at"] = from_db_timestamp(data.get("created_at"))
    try:
        return ActivityEntry(**data)
    except PydanticValidationError as e:
        raise MarshallingError(
            f"Data validation failed for activity entry: {e}",
            original_exception=e,
        ) from e


def backup_database(db_path: Path) -> Path:
    """
    Creates a timestamped backup of the database file.

    Args:
        db_path: The path to the database file.

    Returns:
        The path to the created backup file, or `db_path` itself when there
        is nothing to back up yet.
    """
    if not db_path.exists():
        return db_path

    backup_dir = db_path.parent / "backups"
    backup_dir.mkdir(exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    backup_filename = f"{db_path.stem}-backup-{timestamp}{db_path.suffix}"
    backup_path = backup_dir / backup_filename

    shutil.copy2(db_path, backup_path)
    return backup_path
