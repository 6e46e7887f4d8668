"""
DuckDB database interactions for vocabcore.
Implements the VocabularyDatabase record store used by the scheduling core.
"""

import duckdb
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar, Union, cast

from . import db_utils
from .connection import ConnectionHandler
from .schema_manager import SchemaManager
from ..constants import ADAPTIVE_MAX_LEVEL, MASTERED_LEVEL_THRESHOLD
from ..exceptions import (
    ActivityOperationError,
    DatabaseConnectionError,
    MarshallingError,
    WordNotFoundError,
    WordOperationError,
)
from ..models import ActivityEntry, AddReason, WordRecord, ensure_utc

# --- Logging Setup ---
logger = logging.getLogger(__name__)

T = TypeVar("T")

# Columns the record store lets callers update. id, text and created_at are
# immutable once a word exists.
UPDATABLE_WORD_FIELDS = frozenset(
    {
        "definition",
        "pronunciation",
        "add_reason",
        "proficiency_level",
        "review_count",
        "last_review_at",
        "next_review_at",
        "easiness_factor",
        "interval_days",
        "repetitions",
    }
)


# --- Helper Functions ---


def _rows_to_dicts(cursor: duckdb.DuckDBPyConnection) -> List[Dict[str, Any]]:
    """Convert cursor results to list of dictionaries using column names."""
    rows = cursor.fetchall()
    if not rows:
        return []
    description = cursor.description
    if description is None:
        return []
    columns = [desc[0] for desc in description]
    return [dict(zip(columns, row, strict=True)) for row in rows]


def normalize_text(text: str) -> str:
    """Words are stored lowercased and stripped."""
    return text.lower().strip()


class VocabularyDatabase:
    """
    Acts as a Facade for the database subsystem and as the record store of
    the scheduling core.

    Writes go through the connection handler's transaction, so at most one
    writer touches the words table at a time. Intended for use as a context
    manager.
    """

    def __init__(self, db_path: Union[str, Path], read_only: bool = False):
        """
        Create a VocabularyDatabase backed by the given DuckDB path.

        Args:
            db_path (str | Path): Path to the database file. Use ':memory:' for an in-memory database.
            read_only (bool): If True, open the database in read-only mode.
        """
        self._handler = ConnectionHandler(db_path=db_path, read_only=read_only)
        self._schema_manager = SchemaManager(self._handler)
        logger.info(
            f"VocabularyDatabase initialized for DB at: {self._handler.db_path_resolved}"
        )

    @property
    def db_path_resolved(self) -> Path:
        return self._handler.db_path_resolved

    @property
    def read_only(self) -> bool:
        return self._handler.read_only

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        return self._handler.get_connection()

    def close_connection(self) -> None:
        self._handler.close_connection()

    def __enter__(self) -> "VocabularyDatabase":
        """
        Open the database connection and initialize the schema if a new writable database was created.
        """
        self.get_connection()
        if self._handler.is_new_db and not self._handler.read_only:
            self.initialize_schema()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Ensures the connection is closed on exiting the context."""
        self.close_connection()

    def initialize_schema(self, force_recreate_tables: bool = False) -> None:
        """
        Ensure the database schema exists; optionally drop and recreate it.

        Parameters:
            force_recreate_tables (bool): If True, existing tables will be dropped and recreated.
        """
        self._schema_manager.initialize_schema(
            force_recreate_tables=force_recreate_tables
        )

    def _ensure_writable(self, operation: str) -> None:
        if self.read_only:
            raise DatabaseConnectionError(
                f"Cannot {operation} in read-only mode."
            )

    # --- Transactions ---

    def transaction(self, fn: Callable[[], T]) -> T:
        """
        Run `fn` with all-or-nothing commit semantics.

        Writes issued through this database while `fn` runs join the
        transaction. Nested calls run inside the outer transaction. Any
        exception rolls everything back and propagates unchanged; DuckDB
        errors on commit are wrapped in WordOperationError.

        Returns:
            Whatever `fn` returns.
        """
        self._ensure_writable("run a transaction")
        try:
            with self._handler.transaction():
                return fn()
        except duckdb.Error as e:
            logger.error(f"Error during transaction: {e}")
            raise WordOperationError(
                f"Transaction failed: {e}", original_exception=e
            ) from e

    # --- Word Operations ---

    def add_word(
        self,
        text: str,
        definition: str,
        add_reason: AddReason = AddReason.TranslationLookup,
        pronunciation: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> WordRecord:
        """
        Add a word to the wordbook, or return the existing record.

        The text is lowercased and stripped. When the word already exists its
        scheduling state is kept; only its add reason is upgraded if the new
        reason is more severe (pronunciation error > listening difficulty >
        translation lookup).

        Returns:
            WordRecord: The new or existing record.

        Raises:
            WordOperationError: If the insert fails.
        """
        self._ensure_writable("add words")
        normalized = normalize_text(text)
        if not normalized:
            raise ValueError("Word text must not be empty.")

        sql = """
        INSERT INTO words (text, definition, pronunciation, add_reason, created_at)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING id;
        """
        created_at = ensure_utc(now) if now else datetime.now(timezone.utc)
        try:
            with self._handler.transaction() as conn:
                existing = self.get_by_text(normalized)
                if existing is not None:
                    if add_reason.priority > existing.add_reason.priority:
                        self.update(existing.id, {"add_reason": add_reason})
                        logger.info(
                            f"Upgraded add reason of '{normalized}' from "
                            f"{existing.add_reason.value} to {add_reason.value}."
                        )
                        return existing.model_copy(update={"add_reason": add_reason})
                    return existing

                params = (
                    normalized,
                    definition,
                    pronunciation,
                    add_reason.value,
                    db_utils.to_db_timestamp(created_at),
                )
                result = conn.execute(sql, params).fetchone()
        except duckdb.Error as e:
            logger.error(f"Error adding word '{normalized}': {e}")
            raise WordOperationError(
                f"Failed to add word '{normalized}': {e}",
                original_exception=e,
            ) from e
        if not result:
            raise WordOperationError(
                f"Failed to retrieve id after inserting '{normalized}'."
            )

        word = self.get_by_id(result[0])
        if word is None:
            raise WordOperationError(
                f"Failed to retrieve word '{normalized}' after insertion."
            )
        logger.info(f"Added word '{normalized}' with id {word.id}.")
        return word

    def _fetch_words(self, sql: str, params: Any, context: str) -> List[WordRecord]:
        try:
            with self._handler.read() as conn:
                rows = _rows_to_dicts(conn.execute(sql, params))
        except duckdb.Error as e:
            logger.error(f"Error fetching {context}: {e}")
            raise WordOperationError(
                f"Failed to fetch {context}: {e}", original_exception=e
            ) from e
        try:
            return [
                db_utils.db_row_to_word(cast(Dict[str, Any], row))
                for row in rows
            ]
        except MarshallingError as e:
            raise WordOperationError(
                f"Failed to parse {context} from database.",
                original_exception=e,
            ) from e

    def get_by_id(self, word_id: int) -> Optional[WordRecord]:
        """
        Fetches a word by its id.

        Returns:
            WordRecord | None: The record, or `None` if no word has that id.

        Raises:
            WordOperationError: If a database error occurs or the row cannot be parsed.
        """
        words = self._fetch_words(
            "SELECT * FROM words WHERE id = $1;", (word_id,), f"word {word_id}"
        )
        return words[0] if words else None

    def get_by_text(self, text: str) -> Optional[WordRecord]:
        """Fetches a word by its (normalized) text."""
        normalized = normalize_text(text)
        words = self._fetch_words(
            "SELECT * FROM words WHERE text = $1;",
            (normalized,),
            f"word '{normalized}'",
        )
        return words[0] if words else None

    def list_due(
        self, now: Optional[datetime] = None, limit: Optional[int] = None
    ) -> List[WordRecord]:
        """
        Retrieve words that are due at `now`.

        A word is due if its `next_review_at` is NULL or on or before `now`.
        Results are ordered by `next_review_at` (NULLs first) then id; callers
        apply their own queue ordering.
        """
        if limit == 0:
            return []
        ts = ensure_utc(now) if now else datetime.now(timezone.utc)
        sql = """
        SELECT * FROM words
        WHERE next_review_at IS NULL OR next_review_at <= $1
        ORDER BY next_review_at ASC NULLS FIRST, id ASC
        """
        params: List[Any] = [db_utils.to_db_timestamp(ts)]
        if limit is not None and limit > 0:
            sql += " LIMIT $2"
            params.append(limit)
        return self._fetch_words(sql, params, "due words")

    def get_all_words(
        self,
        add_reason: Optional[AddReason] = None,
        level: Optional[int] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[WordRecord]:
        """
        Retrieve words, newest first, with optional filters.

        Parameters:
            add_reason: Only words added for this reason.
            level: Only words at this proficiency level.
            search: Case-insensitive substring of the word or its definition.
            limit: Maximum number of words returned.
            offset: Number of words skipped (only with `limit`).
        """
        sql = "SELECT * FROM words WHERE 1=1"
        params: List[Any] = []
        if add_reason is not None:
            params.append(add_reason.value)
            sql += f" AND add_reason = ${len(params)}"
        if level is not None:
            params.append(level)
            sql += f" AND proficiency_level = ${len(params)}"
        if search:
            params.append(f"%{search.lower()}%")
            sql += f" AND (text LIKE ${len(params)} OR lower(definition) LIKE ${len(params)})"
        sql += " ORDER BY created_at DESC, id DESC"
        if limit is not None:
            params.append(limit)
            sql += f" LIMIT ${len(params)}"
            if offset:
                params.append(offset)
                sql += f" OFFSET ${len(params)}"
        return self._fetch_words(sql, params, "words")

    def _execute_update(
        self,
        conn: duckdb.DuckDBPyConnection,
        word_id: int,
        params: Dict[str, Any],
    ) -> None:
        exists = conn.execute(
            "SELECT 1 FROM words WHERE id = $1;", (word_id,)
        ).fetchone()
        if not exists:
            raise WordNotFoundError(word_id)
        if not params:
            return
        columns = list(params)
        assignments = ", ".join(
            f"{column} = ${index}" for index, column in enumerate(columns, start=1)
        )
        sql = f"UPDATE words SET {assignments} WHERE id = ${len(columns) + 1};"
        conn.execute(sql, [params[column] for column in columns] + [word_id])

    def update(self, word_id: int, fields: Mapping[str, Any]) -> None:
        """
        Update selected fields of a word.

        Parameters:
            word_id (int): Id of the word to update.
            fields (Mapping[str, Any]): WordRecord field names mapped to new values.

        Raises:
            ValueError: If a field is unknown or immutable.
            WordNotFoundError: If no word has the given id.
            WordOperationError: If the database update fails.
        """
        self._ensure_writable("update words")
        unknown = set(fields) - UPDATABLE_WORD_FIELDS
        if unknown:
            raise ValueError(f"Cannot update word fields: {sorted(unknown)}")
        params = db_utils.word_fields_to_db_params(fields)

        try:
            with self._handler.transaction() as conn:
                self._execute_update(conn, word_id, params)
        except duckdb.Error as e:
            logger.error(f"Error updating word {word_id}: {e}")
            raise WordOperationError(
                f"Failed to update word {word_id}: {e}",
                original_exception=e,
            ) from e
        logger.debug(f"Updated word {word_id}: {sorted(fields)}")

    def get_word_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Retrieve aggregate wordbook statistics.

        Returns:
            dict: A dictionary with the following keys:
                - total_words (int)
                - mastered_words (int): words at level 4 or above
                - due_words (int): words due at `now`
                - words_by_reason (Dict[str, int]): count per add reason, every reason present
                - words_by_level (Dict[int, int]): count per proficiency level 0-9
                - total_activities (int)
        """
        ts = db_utils.to_db_timestamp(
            ensure_utc(now) if now else datetime.now(timezone.utc)
        )
        try:
            with self._handler.read() as conn:
                total_words, mastered_words, due_words = conn.execute(
                    """
                    SELECT
                        COUNT(*),
                        COUNT(CASE WHEN proficiency_level >= $1 THEN 1 END),
                        COUNT(CASE WHEN next_review_at IS NULL OR next_review_at <= $2 THEN 1 END)
                    FROM words;
                    """,
                    (MASTERED_LEVEL_THRESHOLD, ts),
                ).fetchone()
                reason_rows = conn.execute(
                    "SELECT add_reason, COUNT(*) FROM words GROUP BY add_reason;"
                ).fetchall()
                level_rows = conn.execute(
                    "SELECT proficiency_level, COUNT(*) FROM words GROUP BY proficiency_level;"
                ).fetchall()
                activity_result = conn.execute(
                    "SELECT COUNT(*) FROM activity_log;"
                ).fetchone()
        except duckdb.Error as e:
            logger.error(f"Could not retrieve word stats due to an error: {e}")
            raise WordOperationError(
                "Could not retrieve word stats.", original_exception=e
            ) from e

        words_by_reason = {reason.value: 0 for reason in AddReason}
        words_by_reason.update({reason: count for reason, count in reason_rows})
        words_by_level = {level: 0 for level in range(ADAPTIVE_MAX_LEVEL + 1)}
        words_by_level.update({level: count for level, count in level_rows})

        return {
            "total_words": total_words or 0,
            "mastered_words": mastered_words or 0,
            "due_words": due_words or 0,
            "words_by_reason": words_by_reason,
            "words_by_level": words_by_level,
            "total_activities": activity_result[0] if activity_result else 0,
        }

    # --- Activity Log Operations ---

    def add_activity(self, entry: ActivityEntry) -> ActivityEntry:
        """
        Insert an activity-log entry and assign its generated id.

        Raises:
            DatabaseConnectionError: If the database is opened in read-only mode.
            ActivityOperationError: If the insertion fails.
        """
        self._ensure_writable("record activities")
        sql = """
        INSERT INTO activity_log (activity_type, word_id, accuracy_score, time_spent_seconds, created_at)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING activity_id;
        """
        try:
            with self._handler.transaction() as conn:
                result = conn.execute(
                    sql, db_utils.activity_to_db_params_tuple(entry)
                ).fetchone()
        except duckdb.Error as e:
            logger.error(f"Error recording activity: {e}")
            raise ActivityOperationError(
                f"Failed to record activity: {e}", original_exception=e
            ) from e
        if not result:
            raise ActivityOperationError(
                "Failed to retrieve activity_id after insertion."
            )
        entry.activity_id = result[0]
        return entry

    def get_activities(self, word_id: Optional[int] = None) -> List[ActivityEntry]:
        """
        Retrieve activity-log entries in insertion order, optionally for one word.
        """
        sql = "SELECT * FROM activity_log"
        params: List[Any] = []
        if word_id is not None:
            sql += " WHERE word_id = $1"
            params.append(word_id)
        sql += " ORDER BY created_at ASC, activity_id ASC;"
        try:
            with self._handler.read() as conn:
                rows = _rows_to_dicts(conn.execute(sql, params))
        except duckdb.Error as e:
            logger.error(f"Error fetching activities for word {word_id}: {e}")
            raise ActivityOperationError(
                f"Failed to get activities: {e}", original_exception=e
            ) from e
        try:
            return [db_utils.db_row_to_activity(row) for row in rows]
        except MarshallingError as e:
            raise ActivityOperationError(
                "Failed to parse activities from database.",
                original_exception=e,
            ) from e
