import duckdb
import logging

from .connection import ConnectionHandler
from . import schema
from ..exceptions import DatabaseConnectionError, SchemaInitializationError
from .. import config as vocabcore_config

logger = logging.getLogger(__name__)


class SchemaManager:
    """Creates, and on request drops and recreates, the words and activity_log tables."""

    def __init__(self, handler: ConnectionHandler):
        self._handler = handler

    def initialize_schema(self, force_recreate_tables: bool = False) -> None:
        """
        Create any missing tables and sequences in one transaction.

        A read-only file database is left untouched. With
        `force_recreate_tables` the existing tables are dropped first, which
        is refused while they still hold data outside of testing mode.

        Raises:
            DatabaseConnectionError: If recreation is requested on a read-only database.
            ValueError: If recreation would drop existing data.
            SchemaInitializationError: If DuckDB rejects the DDL.
        """
        if self._handler.read_only:
            if force_recreate_tables:
                raise DatabaseConnectionError(
                    "Cannot force_recreate_tables in read-only mode."
                )
            logger.warning("Attempting to initialize schema in read-only mode. Skipping.")
            return

        try:
            with self._handler.transaction() as conn:
                if force_recreate_tables:
                    self._drop_tables(conn)
                conn.execute(schema.DB_SCHEMA_SQL)
        except duckdb.Error as e:
            logger.error(
                f"Error initializing database schema at {self._handler.db_path_resolved}: {e}"
            )
            raise SchemaInitializationError(
                f"Failed to initialize schema: {e}", original_exception=e
            ) from e
        logger.info(
            f"Database schema at {self._handler.db_path_resolved} initialized successfully (or already exists)."
        )

    def _count_rows(self, conn: duckdb.DuckDBPyConnection) -> dict:
        existing = {
            row[0]
            for row in conn.execute(
                "SELECT table_name FROM information_schema.tables "
                "WHERE table_name IN ('words', 'activity_log');"
            ).fetchall()
        }
        counts = {"words": 0, "activity_log": 0}
        for table in sorted(existing):
            result = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
            counts[table] = result[0] if result else 0
        return counts

    def _drop_tables(self, conn: duckdb.DuckDBPyConnection) -> None:
        if not (self._handler.is_memory or vocabcore_config.settings.testing_mode):
            try:
                counts = self._count_rows(conn)
            except duckdb.Error as e:
                error_msg = (
                    "CRITICAL: Cannot verify if tables contain data before dropping. "
                    f"Refusing to proceed to prevent data loss. Error: {e}"
                )
                logger.error(error_msg)
                raise ValueError(error_msg) from e
            if counts["words"] or counts["activity_log"]:
                error_msg = (
                    "CRITICAL: Attempted to drop tables with existing data! "
                    f"Words: {counts['words']}, Activities: {counts['activity_log']}. "
                    "This would cause permanent data loss."
                )
                logger.error(error_msg)
                raise ValueError(error_msg)

        logger.warning(
            f"Forcing table recreation for {self._handler.db_path_resolved}. ALL EXISTING DATA WILL BE LOST."
        )
        conn.execute(schema.DROP_SCHEMA_SQL)
