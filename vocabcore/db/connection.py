import duckdb
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from ..exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)


class ConnectionHandler:
    """
    Owns the DuckDB connection of one database and serializes access to it.

    Every write goes through `transaction()`, which holds a re-entrant lock
    for its whole duration. Nested `transaction()` blocks join the outermost
    one, so a failure anywhere rolls back everything. Reads go through
    `read()`, which takes the same lock: a reader on another thread waits
    for an open transaction to commit or roll back instead of seeing its
    uncommitted rows.
    """

    def __init__(self, db_path: Union[str, Path], read_only: bool = False):
        """
        Parameters:
            db_path (Union[str, Path]): Path to the DuckDB file, or ":memory:" (case-insensitive) for an in-memory database.
            read_only (bool): Whether the connection should be opened in read-only mode.
        """
        if isinstance(db_path, str) and db_path.lower() == ":memory:":
            self.db_path_resolved = Path(":memory:")
            logger.info("Using in-memory DuckDB database.")
        else:
            self.db_path_resolved = Path(db_path).expanduser().resolve()
            logger.info(
                f"ConnectionHandler initialized for DB at: {self.db_path_resolved}"
            )

        self.read_only: bool = read_only
        self.is_new_db: bool = False
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.RLock()
        self._transaction_depth = 0

    @property
    def is_memory(self) -> bool:
        return str(self.db_path_resolved) == ":memory:"

    @property
    def in_transaction(self) -> bool:
        return self._transaction_depth > 0

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        """
        Return the open connection, connecting on first use.

        `is_new_db` is set when the database is in memory or its file did not
        exist yet; the parent directory of a file database is created.

        Raises:
            DatabaseConnectionError: If DuckDB fails to open the database.
        """
        if self._connection is None:
            try:
                if self.is_memory:
                    self.is_new_db = True
                else:
                    self.is_new_db = not self.db_path_resolved.exists()
                    self.db_path_resolved.parent.mkdir(
                        parents=True, exist_ok=True
                    )

                self._connection = duckdb.connect(
                    database=str(self.db_path_resolved),
                    read_only=self.read_only,
                )
                logger.info("Successfully connected to the database.")
            except duckdb.Error as e:
                raise DatabaseConnectionError(
                    f"Failed to connect to database: {e}", original_exception=e
                ) from e
        return self._connection

    @contextmanager
    def read(self) -> Iterator[duckdb.DuckDBPyConnection]:
        """Hold the lock for a read. Re-entrant inside this thread's transaction."""
        with self._lock:
            yield self.get_connection()

    @contextmanager
    def transaction(self) -> Iterator[duckdb.DuckDBPyConnection]:
        """
        Hold the write lock and run the block inside a transaction.

        The outermost block begins the transaction and commits it on normal
        exit; any exception rolls it back and propagates unchanged.

        Raises:
            DatabaseConnectionError: If the database is opened read-only.
        """
        if self.read_only:
            raise DatabaseConnectionError(
                "Cannot write to a database opened in read-only mode."
            )
        with self._lock:
            conn = self.get_connection()
            if self._transaction_depth:
                self._transaction_depth += 1
                try:
                    yield conn
                finally:
                    self._transaction_depth -= 1
                return

            conn.begin()
            self._transaction_depth = 1
            try:
                yield conn
                conn.commit()
            except BaseException:
                self._rollback(conn)
                raise
            finally:
                self._transaction_depth = 0

    def _rollback(self, conn: duckdb.DuckDBPyConnection) -> None:
        try:
            conn.rollback()
            logger.info("Transaction rolled back.")
        except duckdb.Error as rb_err:
            logger.error(f"Failed to rollback transaction: {rb_err}")

    def close_connection(self) -> None:
        """Closes the connection if it exists, allowing for reconnection."""
        if self._connection:
            try:
                self._connection.close()
                logger.info(
                    f"Database connection to {self.db_path_resolved} closed."
                )
            except duckdb.Error as e:
                logger.error(f"Error closing the database connection: {e}")
            finally:
                self._connection = None
