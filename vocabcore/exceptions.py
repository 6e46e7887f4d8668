from typing import Optional


class ValidationError(ValueError):
    """Raised for malformed review input (scores, times, batch shapes)."""

    pass


class InvariantViolation(AssertionError):
    """Raised when a computed state falls outside its allowed range."""

    pass


class DatabaseError(Exception):
    """Base exception for database-related errors."""

    def __init__(
        self, message: str, original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.original_exception = original_exception


class DatabaseConnectionError(DatabaseError):
    """Raised for errors connecting to the database."""

    pass


class SchemaInitializationError(DatabaseError):
    """Raised for errors during schema setup."""

    pass


class WordOperationError(DatabaseError):
    """Raised for errors during word record operations (CRUD)."""

    pass


class WordNotFoundError(WordOperationError):
    """Raised when an update targets a word id that does not exist."""

    def __init__(self, word_id: int):
        super().__init__(f"Word with id {word_id} not found.")
        self.word_id = word_id


class ActivityOperationError(DatabaseError):
    """Indicates an error while writing or reading the activity log."""

    pass


class MarshallingError(DatabaseError):
    """Indicates an error during data conversion between application models
    and DB format."""

    pass
