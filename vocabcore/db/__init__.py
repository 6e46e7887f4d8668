"""Database package for vocabcore.

This package provides the DuckDB-backed record store and activity log.
Only VocabularyDatabase and DuckDBActivityLog are exported as the public API.
"""

from .activity_log import DuckDBActivityLog
from .database import VocabularyDatabase

__all__ = ["VocabularyDatabase", "DuckDBActivityLog"]
