"""
Runtime configuration for vocabcore, loaded from environment variables
(prefix VOCABCORE_) or a .env file.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import ActivityType, SchedulingStrategy


def get_default_db_path() -> Path:
    """Returns the default path for the database file."""
    return Path.home() / ".vocabcore" / "vocab.db"


class Settings(BaseSettings):
    """
    Defines application settings, loaded from environment variables or .env files.
    """

    model_config = SettingsConfigDict(
        env_prefix="VOCABCORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # The database path can be overridden by the VOCABCORE_DB_PATH env var.
    db_path: Path = Field(default_factory=get_default_db_path)

    # Scheduling strategy for the whole deployment.
    strategy: SchedulingStrategy = SchedulingStrategy.Basic

    # Delay before a "familiar" word comes back.
    familiar_delay_hours: float = Field(default=2.0, gt=0)

    # Activity type written for each applied review.
    activity_type: ActivityType = ActivityType.Reading

    # Default size of an interactive review session.
    review_limit: int = Field(default=20, ge=1)

    log_level: str = "WARNING"

    # Allows destructive schema operations on file databases (tests only).
    testing_mode: bool = False


settings = Settings()
