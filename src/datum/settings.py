"""
Process-wide settings for Datum.

Settings are loaded from environment variables:

    DATUM_DATABASE_URL      default DSN established on Record
    DATUM_MIGRATIONS_PATH   directory holding <id>_<name>.{up,down}.sql files
    DATUM_MIGRATIONS_TABLE  ledger table name (default: datum_metadata)
"""

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process-wide Datum settings, read from DATUM_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DATUM_",
        env_ignore_empty=True,
        extra="ignore",
    )

    database_url: str | None = None
    migrations_path: Path | None = None
    migrations_table: str = "datum_metadata"

    @field_validator("migrations_table")
    @classmethod
    def validate_table(cls, v: str) -> str:
        if not v.replace("_", "").isalnum():
            raise ValueError(f"Invalid migrations table name: {v!r}")
        return v


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the active settings, loading them from the environment on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def configure(**overrides: object) -> Settings:
    """
    Update the active settings.

    Setting `database_url` also establishes it as the default connection for
    every model that does not establish its own.

    Example:
        configure(database_url="sqlite://memory", migrations_path="db/migrations")
    """
    global _settings
    _settings = Settings(**{**get_settings().model_dump(), **overrides})

    if overrides.get("database_url"):
        from datum.models.record import Record

        Record.establish_connection(_settings.database_url)

    return _settings


def reset_settings() -> None:
    """Discard the active settings; the next access reloads them from the environment."""
    global _settings
    _settings = None
