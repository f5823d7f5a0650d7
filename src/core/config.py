"""Configuration management for hearthboard."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite Configuration
    sqlite_db_path: str = Field(default="./data/hearthboard.db", description="Path to the SQLite database file")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # Household Configuration
    timezone: str = Field(
        default="UTC",
        description="IANA timezone name used to decide what 'today' is for status calculation",
    )
    environment: str = Field(default="development", description="Deployment environment name")

    @property
    def is_production(self) -> bool:
        """Return True when running in the production environment."""
        return self.environment.lower() == "production"


# Application Constants
class Constants:
    """Application-wide constants."""

    # Task Defaults (minutes)
    DEFAULT_CHORE_MINUTES: int = 15
    DEFAULT_ROUTINE_MINUTES: int = 30
    DEFAULT_STEP_MINUTES: int = 5

    # Validation
    MAX_NAME_LENGTH: int = 100
    HEX_COLOR_PATTERN: str = r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$"

    # SQLite
    SQLITE_BUSY_TIMEOUT_SECONDS: float = 30.0

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 500

    # HTTP
    ACCOUNT_HEADER: str = "X-Account-Id"

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
