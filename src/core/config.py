"""Configuration management for the schedule task tracker."""

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

    # Storage Configuration
    storage_path: str = Field(
        default="tasks.csv",
        description="CSV file backing the task store (empty string keeps state in memory only)",
    )

    # HTTP Server Configuration
    host: str = Field(default="127.0.0.1", description="Interface the HTTP server binds to")
    port: int = Field(default=8080, description="Port the HTTP server listens on")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="development", description="Deployment environment name reported to Logfire")

    @property
    def is_file_backed(self) -> bool:
        """Whether state should be persisted to ``storage_path``."""
        return bool(self.storage_path.strip())


# Application Constants
class Constants:
    """Application-wide constants."""

    # Service metadata
    SERVICE_NAME: str = "schedule"
    SERVICE_VERSION: str = "0.1.0"

    # HTTP Status Codes
    HTTP_OK: int = 200
    HTTP_CREATED: int = 201
    HTTP_BAD_REQUEST: int = 400
    HTTP_NOT_FOUND: int = 404
    HTTP_NOT_ACCEPTABLE: int = 406
    HTTP_SERVER_ERROR: int = 500

    # CSV storage format
    CSV_ENCODING: str = "utf-8"
    CSV_NULL_SYMBOL: str = ""


def get_settings() -> Settings:
    """Build application settings from the current environment."""
    return Settings()


constants = Constants()
