"""
Stream Classification Service - Application Configuration

Patterns Applied:
- Pydantic Settings with SettingsConfigDict
- Environment variable prefix SCS_ for Stream Classification Service
- Settings passed explicitly to create_app() instead of read at import time
"""

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SERVICE_NAME = "stream-classification-service"

# Reference data bundled with the package
DEFAULT_SEED_PATH = Path(__file__).resolve().parent.parent / "data" / "reference_data.json"

ALLOWED_NO_MATCH_STATUS_CODES = (200, 404)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables with SCS_ prefix.
    Example: SCS_PORT=4000, SCS_NO_MATCH_STATUS_CODE=404
    """

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 4000

    # Application metadata
    service_name: str = DEFAULT_SERVICE_NAME
    version: str = "0.1.0"
    environment: str = "development"

    # Logging configuration
    log_level: str = "INFO"
    log_json: bool = True

    # Tracing configuration
    tracing_enabled: bool = True
    tracing_console_export: bool = True

    # Reference data
    seed_path: Path | None = None

    # Classification behaviour
    fallback_to_common: bool = False
    strict_subjects: bool = False
    no_match_status_code: int = 200

    model_config = SettingsConfigDict(
        env_prefix="SCS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("no_match_status_code")
    @classmethod
    def validate_no_match_status(cls, v: int) -> int:
        """Only 200 (empty result) and 404 (not found) are meaningful."""
        if v not in ALLOWED_NO_MATCH_STATUS_CODES:
            raise ValueError(
                f"no_match_status_code must be one of {ALLOWED_NO_MATCH_STATUS_CODES}"
            )
        return v

    @property
    def resolved_seed_path(self) -> Path:
        """Seed file to load, falling back to the bundled reference data."""
        return self.seed_path or DEFAULT_SEED_PATH


def get_settings() -> Settings:
    """Get application settings instance.

    Returns:
        Settings instance with values from environment
    """
    return Settings()
