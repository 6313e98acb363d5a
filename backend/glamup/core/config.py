# backend/glamup/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import BRAND_NAME, DEFAULT_CURRENCY


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


_BACKEND_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_SQLITE_URL = f"sqlite:///{_BACKEND_ROOT / 'glamup.db'}"

logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = _BACKEND_ROOT / ".env"
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: str = Field(
        default="development",
        alias="ENVIRONMENT",
        description="Deployment environment name",
    )
    is_testing: bool = Field(default=False, description="Set by the test harness")

    # Database
    database_url: str = Field(
        default=DEFAULT_SQLITE_URL,
        alias="DATABASE_URL",
        description="SQLAlchemy URL for the primary database",
    )
    test_database_url: str = Field(
        default="sqlite://",
        alias="TEST_DATABASE_URL",
        description="SQLAlchemy URL used while running tests",
    )
    sqlite_busy_timeout_s: float = Field(
        default=30.0,
        alias="SQLITE_BUSY_TIMEOUT_S",
        description="How long a SQLite writer waits for another writer's lock",
    )
    sql_echo: bool = Field(default=False, alias="SQL_ECHO")

    # Email
    email_provider: Literal["console", "resend"] = Field(
        default="console",
        alias="EMAIL_PROVIDER",
        description="Email provider name",
    )
    resend_api_key: Optional[str] = Field(
        default=None,
        alias="RESEND_API_KEY",
        description="API key for Resend provider (optional)",
    )
    email_from_address: str = Field(
        default="appointments@glamup.app",
        alias="EMAIL_FROM_ADDRESS",
    )
    email_from_name: str = Field(default=BRAND_NAME, alias="EMAIL_FROM_NAME")
    notifications_enabled: bool = Field(default=True, alias="NOTIFICATIONS_ENABLED")

    # Scheduling
    default_currency: str = Field(default=DEFAULT_CURRENCY, alias="DEFAULT_CURRENCY")
    appointment_id_length: int = Field(
        default=10,
        alias="APPOINTMENT_ID_LENGTH",
        description="Length of the shared appointment id carried by both mirrors",
    )

    # Monitoring
    slow_operation_threshold_s: float = Field(
        default=1.0,
        alias="SLOW_OPERATION_THRESHOLD_S",
        description="Service operations slower than this are logged as warnings",
    )

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("appointment_id_length")
    @classmethod
    def _validate_appointment_id_length(cls, value: int) -> int:
        if value < 6 or value > 32:
            raise ValueError("appointment_id_length must be between 6 and 32")
        return value

    @field_validator("default_currency")
    @classmethod
    def _normalize_currency(cls, value: str) -> str:
        return value.strip().upper()

    def get_database_url(self) -> str:
        """Return the database URL for the current mode."""
        if self.is_testing or is_running_tests():
            return self.test_database_url
        return self.database_url


settings = Settings()
