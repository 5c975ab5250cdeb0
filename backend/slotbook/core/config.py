# backend/slotbook/core/config.py
from datetime import time
import logging
import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import pytz

from .timezone_utils import WorkingHours

logger = logging.getLogger(__name__)

_DEFAULT_SECRET_KEY = SecretStr("slotbook-dev-secret-change-me")


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: Literal["development", "staging", "production", "test"] = "development"
    is_testing: bool = False

    database_url: str = Field(
        default="sqlite:///./slotbook.db",
        description="SQLAlchemy URL of the reservation store",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Broker URL for the Celery beat sweep",
    )

    secret_key: SecretStr = Field(
        default=_DEFAULT_SECRET_KEY,
        description="Secret key used to verify bearer tokens",
    )
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 720  # 12 hours

    # Calendar
    reference_timezone: str = Field(
        default="Europe/Kyiv",
        description="IANA zone in which working hours and the sweep hour are expressed",
    )
    working_hours_start: time = Field(default=time(9, 0), description="Daily opening time")
    working_hours_end: time = Field(default=time(19, 0), description="Daily closing time")
    slot_step_minutes: int = Field(default=30, ge=1, le=240)

    # Booking rules
    hold_duration_hours: int = Field(
        default=24, ge=1, description="How long a Pending booking holds its slot"
    )
    start_grace_seconds: int = Field(
        default=60,
        ge=0,
        description="How far in the past a requested start may be before it is rejected",
    )
    idempotency_key_max_length: int = Field(default=100, ge=1, le=100)
    list_default_window_days: int = Field(default=7, ge=1, le=90)

    # Hold expiration sweep
    sweeper_enabled: bool = True
    sweep_hour: int = Field(default=3, ge=0, le=23, description="Local hour of the daily sweep")

    # Use ConfigDict instead of Config class (Pydantic V2 style)
    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("reference_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError as exc:
            raise ValueError(f"Unknown time zone: {value}") from exc
        return value

    @model_validator(mode="after")
    def _check_working_hours(self) -> "Settings":
        if self.working_hours_end <= self.working_hours_start:
            raise ValueError("WORKING_HOURS_END must be later than WORKING_HOURS_START")
        return self

    @property
    def working_hours(self) -> WorkingHours:
        return WorkingHours(
            opens_at=self.working_hours_start,
            closes_at=self.working_hours_end,
            timezone=self.reference_timezone,
        )


settings = Settings()
logger.info(
    "[CONFIG] Calendar: zone=%s hours=%s-%s step=%sm hold=%sh",
    settings.reference_timezone,
    settings.working_hours_start,
    settings.working_hours_end,
    settings.slot_step_minutes,
    settings.hold_duration_hours,
)
