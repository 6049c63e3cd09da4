# booking_engine/config.py

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/booking.db"
    redis_url: Optional[str] = None

    default_timezone: str = "UTC"
    cancellation_cutoff_hours: float = 24
    min_advance_minutes: int = 0
    horizon_days: int = 90

    lock_timeout_seconds: float = 10.0
    lock_blocking_timeout_seconds: float = 5.0

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="BOOKING_",
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            return f"sqlite:///{absolute_path}"
        return url


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str | None = None) -> None:
    """Basic logging setup for processes embedding the engine."""
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("booking_engine").setLevel((level or get_settings().log_level).upper())
