"""Environment-driven configuration."""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from services.side_effects import DEFAULT_WORKERS

DEFAULT_SLOT_GRANULARITY_MINUTES = 15
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass
class Settings:
    slot_granularity_minutes: int = DEFAULT_SLOT_GRANULARITY_MINUTES
    side_effect_timeout_seconds: float = 10.0
    side_effect_workers: int = DEFAULT_WORKERS
    google_api_base_url: str = "https://www.googleapis.com/calendar/v3"
    google_calendar_id: str = "primary"
    resend_api_key: Optional[str] = None
    resend_api_url: str = "https://api.resend.com/emails"
    from_email: str = "bookings@example.com"
    app_base_url: str = "http://localhost:8501"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "Settings":
        """Load settings from the environment, reading a .env file first if present."""
        load_dotenv(dotenv_path)
        granularity = _int_env("SLOT_GRANULARITY_MINUTES", DEFAULT_SLOT_GRANULARITY_MINUTES)
        if granularity < 1:
            raise ValueError("SLOT_GRANULARITY_MINUTES must be positive")
        workers = _int_env("SIDE_EFFECT_WORKERS", DEFAULT_WORKERS)
        if workers < 1:
            raise ValueError("SIDE_EFFECT_WORKERS must be positive")
        return cls(
            slot_granularity_minutes=granularity,
            side_effect_timeout_seconds=float(os.getenv("SIDE_EFFECT_TIMEOUT_SECONDS", "10")),
            side_effect_workers=workers,
            google_api_base_url=os.getenv("GOOGLE_API_BASE_URL", cls.google_api_base_url),
            google_calendar_id=os.getenv("GOOGLE_CALENDAR_ID", cls.google_calendar_id),
            resend_api_key=os.getenv("RESEND_API_KEY"),
            resend_api_url=os.getenv("RESEND_API_URL", cls.resend_api_url),
            from_email=os.getenv("FROM_EMAIL", cls.from_email),
            app_base_url=os.getenv("APP_BASE_URL", cls.app_base_url),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
