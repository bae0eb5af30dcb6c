"""
Configuration management for DoseKeeper
"""

from typing import Optional
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "DoseKeeper"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENV: str = "development"

    # API
    API_PREFIX: str = "/api/v1"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "sqlite:///./dosekeeper.db"
    DATABASE_ECHO: bool = False

    # Reminders
    REMINDER_POLL_SECONDS: int = 60
    DEFAULT_SNOOZE_MINUTES: int = 10
    QUIET_HOURS_START: Optional[str] = None  # "22:00"
    QUIET_HOURS_END: Optional[str] = None    # "07:00"

    # Adherence
    LATE_TAKEN_POLICY: str = "count_as_missed"  # or "count_as_taken"

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


class DoseTimingConfig:
    """Timing constants for dose classification and reminders"""

    # Per-medication defaults (minutes)
    DEFAULT_GRACE_PERIOD_MINUTES: int = 60
    DEFAULT_REMINDER_WINDOW_MINUTES: int = 15
    DEFAULT_MISSED_DOSE_CUTOFF_MINUTES: int = 180

    # Fixed "due" window before an unlogged dose turns overdue
    DUE_WINDOW_MINUTES: int = 30

    # Streak walk horizon
    STREAK_MAX_DAYS: int = 365

    # A dose that became due this recently still gets an immediate reminder
    JUST_DUE_FIRE_SECONDS: int = 60

    # Named timing profiles: grace / reminder lead / missed cutoff
    FREQUENCY_PRESETS: dict[str, dict[str, int]] = {
        "Once daily": {
            "grace_period_minutes": 120,
            "reminder_window_minutes": 30,
            "missed_dose_cutoff_minutes": 360,
        },
        "Twice daily": {
            "grace_period_minutes": 60,
            "reminder_window_minutes": 20,
            "missed_dose_cutoff_minutes": 240,
        },
        "Three times daily": {
            "grace_period_minutes": 30,
            "reminder_window_minutes": 15,
            "missed_dose_cutoff_minutes": 120,
        },
        "Four times daily": {
            "grace_period_minutes": 15,
            "reminder_window_minutes": 10,
            "missed_dose_cutoff_minutes": 60,
        },
        "With meals": {
            "grace_period_minutes": 15,
            "reminder_window_minutes": 10,
            "missed_dose_cutoff_minutes": 60,
        },
        "Before meals (fasting)": {
            "grace_period_minutes": 15,
            "reminder_window_minutes": 10,
            "missed_dose_cutoff_minutes": 60,
        },
    }


settings = get_settings()
timing_config = DoseTimingConfig()
