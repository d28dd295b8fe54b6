from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Coordinator settings, read from LEASE_RUNNER_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LEASE_RUNNER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    PROJECT_NAME: str = "Lease Runner"

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    LOG_FORMAT: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    # Watchdog
    TIMEOUT_CHECK_INTERVAL_SECONDS: float = 1.0

    # Backoff: delays grow 2, 3, 4, 6, 8, 11, ... until they pass the ceiling, then bury
    BACKOFF_GROWTH: float = 1.3
    BACKOFF_MIN_DELAY_SECONDS: int = 1
    BACKOFF_MAX_DELAY_SECONDS: int = 60 * 60 * 24
    BACKOFF_JITTER: bool = False

    # In-memory broker
    BROKER_DEFAULT_TTR_SECONDS: int = 120


settings = Settings()
