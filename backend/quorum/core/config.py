# backend/quorum/core/config.py
import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_BACKEND_ROOT = Path(__file__).resolve().parents[2]
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"}


# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = _BACKEND_ROOT / ".env"
    logger.debug("[CONFIG] Looking for .env at: %s (exists=%s)", env_path, env_path.exists())
    load_dotenv(env_path)


class Settings(BaseSettings):
    log_level: str = Field(
        default="INFO",
        description="Root log level used by configure_logging()",
    )
    slow_operation_threshold_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Service operations slower than this are logged as warnings",
    )
    max_date_range_days: int = Field(
        default=366,
        ge=1,
        description="Largest inclusive date range the service facade will aggregate over",
    )
    default_session_minutes: int = Field(
        default=120,
        ge=1,
        description="Session length used when callers do not specify one",
    )
    best_slots_limit: int = Field(
        default=10,
        ge=1,
        description="How many merged slots an overlap summary returns per bucket",
    )

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        env_prefix="QUORUM_",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        normalized = (v or "").strip().upper()
        if normalized not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {v}")
        return normalized


settings = Settings()
