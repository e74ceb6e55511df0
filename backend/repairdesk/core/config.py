"""Application configuration utilities."""

from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    LOG_LEVEL: str = "INFO"
    TZ: str = "UTC"
    PRIORITIZATION_API_KEY: str = ""
    DEFAULT_REORDER_THRESHOLD: int = 3
    SMS_MAX_LENGTH: int = 160
    REMINDER_DEDUPLICATION: bool = False


@lru_cache
def get_settings() -> Settings:
    return Settings(
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        TZ=os.getenv("TZ", "UTC"),
        PRIORITIZATION_API_KEY=os.getenv("PRIORITIZATION_API_KEY", ""),
        DEFAULT_REORDER_THRESHOLD=int(os.getenv("DEFAULT_REORDER_THRESHOLD", "3")),
        SMS_MAX_LENGTH=int(os.getenv("SMS_MAX_LENGTH", "160")),
        REMINDER_DEDUPLICATION=_env_bool("REMINDER_DEDUPLICATION"),
    )


settings = get_settings()
