"""Bundle generator configuration using environment variables."""
import logging
import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _optional_int_env(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


class Settings:
    """Generator settings loaded from environment variables."""

    # Interface language, consumed by the name matcher's script tie-break
    LANGUAGE: str = os.getenv("BUNDLEGEN_LANGUAGE", "en")

    # Generation defaults
    DEFAULT_BUDGET: str = os.getenv("BUNDLEGEN_DEFAULT_BUDGET", "normal")
    DEFAULT_ITEM_COUNT: int = _int_env("BUNDLEGEN_DEFAULT_ITEM_COUNT", 12)
    MAX_ITEM_COUNT: int = _int_env("BUNDLEGEN_MAX_ITEM_COUNT", 60)

    # Optional fixed seed for reproducible runs
    SEED: Optional[int] = _optional_int_env("BUNDLEGEN_SEED")

    # Logging
    LOG_LEVEL: str = os.getenv("BUNDLEGEN_LOG_LEVEL", "INFO")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Apply the configured log level to the package logger."""
    settings = settings or get_settings()
    level = getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO)
    logging.getLogger("bundlegen").setLevel(level)
