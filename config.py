"""
Runtime configuration read from the environment.

Values are read on every call so a running process (and the test suite) can
change them through the environment without re-importing modules.
"""

import logging
import os
from pathlib import Path

DEFAULT_PORT = 8000
DEFAULT_MAX_BROWSERS = 2
DEFAULT_SETTLE_MS = 200
DEFAULT_QUEUE_TIMEOUT_S = 30


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_database_url():
    return os.getenv("DATABASE_URL")


def get_database_name():
    return os.getenv("DATABASE_NAME")


def get_port() -> int:
    return _int_env("PORT", DEFAULT_PORT)


def get_uploads_dir() -> Path:
    """Root directory served under /uploads."""
    return Path(os.getenv("UPLOADS_DIR", "uploads")).resolve()


def get_print_base_url() -> str:
    """Base URL the headless browser loads print routes from (no trailing slash)."""
    base = os.getenv("PRINT_BASE_URL") or f"http://127.0.0.1:{get_port()}"
    return base.rstrip("/")


def get_max_browsers() -> int:
    return max(1, _int_env("MAX_BROWSERS", DEFAULT_MAX_BROWSERS))


def get_settle_ms() -> int:
    return max(0, _int_env("PRINT_SETTLE_MS", DEFAULT_SETTLE_MS))


def get_queue_timeout_s() -> int:
    """Seconds a PDF request waits for its document or a browser slot."""
    return max(0, _int_env("PRINT_QUEUE_TIMEOUT_S", DEFAULT_QUEUE_TIMEOUT_S))


def is_production() -> bool:
    return os.getenv("APP_ENV", "development").lower() == "production"


def configure_logging() -> None:
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
