"""
Environment variable loading for MegaRank.

- Loads .env from project root when available.
- Typed getters fall back to the default (with a warning) on unparsable values.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from backend_megarank.megarank_logging import get_logger

logger = get_logger(__name__)

# Project root: config is backend_megarank/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"


def load_megarank_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides real env."""
    if _ENV_PATH.is_file():
        load_dotenv(_ENV_PATH, override=False)


def env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("config_invalid_int", name=name, value=raw, default=default)
        return default


def env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("config_invalid_float", name=name, value=raw, default=default)
        return default


def env_factor(name: str, default: float) -> float:
    """Multiplier factor; values below 1.0 would lower a score, so they fall back to default."""
    value = env_float(name, default)
    if value < 1.0:
        logger.warning("config_invalid_factor", name=name, value=value, default=default)
        return default
    return value


def env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    """Comma-separated list, lowercased. Empty or unset returns default."""
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    return tuple(part.strip().lower() for part in raw.split(",") if part.strip())


def get_database_url() -> str:
    """Return DATABASE_URL if set; else SQLite from MEGARANK_DB_PATH or megarank.db."""
    url = env_str("DATABASE_URL")
    if url:
        return url
    path = env_str("MEGARANK_DB_PATH") or "megarank.db"
    return f"sqlite:///{path}"
