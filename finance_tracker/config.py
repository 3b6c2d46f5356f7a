"""Configuration management for the finance tracker.

This module centralizes configuration values read from the environment
(optionally seeded from a ``.env`` file) and sets up logging for the app.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

# Base project root - assumes this file is in finance_tracker/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

DATA_DIR = _PROJECT_ROOT / "data"
DEFAULT_DB_PATH = DATA_DIR / "finance.db"

BACKEND_SUPABASE = "supabase"
BACKEND_SQLITE = "sqlite"
BACKENDS = (BACKEND_SUPABASE, BACKEND_SQLITE)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class Settings:
    backend: str
    supabase_url: Optional[str]
    supabase_key: Optional[str]
    db_path: Path
    log_level: str = "INFO"


def load_settings(environ: Optional[Mapping[str, str]] = None, *, use_dotenv: bool = True) -> Settings:
    """Read settings from ``environ`` (defaults to ``os.environ``).

    The hosted backend needs both ``SUPABASE_URL`` and ``SUPABASE_ANON_KEY``;
    without them the application must not start, so a ``ConfigError`` is
    raised instead of returning partial settings.
    """
    if environ is None:
        if use_dotenv:
            load_dotenv(_PROJECT_ROOT / ".env")
        environ = os.environ

    backend = (environ.get("FINANCE_TRACKER_BACKEND") or BACKEND_SUPABASE).strip().lower()
    if backend not in BACKENDS:
        raise ConfigError(
            f"Unknown FINANCE_TRACKER_BACKEND '{backend}', expected one of: {', '.join(BACKENDS)}"
        )

    url = (environ.get("SUPABASE_URL") or "").strip() or None
    key = (environ.get("SUPABASE_ANON_KEY") or "").strip() or None
    if backend == BACKEND_SUPABASE:
        missing = [name for name, value in (("SUPABASE_URL", url), ("SUPABASE_ANON_KEY", key)) if not value]
        if missing:
            raise ConfigError(f"Missing Supabase environment variables: {', '.join(missing)}")

    db_path = Path(environ.get("FINANCE_TRACKER_DB_PATH") or DEFAULT_DB_PATH).expanduser().resolve()
    log_level = (environ.get("FINANCE_TRACKER_LOG_LEVEL") or "INFO").strip().upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigError(f"Invalid FINANCE_TRACKER_LOG_LEVEL '{log_level}'")

    return Settings(
        backend=backend,
        supabase_url=url,
        supabase_key=key,
        db_path=db_path,
        log_level=log_level,
    )


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the package logger."""
    logger = logging.getLogger("finance_tracker")
    logger.setLevel(level)
    if not any(getattr(handler, "_finance_tracker", False) for handler in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._finance_tracker = True  # type: ignore[attr-defined]
        logger.addHandler(handler)


def ensure_data_directories(db_path: Path) -> None:
    """Create the parent directory of the SQLite file if it doesn't exist."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
