"""Tests for settings loading and logging setup."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from finance_tracker.config import (
    BACKEND_SQLITE,
    BACKEND_SUPABASE,
    DEFAULT_DB_PATH,
    ConfigError,
    configure_logging,
    load_settings,
)
from finance_tracker.db import SqliteStore
from finance_tracker.store import create_store


def test_supabase_backend_requires_credentials() -> None:
    with pytest.raises(ConfigError, match="SUPABASE_URL, SUPABASE_ANON_KEY"):
        load_settings({})
    with pytest.raises(ConfigError, match="SUPABASE_ANON_KEY"):
        load_settings({"SUPABASE_URL": "https://demo.supabase.co"})


def test_supabase_settings() -> None:
    settings = load_settings({"SUPABASE_URL": "https://demo.supabase.co", "SUPABASE_ANON_KEY": "anon"})
    assert settings.backend == BACKEND_SUPABASE
    assert settings.supabase_url == "https://demo.supabase.co"
    assert settings.supabase_key == "anon"
    assert settings.db_path == DEFAULT_DB_PATH
    assert settings.log_level == "INFO"


def test_sqlite_backend_needs_no_credentials(tmp_path) -> None:
    settings = load_settings(
        {
            "FINANCE_TRACKER_BACKEND": "SQLite",
            "FINANCE_TRACKER_DB_PATH": str(tmp_path / "nested" / "app.db"),
            "FINANCE_TRACKER_LOG_LEVEL": "debug",
        }
    )
    assert settings.backend == BACKEND_SQLITE
    assert settings.db_path == (tmp_path / "nested" / "app.db").resolve()
    assert settings.log_level == "DEBUG"

    store = create_store(settings)
    assert isinstance(store, SqliteStore)
    assert Path(settings.db_path).exists()


def test_rejected_supabase_url_is_a_config_error() -> None:
    settings = load_settings({"SUPABASE_URL": "demo.supabase.co", "SUPABASE_ANON_KEY": "anon"})
    with pytest.raises(ConfigError, match="Invalid Supabase settings"):
        create_store(settings)


def test_unknown_backend_and_log_level() -> None:
    with pytest.raises(ConfigError, match="FINANCE_TRACKER_BACKEND"):
        load_settings({"FINANCE_TRACKER_BACKEND": "mysql"})
    with pytest.raises(ConfigError, match="FINANCE_TRACKER_LOG_LEVEL"):
        load_settings({"FINANCE_TRACKER_BACKEND": "sqlite", "FINANCE_TRACKER_LOG_LEVEL": "chatty"})


def test_load_settings_reads_process_environment(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("FINANCE_TRACKER_BACKEND", "sqlite")
    monkeypatch.setenv("FINANCE_TRACKER_DB_PATH", str(tmp_path / "env.db"))
    settings = load_settings(use_dotenv=False)
    assert settings.backend == BACKEND_SQLITE
    assert settings.db_path == (tmp_path / "env.db").resolve()


def test_configure_logging_installs_one_handler() -> None:
    logger = logging.getLogger("finance_tracker")
    before = len(logger.handlers)
    configure_logging("WARNING")
    configure_logging("DEBUG")
    assert len(logger.handlers) <= before + 1
    assert logger.level == logging.DEBUG
