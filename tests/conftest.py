from __future__ import annotations

import pytest

from finance_tracker import actions
from finance_tracker.app_state import AppState
from finance_tracker.db import SqliteStore


@pytest.fixture
def store(tmp_path):
    db = SqliteStore(tmp_path / "finance.db")
    db.init_db()
    return db


@pytest.fixture
def state(store):
    """AppState signed in as a fresh local user."""
    app_state = AppState(store=store)
    result = actions.sign_up(app_state, "alice@example.com", "secret123")
    assert result.ok, result.error
    return app_state
