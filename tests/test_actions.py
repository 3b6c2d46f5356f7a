"""Tests for finance_tracker.actions against the local SQLite store."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from finance_tracker import actions
from finance_tracker.app_state import AppState
from finance_tracker.models import DEFAULT_CATEGORIES, UNCATEGORIZED, BudgetStatus
from finance_tracker.store import AuthError, Session, StoreError


class FailingStore:
    """Store double whose data calls all fail and record that they were made."""

    def __init__(self):
        self.calls = []

    def _fail(self, name):
        self.calls.append(name)
        raise StoreError("connection refused")

    def select(self, table, **kwargs):
        self._fail("select")

    def insert(self, table, rows, **kwargs):
        self._fail("insert")

    def update(self, table, row_id, values, **kwargs):
        self._fail("update")

    def delete(self, table, ids, **kwargs):
        self._fail("delete")

    def sign_in(self, email, password):
        self._fail("sign_in")

    def sign_up(self, email, password):
        self._fail("sign_up")

    def sign_out(self):
        self._fail("sign_out")


def _signed_in_failing_state():
    return AppState(store=FailingStore(), session=Session(user_id="u1", email="u1@example.com"))


def _category_id(state, name="Food & Dining"):
    categories = actions.load_categories(state).data
    return next(c.id for c in categories if c.name == name)


def _add(state, amount, when, category_id, description="Lunch"):
    result = actions.add_expense(
        state,
        {
            "amount": amount,
            "date": when,
            "description": description,
            "category_id": category_id,
            "payment_method": "Credit Card",
        },
    )
    assert result.ok, (result.error, result.field_errors)
    return result.data


def test_load_categories_seeds_defaults_once(state) -> None:
    first = actions.load_categories(state)
    assert first.ok
    assert sorted(c.name for c in first.data) == sorted(item["name"] for item in DEFAULT_CATEGORIES)

    second = actions.load_categories(state)
    assert [c.id for c in second.data] == [c.id for c in first.data]


def test_actions_require_sign_in(store) -> None:
    state = AppState(store=store)
    with pytest.raises(AuthError):
        actions.load_expenses(state)


def test_sign_in_and_out(store) -> None:
    state = AppState(store=store)
    assert actions.sign_up(state, "bob@example.com", "secret123").ok
    actions.sign_out(state)
    assert not state.signed_in

    bad = actions.sign_in(state, "bob@example.com", "nope-nope")
    assert not bad.ok
    assert bad.error == "Invalid login credentials"
    assert not state.signed_in

    good = actions.sign_in(state, "bob@example.com", "secret123")
    assert good.ok
    assert state.session.email == "bob@example.com"


def test_store_failure_becomes_user_message() -> None:
    state = _signed_in_failing_state()
    result = actions.load_expenses(state)
    assert not result.ok
    assert result.error == "Failed to load expenses"
    assert actions.load_dashboard(state, date(2024, 3, 1), date(2024, 3, 31)).error == "Failed to load dashboard data"


def test_store_failure_on_sign_in_is_generic() -> None:
    state = AppState(store=FailingStore())
    result = actions.sign_in(state, "a@example.com", "secret123")
    assert result.error == "Sign in failed, please try again"
    assert state.session is None


def test_invalid_expense_never_reaches_store() -> None:
    state = _signed_in_failing_state()
    result = actions.add_expense(state, {"amount": "-5", "description": ""})
    assert not result.ok
    assert set(result.field_errors) >= {"amount", "date", "description", "category_id", "payment_method"}
    assert state.store.calls == []


def test_add_update_and_delete_expense(state) -> None:
    food = _category_id(state)
    expense = _add(state, "12.5", date(2024, 3, 5), food)
    assert expense.amount == Decimal("12.50")
    assert expense.category_name == "Food & Dining"

    updated = actions.update_expense(
        state,
        expense.id,
        {
            "amount": "20.00",
            "date": date(2024, 3, 6),
            "description": "Dinner",
            "category_id": food,
            "payment_method": "Cash",
        },
    )
    assert updated.ok
    assert updated.data.description == "Dinner"
    assert updated.data.payment_method == "Cash"

    assert actions.delete_expenses(state, [expense.id]).data == 1
    assert actions.load_expenses(state).data == []


def test_load_expenses_range_and_order(state) -> None:
    food = _category_id(state)
    _add(state, "1.00", date(2024, 2, 29), food)
    _add(state, "2.00", date(2024, 3, 1), food)
    _add(state, "3.00", date(2024, 3, 31), food)

    result = actions.load_expenses(state, date(2024, 3, 1), date(2024, 3, 31))
    assert [e.amount for e in result.data] == [Decimal("3.00"), Decimal("2.00")]


def test_deleted_category_shows_as_uncategorized(state) -> None:
    created = actions.create_category(state, {"name": "Hobbies", "color": "#123abc"})
    assert created.ok
    assert created.data.color == "#123ABC"
    _add(state, "15.00", date(2024, 3, 2), created.data.id)

    assert actions.delete_category(state, created.data.id).ok
    [expense] = actions.load_expenses(state).data
    assert expense.category is None
    assert expense.category_name == UNCATEGORIZED


def test_create_category_rejects_duplicate_name(state) -> None:
    names = {c.name for c in actions.load_categories(state).data}
    result = actions.create_category(state, {"name": "food & dining", "color": "#000000"}, existing_names=names)
    assert result.field_errors == {"name": "A category with this name already exists"}


def test_budget_progress_exceeded(state) -> None:
    today = date(2024, 3, 15)
    food = _category_id(state)
    transport = _category_id(state, "Transportation")
    created = actions.create_budget(state, {"amount": "100", "category_id": food}, today=today)
    assert created.ok
    assert created.data.month == date(2024, 3, 1)

    _add(state, "70.00", date(2024, 3, 1), food)
    _add(state, "50.00", date(2024, 3, 14), food)
    _add(state, "500.00", date(2024, 3, 14), transport)
    _add(state, "80.00", date(2024, 2, 20), food)

    [progress] = actions.load_budgets(state, today=today).data
    assert progress.spent == Decimal("120.00")
    assert progress.percentage == pytest.approx(120.0)
    assert progress.status is BudgetStatus.EXCEEDED


def test_duplicate_budget_is_reported(state) -> None:
    today = date(2024, 3, 15)
    food = _category_id(state)
    assert actions.create_budget(state, {"amount": "100", "category_id": food}, today=today).ok
    again = actions.create_budget(state, {"amount": "200", "category_id": food}, today=today)
    assert again.error == "Failed to add budget"


def test_update_budget_keeps_month(state) -> None:
    today = date(2024, 3, 15)
    food = _category_id(state)
    budget = actions.create_budget(state, {"amount": "100", "category_id": food}, today=today).data

    updated = actions.update_budget(state, budget.id, {"amount": "250", "category_id": food, "period": "yearly"})
    assert updated.ok
    assert updated.data.amount == Decimal("250.00")
    assert updated.data.period.value == "yearly"
    assert updated.data.month == date(2024, 3, 1)

    assert actions.delete_budget(state, budget.id).data == 1
    assert actions.load_budgets(state, today=today).data == []


def test_receipts(state) -> None:
    expense = _add(state, "9.99", date(2024, 3, 3), _category_id(state))

    bad = actions.add_receipt(state, expense.id, "ftp://example.com/r.png")
    assert "url" in bad.field_errors

    added = actions.add_receipt(state, expense.id, " https://example.com/r.png ")
    assert added.ok
    assert added.data.url == "https://example.com/r.png"
    assert [r.id for r in actions.load_receipts(state, expense.id).data] == [added.data.id]

    assert actions.delete_receipt(state, added.data.id).data == 1
    assert actions.load_receipts(state, expense.id).data == []


def test_load_report(state) -> None:
    food = _category_id(state)
    _add(state, "10.00", date(2024, 3, 1), food)
    _add(state, "5.25", date(2024, 3, 2), food)

    result = actions.load_report(state, date(2024, 3, 1), date(2024, 3, 31))
    expenses, summary = result.data
    assert len(expenses) == 2
    assert summary.total == Decimal("15.25")
    assert summary.count == 2
    assert list(summary.category_totals["Category"]) == ["Food & Dining"]


def test_load_dashboard(state) -> None:
    food = _category_id(state)
    _add(state, "31.00", date(2024, 3, 10), food)

    stats = actions.load_dashboard(state, date(2024, 3, 1), date(2024, 3, 31)).data
    assert stats.total == Decimal("31.00")
    assert stats.daily_average == Decimal("1.00")
    assert stats.top_category == "Food & Dining"


def test_app_state_theme_toggle(store) -> None:
    state = AppState(store=store)
    assert state.theme == "light"
    assert state.toggle_theme() == "dark"
    assert state.toggle_theme() == "light"
