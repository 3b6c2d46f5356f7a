"""Typed request/result operations used by the views.

Each action validates its input, issues its store request(s), and returns an
:class:`~finance_tracker.app_state.ActionResult`.  Store failures are logged
and turned into one short user-facing message; validation failures come back
as field messages and never reach the store.  Nothing is retried.

Repeated submissions are not de-duplicated: two clicks on "Add" issue two
inserts.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from .aggregation import DashboardStats, budget_progress, dashboard_stats
from .app_state import ActionResult, AppState
from .export import ReportSummary, build_report
from .models import (
    DEFAULT_CATEGORIES,
    Budget,
    BudgetProgress,
    Category,
    Expense,
    Receipt,
)
from .store import AuthError, Session, StoreError, eq, gte, in_, lte
from .validation import ValidationError, validate_budget, validate_category, validate_expense

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _store_call(failure_message: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> ActionResult[T]:
    try:
        return ActionResult.success(func(*args, **kwargs))
    except StoreError as exc:
        logger.error("%s: %s", failure_message, exc)
        return ActionResult.failure(failure_message)


def _day_start(value: date) -> datetime:
    if isinstance(value, datetime):
        value = value.date()
    return datetime.combine(value, time.min)


def _day_end(value: date) -> datetime:
    if isinstance(value, datetime):
        value = value.date()
    return datetime.combine(value, time.max)


# ----------------------------------------------------------------------
# Auth
# ----------------------------------------------------------------------
def _authenticate(state: AppState, method: Callable[[str, str], Session], email: str, password: str, label: str) -> ActionResult[Session]:
    try:
        session = method(email, password)
    except AuthError as exc:
        logger.warning("%s rejected for %s: %s", label, email, exc)
        return ActionResult.failure(str(exc))
    except StoreError as exc:
        logger.error("%s failed for %s: %s", label, email, exc)
        return ActionResult.failure(f"{label} failed, please try again")
    state.session = session
    return ActionResult.success(session)


def sign_in(state: AppState, email: str, password: str) -> ActionResult[Session]:
    return _authenticate(state, state.store.sign_in, email, password, "Sign in")


def sign_up(state: AppState, email: str, password: str) -> ActionResult[Session]:
    return _authenticate(state, state.store.sign_up, email, password, "Sign up")


def sign_out(state: AppState) -> ActionResult[None]:
    try:
        state.store.sign_out()
    except StoreError as exc:
        logger.error("Error signing out: %s", exc)
    finally:
        state.session = None
    return ActionResult.success()


# ----------------------------------------------------------------------
# Categories
# ----------------------------------------------------------------------
def _select_categories(state: AppState, owner: str) -> List[Category]:
    rows = state.store.select("categories", owner_id=owner, order_by="name")
    return [Category.from_row(row) for row in rows]


def _load_or_seed_categories(state: AppState, owner: str) -> List[Category]:
    categories = _select_categories(state, owner)
    if categories:
        return categories
    logger.info("Seeding default categories for user %s", owner)
    state.store.insert("categories", [dict(item, user_id=owner) for item in DEFAULT_CATEGORIES], owner_id=owner)
    return _select_categories(state, owner)


def load_categories(state: AppState) -> ActionResult[List[Category]]:
    """Load the user's categories, creating the defaults on first use."""
    owner = state.require_user()
    return _store_call("Failed to load categories", _load_or_seed_categories, state, owner)


def create_category(state: AppState, data: Dict[str, Any], existing_names: Optional[set] = None) -> ActionResult[Category]:
    owner = state.require_user()
    try:
        values = validate_category(data, existing_names=existing_names)
    except ValidationError as exc:
        return ActionResult.invalid(exc.errors)
    result = _store_call(
        "Failed to add category",
        state.store.insert, "categories", [dict(values, user_id=owner)], owner_id=owner,
    )
    if result.ok:
        result.data = Category.from_row(result.data[0])
    return result


def update_category(
    state: AppState,
    category_id: str,
    data: Dict[str, Any],
    existing_names: Optional[set] = None,
) -> ActionResult[Category]:
    owner = state.require_user()
    try:
        values = validate_category(data, existing_names=existing_names)
    except ValidationError as exc:
        return ActionResult.invalid(exc.errors)
    result = _store_call(
        "Failed to update category",
        state.store.update, "categories", category_id, values, owner_id=owner,
    )
    if result.ok:
        result.data = Category.from_row(result.data)
    return result


def delete_category(state: AppState, category_id: str) -> ActionResult[int]:
    """Delete a category; its expenses become uncategorized, its budgets go."""
    owner = state.require_user()
    return _store_call("Failed to delete category", state.store.delete, "categories", [category_id], owner_id=owner)


# ----------------------------------------------------------------------
# Expenses
# ----------------------------------------------------------------------
def _select_expenses(
    state: AppState,
    owner: str,
    start: Optional[date],
    end: Optional[date],
    category_ids: Optional[Sequence[str]] = None,
) -> List[Expense]:
    filters = []
    if start is not None:
        filters.append(gte("date", _day_start(start)))
    if end is not None:
        filters.append(lte("date", _day_end(end)))
    if category_ids is not None:
        filters.append(in_("category_id", category_ids))
    rows = state.store.select("expenses", owner_id=owner, filters=filters, order_by="date", descending=True)
    return [Expense.from_row(row) for row in rows]


def load_expenses(
    state: AppState,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> ActionResult[List[Expense]]:
    """Expenses in ``[start, end]`` (whole days), newest first."""
    owner = state.require_user()
    return _store_call("Failed to load expenses", _select_expenses, state, owner, start, end)


def add_expense(state: AppState, data: Dict[str, Any]) -> ActionResult[Expense]:
    owner = state.require_user()
    try:
        values = validate_expense(data)
    except ValidationError as exc:
        return ActionResult.invalid(exc.errors)
    result = _store_call(
        "Failed to add expense",
        state.store.insert, "expenses", [dict(values, user_id=owner)], owner_id=owner,
    )
    if result.ok:
        result.data = Expense.from_row(result.data[0])
    return result


def update_expense(state: AppState, expense_id: str, data: Dict[str, Any]) -> ActionResult[Expense]:
    owner = state.require_user()
    try:
        values = validate_expense(data)
    except ValidationError as exc:
        return ActionResult.invalid(exc.errors)
    result = _store_call(
        "Failed to update expense",
        state.store.update, "expenses", expense_id, values, owner_id=owner,
    )
    if result.ok:
        result.data = Expense.from_row(result.data)
    return result


def delete_expenses(state: AppState, expense_ids: Sequence[str]) -> ActionResult[int]:
    """Delete one or more expenses (and their receipts) in a single request."""
    owner = state.require_user()
    return _store_call("Failed to delete expenses", state.store.delete, "expenses", list(expense_ids), owner_id=owner)


# ----------------------------------------------------------------------
# Budgets
# ----------------------------------------------------------------------
def _select_budget_progress(state: AppState, owner: str, today: date) -> List[BudgetProgress]:
    rows = state.store.select("budgets", owner_id=owner, order_by="created_at")
    budgets = [Budget.from_row(row) for row in rows]
    if not budgets:
        return []
    # The calendar year covers both monthly and yearly windows
    expenses = _select_expenses(
        state,
        owner,
        date(today.year, 1, 1),
        date(today.year, 12, 31),
        category_ids=sorted({budget.category_id for budget in budgets}),
    )
    return budget_progress(budgets, expenses, today)


def load_budgets(state: AppState, today: Optional[date] = None) -> ActionResult[List[BudgetProgress]]:
    """Budgets with spent/percentage/status for their active period."""
    owner = state.require_user()
    return _store_call("Failed to load budgets", _select_budget_progress, state, owner, today or date.today())


def create_budget(state: AppState, data: Dict[str, Any], today: Optional[date] = None) -> ActionResult[Budget]:
    owner = state.require_user()
    try:
        values = validate_budget(data, today=today)
    except ValidationError as exc:
        return ActionResult.invalid(exc.errors)
    result = _store_call(
        "Failed to add budget",
        state.store.insert, "budgets", [dict(values, user_id=owner)], owner_id=owner,
    )
    if result.ok:
        result.data = Budget.from_row(result.data[0])
    return result


def update_budget(state: AppState, budget_id: str, data: Dict[str, Any]) -> ActionResult[Budget]:
    owner = state.require_user()
    try:
        values = validate_budget(data)
    except ValidationError as exc:
        return ActionResult.invalid(exc.errors)
    # The month anchor is part of the unique key and stays as created
    values.pop("month")
    result = _store_call(
        "Failed to update budget",
        state.store.update, "budgets", budget_id, values, owner_id=owner,
    )
    if result.ok:
        result.data = Budget.from_row(result.data)
    return result


def delete_budget(state: AppState, budget_id: str) -> ActionResult[int]:
    owner = state.require_user()
    return _store_call("Failed to delete budget", state.store.delete, "budgets", [budget_id], owner_id=owner)


# ----------------------------------------------------------------------
# Receipts
# ----------------------------------------------------------------------
def load_receipts(state: AppState, expense_id: str) -> ActionResult[List[Receipt]]:
    owner = state.require_user()
    result = _store_call(
        "Failed to load receipts",
        state.store.select, "receipts", owner_id=owner, filters=[eq("expense_id", expense_id)], order_by="uploaded_at",
    )
    if result.ok:
        result.data = [Receipt.from_row(row) for row in result.data]
    return result


def add_receipt(state: AppState, expense_id: str, url: str) -> ActionResult[Receipt]:
    owner = state.require_user()
    url = (url or "").strip()
    if not url:
        return ActionResult.invalid({"url": "Receipt URL is required"})
    if not url.lower().startswith(("http://", "https://")):
        return ActionResult.invalid({"url": "Receipt URL must start with http:// or https://"})
    result = _store_call(
        "Failed to add receipt",
        state.store.insert, "receipts", [{"expense_id": expense_id, "url": url}], owner_id=owner,
    )
    if result.ok:
        result.data = Receipt.from_row(result.data[0])
    return result


def delete_receipt(state: AppState, receipt_id: str) -> ActionResult[int]:
    owner = state.require_user()
    return _store_call("Failed to delete receipt", state.store.delete, "receipts", [receipt_id], owner_id=owner)


# ----------------------------------------------------------------------
# Summaries
# ----------------------------------------------------------------------
def load_dashboard(state: AppState, start: date, end: date) -> ActionResult[DashboardStats]:
    result = load_expenses(state, start, end)
    if not result.ok:
        return ActionResult.failure("Failed to load dashboard data")
    return ActionResult.success(dashboard_stats(result.data, start, end))


def load_report(state: AppState, start: date, end: date) -> ActionResult[Tuple[List[Expense], ReportSummary]]:
    """Expenses in range plus their summary; exports are built from these."""
    result = load_expenses(state, start, end)
    if not result.ok:
        return ActionResult.failure("Failed to load report data")
    return ActionResult.success((result.data, build_report(result.data, start, end)))
