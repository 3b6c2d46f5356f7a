"""Expense aggregation for the dashboard, budgets and reports.

Every function accepts either a list of :class:`~finance_tracker.models.Expense`
records or the frame produced by :func:`expenses_frame`, so a view can build
the frame once and reuse it for several rollups.

Amounts are summed as integer cents and handed back as ``Decimal`` values
quantized to two places.  Amounts are limited to two decimals on input, so
the sums are exact.

Dates are bucketed by the expense's *local calendar date*: timezone-aware
timestamps are converted to ``tz`` (the system timezone when ``None``) before
the date is taken.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from .models import DEFAULT_DESCRIPTIONS, Budget, BudgetPeriod, BudgetProgress, BudgetStatus, Expense

CENT = Decimal("0.01")
WARNING_THRESHOLD = 80.0
EXCEEDED_THRESHOLD = 100.0

FRAME_COLUMNS = [
    "id",
    "Date",
    "Description",
    "Amount",
    "Cents",
    "Category",
    "Category ID",
    "Payment Method",
]

ExpenseData = Union[Sequence[Expense], pd.DataFrame]


@dataclass(frozen=True)
class DashboardStats:
    start: date
    end: date
    total: Decimal
    expense_count: int
    top_category: Optional[str]
    daily_average: Decimal
    category_totals: pd.DataFrame
    daily_totals: pd.DataFrame


def to_cents(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    return (Decimal(int(cents)) / 100).quantize(CENT)


def local_date(value: Union[datetime, date], tz: Optional[tzinfo] = None) -> date:
    """Calendar date of ``value`` as seen in ``tz``."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz)
        return value.date()
    return value


def _coerce_date(value: Union[date, datetime, str]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return pd.Timestamp(value).date()


def expenses_frame(expenses: Iterable[Expense], tz: Optional[tzinfo] = None) -> pd.DataFrame:
    """Flatten expenses into a DataFrame, one row per expense.

    ``Category`` holds the display label ("Uncategorized" when the expense
    has no category); ``Category ID`` keeps the raw reference for budget
    matching.
    """
    records = [
        {
            "id": expense.id,
            "Date": local_date(expense.date, tz),
            "Description": expense.description or "",
            "Amount": expense.amount,
            "Cents": to_cents(expense.amount),
            "Category": expense.category_name,
            "Category ID": expense.category_id,
            "Payment Method": expense.payment_method,
        }
        for expense in expenses
    ]
    frame = pd.DataFrame.from_records(records, columns=FRAME_COLUMNS)
    frame["Cents"] = frame["Cents"].astype("int64")
    return frame


def group_by_day(expenses: Iterable[Expense], tz: Optional[tzinfo] = None) -> Dict[date, List[Expense]]:
    """Group expenses by local calendar date, keeping their incoming order."""
    grouped: Dict[date, List[Expense]] = {}
    for expense in expenses:
        grouped.setdefault(local_date(expense.date, tz), []).append(expense)
    return grouped


def description_suggestions(
    expenses: Iterable[Expense],
    defaults: Sequence[str] = DEFAULT_DESCRIPTIONS,
) -> List[str]:
    """Recent descriptions first (as ordered in ``expenses``), then the defaults, without repeats."""
    suggestions: List[str] = []
    for text in [expense.description or "" for expense in expenses] + list(defaults):
        text = text.strip()
        if text and text not in suggestions:
            suggestions.append(text)
    return suggestions


def _as_frame(data: ExpenseData, tz: Optional[tzinfo] = None) -> pd.DataFrame:
    if isinstance(data, pd.DataFrame):
        return data
    return expenses_frame(data, tz)


def _between(frame: pd.DataFrame, start: date, end: date) -> pd.DataFrame:
    if frame.empty:
        return frame
    mask = frame["Date"].map(lambda d: start <= d <= end).astype(bool)
    return frame[mask]


def total_spent(data: ExpenseData) -> Decimal:
    """Sum of all amounts; ``0.00`` for an empty list."""
    frame = _as_frame(data)
    return from_cents(frame["Cents"].sum())


def category_totals(data: ExpenseData, sort: bool = False) -> pd.DataFrame:
    """Per-category totals as a ``[Category, Amount]`` frame.

    Groups keep first-seen order unless ``sort`` is set, in which case they
    are ordered by total descending (ties by name).
    """
    frame = _as_frame(data)
    grouped = frame.groupby("Category", sort=False)["Cents"].sum().reset_index()
    if sort and not grouped.empty:
        grouped = grouped.sort_values(["Cents", "Category"], ascending=[False, True], kind="mergesort")
    grouped["Amount"] = grouped["Cents"].map(from_cents)
    return grouped[["Category", "Amount"]].reset_index(drop=True)


def daily_totals(
    data: ExpenseData,
    start: Union[date, datetime, str],
    end: Union[date, datetime, str],
) -> pd.DataFrame:
    """One ``[Date, Amount]`` row per calendar day in ``[start, end]``.

    Days without spend are present with ``0.00`` so charts stay continuous.
    Expenses dated outside the range are ignored.
    """
    start, end = _coerce_date(start), _coerce_date(end)
    if start > end:
        raise ValueError(f"start {start} is after end {end}")
    days = pd.date_range(start, end, freq="D")
    frame = _between(_as_frame(data), start, end)
    sums = frame.groupby(pd.to_datetime(frame["Date"]))["Cents"].sum()
    buckets = sums.reindex(days, fill_value=0)
    return pd.DataFrame(
        {
            "Date": [day.date() for day in days],
            "Amount": [from_cents(cents) for cents in buckets.to_numpy()],
        }
    )


def budget_window(period: BudgetPeriod, today: Optional[date] = None) -> Tuple[date, date]:
    """Inclusive date range of the active period containing ``today``."""
    today = today or date.today()
    if BudgetPeriod(period) is BudgetPeriod.YEARLY:
        return date(today.year, 1, 1), date(today.year, 12, 31)
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def budget_spent(budget: Budget, data: ExpenseData, today: Optional[date] = None) -> Decimal:
    """Sum of same-category expenses inside the budget's active period."""
    start, end = budget_window(budget.period, today)
    frame = _between(_as_frame(data), start, end)
    matching = frame[frame["Category ID"] == budget.category_id]
    return from_cents(matching["Cents"].sum())


def budget_percentage(spent: Decimal, amount: Decimal) -> float:
    return float(Decimal(spent) / Decimal(amount) * 100)


def classify_budget(percentage: float) -> BudgetStatus:
    if percentage >= EXCEEDED_THRESHOLD:
        return BudgetStatus.EXCEEDED
    if percentage >= WARNING_THRESHOLD:
        return BudgetStatus.WARNING
    return BudgetStatus.ON_TRACK


def budget_progress(
    budgets: Iterable[Budget],
    data: ExpenseData,
    today: Optional[date] = None,
) -> List[BudgetProgress]:
    today = today or date.today()
    frame = _as_frame(data)
    progress: List[BudgetProgress] = []
    for budget in budgets:
        start, end = budget_window(budget.period, today)
        spent = budget_spent(budget, frame, today)
        percentage = budget_percentage(spent, budget.amount)
        progress.append(
            BudgetProgress(
                budget=budget,
                spent=spent,
                percentage=percentage,
                status=classify_budget(percentage),
                window_start=start,
                window_end=end,
            )
        )
    return progress


def dashboard_stats(
    data: ExpenseData,
    start: Union[date, datetime, str],
    end: Union[date, datetime, str],
) -> DashboardStats:
    """Headline numbers and chart series for the dashboard."""
    start, end = _coerce_date(start), _coerce_date(end)
    frame = _between(_as_frame(data), start, end)
    totals = category_totals(frame, sort=True)
    daily = daily_totals(frame, start, end)
    total_cents = int(frame["Cents"].sum())
    days = len(daily)
    average = (Decimal(total_cents) / 100 / days).quantize(CENT, rounding=ROUND_HALF_UP)
    return DashboardStats(
        start=start,
        end=end,
        total=from_cents(total_cents),
        expense_count=len(frame),
        top_category=totals["Category"].iloc[0] if not totals.empty else None,
        daily_average=average,
        category_totals=totals,
        daily_totals=daily,
    )
