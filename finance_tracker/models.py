"""Domain records for categories, expenses, budgets and receipts.

Rows coming back from either store backend are plain dictionaries; the
``from_row`` constructors here turn them into frozen dataclasses.  Expense and
budget rows may carry their category embedded under the ``categories`` key,
which is resolved into ``category: Optional[Category]``.  A missing category
stays ``None`` here; the "Uncategorized" label is only applied when a name is
displayed or grouped (see :attr:`Expense.category_name`).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

UNCATEGORIZED = "Uncategorized"
FALLBACK_PAYMENT_METHOD = "Other"

PAYMENT_METHODS: List[str] = [
    "Cash",
    "Credit Card",
    "Debit Card",
    "Digital Wallet",
    "Bank Transfer",
]
DEFAULT_PAYMENT_METHOD = "Credit Card"

# Offered in the description picker after the user's own recent entries
DEFAULT_DESCRIPTIONS: List[str] = [
    "Groceries",
    "Lunch",
    "Dinner",
    "Coffee",
    "Gas",
    "Transportation",
    "Shopping",
    "Entertainment",
]

DEFAULT_CATEGORIES: List[Dict[str, str]] = [
    {"name": "Food & Dining", "color": "#FF6B6B"},
    {"name": "Transportation", "color": "#4ECDC4"},
    {"name": "Shopping", "color": "#45B7D1"},
    {"name": "Entertainment", "color": "#96CEB4"},
    {"name": "Bills & Utilities", "color": "#FFEEAD"},
    {"name": "Health", "color": "#D4A5A5"},
    {"name": "Education", "color": "#9B9B9B"},
    {"name": "Other", "color": "#A8E6CF"},
]

# Chart palette keyed by category name
CATEGORY_COLORS: Dict[str, str] = {
    "Food & Dining": "#E63946",
    "Transportation": "#1D3557",
    "Shopping": "#2A9D8F",
    "Entertainment": "#6A4C93",
    "Bills & Utilities": "#F4A261",
    "Health": "#9B2226",
    "Education": "#023E8A",
    "Other": "#264653",
}
DEFAULT_CHART_COLOR = "#495057"


class BudgetPeriod(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class BudgetStatus(str, Enum):
    ON_TRACK = "on_track"
    WARNING = "warning"
    EXCEEDED = "exceeded"


def parse_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        # str() keeps floats like 0.1 from turning into binary noise
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    ts = pd.Timestamp(value)
    if pd.isna(ts):
        return None
    return ts.to_pydatetime()


def parse_date(value: Any) -> Optional[date]:
    ts = parse_timestamp(value)
    return ts.date() if ts is not None else None


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    color: str
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Category":
        return cls(
            id=str(row["id"]),
            name=row["name"],
            color=row.get("color") or DEFAULT_CHART_COLOR,
            user_id=row.get("user_id"),
            created_at=parse_timestamp(row.get("created_at")),
        )


def _embedded_category(row: Mapping[str, Any]) -> Optional[Category]:
    embedded = row.get("categories")
    if not embedded or not embedded.get("id"):
        return None
    return Category.from_row(embedded)


@dataclass(frozen=True)
class Expense:
    id: str
    amount: Decimal
    date: datetime
    payment_method: str
    user_id: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[str] = None
    category: Optional[Category] = None
    created_at: Optional[datetime] = None

    @property
    def category_name(self) -> str:
        return self.category.name if self.category is not None else UNCATEGORIZED

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Expense":
        category = _embedded_category(row)
        return cls(
            id=str(row["id"]),
            amount=parse_decimal(row["amount"]),
            date=parse_timestamp(row["date"]),
            payment_method=row.get("payment_method") or FALLBACK_PAYMENT_METHOD,
            user_id=row.get("user_id"),
            description=row.get("description"),
            category_id=row.get("category_id"),
            category=category,
            created_at=parse_timestamp(row.get("created_at")),
        )


@dataclass(frozen=True)
class Budget:
    id: str
    amount: Decimal
    category_id: str
    month: date
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    user_id: Optional[str] = None
    category: Optional[Category] = None
    created_at: Optional[datetime] = None

    @property
    def category_name(self) -> str:
        return self.category.name if self.category is not None else UNCATEGORIZED

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Budget":
        return cls(
            id=str(row["id"]),
            amount=parse_decimal(row["amount"]),
            category_id=row["category_id"],
            month=parse_date(row["month"]),
            period=BudgetPeriod(row.get("period") or BudgetPeriod.MONTHLY.value),
            user_id=row.get("user_id"),
            category=_embedded_category(row),
            created_at=parse_timestamp(row.get("created_at")),
        )


@dataclass(frozen=True)
class Receipt:
    id: str
    expense_id: str
    url: str
    uploaded_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Receipt":
        return cls(
            id=str(row["id"]),
            expense_id=row["expense_id"],
            url=row["url"],
            uploaded_at=parse_timestamp(row.get("uploaded_at")),
        )


@dataclass(frozen=True)
class BudgetProgress:
    """A budget joined with its spend for the active period."""

    budget: Budget
    spent: Decimal
    percentage: float
    status: BudgetStatus
    window_start: date
    window_end: date

    @property
    def remaining(self) -> Decimal:
        return self.budget.amount - self.spent
