"""Contract for the remote store used by the finance tracker.

Two backends implement :class:`ExpenseStore`:

* :mod:`finance_tracker.supabase_store` – the hosted database and auth service
* :mod:`finance_tracker.db` – a local SQLite database with the same schema

Every method either returns rows as plain dictionaries or raises
:class:`StoreError` with a single human-readable message.  Nothing is retried
and batches are applied in one request.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from .config import BACKEND_SQLITE, Settings

TABLES = ("categories", "expenses", "budgets", "receipts")

# Tables whose rows come back with their category embedded under "categories"
CATEGORY_EMBED_TABLES = ("expenses", "budgets")

FILTER_OPS = ("eq", "gte", "lte", "in")


class StoreError(RuntimeError):
    """A store call failed (network error or rejected query)."""


class AuthError(StoreError):
    """No active session, or the credentials were rejected."""


@dataclass(frozen=True)
class Session:
    user_id: str
    email: str
    access_token: Optional[str] = None


@dataclass(frozen=True)
class Filter:
    """A single ``column <op> value`` predicate."""

    column: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in FILTER_OPS:
            raise ValueError(f"Unsupported filter op '{self.op}'")


def eq(column: str, value: Any) -> Filter:
    return Filter(column, "eq", value)


def gte(column: str, value: Any) -> Filter:
    return Filter(column, "gte", value)


def lte(column: str, value: Any) -> Filter:
    return Filter(column, "lte", value)


def in_(column: str, values: Sequence[Any]) -> Filter:
    return Filter(column, "in", list(values))


def check_table(table: str) -> None:
    if table not in TABLES:
        raise StoreError(f"Unknown table '{table}'")


def check_update_values(values: Dict[str, Any]) -> None:
    # Row identity and ownership are fixed at creation
    for column in ("id", "user_id"):
        if column in values:
            raise StoreError(f"Column '{column}' cannot be updated")
    if not values:
        raise StoreError("Nothing to update")


def serialize_value(value: Any) -> Any:
    """Convert model values into JSON/SQL friendly primitives."""
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


class ExpenseStore(ABC):
    """Authenticated CRUD over categories, expenses, budgets and receipts."""

    @abstractmethod
    def select(
        self,
        table: str,
        *,
        owner_id: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        """Return the caller's rows of ``table`` matching every filter."""

    @abstractmethod
    def insert(self, table: str, rows: Sequence[Dict[str, Any]], *, owner_id: str) -> List[Dict[str, Any]]:
        """Insert one or more rows owned by ``owner_id`` and return them as stored."""

    @abstractmethod
    def update(self, table: str, row_id: str, values: Dict[str, Any], *, owner_id: str) -> Dict[str, Any]:
        """Update a single row by id and return it."""

    @abstractmethod
    def delete(self, table: str, ids: Sequence[str], *, owner_id: str) -> int:
        """Delete rows by id and return how many were removed."""

    @abstractmethod
    def sign_up(self, email: str, password: str) -> Session:
        ...

    @abstractmethod
    def sign_in(self, email: str, password: str) -> Session:
        ...

    @abstractmethod
    def sign_out(self) -> None:
        ...


def create_store(settings: Settings) -> ExpenseStore:
    """Build the backend selected by ``settings.backend``."""
    if settings.backend == BACKEND_SQLITE:
        from .db import SqliteStore

        store = SqliteStore(settings.db_path)
        store.init_db()
        return store

    from .supabase_store import SupabaseStore

    return SupabaseStore(settings.supabase_url, settings.supabase_key)
