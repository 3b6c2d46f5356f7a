"""Local SQLite implementation of :class:`~finance_tracker.store.ExpenseStore`.

The schema mirrors the hosted database: UUID text keys, ``amount > 0``
checks, ``UNIQUE(name, user_id)`` on categories and
``UNIQUE(category_id, user_id, month)`` on budgets, ``ON DELETE SET NULL``
from expenses to categories and ``ON DELETE CASCADE`` everywhere else.
Row-level isolation is emulated by scoping every statement to the caller's
``user_id`` (receipts are scoped through their parent expense).

Amounts are stored as decimal text so they round-trip exactly.  Timestamps
are stored as naive local ISO strings, which keeps range filters a plain
string comparison.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from werkzeug.security import check_password_hash, generate_password_hash

from .config import ensure_data_directories
from .store import (
    CATEGORY_EMBED_TABLES,
    AuthError,
    ExpenseStore,
    Filter,
    Session,
    StoreError,
    check_table,
    check_update_values,
    serialize_value,
)

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;

CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS categories (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    color TEXT NOT NULL,
    user_id TEXT REFERENCES users(id) ON DELETE CASCADE,
    created_at TEXT NOT NULL,
    UNIQUE(name, user_id)
);

CREATE TABLE IF NOT EXISTS expenses (
    id TEXT PRIMARY KEY,
    amount TEXT NOT NULL CHECK (CAST(amount AS REAL) > 0),
    description TEXT,
    date TEXT NOT NULL,
    category_id TEXT REFERENCES categories(id) ON DELETE SET NULL,
    payment_method TEXT NOT NULL,
    user_id TEXT REFERENCES users(id) ON DELETE CASCADE,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS budgets (
    id TEXT PRIMARY KEY,
    amount TEXT NOT NULL CHECK (CAST(amount AS REAL) > 0),
    category_id TEXT REFERENCES categories(id) ON DELETE CASCADE,
    user_id TEXT REFERENCES users(id) ON DELETE CASCADE,
    month TEXT NOT NULL,
    period TEXT NOT NULL DEFAULT 'monthly' CHECK (period IN ('monthly', 'yearly')),
    created_at TEXT NOT NULL,
    UNIQUE(category_id, user_id, month)
);

CREATE TABLE IF NOT EXISTS receipts (
    id TEXT PRIMARY KEY,
    expense_id TEXT NOT NULL REFERENCES expenses(id) ON DELETE CASCADE,
    url TEXT NOT NULL,
    uploaded_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS ix_expenses_user_date ON expenses (user_id, date);
CREATE INDEX IF NOT EXISTS ix_expenses_category ON expenses (category_id);
CREATE INDEX IF NOT EXISTS ix_budgets_user ON budgets (user_id);
CREATE INDEX IF NOT EXISTS ix_receipts_expense ON receipts (expense_id);
"""

TABLE_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "categories": ("id", "name", "color", "user_id", "created_at"),
    "expenses": ("id", "amount", "description", "date", "category_id", "payment_method", "user_id", "created_at"),
    "budgets": ("id", "amount", "category_id", "user_id", "month", "period", "created_at"),
    "receipts": ("id", "expense_id", "url", "uploaded_at"),
}

# Column holding the creation timestamp of each table
_CREATED_COLUMN = {
    "categories": "created_at",
    "expenses": "created_at",
    "budgets": "created_at",
    "receipts": "uploaded_at",
}

_SQL_OPS = {"eq": "=", "gte": ">=", "lte": "<="}
_CATEGORY_FIELDS = ("id", "name", "color", "user_id", "created_at")

MIN_PASSWORD_LENGTH = 6


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _to_db_value(column: str, value: Any) -> Any:
    """Normalize a value for storage or comparison against ``column``."""
    if value is None:
        return None
    if column in ("date", "created_at", "uploaded_at"):
        if isinstance(value, str):
            try:
                value = datetime.fromisoformat(value)
            except ValueError as exc:
                raise StoreError(f"Invalid timestamp for {column}: {value!r}") from exc
        if isinstance(value, datetime):
            if value.tzinfo is not None:
                value = value.astimezone().replace(tzinfo=None)
            return value.isoformat()
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day).isoformat()
    if column == "month" and isinstance(value, datetime):
        return value.date().isoformat()
    return serialize_value(value)


class SqliteStore(ExpenseStore):
    """Expense store backed by a single SQLite file."""

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self.session: Optional[Session] = None

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        ensure_data_directories(self.db_path)
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
        finally:
            conn.close()

    def init_db(self) -> None:
        with self.connect() as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def _owner_clause(self, table: str, prefix: str = "t.") -> str:
        if table == "receipts":
            return f"{prefix}expense_id IN (SELECT id FROM expenses WHERE user_id = ?)"
        return f"{prefix}user_id = ?"

    def _filter_clauses(self, table: str, filters: Sequence[Filter]) -> Tuple[List[str], List[Any]]:
        where: List[str] = []
        params: List[Any] = []
        columns = TABLE_COLUMNS[table]
        for item in filters:
            if item.column not in columns:
                raise StoreError(f"Unknown column '{item.column}' on {table}")
            if item.op == "in":
                values = list(item.value)
                if not values:
                    where.append("1 = 0")
                    continue
                where.append("t.{} IN ({})".format(item.column, ",".join("?" for _ in values)))
                params.extend(_to_db_value(item.column, v) for v in values)
            elif item.op == "eq" and item.value is None:
                where.append(f"t.{item.column} IS NULL")
            else:
                where.append(f"t.{item.column} {_SQL_OPS[item.op]} ?")
                params.append(_to_db_value(item.column, item.value))
        return where, params

    def _row_to_dict(self, table: str, row: sqlite3.Row) -> Dict[str, Any]:
        data = {column: row[column] for column in TABLE_COLUMNS[table]}
        if table in CATEGORY_EMBED_TABLES:
            if row["c_id"] is None:
                data["categories"] = None
            else:
                data["categories"] = {field: row[f"c_{field}"] for field in _CATEGORY_FIELDS}
        return data

    def select(
        self,
        table: str,
        *,
        owner_id: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        check_table(table)
        where, params = self._filter_clauses(table, filters)
        where.insert(0, self._owner_clause(table))
        params.insert(0, owner_id)

        sql = "SELECT t.*"
        if table in CATEGORY_EMBED_TABLES:
            sql += ", " + ", ".join(f"c.{field} AS c_{field}" for field in _CATEGORY_FIELDS)
            sql += f" FROM {table} t LEFT JOIN categories c ON c.id = t.category_id"
        else:
            sql += f" FROM {table} t"
        sql += " WHERE " + " AND ".join(where)
        if order_by:
            if order_by not in TABLE_COLUMNS[table]:
                raise StoreError(f"Unknown column '{order_by}' on {table}")
            sql += f" ORDER BY t.{order_by} {'DESC' if descending else 'ASC'}, t.id ASC"

        logger.debug("select %s owner=%s filters=%s", table, owner_id, filters)
        try:
            with self.connect() as conn:
                rows = conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to query {table}: {exc}") from exc
        return [self._row_to_dict(table, row) for row in rows]

    def _get(self, conn: sqlite3.Connection, table: str, row_id: str) -> Dict[str, Any]:
        if table in CATEGORY_EMBED_TABLES:
            sql = (
                "SELECT t.*, " + ", ".join(f"c.{field} AS c_{field}" for field in _CATEGORY_FIELDS)
                + f" FROM {table} t LEFT JOIN categories c ON c.id = t.category_id WHERE t.id = ?"
            )
        else:
            sql = f"SELECT t.* FROM {table} t WHERE t.id = ?"
        return self._row_to_dict(table, conn.execute(sql, (row_id,)).fetchone())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def _prepare_row(self, conn: sqlite3.Connection, table: str, row: Dict[str, Any], owner_id: str) -> Dict[str, Any]:
        columns = TABLE_COLUMNS[table]
        unknown = set(row) - set(columns)
        if unknown:
            raise StoreError(f"Unknown column(s) on {table}: {', '.join(sorted(unknown))}")
        prepared = {column: _to_db_value(column, value) for column, value in row.items()}
        prepared.setdefault("id", str(uuid.uuid4()))
        prepared.setdefault(_CREATED_COLUMN[table], _now())
        if table == "expenses":
            prepared.setdefault("date", _now())
        if table == "receipts":
            parent = conn.execute(
                "SELECT 1 FROM expenses WHERE id = ? AND user_id = ?", (prepared.get("expense_id"), owner_id)
            ).fetchone()
            if parent is None:
                raise StoreError("Receipt must belong to one of your expenses")
        else:
            if prepared.get("user_id", owner_id) != owner_id:
                raise StoreError(f"New row violates row-level security policy for table \"{table}\"")
            prepared["user_id"] = owner_id
        return prepared

    def insert(self, table: str, rows: Sequence[Dict[str, Any]], *, owner_id: str) -> List[Dict[str, Any]]:
        check_table(table)
        if not rows:
            return []
        try:
            with self.connect() as conn:
                with conn:
                    inserted_ids = []
                    for row in rows:
                        prepared = self._prepare_row(conn, table, row, owner_id)
                        names = list(prepared)
                        conn.execute(
                            "INSERT INTO {} ({}) VALUES ({})".format(
                                table, ", ".join(names), ", ".join("?" for _ in names)
                            ),
                            [prepared[name] for name in names],
                        )
                        inserted_ids.append(prepared["id"])
                stored = [self._get(conn, table, row_id) for row_id in inserted_ids]
        except sqlite3.IntegrityError as exc:
            raise StoreError(f"Rejected by database: {exc}") from exc
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to insert into {table}: {exc}") from exc
        logger.info("Inserted %d row(s) into %s", len(stored), table)
        return stored

    def update(self, table: str, row_id: str, values: Dict[str, Any], *, owner_id: str) -> Dict[str, Any]:
        check_table(table)
        check_update_values(values)
        unknown = set(values) - set(TABLE_COLUMNS[table])
        if unknown:
            raise StoreError(f"Unknown column(s) on {table}: {', '.join(sorted(unknown))}")
        assignments = ", ".join(f"{column} = ?" for column in values)
        params = [_to_db_value(column, value) for column, value in values.items()]
        sql = f"UPDATE {table} SET {assignments} WHERE id = ? AND {self._owner_clause(table, prefix='')}"
        try:
            with self.connect() as conn:
                with conn:
                    cursor = conn.execute(sql, params + [row_id, owner_id])
                if cursor.rowcount == 0:
                    raise StoreError(f"No {table} row found with id {row_id}")
                stored = self._get(conn, table, row_id)
        except sqlite3.IntegrityError as exc:
            raise StoreError(f"Rejected by database: {exc}") from exc
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to update {table}: {exc}") from exc
        logger.info("Updated %s row %s", table, row_id)
        return stored

    def delete(self, table: str, ids: Sequence[str], *, owner_id: str) -> int:
        check_table(table)
        ids = list(ids)
        if not ids:
            return 0
        placeholders = ",".join("?" for _ in ids)
        sql = f"DELETE FROM {table} WHERE id IN ({placeholders}) AND {self._owner_clause(table, prefix='')}"
        try:
            with self.connect() as conn:
                with conn:
                    cursor = conn.execute(sql, ids + [owner_id])
                deleted = cursor.rowcount
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to delete from {table}: {exc}") from exc
        logger.info("Deleted %d row(s) from %s", deleted, table)
        return deleted

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------
    def sign_up(self, email: str, password: str) -> Session:
        email = (email or "").strip().lower()
        if not email or "@" not in email:
            raise AuthError("A valid email address is required")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise AuthError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters")
        user_id = str(uuid.uuid4())
        try:
            with self.connect() as conn:
                with conn:
                    conn.execute(
                        "INSERT INTO users (id, email, password_hash, created_at) VALUES (?, ?, ?, ?)",
                        (user_id, email, generate_password_hash(password), _now()),
                    )
        except sqlite3.IntegrityError as exc:
            raise AuthError("User already registered") from exc
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to create user: {exc}") from exc
        logger.info("Registered local user %s", email)
        self.session = Session(user_id=user_id, email=email)
        return self.session

    def sign_in(self, email: str, password: str) -> Session:
        email = (email or "").strip().lower()
        try:
            with self.connect() as conn:
                row = conn.execute(
                    "SELECT id, email, password_hash FROM users WHERE email = ?", (email,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to sign in: {exc}") from exc
        if row is None or not check_password_hash(row["password_hash"], password or ""):
            raise AuthError("Invalid login credentials")
        self.session = Session(user_id=row["id"], email=row["email"])
        return self.session

    def sign_out(self) -> None:
        self.session = None
