"""Hosted backend: Supabase (PostgREST + Auth) implementation of the store.

Row-level security on the server restricts every table to the signed-in
user, so the owner filters added here only mirror what the database already
enforces.  Receipts carry no ``user_id`` and rely on the server policy alone.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import httpx
from supabase import AuthError as SupabaseAuthError
from supabase import Client, PostgrestAPIError, SupabaseException, create_client

from .config import ConfigError
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

_OWNED_TABLES = ("categories", "expenses", "budgets")


def _serialize(value: Any) -> Any:
    # Naive timestamps are local wall-clock times
    if isinstance(value, datetime) and value.tzinfo is None:
        value = value.astimezone()
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    return serialize_value(value)


def _select_clause(table: str) -> str:
    if table in CATEGORY_EMBED_TABLES:
        return "*, categories(*)"
    return "*"


class SupabaseStore(ExpenseStore):
    """Expense store talking to a Supabase project."""

    def __init__(self, url: str, key: str, client: Optional[Client] = None):
        if client is None:
            try:
                client = create_client(url, key)
            except SupabaseException as exc:
                raise ConfigError(f"Invalid Supabase settings: {exc}") from exc
        self.client = client
        self.session: Optional[Session] = None

    def _execute(self, action: str, table: str, query) -> List[Dict[str, Any]]:
        try:
            response = query.execute()
        except PostgrestAPIError as exc:
            raise StoreError(f"Failed to {action} {table}: {exc.message}") from exc
        except httpx.HTTPError as exc:
            raise StoreError(f"Failed to {action} {table}: {exc}") from exc
        return list(response.data or [])

    def _apply_filters(self, query, filters: Sequence[Filter]):
        for item in filters:
            value = _serialize(item.value)
            if item.op == "eq" and value is None:
                query = query.is_(item.column, "null")
            elif item.op == "eq":
                query = query.eq(item.column, value)
            elif item.op == "gte":
                query = query.gte(item.column, value)
            elif item.op == "lte":
                query = query.lte(item.column, value)
            elif item.op == "in":
                query = query.in_(item.column, value)
        return query

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
        if any(item.op == "in" and not item.value for item in filters):
            return []
        query = self.client.table(table).select(_select_clause(table))
        if table in _OWNED_TABLES:
            query = query.eq("user_id", owner_id)
        query = self._apply_filters(query, filters)
        if order_by:
            query = query.order(order_by, desc=descending)
        logger.debug("select %s owner=%s filters=%s", table, owner_id, filters)
        return self._execute("load", table, query)

    def insert(self, table: str, rows: Sequence[Dict[str, Any]], *, owner_id: str) -> List[Dict[str, Any]]:
        check_table(table)
        if not rows:
            return []
        payload = []
        for row in rows:
            prepared = {column: _serialize(value) for column, value in row.items()}
            if table in _OWNED_TABLES:
                prepared.setdefault("user_id", owner_id)
            payload.append(prepared)
        stored = self._execute("insert into", table, self.client.table(table).insert(payload))
        logger.info("Inserted %d row(s) into %s", len(stored), table)
        return stored

    def update(self, table: str, row_id: str, values: Dict[str, Any], *, owner_id: str) -> Dict[str, Any]:
        check_table(table)
        check_update_values(values)
        payload = {column: _serialize(value) for column, value in values.items()}
        query = self.client.table(table).update(payload).eq("id", row_id)
        if table in _OWNED_TABLES:
            query = query.eq("user_id", owner_id)
        stored = self._execute("update", table, query)
        if not stored:
            raise StoreError(f"No {table} row found with id {row_id}")
        logger.info("Updated %s row %s", table, row_id)
        return stored[0]

    def delete(self, table: str, ids: Sequence[str], *, owner_id: str) -> int:
        check_table(table)
        ids = list(ids)
        if not ids:
            return 0
        query = self.client.table(table).delete().in_("id", ids)
        if table in _OWNED_TABLES:
            query = query.eq("user_id", owner_id)
        deleted = len(self._execute("delete from", table, query))
        logger.info("Deleted %d row(s) from %s", deleted, table)
        return deleted

    def _session_from(self, response, email: str) -> Session:
        user = getattr(response, "user", None)
        if user is None:
            raise AuthError("No user returned by the auth service")
        session = getattr(response, "session", None)
        token = session.access_token if session is not None else None
        self.session = Session(user_id=str(user.id), email=user.email or email, access_token=token)
        return self.session

    def sign_up(self, email: str, password: str) -> Session:
        try:
            response = self.client.auth.sign_up({"email": email, "password": password})
        except SupabaseAuthError as exc:
            raise AuthError(exc.message) from exc
        except httpx.HTTPError as exc:
            raise StoreError(f"Failed to sign up: {exc}") from exc
        return self._session_from(response, email)

    def sign_in(self, email: str, password: str) -> Session:
        try:
            response = self.client.auth.sign_in_with_password({"email": email, "password": password})
        except SupabaseAuthError as exc:
            raise AuthError(exc.message) from exc
        except httpx.HTTPError as exc:
            raise StoreError(f"Failed to sign in: {exc}") from exc
        return self._session_from(response, email)

    def sign_out(self) -> None:
        try:
            self.client.auth.sign_out()
        except (SupabaseAuthError, httpx.HTTPError) as exc:
            raise StoreError(f"Failed to sign out: {exc}") from exc
        finally:
            self.session = None
