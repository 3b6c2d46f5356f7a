"""Explicit application state shared by every view.

The top-level view creates one :class:`AppState` and passes it to each
component; nothing else keeps session or theme in module globals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Generic, Optional, TypeVar

from .store import AuthError, ExpenseStore, Session

T = TypeVar("T")

THEMES = ("light", "dark")


@dataclass
class AppState:
    store: ExpenseStore
    session: Optional[Session] = None
    theme: str = "light"

    @property
    def signed_in(self) -> bool:
        return self.session is not None

    def require_user(self) -> str:
        """Return the signed-in user's id or raise :class:`AuthError`."""
        if self.session is None:
            raise AuthError("You must be signed in to continue")
        return self.session.user_id

    def toggle_theme(self) -> str:
        self.theme = "dark" if self.theme == "light" else "light"
        return self.theme


@dataclass
class ActionResult(Generic[T]):
    """Outcome of one action: data, or a user-facing error."""

    data: Optional[T] = None
    error: Optional[str] = None
    field_errors: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None and not self.field_errors

    @classmethod
    def success(cls, data: Optional[T] = None) -> "ActionResult[T]":
        return cls(data=data)

    @classmethod
    def failure(cls, message: str) -> "ActionResult[T]":
        return cls(error=message)

    @classmethod
    def invalid(cls, errors: Dict[str, str]) -> "ActionResult[T]":
        return cls(field_errors=dict(errors))
