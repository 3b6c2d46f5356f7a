"""Shared sidebar and session handling for every page.

Each page calls :func:`render_shared_sidebar` first.  It builds (once per
browser session) the :class:`~finance_tracker.app_state.AppState`, shows the
sign-in view and stops the page when nobody is signed in, and otherwise
renders the account controls and returns the state for the page to pass on.
"""

from __future__ import annotations

from datetime import date
from typing import MutableMapping, Optional, Tuple

import streamlit as st

from . import actions
from .app_state import AppState
from .config import ConfigError, configure_logging, load_settings
from .store import create_store

_STATE_KEY = "app_state"
_FLASH_KEY = "flash"

DARK_THEME_CSS = """
<style>
.stApp {
    background-color: #111827;
    color: #F9FAFB;
}
.stMetric {
    background-color: #1F2937;
    padding: 1rem;
    border-radius: 0.5rem;
}
</style>
"""


def get_app_state() -> AppState:
    """Return the session's AppState, creating it on first use.

    A configuration error (missing settings, or settings the backend
    client rejects) is shown and the page stops.
    """
    state = st.session_state.get(_STATE_KEY)
    if state is None:
        try:
            settings = load_settings()
            configure_logging(settings.log_level)
            store = create_store(settings)
        except ConfigError as exc:
            st.error(f"Configuration error: {exc}")
            st.stop()
        state = AppState(store=store)
        st.session_state[_STATE_KEY] = state
    return state


def flash(message: str, session_state: Optional[MutableMapping] = None) -> None:
    """Queue a success message for the next run, so it survives ``st.rerun()``."""
    target = st.session_state if session_state is None else session_state
    target[_FLASH_KEY] = message


def pop_flash(session_state: Optional[MutableMapping] = None) -> Optional[str]:
    target = st.session_state if session_state is None else session_state
    return target.pop(_FLASH_KEY, None)


def show_flash() -> None:
    message = pop_flash()
    if message:
        st.success(message)


def render_sign_in(state: AppState) -> None:
    """Email/password form for signing in or creating an account."""
    st.title("💰 Finance Tracker")
    mode = st.radio("Account", ["Sign in", "Create account"], horizontal=True, label_visibility="collapsed")
    with st.form("auth_form"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button(mode)
    if not submitted:
        return
    if mode == "Sign in":
        result = actions.sign_in(state, email, password)
    else:
        result = actions.sign_up(state, email, password)
    if result.ok:
        st.rerun()
    else:
        st.error(result.error)


def apply_theme(state: AppState) -> None:
    if state.theme == "dark":
        st.markdown(DARK_THEME_CSS, unsafe_allow_html=True)


def render_shared_sidebar() -> AppState:
    """Render the sidebar; stops the page when nobody is signed in."""
    state = get_app_state()
    if not state.signed_in:
        render_sign_in(state)
        st.stop()

    st.sidebar.markdown(f"Signed in as **{state.session.email}**")
    theme_label = "🌙 Dark mode" if state.theme == "light" else "☀️ Light mode"
    if st.sidebar.button(theme_label, key="toggle_theme"):
        state.toggle_theme()
        st.rerun()
    if st.sidebar.button("🚪 Sign Out", key="sign_out"):
        actions.sign_out(state)
        st.rerun()
    apply_theme(state)
    show_flash()
    return state


def render_date_range(
    key: str,
    default_start: date,
    default_end: date,
    container=None,
) -> Tuple[Optional[date], Optional[date]]:
    """Start/end date inputs; returns ``(None, None)`` for an inverted range."""
    target = container or st.sidebar
    col1, col2 = target.columns(2)
    start = col1.date_input("Start Date", value=default_start, key=f"{key}_start")
    end = col2.date_input("End Date", value=default_end, key=f"{key}_end")
    if start > end:
        target.error("Start date must be on or before the end date.")
        return None, None
    return start, end
