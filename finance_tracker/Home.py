"""Main entry point for the Streamlit multi-page app.

Signed-out visitors get the sign-in view; signed-in users land on the
dashboard.  Pages in the pages/ directory appear in the sidebar.
"""

from __future__ import annotations

import sys
from pathlib import Path

import streamlit as st

# Add project root to path for imports
project_root = Path(__file__).parent.parent.resolve()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from finance_tracker.dashboard import current_month_range, render_dashboard
from finance_tracker.shared_sidebar import render_date_range, render_shared_sidebar


def main() -> None:
    st.set_page_config(page_title="Finance Tracker", page_icon="💰", layout="wide")
    state = render_shared_sidebar()

    st.header("📊 Dashboard")
    default_start, default_end = current_month_range()
    start, end = render_date_range("dashboard", default_start, default_end)
    if start is None:
        return
    render_dashboard(state, start, end)


if __name__ == "__main__":
    main()
