"""Dashboard view: headline metrics, spending trend and category split."""

from __future__ import annotations

import calendar
from datetime import date
from typing import Optional, Tuple

import streamlit as st

from . import actions
from .app_state import AppState
from .formatting import format_currency
from .visualization import create_category_pie_chart, create_daily_trend_chart


def current_month_range(today: Optional[date] = None) -> Tuple[date, date]:
    today = today or date.today()
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def render_dashboard(state: AppState, start: date, end: date) -> None:
    result = actions.load_dashboard(state, start, end)
    if not result.ok:
        st.error(result.error)
        return
    stats = result.data

    categories = actions.load_categories(state)
    colors = {c.name: c.color for c in categories.data} if categories.ok else None

    col1, col2, col3 = st.columns(3)
    col1.metric("💵 Total Spent", format_currency(stats.total))
    col2.metric("📈 Most Spent On", stats.top_category or "N/A")
    col3.metric("📊 Daily Average", format_currency(stats.daily_average))

    chart_col, pie_col = st.columns(2)
    with chart_col:
        st.plotly_chart(create_daily_trend_chart(stats.daily_totals), use_container_width=True)
    with pie_col:
        st.plotly_chart(create_category_pie_chart(stats.category_totals, colors=colors), use_container_width=True)

    if stats.expense_count == 0:
        st.info("No expenses recorded for this period yet.")
