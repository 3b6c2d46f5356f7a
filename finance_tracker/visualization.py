"""Plotly visualisation helpers for the finance tracker.

Each function takes one of the frames produced by
:mod:`finance_tracker.aggregation` and returns a
``plotly.graph_objects.Figure`` that Streamlit renders via
``st.plotly_chart``.  Amounts arrive as ``Decimal`` and are converted to
floats only here, at display time.
"""

from __future__ import annotations

from typing import Dict, Optional, Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .models import CATEGORY_COLORS, DEFAULT_CHART_COLOR, BudgetProgress, BudgetStatus

TREND_COLOR = "#3B82F6"
STATUS_COLORS: Dict[BudgetStatus, str] = {
    BudgetStatus.ON_TRACK: "#16A34A",
    BudgetStatus.WARNING: "#FACC15",
    BudgetStatus.EXCEEDED: "#DC2626",
}


def _empty_figure(title: str = "No data to display") -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title=title)
    return fig


def category_color_map(categories: Sequence[str], overrides: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Color per category: user colors first, then the default palette."""
    overrides = overrides or {}
    return {
        name: overrides.get(name) or CATEGORY_COLORS.get(name, DEFAULT_CHART_COLOR)
        for name in categories
    }


def create_daily_trend_chart(daily: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Line chart of spend per day.

    Parameters
    ----------
    daily : pandas.DataFrame
        ``[Date, Amount]`` frame from :func:`aggregation.daily_totals`.
    title : str, optional
        Chart title.
    """
    if daily.empty:
        return _empty_figure()
    df = pd.DataFrame(
        {
            "Day": pd.to_datetime(daily["Date"]).dt.strftime("%b %d"),
            "Spending": daily["Amount"].astype(float),
        }
    )
    fig = px.line(df, x="Day", y="Spending")
    fig.update_traces(line_color=TREND_COLOR, line_width=2, name="Spending", showlegend=True)
    fig.update_layout(
        title=title or "Spending Trend",
        xaxis_title="Date",
        yaxis_title="Amount ($)",
    )
    return fig


def create_category_pie_chart(
    totals: pd.DataFrame,
    title: str | None = None,
    colors: Optional[Dict[str, str]] = None,
) -> go.Figure:
    """Pie chart of the ``[Category, Amount]`` breakdown."""
    if totals.empty:
        return _empty_figure()
    df = pd.DataFrame({"Category": totals["Category"], "Amount": totals["Amount"].astype(float)})
    fig = px.pie(
        df,
        names="Category",
        values="Amount",
        color="Category",
        color_discrete_map=category_color_map(list(df["Category"]), colors),
    )
    fig.update_layout(title=title or "Category Distribution")
    return fig


def create_budget_progress_chart(progress: Sequence[BudgetProgress], title: str | None = None) -> go.Figure:
    """Grouped bars of budget vs. spent, colored by status."""
    if not progress:
        return _empty_figure("No budgets to display")
    labels = [f"{item.budget.category_name} ({item.budget.period.value})" for item in progress]
    fig = go.Figure()
    fig.add_trace(go.Bar(
        name="Budget",
        x=labels,
        y=[float(item.budget.amount) for item in progress],
        marker_color="#1f77b4",
    ))
    fig.add_trace(go.Bar(
        name="Spent",
        x=labels,
        y=[float(item.spent) for item in progress],
        marker_color=[STATUS_COLORS[item.status] for item in progress],
    ))
    fig.update_layout(title=title or "Budget vs Spent", barmode="group", xaxis_tickangle=-30)
    return fig
