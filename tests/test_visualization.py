"""Tests for the plotly figure builders."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pandas as pd

from finance_tracker import visualization as viz
from finance_tracker.aggregation import budget_progress, category_totals, daily_totals
from finance_tracker.models import Budget, Category, Expense

FOOD = Category(id="cat-food", name="Food & Dining", color="#FF6B6B")


def _expenses():
    return [
        Expense(
            id=f"exp-{n}",
            amount=Decimal("10.00"),
            date=datetime(2024, 3, n, 12),
            payment_method="Cash",
            category_id=FOOD.id,
            category=FOOD,
        )
        for n in (1, 3)
    ]


def test_daily_trend_chart() -> None:
    daily = daily_totals(_expenses(), date(2024, 3, 1), date(2024, 3, 3))
    fig = viz.create_daily_trend_chart(daily)
    trace = fig.data[0]
    assert list(trace.x) == ["Mar 01", "Mar 02", "Mar 03"]
    assert list(trace.y) == [10.0, 0.0, 10.0]
    assert fig.layout.title.text == "Spending Trend"


def test_category_pie_chart_uses_user_colors() -> None:
    totals = category_totals(_expenses())
    fig = viz.create_category_pie_chart(totals, colors={"Food & Dining": "#123456"})
    assert list(fig.data[0].labels) == ["Food & Dining"]
    assert "#123456" in list(fig.data[0].marker.colors)


def test_category_color_map_falls_back_to_palette() -> None:
    colors = viz.category_color_map(["Shopping", "Mystery"], {"Mystery": None})
    assert colors["Shopping"] == "#2A9D8F"
    assert colors["Mystery"] == "#495057"


def test_empty_frames_give_placeholder_figures() -> None:
    empty = pd.DataFrame(columns=["Category", "Amount"])
    assert viz.create_category_pie_chart(empty).layout.title.text == "No data to display"
    assert viz.create_budget_progress_chart([]).layout.title.text == "No budgets to display"


def test_budget_progress_chart() -> None:
    budget = Budget(
        id="b1",
        amount=Decimal("15.00"),
        category_id=FOOD.id,
        month=date(2024, 3, 1),
        category=FOOD,
    )
    progress = budget_progress([budget], _expenses(), date(2024, 3, 10))
    fig = viz.create_budget_progress_chart(progress)
    assert [trace.name for trace in fig.data] == ["Budget", "Spent"]
    assert list(fig.data[1].y) == [20.0]
    assert list(fig.data[1].marker.color) == [viz.STATUS_COLORS[progress[0].status]]
