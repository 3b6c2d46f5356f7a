"""Tests for the CSV and PDF exporters."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal

import pytest

from finance_tracker import export
from finance_tracker.models import UNCATEGORIZED, Category, Expense

FOOD = Category(id="cat-food", name="Food", color="#FF6B6B")


def _expense(idx, amount="12.50", description="Lunch", category=FOOD, when=datetime(2024, 3, 5, 13, 0)):
    return Expense(
        id=f"exp-{idx}",
        amount=Decimal(amount),
        date=when,
        payment_method="Credit Card",
        description=description,
        category_id=category.id if category else None,
        category=category,
    )


def test_csv_header_and_rows() -> None:
    text = export.expenses_to_csv([_expense(1), _expense(2, "3", "Bus", None, datetime(2024, 3, 6))])
    lines = text.splitlines()
    assert lines[0] == "Date,Description,Amount,Category,Payment Method"
    assert lines[1] == "03/05/2024,Lunch,12.50,Food,Credit Card"
    assert lines[2] == f"03/06/2024,Bus,3.00,{UNCATEGORIZED},Credit Card"


def test_csv_quotes_commas_quotes_and_newlines() -> None:
    description = 'Dinner, "fancy"\nwith friends'
    text = export.expenses_to_csv([_expense(1, description=description)])
    assert '"Dinner, ""fancy""\nwith friends"' in text

    parsed = export.parse_expense_csv(text)
    assert list(parsed.columns) == export.CSV_COLUMNS
    assert parsed.loc[0, "Description"] == description
    assert parsed.loc[0, "Amount"] == "12.50"


def test_csv_empty_list_has_header_only() -> None:
    assert export.expenses_to_csv([]).strip() == ",".join(export.CSV_COLUMNS)


def test_csv_round_trip_keeps_values() -> None:
    other = Category(id="cat-other", name="Other", color="#A8E6CF")
    expenses = [
        _expense(1, "1.01", "Item 1", FOOD, datetime(2024, 3, 5, 13, 0)),
        _expense(2, "2.02", "Item 2", None, datetime(2024, 3, 6, 8, 15)),
        replace(_expense(3, "3.03", "Item 3", other, datetime(2024, 3, 7, 23, 59)), payment_method="Cash"),
    ]
    parsed = export.parse_expense_csv(export.expenses_to_csv(expenses))
    assert list(parsed.columns) == ["Date", "Description", "Amount", "Category", "Payment Method"]
    assert list(parsed["Date"]) == ["03/05/2024", "03/06/2024", "03/07/2024"]
    assert list(parsed["Amount"]) == ["1.01", "2.02", "3.03"]
    assert list(parsed["Description"]) == ["Item 1", "Item 2", "Item 3"]
    assert list(parsed["Category"]) == ["Food", UNCATEGORIZED, "Other"]
    assert list(parsed["Payment Method"]) == ["Credit Card", "Credit Card", "Cash"]


def test_truncate_description() -> None:
    assert export.truncate_description("short") == "short"
    assert export.truncate_description("x" * 30) == "x" * 30
    assert export.truncate_description("y" * 31) == "y" * 27 + "..."
    assert export.truncate_description(None) == ""


def test_build_report_summary() -> None:
    other = Category(id="cat-other", name="Other", color="#A8E6CF")
    expenses = [_expense(1, "10.00"), _expense(2, "25.00", category=other), _expense(3, "5.00")]
    summary = export.build_report(expenses, date(2024, 3, 1), date(2024, 3, 31))
    assert summary.total == Decimal("40.00")
    assert summary.count == 3
    assert list(summary.category_totals["Category"]) == ["Other", "Food"]


def test_report_filename() -> None:
    today = date(2024, 3, 9)
    assert export.report_filename("csv", today) == "expenses_2024-03-09.csv"
    assert export.report_filename("pdf", today) == "expense_report_2024-03-09.pdf"
    with pytest.raises(ValueError):
        export.report_filename("xlsx", today)


def test_pdf_bytes_header() -> None:
    data = export.expenses_to_pdf([_expense(1)], date(2024, 3, 1), date(2024, 3, 31))
    assert data.startswith(b"%PDF")


def test_pdf_single_page_for_short_report() -> None:
    pdf = export.render_report_pdf([_expense(n) for n in range(5)], date(2024, 3, 1), date(2024, 3, 31))
    assert pdf.page_no() == 1


def test_pdf_paginates_long_reports() -> None:
    expenses = [_expense(n, description="A rather long description that will be cut") for n in range(60)]
    pdf = export.render_report_pdf(expenses, date(2024, 3, 1), date(2024, 3, 31))
    assert pdf.page_no() > 1


def test_pdf_handles_text_outside_latin1() -> None:
    data = export.expenses_to_pdf([_expense(1, description="Café ☕ 🍕")], "2024-03-01", "2024-03-31")
    assert data.startswith(b"%PDF")


def test_pdf_empty_report() -> None:
    pdf = export.render_report_pdf([], date(2024, 3, 1), date(2024, 3, 31))
    assert pdf.page_no() == 1
