"""CSV and PDF exports of a filtered expense list.

The caller fetches and range-filters the expenses; nothing here talks to the
store.  Both exports share the same column set:
``Date, Description, Amount, Category, Payment Method``.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence, Union

import pandas as pd
from fpdf import FPDF

from .aggregation import category_totals, expenses_frame, from_cents
from .models import Expense

CSV_COLUMNS = ["Date", "Description", "Amount", "Category", "Payment Method"]
DATE_FORMAT = "%m/%d/%Y"

REPORT_TITLE = "Expense Report"
DESCRIPTION_LIMIT = 30

# Page geometry in millimetres (A4 portrait)
PAGE_MARGIN_X = 20
PAGE_TOP_Y = 20
PAGE_BOTTOM_Y = 270
LINE_HEIGHT = 10
COLUMN_WIDTHS = [30, 60, 25, 40, 35]


@dataclass(frozen=True)
class ReportSummary:
    start: date
    end: date
    total: Decimal
    count: int
    category_totals: pd.DataFrame


def _format_date(value: Union[date, datetime, str]) -> str:
    if isinstance(value, (date, datetime)):
        return value.strftime(DATE_FORMAT)
    return pd.Timestamp(value).strftime(DATE_FORMAT)


def format_amount(amount: Decimal) -> str:
    return f"{Decimal(amount):.2f}"


def truncate_description(text: Optional[str], limit: int = DESCRIPTION_LIMIT) -> str:
    """Shorten ``text`` to ``limit`` characters, ending in an ellipsis."""
    text = text or ""
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


def export_rows(expenses: Sequence[Expense]) -> pd.DataFrame:
    """The flat export table, every value already formatted as text."""
    frame = expenses_frame(expenses)
    return pd.DataFrame(
        {
            "Date": frame["Date"].map(_format_date),
            "Description": frame["Description"],
            "Amount": frame["Amount"].map(format_amount),
            "Category": frame["Category"],
            "Payment Method": frame["Payment Method"],
        },
        columns=CSV_COLUMNS,
    )


def expenses_to_csv(expenses: Sequence[Expense]) -> str:
    """Render expenses as CSV text with a header row.

    Fields containing commas, quotes or line breaks are quoted and embedded
    quotes doubled.
    """
    return export_rows(expenses).to_csv(index=False, lineterminator="\n")


def parse_expense_csv(text: str) -> pd.DataFrame:
    """Read an exported CSV back, keeping every value as a string."""
    return pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False)


def build_report(
    expenses: Sequence[Expense],
    start: Union[date, datetime, str],
    end: Union[date, datetime, str],
) -> ReportSummary:
    frame = expenses_frame(expenses)
    return ReportSummary(
        start=pd.Timestamp(start).date(),
        end=pd.Timestamp(end).date(),
        total=from_cents(frame["Cents"].sum()),
        count=len(frame),
        category_totals=category_totals(frame, sort=True),
    )


def report_filename(kind: str, today: Optional[date] = None) -> str:
    stamp = (today or date.today()).isoformat()
    if kind == "csv":
        return f"expenses_{stamp}.csv"
    if kind == "pdf":
        return f"expense_report_{stamp}.pdf"
    raise ValueError(f"Unknown export kind '{kind}'")


def _latin1(text: str) -> str:
    # Core PDF fonts only cover Latin-1
    return text.encode("latin-1", "replace").decode("latin-1")


class _ReportWriter:
    """Places text lines top to bottom, starting a new page past the bottom."""

    def __init__(self) -> None:
        self.pdf = FPDF(orientation="P", unit="mm", format="A4")
        self.pdf.set_auto_page_break(auto=False)
        self.pdf.add_page()
        self.y = PAGE_TOP_Y

    def font(self, size: int, style: str = "") -> None:
        self.pdf.set_font("Helvetica", style=style, size=size)

    def ensure_room(self) -> None:
        if self.y > PAGE_BOTTOM_Y:
            self.pdf.add_page()
            self.y = PAGE_TOP_Y

    def line(self, text: str, x: float = PAGE_MARGIN_X) -> None:
        self.ensure_room()
        self.pdf.text(x, self.y, _latin1(text))
        self.y += LINE_HEIGHT

    def centered(self, text: str) -> None:
        text = _latin1(text)
        x = (self.pdf.w - self.pdf.get_string_width(text)) / 2
        self.pdf.text(x, self.y, text)
        self.y += LINE_HEIGHT

    def row(self, cells: Sequence[str]) -> None:
        self.ensure_room()
        x = PAGE_MARGIN_X
        for cell, width in zip(cells, COLUMN_WIDTHS):
            if cell:
                self.pdf.text(x, self.y, _latin1(cell))
            x += width
        self.y += LINE_HEIGHT


def render_report_pdf(
    expenses: Sequence[Expense],
    start: Union[date, datetime, str],
    end: Union[date, datetime, str],
) -> FPDF:
    """Lay out the report and return the document object."""
    summary = build_report(expenses, start, end)
    rows = export_rows(expenses)
    writer = _ReportWriter()

    writer.font(20)
    writer.centered(REPORT_TITLE)

    writer.font(12)
    writer.line(f"Date Range: {_format_date(summary.start)} - {_format_date(summary.end)}")

    writer.font(14)
    writer.line("Summary")
    writer.font(12)
    writer.line(f"Total Expenses: ${format_amount(summary.total)}")
    writer.line(f"Number of Transactions: {summary.count}")

    writer.line("Category Breakdown:")
    for category, amount in summary.category_totals.itertuples(index=False):
        writer.line(f"{category}: ${format_amount(amount)}", x=PAGE_MARGIN_X + 10)

    writer.y += LINE_HEIGHT
    writer.line("Detailed Expenses:")
    writer.font(10, style="B")
    writer.row(CSV_COLUMNS)
    writer.font(10)
    for record in rows.itertuples(index=False):
        date_text, description, amount, category, method = record
        writer.row([date_text, truncate_description(description), f"${amount}", category, method])
    return writer.pdf


def expenses_to_pdf(
    expenses: Sequence[Expense],
    start: Union[date, datetime, str],
    end: Union[date, datetime, str],
) -> bytes:
    """Render the paginated expense report as PDF bytes."""
    return bytes(render_report_pdf(expenses, start, end).output())
