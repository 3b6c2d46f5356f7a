"""Formatting utilities for currency and text display."""

from __future__ import annotations

from decimal import Decimal
from typing import Union

Number = Union[Decimal, float, int]


def format_currency(amount: Number, include_sign: bool = True) -> str:
    """Format a currency amount with thousands separators and two decimals.

    Example:
        >>> format_currency(Decimal("1234.5"))
        '$1,234.50'
        >>> format_currency(1234.56, include_sign=False)
        '1,234.56'
    """
    formatted = f"{Decimal(str(amount)):,.2f}"
    return f"${formatted}" if include_sign else formatted


def escape_dollar_for_markdown(amount: Number) -> str:
    """Format an amount for ``st.markdown`` without triggering LaTeX.

    Streamlit treats ``$...$`` as math, so the dollar sign is escaped.

    Example:
        >>> escape_dollar_for_markdown(1234.56)
        '\\\\$1,234.56'
    """
    return format_currency(amount).replace("$", "\\$")
