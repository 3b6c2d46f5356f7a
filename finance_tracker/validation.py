"""Client-side validation for the expense, budget and category forms.

Each validator returns a cleaned payload ready for the store or raises
:class:`ValidationError` carrying one message per offending field.  Nothing
is sent to the store when validation fails.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from .models import PAYMENT_METHODS, BudgetPeriod, parse_decimal, parse_timestamp

_AMOUNT_PATTERN = re.compile(r"^\d+(\.\d{0,2})?$")
_COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")


class ValidationError(ValueError):
    """Raised when form input fails validation."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{field}: {message}" for field, message in self.errors.items()))


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _validate_amount(value: Any, errors: Dict[str, str]) -> Optional[Decimal]:
    if value is None or (isinstance(value, str) and not value.strip()):
        errors["amount"] = "Amount is required"
        return None
    try:
        amount = parse_decimal(value)
    except ValueError:
        errors["amount"] = "Amount must be a number"
        return None
    if not amount.is_finite():
        errors["amount"] = "Amount must be a number"
        return None
    if amount <= 0:
        errors["amount"] = "Amount must be positive"
        return None
    if not _AMOUNT_PATTERN.match(format(amount.normalize(), "f")):
        errors["amount"] = "Amount can only have up to 2 decimal places"
        return None
    return amount.quantize(Decimal("0.01"))


def validate_expense(data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate the add/edit expense form.

    Required: amount (> 0, at most two decimals), date, description,
    category and a payment method from :data:`PAYMENT_METHODS`.
    """
    errors: Dict[str, str] = {}
    amount = _validate_amount(data.get("amount"), errors)

    when = data.get("date")
    expense_date: Optional[datetime] = None
    if when is None or when == "":
        errors["date"] = "Date is required"
    else:
        try:
            expense_date = parse_timestamp(when)
        except ValueError:
            errors["date"] = "Date is invalid"

    description = _clean_text(data.get("description"))
    if description is None:
        errors["description"] = "Description is required"

    category_id = _clean_text(data.get("category_id"))
    if category_id is None:
        errors["category_id"] = "Category is required"

    payment_method = _clean_text(data.get("payment_method"))
    if payment_method is None:
        errors["payment_method"] = "Payment method is required"
    elif payment_method not in PAYMENT_METHODS:
        errors["payment_method"] = f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}"

    if errors:
        raise ValidationError(errors)
    return {
        "amount": amount,
        "date": expense_date,
        "description": description,
        "category_id": category_id,
        "payment_method": payment_method,
    }


def validate_budget(data: Dict[str, Any], *, today: Optional[date] = None) -> Dict[str, Any]:
    """Validate the add/edit budget form.

    The month anchor defaults to the first day of ``today``'s month.
    """
    errors: Dict[str, str] = {}
    amount = _validate_amount(data.get("amount"), errors)

    category_id = _clean_text(data.get("category_id"))
    if category_id is None:
        errors["category_id"] = "Category is required"

    raw_period = _clean_text(data.get("period")) or BudgetPeriod.MONTHLY.value
    try:
        period = BudgetPeriod(raw_period.lower())
    except ValueError:
        errors["period"] = "Period must be monthly or yearly"
        period = None

    anchor = data.get("month") or (today or date.today())
    try:
        anchor_ts = parse_timestamp(anchor)
    except ValueError:
        anchor_ts = None
    if anchor_ts is None:
        errors["month"] = "Month is invalid"
        month = None
    else:
        month = anchor_ts.date().replace(day=1)

    if errors:
        raise ValidationError(errors)
    return {
        "amount": amount,
        "category_id": category_id,
        "period": period,
        "month": month,
    }


def validate_category(data: Dict[str, Any], *, existing_names: Optional[set] = None) -> Dict[str, Any]:
    """Validate the category form.

    ``existing_names`` holds the caller's other category names; the store
    enforces uniqueness as well, this only gives an earlier field message.
    """
    errors: Dict[str, str] = {}
    name = _clean_text(data.get("name"))
    if name is None:
        errors["name"] = "Name is required"
    elif existing_names and name.lower() in {n.lower() for n in existing_names}:
        errors["name"] = "A category with this name already exists"

    color = _clean_text(data.get("color"))
    if color is None:
        errors["color"] = "Color is required"
    elif not _COLOR_PATTERN.match(color):
        errors["color"] = "Color must be a hex value like #FF6B6B"

    if errors:
        raise ValidationError(errors)
    return {"name": name, "color": color.upper()}
