"""
Utility functions shared across the app. This includes:
- parse_decimal / parse_optional_int / parse_date: tolerant parsing of user input.
- clean_str: strip strings, empty -> None.
- require_positive_amount / positive_money: the "amount > 0" rule, applied after rounding to cents.
- percent_of: safe percentage with a zero-denominator guard.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .errors import ValidationError


def parse_decimal(value) -> Decimal | None:
    """Parse decimal from user input (accepts comma or dot)."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    raw = str(value).strip().replace(",", ".")
    if raw == "":
        return None
    try:
        parsed = Decimal(raw)
    except (InvalidOperation, ValueError):
        return None
    if not parsed.is_finite():
        return None
    return parsed


def parse_optional_int(value) -> int | None:
    """Parse optional int from form/query/JSON."""
    if value is None or isinstance(value, bool):
        return None
    raw = str(value).strip()
    if raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def parse_date(value, field: str) -> date | None:
    """Parse an ISO date (YYYY-MM-DD). Empty -> None, garbage -> ValidationError."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError("Invalid date format. Use YYYY-MM-DD.", {field: "invalid date"})


def clean_str(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def require_positive_amount(value, field: str = "amount") -> Decimal:
    amount = parse_decimal(value)
    if amount is None:
        raise ValidationError("Amount is required.", {field: "required"})
    # checked after rounding: "0.004" is stored as 0.00
    amount = money(amount)
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero.", {field: "must be positive"})
    return amount


def money(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def percent_of(part, whole) -> Decimal:
    """part / whole * 100, quantized to 2 places; 0 when whole is 0."""
    whole_dec = Decimal(str(whole or 0))
    if whole_dec == 0:
        return Decimal("0.00")
    pct = Decimal(str(part or 0)) / whole_dec * Decimal("100")
    return pct.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def positive_money(value) -> Decimal | None:
    """Parsed amount rounded to cents, or None when missing or not above zero once rounded."""
    amount = parse_decimal(value)
    if amount is None:
        return None
    amount = money(amount)
    return amount if amount > 0 else None
