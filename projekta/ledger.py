"""
projekta/ledger.py

Cash-flow ledger vocabularies and validation.

Two generations share one table:
- v1 (budget pages): income, expense, addition_income, addition_expense;
  statuses paid, pending, awaiting_approval.
- v2 (financials pages): income, expense; statuses paid, pending.

"addition_*" types are post-contract variations and roll up with their
base type (expense-type / income-type sets below).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable

from .errors import ValidationError
from .models import CashFlowEntry
from .utils import clean_str, money, parse_date, parse_optional_int, require_positive_amount

V1 = "v1"
V2 = "v2"

TYPE_INCOME = "income"
TYPE_EXPENSE = "expense"
TYPE_ADDITION_INCOME = "addition_income"
TYPE_ADDITION_EXPENSE = "addition_expense"

STATUS_PAID = "paid"
STATUS_PENDING = "pending"
STATUS_AWAITING_APPROVAL = "awaiting_approval"

ENTRY_TYPES = {
    V1: (TYPE_INCOME, TYPE_EXPENSE, TYPE_ADDITION_INCOME, TYPE_ADDITION_EXPENSE),
    V2: (TYPE_INCOME, TYPE_EXPENSE),
}

ENTRY_STATUSES = {
    V1: (STATUS_PAID, STATUS_PENDING, STATUS_AWAITING_APPROVAL),
    V2: (STATUS_PAID, STATUS_PENDING),
}

EXPENSE_TYPES = (TYPE_EXPENSE, TYPE_ADDITION_EXPENSE)
INCOME_TYPES = (TYPE_INCOME, TYPE_ADDITION_INCOME)


def validate_entry(data: Dict[str, Any], version: str = V1, *, partial: bool = False) -> Dict[str, Any]:
    """
    Validate and clean ledger input.

    partial=True is used by edits: only keys present in data are validated
    and returned.
    """
    cleaned: Dict[str, Any] = {}
    errors: Dict[str, str] = {}

    if not partial or "type" in data:
        entry_type = clean_str(data.get("type"))
        if entry_type not in ENTRY_TYPES[version]:
            errors["type"] = f"must be one of {', '.join(ENTRY_TYPES[version])}"
        cleaned["type"] = entry_type

    if not partial or "status" in data:
        status = clean_str(data.get("status")) or STATUS_PAID
        if status not in ENTRY_STATUSES[version]:
            errors["status"] = f"must be one of {', '.join(ENTRY_STATUSES[version])}"
        cleaned["status"] = status

    if not partial or "amount" in data:
        try:
            cleaned["amount"] = require_positive_amount(data.get("amount"))
        except ValidationError as exc:
            errors.update(exc.fields)

    if not partial or "description" in data:
        description = clean_str(data.get("description"))
        if not description:
            errors["description"] = "required"
        cleaned["description"] = description

    if not partial or "category_id" in data:
        category_id = parse_optional_int(data.get("category_id"))
        # v2 transactions always belong to a contract category
        if version == V2 and category_id is None:
            errors["category_id"] = "required"
        cleaned["category_id"] = category_id

    if not partial or "date" in data:
        try:
            cleaned["date"] = parse_date(data.get("date"), "date") or date.today()
        except ValidationError as exc:
            errors.update(exc.fields)

    if not partial or "notes" in data:
        cleaned["notes"] = clean_str(data.get("notes"))

    if errors:
        raise ValidationError("Please fill in all required fields.", errors)
    return cleaned


def summarize(entries: Iterable) -> Dict[str, Decimal]:
    """Cash position of a set of entries: paid movements vs pending ones."""
    income = Decimal("0.00")
    expenses = Decimal("0.00")
    pending_income = Decimal("0.00")
    pending_expenses = Decimal("0.00")

    for entry in entries:
        amount = money(entry.amount)
        paid = entry.status == STATUS_PAID
        if entry.type in INCOME_TYPES:
            if paid:
                income += amount
            else:
                pending_income += amount
        elif entry.type in EXPENSE_TYPES:
            if paid:
                expenses += amount
            else:
                pending_expenses += amount

    return {
        "income": income,
        "expenses": expenses,
        "balance": income - expenses,
        "pending_income": pending_income,
        "pending_expenses": pending_expenses,
    }


def _check_category(repository, project_id: int, category_id: int | None) -> None:
    if category_id is None:
        return
    category = repository.get_category(category_id)
    if not category or not category.is_visible_to(project_id):
        raise ValidationError("Invalid category for this project.", {"category_id": "invalid"})


def create_entry(repository, project_id: int, data: Dict[str, Any], version: str = V1, *,
                 created_by_id: int | None = None):
    """Validate and add a manual ledger entry (flushed, not committed)."""
    cleaned = validate_entry(data, version)
    _check_category(repository, project_id, cleaned["category_id"])

    entry = repository.add(CashFlowEntry(project_id=project_id, created_by_id=created_by_id, **cleaned))
    repository.flush()
    return entry


def update_entry(repository, entry, data: Dict[str, Any], version: str = V1):
    cleaned = validate_entry(data, version, partial=True)
    if "category_id" in cleaned:
        _check_category(repository, entry.project_id, cleaned["category_id"])
    for field, value in cleaned.items():
        setattr(entry, field, value)
    repository.flush()
    return entry
