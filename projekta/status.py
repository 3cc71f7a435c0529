"""
projekta/status.py

Status classification shared by every budget view.

- classify_budget(): three-tier alert state for a rollup row
  (on_budget / near_limit / over_budget).
- comprehensive_status(): display status of a purchase order, combining its
  two independent axes (payment, delivery).
- Label helpers for the PO vocabularies.

These are pure functions: no database access, recomputed on every read.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict

ON_BUDGET = "on_budget"
NEAR_LIMIT = "near_limit"
OVER_BUDGET = "over_budget"

NEAR_LIMIT_PERCENT = Decimal("85")
OVER_BUDGET_PERCENT = Decimal("100")

BUDGET_STATUS_LABELS = {
    ON_BUDGET: "On budget",
    NEAR_LIMIT: "Near limit",
    OVER_BUDGET: "Over budget",
}

BUDGET_STATUS_COLORS = {
    ON_BUDGET: "#10B981",
    NEAR_LIMIT: "#F59E0B",
    OVER_BUDGET: "#EF4444",
}

# Purchase order vocabularies
DELIVERY_PENDING = "pending"
DELIVERY_DELIVERED = "delivered"
DELIVERY_STATUSES = (DELIVERY_PENDING, DELIVERY_DELIVERED)

PAYMENT_UNPAID = "unpaid"
PAYMENT_PAID = "paid"
PAYMENT_STATUSES = (PAYMENT_UNPAID, PAYMENT_PAID)

PAYMENT_METHODS = ("bank_transfer", "check", "cash", "credit")

# Legacy single-field status, still written for older clients
PO_STATUSES = ("ordered", "partial", "received", "paid", "cancelled")

PO_STATUS_LABELS = {
    "ordered": "Ordered",
    "partial": "In progress",
    "received": "Received",
    "paid": "Paid",
    "cancelled": "Cancelled",
}

DELIVERY_STATUS_LABELS = {
    DELIVERY_PENDING: "Awaiting delivery",
    DELIVERY_DELIVERED: "Delivered",
}

PAYMENT_STATUS_LABELS = {
    PAYMENT_UNPAID: "Awaiting payment",
    PAYMENT_PAID: "Paid",
}

PAYMENT_METHOD_LABELS = {
    "bank_transfer": "Bank transfer",
    "check": "Check",
    "cash": "Cash",
    "credit": "Credit card",
}


def _dec(value) -> Decimal:
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def classify_budget(percentage_used, budgeted_amount, exposure=Decimal("0")) -> str:
    """
    Map rollup numbers to an alert tier.

    exposure is spent + committed. A category with no allocation but real
    exposure is over budget even though its percentage is 0 by formula.
    """
    pct = _dec(percentage_used)
    budgeted = _dec(budgeted_amount)

    if pct > OVER_BUDGET_PERCENT:
        return OVER_BUDGET
    if budgeted == 0 and _dec(exposure) > 0:
        return OVER_BUDGET
    if budgeted > 0 and NEAR_LIMIT_PERCENT <= pct <= OVER_BUDGET_PERCENT:
        return NEAR_LIMIT
    return ON_BUDGET


def budget_status_display(status: str) -> Dict[str, str]:
    return {
        "key": status,
        "label": BUDGET_STATUS_LABELS[status],
        "color": BUDGET_STATUS_COLORS[status],
    }


def comprehensive_status(payment_status: str, delivery_status: str) -> Dict[str, str]:
    """
    Combined PO status for display.

    Priority:
    1) paid + delivered -> completed
    2) paid + pending delivery -> paid, awaiting delivery
    3) unpaid + delivered -> delivered, awaiting payment
    4) anything else -> in progress
    """
    paid = payment_status == PAYMENT_PAID
    delivered = delivery_status == DELIVERY_DELIVERED

    if paid and delivered:
        return {"key": "completed", "label": "Completed", "color": "#10B981", "icon": "✅"}
    if paid:
        return {
            "key": "paid_awaiting_delivery",
            "label": "Paid, awaiting delivery",
            "color": "#3B82F6",
            "icon": "💰",
        }
    if delivered:
        return {
            "key": "delivered_awaiting_payment",
            "label": "Delivered, awaiting payment",
            "color": "#F59E0B",
            "icon": "📦",
        }
    return {"key": "in_progress", "label": "In progress", "color": "#F59E0B", "icon": "⏳"}


def payment_method_label(method: str | None) -> str | None:
    if not method:
        return None
    return PAYMENT_METHOD_LABELS.get(method, method)
