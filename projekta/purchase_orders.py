"""
projekta/purchase_orders.py

Purchase order lifecycle.

A PO moves along two independent axes:

    delivery_status: pending <-> delivered
    payment_status:  unpaid  <-> paid

Marking a PO paid writes the matching expense into the cash-flow ledger
(linked back through source_purchase_order_id); undoing the payment removes
exactly those entries. Both writes happen in the caller's session and are
committed together by the route.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from .errors import StateError, ValidationError
from .ledger import STATUS_PAID, TYPE_EXPENSE
from .models import CashFlowEntry, Category, Project, PurchaseOrder
from .repository import LedgerRepository
from .status import (
    DELIVERY_DELIVERED,
    DELIVERY_PENDING,
    DELIVERY_STATUSES,
    PAYMENT_METHODS,
    PAYMENT_PAID,
    PAYMENT_STATUSES,
    PAYMENT_UNPAID,
)
from .utils import clean_str, parse_date, parse_optional_int, require_positive_amount

logger = logging.getLogger(__name__)

LEGACY_STATUS_PAID = "paid"
LEGACY_STATUS_ORDERED = "ordered"


def _legacy_status(payment_status: str) -> str:
    return LEGACY_STATUS_PAID if payment_status == PAYMENT_PAID else LEGACY_STATUS_ORDERED


def payment_entry_description(po: PurchaseOrder) -> str:
    """Ledger description for a PO payment: supplier, description, PO number."""
    text = f"Payment for purchase order: {po.supplier_name}"
    if po.description:
        text += f" - {po.description}"
    if po.po_number:
        text += f" (PO: {po.po_number})"
    return text


class PurchaseOrderService:
    def __init__(self, repository: LedgerRepository):
        self.repository = repository

    # -----------------------------------------------------------------
    # Validation helpers
    # -----------------------------------------------------------------
    def _category_for(self, project: Project, raw_category_id) -> Category:
        category_id = parse_optional_int(raw_category_id)
        if category_id is None:
            raise ValidationError("Category is required.", {"category_id": "required"})
        category = self.repository.get_category(category_id)
        if not category or not category.is_visible_to(project.id):
            raise ValidationError("Invalid category for this project.", {"category_id": "invalid"})
        return category

    @staticmethod
    def _payment_method(raw) -> Optional[str]:
        method = clean_str(raw)
        if method and method not in PAYMENT_METHODS:
            raise ValidationError(
                "Invalid payment method.",
                {"payment_method": f"must be one of {', '.join(PAYMENT_METHODS)}"},
            )
        return method

    # -----------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------
    def list(self, project_id: int, category_id: int | None = None, payment_status: str | None = None) -> List[PurchaseOrder]:
        if payment_status and payment_status not in PAYMENT_STATUSES:
            raise ValidationError("Invalid payment status filter.", {"payment_status": "invalid"})
        return self.repository.purchase_orders(project_id, category_id=category_id, payment_status=payment_status)

    @staticmethod
    def counts(orders: List[PurchaseOrder]) -> Dict[str, Any]:
        """Badge counters for the PO list tabs."""
        unpaid = [po for po in orders if po.payment_status == PAYMENT_UNPAID]
        return {
            "all": len(orders),
            "unpaid": len(unpaid),
            "paid": len(orders) - len(unpaid),
            "awaiting_delivery": sum(1 for po in orders if po.delivery_status == DELIVERY_PENDING),
            "committed_amount": sum((po.committed_amount for po in orders), Decimal("0.00")),
        }

    # -----------------------------------------------------------------
    # Create / update
    # -----------------------------------------------------------------
    def create(self, project: Project, data: Dict[str, Any], *, created_by_id: int | None = None,
               today: date | None = None) -> PurchaseOrder:
        today = today or date.today()
        errors: Dict[str, str] = {}

        supplier_name = clean_str(data.get("supplier_name"))
        if not supplier_name:
            errors["supplier_name"] = "required"

        try:
            total_amount = require_positive_amount(data.get("total_amount"), "total_amount")
        except ValidationError as exc:
            errors.update(exc.fields)
            total_amount = None

        try:
            category = self._category_for(project, data.get("category_id"))
        except ValidationError as exc:
            errors.update(exc.fields)
            category = None

        if errors:
            raise ValidationError("Please fill in all required fields.", errors)

        delivery_status = clean_str(data.get("delivery_status")) or DELIVERY_PENDING
        if delivery_status not in DELIVERY_STATUSES:
            raise ValidationError("Invalid delivery status.", {"delivery_status": "invalid"})

        payment_status = clean_str(data.get("payment_status")) or PAYMENT_UNPAID
        if payment_status not in PAYMENT_STATUSES:
            raise ValidationError("Invalid payment status.", {"payment_status": "invalid"})

        po = PurchaseOrder(
            project_id=project.id,
            category_id=category.id,
            po_number=clean_str(data.get("po_number")),
            supplier_name=supplier_name,
            description=clean_str(data.get("description")),
            total_amount=total_amount,
            paid_amount=Decimal("0.00"),
            order_date=parse_date(data.get("order_date"), "order_date") or today,
            notes=clean_str(data.get("notes")),
            delivery_status=delivery_status,
            payment_status=payment_status,
            status=_legacy_status(payment_status),
            created_by_id=created_by_id,
        )

        if delivery_status == DELIVERY_PENDING:
            po.expected_delivery_date = parse_date(data.get("expected_delivery_date"), "expected_delivery_date")
        else:
            po.actual_delivery_date = parse_date(data.get("actual_delivery_date"), "actual_delivery_date") or today

        if payment_status == PAYMENT_PAID:
            # Recorded as already settled; no ledger entry is generated for it
            po.paid_amount = total_amount
            po.payment_date = parse_date(data.get("payment_date"), "payment_date") or today
            po.payment_method = self._payment_method(data.get("payment_method"))
            po.payment_reference = clean_str(data.get("payment_reference"))

        self.repository.add(po)
        self.repository.flush()
        logger.info("Purchase order %s created for project %s (%s)", po.id, project.id, total_amount)
        return po

    def update(self, po: PurchaseOrder, project: Project, data: Dict[str, Any]) -> PurchaseOrder:
        """Edit commercial fields. Payment and delivery move only through the lifecycle actions."""
        if "supplier_name" in data:
            supplier_name = clean_str(data.get("supplier_name"))
            if not supplier_name:
                raise ValidationError("Supplier name is required.", {"supplier_name": "required"})
            po.supplier_name = supplier_name

        if "category_id" in data:
            category_id = self._category_for(project, data.get("category_id")).id
            if category_id != po.category_id and po.is_paid:
                # the payment follows the PO into its new category
                for entry in self.repository.generated_entries(po):
                    entry.category_id = category_id
                logger.info("Paid purchase order %s moved to category %s", po.id, category_id)
            po.category_id = category_id

        if "total_amount" in data:
            total_amount = require_positive_amount(data.get("total_amount"), "total_amount")
            if po.is_paid and total_amount != po.total_amount:
                raise StateError("Undo the payment before changing the amount of a paid purchase order.")
            po.total_amount = total_amount

        for field in ("po_number", "description", "notes"):
            if field in data:
                setattr(po, field, clean_str(data.get(field)))

        if "order_date" in data:
            po.order_date = parse_date(data.get("order_date"), "order_date") or po.order_date

        if "expected_delivery_date" in data and po.delivery_status == DELIVERY_PENDING:
            po.expected_delivery_date = parse_date(data.get("expected_delivery_date"), "expected_delivery_date")

        if po.is_paid:
            if "payment_method" in data:
                po.payment_method = self._payment_method(data.get("payment_method"))
            if "payment_reference" in data:
                po.payment_reference = clean_str(data.get("payment_reference"))

        self.repository.flush()
        return po

    # -----------------------------------------------------------------
    # Delivery axis
    # -----------------------------------------------------------------
    def mark_delivered(self, po: PurchaseOrder, today: date | None = None) -> PurchaseOrder:
        po.delivery_status = DELIVERY_DELIVERED
        po.actual_delivery_date = today or date.today()
        po.expected_delivery_date = None
        self.repository.flush()
        return po

    def undo_delivered(self, po: PurchaseOrder) -> PurchaseOrder:
        po.delivery_status = DELIVERY_PENDING
        po.actual_delivery_date = None
        self.repository.flush()
        return po

    # -----------------------------------------------------------------
    # Payment axis
    # -----------------------------------------------------------------
    def mark_paid(
        self,
        po: PurchaseOrder,
        *,
        payment_method: str | None = None,
        payment_reference: str | None = None,
        created_by_id: int | None = None,
        today: date | None = None,
    ) -> Optional[CashFlowEntry]:
        """
        Pay the PO in full and record the expense.

        Returns the generated ledger entry, or None when the PO was already paid.
        """
        if po.is_paid:
            return None

        today = today or date.today()
        method = self._payment_method(payment_method)

        entry = CashFlowEntry(
            project_id=po.project_id,
            category_id=po.category_id,
            type=TYPE_EXPENSE,
            status=STATUS_PAID,
            amount=po.total_amount,
            description=payment_entry_description(po),
            date=today,
            notes=f"Generated automatically from purchase order #{po.po_number or po.id}",
            source_purchase_order_id=po.id,
            created_by_id=created_by_id,
        )
        self.repository.add(entry)

        po.payment_status = PAYMENT_PAID
        po.paid_amount = po.total_amount
        po.payment_date = today
        po.payment_method = method
        po.payment_reference = clean_str(payment_reference)
        po.status = LEGACY_STATUS_PAID

        self.repository.flush()
        logger.info("Purchase order %s marked paid, ledger entry %s created", po.id, entry.id)
        return entry

    def undo_paid(self, po: PurchaseOrder) -> int:
        """Revert a payment. Returns how many generated ledger entries were removed."""
        if not po.is_paid:
            return 0

        removed = 0
        for entry in self.repository.generated_entries(po):
            if entry.type != TYPE_EXPENSE:
                continue
            self.repository.delete(entry)
            removed += 1

        po.payment_status = PAYMENT_UNPAID
        po.paid_amount = Decimal("0.00")
        po.payment_date = None
        po.payment_method = None
        po.payment_reference = None
        po.status = LEGACY_STATUS_ORDERED

        self.repository.flush()
        logger.info("Payment of purchase order %s undone, %s ledger entries removed", po.id, removed)
        return removed

    # -----------------------------------------------------------------
    # Delete
    # -----------------------------------------------------------------
    def delete(self, po: PurchaseOrder, *, purge_payment: bool = False) -> int:
        """
        Hard delete.

        Generated ledger entries record money that really moved, so they are
        kept (unlinked) unless purge_payment is set. Returns entries removed.
        """
        entries = self.repository.generated_entries(po)
        removed = 0
        if purge_payment:
            for entry in entries:
                self.repository.delete(entry)
                removed += 1
        else:
            for entry in entries:
                entry.source_purchase_order_id = None
            if entries:
                logger.warning(
                    "Purchase order %s deleted; %s generated ledger entries kept",
                    po.id,
                    len(entries),
                )

        self.repository.delete(po)
        self.repository.flush()
        return removed
