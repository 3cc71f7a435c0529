"""
Purchase orders (procurement commitments) of a project.

Rules enforced:
- Supplier, category and a positive total are required.
- Delivery and payment are independent axes, moved only by the actions below.
- Marking paid writes the expense into the cash-flow ledger in the same
  transaction; undoing the payment removes it again.
- Deleting a paid PO keeps its ledger entry unless purge_payment is set.

Audit:
- CREATE / UPDATE / DELETE / MARK_PAID / UNDO_PAID / MARK_DELIVERED / UNDO_DELIVERED
"""

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from ...audit import log_action, serialize_model
from ...extensions import db
from ...models import Category, Project, PurchaseOrder
from ...purchase_orders import PurchaseOrderService
from ...security import project_access_required, project_edit_required
from ...utils import clean_str, parse_optional_int
from .. import ledger, load_project_row, request_data

purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/projects")


def _service() -> PurchaseOrderService:
    return PurchaseOrderService(ledger())


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in {"1", "true", "on", "yes"}


def _load(project_id: int, po_id: int) -> PurchaseOrder:
    return load_project_row(PurchaseOrder, po_id, project_id)


# ---------------------------------------------------------------------
# LIST / CREATE
# ---------------------------------------------------------------------
@purchase_orders_bp.route("/<int:project_id>/purchase-orders")
@login_required
@project_access_required
def list_purchase_orders(project_id):
    """
    List with optional category_id / payment_status filters.

    counts are computed over the whole project so the tab badges do not
    change with the active filter.
    """
    db.get_or_404(Project, project_id)
    service = _service()

    orders = service.list(
        project_id,
        category_id=parse_optional_int(request.args.get("category_id")),
        payment_status=clean_str(request.args.get("payment_status")),
    )
    return jsonify(
        {
            "purchase_orders": [po.to_dict() for po in orders],
            "counts": service.counts(service.list(project_id)),
        }
    )


@purchase_orders_bp.route("/<int:project_id>/purchase-orders", methods=["POST"])
@login_required
@project_edit_required
def create_purchase_order(project_id):
    project = db.get_or_404(Project, project_id)

    po = _service().create(project, request_data(), created_by_id=current_user.id)
    log_action(po, "CREATE", before=None, after=serialize_model(po))
    db.session.commit()

    return jsonify({"message": "Purchase order created.", "purchase_order": po.to_dict()}), 201


# ---------------------------------------------------------------------
# EDIT
# ---------------------------------------------------------------------
@purchase_orders_bp.route("/<int:project_id>/purchase-orders/<int:po_id>/edit")
@login_required
@project_access_required
def get_purchase_order(project_id, po_id):
    po = _load(project_id, po_id)
    categories = ledger().categories_for_project(project_id, Category.TYPE_EXPENSE)
    return jsonify({"purchase_order": po.to_dict(), "categories": [c.to_dict() for c in categories]})


@purchase_orders_bp.route("/<int:project_id>/purchase-orders/<int:po_id>/edit", methods=["POST"])
@login_required
@project_edit_required
def edit_purchase_order(project_id, po_id):
    project = db.get_or_404(Project, project_id)
    po = _load(project_id, po_id)
    before_snapshot = serialize_model(po)

    _service().update(po, project, request_data())
    log_action(po, "UPDATE", before=before_snapshot, after=serialize_model(po))
    db.session.commit()

    return jsonify({"message": "Purchase order updated.", "purchase_order": po.to_dict()})


# ---------------------------------------------------------------------
# DELIVERY
# ---------------------------------------------------------------------
@purchase_orders_bp.route("/<int:project_id>/purchase-orders/<int:po_id>/mark-delivered", methods=["POST"])
@login_required
@project_edit_required
def mark_delivered(project_id, po_id):
    po = _load(project_id, po_id)
    before_snapshot = serialize_model(po)

    _service().mark_delivered(po)
    log_action(po, "MARK_DELIVERED", before=before_snapshot, after=serialize_model(po))
    db.session.commit()

    return jsonify({"message": "Purchase order marked as delivered.", "purchase_order": po.to_dict()})


@purchase_orders_bp.route("/<int:project_id>/purchase-orders/<int:po_id>/undo-delivered", methods=["POST"])
@login_required
@project_edit_required
def undo_delivered(project_id, po_id):
    po = _load(project_id, po_id)
    before_snapshot = serialize_model(po)

    _service().undo_delivered(po)
    log_action(po, "UNDO_DELIVERED", before=before_snapshot, after=serialize_model(po))
    db.session.commit()

    return jsonify({"message": "Delivery undone.", "purchase_order": po.to_dict()})


# ---------------------------------------------------------------------
# PAYMENT
# ---------------------------------------------------------------------
@purchase_orders_bp.route("/<int:project_id>/purchase-orders/<int:po_id>/mark-paid", methods=["POST"])
@login_required
@project_edit_required
def mark_paid(project_id, po_id):
    po = _load(project_id, po_id)
    data = request_data()

    if po.is_paid:
        return jsonify({"message": "Purchase order is already paid.", "purchase_order": po.to_dict(), "entry": None})

    before_snapshot = serialize_model(po)
    entry = _service().mark_paid(
        po,
        payment_method=data.get("payment_method"),
        payment_reference=data.get("payment_reference"),
        created_by_id=current_user.id,
    )
    log_action(po, "MARK_PAID", before=before_snapshot, after=serialize_model(po))
    log_action(entry, "CREATE", before=None, after=serialize_model(entry))
    db.session.commit()

    return jsonify(
        {
            "message": "Purchase order marked as paid.",
            "purchase_order": po.to_dict(),
            "entry": entry.to_dict(),
        }
    )


@purchase_orders_bp.route("/<int:project_id>/purchase-orders/<int:po_id>/undo-paid", methods=["POST"])
@login_required
@project_edit_required
def undo_paid(project_id, po_id):
    po = _load(project_id, po_id)
    before_snapshot = serialize_model(po)

    removed = _service().undo_paid(po)
    log_action(po, "UNDO_PAID", before=before_snapshot, after=serialize_model(po))
    db.session.commit()

    return jsonify({"message": "Payment undone.", "purchase_order": po.to_dict(), "entries_removed": removed})


# ---------------------------------------------------------------------
# DELETE
# ---------------------------------------------------------------------
@purchase_orders_bp.route("/<int:project_id>/purchase-orders/<int:po_id>/delete", methods=["POST"])
@login_required
@project_edit_required
def delete_purchase_order(project_id, po_id):
    po = _load(project_id, po_id)
    purge_payment = _as_bool(request_data().get("purge_payment"))
    before_snapshot = serialize_model(po)

    removed = _service().delete(po, purge_payment=purge_payment)
    log_action(po, "DELETE", before=before_snapshot, after=None)
    db.session.commit()

    current_app.logger.info("Purchase order %s deleted from project %s", po_id, project_id)
    return jsonify({"message": "Purchase order deleted.", "entries_removed": removed})
