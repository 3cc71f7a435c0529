"""
Cash-flow ledger (budget v1 pages).

Entries: income / expense / addition_income / addition_expense with status
paid / pending / awaiting_approval. Only paid expense-type entries count as
spent in the budget rollup.

Audit:
- CREATE / UPDATE / DELETE logged
"""

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from ...audit import log_action, serialize_model
from ...extensions import db
from ...ledger import ENTRY_STATUSES, ENTRY_TYPES, V1, create_entry, summarize, update_entry
from ...models import CashFlowEntry, Project
from ...security import project_access_required, project_edit_required
from ...utils import clean_str, parse_optional_int
from .. import ledger, load_project_row, request_data

cash_flow_bp = Blueprint("cash_flow", __name__, url_prefix="/projects")


# ---------------------------------------------------------------------
# LIST
# ---------------------------------------------------------------------
@cash_flow_bp.route("/<int:project_id>/cash-flow")
@login_required
@project_access_required
def list_entries(project_id):
    """Entries newest first, optional type/status/category filters, plus the cash position."""
    db.get_or_404(Project, project_id)

    entry_type = clean_str(request.args.get("type"))
    status = clean_str(request.args.get("status"))
    if entry_type and entry_type not in ENTRY_TYPES[V1]:
        return jsonify({"error": "Invalid type filter.", "fields": {"type": "invalid"}}), 400
    if status and status not in ENTRY_STATUSES[V1]:
        return jsonify({"error": "Invalid status filter.", "fields": {"status": "invalid"}}), 400

    entries = ledger().cash_flow_entries(
        project_id,
        types=[entry_type] if entry_type else None,
        status=status,
        category_id=parse_optional_int(request.args.get("category_id")),
    )
    return jsonify({"entries": [e.to_dict() for e in entries], "summary": summarize(entries)})


# ---------------------------------------------------------------------
# CREATE
# ---------------------------------------------------------------------
@cash_flow_bp.route("/<int:project_id>/cash-flow", methods=["POST"])
@login_required
@project_edit_required
def create(project_id):
    db.get_or_404(Project, project_id)

    entry = create_entry(ledger(), project_id, request_data(), V1, created_by_id=current_user.id)
    log_action(entry, "CREATE", before=None, after=serialize_model(entry))
    db.session.commit()

    current_app.logger.info("Cash-flow entry %s added to project %s", entry.id, project_id)
    return jsonify({"message": "Entry added.", "entry": entry.to_dict()}), 201


# ---------------------------------------------------------------------
# EDIT / DELETE
# ---------------------------------------------------------------------
@cash_flow_bp.route("/<int:project_id>/cash-flow/<int:entry_id>/edit", methods=["POST"])
@login_required
@project_edit_required
def edit(project_id, entry_id):
    entry = load_project_row(CashFlowEntry, entry_id, project_id)
    before_snapshot = serialize_model(entry)

    update_entry(ledger(), entry, request_data(), V1)
    log_action(entry, "UPDATE", before=before_snapshot, after=serialize_model(entry))
    db.session.commit()

    return jsonify({"message": "Entry updated.", "entry": entry.to_dict()})


@cash_flow_bp.route("/<int:project_id>/cash-flow/<int:entry_id>/delete", methods=["POST"])
@login_required
@project_edit_required
def delete(project_id, entry_id):
    entry = load_project_row(CashFlowEntry, entry_id, project_id)
    before_snapshot = serialize_model(entry)

    db.session.delete(entry)
    db.session.flush()
    log_action(entry, "DELETE", before=before_snapshot, after=None)
    db.session.commit()

    return jsonify({"message": "Entry deleted."})
