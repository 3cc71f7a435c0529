"""
projekta/blueprints/financials/routes.py

Financials v2: contract items, profit overview and v2 transactions.

Routes:
- GET  /projects/<id>/financials                               overview
- GET  /projects/<id>/contract-items                           list
- POST /projects/<id>/contract-items                           add (409 on duplicate category)
- POST /projects/<id>/contract-items/<item_id>/edit            edit amount/description
- POST /projects/<id>/contract-items/<item_id>/delete          delete
- POST /projects/<id>/contract-items/assign-uncategorized      move uncategorized entries
- POST /projects/<id>/contract/setup                           setup wizard save
- GET/POST /projects/<id>/transactions                         v2 ledger (income/expense, paid/pending)
- POST /projects/<id>/transactions/<entry_id>/edit | /delete
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from ...audit import log_action, serialize_model
from ...extensions import db
from ...financials import FinancialsService
from ...ledger import ENTRY_TYPES, V2, create_entry, summarize, update_entry
from ...models import CashFlowEntry, ContractItem, Project
from ...security import project_access_required, project_edit_required
from ...utils import clean_str, parse_optional_int
from .. import ledger, load_project_row, request_data

financials_bp = Blueprint("financials", __name__, url_prefix="/projects")


def _service() -> FinancialsService:
    return FinancialsService(ledger())


# ---------------------------------------------------------------------
# Overview
# ---------------------------------------------------------------------
@financials_bp.route("/<int:project_id>/financials")
@login_required
@project_access_required
def overview(project_id: int):
    project = db.get_or_404(Project, project_id)
    result = _service().overview(project.id)
    result["project"] = project.to_dict()
    return jsonify(result)


# ---------------------------------------------------------------------
# Contract items
# ---------------------------------------------------------------------
@financials_bp.route("/<int:project_id>/contract-items")
@login_required
@project_access_required
def list_contract_items(project_id: int):
    db.get_or_404(Project, project_id)
    return jsonify([item.to_dict() for item in ledger().contract_items(project_id)])


@financials_bp.route("/<int:project_id>/contract-items", methods=["POST"])
@login_required
@project_edit_required
def add_contract_item(project_id: int):
    project = db.get_or_404(Project, project_id)

    item = _service().add_contract_item(project, request_data())
    log_action(item, "CREATE", before=None, after=serialize_model(item))
    db.session.commit()

    return jsonify({"message": "Contract item added.", "item": item.to_dict()}), 201


@financials_bp.route("/<int:project_id>/contract-items/<int:item_id>/edit", methods=["POST"])
@login_required
@project_edit_required
def edit_contract_item(project_id: int, item_id: int):
    item = load_project_row(ContractItem, item_id, project_id)
    before_snapshot = serialize_model(item)

    _service().update_contract_item(item, request_data())
    log_action(item, "UPDATE", before=before_snapshot, after=serialize_model(item))
    db.session.commit()

    return jsonify({"message": "Contract item updated.", "item": item.to_dict()})


@financials_bp.route("/<int:project_id>/contract-items/<int:item_id>/delete", methods=["POST"])
@login_required
@project_edit_required
def delete_contract_item(project_id: int, item_id: int):
    item = load_project_row(ContractItem, item_id, project_id)
    before_snapshot = serialize_model(item)

    _service().delete_contract_item(item)
    log_action(item, "DELETE", before=before_snapshot, after=None)
    db.session.commit()

    return jsonify({"message": "Contract item deleted."})


@financials_bp.route("/<int:project_id>/contract-items/assign-uncategorized", methods=["POST"])
@login_required
@project_edit_required
def assign_uncategorized(project_id: int):
    project = db.get_or_404(Project, project_id)
    repository = ledger()

    entries = repository.uncategorized_entries(project.id)
    before = {entry.id: serialize_model(entry) for entry in entries}

    moved = FinancialsService(repository).assign_uncategorized(project, request_data().get("category_id"))
    for entry in entries:
        log_action(entry, "UPDATE", before=before[entry.id], after=serialize_model(entry))
    db.session.commit()

    current_app.logger.info("Assigned %s uncategorized entries in project %s", moved, project.id)
    return jsonify({"message": f"{moved} entries assigned.", "assigned": moved})


@financials_bp.route("/<int:project_id>/contract/setup", methods=["POST"])
@login_required
@project_edit_required
def setup_contract(project_id: int):
    project = db.get_or_404(Project, project_id)
    data = request_data()

    items = data.get("items") or []
    if not isinstance(items, list):
        return jsonify({"error": "items must be a list."}), 400

    before_snapshot = serialize_model(project)
    summary = _service().setup_contract(project, data.get("contract_value"), items)
    db.session.flush()
    log_action(project, "SETUP", before=before_snapshot, after=serialize_model(project))
    db.session.commit()

    return jsonify({"message": "Contract saved.", "summary": summary})


# ---------------------------------------------------------------------
# v2 transactions
# ---------------------------------------------------------------------
@financials_bp.route("/<int:project_id>/transactions")
@login_required
@project_access_required
def list_transactions(project_id: int):
    db.get_or_404(Project, project_id)

    entry_type = clean_str(request.args.get("type"))
    if entry_type and entry_type not in ENTRY_TYPES[V2]:
        return jsonify({"error": "Invalid type filter.", "fields": {"type": "invalid"}}), 400

    entries = ledger().cash_flow_entries(
        project_id,
        types=[entry_type] if entry_type else None,
        category_id=parse_optional_int(request.args.get("category_id")),
    )
    return jsonify({"transactions": [e.to_dict() for e in entries], "summary": summarize(entries)})


@financials_bp.route("/<int:project_id>/transactions", methods=["POST"])
@login_required
@project_edit_required
def add_transaction(project_id: int):
    db.get_or_404(Project, project_id)

    entry = create_entry(ledger(), project_id, request_data(), V2, created_by_id=current_user.id)
    log_action(entry, "CREATE", before=None, after=serialize_model(entry))
    db.session.commit()

    return jsonify({"message": "Transaction added.", "transaction": entry.to_dict()}), 201


@financials_bp.route("/<int:project_id>/transactions/<int:entry_id>/edit", methods=["POST"])
@login_required
@project_edit_required
def edit_transaction(project_id: int, entry_id: int):
    entry = load_project_row(CashFlowEntry, entry_id, project_id)
    before_snapshot = serialize_model(entry)

    update_entry(ledger(), entry, request_data(), V2)
    log_action(entry, "UPDATE", before=before_snapshot, after=serialize_model(entry))
    db.session.commit()

    return jsonify({"message": "Transaction updated.", "transaction": entry.to_dict()})


@financials_bp.route("/<int:project_id>/transactions/<int:entry_id>/delete", methods=["POST"])
@login_required
@project_edit_required
def delete_transaction(project_id: int, entry_id: int):
    entry = load_project_row(CashFlowEntry, entry_id, project_id)
    before_snapshot = serialize_model(entry)

    db.session.delete(entry)
    db.session.flush()
    log_action(entry, "DELETE", before=before_snapshot, after=None)
    db.session.commit()

    return jsonify({"message": "Transaction deleted."})
