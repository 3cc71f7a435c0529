"""
Budget v1 pages.

- GET  /projects/<id>/budget/setup : current settings, expense categories, allocations
- POST /projects/<id>/budget/setup : save total budget + allocations (replaces all)
- GET  /projects/<id>/budget       : category rollup (spent / committed / available)

The rollup is only served once setup is completed; before that the client
gets 409 with setup_required so it can redirect to the setup form.
"""

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from ...audit import log_action, serialize_model
from ...budget import setup_budget
from ...extensions import db
from ...models import Category, Project
from ...rollup import BudgetRollup
from ...security import project_access_required, project_edit_required
from ...utils import parse_optional_int
from .. import ledger, request_data

budget_bp = Blueprint("budget", __name__, url_prefix="/projects")

MAX_RECENT_TRANSACTIONS = 50


@budget_bp.route("/<int:project_id>/budget/setup")
@login_required
@project_access_required
def get_setup(project_id):
    project = db.get_or_404(Project, project_id)
    repository = ledger()

    settings = repository.budget_settings(project.id)
    allocations = {
        str(budget.category_id): budget.budgeted_amount for budget in repository.category_budgets(project.id)
    }
    return jsonify(
        {
            "settings": settings.to_dict() if settings else None,
            "categories": [c.to_dict() for c in repository.categories_for_project(project.id, Category.TYPE_EXPENSE)],
            "allocations": allocations,
        }
    )


@budget_bp.route("/<int:project_id>/budget/setup", methods=["POST"])
@login_required
@project_edit_required
def save_setup(project_id):
    project = db.get_or_404(Project, project_id)
    data = request_data()
    repository = ledger()

    before = repository.budget_settings(project.id)
    before_snapshot = serialize_model(before) if before else None

    custom_categories = data.get("custom_categories") or []
    if not isinstance(custom_categories, list):
        return jsonify({"error": "custom_categories must be a list."}), 400
    allocations = data.get("allocations") or {}
    if not isinstance(allocations, dict):
        return jsonify({"error": "allocations must be an object."}), 400

    summary = setup_budget(repository, project, data.get("total_budget"), allocations, custom_categories)

    settings = repository.budget_settings(project.id)
    log_action(settings, "SETUP", before=before_snapshot, after=serialize_model(settings))
    db.session.commit()

    current_app.logger.info("Budget setup completed for project %s", project.id)
    return jsonify({"message": "Budget saved.", "summary": summary})


@budget_bp.route("/<int:project_id>/budget")
@login_required
@project_access_required
def rollup(project_id):
    project = db.get_or_404(Project, project_id)
    repository = ledger()

    settings = repository.budget_settings(project.id)
    if settings is None or not settings.setup_completed:
        return jsonify({"error": "Budget setup has not been completed.", "setup_required": True}), 409

    recent = parse_optional_int(request.args.get("recent")) or 0
    recent = max(0, min(recent, MAX_RECENT_TRANSACTIONS))

    result = BudgetRollup(repository).compute(
        project.id,
        category_id=parse_optional_int(request.args.get("category_id")),
        recent_transactions=recent,
    )
    result["settings"] = settings.to_dict()
    return jsonify(result)
