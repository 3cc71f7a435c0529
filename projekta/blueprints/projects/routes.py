"""
projekta/blueprints/projects/routes.py

Projects, membership and the per-project dashboard.

Includes:
- Project list (admin: all projects, others: their memberships)
- Project creation (creator becomes owner)
- Dashboard: budget summary, budget alerts, PO counters, cash position
- Member management (owners only)
"""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from ...audit import log_action, serialize_model
from ...errors import ValidationError
from ...extensions import db
from ...ledger import summarize
from ...models import Project, ProjectMember, User
from ...purchase_orders import PurchaseOrderService
from ...rollup import BudgetRollup
from ...security import project_access_required, project_owner_required
from ...status import NEAR_LIMIT, OVER_BUDGET
from ...utils import clean_str, positive_money
from .. import ledger, request_data

projects_bp = Blueprint("projects", __name__, url_prefix="/projects")


def _budget_alerts(rows):
    """Alert lines for over-budget and near-limit categories."""
    alerts = []
    for row in rows:
        if row["status"] == OVER_BUDGET:
            alerts.append(
                {
                    "level": OVER_BUDGET,
                    "category_id": row["category_id"],
                    "category_name": row["category_name"],
                    "percentage_used": row["percentage_used"],
                    "message": f"{row['category_name']} is over budget",
                }
            )
        elif row["status"] == NEAR_LIMIT:
            alerts.append(
                {
                    "level": NEAR_LIMIT,
                    "category_id": row["category_id"],
                    "category_name": row["category_name"],
                    "percentage_used": row["percentage_used"],
                    "message": f"{row['category_name']} is close to its budget limit",
                }
            )
    # over-budget first, then by how far along the category is
    alerts.sort(key=lambda a: (a["level"] != OVER_BUDGET, -a["percentage_used"]))
    return alerts


def _owner_count(project_id: int) -> int:
    return ProjectMember.query.filter_by(project_id=project_id, role=ProjectMember.ROLE_OWNER).count()


# ---------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------
@projects_bp.route("/")
@login_required
def list_projects():
    if current_user.is_admin:
        projects = Project.query.order_by(Project.created_at.desc()).all()
    else:
        projects = (
            Project.query.join(ProjectMember, ProjectMember.project_id == Project.id)
            .filter(ProjectMember.user_id == current_user.id)
            .order_by(Project.created_at.desc())
            .all()
        )
    return jsonify([p.to_dict() for p in projects])


@projects_bp.route("/", methods=["POST"])
@login_required
def create_project():
    data = request_data()
    name = clean_str(data.get("name"))
    if not name:
        return jsonify({"error": "Project name is required.", "fields": {"name": "required"}}), 400

    # optional, but when given it must be a positive amount
    contract_value = None
    if clean_str(data.get("contract_value")) is not None:
        contract_value = positive_money(data.get("contract_value"))
        if contract_value is None:
            raise ValidationError(
                "Contract value must be greater than zero.", {"contract_value": "must be positive"}
            )

    project = Project(
        name=name,
        address=clean_str(data.get("address")),
        description=clean_str(data.get("description")),
        contract_value=contract_value,
        created_by_id=current_user.id,
    )
    db.session.add(project)
    db.session.flush()

    db.session.add(ProjectMember(project_id=project.id, user_id=current_user.id, role=ProjectMember.ROLE_OWNER))
    log_action(project, "CREATE", before=None, after=serialize_model(project))
    db.session.commit()

    return jsonify({"message": "Project created.", "project": project.to_dict()}), 201


@projects_bp.route("/<int:project_id>")
@login_required
@project_access_required
def get_project(project_id: int):
    project = db.get_or_404(Project, project_id)
    data = project.to_dict()
    data["members"] = [m.to_dict() for m in project.members]
    data["budget_settings"] = project.budget_settings.to_dict() if project.budget_settings else None
    data["can_edit"] = current_user.can_edit_project(project_id)
    return jsonify(data)


# ---------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------
@projects_bp.route("/<int:project_id>/dashboard")
@login_required
@project_access_required
def dashboard(project_id: int):
    project = db.get_or_404(Project, project_id)
    repository = ledger()

    budget = None
    alerts = []
    settings = project.budget_settings
    if settings and settings.setup_completed:
        rollup = BudgetRollup(repository).compute(project_id)
        budget = rollup["summary"]
        alerts = _budget_alerts(rollup["categories"])

    orders = repository.purchase_orders(project_id)

    return jsonify(
        {
            "project": project.to_dict(),
            "budget": budget,
            "alerts": alerts,
            "purchase_orders": PurchaseOrderService.counts(orders),
            "cash_flow": summarize(repository.cash_flow_entries(project_id)),
        }
    )


# ---------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------
@projects_bp.route("/<int:project_id>/members", methods=["POST"])
@login_required
@project_owner_required
def add_member(project_id: int):
    project = db.get_or_404(Project, project_id)
    data = request_data()

    username = clean_str(data.get("username"))
    role = clean_str(data.get("role")) or ProjectMember.ROLE_VIEWER
    if role not in ProjectMember.ROLES:
        return jsonify({"error": "Invalid role.", "fields": {"role": "invalid"}}), 400

    user = User.query.filter_by(username=username).first() if username else None
    if not user:
        return jsonify({"error": "User not found.", "fields": {"username": "unknown"}}), 404

    membership = ProjectMember.query.filter_by(project_id=project.id, user_id=user.id).first()
    if membership:
        if membership.role == ProjectMember.ROLE_OWNER and role != ProjectMember.ROLE_OWNER:
            if _owner_count(project.id) <= 1:
                return jsonify({"error": "A project needs at least one owner."}), 409
        before = serialize_model(membership)
        membership.role = role
        db.session.flush()
        log_action(membership, "UPDATE", before=before, after=serialize_model(membership))
        status_code = 200
    else:
        membership = ProjectMember(project_id=project.id, user_id=user.id, role=role)
        db.session.add(membership)
        db.session.flush()
        log_action(membership, "CREATE", before=None, after=serialize_model(membership))
        status_code = 201

    db.session.commit()
    return jsonify({"member": membership.to_dict()}), status_code


@projects_bp.route("/<int:project_id>/members/<int:user_id>/delete", methods=["POST"])
@login_required
@project_owner_required
def remove_member(project_id: int, user_id: int):
    membership = ProjectMember.query.filter_by(project_id=project_id, user_id=user_id).first_or_404()

    if membership.role == ProjectMember.ROLE_OWNER and _owner_count(project_id) <= 1:
        return jsonify({"error": "A project needs at least one owner."}), 409

    before = serialize_model(membership)
    db.session.delete(membership)
    db.session.flush()
    log_action(membership, "DELETE", before=before, after=None)
    db.session.commit()

    return jsonify({"message": "Member removed."})
