"""
Spending/income categories of a project.

A project sees the global default categories plus its own custom ones.
Custom category names are unique within the project.
"""

from flask import Blueprint, jsonify, request
from flask_login import login_required

from ...audit import log_action, serialize_model
from ...extensions import db
from ...models import Category, Project
from ...security import project_access_required, project_edit_required
from ...utils import clean_str
from .. import ledger, request_data

categories_bp = Blueprint("categories", __name__, url_prefix="/projects")


@categories_bp.route("/<int:project_id>/categories")
@login_required
@project_access_required
def list_categories(project_id):
    db.get_or_404(Project, project_id)
    category_type = clean_str(request.args.get("type"))
    if category_type and category_type not in Category.TYPES:
        return jsonify({"error": "Invalid category type.", "fields": {"type": "invalid"}}), 400

    categories = ledger().categories_for_project(project_id, category_type)
    return jsonify([c.to_dict() for c in categories])


@categories_bp.route("/<int:project_id>/categories", methods=["POST"])
@login_required
@project_edit_required
def create_category(project_id):
    project = db.get_or_404(Project, project_id)
    data = request_data()

    name = clean_str(data.get("name"))
    category_type = clean_str(data.get("type")) or Category.TYPE_EXPENSE
    if not name:
        return jsonify({"error": "Category name is required.", "fields": {"name": "required"}}), 400
    if category_type not in Category.TYPES:
        return jsonify({"error": "Invalid category type.", "fields": {"type": "invalid"}}), 400

    if ledger().project_category_named(project.id, name):
        return jsonify({"error": "A category with this name already exists."}), 409

    category = Category(
        name=name,
        type=category_type,
        icon=clean_str(data.get("icon")) or "📦",
        color=clean_str(data.get("color")) or "#6366F1",
        project_id=project.id,
    )
    db.session.add(category)
    db.session.flush()
    log_action(category, "CREATE", before=None, after=serialize_model(category))
    db.session.commit()

    return jsonify({"message": "Category created.", "category": category.to_dict()}), 201
