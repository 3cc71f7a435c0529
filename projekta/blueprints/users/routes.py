"""
User Management (Admin Only).

Rules enforced:
- Usernames are unique.
- Passwords are stored as werkzeug hashes only.
- Admin can activate/deactivate, toggle admin, reset password.

Audit:
- CREATE / UPDATE logged
"""

from flask import Blueprint, jsonify
from flask_login import login_required

from ...audit import log_action, serialize_model
from ...extensions import db
from ...models import User
from ...security import admin_required
from .. import request_data


users_bp = Blueprint(
    "users",
    __name__,
    url_prefix="/users",
)


def _user_snapshot(user: User) -> dict:
    """Audit snapshot without the password hash."""
    snapshot = serialize_model(user)
    snapshot.pop("password_hash", None)
    return snapshot


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in {"1", "true", "on", "yes"}


# ---------------------------------------------------------------------
# LIST USERS
# ---------------------------------------------------------------------

@users_bp.route("/")
@login_required
@admin_required
def list_users():
    """Admin view: list all users."""
    users = User.query.order_by(User.username.asc()).all()
    return jsonify([u.to_dict() for u in users])


# ---------------------------------------------------------------------
# CREATE USER
# ---------------------------------------------------------------------

@users_bp.route("/", methods=["POST"])
@login_required
@admin_required
def create_user():
    """
    Create a new system user.

    Required:
    - username
    - password
    """
    data = request_data()
    username = (data.get("username") or "").strip()
    password = (data.get("password") or "").strip()

    if not username or not password:
        return jsonify({"error": "Username and password are required."}), 400

    if User.query.filter_by(username=username).first():
        return jsonify({"error": "Username already exists."}), 409

    user = User(
        username=username,
        full_name=(data.get("full_name") or "").strip() or None,
        email=(data.get("email") or "").strip() or None,
        is_admin=_as_bool(data.get("is_admin")),
        is_active=True,
    )
    user.set_password(password)

    db.session.add(user)
    db.session.flush()
    log_action(user, "CREATE", before=None, after=_user_snapshot(user))
    db.session.commit()

    return jsonify({"message": "User created.", "user": user.to_dict()}), 201


# ---------------------------------------------------------------------
# EDIT USER
# ---------------------------------------------------------------------

@users_bp.route("/<int:user_id>/edit", methods=["POST"])
@login_required
@admin_required
def edit_user(user_id):
    """
    Edit an existing user.

    Admin can:
    - activate/deactivate
    - toggle admin
    - reset password
    - change display name / email
    """
    user = db.get_or_404(User, user_id)
    data = request_data()

    before_snapshot = _user_snapshot(user)

    if "is_admin" in data:
        user.is_admin = _as_bool(data.get("is_admin"))
    if "is_active" in data:
        user.is_active = _as_bool(data.get("is_active"))
    if "full_name" in data:
        user.full_name = (data.get("full_name") or "").strip() or None
    if "email" in data:
        user.email = (data.get("email") or "").strip() or None

    new_password = (data.get("password") or "").strip()
    if new_password:
        user.set_password(new_password)

    db.session.flush()
    log_action(user, "UPDATE", before=before_snapshot, after=_user_snapshot(user))
    db.session.commit()

    return jsonify({"message": "User updated.", "user": user.to_dict()})
