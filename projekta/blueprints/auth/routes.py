"""
Authentication Routes

Provides:
- POST /auth/login
- POST /auth/logout
- GET  /auth/me
- GET  /auth/csrf-token   (token for the X-CSRFToken header)
- POST /auth/seed-admin   (first system bootstrap)
"""

from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf

from ...extensions import db
from ...models import User
from .. import request_data


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


# ============================================================
# LOGIN
# ============================================================

@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Authenticate a user.

    - Only active users may log in
    - Credentials validated via password hash
    """
    data = request_data()
    username = (data.get("username") or "").strip()
    password = data.get("password") or ""

    user = User.query.filter_by(username=username).first()

    if not user or not user.check_password(password):
        current_app.logger.info("Failed login for %r", username)
        return jsonify({"error": "Wrong username or password."}), 401

    if not user.is_active:
        return jsonify({"error": "This account is disabled."}), 403

    login_user(user)
    return jsonify({"message": "Welcome!", "user": user.to_dict()})


# ============================================================
# LOGOUT / SESSION
# ============================================================

@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    """Log out the current user."""
    logout_user()
    return jsonify({"message": "Logged out."})


@auth_bp.route("/me")
@login_required
def me():
    return jsonify(
        {
            "user": current_user.to_dict(),
            "projects": [m.to_dict() for m in current_user.memberships],
        }
    )


@auth_bp.route("/csrf-token")
def csrf_token():
    return jsonify({"csrf_token": generate_csrf()})


# ============================================================
# SEED FIRST ADMIN (BOOTSTRAP)
# ============================================================

@auth_bp.route("/seed-admin", methods=["POST"])
def seed_admin():
    """
    Bootstrap the FIRST admin of the system.

    If ANY user already exists the request is refused.
    """
    if User.query.count() > 0:
        return jsonify({"error": "A user already exists."}), 409

    data = request_data()
    username = (data.get("username") or "").strip()
    password = data.get("password") or ""

    if not username or not password:
        return jsonify({"error": "Username and password are required."}), 400

    user = User(
        username=username,
        full_name=(data.get("full_name") or "").strip() or "System Administrator",
        is_admin=True,
        is_active=True,
    )
    user.set_password(password)

    db.session.add(user)
    db.session.commit()

    current_app.logger.info("Bootstrap admin %s created", username)
    return jsonify({"message": "Admin created. Please log in.", "user": user.to_dict()}), 201
