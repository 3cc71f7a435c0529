"""
projekta/security.py

Access control helpers.

Key rules:
- All permission checks are server-side.
- Admin: full access to every project.
- Project isolation: other users see only projects they are members of.
- Per project:
  - owner + manager: full CRUD on the project's budget data.
  - viewer: read-only.

This module also provides a global safety net:
- viewer_readonly_guard() blocks POST/PUT/PATCH/DELETE on project URLs for
  viewers. Wired via app.before_request in the app factory.

Decorators use functools.wraps to avoid Flask endpoint collisions.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Optional, Tuple

from flask import jsonify, request
from flask_login import current_user

MUTATING_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


def _forbidden() -> Tuple[Any, int]:
    """Consistent JSON 403."""
    return jsonify({"error": "You do not have permission to perform this action."}), 403


def is_admin() -> bool:
    return bool(current_user.is_authenticated and getattr(current_user, "is_admin", False))


def viewer_readonly_guard() -> Optional[Tuple[Any, int]]:
    """
    Global guard: project viewers cannot mutate data.

    Only applies to URLs carrying a project_id; every route still enforces
    its own permissions through the decorators below.
    """
    if request.method not in MUTATING_METHODS:
        return None

    if not current_user.is_authenticated or is_admin():
        return None

    project_id = (request.view_args or {}).get("project_id")
    if project_id is None:
        return None

    membership = current_user.membership_for(project_id)
    if membership is not None and not membership.can_edit:
        return _forbidden()
    return None


def admin_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator: admin-only."""
    @wraps(view_func)
    def wrapper(*args: Any, **kwargs: Any):
        if not is_admin():
            return _forbidden()
        return view_func(*args, **kwargs)

    return wrapper


def project_access_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator: VIEW permission on the project in the URL.

    Admin: always allowed. Others: must be a member of the project.
    """
    @wraps(view_func)
    def wrapper(*args: Any, **kwargs: Any):
        project_id = kwargs.get("project_id")
        if not current_user.is_authenticated or not current_user.can_view_project(project_id):
            return _forbidden()
        return view_func(*args, **kwargs)

    return wrapper


def project_edit_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator: EDIT permission on the project in the URL.

    Admin: always allowed. Others: must be an owner or manager of the project.
    """
    @wraps(view_func)
    def wrapper(*args: Any, **kwargs: Any):
        project_id = kwargs.get("project_id")
        if not current_user.is_authenticated or not current_user.can_edit_project(project_id):
            return _forbidden()
        return view_func(*args, **kwargs)

    return wrapper


def project_owner_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator: membership management is reserved to project owners (and admins)."""
    @wraps(view_func)
    def wrapper(*args: Any, **kwargs: Any):
        project_id = kwargs.get("project_id")
        if not current_user.is_authenticated:
            return _forbidden()
        if not is_admin():
            membership = current_user.membership_for(project_id)
            if membership is None or membership.role != "owner":
                return _forbidden()
        return view_func(*args, **kwargs)

    return wrapper
