"""
projekta/audit.py

Audit trail helpers.

- Capture WHO did WHAT to WHICH entity, with BEFORE/AFTER snapshots.
- Store a username snapshot so history survives renames.
- Store the IP address for traceability.

IMPORTANT:
- log_action() ADDS an AuditLog row to the current session.
  The calling route controls the transaction (commit/rollback), so the audit
  row is committed together with the change it describes.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from flask import has_request_context, request
from flask_login import current_user

from .extensions import db
from .models import AuditLog

ACTIONS = {
    "CREATE",
    "UPDATE",
    "DELETE",
    "MARK_PAID",
    "UNDO_PAID",
    "MARK_DELIVERED",
    "UNDO_DELIVERED",
    "SETUP",
}


def _safe_str(value: Any) -> Optional[str]:
    """Stable string for Decimal/date/datetime values; None stays None."""
    if value is None:
        return None
    return str(value)


def serialize_model(instance: Any) -> Dict[str, Optional[str]]:
    """
    Snapshot of a model's scalar columns (relationships are not followed).

    Values are strings for JSON safety and SQLite/PostgreSQL portability.
    """
    return {column.name: _safe_str(getattr(instance, column.name)) for column in instance.__table__.columns}


def log_action(
    entity: Any,
    action: str,
    *,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Add an AuditLog entry to the current db session.

    entity must already have an id (flush before calling after a CREATE).
    """
    if action not in ACTIONS:
        raise ValueError(f"Unknown audit action: {action}")

    entity_id = getattr(entity, "id", None)
    if entity_id is None:
        raise ValueError("log_action entity must have an 'id' attribute (after flush).")

    authenticated = has_request_context() and current_user.is_authenticated

    entry = AuditLog(
        user_id=current_user.id if authenticated else None,
        username_snapshot=current_user.username if authenticated else None,
        entity_type=entity.__class__.__name__,
        entity_id=int(entity_id),
        action=action,
        before_data=json.dumps(before, ensure_ascii=False) if before else None,
        after_data=json.dumps(after, ensure_ascii=False) if after else None,
        ip_address=request.remote_addr if has_request_context() else None,
    )
    db.session.add(entry)
    return entry
