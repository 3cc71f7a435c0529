"""
Helpers shared by the blueprints.

- request_data(): JSON body, or form fields for classic form posts.
- ledger(): the data-access object handed to the budget services.
- load_project_row(): fetch a row and make sure it belongs to the URL's project.
"""

from __future__ import annotations

from typing import Any, Dict

from flask import abort, request

from ..extensions import db
from ..repository import LedgerRepository


def request_data() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def ledger() -> LedgerRepository:
    return LedgerRepository(db.session)


def load_project_row(model, row_id: int, project_id: int):
    """get_or_404 plus project isolation: rows of another project are 404 too."""
    row = db.get_or_404(model, row_id)
    if row.project_id != project_id:
        abort(404)
    return row
