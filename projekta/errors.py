"""
Domain exceptions raised by the service layer.

Routes never catch these one by one: create_app() registers JSON error
handlers that turn them into 400 / 409 responses.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ProjektaError(Exception):
    """Base class for business-rule failures."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(ProjektaError):
    """User input rejected before anything is written."""

    def __init__(self, message: str, fields: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.fields = fields or {}

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.fields:
            data["fields"] = self.fields
        return data


class StateError(ProjektaError):
    """Operation not allowed in the record's current state."""

    status_code = 409


class DuplicateContractItem(ProjektaError):
    """A contract item already exists for the project/category pair."""

    status_code = 409

    def __init__(self, existing):
        super().__init__("A contract item already exists for this category.")
        self.existing = existing

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["existing_item"] = self.existing.to_dict()
        return data
