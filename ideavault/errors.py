"""Errors that map onto a failure envelope and an HTTP status."""
from __future__ import annotations

from typing import Any


class ApiError(Exception):
    status_code = 400

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": False, "error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class NotFound(ApiError):
    """Referenced idea or ticket does not exist."""
    status_code = 404

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")


class RelationMismatch(ApiError):
    """Record exists but hangs off a different parent than the path says."""
    status_code = 400


class ValidationFailed(ApiError):
    status_code = 400

    def __init__(self, details: dict[str, Any]):
        super().__init__("Validation failed", details)


INTERNAL_ERROR = {"success": False, "error": "Internal server error"}
