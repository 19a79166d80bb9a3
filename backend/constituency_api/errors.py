"""
Error types raised by the service layer.

Each error carries a `kind` and an HTTP status so the API layer can render a
uniform `{"ok": false, "error": ..., "error_type": ...}` body.
"""

from typing import Any, Dict, List, Optional, Union


class ServiceError(Exception):
    """Base class for expected, user-facing failures."""
    kind = "service"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        body = {"ok": False, "error": self.message, "error_type": self.kind}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(ServiceError):
    """Input failed form validation."""
    kind = "validation"
    status_code = 400

    def __init__(self, message: str, errors: Optional[List[str]] = None,
                 fields: Optional[Union[List[str], Dict[str, str]]] = None):
        details: Dict[str, Any] = {}
        if errors:
            details["errors"] = errors
        if fields:
            details["fields"] = fields
        super().__init__(message, details)
        self.errors = errors or []
        self.fields = fields or []


class PermissionDeniedError(ServiceError):
    kind = "permission"
    status_code = 403


class SessionExpiredError(ServiceError):
    kind = "session"
    status_code = 401


class NotFoundError(ServiceError):
    kind = "not_found"
    status_code = 404


class DatabaseUnavailableError(ServiceError):
    """The document database or relational store could not be reached."""
    kind = "database"
    status_code = 503


class MediaUploadError(ServiceError):
    kind = "upload"
    status_code = 502
