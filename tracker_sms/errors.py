"""
Domain errors raised by the repository and workflow layers.

Each error knows the HTTP status it maps to; the exception handlers in
main.py turn them into the shared ``{success: false, error, message?}``
envelope. Extra keyword arguments are merged into the response body
(e.g. ``invalidPhones`` or ``suggestion``).
"""

from typing import Any, Optional


class ServiceError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500

    def __init__(self, error: str, message: Optional[str] = None, **extra: Any):
        super().__init__(error)
        self.error = error
        self.message = message
        self.extra = extra

    def to_body(self) -> dict:
        body: dict = {"success": False, "error": self.error}
        if self.message is not None:
            body["message"] = self.message
        body.update(self.extra)
        return body


class ValidationError(ServiceError):
    """Missing or malformed input."""

    status_code = 400


class NotFoundError(ServiceError):
    """A model or command id does not resolve."""

    status_code = 404


class ConflictError(ServiceError):
    """Uniqueness violation or a delete blocked by existing references."""

    status_code = 409
