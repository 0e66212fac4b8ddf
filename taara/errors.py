"""Typed domain errors raised by the service layer.

Routers never translate these by hand: ``taara.main`` registers a single
exception handler that renders ``{"detail": message, ...}`` with the
error's ``status_code``.
"""
from typing import Any, Optional


class TaaraError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message}


class ValidationError(TaaraError):
    """Missing or malformed required payload field."""

    status_code = 422

    def __init__(
        self,
        message: Optional[str] = None,
        missing_fields: Optional[list[str]] = None,
        invalid_fields: Optional[dict[str, str]] = None,
    ):
        self.missing_fields = list(missing_fields or [])
        self.invalid_fields = dict(invalid_fields or {})
        if message is None:
            parts = []
            if self.missing_fields:
                parts.append("Missing required fields: " + ", ".join(self.missing_fields))
            for field, reason in self.invalid_fields.items():
                parts.append(f"{field}: {reason}")
            message = "; ".join(parts) or "Invalid request"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        if self.missing_fields:
            body["missing_fields"] = self.missing_fields
        if self.invalid_fields:
            body["invalid_fields"] = self.invalid_fields
        return body


class NotFoundError(TaaraError):
    status_code = 404


class ForbiddenError(TaaraError):
    status_code = 403


class InvalidTransitionError(TaaraError):
    status_code = 409


class CapacityExceededError(TaaraError):
    status_code = 409


class ConflictError(TaaraError):
    """Unique value already taken."""

    status_code = 409


class DependentWriteError(TaaraError):
    """A secondary write failed after the primary write committed.

    Logged and swallowed by the lifecycle engine; never surfaced to callers.
    """

    status_code = 500

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
