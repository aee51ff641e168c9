"""
Decision engine error taxonomy.

Synchronous failures (authentication, authorization, validation, lookups)
derive from DecisionError and are surfaced to the calling client with a
stable ``error`` code and a human-readable message.

Asynchronous failures (push delivery, partial fan-out) never reach a client:
DeliveryFailure is raised by transports and swallowed at the leaf.
"""

from typing import Optional


class DecisionError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 400
    error: str = "decision_error"

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.error, "message": self.message}
        body.update(self.details)
        return body


class Unauthenticated(DecisionError):
    """No verified caller identity."""

    status_code = 401
    error = "unauthenticated"


class Unauthorized(DecisionError):
    """Caller lacks the required role or targets another identity's resource."""

    status_code = 403
    error = "unauthorized"


class UnknownRole(DecisionError):
    status_code = 422
    error = "unknown_role"


class InvalidTransition(DecisionError):
    """Requested role is not reachable from the caller's current role."""

    status_code = 409
    error = "invalid_transition"

    def __init__(self, current_role: str, requested_role: str, allowed: list[str]):
        allowed_text = ", ".join(allowed) if allowed else "none"
        super().__init__(
            f"Role change from {current_role} to {requested_role} is not allowed. "
            f"Allowed transitions: {allowed_text}",
            current_role=current_role,
            requested_role=requested_role,
            allowed=allowed,
        )
        self.allowed = allowed


class RestrictedRole(DecisionError):
    """Requested role can only be granted through the administrative path."""

    status_code = 403
    error = "restricted_role"

    def __init__(self, requested_role: str):
        super().__init__(
            f"Cannot change to restricted role: {requested_role}. "
            "This role requires administrative approval.",
            requested_role=requested_role,
        )


class NotFound(DecisionError):
    status_code = 404
    error = "not_found"

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        message = f"{resource} not found." if resource_id is None else f"{resource} not found: {resource_id}"
        super().__init__(message, resource=resource, resource_id=resource_id)


class DeliveryFailure(Exception):
    """A push transport could not deliver a message. Never fatal."""

    def __init__(self, detail: str, status: Optional[int] = None):
        super().__init__(detail)
        self.detail = detail
        self.status = status


class BatchLimitExceeded(Exception):
    """A batch write exceeded the store's operations-per-batch limit."""


class InvalidEvent(DecisionError):
    """A store trigger payload could not be parsed into a domain event."""

    status_code = 422
    error = "invalid_event"
