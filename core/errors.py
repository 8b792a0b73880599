"""
core/errors.py -- Error taxonomy shared by every layer.

Each operation classifies its own failures into one of these classes at the
point of occurrence. api/main.py renders all of them through a single
exception handler into the ErrorResponse envelope, so route handlers never
build error JSON themselves.

code is the short machine-checkable reason string returned to clients;
message is the human-readable sentence shown next to it.

Layer rule: core/ is the kernel. No imports from api/, auth/, tasks/, or services/.
"""

from __future__ import annotations


class TaskflowError(Exception):
    """Base class for all classified failures."""

    status_code: int = 500
    default_code: str = "internal_error"
    default_message: str = "An unexpected error occurred."

    def __init__(self, code: str | None = None, message: str | None = None) -> None:
        self.code = code or self.default_code
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationError(TaskflowError):
    """Credential missing, malformed, expired, or rejected by the identity provider."""

    status_code = 401
    default_code = "unauthorized"
    default_message = "Authentication required."


class AuthorizationError(TaskflowError):
    """Identity is known but its role does not permit the operation."""

    status_code = 403
    default_code = "forbidden"
    default_message = "Access denied."


class ValidationError(TaskflowError):
    status_code = 400
    default_code = "validation_error"
    default_message = "Request validation failed."


class PreconditionError(TaskflowError):
    """A referential prerequisite is unmet (e.g. the task owner has no user row)."""

    status_code = 400
    default_code = "precondition_failed"
    default_message = "A required record does not exist."


class NotFoundError(TaskflowError):
    status_code = 404
    default_code = "not_found"
    default_message = "Resource not found."


class NotFoundOrUnauthorized(NotFoundError):
    """The target does not exist or the actor may not touch it.

    The two cases share one code and one message so a caller cannot test for
    the existence of other users' resources.
    """

    default_code = "not_found"
    default_message = "Resource not found or access denied."


class InternalError(TaskflowError):
    status_code = 500
    default_code = "internal_error"
    default_message = "An unexpected error occurred."
