"""Service-level error kinds shared by the points engine and the HTTP layer."""
from __future__ import annotations


class ServiceError(Exception):
    """Base class; `public_message` is safe to show, `str(exc)` may carry detail for logs."""

    kind = "internal"
    status_code = 500
    default_message = "An unexpected error occurred."

    def __init__(self, public_message: str | None = None, *, detail: str | None = None) -> None:
        self.public_message = public_message or self.default_message
        super().__init__(detail or self.public_message)


class NotFoundError(ServiceError):
    kind = "not_found"
    status_code = 404
    default_message = "Resource not found."


class RequestValidationError(ServiceError):
    kind = "validation"
    status_code = 400
    default_message = "Invalid request."


class PermissionDeniedError(ServiceError):
    kind = "permission"
    status_code = 403
    default_message = "Access denied."


class AwardConflictError(ServiceError):
    """Duplicate (complaint, status) award; callers recover from it as a no-op."""

    kind = "conflict"
    status_code = 409
    default_message = "Points already awarded for this status."


class InternalServiceError(ServiceError):
    kind = "internal"
    status_code = 500
