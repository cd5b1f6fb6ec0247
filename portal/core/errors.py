"""
Domain exceptions raised by the stores and the access gate.

Each subclass carries the HTTP status it maps to; the handlers in
``portal.main`` turn them into JSON responses of the shape
``{"detail": ..., "errors": [...]}``.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class PortalError(Exception):
    status_code: int = 500
    default_detail: str = "An unexpected error occurred. Please try again later."

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(PortalError):
    """Malformed or inconsistent input. Always carries every failing field."""

    status_code = 400
    default_detail = "Validation error"

    def __init__(self, errors: list[FieldError], detail: str | None = None) -> None:
        super().__init__(detail)
        self.errors = list(errors)

    @classmethod
    def single(cls, field: str, message: str, detail: str | None = None) -> "ValidationError":
        return cls([FieldError(field, message)], detail=detail)


class Unauthorized(PortalError):
    status_code = 401
    default_detail = "Not authenticated"


class Forbidden(PortalError):
    status_code = 403
    default_detail = "You do not have permission to perform this action"


class NotFound(PortalError):
    status_code = 404
    default_detail = "Resource not found"


class Conflict(PortalError):
    status_code = 409
    default_detail = "Resource already exists"
