"""Service layer — business logic orchestration."""


class ServiceError(Exception):
    """Base service exception.

    ``code`` is a short machine-readable reason the API echoes back next to
    the message; subclasses supply a default.
    """

    default_code = "error"

    def __init__(self, message: str = "", *, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code or self.default_code


class NotFoundError(ServiceError):
    """Resource not found (-> HTTP 404)."""

    default_code = "not_found"


class ConflictError(ServiceError):
    """Business rule conflict (-> HTTP 409)."""

    default_code = "conflict"


class ValidationError(ServiceError):
    """Input validation error (-> HTTP 422)."""

    default_code = "validation_error"
