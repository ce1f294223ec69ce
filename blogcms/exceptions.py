"""Application errors.

Services and dependencies raise these; ``blogcms.main`` registers the
handlers that turn them into ``{"error": ...}`` JSON responses.
"""


class AppError(Exception):
    """Base class for errors reported to the caller as-is."""

    status_code: int = 500
    default_message: str = "Server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationFailure(AppError):
    """Malformed or out-of-range input.

    ``details`` holds one ``{"field", "message"}`` entry per offending field
    when the failure came from request validation.
    """

    status_code = 400
    default_message = "Validation failed"

    def __init__(self, message: str | None = None, details: list[dict] | None = None):
        super().__init__(message)
        self.details = details

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.details is not None:
            data["details"] = self.details
        return data


class Unauthenticated(AppError):
    status_code = 401
    default_message = "Authentication required."


class Forbidden(AppError):
    status_code = 403
    default_message = "Access denied."


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class Conflict(AppError):
    status_code = 409
    default_message = "Resource already exists"
