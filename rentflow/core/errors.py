"""Error taxonomy for rentflow.

Every expected failure of an operation is raised as one of these types.
The API layer renders them uniformly as ``{"error", "code", "detail"}``.
"""

from typing import Optional


class RentflowError(Exception):
    """Base class for errors that can be shown to the caller."""

    status_code: int = 400
    code: str = "error"

    def __init__(self, message: str, *, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "detail": self.detail}


class Unauthenticated(RentflowError):
    """No valid caller identity."""

    status_code = 401
    code = "unauthenticated"


class Unauthorized(RentflowError):
    """Caller is known but lacks the role or property scope."""

    status_code = 403
    code = "unauthorized"


class NotFound(RentflowError):
    status_code = 404
    code = "not_found"


class ValidationError(RentflowError):
    """Missing or malformed input."""

    status_code = 400
    code = "validation_error"


class InvalidState(RentflowError):
    """Operation attempted outside its required current status."""

    status_code = 409
    code = "invalid_state"


class Conflict(RentflowError):
    status_code = 409
    code = "conflict"


class InternalError(RentflowError):
    """Unexpected collaborator failure. Never carries the underlying cause."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = "Internal server error", *, detail: Optional[str] = None):
        super().__init__(message, detail=detail)
