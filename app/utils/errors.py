"""
Domain error taxonomy. Every error carries the HTTP status the API layer
answers with, so routes can let them propagate to the handlers in app.main.
"""
from typing import Optional


class AppError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"success": False, "message": self.message, "error": self.code}


class ValidationError(AppError):
    """Malformed or missing required field."""
    status_code = 400
    code = "validation_error"


class NotFoundError(AppError):
    """Referenced reseller, product, payment, etc. does not exist."""
    status_code = 404
    code = "not_found"


class ConflictError(AppError):
    """Invalid state transition."""
    status_code = 409
    code = "conflict"


class DuplicateError(AppError):
    """A record with the same identity already exists."""
    status_code = 409
    code = "duplicate"


class GatewayError(AppError):
    """
    The payout processor call failed or timed out.

    retryable: the same request may be sent again (it carries an idempotency key).
    outcome_unknown: the processor may or may not have moved the funds.
    """
    status_code = 502
    code = "gateway_error"

    def __init__(self, message: str, retryable: bool = False, outcome_unknown: bool = False):
        super().__init__(message)
        self.retryable = retryable
        self.outcome_unknown = outcome_unknown


class ConfigurationError(AppError):
    code = "configuration_error"


class AuthenticationError(AppError):
    """Missing or invalid credentials."""
    status_code = 401
    code = "unauthorized"


class PermissionDeniedError(AppError):
    """Credentials are valid but not allowed to perform the action."""
    status_code = 403
    code = "forbidden"
