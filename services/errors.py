"""
Exception taxonomy shared by repositories and services.

Repositories raise these from inside atomic transactions so the raise rolls
the transaction back. Services catch them and convert to Result.fail with the
carried code. All subclass ValueError so callers that only know about the
generic validation failure keep working.
"""

from services import error_codes


class GameritError(ValueError):
    """Base error with a stable, machine-readable code."""

    default_code = error_codes.STATE_ERROR

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class ValidationError(GameritError):
    default_code = error_codes.VALIDATION_ERROR


class NotFoundError(GameritError):
    default_code = error_codes.NOT_FOUND


class StateConflictError(GameritError):
    default_code = error_codes.STATE_ERROR


class InsufficientFundsError(GameritError):
    default_code = error_codes.INSUFFICIENT_FUNDS


class UpstreamUnavailableError(GameritError):
    """The content source could not be reached or gave no usable answer."""

    default_code = error_codes.EXTERNAL_API_ERROR
