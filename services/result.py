"""
Result type for consistent error handling across services.

Services return Result[T] instead of raising so the API layer can render a
display message and pick a status code from the error code.

Usage:
    # Returning success
    return Result.ok(wager)
    return Result.ok()

    # Returning failure
    return Result.fail("Round is not active", code=ROUND_NOT_ACTIVE)

    # Converting a domain exception raised by a repository
    except GameritError as exc:
        return Result.from_error(exc)
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from services.errors import GameritError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of a service call.

    Attributes:
        success: Whether the operation succeeded
        value: The return value if successful (None if failed or void operation)
        error: Display message if failed
        error_code: Stable code from services.error_codes
    """

    success: bool
    value: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def ok(cls, value: T | None = None) -> "Result[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str, code: str | None = None) -> "Result[T]":
        return cls(success=False, error=error, error_code=code)

    @classmethod
    def from_error(cls, exc: "GameritError") -> "Result[T]":
        """Build a failed result from a domain exception, keeping its code."""
        return cls(success=False, error=exc.message, error_code=exc.code)

    def __bool__(self) -> bool:
        return self.success

    def unwrap(self) -> T:
        """
        Get the value, raising ValueError if the result is a failure.

        Raises:
            ValueError: If the result is a failure
        """
        if not self.success:
            raise ValueError(f"Cannot unwrap failed result: {self.error}")
        return self.value  # type: ignore

    def unwrap_or(self, default: T) -> T:
        return self.value if self.success else default  # type: ignore

    def to_response(self) -> dict:
        """Render as the {success, error?} envelope used by the RPC surface."""
        if not self.success:
            return {"success": False, "error": self.error, "error_code": self.error_code}
        payload = {"success": True}
        if isinstance(self.value, dict):
            payload.update(self.value)
        elif self.value is not None:
            payload["data"] = self.value
        return payload
