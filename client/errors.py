"""Error taxonomy shared by the repository, the coordinators and the screens."""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorReason(str, Enum):
    NETWORK = "network"
    AUTH = "auth"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    SERVER = "server"
    EMPTY_RESPONSE = "empty_response"
    MALFORMED_RESPONSE = "malformed_response"
    UNKNOWN = "unknown"


class ApiError(Exception):
    """
    A classified failure of a backend call.

    `status` is the HTTP status when the server answered, None for transport
    failures and for checks done locally before any request was sent.
    """

    reason = ErrorReason.UNKNOWN
    default_message = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None, status: Optional[int] = None, detail: Optional[str] = None):
        self.message = message or self.default_message
        self.status = status
        self.detail = detail
        super().__init__(self.message)

    def with_message(self, message: str) -> "ApiError":
        """Copy of this error carrying a screen-specific message."""
        return type(self)(message, status=self.status, detail=self.detail)

    def __repr__(self):
        return f"{type(self).__name__}(status={self.status!r}, message={self.message!r})"


class NetworkError(ApiError):
    reason = ErrorReason.NETWORK
    default_message = "Network error. Please check your connection."


class AuthError(ApiError):
    reason = ErrorReason.AUTH
    default_message = "Authentication required. Please log in again."


class ValidationError(ApiError):
    reason = ErrorReason.VALIDATION
    default_message = "Invalid request. Please check your input."


class NotFoundError(ApiError):
    reason = ErrorReason.NOT_FOUND
    default_message = "Not found."


class ConflictError(ApiError):
    reason = ErrorReason.CONFLICT
    default_message = "This record already exists."


class ServerError(ApiError):
    reason = ErrorReason.SERVER
    default_message = "Server error. Please try again later."


class EmptyResponseError(ApiError):
    reason = ErrorReason.EMPTY_RESPONSE
    default_message = "The server returned an empty response."


class ResponseFormatError(ApiError):
    reason = ErrorReason.MALFORMED_RESPONSE
    default_message = "Unexpected response from the server."


def classify_status(status: int, detail: Optional[str] = None) -> ApiError:
    """Map a non-2xx HTTP status onto the error taxonomy."""
    if status == 400:
        return ValidationError(status=status, detail=detail)
    if status == 401:
        return AuthError(status=status, detail=detail)
    if status == 404:
        return NotFoundError(status=status, detail=detail)
    if status == 409:
        return ConflictError(status=status, detail=detail)
    if 500 <= status < 600:
        return ServerError(status=status, detail=detail)
    return ApiError(f"Request failed with status {status}", status=status, detail=detail)


@dataclass(frozen=True)
class ApiResult(Generic[T]):
    """Outcome of one repository call: exactly one of value/error is set."""

    value: Optional[T] = None
    error: Optional[ApiError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "ApiResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ApiError) -> "ApiResult[T]":
        return cls(error=error)
