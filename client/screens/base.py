"""Shared state holder for screen view models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, Optional, TypeVar

from errors import ApiError, NetworkError

T = TypeVar("T")


@dataclass
class ScreenState(Generic[T]):
    """
    The three facets a screen renders from, plus an optional success banner.
    There is only ever one current error: setting a new one replaces the old.
    """
    is_loading: bool = False
    error_message: Optional[str] = None
    success_message: Optional[str] = None
    data: Optional[T] = None
    failures: dict[str, ApiError] = field(default_factory=dict)

    def fail(self, message: str):
        self.error_message = message
        self.success_message = None

    def succeed(self, message: Optional[str] = None):
        self.error_message = None
        self.success_message = message

    def record(self, name: str, error: ApiError):
        """Keep a non-blocking failure of one independent call."""
        self.failures[name] = error


def connection_message(error: ApiError, fallback: str) -> str:
    if isinstance(error, NetworkError):
        return "Connection error. Please check your internet and try again."
    return fallback


def created_at_key(created_at: Optional[str]) -> datetime:
    """Sort key for backend timestamps; unparseable or missing values sort oldest."""
    if not created_at:
        return datetime.min
    try:
        parsed = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
    except ValueError:
        return datetime.min
    return parsed.replace(tzinfo=None)
