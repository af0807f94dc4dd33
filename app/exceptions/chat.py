"""Thread and message exceptions."""

from typing import Any

from .base import BaseAppException, NotFoundError


class ThreadNotFoundError(NotFoundError):
    """Raised when a thread does not exist or belongs to someone else.

    Both cases share one error so callers cannot probe for other users' threads.
    """

    def __init__(self, message: str = "Thread not found", details: dict[str, Any] | None = None):
        super().__init__(message=message, details=details)
        self.error_code = "THREAD_NOT_FOUND"
        self.detail["error_code"] = self.error_code


class PersistenceError(BaseAppException):
    """Raised when a write to the chat store fails."""

    def __init__(self, message: str = "Failed to save data", details: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=500, error_code="PERSISTENCE_ERROR", details=details)
