# ruff: noqa: D107
"""Exceptions for the hosted services this API proxies to (RAG, speech)."""

from typing import Any

from .base import BaseAppException


class UpstreamServiceError(BaseAppException):
    """Base exception for upstream service errors."""

    def __init__(
        self,
        message: str = "Upstream service error occurred",
        error_code: str = "UPSTREAM_ERROR",
        details: dict[str, Any] | None = None,
        status_code: int = 502,
    ):
        super().__init__(message=message, status_code=status_code, error_code=error_code, details=details)


class UpstreamTimeoutError(UpstreamServiceError):
    """Exception raised when an upstream request exceeds its hard timeout."""

    def __init__(
        self,
        message: str = "Upstream service request timed out",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "UPSTREAM_TIMEOUT", details, status_code=504)


class UpstreamConfigurationError(UpstreamServiceError):
    """Exception raised when an upstream service is not configured."""

    def __init__(
        self,
        message: str = "Upstream service is not properly configured",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "UPSTREAM_CONFIGURATION_ERROR", details, status_code=503)


class UpstreamResponseError(UpstreamServiceError):
    """Exception raised when an upstream service answers with a non-2xx status."""

    def __init__(
        self,
        message: str = "Upstream service returned an error",
        upstream_status: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        if details is None:
            details = {}
        if upstream_status is not None:
            details["upstream_status"] = upstream_status
        super().__init__(message, "UPSTREAM_BAD_RESPONSE", details)


class UpstreamParsingError(UpstreamServiceError):
    """Exception raised when an upstream response cannot be parsed."""

    def __init__(
        self,
        message: str = "Failed to parse upstream service response",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "UPSTREAM_PARSING_ERROR", details)
