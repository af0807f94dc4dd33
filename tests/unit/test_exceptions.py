"""
Unit tests for Exception classes.

This module contains unit tests for custom exception classes
used throughout the application.
"""

import pytest
from fastapi import HTTPException

from app.exceptions.base import BadRequestError, BaseAppException, NotFoundError, ValidationError
from app.exceptions.chat import PersistenceError, ThreadNotFoundError
from app.exceptions.upstream import (
    UpstreamConfigurationError,
    UpstreamParsingError,
    UpstreamResponseError,
    UpstreamServiceError,
    UpstreamTimeoutError,
)


class TestBaseAppException:
    """Test cases for BaseAppException."""

    def test_base_exception_default_values(self):
        """Test BaseAppException with default values."""
        exc = BaseAppException("Test error")

        assert exc.message == "Test error"
        assert exc.status_code == 500
        assert exc.error_code == "INTERNAL_ERROR"
        assert exc.details == {}
        assert exc.detail == {"message": "Test error", "error_code": "INTERNAL_ERROR", "details": {}}
        assert str(exc) == "Test error"

    def test_base_exception_custom_values(self):
        details = {"field": "question"}
        exc = BaseAppException(message="Custom error", status_code=400, error_code="CUSTOM", details=details)

        assert exc.status_code == 400
        assert exc.detail["details"] == details

    def test_base_exception_inheritance(self):
        assert isinstance(BaseAppException("Test error"), HTTPException)


class TestClientErrors:
    """Test cases for 4xx exceptions."""

    def test_not_found(self):
        exc = NotFoundError()
        assert exc.status_code == 404
        assert exc.error_code == "NOT_FOUND"

    def test_bad_request(self):
        exc = BadRequestError("Text is required")
        assert exc.status_code == 400
        assert exc.message == "Text is required"

    def test_validation_error(self):
        assert ValidationError().status_code == 422

    def test_thread_not_found(self):
        exc = ThreadNotFoundError(details={"thread_id": "abc"})

        assert isinstance(exc, NotFoundError)
        assert exc.status_code == 404
        assert exc.message == "Thread not found"
        assert exc.detail["error_code"] == "THREAD_NOT_FOUND"
        assert exc.detail["details"]["thread_id"] == "abc"


class TestServerErrors:
    """Test cases for persistence and upstream exceptions."""

    def test_persistence_error(self):
        exc = PersistenceError()
        assert exc.status_code == 500
        assert exc.error_code == "PERSISTENCE_ERROR"

    @pytest.mark.parametrize(
        "exc_class, status_code, error_code",
        [
            (UpstreamServiceError, 502, "UPSTREAM_ERROR"),
            (UpstreamTimeoutError, 504, "UPSTREAM_TIMEOUT"),
            (UpstreamConfigurationError, 503, "UPSTREAM_CONFIGURATION_ERROR"),
            (UpstreamParsingError, 502, "UPSTREAM_PARSING_ERROR"),
        ],
    )
    def test_upstream_status_codes(self, exc_class, status_code, error_code):
        exc = exc_class()
        assert isinstance(exc, UpstreamServiceError)
        assert exc.status_code == status_code
        assert exc.error_code == error_code

    def test_upstream_response_records_status(self):
        exc = UpstreamResponseError("RAG service error: 500", upstream_status=500)

        assert exc.status_code == 502
        assert exc.details == {"upstream_status": 500}
        assert str(exc) == "RAG service error: 500"

    def test_exception_chaining(self):
        with pytest.raises(UpstreamTimeoutError) as exc_info:
            try:
                raise TimeoutError("slow")
            except TimeoutError as e:
                raise UpstreamTimeoutError("RAG request timed out") from e
        assert isinstance(exc_info.value.__cause__, TimeoutError)
