"""
Unit tests for token verification and the auth dependencies.
"""

import time
import uuid
from unittest.mock import MagicMock

import jwt
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from app.core.dependencies import get_current_user, validate_token
from app.core.security import TokenVerifier

SECRET = "unit-test-secret-key-with-enough-length"


def make_token(secret=SECRET, audience="authenticated", expires_in=300, **claims):
    payload = {"sub": str(uuid.uuid4()), "exp": int(time.time()) + expires_in, **claims}
    if audience:
        payload["aud"] = audience
    return jwt.encode(payload, secret, algorithm="HS256")


class TestTokenVerifier:
    """Test cases for TokenVerifier."""

    def test_valid_token(self):
        token = make_token(email="agent@example.com")

        payload = TokenVerifier(SECRET, audience="authenticated").verify_token(token)

        assert payload["email"] == "agent@example.com"

    def test_wrong_signature(self):
        with pytest.raises(HTTPException) as exc_info:
            TokenVerifier(SECRET).verify_token(make_token(secret="another-secret-key-with-enough-length"))
        assert exc_info.value.status_code == 401

    def test_expired(self):
        with pytest.raises(HTTPException) as exc_info:
            TokenVerifier(SECRET).verify_token(make_token(expires_in=-60))
        assert exc_info.value.status_code == 401

    def test_wrong_audience(self):
        with pytest.raises(HTTPException):
            TokenVerifier(SECRET, audience="authenticated").verify_token(make_token(audience="anon"))

    def test_audience_check_skipped_when_unset(self):
        token = make_token(audience="anything")
        assert TokenVerifier(SECRET, audience=None).verify_token(token)["aud"] == "anything"

    def test_missing_secret(self):
        with pytest.raises(HTTPException) as exc_info:
            TokenVerifier(None).verify_token(make_token())
        assert exc_info.value.status_code == 503


class TestAuthDependencies:
    """Test cases for validate_token and get_current_user."""

    @pytest.mark.asyncio
    async def test_missing_token(self):
        with pytest.raises(HTTPException) as exc_info:
            await validate_token(token=None, verifier=TokenVerifier(SECRET))
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Authentication token is required"

    @pytest.mark.asyncio
    async def test_valid_token(self):
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=make_token())

        payload = await validate_token(token=credentials, verifier=TokenVerifier(SECRET, "authenticated"))

        assert "sub" in payload

    @pytest.mark.asyncio
    async def test_current_user_from_subject(self):
        user_id = uuid.uuid4()
        request = MagicMock()

        user = await get_current_user(request, payload={"sub": str(user_id), "email": "a@b.c"})

        assert user.id == user_id
        assert request.state.user_id == user_id

    @pytest.mark.asyncio
    async def test_subject_must_be_uuid(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(MagicMock(), payload={"sub": "user_abc"})
        assert exc_info.value.status_code == 401
