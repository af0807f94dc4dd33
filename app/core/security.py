"""Security related functions."""

import jwt
from fastapi import HTTPException, status
from jwt import InvalidTokenError


class TokenVerifier:
    """
    Verifies access tokens issued by the auth provider.

    Tokens are HMAC-signed with a secret shared with the provider. The ``sub``
    claim carries the user id that owns threads and messages.

    :ivar secret_key: The secret used to verify token signatures.
    :type secret_key: str
    :ivar algorithm: The signing algorithm accepted.
    :type algorithm: str
    :ivar audience: Expected ``aud`` claim, or None to skip the check.
    :type audience: str | None
    """

    def __init__(self, secret_key: str | None, algorithm: str = "HS256", audience: str | None = None):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.audience = audience or None

    def verify_token(self, token: str) -> dict:
        """
        Verifies the signature, expiry and audience of a token and returns its
        payload. Any failure is reported as a 401.

        :param token: The encoded JWT.
        :return: A dictionary containing the decoded payload.
        """
        if not self.secret_key:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication is not configured",
            )

        try:
            return jwt.decode(
                token,
                key=self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                options={"verify_aud": self.audience is not None, "require": ["sub", "exp"]},
            )
        except InvalidTokenError as e:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Invalid authentication token: {str(e)}",
                headers={"WWW-Authenticate": "Bearer"},
            ) from e
