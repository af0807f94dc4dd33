"""Schemas describing the authenticated caller."""

from typing import Optional
from uuid import UUID

from pydantic import Field

from .base import BaseSchema


class CurrentUser(BaseSchema):
    """Identity taken from a verified access token.

    Users live with the auth provider; ``id`` is the token subject and is the
    value stored as ``chat_threads.user_id``.
    """

    id: UUID = Field(..., description="Token subject")
    email: Optional[str] = Field(None, description="Email claim, if present")
    role: Optional[str] = Field(None, description="Role claim, if present")
