"""Chat schemas for request/response serialization."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import AliasChoices, ConfigDict, Field, computed_field, field_validator

from models.message import MessageSender

from .base import BaseModelSchema, BaseSchema

__all__ = [
    "MessageCreate",
    "MessageResponse",
    "MessageSender",
    "SourceCitation",
    "ThreadCreate",
    "ThreadListResponse",
    "ThreadResponse",
    "ThreadSummary",
    "ThreadUpdate",
]


class SourceCitation(BaseSchema):
    """A document reference attached to an agent message."""

    title: str = Field(..., description="Document name")
    section: str | None = Field(None, description="Section or page label")


def sources_from_metadata(metadata: dict[str, Any] | None) -> list[SourceCitation]:
    """Read citations out of a message metadata bag, keeping their order."""
    if not metadata:
        return []
    raw_sources = metadata.get("sources") or []
    citations = []
    for raw in raw_sources:
        if isinstance(raw, dict) and raw.get("title"):
            citations.append(SourceCitation(title=raw["title"], section=raw.get("section")))
    return citations


class MessageCreate(BaseSchema):
    """Schema for persisting one message."""

    id: UUID | None = Field(None, description="Client-chosen id; repeating it returns the stored message")
    sender: MessageSender = Field(..., description="user or agent")
    content: str = Field(..., min_length=1, description="Message content")
    metadata: dict[str, Any] | None = Field(None, description="Sources and provenance")


class MessageResponse(BaseModelSchema):
    """Schema for message response."""

    thread_id: UUID
    sender: MessageSender
    content: str
    metadata: dict[str, Any] | None = Field(
        None, validation_alias=AliasChoices("meta", "metadata"), description="Sources and provenance"
    )

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    @computed_field
    @property
    def sources(self) -> list[SourceCitation]:
        return sources_from_metadata(self.metadata)


class ThreadCreate(BaseSchema):
    """Schema for creating a new thread."""

    title: str | None = Field(None, max_length=255, description="Optional thread title")


class ThreadUpdate(BaseSchema):
    """Schema for renaming a thread."""

    title: str = Field(..., min_length=1, max_length=255)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title cannot be blank")
        return v.strip()


class ThreadResponse(BaseModelSchema):
    """Schema for thread response."""

    user_id: UUID
    title: str
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ThreadSummary(BaseSchema):
    """One row of the aggregated thread list."""

    id: UUID
    title: str
    created_at: datetime
    updated_at: datetime
    last_message_preview: str | None = None
    message_count: int = 0


class ThreadListResponse(BaseSchema):
    """Schema for the thread list response."""

    threads: list[ThreadSummary]
    limit: int
