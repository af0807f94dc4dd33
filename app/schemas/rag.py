"""Schemas for the knowledge-base question endpoint."""

from uuid import UUID

from pydantic import ConfigDict, Field, field_validator

from .base import BaseSchema
from .chat import SourceCitation

__all__ = ["RagAnswer", "RagQuestion", "RagTimings"]


class RagQuestion(BaseSchema):
    """Question asked inside one of the caller's threads."""

    model_config = ConfigDict(populate_by_name=True)

    question: str = Field(..., min_length=1)
    thread_id: UUID = Field(..., alias="threadId")

    @field_validator("question")
    @classmethod
    def validate_question(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Question cannot be blank")
        return v.strip()


class RagTimings(BaseSchema):
    """Milliseconds spent per stage of one request."""

    model_config = ConfigDict(populate_by_name=True)

    processing_time: int = Field(..., alias="processingTime")
    rag_time: int = Field(..., alias="ragTime")
    db_time: int = Field(..., alias="dbTime")


class RagAnswer(BaseSchema):
    """Successful answer as returned to the caller."""

    model_config = ConfigDict(populate_by_name=True)

    answer: str
    sources: list[SourceCitation] = Field(default_factory=list)
    success: bool = True
    message_id: UUID = Field(..., alias="messageId")
    metadata: RagTimings
