"""
Message model for a single turn in a chat thread.
"""

import enum

from sqlalchemy import Column, Enum, ForeignKey, Index, Text
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel, JSONType


class MessageSender(str, enum.Enum):
    """Who authored a message."""

    USER = "user"
    AGENT = "agent"


class Message(BaseModel):
    """
    Represents one immutable message in a thread.

    The ``metadata`` column holds source citations and provenance for agent
    messages. It is mapped to ``meta`` because ``metadata`` is reserved on
    declarative classes.
    """

    __tablename__ = "messages"

    thread_id = Column(UUID(), ForeignKey("chat_threads.id", ondelete="CASCADE"), nullable=False)
    sender = Column(
        Enum(MessageSender, name="message_sender", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    content = Column(Text, nullable=False)
    meta = Column("metadata", JSONType, nullable=True)

    # Relationships
    thread = relationship("ChatThread", back_populates="messages")

    __table_args__ = (Index("idx_messages_thread_created", "thread_id", "created_at"),)
