"""
Chat thread model for knowledge-base conversations.
"""

from sqlalchemy import Column, DateTime, Index, String
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel, utcnow

DEFAULT_THREAD_TITLE = "New Chat"


class ChatThread(BaseModel):
    """
    A persisted conversation owned by exactly one user.

    ``user_id`` is the subject issued by the auth provider; there is no local
    users table.
    """

    __tablename__ = "chat_threads"

    user_id = Column(UUID(), nullable=False)
    title = Column(String(255), nullable=False, default=DEFAULT_THREAD_TITLE)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    messages = relationship(
        "Message",
        back_populates="thread",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Message.created_at",
    )

    __table_args__ = (Index("idx_chat_threads_user_updated", "user_id", "updated_at"),)
