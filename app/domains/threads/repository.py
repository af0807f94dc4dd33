"""Chat store: threads and messages on top of an async session factory.

Every method opens its own session, so independent operations (for example
saving an answer and bumping the thread timestamp) can run concurrently.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.schemas.chat import ThreadSummary
from models.base import utcnow
from models.chat_thread import DEFAULT_THREAD_TITLE, ChatThread
from models.message import Message, MessageSender

PREVIEW_LENGTH = 100


class ChatRepository:
    """Persistence for ``chat_threads`` and ``messages``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # Threads

    async def create_thread(self, user_id: UUID, title: str = DEFAULT_THREAD_TITLE) -> ChatThread:
        async with self._session_factory() as session:
            now = utcnow()
            thread = ChatThread(user_id=user_id, title=title, created_at=now, updated_at=now)
            session.add(thread)
            await session.commit()
            await session.refresh(thread)
            return thread

    async def get_thread(self, thread_id: UUID, user_id: UUID) -> ChatThread | None:
        """Owner-scoped lookup; another user's thread reads as missing."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(ChatThread).where(
                    and_(ChatThread.id == thread_id, ChatThread.user_id == user_id)
                )
            )
            return result.scalar_one_or_none()

    async def get_latest_thread(self, user_id: UUID) -> ChatThread | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ChatThread)
                .where(ChatThread.user_id == user_id)
                .order_by(ChatThread.updated_at.desc())
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def list_thread_summaries(self, user_id: UUID, limit: int) -> list[ThreadSummary]:
        """Newest-first thread list with preview and count in a single statement."""
        last_message_preview = (
            select(func.substr(Message.content, 1, PREVIEW_LENGTH))
            .where(Message.thread_id == ChatThread.id)
            .order_by(Message.created_at.desc())
            .limit(1)
            .correlate(ChatThread)
            .scalar_subquery()
        )
        message_count = (
            select(func.count(Message.id))
            .where(Message.thread_id == ChatThread.id)
            .correlate(ChatThread)
            .scalar_subquery()
        )
        query = (
            select(
                ChatThread.id,
                ChatThread.title,
                ChatThread.created_at,
                ChatThread.updated_at,
                last_message_preview.label("last_message_preview"),
                message_count.label("message_count"),
            )
            .where(ChatThread.user_id == user_id)
            .order_by(ChatThread.updated_at.desc())
            .limit(limit)
        )
        async with self._session_factory() as session:
            result = await session.execute(query)
            return [
                ThreadSummary(
                    id=row.id,
                    title=row.title,
                    created_at=row.created_at,
                    updated_at=row.updated_at,
                    last_message_preview=row.last_message_preview,
                    message_count=row.message_count or 0,
                )
                for row in result.all()
            ]

    async def rename_thread(self, thread_id: UUID, user_id: UUID, title: str) -> ChatThread | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ChatThread).where(
                    and_(ChatThread.id == thread_id, ChatThread.user_id == user_id)
                )
            )
            thread = result.scalar_one_or_none()
            if thread is None:
                return None
            thread.title = title
            await session.commit()
            await session.refresh(thread)
            return thread

    async def touch_thread(
        self,
        thread_id: UUID,
        at: datetime | None = None,
        title: str | None = None,
    ) -> bool:
        """Bump ``updated_at`` (last write wins), optionally setting a title."""
        values: dict[str, Any] = {"updated_at": at or utcnow()}
        if title is not None:
            values["title"] = title
        async with self._session_factory() as session:
            result = await session.execute(
                update(ChatThread).where(ChatThread.id == thread_id).values(**values)
            )
            await session.commit()
            return result.rowcount > 0

    async def delete_thread(self, thread_id: UUID, user_id: UUID) -> bool:
        """Delete a thread and its messages in one transaction."""
        async with self._session_factory() as session:
            owned = await session.execute(
                select(ChatThread.id).where(
                    and_(ChatThread.id == thread_id, ChatThread.user_id == user_id)
                )
            )
            if owned.scalar_one_or_none() is None:
                return False
            await session.execute(delete(Message).where(Message.thread_id == thread_id))
            await session.execute(delete(ChatThread).where(ChatThread.id == thread_id))
            await session.commit()
            return True

    # Messages

    async def list_messages(self, thread_id: UUID) -> list[Message]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Message)
                .where(Message.thread_id == thread_id)
                .order_by(Message.created_at.asc())
            )
            return list(result.scalars().all())

    async def get_message(self, message_id: UUID) -> Message | None:
        async with self._session_factory() as session:
            return await session.get(Message, message_id)

    async def add_message(
        self,
        thread_id: UUID,
        sender: MessageSender,
        content: str,
        metadata: dict[str, Any] | None = None,
        message_id: UUID | None = None,
    ) -> tuple[Message, bool]:
        """Insert a message.

        Returns ``(message, created)``. When ``message_id`` names a message
        already stored in this thread, that message is returned untouched with
        ``created=False``.
        """
        if message_id is not None:
            existing = await self.get_message(message_id)
            if existing is not None and existing.thread_id == thread_id:
                return existing, False

        async with self._session_factory() as session:
            message = Message(
                thread_id=thread_id,
                sender=sender,
                content=content,
                meta=metadata,
                created_at=utcnow(),
            )
            if message_id is not None:
                message.id = message_id
            session.add(message)
            await session.commit()
            await session.refresh(message)
            return message, True
