"""Thread service layer: ownership rules on top of the chat store."""

import logging
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from app.domains.threads.repository import ChatRepository
from app.exceptions.chat import PersistenceError, ThreadNotFoundError
from app.schemas.chat import (
    MessageCreate,
    MessageResponse,
    MessageSender,
    ThreadListResponse,
    ThreadResponse,
)
from models.chat_thread import DEFAULT_THREAD_TITLE, ChatThread

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 50


def generate_thread_title(first_message: str) -> str:
    """Generate a thread title from the first user message."""
    text = " ".join(first_message.split())
    title = text[:TITLE_MAX_LENGTH]
    if len(text) > TITLE_MAX_LENGTH:
        title += "..."
    return title


class ThreadService:
    """Service class for thread and message operations scoped to one owner."""

    def __init__(
        self,
        repository: ChatRepository,
        default_title: str = DEFAULT_THREAD_TITLE,
        list_limit: int = 50,
    ):
        """Initialize thread service.

        Args:
            repository: Chat store used for every read and write.
            default_title: Title given to new threads.
            list_limit: Upper bound on the number of threads listed.
        """
        self.repository = repository
        self.default_title = default_title
        self.list_limit = list_limit

    async def create_thread(self, user_id: UUID, title: str | None = None) -> ThreadResponse:
        try:
            thread = await self.repository.create_thread(user_id, title or self.default_title)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create thread: {str(e)}")
            raise PersistenceError("Failed to create thread") from e
        logger.info(f"Created thread {thread.id}")
        return ThreadResponse.model_validate(thread)

    async def get_thread(self, thread_id: UUID, user_id: UUID) -> ThreadResponse:
        return ThreadResponse.model_validate(await self._require_thread(thread_id, user_id))

    async def get_latest_thread(self, user_id: UUID) -> ThreadResponse | None:
        thread = await self.repository.get_latest_thread(user_id)
        return ThreadResponse.model_validate(thread) if thread else None

    async def list_threads(self, user_id: UUID, limit: int | None = None) -> ThreadListResponse:
        """List the caller's threads, newest first.

        Args:
            user_id: Owner of the threads.
            limit: Requested page size, clamped to ``list_limit``.

        Returns:
            Thread summaries with last-message preview and message count.
        """
        effective_limit = min(limit or self.list_limit, self.list_limit)
        threads = await self.repository.list_thread_summaries(user_id, effective_limit)
        return ThreadListResponse(threads=threads, limit=effective_limit)

    async def rename_thread(self, thread_id: UUID, user_id: UUID, title: str) -> ThreadResponse:
        thread = await self.repository.rename_thread(thread_id, user_id, title)
        if thread is None:
            raise ThreadNotFoundError()
        return ThreadResponse.model_validate(thread)

    async def delete_thread(self, thread_id: UUID, user_id: UUID) -> bool:
        try:
            deleted = await self.repository.delete_thread(thread_id, user_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete thread {thread_id}: {str(e)}")
            raise PersistenceError("Failed to delete thread") from e
        if not deleted:
            raise ThreadNotFoundError()
        logger.info(f"Deleted thread {thread_id}")
        return True

    async def touch_thread(self, thread_id: UUID, user_id: UUID) -> ThreadResponse:
        await self._require_thread(thread_id, user_id)
        await self.repository.touch_thread(thread_id)
        return await self.get_thread(thread_id, user_id)

    async def list_messages(self, thread_id: UUID, user_id: UUID) -> list[MessageResponse]:
        await self._require_thread(thread_id, user_id)
        messages = await self.repository.list_messages(thread_id)
        return [MessageResponse.model_validate(message) for message in messages]

    async def add_message(self, thread_id: UUID, user_id: UUID, payload: MessageCreate) -> MessageResponse:
        """Persist one message and bump the thread timestamp.

        A repeated ``payload.id`` returns the stored message without writing.
        The first user message of a thread that still has the default title
        also renames the thread.
        """
        thread = await self._require_thread(thread_id, user_id)
        try:
            message, created = await self.repository.add_message(
                thread_id,
                payload.sender,
                payload.content,
                metadata=payload.metadata,
                message_id=payload.id,
            )
            if created:
                await self.repository.touch_thread(thread_id, title=self._title_for(thread, payload))
        except SQLAlchemyError as e:
            logger.error(f"Failed to save message in thread {thread_id}: {str(e)}")
            raise PersistenceError("Failed to save message") from e

        return MessageResponse.model_validate(message)

    # Private helper methods

    async def _require_thread(self, thread_id: UUID, user_id: UUID) -> ChatThread:
        thread = await self.repository.get_thread(thread_id, user_id)
        if thread is None:
            raise ThreadNotFoundError()
        return thread

    def _title_for(self, thread: ChatThread, payload: MessageCreate) -> str | None:
        if payload.sender == MessageSender.USER and thread.title == self.default_title:
            return generate_thread_title(payload.content)
        return None

