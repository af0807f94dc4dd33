"""Sidebar thread list: newest first, with delete."""

import logging
from uuid import UUID

from app.client.api import KnowledgeBaseApi
from app.client.errors import ThreadCreateError
from app.client.notifications import Notifier
from app.client.session import ChatSessionController
from app.schemas.chat import ThreadSummary

logger = logging.getLogger(__name__)

THREAD_LIST_LIMIT = 50


class ThreadListView:
    """Keeps the listed threads in sync with the session controller."""

    def __init__(
        self,
        backend: KnowledgeBaseApi,
        session: ChatSessionController,
        notifier: Notifier,
        limit: int = THREAD_LIST_LIMIT,
    ):
        self.backend = backend
        self.session = session
        self.notifier = notifier
        self.limit = limit
        self.threads: list[ThreadSummary] = []
        self.load_failed = False
        session.subscribe(self.refresh)

    async def refresh(self) -> list[ThreadSummary]:
        """Reload the list; on failure show an empty list rather than stale rows."""
        try:
            threads = await self.backend.list_threads(limit=self.limit)
        except Exception as e:
            logger.error(f"Failed to load threads: {str(e)}")
            self.threads = []
            self.load_failed = True
            self.notifier.error("Failed to load chat history.")
            return self.threads

        self.threads = sorted(threads, key=lambda thread: thread.updated_at, reverse=True)
        self.load_failed = False
        return self.threads

    async def delete(self, thread_id: UUID) -> bool:
        """Delete one thread; deleting the current thread starts a new chat."""
        try:
            await self.backend.delete_thread(thread_id)
        except Exception as e:
            logger.error(f"Failed to delete thread {thread_id}: {str(e)}")
            self.notifier.error("Failed to delete thread.")
            return False

        self.threads = [thread for thread in self.threads if thread.id != thread_id]
        self.notifier.notify("Thread deleted", "Chat thread has been removed.")

        if self.session.current_thread_id == thread_id:
            try:
                # new_chat notifies subscribers, which refreshes this list
                await self.session.new_chat()
            except ThreadCreateError:
                # new_chat already raised the notice; leave no deleted thread current
                self.session.thread = None
                self.session.messages = []
        return True
