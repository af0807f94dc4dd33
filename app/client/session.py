"""Chat session controller: current thread, its messages and the send protocol.

A send runs as a small state machine (``PendingSend``):

    IDLE -> SENDING -> COMMITTED | ROLLED_BACK

The user message is shown before it is stored. If storing it fails the
message is removed again (ROLLED_BACK). Once it is stored the send always
ends COMMITTED, with either the real answer or a fallback agent message.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from app.client.api import KnowledgeBaseApi
from app.client.errors import InitializationError, ThreadCreateError, ThreadLoadError
from app.client.notifications import Notifier
from app.schemas.chat import MessageResponse, MessageSender, SourceCitation, ThreadResponse
from models.base import utcnow

logger = logging.getLogger(__name__)

RAG_FALLBACK_TEXT = (
    "I apologize, but I'm experiencing technical difficulties accessing our knowledge base. "
    "Please try again in a moment, or contact your supervisor if the issue persists."
)
SEND_ERROR_TEXT = (
    "I apologize, but I encountered an error processing your message. "
    "Please try again. If the problem persists, please contact your supervisor."
)


@dataclass
class ChatMessage:
    id: UUID
    sender: MessageSender
    content: str
    created_at: datetime = field(default_factory=utcnow)
    sources: list[SourceCitation] = field(default_factory=list)

    @classmethod
    def from_response(cls, message: MessageResponse) -> "ChatMessage":
        return cls(
            id=message.id,
            sender=message.sender,
            content=message.content,
            created_at=message.created_at,
            sources=list(message.sources),
        )


class SendState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class PendingSend:
    """Tracks one send; rejects transitions that skip a state."""

    def __init__(self, text: str, thread_id: UUID):
        self.text = text
        self.thread_id = thread_id
        self.optimistic = ChatMessage(id=uuid4(), sender=MessageSender.USER, content=text)
        self.state = SendState.IDLE

    def begin(self) -> None:
        self._move(SendState.IDLE, SendState.SENDING)

    def commit(self) -> None:
        self._move(SendState.SENDING, SendState.COMMITTED)

    def roll_back(self) -> None:
        self._move(SendState.SENDING, SendState.ROLLED_BACK)

    def _move(self, expected: SendState, target: SendState) -> None:
        if self.state != expected:
            raise RuntimeError(f"Cannot move send from {self.state.value} to {target.value}")
        self.state = target


@dataclass(frozen=True)
class Answered:
    message: ChatMessage


@dataclass(frozen=True)
class Degraded:
    user_message: ChatMessage
    fallback: ChatMessage
    error: str


@dataclass(frozen=True)
class RolledBack:
    error_message: ChatMessage
    error: str


@dataclass(frozen=True)
class Skipped:
    reason: str


SendOutcome = Answered | Degraded | RolledBack | Skipped

ThreadsChangedListener = Callable[[], Awaitable[None]]


class ChatSessionController:
    """Holds the current thread and drives sends against the backend."""

    def __init__(self, backend: KnowledgeBaseApi, notifier: Notifier):
        self.backend = backend
        self.notifier = notifier
        self.thread: ThreadResponse | None = None
        self.messages: list[ChatMessage] = []
        self.is_loading = False
        self._listeners: list[ThreadsChangedListener] = []

    @property
    def current_thread_id(self) -> UUID | None:
        return self.thread.id if self.thread else None

    @property
    def last_response(self) -> str | None:
        """Content of the latest agent message, for replaying it as audio."""
        for message in reversed(self.messages):
            if message.sender == MessageSender.AGENT:
                return message.content
        return None

    def subscribe(self, listener: ThreadsChangedListener) -> None:
        """Register a callback run whenever the thread list may have changed."""
        self._listeners.append(listener)

    async def initialize(self) -> ThreadResponse:
        """Resume the most recently updated thread, creating one if there is none.

        Raises:
            InitializationError: If the thread or its messages cannot be loaded
        """
        try:
            thread = await self.backend.get_latest_thread()
            if thread is None:
                thread = await self.backend.create_thread()
                logger.info(f"Created first thread {thread.id}")
        except Exception as e:
            logger.error(f"Failed to initialize chat: {str(e)}")
            self.notifier.error("Failed to initialize chat. Please refresh the page and try again.")
            raise InitializationError(str(e)) from e

        try:
            messages = await self.backend.list_messages(thread.id)
        except Exception as e:
            logger.error(f"Failed to load messages of thread {thread.id}: {str(e)}")
            self.notifier.error("Failed to load chat history. Some messages may not be visible.")
            raise InitializationError(str(e)) from e

        self.thread = thread
        self.messages = [ChatMessage.from_response(message) for message in messages]
        return thread

    async def send(self, text: str) -> SendOutcome:
        """Send a user message and append the answer.

        Never raises; the outcome says how the send ended.
        """
        question = (text or "").strip()
        if not question:
            return Skipped("empty")
        if self.is_loading:
            return Skipped("busy")
        if self.thread is None:
            return Skipped("no thread")

        pending = PendingSend(question, self.thread.id)
        self.messages.append(pending.optimistic)
        self.is_loading = True
        pending.begin()
        try:
            return await self._run(pending)
        finally:
            self.is_loading = False

    async def select_thread(self, thread_id: UUID) -> ThreadResponse:
        """Switch to another thread; state is only replaced once both loads succeed.

        Raises:
            ThreadLoadError: If the thread is missing, not owned or unreadable
        """
        try:
            thread = await self.backend.get_thread(thread_id)
            messages = await self.backend.list_messages(thread_id)
        except Exception as e:
            logger.error(f"Failed to load thread {thread_id}: {str(e)}")
            self.notifier.error("Failed to load chat thread.")
            raise ThreadLoadError(str(e)) from e

        self.thread = thread
        self.messages = [ChatMessage.from_response(message) for message in messages]
        return thread

    async def new_chat(self) -> ThreadResponse:
        """Create an empty thread and make it current.

        Raises:
            ThreadCreateError: If the thread cannot be created
        """
        try:
            thread = await self.backend.create_thread()
        except Exception as e:
            logger.error(f"Failed to create thread: {str(e)}")
            self.notifier.error("Failed to create new chat.")
            raise ThreadCreateError(str(e)) from e

        self.thread = thread
        self.messages = []
        await self._notify_threads_changed()
        return thread

    # Private helper methods

    async def _run(self, pending: PendingSend) -> SendOutcome:
        try:
            stored = await self.backend.add_message(
                pending.thread_id,
                MessageSender.USER,
                pending.text,
                message_id=pending.optimistic.id,
            )
        except Exception as e:
            logger.error(f"Failed to save user message: {str(e)}")
            self._remove(pending.optimistic.id)
            error_message = self._append_agent(SEND_ERROR_TEXT)
            self.notifier.error("Failed to send message. Please try again.")
            pending.roll_back()
            return RolledBack(error_message=error_message, error=str(e))

        user_message = ChatMessage.from_response(stored)
        self._replace(pending.optimistic.id, user_message)

        try:
            answer = await self.backend.ask(pending.text, pending.thread_id)
        except Exception as e:
            logger.error(f"Knowledge base request failed: {str(e)}")
            fallback = self._append_agent(RAG_FALLBACK_TEXT)
            pending.commit()
            return Degraded(user_message=user_message, fallback=fallback, error=str(e))

        agent_message = ChatMessage(
            id=answer.message_id,
            sender=MessageSender.AGENT,
            content=answer.answer,
            sources=list(answer.sources),
        )
        self.messages.append(agent_message)
        await self._store_answer(pending.thread_id, agent_message)
        pending.commit()
        await self._notify_threads_changed()
        return Answered(message=agent_message)

    async def _store_answer(self, thread_id: UUID, message: ChatMessage) -> None:
        # The proxy already stored this id; the write only fills the gap if it did not.
        metadata = None
        if message.sources:
            metadata = {"sources": [source.model_dump(exclude_none=True) for source in message.sources]}
        try:
            await self.backend.add_message(
                thread_id,
                MessageSender.AGENT,
                message.content,
                metadata=metadata,
                message_id=message.id,
            )
            await self.backend.touch_thread(thread_id)
        except Exception as e:
            logger.warning(f"Failed to save answer {message.id}: {str(e)}")
            self.notifier.error("The answer could not be saved and may be missing after reload.")

    async def _notify_threads_changed(self) -> None:
        for listener in list(self._listeners):
            try:
                await listener()
            except Exception as e:
                logger.warning(f"Thread list listener failed: {str(e)}")

    def _append_agent(self, content: str) -> ChatMessage:
        message = ChatMessage(id=uuid4(), sender=MessageSender.AGENT, content=content)
        self.messages.append(message)
        return message

    def _remove(self, message_id: UUID) -> None:
        self.messages = [message for message in self.messages if message.id != message_id]

    def _replace(self, message_id: UUID, message: ChatMessage) -> None:
        self.messages = [message if m.id == message_id else m for m in self.messages]
