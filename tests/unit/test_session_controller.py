"""
Unit tests for ChatSessionController and the send state machine.
"""

import asyncio
import uuid
from unittest.mock import AsyncMock

import pytest

from app.client.api import ApiError, KnowledgeBaseApi
from app.client.errors import InitializationError, ThreadCreateError, ThreadLoadError
from app.client.notifications import Notifier
from app.client.rendering import source_badges
from app.client.session import (
    RAG_FALLBACK_TEXT,
    SEND_ERROR_TEXT,
    Answered,
    ChatSessionController,
    Degraded,
    PendingSend,
    RolledBack,
    SendState,
    Skipped,
)
from app.schemas.chat import MessageResponse, MessageSender, SourceCitation, ThreadResponse
from app.schemas.rag import RagAnswer, RagTimings
from models.base import utcnow


def make_thread(title="New Chat") -> ThreadResponse:
    now = utcnow()
    return ThreadResponse(id=uuid.uuid4(), user_id=uuid.uuid4(), title=title, created_at=now, updated_at=now)


def make_message(thread_id, sender, content, message_id=None, metadata=None) -> MessageResponse:
    return MessageResponse(
        id=message_id or uuid.uuid4(),
        thread_id=thread_id,
        sender=sender,
        content=content,
        metadata=metadata,
        created_at=utcnow(),
    )


def make_answer(text="See policy doc", sources=None) -> RagAnswer:
    return RagAnswer(
        answer=text,
        sources=sources if sources is not None else [SourceCitation(title="Refund Policy")],
        message_id=uuid.uuid4(),
        metadata=RagTimings(processing_time=120, rag_time=100, db_time=15),
    )


@pytest.fixture
def backend():
    api = AsyncMock(spec=KnowledgeBaseApi)

    async def echo_message(thread_id, sender, content, metadata=None, message_id=None):
        return make_message(thread_id, sender, content, message_id=message_id, metadata=metadata)

    api.add_message.side_effect = echo_message
    api.ask.return_value = make_answer()
    api.list_messages.return_value = []
    return api


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def session(backend, notifier):
    controller = ChatSessionController(backend, notifier)
    controller.thread = make_thread()
    return controller


class TestPendingSend:
    """Test cases for send state transitions."""

    def test_happy_path(self):
        pending = PendingSend("Hi", uuid.uuid4())
        assert pending.state == SendState.IDLE

        pending.begin()
        pending.commit()

        assert pending.state == SendState.COMMITTED

    def test_cannot_commit_after_rollback(self):
        pending = PendingSend("Hi", uuid.uuid4())
        pending.begin()
        pending.roll_back()

        with pytest.raises(RuntimeError):
            pending.commit()

    def test_cannot_commit_before_begin(self):
        with pytest.raises(RuntimeError):
            PendingSend("Hi", uuid.uuid4()).commit()


class TestInitialize:
    """Test cases for ChatSessionController.initialize."""

    @pytest.mark.asyncio
    async def test_resumes_latest_thread(self, backend, notifier):
        thread = make_thread("Refunds")
        backend.get_latest_thread.return_value = thread
        backend.list_messages.return_value = [
            make_message(thread.id, MessageSender.USER, "Hi"),
            make_message(thread.id, MessageSender.AGENT, "Hello"),
        ]
        controller = ChatSessionController(backend, notifier)

        await controller.initialize()

        assert controller.thread == thread
        assert [m.content for m in controller.messages] == ["Hi", "Hello"]
        backend.create_thread.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_creates_thread_when_none(self, backend, notifier):
        thread = make_thread()
        backend.get_latest_thread.return_value = None
        backend.create_thread.return_value = thread
        controller = ChatSessionController(backend, notifier)

        await controller.initialize()

        assert controller.thread == thread
        assert controller.messages == []

    @pytest.mark.asyncio
    async def test_failure_raises_and_notifies(self, backend, notifier):
        backend.get_latest_thread.side_effect = ApiError("boom", 500)
        controller = ChatSessionController(backend, notifier)

        with pytest.raises(InitializationError):
            await controller.initialize()

        assert notifier.notices[-1].variant == "destructive"
        assert controller.thread is None


class TestSend:
    """Test cases for ChatSessionController.send."""

    @pytest.mark.asyncio
    async def test_refund_policy_scenario(self, session, backend):
        outcome = await session.send("What is our refund policy?")

        assert isinstance(outcome, Answered)
        assert outcome.message.content == "See policy doc"
        assert outcome.message.sources == [SourceCitation(title="Refund Policy", section=None)]
        assert [m.sender for m in session.messages] == [MessageSender.USER, MessageSender.AGENT]
        assert session.is_loading is False
        assert session.last_response == "See policy doc"

    @pytest.mark.asyncio
    async def test_answer_persisted_with_same_id_and_thread_touched(self, session, backend):
        outcome = await session.send("What is our refund policy?")

        agent_call = backend.add_message.await_args_list[-1]
        assert agent_call.args[1] == MessageSender.AGENT
        assert agent_call.kwargs["message_id"] == outcome.message.id
        assert agent_call.kwargs["metadata"] == {"sources": [{"title": "Refund Policy"}]}
        backend.touch_thread.assert_awaited_once_with(session.thread.id)

    @pytest.mark.asyncio
    async def test_answer_without_sources_stores_null_metadata(self, session, backend):
        backend.ask.return_value = make_answer(sources=[])

        await session.send("Hi")

        assert backend.add_message.await_args_list[-1].kwargs["metadata"] is None

    @pytest.mark.asyncio
    async def test_empty_input_is_skipped(self, session, backend):
        outcome = await session.send("   ")

        assert outcome == Skipped("empty")
        assert session.messages == []
        backend.add_message.assert_not_awaited()
        backend.ask.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_optimistic_message_and_loading_flag_while_in_flight(self, session, backend):
        release = asyncio.Event()
        seen = {}

        async def slow_store(thread_id, sender, content, metadata=None, message_id=None):
            seen["messages"] = list(session.messages)
            seen["loading"] = session.is_loading
            await release.wait()
            return make_message(thread_id, sender, content, message_id=message_id)

        backend.add_message.side_effect = slow_store
        task = asyncio.create_task(session.send("Where is my order?"))
        await asyncio.sleep(0)

        assert [m.content for m in seen["messages"]] == ["Where is my order?"]
        assert seen["loading"] is True
        assert await session.send("Second question") == Skipped("busy")

        release.set()
        await task
        assert session.is_loading is False

    @pytest.mark.asyncio
    async def test_user_message_failure_rolls_back(self, session, backend, notifier):
        before = len(session.messages)
        backend.add_message.side_effect = ApiError("write failed", 500)

        outcome = await session.send("Hello")

        assert isinstance(outcome, RolledBack)
        assert len(session.messages) == before + 1
        assert session.messages[-1].sender == MessageSender.AGENT
        assert session.messages[-1].content == SEND_ERROR_TEXT
        assert all(m.content != "Hello" for m in session.messages)
        assert notifier.notices[-1].description == "Failed to send message. Please try again."
        backend.ask.assert_not_awaited()
        assert session.is_loading is False

    @pytest.mark.asyncio
    async def test_rag_failure_degrades(self, session, backend):
        backend.ask.side_effect = ApiError("RAG service error: 500", 502)

        outcome = await session.send("Hello")

        assert isinstance(outcome, Degraded)
        assert [m.content for m in session.messages] == ["Hello", RAG_FALLBACK_TEXT]
        assert session.messages[-1].sources == []
        assert backend.add_message.await_count == 1
        assert session.is_loading is False

    @pytest.mark.asyncio
    async def test_answer_store_failure_keeps_answer(self, session, backend, notifier):
        calls = {"count": 0}

        async def fail_second(thread_id, sender, content, metadata=None, message_id=None):
            calls["count"] += 1
            if calls["count"] == 2:
                raise ApiError("write failed", 500)
            return make_message(thread_id, sender, content, message_id=message_id)

        backend.add_message.side_effect = fail_second

        outcome = await session.send("Hello")

        assert isinstance(outcome, Answered)
        assert session.messages[-1].content == "See policy doc"
        assert notifier.notices[-1].variant == "destructive"

    @pytest.mark.asyncio
    async def test_source_badges_capped_at_five(self, session, backend):
        backend.ask.return_value = make_answer(
            sources=[SourceCitation(title=f"Doc {i}", section="Page 1") for i in range(5)]
        )

        outcome = await session.send("Hello")

        badges = source_badges(outcome.message.sources)
        assert len(badges) == 5
        assert badges[0] == "Doc 0 - Page 1"

    @pytest.mark.asyncio
    async def test_listeners_notified_after_answer(self, session):
        listener = AsyncMock()
        session.subscribe(listener)

        await session.send("Hello")

        listener.assert_awaited_once()


class TestThreadSwitching:
    """Test cases for select_thread and new_chat."""

    @pytest.mark.asyncio
    async def test_select_thread_replaces_state(self, session, backend):
        other = make_thread("Shipping")
        backend.get_thread.return_value = other
        backend.list_messages.return_value = [make_message(other.id, MessageSender.USER, "Where?")]

        await session.select_thread(other.id)

        assert session.thread == other
        assert [m.content for m in session.messages] == ["Where?"]

    @pytest.mark.asyncio
    async def test_select_thread_failure_keeps_state(self, session, backend, notifier):
        current = session.thread
        await session.send("Hello")
        messages = list(session.messages)
        backend.get_thread.side_effect = ApiError("Thread not found", 404)

        with pytest.raises(ThreadLoadError):
            await session.select_thread(uuid.uuid4())

        assert session.thread == current
        assert session.messages == messages
        assert notifier.notices[-1].description == "Failed to load chat thread."

    @pytest.mark.asyncio
    async def test_new_chat(self, session, backend):
        await session.send("Hello")
        fresh = make_thread()
        backend.create_thread.return_value = fresh
        listener = AsyncMock()
        session.subscribe(listener)

        await session.new_chat()

        assert session.thread == fresh
        assert session.messages == []
        listener.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_new_chat_failure(self, session, backend, notifier):
        backend.create_thread.side_effect = ApiError("boom", 500)

        with pytest.raises(ThreadCreateError):
            await session.new_chat()
        assert notifier.notices[-1].description == "Failed to create new chat."
