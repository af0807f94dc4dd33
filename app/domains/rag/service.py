"""Knowledge-base question answering backed by the hosted Flowise flow."""

import asyncio
import logging
import time
from uuid import UUID

from app.domains.rag.adapter import FlowiseResponseAdapter
from app.domains.rag.client import FlowiseClient
from app.domains.threads.repository import ChatRepository
from app.exceptions.chat import PersistenceError, ThreadNotFoundError
from app.schemas.chat import SourceCitation
from app.schemas.rag import RagAnswer, RagTimings
from models.base import utcnow
from models.message import MessageSender

logger = logging.getLogger(__name__)

RAG_MODEL_NAME = "flowise-rag"


def elapsed_ms(started: float) -> int:
    return round((time.perf_counter() - started) * 1000)


class RagService:
    """Answers a question, stores the answer in the thread and reports timings."""

    def __init__(
        self,
        repository: ChatRepository,
        client: FlowiseClient,
        max_sources: int = 5,
        default_source_title: str = "Policy Document",
    ):
        """Initialize RAG service.

        Args:
            repository: Chat store the answer is written to.
            client: Flowise prediction client.
            max_sources: Upper bound on citations returned per answer.
            default_source_title: Title for documents that carry none.
        """
        self.repository = repository
        self.client = client
        self.adapter = FlowiseResponseAdapter(
            max_sources=max_sources, default_source_title=default_source_title
        )

    async def answer_question(self, user_id: UUID, thread_id: UUID, question: str) -> RagAnswer:
        """Answer ``question`` inside one of the caller's threads.

        Raises:
            ThreadNotFoundError: If the thread does not exist or is not owned
            UpstreamServiceError: If the hosted flow fails or times out
            PersistenceError: If the answer cannot be stored
        """
        started = time.perf_counter()

        thread = await self.repository.get_thread(thread_id, user_id)
        if thread is None:
            raise ThreadNotFoundError()

        logger.info(f"Processing question for thread {thread_id}: {question[:100]}")

        rag_started = time.perf_counter()
        payload = await self.client.predict(question)
        rag_time = elapsed_ms(rag_started)

        answer = self.adapter.answer(payload)
        sources = self.adapter.sources(payload)
        logger.info(f"Extracted answer ({len(answer)} chars) with {len(sources)} sources")

        db_started = time.perf_counter()
        message_id = await self._store_answer(thread_id, answer, sources, rag_time)
        db_time = elapsed_ms(db_started)

        processing_time = elapsed_ms(started)
        logger.info(
            f"Answered question for thread {thread_id} in {processing_time}ms "
            f"(rag {rag_time}ms, db {db_time}ms)"
        )
        return RagAnswer(
            answer=answer,
            sources=sources,
            message_id=message_id,
            metadata=RagTimings(processing_time=processing_time, rag_time=rag_time, db_time=db_time),
        )

    async def _store_answer(
        self,
        thread_id: UUID,
        answer: str,
        sources: list[SourceCitation],
        rag_time: int,
    ) -> UUID:
        metadata = {
            "sources": [source.model_dump(exclude_none=True) for source in sources],
            "timestamp": utcnow().isoformat(),
            "model": RAG_MODEL_NAME,
            "processingTime": rag_time,
        }

        # The two writes are independent; only the message write is required.
        message_result, touch_result = await asyncio.gather(
            self.repository.add_message(thread_id, MessageSender.AGENT, answer, metadata=metadata),
            self.repository.touch_thread(thread_id),
            return_exceptions=True,
        )

        if isinstance(touch_result, BaseException):
            logger.warning(f"Failed to update timestamp of thread {thread_id}: {str(touch_result)}")

        if isinstance(message_result, BaseException):
            logger.error(f"Failed to save answer in thread {thread_id}: {str(message_result)}")
            raise PersistenceError("Failed to save answer") from message_result

        message, _ = message_result
        return message.id
