"""Knowledge-base question endpoint.

The response bodies follow the function contract used by the chat client
(``answer`` / ``error``) rather than the ``ResponseSchema`` envelope.
"""

import logging
import time

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from app.core.dependencies import get_current_user, get_rag_service
from app.domains.rag.service import RagService, elapsed_ms
from app.exceptions.base import BaseAppException
from app.schemas.rag import RagQuestion
from app.schemas.user import CurrentUser

logger = logging.getLogger(__name__)

MISSING_INPUT_MESSAGE = "Question and threadId are required"

FALLBACK_ANSWER = (
    "I apologize, but I encountered an error while processing your question. "
    "Please try again or contact support if the issue persists."
)

router = APIRouter(prefix="/functions/v1", tags=["functions"])


def failure_response(status_code: int, error: str, started: float) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "answer": FALLBACK_ANSWER,
            "metadata": {"processingTime": elapsed_ms(started), "failed": True},
        },
    )


@router.post("/chat-with-rag")
async def chat_with_rag(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    service: RagService = Depends(get_rag_service),
):
    """Answer a question from the knowledge base and store it in the thread.

    Args:
        request: Raw request carrying ``{question, threadId}``
        current_user: Current authenticated user
        service: RAG service

    Returns:
        Answer, cited sources, stored message id and stage timings
    """
    started = time.perf_counter()

    try:
        body = await request.json()
    except ValueError:
        body = None

    try:
        rag_question = RagQuestion.model_validate(body)
    except PydanticValidationError:
        logger.warning("Rejected question request with missing fields")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": MISSING_INPUT_MESSAGE},
        )

    try:
        result = await service.answer_question(
            user_id=current_user.id,
            thread_id=rag_question.thread_id,
            question=rag_question.question,
        )
    except BaseAppException as e:
        logger.error(f"Question failed after {elapsed_ms(started)}ms: {str(e)}")
        return failure_response(e.status_code, str(e), started)
    except Exception as e:
        logger.exception(f"Unexpected error answering question: {str(e)}")
        return failure_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", started)

    return result.model_dump(mode="json", by_alias=True, exclude_none=True)
