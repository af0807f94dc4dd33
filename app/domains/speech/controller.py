"""Speech proxy endpoints (speech-to-text, text-to-speech)."""

import logging
import time
from typing import Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from app.core.dependencies import get_speech_service, validate_token
from app.domains.speech.service import SpeechService, elapsed_ms
from app.exceptions.base import BaseAppException

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/functions/v1",
    tags=["functions"],
    dependencies=[Depends(validate_token)],
)


async def read_json_object(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def error_status(exc: Exception) -> int:
    if isinstance(exc, BaseAppException):
        return exc.status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@router.post("/speech-to-text")
async def speech_to_text(
    request: Request,
    service: SpeechService = Depends(get_speech_service),
):
    """Transcribe base64 encoded audio.

    Returns:
        ``{text, processingTime}`` or ``{error, processingTime}``
    """
    started = time.perf_counter()
    body = await read_json_object(request)

    try:
        result = await service.transcribe(body.get("audio"))
    except Exception as e:
        processing_time = elapsed_ms(started)
        logger.error(f"Speech-to-text error after {processing_time}ms: {str(e)}")
        return JSONResponse(
            status_code=error_status(e),
            content={"error": str(e), "processingTime": processing_time},
        )

    return result.model_dump(by_alias=True)


@router.post("/text-to-speech")
async def text_to_speech(
    request: Request,
    service: SpeechService = Depends(get_speech_service),
):
    """Synthesize speech for the given text.

    Returns:
        ``{audioContent, metadata}`` or ``{error, metadata}``
    """
    started = time.perf_counter()
    body = await read_json_object(request)

    try:
        result = await service.synthesize(body.get("text"), body.get("voice"))
    except Exception as e:
        processing_time = elapsed_ms(started)
        logger.error(f"Text-to-speech error after {processing_time}ms: {str(e)}")
        return JSONResponse(
            status_code=error_status(e),
            content={"error": str(e), "metadata": {"processingTime": processing_time, "failed": True}},
        )

    return result.model_dump(by_alias=True)
