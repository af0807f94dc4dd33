"""HTTP client for the OpenAI audio endpoints."""

import asyncio
import logging
from typing import Any

import httpx

from app.exceptions.upstream import (
    UpstreamConfigurationError,
    UpstreamParsingError,
    UpstreamResponseError,
    UpstreamServiceError,
    UpstreamTimeoutError,
)

logger = logging.getLogger(__name__)


class OpenAISpeechClient:
    """Transcription and synthesis calls, one attempt each with a hard timeout."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str | None,
        base_url: str = "https://api.openai.com/v1",
        transcription_model: str = "whisper-1",
        transcription_timeout: float = 30,
        speech_model: str = "tts-1-hd",
        speech_speed: float = 1.1,
        speech_timeout: float = 20,
    ):
        self.http_client = http_client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.transcription_model = transcription_model
        self.transcription_timeout = transcription_timeout
        self.speech_model = speech_model
        self.speech_speed = speech_speed
        self.speech_timeout = speech_timeout

    async def transcribe(
        self,
        audio: bytes,
        filename: str = "audio.webm",
        content_type: str = "audio/webm",
    ) -> str:
        """Upload a recording and return the recognized text."""
        response = await self._post(
            "/audio/transcriptions",
            timeout=self.transcription_timeout,
            files={"file": (filename, audio, content_type)},
            data={"model": self.transcription_model},
        )
        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamParsingError("Transcription service returned invalid JSON") from e
        if not isinstance(payload, dict):
            raise UpstreamParsingError("Transcription service returned an unexpected payload")
        return payload.get("text") or ""

    async def synthesize(self, text: str, voice: str) -> bytes:
        """Render ``text`` as MP3 audio."""
        response = await self._post(
            "/audio/speech",
            timeout=self.speech_timeout,
            json={
                "model": self.speech_model,
                "input": text,
                "voice": voice,
                "response_format": "mp3",
                "speed": self.speech_speed,
            },
        )
        return response.content

    async def _post(self, path: str, timeout: float, **kwargs: Any) -> httpx.Response:
        if not self.api_key:
            raise UpstreamConfigurationError("Speech service is not configured")

        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            response = await asyncio.wait_for(
                self.http_client.post(url, headers=headers, **kwargs),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"OpenAI request to {path} timed out after {timeout}s")
            raise UpstreamTimeoutError(f"OpenAI API did not respond within {timeout}s") from e
        except httpx.HTTPError as e:
            logger.error(f"OpenAI request to {path} failed: {str(e)}")
            raise UpstreamServiceError(f"OpenAI API request failed: {str(e)}") from e

        logger.info(f"OpenAI response received from {path}, status: {response.status_code}")
        if not response.is_success:
            error_text = response.text[:500]
            logger.error(f"OpenAI API error: {response.status_code} {error_text}")
            raise UpstreamResponseError(
                f"OpenAI API error: {response.status_code} - {error_text}",
                upstream_status=response.status_code,
            )
        return response
