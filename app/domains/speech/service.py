"""Speech service: audio payload decoding, truncation and timing around the OpenAI client."""

import base64
import binascii
import logging
import time

from app.domains.speech.client import OpenAISpeechClient
from app.exceptions.base import BadRequestError
from app.schemas.speech import SynthesisMetadata, SynthesisResult, TranscriptionResult

logger = logging.getLogger(__name__)

DEFAULT_AUDIO_MIME_TYPE = "audio/webm"
TRUNCATION_SUFFIX = "..."


def elapsed_ms(started: float) -> int:
    return round((time.perf_counter() - started) * 1000)


def decode_audio_payload(
    payload: str | None, fallback_mime_type: str = DEFAULT_AUDIO_MIME_TYPE
) -> tuple[bytes | None, str]:
    """Decode plain base64 or a ``data:<mime>;base64,`` URL.

    Returns ``(None, mime_type)`` when the payload is missing or cannot be decoded.
    """
    raw = (payload or "").strip()
    if not raw:
        return None, fallback_mime_type

    mime_type = fallback_mime_type
    encoded = raw

    if raw.startswith("data:"):
        if "," not in raw:
            return None, fallback_mime_type
        header, encoded = raw.split(",", 1)

        segments = [segment.strip() for segment in header[5:].split(";") if segment.strip()]
        if segments and "/" in segments[0]:
            mime_type = segments[0].lower()
        if not any(segment.lower() == "base64" for segment in segments[1:]):
            return None, mime_type

    try:
        return base64.b64decode(encoded, validate=True), mime_type
    except (binascii.Error, ValueError):
        return None, mime_type


def truncate_for_speech(text: str, max_chars: int) -> tuple[str, bool]:
    """Cut ``text`` to ``max_chars`` characters plus an ellipsis."""
    if len(text) <= max_chars:
        return text, False
    return text[:max_chars] + TRUNCATION_SUFFIX, True


class SpeechService:
    """Stateless audio to text and text to audio transforms."""

    def __init__(self, client: OpenAISpeechClient, default_voice: str = "alloy", max_chars: int = 4000):
        self.client = client
        self.default_voice = default_voice
        self.max_chars = max_chars

    async def transcribe(self, audio_payload: str | None) -> TranscriptionResult:
        """Transcribe a base64 recording.

        Raises:
            BadRequestError: If the audio is missing, not base64 or empty
            UpstreamServiceError: If the transcription call fails
        """
        started = time.perf_counter()

        if not audio_payload or not isinstance(audio_payload, str):
            raise BadRequestError("No audio data provided")
        logger.info(f"Speech-to-text request started, audio data size: {len(audio_payload)}")

        audio, mime_type = decode_audio_payload(audio_payload)
        if audio is None:
            raise BadRequestError("Invalid audio data: expected base64")
        if not audio:
            raise BadRequestError("Audio data is empty")

        logger.info(f"Audio converted to binary, size: {len(audio)} bytes")
        filename = f"audio.{mime_type.split('/', 1)[-1]}"
        text = await self.client.transcribe(audio, filename=filename, content_type=mime_type)

        processing_time = elapsed_ms(started)
        logger.info(f"Transcription completed in {processing_time}ms ({len(text)} chars)")
        return TranscriptionResult(text=text, processing_time=processing_time)

    async def synthesize(self, text: str | None, voice: str | None = None) -> SynthesisResult:
        """Synthesize speech for ``text``.

        Raises:
            BadRequestError: If no text is given
            UpstreamServiceError: If the synthesis call fails
        """
        started = time.perf_counter()

        if not text or not isinstance(text, str):
            raise BadRequestError("Text is required")
        logger.info(f"Text-to-speech request started, text length: {len(text)}, voice: {voice}")

        speech_text, truncated = truncate_for_speech(text, self.max_chars)
        if truncated:
            logger.info(f"Text truncated from {len(text)} to {len(speech_text)} characters")

        api_started = time.perf_counter()
        audio = await self.client.synthesize(speech_text, voice or self.default_voice)
        api_time = elapsed_ms(api_started)

        conversion_started = time.perf_counter()
        audio_content = base64.b64encode(audio).decode("ascii")
        conversion_time = elapsed_ms(conversion_started)

        metadata = SynthesisMetadata(
            processing_time=elapsed_ms(started),
            api_time=api_time,
            conversion_time=conversion_time,
            audio_size=len(audio),
            text_length=len(speech_text),
            truncated=truncated,
        )
        logger.info(
            f"TTS completed in {metadata.processing_time}ms "
            f"(api {api_time}ms, {metadata.audio_size} bytes)"
        )
        return SynthesisResult(audio_content=audio_content, metadata=metadata)
