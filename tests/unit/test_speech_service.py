"""
Unit tests for the speech service and the OpenAI audio client.
"""

import base64
import json

import httpx
import pytest

from app.domains.speech.client import OpenAISpeechClient
from app.domains.speech.service import SpeechService, decode_audio_payload, truncate_for_speech
from app.exceptions.base import BadRequestError
from app.exceptions.upstream import UpstreamConfigurationError, UpstreamResponseError
from tests.factories import OPENAI_URL

AUDIO = b"\x1aE\xdf\xa3fake-webm-bytes"
AUDIO_B64 = base64.b64encode(AUDIO).decode()


class TestDecodeAudioPayload:
    """Test cases for base64 / data URL decoding."""

    def test_plain_base64(self):
        assert decode_audio_payload(AUDIO_B64) == (AUDIO, "audio/webm")

    def test_data_url_with_codecs_parameter(self):
        decoded, mime_type = decode_audio_payload(f"data:audio/ogg;codecs=opus;base64,{AUDIO_B64}")

        assert decoded == AUDIO
        assert mime_type == "audio/ogg"

    def test_data_url_without_base64_marker(self):
        decoded, mime_type = decode_audio_payload("data:audio/wav,raw")

        assert decoded is None
        assert mime_type == "audio/wav"

    def test_not_base64(self):
        assert decode_audio_payload("@@not base64@@")[0] is None

    def test_empty(self):
        assert decode_audio_payload("   ")[0] is None
        assert decode_audio_payload(None)[0] is None


class TestTruncateForSpeech:
    """Test cases for the synthesis length limit."""

    def test_short_text_untouched(self):
        assert truncate_for_speech("Hello", 4000) == ("Hello", False)

    def test_exact_limit_untouched(self):
        text = "a" * 4000
        assert truncate_for_speech(text, 4000) == (text, False)

    def test_long_text_cut_with_ellipsis(self):
        text, truncated = truncate_for_speech("a" * 4500, 4000)

        assert truncated is True
        assert len(text) == 4003
        assert text.endswith("...")


class TestSpeechService:
    """Test cases for SpeechService."""

    @pytest.fixture
    def service(self, upstream_client):
        client = OpenAISpeechClient(upstream_client, api_key="sk-test", base_url=OPENAI_URL)
        return SpeechService(client, default_voice="alloy", max_chars=4000)

    @pytest.mark.asyncio
    async def test_transcribe_uploads_webm(self, service, upstream):
        upstream.handler = lambda request: httpx.Response(200, json={"text": "Where is my refund?"})

        result = await service.transcribe(AUDIO_B64)

        assert result.text == "Where is my refund?"
        assert result.processing_time >= 0
        request = upstream.requests[0]
        assert str(request.url) == f"{OPENAI_URL}/audio/transcriptions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        body = request.read()
        assert b'filename="audio.webm"' in body
        assert b"whisper-1" in body
        assert AUDIO in body

    @pytest.mark.asyncio
    async def test_transcribe_rejects_invalid_base64(self, service, upstream):
        with pytest.raises(BadRequestError):
            await service.transcribe("%%%not-base64%%%")
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_transcribe_rejects_missing_audio(self, service):
        with pytest.raises(BadRequestError) as exc_info:
            await service.transcribe(None)
        assert exc_info.value.message == "No audio data provided"

    @pytest.mark.asyncio
    async def test_transcribe_upstream_error(self, service, upstream):
        upstream.handler = lambda request: httpx.Response(401, json={"error": "bad key"})

        with pytest.raises(UpstreamResponseError):
            await service.transcribe(AUDIO_B64)

    @pytest.mark.asyncio
    async def test_synthesize_returns_base64_audio(self, service, upstream):
        upstream.handler = lambda request: httpx.Response(200, content=b"ID3mp3-bytes")

        result = await service.synthesize("Refunds take five days.")

        assert base64.b64decode(result.audio_content) == b"ID3mp3-bytes"
        assert result.metadata.audio_size == len(b"ID3mp3-bytes")
        assert result.metadata.text_length == len("Refunds take five days.")
        assert result.metadata.truncated is False
        sent = json.loads(upstream.requests[0].content)
        assert sent == {
            "model": "tts-1-hd",
            "input": "Refunds take five days.",
            "voice": "alloy",
            "response_format": "mp3",
            "speed": 1.1,
        }

    @pytest.mark.asyncio
    async def test_synthesize_truncates_long_text(self, service, upstream):
        upstream.handler = lambda request: httpx.Response(200, content=b"mp3")

        result = await service.synthesize("x" * 5000, voice="nova")

        sent = json.loads(upstream.requests[0].content)
        assert len(sent["input"]) == 4003
        assert sent["voice"] == "nova"
        assert result.metadata.truncated is True
        assert result.metadata.text_length == 4003

    @pytest.mark.asyncio
    async def test_synthesize_requires_text(self, service):
        with pytest.raises(BadRequestError):
            await service.synthesize("")

    @pytest.mark.asyncio
    async def test_missing_api_key(self, upstream_client):
        service = SpeechService(OpenAISpeechClient(upstream_client, api_key=None))

        with pytest.raises(UpstreamConfigurationError):
            await service.synthesize("Hello")
