"""Voice input and output for the chat client.

The microphone stream is a scoped resource: ``open_microphone`` releases it
on every path, including failures while the recording is being encoded.
"""

import asyncio
import base64
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Protocol

from app.client.api import KnowledgeBaseApi
from app.client.errors import MicrophoneError
from app.client.notifications import Notifier

logger = logging.getLogger(__name__)


class MicrophoneStream(Protocol):
    async def read(self) -> bytes:
        """Next recorded chunk; ``b""`` once the device has nothing more."""
        ...

    def close(self) -> None: ...


class Microphone(Protocol):
    async def open(self) -> MicrophoneStream: ...


class AudioPlayer(Protocol):
    async def play(self, audio: bytes) -> None: ...


@asynccontextmanager
async def open_microphone(microphone: Microphone) -> AsyncIterator[MicrophoneStream]:
    try:
        stream = await microphone.open()
    except Exception as e:
        raise MicrophoneError(str(e)) from e
    try:
        yield stream
    finally:
        stream.close()
        logger.debug("Microphone stream released")


class VoiceAssistant:
    """Records questions and reads answers aloud through the speech endpoints."""

    def __init__(
        self,
        api: KnowledgeBaseApi,
        notifier: Notifier,
        microphone: Microphone,
        player: AudioPlayer | None = None,
        voice: str | None = None,
    ):
        self.api = api
        self.notifier = notifier
        self.microphone = microphone
        self.player = player
        self.voice = voice

    async def record(self, stop: asyncio.Event) -> str | None:
        """Record until ``stop`` is set, then return the transcribed text.

        Returns None when nothing was recognized or any step failed; the
        reason is shown as a notice.
        """
        try:
            async with open_microphone(self.microphone) as stream:
                audio_base64 = await self._capture(stream, stop)
        except MicrophoneError as e:
            logger.error(f"Error starting audio recording: {str(e)}")
            self.notifier.error(
                "Could not access microphone. Please check permissions.", title="Microphone Error"
            )
            return None
        except Exception as e:
            logger.error(f"Error recording audio: {str(e)}")
            self.notifier.error("Failed to process audio. Please try again.", title="Processing Error")
            return None

        if not audio_base64:
            self._no_speech()
            return None

        try:
            result = await self.api.transcribe(audio_base64)
        except Exception as e:
            logger.error(f"Error processing audio: {str(e)}")
            self.notifier.error("Failed to process audio. Please try again.", title="Processing Error")
            return None

        text = result.text.strip()
        if not text:
            self._no_speech()
            return None

        self.notifier.notify("Speech Recognized", f'"{text}"')
        return text

    async def speak(self, text: str) -> bytes | None:
        """Synthesize ``text`` and play it; returns the MP3 bytes."""
        if not text:
            return None
        try:
            result = await self.api.synthesize(text, voice=self.voice)
            audio = base64.b64decode(result.audio_content)
            if self.player is not None:
                await self.player.play(audio)
        except Exception as e:
            logger.error(f"Error playing audio: {str(e)}")
            self.notifier.error("Failed to generate or play audio.", title="Audio Error")
            return None
        return audio

    @staticmethod
    async def _capture(stream: MicrophoneStream, stop: asyncio.Event) -> str:
        chunks: list[bytes] = []
        while not stop.is_set():
            chunk = await stream.read()
            if not chunk:
                break
            chunks.append(chunk)
        return base64.b64encode(b"".join(chunks)).decode("ascii")

    def _no_speech(self) -> None:
        self.notifier.error(
            "Could not detect any speech in the recording.", title="No Speech Detected"
        )
