"""
api.py: async HTTP wrapper used by the chat client for every backend call.

The caller builds the ``httpx.AsyncClient`` (base URL, bearer token) and
passes it in; nothing here reads global state.
"""
from typing import Any
from uuid import UUID

import httpx

from app.schemas.chat import MessageResponse, MessageSender, ThreadResponse, ThreadSummary
from app.schemas.rag import RagAnswer
from app.schemas.speech import SynthesisResult, TranscriptionResult


class ApiError(Exception):
    def __init__(self, message: str, status_code: int = 0, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


def _raise(resp: httpx.Response) -> None:
    if resp.is_success:
        return
    try:
        payload = resp.json()
    except ValueError:
        raise ApiError(resp.text or f"HTTP {resp.status_code}", resp.status_code) from None
    msg = resp.text
    if isinstance(payload, dict):
        msg = payload.get("error") or payload.get("message") or resp.text
    raise ApiError(msg, resp.status_code, payload)


def _data(resp: httpx.Response) -> Any:
    _raise(resp)
    return resp.json().get("data")


class KnowledgeBaseApi:
    """Thread, message, question and speech calls against the API."""

    def __init__(self, http_client: httpx.AsyncClient):
        self.http_client = http_client

    # ── Threads ──────────────────────────────────────────────────────────────

    async def get_latest_thread(self) -> ThreadResponse | None:
        data = _data(await self.http_client.get("/api/threads/latest"))
        return ThreadResponse.model_validate(data) if data else None

    async def create_thread(self, title: str | None = None) -> ThreadResponse:
        payload = {"title": title} if title else {}
        data = _data(await self.http_client.post("/api/threads", json=payload))
        return ThreadResponse.model_validate(data)

    async def get_thread(self, thread_id: UUID) -> ThreadResponse:
        data = _data(await self.http_client.get(f"/api/threads/{thread_id}"))
        return ThreadResponse.model_validate(data)

    async def list_threads(self, limit: int = 50) -> list[ThreadSummary]:
        data = _data(await self.http_client.get("/api/threads", params={"limit": limit}))
        return [ThreadSummary.model_validate(row) for row in data["threads"]]

    async def delete_thread(self, thread_id: UUID) -> None:
        _raise(await self.http_client.delete(f"/api/threads/{thread_id}"))

    async def touch_thread(self, thread_id: UUID) -> ThreadResponse:
        data = _data(await self.http_client.post(f"/api/threads/{thread_id}/touch"))
        return ThreadResponse.model_validate(data)

    # ── Messages ─────────────────────────────────────────────────────────────

    async def list_messages(self, thread_id: UUID) -> list[MessageResponse]:
        data = _data(await self.http_client.get(f"/api/threads/{thread_id}/messages"))
        return [MessageResponse.model_validate(row) for row in data]

    async def add_message(
        self,
        thread_id: UUID,
        sender: MessageSender,
        content: str,
        metadata: dict[str, Any] | None = None,
        message_id: UUID | None = None,
    ) -> MessageResponse:
        payload: dict[str, Any] = {"sender": sender.value, "content": content, "metadata": metadata}
        if message_id is not None:
            payload["id"] = str(message_id)
        data = _data(await self.http_client.post(f"/api/threads/{thread_id}/messages", json=payload))
        return MessageResponse.model_validate(data)

    # ── Functions ────────────────────────────────────────────────────────────

    async def ask(self, question: str, thread_id: UUID) -> RagAnswer:
        resp = await self.http_client.post(
            "/functions/v1/chat-with-rag",
            json={"question": question, "threadId": str(thread_id)},
        )
        _raise(resp)
        return RagAnswer.model_validate(resp.json())

    async def transcribe(self, audio_base64: str) -> TranscriptionResult:
        resp = await self.http_client.post("/functions/v1/speech-to-text", json={"audio": audio_base64})
        _raise(resp)
        return TranscriptionResult.model_validate(resp.json())

    async def synthesize(self, text: str, voice: str | None = None) -> SynthesisResult:
        payload: dict[str, Any] = {"text": text}
        if voice:
            payload["voice"] = voice
        resp = await self.http_client.post("/functions/v1/text-to-speech", json=payload)
        _raise(resp)
        return SynthesisResult.model_validate(resp.json())
