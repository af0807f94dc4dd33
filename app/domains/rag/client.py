"""HTTP client for the hosted Flowise prediction endpoint."""

import asyncio
import logging
import time
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


class FlowiseClient:
    """Single-attempt prediction calls with a hard timeout."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        url: str | None,
        api_key: str | None = None,
        timeout: float = 15,
    ):
        self.http_client = http_client
        self.url = url
        self.api_key = api_key
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.url)

    async def predict(self, question: str) -> dict[str, Any]:
        """Send a question to the flow and return the decoded JSON body.

        Raises:
            UpstreamConfigurationError: If no prediction URL is configured
            UpstreamTimeoutError: If the flow does not answer within ``timeout``
            UpstreamResponseError: If the flow answers with a non-2xx status
            UpstreamServiceError: On transport failures
            UpstreamParsingError: If the body is not a JSON object
        """
        if not self.url:
            raise UpstreamConfigurationError("RAG service is not configured")

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        started = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self.http_client.post(self.url, json={"question": question}, headers=headers),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"RAG request timed out after {self.timeout}s")
            raise UpstreamTimeoutError(f"RAG service did not respond within {self.timeout}s") from e
        except httpx.HTTPError as e:
            logger.error(f"RAG request failed: {str(e)}")
            raise UpstreamServiceError(f"RAG service request failed: {str(e)}") from e

        elapsed_ms = round((time.perf_counter() - started) * 1000)
        logger.info(f"RAG service responded with {response.status_code} in {elapsed_ms}ms")

        if not response.is_success:
            logger.error(f"RAG service error body: {response.text[:500]}")
            raise UpstreamResponseError(
                f"RAG service error: {response.status_code}",
                upstream_status=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamParsingError("RAG service returned invalid JSON") from e
        if not isinstance(payload, dict):
            raise UpstreamParsingError("RAG service returned an unexpected payload")
        return payload
