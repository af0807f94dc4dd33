"""Typed reading of Flowise prediction responses.

The hosted flow does not publish a stable response schema, so each field is
read from an ordered list of candidate keys.
"""

from typing import Any

from app.schemas.chat import SourceCitation

NO_ANSWER_TEXT = "I apologize, but I could not find a relevant answer in our knowledge base."

ANSWER_KEYS = ("text", "answer", "message")


class FlowiseResponseAdapter:
    """Normalizes a raw Flowise payload into an answer and source citations."""

    def __init__(self, max_sources: int = 5, default_source_title: str = "Policy Document"):
        self.max_sources = max_sources
        self.default_source_title = default_source_title

    def answer(self, payload: dict[str, Any]) -> str:
        for key in ANSWER_KEYS:
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value
        return NO_ANSWER_TEXT

    def sources(self, payload: dict[str, Any]) -> list[SourceCitation]:
        documents = payload.get("sourceDocuments")
        if not isinstance(documents, list):
            return []
        citations = []
        for document in documents[: self.max_sources]:
            metadata = document.get("metadata") if isinstance(document, dict) else None
            metadata = metadata if isinstance(metadata, dict) else {}
            citations.append(
                SourceCitation(title=self._title(metadata), section=self._section(metadata))
            )
        return citations

    def _title(self, metadata: dict[str, Any]) -> str:
        title = metadata.get("title")
        if title:
            return str(title)
        pdf_title = _dig(metadata, "pdf", "info", "Title")
        if pdf_title:
            return str(pdf_title)
        return self.default_source_title

    @staticmethod
    def _section(metadata: dict[str, Any]) -> str | None:
        section = metadata.get("section")
        if section:
            return str(section)
        page_number = _dig(metadata, "loc", "pageNumber")
        if page_number:
            return f"Page {page_number}"
        page = metadata.get("page")
        if page:
            return f"Page {page}"
        return None


def _dig(data: dict[str, Any], *keys: str) -> Any:
    current: Any = data
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current
