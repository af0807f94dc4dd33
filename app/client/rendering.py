"""Display helpers for message lists; no business logic."""

from app.schemas.chat import SourceCitation


def source_badges(sources: list[SourceCitation]) -> list[str]:
    """Badge labels: ``title`` or ``title - section``."""
    return [f"{s.title} - {s.section}" if s.section else s.title for s in sources]


def truncate_text(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
