"""Transient user notices (toasts) raised by the chat client."""

import logging
from dataclasses import dataclass, field
from itertools import count

logger = logging.getLogger(__name__)

_ids = count(1)

NOTICE_LIMIT = 5


@dataclass(frozen=True)
class Notice:
    title: str
    description: str
    variant: str = "default"
    id: int = field(default_factory=lambda: next(_ids))


class Notifier:
    """Keeps the most recent notices visible; each one can be dismissed.

    Once ``limit`` notices are showing, a new one pushes out the oldest.
    """

    def __init__(self, limit: int = NOTICE_LIMIT):
        self.limit = limit
        self.notices: list[Notice] = []

    def notify(self, title: str, description: str, variant: str = "default") -> Notice:
        notice = Notice(title=title, description=description, variant=variant)
        if variant == "destructive":
            logger.warning(f"{title}: {description}")
        else:
            logger.info(f"{title}: {description}")
        self.notices = [*self.notices, notice][-self.limit :]
        return notice

    def error(self, description: str, title: str = "Error") -> Notice:
        return self.notify(title, description, variant="destructive")

    def dismiss(self, notice_id: int) -> bool:
        before = len(self.notices)
        self.notices = [notice for notice in self.notices if notice.id != notice_id]
        return len(self.notices) < before
