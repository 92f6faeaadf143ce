# clip_review/notifications.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


SEVERITY_SUCCESS = "success"
SEVERITY_ERROR = "error"
SEVERITY_INFO = "info"

# Message categories the host can route on (toast, status bar, dialog).
CATEGORY_COMMIT = "commit"
CATEGORY_LABEL = "label"
CATEGORY_COMMENT = "comment"
CATEGORY_UNDO = "undo"
CATEGORY_LOAD = "load"
CATEGORY_SESSION = "session"


@dataclass(frozen=True)
class Notification:
    severity: str
    category: str
    title: str
    message: str


class Notifier:
    """
    Decides nothing; just forwards notifications to the host sink and keeps
    a short history (useful for tests and for a status bar tooltip).
    """

    def __init__(self, sink: Optional[Callable[[Notification], None]] = None, history_size: int = 50):
        self._sink = sink
        self._history: List[Notification] = []
        self._history_size = max(1, int(history_size))

    def set_sink(self, sink: Optional[Callable[[Notification], None]]) -> None:
        self._sink = sink

    def history(self) -> List[Notification]:
        return list(self._history)

    def success(self, category: str, message: str, title: str = "Success") -> Notification:
        return self._emit(Notification(SEVERITY_SUCCESS, category, title, message))

    def error(self, category: str, message: str, title: str = "Error") -> Notification:
        return self._emit(Notification(SEVERITY_ERROR, category, title, message))

    def info(self, category: str, message: str, title: str = "Info") -> Notification:
        return self._emit(Notification(SEVERITY_INFO, category, title, message))

    def _emit(self, note: Notification) -> Notification:
        self._history.append(note)
        if len(self._history) > self._history_size:
            del self._history[: len(self._history) - self._history_size]
        logger.debug("notify %s/%s: %s", note.severity, note.category, note.message)
        if self._sink is not None:
            self._sink(note)
        return note
