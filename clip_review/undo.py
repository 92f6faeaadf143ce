# clip_review/undo.py
from __future__ import annotations

import logging
from typing import List, Optional

from .clip_store import ClipStore
from .comments import CommentIndex
from .domain import CommentDeletion, RecordingDeletion, UndoAction

logger = logging.getLogger(__name__)


class UndoEngine:
    """
    LIFO stack of reversible actions. No redo.

    RecordingDeletion undo is a pure local replace (the deletion was only staged).
    CommentDeletion undo re-creates the comment through the gateway; if that raises,
    the error propagates and the entry is gone (the caller reports it).
    """

    def __init__(self, store: ClipStore, comments: CommentIndex):
        self._store = store
        self._comments = comments
        self._stack: List[UndoAction] = []

        store.on_before_stage = self.push
        store.on_committed = lambda _result: self.discard_recording_deletions()
        store.on_loaded = self.clear
        comments.on_before_remove = self.push

    # ---------------- State ----------------

    @property
    def stack(self) -> List[UndoAction]:
        return list(self._stack)

    def __len__(self) -> int:
        return len(self._stack)

    @property
    def can_undo(self) -> bool:
        return bool(self._stack)

    def peek(self) -> Optional[UndoAction]:
        return self._stack[-1] if self._stack else None

    # ---------------- Mutations ----------------

    def push(self, action: UndoAction) -> None:
        self._stack.append(action)
        logger.debug("undo push %s (depth %d)", action.kind, len(self._stack))

    def clear(self) -> None:
        self._stack = []

    def discard_recording_deletions(self) -> int:
        """After a commit attempt the staged snapshots no longer match anything durable."""
        before = len(self._stack)
        self._stack = [a for a in self._stack if not isinstance(a, RecordingDeletion)]
        dropped = before - len(self._stack)
        if dropped:
            logger.info("dropped %d clip-deletion undo entries after commit", dropped)
        return dropped

    def undo(self) -> Optional[UndoAction]:
        if not self._stack:
            return None
        action = self._stack.pop()

        if isinstance(action, RecordingDeletion):
            self._store.restore(action)
            logger.info("undo: restored %d clips", len(action.prior_clips))
        elif isinstance(action, CommentDeletion):
            restored = self._comments.reinsert(action.comment, action.insert_index)
            logger.info("undo: restored comment as %s at #%d", restored.comment_id, action.insert_index)
        else:
            raise TypeError(f"unknown undo action: {action!r}")
        return action
