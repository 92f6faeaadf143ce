# clip_review/editor.py
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from .clip_store import ClipStore
from .comments import CommentIndex, CommentSpan
from .domain import (
    Clip,
    CommentDeletion,
    CommitResult,
    GatewayError,
    RootConfig,
    Selection,
    TimeRangeComment,
    UndoAction,
)
from .notifications import (
    CATEGORY_COMMENT,
    CATEGORY_COMMIT,
    CATEGORY_LABEL,
    CATEGORY_LOAD,
    CATEGORY_SESSION,
    CATEGORY_UNDO,
    Notifier,
)
from .persistence import PersistenceGateway, latest_clip_index
from .selection import SelectionEngine
from .undo import UndoEngine
from .viewport import ViewportController

logger = logging.getLogger(__name__)


class ClipEditor:
    """
    The one object the host UI talks to.

    Owns ClipStore, SelectionEngine, CommentIndex, UndoEngine and ViewportController,
    calls the gateway, and turns gateway failures into notifications instead of
    exceptions. Validation problems (ValidationError) are raised to the caller.

    Listeners registered with add_listener() are called with no arguments after any
    state change so the host can repaint.
    """

    def __init__(
        self,
        gateway: Optional[PersistenceGateway] = None,
        notifier: Optional[Notifier] = None,
        cfg: Optional[RootConfig] = None,
    ):
        self.gateway = gateway
        self.notifier = notifier or Notifier()
        self.cfg = cfg

        self.store = ClipStore(gateway)
        self.selection = SelectionEngine(self.store)
        self.comments = CommentIndex(gateway)
        self.undo_engine = UndoEngine(self.store, self.comments)
        self.viewport = ViewportController(cfg)

        self.session_id: Optional[str] = None
        self._committing = False
        self._listeners: List[Callable[[], None]] = []

    def set_gateway(self, gateway: Optional[PersistenceGateway], cfg: Optional[RootConfig] = None) -> None:
        """Point the editor at a different backend. The open session is closed."""
        width = self.viewport.state.viewport_width_px
        self.gateway = gateway
        self.cfg = cfg
        self.store = ClipStore(gateway)
        self.selection = SelectionEngine(self.store)
        self.comments = CommentIndex(gateway)
        self.undo_engine = UndoEngine(self.store, self.comments)
        self.viewport = ViewportController(cfg)
        self.viewport.set_viewport_width(width)
        self.session_id = None
        self._changed()

    # ---------------- Listeners ----------------

    def add_listener(self, fn: Callable[[], None]) -> None:
        self._listeners.append(fn)

    def _changed(self) -> None:
        self.viewport.set_clip_count(len(self.store))
        for fn in list(self._listeners):
            fn()

    # ---------------- Read-only snapshots ----------------

    @property
    def clips(self) -> List[Clip]:
        return self.store.clips

    @property
    def pending_deletions(self) -> List[str]:
        return self.store.pending_deletions

    @property
    def current_selection(self) -> Selection:
        return self.store.selection.copy()

    @property
    def comment_list(self) -> List[TimeRangeComment]:
        return self.comments.comments

    def comment_spans(self) -> List[CommentSpan]:
        return self.comments.spans(self.store.clips)

    @property
    def undo_stack(self) -> List[UndoAction]:
        return self.undo_engine.stack

    @property
    def can_undo(self) -> bool:
        return self.undo_engine.can_undo

    @property
    def can_save(self) -> bool:
        return bool(self.session_id) and self.store.has_unsaved_changes() and not self._committing

    @property
    def is_committing(self) -> bool:
        return self._committing

    def has_unsaved_changes(self) -> bool:
        return self.store.has_unsaved_changes()

    def current_clip(self) -> Optional[Clip]:
        return self.store.clip_at(self.store.selection.current_index)

    # ---------------- Loading ----------------

    def load(self, clips: List[Clip], comments: Optional[List[TimeRangeComment]] = None,
             session_id: Optional[str] = None) -> None:
        """A fresh load supersedes selection, pending deletions and undo history."""
        self.session_id = session_id
        self.store.load(clips, session_id)
        self.comments.load(comments or [], session_id)
        self._changed()

    def open_session(self, session_id: str) -> bool:
        """
        Load clips and comments for a session. Failing to load clips aborts the open;
        failing to load comments still opens the session without them.
        """
        if self.gateway is None:
            raise RuntimeError("no gateway configured")
        try:
            clips = self.gateway.load_clips(session_id)
        except GatewayError as e:
            logger.error("failed to load clips for %s: %s", session_id, e)
            self.notifier.error(CATEGORY_LOAD, "Failed to load session")
            return False

        comments: List[TimeRangeComment] = []
        try:
            comments = self.gateway.load_comments(session_id)
        except GatewayError as e:
            logger.error("failed to load comments for %s: %s", session_id, e)
            self.notifier.error(CATEGORY_LOAD, "Failed to load comments")

        self.load(clips, comments, session_id)
        # Review starts at the newest capture.
        self.selection.set_current(latest_clip_index(self.store.clips))
        self.notifier.info(CATEGORY_SESSION, f"Opened session {session_id} ({len(self.store)} clips)", title="Session")
        self._changed()
        return True

    def close_session(self) -> None:
        self.load([], [], None)

    # ---------------- Clip deletion / commit ----------------

    def delete_clips(self, indices) -> int:
        staged = self.store.stage_deletion(indices)
        if staged:
            self._changed()
        return staged

    def delete_selected(self) -> int:
        return self.delete_clips(self.selection.selected())

    def save(self) -> Optional[CommitResult]:
        """Commit staged deletions. Returns None if there is no session or a commit is already running."""
        if not self.session_id or self._committing:
            return None
        self._committing = True
        try:
            result = self.store.commit()
        finally:
            self._committing = False

        if result.ok:
            self.notifier.success(CATEGORY_COMMIT, "Changes saved successfully")
        else:
            for clip_id, msg in result.failed:
                self.notifier.error(CATEGORY_COMMIT, f"Failed to delete clip {clip_id}: {msg}")
            self.notifier.error(
                CATEGORY_COMMIT,
                f"Failed to save changes ({len(result.failed)} of {result.attempted} deletions failed)",
            )
        self._changed()
        return result

    # ---------------- Undo ----------------

    def undo(self) -> Optional[UndoAction]:
        top = self.undo_engine.peek()
        if top is None:
            return None
        try:
            action = self.undo_engine.undo()
        except GatewayError as e:
            logger.error("undo failed: %s", e)
            self.notifier.error(CATEGORY_UNDO, "Failed to undo deletion")
            self._changed()
            return None
        if isinstance(action, CommentDeletion):
            logger.debug("comment restored at #%d", action.insert_index)
        self._changed()
        return action

    # ---------------- Labels ----------------

    def update_label(self, index: int, text: str) -> bool:
        try:
            self.store.update_label(index, text)
        except GatewayError as e:
            logger.error("label update failed for #%d: %s", index, e)
            self.notifier.error(CATEGORY_LABEL, "Failed to update label")
            return False
        self._changed()
        return True

    # ---------------- Comments ----------------

    def add_comment(self, start_time: int, end_time: int, text: str) -> Optional[TimeRangeComment]:
        try:
            comment = self.comments.add(start_time, end_time, text)
        except GatewayError as e:
            logger.error("comment create failed: %s", e)
            self.notifier.error(CATEGORY_COMMENT, "Failed to create comment")
            return None
        self._changed()
        return comment

    def update_comment(self, comment_id: int, start_time: int, end_time: int, text: str) -> Optional[TimeRangeComment]:
        try:
            comment = self.comments.update(comment_id, start_time, end_time, text)
        except GatewayError as e:
            logger.error("comment update failed for %s: %s", comment_id, e)
            self.notifier.error(CATEGORY_COMMENT, "Failed to update comment")
            return None
        self._changed()
        return comment

    def delete_comment(self, comment_id: int) -> bool:
        try:
            removed = self.comments.delete(comment_id)
        except GatewayError as e:
            logger.error("comment delete failed for %s: %s", comment_id, e)
            self.notifier.error(CATEGORY_COMMENT, "Failed to delete comment")
            return False
        if removed is None:
            return False
        self._changed()
        return True

    def request_comment_edit(self, comment_id: Optional[int]) -> Optional[int]:
        cid = self.comments.request_edit(comment_id)
        self._changed()
        return cid

    def default_comment_range(self):
        return self.selection.time_range()

    # ---------------- Session ----------------

    def delete_session(self) -> bool:
        """Permanently remove the whole session, then reset to empty."""
        if not self.session_id or self.gateway is None:
            return False
        sid = self.session_id
        try:
            self.gateway.delete_session(sid)
        except GatewayError as e:
            logger.error("session delete failed for %s: %s", sid, e)
            self.notifier.error(CATEGORY_SESSION, "Failed to delete session")
            return False
        self.close_session()
        self.notifier.success(CATEGORY_SESSION, "Session deleted successfully", title="Deleted")
        return True
