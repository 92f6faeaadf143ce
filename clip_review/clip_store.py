# clip_review/clip_store.py
from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional

from .domain import (
    Clip,
    CommitResult,
    GatewayError,
    RecordingDeletion,
    Selection,
    ValidationError,
    snapshot_clips,
)
from .persistence import PersistenceGateway

logger = logging.getLogger(__name__)


class ClipStore:
    """
    Ordered clip list + staged (pending) deletions + the selection over it.

    A clip is either visible or pending, never both. Deletions are only staged here;
    commit() is the point where the gateway is asked to delete them.

    Hooks (wired by the editor):
      - on_before_stage(RecordingDeletion): called with the pre-mutation snapshot
      - on_committed(CommitResult): called after every commit attempt
      - on_loaded(): called after load() replaced the list
    """

    def __init__(self, gateway: Optional[PersistenceGateway] = None):
        self._gateway = gateway
        self.session_id: Optional[str] = None

        self._clips: List[Clip] = []
        self._pending: List[str] = []  # staging order
        self.selection = Selection()

        self.on_before_stage: Optional[Callable[[RecordingDeletion], None]] = None
        self.on_committed: Optional[Callable[[CommitResult], None]] = None
        self.on_loaded: Optional[Callable[[], None]] = None

    # ---------------- Read API ----------------

    @property
    def clips(self) -> List[Clip]:
        return list(self._clips)

    @property
    def pending_deletions(self) -> List[str]:
        return list(self._pending)

    def __len__(self) -> int:
        return len(self._clips)

    def ids(self) -> List[str]:
        return [c.clip_id for c in self._clips]

    def clip_at(self, index: int) -> Optional[Clip]:
        if 0 <= index < len(self._clips):
            return self._clips[index]
        return None

    def is_valid_index(self, index: int) -> bool:
        return 0 <= int(index) < len(self._clips)

    def has_unsaved_changes(self) -> bool:
        return bool(self._pending)

    # ---------------- Load ----------------

    def load(self, clips: Iterable[Clip], session_id: Optional[str] = None) -> None:
        """Replace everything. Prior selection, pending deletions and undo history are dropped."""
        self._clips = list(clips or [])
        self._pending = []
        self.selection = Selection()
        self.session_id = session_id
        logger.info("loaded %d clips (session=%s)", len(self._clips), session_id)

        if self.on_loaded is not None:
            self.on_loaded()

    # ---------------- Staged deletion ----------------

    def snapshot(self) -> RecordingDeletion:
        return RecordingDeletion(
            prior_clips=snapshot_clips(self._clips),
            prior_pending_deletions=list(self._pending),
            prior_selection=self.selection.copy(),
        )

    def stage_deletion(self, indices: Iterable[int]) -> int:
        """
        Move the clips at the given positions to the pending set.
        Out-of-range indices are ignored. Returns how many clips were staged.
        """
        valid = sorted({int(i) for i in (indices or []) if self.is_valid_index(int(i))})
        if not valid:
            return 0

        # Snapshot strictly before anything changes.
        if self.on_before_stage is not None:
            self.on_before_stage(self.snapshot())

        drop = set(valid)
        staged_ids = [self._clips[i].clip_id for i in valid]
        self._pending.extend(cid for cid in staged_ids if cid not in self._pending)
        self._clips = [c for i, c in enumerate(self._clips) if i not in drop]

        # Positions changed; old indices are meaningless now.
        self.selection.selected_indices = set()
        self.selection.clamp(len(self._clips))

        logger.info("staged %d clip(s) for deletion; %d pending", len(valid), len(self._pending))
        return len(valid)

    def restore(self, action: RecordingDeletion) -> None:
        """Put back the exact state captured by snapshot()."""
        self._clips = snapshot_clips(action.prior_clips)
        self._pending = list(action.prior_pending_deletions)
        self.selection = action.prior_selection.copy()
        self.selection.clamp(len(self._clips))

    def commit(self) -> CommitResult:
        """
        Ask the gateway to delete every pending clip. Each id is attempted
        independently; failures are collected, not rolled back. The pending set is
        cleared whatever happens.
        """
        result = CommitResult()
        pending = list(self._pending)

        for clip_id in pending:
            if self._gateway is None:
                result.deleted.append(clip_id)
                continue
            try:
                self._gateway.delete_clip(self.session_id or "", clip_id)
            except GatewayError as e:
                logger.error("delete of clip %s failed: %s", clip_id, e)
                result.failed.append((clip_id, str(e)))
                continue
            result.deleted.append(clip_id)

        self._pending = []
        logger.info("commit finished: %d deleted, %d failed", len(result.deleted), len(result.failed))

        if self.on_committed is not None:
            self.on_committed(result)
        return result

    # ---------------- Labels ----------------

    def update_label(self, index: int, text: str) -> None:
        """Remote first, then local. Raises ValidationError / GatewayError."""
        clip = self.clip_at(index)
        if clip is None:
            raise ValidationError(f"clip index {index} is out of range")
        label = (text or "").strip()
        if self._gateway is not None:
            self._gateway.update_clip_label(self.session_id or "", clip.clip_id, label)
        clip.label = label
