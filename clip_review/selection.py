# clip_review/selection.py
from __future__ import annotations

import logging
import math
from typing import List, Optional, Tuple

from .clip_store import ClipStore
from .domain import Selection
from .timeutils import clip_time

logger = logging.getLogger(__name__)


def contiguous_run(a: int, b: int) -> List[int]:
    """Inclusive run between two indices, always low..high."""
    lo, hi = min(a, b), max(a, b)
    return list(range(lo, hi + 1))


def pointer_to_index(x: float, track_width: float, count: int) -> int:
    """Map a pointer x (relative to the track's left edge) to a clip index, clamped."""
    if count <= 0:
        return 0
    if track_width <= 0:
        return 0
    per_clip = float(track_width) / float(count)
    idx = int(math.floor(float(x) / per_clip))
    return max(0, min(idx, count - 1))


class SelectionEngine:
    """
    Click / shift-click / drag / keyboard selection over ClipStore positions.

    The Selection object lives on the store (store.selection) so that staging and
    undo can snapshot and restore it together with the clip list.
    """

    def __init__(self, store: ClipStore):
        self._store = store
        self._dragging = False
        self._drag_start: Optional[int] = None
        self._drag_moved = False

    # ---------------- State ----------------

    @property
    def selection(self) -> Selection:
        return self._store.selection

    def selected(self) -> List[int]:
        return self.selection.sorted_indices()

    def is_dragging(self) -> bool:
        return self._dragging

    def _count(self) -> int:
        return len(self._store)

    def _valid(self, index: int) -> bool:
        return 0 <= int(index) < self._count()

    # ---------------- Pointer gestures ----------------

    def click(self, index: int) -> None:
        if not self._valid(index):
            return
        sel = self.selection
        sel.selected_indices = {int(index)}
        sel.current_index = int(index)
        sel.last_anchor_index = int(index)

    def shift_click(self, index: int) -> None:
        if not self._valid(index):
            return
        sel = self.selection
        if sel.last_anchor_index is None:
            self.click(index)
            return
        sel.selected_indices = set(contiguous_run(sel.last_anchor_index, int(index)))
        sel.current_index = int(index)

    def drag_start(self, index: int) -> None:
        if not self._valid(index):
            return
        self._dragging = True
        self._drag_start = int(index)
        self._drag_moved = False
        sel = self.selection
        sel.last_anchor_index = int(index)
        sel.current_index = int(index)

    def drag_move(self, x: float, track_width: float) -> None:
        if not self._dragging or self._drag_start is None:
            return
        count = self._count()
        if count <= 0:
            return
        self._drag_moved = True
        idx = pointer_to_index(x, track_width, count)
        # Recomputed from the drag origin on every move, never accumulated.
        self.selection.selected_indices = set(contiguous_run(self._drag_start, idx))

    def drag_end(self) -> None:
        if self._dragging and not self._drag_moved and self._drag_start is not None:
            if self._valid(self._drag_start):
                self.selection.selected_indices = {self._drag_start}
        self._dragging = False
        self._drag_start = None
        self._drag_moved = False

    # ---------------- Keyboard ----------------

    def key_activate(self, index: int, shift: bool = False) -> None:
        """Enter/Space on a focused clip."""
        if shift:
            self.shift_click(index)
        else:
            self.click(index)

    # ---------------- Bulk ----------------

    def select_all(self) -> None:
        self.selection.selected_indices = set(range(self._count()))

    def clear(self) -> None:
        self.selection.selected_indices = set()

    # ---------------- Current clip navigation ----------------

    def set_current(self, index: int) -> None:
        count = self._count()
        if count <= 0:
            self.selection.current_index = 0
            return
        self.selection.current_index = max(0, min(int(index), count - 1))

    def previous(self) -> None:
        self.set_current(self.selection.current_index - 1)

    def next(self) -> None:
        self.set_current(self.selection.current_index + 1)

    def time_range(self) -> Tuple[int, int]:
        """
        Default (start, end) seconds for a new comment.

        Start is the earliest selected clip (or the current clip). End is the latest
        selected clip when a range is selected, otherwise the next clip's time, or
        one second past the current clip at the end of the list.
        """
        clips = self._store.clips
        sel = self.selection
        idx = sel.sorted_indices()
        cur = sel.current_index

        start = clip_time(clips, idx[0]) if idx else clip_time(clips, cur)
        if len(idx) > 1:
            end = clip_time(clips, idx[-1])
        elif cur + 1 < len(clips):
            end = clip_time(clips, cur + 1)
        else:
            end = clip_time(clips, cur) + 1
        return start, max(start, end)
