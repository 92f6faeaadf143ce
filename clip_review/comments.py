# clip_review/comments.py
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, List, Optional

from .domain import Clip, CommentDeletion, TimeRangeComment, ValidationError
from .persistence import PersistenceGateway, utc_now_iso

logger = logging.getLogger(__name__)


# -----------------------------
# Time range -> clip span mapping
# -----------------------------

@dataclass(frozen=True)
class CommentSpan:
    """Where a comment sits on the timeline. left/width are fractions of the track (0..1)."""
    comment_id: Optional[int]
    start_index: int
    end_index: int
    left: float
    width: float


def clip_span_indices(clips: List[Clip], start_time: int, end_time: int):
    """
    First clip at or after start_time, last clip at or before end_time.
    Falls back to 0 / len-1 when nothing matches. Linear scan; comment counts are small.
    """
    n = len(clips)
    start_index = 0
    end_index = n - 1

    for i, clip in enumerate(clips):
        if clip.time >= start_time:
            start_index = i
            break

    for i in range(n - 1, -1, -1):
        if clips[i].time <= end_time:
            end_index = i
            break

    return start_index, end_index


def span_for(comment: TimeRangeComment, clips: List[Clip]) -> Optional[CommentSpan]:
    n = len(clips)
    if n == 0:
        return None
    s, e = clip_span_indices(clips, int(comment.start_time), int(comment.end_time))
    left = s / float(n)
    width = (e + 1 - s) / float(n)
    return CommentSpan(comment_id=comment.comment_id, start_index=s, end_index=e, left=left, width=width)


def validate_comment_fields(start_time: int, end_time: int, text: str) -> str:
    """Returns the stripped text or raises ValidationError."""
    body = (text or "").strip()
    if not body:
        raise ValidationError("comment text cannot be empty")
    if int(start_time) < 0 or int(end_time) < 0:
        raise ValidationError("comment times cannot be negative")
    if int(start_time) > int(end_time):
        raise ValidationError("start time must be <= end time")
    return body


# -----------------------------
# Comment index
# -----------------------------

class CommentIndex:
    """
    Ordered list of time-range comments for one session.

    Comment deletion is committed immediately through the gateway; the editor gets
    the CommentDeletion snapshot via on_before_remove so it can be undone.
    """

    def __init__(self, gateway: Optional[PersistenceGateway] = None):
        self._gateway = gateway
        self.session_id: Optional[str] = None
        self._comments: List[TimeRangeComment] = []
        self._editing_id: Optional[int] = None
        self._next_local_id = -1  # ids for gateway-less use

        self.on_before_remove: Optional[Callable[[CommentDeletion], None]] = None

    # ---------------- Read API ----------------

    @property
    def comments(self) -> List[TimeRangeComment]:
        return list(self._comments)

    def __len__(self) -> int:
        return len(self._comments)

    def find(self, comment_id: int) -> Optional[TimeRangeComment]:
        i = self.position_of(comment_id)
        return self._comments[i] if i >= 0 else None

    def position_of(self, comment_id: int) -> int:
        for i, c in enumerate(self._comments):
            if c.comment_id == comment_id:
                return i
        return -1

    def spans(self, clips: List[Clip]) -> List[CommentSpan]:
        if not clips:
            return []
        out: List[CommentSpan] = []
        for c in self._comments:
            sp = span_for(c, clips)
            if sp is not None:
                out.append(sp)
        return out

    # ---------------- Load ----------------

    def load(self, comments: List[TimeRangeComment], session_id: Optional[str] = None) -> None:
        self._comments = list(comments or [])
        self.session_id = session_id
        self._editing_id = None

    # ---------------- Edit target ----------------

    @property
    def editing_id(self) -> Optional[int]:
        return self._editing_id

    def request_edit(self, comment_id: Optional[int]) -> Optional[int]:
        """
        Timeline span click and list row selection both land here. Asking for the
        same comment again just returns it again.
        """
        if comment_id is None or self.find(comment_id) is None:
            return self._editing_id
        self._editing_id = comment_id
        return comment_id

    def cancel_edit(self) -> None:
        self._editing_id = None

    # ---------------- Mutations ----------------

    def _new_local_id(self) -> int:
        cid = self._next_local_id
        self._next_local_id -= 1
        return cid

    def add(self, start_time: int, end_time: int, text: str) -> TimeRangeComment:
        if not self.session_id:
            raise ValidationError("no session is open")
        body = validate_comment_fields(start_time, end_time, text)
        comment = TimeRangeComment(
            session_id=self.session_id or "",
            start_time=int(start_time),
            end_time=int(end_time),
            text=body,
            created_at=utc_now_iso(),
        )
        if self._gateway is not None:
            new_id = self._gateway.create_comment(comment)
        else:
            new_id = self._new_local_id()
        comment.comment_id = new_id
        self._comments.append(comment)
        logger.info("added comment %s [%s..%s]", new_id, start_time, end_time)
        return comment

    def update(self, comment_id: int, start_time: int, end_time: int, text: str) -> TimeRangeComment:
        body = validate_comment_fields(start_time, end_time, text)
        i = self.position_of(comment_id)
        if i < 0:
            raise ValidationError(f"comment {comment_id} does not exist")
        if self._gateway is not None:
            self._gateway.update_comment(
                comment_id,
                {"start_time": int(start_time), "end_time": int(end_time), "comment": body},
            )
        updated = replace(self._comments[i], start_time=int(start_time), end_time=int(end_time), text=body)
        self._comments[i] = updated
        if self._editing_id == comment_id:
            self._editing_id = None
        return updated

    def delete(self, comment_id: int) -> Optional[TimeRangeComment]:
        """Remote delete, then snapshot + local removal. Unknown ids are a no-op."""
        i = self.position_of(comment_id)
        if i < 0:
            return None
        comment = self._comments[i]
        if self._gateway is not None:
            self._gateway.delete_comment(comment_id)

        if self.on_before_remove is not None:
            self.on_before_remove(CommentDeletion(comment=replace(comment), insert_index=i))
        del self._comments[i]
        if self._editing_id == comment_id:
            self._editing_id = None
        logger.info("deleted comment %s (was #%d)", comment_id, i)
        return comment

    def reinsert(self, comment: TimeRangeComment, insert_index: int) -> TimeRangeComment:
        """
        Re-create a deleted comment (the gateway assigns a new id) and splice it back
        at insert_index, clamped to the current list.
        """
        restored = replace(comment, comment_id=None)
        if self._gateway is not None:
            new_id = self._gateway.create_comment(restored)
        else:
            new_id = self._new_local_id()
        restored.comment_id = new_id
        at = max(0, min(int(insert_index), len(self._comments)))
        self._comments.insert(at, restored)
        return restored
