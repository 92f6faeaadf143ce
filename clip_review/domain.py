# clip_review/domain.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Set, Union


# -----------------------------
# Errors
# -----------------------------

class ValidationError(ValueError):
    """Rejected locally (bad index, empty text, start > end). Never reaches the gateway."""


class GatewayError(RuntimeError):
    """A PersistenceGateway call failed."""


# -----------------------------
# Core Dataclasses
# -----------------------------

@dataclass
class Clip:
    """
    One captured frame in a recording session.

    clip_id is opaque (the gateway decides its shape).
    image_ref points at the pre-rendered frame (a path inside the session folder for
    the local gateway); the editor never decodes it.
    time is the clip's logical offset in whole seconds, non-decreasing across the list.
    """
    clip_id: str
    captured_at: str
    image_ref: str
    label: Optional[str] = None
    time: int = 0

    def to_dict(self) -> Dict:
        return {
            "id": self.clip_id,
            "captured_at": self.captured_at,
            "image_ref": self.image_ref,
            "label": self.label,
            "time": int(self.time),
        }

    @staticmethod
    def from_dict(d: Dict, index: int = 0) -> "Clip":
        # Clips without an explicit offset are spaced one second apart by position.
        raw_time = d.get("time")
        label = d.get("label")
        return Clip(
            clip_id=str(d["id"]),
            captured_at=str(d.get("captured_at", "")),
            image_ref=str(d.get("image_ref", "")),
            label=None if label is None else str(label),
            time=int(index if raw_time is None else raw_time),
        )


@dataclass
class TimeRangeComment:
    """
    A note spanning [start_time, end_time] seconds of a session.
    comment_id is None until the gateway has assigned one.
    """
    session_id: str
    start_time: int
    end_time: int
    text: str
    created_at: str = ""
    comment_id: Optional[int] = None

    def to_dict(self) -> Dict:
        return {
            "id": self.comment_id,
            "session_id": self.session_id,
            "start_time": int(self.start_time),
            "end_time": int(self.end_time),
            "comment": self.text,
            "created_at": self.created_at,
        }

    @staticmethod
    def from_dict(d: Dict) -> "TimeRangeComment":
        raw_id = d.get("id")
        return TimeRangeComment(
            session_id=str(d.get("session_id", "")),
            start_time=int(d.get("start_time", 0)),
            end_time=int(d.get("end_time", 0)),
            text=str(d.get("comment", "")),
            created_at=str(d.get("created_at", "")),
            comment_id=None if raw_id is None else int(raw_id),
        )


@dataclass
class Selection:
    """
    Selection over the *current* clip list, by position.

    Indices shift whenever clips are removed, so owners must call clamp(len)
    after every list mutation.
    """
    selected_indices: Set[int] = field(default_factory=set)
    current_index: int = 0
    last_anchor_index: Optional[int] = None

    def copy(self) -> "Selection":
        return Selection(
            selected_indices=set(self.selected_indices),
            current_index=self.current_index,
            last_anchor_index=self.last_anchor_index,
        )

    def sorted_indices(self) -> List[int]:
        return sorted(self.selected_indices)

    def clamp(self, count: int) -> None:
        """Drop out-of-range indices and pull current/anchor back into [0, count-1]."""
        if count <= 0:
            self.selected_indices = set()
            self.current_index = 0
            self.last_anchor_index = None
            return
        self.selected_indices = {i for i in self.selected_indices if 0 <= i < count}
        self.current_index = max(0, min(int(self.current_index), count - 1))
        if self.last_anchor_index is not None and not (0 <= self.last_anchor_index < count):
            self.last_anchor_index = None


# -----------------------------
# Undo actions (tagged union)
# -----------------------------

@dataclass(frozen=True)
class RecordingDeletion:
    """Pre-mutation snapshot taken before clips are staged for deletion."""
    prior_clips: List[Clip]
    prior_pending_deletions: List[str]
    prior_selection: Selection
    kind: str = "recording_deletion"


@dataclass(frozen=True)
class CommentDeletion:
    """A deleted comment plus its position in the comment list at deletion time."""
    comment: TimeRangeComment
    insert_index: int
    kind: str = "comment_deletion"


UndoAction = Union[RecordingDeletion, CommentDeletion]


def snapshot_clips(clips: List[Clip]) -> List[Clip]:
    # Labels are mutated in place, so snapshots need their own Clip objects.
    return [replace(c) for c in clips]


# -----------------------------
# Viewport
# -----------------------------

@dataclass
class ViewportState:
    viewport_width_px: int = 0
    clip_count: int = 0
    zoom_px_per_clip: int = 50


# -----------------------------
# Commit outcome
# -----------------------------

@dataclass
class CommitResult:
    deleted: List[str] = field(default_factory=list)
    failed: List[tuple] = field(default_factory=list)  # (clip_id, message)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def attempted(self) -> int:
        return len(self.deleted) + len(self.failed)


# -----------------------------
# Sessions
# -----------------------------

@dataclass(frozen=True)
class SessionInfo:
    session_id: str
    created_at: str = ""
    label: str = ""

    def to_dict(self) -> Dict:
        return {"id": self.session_id, "created_at": self.created_at, "label": self.label}

    @staticmethod
    def from_dict(d: Dict) -> "SessionInfo":
        return SessionInfo(
            session_id=str(d["id"]),
            created_at=str(d.get("created_at", "")),
            label=str(d.get("label", "")),
        )


# -----------------------------
# Config payload
# -----------------------------

BASE_MIN_ZOOM = 25
FIXED_MAX_FLOOR = 200
FIXED_RANGE = 200
DEFAULT_ZOOM = 50
ZOOM_STEP = 10


@dataclass
class RootConfig:
    """
    Stored in <root_dir>/config.json
    """
    root_dir: str
    default_zoom: int = DEFAULT_ZOOM
    zoom_step: int = ZOOM_STEP
    base_min_zoom: int = BASE_MIN_ZOOM
    fixed_max_floor: int = FIXED_MAX_FLOOR
    fixed_range: int = FIXED_RANGE
    log_level: str = "INFO"
    last_session: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "data_root": self.root_dir,
            "default_zoom": int(self.default_zoom),
            "zoom_step": int(self.zoom_step),
            "base_min_zoom": int(self.base_min_zoom),
            "fixed_max_floor": int(self.fixed_max_floor),
            "fixed_range": int(self.fixed_range),
            "log_level": self.log_level,
            "last_session": self.last_session,
            "config_version": 1,
        }

    @staticmethod
    def from_dict(d: Dict) -> "RootConfig":
        root = str(d.get("data_root") or d.get("root_dir") or "")
        last = d.get("last_session")
        return RootConfig(
            root_dir=root,
            default_zoom=int(d.get("default_zoom", DEFAULT_ZOOM)),
            zoom_step=max(1, int(d.get("zoom_step", ZOOM_STEP))),
            base_min_zoom=max(1, int(d.get("base_min_zoom", BASE_MIN_ZOOM))),
            fixed_max_floor=int(d.get("fixed_max_floor", FIXED_MAX_FLOOR)),
            fixed_range=max(0, int(d.get("fixed_range", FIXED_RANGE))),
            log_level=str(d.get("log_level") or "INFO").upper(),
            last_session=None if last in (None, "") else str(last),
        )
