# clip_review/persistence.py
from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .domain import Clip, GatewayError, RootConfig, SessionInfo, TimeRangeComment
from .timeutils import parse_timestamp

logger = logging.getLogger(__name__)


# Filenames (within root/session dirs)
ROOT_CONFIG_FILENAME = "config.json"
SESSION_META_FILENAME = "session.json"
COMMENTS_FILENAME = "comments.json"

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".bmp", ".webp")


# -----------------------------
# Atomic file helpers
# -----------------------------

def _atomic_write_text(path: str, text: str, encoding: str = "utf-8") -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    d = os.path.dirname(path)
    fd, tmp_path = tempfile.mkstemp(prefix=".tmp_", dir=d)
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                logger.warning("could not remove temp file %s", tmp_path)


def _atomic_write_json(path: str, payload: Dict) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    _atomic_write_text(path, text + "\n")


def _read_json(path: str) -> Dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# -----------------------------
# Root config (root/config.json)
# -----------------------------

def root_config_path(root_dir: str) -> str:
    return os.path.join(root_dir, ROOT_CONFIG_FILENAME)


def load_root_config(root_dir: str) -> Optional[RootConfig]:
    """
    Loads <root_dir>/config.json.

    If missing or invalid, returns None (caller should treat as "defaults").
    """
    if not root_dir:
        return None
    path = root_config_path(root_dir)
    if not os.path.exists(path):
        return None
    try:
        cfg = RootConfig.from_dict(_read_json(path))
    except (OSError, ValueError, TypeError) as e:
        logger.warning("ignoring unreadable config %s: %s", path, e)
        return None
    # Ensure correct root_dir is used
    if cfg.root_dir != root_dir:
        cfg.root_dir = root_dir
    return cfg


def save_root_config(cfg: RootConfig) -> None:
    if not cfg.root_dir:
        raise ValueError("RootConfig.root_dir is required")
    _atomic_write_json(root_config_path(cfg.root_dir), cfg.to_dict())


# -----------------------------
# Selection helpers over sessions / clips
# -----------------------------

def latest_session_id(sessions: Iterable[SessionInfo]) -> Optional[str]:
    """
    Newest session by created_at. If no session has a parsable timestamp,
    falls back to the highest id (numeric when possible).
    """
    items = list(sessions or [])
    if not items:
        return None

    dated = []
    for s in items:
        ts = parse_timestamp(s.created_at)
        if ts is not None:
            if ts.tzinfo is None:
                ts = ts.replace(tzinfo=timezone.utc)
            dated.append((ts, s.session_id))
    if dated:
        return max(dated, key=lambda x: x[0])[1]

    def id_key(s: SessionInfo):
        try:
            return (1, int(s.session_id), s.session_id)
        except ValueError:
            return (0, 0, s.session_id)

    return max(items, key=id_key).session_id


def latest_clip_index(clips: List[Clip]) -> int:
    return max(0, len(clips or []) - 1)


# -----------------------------
# Gateway interface
# -----------------------------

class PersistenceGateway:
    """
    Durable commit point for clip deletions, labels and comments.

    Implementations raise GatewayError on failure. delete_clip must be idempotent:
    deleting an id that is already gone succeeds.
    """

    def load_clips(self, session_id: str) -> List[Clip]:
        raise NotImplementedError

    def load_comments(self, session_id: str) -> List[TimeRangeComment]:
        raise NotImplementedError

    def delete_clip(self, session_id: str, clip_id: str) -> None:
        raise NotImplementedError

    def update_clip_label(self, session_id: str, clip_id: str, text: str) -> None:
        raise NotImplementedError

    def create_comment(self, comment: TimeRangeComment) -> int:
        raise NotImplementedError

    def update_comment(self, comment_id: int, fields: Dict) -> None:
        raise NotImplementedError

    def delete_comment(self, comment_id: int) -> None:
        raise NotImplementedError

    def list_sessions(self) -> List[SessionInfo]:
        raise NotImplementedError

    def delete_session(self, session_id: str) -> None:
        raise NotImplementedError


COMMENT_FIELDS = ("start_time", "end_time", "comment")


def _check_comment_fields(fields: Dict) -> Dict:
    unknown = set(fields) - set(COMMENT_FIELDS)
    if unknown:
        raise GatewayError(f"unknown comment fields: {sorted(unknown)}")
    return dict(fields)


# -----------------------------
# Local (folder-per-session) gateway
# -----------------------------

def session_dir(root_dir: str, session_id: str) -> str:
    return os.path.join(root_dir, session_id)


def session_meta_path(session_dir_path: str) -> str:
    return os.path.join(session_dir_path, SESSION_META_FILENAME)


def comments_path(session_dir_path: str) -> str:
    return os.path.join(session_dir_path, COMMENTS_FILENAME)


def _infer_clips_from_images(session_dir_path: str) -> List[Dict]:
    files = sorted(f for f in os.listdir(session_dir_path) if f.lower().endswith(IMAGE_EXTENSIONS))
    return [
        {"id": os.path.splitext(f)[0], "captured_at": "", "image_ref": f, "time": i}
        for i, f in enumerate(files)
    ]


class LocalSessionGateway(PersistenceGateway):
    """
    Stores each session in <root_dir>/<session_id>/:

        session.json   clips (ordered) + session metadata
        comments.json  time-range comments + next id counter
        *.png/...      pre-rendered frames referenced by clip image_ref

    A session folder with frames but no session.json is treated as a session whose
    clips are the frames in filename order.
    """

    def __init__(self, root_dir: str):
        if not root_dir:
            raise ValueError("root_dir is required")
        self.root_dir = root_dir
        # comment id -> session id, filled lazily
        self._comment_owner: Dict[int, str] = {}

    # ---------------- session files ----------------

    def _sdir(self, session_id: str) -> str:
        return session_dir(self.root_dir, session_id)

    def _read_meta(self, session_id: str) -> Dict:
        sdir = self._sdir(session_id)
        if not os.path.isdir(sdir):
            raise GatewayError(f"Session folder does not exist: {sdir}")
        path = session_meta_path(sdir)
        if not os.path.exists(path):
            return {"id": session_id, "created_at": "", "label": session_id,
                    "clips": _infer_clips_from_images(sdir), "meta_version": 1}
        try:
            return _read_json(path)
        except (OSError, ValueError) as e:
            raise GatewayError(f"Failed reading {path}: {e}") from e

    def _write_meta(self, session_id: str, meta: Dict) -> None:
        try:
            _atomic_write_json(session_meta_path(self._sdir(session_id)), meta)
        except OSError as e:
            raise GatewayError(f"Failed writing session {session_id}: {e}") from e

    def _read_comments(self, session_id: str) -> Dict:
        path = comments_path(self._sdir(session_id))
        if not os.path.exists(path):
            return {"next_id": 1, "comments": []}
        try:
            data = _read_json(path)
        except (OSError, ValueError) as e:
            raise GatewayError(f"Failed reading {path}: {e}") from e
        data.setdefault("next_id", 1)
        data.setdefault("comments", [])
        return data

    def _write_comments(self, session_id: str, data: Dict) -> None:
        try:
            _atomic_write_json(comments_path(self._sdir(session_id)), data)
        except OSError as e:
            raise GatewayError(f"Failed writing comments for {session_id}: {e}") from e

    def _owner_of_comment(self, comment_id: int) -> Optional[str]:
        owner = self._comment_owner.get(int(comment_id))
        if owner is not None:
            return owner
        for info in self.list_sessions():
            for c in self._read_comments(info.session_id)["comments"]:
                self._comment_owner[int(c["id"])] = info.session_id
        return self._comment_owner.get(int(comment_id))

    # ---------------- gateway API ----------------

    def list_sessions(self) -> List[SessionInfo]:
        if not os.path.isdir(self.root_dir):
            return []
        out: List[SessionInfo] = []
        for name in sorted(os.listdir(self.root_dir)):
            if name.startswith("."):
                continue
            p = os.path.join(self.root_dir, name)
            if not os.path.isdir(p):
                continue
            meta_path = session_meta_path(p)
            if os.path.exists(meta_path):
                try:
                    meta = _read_json(meta_path)
                except (OSError, ValueError):
                    logger.warning("skipping session with unreadable metadata: %s", p)
                    continue
                out.append(SessionInfo(
                    session_id=name,
                    created_at=str(meta.get("created_at", "")),
                    label=str(meta.get("label") or name),
                ))
                continue
            # fallback: any folder holding frames
            if any(f.lower().endswith(IMAGE_EXTENSIONS) for f in os.listdir(p)):
                out.append(SessionInfo(session_id=name, label=name))
        return out

    def load_clips(self, session_id: str) -> List[Clip]:
        meta = self._read_meta(session_id)
        sdir = self._sdir(session_id)
        clips: List[Clip] = []
        for i, raw in enumerate(meta.get("clips") or []):
            try:
                clip = Clip.from_dict(raw, index=i)
            except (KeyError, ValueError, TypeError):
                logger.warning("skipping malformed clip #%d in session %s", i, session_id)
                continue
            if clip.image_ref and not os.path.isabs(clip.image_ref):
                clip.image_ref = os.path.join(sdir, clip.image_ref)
            clips.append(clip)
        return clips

    def load_comments(self, session_id: str) -> List[TimeRangeComment]:
        data = self._read_comments(session_id)
        out: List[TimeRangeComment] = []
        for raw in data["comments"]:
            try:
                c = TimeRangeComment.from_dict(raw)
            except (KeyError, ValueError, TypeError):
                continue
            if c.comment_id is not None:
                self._comment_owner[c.comment_id] = session_id
            out.append(c)
        out.sort(key=lambda c: c.start_time)
        return out

    def delete_clip(self, session_id: str, clip_id: str) -> None:
        meta = self._read_meta(session_id)
        clips = list(meta.get("clips") or [])
        remaining = [c for c in clips if str(c.get("id")) != str(clip_id)]
        if len(remaining) == len(clips):
            # already gone
            return
        meta["clips"] = remaining
        self._write_meta(session_id, meta)

    def update_clip_label(self, session_id: str, clip_id: str, text: str) -> None:
        meta = self._read_meta(session_id)
        for c in meta.get("clips") or []:
            if str(c.get("id")) == str(clip_id):
                c["label"] = text
                self._write_meta(session_id, meta)
                return
        raise GatewayError(f"Clip {clip_id} not found in session {session_id}")

    def _allocate_comment_id(self, session_id: str) -> int:
        """Comment ids are unique across the whole data root, not per session."""
        top = 0
        sids = {info.session_id for info in self.list_sessions()}
        sids.add(session_id)
        for sid in sorted(sids):
            data = self._read_comments(sid)
            top = max(top, int(data["next_id"]) - 1)
            for c in data["comments"]:
                top = max(top, int(c["id"]))
                self._comment_owner[int(c["id"])] = sid
        return top + 1

    def create_comment(self, comment: TimeRangeComment) -> int:
        if not comment.session_id:
            raise GatewayError("Comment has no session")
        if not os.path.isdir(self._sdir(comment.session_id)):
            raise GatewayError(f"Session does not exist: {comment.session_id}")
        new_id = self._allocate_comment_id(comment.session_id)
        data = self._read_comments(comment.session_id)
        payload = comment.to_dict()
        payload["id"] = new_id
        data["comments"].append(payload)
        data["next_id"] = new_id + 1
        self._write_comments(comment.session_id, data)
        self._comment_owner[new_id] = comment.session_id
        return new_id

    def update_comment(self, comment_id: int, fields: Dict) -> None:
        fields = _check_comment_fields(fields)
        owner = self._owner_of_comment(comment_id)
        if owner is None:
            raise GatewayError(f"Comment {comment_id} not found")
        data = self._read_comments(owner)
        for c in data["comments"]:
            if int(c["id"]) == int(comment_id):
                c.update(fields)
                self._write_comments(owner, data)
                return
        raise GatewayError(f"Comment {comment_id} not found")

    def delete_comment(self, comment_id: int) -> None:
        owner = self._owner_of_comment(comment_id)
        if owner is None:
            return
        data = self._read_comments(owner)
        data["comments"] = [c for c in data["comments"] if int(c["id"]) != int(comment_id)]
        self._write_comments(owner, data)
        self._comment_owner.pop(int(comment_id), None)

    def delete_session(self, session_id: str) -> None:
        sdir = self._sdir(session_id)
        if not os.path.isdir(sdir):
            return
        try:
            shutil.rmtree(sdir)
        except OSError as e:
            raise GatewayError(f"Failed deleting session {session_id}: {e}") from e
        self._comment_owner = {k: v for k, v in self._comment_owner.items() if v != session_id}

    # ---------------- helpers for importers / demos ----------------

    def create_session(self, session_id: str, clips: List[Clip], label: str = "",
                       created_at: Optional[str] = None) -> str:
        sdir = self._sdir(session_id)
        os.makedirs(sdir, exist_ok=True)
        meta = {
            "id": session_id,
            "created_at": created_at or utc_now_iso(),
            "label": label or session_id,
            "clips": [c.to_dict() for c in clips],
            "meta_version": 1,
        }
        self._write_meta(session_id, meta)
        return sdir


# -----------------------------
# In-memory gateway
# -----------------------------

class MemoryGateway(PersistenceGateway):
    """
    Dict-backed gateway, used by the tests and for running the editor without a data root.

    fail(op, key=None) makes the named operation raise GatewayError, either for every
    call (key None) or only for one clip/comment id.
    """

    def __init__(self):
        self.sessions: Dict[str, SessionInfo] = {}
        self.clips: Dict[str, List[Clip]] = {}
        self.comments: Dict[int, TimeRangeComment] = {}
        self.calls: List[Tuple[str, object]] = []
        self._next_comment_id = 1
        self._failures: Dict[str, Set[object]] = {}

    # ---------------- failure injection ----------------

    def fail(self, op: str, key: object = None) -> None:
        self._failures.setdefault(op, set()).add(key)

    def clear_failures(self) -> None:
        self._failures = {}

    def _maybe_fail(self, op: str, key: object = None) -> None:
        self.calls.append((op, key))
        keys = self._failures.get(op)
        if keys and (None in keys or key in keys):
            raise GatewayError(f"{op} failed for {key}")

    # ---------------- seeding ----------------

    def add_session(self, session_id: str, clips: List[Clip], comments: Optional[List[TimeRangeComment]] = None,
                    created_at: str = "", label: str = "") -> None:
        self.sessions[session_id] = SessionInfo(session_id=session_id, created_at=created_at, label=label or session_id)
        self.clips[session_id] = [Clip(**vars(c)) for c in clips]
        for c in comments or []:
            cid = self._next_comment_id
            self._next_comment_id += 1
            self.comments[cid] = TimeRangeComment(**{**vars(c), "session_id": session_id, "comment_id": cid})

    # ---------------- gateway API ----------------

    def list_sessions(self) -> List[SessionInfo]:
        self._maybe_fail("list_sessions")
        return list(self.sessions.values())

    def load_clips(self, session_id: str) -> List[Clip]:
        self._maybe_fail("load_clips", session_id)
        return [Clip(**vars(c)) for c in self.clips.get(session_id, [])]

    def load_comments(self, session_id: str) -> List[TimeRangeComment]:
        self._maybe_fail("load_comments", session_id)
        out = [TimeRangeComment(**vars(c)) for c in self.comments.values() if c.session_id == session_id]
        out.sort(key=lambda c: c.start_time)
        return out

    def delete_clip(self, session_id: str, clip_id: str) -> None:
        self._maybe_fail("delete_clip", clip_id)
        clips = self.clips.get(session_id, [])
        self.clips[session_id] = [c for c in clips if c.clip_id != clip_id]

    def update_clip_label(self, session_id: str, clip_id: str, text: str) -> None:
        self._maybe_fail("update_clip_label", clip_id)
        for c in self.clips.get(session_id, []):
            if c.clip_id == clip_id:
                c.label = text
                return
        raise GatewayError(f"Clip {clip_id} not found in session {session_id}")

    def create_comment(self, comment: TimeRangeComment) -> int:
        self._maybe_fail("create_comment", comment.comment_id)
        cid = self._next_comment_id
        self._next_comment_id += 1
        self.comments[cid] = TimeRangeComment(**{**vars(comment), "comment_id": cid})
        return cid

    def update_comment(self, comment_id: int, fields: Dict) -> None:
        self._maybe_fail("update_comment", comment_id)
        fields = _check_comment_fields(fields)
        c = self.comments.get(comment_id)
        if c is None:
            raise GatewayError(f"Comment {comment_id} not found")
        if "start_time" in fields:
            c.start_time = int(fields["start_time"])
        if "end_time" in fields:
            c.end_time = int(fields["end_time"])
        if "comment" in fields:
            c.text = str(fields["comment"])

    def delete_comment(self, comment_id: int) -> None:
        self._maybe_fail("delete_comment", comment_id)
        self.comments.pop(comment_id, None)

    def delete_session(self, session_id: str) -> None:
        self._maybe_fail("delete_session", session_id)
        self.sessions.pop(session_id, None)
        self.clips.pop(session_id, None)
        self.comments = {k: v for k, v in self.comments.items() if v.session_id != session_id}
