# clip_review/timeutils.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from .domain import Clip


# -----------------------------
# Time formatting / parsing
# -----------------------------

def seconds_to_clock(sec: int) -> str:
    """Timeline tick text: 65 -> '1:05'."""
    if sec is None:
        sec = 0
    s = max(0, int(sec))
    return f"{s // 60}:{s % 60:02d}"


def seconds_to_time_str(sec: int) -> str:
    """Comment range text: 65 -> '01:05'."""
    if sec is None:
        sec = 0
    s = max(0, int(sec))
    return f"{s // 60:02d}:{s % 60:02d}"


def time_str_to_seconds(text: str) -> int:
    """
    Parse 'mm:ss' (or a bare number of seconds) into whole seconds.
    Raises ValueError on anything else.
    """
    s = (text or "").strip()
    if not s:
        raise ValueError("time is required (mm:ss)")
    parts = s.split(":")
    if len(parts) == 1:
        mins, secs = "0", parts[0]
    elif len(parts) == 2:
        mins, secs = parts
    else:
        raise ValueError(f"invalid time '{text}' (expected mm:ss)")
    try:
        m = int(mins)
        sc = int(secs)
    except ValueError:
        raise ValueError(f"invalid time '{text}' (expected mm:ss)")
    if m < 0 or sc < 0:
        raise ValueError("time cannot be negative")
    return m * 60 + sc


def parse_timestamp(value: str) -> Optional[datetime]:
    """ISO-8601 parse that tolerates a trailing 'Z'. Returns None if unparsable."""
    s = (value or "").strip()
    if not s:
        return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        return None


# -----------------------------
# Clip time lookup
# -----------------------------

def clip_time(clips: List[Clip], index: int) -> int:
    """Logical time of clips[index]; the index itself if out of range."""
    if 0 <= index < len(clips):
        return int(clips[index].time)
    return int(index)
