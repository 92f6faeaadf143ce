from __future__ import annotations

from typing import List

import pytest

from clip_review.domain import Clip, TimeRangeComment
from clip_review.editor import ClipEditor
from clip_review.persistence import MemoryGateway


def _make_clips(n: int, step: int = 1, prefix: str = "c") -> List[Clip]:
    return [
        Clip(
            clip_id=f"{prefix}{i}",
            captured_at=f"2024-05-01T10:{i // 60:02d}:{i % 60:02d}Z",
            image_ref=f"{prefix}{i}.png",
            time=i * step,
        )
        for i in range(n)
    ]


@pytest.fixture
def make_clips():
    return _make_clips


@pytest.fixture
def gateway():
    gw = MemoryGateway()
    gw.add_session(
        "s1",
        _make_clips(5, step=5),
        comments=[
            TimeRangeComment(session_id="s1", start_time=10, end_time=20, text="second"),
            TimeRangeComment(session_id="s1", start_time=0, end_time=5, text="first"),
            TimeRangeComment(session_id="s1", start_time=15, end_time=20, text="third"),
        ],
        created_at="2024-05-01T10:00:00Z",
    )
    return gw


@pytest.fixture
def editor(gateway):
    ed = ClipEditor(gateway)
    assert ed.open_session("s1")
    return ed
