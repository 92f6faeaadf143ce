from __future__ import annotations

import json
import os

import pytest

from clip_review.domain import GatewayError, RootConfig, SessionInfo, TimeRangeComment
from clip_review.persistence import (
    LocalSessionGateway,
    MemoryGateway,
    latest_clip_index,
    latest_session_id,
    load_root_config,
    save_root_config,
)


@pytest.fixture
def local(tmp_path, make_clips):
    gw = LocalSessionGateway(str(tmp_path))
    gw.create_session("s1", make_clips(3), label="Morning", created_at="2024-05-01T10:00:00Z")
    return gw


def test_config_roundtrip(tmp_path):
    cfg = RootConfig(root_dir=str(tmp_path), default_zoom=70, last_session="s9")
    save_root_config(cfg)
    loaded = load_root_config(str(tmp_path))
    assert loaded == cfg


def test_config_missing_or_invalid_is_none(tmp_path):
    assert load_root_config(str(tmp_path)) is None
    (tmp_path / "config.json").write_text("{not json", encoding="utf-8")
    assert load_root_config(str(tmp_path)) is None


def test_load_clips_resolves_image_paths(local, tmp_path):
    clips = local.load_clips("s1")
    assert [c.clip_id for c in clips] == ["c0", "c1", "c2"]
    assert clips[0].image_ref == os.path.join(str(tmp_path), "s1", "c0.png")
    assert [c.time for c in clips] == [0, 1, 2]


def test_load_missing_session_raises(local):
    with pytest.raises(GatewayError):
        local.load_clips("nope")


def test_delete_clip_is_idempotent(local, tmp_path):
    local.delete_clip("s1", "c1")
    local.delete_clip("s1", "c1")
    assert [c.clip_id for c in local.load_clips("s1")] == ["c0", "c2"]
    meta = json.loads((tmp_path / "s1" / "session.json").read_text(encoding="utf-8"))
    assert [c["id"] for c in meta["clips"]] == ["c0", "c2"]


def test_update_label_persists(local):
    local.update_clip_label("s1", "c2", "goal")
    assert local.load_clips("s1")[2].label == "goal"
    with pytest.raises(GatewayError):
        local.update_clip_label("s1", "zz", "x")


def test_comment_lifecycle(local, tmp_path):
    late = local.create_comment(TimeRangeComment(session_id="s1", start_time=30, end_time=40, text="late"))
    early = local.create_comment(TimeRangeComment(session_id="s1", start_time=1, end_time=2, text="early"))
    assert early == late + 1

    assert [c.text for c in local.load_comments("s1")] == ["early", "late"]

    local.update_comment(late, {"comment": "later", "end_time": 45})
    c = [c for c in local.load_comments("s1") if c.comment_id == late][0]
    assert (c.text, c.end_time) == ("later", 45)

    with pytest.raises(GatewayError):
        local.update_comment(late, {"author": "x"})

    # a fresh gateway has to find the owning session on disk
    fresh = LocalSessionGateway(str(tmp_path))
    fresh.delete_comment(early)
    fresh.delete_comment(early)
    assert [c.comment_id for c in local.load_comments("s1")] == [late]


def test_create_comment_for_unknown_session(local):
    with pytest.raises(GatewayError):
        local.create_comment(TimeRangeComment(session_id="ghost", start_time=0, end_time=1, text="x"))


def test_list_and_delete_sessions(local, tmp_path):
    frames = tmp_path / "frames_only"
    frames.mkdir()
    for name in ("b.png", "a.png"):
        (frames / name).write_bytes(b"")
    (tmp_path / "empty").mkdir()

    ids = {s.session_id for s in local.list_sessions()}
    assert ids == {"s1", "frames_only"}

    inferred = local.load_clips("frames_only")
    assert [c.clip_id for c in inferred] == ["a", "b"]

    local.delete_session("s1")
    assert not (tmp_path / "s1").exists()
    assert {s.session_id for s in local.list_sessions()} == {"frames_only"}


def test_latest_session_id():
    sessions = [
        SessionInfo("a", created_at="2024-01-02T00:00:00Z"),
        SessionInfo("b", created_at="2024-03-01T00:00:00+00:00"),
        SessionInfo("c", created_at="garbage"),
    ]
    assert latest_session_id(sessions) == "b"
    assert latest_session_id([SessionInfo("2"), SessionInfo("10"), SessionInfo("9")]) == "10"
    assert latest_session_id([]) is None


def test_latest_clip_index(make_clips):
    assert latest_clip_index(make_clips(4)) == 3
    assert latest_clip_index([]) == 0


def test_memory_gateway_failure_injection(make_clips):
    gw = MemoryGateway()
    gw.add_session("s1", make_clips(2))
    gw.fail("delete_clip", "c0")
    with pytest.raises(GatewayError):
        gw.delete_clip("s1", "c0")
    gw.delete_clip("s1", "c1")
    gw.clear_failures()
    gw.delete_clip("s1", "c0")
    assert gw.clips["s1"] == []
    assert ("delete_clip", "c0") in gw.calls


def test_comment_ids_are_unique_across_sessions(local, tmp_path, make_clips):
    local.create_session("s2", make_clips(2, prefix="d"))
    in_s1 = local.create_comment(TimeRangeComment(session_id="s1", start_time=0, end_time=1, text="in s1"))
    in_s2 = local.create_comment(TimeRangeComment(session_id="s2", start_time=0, end_time=1, text="in s2"))
    assert in_s1 != in_s2

    fresh = LocalSessionGateway(str(tmp_path))
    fresh.load_comments("s1")
    fresh.load_comments("s2")
    fresh.delete_comment(in_s1)
    assert fresh.load_comments("s1") == []
    assert [c.text for c in fresh.load_comments("s2")] == ["in s2"]

    fresh.update_comment(in_s2, {"comment": "still s2"})
    assert [c.text for c in local.load_comments("s2")] == ["still s2"]


def test_create_comment_requires_session(local, tmp_path):
    with pytest.raises(GatewayError):
        local.create_comment(TimeRangeComment(session_id="", start_time=0, end_time=1, text="x"))
    assert not (tmp_path / "comments.json").exists()
