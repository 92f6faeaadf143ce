from __future__ import annotations

import pytest

from clip_review.clip_store import ClipStore
from clip_review.comments import CommentIndex
from clip_review.domain import CommentDeletion, GatewayError, RecordingDeletion, ValidationError
from clip_review.persistence import MemoryGateway
from clip_review.undo import UndoEngine


@pytest.fixture
def wired(make_clips):
    gw = MemoryGateway()
    clips = make_clips(3)
    gw.add_session("s1", clips)
    store = ClipStore(gw)
    store.load(gw.load_clips("s1"), "s1")
    comments = CommentIndex(gw)
    comments.load([], "s1")
    undo = UndoEngine(store, comments)
    return gw, store, comments, undo


def test_stage_and_undo_restores_original(wired):
    gw, store, comments, undo = wired
    original = store.clips

    assert store.stage_deletion({0, 2}) == 2
    assert store.ids() == ["c1"]
    assert store.pending_deletions == ["c0", "c2"]

    top = undo.peek()
    assert isinstance(top, RecordingDeletion)
    assert top.kind == "recording_deletion"
    assert top.prior_clips == original
    assert top.prior_pending_deletions == []

    undo.undo()
    assert store.ids() == ["c0", "c1", "c2"]
    assert store.pending_deletions == []
    assert not undo.can_undo
    # nothing reached the gateway
    assert [op for op, _ in gw.calls if op == "delete_clip"] == []


def test_stage_clears_selection_and_undo_brings_it_back(wired):
    _, store, _, undo = wired
    store.selection.selected_indices = {0, 1}
    store.selection.current_index = 2
    store.stage_deletion([0, 1])
    assert store.selection.selected_indices == set()
    assert store.selection.current_index == 0

    undo.undo()
    assert store.selection.selected_indices == {0, 1}
    assert store.selection.current_index == 2


def test_stage_ignores_invalid_indices(wired):
    _, store, _, undo = wired
    assert store.stage_deletion([7, -1]) == 0
    assert len(undo) == 0
    assert len(store) == 3


def test_two_stages_undo_one_at_a_time(wired):
    _, store, _, undo = wired
    store.stage_deletion([0])
    store.stage_deletion([0])
    assert store.ids() == ["c2"]
    undo.undo()
    assert store.ids() == ["c1", "c2"]
    assert store.pending_deletions == ["c0"]
    undo.undo()
    assert store.ids() == ["c0", "c1", "c2"]


def test_commit_deletes_and_drops_recording_entries(wired):
    gw, store, comments, undo = wired
    comments.add(0, 1, "keep me")
    cid = comments.comments[0].comment_id
    comments.delete(cid)
    store.stage_deletion([1])

    result = store.commit()
    assert result.ok
    assert result.deleted == ["c1"]
    assert [c.clip_id for c in gw.clips["s1"]] == ["c0", "c2"]
    assert store.pending_deletions == []
    assert not store.has_unsaved_changes()
    assert [type(a) for a in undo.stack] == [CommentDeletion]


def test_commit_partial_failure_has_no_rollback(wired):
    gw, store, _, undo = wired
    gw.fail("delete_clip", "c1")
    store.stage_deletion([0, 1])

    result = store.commit()
    assert not result.ok
    assert result.deleted == ["c0"]
    assert [cid for cid, _ in result.failed] == ["c1"]
    assert result.attempted == 2
    assert store.ids() == ["c2"]
    assert store.pending_deletions == []
    assert [c.clip_id for c in gw.clips["s1"]] == ["c1", "c2"]
    assert not undo.can_undo


def test_memory_gateway_delete_is_idempotent(wired):
    gw, _, _, _ = wired
    gw.delete_clip("s1", "c0")
    gw.delete_clip("s1", "c0")
    assert [c.clip_id for c in gw.clips["s1"]] == ["c1", "c2"]


def test_update_label_remote_then_local(wired):
    gw, store, _, _ = wired
    store.update_label(1, "  hello ")
    assert store.clip_at(1).label == "hello"
    assert gw.clips["s1"][1].label == "hello"


def test_update_label_failure_leaves_local_state(wired):
    gw, store, _, _ = wired
    gw.fail("update_clip_label")
    with pytest.raises(GatewayError):
        store.update_label(0, "x")
    assert store.clip_at(0).label is None


def test_update_label_bad_index(wired):
    _, store, _, _ = wired
    with pytest.raises(ValidationError):
        store.update_label(10, "x")


def test_load_discards_undo_history(wired, make_clips):
    _, store, _, undo = wired
    store.stage_deletion({0})
    assert undo.can_undo

    store.load(make_clips(5, prefix="b"), "s2")
    assert len(undo) == 0
    assert undo.undo() is None
    assert store.ids() == ["b0", "b1", "b2", "b3", "b4"]
    assert store.session_id == "s2"
