from __future__ import annotations

import pytest

from clip_review.comments import CommentIndex, clip_span_indices, span_for, validate_comment_fields
from clip_review.domain import CommentDeletion, TimeRangeComment, ValidationError


def _comment(start, end, text="note", cid=None):
    return TimeRangeComment(session_id="s1", start_time=start, end_time=end, text=text, comment_id=cid)


def test_span_maps_times_to_clip_indices(make_clips):
    clips = make_clips(200)
    sp = span_for(_comment(65, 125, cid=7), clips)
    assert (sp.start_index, sp.end_index) == (65, 125)
    assert sp.comment_id == 7
    assert sp.left == pytest.approx(65 / 200)
    assert sp.width == pytest.approx(61 / 200)


def test_span_falls_back_when_nothing_matches(make_clips):
    clips = make_clips(4, step=10)  # times 0, 10, 20, 30
    # nothing at or after 99 -> start falls back to 0
    assert clip_span_indices(clips, 99, 200) == (0, 3)
    # times between clips snap inward
    assert clip_span_indices(clips, 5, 25) == (1, 2)


def test_spans_empty_without_clips():
    idx = CommentIndex()
    idx.load([_comment(0, 5, cid=1)], "s1")
    assert idx.spans([]) == []


@pytest.mark.parametrize(
    "start,end,text",
    [(0, 5, ""), (0, 5, "   "), (10, 5, "x"), (-1, 5, "x")],
)
def test_validation_rejects(start, end, text):
    with pytest.raises(ValidationError):
        validate_comment_fields(start, end, text)


def test_validation_strips_text():
    assert validate_comment_fields(3, 3, "  ok \n") == "ok"


def test_add_without_gateway_uses_local_ids():
    idx = CommentIndex()
    idx.load([], "s1")
    a = idx.add(0, 1, "a")
    b = idx.add(2, 3, "b")
    assert a.comment_id < 0 and b.comment_id < 0
    assert a.comment_id != b.comment_id
    assert [c.text for c in idx.comments] == ["a", "b"]


def test_add_invalid_never_reaches_gateway(gateway):
    idx = CommentIndex(gateway)
    idx.load([], "s1")
    with pytest.raises(ValidationError):
        idx.add(5, 1, "bad")
    assert not any(op == "create_comment" for op, _ in gateway.calls)


def test_request_edit_is_idempotent():
    idx = CommentIndex()
    idx.load([_comment(0, 5, cid=1), _comment(6, 9, cid=2)], "s1")
    assert idx.request_edit(2) == 2
    assert idx.request_edit(2) == 2
    assert idx.editing_id == 2
    # unknown id keeps the current target
    assert idx.request_edit(42) == 2
    idx.cancel_edit()
    assert idx.editing_id is None


def test_update_changes_fields_and_ends_edit(gateway):
    idx = CommentIndex(gateway)
    idx.load(gateway.load_comments("s1"), "s1")
    target = idx.comments[1]
    idx.request_edit(target.comment_id)

    updated = idx.update(target.comment_id, 11, 12, " revised ")
    assert (updated.start_time, updated.end_time, updated.text) == (11, 12, "revised")
    assert idx.editing_id is None
    assert gateway.comments[target.comment_id].text == "revised"


def test_update_unknown_comment():
    idx = CommentIndex()
    idx.load([], "s1")
    with pytest.raises(ValidationError):
        idx.update(3, 0, 1, "x")


def test_delete_snapshots_position():
    idx = CommentIndex()
    idx.load([_comment(0, 1, "a", 1), _comment(2, 3, "b", 2), _comment(4, 5, "c", 3)], "s1")
    pushed = []
    idx.on_before_remove = pushed.append

    removed = idx.delete(2)
    assert removed.text == "b"
    assert [c.comment_id for c in idx.comments] == [1, 3]
    assert len(pushed) == 1
    assert isinstance(pushed[0], CommentDeletion)
    assert pushed[0].insert_index == 1
    assert pushed[0].kind == "comment_deletion"

    assert idx.delete(99) is None
    assert len(pushed) == 1


def test_reinsert_clamps_position():
    idx = CommentIndex()
    idx.load([_comment(0, 1, "a", 1)], "s1")
    restored = idx.reinsert(_comment(7, 8, "late", 5), 99)
    assert [c.text for c in idx.comments] == ["a", "late"]
    assert restored.comment_id != 5


def test_add_requires_open_session(gateway):
    idx = CommentIndex(gateway)
    with pytest.raises(ValidationError):
        idx.add(0, 1, "orphan")
    assert not any(op == "create_comment" for op, _ in gateway.calls)
