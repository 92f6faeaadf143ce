from __future__ import annotations

import pytest

from clip_review.domain import CommentDeletion, RecordingDeletion, ValidationError
from clip_review.editor import ClipEditor
from clip_review.notifications import SEVERITY_ERROR, SEVERITY_INFO, SEVERITY_SUCCESS


def _messages(editor, severity=None):
    return [n.message for n in editor.notifier.history() if severity is None or n.severity == severity]


def test_open_session_loads_clips_and_sorted_comments(editor):
    assert editor.session_id == "s1"
    assert [c.clip_id for c in editor.clips] == ["c0", "c1", "c2", "c3", "c4"]
    assert [c.text for c in editor.comment_list] == ["first", "second", "third"]
    assert not editor.can_undo
    assert not editor.can_save


def test_open_session_clip_failure(gateway):
    gateway.fail("load_clips", "s1")
    ed = ClipEditor(gateway)
    assert not ed.open_session("s1")
    assert ed.session_id is None
    assert _messages(ed, SEVERITY_ERROR) == ["Failed to load session"]


def test_open_session_comment_failure_still_opens(gateway):
    gateway.fail("load_comments")
    ed = ClipEditor(gateway)
    assert ed.open_session("s1")
    assert len(ed.clips) == 5
    assert ed.comment_list == []
    assert _messages(ed, SEVERITY_ERROR) == ["Failed to load comments"]


def test_listeners_fire_on_changes(editor):
    calls = []
    editor.add_listener(lambda: calls.append(1))
    editor.selection.click(1)
    editor.delete_selected()
    assert calls
    assert editor.viewport.state.clip_count == 4


def test_save_success(editor, gateway):
    editor.delete_clips([0, 1])
    assert editor.can_save
    assert editor.has_unsaved_changes()

    result = editor.save()
    assert result.ok
    assert [c.clip_id for c in gateway.clips["s1"]] == ["c2", "c3", "c4"]
    assert _messages(editor, SEVERITY_SUCCESS) == ["Changes saved successfully"]
    assert not editor.can_save
    assert not editor.is_committing


def test_save_partial_failure_reports_each(editor, gateway):
    gateway.fail("delete_clip", "c0")
    gateway.fail("delete_clip", "c2")
    editor.delete_clips([0, 1, 2])

    result = editor.save()
    assert len(result.failed) == 2
    errors = _messages(editor, SEVERITY_ERROR)
    assert len(errors) == 3
    assert errors[-1].startswith("Failed to save changes (2 of 3")
    assert editor.pending_deletions == []
    assert not any(isinstance(a, RecordingDeletion) for a in editor.undo_stack)


def test_save_without_session_is_noop(gateway):
    ed = ClipEditor(gateway)
    assert ed.save() is None
    assert ed.notifier.history() == []


def test_undo_after_commit_only_reaches_comment(editor):
    first = editor.comment_list[0]
    assert editor.delete_comment(first.comment_id)
    editor.delete_clips([0])
    editor.save()

    assert [type(a) for a in editor.undo_stack] == [CommentDeletion]
    action = editor.undo()
    assert isinstance(action, CommentDeletion)
    assert len(editor.clips) == 4
    assert editor.comment_list[0].text == "first"


def test_delete_comment_then_undo_restores_position(editor, gateway):
    middle = editor.comment_list[1]
    assert editor.delete_comment(middle.comment_id)
    assert [c.text for c in editor.comment_list] == ["first", "third"]
    assert middle.comment_id not in gateway.comments

    editor.undo()
    back = editor.comment_list[1]
    assert (back.start_time, back.end_time, back.text) == (middle.start_time, middle.end_time, middle.text)
    assert back.comment_id in gateway.comments
    assert not editor.can_undo


def test_delete_comment_failure_changes_nothing(editor, gateway):
    target = editor.comment_list[0]
    gateway.fail("delete_comment")
    assert not editor.delete_comment(target.comment_id)
    assert len(editor.comment_list) == 3
    assert not editor.can_undo
    assert _messages(editor, SEVERITY_ERROR) == ["Failed to delete comment"]


def test_undo_comment_restore_failure(editor, gateway):
    target = editor.comment_list[0]
    editor.delete_comment(target.comment_id)
    gateway.fail("create_comment")

    assert editor.undo() is None
    assert len(editor.comment_list) == 2
    assert not editor.can_undo
    assert _messages(editor, SEVERITY_ERROR) == ["Failed to undo deletion"]


def test_label_update_failure(editor, gateway):
    gateway.fail("update_clip_label", "c0")
    assert not editor.update_label(0, "x")
    assert editor.clips[0].label is None
    assert _messages(editor, SEVERITY_ERROR) == ["Failed to update label"]
    assert editor.update_label(1, "ok")
    assert editor.clips[1].label == "ok"


def test_comment_create_and_update_failures(editor, gateway):
    gateway.fail("create_comment")
    assert editor.add_comment(0, 5, "x") is None
    gateway.clear_failures()

    added = editor.add_comment(0, 5, "x")
    assert added is not None and added.comment_id in gateway.comments

    gateway.fail("update_comment", added.comment_id)
    assert editor.update_comment(added.comment_id, 1, 2, "y") is None
    assert editor.comments.find(added.comment_id).text == "x"
    assert _messages(editor, SEVERITY_ERROR) == ["Failed to create comment", "Failed to update comment"]


def test_comment_validation_raises(editor):
    with pytest.raises(ValidationError):
        editor.add_comment(9, 3, "backwards")


def test_default_comment_range_follows_selection(editor):
    editor.selection.click(1)
    editor.selection.shift_click(3)
    assert editor.default_comment_range() == (5, 15)


def test_comment_spans(editor):
    spans = editor.comment_spans()
    assert len(spans) == 3
    assert (spans[0].start_index, spans[0].end_index) == (0, 1)


def test_reload_clears_history(editor):
    editor.delete_clips([0])
    assert editor.can_undo
    editor.open_session("s1")
    assert not editor.can_undo
    assert editor.pending_deletions == []


def test_delete_session(editor, gateway):
    assert editor.delete_session()
    assert "s1" not in gateway.sessions
    assert editor.session_id is None
    assert editor.clips == []
    assert _messages(editor, SEVERITY_SUCCESS) == ["Session deleted successfully"]


def test_set_gateway_resets_editor(editor, gateway):
    editor.set_gateway(gateway)
    assert editor.session_id is None
    assert editor.clips == []
    assert editor.open_session("s1")
    editor.delete_clips([0])
    assert editor.can_undo


def test_open_session_starts_at_latest_clip(editor):
    assert editor.current_selection.current_index == 4
    assert editor.current_clip().clip_id == "c4"
    infos = _messages(editor, SEVERITY_INFO)
    assert infos == ["Opened session s1 (5 clips)"]


def test_add_comment_without_session_raises(gateway):
    ed = ClipEditor(gateway)
    with pytest.raises(ValidationError):
        ed.add_comment(0, 1, "x")
    assert ed.comment_list == []
