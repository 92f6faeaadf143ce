from __future__ import annotations

import pytest

from clip_review.clip_store import ClipStore
from clip_review.selection import SelectionEngine, contiguous_run, pointer_to_index


@pytest.fixture
def engine(make_clips):
    store = ClipStore()
    store.load(make_clips(6, step=5), "s1")
    return SelectionEngine(store)


def test_click_selects_single_and_sets_anchor(engine):
    engine.click(3)
    sel = engine.selection
    assert sel.selected_indices == {3}
    assert sel.current_index == 3
    assert sel.last_anchor_index == 3


@pytest.mark.parametrize("anchor,target", [(1, 4), (4, 1)])
def test_shift_click_selects_inclusive_run_either_direction(engine, anchor, target):
    engine.click(anchor)
    engine.shift_click(target)
    assert engine.selected() == [1, 2, 3, 4]
    assert engine.selection.current_index == target
    # anchor is kept so a second shift-click re-extends from the same place
    assert engine.selection.last_anchor_index == anchor


def test_shift_click_without_anchor_acts_as_click(engine):
    engine.shift_click(2)
    assert engine.selected() == [2]
    assert engine.selection.last_anchor_index == 2


def test_out_of_range_click_is_ignored(engine):
    engine.click(1)
    engine.click(99)
    assert engine.selected() == [1]


def test_drag_selects_run_from_origin(engine):
    width = 600.0  # 100px per clip
    engine.drag_start(1)
    engine.drag_move(350, width)
    assert engine.selected() == [1, 2, 3]
    # Moving back recomputes from the origin instead of accumulating.
    engine.drag_move(20, width)
    assert engine.selected() == [0, 1]
    engine.drag_end()
    assert not engine.is_dragging()
    assert engine.selected() == [0, 1]


def test_drag_end_without_movement_selects_origin(engine):
    engine.click(4)
    engine.drag_start(2)
    engine.drag_end()
    assert engine.selected() == [2]


def test_drag_move_clamps_outside_track(engine):
    engine.drag_start(2)
    engine.drag_move(-50, 600)
    assert engine.selected() == [0, 1, 2]
    engine.drag_move(5000, 600)
    assert engine.selected() == [2, 3, 4, 5]


def test_key_activate(engine):
    engine.key_activate(1)
    engine.key_activate(3, shift=True)
    assert engine.selected() == [1, 2, 3]


def test_select_all_and_clear(engine):
    engine.select_all()
    assert engine.selected() == [0, 1, 2, 3, 4, 5]
    engine.clear()
    assert engine.selected() == []


def test_navigation_clamps(engine):
    engine.previous()
    assert engine.selection.current_index == 0
    engine.set_current(5)
    engine.next()
    assert engine.selection.current_index == 5


def test_time_range_uses_selection_then_current(engine):
    engine.click(1)
    engine.shift_click(3)
    assert engine.time_range() == (5, 15)

    engine.click(2)
    assert engine.time_range() == (10, 15)

    engine.click(5)
    assert engine.time_range() == (25, 26)


def test_helpers():
    assert contiguous_run(5, 2) == [2, 3, 4, 5]
    assert pointer_to_index(0, 100, 0) == 0
    assert pointer_to_index(99, 100, 4) == 3
    assert pointer_to_index(25, 100, 4) == 1
