# clip_review/__init__.py
'''
clip_review/
    __init__.py
    __main__.py

    app.py                 # argparse + logging + QApplication boot + root selection
    main_window.py         # QMainWindow layout + wiring to ClipEditor

    domain.py              # dataclasses: Clip, TimeRangeComment, Selection, undo actions, RootConfig
    persistence.py         # config.json, PersistenceGateway, LocalSessionGateway, MemoryGateway
    timeutils.py           # seconds <-> mm:ss, timestamp parsing, clip time lookup
    notifications.py       # success / error notices handed to the host

    clip_store.py          # ordered clips + pending deletions + commit
    selection.py           # click / shift-click / drag / keyboard selection
    comments.py            # time-range comments + clip span mapping
    undo.py                # LIFO of recording and comment deletions
    viewport.py            # zoom bounds and clamping
    editor.py              # ClipEditor: the facade the UI talks to

    widgets/
      clip_timeline.py     # thumbnail strip + comment bar inside a scroll area
      clip_viewer.py       # large current clip + prev/next + label edit
      comments_panel.py    # notes table + add/edit/delete + undo/save buttons

    dialogs/
      comment_dialog.py    # add / edit a comment
      open_session.py      # pick a session from the data root
'''

from __future__ import annotations

__all__ = ["__version__", "ClipEditor", "run_app"]

__version__ = "0.1.0"

from .editor import ClipEditor


def run_app(argv=None) -> int:
    from .app import run_app as _run

    return _run(argv)
