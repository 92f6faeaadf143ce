# clip_review/main_window.py
from __future__ import annotations

import logging
from typing import List, Optional

from PyQt5.QtCore import Qt, QTimer
from PyQt5.QtWidgets import (
    QFileDialog,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QSlider,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

from .dialogs.comment_dialog import CommentDialog
from .dialogs.open_session import OpenSessionDialog
from .domain import RootConfig, ValidationError
from .editor import ClipEditor
from .notifications import SEVERITY_ERROR, Notification, Notifier
from .persistence import LocalSessionGateway, load_root_config, save_root_config
from .widgets.clip_timeline import ClipTimeline
from .widgets.clip_viewer import ClipViewer
from .widgets.comments_panel import CommentsPanel

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    def __init__(self, root_dir: Optional[str] = None, editor: Optional[ClipEditor] = None):
        super().__init__()
        self.setWindowTitle("Clip Review Editor")
        self.resize(1600, 960)

        self.root_dir: Optional[str] = None
        self.cfg: Optional[RootConfig] = None

        # Notifications raised during one editor call are shown together afterwards.
        self._pending_notes: List[Notification] = []
        self.notifier = Notifier(sink=self._on_notification)

        self.editor = editor or ClipEditor(notifier=self.notifier)
        self.editor.notifier.set_sink(self._on_notification)
        self.editor.add_listener(self._refresh_all)

        self._build_ui()
        if root_dir:
            self.set_root_dir(root_dir)

    # ---------------- UI ----------------

    def _build_ui(self):
        central = QWidget()
        self.setCentralWidget(central)

        main_layout = QVBoxLayout(central)
        main_layout.setContentsMargins(6, 6, 6, 6)
        main_layout.setSpacing(6)

        # ===== Top: root + session =====
        top = QHBoxLayout()
        top.setSpacing(10)
        main_layout.addLayout(top)

        root_box = QGroupBox("Data Root")
        root_lay = QHBoxLayout(root_box)
        root_lay.setContentsMargins(6, 6, 6, 6)
        self.root_label = QLabel("Not set")
        self.btn_set_root = QPushButton("Select Root")
        self.btn_set_root.clicked.connect(self._choose_root_dir)
        root_lay.addWidget(self.root_label, stretch=1)
        root_lay.addWidget(self.btn_set_root)
        top.addWidget(root_box, stretch=3)

        sess_box = QGroupBox("Session")
        sess_lay = QHBoxLayout(sess_box)
        sess_lay.setContentsMargins(6, 6, 6, 6)
        self.btn_open = QPushButton("Open Session")
        self.btn_open.clicked.connect(self._open_session_dialog)
        self.btn_delete_session = QPushButton("Delete Session")
        self.btn_delete_session.clicked.connect(self._delete_session)
        self.session_label = QLabel("No session loaded")
        self.session_label.setTextInteractionFlags(Qt.TextSelectableByMouse)
        sess_lay.addWidget(self.btn_open)
        sess_lay.addWidget(self.btn_delete_session)
        sess_lay.addStretch()
        sess_lay.addWidget(self.session_label)
        top.addWidget(sess_box, stretch=5)

        # ===== Middle: viewer (left) + notes (right) =====
        split = QSplitter(Qt.Horizontal)
        main_layout.addWidget(split, stretch=10)

        self.viewer = ClipViewer()
        self.viewer.request_previous.connect(self._previous_clip)
        self.viewer.request_next.connect(self._next_clip)
        self.viewer.label_submitted.connect(self._on_label_submitted)

        self.comments_panel = CommentsPanel()
        self.comments_panel.request_add.connect(self._add_comment)
        self.comments_panel.request_edit.connect(self._edit_comment)
        self.comments_panel.request_delete.connect(self._delete_comment)
        self.comments_panel.request_undo.connect(self._undo)
        self.comments_panel.request_save.connect(self._save)

        split.addWidget(self.viewer)
        split.addWidget(self.comments_panel)
        split.setStretchFactor(0, 12)
        split.setStretchFactor(1, 4)

        # ===== Bottom: timeline controls + timeline =====
        timeline_box = QGroupBox("Timeline")
        tl_lay = QVBoxLayout(timeline_box)
        tl_lay.setContentsMargins(6, 6, 6, 6)
        tl_lay.setSpacing(6)

        controls = QHBoxLayout()
        controls.setSpacing(8)
        self.btn_delete_clips = QPushButton("Delete")
        self.btn_delete_clips.clicked.connect(self._delete_selected_clips)
        self.btn_select_all = QPushButton("Select All")
        self.btn_select_all.clicked.connect(self._select_all)
        self.btn_clear = QPushButton("Clear")
        self.btn_clear.clicked.connect(self._clear_selection)
        self.selection_label = QLabel("0 selected")

        self.btn_zoom_out = QPushButton("-")
        self.btn_zoom_out.setFixedWidth(28)
        self.btn_zoom_out.clicked.connect(self._zoom_out)
        self.zoom_slider = QSlider(Qt.Horizontal)
        self.zoom_slider.setFixedWidth(200)
        self.zoom_slider.valueChanged.connect(self._on_zoom_slider)
        self.btn_zoom_in = QPushButton("+")
        self.btn_zoom_in.setFixedWidth(28)
        self.btn_zoom_in.clicked.connect(self._zoom_in)

        controls.addWidget(self.btn_delete_clips)
        controls.addWidget(self.btn_select_all)
        controls.addWidget(self.btn_clear)
        controls.addSpacing(12)
        controls.addWidget(self.selection_label)
        controls.addStretch()
        controls.addWidget(QLabel("Zoom"))
        controls.addWidget(self.btn_zoom_out)
        controls.addWidget(self.zoom_slider)
        controls.addWidget(self.btn_zoom_in)
        tl_lay.addLayout(controls)

        self.timeline = ClipTimeline()
        self.timeline.set_engine(self.editor.selection)
        self.timeline.selection_changed.connect(self._on_timeline_selection)
        self.timeline.current_changed.connect(self._on_current_changed)
        self.timeline.comment_clicked.connect(self._edit_comment)
        self.timeline.viewport_resized.connect(self._on_timeline_resized)
        tl_lay.addWidget(self.timeline)

        main_layout.addWidget(timeline_box, stretch=3)

        self._ignore_zoom_slider = False
        self._apply_clickable_cursors()
        self._refresh_all()

    def _apply_clickable_cursors(self) -> None:
        for w in (
            self.btn_set_root,
            self.btn_open,
            self.btn_delete_session,
            self.btn_delete_clips,
            self.btn_select_all,
            self.btn_clear,
            self.btn_zoom_out,
            self.btn_zoom_in,
        ):
            w.setCursor(Qt.PointingHandCursor)

    # ---------------- Notifications ----------------

    def _on_notification(self, note: Notification) -> None:
        self._pending_notes.append(note)
        if len(self._pending_notes) == 1:
            QTimer.singleShot(0, self._flush_notifications)

    def _flush_notifications(self) -> None:
        notes, self._pending_notes = self._pending_notes, []
        if not notes:
            return
        errors = [n for n in notes if n.severity == SEVERITY_ERROR]
        self.statusBar().showMessage(notes[-1].message, 5000)
        if errors:
            QMessageBox.warning(self, errors[0].title, "\n".join(n.message for n in errors))

    # ---------------- Root config ----------------

    def _choose_root_dir(self):
        d = QFileDialog.getExistingDirectory(self, "Select Data Root")
        if d and self._confirm_discard():
            self.set_root_dir(d)

    def set_root_dir(self, root_dir: Optional[str]) -> None:
        if root_dir:
            self.root_dir = root_dir
            self.root_label.setText(root_dir)
            self.cfg = load_root_config(root_dir) or RootConfig(root_dir=root_dir)
            self.editor.set_gateway(LocalSessionGateway(root_dir), self.cfg)
        else:
            self.root_dir = None
            self.root_label.setText("Not set")
            self.cfg = None
            self.editor.set_gateway(None)
        self.timeline.set_engine(self.editor.selection)
        self.session_label.setText("No session loaded")
        self._refresh_all()

    def open_session(self, session_id: str) -> bool:
        if self.editor.gateway is None:
            QMessageBox.warning(self, "No Root", "Please select a Data Root first.")
            return False
        if not self._confirm_discard():
            return False
        ok = self.editor.open_session(session_id)
        if ok:
            self.session_label.setText(f"Session: {session_id}")
            if self.cfg is not None:
                self.cfg.last_session = session_id
                self._save_config()
        return ok

    def _save_config(self) -> None:
        if not self.cfg:
            return
        try:
            save_root_config(self.cfg)
        except (OSError, ValueError) as e:
            logger.warning("config save failed: %s", e)
            QMessageBox.warning(self, "Config save failed", str(e))

    # ---------------- Session actions ----------------

    def _open_session_dialog(self):
        if self.editor.gateway is None:
            QMessageBox.warning(self, "No Root", "Please select a Data Root first.")
            return
        dlg = OpenSessionDialog(self.editor.gateway, self)
        if dlg.exec_() != dlg.Accepted:
            return
        sid = dlg.selected_session_id()
        if sid:
            self.open_session(sid)

    def _delete_session(self):
        if not self.editor.session_id:
            return
        resp = QMessageBox.question(
            self,
            "Delete Session",
            "This will permanently delete this session and all of its clips and comments. Continue?",
            QMessageBox.Yes | QMessageBox.No,
            QMessageBox.No,
        )
        if resp != QMessageBox.Yes:
            return
        if self.editor.delete_session():
            self.session_label.setText("No session loaded")
            if self.cfg is not None:
                self.cfg.last_session = None
                self._save_config()

    def _confirm_discard(self) -> bool:
        if not self.editor.has_unsaved_changes():
            return True
        resp = QMessageBox.question(
            self,
            "Unsaved Changes",
            "You have unsaved changes. Do you want to discard them?",
            QMessageBox.Yes | QMessageBox.No,
            QMessageBox.No,
        )
        return resp == QMessageBox.Yes

    # ---------------- Clip actions ----------------

    def _delete_selected_clips(self):
        self.editor.delete_selected()

    def _select_all(self):
        self.editor.selection.select_all()
        self._refresh_all()

    def _clear_selection(self):
        self.editor.selection.clear()
        self._refresh_all()

    def _previous_clip(self):
        self.editor.selection.previous()
        self._refresh_all()

    def _next_clip(self):
        self.editor.selection.next()
        self._refresh_all()

    def _on_timeline_selection(self):
        self._update_selection_label()
        self._update_enabled_state()

    def _on_current_changed(self, index: int):
        self._refresh_viewer()

    def _on_label_submitted(self, index: int, text: str):
        try:
            self.editor.update_label(index, text)
        except ValidationError as e:
            QMessageBox.warning(self, "Invalid label", str(e))

    def _save(self):
        if not self.editor.can_save:
            return
        # Disabled while the commit runs so a second click cannot race it.
        self.comments_panel.btn_save.setEnabled(False)
        self.editor.save()

    def _undo(self):
        self.editor.undo()

    # ---------------- Comment actions ----------------

    def _add_comment(self):
        if not self.editor.session_id:
            return
        start, end = self.editor.default_comment_range()
        dlg = CommentDialog(start, end, parent=self)
        if dlg.exec_() != dlg.Accepted:
            return
        values = dlg.comment_values()
        if values is None:
            return
        try:
            self.editor.add_comment(*values)
        except ValidationError as e:
            QMessageBox.warning(self, "Invalid comment", str(e))

    def _edit_comment(self, comment_id: int):
        cid = self.editor.request_comment_edit(comment_id)
        comment = self.editor.comments.find(cid) if cid is not None else None
        if comment is None:
            return
        dlg = CommentDialog(comment.start_time, comment.end_time, comment.text, editing=True, parent=self)
        if dlg.exec_() != dlg.Accepted:
            self.editor.comments.cancel_edit()
            self._refresh_all()
            return
        values = dlg.comment_values()
        if values is None:
            return
        try:
            self.editor.update_comment(comment.comment_id, *values)
        except ValidationError as e:
            QMessageBox.warning(self, "Invalid comment", str(e))

    def _delete_comment(self, comment_id: int):
        self.editor.delete_comment(comment_id)

    # ---------------- Zoom ----------------

    def _on_timeline_resized(self, width: int):
        self.editor.viewport.set_viewport_width(width)
        self._refresh_zoom()

    def _zoom_in(self):
        self.editor.viewport.zoom_in()
        self._refresh_zoom()

    def _zoom_out(self):
        self.editor.viewport.zoom_out()
        self._refresh_zoom()

    def _on_zoom_slider(self, value: int):
        if self._ignore_zoom_slider:
            return
        self.editor.viewport.set_zoom(int(value))
        self._refresh_zoom()

    def _refresh_zoom(self):
        vp = self.editor.viewport
        self._ignore_zoom_slider = True
        try:
            self.zoom_slider.setRange(vp.min_zoom, vp.max_zoom)
            self.zoom_slider.setValue(vp.zoom)
        finally:
            self._ignore_zoom_slider = False
        self.btn_zoom_in.setEnabled(vp.can_zoom_in())
        self.btn_zoom_out.setEnabled(vp.can_zoom_out())
        self.timeline.set_zoom(vp.zoom)

    # ---------------- Refresh ----------------

    def _refresh_all(self):
        ed = self.editor
        self.timeline.set_clips(ed.clips)
        self.timeline.set_comment_spans(ed.comment_spans(), ed.comment_list, ed.comments.editing_id)
        self.comments_panel.set_comments(ed.comment_list, ed.comments.editing_id)
        self._refresh_zoom()
        self._refresh_viewer()
        self._update_selection_label()
        self._update_enabled_state()

    def _refresh_viewer(self):
        ed = self.editor
        cur = ed.store.selection.current_index
        self.viewer.show_clip(ed.current_clip(), cur, len(ed.store))
        self.timeline.refresh()

    def _update_selection_label(self):
        n = len(self.editor.store.selection.selected_indices)
        pending = len(self.editor.pending_deletions)
        text = f"{n} selected"
        if pending:
            text += f"  |  {pending} pending deletion(s)"
        self.selection_label.setText(text)

    def _update_enabled_state(self):
        ed = self.editor
        has_root = ed.gateway is not None
        has_session = bool(ed.session_id)
        has_clips = len(ed.store) > 0
        has_sel = bool(ed.store.selection.selected_indices)

        self.btn_open.setEnabled(has_root)
        self.btn_delete_session.setEnabled(has_session)
        self.btn_delete_clips.setEnabled(has_session and has_sel)
        self.btn_select_all.setEnabled(has_clips)
        self.btn_clear.setEnabled(has_sel)
        self.comments_panel.set_actions_state(
            has_session=has_session,
            can_undo=ed.can_undo,
            can_save=ed.can_save,
            pending_count=len(ed.pending_deletions),
        )

    def closeEvent(self, event):
        if not self._confirm_discard():
            event.ignore()
            return
        if self.cfg and self.root_dir:
            try:
                save_root_config(self.cfg)
            except (OSError, ValueError) as e:
                logger.warning("config save on close failed: %s", e)
        super().closeEvent(event)
