# clip_review/widgets/comments_panel.py
from __future__ import annotations

from typing import List, Optional

from PyQt5.QtCore import Qt, QEvent, pyqtSignal
from PyQt5.QtWidgets import (
    QAbstractItemView,
    QGroupBox,
    QHBoxLayout,
    QMenu,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from ..domain import TimeRangeComment
from ..timeutils import seconds_to_time_str


TABLE_COLUMNS = ["start", "end", "comment"]


class CommentsTable(QTableWidget):
    """
    Read-only table of time-range comments, in list order.

    Selecting a row and clicking the comment span on the timeline both go through
    request_edit(comment_id); the table never edits in place.
    """
    request_edit = pyqtSignal(int)
    request_delete = pyqtSignal(int)

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(0, len(TABLE_COLUMNS), parent)

        self.setHorizontalHeaderLabels(TABLE_COLUMNS)
        self.horizontalHeader().setStretchLastSection(True)
        self.horizontalHeader().setDefaultSectionSize(70)
        self.verticalHeader().setVisible(False)

        self.setSelectionBehavior(QAbstractItemView.SelectRows)
        self.setSelectionMode(QAbstractItemView.SingleSelection)
        self.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.setWordWrap(True)

        self.setContextMenuPolicy(Qt.CustomContextMenu)
        self.customContextMenuRequested.connect(self._show_context_menu)
        self.itemDoubleClicked.connect(self._on_double_click)

        self._records: List[TimeRangeComment] = []
        self._updating = False

        # Hover affordance: rows are clickable
        self.setMouseTracking(True)
        self.viewport().setMouseTracking(True)
        self.viewport().installEventFilter(self)

    # ---------------- Public API ----------------

    def set_records(self, records: List[TimeRangeComment], editing_id: Optional[int] = None) -> None:
        self._records = list(records or [])
        self.refresh(editing_id)

    def comment_id_at_row(self, row: int) -> Optional[int]:
        if 0 <= row < len(self._records):
            return self._records[row].comment_id
        return None

    def selected_comment_id(self) -> Optional[int]:
        return self.comment_id_at_row(self.currentRow())

    # ---------------- Rendering ----------------

    def refresh(self, editing_id: Optional[int] = None) -> None:
        self._updating = True
        try:
            self.setRowCount(0)
            for rec in self._records:
                row = self.rowCount()
                self.insertRow(row)
                values = [
                    seconds_to_time_str(rec.start_time),
                    seconds_to_time_str(rec.end_time),
                    rec.text,
                ]
                for col, val in enumerate(values):
                    item = QTableWidgetItem(val)
                    item.setToolTip(rec.text)
                    item.setFlags(item.flags() & ~Qt.ItemIsEditable)
                    self.setItem(row, col, item)
                if editing_id is not None and rec.comment_id == editing_id:
                    self.selectRow(row)
            self.resizeRowsToContents()
        finally:
            self._updating = False

    # ---------------- Context menu ----------------

    def _show_context_menu(self, pos):
        item = self.itemAt(pos)
        if item is None:
            return
        cid = self.comment_id_at_row(item.row())
        if cid is None:
            return

        menu = QMenu(self)
        edit_action = menu.addAction("Edit comment")
        delete_action = menu.addAction("Delete comment")

        chosen = menu.exec_(self.viewport().mapToGlobal(pos))
        if chosen == edit_action:
            self.request_edit.emit(int(cid))
        elif chosen == delete_action:
            self.request_delete.emit(int(cid))

    def _on_double_click(self, item: QTableWidgetItem):
        if item is None:
            return
        cid = self.comment_id_at_row(item.row())
        if cid is not None:
            self.request_edit.emit(int(cid))

    def eventFilter(self, obj, event):
        if obj is self.viewport():
            et = event.type()
            if et == QEvent.MouseMove:
                it = self.itemAt(event.pos())
                self.viewport().setCursor(Qt.PointingHandCursor if it is not None else Qt.ArrowCursor)
            elif et in (QEvent.Leave, QEvent.HoverLeave):
                self.viewport().setCursor(Qt.ArrowCursor)
        return super().eventFilter(obj, event)


class CommentsPanel(QGroupBox):
    """
    Right panel: session notes list + add/edit/delete + the Undo / Save buttons.

    Emits:
      - request_add()
      - request_edit(comment_id)
      - request_delete(comment_id)
      - request_undo(), request_save()
    """
    request_add = pyqtSignal()
    request_edit = pyqtSignal(int)
    request_delete = pyqtSignal(int)
    request_undo = pyqtSignal()
    request_save = pyqtSignal()

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__("Session Notes", parent)
        self._build_ui()

    def _build_ui(self):
        layout = QVBoxLayout()
        layout.setContentsMargins(6, 6, 6, 6)
        layout.setSpacing(6)
        self.setLayout(layout)

        self.table = CommentsTable()
        self.table.request_edit.connect(self.request_edit.emit)
        self.table.request_delete.connect(self.request_delete.emit)
        layout.addWidget(self.table, stretch=1)

        row = QHBoxLayout()
        self.btn_add = QPushButton("Add comment at current time")
        self.btn_add.clicked.connect(self.request_add.emit)
        self.btn_delete = QPushButton("Delete Selected")
        self.btn_delete.clicked.connect(self._on_delete_selected)
        row.addWidget(self.btn_add, stretch=1)
        row.addWidget(self.btn_delete)
        layout.addLayout(row)

        footer = QHBoxLayout()
        footer.addStretch()
        self.btn_undo = QPushButton("Undo")
        self.btn_undo.clicked.connect(self.request_undo.emit)
        self.btn_save = QPushButton("Save Changes")
        self.btn_save.clicked.connect(self.request_save.emit)
        footer.addWidget(self.btn_undo)
        footer.addWidget(self.btn_save)
        layout.addLayout(footer)

        for b in (self.btn_add, self.btn_delete, self.btn_undo, self.btn_save):
            b.setCursor(Qt.PointingHandCursor)

    # ---------------- Public API ----------------

    def set_comments(self, comments: List[TimeRangeComment], editing_id: Optional[int] = None) -> None:
        self.table.set_records(comments, editing_id)

    def set_actions_state(self, has_session: bool, can_undo: bool, can_save: bool, pending_count: int) -> None:
        self.btn_add.setEnabled(has_session)
        self.btn_delete.setEnabled(has_session)
        self.btn_undo.setEnabled(can_undo)
        self.btn_save.setEnabled(can_save)
        self.btn_save.setToolTip(
            f"Save {pending_count} pending deletion(s)" if pending_count else "No pending deletions"
        )

    def _on_delete_selected(self):
        cid = self.table.selected_comment_id()
        if cid is not None:
            self.request_delete.emit(int(cid))
