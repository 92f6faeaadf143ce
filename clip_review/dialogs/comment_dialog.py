# clip_review/dialogs/comment_dialog.py
from __future__ import annotations

from typing import Optional, Tuple

from PyQt5.QtCore import Qt
from PyQt5.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMessageBox,
    QTextEdit,
    QVBoxLayout,
)

from ..comments import validate_comment_fields
from ..timeutils import seconds_to_time_str, time_str_to_seconds


class CommentDialog(QDialog):
    """
    Add / edit form for a time-range comment.

    Start and end are typed as mm:ss. Values are validated before the dialog
    accepts, so result() is always a valid (start, end, text) triple.
    """

    def __init__(self, start_time: int, end_time: int, text: str = "", editing: bool = False, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Edit Comment" if editing else "Add Comment")
        self.setModal(True)
        self.resize(480, 260)

        self._result: Optional[Tuple[int, int, str]] = None

        layout = QVBoxLayout(self)

        row = QHBoxLayout()
        row.addWidget(QLabel("Start:"))
        self.start_edit = QLineEdit(seconds_to_time_str(start_time))
        self.start_edit.setPlaceholderText("mm:ss")
        row.addWidget(self.start_edit)
        row.addSpacing(12)
        row.addWidget(QLabel("End:"))
        self.end_edit = QLineEdit(seconds_to_time_str(end_time))
        self.end_edit.setPlaceholderText("mm:ss")
        row.addWidget(self.end_edit)
        layout.addLayout(row)

        layout.addWidget(QLabel("Comment:"))
        self.text_edit = QTextEdit()
        self.text_edit.setPlainText(text or "")
        self.text_edit.setPlaceholderText("Add your comment...")
        layout.addWidget(self.text_edit, stretch=1)

        buttons = QDialogButtonBox(QDialogButtonBox.Save | QDialogButtonBox.Cancel)
        buttons.accepted.connect(self._on_accept)
        buttons.rejected.connect(self.reject)
        for btn in buttons.buttons():
            btn.setCursor(Qt.PointingHandCursor)
        layout.addWidget(buttons)

    def comment_values(self) -> Optional[Tuple[int, int, str]]:
        return self._result

    def _on_accept(self):
        try:
            start = time_str_to_seconds(self.start_edit.text())
            end = time_str_to_seconds(self.end_edit.text())
            text = validate_comment_fields(start, end, self.text_edit.toPlainText())
        except ValueError as e:
            QMessageBox.warning(self, "Invalid comment", str(e))
            return
        self._result = (start, end, text)
        self.accept()
