# clip_review/widgets/clip_viewer.py
from __future__ import annotations

from typing import Optional

from PyQt5.QtCore import Qt, QSize, pyqtSignal
from PyQt5.QtGui import QPixmap
from PyQt5.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QSizePolicy,
    QVBoxLayout,
    QWidget,
)

from ..domain import Clip
from ..timeutils import seconds_to_clock


class _LabelEdit(QLineEdit):
    """Enter submits, Escape restores the last committed text."""
    submitted = pyqtSignal(str)

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self._committed = ""
        self.returnPressed.connect(lambda: self.submitted.emit(self.text()))

    def set_committed(self, text: str) -> None:
        self._committed = text or ""
        self.setText(self._committed)

    def keyPressEvent(self, event):
        if event.key() == Qt.Key_Escape:
            self.setText(self._committed)
            self.clearFocus()
            event.accept()
            return
        super().keyPressEvent(event)


class ClipViewer(QWidget):
    """
    Large view of the current clip with prev/next navigation and its label.

    The viewer holds no position of its own; the owner calls show_clip() whenever
    the current index changes.
    """
    request_previous = pyqtSignal()
    request_next = pyqtSignal()
    label_submitted = pyqtSignal(int, str)  # (index, text)

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(parent)

        self._index: int = -1
        self._count: int = 0
        self._pixmap: Optional[QPixmap] = None

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(6)

        self.image = QLabel("No clip")
        self.image.setAlignment(Qt.AlignCenter)
        self.image.setMinimumSize(QSize(480, 270))
        self.image.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Expanding)
        self.image.setStyleSheet("background: #000; color: #777;")
        layout.addWidget(self.image, stretch=1)

        nav = QHBoxLayout()
        self.btn_prev = QPushButton("< Previous")
        self.btn_next = QPushButton("Next >")
        self.btn_prev.clicked.connect(self.request_previous.emit)
        self.btn_next.clicked.connect(self.request_next.emit)
        self.counter = QLabel("0 / 0")
        self.counter.setAlignment(Qt.AlignCenter)
        nav.addWidget(self.btn_prev)
        nav.addStretch()
        nav.addWidget(self.counter)
        nav.addStretch()
        nav.addWidget(self.btn_next)
        layout.addLayout(nav)

        label_row = QHBoxLayout()
        label_row.addWidget(QLabel("Label:"))
        self.label_edit = _LabelEdit()
        self.label_edit.setPlaceholderText("Press Enter to save the label")
        self.label_edit.submitted.connect(self._on_label_submitted)
        label_row.addWidget(self.label_edit, stretch=1)
        self.time_label = QLabel("")
        label_row.addWidget(self.time_label)
        layout.addLayout(label_row)

        for b in (self.btn_prev, self.btn_next):
            b.setCursor(Qt.PointingHandCursor)

    # ---------------- Public API ----------------

    def show_clip(self, clip: Optional[Clip], index: int, count: int) -> None:
        self._count = max(0, int(count))
        if clip is None or self._count == 0:
            self._index = -1
            self._pixmap = None
            self.image.setPixmap(QPixmap())
            self.image.setText("No clip")
            self.counter.setText("0 / 0")
            self.label_edit.set_committed("")
            self.label_edit.setEnabled(False)
            self.time_label.setText("")
            self.btn_prev.setEnabled(False)
            self.btn_next.setEnabled(False)
            return

        self._index = int(index)
        pm = QPixmap(clip.image_ref) if clip.image_ref else QPixmap()
        self._pixmap = None if pm.isNull() else pm
        if self._pixmap is None:
            self.image.setPixmap(QPixmap())
            self.image.setText("Image unavailable")
        else:
            self._rescale()

        self.counter.setText(f"{self._index + 1} / {self._count}")
        self.label_edit.setEnabled(True)
        self.label_edit.set_committed(clip.label or "")
        self.time_label.setText(seconds_to_clock(clip.time))
        self.btn_prev.setEnabled(self._index > 0)
        self.btn_next.setEnabled(self._index < self._count - 1)

    # ---------------- Internals ----------------

    def _rescale(self) -> None:
        if self._pixmap is None:
            return
        scaled = self._pixmap.scaled(self.image.size(), Qt.KeepAspectRatio, Qt.SmoothTransformation)
        self.image.setPixmap(scaled)

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self._rescale()

    def _on_label_submitted(self, text: str) -> None:
        if self._index >= 0:
            self.label_submitted.emit(self._index, text)
        self.label_edit.clearFocus()
