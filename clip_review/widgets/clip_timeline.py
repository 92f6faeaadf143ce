# clip_review/widgets/clip_timeline.py
from __future__ import annotations

from typing import Dict, List, Optional, Set

from PyQt5.QtCore import Qt, QRect, QPoint, pyqtSignal
from PyQt5.QtGui import QColor, QPainter, QPen, QPixmap, QFontMetrics
from PyQt5.QtWidgets import (
    QScrollArea,
    QToolTip,
    QVBoxLayout,
    QWidget,
)

from ..comments import CommentSpan
from ..domain import Clip, TimeRangeComment
from ..selection import SelectionEngine
from ..timeutils import seconds_to_clock, seconds_to_time_str


class _ClipStripCanvas(QWidget):
    """
    One cell per clip, each `zoom` pixels wide. Pointer and keyboard gestures are
    translated into SelectionEngine calls; the canvas itself keeps no selection.
    """
    selection_changed = pyqtSignal()
    current_changed = pyqtSignal(int)

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(parent)

        self._clips: List[Clip] = []
        self._engine: Optional[SelectionEngine] = None
        self._zoom: int = 50

        self._strip_h = 96
        self._label_h = 14

        self._thumbs: Dict[str, QPixmap] = {}

        self.setFocusPolicy(Qt.StrongFocus)
        self.setMouseTracking(True)
        self.setMinimumHeight(self._strip_h)
        self._cursor_mode: str = ""

    def _set_cursor_mode(self, mode: str) -> None:
        mode = (mode or "").strip().lower()
        if mode == self._cursor_mode:
            return
        self._cursor_mode = mode
        if mode == "hand":
            self.setCursor(Qt.PointingHandCursor)
        else:
            self.unsetCursor()

    # ---------------- Public API ----------------

    def set_engine(self, engine: SelectionEngine) -> None:
        self._engine = engine

    def set_clips(self, clips: List[Clip]) -> None:
        self._clips = list(clips or [])
        keep = {c.clip_id for c in self._clips}
        self._thumbs = {k: v for k, v in self._thumbs.items() if k in keep}
        self._resize_to_content()
        self.update()

    def set_zoom(self, zoom: int) -> None:
        self._zoom = max(1, int(zoom))
        self._resize_to_content()
        self.update()

    # ---------------- Geometry helpers ----------------

    def _resize_to_content(self) -> None:
        width = max(1, len(self._clips) * self._zoom)
        self.setFixedWidth(width)
        self.setFixedHeight(self._strip_h)

    def _index_at(self, x: int) -> int:
        if not self._clips:
            return -1
        idx = int(x) // max(1, self._zoom)
        return max(0, min(idx, len(self._clips) - 1))

    def _cell_rect(self, index: int) -> QRect:
        return QRect(index * self._zoom, 0, self._zoom, self._strip_h)

    def _thumb_for(self, clip: Clip) -> Optional[QPixmap]:
        pm = self._thumbs.get(clip.clip_id)
        if pm is None and clip.image_ref:
            loaded = QPixmap(clip.image_ref)
            if loaded.isNull():
                return None
            pm = loaded.scaledToHeight(self._strip_h, Qt.SmoothTransformation)
            self._thumbs[clip.clip_id] = pm
        return pm

    # ---------------- Painting ----------------

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor("#1a1a1a"))

        if not self._clips:
            painter.setPen(QPen(QColor("#777777"), 1))
            painter.drawText(self.rect(), Qt.AlignCenter, "No clips")
            painter.end()
            return

        sel = self._engine.selection if self._engine else None
        selected: Set[int] = sel.selected_indices if sel else set()
        current = sel.current_index if sel else -1

        fm = QFontMetrics(self.font())
        visible = event.rect()
        first = max(0, visible.left() // max(1, self._zoom))
        last = min(len(self._clips) - 1, visible.right() // max(1, self._zoom))

        for i in range(first, last + 1):
            clip = self._clips[i]
            rect = self._cell_rect(i)

            pm = self._thumb_for(clip)
            if pm is not None:
                # center-crop into the cell
                src_x = max(0, (pm.width() - rect.width()) // 2)
                painter.drawPixmap(rect, pm, QRect(src_x, 0, rect.width(), pm.height()))
            else:
                painter.fillRect(rect.adjusted(1, 1, -1, -1), QColor("#2a2a2a"))

            if i not in selected:
                painter.fillRect(rect, QColor(0, 0, 0, 120))
                painter.setPen(QPen(QColor("#000000"), 1))
            else:
                painter.setPen(QPen(QColor("#ff8c1a"), 2))
            painter.drawRect(rect.adjusted(1, 1, -1, -1))

            if i == current:
                painter.setPen(QPen(QColor("#ffffff"), 2))
                painter.drawRect(rect.adjusted(3, 3, -3, -3))

            # time tag
            tag = seconds_to_clock(clip.time)
            tag_rect = QRect(rect.left(), rect.bottom() - self._label_h + 1, rect.width(), self._label_h)
            painter.fillRect(tag_rect, QColor(0, 0, 0, 180))
            if fm.horizontalAdvance(tag) + 4 < rect.width():
                painter.setPen(QPen(QColor("#ffffff"), 1))
                painter.drawText(tag_rect.adjusted(2, 0, -2, 0), Qt.AlignVCenter | Qt.AlignLeft, tag)

        painter.end()

    # ---------------- Interaction ----------------

    def mousePressEvent(self, event):
        if event.button() != Qt.LeftButton or self._engine is None:
            return super().mousePressEvent(event)
        idx = self._index_at(event.pos().x())
        if idx < 0:
            return

        self.setFocus(Qt.MouseFocusReason)
        if event.modifiers() & Qt.ShiftModifier:
            self._engine.shift_click(idx)
        else:
            self._engine.drag_start(idx)
        self.current_changed.emit(self._engine.selection.current_index)
        self.selection_changed.emit()
        self.update()
        event.accept()

    def mouseMoveEvent(self, event):
        self._set_cursor_mode("hand" if self._clips else "")
        if self._engine is not None and self._engine.is_dragging() and (event.buttons() & Qt.LeftButton):
            self._engine.drag_move(event.pos().x(), self.width())
            self.selection_changed.emit()
            self.update()

            parent = self.parent()
            while parent is not None and not isinstance(parent, QScrollArea):
                parent = parent.parent()
            if parent is not None:
                parent.ensureVisible(event.pos().x(), 0, 40, 0)
            return
        return super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.LeftButton and self._engine is not None and self._engine.is_dragging():
            self._engine.drag_end()
            self.selection_changed.emit()
            self.update()
            event.accept()
            return
        return super().mouseReleaseEvent(event)

    def leaveEvent(self, event):
        self._set_cursor_mode("")
        return super().leaveEvent(event)

    def keyPressEvent(self, event):
        if self._engine is None or not self._clips:
            return super().keyPressEvent(event)

        key = event.key()
        cur = self._engine.selection.current_index
        shift = bool(event.modifiers() & Qt.ShiftModifier)

        if key in (Qt.Key_Return, Qt.Key_Enter, Qt.Key_Space):
            self._engine.key_activate(cur, shift=shift)
        elif key == Qt.Key_Left:
            self._engine.previous()
        elif key == Qt.Key_Right:
            self._engine.next()
        else:
            return super().keyPressEvent(event)

        self.current_changed.emit(self._engine.selection.current_index)
        self.selection_changed.emit()
        self.update()
        event.accept()


class _CommentBarCanvas(QWidget):
    """Comment spans positioned as fractions of the clip strip width."""
    comment_clicked = pyqtSignal(int)

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self._spans: List[CommentSpan] = []
        self._comments: Dict[int, TimeRangeComment] = {}
        self._editing_id: Optional[int] = None
        self.setMouseTracking(True)
        self.setFixedHeight(24)

    def set_spans(self, spans: List[CommentSpan], comments: List[TimeRangeComment],
                  editing_id: Optional[int] = None) -> None:
        self._spans = list(spans or [])
        self._comments = {c.comment_id: c for c in (comments or []) if c.comment_id is not None}
        self._editing_id = editing_id
        self.update()

    def _span_rect(self, sp: CommentSpan) -> QRect:
        w = self.width()
        x1 = int(round(sp.left * w))
        x2 = int(round((sp.left + sp.width) * w))
        return QRect(x1, 4, max(2, x2 - x1), self.height() - 8)

    def _span_at(self, pos: QPoint) -> Optional[CommentSpan]:
        # last drawn wins when spans overlap
        for sp in reversed(self._spans):
            if self._span_rect(sp).contains(pos):
                return sp
        return None

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor("#141414"))
        painter.setPen(QPen(QColor("#2b2b2b"), 1))
        painter.drawLine(0, 0, self.width(), 0)

        for sp in self._spans:
            rect = self._span_rect(sp)
            c = QColor("#ff8c1a")
            c.setAlpha(230 if sp.comment_id == self._editing_id else 170)
            painter.fillRect(rect, c)
            painter.setPen(QPen(QColor("#ff8c1a"), 1))
            painter.drawRect(rect)
        painter.end()

    def mouseMoveEvent(self, event):
        sp = self._span_at(event.pos())
        if sp is None:
            self.unsetCursor()
            QToolTip.hideText()
            return
        self.setCursor(Qt.PointingHandCursor)
        c = self._comments.get(sp.comment_id)
        if c is not None:
            tip = f"{seconds_to_time_str(c.start_time)} - {seconds_to_time_str(c.end_time)}\n{c.text}"
            QToolTip.showText(event.globalPos(), tip, self)

    def mousePressEvent(self, event):
        if event.button() != Qt.LeftButton:
            return super().mousePressEvent(event)
        sp = self._span_at(event.pos())
        if sp is not None and sp.comment_id is not None:
            self.comment_clicked.emit(int(sp.comment_id))
            event.accept()
            return
        return super().mousePressEvent(event)


class ClipTimeline(QScrollArea):
    """
    Horizontally scrollable clip strip with the comment bar underneath.

    Use:
      - set_engine(selection_engine) once
      - set_clips(clips) / set_zoom(px_per_clip) / set_comment_spans(...)

    viewport_resized(width) fires whenever the visible width changes so the
    owner can re-clamp zoom.
    """
    selection_changed = pyqtSignal()
    current_changed = pyqtSignal(int)
    comment_clicked = pyqtSignal(int)
    viewport_resized = pyqtSignal(int)

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(parent)

        self.setWidgetResizable(False)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarAsNeeded)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarAlwaysOff)

        self._content = QWidget()
        lay = QVBoxLayout(self._content)
        lay.setContentsMargins(0, 0, 0, 0)
        lay.setSpacing(0)

        self.strip = _ClipStripCanvas(self._content)
        self.comment_bar = _CommentBarCanvas(self._content)
        lay.addWidget(self.strip)
        lay.addWidget(self.comment_bar)
        self.setWidget(self._content)

        # Forward signals
        self.strip.selection_changed.connect(self.selection_changed.emit)
        self.strip.current_changed.connect(self.current_changed.emit)
        self.comment_bar.comment_clicked.connect(self.comment_clicked.emit)

        self._last_width = -1

    def _sync_content_size(self) -> None:
        w = self.strip.width()
        self.comment_bar.setFixedWidth(w)
        self._content.setFixedSize(w, self.strip.height() + self.comment_bar.height())
        self.setMinimumHeight(self._content.height() + self.horizontalScrollBar().sizeHint().height() + 4)

    def set_engine(self, engine: SelectionEngine) -> None:
        self.strip.set_engine(engine)

    def set_clips(self, clips: List[Clip]) -> None:
        self.strip.set_clips(clips)
        self._sync_content_size()

    def set_zoom(self, zoom: int) -> None:
        self.strip.set_zoom(zoom)
        self._sync_content_size()

    def set_comment_spans(self, spans: List[CommentSpan], comments: List[TimeRangeComment],
                          editing_id: Optional[int] = None) -> None:
        self.comment_bar.set_spans(spans, comments, editing_id)

    def refresh(self) -> None:
        self.strip.update()
        self.comment_bar.update()

    def resizeEvent(self, event):
        super().resizeEvent(event)
        w = self.viewport().width()
        if w != self._last_width:
            self._last_width = w
            self.viewport_resized.emit(w)
