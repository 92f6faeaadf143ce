# clip_review/dialogs/open_session.py
from __future__ import annotations

from typing import List, Optional

from PyQt5.QtCore import Qt, QEvent
from PyQt5.QtWidgets import (
    QAbstractItemView,
    QDialog,
    QDialogButtonBox,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
)

from ..domain import GatewayError, SessionInfo
from ..persistence import PersistenceGateway, latest_session_id


class OpenSessionDialog(QDialog):
    """
    Lists the gateway's sessions (newest preselected) and returns the chosen id.
    """

    def __init__(self, gateway: PersistenceGateway, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Open Session")
        self.setModal(True)
        self.resize(620, 420)

        self._gateway = gateway
        self._selected_id: Optional[str] = None

        self._build_ui()
        self._load_sessions()

    def selected_session_id(self) -> Optional[str]:
        return self._selected_id

    # ---------------- UI ----------------

    def _build_ui(self):
        layout = QVBoxLayout(self)
        layout.setSpacing(10)

        layout.addWidget(QLabel("Select a session to review:"))

        self.list = QListWidget()
        self.list.setSelectionMode(QAbstractItemView.SingleSelection)
        self.list.itemDoubleClicked.connect(self._on_double_click)
        self.list.setMouseTracking(True)
        self.list.viewport().setMouseTracking(True)
        self.list.viewport().installEventFilter(self)
        layout.addWidget(self.list, stretch=1)

        btn_row = QHBoxLayout()
        self.btn_refresh = QPushButton("Refresh")
        self.btn_refresh.setCursor(Qt.PointingHandCursor)
        self.btn_refresh.clicked.connect(self._load_sessions)
        btn_row.addWidget(self.btn_refresh)
        btn_row.addStretch()
        layout.addLayout(btn_row)

        buttons = QDialogButtonBox(QDialogButtonBox.Open | QDialogButtonBox.Cancel)
        buttons.accepted.connect(self._on_accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def _load_sessions(self):
        self.list.clear()
        try:
            sessions: List[SessionInfo] = self._gateway.list_sessions()
        except GatewayError as e:
            QMessageBox.warning(self, "Cannot list sessions", str(e))
            return

        newest = latest_session_id(sessions)
        for s in sessions:
            text = s.label if s.label == s.session_id else f"{s.label}  ({s.session_id})"
            if s.created_at:
                text = f"{text}  -  {s.created_at}"
            it = QListWidgetItem(text)
            it.setData(Qt.UserRole, s.session_id)
            self.list.addItem(it)
            if s.session_id == newest:
                self.list.setCurrentItem(it)

    # ---------------- Actions ----------------

    def _on_double_click(self, item: QListWidgetItem):
        if item is None:
            return
        self.list.setCurrentItem(item)
        self._on_accept()

    def _on_accept(self):
        item = self.list.currentItem()
        sid = item.data(Qt.UserRole) if item else None
        if not sid:
            QMessageBox.warning(self, "No selection", "Please select a session.")
            return
        self._selected_id = str(sid)
        self.accept()

    def eventFilter(self, obj, event):
        if obj is self.list.viewport():
            et = event.type()
            if et == QEvent.MouseMove:
                it = self.list.itemAt(event.pos())
                self.list.viewport().setCursor(Qt.PointingHandCursor if it is not None else Qt.ArrowCursor)
            elif et in (QEvent.Leave, QEvent.HoverLeave):
                self.list.viewport().setCursor(Qt.ArrowCursor)
        return super().eventFilter(obj, event)
