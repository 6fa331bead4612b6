"""
contribforms GUI app.

Window backed by engine forms (contribution request, contributor invitation).
"""

from __future__ import annotations

import asyncio
import logging
import sys

from PySide6.QtWidgets import (
    QApplication,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QMessageBox,
    QPushButton,
    QTabWidget,
    QVBoxLayout,
    QWidget,
)

from contrib_engine.forms.invite import InviteForm
from contrib_engine.forms.request import RequestForm
from contrib_engine.remote.near_rpc import NearRpcService
from contrib_engine.settings_store import Settings, load_settings
from gui.adapters.form_session_adapter import EventLoopThread, FormSessionAdapter
from gui.dialogs.invite_dialog import InviteDialog
from gui.tabs.request_tab import RequestTab


class AppWindow(QWidget):
    """
    Main window for the contribforms GUI.

    Responsibilities
    ----------------
    - Host the request tab and open the invitation dialog
    - Own the engine event loop thread and the remote service
    - Coordinate clean shutdown
    """

    def __init__(self, settings: Settings, viewer_id: str) -> None:
        super().__init__()
        self.setWindowTitle("contribforms")
        self.resize(900, 720)

        self._settings = settings
        self._viewer_id = viewer_id
        self._loop_thread = EventLoopThread()
        self._loop_thread.start()
        self._service = NearRpcService(settings.rpc_url, timeout=settings.timeout_seconds)

        root = QVBoxLayout(self)
        root.setContentsMargins(8, 8, 8, 8)

        header = QWidget()
        header_layout = QHBoxLayout(header)
        header_layout.setContentsMargins(8, 8, 8, 8)

        title = QLabel("contribforms")
        f = title.font()
        f.setPointSize(16)
        f.setBold(True)
        title.setFont(f)

        subtitle = QLabel(f"Signed in as {viewer_id} on {settings.contract_id}")
        subtitle.setStyleSheet("color: #666;")

        self.btn_invite = QPushButton("Invite contributor…")
        self.btn_invite.clicked.connect(self._open_invite)

        header_layout.addWidget(title)
        header_layout.addSpacing(10)
        header_layout.addWidget(subtitle)
        header_layout.addStretch(1)
        header_layout.addWidget(self.btn_invite)

        root.addWidget(header)

        tabs = QTabWidget()
        request_form = RequestForm(
            self._service,
            viewer_id=viewer_id,
            contract_id=settings.contract_id,
            social_id=settings.social_id,
        )
        self.request_tab = RequestTab(FormSessionAdapter(self._loop_thread, request_form))
        tabs.addTab(self.request_tab, "Request")

        root.addWidget(tabs, 1)

    def _open_invite(self) -> None:
        form = InviteForm(
            self._service,
            viewer_id=self._viewer_id,
            contract_id=self._settings.contract_id,
        )
        dialog = InviteDialog(FormSessionAdapter(self._loop_thread, form), self)
        if dialog.exec():
            QMessageBox.information(self, "Invitation sent", "The invitation was sent.")

    def closeEvent(self, event) -> None:  # type: ignore[override]
        """
        Handle window close by shutting down the engine loop.

        Parameters
        ----------
        event:
            Qt close event.
        """
        try:
            self.request_tab.shutdown()
            if self._loop_thread.isRunning():
                asyncio.run_coroutine_threadsafe(
                    self._service.aclose(), self._loop_thread.loop
                ).result(timeout=2)
            self._loop_thread.shutdown()
        finally:
            super().closeEvent(event)


def main() -> int:
    """
    Run the contribforms GUI application.

    Returns
    -------
    int
        Qt application exit code.
    """
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    app = QApplication(sys.argv)

    settings = load_settings(data_root=None)
    viewer_id = settings.account_id
    if not viewer_id:
        viewer_id, ok = QInputDialog.getText(None, "contribforms", "Your NEAR account ID:")
        if not ok or not viewer_id.strip():
            return 0
        viewer_id = viewer_id.strip()

    w = AppWindow(settings, viewer_id)
    w.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
