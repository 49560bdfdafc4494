"""Updater window: the surface notifications open when clicked."""

import logging
from typing import Callable

from PyQt6.QtCore import pyqtSignal
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QPlainTextEdit,
)

from modupdater.branding import AppBranding
from modupdater.core.auto_updater import AutoUpdater
from modupdater.core.models import UpdateInfo
from modupdater.core.notifications import UpdateNotificationManager
from modupdater.core.version_checker import VersionChecker
from modupdater.ui.notification_bar import NotificationBar

logger = logging.getLogger(__name__)


class UpdaterWindow(QWidget):
    """Build identity, pending changes and a manual check button."""

    _info_ready = pyqtSignal(object)  # UpdateInfo, delivered on the GUI thread

    def __init__(self, checker: VersionChecker, notifications: UpdateNotificationManager,
                 updater: AutoUpdater, executor: Callable[[Callable[[], object]], None],
                 dev: bool = False, standalone: bool = False, parent=None):
        super().__init__(parent)
        self._checker = checker
        self._notifications = notifications
        self._updater = updater
        self._executor = executor
        self._dev = dev
        self._standalone = standalone

        self.setWindowTitle(AppBranding.window_title())
        self.setMinimumSize(520, 360)
        self._info_ready.connect(self._show_info)
        self._setup_ui()

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self.notification_bar = NotificationBar(self)
        layout.addWidget(self.notification_bar)

        layout.addWidget(self._create_brand_header())

        body = QVBoxLayout()
        body.setContentsMargins(16, 8, 16, 16)

        self._summary_label = QLabel("Press \"Check for Updates Now\" to look for updates.")
        self._summary_label.setWordWrap(True)
        body.addWidget(self._summary_label)

        self._notes = QPlainTextEdit()
        self._notes.setReadOnly(True)
        body.addWidget(self._notes, 1)

        buttons = QHBoxLayout()
        buttons.addStretch()
        self._check_btn = QPushButton("Check for Updates Now")
        self._check_btn.clicked.connect(self._on_check_clicked)
        buttons.addWidget(self._check_btn)
        body.addLayout(buttons)

        layout.addLayout(body)

    def _create_brand_header(self) -> QWidget:
        header = QWidget()
        header.setFixedHeight(56)
        header.setStyleSheet(
            "QWidget { background-color: #27272A; border-bottom: 1px solid #3F3F46; }"
        )
        h_layout = QHBoxLayout(header)
        h_layout.setContentsMargins(16, 8, 16, 8)

        name_label = QLabel(AppBranding.APP_NAME)
        name_label.setStyleSheet(
            "font-size: 18px; font-weight: bold; color: #3B82F6; background: transparent; border: none;"
        )
        h_layout.addWidget(name_label)

        self._version_label = QLabel(
            self._checker.get_version_string(self._dev, self._standalone))
        self._version_label.setStyleSheet(
            "font-size: 12px; color: #71717A; margin-left: 8px; background: transparent; border: none;"
        )
        h_layout.addWidget(self._version_label)
        h_layout.addStretch()

        return header

    def open_surface(self):
        """Bring the window up and refresh the pending changes."""
        self.showNormal()
        self.raise_()
        self.activateWindow()
        self._executor(lambda: self._info_ready.emit(self._checker.get_update_info()))

    def _on_check_clicked(self):
        self._check_btn.setEnabled(False)

        def run():
            self._updater.force_check()
            self._info_ready.emit(self._checker.get_update_info())

        self._executor(run)

    def _show_info(self, info: UpdateInfo):
        self._check_btn.setEnabled(True)
        if info.error:
            self._summary_label.setText(f"Could not check for updates: {info.error}")
        elif info.is_newer:
            self._summary_label.setText(
                "Your local copy has commits that are not on the remote yet.")
        elif info.available:
            self._summary_label.setText(self._notifications.format_update_info(info))
        else:
            self._summary_label.setText("You're running the latest version.")
        self._notes.setPlainText(info.release_notes or "")
