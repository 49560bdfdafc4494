"""Update notification bar that renders notifications from the updater.

Colored bar with title/body label and a dismiss button. Persistent
notifications stay until clicked or dismissed; transient ones auto-hide.
"""

from PyQt6.QtCore import QObject, QTimer, Qt, pyqtSignal
from PyQt6.QtWidgets import QWidget, QHBoxLayout, QLabel, QPushButton

from modupdater.core.models import Notification

# Transient notifications auto-hide after 5 seconds
TRANSIENT_TIMEOUT_MS = 5000


class QtNotifier(QObject):
    """Thread-safe presentation boundary. Checks run on worker threads."""

    notification_posted = pyqtSignal(object)  # Notification

    def emit_notification(self, notification: Notification):
        self.notification_posted.emit(notification)


class _ClickableLabel(QLabel):
    clicked = pyqtSignal()

    def mousePressEvent(self, event):
        self.clicked.emit()
        super().mousePressEvent(event)


class NotificationBar(QWidget):
    """Notification bar. The newest notice shows; a persistent one outlives transients."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setFixedHeight(48)
        self.setVisible(False)
        self._current: Notification | None = None
        self._persistent: Notification | None = None

        self._hide_timer = QTimer(self)
        self._hide_timer.setSingleShot(True)
        self._hide_timer.timeout.connect(self._close_current)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(14, 0, 14, 0)
        layout.setSpacing(12)

        self._label = _ClickableLabel("")
        self._label.setCursor(Qt.CursorShape.PointingHandCursor)
        self._label.clicked.connect(self._on_clicked)
        layout.addWidget(self._label, 1)

        self._close_btn = QPushButton("✖")
        self._close_btn.setFixedSize(28, 28)
        self._close_btn.setStyleSheet(
            "QPushButton { background: transparent; color: #FFFFFF; border: none; } "
            "QPushButton:hover { color: #D4D4D8; }"
        )
        self._close_btn.clicked.connect(self.dismiss)
        layout.addWidget(self._close_btn)

    @property
    def current(self) -> Notification | None:
        return self._current

    def show_notification(self, notification: Notification):
        """Display ``notification``.

        A transient notice covers the persistent one only until it expires or
        is closed. A new persistent notice replaces the old one, which counts
        as dismissing it.
        """
        if notification.persistent:
            replaced, self._persistent = self._persistent, notification
            if replaced is not None and replaced.on_dismiss:
                replaced.on_dismiss()
        self._render(notification)

    def dismiss(self):
        """Close the notice on display and bring back the persistent one, if any."""
        notification = self._close_current()
        if notification is not None and notification.on_dismiss:
            notification.on_dismiss()

    def _close_current(self) -> Notification | None:
        notification = self._current
        self._hide_timer.stop()
        self._current = None
        if notification is not None and notification is self._persistent:
            self._persistent = None

        if self._persistent is not None:
            self._render(self._persistent)
        else:
            self.setVisible(False)
        return notification

    def _render(self, notification: Notification):
        self._current = notification
        self.setStyleSheet(
            f"NotificationBar {{ background-color: {notification.color}; }}"
        )
        self._label.setStyleSheet(
            "color: #FFFFFF; font-weight: bold; font-size: 12px; "
            "background: transparent; border: none;"
        )
        title, body = notification.title, notification.body.replace("\n", "  |  ")
        self._label.setText(f"{title}   {body}")

        self._hide_timer.stop()
        if not notification.persistent:
            self._hide_timer.start(TRANSIENT_TIMEOUT_MS)
        self.setVisible(True)

    def _on_clicked(self):
        notification = self._close_current()
        if notification is not None and notification.on_click:
            notification.on_click()
