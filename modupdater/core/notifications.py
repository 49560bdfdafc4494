"""Update notifications: what the user currently sees about updates.

Keeps at most one persistent "update available" notice open at a time and a
bounded history of everything that was announced. Rendering is left to the
notifier passed in (see modupdater.ui.notification_bar.QtNotifier).
"""

import collections
import logging
import math
import threading
from typing import Callable, Protocol

from modupdater.branding import AppBranding
from modupdater.config.settings import AppSettings
from modupdater.core.models import Notification, NotificationRecord, UpdateInfo
from modupdater.core.version_checker import now_ms, short_hash

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50
PREVIEW_LIMIT = 50
CHANGE_PREVIEW_LIMIT = 40
SUMMARY_CHANGES = 3

UPDATE_AVAILABLE = "update-available"

# Brand palette
COLOR_INFO = "#3B82F6"
COLOR_SUCCESS = "#22C55E"
COLOR_PENDING = "#F59E0B"
COLOR_WARNING = "#F97316"
COLOR_ERROR = "#EF4444"


class Notifier(Protocol):
    def emit_notification(self, notification: Notification) -> None:
        ...


def truncate(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


class UpdateNotificationManager:
    """Deduplicates and formats update notifications."""

    def __init__(self, notifier: Notifier, settings: AppSettings,
                 open_update_surface: Callable[[], None] | None = None,
                 restart: Callable[[], None] | None = None,
                 clock: Callable[[], int] = now_ms):
        self._notifier = notifier
        self._settings = settings
        self._open_update_surface = open_update_surface
        self._restart = restart
        self._clock = clock
        # Notices are posted from worker threads; guards _active and _history
        self._lock = threading.Lock()
        self._history: collections.deque[NotificationRecord] = collections.deque(
            maxlen=HISTORY_LIMIT)
        self._active: set[str] = set()

    # ── Update lifecycle ─────────────────────────────────────────────

    def show_update_available(self, info: UpdateInfo):
        with self._lock:
            if UPDATE_AVAILABLE in self._active:
                return
            self._active.add(UPDATE_AVAILABLE)

        count = len(info.changes)
        body = f"{count} new update{'s' if count > 1 else ''} available"
        if info.changes:
            body += f"\nLatest: {truncate(info.changes[0].message, PREVIEW_LIMIT)}"

        self._emit(Notification(
            title=f"{AppBranding.APP_NAME} Update Available!",
            body=body,
            color=COLOR_PENDING,
            on_click=self._on_open_clicked,
            on_dismiss=self._on_dismissed,
            persistent=True,
        ))
        self._log(UPDATE_AVAILABLE, body)

    def show_update_downloading(self):
        self._emit(Notification(
            title="Downloading Update",
            body=f"{AppBranding.APP_NAME} is downloading the latest update...",
            color=COLOR_INFO,
        ))
        self._log("update-downloading", "Update download started")

    def show_update_installing(self):
        self._emit(Notification(
            title="Installing Update",
            body=f"{AppBranding.APP_NAME} is installing the update. Please wait...",
            color=COLOR_INFO,
        ))
        self._log("update-installing", "Update installation started")

    def show_update_completed(self, silent: bool = False):
        if silent:
            self._emit(Notification(
                title="Update Complete",
                body=f"{AppBranding.APP_NAME} updated successfully. Restarting in 3 seconds...",
                color=COLOR_SUCCESS,
            ))
        else:
            self._emit(Notification(
                title=f"{AppBranding.APP_NAME} Updated!",
                body=f"Update installed successfully. Click to restart {AppBranding.HOST_NAME}.",
                color=COLOR_SUCCESS,
                on_click=self._restart,
                persistent=True,
            ))

        self._discard_active(UPDATE_AVAILABLE)
        self._log("update-completed", "Update completed successfully")

    def show_update_failed(self, error: str | None = None):
        error_text = f" Error: {error}" if error else ""
        self._emit(Notification(
            title="Update Failed",
            body=f"Failed to update {AppBranding.APP_NAME}.{error_text} Click to try manual update.",
            color=COLOR_ERROR,
            on_click=self._on_open_clicked,
            persistent=True,
        ))

        self._discard_active(UPDATE_AVAILABLE)
        self._log("update-failed", f"Update failed: {error or 'Unknown error'}")

    # ── Check results ────────────────────────────────────────────────

    def show_update_check_failed(self, error: str | None = None):
        """Only shown when the user asked to be notified."""
        if not self._settings.auto_update_notification:
            return

        self._emit(Notification(
            title="Update Check Failed",
            body="Failed to check for updates. Will retry later.",
            color=COLOR_WARNING,
        ))
        self._log("update-check-failed", f"Update check failed: {error or 'Unknown error'}")

    def show_no_updates_available(self):
        """For user-triggered checks only; background checks stay quiet."""
        self._emit(Notification(
            title="Up to Date",
            body=f"You're running the latest version of {AppBranding.APP_NAME}!",
            color=COLOR_SUCCESS,
        ))
        self._log("no-updates", "No updates available")

    def show_update_progress(self, progress: float, stage: str):
        percentage = math.floor(progress * 100 + 0.5)
        self._emit(Notification(
            title=f"Updating {AppBranding.APP_NAME}",
            body=f"{stage}... {percentage}%",
            color=COLOR_INFO,
        ))

    # ── State ────────────────────────────────────────────────────────

    def clear_active_notifications(self):
        with self._lock:
            self._active.clear()

    def is_notification_active(self, kind: str) -> bool:
        with self._lock:
            return kind in self._active

    def get_notification_history(self) -> list[NotificationRecord]:
        with self._lock:
            return list(self._history)

    def format_update_info(self, info: UpdateInfo) -> str:
        """Short bullet list of the newest changes for the update surface."""
        lines = [
            f"• [{short_hash(change.hash)}] {truncate(change.message, CHANGE_PREVIEW_LIMIT)}"
            for change in info.changes[:SUMMARY_CHANGES]
        ]
        text = "Recent changes:\n" + "\n".join(lines)
        if len(info.changes) > SUMMARY_CHANGES:
            text += f"\n... and {len(info.changes) - SUMMARY_CHANGES} more changes"
        return text

    # ── Internals ────────────────────────────────────────────────────

    def _on_open_clicked(self):
        self._discard_active(UPDATE_AVAILABLE)
        if self._open_update_surface:
            self._open_update_surface()

    def _on_dismissed(self):
        self._discard_active(UPDATE_AVAILABLE)

    def _discard_active(self, kind: str):
        with self._lock:
            self._active.discard(kind)

    def _emit(self, notification: Notification):
        self._notifier.emit_notification(notification)

    def _log(self, kind: str, message: str):
        logger.debug("Notification %s: %s", kind, message)
        entry = NotificationRecord(timestamp=self._clock(), kind=kind, message=message)
        with self._lock:
            self._history.append(entry)
