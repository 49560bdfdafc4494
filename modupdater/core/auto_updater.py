"""Auto-updater: periodic and on-demand update checks.

Architecture:
  VersionChecker               cached "is there an update" answers
  UpdateNotificationManager    everything the user sees
  AutoUpdater                  scheduling, rate limiting, notify vs. apply

Checks are blocking; timer-triggered checks are handed to ``executor`` so the
GUI thread never waits on the network (see core.scheduler.run_in_thread_pool).
"""

import logging
import threading
from typing import Callable, Protocol

from modupdater.config.settings import AppSettings
from modupdater.core.models import CheckOutcome
from modupdater.core.notifications import UpdateNotificationManager
from modupdater.core.version_checker import VersionChecker, now_ms

logger = logging.getLogger(__name__)

STARTUP_DELAY_MS = 5000             # Let the host finish initializing
MIN_CHECK_INTERVAL_MS = 5 * 60 * 1000
INSTALLING_NOTICE_DELAY_MS = 1000
RESTART_DELAY_MS = 3000

_UPDATE_OUTCOMES = (CheckOutcome.UPDATE_AVAILABLE, CheckOutcome.UPDATED)


class UpdateApplyError(RuntimeError):
    """The apply-update operation reported failure."""


class Task(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> Task:
        ...

    def call_repeating(self, interval_ms: int, callback: Callable[[], None]) -> Task:
        ...


def _run_inline(fn: Callable[[], object]):
    fn()


class AutoUpdater:
    """Drives update checks and decides between notifying and applying."""

    def __init__(self, settings: AppSettings, checker: VersionChecker,
                 notifications: UpdateNotificationManager, scheduler: Scheduler,
                 apply_update: Callable[[], bool], restart: Callable[[], None],
                 executor: Callable[[Callable[[], object]], None] = _run_inline,
                 clock: Callable[[], int] = now_ms):
        self._settings = settings
        self._checker = checker
        self._notifications = notifications
        self._scheduler = scheduler
        self._apply_update = apply_update
        self._restart = restart
        self._executor = executor
        self._clock = clock

        # Held for the whole of a check; at most one check runs at a time
        self._run_lock = threading.Lock()
        # Guards the status fields and the pending task set
        self._lock = threading.Lock()
        self._is_checking = False
        self._last_check_time = 0
        self._last_outcome: CheckOutcome | None = None
        self._notified_this_session = False
        self._interval_task: Task | None = None
        self._pending: set[Task] = set()
        self._destroyed = False

    # ── Lifecycle ────────────────────────────────────────────────────

    def start(self):
        """Arm the startup check and the periodic timer."""
        if self._settings.auto_update_check_on_startup:
            self._call_later(STARTUP_DELAY_MS, self._run_background_check)
        self._setup_periodic_checking()

    def update_settings(self):
        """Re-arm the periodic timer after a configuration change."""
        self._setup_periodic_checking()
        self._notified_this_session = False

    def destroy(self):
        """Cancel the periodic timer and every pending delayed callback."""
        self._destroyed = True
        if self._interval_task is not None:
            self._interval_task.cancel()
            self._interval_task = None
        with self._lock:
            pending = list(self._pending)
            self._pending.clear()
        for task in pending:
            task.cancel()

    def _setup_periodic_checking(self):
        if self._interval_task is not None:
            self._interval_task.cancel()
            self._interval_task = None

        if self._destroyed:
            return

        if self._settings.auto_update or self._settings.auto_update_check_on_startup:
            self._interval_task = self._scheduler.call_repeating(
                self._settings.interval_ms, self._run_background_check)
            logger.info("Auto-update checking enabled with %d minute interval",
                        self._settings.auto_update_interval)

    def _run_background_check(self):
        self._executor(self.perform_update_check)

    def _call_later(self, delay_ms: int, callback: Callable[[], None]):
        if self._destroyed:
            return
        scheduled: list[Task] = []

        def run():
            with self._lock:
                self._pending.difference_update(scheduled)
            callback()

        task = self._scheduler.call_later(delay_ms, run)
        scheduled.append(task)
        with self._lock:
            self._pending.add(task)

    # ── Checks ───────────────────────────────────────────────────────

    def perform_update_check(self, force: bool = False) -> bool:
        """Run one check. True when an update was announced or applied."""
        return self.check(force) in _UPDATE_OUTCOMES

    def force_check(self) -> bool:
        """User-triggered check; also reports when nothing is pending."""
        outcome = self.check(force=True)
        if outcome is CheckOutcome.UP_TO_DATE:
            self._notifications.show_no_updates_available()
        return outcome in _UPDATE_OUTCOMES

    def check(self, force: bool = False) -> CheckOutcome:
        """Run one check and report exactly what happened.

        Background checks are dropped while another check runs. Forced checks
        wait for the running one to finish instead.
        """
        if not self._run_lock.acquire(blocking=force):
            return self._record(CheckOutcome.SKIPPED_BUSY)

        try:
            now = self._clock()
            with self._lock:
                if not force and now - self._last_check_time < MIN_CHECK_INTERVAL_MS:
                    logger.debug("Skipping update check - too soon since last check")
                    self._last_outcome = CheckOutcome.SKIPPED_RATE_LIMIT
                    return CheckOutcome.SKIPPED_RATE_LIMIT
                self._is_checking = True
                # Stamped before the check so a slow or failing check still
                # consumes the rate-limit window
                self._last_check_time = now

            try:
                outcome = self._check(force)
            except Exception as e:
                logger.error("Failed to check for updates: %s", e)
                self._notifications.show_update_check_failed(str(e) or e.__class__.__name__)
                outcome = CheckOutcome.CHECK_FAILED
            finally:
                with self._lock:
                    self._is_checking = False
        finally:
            self._run_lock.release()

        return self._record(outcome)

    def _record(self, outcome: CheckOutcome) -> CheckOutcome:
        with self._lock:
            self._last_outcome = outcome
        return outcome

    def _check(self, force: bool) -> CheckOutcome:
        logger.info("Checking for updates...")
        info = self._checker.get_update_info(force)

        if info.error is not None:
            self._notifications.show_update_check_failed(info.error)
            return CheckOutcome.CHECK_FAILED

        if info.is_newer:
            logger.info("Local version is newer than remote")
            return CheckOutcome.AHEAD

        if not info.available:
            logger.info("No updates available")
            return CheckOutcome.UP_TO_DATE

        logger.info("Update available! %d new commits", len(info.changes))

        if self._settings.auto_update:
            return self._perform_auto_update()

        self._notifications.show_update_available(info)
        self._notified_this_session = True
        return CheckOutcome.UPDATE_AVAILABLE

    def _perform_auto_update(self) -> CheckOutcome:
        silent = self._settings.auto_update_silent
        try:
            logger.info("Performing automatic update...")

            # Cosmetic progress notices, independent of the real apply progress
            if not silent:
                self._notifications.show_update_downloading()
                self._call_later(INSTALLING_NOTICE_DELAY_MS,
                                 self._notifications.show_update_installing)

            if not self._apply_update():
                raise UpdateApplyError("Update failed")
        except Exception as e:
            logger.error("Auto-update failed: %s", e)
            self._notifications.show_update_failed(str(e) or e.__class__.__name__)
            return CheckOutcome.UPDATE_FAILED

        self._checker.clear_cache()
        # No restart can be scheduled once destroyed
        restart_soon = silent and not self._destroyed
        self._notifications.show_update_completed(restart_soon)
        if restart_soon:
            self._call_later(RESTART_DELAY_MS, self._restart)

        logger.info("Auto-update completed successfully")
        return CheckOutcome.UPDATED

    # ── Introspection ────────────────────────────────────────────────

    @property
    def last_outcome(self) -> CheckOutcome | None:
        return self._last_outcome

    def get_status(self) -> dict:
        interval_ms = self._settings.interval_ms
        with self._lock:
            return {
                'is_checking': self._is_checking,
                'last_check_time': self._last_check_time,
                'interval_ms': interval_ms,
                'next_check_time': self._last_check_time + interval_ms,
                'notified_this_session': self._notified_this_session,
                'pending_tasks': len(self._pending),
                'last_outcome': self._last_outcome,
            }
