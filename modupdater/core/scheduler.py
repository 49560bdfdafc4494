"""Timers for the updater. QTimer-backed, safe to schedule from worker threads.

QTimer only fires on a thread with a running event loop, so the timers are
always created on the scheduler's own thread (the GUI thread): scheduling
from elsewhere goes through a queued signal.
"""

import logging
from typing import Callable

from PyQt6.QtCore import QObject, QThreadPool, QTimer, pyqtSignal

logger = logging.getLogger(__name__)


class ScheduledTask:
    """Handle for a pending one-shot or repeating callback."""

    def __init__(self, scheduler: 'QtScheduler', delay_ms: int,
                 callback: Callable[[], None], repeating: bool):
        self.delay_ms = delay_ms
        self.callback = callback
        self.repeating = repeating
        self._scheduler = scheduler
        self._timer: QTimer | None = None
        self._cancelled = False
        self._fired = False

    @property
    def active(self) -> bool:
        if self._cancelled:
            return False
        return self.repeating or not self._fired

    def cancel(self):
        if self._cancelled:
            return
        self._cancelled = True
        self._scheduler._stop_requested.emit(self)


class QtScheduler(QObject):
    """Creates and owns the QTimers behind ScheduledTask handles."""

    _start_requested = pyqtSignal(object)
    _stop_requested = pyqtSignal(object)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._start_requested.connect(self._start)
        self._stop_requested.connect(self._stop)

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask(self, delay_ms, callback, repeating=False)
        self._start_requested.emit(task)
        return task

    def call_repeating(self, interval_ms: int, callback: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask(self, interval_ms, callback, repeating=True)
        self._start_requested.emit(task)
        return task

    def _start(self, task: ScheduledTask):
        if task._cancelled:
            return
        timer = QTimer(self)
        timer.setSingleShot(not task.repeating)
        timer.timeout.connect(lambda: self._fire(task))
        task._timer = timer
        timer.start(task.delay_ms)

    def _stop(self, task: ScheduledTask):
        if task._timer is not None:
            task._timer.stop()
            task._timer.deleteLater()
            task._timer = None

    def _fire(self, task: ScheduledTask):
        if task._cancelled:
            return
        if not task.repeating:
            task._fired = True
            self._stop(task)
        # An exception escaping a slot aborts a PyQt6 application
        try:
            task.callback()
        except Exception:
            logger.exception("Scheduled callback %r failed", task.callback)


def run_in_thread_pool(fn: Callable[[], object]):
    """Run a blocking call on Qt's global thread pool."""
    QThreadPool.globalInstance().start(fn)
