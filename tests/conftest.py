import os
import sys

import pytest

from modupdater.config.settings import AppSettings
from modupdater.core.auto_updater import AutoUpdater
from modupdater.core.models import VersionRecord
from modupdater.core.notifications import UpdateNotificationManager
from modupdater.core.version_checker import VersionChecker

CURRENT = "abc1234"


class FakeClock:
    def __init__(self, now=1_700_000_000_000):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


class FakeTask:
    def __init__(self, delay_ms, callback, repeating):
        self.delay_ms = delay_ms
        self.callback = callback
        self.repeating = repeating
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        assert not self.cancelled
        self.callback()


class ManualScheduler:
    """Records tasks; tests fire them explicitly."""

    def __init__(self):
        self.tasks = []

    def call_later(self, delay_ms, callback):
        task = FakeTask(delay_ms, callback, repeating=False)
        self.tasks.append(task)
        return task

    def call_repeating(self, interval_ms, callback):
        task = FakeTask(interval_ms, callback, repeating=True)
        self.tasks.append(task)
        return task

    def live(self, repeating=None):
        return [t for t in self.tasks if not t.cancelled
                and (repeating is None or t.repeating == repeating)]


class RecordingNotifier:
    def __init__(self):
        self.notifications = []

    def emit_notification(self, notification):
        self.notifications.append(notification)

    def titles(self):
        return [n.title for n in self.notifications]


class StubSource:
    def __init__(self, records=None, error=None):
        self.records = records or []
        self.error = error
        self.calls = 0

    def get_updates(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.records)


def record(commit_hash, message="Some change", author="alice"):
    return VersionRecord(hash=commit_hash, author=author, message=message)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def settings(tmp_path):
    return AppSettings(data_dir=str(tmp_path))


@pytest.fixture
def source():
    return StubSource([record("def5678", "Fix crash")])


@pytest.fixture
def checker(source, clock):
    return VersionChecker(source, CURRENT, clock=clock)


@pytest.fixture
def opened():
    return []


@pytest.fixture
def restarts():
    return []


@pytest.fixture
def notifications(notifier, settings, clock, opened, restarts):
    return UpdateNotificationManager(
        notifier, settings,
        open_update_surface=lambda: opened.append(True),
        restart=lambda: restarts.append(True),
        clock=clock,
    )


@pytest.fixture
def applied():
    return {'calls': 0, 'result': True}


@pytest.fixture
def updater(settings, checker, notifications, scheduler, clock, applied, restarts):
    def apply_update():
        applied['calls'] += 1
        result = applied['result']
        if isinstance(result, Exception):
            raise result
        return result

    return AutoUpdater(
        settings, checker, notifications, scheduler,
        apply_update=apply_update,
        restart=lambda: restarts.append(True),
        clock=clock,
    )


@pytest.fixture(scope="session")
def qapp():
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    from PyQt6.QtWidgets import QApplication

    app = QApplication.instance() or QApplication(sys.argv[:1])
    yield app
