import pytest

from modupdater.core.sources import VersionSourceError
from modupdater.core.version_checker import (
    CACHE_TIMEOUT_MS, VersionChecker, compare_versions,
)

from conftest import CURRENT, StubSource, record


def test_update_available_scenario(checker):
    info = checker.get_update_info()

    assert info.available is True
    assert info.is_newer is False
    assert info.current_version == CURRENT
    assert info.latest_version == "def5678"
    assert "1. [def5678] Fix crash (by alice)" in info.release_notes
    assert info.release_notes.startswith("Recent Changes:\n")
    assert info.error is None


def test_running_build_ahead_of_remote(clock):
    source = StubSource([record("def5678"), record(CURRENT)])
    info = VersionChecker(source, CURRENT, clock=clock).get_update_info()

    assert info.is_newer is True
    assert info.available is False


def test_no_changes_means_up_to_date(clock):
    info = VersionChecker(StubSource([]), CURRENT, clock=clock).get_update_info()

    assert info.available is False
    assert info.is_newer is False
    assert info.latest_version == CURRENT
    assert info.release_notes == "No changes available."


@pytest.mark.parametrize("records", [
    [],
    [record("def5678")],
    [record(CURRENT)],
    [record("1111111"), record(CURRENT), record("2222222")],
])
def test_available_and_newer_never_both_true(clock, records):
    info = VersionChecker(StubSource(records), CURRENT, clock=clock).get_update_info()
    assert not (info.available and info.is_newer)


def test_release_notes_limited_to_ten_changes(clock):
    records = [record(f"{i:07d}aaaa", f"Change {i}") for i in range(12)]
    info = VersionChecker(StubSource(records), CURRENT, clock=clock).get_update_info()

    assert "10. [0000009] Change 9 (by alice)" in info.release_notes
    assert "Change 10" not in info.release_notes
    assert info.release_notes.endswith("\n\n... and 2 more changes")


def test_release_notes_fill_in_missing_author_and_message(clock):
    source = StubSource([record("def5678abcdef", message="", author="")])
    info = VersionChecker(source, CURRENT, clock=clock).get_update_info()

    assert "1. [def5678] No commit message (by Unknown)" in info.release_notes


def test_cached_result_reused_within_window(checker, source, clock):
    first = checker.get_update_info()
    clock.advance(CACHE_TIMEOUT_MS - 1)
    second = checker.get_update_info()

    assert second is first
    assert source.calls == 1


def test_cache_expires_after_window(checker, source, clock):
    checker.get_update_info()
    clock.advance(CACHE_TIMEOUT_MS)
    checker.get_update_info()

    assert source.calls == 2


def test_forced_refresh_always_queries(checker, source):
    checker.get_update_info()
    checker.get_update_info(force_refresh=True)
    checker.get_update_info(force_refresh=True)

    assert source.calls == 3


def test_source_failure_returns_fallback(clock):
    source = StubSource(error=VersionSourceError("network down"))
    info = VersionChecker(source, CURRENT, clock=clock).get_update_info()

    assert info.available is False
    assert info.is_newer is False
    assert info.changes == []
    assert info.current_version == CURRENT
    assert info.error == "network down"


def test_source_failure_keeps_previous_cache(checker, source):
    good = checker.get_update_info()

    source.error = VersionSourceError("timeout")
    fallback = checker.get_update_info(force_refresh=True)
    assert fallback.error == "timeout"

    assert checker.get_update_info() is good


def test_clear_cache_forces_new_query(checker, source):
    checker.get_update_info()
    checker.clear_cache()
    checker.get_update_info()

    assert source.calls == 2


def test_has_updates_and_count(clock):
    source = StubSource([record("1111111"), record("2222222")])
    checker = VersionChecker(source, CURRENT, clock=clock)

    assert checker.has_updates() is True
    assert checker.get_update_count() == 2
    assert source.calls == 1


def test_version_string():
    checker = VersionChecker(StubSource(), "abc1234def5678")

    assert checker.get_version_string() == "abc1234"
    assert checker.get_version_string(dev=True) == "abc1234 (dev)"
    assert checker.get_version_string(standalone=True) == "abc1234 (standalone)"


@pytest.mark.parametrize("current, latest, expected", [
    ("1.2.3", "1.3.0", 1),
    ("2.0.0", "1.9.9", -1),
    ("1.10.0", "1.9.0", -1),
    ("1.2.3", "1.2.3", 0),
    ("1.2.3-beta.1", "1.2.3", 0),
    ("1.2.3-rc1", "1.2.3-alpha", 0),
    ("abc1234", "abc1234", 0),
    ("abc1234", "def5678", 1),
    ("1.2", "1.2.0", 1),
])
def test_compare_versions(current, latest, expected):
    assert compare_versions(current, latest) == expected
