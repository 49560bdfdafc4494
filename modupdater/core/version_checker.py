"""Version checker: answers "is an update available" for the running build.

Wraps a VersionSource with a short-lived cache and derives an UpdateInfo
summary from the list of pending changes.
"""

import logging
import re
import time
from typing import Callable

from packaging.version import Version

from modupdater.core.models import UpdateInfo, VersionRecord
from modupdater.core.sources import VersionSource

logger = logging.getLogger(__name__)

CACHE_TIMEOUT_MS = 5 * 60 * 1000
MAX_RELEASE_NOTES = 10
SHORT_HASH_LEN = 7

_SEMVER_RE = re.compile(r'^(\d+)\.(\d+)\.(\d+)(?:-([\w.-]+))?$')


def now_ms() -> int:
    return int(time.time() * 1000)


def short_hash(commit_hash: str) -> str:
    return commit_hash[:SHORT_HASH_LEN]


def compare_versions(current: str, latest: str) -> int:
    """Compare two version strings.

    Returns a positive number if ``latest`` is ahead of ``current``, negative
    if behind, 0 if equal. Only ``major.minor.patch[-pre]`` inputs are ordered,
    and the pre-release suffix does not take part in ordering. Anything else
    (commit hashes) compares by exact equality: 0 if equal, 1 otherwise.
    """
    current_match = _SEMVER_RE.match(current)
    latest_match = _SEMVER_RE.match(latest)

    if current_match and latest_match:
        current_ver = Version('.'.join(current_match.groups()[:3]))
        latest_ver = Version('.'.join(latest_match.groups()[:3]))
        if latest_ver > current_ver:
            return 1
        if latest_ver < current_ver:
            return -1
        return 0

    return 0 if current == latest else 1


def generate_release_notes(changes: list[VersionRecord]) -> str:
    """Numbered digest of the newest changes."""
    if not changes:
        return "No changes available."

    lines = []
    for index, change in enumerate(changes[:MAX_RELEASE_NOTES], start=1):
        author = change.author or "Unknown"
        message = change.message or "No commit message"
        lines.append(f"{index}. [{short_hash(change.hash)}] {message} (by {author})")
    notes = "\n".join(lines)

    if len(changes) > MAX_RELEASE_NOTES:
        notes += f"\n\n... and {len(changes) - MAX_RELEASE_NOTES} more changes"

    return f"Recent Changes:\n{notes}"


class VersionChecker:
    """Answers whether the running build is behind its update source."""

    def __init__(self, source: VersionSource, current_version: str,
                 cache_timeout_ms: int = CACHE_TIMEOUT_MS,
                 clock: Callable[[], int] = now_ms):
        self._source = source
        self.current_version = current_version
        self._cache_timeout_ms = cache_timeout_ms
        self._clock = clock
        self._cached_info: UpdateInfo | None = None
        self._cache_time = 0

    def get_update_info(self, force_refresh: bool = False) -> UpdateInfo:
        """Return update information, from cache when it is still fresh.

        Never raises: a source failure is logged and answered with a
        "no updates" fallback that leaves the cache untouched.
        """
        now = self._clock()

        if (not force_refresh and self._cached_info is not None
                and now - self._cache_time < self._cache_timeout_ms):
            return self._cached_info

        try:
            logger.info("Checking for version updates...")
            changes = list(self._source.get_updates())
        except Exception as e:
            logger.error("Failed to get update info: %s", e)
            return UpdateInfo(
                available=False,
                is_newer=False,
                current_version=self.current_version,
                changes=[],
                error=str(e) or e.__class__.__name__,
            )

        info = self._derive(changes)
        self._cached_info = info
        self._cache_time = now

        logger.info("Update check complete: %s",
                    "Updates available" if info.available else "Up to date")
        return info

    def _derive(self, changes: list[VersionRecord]) -> UpdateInfo:
        # The running build showing up among the changes means it is ahead
        # of what the remote considers latest (local/dev build).
        is_newer = any(c.hash == self.current_version for c in changes)
        available = bool(changes) and not is_newer

        return UpdateInfo(
            available=available,
            is_newer=is_newer,
            current_version=self.current_version,
            latest_version=changes[0].hash if changes else self.current_version,
            changes=changes,
            release_notes=generate_release_notes(changes),
        )

    def has_updates(self, force_refresh: bool = False) -> bool:
        return self.get_update_info(force_refresh).available

    def get_update_count(self, force_refresh: bool = False) -> int:
        return len(self.get_update_info(force_refresh).changes)

    def clear_cache(self):
        self._cached_info = None
        self._cache_time = 0

    def get_version_string(self, dev: bool = False, standalone: bool = False) -> str:
        """Short build identity for display, e.g. ``abc1234 (dev)``."""
        version = short_hash(self.current_version)
        if dev:
            version += " (dev)"
        if standalone:
            version += " (standalone)"
        return version
