"""Update system data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable


@dataclass(frozen=True)
class VersionRecord:
    """One upstream change ahead of the running build. Identity is ``hash``."""

    hash: str
    author: str
    message: str
    timestamp: int | None = None    # ms since epoch, when the source knows it
    tag: str | None = None


@dataclass
class UpdateInfo:
    """Result of a single update check.

    ``available`` and ``is_newer`` are never both true.
    """

    available: bool
    is_newer: bool
    current_version: str
    latest_version: str | None = None
    changes: list[VersionRecord] = field(default_factory=list)   # newest first
    release_notes: str | None = None
    error: str | None = None        # Set only on the fallback after a source failure


@dataclass(frozen=True)
class NotificationRecord:
    """History entry for an emitted notification."""

    timestamp: int
    kind: str
    message: str


@dataclass
class Notification:
    """Payload handed to the presentation boundary."""

    title: str
    body: str
    color: str = "#3B82F6"
    on_click: Callable[[], None] | None = None
    on_dismiss: Callable[[], None] | None = None    # Closed without clicking
    persistent: bool = False    # Stays until clicked/dismissed vs. auto-expires


class CheckOutcome(Enum):
    UPDATE_AVAILABLE = "update_available"   # User notified
    UPDATED = "updated"                     # Applied automatically
    UPDATE_FAILED = "update_failed"         # Automatic apply failed
    UP_TO_DATE = "up_to_date"
    AHEAD = "ahead"                         # Running build is newer than remote
    SKIPPED_BUSY = "skipped_busy"
    SKIPPED_RATE_LIMIT = "skipped_rate_limit"
    CHECK_FAILED = "check_failed"
