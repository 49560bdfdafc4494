"""Application settings, persisted as JSON."""

import json
import logging
import os
from dataclasses import dataclass, asdict

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = os.path.join(os.environ.get('LOCALAPPDATA', '.'), 'ModUpdater')

# Allowed update check interval, in minutes (5 minutes to 24 hours)
MIN_UPDATE_INTERVAL = 5
MAX_UPDATE_INTERVAL = 1440
DEFAULT_UPDATE_INTERVAL = 30


@dataclass
class AppSettings:
    """Persistent application settings."""
    # Updater
    auto_update: bool = False               # Download and install without asking
    auto_update_notification: bool = True   # Report check failures / completions
    auto_update_check_on_startup: bool = True
    auto_update_silent: bool = False        # Restart automatically after updating
    auto_update_interval: int = DEFAULT_UPDATE_INTERVAL  # minutes

    # Update source
    repo: str = ""              # GitHub 'owner/name'
    branch: str = "main"
    install_dir: str = ""       # Git checkout of the mod, '' = standalone build

    # Paths
    data_dir: str = ""

    def __post_init__(self):
        if not self.data_dir:
            self.data_dir = DEFAULT_DATA_DIR

    @property
    def interval_ms(self) -> int:
        return self.auto_update_interval * 60 * 1000

    def set_update_interval(self, minutes: int) -> bool:
        """Set the check interval. Values outside 5–1440 minutes are rejected."""
        if not is_valid_interval(minutes):
            logger.warning("Rejected update interval %r (allowed %d-%d minutes)",
                           minutes, MIN_UPDATE_INTERVAL, MAX_UPDATE_INTERVAL)
            return False
        self.auto_update_interval = int(minutes)
        return True

    @staticmethod
    def load(path: str | None = None) -> 'AppSettings':
        """Load settings from JSON. Returns defaults if file doesn't exist."""
        if path is None:
            path = os.path.join(DEFAULT_DATA_DIR, 'settings.json')

        if not os.path.isfile(path):
            logger.info("No settings file, using defaults")
            return AppSettings()

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            settings = AppSettings(**{k: v for k, v in data.items()
                                      if k in AppSettings.__dataclass_fields__})
        except Exception as e:
            logger.warning("Failed to load settings: %s", e)
            return AppSettings()

        if not is_valid_interval(settings.auto_update_interval):
            logger.warning("Stored update interval %r out of range, using %d",
                           settings.auto_update_interval, DEFAULT_UPDATE_INTERVAL)
            settings.auto_update_interval = DEFAULT_UPDATE_INTERVAL

        logger.info("Loaded settings from %s", path)
        return settings

    def save(self, path: str | None = None):
        """Save settings to JSON."""
        if path is None:
            path = os.path.join(self.data_dir, 'settings.json')

        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        try:
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(asdict(self), f, indent=2)
            logger.info("Saved settings to %s", path)
        except Exception as e:
            logger.warning("Failed to save settings: %s", e)


def is_valid_interval(minutes) -> bool:
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        return False
    return MIN_UPDATE_INTERVAL <= minutes <= MAX_UPDATE_INTERVAL
