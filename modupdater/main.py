"""ModUpdater entry point."""

import argparse
import logging
import os
import sys

from modupdater.config.settings import AppSettings
from modupdater.core.sources import GitHubSource, GitSource, VersionSourceError


def setup_logging(data_dir: str):
    """Configure logging to file and console."""
    log_dir = os.path.join(data_dir, 'logs')
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, 'modupdater.log')

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            logging.StreamHandler(),
        ],
    )


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog='modupdater')
    parser.add_argument('--settings', help="Path to settings.json")
    parser.add_argument('--build-hash', default='',
                        help="Build identity of a standalone build")
    parser.add_argument('--dev', action='store_true', help="Mark the build as a dev build")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    # Load settings early (before any GUI init)
    settings = AppSettings.load(args.settings)
    setup_logging(settings.data_dir)
    logger = logging.getLogger(__name__)
    logger.info("ModUpdater starting")

    from PyQt6.QtCore import QProcess
    from PyQt6.QtWidgets import QApplication

    from modupdater.core.auto_updater import AutoUpdater
    from modupdater.core.notifications import UpdateNotificationManager
    from modupdater.core.scheduler import QtScheduler, run_in_thread_pool
    from modupdater.core.version_checker import VersionChecker
    from modupdater.ui.notification_bar import QtNotifier
    from modupdater.ui.updater_window import UpdaterWindow

    app = QApplication(sys.argv[:1])
    app.setApplicationName('ModUpdater')
    app.setOrganizationName('ModUpdater')

    standalone = not settings.install_dir
    if standalone:
        if not settings.repo or not args.build_hash:
            logger.error("Standalone builds need 'repo' in settings and --build-hash")
            return 2
        source = GitHubSource(settings.repo, args.build_hash)
        current_hash = args.build_hash
        apply_update = _manual_update_only
    else:
        git = GitSource(settings.install_dir, settings.branch)
        try:
            current_hash = git.current_hash()
        except VersionSourceError as e:
            logger.error("Cannot read build identity from %s: %s",
                         settings.install_dir, e)
            return 2
        source = git
        apply_update = git.apply

    def restart():
        logger.info("Relaunching")
        QProcess.startDetached(sys.executable, sys.argv)
        app.quit()

    window: UpdaterWindow | None = None

    def open_update_surface():
        if window is not None:
            window.open_surface()

    notifier = QtNotifier()
    checker = VersionChecker(source, current_hash)
    notifications = UpdateNotificationManager(
        notifier, settings,
        open_update_surface=open_update_surface,
        restart=restart,
    )
    scheduler = QtScheduler()
    updater = AutoUpdater(
        settings, checker, notifications, scheduler,
        apply_update=apply_update,
        restart=restart,
        executor=run_in_thread_pool,
    )

    window = UpdaterWindow(checker, notifications, updater, run_in_thread_pool,
                           dev=args.dev, standalone=standalone)
    notifier.notification_posted.connect(window.notification_bar.show_notification)
    window.show()

    updater.start()
    exit_code = app.exec()

    updater.destroy()
    settings.save(args.settings)
    logger.info("Goodbye")
    return exit_code


def _manual_update_only() -> bool:
    logging.getLogger(__name__).warning(
        "Standalone builds cannot update in place; download the new build manually")
    return False


if __name__ == '__main__':
    sys.exit(main())
