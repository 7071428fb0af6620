"""Main entry point for launching the GUI application."""

import sys
from PyQt5.QtWidgets import QApplication, QMessageBox
from PyQt5.QtCore import QObject, QProcess, pyqtSignal

from backup_engine.errors import BackupError
from backup_engine.manager import BackupManager
from backup_engine.restore import recover_interrupted_restore
from db.db_manager import DBManager
from gui.main_window import MainWindow
from utils import config
from utils.logger import AppLogger
from utils.settings import load_settings


class RestartRequester(QObject):
    """Relays restart requests from worker threads to the GUI thread."""

    requested = pyqtSignal()

    def __init__(self, app: QApplication, logger: AppLogger):
        super().__init__()
        self.app = app
        self.logger = logger
        self.window = None
        self.requested.connect(self.restart)

    def request(self):
        self.requested.emit()

    def restart(self):
        """Launch a fresh process and quit this one."""
        self.logger.info("Restarting application")
        if not QProcess.startDetached(sys.executable, sys.argv):
            self.logger.error("Could not relaunch the application")
            QMessageBox.information(
                None, "Restart Required",
                "The backup was restored. Please start the application again."
            )
        # The restore worker may still be emitting its result
        if self.window is not None:
            self.window.wait_for_worker()
        self.app.quit()


def run_startup_backup(backup_manager: BackupManager, logger: AppLogger):
    """Take the startup safety backup; failures are logged, never raised."""
    try:
        return backup_manager.create_backup()
    except BackupError as e:
        logger.error(f"Startup backup failed: {e}")
    except Exception:
        logger.exception("Unexpected error during startup backup")
    return None


def main():
    """Launch the Lesson Keeper application."""
    app = QApplication(sys.argv)
    app.setApplicationName("Lesson Keeper")
    app.setOrganizationName("LessonKeeper")

    logger = AppLogger(log_to_file=True)
    logger.info(">>> Application starting <<<")
    settings = load_settings(config.SETTINGS_FILE, logger)
    restarter = RestartRequester(app, logger)

    # DBManager creates the file if missing, so recover before opening it
    try:
        if recover_interrupted_restore(config.DB_PATH, logger):
            logger.warning("Previous database put back after an interrupted restore")
    except OSError as e:
        logger.critical(f"Could not recover from an interrupted restore: {e}")
        QMessageBox.critical(
            None, "Database Recovery",
            f"A previous restore was interrupted and the database could not be recovered:\n{e}"
        )
        sys.exit(1)

    db_manager = DBManager(config.DB_PATH)
    backup_manager = BackupManager(
        db_manager, logger,
        settings=settings,
        backup_dir=config.BACKUP_DIR,
        settings_file=config.SETTINGS_FILE,
        request_restart=restarter.request,
    )

    run_startup_backup(backup_manager, logger)

    window = MainWindow(backup_manager, logger)
    restarter.window = window
    window.show()

    exit_code = app.exec_()
    window.wait_for_worker()

    logger.info(">>> Application closing <<<")
    backup_manager.shutdown()
    db_manager.close()
    logger.close()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
