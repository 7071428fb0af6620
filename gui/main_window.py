"""PyQt5-based GUI: backup settings, snapshot list, backup and restore."""

from pathlib import Path
from typing import Optional
from PyQt5.QtWidgets import (QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
                             QPushButton, QLineEdit, QLabel, QListWidget,
                             QListWidgetItem, QSpinBox, QTextEdit, QFileDialog,
                             QMessageBox)
from PyQt5.QtCore import Qt, QThread, pyqtSignal

from backup_engine.errors import BackupError, RollbackFailedError
from backup_engine.manager import BackupManager
from utils.logger import AppLogger


class BackupWorker(QThread):
    """Worker thread that takes a snapshot without freezing the GUI."""

    finished = pyqtSignal(dict)  # results dict

    def __init__(self, backup_manager: BackupManager):
        super().__init__()
        self.backup_manager = backup_manager

    def run(self):
        """Execute backup operation."""
        try:
            snapshot = self.backup_manager.create_backup()
            self.finished.emit({'snapshot': snapshot})
        except BackupError as e:
            self.finished.emit({'error': str(e)})
        except Exception as e:
            self.backup_manager.logger.exception("Unexpected error during backup")
            self.finished.emit({'error': str(e)})


class RestoreWorker(QThread):
    """Worker thread for restore operations."""

    finished = pyqtSignal(dict)  # results dict

    def __init__(self, backup_manager: BackupManager, source_path: str):
        """
        Initialize restore worker.

        Args:
            backup_manager: Backup manager instance
            source_path: Snapshot or database file to restore
        """
        super().__init__()
        self.backup_manager = backup_manager
        self.source_path = source_path

    def run(self):
        """Execute restore operation."""
        try:
            safety = self.backup_manager.restore_backup(self.source_path)
            self.finished.emit({'safety': safety})
        except RollbackFailedError as e:
            self.finished.emit({'error': str(e), 'fatal': True,
                                'rollback_path': str(e.rollback_path)})
        except BackupError as e:
            self.finished.emit({'error': str(e)})
        except Exception as e:
            self.backup_manager.logger.exception("Unexpected error during restore")
            self.finished.emit({'error': str(e)})


class MainWindow(QMainWindow):
    """Main application window: database backups and their settings."""

    def __init__(self, backup_manager: BackupManager, logger: AppLogger):
        """
        Initialize main window.

        Args:
            backup_manager: The application's backup manager
            logger: Logger instance
        """
        super().__init__()
        self.backup_manager = backup_manager
        self.logger = logger
        self.worker: Optional[QThread] = None

        self.init_ui()
        self.refresh()

    def init_ui(self):
        """Initialize UI components."""
        self.setWindowTitle("Lesson Keeper - Backups")
        self.setGeometry(100, 100, 800, 600)

        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        main_layout = QVBoxLayout()
        central_widget.setLayout(main_layout)

        # Database info
        self.db_info_label = QLabel()
        main_layout.addWidget(self.db_info_label)

        # Retention setting
        retention_layout = QHBoxLayout()
        retention_label = QLabel("Backups to keep:")
        retention_label.setFixedWidth(140)
        self.max_backups_spin = QSpinBox()
        self.max_backups_spin.setRange(1, 9999)
        self.max_backups_spin.setValue(self.backup_manager.max_backups)
        retention_layout.addWidget(retention_label)
        retention_layout.addWidget(self.max_backups_spin)
        retention_layout.addStretch()
        main_layout.addLayout(retention_layout)

        # External mirror folder
        mirror_layout = QHBoxLayout()
        mirror_label = QLabel("External Backup Folder:")
        mirror_label.setFixedWidth(140)
        self.mirror_line_edit = QLineEdit()
        self.mirror_line_edit.setText(self.backup_manager.external_mirror_path or "")
        self.mirror_browse_btn = QPushButton("Browse...")
        self.mirror_browse_btn.clicked.connect(self.browse_mirror_folder)
        self.mirror_clear_btn = QPushButton("Clear")
        self.mirror_clear_btn.clicked.connect(self.mirror_line_edit.clear)
        mirror_layout.addWidget(mirror_label)
        mirror_layout.addWidget(self.mirror_line_edit)
        mirror_layout.addWidget(self.mirror_browse_btn)
        mirror_layout.addWidget(self.mirror_clear_btn)
        main_layout.addLayout(mirror_layout)

        self.save_settings_btn = QPushButton("Save Settings")
        self.save_settings_btn.clicked.connect(self.save_settings)
        main_layout.addWidget(self.save_settings_btn, alignment=Qt.AlignLeft)

        # Snapshot list
        main_layout.addWidget(QLabel("Available Backups:"))
        self.backup_list = QListWidget()
        self.backup_list.itemSelectionChanged.connect(self.update_ui_state)
        main_layout.addWidget(self.backup_list)

        # Buttons layout
        button_layout = QHBoxLayout()
        self.create_backup_btn = QPushButton("Create Backup")
        self.create_backup_btn.clicked.connect(self.start_backup)
        self.restore_selected_btn = QPushButton("Restore Selected")
        self.restore_selected_btn.clicked.connect(self.restore_selected)
        self.restore_file_btn = QPushButton("Restore From File...")
        self.restore_file_btn.clicked.connect(self.restore_from_file)
        button_layout.addWidget(self.create_backup_btn)
        button_layout.addWidget(self.restore_selected_btn)
        button_layout.addWidget(self.restore_file_btn)
        button_layout.addStretch()
        main_layout.addLayout(button_layout)

        # Status label
        self.status_label = QLabel("Ready")
        main_layout.addWidget(self.status_label)

        # Log display
        main_layout.addWidget(QLabel("Log:"))
        self.log_text_edit = QTextEdit()
        self.log_text_edit.setReadOnly(True)
        self.log_text_edit.setFontFamily("Courier")
        main_layout.addWidget(self.log_text_edit)

        self.update_ui_state()

    def refresh(self):
        """Reload database info, snapshot list and log view."""
        info = self.backup_manager.get_database_info()
        if info['modified_time'] is None:
            self.db_info_label.setText("Database: not found")
        else:
            size_kb = info['size'] / 1024
            self.db_info_label.setText(
                f"Database: {size_kb:.1f} KB, last modified "
                f"{info['modified_time'].strftime('%Y-%m-%d %H:%M')}"
            )

        self.backup_list.clear()
        for snapshot in self.backup_manager.list_backups():
            item = QListWidgetItem(
                f"{snapshot.created_at.strftime('%Y-%m-%d %H:%M:%S')}  "
                f"({snapshot.size / 1024:.1f} KB)  {snapshot.name}"
            )
            item.setData(Qt.UserRole, str(snapshot.path))
            self.backup_list.addItem(item)

        self.update_log_display()
        self.update_ui_state()

    def browse_mirror_folder(self):
        """Open dialog to select the external backup folder."""
        folder = QFileDialog.getExistingDirectory(self, "Select External Backup Folder")
        if folder:
            self.mirror_line_edit.setText(folder)

    def save_settings(self):
        """Apply and persist the retention and mirror settings."""
        try:
            self.backup_manager.max_backups = self.max_backups_spin.value()
            self.backup_manager.external_mirror_path = self.mirror_line_edit.text()
            self.backup_manager.save_settings()
        except (ValueError, OSError) as e:
            self.logger.error(f"Could not save settings: {e}")
            QMessageBox.warning(self, "Settings", f"Could not save settings:\n{e}")
            return
        self.status_label.setText("Settings saved")
        self.update_log_display()

    def update_ui_state(self):
        """Update UI state based on current selections."""
        idle = self.worker is None
        self.create_backup_btn.setEnabled(idle)
        self.restore_selected_btn.setEnabled(idle and bool(self.backup_list.selectedItems()))
        self.restore_file_btn.setEnabled(idle)
        self.save_settings_btn.setEnabled(idle)

    def start_backup(self):
        """Start backup operation."""
        self.status_label.setText("Backup in progress...")
        self.worker = BackupWorker(self.backup_manager)
        self.worker.finished.connect(self.backup_finished)
        self.update_ui_state()
        self.worker.start()

    def backup_finished(self, results: dict):
        """Handle backup completion."""
        self.worker = None
        if 'error' in results:
            self.status_label.setText(f"Backup failed: {results['error']}")
            QMessageBox.warning(self, "Backup", f"Could not create the backup:\n{results['error']}")
        else:
            snapshot = results['snapshot']
            self.status_label.setText(f"Backup created: {snapshot.name}")
        self.refresh()

    def restore_selected(self):
        """Restore the snapshot selected in the list."""
        items = self.backup_list.selectedItems()
        if not items:
            return
        self.confirm_and_restore(items[0].data(Qt.UserRole))

    def restore_from_file(self):
        """Restore a database file chosen by the user."""
        file_path, _ = QFileDialog.getOpenFileName(
            self, "Select Backup to Restore", str(self.backup_manager.backup_dir),
            "Database files (*.db);;All files (*)"
        )
        if file_path:
            self.confirm_and_restore(file_path)

    def confirm_and_restore(self, source_path: str):
        """Ask for confirmation, then run the restore in a worker thread."""
        reply = QMessageBox.question(
            self, "Restore Backup",
            f"Restore '{Path(source_path).name}'?\n\n"
            "The current data will be replaced. A backup of it is taken first, "
            "and the application restarts when the restore completes.",
            QMessageBox.Yes | QMessageBox.No,
            QMessageBox.No
        )
        if reply != QMessageBox.Yes:
            return

        self.status_label.setText("Restoring...")
        self.worker = RestoreWorker(self.backup_manager, source_path)
        self.worker.finished.connect(self.restore_finished)
        self.update_ui_state()
        self.worker.start()

    def restore_finished(self, results: dict):
        """Handle restore completion."""
        self.worker = None
        if results.get('fatal'):
            self.status_label.setText("Restore failed, manual recovery required")
            QMessageBox.critical(
                self, "Restore Failed",
                f"The restore failed and the previous database could not be put back.\n\n"
                f"{results['error']}\n\n"
                f"Move '{results['rollback_path']}' back to "
                f"'{self.backup_manager.db_path}' before using the application."
            )
        elif 'error' in results:
            self.status_label.setText(f"Restore failed: {results['error']}")
            QMessageBox.warning(
                self, "Restore",
                f"Could not restore the backup. Your current data was not changed.\n\n{results['error']}"
            )
        else:
            self.status_label.setText("Restore complete, restarting...")
        self.refresh()

    def update_log_display(self):
        """Update log display from logger."""
        logs = self.logger.get_logs()
        if logs:
            self.log_text_edit.setPlainText('\n'.join(logs))
            scrollbar = self.log_text_edit.verticalScrollBar()
            scrollbar.setValue(scrollbar.maximum())

    def closeEvent(self, event):
        """Handle window close event."""
        if isinstance(self.worker, RestoreWorker) and self.worker.isRunning():
            QMessageBox.information(
                self, "Restore in Progress",
                "A restore is running and cannot be interrupted. Please wait for it to finish."
            )
            event.ignore()
            return

        self.wait_for_worker(5000)
        event.accept()

    def wait_for_worker(self, timeout_ms: int = 10000) -> bool:
        """Block until the running worker thread (if any) has finished."""
        worker = self.worker
        if worker is None or not worker.isRunning():
            return True
        finished = worker.wait(timeout_ms)
        if not finished:
            self.logger.warning("Worker thread still running at shutdown")
        return finished
