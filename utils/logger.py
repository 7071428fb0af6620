"""Logging for the application and its backup operations."""

import logging
import sys
import threading
from collections import deque
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from utils import config


class AppLogger:
    """Logger with console, GUI, and file output.

    Background retention and replication jobs log through the same instance,
    so the GUI buffer is guarded by a lock.
    """

    def __init__(self, log_to_file: bool = False, log_file: Optional[Path] = None,
                 name: str = 'LessonKeeper'):
        """
        Initialize the application logger.

        Args:
            log_to_file: Whether to write logs to a file
            log_file: Path to log file (if None, one file per day under LOG_DIR)
            name: Name of the underlying logging.Logger
        """
        self.log_entries = deque(maxlen=config.MAX_LOG_ENTRIES)
        self._lock = threading.Lock()
        self.log_to_file = log_to_file
        self.log_file = log_file or (config.LOG_DIR / f"log-{datetime.now().strftime('%Y%m%d')}.log")

        # Setup Python logging
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)
        formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')

        # Console handler, attached once per process
        if not any(getattr(h, '_app_console', False) for h in self.logger.handlers):
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(logging.INFO)
            console_handler.setFormatter(formatter)
            console_handler._app_console = True
            self.logger.addHandler(console_handler)

        # File handler (if enabled)
        if self.log_to_file:
            file_handler = logging.FileHandler(self.log_file, encoding='utf-8')
            file_handler.setLevel(logging.INFO)
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

        # Log platform info on initialization
        self.info(f"Lesson Keeper initialized on {config.PLATFORM_NAME} {config.PLATFORM_VERSION}")

    def _record(self, level: str, message: str):
        timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        with self._lock:
            self.log_entries.append(f"[{timestamp}] {level}: {message}")

    def info(self, message: str):
        """Log an info message."""
        self._record('INFO', message)
        self.logger.info(message)

    def warning(self, message: str):
        """Log a warning message."""
        self._record('WARNING', message)
        self.logger.warning(message)

    def error(self, message: str):
        """Log an error message."""
        self._record('ERROR', message)
        self.logger.error(message)

    def critical(self, message: str):
        """Log a critical message. Used when manual intervention is required."""
        self._record('CRITICAL', message)
        self.logger.critical(message)

    def exception(self, message: str):
        """Log an error message with the active exception's traceback."""
        exc_info = sys.exc_info()
        if exc_info[1] is not None:
            self._record('ERROR', f"{message}: {exc_info[1]}")
        else:
            self._record('ERROR', message)
        self.logger.exception(message)

    def get_logs(self) -> List[str]:
        """Get all log entries for GUI display."""
        with self._lock:
            return list(self.log_entries)

    def clear_logs(self):
        """Clear all log entries."""
        with self._lock:
            self.log_entries.clear()

    def get_log_text(self) -> str:
        """Get all logs as a single string for display."""
        return '\n'.join(self.get_logs())

    def close(self):
        """Detach and close the file handler, if any."""
        for handler in list(self.logger.handlers):
            if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == Path(self.log_file).resolve():
                self.logger.removeHandler(handler)
                handler.close()
