"""Creates consistent snapshots of the live database."""

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from backup_engine.errors import DatabaseMissingError, ConsistentCopyFailedError
from backup_engine.snapshot_store import Snapshot, SnapshotStore
from utils.logger import AppLogger


class SnapshotWriter:
    """Writes point-in-time copies of the live database into the store."""

    def __init__(self, db_handle, store: SnapshotStore, logger: AppLogger,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize snapshot writer.

        Args:
            db_handle: Database handle exposing db_path and backup_to(destination)
            store: Snapshot store receiving the copies
            logger: Logger instance
            clock: Returns the time encoded in new snapshot names (defaults to datetime.now)
        """
        self.db_handle = db_handle
        self.store = store
        self.logger = logger
        self.clock = clock or datetime.now

    @property
    def live_path(self) -> Path:
        return Path(self.db_handle.db_path)

    def create_snapshot(self) -> Snapshot:
        """
        Copy the live database into a newly named snapshot.

        Returns:
            The new Snapshot

        Raises:
            DatabaseMissingError: If the live database file does not exist
            ConsistentCopyFailedError: If the copy could not be written
        """
        if not self.live_path.exists():
            self.logger.warning(f"Database not found for backup: {self.live_path}")
            raise DatabaseMissingError(self.live_path)

        try:
            partial_path = self.store.allocate_path(self.clock())
        except OSError as e:
            self.logger.error(f"Could not reserve a backup file in {self.store.backup_dir}: {e}")
            raise ConsistentCopyFailedError(f"Could not reserve a backup file: {e}") from e

        try:
            self.db_handle.backup_to(partial_path)
            snapshot = self.store.finalize(partial_path)
        except (sqlite3.Error, OSError) as e:
            self.logger.error(f"Backup to {partial_path.name} failed: {e}")
            self._discard(partial_path)
            raise ConsistentCopyFailedError(f"Backup to {partial_path} failed: {e}") from e
        except BaseException:
            self.logger.exception(f"Backup to {partial_path.name} aborted")
            self._discard(partial_path)
            raise

        self.logger.info(f"Backup created: {snapshot.name} ({snapshot.size} bytes)")
        return snapshot

    def _discard(self, path: Path):
        """Remove a partial snapshot left by a failed copy."""
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.warning(f"Could not remove partial backup {path}: {e}")
