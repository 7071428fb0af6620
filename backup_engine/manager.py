"""Backup manager: the entry point the application uses for backups and restores."""

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional

from backup_engine.replicator import ExternalReplicator
from backup_engine.restore import RestoreCoordinator
from backup_engine.retention import RetentionPolicy
from backup_engine.snapshot import SnapshotWriter
from backup_engine.snapshot_store import Snapshot, SnapshotStore
from utils.logger import AppLogger
from utils.settings import BackupSettings, save_settings, validate_max_backups


class BackupManager:
    """
    Creates, lists and restores database snapshots.

    One instance is built at startup and handed to every consumer. Retention
    and external mirroring run as independent background jobs after each
    snapshot; their failures are logged and never reach the caller.
    """

    def __init__(self, db_handle, logger: AppLogger,
                 settings: Optional[BackupSettings] = None,
                 backup_dir: Optional[Path] = None,
                 settings_file: Optional[Path] = None,
                 request_restart: Optional[Callable[[], None]] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 max_workers: int = 2):
        """
        Initialize backup manager.

        Args:
            db_handle: Database handle (db_path, backup_to, close)
            logger: Logger instance
            settings: Retention and mirror settings (defaults if None)
            backup_dir: Snapshot store directory (defaults to <db dir>/backups)
            settings_file: Where save_settings() writes (defaults to config SETTINGS_FILE)
            request_restart: Called once after a successful restore
            clock: Time source for snapshot names
            max_workers: Threads for background retention/replication jobs
        """
        self.db_handle = db_handle
        self.logger = logger
        self.settings = settings or BackupSettings()
        self.settings_file = settings_file
        db_path = Path(db_handle.db_path)

        self.store = SnapshotStore(backup_dir or db_path.parent / "backups", db_path.stem)
        self.writer = SnapshotWriter(db_handle, self.store, logger, clock=clock)
        self.retention = RetentionPolicy(self.store, logger)
        self.replicator = ExternalReplicator(logger, self.settings.external_mirror_path)
        self._retention_lock = threading.Lock()
        self.restorer = RestoreCoordinator(
            self.writer, db_handle.close, logger, request_restart=request_restart,
            retention_lock=self._retention_lock,
        )

        self._executor = ThreadPoolExecutor(max_workers=max_workers,
                                            thread_name_prefix='backup-bg')
        self._pending: List[Future] = []

    @property
    def db_path(self) -> Path:
        return Path(self.db_handle.db_path)

    @property
    def backup_dir(self) -> Path:
        return self.store.backup_dir

    @property
    def max_backups(self) -> int:
        return self.settings.max_backups

    @max_backups.setter
    def max_backups(self, value: int):
        self.settings.max_backups = validate_max_backups(value)

    @property
    def external_mirror_path(self) -> Optional[str]:
        return self.settings.external_mirror_path

    @external_mirror_path.setter
    def external_mirror_path(self, value: Optional[str]):
        value = (value or '').strip() or None
        self.settings.external_mirror_path = value
        self.replicator.mirror_dir = value

    def create_backup(self) -> Snapshot:
        """
        Take a snapshot of the live database.

        Raises:
            DatabaseMissingError: If the live database does not exist
            ConsistentCopyFailedError: If the copy failed
        """
        snapshot = self.writer.create_snapshot()
        self._dispatch_followups(snapshot)
        return snapshot

    def restore_backup(self, source_path) -> Snapshot:
        """
        Restore the live database from a snapshot or a user-selected file.

        On success the restart callback has been invoked; the host must
        relaunch before the database is used again.

        Returns:
            The safety Snapshot taken before the restore

        Raises:
            SourceNotFoundError, RestoreInProgressError, DatabaseMissingError,
            ConsistentCopyFailedError, SwapFailureError, RollbackFailedError
        """
        taken: List[Snapshot] = []
        try:
            return self.restorer.restore(source_path, on_safety_snapshot=taken.append)
        finally:
            # The safety snapshot's follow-ups wait until the swap is over so
            # pruning cannot remove the source mid-restore.
            for snapshot in taken:
                self._dispatch_followups(snapshot)

    def list_backups(self) -> List[Snapshot]:
        """All snapshots, newest first."""
        return self.store.list_snapshots()

    def recover_interrupted_restore(self) -> bool:
        """Put back a database left aside by a restore that died mid-swap."""
        return self.restorer.recover_interrupted_restore()

    def get_database_info(self) -> Dict:
        """Size in bytes and last modification time of the live database."""
        try:
            stat = self.db_path.stat()
        except FileNotFoundError:
            return {'size': 0, 'modified_time': None}
        return {
            'size': stat.st_size,
            'modified_time': datetime.fromtimestamp(stat.st_mtime),
        }

    def save_settings(self):
        """Persist the current settings. Raises OSError on failure."""
        save_settings(self.settings, self.settings_file)
        self.logger.info(
            f"Settings saved: max_backups={self.max_backups}, "
            f"external_mirror_path={self.external_mirror_path}"
        )

    def _dispatch_followups(self, snapshot: Snapshot):
        max_backups = self.max_backups
        self._submit(self._run_retention, max_backups)
        if self.replicator.enabled:
            self._submit(self._run_replication, snapshot.path)

    def _submit(self, fn, *args):
        self._pending = [f for f in self._pending if not f.done()]
        self._pending.append(self._executor.submit(fn, *args))

    def _run_retention(self, max_backups: int):
        try:
            with self._retention_lock:
                self.retention.prune(max_backups)
        except Exception:
            self.logger.exception("Error pruning old backups")

    def _run_replication(self, snapshot_path: Path):
        try:
            self.replicator.replicate(snapshot_path)
        except Exception:
            self.logger.exception("Error copying backup to external folder")

    def wait_for_background(self, timeout: Optional[float] = None) -> bool:
        """
        Block until pending background jobs finish.

        Returns:
            True if all jobs finished within timeout
        """
        pending = list(self._pending)
        done, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait_for_jobs: bool = True):
        """Stop the background executor."""
        self._executor.shutdown(wait=wait_for_jobs)
