"""Restore coordination: safety snapshot, handle release, swap, rollback."""

import os
import shutil
import threading
from pathlib import Path
from typing import Callable, Optional

from backup_engine.errors import (
    RestoreError, RestoreInProgressError, SourceNotFoundError,
    SwapFailureError, RollbackFailedError,
)
from backup_engine.snapshot import SnapshotWriter
from backup_engine.snapshot_store import Snapshot
from utils.hashing import files_match
from utils.logger import AppLogger

ROLLBACK_SUFFIX = '.old'


def rollback_path_for(live_path: Path) -> Path:
    """Path of the safety-rollback file kept while a restore swaps files."""
    live_path = Path(live_path)
    return live_path.with_name(live_path.name + ROLLBACK_SUFFIX)


class RestoreCoordinator:
    """Swaps a snapshot into the position of the live database.

    The restore runs SafetyBackup, HandleRelease, Swap and Verify in order.
    Once the live file has been renamed aside, any failure moves it back
    before the error is reported. Only one restore may run at a time.
    """

    def __init__(self, writer: SnapshotWriter, release_handles: Callable[[], None],
                 logger: AppLogger, request_restart: Optional[Callable[[], None]] = None,
                 retention_lock: Optional[threading.Lock] = None):
        """
        Initialize restore coordinator.

        Args:
            writer: Snapshot writer used for the safety snapshot
            release_handles: Closes every open handle to the live database
            logger: Logger instance
            request_restart: Called once after a successful restore
            retention_lock: Held for the whole restore so pruning cannot run meanwhile
        """
        self.writer = writer
        self.release_handles = release_handles
        self.logger = logger
        self.request_restart = request_restart
        self.retention_lock = retention_lock or threading.Lock()
        self._lock = threading.Lock()

    @property
    def live_path(self) -> Path:
        return self.writer.live_path

    @property
    def rollback_path(self) -> Path:
        return rollback_path_for(self.live_path)

    def restore(self, source_path,
                on_safety_snapshot: Optional[Callable[[Snapshot], None]] = None) -> Snapshot:
        """
        Replace the live database with the contents of source_path.

        Args:
            source_path: Snapshot (or user-selected database file) to restore
            on_safety_snapshot: Receives the safety snapshot as soon as it exists

        Returns:
            The safety Snapshot taken before the live file was touched

        Raises:
            SourceNotFoundError: If source_path does not exist
            RestoreInProgressError: If another restore is running
            DatabaseMissingError: If the safety snapshot found no live database
            ConsistentCopyFailedError: If the safety snapshot could not be written
            SwapFailureError: If the swap failed and was rolled back
            RollbackFailedError: If the swap failed and could not be rolled back
        """
        source = Path(source_path)
        if not source.is_file():
            self.logger.warning(f"Restore requested for missing file: {source}")
            raise SourceNotFoundError(source)
        source = source.resolve()

        if self.live_path.exists() and source == self.live_path.resolve():
            raise RestoreError("Cannot restore the live database onto itself")
        if source == self.rollback_path.resolve():
            raise RestoreError(f"Cannot restore from the rollback file {source.name}; move it aside first")

        if not self._lock.acquire(blocking=False):
            raise RestoreInProgressError("A restore is already in progress")

        try:
            # Waits for a prune already running; later ones wait for us
            with self.retention_lock:
                if not source.is_file():
                    self.logger.warning(f"Restore source removed before the restore began: {source}")
                    raise SourceNotFoundError(source)
                self.logger.info(f"Starting restore from {source}")

                safety = self.writer.create_snapshot()
                self.logger.info(f"Safety backup taken: {safety.name}")
                if on_safety_snapshot is not None:
                    on_safety_snapshot(safety)

                try:
                    self.release_handles()
                except Exception as e:
                    self.logger.error(f"Could not release database handles: {e}")
                    raise SwapFailureError(f"Could not release database handles: {e}") from e

                self._swap(source)
        finally:
            self._lock.release()

        self._discard_rollback_file()
        self.logger.info(f"Restore from {source.name} completed")
        self._fire_restart()
        return safety

    def _swap(self, source: Path):
        """Rename the live file aside, copy source in, verify; roll back on failure."""
        live = self.live_path
        rollback = self.rollback_path

        try:
            if rollback.exists():
                self.logger.warning(f"Removing stale rollback file {rollback}")
                rollback.unlink()
            os.replace(live, rollback)
        except OSError as e:
            # The live file has not moved; nothing to roll back
            self.logger.error(f"Could not move the live database aside: {e}")
            raise SwapFailureError(f"Could not move the live database aside: {e}") from e

        try:
            self._copy_into_place(source, live)
            self._verify(source, live)
        except Exception as e:
            self.logger.error(f"Restore failed while copying {source.name}: {e}. Rolling back")
            self._rollback()
            raise SwapFailureError(f"Restore failed and was rolled back: {e}") from e

    def _copy_into_place(self, source: Path, live: Path):
        shutil.copyfile(source, live)

    def _verify(self, source: Path, live: Path):
        if not live.is_file():
            raise OSError(f"Restored database missing at {live}")
        if live.stat().st_size == 0:
            raise OSError(f"Restored database is empty: {live}")
        if not files_match(source, live):
            raise OSError(f"Restored database does not match {source.name}")

    def _rollback(self):
        """Put the previous live database back. Raises RollbackFailedError."""
        rollback = self.rollback_path
        try:
            self._move_back(rollback, self.live_path)
        except OSError as e:
            self.logger.critical(
                f"ROLLBACK FAILED: {e}. The previous database is at {rollback} "
                f"and must be moved back to {self.live_path} manually"
            )
            raise RollbackFailedError(f"Rollback failed: {e}", rollback) from e
        self.logger.info("Rollback complete, previous database restored")

    def _move_back(self, rollback: Path, live: Path):
        if live.exists():
            live.unlink()
        os.replace(rollback, live)

    def _discard_rollback_file(self):
        try:
            self.rollback_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.warning(f"Could not remove rollback file {self.rollback_path}: {e}")

    def _fire_restart(self):
        if self.request_restart is None:
            return
        try:
            self.request_restart()
        except Exception:
            self.logger.exception("Restart request failed")

    def recover_interrupted_restore(self) -> bool:
        """Move a leftover rollback file back if the live database is missing."""
        return recover_interrupted_restore(self.live_path, self.logger)


def recover_interrupted_restore(live_path: Path, logger: AppLogger) -> bool:
    """
    Move a leftover rollback file back if the live database is missing.

    Only a process that died mid-swap leaves this state behind. Call it
    before anything opens (and so creates) the live database.

    Returns:
        True if the previous database was put back
    """
    live_path = Path(live_path)
    rollback = rollback_path_for(live_path)
    if not rollback.exists():
        return False

    if live_path.exists():
        logger.warning(
            f"Leftover rollback file found at {rollback}; live database present, leaving it in place"
        )
        return False

    logger.warning(f"Interrupted restore detected, moving {rollback.name} back")
    os.replace(rollback, live_path)
    return True
