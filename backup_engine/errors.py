"""Exceptions raised by the backup and restore operations."""

from pathlib import Path


class BackupError(Exception):
    """Base class for all backup subsystem failures."""


class DatabaseMissingError(BackupError):
    """The live database file does not exist."""

    def __init__(self, db_path):
        self.db_path = Path(db_path)
        super().__init__(f"Database not found: {self.db_path}")


class ConsistentCopyFailedError(BackupError):
    """The database engine could not produce a consistent copy."""


class RestoreError(BackupError):
    """Base class for restore failures."""


class SourceNotFoundError(RestoreError):
    """The snapshot selected for restore does not exist."""

    def __init__(self, source_path):
        self.source_path = Path(source_path)
        super().__init__(f"Backup file not found: {self.source_path}")


class RestoreInProgressError(RestoreError):
    """Another restore is already running."""


class SwapFailureError(RestoreError):
    """Swapping the snapshot into the live position failed.

    The live database has been rolled back to its state before the restore.
    """


class RollbackFailedError(RestoreError):
    """A failed swap could not be rolled back.

    The live database may be missing or partial. The previous database is
    left at ``rollback_path`` and must be moved back by hand.
    """

    def __init__(self, message, rollback_path):
        self.rollback_path = Path(rollback_path)
        super().__init__(f"{message}. Previous database kept at: {self.rollback_path}")
