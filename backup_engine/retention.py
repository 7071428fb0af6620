"""Retention policy: prune the oldest snapshots beyond the configured maximum."""

from typing import List

from backup_engine.snapshot_store import Snapshot, SnapshotStore
from utils.logger import AppLogger


class RetentionPolicy:
    """Keeps at most max_count snapshots in a store."""

    def __init__(self, store: SnapshotStore, logger: AppLogger):
        self.store = store
        self.logger = logger

    def prune(self, max_count: int) -> List[Snapshot]:
        """
        Delete the oldest snapshots so that at most max_count remain.

        A file that cannot be deleted is logged and skipped; the remaining
        excess files are still processed. A file that vanished between
        listing and deletion counts as handled.

        Args:
            max_count: Number of snapshots to keep

        Returns:
            Snapshots that were removed by this call
        """
        snapshots = self.store.list_snapshots()
        excess = max(0, len(snapshots) - max_count)
        if not excess:
            return []

        self.logger.info(f"Pruning {excess} old backup(s), keeping {max_count}")

        removed = []
        # Listing is newest first, so the excess is at the tail
        for snapshot in snapshots[max_count:]:
            try:
                if self.store.delete(snapshot):
                    removed.append(snapshot)
                    self.logger.info(f"Old backup removed: {snapshot.name}")
            except OSError as e:
                self.logger.warning(f"Could not delete old backup {snapshot.name}: {e}")

        return removed
