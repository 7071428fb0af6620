"""On-disk collection of database snapshots: naming, listing, deletion."""

import os
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

TIMESTAMP_FORMAT = '%Y-%m-%d_%H-%M-%S'

# Same-second snapshots get _001.._999; '.' sorts before '_' so the
# unsuffixed name stays first.
MAX_SUFFIX = 999

# Snapshots are written under <name>.part and renamed when complete
PARTIAL_SUFFIX = '.part'


def partial_path_for(final_path: Path) -> Path:
    """In-progress path used while a snapshot is being written."""
    final_path = Path(final_path)
    return final_path.with_name(final_path.name + PARTIAL_SUFFIX)


@dataclass(frozen=True)
class Snapshot:
    """A point-in-time copy of the live database."""

    path: Path
    created_at: datetime

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def size(self) -> int:
        """Size in bytes, read from the filesystem (0 if the file is gone)."""
        try:
            return self.path.stat().st_size
        except FileNotFoundError:
            return 0


class SnapshotStore:
    """Directory of snapshot files for one database."""

    def __init__(self, backup_dir: Path, db_name: str):
        """
        Initialize snapshot store.

        Args:
            backup_dir: Directory holding the snapshots
            db_name: Database name used as the file name prefix
        """
        self.backup_dir = Path(backup_dir)
        self.db_name = db_name
        self.prefix = f"{db_name}_backup_"
        self._pattern = re.compile(
            rf"^{re.escape(self.prefix)}"
            r"(\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2})(?:_(\d{3}))?\.db$"
        )

    def snapshot_name(self, moment: datetime, suffix: int = 0) -> str:
        """Build the file name for a snapshot taken at moment."""
        name = f"{self.prefix}{moment.strftime(TIMESTAMP_FORMAT)}"
        if suffix:
            name += f"_{suffix:03d}"
        return name + ".db"

    def parse(self, path: Path) -> Optional[Snapshot]:
        """Return a Snapshot for path, or None if the name is not well-formed."""
        path = Path(path)
        match = self._pattern.match(path.name)
        if not match:
            return None
        try:
            created_at = datetime.strptime(match.group(1), TIMESTAMP_FORMAT)
        except ValueError:
            return None
        return Snapshot(path=path.resolve(), created_at=created_at)

    def list_snapshots(self) -> List[Snapshot]:
        """List all snapshots, newest first."""
        if not self.backup_dir.is_dir():
            return []

        snapshots = []
        for entry in self.backup_dir.iterdir():
            snapshot = self.parse(entry)
            if snapshot is not None and entry.is_file():
                snapshots.append(snapshot)

        snapshots.sort(key=lambda s: s.name, reverse=True)
        return snapshots

    def allocate_path(self, moment: Optional[datetime] = None) -> Path:
        """
        Reserve a new, unused snapshot name and return its in-progress path.

        The returned ``<name>.part`` file is created empty with exclusive
        mode, so two writers can never be handed the same name. The listing
        ignores it until finalize() renames it onto the snapshot name.

        Args:
            moment: Creation time encoded in the name (defaults to now)

        Returns:
            Path of the reserved (empty) in-progress file

        Raises:
            FileExistsError: If every suffix for this second is taken
            OSError: If the directory or file cannot be created
        """
        moment = moment or datetime.now()
        self.backup_dir.mkdir(parents=True, exist_ok=True)

        for suffix in range(MAX_SUFFIX + 1):
            final_path = self.backup_dir / self.snapshot_name(moment, suffix)
            partial_path = partial_path_for(final_path)
            try:
                with open(partial_path, 'x'):
                    pass
            except FileExistsError:
                continue
            # Holding the .part means no other writer can publish this name
            if final_path.exists():
                partial_path.unlink()
                continue
            return partial_path.resolve()

        raise FileExistsError(
            f"No free snapshot name left for {moment.strftime(TIMESTAMP_FORMAT)}"
        )

    def finalize(self, partial_path: Path) -> Snapshot:
        """
        Publish a completed in-progress file under its snapshot name.

        Raises:
            ValueError: If partial_path is not an in-progress snapshot path
            OSError: If the rename fails
        """
        partial_path = Path(partial_path)
        if not partial_path.name.endswith(PARTIAL_SUFFIX):
            raise ValueError(f"Not an in-progress snapshot: {partial_path}")
        final_path = partial_path.with_name(partial_path.name[:-len(PARTIAL_SUFFIX)])
        snapshot = self.parse(final_path)
        if snapshot is None:
            raise ValueError(f"Not a snapshot name: {final_path.name}")
        os.replace(partial_path, final_path)
        return snapshot

    def delete(self, snapshot: Snapshot) -> bool:
        """
        Delete a snapshot file.

        Returns:
            True if the file was removed, False if it was already gone

        Raises:
            OSError: If the file exists but cannot be removed
        """
        try:
            snapshot.path.unlink()
        except FileNotFoundError:
            return False
        return True
