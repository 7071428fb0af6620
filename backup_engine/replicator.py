"""Streams fresh snapshots to an optional external mirror directory."""

import os
import shutil
import stat
from pathlib import Path
from typing import Optional

from utils.config import IS_WINDOWS, COPY_CHUNK_SIZE
from utils.logger import AppLogger


class ExternalReplicator:
    """Best-effort copies of snapshots to a secondary location."""

    def __init__(self, logger: AppLogger, mirror_dir: Optional[str] = None,
                 chunk_size: int = COPY_CHUNK_SIZE):
        """
        Initialize replicator.

        Args:
            logger: Logger instance
            mirror_dir: External directory receiving copies (None disables mirroring)
            chunk_size: Size of chunks for the streamed copy
        """
        self.logger = logger
        self.mirror_dir = mirror_dir
        self.chunk_size = chunk_size

    @property
    def enabled(self) -> bool:
        return bool(self.mirror_dir)

    def replicate(self, snapshot_path: Path) -> bool:
        """
        Copy a snapshot into the mirror directory.

        Never raises: every failure is logged and reported as False. The
        source snapshot is only read.

        Args:
            snapshot_path: Snapshot file to mirror

        Returns:
            True if the mirror now holds a complete copy
        """
        if not self.enabled:
            return False

        snapshot_path = Path(snapshot_path)
        mirror_dir = Path(self.mirror_dir)

        try:
            if not mirror_dir.is_dir():
                self.logger.warning(f"External backup folder not available: {mirror_dir}")
                return False
        except OSError as e:
            self.logger.warning(f"External backup folder not reachable: {mirror_dir} ({e})")
            return False

        dest_path = mirror_dir / snapshot_path.name
        partial_path = mirror_dir / (snapshot_path.name + '.part')

        try:
            with open(snapshot_path, 'rb') as src, open(partial_path, 'wb') as dst:
                shutil.copyfileobj(src, dst, self.chunk_size)
                dst.flush()
                os.fsync(dst.fileno())
            os.replace(partial_path, dest_path)

            # On Unix systems, ensure file is readable
            if not IS_WINDOWS:
                try:
                    os.chmod(dest_path, stat.S_IRUSR | stat.S_IWUSR | stat.S_IRGRP | stat.S_IROTH)
                except OSError:
                    pass  # Non-critical if we can't set permissions

        except FileNotFoundError:
            self.logger.warning(f"Backup {snapshot_path.name} disappeared before it could be mirrored")
            self._discard(partial_path)
            return False
        except OSError as e:
            self.logger.error(f"External backup copy failed for {snapshot_path.name}: {e}")
            self._discard(partial_path)
            return False

        self.logger.info(f"External backup created: {dest_path}")
        return True

    def _discard(self, path: Path):
        try:
            path.unlink()
        except OSError:
            pass
