"""Tests for snapshot naming, listing and deletion."""

import pytest
import tempfile
import shutil
from datetime import datetime
from pathlib import Path

from backup_engine.snapshot_store import SnapshotStore, partial_path_for


@pytest.fixture
def store():
    """Create a store in a temporary directory."""
    backup_dir = tempfile.mkdtemp()
    yield SnapshotStore(Path(backup_dir), "lessons")
    shutil.rmtree(backup_dir, ignore_errors=True)


def publish(store, moment, content=b"db"):
    """Reserve, fill and publish a snapshot; return it."""
    partial = store.allocate_path(moment)
    partial.write_bytes(content)
    return store.finalize(partial)


def test_snapshot_name_format(store):
    """Names follow <db>_backup_<yyyy-MM-dd_HH-mm-ss>.db."""
    moment = datetime(2024, 5, 6, 7, 8, 9)
    assert store.snapshot_name(moment) == "lessons_backup_2024-05-06_07-08-09.db"
    assert store.snapshot_name(moment, 3) == "lessons_backup_2024-05-06_07-08-09_003.db"


def test_allocate_path_is_in_progress_file(store):
    """Reservations live under <name>.part and are not listed."""
    partial = store.allocate_path(datetime(2024, 5, 6, 7, 8, 9))

    assert partial.name == "lessons_backup_2024-05-06_07-08-09.db.part"
    assert partial.exists()
    assert store.list_snapshots() == []


def test_finalize_publishes_snapshot(store):
    """Finalizing renames the in-progress file onto the snapshot name."""
    partial = store.allocate_path(datetime(2024, 5, 6, 7, 8, 9))
    partial.write_bytes(b"complete")

    snapshot = store.finalize(partial)

    assert not partial.exists()
    assert snapshot.path.read_bytes() == b"complete"
    assert [s.name for s in store.list_snapshots()] == [snapshot.name]


def test_finalize_rejects_non_partial_path(store):
    """Only in-progress paths can be finalized."""
    with pytest.raises(ValueError):
        store.finalize(store.backup_dir / "lessons_backup_2024-05-06_07-08-09.db")


def test_allocate_path_same_second_does_not_overwrite(store):
    """Two snapshots in the same second get distinct names."""
    moment = datetime(2024, 5, 6, 7, 8, 9)
    first = publish(store, moment, b"first")
    in_progress = store.allocate_path(moment)
    third = store.allocate_path(moment)

    assert first.path.read_bytes() == b"first"
    assert in_progress.name == "lessons_backup_2024-05-06_07-08-09_001.db.part"
    assert third.name == "lessons_backup_2024-05-06_07-08-09_002.db.part"


def test_allocate_path_skips_published_name(store):
    """A name already published is never reserved again."""
    moment = datetime(2024, 5, 6, 7, 8, 9)
    first = publish(store, moment)

    partial = store.allocate_path(moment)

    assert partial != partial_path_for(first.path)
    assert not partial_path_for(first.path).exists()


def test_name_order_is_creation_order(store):
    """Lexicographic order of names equals creation order, suffixes included."""
    moments = [
        datetime(2023, 12, 31, 23, 59, 59),
        datetime(2024, 1, 1, 0, 0, 0),
        datetime(2024, 1, 1, 0, 0, 0),
        datetime(2024, 1, 1, 0, 0, 1),
    ]
    created = [publish(store, m).name for m in moments]
    # Force several same-second suffixes, past the single-digit range
    for _ in range(11):
        created.append(publish(store, datetime(2024, 1, 1, 0, 0, 2)).name)

    assert sorted(created) == created
    listed = [s.name for s in store.list_snapshots()]
    assert listed == list(reversed(created))


def test_list_ignores_foreign_files(store):
    """Only well-formed snapshot names are listed."""
    publish(store, datetime(2024, 1, 1, 0, 0, 0))
    (store.backup_dir / "notes.txt").write_text("x")
    (store.backup_dir / "other_backup_2024-01-01_00-00-00.db").write_text("x")
    (store.backup_dir / "lessons_backup_2024-13-45_00-00-00.db").write_text("x")
    (store.backup_dir / "lessons_backup_2024-01-02_00-00-00.db.part").write_text("x")

    names = [s.name for s in store.list_snapshots()]
    assert names == ["lessons_backup_2024-01-01_00-00-00.db"]


def test_list_missing_directory():
    """A store whose directory does not exist yet is empty."""
    store = SnapshotStore(Path(tempfile.gettempdir()) / "no-such-backups-dir-xyz", "lessons")
    assert store.list_snapshots() == []


def test_snapshot_attributes(store):
    """Creation time comes from the name; size from the file."""
    publish(store, datetime(2024, 2, 3, 4, 5, 6), b"12345")

    snapshot = store.list_snapshots()[0]
    assert snapshot.created_at == datetime(2024, 2, 3, 4, 5, 6)
    assert snapshot.size == 5
    assert snapshot.path.is_absolute()


def test_delete_already_gone(store):
    """Deleting a vanished snapshot is treated as handled."""
    snapshot = publish(store, datetime(2024, 2, 3, 4, 5, 6))

    assert store.delete(snapshot) is True
    assert store.delete(snapshot) is False
    assert snapshot.size == 0
