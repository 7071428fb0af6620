"""Tests for hashing utilities."""

import pytest
import tempfile
import os
from pathlib import Path

from utils.hashing import hash_file, files_match


def test_hash_file():
    """Test hashing a file."""
    with tempfile.NamedTemporaryFile(mode='w', delete=False) as f:
        f.write("test content")
        temp_path = f.name

    try:
        hash1 = hash_file(temp_path)
        assert isinstance(hash1, str)
        assert len(hash1) == 64

        # Hash should be deterministic
        hash2 = hash_file(temp_path)
        assert hash1 == hash2

        # Hash should change with content
        with open(temp_path, 'w') as f:
            f.write("different content")
        hash3 = hash_file(temp_path)
        assert hash1 != hash3

    finally:
        os.unlink(temp_path)


def test_hash_file_not_found():
    """Test hashing a non-existent file."""
    with pytest.raises(FileNotFoundError):
        hash_file("/nonexistent/path/file.txt")


def test_hash_file_directory():
    """Test hashing a directory (should raise error)."""
    with tempfile.TemporaryDirectory() as temp_dir:
        with pytest.raises(ValueError):
            hash_file(temp_dir)


def test_files_match():
    """Identical content matches, different content of the same size does not."""
    with tempfile.TemporaryDirectory() as temp_dir:
        first = Path(temp_dir) / "a.db"
        second = Path(temp_dir) / "b.db"
        third = Path(temp_dir) / "c.db"
        first.write_bytes(b"abcdef")
        second.write_bytes(b"abcdef")
        third.write_bytes(b"abcdeg")

        assert files_match(first, second)
        assert not files_match(first, third)
