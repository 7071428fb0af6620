"""Tests for persisted backup settings."""

import pytest
import tempfile
import shutil
from pathlib import Path

from utils.settings import BackupSettings, load_settings, save_settings


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    path = tempfile.mkdtemp()
    yield Path(path)
    shutil.rmtree(path, ignore_errors=True)


def test_defaults():
    """Default retention is 50 with no mirror."""
    settings = BackupSettings()
    assert settings.max_backups == 50
    assert settings.external_mirror_path is None


def test_invalid_max_backups():
    """max_backups must be a positive integer."""
    with pytest.raises(ValueError):
        BackupSettings(max_backups=0)
    with pytest.raises(ValueError):
        BackupSettings(max_backups="10")


def test_empty_mirror_path_means_none():
    """An empty mirror path disables mirroring."""
    assert BackupSettings(external_mirror_path="").external_mirror_path is None


def test_save_and_load(temp_dir):
    """Settings survive a save/load cycle."""
    settings_file = temp_dir / "backup_config.json"
    save_settings(BackupSettings(max_backups=7, external_mirror_path="/mnt/usb"), settings_file)

    loaded = load_settings(settings_file)
    assert loaded.max_backups == 7
    assert loaded.external_mirror_path == "/mnt/usb"
    assert not (temp_dir / "backup_config.json.tmp").exists()


def test_missing_file_uses_defaults(temp_dir):
    """No settings file yields defaults."""
    loaded = load_settings(temp_dir / "absent.json")
    assert loaded == BackupSettings()


def test_corrupt_file_uses_defaults(temp_dir):
    """A malformed settings file yields defaults instead of failing startup."""
    settings_file = temp_dir / "backup_config.json"
    settings_file.write_text("{not json")
    assert load_settings(settings_file) == BackupSettings()

    settings_file.write_text('{"max_backups": -3}')
    assert load_settings(settings_file) == BackupSettings()
