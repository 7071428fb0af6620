"""Load and save the persisted backup settings."""

import json
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional

from utils import config


@dataclass
class BackupSettings:
    """Retention and mirroring configuration for the backup subsystem."""

    max_backups: int = config.DEFAULT_MAX_BACKUPS
    external_mirror_path: Optional[str] = None

    def __post_init__(self):
        validate_max_backups(self.max_backups)
        if not self.external_mirror_path:
            self.external_mirror_path = None


def validate_max_backups(value) -> int:
    """Raise ValueError unless value is an integer >= 1."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"max_backups must be an integer, got {value!r}")
    if value < 1:
        raise ValueError(f"max_backups must be at least 1, got {value}")
    return value


def load_settings(settings_file: Optional[Path] = None, logger=None) -> BackupSettings:
    """
    Load settings from disk.

    A missing file yields the defaults. An unreadable or malformed file is
    logged and also yields the defaults, so startup never fails on it.

    Args:
        settings_file: JSON file to read (defaults to config SETTINGS_FILE)
        logger: Optional AppLogger for diagnostics

    Returns:
        BackupSettings instance
    """
    settings_file = Path(settings_file or config.SETTINGS_FILE)

    if not settings_file.exists():
        if logger:
            logger.info(f"No settings file at {settings_file}, using defaults")
        return BackupSettings()

    try:
        with open(settings_file, 'r', encoding='utf-8') as f:
            data = json.load(f)
        settings = BackupSettings(
            max_backups=data.get('max_backups', config.DEFAULT_MAX_BACKUPS),
            external_mirror_path=data.get('external_mirror_path'),
        )
    except (OSError, ValueError, AttributeError) as e:
        if logger:
            logger.error(f"Could not load settings from {settings_file}: {e}. Using defaults")
        return BackupSettings()

    if logger:
        logger.info(
            f"Settings loaded: max_backups={settings.max_backups}, "
            f"external_mirror_path={settings.external_mirror_path}"
        )
    return settings


def save_settings(settings: BackupSettings, settings_file: Optional[Path] = None):
    """
    Write settings to disk.

    The file is written next to its final location and renamed into place.

    Raises:
        OSError: If the file cannot be written
    """
    settings_file = Path(settings_file or config.SETTINGS_FILE)
    settings_file.parent.mkdir(parents=True, exist_ok=True)
    tmp_file = settings_file.with_name(settings_file.name + '.tmp')

    with open(tmp_file, 'w', encoding='utf-8') as f:
        json.dump(asdict(settings), f, indent=2)
    tmp_file.replace(settings_file)
