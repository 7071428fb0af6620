"""Global settings, constants, and paths configuration."""

import os
import sys
import platform
from pathlib import Path

# Platform detection
IS_WINDOWS = sys.platform.startswith('win')
IS_MACOS = sys.platform == 'darwin'
IS_LINUX = sys.platform.startswith('linux')
IS_UNIX = IS_MACOS or IS_LINUX or sys.platform.startswith('unix')

# Base directory for the application (now at root level)
BASE_DIR = Path(__file__).parent.parent

# Data directory for storing the database, backups and logs
# Use platform-appropriate location
if IS_WINDOWS:
    # Windows: Use AppData\Roaming if available, otherwise project directory
    appdata = os.environ.get('APPDATA')
    if appdata:
        DATA_DIR = Path(appdata) / "LessonKeeper"
    else:
        DATA_DIR = BASE_DIR / "data"
elif IS_MACOS:
    # macOS: Use ~/Library/Application Support
    home = Path.home()
    DATA_DIR = home / "Library" / "Application Support" / "LessonKeeper"
elif IS_LINUX:
    # Linux: Use $XDG_DATA_HOME or ~/.local/share
    xdg_data = os.environ.get('XDG_DATA_HOME')
    if xdg_data:
        DATA_DIR = Path(xdg_data) / "lesson-keeper"
    else:
        DATA_DIR = Path.home() / ".local" / "share" / "lesson-keeper"
else:
    # Fallback to project directory
    DATA_DIR = BASE_DIR / "data"

DATA_DIR.mkdir(parents=True, exist_ok=True)

# Live database file path
DB_NAME = "lessons"
DB_PATH = DATA_DIR / f"{DB_NAME}.db"

# Snapshot store
BACKUP_DIR = DATA_DIR / "backups"

# Persisted backup settings (max backups, external mirror)
SETTINGS_FILE = DATA_DIR / "backup_config.json"

# Log file path (optional, for file-based logging)
LOG_DIR = DATA_DIR / "logs"
LOG_DIR.mkdir(parents=True, exist_ok=True)

# Default backup settings
DEFAULT_MAX_BACKUPS = 50
MAX_LOG_ENTRIES = 1000

# Chunk size for streamed copies to the external mirror
COPY_CHUNK_SIZE = 1024 * 1024

# Platform information for logging
PLATFORM_NAME = platform.system()
PLATFORM_VERSION = platform.version()
