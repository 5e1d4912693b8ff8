"""
Filesystem path definitions for vaultdash.

This module defines the canonical locations vaultdash writes to. The
dashboard only reads the files it monitors, so the only paths it owns are
its own application log and the transient scratch file used by the
parser debugging mode.

Design Decisions:
    - All functions return pathlib.Path objects
    - The log root is configurable through VAULTDASH_LOG_ROOT
    - Scratch files live in the system temp directory and are removed
      by the caller when the dashboard exits
"""

import os
import tempfile
from pathlib import Path

# Environment variable that relocates the application log directory
LOG_ROOT_ENV = "VAULTDASH_LOG_ROOT"

# Name of the application log inside the log root
APP_LOG_NAME = "vaultdash.log"


def log_root() -> Path:
    """
    Return the root directory for vaultdash's own logs.

    Uses the VAULTDASH_LOG_ROOT environment variable if set, otherwise
    falls back to ~/.vaultdash/logs.

    Returns:
        Path: Directory that holds the application log.

    Example:
        >>> os.environ["VAULTDASH_LOG_ROOT"] = "/var/log/vaultdash"
        >>> log_root()
        PosixPath('/var/log/vaultdash')
    """
    root = os.environ.get(LOG_ROOT_ENV)
    if root:
        return Path(root)
    return Path.home() / ".vaultdash" / "logs"


def app_log_path() -> Path:
    """Return the default path of the application log file."""
    return log_root() / APP_LOG_NAME


def create_scratch_file(prefix: str = "vaultdash-parser-") -> Path:
    """
    Create an empty scratch file for parser debug output.

    The file is created (not just named) so that it can be loaded and
    registered for tailing like any other monitored file.

    Returns:
        Path: The newly created file. The caller owns its removal.
    """
    fd, name = tempfile.mkstemp(prefix=prefix, suffix=".log")
    os.close(fd)
    return Path(name)
