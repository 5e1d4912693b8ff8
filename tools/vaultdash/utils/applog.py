"""
Append-only application logging.

The dashboard takes over the terminal while it runs, so nothing it wants
to report can go to stdout. Instead every component writes plain-text
lines to a single append-only log file that can be followed with
`tail -f` (or with vaultdash itself).

Log Line Format:
    <timestamp> [component=<name>] <LEVEL> <message>

Design Decisions:
    - UTC timestamps for consistency across machines
    - Open/append/close per line so nothing is lost on a crash
    - A logger without a path is a no-op, which keeps tests and
      embedders free of filesystem side effects
"""

from __future__ import annotations

import datetime
from pathlib import Path
from typing import Optional


class AppLogger:
    """
    Minimal append-only logger for vaultdash components.

    Attributes:
        path: The log file, or None when logging is disabled.

    Example:
        >>> logger = AppLogger(Path("/tmp/vaultdash.log"))
        >>> logger.info("dispatcher", "Started")
        # Writes: 2024-01-15T12:00:00Z [component=dispatcher] INFO Started
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        """
        Initialize a logger writing to `path`.

        Creates the parent directory if needed so the first write can't
        fail because of a missing directory.

        Args:
            path: Log file to append to, or None to disable logging.
        """
        self.path = path
        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)

    def _ts(self) -> str:
        """Return an ISO 8601 UTC timestamp such as 2024-01-15T12:00:00Z."""
        return (
            datetime.datetime.now(datetime.timezone.utc)
            .isoformat(timespec="seconds")
            .replace("+00:00", "Z")
        )

    def log(self, component: str, level: str, message: str) -> None:
        """
        Write one structured line to the log file.

        Args:
            component: The part of vaultdash emitting the line
                       (e.g. "dispatcher", "events", "tailer").
            level: Severity such as "INFO", "WARN", "ERROR", "DEBUG".
            message: Human-readable message.
        """
        if self.path is None:
            return
        line = (
            f"{self._ts()} "
            f"[component={component}] "
            f"{level.upper()} {message}\n"
        )
        with self.path.open("a", encoding="utf-8") as f:
            f.write(line)

    def debug(self, component: str, message: str) -> None:
        self.log(component, "DEBUG", message)

    def info(self, component: str, message: str) -> None:
        self.log(component, "INFO", message)

    def warn(self, component: str, message: str) -> None:
        self.log(component, "WARN", message)

    def error(self, component: str, message: str) -> None:
        self.log(component, "ERROR", message)
