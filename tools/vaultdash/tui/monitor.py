"""
Per-file monitoring state.

Each monitored logfile gets one LogMonitor, which owns:
    - a ContentStore: the rolling window of raw lines shown on screen
    - a VaultMetrics: the metrics decoded from the file

Monitors are created once at startup and mutated only by the dispatcher
loop.

Design Decisions:
    - ContentStore keeps only the N most recent lines; older lines are
      dropped from the front
    - Monitor indices come from a MonitorIndexAllocator owned by whoever
      builds the monitors, rather than from a module-level counter
"""

import itertools
from pathlib import Path
from typing import Iterator, List, Optional

from .metrics import VaultMetrics
from .model import MonitorView
from .tailer import split_lines


class MonitorIndexAllocator:
    """
    Hands out unique, strictly increasing monitor indices.

    Example:
        >>> ids = MonitorIndexAllocator()
        >>> ids.allocate(), ids.allocate()
        (0, 1)
    """

    def __init__(self, start: int = 0):
        self._counter: Iterator[int] = itertools.count(start)

    def allocate(self) -> int:
        return next(self._counter)


class ContentStore:
    """
    Fixed-capacity rolling window of display lines.

    Holds at most `capacity` lines: after every append the store contains
    the most recent min(capacity, total appended) lines in the order they
    were appended. Also tracks a selected line for keyboard navigation.

    Attributes:
        capacity: Maximum number of lines kept.
        items: The lines currently held, oldest first.
        selected: Index of the selected line, or None.
    """

    def __init__(self, capacity: int):
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {capacity}")
        self.capacity = capacity
        self.items: List[str] = []
        self.selected: Optional[int] = None

    def __len__(self) -> int:
        return len(self.items)

    def append(self, line: str) -> None:
        """Append a line, dropping the oldest lines on overflow."""
        self.items.append(line)
        overflow = len(self.items) - self.capacity
        if overflow > 0:
            del self.items[:overflow]
            self._shift_selection(overflow)

    def _shift_selection(self, dropped: int) -> None:
        # Keep the selection on the same line while it is still held
        if self.selected is None:
            return
        if not self.items:
            self.selected = None
        else:
            self.selected = max(0, self.selected - dropped)

    def select_next(self) -> None:
        """Move the selection down one line, wrapping to the top."""
        if not self.items:
            return
        if self.selected is None or self.selected >= len(self.items) - 1:
            self.selected = 0
        else:
            self.selected += 1

    def select_previous(self) -> None:
        """Move the selection up one line, wrapping to the bottom."""
        if not self.items:
            return
        if self.selected is None:
            self.selected = 0
        elif self.selected == 0:
            self.selected = len(self.items) - 1
        else:
            self.selected -= 1


class LogMonitor:
    """
    Monitoring state for a single logfile.

    Attributes:
        index: Unique index assigned at construction.
        logfile: Path of the monitored file, as given on the command line.
        content: Rolling window of raw lines.
        metrics: Metrics decoded from the file.
        error: Last tail error for the file, cleared when lines flow again.

    Example:
        >>> ids = MonitorIndexAllocator()
        >>> monitor = LogMonitor("/var/log/vault.log", 100, ids)
        >>> monitor.load_logfile()
    """

    def __init__(
        self,
        logfile: str,
        max_lines: int,
        allocator: MonitorIndexAllocator,
        debug_logfile: Optional[Path] = None,
    ):
        self.index = allocator.allocate()
        self.logfile = logfile
        self.content = ContentStore(max_lines)
        self.metrics = VaultMetrics(debug_logfile=debug_logfile)
        self.error: Optional[str] = None

    def load_logfile(self) -> int:
        """
        Read the existing logfile and process every line.

        A file that doesn't exist yet is not an error: the monitor starts
        empty and the tail stream picks the file up once it's created.
        Lines are split the same way the tail stream splits them; a final
        line without a newline is processed too.

        Returns:
            int: Number of bytes read, for the tail stream to resume from.

        Raises:
            OSError: If the file exists but can't be read.
        """
        path = Path(self.logfile)
        try:
            with path.open("rb") as f:
                data = f.read()
        except FileNotFoundError:
            return 0

        lines, last = split_lines(data.decode("utf-8", errors="replace"))
        if last:
            lines.append(last[:-1] if last.endswith("\r") else last)
        for line in lines:
            self.process_line(line)
        return len(data)

    def process_line(self, line: str) -> None:
        """Decode a line into metrics and show it in the content window."""
        self.metrics.gather_metrics(line)
        self.append_to_content(line)

    def append_to_content(self, text: str) -> None:
        """Show a line in the content window without touching metrics."""
        self.error = None
        self.content.append(text)

    def mark_error(self, message: str) -> None:
        self.error = message

    def view(self) -> MonitorView:
        """Return a read-only copy of this monitor for rendering."""
        return MonitorView(
            index=self.index,
            logfile=self.logfile,
            content=tuple(self.content.items),
            selected=self.content.selected,
            metrics=self.metrics.summary(),
            error=self.error,
        )
