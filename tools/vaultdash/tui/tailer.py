"""
Real-time file tailing for log monitoring.

This module watches logfiles and streams new lines as they're written.
TailStream multiplexes any number of files into a single asynchronous
feed of (file, line) pairs for the dispatcher to await.

Design Decisions:
    - Uses polling rather than inotify for cross-platform simplicity
    - Only content past the registration offset is streamed: the end of
      the file, or wherever the startup load stopped reading
    - Handles file truncation/rotation gracefully
    - Buffers partial lines to handle incomplete writes; only a newline ends
      a line, so the stream splits lines exactly like the startup load
    - A read failure for one file is reported as a TailError item for
      that file instead of ending the stream
"""

import asyncio
from collections import deque
from pathlib import Path
from typing import Deque, Dict, List, Optional, Tuple

from .model import TailError, TailedLine, TailItem, TailRegistrationError


def split_lines(text: str) -> Tuple[List[str], str]:
    """
    Split text into complete lines and a trailing incomplete one.

    Only "\\n" ends a line; one "\\r" before it is dropped. A trailing "\\r"
    stays in the remainder, since its "\\n" may still be on its way.

    Returns:
        Tuple[List[str], str]: Complete lines, and the text after the last
                               newline ("" if the text ends with one).
    """
    pieces = text.split("\n")
    partial = pieces.pop()
    return [p[:-1] if p.endswith("\r") else p for p in pieces], partial


class FileTail:
    """
    Tail a single logfile.

    Tracks the file offset and polls for new content. Handles file
    truncation, partial lines, encoding errors and files that don't
    exist yet.

    Attributes:
        source: Identity of the file, as registered.
        path: Path of the file being tailed.
        offset: Current read position in the file.
        partial: Incomplete line buffer (line without trailing newline).

    Example:
        >>> tail = FileTail("logs/vault.log")
        >>> lines = tail.read_new_lines()  # Lines appended since last call
    """

    def __init__(self, source: str, offset: Optional[int] = None):
        self.source = source
        self.path = Path(source)
        self.partial = ""
        if offset is not None:
            # Resume where the startup load stopped reading
            self.offset = offset
            return
        # Start at the current end; the file may not exist yet
        try:
            self.offset = self.path.stat().st_size
        except FileNotFoundError:
            self.offset = 0

    def read_new_lines(self) -> List[str]:
        """
        Read new complete lines from the file since the last call.

        Returns:
            List[str]: New lines without line endings. Empty if there is
                       no new content or the file doesn't exist.

        Raises:
            FileNotFoundError: The file existed and has been removed.
                               Raised once; later calls return [] until
                               the file reappears.
            OSError: The file can't be read.
        """
        try:
            size = self.path.stat().st_size
        except FileNotFoundError:
            if self.offset == 0 and not self.partial:
                # Never seen, or already reported
                return []
            self.offset = 0
            self.partial = ""
            raise

        # Detect file truncation or replacement (logrotate, manual clear, etc.)
        if size < self.offset:
            self.offset = 0
            self.partial = ""

        if size == self.offset:
            return []

        with self.path.open("rb") as f:
            f.seek(self.offset)
            data = f.read(size - self.offset)
            self.offset += len(data)

        # Anything after the last newline is incomplete; keep it for the
        # next poll
        lines, self.partial = split_lines(
            self.partial + data.decode("utf-8", errors="replace")
        )
        return lines


class TailStream:
    """
    Asynchronous multiplexed tail of several logfiles.

    Files are polled in registration order; lines from one poll sweep are
    queued and handed out one at a time by next_line().

    Attributes:
        poll_interval: Seconds to sleep between sweeps when idle.
        tails: Dict mapping file identity to its FileTail.

    Example:
        >>> stream = TailStream()
        >>> stream.add_file("/var/log/vault.log")
        >>> item = await stream.next_line()
        >>> item.source, item.text
        ('/var/log/vault.log', 'INFO ...')
    """

    def __init__(self, poll_interval: float = 0.1):
        self.poll_interval = poll_interval
        self.tails: Dict[str, FileTail] = {}
        self._pending: Deque[TailItem] = deque()
        # Last error reported per file, so a lasting failure is reported once
        self._errors: Dict[str, str] = {}

    def add_file(self, source: str, offset: Optional[int] = None) -> None:
        """
        Register a file for tailing.

        It is fine for the file not to exist yet, but its parent
        directory must.

        Args:
            source: Path of the file.
            offset: Byte position to start streaming from. Defaults to
                    the file's current end.

        Raises:
            TailRegistrationError: The parent directory doesn't exist.
        """
        parent = Path(source).parent
        if not parent.is_dir():
            raise TailRegistrationError(
                f"parent directory does not exist: {parent}"
            )
        if source not in self.tails:
            self.tails[source] = FileTail(source, offset)

    def poll(self) -> int:
        """
        Sweep every registered file once and queue what was found.

        Returns:
            int: Number of items queued by this sweep.
        """
        queued = 0
        for tail in self.tails.values():
            try:
                lines = tail.read_new_lines()
            except FileNotFoundError:
                queued += self._report(tail.source, "file removed")
                continue
            except OSError as e:
                queued += self._report(tail.source, str(e))
                continue
            self._errors.pop(tail.source, None)
            for line in lines:
                self._pending.append(TailedLine(tail.source, line))
            queued += len(lines)
        return queued

    def _report(self, source: str, message: str) -> int:
        if self._errors.get(source) == message:
            return 0
        self._errors[source] = message
        self._pending.append(TailError(source, message))
        return 1

    async def next_line(self) -> TailItem:
        """Wait for and return the next line (or error) from any file."""
        while not self._pending:
            if self.poll() == 0:
                await asyncio.sleep(self.poll_interval)
        return self._pending.popleft()
