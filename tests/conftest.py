"""Pytest fixtures for vaultdash tests.

Fakes for the pieces that normally talk to the terminal or the clock,
plus sample vault log lines.
"""

from __future__ import annotations

import asyncio
import curses
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import pytest

from vaultdash.tui.model import ChannelClosed


INFO_LINE = "INFO 2020-07-08T19:58:26.841778689+01:00 [src/bin/safe_vault.rs:114] started"
WARN_LINE = (
    "WARN 2020-07-08T19:59:18.540118366+01:00 [src/data_handler/idata_handler.rs:744] "
    "552f45..: Failed to get holders metadata from DB"
)
START_LINE = "Running safe-vault v0.24.0"
PROMOTED_ELDER_LINE = (
    "INFO 2020-07-08T20:01:00.000000000+01:00 [src/vault.rs:200] Vault promoted to Elder"
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class ScriptedKeySource:
    """
    Key source driven by a FakeClock.

    `keys` is a list of (arrival_time, key). poll() returns a key that
    arrives within the timeout (advancing the clock to its arrival),
    otherwise advances the clock by the timeout plus `lag` and returns None.
    """

    def __init__(self, clock: FakeClock, keys: Optional[List[Tuple[float, int]]] = None,
                 lag: float = 0.0):
        self.clock = clock
        self.keys = list(keys or [])
        self.lag = lag
        self.polls: List[float] = []

    def poll(self, timeout: float) -> Optional[int]:
        self.polls.append(timeout)
        deadline = self.clock.now + timeout
        if self.keys and self.keys[0][0] <= deadline:
            arrival, key = self.keys.pop(0)
            self.clock.now = max(self.clock.now, arrival)
            return key
        self.clock.now = deadline + self.lag
        return None


class RecordingChannel:
    """Channel stand-in that records (time, event) and closes after `limit` sends."""

    def __init__(self, clock: Callable[[], float], limit: int):
        self.clock = clock
        self.limit = limit
        self.sent: list = []
        self.closed_with: list = []

    def send(self, event) -> None:
        if len(self.sent) >= self.limit:
            raise ChannelClosed("receiver gone")
        self.sent.append((self.clock(), event))

    def close(self, error=None) -> None:
        self.closed_with.append(error)


class QueueTail:
    """Tail stream stand-in fed from the test through an asyncio.Queue."""

    def __init__(self):
        self.queue: asyncio.Queue = asyncio.Queue()

    async def next_line(self):
        return await self.queue.get()


class FakeScreen:
    """Stand-in for a curses window: records writes, replays keys."""

    def __init__(self, height: int = 24, width: int = 100, keys: Tuple[int, ...] = ()):
        self.height = height
        self.width = width
        self.keys = list(keys)
        self.writes: List[Tuple[int, int, str, int]] = []
        self.refreshes = 0

    def getmaxyx(self) -> Tuple[int, int]:
        return self.height, self.width

    def erase(self) -> None:
        self.writes.clear()

    def addnstr(self, y: int, x: int, text: str, n: int, attr: int = 0) -> None:
        if not (0 <= y < self.height and 0 <= x < self.width):
            raise curses.error("addnstr() returned ERR")
        self.writes.append((y, x, text[:n], attr))

    def refresh(self) -> None:
        self.refreshes += 1

    def getch(self) -> int:
        return self.keys.pop(0) if self.keys else -1

    def at(self, y: int, x: int) -> Optional[Tuple[str, int]]:
        """Return (text, attr) written at a position, if any."""
        for wy, wx, text, attr in self.writes:
            if (wy, wx) == (y, x):
                return text, attr
        return None


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def write_log(tmp_path: Path) -> Callable[..., Path]:
    """Write lines to a logfile under tmp_path and return its path."""

    def _write(name: str, *lines: str) -> Path:
        path = tmp_path / name
        path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
        return path

    return _write
