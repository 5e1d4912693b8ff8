"""
Data models for the vaultdash TUI.

This module defines the data structures shared between the parser, the
metrics engine, the event sources, the dispatcher and the renderer.

Purpose:
    Every component talks to its neighbours through these types:
    - LogEntry: a decoded log line
    - InputEvent / TickEvent / ShutdownEvent: what the event channel carries
    - TailedLine / TailError: what the tail stream yields
    - MetricsSummary / MonitorView / DashSnapshot: the read-only view
      handed to the renderer once per loop iteration

Note:
    All of these are frozen dataclasses. The renderer receives copies and
    can never mutate monitor state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


@dataclass(frozen=True)
class LogEntry:
    """
    A single decoded line from a monitored logfile.

    Attributes:
        raw: The original line, unmodified.
        category: Short classification token ("INFO", "WARN", "START"...).
        timestamp: Time of the entry. Entries without their own timestamp
                   inherit the most recent one seen in the same file.
        source: Bracketed source locator, e.g. "[src/bin/safe_vault.rs:114]".
        message: Free text following the source locator.
        annotation: How the parser interpreted the line (debugging aid).
    """
    raw: str
    category: str
    timestamp: Optional[datetime]
    source: str
    message: str
    annotation: str


# ============================================================
# Event channel items
# ============================================================

@dataclass(frozen=True)
class InputEvent:
    """A key press read from the terminal (a curses key code)."""
    key: int


@dataclass(frozen=True)
class TickEvent:
    """A periodic timer event."""


@dataclass(frozen=True)
class ShutdownEvent:
    """
    Distinguished value closing the event channel.

    Attributes:
        error: The exception that stopped the producer, or None for an
               orderly shutdown.
    """
    error: Optional[BaseException] = None


Event = Union[InputEvent, TickEvent, ShutdownEvent]


# ============================================================
# Tail stream items
# ============================================================

@dataclass(frozen=True)
class TailedLine:
    """A new line appended to a monitored file."""
    source: str
    text: str


@dataclass(frozen=True)
class TailError:
    """A read failure for one monitored file."""
    source: str
    message: str


TailItem = Union[TailedLine, TailError]


# ============================================================
# Dashboard state and render snapshot
# ============================================================

class DashViewMain(Enum):
    """Top-level dashboard layouts."""
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    DEBUG = "debug"


@dataclass(frozen=True)
class MetricsSummary:
    """Read-only copy of a monitor's metrics for display."""
    vault_started: Optional[datetime]
    running_version: Optional[str]
    most_recent: Optional[datetime]
    agebracket: str
    adults: int
    elders: int
    timeline_len: int
    category_count: Dict[str, int] = field(default_factory=dict)
    parser_output: str = "-"


@dataclass(frozen=True)
class MonitorView:
    """Read-only copy of one Log Monitor."""
    index: int
    logfile: str
    content: Tuple[str, ...]
    selected: Optional[int]
    metrics: MetricsSummary
    error: Optional[str] = None


@dataclass(frozen=True)
class DashSnapshot:
    """Everything the renderer is allowed to see for one frame."""
    main_view: DashViewMain
    debug_ui: bool
    focus: int
    monitors: Tuple[MonitorView, ...]
    debug_window: Tuple[str, ...] = ()


# ============================================================
# Errors
# ============================================================

class StartupError(Exception):
    """Fatal error while loading files or registering them for tailing."""


class TailRegistrationError(StartupError):
    """A file could not be registered with the tail stream."""


class ChannelClosed(Exception):
    """The event channel was closed or its receiving loop is gone."""


class MultiplexerError(Exception):
    """The background event producer stopped because of an error."""

    def __init__(self, cause: Any):
        super().__init__(f"event multiplexer failed: {cause}")
        self.cause = cause
