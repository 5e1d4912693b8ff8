"""
The dashboard's main loop.

The Dispatcher is the single consumer of both event sources:

    - the EventChannel (key presses and ticks from the background thread)
    - the TailStream (new lines appended to monitored files)

Each iteration renders the current state, then waits for whichever
source is ready first and handles that one item. The wait on the other
source is kept and reused on the next iteration, so nothing is dropped.

Purpose:
    All mutation of monitor and dashboard state happens here, on one
    thread, so the monitors need no locking.

Note:
    Lines that arrive through the tail stream are shown in the content
    window only. They don't pass through the metrics engine; only the
    startup load does that.
"""

import asyncio
import curses
from collections import deque
from enum import Enum
from typing import Callable, Deque, Dict, List, Optional

from ..utils.applog import AppLogger
from .model import (
    DashSnapshot,
    DashViewMain,
    InputEvent,
    MultiplexerError,
    ShutdownEvent,
    TailError,
    TailItem,
    TickEvent,
)
from .monitor import LogMonitor

# Number of messages kept for the Debug layout
DEBUG_WINDOW_LINES = 100


class Command(Enum):
    QUIT = "quit"
    VIEW_HORIZONTAL = "horizontal"
    VIEW_VERTICAL = "vertical"
    VIEW_DEBUG = "debug"
    SELECT_NEXT = "select-next"
    SELECT_PREVIOUS = "select-previous"
    FOCUS_NEXT = "focus-next"
    FOCUS_PREVIOUS = "focus-previous"
    DEBUG_KEY = "debug-key"


KEYMAP: Dict[int, Command] = {
    ord("q"): Command.QUIT,
    ord("Q"): Command.QUIT,
    ord("h"): Command.VIEW_HORIZONTAL,
    ord("H"): Command.VIEW_HORIZONTAL,
    ord("v"): Command.VIEW_VERTICAL,
    ord("V"): Command.VIEW_VERTICAL,
    ord("D"): Command.VIEW_DEBUG,
    curses.KEY_DOWN: Command.SELECT_NEXT,
    curses.KEY_UP: Command.SELECT_PREVIOUS,
    curses.KEY_RIGHT: Command.FOCUS_NEXT,
    ord("\t"): Command.FOCUS_NEXT,
    curses.KEY_LEFT: Command.FOCUS_PREVIOUS,
    ord("~"): Command.DEBUG_KEY,
}


class DashState:
    """
    Layout and navigation state of the dashboard.

    Attributes:
        main_view: Current DashViewMain layout.
        debug_ui: True when running with --debug-parser.
        focus: Position (in index order) of the focused monitor.
        debug_window: Recent debug messages shown by the Debug layout.
    """

    def __init__(self):
        self.main_view = DashViewMain.HORIZONTAL
        self.debug_ui = False
        self.focus = 0
        self.debug_window: Deque[str] = deque(maxlen=DEBUG_WINDOW_LINES)

    def debug_message(self, text: str) -> None:
        self.debug_window.append(text)


class Dispatcher:
    """
    Cooperative main loop merging events and tailed lines.

    Attributes:
        monitors: Dict mapping file path to its LogMonitor.
        channel: EventChannel fed by the EventMultiplexer.
        tail: TailStream for the monitored files.
        render: Called with a DashSnapshot before every wait.
        dash_state: Layout and navigation state.
        events_handled: Number of channel events handled.
        lines_handled: Number of tail stream items handled.

    Example:
        >>> dispatcher = Dispatcher(monitors, channel, tail, render)
        >>> await dispatcher.run()   # returns when the user quits
    """

    def __init__(
        self,
        monitors: Dict[str, LogMonitor],
        channel,
        tail,
        render: Callable[[DashSnapshot], None],
        dash_state: Optional[DashState] = None,
        logger: Optional[AppLogger] = None,
    ):
        self.monitors = monitors
        self.channel = channel
        self.tail = tail
        self.render = render
        self.dash_state = dash_state or DashState()
        self.logger = logger or AppLogger()
        self.events_handled = 0
        self.lines_handled = 0

    def ordered_monitors(self) -> List[LogMonitor]:
        return sorted(self.monitors.values(), key=lambda m: m.index)

    def focused_monitor(self) -> Optional[LogMonitor]:
        ordered = self.ordered_monitors()
        if not ordered:
            return None
        return ordered[self.dash_state.focus % len(ordered)]

    def snapshot(self) -> DashSnapshot:
        """Build the read-only view of the current state for the renderer."""
        return DashSnapshot(
            main_view=self.dash_state.main_view,
            debug_ui=self.dash_state.debug_ui,
            focus=self.dash_state.focus,
            monitors=tuple(m.view() for m in self.ordered_monitors()),
            debug_window=tuple(self.dash_state.debug_window),
        )

    async def run(self) -> None:
        """
        Run until the user quits.

        Raises:
            MultiplexerError: The event producer stopped with an error.
        """
        event_task: Optional[asyncio.Future] = None
        line_task: Optional[asyncio.Future] = None
        self.logger.info("dispatcher", f"Started with {len(self.monitors)} monitor(s)")

        try:
            while True:
                self.render(self.snapshot())

                if event_task is None:
                    event_task = asyncio.ensure_future(self.channel.receive())
                if line_task is None:
                    line_task = asyncio.ensure_future(self.tail.next_line())

                done, _ = await asyncio.wait(
                    {event_task, line_task}, return_when=asyncio.FIRST_COMPLETED
                )

                # One item per iteration; a source that is also ready is
                # handled on the next pass.
                if event_task in done:
                    event = event_task.result()
                    event_task = None
                    if not self.handle_event(event):
                        break
                else:
                    item = line_task.result()
                    line_task = None
                    self.handle_line(item)
        finally:
            for task in (event_task, line_task):
                if task is not None:
                    task.cancel()
            self.channel.close()
            self.logger.info(
                "dispatcher",
                f"Stopped after {self.events_handled} event(s), "
                f"{self.lines_handled} line(s)",
            )

    def handle_event(self, event) -> bool:
        """
        Handle one channel event.

        Returns:
            bool: False when the loop should stop.

        Raises:
            MultiplexerError: For a ShutdownEvent carrying an error.
        """
        self.events_handled += 1

        if isinstance(event, ShutdownEvent):
            if event.error is not None:
                raise MultiplexerError(event.error)
            self.logger.info("dispatcher", "Event channel shut down")
            return False

        if isinstance(event, TickEvent):
            # Nothing periodic to do yet; the render above already ran
            return True

        if isinstance(event, InputEvent):
            return self.handle_key(event.key)

        self.logger.warn("dispatcher", f"Ignoring unknown event {event!r}")
        return True

    def handle_key(self, key: int) -> bool:
        """Apply the command bound to `key`. Returns False on quit."""
        command = KEYMAP.get(key)
        if command is None:
            return True

        state = self.dash_state
        if command is Command.QUIT:
            self.logger.info("dispatcher", "Quit requested")
            return False
        if command is Command.VIEW_HORIZONTAL:
            state.main_view = DashViewMain.HORIZONTAL
        elif command is Command.VIEW_VERTICAL:
            state.main_view = DashViewMain.VERTICAL
        elif command is Command.VIEW_DEBUG:
            state.main_view = DashViewMain.DEBUG
        elif command is Command.DEBUG_KEY:
            state.debug_message(f"Event::Input({key!r})")
        elif command in (Command.FOCUS_NEXT, Command.FOCUS_PREVIOUS):
            count = len(self.monitors)
            if count:
                step = 1 if command is Command.FOCUS_NEXT else -1
                state.focus = (state.focus + step) % count
        else:
            monitor = self.focused_monitor()
            if monitor is not None:
                if command is Command.SELECT_NEXT:
                    monitor.content.select_next()
                else:
                    monitor.content.select_previous()
        return True

    def handle_line(self, item: TailItem) -> None:
        """Route a tail stream item to the monitor of its file."""
        self.lines_handled += 1
        monitor = self.monitors.get(item.source)

        if isinstance(item, TailError):
            self.dash_state.debug_message(f"logfile error: {item.source}: {item.message}")
            self.logger.warn("dispatcher", f"Tail error for {item.source}: {item.message}")
            if monitor is not None:
                monitor.mark_error(item.message)
            return

        self.dash_state.debug_message(f"logfile: {item.text}")
        if monitor is None:
            # Not a file we manage
            return
        monitor.append_to_content(item.text)
