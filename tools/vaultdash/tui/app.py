"""
Startup and run-time assembly of the dashboard.

App turns validated Options into running components:

    1. One LogMonitor per logfile, loaded from the existing file
       (unless --ignore-existing) and registered with the TailStream
    2. Inside curses: the EventMultiplexer thread, the EventChannel,
       the CursesRenderer and the Dispatcher loop

Startup problems raise StartupError before the terminal is touched, so
the CLI can print them normally.
"""

import asyncio
import curses
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..utils.applog import AppLogger
from ..utils.paths import create_scratch_file
from .dispatcher import DashState, Dispatcher
from .events import CursesKeySource, EventChannel, EventMultiplexer
from .model import DashViewMain, StartupError, TailRegistrationError
from .monitor import LogMonitor, MonitorIndexAllocator
from .tailer import TailStream
from .views import CursesRenderer

DEFAULT_LINES_MAX = 100
DEFAULT_TICK_RATE = 200


@dataclass(frozen=True)
class Options:
    """
    Startup options for the dashboard.

    Attributes:
        files: Logfiles to monitor, in display order.
        lines_max: Lines kept per logfile for display.
        tick_rate: Redraw/input poll interval in milliseconds.
        ignore_existing: Skip loading existing content; tail only.
        debug_parser: Monitor only the first file and show the parser's
                      interpretation of each line beside it.
        poll_interval: Seconds between file polls while idle.
    """
    files: Tuple[str, ...]
    lines_max: int = DEFAULT_LINES_MAX
    tick_rate: int = DEFAULT_TICK_RATE
    ignore_existing: bool = False
    debug_parser: bool = False
    poll_interval: float = 0.1


class App:
    """
    The dashboard application.

    Attributes:
        options: The Options the app was started with.
        files: Logfiles actually monitored (differs from options.files
               in --debug-parser mode).
        monitors: Dict mapping logfile path to its LogMonitor.
        dash_state: Initial layout/navigation state.
        tail: TailStream the logfiles are registered with.
        scratch_file: Parser debug output file, if any.

    Example:
        >>> app = App(Options(files=("vault.log",)))
        >>> app.load()
        >>> curses.wrapper(app.run_curses)
        >>> app.cleanup()
    """

    def __init__(
        self,
        options: Options,
        logger: Optional[AppLogger] = None,
        allocator: Optional[MonitorIndexAllocator] = None,
    ):
        self.options = options
        self.logger = logger or AppLogger()
        self.allocator = allocator or MonitorIndexAllocator()
        self.files: List[str] = list(options.files)
        self.monitors: Dict[str, LogMonitor] = {}
        self.dash_state = DashState()
        self.tail = TailStream(poll_interval=options.poll_interval)
        self.scratch_file: Optional[Path] = None

    def load(self) -> None:
        """
        Create, load and register a monitor for every logfile.

        Raises:
            StartupError: No logfiles were given, an existing logfile
                          couldn't be read, or a logfile's parent
                          directory doesn't exist.
        """
        if not self.files:
            raise StartupError("no logfile(s) specified.")

        if self.options.debug_parser:
            self.dash_state.main_view = DashViewMain.VERTICAL
            self.files = self.files[:1]
            self.scratch_file = create_scratch_file()
            self.files.append(str(self.scratch_file))
            self.logger.info("app", f"Parser debug output: {self.scratch_file}")

        print(f"Loading {len(self.files)} files...")
        for position, f in enumerate(self.files):
            print(f"file: {f}")
            if f in self.monitors:
                self.logger.warn("app", f"Ignoring duplicate logfile {f}")
                continue

            debug_logfile = None
            if self.scratch_file is not None and position == 0:
                debug_logfile = self.scratch_file
                self.dash_state.debug_ui = True

            monitor = LogMonitor(f, self.options.lines_max, self.allocator, debug_logfile)
            offset = None
            if not self.options.ignore_existing:
                try:
                    offset = monitor.load_logfile()
                except OSError as e:
                    print(f"...failed: {e}")
                    raise StartupError(f"failed to load {f}: {e}") from e
            self.monitors[f] = monitor

            try:
                self.tail.add_file(f, offset=offset)
            except TailRegistrationError as e:
                print(f"ERROR: {e}")
                print(
                    "Note: it is ok for the file not to exist, "
                    "but the file's parent directory must exist."
                )
                raise

            self.logger.info(
                "app",
                f"Monitor {monitor.index} for {f}: "
                f"{len(monitor.content)} line(s), {len(monitor.metrics.timeline)} entries",
            )

    async def run(self, stdscr) -> None:
        """Run the dashboard on an initialized curses screen until quit."""
        lock = threading.Lock()
        channel = EventChannel()
        multiplexer = EventMultiplexer(
            CursesKeySource(stdscr, lock),
            self.options.tick_rate,
            channel,
            logger=self.logger,
        )
        renderer = CursesRenderer(stdscr, lock)
        dispatcher = Dispatcher(
            self.monitors,
            channel,
            self.tail,
            renderer.draw,
            dash_state=self.dash_state,
            logger=self.logger,
        )

        multiplexer.start()
        try:
            await dispatcher.run()
        finally:
            multiplexer.stop(timeout=1.0)

    def run_curses(self, stdscr) -> None:
        """
        curses.wrapper() target.

        curses.wrapper restores the terminal however this returns,
        including when the dashboard crashes.
        """
        curses.curs_set(0)
        stdscr.nodelay(True)
        stdscr.keypad(True)
        asyncio.run(self.run(stdscr))

    def cleanup(self) -> None:
        """Remove the parser debug scratch file, if one was created."""
        if self.scratch_file is not None:
            try:
                self.scratch_file.unlink()
            except FileNotFoundError:
                pass
            self.scratch_file = None
