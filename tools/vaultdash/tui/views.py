"""
Curses rendering of the dashboard.

This module draws a DashSnapshot to the terminal. It never touches
monitor state: the dispatcher hands it a read-only snapshot once per loop
iteration and it paints the frame.

Layouts:
    - Horizontal: one band per monitor, metrics on the left and the
      logfile's recent lines on the right
    - Vertical: one column per monitor showing recent lines; used by
      --debug-parser to put the parser output beside the logfile
    - Debug: the dispatcher's debug messages
"""

import curses
import threading
from typing import Optional, Sequence

from .model import DashSnapshot, DashViewMain, MonitorView

# Width of the metrics column in the horizontal layout
METRICS_WIDTH = 34

HELP_TEXT = "q quit | h/v/D layout | <-/-> focus | up/down select"


def _fmt_time(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value is not None else "-"


def metrics_lines(monitor: MonitorView) -> list:
    """Format a monitor's metrics summary as display lines."""
    m = monitor.metrics
    lines = [
        f"Version:  {m.running_version or '-'}",
        f"Started:  {_fmt_time(m.vault_started)}",
        f"Latest:   {_fmt_time(m.most_recent)}",
        f"Vault:    {m.agebracket}",
        f"Adults:   {m.adults}",
        f"Elders:   {m.elders}",
        f"Timeline: {m.timeline_len}",
    ]
    for category, count in sorted(m.category_count.items()):
        lines.append(f"  {category:<6} {count}")
    return lines


def visible_slice(content: Sequence[str], selected: Optional[int], height: int) -> range:
    """
    Return the indices of `content` that fit in `height` rows.

    Shows the newest lines, unless a selected line would fall off the
    top, in which case the window scrolls up to include it.
    """
    if height <= 0:
        return range(0)
    start = max(0, len(content) - height)
    if selected is not None and selected < start:
        start = selected
    return range(start, min(len(content), start + height))


class CursesRenderer:
    """
    Paint snapshots onto a curses screen.

    Attributes:
        stdscr: The curses standard screen.
        lock: Lock shared with the key reader thread.
    """

    def __init__(self, stdscr, lock: Optional[threading.Lock] = None):
        self.stdscr = stdscr
        self.lock = lock or threading.Lock()

    def draw(self, snapshot: DashSnapshot) -> None:
        with self.lock:
            self.stdscr.erase()
            h, w = self.stdscr.getmaxyx()

            title = f"vaultdash - {len(snapshot.monitors)} logfile(s)"
            if snapshot.debug_ui:
                title += " [debug parser]"
            self._put(0, 0, title, w, curses.A_BOLD)
            self._put(h - 1, 0, HELP_TEXT, w)

            body_top, body_height = 1, h - 2
            if snapshot.main_view is DashViewMain.DEBUG:
                self._draw_debug(snapshot, body_top, body_height, w)
            elif snapshot.main_view is DashViewMain.VERTICAL:
                self._draw_vertical(snapshot, body_top, body_height, w)
            else:
                self._draw_horizontal(snapshot, body_top, body_height, w)

            self.stdscr.refresh()

    def _put(self, y: int, x: int, text: str, width: int, attr: int = 0) -> None:
        # Writing to the bottom-right cell raises even though it succeeds
        try:
            self.stdscr.addnstr(y, x, text, max(0, width), attr)
        except curses.error:
            pass

    def _title(self, snapshot: DashSnapshot, position: int, monitor: MonitorView) -> tuple:
        focused = position == snapshot.focus % len(snapshot.monitors)
        text = f"[{monitor.index}] {monitor.logfile}"
        if monitor.error:
            text += f"  ERROR: {monitor.error}"
        attr = curses.A_REVERSE if focused else curses.A_BOLD
        return text, attr

    def _draw_content(self, monitor: MonitorView, top: int, left: int, height: int, width: int) -> None:
        for row, i in enumerate(visible_slice(monitor.content, monitor.selected, height)):
            attr = curses.A_REVERSE if i == monitor.selected else 0
            self._put(top + row, left, monitor.content[i], width, attr)

    def _draw_horizontal(self, snapshot: DashSnapshot, top: int, height: int, w: int) -> None:
        count = len(snapshot.monitors)
        if count == 0 or height <= 0:
            return
        band = max(2, height // count)
        content_left = METRICS_WIDTH + 1
        for position, monitor in enumerate(snapshot.monitors):
            y = top + position * band
            if y >= top + height:
                break
            rows = min(band, top + height - y)
            text, attr = self._title(snapshot, position, monitor)
            self._put(y, 0, text, w, attr)
            for row, line in enumerate(metrics_lines(monitor)[: rows - 1]):
                self._put(y + 1 + row, 0, line, METRICS_WIDTH)
            self._draw_content(monitor, y + 1, content_left, rows - 1, w - content_left)

    def _draw_vertical(self, snapshot: DashSnapshot, top: int, height: int, w: int) -> None:
        count = len(snapshot.monitors)
        if count == 0 or height <= 0:
            return
        column = max(10, w // count)
        for position, monitor in enumerate(snapshot.monitors):
            x = position * column
            if x >= w:
                break
            width = min(column, w - x) - 1
            text, attr = self._title(snapshot, position, monitor)
            self._put(top, x, text, width, attr)
            self._draw_content(monitor, top + 1, x, height - 1, width)

    def _draw_debug(self, snapshot: DashSnapshot, top: int, height: int, w: int) -> None:
        self._put(top, 0, "Debug window", w, curses.A_BOLD)
        lines = snapshot.debug_window[-(height - 1):] if height > 1 else ()
        for row, line in enumerate(lines):
            self._put(top + 1 + row, 0, line, w)
