"""
Keyboard and timer events for the dashboard.

A background thread polls the terminal for key presses and keeps a tick
clock. Everything it produces goes through a single EventChannel into
the dispatcher's event loop, so the dispatcher never blocks on raw input.

Architecture:
    - Background thread: EventMultiplexer.run() polls keys and emits ticks
    - Main thread: the dispatcher awaits EventChannel.receive()
    - Communication: EventChannel, the only thing shared between the two

Shutdown:
    The channel is closeable. Closing it from either side wakes the
    dispatcher with a ShutdownEvent and makes the producer's next send
    raise ChannelClosed, which ends the thread. A producer that fails
    closes the channel with its error so the dispatcher can't be left
    waiting forever.
"""

import asyncio
import select
import threading
import time
from typing import Callable, Optional, Protocol

from ..utils.applog import AppLogger
from .model import ChannelClosed, Event, InputEvent, ShutdownEvent, TickEvent


class KeySource(Protocol):
    def poll(self, timeout: float) -> Optional[int]:
        """Wait up to `timeout` seconds for a key; return it or None."""


class CursesKeySource:
    """
    Read keys from a curses window without holding up the renderer.

    The window must be in nodelay mode. The thread waits on stdin with
    select() and only takes the screen lock for the non-blocking getch(),
    since curses itself isn't thread-safe.

    Attributes:
        window: The curses window to read from.
        lock: Lock shared with the renderer.
        fd: File descriptor to wait on (stdin).
    """

    def __init__(self, window, lock: threading.Lock, fd: int = 0):
        self.window = window
        self.lock = lock
        self.fd = fd

    def poll(self, timeout: float) -> Optional[int]:
        readable, _, _ = select.select([self.fd], [], [], max(0.0, timeout))
        if not readable:
            return None
        with self.lock:
            key = self.window.getch()
        # -1: nothing complete yet (e.g. half of an escape sequence)
        return None if key == -1 else key


class EventChannel:
    """
    One-way, closeable hand-off from the producer thread to the event loop.

    Must be created from inside the running event loop it delivers to.

    Example:
        >>> channel = EventChannel()
        >>> channel.send(TickEvent())          # any thread
        >>> event = await channel.receive()    # event loop
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop or asyncio.get_running_loop()
        self._queue: "asyncio.Queue[Event]" = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event: Event) -> None:
        """
        Deliver an event to the receiving loop.

        Raises:
            ChannelClosed: The channel was closed or its loop is gone.
        """
        if self._closed:
            raise ChannelClosed("event channel is closed")
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, event)
        except RuntimeError as e:
            # call_soon_threadsafe on a closed loop
            self._closed = True
            raise ChannelClosed(str(e)) from e

    def close(self, error: Optional[BaseException] = None) -> None:
        """Close the channel, waking the receiver with a ShutdownEvent."""
        if self._closed:
            return
        self._closed = True
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, ShutdownEvent(error))
        except RuntimeError:
            # Loop already closed: no receiver left to wake
            return

    async def receive(self) -> Event:
        return await self._queue.get()


class EventMultiplexer:
    """
    Merge key presses and timer ticks into one event stream.

    Each iteration polls for a key for at most the time remaining until
    the next tick. A key is sent as soon as it arrives; once the tick
    deadline passes a single TickEvent is sent and the deadline moves
    forward by exactly one interval.

    Attributes:
        key_source: Where key presses come from.
        tick_rate_ms: Tick interval in milliseconds.
        channel: Destination for events (anything with send/close).
        error: The exception that stopped the thread, if any.

    Example:
        >>> mux = EventMultiplexer(CursesKeySource(stdscr, lock), 200, channel)
        >>> mux.start()
        ...
        >>> mux.stop()
    """

    def __init__(
        self,
        key_source: KeySource,
        tick_rate_ms: int,
        channel,
        logger: Optional[AppLogger] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if tick_rate_ms <= 0:
            raise ValueError(f"tick rate must be positive, got {tick_rate_ms}")
        self.key_source = key_source
        self.tick_rate_ms = tick_rate_ms
        self.channel = channel
        self.logger = logger or AppLogger()
        self.clock = clock
        self.error: Optional[BaseException] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Run the multiplexer in a daemon thread."""
        self._thread = threading.Thread(
            target=self.run, name="vaultdash-events", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Ask the thread to stop and wait for it to finish."""
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def run(self) -> None:
        """Poll and tick until stopped, the channel closes, or a poll fails."""
        interval = self.tick_rate_ms / 1000.0
        next_tick = self.clock() + interval
        self.logger.info("events", f"Started, tick rate {self.tick_rate_ms}ms")

        try:
            while not self._stop.is_set():
                remaining = next_tick - self.clock()
                if remaining > 0:
                    key = self.key_source.poll(remaining)
                    if key is not None:
                        self.channel.send(InputEvent(key))
                        continue

                if self.clock() >= next_tick:
                    self.channel.send(TickEvent())
                    next_tick += interval
        except ChannelClosed as e:
            self.logger.info("events", f"Channel closed, stopping: {e}")
            return
        except Exception as e:
            self.error = e
            self.logger.error("events", f"Stopped by error: {e!r}")
            self.channel.close(e)
            return

        self.logger.info("events", "Stopped")
