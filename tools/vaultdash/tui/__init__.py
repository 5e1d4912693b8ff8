"""
TUI (Text User Interface) components for vaultdash.

This subpackage provides the curses dashboard that monitors SAFE vault
logfiles in real time.

Modules:
    - parser: Decoding of vault log lines into LogEntry objects
    - metrics: Per-file vault metrics and the age bracket state machine
    - monitor: Rolling content window and per-file LogMonitor
    - tailer: Asynchronous multiplexed tail of the logfiles
    - events: Background key/tick producer and the event channel
    - dispatcher: The main loop merging events and tailed lines
    - views: Curses rendering of dashboard snapshots
    - app: Startup assembly
    - model: Shared data types and errors

Architecture:
    The TUI uses a producer-consumer pattern:
    1. EventMultiplexer polls the keyboard and a tick clock in a
       background thread and sends events through an EventChannel
    2. TailStream polls the logfiles from the event loop
    3. Dispatcher awaits whichever is ready first and updates state
    4. CursesRenderer draws a snapshot of the state every iteration
"""
