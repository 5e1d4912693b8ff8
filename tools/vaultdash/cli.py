#!/usr/bin/env python3
"""
vaultdash - Terminal dashboard for SAFE vault logfiles.

This module implements the command-line interface: it reads configuration
from the environment and the command line, loads the logfiles, and hands
the terminal over to the curses dashboard.

Configuration precedence (highest first):
    1. Command-line options
    2. Environment variables (VAULTDASH_LINES_MAX, VAULTDASH_TICK_RATE,
       VAULTDASH_LOG_ROOT)
    3. A .env file in the current directory
    4. Built-in defaults

Usage:
    python -m vaultdash [options] <logfile> [<logfile> ...]

Examples:
    python -m vaultdash ~/.safe/vault/local-vault.log
    python -m vaultdash --ignore-existing vault1.log vault2.log vault3.log
    python -m vaultdash --debug-parser vault.log
"""

import argparse
import curses
import os
import sys
from pathlib import Path
from typing import List, Optional

from .tui.app import DEFAULT_LINES_MAX, DEFAULT_TICK_RATE, App, Options
from .tui.model import MultiplexerError, StartupError
from .utils.applog import AppLogger
from .utils.paths import app_log_path

PROG = "vaultdash"

# ============================================================
# Environment Configuration
# ============================================================

def load_dotenv(env_path: Optional[Path] = None) -> None:
    """
    Load a .env file into os.environ if present.

    Existing environment variables win over values from the file.

    Args:
        env_path: File to load. Defaults to .env in the current directory.

    Note:
        We implement our own .env loading rather than using python-dotenv
        to avoid adding an external dependency for a simple feature.
    """
    env_path = env_path or Path.cwd() / ".env"

    # Silently skip if no .env file exists - it's optional
    if not env_path.exists():
        return

    with env_path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            # Skip empty lines, comments and malformed lines
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            os.environ.setdefault(key.strip(), value.strip())


def env_int(name: str, default: int) -> int:
    """
    Read an integer setting from the environment.

    Raises:
        ValueError: The variable is set but isn't an integer.
    """
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


# ============================================================
# Argument parsing
# ============================================================

def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser.

    Option defaults come from the environment, so this must be called
    after load_dotenv().
    """
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Monitor SAFE vault logfiles in the terminal.",
    )
    parser.add_argument(
        "files",
        nargs="*",
        metavar="LOGFILE",
        help="Logfile(s) to monitor. A file may not exist yet, "
             "but its parent directory must.",
    )
    parser.add_argument(
        "-l", "--lines-max",
        type=int,
        default=env_int("VAULTDASH_LINES_MAX", DEFAULT_LINES_MAX),
        help=f"Lines kept per logfile (default: {DEFAULT_LINES_MAX})",
    )
    parser.add_argument(
        "-t", "--tick-rate",
        type=int,
        default=env_int("VAULTDASH_TICK_RATE", DEFAULT_TICK_RATE),
        help=f"Redraw/input poll interval in ms (default: {DEFAULT_TICK_RATE})",
    )
    parser.add_argument(
        "--ignore-existing",
        action="store_true",
        help="Ignore existing logfile content; show only new lines",
    )
    parser.add_argument(
        "--debug-parser",
        action="store_true",
        help="Show the parser's reading of each line beside the first logfile",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Where vaultdash writes its own log "
             "(default: $VAULTDASH_LOG_ROOT/vaultdash.log)",
    )
    return parser


def parse_options(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse and validate command-line arguments.

    Exits with status 2 (argparse's usage error) for invalid values.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.lines_max < 0:
        parser.error("--lines-max must be zero or more")
    if args.tick_rate <= 0:
        parser.error("--tick-rate must be positive")

    return args


def options_from_args(args: argparse.Namespace) -> Options:
    return Options(
        files=tuple(args.files),
        lines_max=args.lines_max,
        tick_rate=args.tick_rate,
        ignore_existing=args.ignore_existing,
        debug_parser=args.debug_parser,
    )


# ============================================================
# Entry Point
# ============================================================

def main(argv: Optional[List[str]] = None) -> None:
    """
    Main entry point for the vaultdash CLI.

    Exit Codes:
        0: The user quit the dashboard
        1: Startup error (nothing to monitor, unreadable file, ...)
        2: Invalid arguments
    """
    load_dotenv()
    try:
        args = parse_options(argv)
    except ValueError as e:
        print(f"{PROG}: {e}", file=sys.stderr)
        sys.exit(2)

    if not args.files:
        print(f"{PROG}: no logfile(s) specified.")
        print(f"Try '{PROG} --help' for more information.")
        sys.exit(1)

    logger = AppLogger(args.log_file or app_log_path())
    logger.info("cli", f"Started with {len(args.files)} logfile(s)")

    app = App(options_from_args(args), logger=logger)
    try:
        try:
            app.load()
        except StartupError as e:
            logger.error("cli", f"Startup failed: {e}")
            print(f"{PROG}: {e}", file=sys.stderr)
            sys.exit(1)

        try:
            curses.wrapper(app.run_curses)
        except KeyboardInterrupt:
            # Ctrl+C exits like q
            pass
        except MultiplexerError as e:
            logger.error("cli", str(e))
            print(f"{PROG}: {e}", file=sys.stderr)
            sys.exit(1)
    finally:
        app.cleanup()

    logger.info("cli", "Exited")
    sys.exit(0)


if __name__ == "__main__":
    main()
