"""
Decoding of SAFE vault logfile lines.

This module turns raw text lines into LogEntry objects. It knows two line
shapes:

    INFO 2020-07-08T19:58:26.841778689+01:00 [src/bin/safe_vault.rs:114] started
    Running safe-vault v0.24.0

The first is the structured format every vault log line uses. The second
is the start banner a vault prints when it launches; it carries no
timestamp of its own, so the caller supplies the most recent timestamp
seen in the same file.

Design Decisions:
    - Pure functions: decoding the same line twice gives equal results
    - A timestamp that fails to parse does not reject the line; the
      entry is returned with timestamp=None
    - Lines matching neither shape decode to None
"""

import re
from datetime import datetime
from typing import NamedTuple, Optional

from .model import LogEntry

# Category used for synthetic start banner entries
START_CATEGORY = "START"

# Format: <CCCC> <35-char RFC 3339 timestamp> [<source>] <message>
LOG_LINE_PATTERN = re.compile(
    r"^(?P<category>[A-Z]{4}) "
    r"(?P<time_string>[^ ]{35}) "
    r"(?P<source>\[[^\]]*\])"
    r"(?: (?P<message>.*))?$"
)

# Format: Running <product> <version>
START_PATTERN = re.compile(r"^Running (?P<product>\S+) (?P<version>.+)$")

# RFC 3339 with arbitrary fractional seconds, split so the fraction can
# be cut down to the microseconds datetime supports.
_TIMESTAMP_PATTERN = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<offset>Z|[+-]\d{2}:\d{2})$"
)


class StartBanner(NamedTuple):
    product: str
    version: str


def parse_timestamp(text: str) -> Optional[datetime]:
    """
    Parse an RFC 3339 timestamp with a UTC offset.

    Vault logs carry nanosecond precision; anything beyond microseconds
    is truncated.

    Args:
        text: Timestamp such as "2020-07-08T19:58:26.841778689+01:00".

    Returns:
        An offset-aware datetime, or None if the text isn't a valid
        timestamp.
    """
    match = _TIMESTAMP_PATTERN.match(text)
    if not match:
        return None

    fraction = (match.group("fraction") or "")[:6].ljust(6, "0")
    offset = match.group("offset")
    if offset == "Z":
        offset = "+00:00"

    try:
        return datetime.strptime(
            f"{match.group('base')}.{fraction}{offset}",
            "%Y-%m-%dT%H:%M:%S.%f%z",
        )
    except ValueError:
        # Well-formed but out of range (month 13, offset +99:00, ...)
        return None


def parse_log_line(line: str) -> Optional[LogEntry]:
    """
    Decode a structured vault log line.

    Args:
        line: A raw line such as
              "WARN 2020-07-08T19:59:18.540118366+01:00 [src/x.rs:744] Failed".

    Returns:
        LogEntry with all four fields captured verbatim, or None if the
        line doesn't have the structured shape.
    """
    match = LOG_LINE_PATTERN.match(line)
    if not match:
        return None

    category = match.group("category")
    time_string = match.group("time_string")
    source = match.group("source")
    message = match.group("message") or ""

    timestamp = parse_timestamp(time_string)
    time_str = str(timestamp) if timestamp is not None else "None"

    return LogEntry(
        raw=line,
        category=category,
        timestamp=timestamp,
        source=source,
        message=message,
        annotation=f"c: {category}, t: {time_str}, s: {source}, m: {message}",
    )


def parse_start_banner(line: str) -> Optional[StartBanner]:
    """Return the product and version of a "Running <name> <version>" line."""
    match = START_PATTERN.match(line)
    if not match:
        return None
    return StartBanner(match.group("product"), match.group("version"))


def decode(line: str, most_recent: Optional[datetime] = None) -> Optional[LogEntry]:
    """
    Decode any recognized line.

    The structured pattern is tried first; the start banner only when it
    doesn't match.

    Args:
        line: Raw line from the logfile.
        most_recent: Most recent timestamp seen in the same file. Used
                     as the time of a start banner.

    Returns:
        A LogEntry, or None for lines that match neither shape.
    """
    if not line:
        return None

    entry = parse_log_line(line)
    if entry is not None:
        return entry

    if parse_start_banner(line) is None:
        return None

    return LogEntry(
        raw=line,
        category=START_CATEGORY,
        timestamp=most_recent,
        source="",
        message=line,
        annotation=f"START at {most_recent if most_recent is not None else 'None'}",
    )
