"""
Per-file vault metrics.

VaultMetrics consumes decoded LogEntry objects from one logfile and keeps
a running summary of the vault that wrote it:

    - when it started and which version it is running
    - how many entries of each category were seen
    - the full timeline of decoded entries
    - its age bracket (Child / Adult / Elder) and the network's
      adult and elder counts

Architecture:
    The age bracket is a small state machine. Text recognition
    (recognize_state) turns a log line into a StateReport, and
    transition() applies a StateReport to an AgeBracket. The two halves
    can be tested separately; VaultMetrics just wires them together.

Note:
    The timeline is never trimmed. Long-running sessions grow it
    without bound.
"""

import re
from collections import Counter
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from .model import LogEntry, MetricsSummary
from .parser import START_CATEGORY, decode, parse_start_banner


class AgeBracket(Enum):
    UNKNOWN = "Unknown"
    CHILD = "Child"
    ADULT = "Adult"
    ELDER = "Elder"


@dataclass(frozen=True)
class EldersReported:
    count: int


@dataclass(frozen=True)
class AdultsReported:
    count: int


@dataclass(frozen=True)
class BracketChanged:
    """An "Initializing new Vault as X" or "Vault promoted to X" line."""
    name: str


StateReport = Union[EldersReported, AdultsReported, BracketChanged]

# Alternatives are tried left to right; the first one that matches wins.
STATE_PATTERN = re.compile(
    r"^.*vault\.rs.*No\. of Elders: (?P<elders>\d+)"
    r"|^.*vault\.rs.*No\. of Adults: (?P<adults>\d+)"
    r"|^.*vault\.rs.*Initializing new Vault as (?P<initas>[A-Za-z]+)"
    r"|^.*vault\.rs.*Vault promoted to (?P<promoteto>[A-Za-z]+)"
)


def recognize_state(text: str) -> Optional[StateReport]:
    """
    Recognize a vault state line.

    Args:
        text: The raw log line.

    Returns:
        The report the line carries, or None for any other line.
    """
    match = STATE_PATTERN.match(text)
    if not match:
        return None
    if match.group("elders") is not None:
        return EldersReported(int(match.group("elders")))
    if match.group("adults") is not None:
        return AdultsReported(int(match.group("adults")))
    return BracketChanged(match.group("initas") or match.group("promoteto"))


def transition(state: AgeBracket, report: Optional[StateReport]) -> AgeBracket:
    """
    Apply a state report to an age bracket.

    Only BracketChanged moves the bracket; unknown bracket names move it
    to UNKNOWN. Count reports and None leave it unchanged.
    """
    if not isinstance(report, BracketChanged):
        return state
    for bracket in (AgeBracket.CHILD, AgeBracket.ADULT, AgeBracket.ELDER):
        if bracket.value == report.name:
            return bracket
    return AgeBracket.UNKNOWN


class VaultMetrics:
    """
    Metrics gathered from a single SAFE vault logfile.

    Attributes:
        vault_started: Timestamp of the most recent start banner.
        running_message: The full start banner line.
        running_version: Version string from the start banner.
        category_count: Number of timeline entries per category.
        timeline: Every decoded entry, in file order.
        most_recent: Latest timestamp seen; inherited by entries that
                     have none of their own.
        agebracket: Current AgeBracket of the vault.
        adults: Last reported number of adults.
        elders: Last reported number of elders.
        debug_logfile: When set, the annotation of every processed
                       line is appended to this file.
        parser_output: Annotation of the most recently processed line.

    Example:
        >>> metrics = VaultMetrics()
        >>> metrics.gather_metrics("Running safe-vault v0.24.0")
        >>> metrics.running_version
        'v0.24.0'
    """

    def __init__(self, debug_logfile: Optional[Path] = None):
        # Start
        self.vault_started: Optional[datetime] = None
        self.running_message: Optional[str] = None
        self.running_version: Optional[str] = None

        # Timeline
        self.timeline: List[LogEntry] = []
        self.most_recent: Optional[datetime] = None

        # Counts
        self.category_count: Counter = Counter()

        # State (vault)
        self.agebracket = AgeBracket.CHILD

        # State (network)
        self.adults = 0
        self.elders = 0

        # Debug
        self.debug_logfile = debug_logfile
        self.parser_output = "-"

    def reset_metrics(self) -> None:
        """Return the vault and network state to their initial values."""
        self.agebracket = AgeBracket.CHILD
        self.adults = 0
        self.elders = 0

    def gather_metrics(self, line: str) -> None:
        """
        Process one line from the logfile.

        Lines that decode become timeline entries and may update the
        start metadata and vault state. Lines that don't decode are
        ignored here.

        Args:
            line: A raw line from the logfile (without trailing newline).

        Side Effects:
            - May append to the timeline and update counts and state
            - Appends the line's annotation to debug_logfile if set

        Raises:
            OSError: If the debug logfile can't be written.
        """
        parser_result = ""
        entry = decode(line, self.most_recent)
        if entry is not None:
            if entry.timestamp is None:
                entry = replace(entry, timestamp=self.most_recent)
            else:
                self.most_recent = entry.timestamp

            if entry.category == START_CATEGORY:
                self._record_start(entry)

            self.parser_output = entry.annotation
            self.parse_states(entry)  # May overwrite self.parser_output
            parser_result = self.parser_output
            self.timeline.append(entry)
            self.category_count[entry.category] += 1

        # --debug-parser: shown in the pane next to the logfile
        if self.debug_logfile is not None:
            with self.debug_logfile.open("a", encoding="utf-8") as f:
                f.write(f"{parser_result}\n")

    def _record_start(self, entry: LogEntry) -> None:
        banner = parse_start_banner(entry.raw)
        self.running_message = entry.raw
        self.running_version = banner.version if banner else None
        self.vault_started = self.most_recent

    def parse_states(self, entry: LogEntry) -> bool:
        """
        Capture vault and network state from an entry.

        Returns:
            True if the entry was a state line and metrics were updated.
        """
        report = recognize_state(entry.raw)
        if report is None:
            return False

        if isinstance(report, EldersReported):
            self.elders = report.count
            self.parser_output = f"ELDERS: {report.count}"
        elif isinstance(report, AdultsReported):
            self.adults = report.count
            self.parser_output = f"ADULTS: {report.count}"
        else:
            self.parser_output = f"Vault agebracket: {report.name}"
        self.agebracket = transition(self.agebracket, report)
        return True

    def summary(self) -> MetricsSummary:
        """Return a read-only copy of the metrics for rendering."""
        return MetricsSummary(
            vault_started=self.vault_started,
            running_version=self.running_version,
            most_recent=self.most_recent,
            agebracket=self.agebracket.value,
            adults=self.adults,
            elders=self.elders,
            timeline_len=len(self.timeline),
            category_count=dict(self.category_count),
            parser_output=self.parser_output,
        )
