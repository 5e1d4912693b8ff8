"""Tests for vault metrics and the age bracket state machine."""

import pytest

from vaultdash.tui.metrics import (
    AdultsReported,
    AgeBracket,
    BracketChanged,
    EldersReported,
    VaultMetrics,
    recognize_state,
    transition,
)
from vaultdash.tui.parser import parse_timestamp

from tests.conftest import INFO_LINE, PROMOTED_ELDER_LINE, START_LINE, WARN_LINE


def vault_line(message: str, ts: str = "2020-07-08T20:00:00.000000000+01:00") -> str:
    return f"INFO {ts} [src/vault.rs:321] {message}"


class TestTransition:
    """The state machine on its own, without log lines."""

    @pytest.mark.parametrize("name,expected", [
        ("Child", AgeBracket.CHILD),
        ("Adult", AgeBracket.ADULT),
        ("Elder", AgeBracket.ELDER),
        ("Infant", AgeBracket.UNKNOWN),
    ])
    def test_bracket_changed(self, name, expected) -> None:
        assert transition(AgeBracket.CHILD, BracketChanged(name)) is expected

    @pytest.mark.parametrize("report", [None, EldersReported(3), AdultsReported(7)])
    def test_other_reports_keep_state(self, report) -> None:
        assert transition(AgeBracket.ADULT, report) is AgeBracket.ADULT


class TestRecognizeState:
    """Text recognition of state lines."""

    def test_elders(self) -> None:
        assert recognize_state(vault_line("No. of Elders: 7")) == EldersReported(7)

    def test_adults(self) -> None:
        assert recognize_state(vault_line("No. of Adults: 12")) == AdultsReported(12)

    def test_initializing(self) -> None:
        report = recognize_state(vault_line("Initializing new Vault as Adult"))
        assert report == BracketChanged("Adult")

    def test_promoted(self) -> None:
        assert recognize_state(PROMOTED_ELDER_LINE) == BracketChanged("Elder")

    def test_requires_vault_rs(self) -> None:
        line = "INFO 2020-07-08T20:00:00.000000000+01:00 [src/node.rs:1] Vault promoted to Elder"
        assert recognize_state(line) is None

    def test_first_alternative_wins(self) -> None:
        line = vault_line("No. of Elders: 2 and No. of Adults: 5")
        assert recognize_state(line) == EldersReported(2)

    def test_unrelated_line(self) -> None:
        assert recognize_state(INFO_LINE) is None


class TestVaultMetrics:
    """Test metrics gathered from lines."""

    def test_initial_state(self) -> None:
        metrics = VaultMetrics()
        assert metrics.agebracket is AgeBracket.CHILD
        assert metrics.timeline == []
        assert metrics.most_recent is None
        assert metrics.parser_output == "-"

    def test_promotion_persists_across_unrelated_lines(self) -> None:
        metrics = VaultMetrics()
        metrics.gather_metrics(PROMOTED_ELDER_LINE)
        assert metrics.agebracket is AgeBracket.ELDER

        metrics.gather_metrics(INFO_LINE)
        assert metrics.agebracket is AgeBracket.ELDER
        assert len(metrics.timeline) == 2

    def test_counts_recorded_without_bracket_change(self) -> None:
        metrics = VaultMetrics()
        metrics.gather_metrics(vault_line("No. of Elders: 7"))
        metrics.gather_metrics(vault_line("No. of Adults: 42"))

        assert metrics.elders == 7
        assert metrics.adults == 42
        assert metrics.agebracket is AgeBracket.CHILD
        assert metrics.parser_output == "ADULTS: 42"

    def test_unknown_bracket(self) -> None:
        metrics = VaultMetrics()
        metrics.gather_metrics(vault_line("Vault promoted to Sage"))
        assert metrics.agebracket is AgeBracket.UNKNOWN
        assert metrics.parser_output == "Vault agebracket: Sage"

    def test_start_banner_records_version_and_start(self) -> None:
        metrics = VaultMetrics()
        metrics.gather_metrics(INFO_LINE)
        metrics.gather_metrics(START_LINE)

        assert metrics.running_version == "v0.24.0"
        assert metrics.running_message == START_LINE
        assert metrics.vault_started == parse_timestamp(
            "2020-07-08T19:58:26.841778689+01:00"
        )
        assert metrics.timeline[-1].category == "START"
        assert metrics.category_count == {"INFO": 1, "START": 1}

    def test_entries_without_timestamp_inherit_most_recent(self) -> None:
        metrics = VaultMetrics()
        metrics.gather_metrics(START_LINE)
        assert metrics.timeline[0].timestamp is None

        metrics.gather_metrics(INFO_LINE)
        metrics.gather_metrics("INFO 2020-13-08T19:58:26.841778689+01:00 [src/x.rs:1] bad time")

        expected = parse_timestamp("2020-07-08T19:58:26.841778689+01:00")
        assert metrics.timeline[2].timestamp == expected
        assert metrics.most_recent == expected

    def test_most_recent_follows_timestamped_lines(self) -> None:
        metrics = VaultMetrics()
        metrics.gather_metrics(INFO_LINE)
        metrics.gather_metrics(WARN_LINE)
        assert metrics.most_recent == parse_timestamp("2020-07-08T19:59:18.540118366+01:00")

    def test_unrecognized_lines_ignored(self) -> None:
        metrics = VaultMetrics()
        metrics.gather_metrics("just some text")
        assert metrics.timeline == []
        assert not metrics.category_count

    def test_reset_metrics(self) -> None:
        metrics = VaultMetrics()
        metrics.gather_metrics(PROMOTED_ELDER_LINE)
        metrics.gather_metrics(vault_line("No. of Elders: 7"))
        metrics.reset_metrics()

        assert metrics.agebracket is AgeBracket.CHILD
        assert metrics.elders == 0
        assert metrics.adults == 0

    def test_debug_logfile_receives_annotations(self, tmp_path) -> None:
        debug = tmp_path / "parser.log"
        metrics = VaultMetrics(debug_logfile=debug)

        metrics.gather_metrics(INFO_LINE)
        metrics.gather_metrics("not a vault line")
        metrics.gather_metrics(vault_line("No. of Elders: 3"))

        lines = debug.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 3
        assert lines[0].startswith("c: INFO")
        assert lines[1] == ""
        assert lines[2] == "ELDERS: 3"

    def test_summary_is_a_copy(self) -> None:
        metrics = VaultMetrics()
        metrics.gather_metrics(INFO_LINE)
        summary = metrics.summary()

        metrics.gather_metrics(WARN_LINE)
        assert summary.timeline_len == 1
        assert summary.category_count == {"INFO": 1}
        assert summary.agebracket == "Child"
