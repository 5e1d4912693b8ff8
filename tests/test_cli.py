"""Tests for command-line and environment configuration."""

import os

import pytest

from vaultdash import cli
from vaultdash.tui.app import DEFAULT_LINES_MAX, DEFAULT_TICK_RATE


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("VAULTDASH_LINES_MAX", "VAULTDASH_TICK_RATE", "VAULTDASH_LOG_ROOT"):
        monkeypatch.delenv(name, raising=False)


class TestParseOptions:
    """argparse options and their defaults."""

    def test_defaults(self) -> None:
        args = cli.parse_options(["vault.log"])
        options = cli.options_from_args(args)

        assert options.files == ("vault.log",)
        assert options.lines_max == DEFAULT_LINES_MAX
        assert options.tick_rate == DEFAULT_TICK_RATE
        assert options.ignore_existing is False
        assert options.debug_parser is False

    def test_all_options(self) -> None:
        args = cli.parse_options([
            "-l", "20", "--tick-rate", "50", "--ignore-existing",
            "--debug-parser", "a.log", "b.log",
        ])
        options = cli.options_from_args(args)

        assert options.files == ("a.log", "b.log")
        assert options.lines_max == 20
        assert options.tick_rate == 50
        assert options.ignore_existing is True
        assert options.debug_parser is True

    def test_environment_defaults(self, monkeypatch) -> None:
        monkeypatch.setenv("VAULTDASH_LINES_MAX", "7")
        monkeypatch.setenv("VAULTDASH_TICK_RATE", "500")

        args = cli.parse_options(["vault.log"])

        assert args.lines_max == 7
        assert args.tick_rate == 500

    def test_bad_environment_value(self, monkeypatch) -> None:
        monkeypatch.setenv("VAULTDASH_TICK_RATE", "fast")
        with pytest.raises(ValueError):
            cli.parse_options(["vault.log"])

    @pytest.mark.parametrize("argv", [
        ["--tick-rate", "0", "a.log"],
        ["--lines-max", "-1", "a.log"],
    ])
    def test_invalid_values_rejected(self, argv) -> None:
        with pytest.raises(SystemExit) as exc:
            cli.parse_options(argv)
        assert exc.value.code == 2


class TestLoadDotenv:
    """The optional .env file."""

    def test_loads_missing_values_only(self, tmp_path, monkeypatch) -> None:
        env = tmp_path / ".env"
        env.write_text(
            "# comment\n"
            "VAULTDASH_LINES_MAX=33\n"
            "VAULTDASH_TICK_RATE = 99\n"
            "malformed line\n",
            encoding="utf-8",
        )
        monkeypatch.setenv("VAULTDASH_TICK_RATE", "150")

        cli.load_dotenv(env)

        assert os.environ["VAULTDASH_LINES_MAX"] == "33"
        assert os.environ["VAULTDASH_TICK_RATE"] == "150"

    def test_missing_file_ignored(self, tmp_path) -> None:
        cli.load_dotenv(tmp_path / ".env")


class TestMain:
    """Exit paths that don't need a terminal."""

    def test_no_files(self, tmp_path, monkeypatch, capsys) -> None:
        monkeypatch.chdir(tmp_path)
        with pytest.raises(SystemExit) as exc:
            cli.main([])

        assert exc.value.code == 1
        out = capsys.readouterr().out
        assert "no logfile(s) specified" in out
        assert "--help" in out

    def test_startup_error_exits_before_curses(self, tmp_path, monkeypatch, capsys) -> None:
        monkeypatch.chdir(tmp_path)

        def fail(*args, **kwargs):
            raise AssertionError("curses must not be started")

        monkeypatch.setattr(cli.curses, "wrapper", fail)
        log = tmp_path / "vaultdash.log"

        with pytest.raises(SystemExit) as exc:
            cli.main(["--log-file", str(log), str(tmp_path / "missing" / "vault.log")])

        assert exc.value.code == 1
        assert "parent directory does not exist" in capsys.readouterr().err
        assert "Startup failed" in log.read_text(encoding="utf-8")

    def test_runs_dashboard_and_cleans_up(self, tmp_path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        calls = []
        monkeypatch.setattr(cli.curses, "wrapper", lambda fn: calls.append(fn))
        vault = tmp_path / "vault.log"

        with pytest.raises(SystemExit) as exc:
            cli.main(["--debug-parser", "--log-file", str(tmp_path / "own.log"), str(vault)])

        assert exc.value.code == 0
        assert len(calls) == 1
        app = calls[0].__self__
        assert app.scratch_file is None
        assert len(app.monitors) == 2
