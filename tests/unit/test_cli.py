"""Tests for the relaybench command line."""

import json

import pytest

from relaybench.cli import EXIT_OK, EXIT_USAGE, build_parser, main


@pytest.fixture
def quick_env(monkeypatch):
    """Small, fast run settings for the in-memory relay."""
    for name in ("RB_LOGGING", "RB_LOG_FILE", "RB_LOG_JSON"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("RB_EDIT_SIZES", "1,10")
    monkeypatch.setenv("RB_UPDATES", "5")
    monkeypatch.setenv("RB_IDLE_DELAY", "0.01")
    monkeypatch.setenv("RB_MAX_IDLE_ROUNDS", "3")
    monkeypatch.setenv("RB_SEED", "3")


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.suite is None
        assert args.relay == "memory"
        assert args.rpc_url == "http://localhost:8080"
        assert not args.no_viz

    def test_rejects_unknown_relay(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--relay", "pigeon"])


class TestMain:
    def test_unknown_suite(self, quick_env, tmp_path, capsys):
        assert main(["s9", "--output", str(tmp_path)]) == EXIT_USAGE
        assert "unknown suite" in capsys.readouterr().err

    def test_bad_log_level(self, quick_env, tmp_path):
        assert main(["s4", "--log-level", "loud", "--output", str(tmp_path)]) == EXIT_USAGE

    def test_bad_environment(self, quick_env, monkeypatch, tmp_path, capsys):
        monkeypatch.setenv("RB_UPDATES", "lots")
        assert main(["s4", "--output", str(tmp_path)]) == EXIT_USAGE
        assert "RB_UPDATES" in capsys.readouterr().err

    def test_large_edit_run(self, quick_env, tmp_path, capsys):
        assert main(["s4", "--output", str(tmp_path), "--no-viz"]) == EXIT_OK
        assert "s4-large-edits" in capsys.readouterr().out
        assert (tmp_path / "s4-large-edits.csv").exists()
        book = json.loads((tmp_path / "results.json").read_text())
        assert book["pycrdt"]["[s4-large-edits] converged"] == "True"

    def test_sequential_run_with_cli_overrides(self, quick_env, tmp_path, capsys):
        code = main(["s1", "--output", str(tmp_path), "--no-viz", "--updates", "4", "--concurrency", "2"])
        assert code == EXIT_OK
        out = capsys.readouterr().out
        assert "poll: satisfied collected=4" in out
        book = json.loads((tmp_path / "results.json").read_text())["pycrdt"]
        assert book["[s1-sequential] sent"] == "4"
