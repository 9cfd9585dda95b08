"""Tests for the command-line entry point.

These run the whole demo with scaled-down delays and check the exact lines
printed to stdout. Log output goes to stderr and is only inspected for the
bound logging context.
"""

import json
import logging
from unittest.mock import AsyncMock, patch

import pytest
import structlog
import yaml

from main import main_async, parse_args
from src.orchestrator.orchestrator import OrchestrationError


@pytest.fixture(autouse=True)
def reset_logging(monkeypatch):
    """Isolate tests from FANOUT_* variables and leftover logging setup."""
    for name in (
        "FANOUT_DEFAULT_SCENARIO",
        "FANOUT_TIME_SCALE",
        "FANOUT_LOGGING_LEVEL",
        "FANOUT_JSON_LOGS",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
    structlog.reset_defaults()
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)


def stdout_lines(capsys) -> list[str]:
    return capsys.readouterr().out.splitlines()


class TestParseArgs:
    """Tests for argument parsing."""

    def test_defaults(self):
        args = parse_args([])

        assert args.config is None
        assert args.scenario is None
        assert args.mode is None
        assert args.time_scale is None
        assert args.repeat == 1
        assert args.log_level is None
        assert args.json_logs is False

    def test_debug_sets_log_level(self):
        assert parse_args(["--debug"]).log_level == "DEBUG"

    def test_repeat_must_be_positive(self):
        with pytest.raises(SystemExit):
            parse_args(["--repeat", "0"])

    def test_mode_choices(self):
        assert parse_args(["--mode", "sequential"]).mode == "sequential"
        with pytest.raises(SystemExit):
            parse_args(["--mode", "parallel"])


class TestMainAsync:
    """Tests for the demo run."""

    @pytest.mark.asyncio
    async def test_failing_pair_prints_marker_then_error(self, capsys):
        """Test the default scenario output and exit status."""
        exit_code = await main_async(parse_args(["--time-scale", "0.02"]))

        assert exit_code == 0
        assert stdout_lines(capsys) == ["test", "TaskFailedError: Task 2 failed!"]

    @pytest.mark.asyncio
    async def test_all_succeed_prints_both_results(self, capsys):
        exit_code = await main_async(
            parse_args(["--scenario", "all-succeed", "--time-scale", "0.02"]),
        )

        assert exit_code == 0
        assert stdout_lines(capsys) == ["test", "Task 1 succeed! Task 2 succeed!"]

    @pytest.mark.asyncio
    async def test_sequential_mode_reports_same_error(self, capsys):
        exit_code = await main_async(
            parse_args(["--mode", "sequential", "--time-scale", "0.02"]),
        )

        assert exit_code == 0
        assert stdout_lines(capsys) == ["test", "TaskFailedError: Task 2 failed!"]

    @pytest.mark.asyncio
    async def test_repeat_output_is_identical(self, capsys):
        """Test that re-running the same scenario prints the same line again."""
        await main_async(parse_args(["--time-scale", "0.02", "--repeat", "2"]))

        assert stdout_lines(capsys) == [
            "test",
            "TaskFailedError: Task 2 failed!",
            "TaskFailedError: Task 2 failed!",
        ]

    @pytest.mark.asyncio
    async def test_orchestrator_error_is_printed_by_caller(self, capsys):
        """Test the top-level handler for an error raised by the orchestrator."""
        with patch(
            "main.FanOutOrchestrator.run",
            AsyncMock(side_effect=OrchestrationError("Orchestration failure: boom")),
        ):
            exit_code = await main_async(parse_args(["--time-scale", "0.02"]))

        assert exit_code == 0
        assert stdout_lines(capsys) == ["test", "errror Orchestration failure: boom"]

    @pytest.mark.asyncio
    async def test_custom_config_file(self, tmp_path, capsys):
        config_path = tmp_path / "config.yaml"
        config_path.write_text(
            yaml.dump(
                {
                    "scenarios": {
                        "solo": {"tasks": [{"task_id": "x", "delay_seconds": 0.01}]},
                    },
                    "default_scenario": "solo",
                },
            ),
        )

        exit_code = await main_async(parse_args(["--config", str(config_path)]))

        assert exit_code == 0
        assert stdout_lines(capsys) == ["test", "Task x succeed!"]

    @pytest.mark.asyncio
    async def test_list_scenarios(self, capsys):
        exit_code = await main_async(parse_args(["--list-scenarios"]))

        assert exit_code == 0
        assert stdout_lines(capsys) == [
            "  all-succeed [gather]: 1@1s, 2@1s",
            "* failing-pair [gather]: 1@3s, 2@1s (fails)",
        ]


class TestLoggingContext:
    """Tests for the scenario name bound to the logging context."""

    @pytest.mark.asyncio
    async def test_scenario_bound_to_logs_and_cleared(self, capsys):
        exit_code = await main_async(
            parse_args(["--json-logs", "--log-level", "INFO", "--time-scale", "0.02"]),
        )

        assert exit_code == 0
        events = [
            json.loads(line)
            for line in capsys.readouterr().err.splitlines()
            if line.startswith("{")
        ]
        completed = [event for event in events if event["event"] == "demo_complete"]
        assert len(completed) == 1
        assert completed[0]["scenario"] == "failing-pair"
        assert "run_id" not in completed[0]

        settled = [event for event in events if event["event"] == "aggregate_settled"]
        assert settled[0]["run_id"] == "failing-pair-1"

        assert structlog.contextvars.get_contextvars() == {}


class TestMainAsyncErrors:
    """Tests for configuration errors."""

    @pytest.mark.asyncio
    async def test_non_mapping_config_file(self, tmp_path, capsys):
        config_path = tmp_path / "scalar.yaml"
        config_path.write_text("5\n")

        exit_code = await main_async(parse_args(["--config", str(config_path)]))

        assert exit_code == 1
        assert stdout_lines(capsys) == []

    @pytest.mark.asyncio
    async def test_missing_config_file(self, tmp_path, capsys):
        exit_code = await main_async(parse_args(["--config", str(tmp_path / "missing.yaml")]))

        assert exit_code == 1
        assert "test" not in stdout_lines(capsys)

    @pytest.mark.asyncio
    async def test_unknown_scenario(self, capsys):
        exit_code = await main_async(parse_args(["--scenario", "nope"]))

        assert exit_code == 1
        assert stdout_lines(capsys) == []

    @pytest.mark.asyncio
    async def test_invalid_time_scale(self, capsys):
        exit_code = await main_async(parse_args(["--time-scale", "-1"]))

        assert exit_code == 1
        assert stdout_lines(capsys) == []
