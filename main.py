#!/usr/bin/env python3
"""Main Entry Point and CLI Integration.

This module provides the command-line entry point for the fan-out demo. It
loads configuration, prints a marker line, runs the selected scenario
through the FanOutOrchestrator, and waits for detached work before exiting.

A task failure is handled inside the orchestrator, so the process exits with
status 0 whether or not a task failed. Only configuration problems produce a
non-zero exit status.
"""

import argparse
import asyncio
import sys

from pydantic import ValidationError

from src.config import DemoConfig, load_config
from src.log_config import bind_context, clear_context, configure_logging, get_logger
from src.orchestrator.aggregate import AggregationMode
from src.orchestrator.orchestrator import FanOutOrchestrator, OrchestrationError

# Initialize logger (will be configured after loading config)
logger = get_logger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def resolve_config(args: argparse.Namespace) -> DemoConfig:
    """Load configuration and apply command-line overrides.

    Args:
        args: Parsed command-line arguments

    Returns:
        Validated configuration

    Raises:
        FileNotFoundError: If the configuration file does not exist
        ValueError: If the configuration is invalid
    """
    config = load_config(args.config)

    overrides = {}
    if args.time_scale is not None:
        overrides["time_scale"] = args.time_scale
    if args.log_level is not None:
        overrides["logging_level"] = args.log_level
    if args.json_logs:
        overrides["json_logs"] = True

    if overrides:
        config = DemoConfig(**{**config.model_dump(), **overrides})
    return config


def list_scenarios(config: DemoConfig) -> None:
    """Print every known scenario with its tasks."""
    for name, scenario in sorted(config.scenarios.items()):
        marker = "*" if name == config.default_scenario else " "
        tasks = ", ".join(
            f"{task.task_id}@{task.delay_seconds:g}s{' (fails)' if task.should_fail else ''}"
            for task in scenario.tasks
        )
        print(f"{marker} {name} [{scenario.mode.value}]: {tasks}")


async def main_async(args: argparse.Namespace) -> int:
    """Main async entry point.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 for configuration errors)
    """
    configure_logging(args.log_level or "WARNING", json_logs=args.json_logs, stream=sys.stderr)

    try:
        config = resolve_config(args)
        scenario = config.get_scenario(args.scenario)
    except FileNotFoundError as e:
        logger.exception("configuration_file_not_found", error=str(e))
        return 1
    except (ValidationError, ValueError) as e:
        logger.exception("configuration_validation_error", error=str(e))
        return 1
    except KeyError as e:
        logger.exception("unknown_scenario", error=str(e))
        return 1

    configure_logging(config.logging_level, json_logs=config.json_logs, stream=sys.stderr)

    for warning in config.validate_config():
        logger.warning("configuration_warning", message=warning)

    if args.list_scenarios:
        list_scenarios(config)
        return 0

    print("test")

    bind_context(scenario=scenario.name)
    try:
        orchestrator = FanOutOrchestrator(time_scale=config.time_scale, echo=print)
        for _ in range(args.repeat):
            try:
                await orchestrator.run(scenario, mode=args.mode)
            except OrchestrationError as err:
                print("errror", err)

        await orchestrator.drain_detached()

        logger.info("demo_complete", **orchestrator.get_stats())
    finally:
        clear_context()
    return 0


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        msg = f"must be at least 1, got {number}"
        raise argparse.ArgumentTypeError(msg)
    return number


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list (default: sys.argv[1:])

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description="Fan-out demo - sequential await vs. fail-fast aggregation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the default scenario (task 1 @3s succeeds, task 2 @1s fails)
  python main.py

  # Both tasks succeed
  python main.py --scenario all-succeed

  # Await the tasks one by one instead of gathering them
  python main.py --mode sequential

  # Ten times faster, with debug logs on stderr
  python main.py --time-scale 0.1 --debug
        """,
    )

    parser.add_argument(
        "-c",
        "--config",
        type=str,
        default=None,
        help="Path to a YAML/JSON configuration file (default: built-in scenarios)",
    )

    parser.add_argument(
        "-s",
        "--scenario",
        type=str,
        default=None,
        help="Scenario to run (default: the configured default scenario)",
    )

    parser.add_argument(
        "-m",
        "--mode",
        type=str,
        choices=[mode.value for mode in AggregationMode],
        default=None,
        help="Override the scenario's aggregation mode",
    )

    parser.add_argument(
        "--time-scale",
        type=float,
        default=None,
        help="Multiplier applied to every task delay",
    )

    parser.add_argument(
        "--repeat",
        type=positive_int,
        default=1,
        help="Run the scenario this many times (default: 1)",
    )

    parser.add_argument(
        "--list-scenarios",
        action="store_true",
        help="List known scenarios and exit",
    )

    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug output (DEBUG level)",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=LOG_LEVELS,
        default=None,
        help="Set logging level (default: WARNING)",
    )

    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Render logs as JSON",
    )

    args = parser.parse_args(argv)

    if args.debug:
        args.log_level = "DEBUG"

    return args


def main() -> None:
    """Main entry point.

    Parses arguments, runs the async main function, and exits with the
    appropriate code.
    """
    args = parse_args()

    try:
        exit_code = asyncio.run(main_async(args))
        sys.exit(exit_code)
    except KeyboardInterrupt:
        sys.exit(1)


if __name__ == "__main__":
    main()
