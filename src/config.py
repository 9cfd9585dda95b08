"""Configuration Management with Pydantic.

This module implements the demo's configuration models using Pydantic for
parsing and validation of YAML/JSON configuration files with environment
variable overrides. Without a configuration file the two built-in scenarios
are available.
"""

import os
from pathlib import Path

import structlog
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from src.orchestrator.aggregate import AggregationMode

# Initialize logger
logger = structlog.get_logger(__name__)

# Constants
FAILING_PAIR = "failing-pair"
ALL_SUCCEED = "all-succeed"
FAST_TIME_SCALE_THRESHOLD = 0.01


class TaskSpec(BaseModel):
    """A single simulated task in a scenario.

    Attributes:
        task_id: Printable identifier used in the task's messages
        delay_seconds: Seconds before the task settles
        should_fail: Whether the task fails instead of succeeding
    """

    task_id: int | str = Field(description="Task identifier")
    delay_seconds: float = Field(ge=0, allow_inf_nan=False, description="Delay in seconds")
    should_fail: bool = Field(default=False, description="Fail after the delay")

    model_config = {"frozen": True}


class ScenarioConfig(BaseModel):
    """A set of tasks launched together and the way they are awaited.

    Attributes:
        name: Scenario name
        tasks: Tasks to launch concurrently, in launch order
        mode: Aggregation strategy used to wait on the tasks
    """

    name: str = Field(min_length=1, description="Scenario name")
    tasks: list[TaskSpec] = Field(min_length=1, description="Tasks in launch order")
    mode: AggregationMode = Field(
        default=AggregationMode.GATHER,
        description="How to wait on the launched tasks",
    )

    @field_validator("tasks")
    @classmethod
    def validate_unique_ids(cls, v: list[TaskSpec]) -> list[TaskSpec]:
        """Validate that task identifiers are unique within the scenario.

        Raises:
            ValueError: If two tasks share an identifier
        """
        ids = [str(task.task_id) for task in v]
        if len(ids) != len(set(ids)):
            msg = f"Task ids must be unique within a scenario: {ids}"
            raise ValueError(msg)
        return v


def builtin_scenarios() -> dict[str, ScenarioConfig]:
    """Return the two demonstration scenarios.

    ``failing-pair`` launches a slow succeeding task and a fast failing one;
    ``all-succeed`` launches two tasks that both succeed after one second.
    """
    return {
        FAILING_PAIR: ScenarioConfig(
            name=FAILING_PAIR,
            tasks=[
                TaskSpec(task_id=1, delay_seconds=3, should_fail=False),
                TaskSpec(task_id=2, delay_seconds=1, should_fail=True),
            ],
        ),
        ALL_SUCCEED: ScenarioConfig(
            name=ALL_SUCCEED,
            tasks=[
                TaskSpec(task_id=1, delay_seconds=1, should_fail=False),
                TaskSpec(task_id=2, delay_seconds=1, should_fail=False),
            ],
        ),
    }


class DemoConfig(BaseModel):
    """Top-level configuration.

    Attributes:
        scenarios: Known scenarios keyed by name
        default_scenario: Scenario run when none is requested
        time_scale: Multiplier applied to every task delay
        logging_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Render logs as JSON instead of console format
    """

    scenarios: dict[str, ScenarioConfig] = Field(default_factory=builtin_scenarios)
    default_scenario: str = Field(default=FAILING_PAIR)
    time_scale: float = Field(default=1.0, gt=0, allow_inf_nan=False)
    logging_level: str = Field(
        default="WARNING",
        description="Logging level",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    json_logs: bool = Field(default=False)

    @field_validator("logging_level", mode="before")
    @classmethod
    def normalize_level(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @model_validator(mode="before")
    @classmethod
    def fill_scenario_names(cls, data: object) -> object:
        """Let YAML scenarios omit ``name``; the mapping key is used instead."""
        if isinstance(data, dict) and isinstance(data.get("scenarios"), dict):
            data = dict(data)
            data["scenarios"] = {
                key: ({"name": key, **value} if isinstance(value, dict) else value)
                for key, value in data["scenarios"].items()
            }
        return data

    @model_validator(mode="after")
    def validate_default_scenario(self) -> "DemoConfig":
        if self.default_scenario not in self.scenarios:
            msg = (
                f"default_scenario '{self.default_scenario}' is not defined; "
                f"known scenarios: {sorted(self.scenarios)}"
            )
            raise ValueError(msg)
        return self

    def get_scenario(self, name: str | None = None) -> ScenarioConfig:
        """Look up a scenario by name, falling back to the default scenario.

        Raises:
            KeyError: If no scenario has that name
        """
        key = name or self.default_scenario
        if key not in self.scenarios:
            msg = f"Unknown scenario '{key}'; known scenarios: {sorted(self.scenarios)}"
            raise KeyError(msg)
        return self.scenarios[key]

    @classmethod
    def from_yaml(cls, path: str | Path) -> "DemoConfig":
        """Load configuration from a YAML (or JSON) file.

        Args:
            path: Path to the configuration file

        Returns:
            Parsed and validated DemoConfig instance

        Raises:
            FileNotFoundError: If configuration file doesn't exist
            ValueError: If configuration is invalid or the file cannot be parsed
        """
        config_path = Path(path)

        if not config_path.exists():
            msg = f"Configuration file not found: {config_path}"
            raise FileNotFoundError(msg)

        logger.info("loading_configuration", path=str(config_path))

        try:
            with config_path.open() as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.exception("yaml_parse_error", error=str(e), path=str(config_path))
            msg = f"Invalid YAML in configuration file: {e}"
            raise ValueError(msg) from e

        if not config_data:
            msg = "Configuration file is empty"
            raise ValueError(msg)

        if not isinstance(config_data, dict):
            msg = f"Configuration must be a mapping, got {type(config_data).__name__}"
            raise ValueError(msg)

        config = cls(**cls._apply_env_overrides(config_data))
        logger.info(
            "configuration_loaded",
            scenarios=sorted(config.scenarios),
            default_scenario=config.default_scenario,
            time_scale=config.time_scale,
        )
        return config

    @classmethod
    def from_env(cls) -> "DemoConfig":
        """Build the default configuration with environment overrides applied."""
        return cls(**cls._apply_env_overrides({}))

    @classmethod
    def _apply_env_overrides(cls, config_data: dict) -> dict:
        """Apply environment variable overrides to configuration.

        Environment variables follow the pattern FANOUT_<KEY>, for example
        FANOUT_TIME_SCALE=0.1 or FANOUT_LOGGING_LEVEL=DEBUG.

        Args:
            config_data: Base configuration dictionary from file

        Returns:
            Configuration dictionary with environment overrides applied
        """
        env_overrides = {
            "default_scenario": "FANOUT_DEFAULT_SCENARIO",
            "time_scale": "FANOUT_TIME_SCALE",
            "logging_level": "FANOUT_LOGGING_LEVEL",
            "json_logs": "FANOUT_JSON_LOGS",
        }

        config_data = dict(config_data)
        for key, env_var in env_overrides.items():
            value = os.environ.get(env_var)
            if value is None:
                continue

            if env_var.endswith("_SCALE"):
                value = float(value)
            elif env_var.endswith("_LOGS"):
                value = value.lower() in ("true", "1", "yes")

            config_data[key] = value
            logger.debug("env_override_applied", env_var=env_var, config_key=key)

        return config_data

    def validate_config(self) -> list[str]:
        """Validate configuration and return list of warnings.

        Returns:
            List of validation warning messages (empty if no warnings)
        """
        warnings = []

        if self.time_scale < FAST_TIME_SCALE_THRESHOLD:
            warnings.append(
                f"time_scale is very small ({self.time_scale}) - task ordering may be "
                "dominated by event loop scheduling",
            )

        for scenario in self.scenarios.values():
            delays = [task.delay_seconds for task in scenario.tasks]
            if len(delays) > 1 and len(set(delays)) == 1 and any(
                task.should_fail for task in scenario.tasks
            ):
                warnings.append(
                    f"Scenario '{scenario.name}' has a failing task with the same delay as "
                    "the others - which failure is observed first depends on launch order",
                )

        return warnings


def load_config(config_path: str | Path | None = None) -> DemoConfig:
    """Load configuration from a file, or the defaults if no path is given."""
    if config_path is None:
        return DemoConfig.from_env()
    return DemoConfig.from_yaml(config_path)


__all__ = [
    "ALL_SUCCEED",
    "FAILING_PAIR",
    "DemoConfig",
    "ScenarioConfig",
    "TaskSpec",
    "builtin_scenarios",
    "load_config",
]
