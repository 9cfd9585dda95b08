"""Fan-out orchestration with aggregated failure handling.

This module implements the FanOutOrchestrator, which launches every task of
a scenario without awaiting any of them individually, waits for an aggregate
outcome, and reports it. A task failure is caught once, echoed to the
console, and returned as a Failure wrapping an OrchestrationError; it is
never re-raised to the caller.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from src.log_config import bind_run_id, get_logger, unbind_run_id
from src.orchestrator.aggregate import AggregationMode, DetachedWork, wait_for_all
from src.tasks.result import Failure, Result, Success, TaskFailedError
from src.tasks.simulated import SimulatedTask, create_task

if TYPE_CHECKING:
    from src.config import ScenarioConfig

# Initialize logger
logger = get_logger(__name__)


class OrchestrationError(Exception):
    """Error value produced by an orchestration run.

    Wraps the task failure the run caught (available as ``__cause__``), or an
    unexpected error that prevented the run from completing.
    """

    def __init__(self, message: str, task_id: Any = None):
        """Initialize the exception with a descriptive message.

        Args:
            message: Description of the orchestration error
            task_id: Optional id of the task whose failure was caught
        """
        super().__init__(message)
        self.message = message
        self.task_id = task_id

    @classmethod
    def wrap(cls, error: TaskFailedError) -> "OrchestrationError":
        wrapped = cls(f"{type(error).__name__}: {error}", task_id=error.task_id)
        wrapped.__cause__ = error
        return wrapped


@dataclass
class RunRecord:
    """Summary of a single orchestration run.

    Attributes:
        run_id: Identifier bound to the run's log lines
        scenario: Name of the scenario that was run
        mode: Aggregation strategy used
        outcome: Success with all results, or Failure with the wrapped error
        elapsed_seconds: Time from launch until the aggregate settled
        handles: Every task handle launched by the run
        detached: Handles still running when the aggregate settled
    """

    run_id: str
    scenario: str
    mode: AggregationMode
    outcome: Result
    elapsed_seconds: float
    handles: list[SimulatedTask] = field(default_factory=list)
    detached: list[SimulatedTask] = field(default_factory=list)


class FanOutOrchestrator:
    """Launches a scenario's tasks concurrently and waits for all of them.

    Each run follows ``pending -> all_succeeded | first_failure_caught``.
    Both end states are terminal; nothing is retried or cancelled. Tasks
    still running when a run settles are handed to ``detached``.

    Example:
        >>> orchestrator = FanOutOrchestrator()
        >>> outcome = await orchestrator.run(config.get_scenario("failing-pair"))
        TaskFailedError: Task 2 failed!
        >>> outcome.ok
        False
        >>> await orchestrator.drain_detached()

    Attributes:
        time_scale: Multiplier applied to every configured delay
        echo: Callable receiving each console line
        detached: Tracker for work that outlives its run
        runs: Records of completed runs, oldest first
    """

    def __init__(
        self,
        time_scale: float = 1.0,
        echo: Callable[[str], None] = print,
    ):
        """Initialize the orchestrator.

        Args:
            time_scale: Multiplier applied to task delays (default: 1.0)
            echo: Console output function (default: print)

        Raises:
            ValueError: If time_scale is not positive
        """
        if time_scale <= 0:
            msg = f"time_scale must be positive, got {time_scale}"
            raise ValueError(msg)

        self.time_scale = time_scale
        self.echo = echo
        self.detached = DetachedWork()
        self.runs: list[RunRecord] = []

    def launch(self, scenario: "ScenarioConfig") -> list[SimulatedTask]:
        """Start every task of the scenario without awaiting any of them."""
        return [
            create_task(
                spec.task_id,
                spec.delay_seconds * self.time_scale,
                should_fail=spec.should_fail,
            )
            for spec in scenario.tasks
        ]

    async def run(
        self,
        scenario: "ScenarioConfig",
        mode: AggregationMode | None = None,
    ) -> Result:
        """Run a scenario and report its aggregate outcome.

        On success the results are echoed joined by a space and returned as
        ``Success([...])``. On the first observed task failure the error is
        echoed and returned as ``Failure`` carrying an OrchestrationError.

        Args:
            scenario: Tasks to launch
            mode: Aggregation strategy (default: the scenario's own mode)

        Returns:
            The tagged outcome of the run

        Raises:
            OrchestrationError: Only if something other than a task failure
                prevents the run from completing
        """
        mode = AggregationMode(mode or scenario.mode)
        run_id = f"{scenario.name}-{len(self.runs) + 1}"
        bind_run_id(run_id)

        try:
            logger.info(
                "orchestration_started",
                scenario=scenario.name,
                mode=mode.value,
                task_ids=[spec.task_id for spec in scenario.tasks],
            )

            handles = self.launch(scenario)
            started_at = handles[0].started_at

            try:
                results = await wait_for_all(handles, mode)
            except TaskFailedError as e:
                self.echo(f"{type(e).__name__}: {e}")
                logger.warning(
                    "orchestration_failure_caught",
                    task_id=e.task_id,
                    error=str(e),
                )
                wrapped = OrchestrationError.wrap(e)
                outcome: Result = Failure(message=wrapped.message, error=wrapped)
            except Exception as e:
                logger.exception("orchestration_failed", error=str(e))
                msg = f"Orchestration failure: {e}"
                raise OrchestrationError(msg) from e
            else:
                self.echo(" ".join(results))
                outcome = Success(results)

            elapsed = asyncio.get_running_loop().time() - started_at
            detached = self.detached.track(handles)
            record = RunRecord(
                run_id=run_id,
                scenario=scenario.name,
                mode=mode,
                outcome=outcome,
                elapsed_seconds=elapsed,
                handles=handles,
                detached=detached,
            )
            self.runs.append(record)

            logger.info(
                "aggregate_settled",
                scenario=scenario.name,
                ok=outcome.ok,
                elapsed_seconds=round(elapsed, 3),
                detached_count=len(detached),
            )
            return outcome

        finally:
            unbind_run_id()

    async def drain_detached(self) -> None:
        """Wait for work detached by earlier runs to settle."""
        await self.detached.drain()

    def get_stats(self) -> dict[str, Any]:
        """Get orchestration statistics.

        Returns:
            Dictionary with total, succeeded and failed run counts, the number
            of detached tasks still pending, and the number of late results
            that were ignored
        """
        succeeded = sum(1 for record in self.runs if record.outcome.ok)
        return {
            "total_runs": len(self.runs),
            "succeeded": succeeded,
            "failed": len(self.runs) - succeeded,
            "detached_pending": len(self.detached.pending),
            "late_results_ignored": self.detached.ignored_count,
        }
