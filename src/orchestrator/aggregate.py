"""Waiting strategies for a set of concurrently running simulated tasks.

Two strategies are provided:

- ``gather_fail_fast`` waits for all handles but settles as soon as the first
  one fails, in wall-clock order.
- ``await_sequentially`` awaits the handles one at a time in launch order, so
  a failure of a later handle is only observed once the earlier ones settle.

Neither strategy cancels anything. Handles still pending when the aggregate
settles keep running as detached work; DetachedWork tracks them and logs a
diagnostic when their late outcome is discarded.
"""

import asyncio
from collections.abc import Iterable, Sequence
from enum import Enum

from src.log_config import get_logger
from src.tasks.simulated import SimulatedTask

# Initialize logger
logger = get_logger(__name__)


class AggregationMode(str, Enum):
    """How the orchestrator waits on its launched tasks."""

    GATHER = "gather"
    SEQUENTIAL = "sequential"


async def gather_fail_fast(handles: Sequence[SimulatedTask]) -> list[str]:
    """Wait for every handle, failing fast on the first failure.

    Args:
        handles: Already-started task handles

    Returns:
        Success messages in launch order, once every handle has succeeded

    Raises:
        TaskFailedError: The error of whichever handle failed first
    """
    results = await asyncio.gather(*(handle.future for handle in handles))
    return list(results)


async def await_sequentially(handles: Sequence[SimulatedTask]) -> list[str]:
    """Await handles one by one in launch order.

    All handles are already running, so the total wait on success is still
    bounded by the slowest one. A failure is raised only when its handle's
    turn comes.

    Args:
        handles: Already-started task handles

    Returns:
        Success messages in launch order

    Raises:
        TaskFailedError: The error of the first handle, in launch order,
            found to have failed
    """
    results = []
    for handle in handles:
        results.append(await handle)
    return results


async def wait_for_all(
    handles: Sequence[SimulatedTask],
    mode: AggregationMode = AggregationMode.GATHER,
) -> list[str]:
    """Dispatch to the waiting strategy selected by ``mode``."""
    if mode == AggregationMode.GATHER:
        return await gather_fail_fast(handles)
    if mode == AggregationMode.SEQUENTIAL:
        return await await_sequentially(handles)
    msg = f"Unknown aggregation mode: {mode}"
    raise ValueError(msg)


class DetachedWork:
    """Tracks handles that keep running after nobody awaits them.

    Detached handles stay queryable through ``pending``. When one settles its
    outcome is discarded and a ``late_result_ignored`` diagnostic is logged.

    Example:
        >>> detached = DetachedWork()
        >>> detached.track(handles)
        >>> await detached.drain()
    """

    def __init__(self) -> None:
        self._handles: list[SimulatedTask] = []
        self.ignored_count = 0

    def track(self, handles: Iterable[SimulatedTask]) -> list[SimulatedTask]:
        """Start tracking every handle that has not settled yet.

        Args:
            handles: Handles launched by a run whose aggregate has settled

        Returns:
            The handles that became detached
        """
        handles = list(handles)
        for handle in handles:
            if handle.done():
                # A sequential wait may stop before reaching a handle that already
                # failed; reading its outcome marks the failure as retrieved.
                handle.outcome()

        detached = [handle for handle in handles if not handle.done()]
        for handle in detached:
            self._handles.append(handle)
            handle.add_done_callback(self._on_settled)

        if detached:
            logger.debug(
                "detached_work_tracked",
                task_ids=[handle.task_id for handle in detached],
            )
        return detached

    def _on_settled(self, handle: SimulatedTask) -> None:
        outcome = handle.outcome()
        if outcome is None:
            # Cancelled at loop shutdown
            return

        self.ignored_count += 1
        logger.debug(
            "late_result_ignored",
            task_id=handle.task_id,
            status=handle.status.value,
            ok=outcome.ok,
            elapsed_seconds=handle.elapsed_seconds,
        )

    @property
    def pending(self) -> list[SimulatedTask]:
        return [handle for handle in self._handles if not handle.done()]

    async def drain(self) -> None:
        """Wait until every detached handle has settled, without raising."""
        pending = self.pending
        if not pending:
            return

        logger.debug("draining_detached_work", pending_count=len(pending))
        await asyncio.gather(*(handle.future for handle in pending), return_exceptions=True)
