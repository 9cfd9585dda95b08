"""Task factory for simulated delayed work.

A simulated task sleeps for a fixed delay and then either resolves with a
success message or fails with TaskFailedError. The delay timer starts as soon
as the task is created, independently of whether anyone awaits it.
"""

import asyncio
import math
from numbers import Real
from typing import Any

from src.log_config import get_logger
from src.tasks.result import Failure, Result, Success, TaskFailedError, TaskStatus

# Initialize logger
logger = get_logger(__name__)


def _validate_delay(delay_seconds: Any) -> float:
    if isinstance(delay_seconds, bool) or not isinstance(delay_seconds, Real):
        msg = f"delay_seconds must be a number, got {type(delay_seconds).__name__}"
        raise TypeError(msg)
    if not math.isfinite(delay_seconds) or delay_seconds < 0:
        msg = f"delay_seconds must be a finite non-negative number, got {delay_seconds}"
        raise ValueError(msg)
    return float(delay_seconds)


class SimulatedTask:
    """Handle to a pending simulated computation.

    The handle is awaitable: awaiting it returns the success message or
    raises TaskFailedError. It can also be queried at any time, including
    after nobody is waiting on it any more.

    Example:
        >>> handle = SimulatedTask(2, 1.0, should_fail=True)
        >>> handle.status
        <TaskStatus.PENDING: 'pending'>
        >>> await handle
        Traceback (most recent call last):
        ...
        TaskFailedError: Task 2 failed!

    Attributes:
        task_id: Identifier used in the success/failure message
        delay_seconds: Time between creation and settlement
        should_fail: Whether the task fails instead of succeeding
        started_at: Event loop time at which the delay timer started
        settled_at: Event loop time at which the task settled (None if pending)
    """

    def __init__(self, task_id: Any, delay_seconds: float, should_fail: bool = False):
        """Create the task and start its delay timer.

        Args:
            task_id: Any printable identifier
            delay_seconds: Non-negative delay before settlement
            should_fail: Fail with TaskFailedError instead of succeeding

        Raises:
            TypeError: If delay_seconds is not a number
            ValueError: If delay_seconds is negative or not finite
            RuntimeError: If called without a running event loop
        """
        self.task_id = task_id
        self.delay_seconds = _validate_delay(delay_seconds)
        self.should_fail = should_fail

        self._loop = asyncio.get_running_loop()
        self._status = TaskStatus.PENDING
        self.started_at: float = self._loop.time()
        self.settled_at: float | None = None
        self._task = self._loop.create_task(
            self._run(),
            name=f"simulated-task-{task_id}",
        )

        logger.debug(
            "task_created",
            task_id=task_id,
            delay_seconds=self.delay_seconds,
            should_fail=should_fail,
        )

    async def _run(self) -> str:
        await asyncio.sleep(self.delay_seconds)
        self.settled_at = self._loop.time()

        if self.should_fail:
            self._status = TaskStatus.FAILED
            logger.debug(
                "task_settled",
                task_id=self.task_id,
                status=self._status.value,
                elapsed_seconds=self.elapsed_seconds,
            )
            raise TaskFailedError(self.task_id)

        self._status = TaskStatus.SUCCEEDED
        logger.debug(
            "task_settled",
            task_id=self.task_id,
            status=self._status.value,
            elapsed_seconds=self.elapsed_seconds,
        )
        return f"Task {self.task_id} succeed!"

    def __await__(self):
        return self._task.__await__()

    def __repr__(self) -> str:
        return (
            f"SimulatedTask(task_id={self.task_id!r}, delay_seconds={self.delay_seconds}, "
            f"should_fail={self.should_fail}, status={self._status.value})"
        )

    @property
    def status(self) -> TaskStatus:
        return self._status

    @property
    def elapsed_seconds(self) -> float | None:
        """Seconds between creation and settlement, or None while pending."""
        if self.settled_at is None:
            return None
        return self.settled_at - self.started_at

    @property
    def future(self) -> asyncio.Task:
        """The underlying asyncio task, for use with asyncio combinators."""
        return self._task

    def done(self) -> bool:
        return self._task.done()

    def outcome(self) -> Result | None:
        """Return the tagged outcome, or None if the task has not settled.

        Querying the outcome marks a failure as retrieved, so asyncio will not
        warn about an exception that was never observed.
        """
        if not self._task.done() or self._task.cancelled():
            return None

        error = self._task.exception()
        if error is not None:
            return Failure.from_exception(error)
        return Success(self._task.result())

    def add_done_callback(self, callback) -> None:
        """Call ``callback(self)`` once the task settles."""
        self._task.add_done_callback(lambda _task: callback(self))


def create_task(task_id: Any, delay_seconds: float, should_fail: bool = False) -> SimulatedTask:
    """Create a simulated task whose timer starts immediately.

    After ``delay_seconds`` the task resolves with ``"Task <id> succeed!"``,
    or fails with ``TaskFailedError("Task <id> failed!")`` if ``should_fail``.

    Args:
        task_id: Any printable identifier
        delay_seconds: Non-negative delay before settlement
        should_fail: Fail instead of succeeding

    Returns:
        SimulatedTask handle for the pending computation
    """
    return SimulatedTask(task_id, delay_seconds, should_fail=should_fail)
