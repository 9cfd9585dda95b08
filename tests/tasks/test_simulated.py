"""Unit tests for the simulated task factory.

Tests cover the success and failure messages, settlement timing, the
single-settlement lifecycle, and input validation.
"""

import asyncio

import pytest

from src.tasks.result import Failure, Success, TaskFailedError, TaskStatus
from src.tasks.simulated import SimulatedTask, create_task

# Event loop timers may fire up to one clock tick early.
CLOCK_TOLERANCE = 0.01


class TestCreateTask:
    """Tests for the create_task factory."""

    @pytest.mark.asyncio
    async def test_successful_task_resolves_with_message(self):
        """Test that a non-failing task resolves with its success message."""
        handle = create_task(1, 0.01)

        result = await handle

        assert result == "Task 1 succeed!"
        assert handle.status == TaskStatus.SUCCEEDED
        assert handle.outcome() == Success("Task 1 succeed!")

    @pytest.mark.asyncio
    async def test_failing_task_raises_task_failed_error(self):
        """Test that a failing task raises TaskFailedError with its message."""
        handle = create_task(2, 0.01, should_fail=True)

        with pytest.raises(TaskFailedError, match="Task 2 failed!") as exc_info:
            await handle

        assert exc_info.value.task_id == 2
        assert handle.status == TaskStatus.FAILED

        outcome = handle.outcome()
        assert isinstance(outcome, Failure)
        assert outcome.message == "Task 2 failed!"
        assert isinstance(outcome.error, TaskFailedError)

    @pytest.mark.asyncio
    async def test_task_id_can_be_any_printable_value(self):
        """Test that string identifiers are used verbatim in messages."""
        assert await create_task("alpha", 0) == "Task alpha succeed!"

        with pytest.raises(TaskFailedError, match="Task beta failed!"):
            await create_task("beta", 0, should_fail=True)

    @pytest.mark.asyncio
    async def test_new_task_is_pending(self):
        """Test that a freshly created task has not settled."""
        handle = create_task(1, 0.05)

        assert handle.status == TaskStatus.PENDING
        assert not handle.done()
        assert handle.outcome() is None
        assert handle.elapsed_seconds is None
        assert handle.settled_at is None

        await handle

    @pytest.mark.asyncio
    async def test_timer_starts_without_being_awaited(self):
        """Test that the delay runs even if nobody awaits the task."""
        handle = create_task(1, 0.01)

        await asyncio.sleep(0.05)

        assert handle.done()
        assert handle.status == TaskStatus.SUCCEEDED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("delay", [0, 0.02, 0.05])
    @pytest.mark.parametrize("should_fail", [False, True])
    async def test_task_never_settles_before_its_delay(self, delay, should_fail):
        """Test that a task settles no earlier than its configured delay."""
        loop = asyncio.get_running_loop()
        started = loop.time()
        handle = create_task(7, delay, should_fail=should_fail)

        try:
            await handle
        except TaskFailedError:
            assert should_fail
        else:
            assert not should_fail

        assert loop.time() - started >= delay - CLOCK_TOLERANCE
        assert handle.elapsed_seconds >= delay - CLOCK_TOLERANCE

    @pytest.mark.asyncio
    async def test_task_settles_exactly_once(self):
        """Test that awaiting again returns the same result without re-running."""
        handle = create_task(3, 0.01)

        first = await handle
        settled_at = handle.settled_at
        await asyncio.sleep(0.02)
        second = await handle

        assert first == second == "Task 3 succeed!"
        assert handle.settled_at == settled_at
        assert handle.status == TaskStatus.SUCCEEDED

    @pytest.mark.asyncio
    async def test_done_callback_receives_handle(self):
        """Test that done callbacks are called with the handle itself."""
        handle = create_task(4, 0)
        seen: list[SimulatedTask] = []
        handle.add_done_callback(seen.append)

        await handle
        await asyncio.sleep(0)

        assert seen == [handle]

    @pytest.mark.asyncio
    async def test_repr_includes_status(self):
        """Test that repr shows the identifier and current status."""
        handle = create_task(5, 0)
        assert "task_id=5" in repr(handle)
        assert "pending" in repr(handle)
        await handle
        assert "succeeded" in repr(handle)


class TestCreateTaskValidation:
    """Tests for delay validation."""

    def test_negative_delay_is_rejected(self):
        """Test that a negative delay raises ValueError."""
        with pytest.raises(ValueError, match="non-negative"):
            create_task(1, -1)

    @pytest.mark.parametrize("delay", [float("nan"), float("inf")])
    def test_non_finite_delay_is_rejected(self, delay):
        """Test that NaN and infinite delays raise ValueError."""
        with pytest.raises(ValueError, match="finite"):
            create_task(1, delay)

    @pytest.mark.parametrize("delay", ["1", None, True])
    def test_non_numeric_delay_is_rejected(self, delay):
        """Test that strings, None and booleans raise TypeError."""
        with pytest.raises(TypeError, match="must be a number"):
            create_task(1, delay)

    def test_requires_running_event_loop(self):
        """Test that creating a task outside an event loop fails."""
        with pytest.raises(RuntimeError):
            create_task(1, 0)
