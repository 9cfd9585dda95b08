"""Tagged outcome types for simulated tasks and orchestration runs.

Outcomes are reported as either ``Success(value)`` or ``Failure(message)``
so that callers never have to inspect untyped exception objects returned as
values.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class TaskStatus(Enum):
    """Lifecycle state of a simulated task.

    A task starts PENDING and transitions exactly once to SUCCEEDED or FAILED.
    """

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class TaskFailedError(Exception):
    """Raised by a simulated task whose failure flag is set.

    Attributes:
        task_id: Identifier of the task that failed
    """

    def __init__(self, task_id: Any):
        """Initialize the error for the given task.

        Args:
            task_id: Identifier of the failing task
        """
        super().__init__(f"Task {task_id} failed!")
        self.task_id = task_id


@dataclass(frozen=True)
class Success:
    """Successful outcome carrying the produced value.

    Attributes:
        value: The result value (a message string for a single task, the
            list of all task messages for an aggregate)
    """

    value: Any

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """Failed outcome carrying a descriptive message.

    Attributes:
        message: Human-readable failure description
        error: The exception the failure was built from, if any
    """

    message: str
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return False

    @classmethod
    def from_exception(cls, error: Exception) -> "Failure":
        """Build a Failure whose message is the exception's message."""
        return cls(message=str(error), error=error)


Result = Success | Failure
