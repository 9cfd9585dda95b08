"""Simulated tasks and their tagged outcomes.

This module provides the task factory that manufactures delayed, possibly
failing asynchronous work, and the Success/Failure result types used to
report outcomes without passing raw exceptions around.
"""

from src.tasks.result import Failure, Result, Success, TaskFailedError, TaskStatus
from src.tasks.simulated import SimulatedTask, create_task

__all__ = [
    "Failure",
    "Result",
    "SimulatedTask",
    "Success",
    "TaskFailedError",
    "TaskStatus",
    "create_task",
]
