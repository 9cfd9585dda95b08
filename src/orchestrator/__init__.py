"""Orchestration of concurrently launched simulated tasks.

This module contains the waiting strategies (fail-fast gather and
one-by-one sequential await), the tracker for detached work, and the
FanOutOrchestrator that launches a scenario and reports its outcome.
"""

from src.orchestrator.aggregate import (
    AggregationMode,
    DetachedWork,
    await_sequentially,
    gather_fail_fast,
    wait_for_all,
)
from src.orchestrator.orchestrator import FanOutOrchestrator, OrchestrationError, RunRecord

__all__ = [
    "AggregationMode",
    "DetachedWork",
    "FanOutOrchestrator",
    "OrchestrationError",
    "RunRecord",
    "await_sequentially",
    "gather_fail_fast",
    "wait_for_all",
]
