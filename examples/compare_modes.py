"""Side-by-side comparison of the two aggregation modes.

Runs the failing pair (task 1 @3s succeeds, task 2 @1s fails) once with
fail-fast gathering and once awaiting the tasks one by one, and prints how
long each run took to observe task 2's failure. Debug logs show the
late_result_ignored diagnostic for the task left running after the gather.
"""

import asyncio
import sys
from pathlib import Path

# Add the project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config import FAILING_PAIR, DemoConfig
from src.log_config import configure_logging
from src.orchestrator import AggregationMode, FanOutOrchestrator

TIME_SCALE = 0.5


async def compare() -> None:
    """Run the failing pair in both modes and report settle times."""
    scenario = DemoConfig().get_scenario(FAILING_PAIR)
    orchestrator = FanOutOrchestrator(time_scale=TIME_SCALE)

    for mode in AggregationMode:
        print(f"=== {mode.value} ===")
        await orchestrator.run(scenario, mode=mode)
        record = orchestrator.runs[-1]
        print(
            f"settled after {record.elapsed_seconds:.2f}s, "
            f"{len(record.detached)} task(s) left running\n",
        )

    await orchestrator.drain_detached()
    print(orchestrator.get_stats())


def main() -> None:
    configure_logging(level="DEBUG", json_logs=False, stream=sys.stderr)
    asyncio.run(compare())


if __name__ == "__main__":
    main()
