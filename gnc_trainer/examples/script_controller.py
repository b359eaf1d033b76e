#!/usr/bin/env python
"""Controller-from-source example.

Learners submit controllers as source text. This example compiles one,
runs it against the first level, prints its console output near touchdown
and records the result in a progress file.
"""

import tempfile
from pathlib import Path

from gnc_trainer import LevelProgress, Simulator, SimConfig, compile_controller, get_level

CONTROLLER_SOURCE = '''
DRY_MASS = 300.0
GRAVITY = 1.62
MAX_THRUST = 1389.0

def control(state, console):
    target = -max(0.5, 0.2 * state.y)
    hover = (DRY_MASS + state.fuel) * GRAVITY / MAX_THRUST
    throttle = hover + 0.5 * (target - state.vy)
    if state.y < 1.0:
        console.print("touchdown", round(state.vy, 3))
    return throttle
'''


def main() -> None:
    """Run the controller-from-source example."""

    print("=" * 60)
    print("CONTROLLER FROM SOURCE")
    print("=" * 60)

    control = compile_controller(CONTROLLER_SOURCE, filename="<learner>")
    scenario = get_level(0)
    sim = Simulator(scenario, control, SimConfig(dt=0.02, max_duration=120.0))

    last_outcome = None
    for record in sim.ticks():
        for line in record.console:
            print(f"   t={record.time:6.2f}s  {line}")
        last_outcome = record.outcome

    print(f"\nOutcome: {last_outcome}")
    print(f"   {last_outcome.message}")

    # =========================================================================
    # Progress
    # =========================================================================
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "progress.json"
        progress = LevelProgress.load(path)
        result = sim.run()
        progress.record(0, result, source=CONTROLLER_SOURCE)
        progress.save(path)

        reloaded = LevelProgress.load(path)
        print(f"\nCompleted levels: {reloaded.completed_levels}")
        print(f"Level 1 unlocked: {reloaded.is_level_available(1)}")


if __name__ == "__main__":
    main()
