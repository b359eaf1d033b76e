"""Simulation module: the fixed-timestep mission loop.

Example:
    >>> from gnc_trainer.simulation import Simulator, SimConfig
    >>>
    >>> sim = Simulator(scenario, control, SimConfig(dt=0.02, max_duration=120.0))
    >>> result = sim.run()
    >>> result.outcome
"""

from gnc_trainer.simulation.simulator import (
    MissionResult,
    SimConfig,
    Simulator,
    TelemetryRecord,
    run_mission,
)

__all__ = [
    "MissionResult",
    "SimConfig",
    "Simulator",
    "TelemetryRecord",
    "run_mission",
]
