"""gnc_trainer: planar lander simulator for learning guidance and control.

A learner writes a control function; the engine runs it against a level
at a fixed timestep and judges the flight against the level's success and
failure criteria.

Modules:
    scenario: Level documents, validation and reference frames
    dynamics: Vehicle state and the semi-implicit Euler integrator
    control: Controller adapter, commands, PID and a reference autopilot
    mission: Success/failure state machine
    simulation: Fixed-timestep mission loop and telemetry
    progress: Level completion history
    levels: Built-in levels

Example:
    >>> from gnc_trainer import get_level, run_mission
    >>>
    >>> def control(state, console):
    ...     return 0.6 if state.vy < -1.5 else 0.3
    >>>
    >>> result = run_mission(get_level(0), control)
    >>> print(result.summary())
"""

from gnc_trainer.scenario import (
    ActuatorLimits,
    BoundingBox,
    BoundsRule,
    ControlScheme,
    FailureCriteria,
    PhysicsParams,
    ReferenceFrame,
    Scenario,
    SuccessCriteria,
    load_scenario,
    save_scenario,
)
from gnc_trainer.control import (
    Console,
    ControlCommand,
    ControllerAdapter,
    DescentAutopilot,
    PIDController,
    Snapshot,
    compile_controller,
)
from gnc_trainer.dynamics import VehicleState, angle_difference, normalize_angle
from gnc_trainer.dynamics.integrator import step
from gnc_trainer.errors import (
    ConfigError,
    ControllerFault,
    DivergedError,
    FaultKind,
    InvalidConfigError,
    MalformedConfigError,
    RunCancelled,
)
from gnc_trainer.mission import FailureReason, MissionEvaluator, Outcome, Status
from gnc_trainer.simulation import MissionResult, SimConfig, Simulator, TelemetryRecord, run_mission
from gnc_trainer.progress import LevelProgress
from gnc_trainer.levels import builtin_levels, get_level, list_levels

__version__ = "0.1.0"

__all__ = [
    # Scenario
    "ActuatorLimits",
    "BoundingBox",
    "BoundsRule",
    "ControlScheme",
    "FailureCriteria",
    "PhysicsParams",
    "ReferenceFrame",
    "Scenario",
    "SuccessCriteria",
    "load_scenario",
    "save_scenario",
    # Control
    "Console",
    "ControlCommand",
    "ControllerAdapter",
    "DescentAutopilot",
    "PIDController",
    "Snapshot",
    "compile_controller",
    # Dynamics
    "VehicleState",
    "angle_difference",
    "normalize_angle",
    "step",
    # Errors
    "ConfigError",
    "ControllerFault",
    "DivergedError",
    "FaultKind",
    "InvalidConfigError",
    "MalformedConfigError",
    "RunCancelled",
    # Mission
    "FailureReason",
    "MissionEvaluator",
    "Outcome",
    "Status",
    # Simulation
    "MissionResult",
    "SimConfig",
    "Simulator",
    "TelemetryRecord",
    "run_mission",
    # Progress and levels
    "LevelProgress",
    "builtin_levels",
    "get_level",
    "list_levels",
]
