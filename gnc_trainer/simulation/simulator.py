"""Fixed-timestep mission simulation.

Composes the controller adapter, integrator and mission evaluator into a
deterministic loop. Every tick runs the same pipeline in the same order:

    snapshot -> controller -> validated command -> integrator -> evaluator

and emits one telemetry record. The loop ends when the evaluator reaches a
terminal outcome or simulated time reaches the configured maximum
(`Failure(Timeout)`). Controller faults and numerical divergence end the
run as failures; they never escape as exceptions.

Two runs with the same scenario and a deterministic controller produce
identical telemetry.

Example:
    >>> from gnc_trainer import Simulator, SimConfig, get_level
    >>>
    >>> def control(state, console):
    ...     return 0.5 if state.vy < -2.0 else 0.4
    >>>
    >>> sim = Simulator(get_level(0), control, SimConfig(dt=0.02))
    >>> for record in sim.ticks():
    ...     renderer.draw(record.state)
    >>>
    >>> result = Simulator(get_level(0), control).run()
    >>> print(result.summary())
"""

import math
import threading
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import NamedTuple

import polars as pl
from beartype import beartype
from loguru import logger

from gnc_trainer.constants import TIME_EPSILON
from gnc_trainer.control.adapter import DEFAULT_OPERATION_BUDGET, Controller, ControllerAdapter
from gnc_trainer.control.commands import ControlCommand
from gnc_trainer.dynamics.integrator import rest_on_ground, step
from gnc_trainer.dynamics.state import VehicleState
from gnc_trainer.errors import ControllerFault, DivergedError, InvalidConfigError, RunCancelled
from gnc_trainer.mission.evaluator import FailureReason, MissionEvaluator, Outcome
from gnc_trainer.scenario import Scenario

# =============================================================================
# Configuration
# =============================================================================


@beartype
@dataclass
class SimConfig:
    """Simulation configuration.

    Attributes:
        dt: Fixed timestep [s]
        max_duration: Simulated time limit before Failure(Timeout) [s]
        operation_budget: Controller operations allowed per tick
        record_telemetry: Keep every tick's record in the run result
    """
    dt: float = 0.02
    max_duration: float = 300.0
    operation_budget: int = DEFAULT_OPERATION_BUDGET
    record_telemetry: bool = True

    def __post_init__(self) -> None:
        if not (math.isfinite(self.dt) and self.dt > 0):
            raise InvalidConfigError("sim.dt", f"must be a positive number, got {self.dt}")
        if not (math.isfinite(self.max_duration) and self.max_duration > 0):
            raise InvalidConfigError("sim.max_duration", f"must be a positive number, got {self.max_duration}")
        if self.operation_budget <= 0:
            raise InvalidConfigError("sim.operation_budget", f"must be > 0, got {self.operation_budget}")


# =============================================================================
# Telemetry
# =============================================================================


class TelemetryRecord(NamedTuple):
    """State of the run after one tick."""
    tick: int                       # 1-based tick index
    time: float                     # Simulated time at the end of the tick [s]
    state: VehicleState             # Vehicle state after the tick
    command: ControlCommand | None  # Command applied, None on controller fault
    outcome: Outcome                # Verdict so far
    console: tuple[str, ...]        # Controller debug output for this tick
    persistence_timer: float        # Time the success envelope has held [s]


@beartype
@dataclass
class MissionResult:
    """Results from a completed run.

    Provides the final verdict, the display message and the telemetry.
    """
    scenario_name: str
    outcome: Outcome
    final_state: VehicleState
    ticks: int
    telemetry: list[TelemetryRecord] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.outcome.is_success

    @property
    def message(self) -> str:
        """Scenario message for display."""
        return self.outcome.message

    @property
    def time(self) -> float:
        """Simulated time at the end of the run [s]."""
        return self.final_state.time

    def summary(self) -> str:
        """One-paragraph description of the run."""
        lines = [
            f"{self.scenario_name}: {self.outcome} after {self.ticks} ticks ({self.time:.2f} s)",
            f"  final position: x={self.final_state.x:.2f} m, y={self.final_state.y:.2f} m",
            f"  final velocity: vx={self.final_state.vx:.2f} m/s, vy={self.final_state.vy:.2f} m/s",
            f"  fuel remaining: {self.final_state.fuel:.2f} kg",
        ]
        if self.outcome.message:
            lines.append(f"  {self.outcome.message}")
        if self.outcome.detail:
            lines.append(f"  {self.outcome.detail}")
        return "\n".join(lines)

    def to_dataframe(self) -> pl.DataFrame:
        """Convert telemetry to a Polars DataFrame."""
        records = self.telemetry
        return pl.DataFrame({
            "tick": [r.tick for r in records],
            "time": [r.time for r in records],
            "x": [r.state.x for r in records],
            "y": [r.state.y for r in records],
            "vx": [r.state.vx for r in records],
            "vy": [r.state.vy for r in records],
            "attitude": [r.state.attitude for r in records],
            "angular_velocity": [r.state.angular_velocity for r in records],
            "fuel": [r.state.fuel for r in records],
            "throttle": [r.command.total_throttle if r.command else None for r in records],
            "gimbal": [r.command.gimbal if r.command else None for r in records],
            "persistence_timer": [r.persistence_timer for r in records],
            "status": [r.outcome.status.value for r in records],
        })


# =============================================================================
# Simulator
# =============================================================================


@beartype
@dataclass
class Simulator:
    """Deterministic fixed-timestep mission runner.

    Attributes:
        scenario: Validated level
        controller: User control function
        config: Simulation configuration
    """
    scenario: Scenario
    controller: Controller
    config: SimConfig = field(default_factory=SimConfig)

    # Internal
    _adapter: ControllerAdapter = field(init=False, repr=False)
    _evaluator: MissionEvaluator = field(init=False, repr=False)
    _state: VehicleState = field(init=False, repr=False)
    _tick: int = field(default=0, init=False, repr=False)
    _cancel: threading.Event = field(default_factory=threading.Event, init=False, repr=False)

    def __post_init__(self) -> None:
        self._adapter = ControllerAdapter.from_scenario(
            self.controller,
            self.scenario,
            dt=self.config.dt,
            operation_budget=self.config.operation_budget,
        )
        self._evaluator = MissionEvaluator(self.scenario, self.config.dt)
        self._state = self.scenario.initial

    @property
    def state(self) -> VehicleState:
        """Current vehicle state."""
        return self._state

    @property
    def outcome(self) -> Outcome:
        """Current verdict."""
        return self._evaluator.outcome

    @property
    def time(self) -> float:
        """Current simulation time [s]."""
        return self._tick * self.config.dt

    def cancel(self) -> None:
        """Request cancellation; the run stops at the next tick boundary.

        Safe to call from another thread.
        """
        self._cancel.set()

    def reset(self) -> None:
        """Return to the scenario's initial state and clear any cancel request."""
        self._cancel.clear()
        self._restart()

    def _restart(self) -> None:
        self._adapter.reset()
        self._evaluator.reset()
        self._state = self.scenario.initial
        self._tick = 0

    def ticks(self) -> Iterator[TelemetryRecord]:
        """Run from the initial state, yielding one record per tick.

        Raises:
            RunCancelled: If `cancel()` was called; no outcome is recorded.
        """
        self._restart()
        dt = self.config.dt
        name = self.scenario.name
        logger.info(f"Starting run of {name!r}: dt={dt}s, limit {self.config.max_duration}s")

        while True:
            if self._cancel.is_set():
                logger.info(f"Run of {name!r} cancelled at tick {self._tick}")
                raise RunCancelled(f"Run of {name!r} cancelled at tick {self._tick}")

            tick = self._tick + 1
            time = tick * dt
            command = None

            try:
                command = self._adapter.command(self._state)
                state = step(self._state, command, self.scenario.physics, dt).with_time(time)
            except ControllerFault as fault:
                logger.warning(f"Controller fault at tick {tick}: {fault.message}")
                state = self._state.with_time(time)
                outcome = self._evaluator.fail(FailureReason.CONTROLLER_FAULT, fault.message)
            except DivergedError as err:
                logger.warning(f"Simulation diverged at tick {tick}: {err}")
                state = self._state.with_time(time)
                outcome = self._evaluator.fail(FailureReason.DIVERGED, str(err))
            else:
                outcome = self._evaluator.update(state)
                if not outcome.is_terminal and state.altitude <= 0.0:
                    state = rest_on_ground(state)
                if not outcome.is_terminal and time + TIME_EPSILON >= self.config.max_duration:
                    logger.warning(f"Run of {name!r} timed out after {time:.2f}s")
                    outcome = self._evaluator.fail(
                        FailureReason.TIMEOUT,
                        f"No verdict within {self.config.max_duration:.1f} s",
                    )

            self._state = state
            self._tick = tick
            yield TelemetryRecord(
                tick=tick,
                time=time,
                state=state,
                command=command,
                outcome=outcome,
                console=self._adapter.console.lines,
                persistence_timer=self._evaluator.persistence_timer,
            )

            if outcome.is_terminal:
                logger.info(f"Run of {name!r} ended at tick {tick} ({time:.2f}s): {outcome}")
                return

    def run(self) -> MissionResult:
        """Run to a terminal outcome.

        Raises:
            RunCancelled: If `cancel()` was called during the run.
        """
        telemetry: list[TelemetryRecord] = []
        last: TelemetryRecord | None = None
        for record in self.ticks():
            last = record
            if self.config.record_telemetry:
                telemetry.append(record)

        if last is None:
            raise RuntimeError("Simulation ended without running a tick")
        return MissionResult(
            scenario_name=self.scenario.name,
            outcome=last.outcome,
            final_state=last.state,
            ticks=last.tick,
            telemetry=telemetry,
        )


@beartype
def run_mission(
    scenario: Scenario,
    controller: Controller,
    config: SimConfig | None = None,
) -> MissionResult:
    """Run a controller against a scenario and return the result."""
    return Simulator(scenario, controller, config or SimConfig()).run()
