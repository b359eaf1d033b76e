"""Mission evaluator: judges the vehicle state against a scenario's criteria.

State machine:

    Running -> Running | Success | Failure(reason)

Success and Failure are terminal; once reached, further updates return the
same outcome. Each update runs the checks in a fixed order:

1. Ground impact (ground collision enabled, altitude <= 0, too fast)
2. Out of bounds (bounds box configured, rule violated)
3. Success envelope (speed limits, position box, attitude)
4. Persistence timer (grows while the envelope holds, resets otherwise)
5. Success once the timer reaches the persistence period

Example:
    >>> evaluator = MissionEvaluator(scenario, dt=0.02)
    >>> outcome = evaluator.update(state)
    >>> outcome.is_terminal
    False
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple

from beartype import beartype

from gnc_trainer.constants import TIME_EPSILON
from gnc_trainer.dynamics.state import VehicleState, angle_difference
from gnc_trainer.scenario import BoundsRule, Scenario

# =============================================================================
# Outcomes
# =============================================================================


class Status(Enum):
    """Run status."""

    RUNNING = "Running"
    SUCCESS = "Success"
    FAILURE = "Failure"


class FailureReason(Enum):
    """Why a run failed."""

    GROUND_IMPACT = "GroundImpact"
    OUT_OF_BOUNDS = "OutOfBounds"
    DIVERGED = "Diverged"
    CONTROLLER_FAULT = "ControllerFault"
    TIMEOUT = "Timeout"


@beartype
@dataclass(frozen=True)
class Outcome:
    """Verdict after a tick.

    Attributes:
        status: Running, Success or Failure
        reason: Failure reason, None unless status is Failure
        message: Scenario display message for terminal outcomes
        detail: Extra context, e.g. the controller error text
    """
    status: Status
    reason: FailureReason | None = None
    message: str = ""
    detail: str = ""

    @classmethod
    def running(cls) -> "Outcome":
        return cls(status=Status.RUNNING)

    @classmethod
    def success(cls, message: str = "") -> "Outcome":
        return cls(status=Status.SUCCESS, message=message)

    @classmethod
    def failure(cls, reason: FailureReason, message: str = "", detail: str = "") -> "Outcome":
        return cls(status=Status.FAILURE, reason=reason, message=message, detail=detail)

    @property
    def is_terminal(self) -> bool:
        return self.status is not Status.RUNNING

    @property
    def is_success(self) -> bool:
        return self.status is Status.SUCCESS

    @property
    def is_failure(self) -> bool:
        return self.status is Status.FAILURE

    def __str__(self) -> str:
        if self.reason is None:
            return self.status.value
        return f"{self.status.value}({self.reason.value})"


class EnvelopeCheck(NamedTuple):
    """Individual success conditions for one tick."""
    velocity_x: bool
    velocity_y: bool
    position: bool
    attitude: bool

    @property
    def all_met(self) -> bool:
        return all(self)


# =============================================================================
# Evaluator
# =============================================================================


@beartype
@dataclass
class MissionEvaluator:
    """Per-run success/failure state machine.

    The persistence timer is kept as a count of consecutive satisfied ticks
    so repeated float additions of dt cannot drift below the period.

    Attributes:
        scenario: Level being judged
        dt: Tick length [s]
    """
    scenario: Scenario
    dt: float

    # Internal
    _satisfied_ticks: int = field(default=0, init=False, repr=False)
    _outcome: Outcome = field(default_factory=Outcome.running, init=False, repr=False)

    @property
    def outcome(self) -> Outcome:
        """Current verdict."""
        return self._outcome

    @property
    def persistence_timer(self) -> float:
        """Continuous time the success envelope has held [s]."""
        return self._satisfied_ticks * self.dt

    @property
    def stabilizing(self) -> bool:
        """True while the envelope holds but the period has not elapsed."""
        return not self._outcome.is_terminal and self._satisfied_ticks > 0

    def reset(self) -> None:
        """Return to Running with a cleared timer."""
        self._satisfied_ticks = 0
        self._outcome = Outcome.running()

    def fail(self, reason: FailureReason, detail: str = "") -> Outcome:
        """Force a terminal failure (faults raised outside the criteria)."""
        if not self._outcome.is_terminal:
            self._outcome = Outcome.failure(reason, self.scenario.failure_message, detail)
        return self._outcome

    def update(self, state: VehicleState) -> Outcome:
        """Judge one post-step state."""
        if self._outcome.is_terminal:
            return self._outcome

        if self.ground_impact(state):
            return self.fail(
                FailureReason.GROUND_IMPACT,
                f"Touched down at vx={state.vx:.2f} m/s, vy={state.vy:.2f} m/s",
            )

        if self.out_of_bounds(state):
            return self.fail(
                FailureReason.OUT_OF_BOUNDS,
                f"Left the allowed region at x={state.x:.1f} m, y={state.y:.1f} m",
            )

        if self.envelope(state).all_met:
            self._satisfied_ticks += 1
        else:
            self._satisfied_ticks = 0

        period = self.scenario.success.persistence_period
        if self._satisfied_ticks > 0 and self.persistence_timer + TIME_EPSILON >= period:
            self._outcome = Outcome.success(self.scenario.success_message)
        return self._outcome

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def ground_impact(self, state: VehicleState) -> bool:
        """Ground contact faster than the success speed limits."""
        if not self.scenario.failure.ground_collision or state.altitude > 0.0:
            return False
        success = self.scenario.success
        return abs(state.vx) > success.vx_max or abs(state.vy) > success.vy_max

    def out_of_bounds(self, state: VehicleState) -> bool:
        """Position violates the failure bounds rule."""
        bounds = self.scenario.failure.bounds
        if bounds is None:
            return False
        x, y = self.scenario.to_frame(state.x, state.y, bounds.reference)
        inside = bounds.contains(x, y)
        if self.scenario.failure.bounds_rule is BoundsRule.INSIDE:
            return inside
        return not inside

    def envelope(self, state: VehicleState) -> EnvelopeCheck:
        """Evaluate each success condition separately."""
        success = self.scenario.success
        box = success.position_box
        x, y = self.scenario.to_frame(state.x, state.y, box.reference)
        attitude_error = angle_difference(state.attitude, success.final_angle)
        return EnvelopeCheck(
            velocity_x=abs(state.vx) <= success.vx_max,
            velocity_y=abs(state.vy) <= success.vy_max,
            position=box.contains(x, y),
            attitude=abs(attitude_error) <= success.angle_tolerance,
        )
