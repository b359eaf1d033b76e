"""Controller adapter: the contract between user control code and the engine.

Each tick the adapter hands the controller a read-only `Snapshot` of the
vehicle and a `Console` it may print to, then turns whatever comes back into
a validated, clamped `ControlCommand`. Nothing unvalidated reaches the
integrator.

Controller contract:
    control(state, console) -> output

    VerticalOnly  -> throttle                    (number)
    ThrustVector  -> [throttle, gimbal]          (2 numbers)
    Differential  -> [throttle_0, ..., throttle_n-1]  (one per thruster)

The call runs under an operation budget. Executed source lines, jumps and
function starts are counted through `sys.monitoring`, so the budget is
deterministic and independent of machine speed. Once it is spent every
further line raises, including lines inside the controller's own exception
handlers. Time spent inside C extensions is not counted.

Example:
    >>> def control(state, console):
    ...     console.print("altitude", state.y)
    ...     return 0.6 if state.vy < -2.0 else 0.3
    >>>
    >>> adapter = ControllerAdapter.from_scenario(control, scenario, dt=0.02)
    >>> command = adapter.command(scenario.initial)
"""

import math
import numbers
import sys
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, NamedTuple

import numpy as np
from beartype import beartype

from gnc_trainer.control.commands import ControlCommand
from gnc_trainer.dynamics.state import VehicleState
from gnc_trainer.errors import ControllerFault, FaultKind
from gnc_trainer.scenario import ActuatorLimits, ControlScheme, Scenario

DEFAULT_OPERATION_BUDGET: int = 100_000

# =============================================================================
# Controller Inputs
# =============================================================================


class Snapshot(NamedTuple):
    """Read-only view of the vehicle handed to the controller."""
    x: float            # Horizontal position [m]
    y: float            # Altitude [m]
    vx: float           # Horizontal velocity [m/s]
    vy: float           # Vertical velocity [m/s]
    rotation: float     # Attitude in (-pi, pi] [rad]
    angular_vel: float  # Angular velocity [rad/s]
    fuel: float         # Remaining propellant [kg]

    @classmethod
    def from_state(cls, state: VehicleState) -> "Snapshot":
        return cls(
            x=state.x,
            y=state.y,
            vx=state.vx,
            vy=state.vy,
            rotation=state.attitude,
            angular_vel=state.angular_velocity,
            fuel=state.fuel,
        )


@dataclass
class Console:
    """Debug output sink for controller code.

    Output is cleared before every controller call; the simulator attaches
    the lines to that tick's telemetry record.
    """
    max_lines: int = 100
    max_line_length: int = 1000
    _lines: list[str] = field(default_factory=list, init=False, repr=False)

    def print(self, *values: Any, sep: str = " ") -> None:
        """Append one line of output."""
        if len(self._lines) >= self.max_lines:
            return
        self._lines.append(sep.join(str(v) for v in values)[: self.max_line_length])

    def __call__(self, *values: Any) -> None:
        self.print(*values)

    def clear(self) -> None:
        self._lines.clear()

    @property
    def lines(self) -> tuple[str, ...]:
        return tuple(self._lines)


Controller = Callable[[Snapshot, Console], Any]


# =============================================================================
# Operation Budget
# =============================================================================


_EVENTS = sys.monitoring.events
_COUNTED_EVENTS = _EVENTS.PY_START | _EVENTS.LINE | _EVENTS.JUMP
_TOOL_NAME = "gnc_trainer.budget"
_tool_id: int | None = None
_active: "_OperationCounter | None" = None


class _BudgetExhausted(BaseException):
    """Raised into controller code once the budget is spent."""


class _OperationCounter:
    """Monitoring callback that counts function starts, lines and jumps.

    Once the limit is passed it raises on every further event from the
    calling thread. Monitoring callbacks stay registered when they raise, so
    a controller that catches the exception hits it again on its next line
    or loop iteration and can never get back to running code.
    """

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.count = 0
        self.exhausted = False
        self.thread = threading.get_ident()

    def __call__(self, code: Any, *args: Any) -> None:
        if code is _run_budgeted.__code__ or threading.get_ident() != self.thread:
            return
        if self.exhausted:
            raise _BudgetExhausted
        self.count += 1
        if self.count > self.limit:
            self.exhausted = True
            raise _BudgetExhausted


def _acquire_tool_id() -> int:
    global _tool_id
    if _tool_id is None:
        monitoring = sys.monitoring
        # Skip the ids reserved for debuggers, coverage, profilers and optimizers
        free = [i for i in (4, 3) if monitoring.get_tool(i) is None]
        if not free:
            raise RuntimeError("No free sys.monitoring tool id for the operation budget")
        _tool_id = free[0]
        monitoring.use_tool_id(_tool_id, _TOOL_NAME)
        for event in (_EVENTS.PY_START, _EVENTS.LINE, _EVENTS.JUMP):
            monitoring.register_callback(_tool_id, event, _dispatch)
    return _tool_id


def _dispatch(code: Any, *args: Any) -> None:
    if _active is not None:
        _active(code, *args)


def _run_budgeted(fn: Callable[..., Any], limit: int, *args: Any) -> Any:
    """Call `fn` with operation counting enabled.

    A nested call (controller code compiling another controller) runs under
    the budget already in force.
    """
    global _active
    if _active is not None:
        return fn(*args)

    tool = _acquire_tool_id()
    counter = _OperationCounter(limit)
    _active = counter
    sys.monitoring.set_events(tool, _COUNTED_EVENTS)
    try:
        try:
            result = fn(*args)
        finally:
            # Counting stops before any fault object is built
            sys.monitoring.set_events(tool, _EVENTS.NO_EVENTS)
            _active = None
    except _BudgetExhausted:
        raise ControllerFault(
            FaultKind.BUDGET_EXCEEDED,
            f"Controller exceeded its budget of {limit} operations",
        ) from None
    except Exception as err:
        raise ControllerFault(
            FaultKind.RUNTIME_ERROR,
            f"Runtime error: {type(err).__name__}: {err}",
        ) from err

    if counter.exhausted:
        raise ControllerFault(
            FaultKind.BUDGET_EXCEEDED,
            f"Controller exceeded its budget of {limit} operations",
        )
    return result


@beartype
def compile_controller(
    source: str,
    filename: str = "<controller>",
    operation_budget: int = DEFAULT_OPERATION_BUDGET,
) -> Controller:
    """Build a controller from Python source defining `control(state, console)`.

    Module-level statements run once, under the same operation budget as a
    single tick.

    Raises:
        ControllerFault: If the source does not compile, fails while loading
            or does not define a callable `control`.
    """
    try:
        code = compile(source, filename, "exec")
    except SyntaxError as err:
        raise ControllerFault(FaultKind.COMPILE_ERROR, f"Compilation error: {err}") from err

    namespace: dict[str, Any] = {"__name__": "controller", "math": math}
    _run_budgeted(exec, operation_budget, code, namespace)

    control = namespace.get("control")
    if not callable(control):
        raise ControllerFault(
            FaultKind.COMPILE_ERROR,
            "Controller source must define a function control(state, console)",
        )
    return control


# =============================================================================
# Adapter
# =============================================================================


def _as_real(value: Any, what: str) -> float:
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, numbers.Real):
        raise ControllerFault(
            FaultKind.BAD_SHAPE,
            f"{what} must be a number, got {type(value).__name__}",
        )
    try:
        value = float(value)
    except (OverflowError, TypeError, ValueError) as err:
        raise ControllerFault(FaultKind.BAD_SHAPE, f"{what} must be finite, got {err}") from err
    if not math.isfinite(value):
        raise ControllerFault(FaultKind.BAD_SHAPE, f"{what} must be finite, got {value}")
    return value


def _as_reals(value: Any, count: int, what: str) -> list[float]:
    if isinstance(value, np.ndarray):
        value = value.tolist()
    if not isinstance(value, (list, tuple)) or len(value) != count:
        raise ControllerFault(
            FaultKind.BAD_SHAPE,
            f"Control function must return {what}",
        )
    return [_as_real(v, what) for v in value]


def _slew(target: float, previous: float, rate: float | None, dt: float) -> float:
    if rate is None:
        return target
    delta = rate * dt
    return float(np.clip(target, previous - delta, previous + delta))


@beartype
@dataclass
class ControllerAdapter:
    """Runs a controller each tick and returns a safe command.

    Attributes:
        controller: User control function
        scheme: Control scheme the output must match
        limits: Actuator ranges and slew limits
        dt: Tick length, used for slew limits [s]
        operation_budget: Max counted operations per call
        console: Debug sink shared with the controller
    """
    controller: Controller
    scheme: ControlScheme
    limits: ActuatorLimits = field(default_factory=ActuatorLimits)
    dt: float = 0.02
    operation_budget: int = DEFAULT_OPERATION_BUDGET
    console: Console = field(default_factory=Console)

    # Internal
    _previous: ControlCommand | None = field(default=None, init=False, repr=False)

    @classmethod
    def from_scenario(
        cls,
        controller: Controller,
        scenario: Scenario,
        dt: float = 0.02,
        operation_budget: int = DEFAULT_OPERATION_BUDGET,
    ) -> "ControllerAdapter":
        """Create an adapter for a scenario's control scheme and actuators."""
        return cls(
            controller=controller,
            scheme=scenario.control_scheme,
            limits=scenario.actuators,
            dt=dt,
            operation_budget=operation_budget,
        )

    @property
    def thruster_count(self) -> int:
        if self.scheme is ControlScheme.DIFFERENTIAL:
            return self.limits.thrusters
        return 1

    def reset(self) -> None:
        """Forget actuator history (slew limits restart from idle).

        A controller object with its own `reset()` method is reset too, so
        loop state does not leak from one run into the next.
        """
        self._previous = None
        self.console.clear()
        reset = getattr(self.controller, "reset", None)
        if callable(reset):
            reset()

    def command(self, state: VehicleState) -> ControlCommand:
        """Invoke the controller for one tick.

        Raises:
            ControllerFault: On bad output shape, an exception inside the
                controller, or an exhausted operation budget.
        """
        self.console.clear()
        snapshot = Snapshot.from_state(state)
        output = _run_budgeted(self.controller, self.operation_budget, snapshot, self.console)
        command = self._limit(self._validate(output))
        self._previous = command
        return command

    def _validate(self, output: Any) -> ControlCommand:
        if self.scheme is ControlScheme.VERTICAL_ONLY:
            throttle = _as_real(output, "Control function must return a number (thrust); value")
            return ControlCommand.throttle(float(np.clip(throttle, 0.0, 1.0)))

        if self.scheme is ControlScheme.THRUST_VECTOR:
            thrust, gimbal = _as_reals(output, 2, "[thrust, gimbal] as numbers")
            max_gimbal = self.limits.max_gimbal
            return ControlCommand.thrust_vector(
                float(np.clip(thrust, 0.0, 1.0)),
                float(np.clip(gimbal, -max_gimbal, max_gimbal)),
            )

        if self.scheme is ControlScheme.DIFFERENTIAL:
            count = self.thruster_count
            throttles = _as_reals(output, count, f"{count} throttles as numbers")
            return ControlCommand.differential(*(float(np.clip(t, 0.0, 1.0)) for t in throttles))

        raise ValueError(f"Unknown control scheme: {self.scheme}")

    def _limit(self, command: ControlCommand) -> ControlCommand:
        """Apply throttle and gimbal slew limits against the last command."""
        previous = self._previous or ControlCommand.idle(self.scheme, self.thruster_count)
        throttles = tuple(
            _slew(t, p, self.limits.throttle_rate, self.dt)
            for t, p in zip(command.throttles, previous.throttles)
        )
        gimbal = _slew(command.gimbal, previous.gimbal, self.limits.gimbal_rate, self.dt)
        return ControlCommand(scheme=command.scheme, throttles=throttles, gimbal=gimbal)
