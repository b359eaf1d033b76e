"""Scenario model: physics constants, initial state and mission criteria.

A scenario is loaded from a JSON level document and validated completely
before a simulation may use it. Loading raises `MalformedConfigError` for
structural problems and `InvalidConfigError` (carrying the dotted field
path) for values that break a constraint.

Level document layout:

    {
      "name": "Lunar descent",
      "description": "...",
      "physics": {"gravity": -1.62, "dry_mass": 300, "max_thrust": 1389, "isp": 326},
      "initial": {"x0": 0, "y0": 50, "vx0": 0, "vy0": 0,
                  "initial_angle": 0, "initial_fuel": 70.98},
      "success": {"vx_max": 1, "vy_max": 2,
                  "position_box": {"x_min": -10, "x_max": 10, "y_min": 0, "y_max": 1,
                                   "reference": "Absolute"},
                  "final_angle": 0, "angle_tolerance": 0.1, "persistence_period": 1},
      "failure": {"ground_collision": true, "bounds": null},
      "control_scheme": "VerticalOnly",
      "success_message": "...",
      "failure_message": "..."
    }

Optional keys: "target" ({"x", "y"}), "actuators" ({"max_gimbal",
"throttle_rate", "gimbal_rate", "thrusters"}), "hints" (list of strings),
"failure.bounds_rule" ("outside" or "inside"), "initial.angular_vel0".

Example:
    >>> from gnc_trainer.scenario import load_scenario
    >>>
    >>> scenario = load_scenario("levels/level0.json")
    >>> scenario.physics.max_thrust
    1389.0
"""

import json
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from beartype import beartype
from loguru import logger

from gnc_trainer.constants import DEFAULT_MAX_GIMBAL, DEFAULT_THRUSTERS
from gnc_trainer.dynamics.state import VehicleState
from gnc_trainer.errors import InvalidConfigError, MalformedConfigError

# =============================================================================
# Tags
# =============================================================================


class ControlScheme(Enum):
    """Shape of the output a level expects from the controller."""

    VERTICAL_ONLY = "VerticalOnly"    # scalar throttle
    THRUST_VECTOR = "ThrustVector"    # (throttle, gimbal)
    DIFFERENTIAL = "Differential"     # one throttle per thruster


class ReferenceFrame(Enum):
    """Origin used when testing a position against a box."""

    ABSOLUTE = "Absolute"  # world coordinates
    RELATIVE = "Relative"  # relative to the scenario target point
    INITIAL = "Initial"    # relative to the initial vehicle position


class BoundsRule(Enum):
    """When a failure bounds box triggers."""

    OUTSIDE = "outside"  # leaving the box fails
    INSIDE = "inside"    # entering the box fails (keep-out zone)


# =============================================================================
# Scenario Components
# =============================================================================


@beartype
@dataclass(frozen=True)
class PhysicsParams:
    """Physical constants for a scenario.

    Attributes:
        gravity: Signed vertical acceleration [m/s^2], negative pulls down
        dry_mass: Vehicle mass without propellant [kg]
        max_thrust: Full-throttle thrust per engine [N]
        isp: Specific impulse [s]
    """
    gravity: float
    dry_mass: float
    max_thrust: float
    isp: float


@beartype
@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in a given reference frame (edges inclusive)."""
    x_min: float
    x_max: float
    y_min: float
    y_max: float
    reference: ReferenceFrame = ReferenceFrame.ABSOLUTE

    def contains(self, x: float, y: float) -> bool:
        """Test a point already expressed in this box's frame."""
        return self.x_min <= x <= self.x_max and self.y_min <= y <= self.y_max


@beartype
@dataclass(frozen=True)
class SuccessCriteria:
    """Envelope the vehicle must hold for `persistence_period` seconds.

    Attributes:
        vx_max: Max allowed |vx| [m/s]
        vy_max: Max allowed |vy| [m/s]
        position_box: Box the vehicle must be inside
        final_angle: Desired attitude [rad]
        angle_tolerance: Allowed attitude error [rad]
        persistence_period: Continuous time all conditions must hold [s]
    """
    vx_max: float
    vy_max: float
    position_box: BoundingBox
    final_angle: float = 0.0
    angle_tolerance: float = math.pi
    persistence_period: float = 0.0


@beartype
@dataclass(frozen=True)
class FailureCriteria:
    """Conditions that end a run immediately.

    Attributes:
        ground_collision: Fail on ground contact faster than the success limits
        bounds: Optional box checked every tick
        bounds_rule: Whether leaving or entering `bounds` fails
    """
    ground_collision: bool = True
    bounds: BoundingBox | None = None
    bounds_rule: BoundsRule = BoundsRule.OUTSIDE


@beartype
@dataclass(frozen=True)
class ActuatorLimits:
    """Actuator ranges and slew limits.

    Attributes:
        max_gimbal: Maximum gimbal deflection either side [rad]
        throttle_rate: Max throttle change per second, None for unlimited
        gimbal_rate: Max gimbal change per second [rad/s], None for unlimited
        thrusters: Number of thrusters for differential schemes
    """
    max_gimbal: float = DEFAULT_MAX_GIMBAL
    throttle_rate: float | None = None
    gimbal_rate: float | None = None
    thrusters: int = DEFAULT_THRUSTERS


# =============================================================================
# Scenario
# =============================================================================


@beartype
@dataclass(frozen=True)
class Scenario:
    """A complete, validated level.

    Construction validates every semantic constraint and raises
    `InvalidConfigError` on the first violation.
    """
    name: str
    physics: PhysicsParams
    initial: VehicleState
    success: SuccessCriteria
    failure: FailureCriteria
    control_scheme: ControlScheme
    description: str = ""
    target: tuple[float, float] = (0.0, 0.0)
    actuators: ActuatorLimits = field(default_factory=ActuatorLimits)
    success_message: str = "Mission accomplished."
    failure_message: str = "Mission failed."
    hints: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        numbers = {
            "physics.gravity": self.physics.gravity,
            "physics.dry_mass": self.physics.dry_mass,
            "physics.max_thrust": self.physics.max_thrust,
            "physics.isp": self.physics.isp,
            "initial.x0": self.initial.x,
            "initial.y0": self.initial.y,
            "initial.vx0": self.initial.vx,
            "initial.vy0": self.initial.vy,
            "initial.initial_angle": self.initial.angle,
            "initial.angular_vel0": self.initial.angular_velocity,
            "initial.initial_fuel": self.initial.fuel,
            "success.vx_max": self.success.vx_max,
            "success.vy_max": self.success.vy_max,
            "success.final_angle": self.success.final_angle,
            "success.angle_tolerance": self.success.angle_tolerance,
            "success.persistence_period": self.success.persistence_period,
            "target.x": self.target[0],
            "target.y": self.target[1],
            "actuators.max_gimbal": self.actuators.max_gimbal,
        }
        for name, value in numbers.items():
            if not math.isfinite(value):
                raise InvalidConfigError(name, f"must be finite, got {value}")

        positive = ("physics.dry_mass", "physics.max_thrust", "physics.isp")
        for name in positive:
            if numbers[name] <= 0:
                raise InvalidConfigError(name, f"must be > 0, got {numbers[name]}")

        non_negative = (
            "initial.initial_fuel",
            "success.vx_max",
            "success.vy_max",
            "success.angle_tolerance",
            "success.persistence_period",
            "actuators.max_gimbal",
        )
        for name in non_negative:
            if numbers[name] < 0:
                raise InvalidConfigError(name, f"must be >= 0, got {numbers[name]}")

        _validate_box("success.position_box", self.success.position_box)
        if self.failure.bounds is not None:
            _validate_box("failure.bounds", self.failure.bounds)

        for name, rate in (
            ("actuators.throttle_rate", self.actuators.throttle_rate),
            ("actuators.gimbal_rate", self.actuators.gimbal_rate),
        ):
            if rate is not None and not (math.isfinite(rate) and rate > 0):
                raise InvalidConfigError(name, f"must be a positive number, got {rate}")

        if self.control_scheme is ControlScheme.DIFFERENTIAL and self.actuators.thrusters < 2:
            raise InvalidConfigError(
                "actuators.thrusters",
                f"differential thrust needs at least 2 thrusters, got {self.actuators.thrusters}",
            )

    # -------------------------------------------------------------------------
    # Frames
    # -------------------------------------------------------------------------

    def reference_point(self, frame: ReferenceFrame) -> tuple[float, float]:
        """World coordinates of a frame's origin."""
        if frame is ReferenceFrame.ABSOLUTE:
            return (0.0, 0.0)
        if frame is ReferenceFrame.RELATIVE:
            return self.target
        if frame is ReferenceFrame.INITIAL:
            return (self.initial.x, self.initial.y)
        raise ValueError(f"Unknown reference frame: {frame}")

    def to_frame(self, x: float, y: float, frame: ReferenceFrame) -> tuple[float, float]:
        """Express a world position in the given frame."""
        ox, oy = self.reference_point(frame)
        return (x - ox, y - oy)

    @property
    def thruster_count(self) -> int:
        """Number of independently throttled engines."""
        if self.control_scheme is ControlScheme.DIFFERENTIAL:
            return self.actuators.thrusters
        return 1

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Any) -> "Scenario":
        """Build a Scenario from a parsed level document."""
        doc = _mapping(data, "<document>")

        physics_doc = _section(doc, "physics")
        physics = PhysicsParams(
            gravity=_number(physics_doc, "gravity", "physics"),
            dry_mass=_number(physics_doc, "dry_mass", "physics"),
            max_thrust=_number(physics_doc, "max_thrust", "physics"),
            isp=_number(physics_doc, "isp", "physics"),
        )

        initial_doc = _section(doc, "initial")
        initial = VehicleState(
            x=_number(initial_doc, "x0", "initial"),
            y=_number(initial_doc, "y0", "initial"),
            vx=_number(initial_doc, "vx0", "initial", 0.0),
            vy=_number(initial_doc, "vy0", "initial", 0.0),
            angle=_number(initial_doc, "initial_angle", "initial", 0.0),
            angular_velocity=_number(initial_doc, "angular_vel0", "initial", 0.0),
            fuel=_number(initial_doc, "initial_fuel", "initial"),
        )

        success_doc = _section(doc, "success")
        success = SuccessCriteria(
            vx_max=_number(success_doc, "vx_max", "success"),
            vy_max=_number(success_doc, "vy_max", "success"),
            position_box=_box(_section(success_doc, "position_box", "success"), "success.position_box"),
            final_angle=_number(success_doc, "final_angle", "success", 0.0),
            angle_tolerance=_number(success_doc, "angle_tolerance", "success"),
            persistence_period=_number(success_doc, "persistence_period", "success"),
        )

        failure_doc = _section(doc, "failure")
        ground_collision = failure_doc.get("ground_collision", True)
        if not isinstance(ground_collision, bool):
            raise MalformedConfigError("failure.ground_collision must be true or false")
        bounds_doc = failure_doc.get("bounds")
        failure = FailureCriteria(
            ground_collision=ground_collision,
            bounds=None if bounds_doc is None else _box(_mapping(bounds_doc, "failure.bounds"), "failure.bounds"),
            bounds_rule=_tag(BoundsRule, failure_doc.get("bounds_rule", "outside"), "failure.bounds_rule"),
        )

        target = (0.0, 0.0)
        if doc.get("target") is not None:
            target_doc = _mapping(doc["target"], "target")
            target = (_number(target_doc, "x", "target"), _number(target_doc, "y", "target"))

        actuators = ActuatorLimits()
        if doc.get("actuators") is not None:
            act_doc = _mapping(doc["actuators"], "actuators")
            thrusters = act_doc.get("thrusters", DEFAULT_THRUSTERS)
            if isinstance(thrusters, bool) or not isinstance(thrusters, int):
                raise MalformedConfigError(f"actuators.thrusters must be an integer, got {thrusters!r}")
            actuators = ActuatorLimits(
                max_gimbal=_number(act_doc, "max_gimbal", "actuators", DEFAULT_MAX_GIMBAL),
                throttle_rate=_optional_number(act_doc, "throttle_rate", "actuators"),
                gimbal_rate=_optional_number(act_doc, "gimbal_rate", "actuators"),
                thrusters=thrusters,
            )

        hints = doc.get("hints", [])
        if not isinstance(hints, list) or not all(isinstance(h, str) for h in hints):
            raise MalformedConfigError("hints must be a list of strings")

        scenario = cls(
            name=_text(doc, "name", ""),
            description=_text(doc, "description", "", default=""),
            physics=physics,
            initial=initial,
            success=success,
            failure=failure,
            control_scheme=_tag(ControlScheme, _require(doc, "control_scheme", ""), "control_scheme"),
            target=target,
            actuators=actuators,
            success_message=_text(doc, "success_message", "", default="Mission accomplished."),
            failure_message=_text(doc, "failure_message", "", default="Mission failed."),
            hints=tuple(hints),
        )
        logger.debug(f"Loaded scenario {scenario.name!r} ({scenario.control_scheme.value})")
        return scenario

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a level document."""
        return {
            "name": self.name,
            "description": self.description,
            "physics": {
                "gravity": self.physics.gravity,
                "dry_mass": self.physics.dry_mass,
                "max_thrust": self.physics.max_thrust,
                "isp": self.physics.isp,
            },
            "initial": {
                "x0": self.initial.x,
                "y0": self.initial.y,
                "vx0": self.initial.vx,
                "vy0": self.initial.vy,
                "initial_angle": self.initial.angle,
                "angular_vel0": self.initial.angular_velocity,
                "initial_fuel": self.initial.fuel,
            },
            "success": {
                "vx_max": self.success.vx_max,
                "vy_max": self.success.vy_max,
                "position_box": _box_to_dict(self.success.position_box),
                "final_angle": self.success.final_angle,
                "angle_tolerance": self.success.angle_tolerance,
                "persistence_period": self.success.persistence_period,
            },
            "failure": {
                "ground_collision": self.failure.ground_collision,
                "bounds": None if self.failure.bounds is None else _box_to_dict(self.failure.bounds),
                "bounds_rule": self.failure.bounds_rule.value,
            },
            "control_scheme": self.control_scheme.value,
            "target": {"x": self.target[0], "y": self.target[1]},
            "actuators": {
                "max_gimbal": self.actuators.max_gimbal,
                "throttle_rate": self.actuators.throttle_rate,
                "gimbal_rate": self.actuators.gimbal_rate,
                "thrusters": self.actuators.thrusters,
            },
            "success_message": self.success_message,
            "failure_message": self.failure_message,
            "hints": list(self.hints),
        }

    def to_json(self) -> str:
        """Serialize to JSON."""
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, json_str: str) -> "Scenario":
        """Deserialize from JSON."""
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as err:
            raise MalformedConfigError(f"Level document is not valid JSON: {err}") from err
        return cls.from_dict(data)


@beartype
def load_scenario(path: str | Path) -> Scenario:
    """Load and validate a level document from disk."""
    path = Path(path)
    return Scenario.from_json(path.read_text(encoding="utf-8"))


@beartype
def save_scenario(scenario: Scenario, path: str | Path) -> Path:
    """Write a scenario as a level document."""
    path = Path(path)
    path.write_text(scenario.to_json(), encoding="utf-8")
    return path


# =============================================================================
# Parsing Helpers
# =============================================================================

_MISSING = object()


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def _mapping(value: Any, path: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise MalformedConfigError(f"{path} must be an object, got {type(value).__name__}")
    return value


def _require(data: Mapping[str, Any], key: str, path: str) -> Any:
    if key not in data:
        raise MalformedConfigError(f"Missing required field {_join(path, key)}")
    return data[key]


def _section(data: Mapping[str, Any], key: str, path: str = "") -> Mapping[str, Any]:
    return _mapping(_require(data, key, path), _join(path, key))


def _number(data: Mapping[str, Any], key: str, path: str, default: Any = _MISSING) -> float:
    if key not in data and default is not _MISSING:
        return float(default)
    value = _require(data, key, path)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedConfigError(f"{_join(path, key)} must be a number, got {value!r}")
    try:
        return float(value)
    except OverflowError:
        raise InvalidConfigError(_join(path, key), "must be finite, got an integer too large for a float") from None


def _optional_number(data: Mapping[str, Any], key: str, path: str) -> float | None:
    if data.get(key) is None:
        return None
    return _number(data, key, path)


def _text(data: Mapping[str, Any], key: str, path: str, default: Any = _MISSING) -> str:
    if key not in data and default is not _MISSING:
        return default
    value = _require(data, key, path)
    if not isinstance(value, str):
        raise MalformedConfigError(f"{_join(path, key)} must be a string, got {value!r}")
    return value


def _tag(enum_cls: type[Enum], value: Any, path: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError as err:
        valid = ", ".join(repr(m.value) for m in enum_cls)
        raise MalformedConfigError(f"{path} must be one of {valid}, got {value!r}") from err


def _box(data: Mapping[str, Any], path: str) -> BoundingBox:
    return BoundingBox(
        x_min=_number(data, "x_min", path),
        x_max=_number(data, "x_max", path),
        y_min=_number(data, "y_min", path),
        y_max=_number(data, "y_max", path),
        reference=_tag(ReferenceFrame, data.get("reference", "Absolute"), _join(path, "reference")),
    )


def _box_to_dict(box: BoundingBox) -> dict[str, Any]:
    return {
        "x_min": box.x_min,
        "x_max": box.x_max,
        "y_min": box.y_min,
        "y_max": box.y_max,
        "reference": box.reference.value,
    }


def _validate_box(path: str, box: BoundingBox) -> None:
    for key in ("x_min", "x_max", "y_min", "y_max"):
        value = getattr(box, key)
        if not math.isfinite(value):
            raise InvalidConfigError(f"{path}.{key}", f"must be finite, got {value}")
    if box.x_min > box.x_max:
        raise InvalidConfigError(f"{path}.x_min", f"x_min {box.x_min} exceeds x_max {box.x_max}")
    if box.y_min > box.y_max:
        raise InvalidConfigError(f"{path}.y_min", f"y_min {box.y_min} exceeds y_max {box.y_max}")
