"""Control commands handed from the controller adapter to the integrator.

A command is a tagged value: the tag is the scenario's control scheme and
decides which fields carry meaning.

- VerticalOnly: one throttle, no gimbal
- ThrustVector: one throttle plus a gimbal deflection [rad]
- Differential: one throttle per thruster, no gimbal

Example:
    >>> from gnc_trainer.control import ControlCommand
    >>>
    >>> ControlCommand.throttle(0.5)
    >>> ControlCommand.thrust_vector(0.8, gimbal=-0.1)
    >>> ControlCommand.differential(0.4, 0.6)
"""

from dataclasses import dataclass

from beartype import beartype

from gnc_trainer.scenario import ControlScheme


@beartype
@dataclass(frozen=True)
class ControlCommand:
    """Validated actuator command for a single tick.

    Attributes:
        scheme: Control scheme tag
        throttles: Throttle per thruster, each in [0, 1]
        gimbal: Thrust deflection from the body axis [rad]
    """
    scheme: ControlScheme
    throttles: tuple[float, ...]
    gimbal: float = 0.0

    def __post_init__(self) -> None:
        if not self.throttles:
            raise ValueError("A command needs at least one throttle")
        if self.scheme is not ControlScheme.DIFFERENTIAL and len(self.throttles) != 1:
            raise ValueError(f"{self.scheme.value} commands carry exactly one throttle")
        if self.scheme is not ControlScheme.THRUST_VECTOR and self.gimbal != 0.0:
            raise ValueError(f"{self.scheme.value} commands cannot gimbal")

    @classmethod
    def throttle(cls, value: float) -> "ControlCommand":
        """Throttle-only command for vertical schemes."""
        return cls(scheme=ControlScheme.VERTICAL_ONLY, throttles=(value,))

    @classmethod
    def thrust_vector(cls, thrust: float, gimbal: float = 0.0) -> "ControlCommand":
        """Throttle and gimbal command for gimbaled schemes."""
        return cls(scheme=ControlScheme.THRUST_VECTOR, throttles=(thrust,), gimbal=gimbal)

    @classmethod
    def differential(cls, *throttles: float) -> "ControlCommand":
        """One throttle per thruster, left to right."""
        return cls(scheme=ControlScheme.DIFFERENTIAL, throttles=tuple(throttles))

    @classmethod
    def idle(cls, scheme: ControlScheme, thrusters: int = 1) -> "ControlCommand":
        """All engines off."""
        count = thrusters if scheme is ControlScheme.DIFFERENTIAL else 1
        return cls(scheme=scheme, throttles=(0.0,) * count)

    @property
    def total_throttle(self) -> float:
        """Sum of throttles across thrusters."""
        return float(sum(self.throttles))

    def to_dict(self) -> dict[str, float]:
        """Flat mapping for telemetry rows."""
        row = {f"throttle_{i}": t for i, t in enumerate(self.throttles)}
        row["gimbal"] = self.gimbal
        return row
