"""Planar vehicle state for the lander simulation.

The state contains:
- Position (2): [x, y] in the world frame, y is altitude above the ground
- Velocity (2): [vx, vy] in the world frame
- Attitude (1): angle from vertical [rad], counter-clockwise positive
- Angular velocity (1): [rad/s]
- Fuel (1): remaining propellant mass [kg]

Angle convention:
- 0 rad means the vehicle points straight up
- The stored angle is unwrapped (any range); use `attitude` or
  `normalize_angle` before comparing against tolerances
"""

import math
from dataclasses import dataclass, replace

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

# =============================================================================
# Angle Utilities
# =============================================================================


@beartype
def normalize_angle(angle: float) -> float:
    """Wrap an angle into (-pi, pi]."""
    wrapped = math.fmod(angle + math.pi, 2.0 * math.pi)
    if wrapped <= 0.0:
        wrapped += 2.0 * math.pi
    return wrapped - math.pi


@beartype
def angle_difference(a: float, b: float) -> float:
    """Smallest signed difference a - b, in (-pi, pi]."""
    return normalize_angle(normalize_angle(a) - normalize_angle(b))


# =============================================================================
# State Classes
# =============================================================================


@beartype
@dataclass(frozen=True)
class VehicleState:
    """Planar rigid body state.

    Attributes:
        x: horizontal position [m]
        y: altitude [m]
        vx: horizontal velocity [m/s]
        vy: vertical velocity [m/s]
        angle: attitude from vertical [rad], unwrapped
        angular_velocity: [rad/s]
        fuel: remaining propellant [kg]
        time: simulation time [s]
    """
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    angle: float = 0.0
    angular_velocity: float = 0.0
    fuel: float = 0.0
    time: float = 0.0

    @property
    def attitude(self) -> float:
        """Attitude normalized into (-pi, pi] [rad]."""
        return normalize_angle(self.angle)

    @property
    def altitude(self) -> float:
        """Height above the ground [m]."""
        return self.y

    @property
    def speed(self) -> float:
        """Speed magnitude [m/s]."""
        return math.hypot(self.vx, self.vy)

    @property
    def position(self) -> NDArray[np.float64]:
        """Position as an array [x, y]."""
        return np.array([self.x, self.y])

    @property
    def velocity(self) -> NDArray[np.float64]:
        """Velocity as an array [vx, vy]."""
        return np.array([self.vx, self.vy])

    def mass(self, dry_mass: float) -> float:
        """Total vehicle mass [kg]."""
        return dry_mass + self.fuel

    def is_finite(self) -> bool:
        """True when every component is a finite number."""
        return bool(np.all(np.isfinite(self.to_array())))

    def to_array(self) -> NDArray[np.float64]:
        """Convert state to a flat array."""
        return np.array([
            self.x,
            self.y,
            self.vx,
            self.vy,
            self.angle,
            self.angular_velocity,
            self.fuel,
        ])

    @classmethod
    def from_array(cls, arr: NDArray[np.float64], time: float = 0.0) -> "VehicleState":
        """Create state from a flat array."""
        return cls(
            x=float(arr[0]),
            y=float(arr[1]),
            vx=float(arr[2]),
            vy=float(arr[3]),
            angle=float(arr[4]),
            angular_velocity=float(arr[5]),
            fuel=float(arr[6]),
            time=time,
        )

    def to_dict(self) -> dict[str, float]:
        """Flat mapping of field name to value, used for telemetry rows."""
        return {
            "time": self.time,
            "x": self.x,
            "y": self.y,
            "vx": self.vx,
            "vy": self.vy,
            "angle": self.angle,
            "attitude": self.attitude,
            "angular_velocity": self.angular_velocity,
            "fuel": self.fuel,
        }

    def with_time(self, time: float) -> "VehicleState":
        """Copy of this state stamped with a new time."""
        return replace(self, time=time)
