"""Reference autopilot for throttle-only descent levels.

Tracks a descent rate proportional to altitude, floored at a gentle
touchdown speed, with a PID loop on vertical speed around hover throttle.
It is the worked example for the first level and satisfies the controller
contract like any user function.

Example:
    >>> from gnc_trainer import get_level, run_mission
    >>> from gnc_trainer.control import DescentAutopilot
    >>>
    >>> scenario = get_level(0)
    >>> autopilot = DescentAutopilot.from_scenario(scenario, dt=0.02)
    >>> result = run_mission(scenario, autopilot)
"""

from dataclasses import dataclass, field

from beartype import beartype

from gnc_trainer.control.adapter import Console, Snapshot
from gnc_trainer.control.pid import PIDController, PIDGains
from gnc_trainer.scenario import Scenario


@beartype
@dataclass
class DescentAutopilot:
    """Altitude-scheduled descent rate controller.

    Attributes:
        dry_mass: Vehicle dry mass [kg]
        gravity: Signed gravity [m/s^2]
        max_thrust: Full-throttle thrust [N]
        dt: Controller period [s]
        descent_gain: Commanded descent speed per metre of altitude [1/s]
        touchdown_speed: Minimum commanded descent speed [m/s]
        gains: Vertical speed loop gains, output is a throttle offset
    """
    dry_mass: float
    gravity: float
    max_thrust: float
    dt: float
    descent_gain: float = 0.2
    touchdown_speed: float = 0.5
    gains: PIDGains = field(default_factory=lambda: PIDGains(kp=0.5))

    # Internal
    rate_loop: PIDController = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.rate_loop = PIDController.from_gains(self.gains, output_limits=(-1.0, 1.0))

    @classmethod
    def from_scenario(cls, scenario: Scenario, dt: float) -> "DescentAutopilot":
        """Configure the autopilot from a level's physics."""
        return cls(
            dry_mass=scenario.physics.dry_mass,
            gravity=scenario.physics.gravity,
            max_thrust=scenario.physics.max_thrust,
            dt=dt,
        )

    def reset(self) -> None:
        """Clear rate loop history before a new run."""
        self.rate_loop.reset()

    def hover_throttle(self, fuel: float) -> float:
        """Throttle that exactly cancels gravity at the current mass."""
        return (self.dry_mass + fuel) * -self.gravity / self.max_thrust

    def target_vy(self, altitude: float) -> float:
        """Commanded vertical speed [m/s], negative is down."""
        return -max(self.touchdown_speed, self.descent_gain * altitude)

    def __call__(self, state: Snapshot, console: Console) -> float:
        target = self.target_vy(state.y)
        throttle = self.hover_throttle(state.fuel) + self.rate_loop.update(target - state.vy, self.dt)
        console.print(f"vy_cmd={target:.2f} throttle={throttle:.3f}")
        return throttle
