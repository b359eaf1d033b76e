"""PID loop for lander autopilots.

Used on a single channel per instance: vertical speed to throttle in the
reference autopilot, attitude to gimbal in learner controllers.

Windup is handled two ways:
- `integral_limits` hard-clamps the accumulated error
- while the output sits on a limit, error that would push it further into
  the limit is not integrated

Example:
    >>> from gnc_trainer.control import PIDController
    >>>
    >>> rate_loop = PIDController(kp=0.5, ki=0.05, output_limits=(-0.5, 0.5))
    >>> throttle = hover_throttle + rate_loop.update(target_vy - state.vy, dt=0.02)
"""

from dataclasses import dataclass, field

from beartype import beartype


@beartype
@dataclass
class PIDGains:
    """Proportional, integral and derivative gains."""
    kp: float = 1.0
    ki: float = 0.0
    kd: float = 0.0


@beartype
@dataclass
class PIDController:
    """Discrete PID in parallel form, u = kp*e + ki*sum(e*dt) + kd*de/dt.

    Attributes:
        kp: Proportional gain
        ki: Integral gain
        kd: Derivative gain
        output_limits: (min, max) saturation of the output
        integral_limits: (min, max) clamp on the accumulated error
        derivative_filter: Weight of the newest derivative sample (0-1]
    """
    kp: float = 1.0
    ki: float = 0.0
    kd: float = 0.0
    output_limits: tuple[float, float] | None = None
    integral_limits: tuple[float, float] | None = None
    derivative_filter: float = 0.1

    # Internal
    _integral: float = field(default=0.0, init=False, repr=False)
    _last_error: float | None = field(default=None, init=False, repr=False)
    _derivative: float = field(default=0.0, init=False, repr=False)

    @classmethod
    def from_gains(
        cls,
        gains: PIDGains,
        output_limits: tuple[float, float] | None = None,
        integral_limits: tuple[float, float] | None = None,
    ) -> "PIDController":
        return cls(
            kp=gains.kp,
            ki=gains.ki,
            kd=gains.kd,
            output_limits=output_limits,
            integral_limits=integral_limits,
        )

    def reset(self) -> None:
        """Forget accumulated error and derivative history."""
        self._integral = 0.0
        self._last_error = None
        self._derivative = 0.0

    def update(self, error: float, dt: float) -> float:
        """Advance the loop by one sample.

        Args:
            error: Setpoint minus measurement
            dt: Sample period [s]; non-positive periods return 0

        Returns:
            Saturated control output
        """
        if dt <= 0:
            return 0.0

        derivative = self._update_derivative(error, dt)
        integral = _clamp(self._integral + error * dt, self.integral_limits)

        raw = self.kp * error + self.ki * integral + self.kd * derivative
        output = _clamp(raw, self.output_limits)

        # Hold the integral while saturated in the direction of the error
        if output == raw or (raw > output) != (error > 0):
            self._integral = integral
        self._last_error = error
        return output

    def _update_derivative(self, error: float, dt: float) -> float:
        if self._last_error is None:
            return self._derivative
        sample = (error - self._last_error) / dt
        alpha = self.derivative_filter
        self._derivative = alpha * sample + (1.0 - alpha) * self._derivative
        return self._derivative


def _clamp(value: float, limits: tuple[float, float] | None) -> float:
    if limits is None:
        return float(value)
    return float(min(max(value, limits[0]), limits[1]))
