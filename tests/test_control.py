"""Unit tests for the PID controller and the reference descent autopilot."""

from numpy.testing import assert_allclose

from gnc_trainer.control import Console, DescentAutopilot, PIDController, PIDGains, Snapshot
from gnc_trainer.levels import get_level

# =============================================================================
# PID Tests
# =============================================================================


class TestPIDController:
    """Test the general-purpose PID loop."""

    def test_proportional_only(self):
        pid = PIDController(kp=2.0)
        assert_allclose(pid.update(0.5, dt=0.1), 1.0)

    def test_integral_accumulates(self):
        pid = PIDController(kp=0.0, ki=1.0)
        pid.update(1.0, dt=0.1)
        assert_allclose(pid.update(1.0, dt=0.1), 0.2)

    def test_output_limits(self):
        pid = PIDController(kp=10.0, output_limits=(-1.0, 1.0))
        assert_allclose(pid.update(5.0, dt=0.1), 1.0)
        assert_allclose(pid.update(-5.0, dt=0.1), -1.0)

    def test_integral_limits(self):
        pid = PIDController(kp=0.0, ki=1.0, integral_limits=(-0.5, 0.5))
        for _ in range(100):
            out = pid.update(1.0, dt=0.1)
        assert_allclose(out, 0.5)

    def test_no_windup_while_saturated(self):
        """Error pushing further into the limit is not accumulated."""
        pid = PIDController(kp=0.0, ki=1.0, output_limits=(-0.1, 0.1))
        for _ in range(10):
            assert_allclose(pid.update(1.0, dt=0.1), 0.1)
        assert_allclose(pid.update(-1.0, dt=0.1), 0.0, atol=1e-12)

    def test_reset(self):
        pid = PIDController(kp=0.0, ki=1.0)
        pid.update(1.0, dt=0.1)
        pid.reset()
        assert_allclose(pid.update(1.0, dt=0.1), 0.1)

    def test_zero_dt(self):
        assert PIDController(kp=1.0).update(1.0, dt=0.0) == 0.0

    def test_from_gains(self):
        gains = PIDGains(kp=1.0, ki=0.5, kd=0.25)
        pid = PIDController.from_gains(gains, output_limits=(-1.0, 1.0))
        assert (pid.kp, pid.ki, pid.kd) == (1.0, 0.5, 0.25)
        assert pid.output_limits == (-1.0, 1.0)


# =============================================================================
# Autopilot Tests
# =============================================================================


class TestDescentAutopilot:
    """Test the reference autopilot's schedule."""

    def test_from_scenario(self):
        autopilot = DescentAutopilot.from_scenario(get_level(0), dt=0.02)
        assert autopilot.max_thrust == 1389.0
        assert autopilot.gravity == -1.62

    def test_hover_throttle(self):
        autopilot = DescentAutopilot.from_scenario(get_level(0), dt=0.02)
        assert_allclose(autopilot.hover_throttle(70.98), 370.98 * 1.62 / 1389.0)

    def test_target_schedule(self):
        autopilot = DescentAutopilot.from_scenario(get_level(0), dt=0.02)
        assert_allclose(autopilot.target_vy(100.0), -20.0)
        assert_allclose(autopilot.target_vy(1.0), -0.5)
        assert_allclose(autopilot.target_vy(0.0), -0.5)

    def test_on_target_commands_hover(self):
        autopilot = DescentAutopilot.from_scenario(get_level(0), dt=0.02)
        snapshot = Snapshot(x=0.0, y=10.0, vx=0.0, vy=-2.0, rotation=0.0, angular_vel=0.0, fuel=50.0)
        console = Console()
        throttle = autopilot(snapshot, console)
        assert_allclose(throttle, autopilot.hover_throttle(50.0))
        assert len(console.lines) == 1

    def test_rate_loop_uses_gains(self):
        gains = PIDGains(kp=0.8, ki=0.1)
        autopilot = DescentAutopilot(dry_mass=300.0, gravity=-1.62, max_thrust=1389.0, dt=0.02, gains=gains)
        assert autopilot.rate_loop.kp == 0.8
        assert autopilot.rate_loop.ki == 0.1
        assert autopilot.rate_loop.output_limits == (-1.0, 1.0)

    def test_reset_clears_rate_loop(self):
        autopilot = DescentAutopilot(
            dry_mass=300.0, gravity=-1.62, max_thrust=1389.0, dt=0.02,
            gains=PIDGains(kp=0.5, ki=1.0),
        )
        snapshot = Snapshot(x=0.0, y=10.0, vx=0.0, vy=-1.5, rotation=0.0, angular_vel=0.0, fuel=50.0)
        first = autopilot(snapshot, Console())
        autopilot(snapshot, Console())
        autopilot.reset()
        assert_allclose(autopilot(snapshot, Console()), first)
