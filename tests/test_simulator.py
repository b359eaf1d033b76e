"""Unit tests for the fixed-timestep Simulator.

Tests the mission loop end to end: ordering, terminal outcomes, faults,
determinism and cancellation.
"""

import polars as pl
import pytest
from numpy.testing import assert_allclose

from gnc_trainer.control import DescentAutopilot, PIDGains
from gnc_trainer.errors import InvalidConfigError, RunCancelled
from gnc_trainer.levels import get_level
from gnc_trainer.mission.evaluator import FailureReason, Status
from gnc_trainer.simulation import MissionResult, SimConfig, Simulator, run_mission


def engine_off(state, console):
    return 0.0


def bang_bang(state, console):
    return 0.8 if state.vy < -1.5 else 0.3


# =============================================================================
# Configuration Tests
# =============================================================================


class TestSimConfig:
    """Test configuration validation."""

    def test_defaults(self):
        config = SimConfig()
        assert config.dt == 0.02
        assert config.max_duration == 300.0

    @pytest.mark.parametrize("kwargs,field", [
        ({"dt": 0.0}, "sim.dt"),
        ({"dt": -0.1}, "sim.dt"),
        ({"max_duration": 0.0}, "sim.max_duration"),
        ({"operation_budget": 0}, "sim.operation_budget"),
    ])
    def test_invalid(self, kwargs, field):
        with pytest.raises(InvalidConfigError) as excinfo:
            SimConfig(**kwargs)
        assert excinfo.value.field == field


# =============================================================================
# Loop Tests
# =============================================================================


class TestLoop:
    """Test the per-tick pipeline."""

    def test_first_tick(self, make_scenario):
        sim = Simulator(make_scenario(), engine_off, SimConfig(dt=0.1))
        record = next(iter(sim.ticks()))

        assert record.tick == 1
        assert_allclose(record.time, 0.1)
        assert_allclose(record.state.vy, -0.162, atol=1e-12)
        assert_allclose(record.state.y, 49.9838, atol=1e-12)
        assert record.command.throttles == (0.0,)
        assert record.outcome.status is Status.RUNNING

    def test_ground_impact(self, make_scenario):
        scenario = make_scenario(initial={"y0": 10.0, "vy0": -5.0})
        result = run_mission(scenario, engine_off, SimConfig(dt=0.02))

        assert result.outcome.reason is FailureReason.GROUND_IMPACT
        assert not result.success
        assert result.final_state.y <= 0.0
        assert result.message == "Crashed."
        assert result.telemetry[-1].outcome == result.outcome

    def test_timeout(self, make_scenario):
        scenario = make_scenario(initial={"y0": 100.0})
        result = run_mission(scenario, engine_off, SimConfig(dt=0.1, max_duration=1.0))

        assert result.outcome.reason is FailureReason.TIMEOUT
        assert result.ticks == 10
        assert_allclose(result.time, 1.0)
        assert len(result.telemetry) == 10

    def test_settles_on_ground(self, make_scenario):
        """A slow touchdown rests at y = 0 instead of sinking."""
        scenario = make_scenario(
            initial={"y0": 0.05, "vy0": -0.5},
            success={"persistence_period": 10.0},
        )
        result = run_mission(scenario, engine_off, SimConfig(dt=0.02, max_duration=2.0))

        assert result.outcome.reason is FailureReason.TIMEOUT
        assert result.final_state.y == 0.0
        assert result.final_state.vy == 0.0
        assert min(r.state.y for r in result.telemetry) >= -0.05

    def test_lunar_descent_lands(self):
        """The reference autopilot completes the first level."""
        scenario = get_level(0)
        config = SimConfig(dt=0.02, max_duration=120.0)
        result = run_mission(scenario, DescentAutopilot.from_scenario(scenario, config.dt), config)

        assert result.success, result.summary()
        assert abs(result.final_state.vy) <= scenario.success.vy_max
        assert 0.0 < result.final_state.fuel < scenario.initial.fuel

    def test_persistence_reported(self):
        scenario = get_level(0)
        result = run_mission(scenario, DescentAutopilot.from_scenario(scenario, 0.02))
        assert_allclose(result.telemetry[-1].persistence_timer, scenario.success.persistence_period)

    def test_console_in_telemetry(self, make_scenario):
        def control(state, console):
            console.print("y", round(state.y))
            return 0.0

        sim = Simulator(make_scenario(), control, SimConfig(dt=0.1))
        record = next(iter(sim.ticks()))
        assert record.console == ("y 50",)


# =============================================================================
# Fault Tests
# =============================================================================


class TestFaults:
    """Faults end the run as failures instead of escaping."""

    def test_runtime_error(self, make_scenario):
        def control(state, console):
            raise RuntimeError("sensor offline")

        scenario = make_scenario()
        result = run_mission(scenario, control)

        assert result.outcome.reason is FailureReason.CONTROLLER_FAULT
        assert "sensor offline" in result.outcome.detail
        assert result.ticks == 1
        assert result.telemetry[0].command is None
        assert result.final_state == scenario.initial.with_time(result.telemetry[0].time)

    def test_bad_shape(self, make_scenario):
        result = run_mission(make_scenario(), lambda state, console: [0.5, 0.1])
        assert result.outcome.reason is FailureReason.CONTROLLER_FAULT

    def test_budget_exceeded(self, make_scenario):
        def control(state, console):
            while True:
                state = state
                console = console

        result = run_mission(make_scenario(), control, SimConfig(operation_budget=500))
        assert result.outcome.reason is FailureReason.CONTROLLER_FAULT
        assert "budget" in result.outcome.detail

    def test_fault_after_some_ticks(self, make_scenario):
        calls = []

        def control(state, console):
            calls.append(state.y)
            if len(calls) == 5:
                return "boom"
            return 0.0

        result = run_mission(make_scenario(), control, SimConfig(dt=0.1))
        assert result.ticks == 5
        assert result.outcome.reason is FailureReason.CONTROLLER_FAULT
        assert result.final_state == result.telemetry[3].state.with_time(0.5)

    def test_divergence(self, make_scenario):
        scenario = make_scenario(initial={"y0": 0.0, "vy0": 1e308})
        result = run_mission(scenario, engine_off, SimConfig(dt=10.0))

        assert result.outcome.reason is FailureReason.DIVERGED
        assert result.final_state == scenario.initial.with_time(10.0)

    def test_faulted_record_time_matches_state(self, make_scenario):
        calls = []

        def control(state, console):
            calls.append(state.y)
            return "boom" if len(calls) == 3 else 0.0

        result = run_mission(make_scenario(), control)
        assert [r.state.time for r in result.telemetry] == [r.time for r in result.telemetry]

    def test_huge_integer_output(self, make_scenario):
        result = run_mission(make_scenario(), lambda state, console: 10**400)
        assert result.outcome.status is Status.FAILURE
        assert result.outcome.reason is FailureReason.CONTROLLER_FAULT
        assert "finite" in result.outcome.detail


# =============================================================================
# Determinism and Control Tests
# =============================================================================


class TestRunControl:
    """Determinism, cancellation and result helpers."""

    def test_deterministic(self, make_scenario):
        scenario = make_scenario()
        first = run_mission(scenario, bang_bang, SimConfig(max_duration=30.0))
        second = run_mission(scenario, bang_bang, SimConfig(max_duration=30.0))

        assert first.ticks == second.ticks
        assert first.outcome == second.outcome
        assert first.telemetry == second.telemetry

    def test_rerun_same_simulator(self, make_scenario):
        sim = Simulator(make_scenario(), bang_bang, SimConfig(max_duration=10.0))
        first = sim.run()
        second = sim.run()
        assert first.telemetry == second.telemetry

    def test_autopilot_reused_across_runs(self):
        scenario = get_level(0)
        physics = scenario.physics
        autopilot = DescentAutopilot(
            dry_mass=physics.dry_mass, gravity=physics.gravity, max_thrust=physics.max_thrust,
            dt=0.02, gains=PIDGains(kp=0.5, ki=0.1),
        )
        config = SimConfig(max_duration=20.0)
        first = run_mission(scenario, autopilot, config)
        second = run_mission(scenario, autopilot, config)
        assert first.telemetry == second.telemetry

    def test_cancel_before_run(self, make_scenario):
        sim = Simulator(make_scenario(), engine_off)
        sim.cancel()
        with pytest.raises(RunCancelled):
            sim.run()

        sim.reset()
        assert sim.run().ticks > 0

    def test_cancel_mid_run(self, make_scenario):
        sim = Simulator(make_scenario(), engine_off, SimConfig(dt=0.1))
        seen = 0
        with pytest.raises(RunCancelled):
            for record in sim.ticks():
                seen = record.tick
                if record.tick == 5:
                    sim.cancel()
        assert seen == 5
        assert sim.outcome.status is Status.RUNNING

    def test_without_telemetry(self, make_scenario):
        config = SimConfig(dt=0.1, max_duration=1.0, record_telemetry=False)
        result = run_mission(make_scenario(), engine_off, config)
        assert result.telemetry == []
        assert result.ticks == 10

    def test_to_dataframe(self, make_scenario):
        result = run_mission(make_scenario(), engine_off, SimConfig(dt=0.1, max_duration=2.0))
        df = result.to_dataframe()

        assert isinstance(df, pl.DataFrame)
        assert df.height == result.ticks
        assert {"time", "x", "y", "vx", "vy", "fuel", "throttle", "status"} <= set(df.columns)
        assert df["status"][-1] == "Failure"

    def test_summary(self, make_scenario):
        result = run_mission(make_scenario(), engine_off, SimConfig(dt=0.1, max_duration=1.0))
        text = result.summary()
        assert "Test Descent" in text
        assert "Failure(Timeout)" in text
        assert isinstance(result, MissionResult)
