#!/usr/bin/env python
"""Lunar descent example.

Flies the first built-in level with the reference autopilot:
1. Load the level
2. Configure the descent autopilot from the level physics
3. Run the mission
4. Inspect telemetry with Polars
"""

from gnc_trainer import DescentAutopilot, SimConfig, get_level, run_mission


def main() -> None:
    """Run the lunar descent example."""

    print("=" * 60)
    print("LUNAR DESCENT")
    print("=" * 60)

    # =========================================================================
    # 1. Load the level
    # =========================================================================
    scenario = get_level(0)
    physics = scenario.physics

    print(f"\nLevel:        {scenario.name}")
    print(f"   {scenario.description}")
    print(f"   Gravity:    {physics.gravity:.2f} m/s^2")
    print(f"   Dry mass:   {physics.dry_mass:.0f} kg")
    print(f"   Max thrust: {physics.max_thrust:.0f} N")
    print(f"   Fuel:       {scenario.initial.fuel:.2f} kg")
    print(f"   Start:      {scenario.initial.y:.0f} m")

    # =========================================================================
    # 2. Configure the autopilot
    # =========================================================================
    config = SimConfig(dt=0.02, max_duration=120.0)
    autopilot = DescentAutopilot.from_scenario(scenario, dt=config.dt)
    print(f"\nHover throttle at start: {autopilot.hover_throttle(scenario.initial.fuel):.3f}")

    # =========================================================================
    # 3. Run
    # =========================================================================
    result = run_mission(scenario, autopilot, config)
    print("\n" + result.summary())

    # =========================================================================
    # 4. Telemetry
    # =========================================================================
    df = result.to_dataframe()
    print(f"\nTelemetry rows: {df.height}")
    print(f"Peak descent rate: {-df['vy'].min():.2f} m/s")
    print(f"Fuel used:         {scenario.initial.fuel - result.final_state.fuel:.2f} kg")


if __name__ == "__main__":
    main()
