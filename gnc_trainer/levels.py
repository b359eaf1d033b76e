"""Built-in training levels.

Levels are kept as level documents (the same layout as JSON level files)
and validated through `Scenario.from_dict` when requested.

Example:
    >>> from gnc_trainer.levels import get_level, list_levels
    >>>
    >>> list_levels()
    [(0, 'Lunar Descent'), (1, 'Hover Hold'), (2, 'Gimbal Landing'), (3, 'Twin Thrusters')]
    >>> scenario = get_level(0)
"""

import copy
from typing import Any

from beartype import beartype

from gnc_trainer.scenario import Scenario

# Apollo LM-class numbers: three 463 N verniers, lunar gravity
_LUNAR_PHYSICS = {"gravity": -1.62, "dry_mass": 300.0, "max_thrust": 1389.0, "isp": 326.0}

LEVEL_DOCUMENTS: dict[int, dict[str, Any]] = {
    0: {
        "name": "Lunar Descent",
        "description": "Throttle-only descent from 100 m. Touch down gently on the pad.",
        "physics": _LUNAR_PHYSICS,
        "initial": {"x0": 0.0, "y0": 100.0, "vx0": 0.0, "vy0": 0.0,
                    "initial_angle": 0.0, "initial_fuel": 70.98},
        "success": {
            "vx_max": 1.0,
            "vy_max": 2.0,
            "position_box": {"x_min": -10.0, "x_max": 10.0, "y_min": 0.0, "y_max": 1.0,
                             "reference": "Absolute"},
            "final_angle": 0.0,
            "angle_tolerance": 0.1,
            "persistence_period": 1.0,
        },
        "failure": {
            "ground_collision": True,
            "bounds": {"x_min": -50.0, "x_max": 50.0, "y_min": -10.0, "y_max": 200.0,
                       "reference": "Absolute"},
        },
        "control_scheme": "VerticalOnly",
        "success_message": "The Eagle has landed.",
        "failure_message": "The lander was lost. Check your descent rate near the ground.",
        "hints": [
            "Hover throttle is mass * |gravity| / max_thrust.",
            "Command a slower descent as altitude drops.",
        ],
    },
    1: {
        "name": "Hover Hold",
        "description": "Hold position within 2 m of the release point for five seconds.",
        "physics": _LUNAR_PHYSICS,
        "initial": {"x0": 0.0, "y0": 20.0, "vx0": 0.0, "vy0": -1.0,
                    "initial_angle": 0.0, "initial_fuel": 40.0},
        "success": {
            "vx_max": 0.5,
            "vy_max": 0.5,
            "position_box": {"x_min": -1.0, "x_max": 1.0, "y_min": -2.0, "y_max": 2.0,
                             "reference": "Initial"},
            "final_angle": 0.0,
            "angle_tolerance": 0.1,
            "persistence_period": 5.0,
        },
        "failure": {"ground_collision": True, "bounds": None},
        "control_scheme": "VerticalOnly",
        "success_message": "Rock steady.",
        "failure_message": "The hover drifted away.",
        "hints": ["Use the fuel reading to keep the hover throttle accurate."],
    },
    2: {
        "name": "Gimbal Landing",
        "description": "Steer the thrust vector to land on the target pad 30 m away.",
        "physics": {"gravity": -1.62, "dry_mass": 300.0, "max_thrust": 2000.0, "isp": 326.0},
        "initial": {"x0": -30.0, "y0": 80.0, "vx0": 3.0, "vy0": 0.0,
                    "initial_angle": 0.0, "initial_fuel": 80.0},
        "success": {
            "vx_max": 1.0,
            "vy_max": 2.0,
            "position_box": {"x_min": -5.0, "x_max": 5.0, "y_min": 0.0, "y_max": 1.0,
                             "reference": "Relative"},
            "final_angle": 0.0,
            "angle_tolerance": 0.15,
            "persistence_period": 2.0,
        },
        "failure": {
            "ground_collision": True,
            "bounds": {"x_min": -100.0, "x_max": 100.0, "y_min": -10.0, "y_max": 200.0,
                       "reference": "Absolute"},
        },
        "control_scheme": "ThrustVector",
        "target": {"x": 0.0, "y": 0.0},
        "actuators": {"max_gimbal": 0.4, "throttle_rate": 2.0, "gimbal_rate": 1.0},
        "success_message": "Pinpoint landing.",
        "failure_message": "Missed the pad.",
        "hints": ["Positive gimbal rotates the vehicle clockwise.",
                  "Tilt to move sideways, then level out before touchdown."],
    },
    3: {
        "name": "Twin Thrusters",
        "description": "No gimbal: steer with two side-by-side engines and land on the pad.",
        "physics": {"gravity": -1.62, "dry_mass": 300.0, "max_thrust": 800.0, "isp": 300.0},
        "initial": {"x0": 0.0, "y0": 60.0, "vx0": 0.0, "vy0": 0.0,
                    "initial_angle": 0.0, "initial_fuel": 60.0},
        "success": {
            "vx_max": 1.0,
            "vy_max": 2.0,
            "position_box": {"x_min": -4.0, "x_max": 4.0, "y_min": 0.0, "y_max": 1.0,
                             "reference": "Relative"},
            "final_angle": 0.0,
            "angle_tolerance": 0.1,
            "persistence_period": 1.0,
        },
        "failure": {
            "ground_collision": True,
            "bounds": {"x_min": -80.0, "x_max": 80.0, "y_min": -10.0, "y_max": 150.0,
                       "reference": "Absolute"},
        },
        "control_scheme": "Differential",
        "target": {"x": 15.0, "y": 0.0},
        "actuators": {"thrusters": 2},
        "success_message": "Balanced to the ground.",
        "failure_message": "The vehicle tumbled.",
        "hints": ["More thrust on the right engine rotates the vehicle counter-clockwise."],
    },
}


def builtin_levels() -> dict[int, dict[str, Any]]:
    """Level documents keyed by level number (deep copies)."""
    return copy.deepcopy(LEVEL_DOCUMENTS)


def list_levels() -> list[tuple[int, str]]:
    """(number, name) for every built-in level, in order."""
    return [(number, doc["name"]) for number, doc in sorted(LEVEL_DOCUMENTS.items())]


@beartype
def get_level(number: int) -> Scenario:
    """Load a built-in level as a validated Scenario."""
    if number not in LEVEL_DOCUMENTS:
        raise KeyError(f"Unknown level {number}. Available: {sorted(LEVEL_DOCUMENTS)}")
    return Scenario.from_dict(copy.deepcopy(LEVEL_DOCUMENTS[number]))
