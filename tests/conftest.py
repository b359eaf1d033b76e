"""Shared fixtures: a small lunar level document and a scenario factory."""

import copy
from typing import Any

import pytest

from gnc_trainer.scenario import Scenario


def _base_document() -> dict[str, Any]:
    return {
        "name": "Test Descent",
        "physics": {"gravity": -1.62, "dry_mass": 300.0, "max_thrust": 1389.0, "isp": 326.0},
        "initial": {"x0": 0.0, "y0": 50.0, "vx0": 0.0, "vy0": 0.0,
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
        "failure": {"ground_collision": True, "bounds": None},
        "control_scheme": "VerticalOnly",
        "success_message": "Landed.",
        "failure_message": "Crashed.",
    }


def _merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


@pytest.fixture
def level_doc() -> dict[str, Any]:
    """A fresh copy of the base level document."""
    return copy.deepcopy(_base_document())


@pytest.fixture
def make_scenario():
    """Factory: base document with nested overrides merged in."""
    def factory(**overrides: Any) -> Scenario:
        return Scenario.from_dict(_merge(_base_document(), overrides))
    return factory
