"""Dynamics module for planar lander simulation.

This module provides the state representation and angle helpers. The
integrator lives in `gnc_trainer.dynamics.integrator`, which depends on the
scenario model and is imported from there directly.

Example:
    >>> from gnc_trainer.dynamics import VehicleState
    >>> from gnc_trainer.dynamics.integrator import step
    >>>
    >>> state = VehicleState(x=0.0, y=50.0, fuel=70.0)
    >>> state = step(state, command, scenario.physics, dt=0.02)
"""

from gnc_trainer.dynamics.state import (
    VehicleState,
    angle_difference,
    normalize_angle,
)

__all__ = [
    "VehicleState",
    "angle_difference",
    "normalize_angle",
]
