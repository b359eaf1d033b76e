"""Planar rigid body integrator for the lander.

Advances a `VehicleState` by one fixed timestep under gravity and the
commanded thrust. The equations use:
- Newton's second law with gravity along the world vertical only
- Thrust along the body axis, rotated by attitude and gimbal deflection
- Torque from gimbal deflection or thrust differential about the CG
- Rocket mass flow: mdot = thrust / (isp * g0)

Integration is semi-implicit Euler: velocities are updated from the
acceleration first and positions from the new velocities. This stays
stable under the bang-bang throttle patterns learners write.

Fuel policy: a step that begins with no fuel produces no thrust at all. A
step that begins with fuel burns its full commanded thrust and the tank is
clamped at zero; the last burning step is not prorated.

Example:
    >>> from gnc_trainer.dynamics.integrator import step
    >>> from gnc_trainer.control import ControlCommand
    >>>
    >>> state = scenario.initial
    >>> state = step(state, ControlCommand.throttle(0.5), scenario.physics, dt=0.02)
"""

import math

from beartype import beartype
from numba import njit

from gnc_trainer.constants import G0, GIMBAL_ARM, LANDER_WIDTH, MOMENT_OF_INERTIA
from gnc_trainer.control.commands import ControlCommand
from gnc_trainer.dynamics.state import VehicleState
from gnc_trainer.errors import DivergedError
from gnc_trainer.scenario import ControlScheme, PhysicsParams

# =============================================================================
# Numba Core
# =============================================================================


@njit(cache=True)
def _semi_implicit_step(
    x: float, y: float,
    vx: float, vy: float,
    angle: float, omega: float,
    fx: float, fy: float, torque: float,
    mass: float, gravity: float, inertia: float,
    dt: float,
) -> tuple[float, float, float, float, float, float]:
    """One semi-implicit Euler step for the planar rigid body."""
    ax = fx / mass
    ay = fy / mass + gravity
    alpha = torque / inertia

    vx_new = vx + ax * dt
    vy_new = vy + ay * dt
    omega_new = omega + alpha * dt

    return (
        x + vx_new * dt,
        y + vy_new * dt,
        vx_new,
        vy_new,
        angle + omega_new * dt,
        omega_new,
    )


# =============================================================================
# Thrust Model
# =============================================================================


@beartype
def thruster_offsets(count: int) -> tuple[float, ...]:
    """Lateral positions of `count` thrusters spread across the base [m].

    Offsets are left to right in the body frame; a single engine sits on the
    centerline.
    """
    if count < 1:
        raise ValueError(f"Need at least one thruster, got {count}")
    if count == 1:
        return (0.0,)
    spacing = LANDER_WIDTH / (count - 1)
    return tuple(-LANDER_WIDTH / 2.0 + i * spacing for i in range(count))


@beartype
def mass_flow(thrust: float, isp: float) -> float:
    """Propellant mass flow for a thrust level [kg/s]."""
    return thrust / (isp * G0)


@beartype
def thrust_and_torque(
    command: ControlCommand,
    max_thrust: float,
) -> tuple[float, float, float]:
    """Resolve a command into net thrust, gimbal angle and torque.

    Returns:
        (thrust [N], gimbal [rad], torque [N*m]) with torque counter-clockwise
        positive.
    """
    if command.scheme is ControlScheme.VERTICAL_ONLY:
        return command.throttles[0] * max_thrust, 0.0, 0.0

    if command.scheme is ControlScheme.THRUST_VECTOR:
        thrust = command.throttles[0] * max_thrust
        # Thrust acts at the gimbal point below the CG
        torque = -math.sin(command.gimbal) * thrust * GIMBAL_ARM
        return thrust, command.gimbal, torque

    if command.scheme is ControlScheme.DIFFERENTIAL:
        forces = [throttle * max_thrust for throttle in command.throttles]
        offsets = thruster_offsets(len(forces))
        torque = sum(offset * force for offset, force in zip(offsets, forces))
        return float(sum(forces)), 0.0, float(torque)

    raise ValueError(f"Unknown control scheme: {command.scheme}")


# =============================================================================
# Integration
# =============================================================================


@beartype
def step(
    state: VehicleState,
    command: ControlCommand,
    params: PhysicsParams,
    dt: float,
    inertia: float = MOMENT_OF_INERTIA,
) -> VehicleState:
    """Advance the vehicle by one timestep.

    Args:
        state: Current state
        command: Validated, clamped command for this tick
        params: Scenario physics constants
        dt: Time step [s]
        inertia: Moment of inertia about the CG [kg*m^2]

    Returns:
        New state at t + dt

    Raises:
        DivergedError: If any resulting value is not finite
    """
    if dt <= 0:
        raise ValueError(f"dt must be positive, got {dt}")

    if state.fuel > 0.0:
        thrust, gimbal, torque = thrust_and_torque(command, params.max_thrust)
    else:
        thrust, gimbal, torque = 0.0, 0.0, 0.0

    fuel = max(0.0, state.fuel - mass_flow(thrust, params.isp) * dt)

    # Angle 0 points up; gimbal deflects the thrust line counter-clockwise
    direction = -state.angle - gimbal
    fx = math.sin(direction) * thrust
    fy = math.cos(direction) * thrust

    x, y, vx, vy, angle, omega = _semi_implicit_step(
        state.x, state.y,
        state.vx, state.vy,
        state.angle, state.angular_velocity,
        fx, fy, torque,
        state.mass(params.dry_mass), params.gravity, inertia,
        dt,
    )

    # Resting on the ground: the surface holds the vehicle up
    grounded = state.y <= 0.0 and state.vy >= 0.0
    if grounded and y <= 0.0:
        x, y, vx, vy = state.x, 0.0, 0.0, 0.0
        angle, omega = state.angle, 0.0

    new_state = VehicleState(
        x=float(x),
        y=float(y),
        vx=float(vx),
        vy=float(vy),
        angle=float(angle),
        angular_velocity=float(omega),
        fuel=float(fuel),
        time=state.time + dt,
    )
    if not new_state.is_finite():
        raise DivergedError(f"Non-finite state at t={new_state.time:.3f}s: {new_state}")
    return new_state


@beartype
def rest_on_ground(state: VehicleState) -> VehicleState:
    """Settle a vehicle that touched down: y = 0 and no motion."""
    return VehicleState(
        x=state.x,
        y=0.0,
        vx=0.0,
        vy=0.0,
        angle=state.angle,
        angular_velocity=0.0,
        fuel=state.fuel,
        time=state.time,
    )
