"""Vehicle geometry and physical constants shared by the engine."""

# Physical dimensions [m]
LANDER_HEIGHT: float = 3.0
LANDER_WIDTH: float = 2.0
GIMBAL_ARM: float = LANDER_HEIGHT / 2.0  # CG to engine gimbal point

# Rotational dynamics
MOMENT_OF_INERTIA: float = 100.0  # [kg*m^2]

# Standard gravity for Isp -> mass flow conversion
G0: float = 9.80665  # [m/s^2]

# Actuator defaults
DEFAULT_MAX_GIMBAL: float = 0.4  # [rad] (~23 degrees)
DEFAULT_THRUSTERS: int = 2

# Slack for comparisons of accumulated simulation time
TIME_EPSILON: float = 1e-9
