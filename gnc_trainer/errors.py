"""Error taxonomy for the mission engine.

Only configuration errors stop a run from happening. Everything raised
during a run (controller faults, divergence) is caught by the simulator and
turned into a terminal failure outcome.
"""

from enum import Enum


class ConfigError(ValueError):
    """A level document could not be turned into a Scenario."""


class MalformedConfigError(ConfigError):
    """The document is structurally invalid (bad JSON, missing keys, wrong types)."""


class InvalidConfigError(ConfigError):
    """The document is well formed but a value violates a constraint."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field


class FaultKind(Enum):
    """Why a controller invocation was rejected."""

    COMPILE_ERROR = "compile_error"
    BAD_SHAPE = "bad_shape"
    RUNTIME_ERROR = "runtime_error"
    BUDGET_EXCEEDED = "budget_exceeded"


class ControllerFault(Exception):
    """The user controller failed, returned garbage or ran too long."""

    def __init__(self, kind: FaultKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


class DivergedError(ArithmeticError):
    """Integration produced a non-finite value."""


class RunCancelled(Exception):
    """The run was cancelled at a tick boundary."""
