"""Controller side of the engine.

Provides the command variant handed to the integrator, the adapter that
runs user control functions safely, and a PID-based reference autopilot.
"""

from gnc_trainer.control.adapter import (
    DEFAULT_OPERATION_BUDGET,
    Console,
    Controller,
    ControllerAdapter,
    Snapshot,
    compile_controller,
)
from gnc_trainer.control.autopilot import DescentAutopilot
from gnc_trainer.control.commands import ControlCommand
from gnc_trainer.control.pid import PIDController, PIDGains

__all__ = [
    "DEFAULT_OPERATION_BUDGET",
    "Console",
    "ControlCommand",
    "Controller",
    "ControllerAdapter",
    "DescentAutopilot",
    "PIDController",
    "PIDGains",
    "Snapshot",
    "compile_controller",
]
