"""Mission judging: outcomes and the success/failure state machine."""

from gnc_trainer.mission.evaluator import (
    EnvelopeCheck,
    FailureReason,
    MissionEvaluator,
    Outcome,
    Status,
)

__all__ = [
    "EnvelopeCheck",
    "FailureReason",
    "MissionEvaluator",
    "Outcome",
    "Status",
]
