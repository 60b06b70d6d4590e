from civic_intake.schemas.record_schema import IntakeRecord
from civic_intake.schemas.session_schema import (
    ContinuationSignal,
    DialogueSession,
    DialogueStage,
    Speaker,
    TranscriptTurn,
)

__all__ = [
    "ContinuationSignal",
    "DialogueSession",
    "DialogueStage",
    "IntakeRecord",
    "Speaker",
    "TranscriptTurn",
]
