from civic_intake.conversation.completion import CompletionHandoff
from civic_intake.conversation.field_pipeline import FieldExtractionPipeline
from civic_intake.conversation.orchestrator import DialogueOrchestrator, TurnOutcome
from civic_intake.conversation.state_machine import (
    DialogueStateMachine,
    InvalidTransitionError,
    TransitionTrigger,
)

__all__ = [
    "CompletionHandoff",
    "DialogueOrchestrator",
    "DialogueStateMachine",
    "FieldExtractionPipeline",
    "InvalidTransitionError",
    "TransitionTrigger",
    "TurnOutcome",
]
