"""
Transition table for the intake dialogue.

Four stages and explicit triggers. The orchestrator decides *which*
trigger an utterance produces; this module decides whether that trigger
is legal from the current stage and what stage it leads to. Because a
turn starts from a stored stage, the machine can be constructed at any
stage, not only the initial one.

Usage:
    sm = DialogueStateMachine()
    sm.transition(TransitionTrigger.SERVICE_RECOGNIZED)
    assert sm.current_state == DialogueStage.INFORMATION_GATHERING
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from civic_intake.schemas.session_schema import DialogueStage

logger = logging.getLogger(__name__)


class TransitionTrigger(str, Enum):
    """Events that cause state transitions."""
    SERVICE_RECOGNIZED = "service_recognized"
    SERVICE_UNRECOGNIZED = "service_unrecognized"
    FIELD_ACCEPTED = "field_accepted"
    FIELD_REJECTED = "field_rejected"
    FIELD_SKIPPED = "field_skipped"
    ALL_FIELDS_COLLECTED = "all_fields_collected"
    CALLER_CONFIRMED = "caller_confirmed"
    CALLER_DECLINED = "caller_declined"
    PERSISTENCE_FAILED = "persistence_failed"
    COLLABORATOR_FAILED = "collaborator_failed"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"
    DUPLICATE_DELIVERY = "duplicate_delivery"


@dataclass(frozen=True)
class Transition:
    """A single valid state transition."""
    from_state: DialogueStage
    to_state: DialogueStage
    trigger: TransitionTrigger


@dataclass
class StateEntry:
    """Recorded history entry for a state visit."""
    state: DialogueStage
    entered_at: datetime
    trigger: Optional[TransitionTrigger] = None


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current state."""


_S = DialogueStage
_T = TransitionTrigger


class DialogueStateMachine:
    """
    Deterministic stage control for one turn.

    Every transition must be explicitly defined. A trigger that has no
    entry for the current stage is rejected with the list of triggers
    that would have been allowed.
    """

    TRANSITIONS: list[Transition] = [
        # --- Service selection ---
        Transition(_S.SERVICE_SELECTION, _S.INFORMATION_GATHERING, _T.SERVICE_RECOGNIZED),
        Transition(_S.SERVICE_SELECTION, _S.SERVICE_SELECTION, _T.SERVICE_UNRECOGNIZED),
        Transition(_S.SERVICE_SELECTION, _S.SERVICE_SELECTION, _T.COLLABORATOR_FAILED),
        Transition(_S.SERVICE_SELECTION, _S.SERVICE_SELECTION, _T.ATTEMPTS_EXHAUSTED),

        # --- Field collection ---
        Transition(_S.INFORMATION_GATHERING, _S.INFORMATION_GATHERING, _T.FIELD_ACCEPTED),
        Transition(_S.INFORMATION_GATHERING, _S.INFORMATION_GATHERING, _T.FIELD_REJECTED),
        Transition(_S.INFORMATION_GATHERING, _S.INFORMATION_GATHERING, _T.FIELD_SKIPPED),
        Transition(_S.INFORMATION_GATHERING, _S.INFORMATION_GATHERING, _T.COLLABORATOR_FAILED),
        Transition(_S.INFORMATION_GATHERING, _S.INFORMATION_GATHERING, _T.ATTEMPTS_EXHAUSTED),
        Transition(_S.INFORMATION_GATHERING, _S.CONFIRMATION, _T.ALL_FIELDS_COLLECTED),

        # --- Confirmation gate ---
        Transition(_S.CONFIRMATION, _S.COMPLETED, _T.CALLER_CONFIRMED),
        Transition(_S.CONFIRMATION, _S.INFORMATION_GATHERING, _T.CALLER_DECLINED),
        Transition(_S.CONFIRMATION, _S.CONFIRMATION, _T.PERSISTENCE_FAILED),
        Transition(_S.CONFIRMATION, _S.CONFIRMATION, _T.COLLABORATOR_FAILED),

        # --- Terminal ---
        Transition(_S.COMPLETED, _S.COMPLETED, _T.DUPLICATE_DELIVERY),
    ]

    def __init__(self, initial: DialogueStage = DialogueStage.SERVICE_SELECTION) -> None:
        self._current_state = initial
        self._history: list[StateEntry] = [
            StateEntry(state=initial, entered_at=datetime.now(timezone.utc))
        ]

    @property
    def current_state(self) -> DialogueStage:
        return self._current_state

    def transition(self, trigger: TransitionTrigger) -> DialogueStage:
        """
        Execute a state transition.

        Args:
            trigger: The event triggering the transition.

        Returns:
            The new dialogue stage.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.trigger == trigger:
                old_state = self._current_state
                self._current_state = t.to_state
                self._history.append(StateEntry(
                    state=self._current_state,
                    entered_at=datetime.now(timezone.utc),
                    trigger=trigger,
                ))
                logger.debug(
                    "State transition: %s -> %s (trigger: %s)",
                    old_state.value, self._current_state.value, trigger.value,
                )
                return self._current_state

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def get_valid_triggers(self) -> list[TransitionTrigger]:
        """Return all triggers valid from the current state."""
        return [t.trigger for t in self.TRANSITIONS if t.from_state == self._current_state]

    def get_history(self) -> list[StateEntry]:
        return list(self._history)

    def get_state_trace(self) -> list[str]:
        """Return ordered list of stage names visited."""
        return [entry.state.value for entry in self._history]

    def is_terminal(self) -> bool:
        return self._current_state == DialogueStage.COMPLETED
