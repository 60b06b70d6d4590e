"""
Dialogue orchestrator: one session plus one utterance in, one prompt out.

Given the stored session and the caller's latest utterance, decide what
to say next and what the session looks like afterwards. The orchestrator
works on a checked-out copy and never writes to the store itself; the
turn service persists the returned session with optimistic concurrency.

Stages:
    service_selection      classify the request against the catalog
    information_gathering  extract the field under the cursor
    confirmation           read back, then submit on a yes
    completed              terminal; duplicate deliveries are no-ops

Collaborator failures and timeouts never end the dialogue: the caller is
asked again in the same stage and the cursor does not move.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from civic_intake.config import settings
from civic_intake.conversation.completion import CompletionHandoff
from civic_intake.conversation.field_pipeline import FieldExtractionPipeline, fill_stats
from civic_intake.conversation.state_machine import DialogueStateMachine, TransitionTrigger
from civic_intake.errors import CollaboratorError, PersistenceError
from civic_intake.logging_context import get_session_logger
from civic_intake.nlu.base import ConfirmationInterpreter, FieldExtractor, ServiceClassifier
from civic_intake.prompts import prompt_templates as prompts
from civic_intake.schemas.record_schema import IntakeRecord
from civic_intake.schemas.session_schema import (
    ContinuationSignal,
    DialogueSession,
    DialogueStage,
    Speaker,
)
from civic_intake.tools.services import ServiceCatalog, ServiceDefinition

logger = get_session_logger(__name__)

# Collaborator failures that are answered with a re-prompt.
RECOVERABLE_ERRORS = (CollaboratorError, TimeoutError)


@dataclass
class TurnOutcome:
    """Result of one turn.

    ``changed`` is False when the turn must not be written back
    (duplicate delivery to a completed or escalated session).
    ``record`` is set on the turn that completed the session.
    """

    prompt: str
    action: ContinuationSignal
    session: DialogueSession
    changed: bool = True
    record: Optional[IntakeRecord] = None
    triggers: tuple[TransitionTrigger, ...] = ()

    @property
    def completed(self) -> bool:
        return self.record is not None and self.session.is_completed


@dataclass
class _StepResult:
    prompt: str
    action: ContinuationSignal = ContinuationSignal.GATHER
    record: Optional[IntakeRecord] = None


class DialogueOrchestrator:
    """Stateless between calls; safe to share across concurrent turns."""

    def __init__(
        self,
        catalog: ServiceCatalog,
        classifier: ServiceClassifier,
        extractor: FieldExtractor,
        interpreter: ConfirmationInterpreter,
        handoff: CompletionHandoff,
        max_field_attempts: Optional[int] = None,
        max_selection_attempts: Optional[int] = None,
    ) -> None:
        self._catalog = catalog
        self._classifier = classifier
        self._pipeline = FieldExtractionPipeline(extractor)
        self._interpreter = interpreter
        self._handoff = handoff
        self._max_field_attempts = max_field_attempts or settings.guardrails.max_field_attempts
        self._max_selection_attempts = (
            max_selection_attempts or settings.guardrails.max_selection_attempts
        )

    @property
    def catalog(self) -> ServiceCatalog:
        return self._catalog

    @property
    def handoff(self) -> CompletionHandoff:
        return self._handoff

    # ------------------------------------------------------------------ #
    # Entry point
    # ------------------------------------------------------------------ #

    def handle_turn(self, session: DialogueSession, utterance: Optional[str]) -> TurnOutcome:
        """
        Process one turn.

        Args:
            session: The stored session; it is not modified.
            utterance: Caller text, or None for the priming turn before
                the caller has said anything.

        Returns:
            TurnOutcome with the next prompt and the updated session copy.
        """
        session = session.checkout()
        sm = DialogueStateMachine(session.stage)

        if session.is_completed:
            sm.transition(TransitionTrigger.DUPLICATE_DELIVERY)
            logger.info("Turn received for completed session; ignoring")
            return TurnOutcome(
                prompt=self._already_completed_prompt(session),
                action=ContinuationSignal.END,
                session=session,
                changed=False,
                triggers=(TransitionTrigger.DUPLICATE_DELIVERY,),
            )

        if session.escalated:
            return TurnOutcome(
                prompt=prompts.build_escalation(session.originating_address),
                action=ContinuationSignal.END,
                session=session,
                changed=False,
            )

        service = self._catalog.get(session.service_id)
        if session.stage != DialogueStage.SERVICE_SELECTION and service is None:
            logger.error("Session refers to unknown service '%s'", session.service_id)
            step = self._escalate(session)
            session.add_turn(Speaker.ASSISTANT, step.prompt)
            return TurnOutcome(step.prompt, step.action, session)

        if utterance is None:
            step = _StepResult(self._current_prompt(session, service))
        else:
            session.add_turn(Speaker.CALLER, utterance)
            handlers: dict[DialogueStage, Callable[..., _StepResult]] = {
                DialogueStage.SERVICE_SELECTION: self._handle_selection,
                DialogueStage.INFORMATION_GATHERING: self._handle_gathering,
                DialogueStage.CONFIRMATION: self._handle_confirmation,
            }
            step = handlers[session.stage](session, service, utterance, sm)
            session.stage = sm.current_state

        session.add_turn(Speaker.ASSISTANT, step.prompt)
        triggers = tuple(e.trigger for e in sm.get_history() if e.trigger is not None)
        return TurnOutcome(
            prompt=step.prompt,
            action=step.action,
            session=session,
            record=step.record,
            triggers=triggers,
        )

    # ------------------------------------------------------------------ #
    # Stage handlers
    # ------------------------------------------------------------------ #

    def _handle_selection(
        self,
        session: DialogueSession,
        service: Optional[ServiceDefinition],
        utterance: str,
        sm: DialogueStateMachine,
    ) -> _StepResult:
        try:
            service_id = self._classifier.classify(utterance, self._catalog)
        except RECOVERABLE_ERRORS as exc:
            logger.warning("Classifier failed: %s", exc)
            sm.transition(TransitionTrigger.COLLABORATOR_FAILED)
            return _StepResult(prompts.build_service_menu_reprompt(self._catalog))

        selected = self._catalog.get(service_id)
        if selected is None:
            if service_id:
                logger.info("Classifier returned '%s', which is not in the catalog", service_id)
            session.attempts += 1
            if session.attempts >= self._max_selection_attempts:
                sm.transition(TransitionTrigger.ATTEMPTS_EXHAUSTED)
                return self._escalate(session)
            sm.transition(TransitionTrigger.SERVICE_UNRECOGNIZED)
            return _StepResult(prompts.build_service_menu_reprompt(self._catalog))

        session.service_id = selected.id
        session.cursor = 0
        session.collected_data = {}
        session.attempts = 0
        sm.transition(TransitionTrigger.SERVICE_RECOGNIZED)
        logger.info("Service selected: %s", selected.id)
        return _StepResult(prompts.build_service_selected(selected, selected.fields[0]))

    def _handle_gathering(
        self,
        session: DialogueSession,
        service: ServiceDefinition,
        utterance: str,
        sm: DialogueStateMachine,
    ) -> _StepResult:
        field = session.current_field(service)
        if field is None:
            logger.warning("Cursor %d outside %s fields; moving to confirmation",
                           session.cursor, service.id)
            session.cursor = service.field_count
            sm.transition(TransitionTrigger.ALL_FIELDS_COLLECTED)
            return _StepResult(
                prompts.build_confirmation_summary(service, session.collected_data)
            )

        try:
            result = self._pipeline.extract(utterance, field)
        except RECOVERABLE_ERRORS as exc:
            logger.warning("Extractor failed for '%s': %s", field.id, exc)
            sm.transition(TransitionTrigger.COLLABORATOR_FAILED)
            return _StepResult(prompts.build_collaborator_failure_reprompt(field))

        if result.is_valid:
            session.collected_data[field.id] = result.value or ""
            sm.transition(TransitionTrigger.FIELD_ACCEPTED)
            logger.debug("Collected '%s'", field.id)
            return self._advance(session, service, sm)

        if result.is_empty:
            session.collected_data.pop(field.id, None)
            sm.transition(TransitionTrigger.FIELD_SKIPPED)
            logger.debug("Optional field '%s' skipped by caller", field.id)
            return self._advance(session, service, sm)

        session.attempts += 1
        if session.attempts >= self._max_field_attempts:
            sm.transition(TransitionTrigger.ATTEMPTS_EXHAUSTED)
            if not field.required:
                logger.info("Giving up on optional field '%s'", field.id)
                session.collected_data.pop(field.id, None)
                step = self._advance(session, service, sm)
                step.prompt = "Let's move on. " + step.prompt
                return step
            return self._escalate(session)

        sm.transition(TransitionTrigger.FIELD_REJECTED)
        return _StepResult(prompts.build_field_reprompt(field))

    def _handle_confirmation(
        self,
        session: DialogueSession,
        service: ServiceDefinition,
        utterance: str,
        sm: DialogueStateMachine,
    ) -> _StepResult:
        try:
            affirmed = self._interpreter.interpret(utterance)
        except RECOVERABLE_ERRORS as exc:
            logger.warning("Confirmation interpreter failed: %s", exc)
            sm.transition(TransitionTrigger.COLLABORATOR_FAILED)
            return _StepResult(
                prompts.build_confirmation_reprompt(service, session.collected_data)
            )

        if not affirmed:
            session.cursor = 0
            session.attempts = 0
            sm.transition(TransitionTrigger.CALLER_DECLINED)
            logger.info("Caller declined the read-back; collecting again from the start")
            return _StepResult(prompts.build_decline_restart(service.fields[0]))

        try:
            record = self._handoff.submit(session, service)
        except PersistenceError:
            sm.transition(TransitionTrigger.PERSISTENCE_FAILED)
            return _StepResult(prompts.build_persistence_failure(), ContinuationSignal.END)

        session.record_id = record.id
        sm.transition(TransitionTrigger.CALLER_CONFIRMED)
        logger.info("Session completed with request %s", record.reference)
        return _StepResult(
            prompts.build_completion(service, record.reference),
            ContinuationSignal.END,
            record,
        )

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _advance(
        self, session: DialogueSession, service: ServiceDefinition, sm: DialogueStateMachine
    ) -> _StepResult:
        session.cursor += 1
        session.attempts = 0
        next_field = session.current_field(service)
        if next_field is not None:
            return _StepResult(prompts.build_next_field(next_field))

        sm.transition(TransitionTrigger.ALL_FIELDS_COLLECTED)
        logger.info("All fields collected: %s", fill_stats(service, session.collected_data))
        return _StepResult(prompts.build_confirmation_summary(service, session.collected_data))

    def _escalate(self, session: DialogueSession) -> _StepResult:
        session.escalated = True
        logger.warning(
            "Escalating to staff callback at stage %s, cursor %d",
            session.stage.value, session.cursor,
        )
        return _StepResult(
            prompts.build_escalation(session.originating_address), ContinuationSignal.END
        )

    def _current_prompt(
        self, session: DialogueSession, service: Optional[ServiceDefinition]
    ) -> str:
        """What to say when the transport primes a turn without caller input."""
        if session.stage == DialogueStage.SERVICE_SELECTION or service is None:
            return prompts.build_greeting(self._catalog)
        if session.stage == DialogueStage.CONFIRMATION:
            return prompts.build_confirmation_summary(service, session.collected_data)
        field = session.current_field(service)
        if field is None:
            return prompts.build_confirmation_summary(service, session.collected_data)
        if session.cursor == 0 and not session.collected_data:
            return prompts.build_service_selected(service, field)
        return prompts.build_field_question(field)

    def _already_completed_prompt(self, session: DialogueSession) -> str:
        service = self._catalog.get(session.service_id)
        if service is None:
            return "Your request has already been submitted. Goodbye."
        return (
            f"Your {service.name} request has already been submitted. "
            f"{service.completion_message} Goodbye."
        )
