"""
Turn service: load, orchestrate, write back.

The HTTP layer hands every inbound utterance to ``process_turn``. Turns
for the same session are serialized through the store's version check
rather than a lock: the turn that loses the compare-and-swap reloads
the session and runs again against the winner's state.
"""

from dataclasses import dataclass
from typing import Optional

from civic_intake.config import settings
from civic_intake.conversation.orchestrator import DialogueOrchestrator, TurnOutcome
from civic_intake.logging_context import get_session_logger, set_session_id
from civic_intake.prompts.prompt_templates import build_store_conflict
from civic_intake.schemas.session_schema import ContinuationSignal, DialogueSession, DialogueStage
from civic_intake.storage.session_store import SessionStore

logger = get_session_logger(__name__)


@dataclass
class TurnResult:
    """What the transport needs to answer the caller."""

    session_id: str
    prompt: str
    action: ContinuationSignal
    stage: DialogueStage
    record_reference: Optional[str] = None
    notified: Optional[bool] = None


class IntakeTurnService:
    def __init__(
        self,
        store: SessionStore,
        orchestrator: DialogueOrchestrator,
        conflict_retries: Optional[int] = None,
    ) -> None:
        self._store = store
        self._orchestrator = orchestrator
        self._conflict_retries = (
            settings.guardrails.store_conflict_retries
            if conflict_retries is None else conflict_retries
        )

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def orchestrator(self) -> DialogueOrchestrator:
        return self._orchestrator

    def get_session(self, session_id: str) -> Optional[DialogueSession]:
        return self._store.get(session_id)

    def process_turn(
        self, session_id: str, caller_address: str = "", utterance: Optional[str] = None
    ) -> TurnResult:
        """
        Run one inbound turn for a session.

        Args:
            session_id: Stable id for the conversation (the transport's call id).
            caller_address: Originating phone number or address; recorded on
                the first turn only.
            utterance: Transcribed caller speech, or None to prime the dialogue.

        Returns:
            TurnResult with the prompt to speak and whether to keep listening.
        """
        set_session_id(session_id)

        for attempt in range(self._conflict_retries + 1):
            stored = self._store.get(session_id)
            if stored is None:
                stored = DialogueSession.new(session_id, caller_address)
                logger.info("New session from %s", caller_address or "unknown caller")

            outcome = self._orchestrator.handle_turn(stored, utterance)
            if not outcome.changed:
                return self._result(outcome)

            if self._store.put(session_id, outcome.session, stored.version):
                return self._after_write(outcome)

            logger.warning(
                "Concurrent update lost (attempt %d of %d)",
                attempt + 1, self._conflict_retries + 1,
            )

        logger.warning("Giving up after repeated conflicts; caller will be asked to repeat")
        current = self._store.get(session_id)
        return TurnResult(
            session_id=session_id,
            prompt=build_store_conflict(),
            action=ContinuationSignal.GATHER,
            stage=current.stage if current else DialogueStage.SERVICE_SELECTION,
        )

    def _after_write(self, outcome: TurnOutcome) -> TurnResult:
        result = self._result(outcome)
        if outcome.completed and outcome.record is not None:
            service = self._orchestrator.catalog.require(outcome.record.service_id)
            handoff = self._orchestrator.handoff
            result.notified = handoff.notify(outcome.record, service)
            if result.notified:
                handoff.mark_notified(outcome.record)
        return result

    @staticmethod
    def _result(outcome: TurnOutcome) -> TurnResult:
        session = outcome.session
        return TurnResult(
            session_id=session.session_id,
            prompt=outcome.prompt,
            action=outcome.action,
            stage=session.stage,
            record_reference=outcome.record.reference if outcome.record else None,
        )


def build_turn_service() -> IntakeTurnService:
    """Wire the production service from ``settings``.

    SQL-backed store and sink, LLM collaborators when an OpenAI key is
    configured (keyword collaborators otherwise), SendGrid or log-only
    notifications.
    """
    from civic_intake.conversation.completion import CompletionHandoff
    from civic_intake.nlu.keyword import (
        KeywordConfirmationInterpreter,
        KeywordServiceClassifier,
        RuleBasedFieldExtractor,
    )
    from civic_intake.nlu.llm import (
        LLMConfirmationInterpreter,
        LLMFieldExtractor,
        LLMServiceClassifier,
        OpenAILLMClient,
    )
    from civic_intake.storage.db import create_engine_from_url, init_db, make_session_factory
    from civic_intake.storage.session_store import SqlSessionStore
    from civic_intake.tools.notifications import build_notifier
    from civic_intake.tools.records import SqlRecordSink
    from civic_intake.tools.services import build_catalog

    engine = create_engine_from_url(settings.storage.database_url, echo=settings.storage.echo_sql)
    init_db(engine)
    factory = make_session_factory(engine)

    if settings.model.openai_api_key:
        llm = OpenAILLMClient()
        classifier, extractor, interpreter = (
            LLMServiceClassifier(llm), LLMFieldExtractor(llm), LLMConfirmationInterpreter(llm)
        )
    else:
        logger.warning("OPENAI_API_KEY not set; using keyword collaborators")
        classifier, extractor, interpreter = (
            KeywordServiceClassifier(), RuleBasedFieldExtractor(), KeywordConfirmationInterpreter()
        )

    orchestrator = DialogueOrchestrator(
        catalog=build_catalog(settings.storage.catalog_path),
        classifier=classifier,
        extractor=extractor,
        interpreter=interpreter,
        handoff=CompletionHandoff(SqlRecordSink(factory), build_notifier()),
    )
    return IntakeTurnService(SqlSessionStore(factory), orchestrator)
