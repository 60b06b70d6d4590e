"""Shared test fixtures and helpers."""

from typing import Optional, Union

import pytest

from civic_intake.conversation.completion import CompletionHandoff
from civic_intake.conversation.orchestrator import DialogueOrchestrator
from civic_intake.conversation.state_machine import DialogueStateMachine
from civic_intake.errors import CollaboratorError
from civic_intake.nlu.base import (
    ConfirmationInterpreter,
    ExtractionResult,
    FieldExtractor,
    ServiceClassifier,
)
from civic_intake.nlu.keyword import (
    KeywordConfirmationInterpreter,
    KeywordServiceClassifier,
    RuleBasedFieldExtractor,
)
from civic_intake.schemas.session_schema import DialogueSession, DialogueStage
from civic_intake.service import IntakeTurnService
from civic_intake.storage.db import create_engine_from_url, init_db, make_session_factory
from civic_intake.storage.session_store import InMemorySessionStore
from civic_intake.tools.notifications import RecordingNotifier
from civic_intake.tools.records import InMemoryRecordSink
from civic_intake.tools.services import ServiceCatalog, default_catalog

# Answers that the rule-based extractor accepts for every blue_badge field.
BLUE_BADGE_ANSWERS = [
    "My name is Jane Doe",
    "15 March 1980",
    "12 High Street, Leeds",
    "jane at example dot com",
    "mobility",
    "yes I have it ready",
    "none",
]


@pytest.fixture
def state_machine():
    return DialogueStateMachine()


@pytest.fixture
def catalog() -> ServiceCatalog:
    return default_catalog()


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def sink():
    return InMemoryRecordSink()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def handoff(sink, notifier):
    return CompletionHandoff(sink, notifier)


@pytest.fixture
def orchestrator(catalog, handoff):
    return make_orchestrator(catalog, handoff)


@pytest.fixture
def turn_service(store, orchestrator):
    return IntakeTurnService(store, orchestrator, conflict_retries=1)


@pytest.fixture
def session_factory():
    engine = create_engine_from_url("sqlite:///:memory:")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


# --------------------------------------------------------------------- #
# Scripted collaborators
# --------------------------------------------------------------------- #

Scripted = Union[str, None, Exception]


class ScriptedClassifier(ServiceClassifier):
    """Returns queued answers in order; an Exception in the queue is raised."""

    def __init__(self, *answers: Scripted) -> None:
        self.answers = list(answers)
        self.calls: list[str] = []

    def classify(self, utterance, catalog):
        self.calls.append(utterance)
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer


class ScriptedExtractor(FieldExtractor):
    def __init__(self, *results: Union[ExtractionResult, Exception]) -> None:
        self.results = list(results)
        self.calls: list[tuple[str, str]] = []

    def extract(self, utterance, field):
        self.calls.append((utterance, field.id))
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class ScriptedInterpreter(ConfirmationInterpreter):
    def __init__(self, *answers: Union[bool, Exception]) -> None:
        self.answers = list(answers)
        self.calls: list[str] = []

    def interpret(self, utterance):
        self.calls.append(utterance)
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer


class EchoExtractor(FieldExtractor):
    """Accepts every utterance verbatim for every field."""

    def extract(self, utterance, field):
        return ExtractionResult.of(utterance)


def collaborator_failure() -> CollaboratorError:
    return CollaboratorError("upstream model timed out")


def make_orchestrator(
    catalog: ServiceCatalog,
    handoff: CompletionHandoff,
    classifier: Optional[ServiceClassifier] = None,
    extractor: Optional[FieldExtractor] = None,
    interpreter: Optional[ConfirmationInterpreter] = None,
    **kwargs,
) -> DialogueOrchestrator:
    """Orchestrator with keyword collaborators unless others are given."""
    return DialogueOrchestrator(
        catalog=catalog,
        classifier=classifier or KeywordServiceClassifier(),
        extractor=extractor or RuleBasedFieldExtractor(),
        interpreter=interpreter or KeywordConfirmationInterpreter(),
        handoff=handoff,
        max_field_attempts=kwargs.pop("max_field_attempts", 3),
        max_selection_attempts=kwargs.pop("max_selection_attempts", 3),
    )


def make_session(
    stage: DialogueStage = DialogueStage.SERVICE_SELECTION,
    service_id: Optional[str] = None,
    cursor: int = 0,
    collected: Optional[dict[str, str]] = None,
    session_id: str = "CA-TEST-001",
    originating_address: str = "+447700900123",
) -> DialogueSession:
    """Helper to create a DialogueSession at any point in the dialogue."""
    return DialogueSession(
        session_id=session_id,
        originating_address=originating_address,
        stage=stage,
        service_id=service_id,
        cursor=cursor,
        collected_data=dict(collected or {}),
    )


def blue_badge_collected() -> dict[str, str]:
    return {
        "full_name": "Jane Doe",
        "date_of_birth": "1980-03-15",
        "address": "12 High Street, Leeds",
        "email": "jane@example.com",
        "disability_type": "Mobility impairment",
        "medical_evidence": "Yes, I have it ready",
    }


def confirming_session(collected: Optional[dict[str, str]] = None, **kwargs) -> DialogueSession:
    """A blue_badge session waiting at the read-back."""
    return make_session(
        stage=DialogueStage.CONFIRMATION,
        service_id="blue_badge",
        cursor=7,
        collected=collected if collected is not None else blue_badge_collected(),
        **kwargs,
    )
