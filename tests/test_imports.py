"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""


class TestSchemaImports:
    def test_import_session_schema(self):
        from civic_intake.schemas import ContinuationSignal, DialogueSession, DialogueStage

        session = DialogueSession.new("CA-1", "+447700900123")
        assert session.stage == DialogueStage.SERVICE_SELECTION
        assert session.version == 0
        assert ContinuationSignal.END == "end-dialogue"

    def test_import_record_schema(self):
        from civic_intake.schemas import IntakeRecord

        assert "reference" in dir(IntakeRecord)


class TestConversationImports:
    def test_import_conversation_package(self):
        from civic_intake.conversation import (
            CompletionHandoff,
            DialogueOrchestrator,
            DialogueStateMachine,
            TransitionTrigger,
        )

        sm = DialogueStateMachine()
        assert sm.current_state.value == "service_selection"
        assert TransitionTrigger.CALLER_CONFIRMED == "caller_confirmed"
        assert callable(DialogueOrchestrator)
        assert callable(CompletionHandoff)


class TestCollaboratorImports:
    def test_import_nlu_package(self):
        from civic_intake.nlu import EMPTY, INVALID, KeywordServiceClassifier

        assert EMPTY.is_empty
        assert not INVALID.is_valid
        assert KeywordServiceClassifier() is not None

    def test_import_llm_collaborators(self):
        from civic_intake.nlu.llm import LLMClient, OpenAILLMClient

        assert issubclass(OpenAILLMClient, LLMClient)


class TestToolImports:
    def test_import_services(self):
        from civic_intake.tools.services import default_catalog

        assert len(default_catalog()) >= 6

    def test_import_records_and_notifications(self):
        from civic_intake.tools.notifications import build_notifier
        from civic_intake.tools.records import InMemoryRecordSink, SqlRecordSink

        assert callable(build_notifier)
        assert InMemoryRecordSink().list_records() == []
        assert SqlRecordSink is not None

    def test_import_storage_package(self):
        from civic_intake.storage import InMemorySessionStore

        assert InMemorySessionStore().get("missing") is None


class TestPromptImports:
    def test_import_prompt_templates(self):
        from civic_intake.prompts.prompt_templates import build_greeting
        from civic_intake.tools.services import default_catalog

        assert "Blue Badge Application" in build_greeting(default_catalog())


class TestConfigImport:
    def test_import_config(self):
        from civic_intake.config import settings

        assert settings.council.name
        assert settings.model.llm_model
        assert settings.guardrails.max_field_attempts >= 1


class TestApiImports:
    def test_import_api_package(self):
        from civic_intake.api import create_app

        assert callable(create_app)


class TestConsoleDemo:
    def test_console_session_starts_in_selection(self):
        from console_demo import ConsoleSession

        session = ConsoleSession()
        result = session.turn(None)
        assert result.stage.value == "service_selection"
        assert session.sink.list_records() == []

    def test_escalation_scenario_ends_with_callback(self, capsys):
        from console_demo import ConsoleSession

        session = ConsoleSession()
        session.run_scenario("escalation")
        stored = session.store.get(session.session_id)
        assert stored.escalated
        assert session.sink.list_records() == []
        assert "escalated" in capsys.readouterr().out
