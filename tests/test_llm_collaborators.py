"""Tests for the LLM-backed collaborators, driven by a fake LLM client."""

from types import SimpleNamespace

import httpx
import pytest
from openai import APITimeoutError

from civic_intake.errors import CollaboratorError
from civic_intake.nlu.llm import (
    LLMClient,
    LLMConfirmationInterpreter,
    LLMFieldExtractor,
    LLMServiceClassifier,
    OpenAILLMClient,
)
from civic_intake.prompts.system_prompts import build_classifier_prompt, build_extractor_prompt
from civic_intake.tools.services import FieldType, ServiceField


class FakeLLM(LLMClient):
    def __init__(self, *replies: str) -> None:
        self.replies = list(replies)
        self.requests: list[dict] = []

    def chat(self, messages, max_tokens, temperature=None):
        self.requests.append({"messages": messages, "max_tokens": max_tokens})
        return self.replies.pop(0)


def completion(content):
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeCompletions:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.result


def fake_openai(completions: FakeCompletions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


EMAIL_FIELD = ServiceField(id="resident_email", label="Email Address", type=FieldType.EMAIL)
NOTES_FIELD = ServiceField(id="notes", label="Any additional information?",
                           type=FieldType.TEXT, required=False)


class TestLLMServiceClassifier:
    def test_returns_service_id(self, catalog):
        llm = FakeLLM("blue_badge")
        assert LLMServiceClassifier(llm).classify("blue badge please", catalog) == "blue_badge"

    def test_normalizes_quotes_and_case(self, catalog):
        assert LLMServiceClassifier(FakeLLM("'Pothole_Report'.")).classify("x", catalog) == (
            "pothole_report"
        )

    @pytest.mark.parametrize("reply", ["null", "None", ""])
    def test_unrecognized_reply(self, catalog, reply):
        assert LLMServiceClassifier(FakeLLM(reply)).classify("x", catalog) is None

    def test_prompt_lists_catalog(self, catalog):
        llm = FakeLLM("missed_bin")
        LLMServiceClassifier(llm, max_tokens=20).classify("my bins", catalog)
        system = llm.requests[0]["messages"][0]["content"]
        assert "- missed_bin: 2. Report Missed Bin Collection" in system
        assert llm.requests[0]["messages"][1] == {"role": "user", "content": "my bins"}
        assert llm.requests[0]["max_tokens"] == 20


class TestLLMFieldExtractor:
    def test_value(self):
        result = LLMFieldExtractor(FakeLLM('"sam@example.org"')).extract("sam at", EMAIL_FIELD)
        assert result.value == "sam@example.org"

    def test_invalid_reply(self):
        assert not LLMFieldExtractor(FakeLLM("INVALID")).extract("banana", EMAIL_FIELD).is_valid

    def test_empty_reply(self):
        assert LLMFieldExtractor(FakeLLM("NONE")).extract("nothing", NOTES_FIELD).is_empty

    def test_prompt_mentions_optional_rule(self):
        assert 'return "NONE"' in build_extractor_prompt(NOTES_FIELD)
        assert 'return "NONE"' not in build_extractor_prompt(EMAIL_FIELD)

    def test_prompt_includes_options(self, catalog):
        f = catalog.require("blue_badge").fields[4]
        assert "Mobility impairment | Visual impairment" in build_extractor_prompt(f)


class TestLLMConfirmationInterpreter:
    @pytest.mark.parametrize("reply,expected", [("yes", True), ("Yes.", True), ("no", False)])
    def test_reply_mapping(self, reply, expected):
        assert LLMConfirmationInterpreter(FakeLLM(reply)).interpret("...") is expected


class TestOpenAILLMClient:
    def test_returns_stripped_content(self):
        completions = FakeCompletions(result=completion("  blue_badge \n"))
        client = OpenAILLMClient(model="test-model", client=fake_openai(completions))
        reply = client.chat([{"role": "user", "content": "hi"}], max_tokens=5)
        assert reply == "blue_badge"
        assert completions.kwargs["model"] == "test-model"
        assert completions.kwargs["max_tokens"] == 5

    def test_timeout_becomes_collaborator_error(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        completions = FakeCompletions(error=APITimeoutError(request=request))
        client = OpenAILLMClient(client=fake_openai(completions))
        with pytest.raises(CollaboratorError):
            client.chat([{"role": "user", "content": "hi"}], max_tokens=5)

    def test_no_choices_is_collaborator_error(self):
        completions = FakeCompletions(result=SimpleNamespace(choices=[]))
        client = OpenAILLMClient(client=fake_openai(completions))
        with pytest.raises(CollaboratorError):
            client.chat([{"role": "user", "content": "hi"}], max_tokens=5)

    def test_classifier_prompt_has_unrecognized_marker(self, catalog):
        assert "return null" in build_classifier_prompt(catalog)
