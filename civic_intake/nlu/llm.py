"""
LLM-backed collaborators using the official OpenAI client.

Each call asks one narrow question (which service, the value of one
field, or yes/no) with temperature 0 and a small token budget. The
client is built with a request timeout and no automatic retries, so a
slow provider costs the caller at most one timeout before the
orchestrator re-prompts.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from openai import OpenAI, OpenAIError

from civic_intake.config import settings
from civic_intake.errors import CollaboratorError
from civic_intake.nlu.base import (
    EMPTY,
    INVALID,
    ConfirmationInterpreter,
    ExtractionResult,
    FieldExtractor,
    ServiceClassifier,
)
from civic_intake.prompts.system_prompts import (
    CONFIRMATION_SYSTEM_PROMPT,
    EMPTY_REPLY,
    INVALID_REPLY,
    build_classifier_prompt,
    build_extractor_prompt,
)
from civic_intake.tools.services import ServiceCatalog, ServiceField

logger = logging.getLogger(__name__)


class LLMClient(ABC):
    """
    Simple abstraction so we can swap providers if needed.
    """

    @abstractmethod
    def chat(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int,
        temperature: Optional[float] = None,
    ) -> str:
        """
        messages: list of {"role": "system"|"user"|"assistant", "content": "..."}
        returns: assistant content as a string

        Raises CollaboratorError on any provider failure or timeout.
        """
        ...


class OpenAILLMClient(LLMClient):
    """
    OpenAI implementation using the official Python client.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[OpenAI] = None,
    ):
        cfg = settings.model
        if client is None:
            if not cfg.openai_api_key:
                raise RuntimeError(
                    "OPENAI_API_KEY is not set in environment (.env)."
                )
            client = OpenAI(
                api_key=cfg.openai_api_key,
                base_url=cfg.openai_base_url,
                timeout=timeout or cfg.collaborator_timeout_sec,
                max_retries=0,
            )
        self.client = client
        self.default_model = model or cfg.llm_model
        self.temperature = cfg.llm_temperature

    def chat(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int,
        temperature: Optional[float] = None,
    ) -> str:
        try:
            completion = self.client.chat.completions.create(
                model=self.default_model,
                messages=messages,
                temperature=self.temperature if temperature is None else temperature,
                max_tokens=max_tokens,
            )
        except OpenAIError as exc:
            raise CollaboratorError(f"LLM request failed: {exc}") from exc
        if not completion.choices:
            raise CollaboratorError("LLM returned no choices")
        content = completion.choices[0].message.content
        return (content or "").strip()


def _messages(system: str, utterance: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": utterance},
    ]


class LLMServiceClassifier(ServiceClassifier):
    def __init__(self, llm: LLMClient, max_tokens: Optional[int] = None) -> None:
        self._llm = llm
        self._max_tokens = max_tokens or settings.model.classifier_max_tokens

    def classify(self, utterance: str, catalog: ServiceCatalog) -> Optional[str]:
        reply = self._llm.chat(_messages(build_classifier_prompt(catalog), utterance),
                               max_tokens=self._max_tokens)
        service_id = reply.strip().strip("'\"`.").lower()
        if not service_id or service_id in ("null", "none", "other"):
            return None
        logger.debug("Classifier replied '%s'", service_id)
        return service_id


class LLMFieldExtractor(FieldExtractor):
    def __init__(self, llm: LLMClient, max_tokens: Optional[int] = None) -> None:
        self._llm = llm
        self._max_tokens = max_tokens or settings.model.extractor_max_tokens

    def extract(self, utterance: str, field: ServiceField) -> ExtractionResult:
        reply = self._llm.chat(_messages(build_extractor_prompt(field), utterance),
                               max_tokens=self._max_tokens)
        value = reply.strip().strip('"')
        if not value or value.upper() == INVALID_REPLY:
            return INVALID
        if value.upper() == EMPTY_REPLY:
            return EMPTY
        return ExtractionResult.of(value)


class LLMConfirmationInterpreter(ConfirmationInterpreter):
    def __init__(self, llm: LLMClient) -> None:
        self._llm = llm

    def interpret(self, utterance: str) -> bool:
        reply = self._llm.chat(_messages(CONFIRMATION_SYSTEM_PROMPT, utterance), max_tokens=10)
        return reply.strip().strip(".!'\"").lower() == "yes"
