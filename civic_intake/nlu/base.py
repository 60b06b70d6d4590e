"""
Interfaces for the natural-language collaborators the orchestrator consumes.

All three are stateless request/response calls. Implementations must
bound their own latency and raise CollaboratorError on failure or
timeout; the orchestrator turns that into a re-prompt.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from civic_intake.tools.services import ServiceCatalog, ServiceField


class ExtractionStatus(str, Enum):
    VALUE = "value"
    EMPTY = "empty"
    INVALID = "invalid"


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of extracting one field from one utterance."""

    status: ExtractionStatus
    value: Optional[str] = None

    @classmethod
    def of(cls, value: str) -> "ExtractionResult":
        return cls(ExtractionStatus.VALUE, value)

    @property
    def is_valid(self) -> bool:
        return self.status == ExtractionStatus.VALUE

    @property
    def is_empty(self) -> bool:
        return self.status == ExtractionStatus.EMPTY


# The extraction sentinel: the answer could not be used for this field.
INVALID = ExtractionResult(ExtractionStatus.INVALID)

# The caller legitimately has nothing to give (optional fields only).
EMPTY = ExtractionResult(ExtractionStatus.EMPTY)


class ServiceClassifier(ABC):
    @abstractmethod
    def classify(self, utterance: str, catalog: ServiceCatalog) -> Optional[str]:
        """Return a service id, or None if the request is unrecognized."""


class FieldExtractor(ABC):
    @abstractmethod
    def extract(self, utterance: str, field: ServiceField) -> ExtractionResult:
        """Return a normalized value for the field, EMPTY, or INVALID."""


class ConfirmationInterpreter(ABC):
    @abstractmethod
    def interpret(self, utterance: str) -> bool:
        """Return True if the caller affirmed the read-back."""
