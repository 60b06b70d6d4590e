"""Dialogue session state, carried between stateless turns."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from civic_intake.tools.services import ServiceDefinition, ServiceField


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DialogueStage(str, Enum):
    """Where a dialogue currently is."""
    SERVICE_SELECTION = "service_selection"
    INFORMATION_GATHERING = "information_gathering"
    CONFIRMATION = "confirmation"
    COMPLETED = "completed"


class Speaker(str, Enum):
    CALLER = "caller"
    ASSISTANT = "assistant"


class ContinuationSignal(str, Enum):
    """Tells the transport layer whether to keep listening."""
    GATHER = "gather-more-input"
    END = "end-dialogue"


class TranscriptTurn(BaseModel):
    """A single line of the dialogue transcript."""

    speaker: Speaker
    text: str
    timestamp: datetime = Field(default_factory=utcnow)


class DialogueSession(BaseModel):
    """
    One caller's intake conversation.

    The session store owns the authoritative copy. Each turn works on a
    checked-out copy and writes it back with the version it loaded, so
    two turns for the same caller can never both advance the cursor.
    """

    session_id: str
    originating_address: str = ""
    stage: DialogueStage = DialogueStage.SERVICE_SELECTION
    service_id: Optional[str] = None
    collected_data: dict[str, str] = Field(default_factory=dict)
    cursor: int = 0
    history: list[TranscriptTurn] = Field(default_factory=list)
    attempts: int = 0
    escalated: bool = False
    record_id: Optional[str] = None
    version: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def new(cls, session_id: str, originating_address: str = "") -> "DialogueSession":
        return cls(session_id=session_id, originating_address=originating_address)

    @property
    def is_completed(self) -> bool:
        return self.stage == DialogueStage.COMPLETED

    def add_turn(self, speaker: Speaker, text: str) -> None:
        self.history.append(TranscriptTurn(speaker=speaker, text=text))
        self.updated_at = utcnow()

    def current_field(self, service: ServiceDefinition) -> Optional[ServiceField]:
        """Field awaiting an answer, or None once the cursor is past the end."""
        if 0 <= self.cursor < service.field_count:
            return service.fields[self.cursor]
        return None

    def checkout(self) -> "DialogueSession":
        """Independent copy for one turn to mutate."""
        return self.model_copy(deep=True)

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe dict for storage."""
        return self.model_dump(mode="json")

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "DialogueSession":
        return cls.model_validate(payload)
