"""Finalized intake record handed to the persistence sink."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from civic_intake.schemas.session_schema import TranscriptTurn, utcnow
from civic_intake.tools.services import Priority
from civic_intake.utils import short_reference


def generate_record_id() -> str:
    return str(uuid.uuid4())


class IntakeRecord(BaseModel):
    """Created once per completed session."""

    id: str = Field(default_factory=generate_record_id)
    session_id: str
    caller_contact: str
    caller_name: Optional[str] = None
    caller_email: Optional[str] = None
    service_id: str
    service_name: str
    priority: Priority
    collected_data: dict[str, str]
    transcript: list[TranscriptTurn]
    status: str = "pending"
    email_sent: bool = False
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def reference(self) -> str:
        return short_reference(self.id)
