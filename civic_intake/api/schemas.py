from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from civic_intake.schemas.session_schema import ContinuationSignal, DialogueStage, TranscriptTurn


class TurnRequest(BaseModel):
    session_id: str = Field(min_length=1)
    caller_address: str = ""
    # None primes the dialogue before the caller has spoken
    utterance: Optional[str] = None


class TurnResponse(BaseModel):
    session_id: str
    prompt: str
    action: ContinuationSignal
    stage: DialogueStage
    record_reference: Optional[str] = None
    email_sent: Optional[bool] = None


class SessionView(BaseModel):
    session_id: str
    originating_address: str
    stage: DialogueStage
    service_id: Optional[str]
    cursor: int
    collected_data: dict[str, str]
    escalated: bool
    record_id: Optional[str]
    version: int
    history: list[TranscriptTurn]
    updated_at: datetime


class ServiceFieldView(BaseModel):
    id: str
    label: str
    type: str
    required: bool
    options: list[str] = []


class ServiceView(BaseModel):
    id: str
    name: str
    description: str
    priority: str
    fields: list[ServiceFieldView]


class ErrorResponse(BaseModel):
    error: str
    detail: str
