from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from civic_intake.storage.db import Base


class SessionRow(Base):
    """Authoritative copy of one dialogue session."""

    __tablename__ = "dialogue_sessions"

    session_id: Mapped[str] = mapped_column(String, primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    stage: Mapped[str] = mapped_column(String, nullable=False)
    service_id: Mapped[str | None] = mapped_column(String, nullable=True)
    originating_address: Mapped[str] = mapped_column(String, nullable=False, default="")
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class IntakeRecordRow(Base):
    """Finalized request, one per completed session."""

    __tablename__ = "intake_records"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    session_id: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    service_id: Mapped[str] = mapped_column(String, nullable=False)
    priority: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    caller_contact: Mapped[str] = mapped_column(String, nullable=False)
    caller_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    caller_email: Mapped[str | None] = mapped_column(Text, nullable=True)
    email_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
