"""
Persistence sink for finalized intake records.

Inserts are idempotent per session: if a record already exists for the
session, its id is returned instead of writing a second one. A turn that
is retried after the record was written therefore cannot create a
duplicate request for staff to process.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from civic_intake.errors import PersistenceError
from civic_intake.schemas.record_schema import IntakeRecord
from civic_intake.storage.db import db_session
from civic_intake.storage.models import IntakeRecordRow

logger = logging.getLogger(__name__)


class RecordSink(ABC):
    @abstractmethod
    def insert(self, record: IntakeRecord) -> str:
        """Store the record and return its id.

        Raises:
            PersistenceError: If the record could not be stored.
        """

    @abstractmethod
    def get(self, record_id: str) -> Optional[IntakeRecord]:
        """Retrieve a record by id."""

    @abstractmethod
    def list_records(self) -> list[IntakeRecord]:
        """All stored records, oldest first."""

    @abstractmethod
    def mark_notified(self, record_id: str) -> bool:
        """Flag that the confirmation email went out. False if the record is unknown.

        Raises:
            PersistenceError: If the flag could not be written.
        """


class InMemoryRecordSink(RecordSink):
    def __init__(self) -> None:
        self._records: dict[str, IntakeRecord] = {}
        self._by_session: dict[str, str] = {}
        self._lock = threading.Lock()

    def insert(self, record: IntakeRecord) -> str:
        with self._lock:
            existing = self._by_session.get(record.session_id)
            if existing is not None:
                logger.info(
                    "Record for session %s already stored as %s", record.session_id, existing
                )
                return existing
            self._records[record.id] = record.model_copy(deep=True)
            self._by_session[record.session_id] = record.id
        logger.info("Intake record stored: %s (%s)", record.reference, record.service_id)
        return record.id

    def get(self, record_id: str) -> Optional[IntakeRecord]:
        with self._lock:
            record = self._records.get(record_id)
        return record.model_copy(deep=True) if record else None

    def list_records(self) -> list[IntakeRecord]:
        with self._lock:
            records = list(self._records.values())
        return sorted(records, key=lambda r: r.created_at)

    def mark_notified(self, record_id: str) -> bool:
        with self._lock:
            record = self._records.get(record_id)
            if record is None:
                return False
            record.email_sent = True
        return True

    def reset(self) -> None:
        """Clear all records. Used by test fixtures for isolation."""
        with self._lock:
            self._records.clear()
            self._by_session.clear()


class SqlRecordSink(RecordSink):
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._factory = session_factory

    def insert(self, record: IntakeRecord) -> str:
        row = IntakeRecordRow(
            id=record.id,
            session_id=record.session_id,
            service_id=record.service_id,
            priority=record.priority.value,
            status=record.status,
            caller_contact=record.caller_contact,
            caller_name=record.caller_name,
            caller_email=record.caller_email,
            email_sent=record.email_sent,
            payload=record.model_dump(mode="json"),
            created_at=record.created_at,
        )
        try:
            with db_session(self._factory) as db:
                db.add(row)
        except IntegrityError:
            existing = self._id_for_session(record.session_id)
            if existing is None:
                raise PersistenceError(
                    f"Record insert for session {record.session_id} was rejected"
                ) from None
            logger.info(
                "Record for session %s already stored as %s", record.session_id, existing
            )
            return existing
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not store intake record: {exc}") from exc

        logger.info("Intake record stored: %s (%s)", record.reference, record.service_id)
        return record.id

    def _id_for_session(self, session_id: str) -> Optional[str]:
        with db_session(self._factory) as db:
            return db.scalar(
                select(IntakeRecordRow.id).where(IntakeRecordRow.session_id == session_id)
            )

    def get(self, record_id: str) -> Optional[IntakeRecord]:
        with db_session(self._factory) as db:
            row = db.get(IntakeRecordRow, record_id)
            payload = dict(row.payload) if row is not None else None
        return IntakeRecord.model_validate(payload) if payload is not None else None

    def list_records(self) -> list[IntakeRecord]:
        with db_session(self._factory) as db:
            payloads = [
                dict(p) for p in db.scalars(
                    select(IntakeRecordRow.payload).order_by(IntakeRecordRow.created_at)
                )
            ]
        return [IntakeRecord.model_validate(p) for p in payloads]

    def mark_notified(self, record_id: str) -> bool:
        try:
            with db_session(self._factory) as db:
                row = db.get(IntakeRecordRow, record_id)
                if row is None:
                    return False
                row.email_sent = True
                # reassign so the JSON column is flushed
                row.payload = {**row.payload, "email_sent": True}
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not flag record {record_id}: {exc}") from exc
        return True
