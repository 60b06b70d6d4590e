"""
Session store with optimistic concurrency.

Turns for the same caller can arrive concurrently (a retransmitted
webhook, a fast second utterance). Every write names the version it was
based on; a write based on a stale version is refused and the caller
reloads. Sessions for different callers never contend.

Versions:
    expected_version == 0  -> create; fails if the session already exists
    expected_version == n  -> update; fails unless the stored version is n
    on success the stored version becomes expected_version + 1
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from civic_intake.schemas.session_schema import DialogueSession
from civic_intake.storage.db import db_session
from civic_intake.storage.models import SessionRow

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    @abstractmethod
    def get(self, session_id: str) -> Optional[DialogueSession]:
        """Return an independent copy of the stored session, or None."""

    @abstractmethod
    def put(self, session_id: str, session: DialogueSession, expected_version: int) -> bool:
        """Write the session if the stored version still equals expected_version.

        Returns:
            True on success, False on a version conflict.
        """


class InMemorySessionStore(SessionStore):
    """Process-local store for tests and the console demo.

    Stores serialized payloads, never live objects, so callers cannot
    mutate the authoritative copy by accident.
    """

    def __init__(self) -> None:
        self._rows: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> Optional[DialogueSession]:
        with self._lock:
            payload = self._rows.get(session_id)
        if payload is None:
            return None
        return DialogueSession.from_payload(payload)

    def put(self, session_id: str, session: DialogueSession, expected_version: int) -> bool:
        with self._lock:
            current = self._rows.get(session_id)
            current_version = current["version"] if current is not None else 0
            if current_version != expected_version:
                logger.info(
                    "Version conflict for %s: expected %d, stored %d",
                    session_id, expected_version, current_version,
                )
                return False
            payload = session.to_payload()
            payload["version"] = expected_version + 1
            self._rows[session_id] = payload
        session.version = expected_version + 1
        return True

    def reset(self) -> None:
        """Clear all sessions. Used by test fixtures for isolation."""
        with self._lock:
            self._rows.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)


class SqlSessionStore(SessionStore):
    """SQLAlchemy-backed store; compare-and-swap on the version column."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._factory = session_factory

    def get(self, session_id: str) -> Optional[DialogueSession]:
        with db_session(self._factory) as db:
            row = db.get(SessionRow, session_id)
            if row is None:
                return None
            payload = dict(row.payload)
            payload["version"] = row.version
        return DialogueSession.from_payload(payload)

    def put(self, session_id: str, session: DialogueSession, expected_version: int) -> bool:
        new_version = expected_version + 1
        payload = session.to_payload()
        payload["version"] = new_version
        values = {
            "version": new_version,
            "stage": session.stage.value,
            "service_id": session.service_id,
            "payload": payload,
            "updated_at": session.updated_at,
        }

        if expected_version == 0:
            try:
                with db_session(self._factory) as db:
                    db.add(SessionRow(
                        session_id=session_id,
                        originating_address=session.originating_address,
                        **values,
                    ))
            except IntegrityError:
                logger.info("Session %s was created concurrently", session_id)
                return False
        else:
            with db_session(self._factory) as db:
                result = db.execute(
                    update(SessionRow)
                    .where(SessionRow.session_id == session_id)
                    .where(SessionRow.version == expected_version)
                    .values(**values)
                )
                if result.rowcount != 1:
                    logger.info(
                        "Version conflict for %s: expected %d", session_id, expected_version
                    )
                    return False

        session.version = new_version
        return True
