"""
Completion handoff: turn a confirmed session into a stored request.

Two steps, kept separate:

1. ``submit`` builds the IntakeRecord and writes it to the sink. A
   failure here is surfaced as PersistenceError so the dialogue stays in
   Confirmation instead of telling the caller something was submitted.
2. ``notify`` sends the confirmation email. It runs only after the
   completed session has been written back, and a failure is logged and
   reported as False, never raised. A delivered email is flagged on the
   stored request with ``mark_notified``.

Contact details are found by field *type*, not by field id, because
services name their fields differently (``email`` vs ``resident_email``).
"""

from typing import Optional

from civic_intake.errors import PersistenceError
from civic_intake.logging_context import get_session_logger
from civic_intake.prompts.prompt_templates import build_notification
from civic_intake.schemas.record_schema import IntakeRecord
from civic_intake.schemas.session_schema import DialogueSession
from civic_intake.tools.notifications import Notifier
from civic_intake.tools.records import RecordSink
from civic_intake.tools.services import FieldType, ServiceDefinition

logger = get_session_logger(__name__)


def _contact_value(
    service: ServiceDefinition, collected: dict[str, str], field_type: FieldType
) -> Optional[str]:
    field = service.first_field_of_type(field_type)
    if field is None:
        return None
    return collected.get(field.id) or None


class CompletionHandoff:
    def __init__(self, sink: RecordSink, notifier: Notifier) -> None:
        self._sink = sink
        self._notifier = notifier

    def build_record(self, session: DialogueSession, service: ServiceDefinition) -> IntakeRecord:
        collected = {f.id: session.collected_data[f.id]
                     for f in service.fields if f.id in session.collected_data}
        return IntakeRecord(
            session_id=session.session_id,
            caller_contact=session.originating_address,
            caller_name=_contact_value(service, collected, FieldType.NAME),
            caller_email=_contact_value(service, collected, FieldType.EMAIL),
            service_id=service.id,
            service_name=service.name,
            priority=service.priority,
            collected_data=collected,
            transcript=[t.model_copy() for t in session.history],
        )

    def submit(self, session: DialogueSession, service: ServiceDefinition) -> IntakeRecord:
        """Write the record; returns it with the id the sink settled on.

        Raises:
            PersistenceError: If the sink could not store the record.
        """
        record = self.build_record(session, service)
        try:
            record_id = self._sink.insert(record)
        except PersistenceError:
            logger.exception("Intake record for %s could not be stored", service.id)
            raise
        if record_id != record.id:
            # an earlier attempt for this session already stored a record
            record = record.model_copy(update={"id": record_id})
        logger.info("Request %s submitted for %s", record.reference, service.id)
        return record

    def notify(self, record: IntakeRecord, service: ServiceDefinition) -> bool:
        """Send the confirmation email if the caller gave an address."""
        if not record.caller_email:
            logger.debug("No email collected for %s; skipping notification", record.reference)
            return False
        subject, body = build_notification(
            record_reference=record.reference,
            salutation_name=record.caller_name,
            service=service,
            collected=record.collected_data,
            submitted_on=record.created_at.strftime("%d %B %Y"),
        )
        try:
            delivered = self._notifier.send(record.caller_email, subject, body)
        except Exception:
            logger.exception("Notifier raised while sending %s", record.reference)
            delivered = False
        if not delivered:
            logger.warning("Confirmation for %s was not delivered", record.reference)
        return delivered

    def mark_notified(self, record: IntakeRecord) -> bool:
        """Record on the stored request that the confirmation went out."""
        try:
            flagged = self._sink.mark_notified(record.id)
        except PersistenceError:
            logger.exception("Could not flag %s as notified", record.reference)
            return False
        if not flagged:
            logger.warning("Record %s not found when flagging notification", record.reference)
        return flagged
