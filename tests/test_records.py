"""Tests for the intake record sinks."""

import pytest
from sqlalchemy.exc import OperationalError

from civic_intake.errors import PersistenceError
from civic_intake.schemas.record_schema import IntakeRecord
from civic_intake.storage.models import IntakeRecordRow
from civic_intake.tools.records import InMemoryRecordSink, SqlRecordSink
from civic_intake.tools.services import Priority


def make_record(session_id="CA-REC-1", **overrides) -> IntakeRecord:
    fields = dict(
        session_id=session_id,
        caller_contact="+447700900123",
        caller_name="Jane Doe",
        caller_email="jane@example.com",
        service_id="blue_badge",
        service_name="Blue Badge Application",
        priority=Priority.MEDIUM,
        collected_data={"full_name": "Jane Doe"},
        transcript=[],
    )
    fields.update(overrides)
    return IntakeRecord(**fields)


@pytest.fixture(params=["memory", "sql"])
def any_sink(request, session_factory):
    if request.param == "memory":
        return InMemoryRecordSink()
    return SqlRecordSink(session_factory)


class TestInsert:
    def test_insert_returns_record_id(self, any_sink):
        record = make_record()
        assert any_sink.insert(record) == record.id

    def test_get_returns_stored_record(self, any_sink):
        record = make_record()
        any_sink.insert(record)
        loaded = any_sink.get(record.id)
        assert loaded.session_id == "CA-REC-1"
        assert loaded.collected_data == {"full_name": "Jane Doe"}
        assert loaded.priority == Priority.MEDIUM

    def test_get_unknown_is_none(self, any_sink):
        assert any_sink.get("does-not-exist") is None

    def test_second_insert_for_session_returns_first_id(self, any_sink):
        first = make_record()
        second = make_record()
        assert first.id != second.id
        any_sink.insert(first)
        assert any_sink.insert(second) == first.id
        assert len(any_sink.list_records()) == 1

    def test_records_for_different_sessions(self, any_sink):
        any_sink.insert(make_record("CA-1"))
        any_sink.insert(make_record("CA-2"))
        assert {r.session_id for r in any_sink.list_records()} == {"CA-1", "CA-2"}


class TestMarkNotified:
    def test_new_record_not_yet_notified(self, any_sink):
        record_id = any_sink.insert(make_record())
        assert any_sink.get(record_id).email_sent is False

    def test_flag_is_stored(self, any_sink):
        record_id = any_sink.insert(make_record())
        assert any_sink.mark_notified(record_id) is True
        assert any_sink.get(record_id).email_sent is True
        assert any_sink.list_records()[0].email_sent is True

    def test_unknown_record(self, any_sink):
        assert any_sink.mark_notified("no-such-record") is False

    def test_sql_column_is_set(self, session_factory):
        sink = SqlRecordSink(session_factory)
        record_id = sink.insert(make_record())
        sink.mark_notified(record_id)
        with session_factory() as db:
            assert db.get(IntakeRecordRow, record_id).email_sent is True


class TestFailures:
    def test_database_error_becomes_persistence_error(self, session_factory, monkeypatch):
        sink = SqlRecordSink(session_factory)

        def broken_commit(self):
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        monkeypatch.setattr("sqlalchemy.orm.Session.commit", broken_commit)
        with pytest.raises(PersistenceError):
            sink.insert(make_record())

    def test_flag_error_becomes_persistence_error(self, session_factory, monkeypatch):
        sink = SqlRecordSink(session_factory)
        record_id = sink.insert(make_record())

        def broken_commit(self):
            raise OperationalError("UPDATE", {}, Exception("disk I/O error"))

        monkeypatch.setattr("sqlalchemy.orm.Session.commit", broken_commit)
        with pytest.raises(PersistenceError):
            sink.mark_notified(record_id)


class TestReset:
    def test_in_memory_reset(self):
        sink = InMemoryRecordSink()
        sink.insert(make_record())
        sink.reset()
        assert sink.list_records() == []
