"""Tests for the session stores: round trips and compare-and-swap writes."""

import pytest

from civic_intake.schemas.session_schema import DialogueSession, DialogueStage, Speaker
from civic_intake.storage.session_store import InMemorySessionStore, SqlSessionStore
from tests.conftest import make_session


@pytest.fixture(params=["memory", "sql"])
def any_store(request, session_factory):
    if request.param == "memory":
        return InMemorySessionStore()
    return SqlSessionStore(session_factory)


def populated_session(session_id="CA-STORE-1") -> DialogueSession:
    session = make_session(
        stage=DialogueStage.INFORMATION_GATHERING,
        service_id="blue_badge",
        cursor=2,
        collected={"full_name": "Jane Doe", "date_of_birth": "1980-03-15"},
        session_id=session_id,
    )
    session.add_turn(Speaker.ASSISTANT, "What is your full name?")
    session.add_turn(Speaker.CALLER, "Jane Doe")
    session.attempts = 1
    return session


class TestRoundTrip:
    def test_missing_session_is_none(self, any_store):
        assert any_store.get("nope") is None

    def test_reload_reproduces_dialogue_state(self, any_store):
        original = populated_session()
        assert any_store.put(original.session_id, original, 0)
        loaded = any_store.get(original.session_id)

        assert loaded.stage == original.stage
        assert loaded.cursor == original.cursor
        assert loaded.collected_data == original.collected_data
        assert loaded.history == original.history
        assert loaded.service_id == "blue_badge"
        assert loaded.attempts == 1
        assert loaded.originating_address == original.originating_address

    def test_loaded_copy_is_independent(self, any_store):
        session = populated_session()
        any_store.put(session.session_id, session, 0)
        loaded = any_store.get(session.session_id)
        loaded.collected_data["address"] = "changed"
        session.collected_data["email"] = "changed"
        assert "address" not in any_store.get(session.session_id).collected_data
        assert "email" not in any_store.get(session.session_id).collected_data


class TestOptimisticConcurrency:
    def test_create_sets_version_one(self, any_store):
        session = populated_session()
        assert any_store.put(session.session_id, session, 0)
        assert session.version == 1
        assert any_store.get(session.session_id).version == 1

    def test_second_create_conflicts(self, any_store):
        first = populated_session()
        second = populated_session()
        assert any_store.put(first.session_id, first, 0)
        assert not any_store.put(second.session_id, second, 0)

    def test_update_with_current_version(self, any_store):
        session = populated_session()
        any_store.put(session.session_id, session, 0)
        session.cursor = 3
        assert any_store.put(session.session_id, session, 1)
        loaded = any_store.get(session.session_id)
        assert loaded.version == 2
        assert loaded.cursor == 3

    def test_stale_update_is_refused(self, any_store):
        session = populated_session()
        any_store.put(session.session_id, session, 0)
        a = any_store.get(session.session_id)
        b = any_store.get(session.session_id)

        a.cursor = 3
        assert any_store.put(a.session_id, a, a.version)
        b.cursor = 4
        assert not any_store.put(b.session_id, b, 1)
        assert any_store.get(session.session_id).cursor == 3

    def test_update_of_missing_session_conflicts(self, any_store):
        session = populated_session("CA-GHOST")
        assert not any_store.put(session.session_id, session, 3)

    def test_conflict_leaves_version_untouched(self, any_store):
        session = populated_session()
        any_store.put(session.session_id, session, 0)
        stale = populated_session()
        any_store.put(stale.session_id, stale, 5)
        assert stale.version == 0

    def test_sessions_do_not_contend(self, any_store):
        a = populated_session("CA-A")
        b = populated_session("CA-B")
        assert any_store.put("CA-A", a, 0)
        assert any_store.put("CA-B", b, 0)


class TestStoreHelpers:
    def test_in_memory_reset_and_len(self):
        store = InMemorySessionStore()
        store.put("CA-1", populated_session("CA-1"), 0)
        assert len(store) == 1
        store.reset()
        assert len(store) == 0
