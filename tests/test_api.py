"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from civic_intake.api.app import create_app
from civic_intake.errors import PersistenceError
from civic_intake.service import IntakeTurnService
from tests.conftest import BLUE_BADGE_ANSWERS, make_orchestrator

CALLER = "+447700900123"


@pytest.fixture
def client(turn_service):
    return TestClient(create_app(turn_service))


def post_turn(client, utterance, session_id="CA-API-1"):
    return client.post(
        "/turns",
        json={"session_id": session_id, "caller_address": CALLER, "utterance": utterance},
    )


class TestTurns:
    def test_priming_turn_returns_greeting(self, client):
        response = client.post("/turns", json={"session_id": "CA-API-1", "caller_address": CALLER})
        assert response.status_code == 200
        body = response.json()
        assert body["action"] == "gather-more-input"
        assert body["stage"] == "service_selection"
        assert "Blue Badge Application" in body["prompt"]

    def test_service_selection(self, client):
        body = post_turn(client, "I need help with a blue badge").json()
        assert body["stage"] == "information_gathering"
        assert "full name" in body["prompt"].lower()

    def test_complete_dialogue_over_http(self, client, notifier):
        post_turn(client, "I need help with a blue badge")
        for answer in BLUE_BADGE_ANSWERS:
            post_turn(client, answer)
        body = post_turn(client, "yes that's right").json()
        assert body["stage"] == "completed"
        assert body["action"] == "end-dialogue"
        assert len(body["record_reference"]) == 8
        assert body["email_sent"] is True
        assert len(notifier.sent) == 1

    def test_missing_session_id_rejected(self, client):
        response = client.post("/turns", json={"utterance": "hello"})
        assert response.status_code == 422

    def test_empty_session_id_rejected(self, client):
        response = client.post("/turns", json={"session_id": "", "utterance": "hello"})
        assert response.status_code == 422


class TestSessions:
    def test_unknown_session_is_404(self, client):
        assert client.get("/sessions/nope").status_code == 404

    def test_session_audit_view(self, client):
        post_turn(client, None)
        post_turn(client, "pothole")
        body = client.get("/sessions/CA-API-1").json()
        assert body["stage"] == "information_gathering"
        assert body["service_id"] == "pothole_report"
        assert body["cursor"] == 0
        assert body["version"] == 2
        assert [t["speaker"] for t in body["history"]] == [
            "assistant", "caller", "assistant",
        ]


class TestServices:
    def test_lists_catalog(self, client):
        body = client.get("/services").json()
        assert [s["id"] for s in body][:2] == ["blue_badge", "missed_bin"]
        disability = body[0]["fields"][4]
        assert disability["type"] == "select"
        assert "Mobility impairment" in disability["options"]

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok", "services": 6}


class TestErrorHandling:
    def test_intake_error_maps_to_json(self, catalog, handoff, store):
        class FailingService(IntakeTurnService):
            def process_turn(self, session_id, caller_address="", utterance=None):
                raise PersistenceError("session store offline")

        app = create_app(FailingService(store, make_orchestrator(catalog, handoff)))
        response = TestClient(app).post("/turns", json={"session_id": "CA-X"})
        assert response.status_code == 503
        assert response.json() == {
            "error": "PersistenceError", "detail": "session store offline",
        }
