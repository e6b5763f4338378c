"""Tests for the HTTP surface using FastAPI's TestClient."""

import pytest
from fastapi.testclient import TestClient

from smsrelay import db
from smsrelay import main as main_module
from tests.conftest import SENDER, RecordingTransport, StubLLM, long_reply

CONFIG = {
    "relay": {"inter_segment_delay_seconds": 0},
    "allowlist": {"numbers": [SENDER]},
    "llm": {"provider": "ollama"},
}


@pytest.fixture
def stubs():
    return StubLLM(reply=long_reply()), RecordingTransport()


@pytest.fixture
def app(tmp_path, monkeypatch, stubs):
    llm, transport = stubs
    for var in ("ALLOWED_NUMBERS", "LLM_PROVIDER", "SUPPORTS_EMOJI"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(db, "DB_PATH", tmp_path / "relay.db")
    monkeypatch.setattr(main_module, "load_config", lambda: dict(CONFIG))
    monkeypatch.setattr(main_module, "load_llm_from_config", lambda conf: llm)
    monkeypatch.setattr(main_module, "load_transport_from_config", lambda conf: transport)
    return main_module.app


class TestInbound:

    def test_accepted_message_is_relayed(self, app, stubs):
        llm, transport = stubs
        with TestClient(app) as client:
            resp = client.post("/inbound", json={"sender": SENDER, "body": "tell me a story"})
            assert resp.status_code == 200
            data = resp.json()
            assert data["status"] == "accepted"
            assert data["fingerprint"].startswith(f"{SENDER}:")

        # Lifespan shutdown drains the background task
        assert [t[:6] for t in transport.texts] == ["(1/3) ", "(2/3) ", "(3/3) "]
        row = db.get_recent_messages(1)[0]
        assert row["status"] == "completed"
        assert row["segments_sent"] == 3
        assert row["reply"] == long_reply()

    def test_unknown_sender_is_rejected(self, app, stubs):
        llm, transport = stubs
        with TestClient(app) as client:
            resp = client.post("/inbound", json={"sender": "+19998887777", "body": "hi"})
            assert resp.json()["status"] == "rejected"

        assert llm.prompts == []
        assert transport.sent == []
        assert db.get_recent_messages(1)[0]["status"] == "rejected"

    def test_redelivery_is_duplicate(self, app, stubs):
        llm, _ = stubs
        with TestClient(app) as client:
            first = client.post("/inbound", json={"sender": SENDER, "body": "weather?"})
            second = client.post("/inbound", json={"sender": SENDER, "body": "weather?"})
            assert first.json()["status"] == "accepted"
            assert second.json()["status"] == "duplicate"
            assert first.json()["fingerprint"] == second.json()["fingerprint"]

        assert llm.prompts == ["weather?"]
        stats = db.get_stats()
        assert stats["received"] == 2
        assert stats["duplicate"] == 1
        assert stats["completed"] == 1

    def test_llm_failure_recorded_as_failed(self, app, stubs):
        from smsrelay.errors import LlmInvocationError
        from smsrelay.relay import APOLOGY

        llm, transport = stubs
        llm.error = LlmInvocationError("Ollama error: 500")
        with TestClient(app) as client:
            client.post("/inbound", json={"sender": SENDER, "body": "hi"})

        assert transport.texts == [APOLOGY]
        row = db.get_recent_messages(1)[0]
        assert row["status"] == "failed"
        assert "500" in row["reason"]

    def test_missing_body_is_422(self, app):
        with TestClient(app) as client:
            resp = client.post("/inbound", json={"sender": SENDER})
            assert resp.status_code == 422


class TestStatus:

    def test_health(self, app):
        with TestClient(app) as client:
            resp = client.get("/health")
            assert resp.json() == {"status": "healthy", "db": "ok", "llm": "ok"}

    def test_status_reports_relay_state(self, app):
        with TestClient(app) as client:
            data = client.get("/api/status").json()

        relay = data["core"][0]
        assert relay["id"] == "relay"
        assert relay["checks"]["in_flight"] == 0
        assert relay["checks"]["allowlist"] == f"1 number: {SENDER}"
        assert [s["id"] for s in data["external"]] == ["llm", "transport"]
        assert isinstance(data["warnings"], list)

    def test_messages_and_stats(self, app):
        with TestClient(app) as client:
            client.post("/inbound", json={"sender": "+19998887777", "body": "spam"})
            client.post("/inbound", json={"sender": SENDER, "body": "hi"})

            messages = client.get("/api/messages", params={"limit": 1}).json()
            assert len(messages) == 1
            assert messages[0]["body"] == "hi"

            stats = client.get("/api/stats").json()
            assert stats["received"] == 2
            assert stats["rejected"] == 1

    def test_test_llm(self, app, stubs):
        llm, _ = stubs
        llm.reply_text = "Hi!"
        with TestClient(app) as client:
            data = client.post("/api/test-llm").json()
        assert data["success"] is True
        assert data["reply"] == "Hi!"
        assert data["provider"] == "stub"
