from __future__ import annotations

import pytest
from conftest import STRONG, InMemoryRedis
from fastapi.testclient import TestClient

from topic_monitor.core.app_context import AppContext
from topic_monitor.main import create_app


@pytest.fixture
def client(test_settings):
    app = create_app(lambda: AppContext(settings=test_settings, redis=InMemoryRedis()))
    with TestClient(app) as c:
        yield c


def _start(client: TestClient, session_id: str = "api-1", **extra) -> dict:
    body = {
        "session_id": session_id,
        "topic": "Quadratic Equations",
        "subject": "Mathematics",
        "teacher": {"teacher_id": "t-1", "teacher_name": "Ms. Rao"},
        **extra,
    }
    res = client.post("/api/v1/monitoring/start", json=body)
    assert res.status_code == 200, res.text
    return res.json()


class TestMonitoringRoutes:
    def test_full_session(self, client):
        started = _start(client)
        assert started["mode"] == "live"
        assert started["keyword_count"] > 10

        for text in STRONG:
            res = client.post("/api/v1/monitoring/api-1/segments", json={"text": text, "confidence": 0.9})
            assert res.status_code == 200
            assert res.json()["status"]["is_on_topic"] is True

        analysis = client.get("/api/v1/monitoring/api-1/analysis").json()["analysis"]
        assert analysis["segment_count"] == 3
        assert analysis["session_state"] == "ACTIVE"

        stopped = client.post("/api/v1/monitoring/api-1/stop")
        assert stopped.status_code == 200
        report = stopped.json()["report"]
        assert report["examples_given"] == 1
        assert report["session_state"] == "TERMINATED"

        assert client.post("/api/v1/monitoring/api-1/stop").status_code == 409
        assert client.get("/api/v1/monitoring/api-1/report").json()["report"] == report

        stats = client.get("/api/v1/teachers/t-1/stats").json()["stats"]
        assert stats["total_sessions"] == 1
        recent = client.get("/api/v1/sessions/recent").json()["items"]
        assert [r["session_id"] for r in recent] == ["api-1"]
        rankings = client.get("/api/v1/teachers/rankings").json()["items"]
        assert rankings[0]["teacher_id"] == "t-1"
        sessions = client.get("/api/v1/teachers/t-1/sessions").json()["items"]
        assert len(sessions) == 1

    def test_conflicts_and_missing_sessions(self, client):
        _start(client, "api-2")
        dup = client.post("/api/v1/monitoring/start", json={"session_id": "api-2", "topic": "Algebra", "subject": "Mathematics"})
        assert dup.status_code == 409
        assert client.get("/api/v1/monitoring/api-2/report").status_code == 409
        assert client.post("/api/v1/monitoring/nope/segments", json={"text": "hello there class"}).status_code == 404
        assert client.get("/api/v1/teachers/ghost/stats").status_code == 404

    def test_transcription_error_and_interim(self, client):
        _start(client, "api-3")
        res = client.post("/api/v1/monitoring/api-3/interim", json={"text": "the quadratic"})
        assert res.json()["mode"] == "live"
        res = client.post("/api/v1/monitoring/api-3/transcription_error", json={"kind": "network"})
        assert res.json()["mode"] == "live"
        res = client.post("/api/v1/monitoring/api-3/transcription_error", json={"kind": "not-allowed"})
        assert res.json()["mode"] == "simulation"
        report = client.post("/api/v1/monitoring/api-3/stop").json()["report"]
        assert report["degraded"] is True

    def test_realtime_ingestion_socket(self, client):
        _start(client, "api-4")
        with client.websocket_connect("/api/v1/monitoring/realtime") as ws:
            ws.send_json({"session_id": "api-4", "type": "final", "text": STRONG[0]})
            assert ws.receive_json()["ok"] is True
            ws.send_json({"session_id": "missing", "type": "final", "text": STRONG[0]})
            ack = ws.receive_json()
            assert ack["ok"] is False and "not found" in ack["error"]
            ws.send_text("not json")
            assert ws.receive_json()["ok"] is False
        analysis = client.get("/api/v1/monitoring/api-4/analysis").json()["analysis"]
        assert analysis["segment_count"] == 1


class TestTopicRoutes:
    def test_list_and_add(self, client):
        topics = client.get("/api/v1/topics").json()["subjects"]
        assert "Quadratic Equations" in topics["Mathematics"]

        res = client.post(
            "/api/v1/topics/custom",
            json={"subject": "Mathematics", "topic": "Number Bases", "keywords": ["binary", "octal"]},
        )
        assert res.status_code == 200
        assert res.json()["keywords"] == ["binary", "octal"]
        assert "Number Bases" in client.get("/api/v1/topics").json()["subjects"]["Mathematics"]

        started = _start(client, "api-5", topic="Number Bases")
        assert started["keyword_count"] == 2
