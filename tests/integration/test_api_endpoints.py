"""HTTP surface tests with stage services swapped for local fakes."""

import pytest
from fastapi.testclient import TestClient

from replyq.api.app import app
from replyq.api.dependencies import Services, set_services
from replyq.autosend import AutoSendController
from replyq.classification.classifier import IntentClassifier
from replyq.classification.extractor import EntityExtractor
from replyq.drafting.drafter import DraftGenerator
from replyq.infrastructure.database import get_db_path
from replyq.shared.pipeline import ReplyPipeline
from replyq.suggestions import SuggestionAggregator

SCENARIO = "Let's schedule an interview tomorrow at 2pm, urgent"
REPLY = "Confirming Tuesday at 2pm works for the interview."


@pytest.fixture
def sent():
    return []


@pytest.fixture
def services(manual_scheduler, sent):
    classifier = IntentClassifier()
    extractor = EntityExtractor()
    drafter = DraftGenerator()
    aggregator = SuggestionAggregator()
    autosend = AutoSendController(send_action=sent.append, scheduler=manual_scheduler)
    pipeline = ReplyPipeline(classifier, extractor, drafter, aggregator, autosend)
    stage_services = Services(classifier, extractor, drafter, aggregator, autosend, pipeline)
    set_services(stage_services)
    yield stage_services
    set_services(None)


@pytest.fixture
def client(services):
    with TestClient(app) as test_client:
        yield test_client


class TestMeta:
    def test_health(self, client):
        response = client.get("/health")
        data = response.json()

        assert response.status_code == 200
        assert data["status"] == "healthy"
        assert data["service"] == "ReplyQ API"
        assert data["llm"]["enabled"] is False
        assert data["autosend"] == {"adaptive_threshold": False}

    def test_storage_is_initialized_on_startup(self, services):
        db_path = get_db_path()
        assert not db_path.exists()

        with TestClient(app):
            assert db_path.exists()

    def test_root_lists_endpoints(self, client):
        data = client.get("/").json()
        assert data["endpoints"]["process"] == "/api/process"


class TestStageEndpoints:
    def test_classify(self, client):
        response = client.post("/api/classify", json={"text": SCENARIO})
        data = response.json()

        assert response.status_code == 200
        assert data["intent"] == "interview_scheduling"
        assert data["urgency"] == "high"
        assert data["is_fallback"] is True
        assert data["routing"]["endpoint"] == "/api/calendar/schedule"

    @pytest.mark.parametrize("body", [{"text": "   "}, {"text": ""}, {}, {"text": "x" * 20001}])
    def test_classify_rejects_bad_text(self, client, body):
        response = client.post("/api/classify", json=body)
        data = response.json()

        assert response.status_code == 422
        assert data["invalid_fields"] == ["text"]
        assert "x" * 50 not in response.text

    def test_extract_is_cached(self, client):
        body = {"text": "Reach out to jane@example.com about Friday's sync"}
        first = client.post("/api/extract", json=body).json()
        second = client.post("/api/extract", json=body).json()

        assert first["cached"] is False
        assert second["cached"] is True
        assert first["extraction"]["people"][0]["email"] == "jane@example.com"
        assert second["extraction"] == first["extraction"]

    def test_draft(self, client):
        response = client.post(
            "/api/draft",
            json={
                "text": SCENARIO,
                "intent": "interview_scheduling",
                "extraction": {"ask": "Schedule the interview", "people": [{"name": "Jane"}]},
                "slots": [{"start": "2026-10-20T14:00:00", "end": "2026-10-20T15:00:00"}],
                "user_profile": {"name": "Sam", "tone": "formal"},
            },
        )
        data = response.json()

        assert response.status_code == 200
        assert data["primary"]["body"].startswith("Hi Jane,")
        assert data["primary"]["signoff"] == "Sincerely,\nSam"
        assert data["primary"]["tone"] == "formal"
        assert data["alternatives"] == []
        assert "add_to_calendar" in data["suggested_actions"]
        assert data["metadata"]["is_fallback"] is True
        assert data["metadata"]["model_used"] == "template-fallback"

    def test_suggestions(self, client):
        response = client.post(
            "/api/suggestions",
            json={"text": SCENARIO, "intent": "interview_scheduling", "confidence": 0.32},
        )
        data = response.json()

        assert response.status_code == 200
        assert data["primary"]["id"] == "schedule"
        assert [s["id"] for s in data["ranked"]] == ["schedule", "add_calendar", "reply", "handoff_optihire"]
        assert data["suggestions"] == data["ranked"]
        assert data["ranked"][-1]["side_effect_payload"].startswith('{"module":"optihire"')

    def test_suggestions_confidence_bounds(self, client):
        response = client.post(
            "/api/suggestions", json={"text": SCENARIO, "intent": "x", "confidence": 1.5}
        )
        assert response.status_code == 422
        assert response.json()["invalid_fields"] == ["confidence"]

    def test_process(self, client):
        response = client.post(
            "/api/process",
            json={"text": SCENARIO, "context_id": "thread-1", "auto_send": True},
        )
        data = response.json()

        assert response.status_code == 200
        assert data["classification"]["intent"] == "interview_scheduling"
        assert data["extraction_cached"] is False
        assert data["draft"]["metadata"]["is_fallback"] is True
        assert data["confidence"] == 0.4292
        assert data["autosend_eligible"] is False
        assert data["autosend"] is None
        assert data["suggestions"][0]["id"] == "schedule"


class TestAutoSendEndpoints:
    def _start(self, client, context_id="thread-1", confidence=0.9):
        return client.post(
            "/api/autosend/start",
            json={"context_id": context_id, "draft_ref": f"{context_id}:abc", "confidence": confidence, "text": REPLY},
        )

    def test_start_and_cancel(self, client, manual_scheduler, sent):
        started = self._start(client).json()
        assert started["state"] == "counting"
        assert started["session"]["remaining"] == 3
        assert started["threshold"] == 0.85

        manual_scheduler.advance(1)
        assert client.get("/api/autosend/thread-1").json()["session"]["remaining"] == 2

        cancelled = client.post("/api/autosend/cancel", json={"context_id": "thread-1"}).json()
        assert cancelled["state"] == "cancelled"

        manual_scheduler.advance(5)
        assert sent == []
        again = client.post("/api/autosend/cancel", json={"context_id": "thread-1"}).json()
        assert again["state"] == "cancelled"

    def test_low_confidence_stays_idle(self, client, manual_scheduler):
        data = self._start(client, confidence=0.5).json()
        assert data["state"] == "idle"
        assert data["session"] is None
        assert manual_scheduler.pending == []

    def test_unknown_context_is_idle(self, client):
        assert client.get("/api/autosend/nobody").json()["state"] == "idle"

    def test_feedback_requires_commit(self, client):
        self._start(client)
        response = client.post("/api/autosend/feedback", json={"context_id": "thread-1"})

        assert response.status_code == 400
        assert response.json()["field"] == "context_id"

    def test_commit_and_regret_feedback(self, client, manual_scheduler, sent):
        self._start(client)
        manual_scheduler.advance(3)

        assert client.get("/api/autosend/thread-1").json()["state"] == "committed"
        assert len(sent) == 1

        summary = client.post("/api/autosend/feedback", json={"context_id": "thread-1"}).json()
        assert summary["successful_auto_sends"] == 0
        assert summary["regretted_auto_sends"] == 1
        assert summary["optimal_confidence_threshold"] == 0.86
        assert client.get("/api/autosend/metrics/summary").json() == summary


class TestTemplateEndpoint:
    def test_create(self, client):
        response = client.post(
            "/api/templates",
            json={"name": "Interview invite", "content": "Are you free Tuesday at 2pm?", "tone": "friendly"},
        )
        data = response.json()

        assert response.status_code == 201
        assert data["id"] > 0
        assert data["name"] == "Interview invite"
        assert data["category"] == "general"

    def test_short_content_is_rejected(self, client):
        response = client.post("/api/templates", json={"name": "Short", "content": "too short"})
        assert response.status_code == 400
        assert response.json()["field"] == "content"

    def test_storage_unavailable(self, client, tmp_path, monkeypatch):
        monkeypatch.setenv("REPLYQ_DB_PATH", str(tmp_path / "missing" / "api.db"))
        response = client.post(
            "/api/templates", json={"name": "Invite", "content": "Are you free Tuesday at 2pm?"}
        )

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "30"
        assert response.json()["retry_after_seconds"] == 30
