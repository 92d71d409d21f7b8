"""Tests for the FastAPI server."""

import httpx
import pytest
from fastapi.testclient import TestClient

from api.main import app, get_service
from prepai.cache import ResponseCache
from prepai.errors import UpstreamServerError
from prepai.metrics import MetricsCollector
from prepai.pipeline import GeminiProvider, MockProvider, RequestPipeline
from prepai.quota import QuotaTracker
from prepai.service import InterviewPrepService

from helpers import VALID_KEY, FakeClock, RecordingSleep, ScriptedTransport


QUESTIONS_BODY = {
    "role": "Backend Engineer",
    "experience": "3",
    "topicsToFocus": "Node.js, SQL",
    "numberOfQuestions": 3,
}


def build_service(responses=None, clock=None) -> InterviewPrepService:
    pipeline = RequestPipeline(
        provider=MockProvider(responses=responses),
        tracker=QuotaTracker(clock=clock or FakeClock()),
        metrics=MetricsCollector(enable_logging=False),
        sleep=RecordingSleep(),
    )
    return InterviewPrepService(pipeline=pipeline, cache=ResponseCache(ttl_seconds=0))


@pytest.fixture
def use_service():
    """Install a service for the app and remove it afterwards."""
    def install(service: InterviewPrepService) -> TestClient:
        app.dependency_overrides[get_service] = lambda: service
        return TestClient(app)

    yield install
    app.dependency_overrides.clear()


class TestHealth:
    """Test the health endpoint."""

    def test_health(self):
        response = TestClient(app).get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestGenerateQuestionsEndpoint:
    """Test POST /api/ai/generate-questions."""

    def test_success(self, use_service):
        client = use_service(build_service(["1. What is an index?\n2. What is a join?\n3. What is ACID?"]))

        response = client.post("/api/ai/generate-questions", json=QUESTIONS_BODY)

        assert response.status_code == 200
        body = response.json()
        assert body == {
            "success": True,
            "questions": ["What is an index?", "What is a join?", "What is ACID?"],
        }

    def test_failing_model_still_succeeds(self, use_service):
        """Test that a failing model returns fallback questions with success true."""
        failures = [UpstreamServerError("Internal error", upstream_status=500)] * 3
        client = use_service(build_service(failures))

        response = client.post("/api/ai/generate-questions", json=QUESTIONS_BODY)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["isFallback"] is True
        assert len(body["questions"]) == 3
        assert all("Backend Engineer" in q for q in body["questions"])

    def test_malformed_upstream_reply_falls_back(self, use_service):
        """Test that an unusable provider reply yields fallback questions."""
        body = {"candidates": [{"finishReason": 1, "content": {"parts": [{"text": "1. Q?"}]}}]}
        script = ScriptedTransport(httpx.Response(200, json=body))
        pipeline = RequestPipeline(
            provider=GeminiProvider(api_key=VALID_KEY, transport=script.transport),
            tracker=QuotaTracker(clock=FakeClock()),
            metrics=MetricsCollector(enable_logging=False),
            sleep=RecordingSleep(),
        )
        client = use_service(InterviewPrepService(pipeline=pipeline, cache=ResponseCache(ttl_seconds=0)))

        response = client.post("/api/ai/generate-questions", json=QUESTIONS_BODY)

        assert response.status_code == 200
        assert response.json()["isFallback"] is True
        assert script.call_count == 3

    def test_missing_fields(self, use_service):
        client = use_service(build_service())

        response = client.post("/api/ai/generate-questions", json={"role": "Dev"})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "MISSING_REQUIRED_FIELDS"
        assert body["fields"] == ["experience", "topicsToFocus", "numberOfQuestions"]

    def test_invalid_count(self, use_service):
        client = use_service(build_service())

        response = client.post(
            "/api/ai/generate-questions",
            json={**QUESTIONS_BODY, "numberOfQuestions": 50},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_NUM_QUESTIONS"

    @pytest.mark.parametrize("field,value", [
        ("numberOfQuestions", True),
        ("role", ["Backend Engineer"]),
        ("topicsToFocus", {"a": 1}),
    ])
    def test_non_scalar_fields_rejected(self, use_service, field, value):
        client = use_service(build_service())

        response = client.post("/api/ai/generate-questions", json={**QUESTIONS_BODY, field: value})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_REQUEST"

    def test_zero_count_reported_missing(self, use_service):
        client = use_service(build_service())

        response = client.post("/api/ai/generate-questions", json={**QUESTIONS_BODY, "numberOfQuestions": 0})

        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_REQUIRED_FIELDS"

    def test_snake_case_names_accepted(self, use_service):
        client = use_service(build_service())

        response = client.post(
            "/api/ai/generate-questions",
            json={"role": "SRE", "experience": 5, "topics_to_focus": "Kubernetes", "number_of_questions": "2"},
        )

        assert response.status_code == 200
        assert len(response.json()["questions"]) == 2

    def test_malformed_body(self, use_service):
        client = use_service(build_service())

        response = client.post(
            "/api/ai/generate-questions",
            content="not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_REQUEST"


class TestGenerateExplanationEndpoint:
    """Test POST /api/ai/generate-explanation."""

    def test_success(self, use_service):
        client = use_service(build_service(["# Closures\n\n## Explanation\nScope capture."]))

        response = client.post(
            "/api/ai/generate-explanation",
            json={"concept": "Closures", "difficulty": "beginner"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["explanation"].startswith("# Closures")
        assert body["concept"] == "Closures"
        assert body["difficulty"] == "beginner"
        assert body["language"] == "English"
        assert body["metadata"]["model"] == "mock"
        assert body["metadata"]["responseTime"].endswith("ms")
        assert body["metadata"]["cached"] is False
        assert "generatedAt" in body["metadata"]

    def test_missing_concept(self, use_service):
        client = use_service(build_service())

        response = client.post("/api/ai/generate-explanation", json={})

        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_CONCEPT"

    def test_invalid_difficulty(self, use_service):
        client = use_service(build_service())

        response = client.post(
            "/api/ai/generate-explanation",
            json={"concept": "Closures", "difficulty": "impossible"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_DIFFICULTY"

    def test_cooldown_returns_429(self, use_service):
        """Test that an active cooldown maps to 429 with Retry-After."""
        service = build_service()
        service.tracker.activate_cooldown(20)
        client = use_service(service)

        response = client.post("/api/ai/generate-explanation", json={"concept": "Closures"})

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "20"
        body = response.json()
        assert body["code"] == "RATE_LIMITED"
        assert body["retry_after"] == 20

    def test_quota_exceeded(self, use_service):
        service = build_service()
        service.tracker.mark_daily_quota_exceeded()
        client = use_service(service)

        response = client.post("/api/ai/generate-explanation", json={"concept": "Closures"})

        assert response.status_code == 429
        assert response.json()["code"] == "QUOTA_EXCEEDED"

    def test_upstream_failure(self, use_service):
        failures = [UpstreamServerError("Internal error", upstream_status=500)] * 3
        client = use_service(build_service(failures))

        response = client.post("/api/ai/generate-explanation", json={"concept": "Closures"})

        assert response.status_code == 502
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "RETRIES_EXHAUSTED"
        assert body["attempts"] == 3
        assert body["last_error_code"] == "UPSTREAM_SERVER_ERROR"
        assert "stack" not in body

    def test_development_mode_details(self, use_service, monkeypatch):
        monkeypatch.setenv("PREPAI_ENV", "development")
        failures = [UpstreamServerError("Internal error", upstream_status=500)] * 3
        client = use_service(build_service(failures))

        response = client.post("/api/ai/generate-explanation", json={"concept": "Closures"})

        body = response.json()
        assert "Failed after 3 attempts" in body["details"]
        assert "RetriesExhausted" in body["stack"]


class TestAuthAndUsage:
    """Test the optional API key and the usage endpoint."""

    def test_api_key_required_when_configured(self, use_service, monkeypatch):
        monkeypatch.setenv("PREPAI_API_KEY", "secret")
        client = use_service(build_service())

        denied = client.post("/api/ai/generate-questions", json=QUESTIONS_BODY)
        allowed = client.post(
            "/api/ai/generate-questions",
            json=QUESTIONS_BODY,
            headers={"X-API-Key": "secret"},
        )

        assert denied.status_code == 401
        assert denied.json()["code"] == "UNAUTHORIZED"
        assert allowed.status_code == 200

    def test_usage(self, use_service):
        client = use_service(build_service())
        client.post("/api/ai/generate-questions", json=QUESTIONS_BODY)

        response = client.get("/api/ai/usage")

        assert response.status_code == 200
        body = response.json()
        assert body["quota"]["requests_today"] == 1
        assert body["metrics"]["counters"]["successes_total"] == 1
        assert body["cache_entries"] == 0
