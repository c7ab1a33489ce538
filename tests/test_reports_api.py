"""Tests for the reports and memos API endpoints."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from focus_reports.api.dependencies import get_memo_pipeline, get_report_generator
from focus_reports.core.config import get_settings
from focus_reports.core.llm import CompletionProvider
from focus_reports.core.memo_pipeline import MemoPipeline
from focus_reports.graphs.generate_report_graph import ReportGenerator
from focus_reports.main import app
from tests.fakes.builders import GOAL_ID, last_week_cards, make_goal, make_report
from tests.fakes.fake_store import (
    FakeCompletionBackend,
    FakeEmbeddingProvider,
    FakeGoalReader,
    FakeReportStore,
    FakeRetrievalEngine,
)

REPORT_TEXT = """**Progress Assessment**
You completed most days.

**Key Patterns**
Mornings are best."""


@pytest.fixture
def store():
    return FakeReportStore()


@pytest.fixture
def backend():
    return FakeCompletionBackend(default=REPORT_TEXT)


@pytest.fixture
def embedder():
    return FakeEmbeddingProvider()


@pytest.fixture
def client(store, backend, embedder):
    goals = FakeGoalReader([make_goal(last_week_cards(completed_days=5))])
    completion = CompletionProvider(backend, large_model="large", small_model="small")
    retrieval = FakeRetrievalEngine()

    generator = ReportGenerator(goals, store, completion, embedder, retrieval)
    memos = MemoPipeline(goals, store, completion, embedder, retrieval)

    app.dependency_overrides[get_report_generator] = lambda: generator
    app.dependency_overrides[get_memo_pipeline] = lambda: memos
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def report_id(store):
    return store.add_report(make_report(goal_id=GOAL_ID)).id


class TestGenerateReport:
    def test_generate_report_envelope(self, client, store):
        response = client.post(f"/api/reports/{GOAL_ID}", json={"timeRange": "last7days"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["goalId"] == GOAL_ID
        assert data["analysisType"] == "basic"
        assert data["content"]["details"] == REPORT_TEXT
        assert [s["title"] for s in data["content"]["sections"]] == [
            "Progress Assessment",
            "Key Patterns",
        ]
        assert data["content"]["summary"] == "You completed most days."
        assert data["analysis"]["totalRecords"] >= 0
        assert "start" in data["dateRange"]
        assert len(store.save_calls) == 1

    def test_generate_report_explicit_range(self, client, backend):
        response = client.post(
            f"/api/reports/{GOAL_ID}",
            json={"timeRange": {"startDate": "2026-08-01", "endDate": "2026-08-31"}},
        )

        assert response.status_code == 200
        assert response.json()["data"]["analysisType"] == "deep"
        assert backend.calls[0]["model"] == "large"

    def test_generate_report_without_body_defaults_to_last7days(self, client):
        response = client.post(f"/api/reports/{GOAL_ID}")

        assert response.status_code == 200
        assert response.json()["data"]["timeRange"] == "last7days"

    def test_unknown_goal_is_404(self, client, store):
        response = client.post("/api/reports/unknown", json={"timeRange": "today"})

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "GOAL_NOT_FOUND"
        assert store.save_calls == []

    def test_generation_failure_is_500(self, client, backend):
        backend.failing_models.update({"large", "small"})

        response = client.post(f"/api/reports/{GOAL_ID}", json={"timeRange": "today"})

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "GENERATION_FAILED"
        assert "please try again later" in error["message"]

    def test_timeout_is_504_with_retry_message(self, client, backend):
        backend.delay = 0.5
        settings = get_settings().model_copy(update={"REQUEST_TIMEOUT_SECONDS": 0.01})

        with patch("focus_reports.api.reports.get_settings", return_value=settings):
            response = client.post(f"/api/reports/{GOAL_ID}", json={"timeRange": "today"})

        assert response.status_code == 504
        error = response.json()["error"]
        assert error["code"] == "GENERATION_TIMEOUT"
        assert "generate button again" in error["message"]


class TestLatestReport:
    def test_latest_report(self, client, report_id):
        response = client.get(f"/api/reports/{GOAL_ID}/latest")

        assert response.status_code == 200
        assert response.json()["data"]["id"] == report_id

    def test_latest_report_missing(self, client):
        response = client.get("/api/reports/no-reports/latest")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "REPORT_NOT_FOUND"


class TestReportEmbedding:
    def test_save_embedding(self, client, store, report_id):
        response = client.post(f"/api/reports/{report_id}/embedding")

        assert response.status_code == 200
        assert response.json()["data"] == {"reportId": report_id, "hasEmbedding": True}
        assert report_id in store.report_embeddings


class TestMemos:
    def test_add_memo(self, client, report_id):
        response = client.post(
            f"/api/reports/{report_id}/memos",
            json={"content": "Felt focused", "phase": "originalMemo"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["phase"] == "originalMemo"
        assert data["content"] == "Felt focused"

    def test_add_memo_requires_content(self, client, report_id):
        response = client.post(f"/api/reports/{report_id}/memos", json={"content": "  "})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_MEMO"

    def test_add_memo_invalid_phase_is_422(self, client, report_id):
        response = client.post(
            f"/api/reports/{report_id}/memos", json={"content": "x", "phase": "draft"}
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_update_memo(self, client, report_id):
        client.post(f"/api/reports/{report_id}/memos", json={"content": "v1"})

        response = client.patch(
            f"/api/reports/{report_id}/memos/originalMemo", json={"content": "v2"}
        )

        assert response.status_code == 200
        listed = client.get(f"/api/reports/{report_id}/memos").json()["data"]
        assert listed["count"] == 1
        assert listed["memos"][0]["content"] == "v2"

    def test_add_memo_times_out_on_slow_embedding(self, client, embedder, store, report_id):
        embedder.delay = 0.5
        settings = get_settings().model_copy(update={"REQUEST_TIMEOUT_SECONDS": 0.01})

        with patch("focus_reports.api.reports.get_settings", return_value=settings):
            response = client.post(
                f"/api/reports/{report_id}/memos", json={"content": "Felt focused"}
            )

        assert response.status_code == 504
        assert response.json()["error"]["code"] == "GENERATION_TIMEOUT"
        assert store.memos == {}

    def test_update_memo_times_out_on_slow_embedding(self, client, embedder, report_id):
        embedder.delay = 0.5
        settings = get_settings().model_copy(update={"REQUEST_TIMEOUT_SECONDS": 0.01})

        with patch("focus_reports.api.reports.get_settings", return_value=settings):
            response = client.patch(
                f"/api/reports/{report_id}/memos/finalMemo", json={"content": "v2"}
            )

        assert response.status_code == 504
        assert response.json()["error"]["code"] == "GENERATION_TIMEOUT"

    def test_suggest_without_original_is_400(self, client, backend, report_id):
        response = client.post(f"/api/reports/{report_id}/memos/suggest")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "PRECONDITION_FAILED"
        assert error["details"]["missing_phase"] == "originalMemo"
        assert backend.calls == []

    def test_suggest_creates_ai_draft(self, client, report_id):
        client.post(f"/api/reports/{report_id}/memos", json={"content": "Good week"})

        response = client.post(f"/api/reports/{report_id}/memos/suggest")

        assert response.status_code == 200
        assert response.json()["data"]["phase"] == "aiDraft"

    def test_next_week_plan(self, client, report_id):
        client.post(
            f"/api/reports/{report_id}/memos", json={"content": "Done", "phase": "finalMemo"}
        )

        response = client.post(f"/api/reports/{report_id}/memos/next-week-plan")

        assert response.status_code == 200
        assert response.json()["data"]["phase"] == "nextWeekPlan"

    def test_list_memos_reports_next_phase(self, client, report_id):
        client.post(f"/api/reports/{report_id}/memos", json={"content": "first"})

        data = client.get(f"/api/reports/{report_id}/memos").json()["data"]

        assert data["reportId"] == report_id
        assert data["count"] == 1
        assert data["nextPhase"] == "aiDraft"

    def test_list_memos_unknown_report(self, client):
        response = client.get("/api/reports/missing/memos")

        assert response.status_code == 404
