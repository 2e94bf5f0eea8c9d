"""HTTP-level tests for the tracking and insights routers."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from src.dependencies import get_insights_service
from src.insights.config_loader import load_insights_config
from src.insights.tests.conftest import TEST_USER_ID, InMemoryKeyValueStore
from src.main import app
from src.services.insights import InsightsService

AUTH = {"X-User-Id": TEST_USER_ID}


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def client(kv: InMemoryKeyValueStore) -> Iterator[TestClient]:
    service = InsightsService(kv, load_insights_config())
    app.dependency_overrides[get_insights_service] = lambda: service
    # no context manager: the lifespan (and its database pool) is skipped
    yield TestClient(app)
    app.dependency_overrides.clear()


def _log_periods(client: TestClient, *starts: str) -> None:
    for start in starts:
        resp = client.post("/api/v1/cycles", json={"start_date": start}, headers=AUTH)
        assert resp.status_code == 201, resp.text


class TestIdentity:
    def test_missing_user_header_is_rejected(self, client: TestClient) -> None:
        assert client.get("/api/v1/cycles").status_code == 401

    def test_blank_user_header_is_rejected(self, client: TestClient) -> None:
        assert client.get("/api/v1/cycles", headers={"X-User-Id": "  "}).status_code == 401

    def test_health_is_public(self, client: TestClient) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        # no pool outside the lifespan
        assert body["database"] == "unreachable"
        assert body["insights_config"] == "1.0"


class TestTrackingEndpoints:
    def test_log_period(self, client: TestClient) -> None:
        resp = client.post(
            "/api/v1/cycles",
            json={"start_date": "2026-01-01", "end_date": "2026-01-06", "flow_intensity": "light"},
            headers=AUTH,
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["record"]["duration"] == 6
        assert body["record"]["cycle_length"] == 28
        assert body["new_alerts"] == []

        listed = client.get("/api/v1/cycles", headers=AUTH).json()
        assert [c["start_date"] for c in listed] == ["2026-01-01"]

    def test_end_before_start_is_422(self, client: TestClient) -> None:
        resp = client.post(
            "/api/v1/cycles",
            json={"start_date": "2026-01-06", "end_date": "2026-01-01"},
            headers=AUTH,
        )
        assert resp.status_code == 422

    def test_period_before_last_one_is_422(self, client: TestClient) -> None:
        _log_periods(client, "2026-02-01")
        resp = client.post("/api/v1/cycles", json={"start_date": "2026-01-01"}, headers=AUTH)
        assert resp.status_code == 422
        assert "before the last logged period" in resp.json()["detail"]

    def test_heavy_period_returns_new_alert(self, client: TestClient) -> None:
        resp = client.post(
            "/api/v1/cycles",
            json={"start_date": "2026-01-01", "end_date": "2026-01-09", "flow_intensity": "heavy"},
            headers=AUTH,
        )
        assert [a["type"] for a in resp.json()["new_alerts"]] == ["menorrhagia"]

    def test_log_symptom(self, client: TestClient) -> None:
        resp = client.post(
            "/api/v1/symptoms",
            json={"date": "2026-01-02", "pain_score": 7, "bloating": True},
            headers=AUTH,
        )
        assert resp.status_code == 201
        assert resp.json()["pain_score"] == 7
        assert len(client.get("/api/v1/symptoms", headers=AUTH).json()) == 1

    def test_pain_out_of_range_is_422(self, client: TestClient) -> None:
        resp = client.post(
            "/api/v1/symptoms", json={"date": "2026-01-02", "pain_score": 11}, headers=AUTH
        )
        assert resp.status_code == 422

    def test_metrics_validation(self, client: TestClient) -> None:
        ok = client.put(
            "/api/v1/metrics", json={"bmi": 27.5, "weight_trend": "stable"}, headers=AUTH
        )
        assert ok.status_code == 200
        bad = client.put("/api/v1/metrics", json={"acne_severity": 9}, headers=AUTH)
        assert bad.status_code == 422

    def test_metrics_from_weight_and_height(
        self, client: TestClient, kv: InMemoryKeyValueStore
    ) -> None:
        resp = client.put(
            "/api/v1/metrics", json={"weight_kg": 90, "height_cm": 165}, headers=AUTH
        )
        assert resp.status_code == 200
        assert resp.json()["bmi"] == 33.1
        assert kv.data[(TEST_USER_ID, "healthMetrics")]["bmi"] == 33.1

        # the stored BMI carries into a risk request that omits it
        _log_periods(client, "2026-01-01", "2026-01-29", "2026-02-26")
        risk = client.post(
            "/api/v1/insights/risk", json={"metrics": {"hirsutism": 0}}, headers=AUTH
        ).json()
        assert risk["contributions"]["bmi_and_weight"] == 15

    def test_weight_without_height_is_422(self, client: TestClient) -> None:
        resp = client.put("/api/v1/metrics", json={"weight_kg": 70}, headers=AUTH)
        assert resp.status_code == 422

    def test_lifestyle_log_is_upserted_by_date(self, client: TestClient) -> None:
        first = client.post(
            "/api/v1/lifestyle", json={"date": "2026-03-01", "exercise": True}, headers=AUTH
        )
        assert first.status_code == 201
        second = client.post(
            "/api/v1/lifestyle",
            json={"date": "2026-03-01", "diet": True, "sleep_hours": 8.5},
            headers=AUTH,
        )
        assert second.json()["id"] == first.json()["id"]

        listed = client.get("/api/v1/lifestyle", headers=AUTH).json()
        assert len(listed) == 1
        assert listed[0]["exercise"] is False
        assert listed[0]["sleep_hours"] == 8.5

    def test_lifestyle_sleep_out_of_range_is_422(self, client: TestClient) -> None:
        resp = client.post(
            "/api/v1/lifestyle", json={"date": "2026-03-01", "sleep_hours": 25}, headers=AUTH
        )
        assert resp.status_code == 422

    def test_delete_all_data(self, client: TestClient, kv: InMemoryKeyValueStore) -> None:
        _log_periods(client, "2026-01-01", "2026-01-29")
        resp = client.delete("/api/v1/data", headers=AUTH)
        assert resp.status_code == 200
        assert kv.data == {}
        assert client.get("/api/v1/cycles", headers=AUTH).json() == []


class TestInsightsEndpoints:
    def test_risk_without_body(self, client: TestClient) -> None:
        _log_periods(client, "2026-01-01")
        resp = client.post("/api/v1/insights/risk", headers=AUTH)
        assert resp.status_code == 200
        body = resp.json()
        assert body["risk_score"] == 10
        assert body["risk_category"] == "Low"
        assert [r["category"] for r in body["explanations"]["recommendations"]][:2] == [
            "Diet",
            "Exercise",
        ]

    def test_risk_with_metrics(self, client: TestClient) -> None:
        _log_periods(client, "2026-01-01", "2026-01-29", "2026-02-26")
        resp = client.post("/api/v1/insights/risk", json={"metrics": {"bmi": 32}}, headers=AUTH)
        body = resp.json()
        assert body["contributions"]["bmi_and_weight"] == 15
        assert body["data_points"]["metrics_provided"] == 1

    def test_anomalies_and_alert_dismissal(self, client: TestClient) -> None:
        _log_periods(client, "2025-01-01", "2025-01-29", "2025-02-26", "2025-06-06")

        resp = client.post("/api/v1/insights/anomalies", headers=AUTH)
        assert resp.status_code == 200
        assert [a["type"] for a in resp.json()["new_alerts"]] == ["AMENORRHEA"]

        alerts = client.get("/api/v1/alerts", headers=AUTH).json()
        # the on-save check raised its own amenorrhea alert when the last period was logged
        assert {a["type"] for a in alerts} == {"amenorrhea", "AMENORRHEA"}

        alert_id = next(a["id"] for a in alerts if a["type"] == "AMENORRHEA")
        assert client.delete(f"/api/v1/alerts/{alert_id}", headers=AUTH).status_code == 204
        assert client.delete(f"/api/v1/alerts/{alert_id}", headers=AUTH).status_code == 404

        # a repeat run raises the dismissed type again, once
        again = client.post("/api/v1/insights/anomalies", headers=AUTH).json()
        assert [a["type"] for a in again["new_alerts"]] == ["AMENORRHEA"]

    def test_predictions_without_history(self, client: TestClient) -> None:
        resp = client.get("/api/v1/insights/predictions", headers=AUTH)
        assert resp.status_code == 200
        assert resp.json() is None

    def test_predictions(self, client: TestClient) -> None:
        _log_periods(client, "2026-01-01", "2026-01-26", "2026-02-25", "2026-03-29")
        resp = client.get(
            "/api/v1/insights/predictions", params={"as_of": "2026-04-10"}, headers=AUTH
        )
        body = resp.json()
        assert body["avg_cycle_length"] == 30
        assert body["confidence"] == "High"
        assert [p["start_date"] for p in body["predictions"]] == [
            "2026-05-02",
            "2026-06-01",
            "2026-07-01",
        ]

    def test_lifestyle_plan(self, client: TestClient) -> None:
        resp = client.get("/api/v1/insights/lifestyle", headers=AUTH)
        assert resp.status_code == 200
        assert [r["category"] for r in resp.json()] == [
            "Diet",
            "Exercise",
            "Sleep & Stress",
            "Data Tracking",
        ]

    def test_adherence_report(self, client: TestClient) -> None:
        empty = client.get("/api/v1/insights/adherence", headers=AUTH)
        assert empty.status_code == 200
        assert empty.json() == {"summary": None, "insight": None}

        _log_periods(client, "2026-01-01", "2026-01-29", "2026-02-26")
        for day in range(1, 8):
            client.post(
                "/api/v1/lifestyle",
                json={"date": f"2026-03-0{day}", "exercise": day % 2 == 0, "sleep_hours": 6},
                headers=AUTH,
            )

        body = client.get("/api/v1/insights/adherence", headers=AUTH).json()
        assert body["summary"] == {
            "exercise": 43,
            "diet": 0,
            "sleep": 0,
            "overall": 14,
            "total_days": 7,
        }
        assert body["insight"]["adherence"] == 14
        assert body["insight"]["insight"].startswith("Increasing lifestyle adherence")

    def test_storage_failure_is_503(self, client: TestClient, kv: InMemoryKeyValueStore) -> None:
        kv.fail_writes = True
        resp = client.post("/api/v1/cycles", json={"start_date": "2026-01-01"}, headers=AUTH)
        assert resp.status_code == 503
        assert "not saved" in resp.json()["detail"]
