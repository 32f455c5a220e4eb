"""HTTP-level tests for the read API."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from api.main import app
from rail_core.config import ENV_DATA_FILE, clear_settings_cache


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch, export_file: Path) -> TestClient:
    monkeypatch.setenv(ENV_DATA_FILE, str(export_file))
    clear_settings_cache()
    return TestClient(app)


def test_meta_lists(client: TestClient) -> None:
    assert client.get("/meta/trains").json() == {"values": ["101", "202", "303"]}
    assert client.get("/meta/routes", params={"q": "odesa"}).json() == {"values": ["Lviv - Odesa", "Odesa - Kyiv"]}


def test_overview_endpoint(client: TestClient) -> None:
    resp = client.get("/overview")
    assert resp.status_code == 200
    body = resp.json()
    assert body["kpis"]["total_records"] == 6
    assert body["worst_delay"]["delay_text"] == "3h 20m"


def test_analytics_endpoint(client: TestClient) -> None:
    body = client.get("/analytics", params={"route_limit": 1}).json()
    assert len(body["hourly"]) == 24
    assert len(body["routes"]) == 1


def test_delays_endpoint_uses_body_filters(client: TestClient) -> None:
    resp = client.post(
        "/delays",
        json={"train_numbers": ["101"], "sort_by": "delay_minutes", "sort_direction": "asc", "page": 1, "page_size": 2},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["total_filtered"] == 3
    assert body["total_pages"] == 2
    assert [r["delay_minutes"] for r in body["records"]] == [10, 20]


def test_delays_endpoint_rejects_bad_page(client: TestClient) -> None:
    assert client.post("/delays", json={"page": 0}).status_code == 422


def test_export_delays_endpoint(client: TestClient) -> None:
    resp = client.post("/export/delays", json={"routes": ["Lviv - Odesa"]})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert "train_delays_" in resp.headers["content-disposition"]
    assert len(resp.text.strip().splitlines()) == 2


def test_routes_endpoints(client: TestClient) -> None:
    body = client.get("/routes", params={"sort_by": "max_delay"}).json()
    assert body["routes"][0]["route"] == "Kyiv - Lviv"

    detail = client.get("/routes/detail", params={"route": "Kyiv - Lviv"}).json()
    assert detail["summary"]["train_number"] == "101"

    export = client.get("/routes/export", params={"route": "Kyiv - Lviv"})
    assert export.headers["content-disposition"] == "attachment; filename=route-Kyiv___Lviv-statistics.json"
    assert export.json()["summary"]["total_records"] == 3


def test_search_endpoint(client: TestClient) -> None:
    body = client.get("/search", params={"q": "101"}).json()
    assert [r["id"] for r in body["results"]] == [4, 2, 1]

    assert client.get("/search", params={"category": "bogus"}).status_code == 422


def test_debug_endpoint(client: TestClient) -> None:
    body = client.get("/debug").json()
    assert body["row_counts"]["records"] == 6
    assert body["metadata"]["source_file"] == "delays.csv"


def test_missing_export_returns_503(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv(ENV_DATA_FILE, str(tmp_path / "missing.json"))
    clear_settings_cache()
    resp = TestClient(app).get("/overview")

    assert resp.status_code == 503
    assert resp.json() == {"error": "Failed to load data: missing.json not found", "type": "DataLoadError"}


def test_overview_kpis_are_filled_for_partial_statistics(client: TestClient) -> None:
    kpis = client.get("/overview").json()["kpis"]
    assert kpis["unique_trains"] == 3
    assert kpis["average_delay"] == 61.8
    assert kpis["maximum_delay"] == 200


def test_delays_default_page_size_comes_from_settings(client: TestClient) -> None:
    body = client.post("/delays", json={}).json()
    assert body["page_size"] == 25
    assert body["page"] == 1


def test_error_model_is_documented(client: TestClient) -> None:
    schema = client.get("/openapi.json").json()
    responses = schema["paths"]["/overview"]["get"]["responses"]
    assert responses["503"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")
    assert "500" in responses
