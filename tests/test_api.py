"""HTTP-level tests for the FuelSync API using FastAPI's TestClient."""

from __future__ import annotations

import math
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from config.settings import settings
from fuelsync.main import _configure_logging, app


def _north_of(lat: float, km: float) -> float:
    return lat + math.degrees(km / 6371.0)


@pytest.fixture
def client() -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def koramangala(client: TestClient) -> dict:
    stations = client.get("/api/v1/stations").json()
    return next(s for s in stations if s["legacy_id"] == 1)


def _report(station: dict, **overrides) -> dict:
    body = {
        "station_id": station["id"],
        "fuel_type": "Diesel",
        "user_id": "anon-1",
        "user_lat": station["lat"],
        "user_lon": station["lon"],
    }
    body.update(overrides)
    return body


class TestHealthEndpoint:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "0.1.0"


class TestStationsEndpoint:
    def test_seeded_catalogue(self, client: TestClient) -> None:
        stations = client.get("/api/v1/stations").json()
        assert {s["legacy_id"] for s in stations} == {1, 2, 3, 4, 5, 6}
        unlocated = next(s for s in stations if s["legacy_id"] == 4)
        assert unlocated["lat"] is None

    def test_verified_empty_at_start(self, client: TestClient) -> None:
        assert client.get("/api/v1/stations/verified").json() == []


class TestSubmitReportEndpoint:
    def test_report_at_station_is_verified(self, client: TestClient, koramangala: dict) -> None:
        response = client.post("/api/v1/reports", json=_report(koramangala))
        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        result = data["dve_result"]
        assert result["report_id"] == data["report_id"]
        assert result["score"] == 1.0
        assert result["rejected"] is False
        assert result["verified"] is True
        assert result["status"] == "verified"

        verified = client.get("/api/v1/stations/verified").json()
        assert verified[0]["legacy_id"] == 1
        assert verified[0]["station_name"] == "Indian Oil - Koramangala"
        assert verified[0]["fuel_types"][0]["type"] == "Diesel"

    def test_far_report_is_rejected(self, client: TestClient, koramangala: dict) -> None:
        body = _report(koramangala, user_lat=_north_of(koramangala["lat"], 3.0))
        response = client.post("/api/v1/reports", json=body)
        assert response.status_code == 201
        result = response.json()["dve_result"]
        assert result["rejected"] is True
        assert result["status"] == "rejected"
        assert "3.00km" in result["reason"]

    def test_unlocated_station_falls_back(self, client: TestClient) -> None:
        stations = client.get("/api/v1/stations").json()
        unlocated = next(s for s in stations if s["legacy_id"] == 4)
        body = _report(unlocated, user_lat=12.97, user_lon=77.75)
        result = client.post("/api/v1/reports", json=body).json()["dve_result"]
        assert result["distance_km"] == 0.0
        assert result["rejected"] is False

    def test_schema_error(self, client: TestClient, koramangala: dict) -> None:
        body = _report(koramangala)
        del body["user_lat"]
        assert client.post("/api/v1/reports", json=body).status_code == 422

    def test_unknown_fuel_type(self, client: TestClient, koramangala: dict) -> None:
        response = client.post("/api/v1/reports", json=_report(koramangala, fuel_type="Jet A"))
        assert response.status_code == 400
        assert "fuel type" in response.json()["detail"]

    def test_blank_user_id(self, client: TestClient, koramangala: dict) -> None:
        response = client.post("/api/v1/reports", json=_report(koramangala, user_id=""))
        assert response.status_code == 400

    def test_unknown_station(self, client: TestClient, koramangala: dict) -> None:
        body = _report(koramangala, station_id="does-not-exist")
        response = client.post("/api/v1/reports", json=body)
        assert response.status_code == 404
        assert response.json()["detail"] == "Station not found"


class TestAdminEndpoints:
    def test_snapshot(self, client: TestClient, koramangala: dict) -> None:
        client.post("/api/v1/reports", json=_report(koramangala))
        data = client.get("/api/v1/admin/snapshot").json()
        assert len(data["reports"]) == 1
        assert data["reports"][0]["station_name"] == "Indian Oil - Koramangala"
        assert data["trust_scores"][0]["user_id"] == "anon-1"
        assert len(data["verified_records"]) == 1
        assert data["config"]["VERIFICATION_THRESHOLD"] == 0.4

    def test_reprocess_with_nothing_pending(self, client: TestClient) -> None:
        response = client.post("/api/v1/admin/reprocess")
        assert response.status_code == 200
        assert response.json() == {"verified_count": 0}

    def test_trust_adjustment(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/admin/trust/anon-7/adjust", json={"direction": "increase"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["user_id"] == "anon-7"
        assert data["trust_score"] == pytest.approx(0.55)
        assert data["correct_reports"] == 1

    def test_trust_adjustment_rejects_unknown_direction(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/admin/trust/anon-7/adjust", json={"direction": "up"}
        )
        assert response.status_code == 422

    def test_admin_key_enforced(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "admin_api_key", "s3cret")
        assert client.get("/api/v1/admin/snapshot").status_code == 403
        response = client.get(
            "/api/v1/admin/snapshot", headers={"X-Admin-API-Key": "s3cret"}
        )
        assert response.status_code == 200

    def test_geocode_missing_stations(self, client: TestClient) -> None:
        # No API key in tests, so nothing resolves
        response = client.post("/api/v1/admin/stations/geocode")
        assert response.status_code == 200
        assert response.json() == {"checked": 2, "geocoded": 0}


class TestLoggingConfiguration:
    @pytest.mark.parametrize("level", ["DEBUG", "info", "Warning", "ERROR"])
    def test_any_level_name_is_accepted(
        self, monkeypatch: pytest.MonkeyPatch, level: str
    ) -> None:
        monkeypatch.setattr(settings, "log_level", level)
        _configure_logging()

    def test_startup_with_lowercase_level(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "log_level", "debug")
        with TestClient(app) as test_client:
            assert test_client.get("/api/v1/health").status_code == 200
