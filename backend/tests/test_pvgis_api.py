"""
API-level tests for the PVGIS endpoints (POST/GET /api/v1/pvgis).
"""

import asyncio
import threading

import pytest
from fastapi.testclient import TestClient

import app.api.pvgis as pvgis_api
from app.engine.aggregator import build_result_set
from app.engine.errors import (
    AllCandidatesExhausted,
    CoverageLookupFailed,
    NoCoverageForLocation,
    ResolveCancelled,
    ResolveDeadlineExceeded,
)
from app.engine.response_parser import TabDelimitedParser
from app.main import app
from app.models.pvgis import CandidateAttempt, Resolution

from fakes import B, tab_body

client = TestClient(app)


def _resolution():
    result = build_result_set(TabDelimitedParser().parse(tab_body()))
    return Resolution(
        database=B,
        result=result,
        attempts=[CandidateAttempt(database=B, outcome="parsed")],
    )


@pytest.fixture
def captured(monkeypatch):
    calls = []

    def fake_resolve(coordinate, system, cancel_event=None):
        calls.append((coordinate, system, cancel_event))
        return _resolution()

    monkeypatch.setattr(pvgis_api, "resolve", fake_resolve)
    return calls


def _fail_with(monkeypatch, exc):
    def fake_resolve(coordinate, system, cancel_event=None):
        raise exc

    monkeypatch.setattr(pvgis_api, "resolve", fake_resolve)


class TestPvgisPost:
    def test_success(self, captured):
        resp = client.post("/api/v1/pvgis", json={"lat": 63.3569, "lng": 10.3955})
        assert resp.status_code == 200
        data = resp.json()
        assert data["database"] == B
        assert len(data["data"]["monthly"]) == 12
        assert data["data"]["monthly"][0]["month"] == 1
        assert "yearly_total" in data["data"]
        assert set(data["info"]) == {"Ed", "Em", "Hd", "Hm", "SDm"}

    def test_defaults_applied(self, captured):
        client.post("/api/v1/pvgis", json={"lat": 63.3569, "lng": 10.3955})
        coordinate, system, _ = captured[0]
        assert coordinate.latitude == 63.3569
        assert system.peak_power_kw == 1.0
        assert system.system_loss_percent == 14.0
        assert system.tilt_angle_deg == 35.0
        assert system.azimuth_deg == 0.0
        assert system.technology.value == "crystSi"
        assert system.mounting.value == "free"

    def test_cancel_event_passed_and_unset(self, captured):
        client.post("/api/v1/pvgis", json={"lat": 50.0, "lng": 8.0})
        _, _, cancel_event = captured[0]
        assert isinstance(cancel_event, threading.Event)
        assert not cancel_event.is_set()

    def test_input_echo(self, captured):
        resp = client.post(
            "/api/v1/pvgis",
            json={"lat": 50.0, "lng": 8.0, "angle": 20, "pvtech": "CdTe", "mounting": "building"},
        )
        echo = resp.json()["input"]
        assert echo["database"]["value"] == B
        assert echo["angle"] == {"info": "Fixed slope of modules (deg.)", "value": 20.0}
        assert echo["pvtech"]["value"] == "CdTe"
        assert echo["mounting"]["value"] == "building"

    def test_missing_lat_lng(self, captured):
        resp = client.post("/api/v1/pvgis", json={"peakpower": 2})
        assert resp.status_code == 422
        assert captured == []

    @pytest.mark.parametrize("field,value", [
        ("lat", 91),
        ("lng", -181),
        ("peakpower", -1),
        ("loss", 101),
        ("angle", 95),
        ("aspect", 200),
        ("pvtech", "crystsi"),
        ("mounting", "roof"),
    ])
    def test_out_of_range_rejected(self, captured, field, value):
        payload = {"lat": 50.0, "lng": 8.0, field: value}
        resp = client.post("/api/v1/pvgis", json=payload)
        assert resp.status_code == 422
        assert captured == []


class TestPvgisGet:
    def test_query_string(self, captured):
        resp = client.get("/api/v1/pvgis?lat=50.0&lng=8.0&loss=10&aspect=-45")
        assert resp.status_code == 200
        _, system, _ = captured[0]
        assert system.system_loss_percent == 10.0
        assert system.azimuth_deg == -45.0

    def test_query_string_validation(self, captured):
        resp = client.get("/api/v1/pvgis?lat=50.0&lng=8.0&angle=-1")
        assert resp.status_code == 422


class TestFailureMapping:
    @pytest.mark.parametrize("exc,status", [
        (NoCoverageForLocation("No PVGIS database covers the requested location."), 404),
        (CoverageLookupFailed("Coverage request failed"), 502),
        (AllCandidatesExhausted("No PVGIS database returned a complete result.", []), 502),
        (ResolveDeadlineExceeded("Deadline exceeded", []), 504),
        (ResolveCancelled("Request was cancelled by the caller."), 499),
    ])
    def test_status_codes(self, monkeypatch, exc, status):
        _fail_with(monkeypatch, exc)
        resp = client.post("/api/v1/pvgis", json={"lat": 50.0, "lng": 8.0})
        assert resp.status_code == status
        assert resp.json()["detail"] == str(exc)


class FakeRequest:
    def __init__(self, disconnect_after: int):
        self.polls = 0
        self.disconnect_after = disconnect_after

    async def is_disconnected(self) -> bool:
        self.polls += 1
        return self.polls > self.disconnect_after


class TestWatchDisconnect:
    def test_disconnect_sets_cancel_event(self):
        request = FakeRequest(disconnect_after=2)
        cancel = threading.Event()
        asyncio.run(pvgis_api.watch_disconnect(request, cancel, interval=0))
        assert cancel.is_set()
        assert request.polls == 3

    def test_stops_once_already_cancelled(self):
        request = FakeRequest(disconnect_after=100)
        cancel = threading.Event()
        cancel.set()
        asyncio.run(pvgis_api.watch_disconnect(request, cancel, interval=0))
        assert request.polls == 0


class TestHealth:
    def test_health(self):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
