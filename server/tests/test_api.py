"""Tests for the patient and monitoring API endpoints."""

from __future__ import annotations

import json

import pytest

import patientwatch.main as main_module

from tests.fixtures import make_patient


def _seed(*patients):
    main_module.get_store().seed(patients)


async def _post_json(client, url: str, payload) -> object:
    return await client.post(
        url,
        content=json.dumps(payload),
        headers={"content-type": "application/json"},
    )


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["patients"] == 0
    assert data["simulation_enabled"] is False
    assert "uptime_seconds" in data


@pytest.mark.asyncio
async def test_stats_empty(client):
    resp = await client.get("/api/v1/stats")
    assert resp.status_code == 200
    data = resp.json()
    assert data["telemetry_received"] == 0
    assert data["active_devices"]["total"] == 0


@pytest.mark.asyncio
async def test_list_patients(client):
    _seed(make_patient("p1"), make_patient("p2", spo2=87))

    resp = await client.get("/api/v1/patients")
    assert resp.status_code == 200
    assert resp.headers["cache-control"] == "no-store"
    patients = resp.json()["patients"]
    assert [p["id"] for p in patients] == ["p1", "p2"]
    assert patients[0]["status"] == "normal"
    assert patients[0]["reasons"] == []
    assert patients[0]["vitals"]["heart_rate"] == 78
    assert patients[1]["status"] == "warning"
    assert patients[1]["reasons"] == ["SpO2 87%"]


@pytest.mark.asyncio
async def test_list_patients_status_filter(client):
    _seed(make_patient("p1"), make_patient("p2", spo2=80))

    resp = await client.get("/api/v1/patients", params={"status": "critical"})
    assert [p["id"] for p in resp.json()["patients"]] == ["p2"]

    resp = await client.get("/api/v1/patients", params={"status": "dire"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_patients_geojson(client):
    _seed(make_patient("p1"))
    resp = await client.get("/api/v1/patients/geojson")
    assert resp.status_code == 200
    data = resp.json()
    assert data["type"] == "FeatureCollection"
    [feature] = data["features"]
    assert feature["geometry"]["coordinates"] == [-73.6, 45.5]
    assert feature["properties"]["status"] == "normal"


@pytest.mark.asyncio
async def test_get_patient(client):
    _seed(make_patient("p1"))
    resp = await client.get("/api/v1/patients/p1")
    assert resp.status_code == 200
    assert resp.json()["display_name"] == "Test p1"

    resp = await client.get("/api/v1/patients/nobody")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_history_unknown_is_empty(client):
    resp = await client.get("/api/v1/patients/nobody/history")
    assert resp.status_code == 200
    assert resp.json() == {"id": "nobody", "history": []}


@pytest.mark.asyncio
async def test_history_points(client):
    _seed(make_patient("p1"))
    for hr in (80, 90, 100):
        await _post_json(client, "/api/v1/patients/p1/telemetry", {"vitals": {"heart_rate": hr}})

    resp = await client.get("/api/v1/patients/p1/history")
    history = resp.json()["history"]
    assert [p["heart_rate"] for p in history] == [78, 80, 90, 100]
    assert "ts" in history[0]
    assert history[0]["fall_detected"] is False

    resp = await client.get("/api/v1/patients/p1/history", params={"limit": 2})
    assert [p["heart_rate"] for p in resp.json()["history"]] == [90, 100]

    resp = await client.get("/api/v1/patients/p1/history", params={"limit": 0})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_alert_raise_and_acknowledge(client):
    _seed(make_patient("p1"))

    resp = await _post_json(client, "/api/v1/patients/p1/alert", {"emergency": True})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "id": "p1", "emergency": True}
    resp = await client.get("/api/v1/patients")
    assert resp.json()["patients"][0]["status"] == "critical"

    resp = await _post_json(client, "/api/v1/patients/p1/alert", {"emergency": False})
    assert resp.json()["emergency"] is False
    resp = await client.get("/api/v1/patients")
    assert resp.json()["patients"][0]["status"] == "normal"


@pytest.mark.asyncio
async def test_alert_without_body_raises(client):
    _seed(make_patient("p1"))
    resp = await client.post("/api/v1/patients/p1/alert", content=b"")
    assert resp.status_code == 200
    assert resp.json()["emergency"] is True


@pytest.mark.asyncio
async def test_alert_unknown_patient(client):
    resp = await _post_json(client, "/api/v1/patients/does-not-exist/alert", {"emergency": True})
    assert resp.status_code == 404
    resp = await client.get("/api/v1/patients")
    assert resp.json()["patients"] == []


@pytest.mark.asyncio
async def test_ingest_creates_then_merges(client):
    resp = await _post_json(client, "/api/v1/patients/bed-7/telemetry", {
        "device_id": "monitor-7",
        "display_name": "Bed 7",
        "lat": 45.5,
        "lng": -73.6,
        "vitals": {"heart_rate": 80},
    })
    assert resp.status_code == 200
    patient = resp.json()["patient"]
    assert patient["display_name"] == "Bed 7"
    assert patient["vitals"]["heart_rate"] == 80
    assert patient["vitals"]["spo2"] == 97

    resp = await _post_json(client, "/api/v1/patients/bed-7/telemetry",
                            {"vitals": {"spo2": 82, "body_temp": 38}})
    patient = resp.json()["patient"]
    assert patient["vitals"]["heart_rate"] == 80
    assert patient["vitals"]["spo2"] == 82
    assert patient["vitals"]["body_temp"] == 38.0
    assert patient["status"] == "critical"

    stats = (await client.get("/api/v1/stats")).json()
    assert stats["telemetry_received"] == 2
    assert stats["patients_created"] == 1
    assert stats["active_devices"]["total"] == 2


@pytest.mark.asyncio
async def test_ingest_invalid_json(client):
    resp = await client.post(
        "/api/v1/patients/p1/telemetry",
        content=b"not json at all",
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    [1, 2, 3],
    {"vitals": "fast"},
    {"vitals": {"heart_rate": "80"}},
    {"vitals": {"heart_rate": 80.5}},
    {"vitals": {"fall_detected": 1}},
    {"vitals": {"spo2": True}},
    {"lat": "north"},
    {"display_name": 42},
    {"vitals": {"body_temp": float("nan")}},
    {"vitals": {"ecg": float("inf")}},
    {"vitals": {"room_temp": float("-inf")}},
    {"lat": float("nan")},
    {"lng": float("inf")},
])
async def test_ingest_rejects_wrong_types(client, payload):
    resp = await _post_json(client, "/api/v1/patients/p1/telemetry", payload)
    assert resp.status_code == 422
    assert resp.json()["ok"] is False

    stats = (await client.get("/api/v1/stats")).json()
    assert stats["telemetry_rejected"] == 1
    resp = await client.get("/api/v1/patients")
    assert resp.json()["patients"] == []


@pytest.mark.asyncio
async def test_non_finite_reading_leaves_patient_readable(client):
    _seed(make_patient("p1"))
    resp = await client.post(
        "/api/v1/patients/p1/telemetry",
        content=b'{"vitals": {"body_temp": NaN, "heart_rate": 90}}',
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 422

    resp = await client.get("/api/v1/patients")
    assert resp.status_code == 200
    [patient] = resp.json()["patients"]
    assert patient["vitals"]["body_temp"] == 36.9
    assert patient["vitals"]["heart_rate"] == 78

    resp = await client.get("/api/v1/patients/p1/history")
    assert resp.status_code == 200
    assert len(resp.json()["history"]) == 1


@pytest.mark.asyncio
async def test_history_limit_beyond_default_capacity(client):
    _seed(make_patient("p1"))
    for hr in range(60, 64):
        await _post_json(client, "/api/v1/patients/p1/telemetry", {"vitals": {"heart_rate": hr}})

    resp = await client.get("/api/v1/patients/p1/history", params={"limit": 5000})
    assert resp.status_code == 200
    assert [p["heart_rate"] for p in resp.json()["history"]] == [78, 60, 61, 62, 63]
