"""Patient API endpoints.

This is the thin FastAPI adapter. It parses HTTP requests, converts JSON
to internal models, and calls the telemetry store.
"""

from __future__ import annotations

import json
import math

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from patientwatch.core.models import (
    SEVERITY_ORDER,
    ClassifiedPatient,
    TelemetryPatch,
    VitalsPatch,
)

router = APIRouter(prefix="/api/v1")

_NO_STORE = {"Cache-Control": "no-store"}

_INT_FIELDS = ("heart_rate", "spo2", "room_humidity")
_FLOAT_FIELDS = ("body_temp", "room_temp", "ecg")


def _is_number(value) -> bool:
    # json.loads accepts NaN and Infinity, which cannot be serialized back.
    return (isinstance(value, (int, float)) and not isinstance(value, bool)
            and math.isfinite(value))


def _parse_vitals_patch(data) -> VitalsPatch:
    """Parse a partial vitals object. Raises ValueError on wrong types."""
    if not isinstance(data, dict):
        raise ValueError("vitals must be an object")
    values: dict = {}
    for name in _INT_FIELDS:
        value = data.get(name)
        if value is None:
            continue
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValueError(f"vitals.{name} must be an integer")
        values[name] = value
    for name in _FLOAT_FIELDS:
        value = data.get(name)
        if value is None:
            continue
        if not _is_number(value):
            raise ValueError(f"vitals.{name} must be a finite number")
        values[name] = float(value)
    fall = data.get("fall_detected")
    if fall is not None:
        if not isinstance(fall, bool):
            raise ValueError("vitals.fall_detected must be a boolean")
        values["fall_detected"] = fall
    return VitalsPatch(**values)


def _parse_telemetry(body) -> tuple[TelemetryPatch, str | None]:
    """Parse an ingestion body into (patch, device_id)."""
    if not isinstance(body, dict):
        raise ValueError("body must be a JSON object")

    vitals = _parse_vitals_patch(body["vitals"]) if body.get("vitals") is not None else VitalsPatch()

    coords: dict = {}
    for name in ("lat", "lng"):
        value = body.get(name)
        if value is None:
            continue
        if not _is_number(value):
            raise ValueError(f"{name} must be a finite number")
        coords[name] = float(value)

    display_name = body.get("display_name")
    if display_name is not None and not isinstance(display_name, str):
        raise ValueError("display_name must be a string")

    device_id = body.get("device_id")
    if device_id is not None and not isinstance(device_id, str):
        raise ValueError("device_id must be a string")

    return TelemetryPatch(vitals=vitals, display_name=display_name, **coords), device_id


def _to_geojson_feature(item: ClassifiedPatient) -> dict:
    p = item.patient
    return {
        "type": "Feature",
        "geometry": {
            "type": "Point",
            "coordinates": [round(p.lng, 6), round(p.lat, 6)],
        },
        "properties": {
            "id": p.id,
            "display_name": p.display_name,
            "status": item.status,
            "emergency": p.emergency,
            "fall_detected": p.vitals.fall_detected,
            "reasons": list(item.reasons),
            "last_updated": p.last_updated,
        },
    }


@router.get("/patients")
async def list_patients(status: str | None = Query(default=None)) -> JSONResponse:
    """Return every patient with latest vitals and computed status.

    ``status`` optionally filters to one of normal, warning, critical.
    """
    from patientwatch.main import get_store

    if status is not None and status not in SEVERITY_ORDER:
        return JSONResponse(
            content={"error": f"unknown status {status!r}"},
            status_code=400,
        )

    patients = get_store().list_patients(status=status)
    return JSONResponse(
        content={"patients": [p.to_dict() for p in patients]},
        headers=_NO_STORE,
    )


@router.get("/patients/geojson")
async def patients_geojson() -> JSONResponse:
    """Patient positions as a GeoJSON FeatureCollection for the map view."""
    from patientwatch.main import get_store

    features = [_to_geojson_feature(p) for p in get_store().list_patients()]
    return JSONResponse(
        content={"type": "FeatureCollection", "features": features},
        media_type="application/geo+json",
        headers=_NO_STORE,
    )


@router.get("/patients/{patient_id}")
async def get_patient(patient_id: str) -> JSONResponse:
    from patientwatch.main import get_store

    patient = get_store().get_patient(patient_id)
    if patient is None:
        return JSONResponse(content={"error": "not found"}, status_code=404)
    return JSONResponse(content=patient.to_dict(), headers=_NO_STORE)


@router.get("/patients/{patient_id}/history")
async def patient_history(
    patient_id: str,
    limit: int | None = Query(default=None, ge=1),
) -> JSONResponse:
    """Vitals trend for one patient, oldest first.

    Unknown ids return an empty history rather than 404; dashboards poll
    this while patients are still being registered.
    """
    from patientwatch.main import get_store

    points = get_store().history_for(patient_id, limit=limit)
    return JSONResponse(
        content={"id": patient_id, "history": [p.to_dict() for p in points]},
        headers=_NO_STORE,
    )


@router.post("/patients/{patient_id}/alert")
async def set_alert(patient_id: str, request: Request) -> JSONResponse:
    """Raise or acknowledge a patient emergency.

    Body: {"emergency": false} to acknowledge. A missing or unreadable
    body raises the emergency.
    """
    from patientwatch.main import get_store

    try:
        body = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        body = {}
    emergency = body.get("emergency") if isinstance(body, dict) else None
    if not isinstance(emergency, bool):
        emergency = True

    patient = get_store().set_emergency(patient_id, emergency)
    if patient is None:
        return JSONResponse(content={"error": "not found"}, status_code=404)
    return JSONResponse(content={"ok": True, "id": patient_id, "emergency": patient.emergency})


@router.post("/patients/{patient_id}/telemetry")
async def ingest_telemetry(patient_id: str, request: Request) -> JSONResponse:
    """Receive a (partial) vitals reading from a bedside device.

    Unknown patients are created with default vitals; known patients have
    the supplied fields merged into their current readings.
    """
    from patientwatch.main import get_stats, get_store

    stats = get_stats()
    try:
        body = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        stats.record_rejected()
        return JSONResponse(content={"ok": False, "error": "invalid JSON"}, status_code=400)

    try:
        patch, device_id = _parse_telemetry(body)
    except ValueError as e:
        stats.record_rejected()
        return JSONResponse(content={"ok": False, "error": str(e)}, status_code=422)

    get_store().upsert_telemetry(patient_id, patch)
    stats.record_telemetry(patient_id, device_id)

    classified = get_store().get_patient(patient_id)
    return JSONResponse(content={"ok": True, "patient": classified.to_dict()})
