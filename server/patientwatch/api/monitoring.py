"""Health check and monitoring endpoints."""

from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(prefix="/api/v1")


@router.get("/health")
async def health() -> dict:
    """Basic health check."""
    from patientwatch.main import get_config, get_stats, get_store

    config = get_config()
    snapshot = get_stats().snapshot()
    return {
        "status": "ok",
        "version": "0.1.0",
        "env": config.server.env,
        "uptime_seconds": snapshot["uptime_seconds"],
        "patients": len(get_store().list_patients()),
        "simulation_enabled": config.simulation_active,
    }


@router.get("/stats")
async def stats() -> dict:
    """Detailed server statistics.

    The ``active_devices`` section shows:
    - ``total``: devices that pushed telemetry in the last N seconds
    - ``patients``: distinct patients those devices reported for
    - ``window_seconds``: the time window used for "active" calculation
    """
    from patientwatch.main import get_stats

    return get_stats().snapshot()
