"""PatientWatch server — main entry point.

This is the only file that knows about concrete implementations.
It wires together the core, simulation, storage, and API layers.
"""

from __future__ import annotations

import logging
import random
import time
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from patientwatch.api.monitoring import router as monitoring_router
from patientwatch.api.patients import router as patients_router
from patientwatch.config import AppConfig, load_config
from patientwatch.core.seed import demo_patients
from patientwatch.core.simulation import SimulationRunner, VitalsSimulator
from patientwatch.core.stats import ServerStats
from patientwatch.core.store import TelemetryStore
from patientwatch.storage.memory import InMemoryPatientRepository

log = structlog.get_logger()

# Module-level singletons (set during startup)
_store: TelemetryStore | None = None
_stats: ServerStats | None = None
_config: AppConfig | None = None


def get_store() -> TelemetryStore:
    assert _store is not None, "Server not initialized"
    return _store


def get_stats() -> ServerStats:
    assert _stats is not None, "Server not initialized"
    return _stats


def get_config() -> AppConfig:
    assert _config is not None, "Server not initialized"
    return _config


def _setup_logging(config: AppConfig) -> None:
    """Configure structlog based on the logging config."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if config.logging.format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.logging.level.upper()),
        ),
    )


def build_store(config: AppConfig, stats: ServerStats) -> TelemetryStore:
    """Create the telemetry store described by ``config``."""
    sim = config.simulation
    simulator = VitalsSimulator(
        rng=random.Random(sim.seed),
        fall_probability=sim.fall_probability,
        fall_clear_probability=sim.fall_clear_probability,
        emergency_resolve_probability=sim.emergency_resolve_probability,
    )
    repository = InMemoryPatientRepository(history_capacity=config.history.capacity)
    return TelemetryStore(
        repository=repository,
        simulator=simulator,
        stats=stats,
        clamp_ingested=config.ingest.clamp_vitals,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    global _store, _stats, _config

    _config = load_config()
    _setup_logging(_config)

    log.info("server_starting",
             env=_config.server.env,
             simulation=_config.simulation_active,
             history_capacity=_config.history.capacity)

    # Create components
    _stats = ServerStats(active_window_seconds=_config.limits.active_window_seconds)
    _store = build_store(_config, _stats)
    if _config.simulation.seed_demo_patients:
        _store.seed(demo_patients(int(time.time() * 1000)))

    runner = SimulationRunner(_store, interval_seconds=_config.simulation.interval_seconds)
    if _config.simulation_active:
        runner.start()

    log.info("server_started",
             host=_config.server.host,
             port=_config.server.port)

    yield

    # Shutdown
    await runner.stop()
    log.info("server_stopped")


app = FastAPI(
    title="PatientWatch",
    description="Patient vitals telemetry and status server",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(patients_router)
app.include_router(monitoring_router)
