"""Shared test fixtures."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

import patientwatch.main as main_module
from patientwatch.config import AppConfig
from patientwatch.core.stats import ServerStats
from patientwatch.core.store import TelemetryStore
from patientwatch.storage.memory import InMemoryPatientRepository

from tests.fixtures import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> TelemetryStore:
    return TelemetryStore(repository=InMemoryPatientRepository(), clock=clock)


@pytest.fixture(autouse=True)
def _init_server():
    """Initialize server singletons for every test, without background ticking."""
    config = AppConfig()
    config.logging.level = "warning"
    config.simulation.enabled = False

    stats = ServerStats(active_window_seconds=config.limits.active_window_seconds)
    store = TelemetryStore(repository=InMemoryPatientRepository(), stats=stats)

    # Patch module-level singletons
    main_module._config = config
    main_module._stats = stats
    main_module._store = store

    yield

    # Cleanup
    main_module._config = None
    main_module._stats = None
    main_module._store = None


@pytest.fixture
async def client():
    from patientwatch.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
