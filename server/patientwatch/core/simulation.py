"""Vitals simulation: synthesizes readings when no device is reporting.

Each numeric signal does a bounded random walk around its previous value.
Falls are rare and transient; raised emergencies occasionally resolve on
their own. ``SimulationRunner`` drives ``TelemetryStore.tick()`` on a
fixed interval as an asyncio background task.
"""

from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

import structlog

from patientwatch.core.models import Vitals

if TYPE_CHECKING:
    from patientwatch.core.store import TelemetryStore

log = structlog.get_logger()

DEFAULT_INTERVAL_SECONDS = 8.0
DEFAULT_FALL_PROBABILITY = 0.02
DEFAULT_FALL_CLEAR_PROBABILITY = 0.5
DEFAULT_EMERGENCY_RESOLVE_PROBABILITY = 0.1


@dataclass(frozen=True)
class SignalWalk:
    step: float       # max jitter either side of the previous value
    low: float
    high: float
    digits: int       # 0 rounds to int

    def clamp(self, value: float) -> float:
        return min(self.high, max(self.low, value))

    def quantize(self, value: float) -> int | float:
        return int(round(value)) if self.digits == 0 else round(value, self.digits)


SIGNAL_WALKS: dict[str, SignalWalk] = {
    "heart_rate": SignalWalk(step=5, low=35, high=160, digits=0),
    "spo2": SignalWalk(step=1.5, low=80, high=100, digits=0),
    "body_temp": SignalWalk(step=0.2, low=35.0, high=41.5, digits=1),
    "room_temp": SignalWalk(step=0.3, low=15.0, high=35.0, digits=1),
    "room_humidity": SignalWalk(step=2, low=20, high=90, digits=0),
    "ecg": SignalWalk(step=0.02, low=0.0, high=1.0, digits=2),
}


def clamp_vitals(vitals: Vitals) -> Vitals:
    """Clamp every numeric signal into its plausible range.

    Values already in range are left untouched.
    """
    changes = {}
    for name, walk in SIGNAL_WALKS.items():
        value = getattr(vitals, name)
        clamped = walk.clamp(value)
        if clamped != value:
            changes[name] = int(clamped) if walk.digits == 0 else float(clamped)
    return replace(vitals, **changes) if changes else vitals


class VitalsSimulator:
    """Computes the next simulated snapshot from the previous one."""

    def __init__(
        self,
        rng: random.Random | None = None,
        fall_probability: float = DEFAULT_FALL_PROBABILITY,
        fall_clear_probability: float = DEFAULT_FALL_CLEAR_PROBABILITY,
        emergency_resolve_probability: float = DEFAULT_EMERGENCY_RESOLVE_PROBABILITY,
    ) -> None:
        self._rng = rng or random.Random()
        self.fall_probability = fall_probability
        self.fall_clear_probability = fall_clear_probability
        self.emergency_resolve_probability = emergency_resolve_probability

    def _jitter(self, value: float, walk: SignalWalk) -> int | float:
        r = value + (self._rng.random() * 2 - 1) * walk.step
        return walk.quantize(walk.clamp(r))

    def next_vitals(self, previous: Vitals) -> Vitals:
        walked = {
            name: self._jitter(getattr(previous, name), walk)
            for name, walk in SIGNAL_WALKS.items()
        }
        fall = self._rng.random() < self.fall_probability
        if fall and self._rng.random() < self.fall_clear_probability:
            fall = False
        return Vitals(fall_detected=fall, **walked)

    def next_emergency(self, emergency: bool) -> bool:
        """Raised emergencies clear themselves now and then."""
        if emergency and self._rng.random() < self.emergency_resolve_probability:
            return False
        return emergency


class SimulationRunner:
    """Runs ``store.tick()`` every ``interval_seconds`` until stopped."""

    def __init__(self, store: TelemetryStore,
                 interval_seconds: float = DEFAULT_INTERVAL_SECONDS) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self._store = store
        self._interval = interval_seconds
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the tick loop on the running event loop. Idempotent."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        log.info("simulation_stopped")

    async def _run(self) -> None:
        log.info("simulation_started", interval_seconds=self._interval)
        while True:
            await asyncio.sleep(self._interval)
            started = time.perf_counter()
            try:
                count = self._store.tick()
            except Exception:
                log.error("simulation_tick_failed", exc_info=True)
                continue
            log.debug("simulation_tick", patients=count,
                      duration_ms=round((time.perf_counter() - started) * 1000, 3))
