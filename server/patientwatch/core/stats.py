"""Server statistics and active-device tracking.

Tracks in-memory counters and a sliding window of devices that recently
pushed telemetry. No framework dependencies.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass


@dataclass
class DeviceActivity:
    """Tracks a single device's recent activity."""
    last_seen: float          # time.monotonic() timestamp
    patient_id: str
    readings_sent: int = 0


class ServerStats:
    """Thread-safe server statistics with active-device tracking.

    A device is "active" if it sent telemetry within ``active_window_seconds``
    (default 120s). Simulated readings are counted separately and never make
    a device active.
    """

    def __init__(self, active_window_seconds: float = 120.0) -> None:
        self._lock = threading.Lock()
        self._started_at = time.time()
        self._active_window = active_window_seconds

        # Counters
        self.telemetry_received: int = 0
        self.telemetry_rejected: int = 0
        self.patients_created: int = 0
        self.emergencies_raised: int = 0
        self.emergencies_cleared: int = 0
        self.simulation_ticks: int = 0
        self.simulated_readings: int = 0

        # Device tracking: device_id → DeviceActivity
        self._devices: dict[str, DeviceActivity] = {}

    def record_telemetry(self, patient_id: str, device_id: str | None = None) -> None:
        """Record one externally ingested reading."""
        now = time.monotonic()
        device_id = device_id or patient_id
        with self._lock:
            self.telemetry_received += 1
            if device_id in self._devices:
                dev = self._devices[device_id]
                dev.last_seen = now
                dev.patient_id = patient_id
                dev.readings_sent += 1
            else:
                self._devices[device_id] = DeviceActivity(
                    last_seen=now, patient_id=patient_id, readings_sent=1,
                )

    def record_rejected(self, count: int = 1) -> None:
        with self._lock:
            self.telemetry_rejected += count

    def record_patient_created(self) -> None:
        with self._lock:
            self.patients_created += 1

    def record_emergency(self, emergency: bool) -> None:
        with self._lock:
            if emergency:
                self.emergencies_raised += 1
            else:
                self.emergencies_cleared += 1

    def record_tick(self, patients: int) -> None:
        with self._lock:
            self.simulation_ticks += 1
            self.simulated_readings += patients

    def _prune_stale_devices(self, now: float) -> None:
        """Remove devices not seen within the active window. Caller holds lock."""
        cutoff = now - self._active_window
        stale = [did for did, dev in self._devices.items() if dev.last_seen < cutoff]
        for did in stale:
            del self._devices[did]

    def snapshot(self) -> dict:
        """Return a JSON-serializable snapshot of all stats."""
        now_mono = time.monotonic()
        with self._lock:
            self._prune_stale_devices(now_mono)

            return {
                "uptime_seconds": round(time.time() - self._started_at, 1),
                "telemetry_received": self.telemetry_received,
                "telemetry_rejected": self.telemetry_rejected,
                "patients_created": self.patients_created,
                "emergencies_raised": self.emergencies_raised,
                "emergencies_cleared": self.emergencies_cleared,
                "simulation_ticks": self.simulation_ticks,
                "simulated_readings": self.simulated_readings,
                "active_devices": {
                    "total": len(self._devices),
                    "patients": len({dev.patient_id for dev in self._devices.values()}),
                    "window_seconds": self._active_window,
                },
            }
