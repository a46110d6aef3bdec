"""PatientWatch — core internal data models.

These are plain dataclasses with no framework dependencies.
JSON bodies are converted to/from these at the API boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Literal

Severity = Literal["normal", "warning", "critical"]

SEVERITY_ORDER: dict[str, int] = {"normal": 0, "warning": 1, "critical": 2}


@dataclass(frozen=True)
class Vitals:
    """One instantaneous set of readings for a patient and their room."""
    heart_rate: int = 70          # bpm
    spo2: int = 97                # percent
    body_temp: float = 36.8       # °C
    room_temp: float = 25.0       # °C
    room_humidity: int = 50       # percent
    ecg: float = 0.1              # unitless proxy signal, 0-1
    fall_detected: bool = False

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class VitalsPatch:
    """Partial vitals update. ``None`` means the field was not supplied."""
    heart_rate: int | None = None
    spo2: int | None = None
    body_temp: float | None = None
    room_temp: float | None = None
    room_humidity: int | None = None
    ecg: float | None = None
    fall_detected: bool | None = None

    def changes(self) -> dict:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def apply(self, vitals: Vitals) -> Vitals:
        """Return a new Vitals with the supplied fields overlaid."""
        changes = self.changes()
        return replace(vitals, **changes) if changes else vitals


@dataclass(frozen=True)
class TelemetryPatch:
    vitals: VitalsPatch = field(default_factory=VitalsPatch)
    lat: float | None = None
    lng: float | None = None
    display_name: str | None = None


@dataclass(frozen=True)
class Patient:
    id: str
    display_name: str
    lat: float
    lng: float
    vitals: Vitals
    last_updated: int             # epoch ms
    emergency: bool = False


@dataclass(frozen=True)
class HistoryPoint:
    ts: int                       # epoch ms
    vitals: Vitals

    def to_dict(self) -> dict:
        return {"ts": self.ts, **self.vitals.to_dict()}


@dataclass(frozen=True)
class Classification:
    level: Severity = "normal"
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class ClassifiedPatient:
    """Read-only view of a patient with its computed status."""
    patient: Patient
    status: Severity
    reasons: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        p = self.patient
        return {
            "id": p.id,
            "display_name": p.display_name,
            "lat": p.lat,
            "lng": p.lng,
            "emergency": p.emergency,
            "last_updated": p.last_updated,
            "vitals": p.vitals.to_dict(),
            "status": self.status,
            "reasons": list(self.reasons),
        }
