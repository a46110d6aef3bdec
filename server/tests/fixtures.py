"""Reusable test data builders."""

from __future__ import annotations

from patientwatch.core.models import Patient, Vitals

SEED_TS_MS = 1_700_000_000_000


class FakeClock:
    """Epoch-ms clock that only moves when told to."""

    def __init__(self, start_ms: int = SEED_TS_MS) -> None:
        self.now_ms = start_ms

    def advance(self, ms: int = 1000) -> None:
        self.now_ms += ms

    def __call__(self) -> int:
        return self.now_ms


def make_patient(patient_id: str = "p1", **vitals) -> Patient:
    base = dict(heart_rate=78, spo2=96, body_temp=36.9, room_temp=24.0,
                room_humidity=55, ecg=0.12, fall_detected=False)
    base.update(vitals)
    return Patient(
        id=patient_id,
        display_name=f"Test {patient_id}",
        lat=45.5,
        lng=-73.6,
        vitals=Vitals(**base),
        last_updated=SEED_TS_MS,
    )
