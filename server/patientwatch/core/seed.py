"""Demo patients registered at startup when ``simulation.seed_demo_patients`` is on."""

from __future__ import annotations

from patientwatch.core.models import Patient, Vitals


def demo_patients(now_ms: int) -> list[Patient]:
    return [
        Patient(
            id="p1", display_name="Aisha Kamau", lat=-1.2921, lng=36.8219,
            vitals=Vitals(heart_rate=78, spo2=96, body_temp=36.9, room_temp=24.0,
                          room_humidity=55, ecg=0.12),
            last_updated=now_ms,
        ),
        Patient(
            id="p2", display_name="John Otieno", lat=0.3476, lng=32.5825,
            vitals=Vitals(heart_rate=62, spo2=94, body_temp=37.2, room_temp=26.5,
                          room_humidity=60, ecg=0.08),
            last_updated=now_ms,
        ),
        Patient(
            id="p3", display_name="Mary Njeri", lat=6.5244, lng=3.3792,
            vitals=Vitals(heart_rate=88, spo2=98, body_temp=36.7, room_temp=25.3,
                          room_humidity=58, ecg=0.11),
            last_updated=now_ms,
        ),
    ]
