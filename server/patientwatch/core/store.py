"""Telemetry store: the patient registry and its operations.

This is the core business logic. It depends on the PatientRepository
protocol, not a concrete backend. Every read and write goes through a
single lock so simulation ticks, ingested telemetry and emergency changes
never interleave within a patient.
"""

from __future__ import annotations

import threading
import time
from dataclasses import replace
from typing import TYPE_CHECKING, Callable, Iterable

import structlog

from patientwatch.core.classifier import classify
from patientwatch.core.models import (
    ClassifiedPatient,
    HistoryPoint,
    Patient,
    Severity,
    TelemetryPatch,
    Vitals,
)
from patientwatch.core.simulation import VitalsSimulator, clamp_vitals

if TYPE_CHECKING:
    from patientwatch.core.stats import ServerStats
    from patientwatch.storage.base import PatientRepository

log = structlog.get_logger()


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class TelemetryStore:
    """Owns every patient and their history."""

    def __init__(
        self,
        repository: PatientRepository,
        simulator: VitalsSimulator | None = None,
        stats: ServerStats | None = None,
        clock: Callable[[], int] = _epoch_ms,
        clamp_ingested: bool = False,
    ) -> None:
        self._repo = repository
        self._simulator = simulator or VitalsSimulator()
        self._stats = stats
        self._clock = clock
        self._clamp_ingested = clamp_ingested
        self._lock = threading.RLock()

    def _now(self, previous: int = 0) -> int:
        # last_updated never goes backwards for a patient.
        return max(self._clock(), previous)

    def _classified(self, patient: Patient) -> ClassifiedPatient:
        result = classify(patient.vitals)
        status: Severity = result.level
        if patient.emergency or patient.vitals.fall_detected:
            status = "critical"
        return ClassifiedPatient(patient=patient, status=status, reasons=result.reasons)

    def seed(self, patients: Iterable[Patient]) -> None:
        """Register patients at startup, each with one initial history point."""
        with self._lock:
            for patient in patients:
                self._repo.put(patient)
                self._repo.append_history(
                    patient.id, HistoryPoint(ts=patient.last_updated, vitals=patient.vitals),
                )
                log.debug("patient_seeded", patient=patient.id)

    def list_patients(self, status: Severity | None = None) -> list[ClassifiedPatient]:
        """Every patient with its computed status, in registration order."""
        with self._lock:
            patients = self._repo.all()
        classified = [self._classified(p) for p in patients]
        if status is not None:
            classified = [c for c in classified if c.status == status]
        return classified

    def get_patient(self, patient_id: str) -> ClassifiedPatient | None:
        with self._lock:
            patient = self._repo.get(patient_id)
        return self._classified(patient) if patient is not None else None

    def history_for(self, patient_id: str, limit: int | None = None) -> tuple[HistoryPoint, ...]:
        """History oldest-first. Unknown ids yield an empty tuple.

        With ``limit``, only the newest ``limit`` points are returned.
        """
        with self._lock:
            points = self._repo.history(patient_id)
        if limit is not None:
            points = points[-limit:] if limit > 0 else ()
        return points

    def upsert_telemetry(self, patient_id: str, patch: TelemetryPatch) -> Patient:
        """Create the patient if unknown, otherwise merge ``patch`` into it.

        Supplied vitals are stored as given unless the store was built with
        ``clamp_ingested=True``.
        """
        with self._lock:
            existing = self._repo.get(patient_id)
            if existing is None:
                vitals = patch.vitals.apply(Vitals())
                if self._clamp_ingested:
                    vitals = clamp_vitals(vitals)
                patient = Patient(
                    id=patient_id,
                    display_name=patch.display_name if patch.display_name is not None
                    else f"Patient {patient_id}",
                    lat=patch.lat if patch.lat is not None else 0.0,
                    lng=patch.lng if patch.lng is not None else 0.0,
                    vitals=vitals,
                    last_updated=self._now(),
                )
                if self._stats is not None:
                    self._stats.record_patient_created()
                log.info("patient_created", patient=patient_id)
            else:
                vitals = patch.vitals.apply(existing.vitals)
                if self._clamp_ingested:
                    vitals = clamp_vitals(vitals)
                patient = replace(
                    existing,
                    display_name=patch.display_name if patch.display_name is not None
                    else existing.display_name,
                    lat=patch.lat if patch.lat is not None else existing.lat,
                    lng=patch.lng if patch.lng is not None else existing.lng,
                    vitals=vitals,
                    last_updated=self._now(existing.last_updated),
                )

            self._repo.put(patient)
            self._repo.append_history(
                patient_id, HistoryPoint(ts=patient.last_updated, vitals=patient.vitals),
            )

        log.debug("telemetry_upserted", patient=patient_id,
                  fields=sorted(patch.vitals.changes()))
        return patient

    def set_emergency(self, patient_id: str, emergency: bool) -> Patient | None:
        """Raise or acknowledge an emergency. Returns None if the id is unknown."""
        with self._lock:
            existing = self._repo.get(patient_id)
            if existing is None:
                return None
            patient = replace(existing, emergency=emergency,
                              last_updated=self._now(existing.last_updated))
            self._repo.put(patient)

        if self._stats is not None:
            self._stats.record_emergency(emergency)
        log.info("emergency_set", patient=patient_id, emergency=emergency)
        return patient

    def tick(self) -> int:
        """Advance the simulation one step for every patient.

        Returns the number of patients updated.
        """
        with self._lock:
            patients = self._repo.all()
            for existing in patients:
                vitals = self._simulator.next_vitals(existing.vitals)
                emergency = self._simulator.next_emergency(existing.emergency)
                if existing.emergency and not emergency:
                    log.info("emergency_auto_resolved", patient=existing.id)
                patient = replace(existing, vitals=vitals, emergency=emergency,
                                  last_updated=self._now(existing.last_updated))
                self._repo.put(patient)
                self._repo.append_history(
                    patient.id, HistoryPoint(ts=patient.last_updated, vitals=vitals),
                )

        if self._stats is not None:
            self._stats.record_tick(len(patients))
        return len(patients)
