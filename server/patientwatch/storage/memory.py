"""In-memory implementation of PatientRepository.

State lives for the lifetime of the process. Patients are kept in
insertion order; each one owns a bounded HistoryBuffer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from patientwatch.core.history import DEFAULT_CAPACITY, HistoryBuffer

if TYPE_CHECKING:
    from patientwatch.core.models import HistoryPoint, Patient


class InMemoryPatientRepository:
    """PatientRepository backed by plain dicts."""

    def __init__(self, history_capacity: int = DEFAULT_CAPACITY) -> None:
        self._history_capacity = history_capacity
        self._patients: dict[str, Patient] = {}
        self._history: dict[str, HistoryBuffer] = {}

    def get(self, patient_id: str) -> Patient | None:
        return self._patients.get(patient_id)

    def put(self, patient: Patient) -> None:
        # Re-assigning an existing key keeps its insertion position.
        self._patients[patient.id] = patient

    def all(self) -> list[Patient]:
        return list(self._patients.values())

    def append_history(self, patient_id: str, point: HistoryPoint) -> None:
        buf = self._history.get(patient_id)
        if buf is None:
            buf = HistoryBuffer(self._history_capacity)
            self._history[patient_id] = buf
        buf.append(point)

    def history(self, patient_id: str) -> tuple[HistoryPoint, ...]:
        buf = self._history.get(patient_id)
        return buf.read_all() if buf is not None else ()
