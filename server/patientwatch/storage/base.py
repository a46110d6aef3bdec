"""Storage interface (port) for the patient registry and vitals history."""

from __future__ import annotations

from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from patientwatch.core.models import HistoryPoint, Patient


class PatientRepository(Protocol):
    """Port: holds patients and their history.

    Callers serialize access; implementations need not be thread-safe.
    """

    def get(self, patient_id: str) -> Patient | None: ...

    def put(self, patient: Patient) -> None: ...

    def all(self) -> list[Patient]: ...

    def append_history(self, patient_id: str, point: HistoryPoint) -> None: ...

    def history(self, patient_id: str) -> tuple[HistoryPoint, ...]: ...
