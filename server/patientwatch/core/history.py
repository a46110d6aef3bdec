"""Bounded per-patient vitals history."""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from patientwatch.core.models import HistoryPoint

DEFAULT_CAPACITY = 500


class HistoryBuffer:
    """FIFO ring of HistoryPoints. Oldest points are evicted first.

    Not thread-safe on its own; the owning store serializes access.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._points: deque[HistoryPoint] = deque()

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, point: HistoryPoint) -> None:
        self._points.append(point)
        while len(self._points) > self._capacity:
            self._points.popleft()
        assert len(self._points) <= self._capacity, "history buffer over capacity"

    def read_all(self) -> tuple[HistoryPoint, ...]:
        """Snapshot of the buffer, oldest to newest."""
        return tuple(self._points)

    def latest(self) -> HistoryPoint | None:
        return self._points[-1] if self._points else None

    def __len__(self) -> int:
        return len(self._points)
