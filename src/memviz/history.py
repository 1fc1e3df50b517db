"""Bounded history of time points for time-series panels."""

from collections import deque
from collections.abc import Iterator

from memviz.models import TimePoint

DEFAULT_CAPACITY = 100


class HistoryBuffer:
    """
    Fixed-capacity time series.

    Stores up to capacity points in insertion order; pushing onto a full
    buffer drops the oldest point.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._points: deque[TimePoint] = deque(maxlen=capacity)

    def __len__(self) -> int:
        """Return number of points in buffer."""
        return len(self._points)

    def __iter__(self) -> Iterator[TimePoint]:
        return iter(self._points)

    @property
    def capacity(self) -> int:
        """Return maximum number of points the buffer can hold."""
        return self._points.maxlen or 0

    @property
    def points(self) -> list[TimePoint]:
        """Read-only access to points, oldest first (returns a copy)."""
        return list(self._points)

    @property
    def latest(self) -> TimePoint | None:
        """Most recent point, or None when empty."""
        return self._points[-1] if self._points else None

    def values(self) -> list[float]:
        """Point values, oldest first."""
        return [point.value for point in self._points]

    def push(self, point: TimePoint) -> None:
        """Append a point, evicting the oldest if full."""
        self._points.append(point)

    def copy(self) -> "HistoryBuffer":
        """Return an independent buffer with the same capacity and points."""
        clone = HistoryBuffer(self.capacity)
        clone._points.extend(self._points)
        return clone
