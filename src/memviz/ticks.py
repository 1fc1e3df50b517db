"""Timer events and the per-panel staleness filter.

Each panel owns an id, handed out once at construction, and a tag that grows
by one on every accepted tick. Scheduled ticks carry both; a panel only acts on
the tick matching its current pair, so duplicated, reordered or orphaned
timers are no-ops.
"""

import itertools
import threading
from dataclasses import dataclass, replace


class IdAllocator:
    """Hands out process-unique panel ids, starting at 1."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def next_id(self) -> int:
        """Return a new id; never the same one twice."""
        with self._lock:
            return next(self._counter)


@dataclass(slots=True, frozen=True)
class Tick:
    """Timer event. Zero in either field means unscoped."""

    panel_id: int = 0
    tag: int = 0


@dataclass(slots=True, frozen=True)
class Scheduled:
    """A follow-up event for the host to deliver after delay seconds."""

    delay: float
    event: Tick


@dataclass(slots=True, frozen=True)
class TickState:
    """A panel's identity and the tag of its outstanding tick."""

    panel_id: int
    tag: int = 0

    def accepts(self, tick: Tick) -> bool:
        """Return True if the tick belongs to this panel and is current."""
        if tick.panel_id and tick.panel_id != self.panel_id:
            return False
        if tick.tag and tick.tag != self.tag:
            return False
        return True

    def first_tick(self) -> Tick:
        """Seed event that starts the panel's tick chain."""
        return Tick(panel_id=self.panel_id, tag=self.tag)

    def advance(self) -> "TickState":
        """Return the state after one accepted tick."""
        return replace(self, tag=self.tag + 1)

    def schedule(self, delay: float) -> Scheduled:
        """Arm the next tick for the current tag."""
        return Scheduled(delay=delay, event=Tick(panel_id=self.panel_id, tag=self.tag))
