"""Panel state machines.

A panel is an immutable value. update() takes one event and returns the next
panel plus at most one follow-up event for the host to schedule; view()
renders the panel as plain text. Tick handling starts with the staleness
check, so a rejected tick returns the very same panel and schedules nothing.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace

import structlog

from memviz.formatting import sparkline, truncate, usage_bar
from memviz.history import HistoryBuffer
from memviz.models import DisplayRow, TimePoint
from memviz.monitor import SnapshotSource, sample_process_rows, sample_used_memory
from memviz.source import SourceError, lookup_username
from memviz.ticks import Scheduled, Tick, TickState

log = structlog.get_logger()

DEFAULT_INTERVAL = 1.0

# Column titles and widths for the process table
COLUMNS: tuple[tuple[str, int], ...] = (
    ("USER", 20),
    ("NAME", 10),
    ("COUNT", 10),
    ("CPU (%)", 10),
    ("MEM (MiB)", 20),
)


@dataclass(slots=True, frozen=True)
class Resize:
    """Terminal size changed."""

    width: int
    height: int


@dataclass(slots=True, frozen=True)
class KeyInput:
    """A key press forwarded by the host, named the way Textual names keys."""

    key: str


Event = Tick | Resize | KeyInput


def _is_stale(panel: str, ticks: TickState, tick: Tick) -> bool:
    """Check a tick against the panel's id and tag, logging rejections."""
    if ticks.accepts(tick):
        return False
    log.debug(
        "tick_ignored",
        panel=panel,
        panel_id=ticks.panel_id,
        tag=ticks.tag,
        tick_panel_id=tick.panel_id,
        tick_tag=tick.tag,
    )
    return True


def _clamp(index: int, size: int) -> int:
    """Clamp a row index into [0, size - 1], or 0 when empty."""
    if size <= 0:
        return 0
    return min(max(index, 0), size - 1)


@dataclass(slots=True, frozen=True)
class ProcessesPanel:
    """Processes grouped by command name, ranked by private memory."""

    source: SnapshotSource
    ticks: TickState
    interval: float = DEFAULT_INTERVAL
    resolve_user: Callable[[int], str] = lookup_username
    rows: tuple[DisplayRow, ...] = ()
    selected: int = 0
    visible_rows: int = 18
    width: int = 80

    @property
    def panel_id(self) -> int:
        """Identity used to route this panel's ticks."""
        return self.ticks.panel_id

    @property
    def selected_row(self) -> DisplayRow | None:
        """Row under the cursor, if any."""
        return self.rows[self.selected] if self.rows else None

    def init(self) -> Tick:
        """First tick to seed scheduling."""
        return self.ticks.first_tick()

    def update(self, event: Event) -> tuple["ProcessesPanel", Scheduled | None]:
        """Apply one event."""
        if isinstance(event, Tick):
            return self._on_tick(event)
        if isinstance(event, Resize):
            return replace(self, width=event.width), None
        if isinstance(event, KeyInput):
            return self._on_key(event.key), None
        return self, None

    def _on_tick(self, tick: Tick) -> tuple["ProcessesPanel", Scheduled | None]:
        if _is_stale("processes", self.ticks, tick):
            return self, None

        try:
            rows = tuple(sample_process_rows(self.source, self.resolve_user))
        except SourceError as e:
            # Keep the last rows; the next tick retries
            log.warning("sample_failed", panel="processes", error=str(e))
            rows = self.rows

        ticks = self.ticks.advance()
        panel = replace(
            self,
            rows=rows,
            ticks=ticks,
            selected=_clamp(self.selected, len(rows)),
        )
        return panel, ticks.schedule(self.interval)

    def _on_key(self, key: str) -> "ProcessesPanel":
        moves = {
            "up": self.selected - 1,
            "k": self.selected - 1,
            "down": self.selected + 1,
            "j": self.selected + 1,
            "pageup": self.selected - self.visible_rows,
            "pagedown": self.selected + self.visible_rows,
            "home": 0,
            "end": len(self.rows) - 1,
        }
        if key not in moves:
            return self
        return replace(self, selected=_clamp(moves[key], len(self.rows)))

    def view(self) -> str:
        """Render the table as text."""
        header = "  " + "".join(title.ljust(width) for title, width in COLUMNS)
        lines = [truncate(header.rstrip(), self.width)]

        if not self.rows:
            lines.append("  Sampling processes...")
            return "\n".join(lines) + "\n"

        # Scroll so the selected row stays visible
        start = max(0, self.selected - self.visible_rows + 1)
        for index in range(start, min(start + self.visible_rows, len(self.rows))):
            row = self.rows[index]
            fields = (row.user, row.name, row.count, row.cpu, row.memory)
            marker = "> " if index == self.selected else "  "
            cells = "".join(
                truncate(value, width - 1).ljust(width)
                for value, (_, width) in zip(fields, COLUMNS)
            )
            lines.append(truncate((marker + cells).rstrip(), self.width))
        return "\n".join(lines) + "\n"


@dataclass(slots=True, frozen=True)
class MemoryPanel:
    """Gauge of current RAM usage."""

    PADDING = 2
    MAX_WIDTH = 80

    source: SnapshotSource
    ticks: TickState
    interval: float = DEFAULT_INTERVAL
    percent: float | None = None
    bar_width: int = 40

    @property
    def panel_id(self) -> int:
        """Identity used to route this panel's ticks."""
        return self.ticks.panel_id

    def init(self) -> Tick:
        """First tick to seed scheduling."""
        return self.ticks.first_tick()

    def update(self, event: Event) -> tuple["MemoryPanel", Scheduled | None]:
        """Apply one event."""
        if isinstance(event, Tick):
            return self._on_tick(event)
        if isinstance(event, Resize):
            bar_width = min(event.width - self.PADDING * 2 - 4, self.MAX_WIDTH)
            return replace(self, bar_width=max(bar_width, 0)), None
        return self, None

    def _on_tick(self, tick: Tick) -> tuple["MemoryPanel", Scheduled | None]:
        if _is_stale("memory", self.ticks, tick):
            return self, None

        percent = self.percent
        try:
            percent = sample_used_memory(self.source)
        except SourceError as e:
            log.warning("sample_failed", panel="memory", error=str(e))

        ticks = self.ticks.advance()
        return replace(self, percent=percent, ticks=ticks), ticks.schedule(self.interval)

    def view(self) -> str:
        """Render the gauge as text."""
        pad = " " * self.PADDING
        if self.percent is None:
            return f"\n{pad}Loading memory info..."
        return f"\n{pad}{usage_bar(self.percent, self.bar_width)} {self.percent:5.1f}%"


@dataclass(slots=True, frozen=True)
class RamPanel:
    """Used-RAM percentage over time."""

    source: SnapshotSource
    ticks: TickState
    interval: float = DEFAULT_INTERVAL
    history: HistoryBuffer = field(default_factory=HistoryBuffer)
    clock: Callable[[], float] = time.time
    width: int = 36

    @property
    def panel_id(self) -> int:
        """Identity used to route this panel's ticks."""
        return self.ticks.panel_id

    def init(self) -> Tick:
        """First tick to seed scheduling."""
        return self.ticks.first_tick()

    def update(self, event: Event) -> tuple["RamPanel", Scheduled | None]:
        """Apply one event."""
        if isinstance(event, Tick):
            return self._on_tick(event)
        if isinstance(event, Resize):
            return replace(self, width=max(event.width - 4, 0)), None
        return self, None

    def _on_tick(self, tick: Tick) -> tuple["RamPanel", Scheduled | None]:
        if _is_stale("ram", self.ticks, tick):
            return self, None

        history = self.history
        try:
            percent = sample_used_memory(self.source)
        except SourceError as e:
            log.warning("sample_failed", panel="ram", error=str(e))
        else:
            # Copy so the previous panel value stays untouched
            history = history.copy()
            history.push(TimePoint(timestamp=self.clock(), value=percent))

        ticks = self.ticks.advance()
        return replace(self, history=history, ticks=ticks), ticks.schedule(self.interval)

    def view(self) -> str:
        """Render the history as a titled sparkline."""
        latest = self.history.latest
        title = "Used RAM" if latest is None else f"Used RAM {latest.value:5.1f}%"
        return f"{title}\n{sparkline(self.history.values(), self.width)}"


Panel = ProcessesPanel | MemoryPanel | RamPanel
