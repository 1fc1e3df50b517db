"""memviz - Main Textual application."""

from collections.abc import Callable
from functools import partial

from textual import events
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.css.query import NoMatches
from textual.widgets import DataTable, Footer, Sparkline, Static

from memviz.config import Config
from memviz.history import HistoryBuffer
from memviz.monitor import SnapshotSource
from memviz.panels import (
    COLUMNS,
    Event,
    KeyInput,
    MemoryPanel,
    Panel,
    ProcessesPanel,
    RamPanel,
    Resize,
)
from memviz.source import ProcfsSource, lookup_username, use_procfs
from memviz.ticks import IdAllocator, TickState


class PanelWidget(Container):
    """
    Hosts one panel state machine.

    Delivers events to the panel, swaps in the returned state and schedules
    the follow-up tick the panel asks for. Stale ticks are filtered by the
    panel itself, so timers are never cancelled here.
    """

    can_focus = True

    DEFAULT_CSS = """
    PanelWidget {
        height: auto;
        border: hidden;
    }

    PanelWidget:focus {
        border: solid $primary;
    }
    """

    def __init__(self, panel: Panel, *args, **kwargs) -> None:
        """Initialize the widget with its starting panel state."""
        super().__init__(*args, **kwargs)
        self._panel = panel

    @property
    def panel(self) -> Panel:
        """Current panel state."""
        return self._panel

    def on_mount(self) -> None:
        """Prepare child widgets, then seed the panel's tick chain."""
        self.setup()
        self.deliver(self._panel.init())

    def setup(self) -> None:
        """Configure child widgets before the first tick."""

    def deliver(self, event: Event) -> None:
        """Run one event through the panel and schedule its follow-up."""
        self._panel, follow_up = self._panel.update(event)
        self.refresh_panel()
        if follow_up is not None:
            self.set_timer(follow_up.delay, partial(self.deliver, follow_up.event))

    def refresh_panel(self) -> None:
        """Push the current panel state into child widgets."""

    def on_key(self, event: events.Key) -> None:
        """Forward unbound keys to the panel."""
        self.deliver(KeyInput(event.key))

    def on_resize(self, event: events.Resize) -> None:
        """Forward size changes to the panel."""
        self.deliver(Resize(width=event.size.width, height=event.size.height))


class ProcessTable(PanelWidget):
    """Process aggregates in a data table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $panel;
    }
    """

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def setup(self) -> None:
        """Add the table columns."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"
        # Keys go to the panel, which owns the selection
        table.can_focus = False
        for title, width in COLUMNS:
            table.add_column(title, width=width)

    def refresh_panel(self) -> None:
        """Replace table rows with the panel's ranked rows."""
        try:
            table = self.query_one("#process-table", DataTable)
        except NoMatches:
            return

        panel = self.panel
        table.clear()
        for row in panel.rows:
            table.add_row(row.user, row.name, row.count, row.cpu, row.memory, key=row.name)
        if panel.rows:
            table.move_cursor(row=panel.selected)


class MemoryGauge(PanelWidget):
    """Bar showing current RAM usage."""

    def compose(self) -> ComposeResult:
        """Compose the gauge."""
        yield Static("Loading memory info...", id="memory-gauge", markup=False)

    def refresh_panel(self) -> None:
        """Redraw the bar."""
        try:
            self.query_one("#memory-gauge", Static).update(self.panel.view())
        except NoMatches:
            pass


class RamHistory(PanelWidget):
    """Sparkline of used RAM over time."""

    DEFAULT_CSS = """
    RamHistory Sparkline {
        height: 4;
    }
    """

    def compose(self) -> ComposeResult:
        """Compose the title and chart."""
        yield Static("Used RAM", id="ram-title", markup=False)
        yield Sparkline([], id="ram-sparkline")

    def refresh_panel(self) -> None:
        """Redraw the title and chart from the history buffer."""
        try:
            title = self.query_one("#ram-title", Static)
            chart = self.query_one("#ram-sparkline", Sparkline)
        except NoMatches:
            return
        title.update(self.panel.view().splitlines()[0])
        chart.data = self.panel.history.values()


def build_panels(
    config: Config,
    source: SnapshotSource,
    ids: IdAllocator,
    resolve_user: Callable[[int], str] = lookup_username,
) -> tuple[ProcessesPanel, MemoryPanel, RamPanel]:
    """Create the three panels, each with a fresh id."""
    processes = ProcessesPanel(
        source=source,
        ticks=TickState(panel_id=ids.next_id()),
        interval=config.processes.interval,
        resolve_user=resolve_user,
        visible_rows=config.processes.visible_rows,
    )
    memory = MemoryPanel(
        source=source,
        ticks=TickState(panel_id=ids.next_id()),
        interval=config.memory.interval,
    )
    ram = RamPanel(
        source=source,
        ticks=TickState(panel_id=ids.next_id()),
        interval=config.ram.interval,
        history=HistoryBuffer(config.ram.history_size),
    )
    return processes, memory, ram


class MemvizApp(App):
    """Main memviz application."""

    TITLE = "memviz"
    SUB_TITLE = "Process Memory Visualizer"

    CSS = """
    Screen {
        layout: vertical;
    }

    #summary {
        height: auto;
    }

    MemoryGauge, RamHistory {
        width: 1fr;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("tab", "focus_next", "Next panel"),
    ]

    def __init__(
        self,
        config: Config | None = None,
        source: SnapshotSource | None = None,
        resolve_user: Callable[[int], str] = lookup_username,
    ) -> None:
        """
        Initialize the MemvizApp.

        Args:
            config: Settings; defaults are used when omitted.
            source: Counter source; a ProcfsSource when omitted.
            resolve_user: Maps uids to usernames for the process table.
        """
        super().__init__()
        self._config = config or Config()
        if source is None:
            use_procfs(self._config.source.procfs_path)
            source = ProcfsSource(self._config.source.procfs_path)
        self._source = source
        self._ids = IdAllocator()
        self._panels = build_panels(self._config, self._source, self._ids, resolve_user)

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        processes, memory, ram = self._panels
        yield Horizontal(
            MemoryGauge(memory, id="memory"),
            RamHistory(ram, id="ram"),
            id="summary",
        )
        yield ProcessTable(processes, id="processes")
        yield Footer()

    def on_mount(self) -> None:
        """Focus the process table first."""
        self.query_one(ProcessTable).focus()


def run_tui(config: Config | None = None, source: SnapshotSource | None = None) -> None:
    """Run the TUI application."""
    app = MemvizApp(config, source)
    app.run()
