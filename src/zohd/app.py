"""zohd - Textual port browser."""

from enum import Enum

from rich.markup import escape
from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Static

from zohd.errors import ZohdError
from zohd.formatting import format_uptime
from zohd.models import PortInfo
from zohd.scanner import PortScanner


class SortKey(Enum):
    """Sort keys for the port table."""

    PORT = "port"
    PID = "pid"
    NAME = "name"
    USER = "user"


class SummaryBar(Static):
    """Header widget showing how many ports are listening."""

    DEFAULT_CSS = """
    SummaryBar {
        height: auto;
        padding: 0 1;
        background: $surface;
    }
    """

    def update_summary(self, ports: list[PortInfo]) -> None:
        """Update the counts from a port snapshot."""
        unknown = sum(1 for info in ports if info.process is None)
        owners = len({info.process.pid for info in ports if info.process is not None})
        self.update(
            f"Listening ports: [b]{len(ports)}[/b]  "
            f"Owning processes: [b]{owners}[/b]  "
            f"Unknown owner: [b]{unknown}[/b]"
        )


class PortTable(Container):
    """Container for the port data table."""

    DEFAULT_CSS = """
    PortTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize PortTable."""
        super().__init__(*args, **kwargs)
        self._ports: list[PortInfo] = []
        self._sort_key: SortKey = SortKey.PORT

    @property
    def sort_key(self) -> SortKey:
        """Get current sort key."""
        return self._sort_key

    def cycle_sort(self) -> SortKey:
        """Cycle to the next sort key, re-render and return it."""
        keys = list(SortKey)
        self._sort_key = keys[(keys.index(self._sort_key) + 1) % len(keys)]
        self._render_rows()
        return self._sort_key

    def compose(self) -> ComposeResult:
        """Compose the port table."""
        yield DataTable(id="port-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#port-table", DataTable)
        table.cursor_type = "row"

        table.add_column("PORT", key="port", width=7)
        table.add_column("PID", key="pid", width=8)
        table.add_column("PROCESS", key="name", width=20)
        table.add_column("USER", key="user", width=12)
        table.add_column("STARTED", key="started", width=10)
        table.add_column("COMMAND", key="command")

    def update_ports(self, ports: list[PortInfo]) -> None:
        """Replace the table contents with a new snapshot."""
        self._ports = list(ports)
        self._render_rows()

    def selected_port(self) -> PortInfo | None:
        """Get the PortInfo under the cursor."""
        table = self.query_one("#port-table", DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        for info in self._ports:
            if str(info.port) == row_key.value:
                return info
        return None

    def _sorted_ports(self) -> list[PortInfo]:
        key_func = {
            SortKey.PORT: lambda i: i.port,
            SortKey.PID: lambda i: i.process.pid if i.process else 0,
            SortKey.NAME: lambda i: i.process.name.lower() if i.process else "",
            SortKey.USER: lambda i: i.process.user.lower() if i.process else "",
        }
        return sorted(self._ports, key=key_func[self._sort_key])

    def _render_rows(self) -> None:
        table = self.query_one("#port-table", DataTable)
        table.clear()
        for info in self._sorted_ports():
            proc = info.process
            # Process-controlled strings go in as Text so brackets are not read as markup
            table.add_row(
                str(info.port),
                str(proc.pid) if proc else "?",
                Text(proc.name) if proc else "unknown",
                Text(proc.user) if proc else "",
                format_uptime(proc.start_time) if proc else "",
                Text(proc.command_line) if proc else "",
                key=str(info.port),
            )


class PortsApp(App):
    """Interactive view of listening ports."""

    TITLE = "zohd"
    SUB_TITLE = "Port conflict resolver"

    CSS = """
    Screen {
        layout: vertical;
    }

    #summary {
        dock: top;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "refresh", "Refresh"),
        ("s", "sort", "Sort"),
        ("t", "terminate", "Terminate"),
        ("k", "kill", "Kill"),
    ]

    def __init__(self, scanner: PortScanner | None = None) -> None:
        """Initialize the PortsApp."""
        super().__init__()
        self._scanner = scanner if scanner is not None else PortScanner()

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield SummaryBar(id="summary")
        yield PortTable()
        yield Footer()

    def on_mount(self) -> None:
        """Load the first snapshot once the table columns exist."""
        self.call_after_refresh(self.action_refresh)

    def action_refresh(self) -> None:
        """Re-scan listening ports."""
        try:
            ports = self._scanner.list_active()
        except ZohdError as e:
            self.notify(str(e), severity="error")
            return
        self.query_one("#summary", SummaryBar).update_summary(ports)
        self.query_one(PortTable).update_ports(ports)

    def action_sort(self) -> None:
        """Cycle through sort keys."""
        new_sort_key = self.query_one(PortTable).cycle_sort()
        self.notify(f"Sort: {new_sort_key.value.upper()}")

    def action_terminate(self) -> None:
        """Send SIGTERM to the owner of the selected port."""
        self._signal_selected(force=False)

    def action_kill(self) -> None:
        """Send SIGKILL to the owner of the selected port."""
        self._signal_selected(force=True)

    def _signal_selected(self, force: bool) -> None:
        info = self.query_one(PortTable).selected_port()
        if info is None:
            return
        if info.process is None:
            self.notify(f"Owner of port {info.port} is unknown", severity="warning")
            return
        try:
            sent = self._scanner.terminate(info.port, force=force)
        except ZohdError as e:
            self.notify(str(e), severity="error")
            return
        if sent:
            self.notify(f"Signalled {escape(info.process.name)} (PID {info.process.pid})")
        else:
            self.notify(f"Failed to signal PID {info.process.pid}", severity="error")
        self.action_refresh()
