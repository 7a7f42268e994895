"""Tests for the zohd TUI."""

import pytest
from fakes import FakeProcSource, socket_row, socket_table

from zohd import control
from zohd.app import PortsApp, PortTable, SortKey, SummaryBar
from zohd.scanner import PortScanner


class TestSortKey:
    """Tests for SortKey enum."""

    def test_sort_key_values(self):
        """Test SortKey enum has expected values."""
        assert SortKey.PORT.value == "port"
        assert SortKey.PID.value == "pid"
        assert SortKey.NAME.value == "name"
        assert SortKey.USER.value == "user"

    def test_sort_key_members(self):
        """Test SortKey enum has all expected members."""
        assert list(SortKey) == [SortKey.PORT, SortKey.PID, SortKey.NAME, SortKey.USER]


@pytest.mark.asyncio
async def test_app_creation(scanner):
    """Test PortsApp can be instantiated."""
    app = PortsApp(scanner=scanner)
    assert app.title == "zohd"
    assert app.sub_title == "Port conflict resolver"


@pytest.mark.asyncio
async def test_app_compose(scanner):
    """Test PortsApp composes correctly and loads the first snapshot."""
    app = PortsApp(scanner=scanner)
    async with app.run_test() as pilot:
        await pilot.pause()
        table = pilot.app.query_one("#port-table")
        assert table.row_count == 3
        assert pilot.app.query_one("#summary", SummaryBar) is not None


@pytest.mark.asyncio
async def test_app_quit_binding(scanner):
    """Test that 'q' binding triggers quit."""
    app = PortsApp(scanner=scanner)
    async with app.run_test() as pilot:
        await pilot.press("q")
        assert pilot.app._exit


@pytest.mark.asyncio
async def test_app_sort_binding(scanner):
    """Test that 's' binding cycles sort key."""
    app = PortsApp(scanner=scanner)
    async with app.run_test() as pilot:
        await pilot.pause()
        port_table = pilot.app.query_one(PortTable)
        assert port_table.sort_key == SortKey.PORT

        await pilot.press("s")
        assert port_table.sort_key == SortKey.PID

        port_table.cycle_sort()
        port_table.cycle_sort()
        port_table.cycle_sort()
        assert port_table.sort_key == SortKey.PORT


@pytest.mark.asyncio
async def test_refresh_picks_up_new_listener(scanner, source):
    """Test 'r' re-reads the kernel tables."""
    app = PortsApp(scanner=scanner)
    async with app.run_test() as pilot:
        await pilot.pause()
        # 5432 stops listening; 8080 stays up through its IPv6 socket
        source.tables["tcp"] = socket_table(socket_row(3000, 2001))

        await pilot.press("r")
        await pilot.pause()

        assert pilot.app.query_one("#port-table").row_count == 2


@pytest.mark.asyncio
async def test_terminate_selected(scanner, monkeypatch):
    """Test 't' signals the owner of the selected row."""
    sent = []
    monkeypatch.setattr(control, "_send", lambda pid, sig: sent.append((pid, sig)) or True)

    app = PortsApp(scanner=scanner)
    async with app.run_test() as pilot:
        await pilot.pause()
        # Rows are sorted by port: 3000 (node) is first
        await pilot.press("t")
        await pilot.pause()

    assert sent == [(200, control.signal.SIGTERM)]


@pytest.mark.asyncio
async def test_unavailable_source_does_not_crash():
    """Test the app shows an error instead of exiting."""
    app = PortsApp(scanner=PortScanner(source=FakeProcSource()))
    async with app.run_test() as pilot:
        await pilot.pause()
        assert pilot.app.query_one("#port-table").row_count == 0


@pytest.mark.asyncio
async def test_bracketed_command_line_is_shown_verbatim(source):
    """Test process titles are not parsed as Textual markup."""
    source.processes[200].cmdline = b"sshd: /usr/sbin/sshd -D [listener] 0 of 10-100 startups\0"
    source.users[1000] = "[/x]"

    app = PortsApp(scanner=PortScanner(source=source))
    async with app.run_test() as pilot:
        await pilot.pause()
        row = pilot.app.query_one("#port-table").get_row("3000")

    cells = [cell.plain if hasattr(cell, "plain") else cell for cell in row]
    assert "sshd: /usr/sbin/sshd -D [listener] 0 of 10-100 startups" in cells
    assert "[/x]" in cells
