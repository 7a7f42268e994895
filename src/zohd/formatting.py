"""Human-readable reports for zohd."""

import time

from rich.console import Group
from rich.table import Table
from rich.text import Text

from zohd.models import PortInfo, PortStatus

PORT_HINTS = {
    3000: "Commonly used for React/Node",
    5000: "Common for Flask/Go",
    8080: "Alternative HTTP port",
}


def status_symbol(status: PortStatus) -> str:
    """Get the one-character marker for a port status."""
    return "✓" if status is PortStatus.FREE else "✗"


def format_uptime(start_time: int, now: float | None = None) -> str:
    """Format an epoch start time as a coarse relative age, e.g. ``5m ago``."""
    if start_time <= 0:
        return "unknown"
    if now is None:
        now = time.time()
    elapsed = int(now) - start_time
    if elapsed < 0:
        return "unknown"
    if elapsed < 60:
        return f"{elapsed}s ago"
    if elapsed < 3600:
        return f"{elapsed // 60}m ago"
    if elapsed < 86400:
        return f"{elapsed // 3600}h ago"
    return f"{elapsed // 86400}d ago"


def render_port_info(info: PortInfo, now: float | None = None) -> Text:
    """Short report for a single port."""
    if info.is_free:
        return Text.from_markup(f"Port {info.port} is [green]FREE[/green]")

    text = Text.from_markup(f"Port {info.port} is [red]IN USE[/red]")
    proc = info.process
    if proc is None:
        text.append("\n  Owner: unknown (insufficient permissions?)")
        return text

    text.append(f"\n  Process: {proc.name}")
    text.append(f"\n  PID: {proc.pid}")
    if proc.command_line:
        text.append(f"\n  Command: {proc.command_line}")
    if proc.user:
        text.append(f"\n  User: {proc.user}")
    if proc.start_time > 0:
        text.append(f"\n  Started: {format_uptime(proc.start_time, now)}")
    return text


def render_detailed_info(info: PortInfo, now: float | None = None) -> Text:
    """Full report for a single port."""
    text = Text(f"Port {info.port} Information:")
    text.append(f"\n  Status: {'FREE' if info.is_free else 'IN USE'}")
    proc = info.process
    if proc is None:
        if info.is_in_use:
            text.append("\n  Owner: unknown")
        return text

    text.append(f"\n  Process: {proc.name}")
    text.append(f"\n  PID: {proc.pid}")
    text.append(f"\n  User: {proc.user or 'unknown'}")
    text.append(f"\n  Command: {proc.command_line or 'unknown'}")
    text.append(f"\n  Started: {format_uptime(proc.start_time, now)}")
    return text


def render_scan_results(results: list[PortInfo], now: float | None = None) -> Group:
    """Per-port status lines followed by a busy/free summary."""
    lines = []
    busy = 0
    for info in results:
        symbol = status_symbol(info.status)
        if info.is_free:
            lines.append(Text.from_markup(f"[green]{symbol}[/green] {info.port:>5} - FREE"))
            continue

        busy += 1
        proc = info.process
        name = proc.name if proc else "unknown"
        pid = str(proc.pid) if proc else "?"
        line = Text.from_markup(f"[red]{symbol}[/red] {info.port:>5} - USED by ")
        line.append(f"{name} (PID {pid})")
        if proc and proc.start_time > 0:
            line.append(f" [{format_uptime(proc.start_time, now)}]")
        lines.append(line)

    free = len(results) - busy
    lines.append(Text(f"\nSummary: {busy} ports busy, {free} ports free"))
    return Group(*lines)


def render_active_ports(ports: list[PortInfo], now: float | None = None) -> Table | Text:
    """Table of listening ports and their owners."""
    if not ports:
        return Text("No active ports found.")

    table = Table(title="Active ports", caption=f"Total: {len(ports)} active ports")
    table.add_column("PORT", justify="right")
    table.add_column("PID", justify="right")
    table.add_column("PROCESS", max_width=20, no_wrap=True)
    table.add_column("COMMAND", max_width=30, no_wrap=True)
    table.add_column("USER")
    table.add_column("STARTED")

    for info in ports:
        proc = info.process
        if proc is None:
            table.add_row(str(info.port), "?", "unknown", "", "", "")
            continue
        # Process-controlled strings go in as Text so brackets are not read as markup
        table.add_row(
            str(info.port),
            str(proc.pid),
            Text(proc.name),
            Text(proc.command_line),
            Text(proc.user),
            format_uptime(proc.start_time, now),
        )
    return table


def render_suggestions(ports: list[int]) -> Text:
    """List of suggested free ports with usage hints."""
    if not ports:
        return Text("No free ports found in development ranges.")

    text = Text("Available ports in development ranges:")
    for port in ports:
        text.append(f"\n  {port}")
        hint = PORT_HINTS.get(port)
        if hint:
            text.append(f" - {hint}", style="dim")
    return text
