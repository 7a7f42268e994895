"""zohd - command line interface."""

import argparse
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.prompt import Confirm, Prompt

from zohd import control
from zohd.config import ScanConfig
from zohd.errors import ZohdError
from zohd.formatting import (
    render_active_ports,
    render_detailed_info,
    render_port_info,
    render_scan_results,
    render_suggestions,
)
from zohd.models import MAX_PORT, MIN_PORT
from zohd.scanner import PortScanner

logger = logging.getLogger(__name__)

KILL_WAIT_SECONDS = 5.0


def _port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a port number: {value!r}") from None
    if not MIN_PORT <= port <= MAX_PORT:
        raise argparse.ArgumentTypeError(f"port must be between {MIN_PORT} and {MAX_PORT}")
    return port


def _count(value: str) -> int:
    try:
        count = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from None
    if not 1 <= count <= 20:
        raise argparse.ArgumentTypeError("count must be between 1 and 20")
    return count


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all subcommands."""
    parser = argparse.ArgumentParser(prog="zohd", description="Port conflict resolver")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("scan", help="Scan common development ports")
    sub.add_parser("list", help="List all active ports")
    sub.add_parser("tui", help="Browse active ports interactively")

    check = sub.add_parser("check", help="Check if a specific port is in use")
    check.add_argument("port", type=_port)

    info = sub.add_parser("info", help="Detailed port information")
    info.add_argument("port", type=_port)

    kill = sub.add_parser("kill", help="Kill the process using a port")
    kill.add_argument("port", type=_port)
    kill.add_argument("-f", "--force", action="store_true", help="Send SIGKILL instead of SIGTERM")
    kill.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    fix = sub.add_parser("fix", help="Interactive port conflict resolution")
    fix.add_argument("port", type=_port)

    suggest = sub.add_parser("suggest", help="Suggest free ports")
    suggest.add_argument("-n", "--count", type=_count, default=5, help="Number of ports (1-20)")

    return parser


def setup_logging(verbosity: int) -> None:
    """Send log records to stderr through rich."""
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbosity, logging.DEBUG)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _kill(
    scanner: PortScanner, port: int, pid: int, force: bool, console: Console
) -> int:
    if not scanner.terminate(port, force=force):
        console.print("[red]Failed to kill process (permission denied?)[/red]")
        return 1
    if not control.wait_for_exit(pid, timeout=KILL_WAIT_SECONDS):
        console.print(
            f"[yellow]Signal sent, but PID {pid} is still running "
            f"after {KILL_WAIT_SECONDS:g}s[/yellow]"
        )
        return 1
    console.print("Process killed successfully")
    return 0


def cmd_kill(scanner: PortScanner, args: argparse.Namespace, console: Console) -> int:
    info = scanner.check(args.port)
    if info.is_free:
        console.print(f"Port {args.port} is not in use")
        return 0
    if info.process is None:
        console.print(f"[red]Could not find process information for port {args.port}[/red]")
        return 1

    if not args.yes:
        console.print(render_port_info(info))
        if info.process.user and info.process.user != control.current_user():
            console.print(f"[yellow]Process is owned by {escape(info.process.user)}[/yellow]")
        if not Confirm.ask("\nKill this process?", default=False, console=console):
            console.print("Cancelled")
            return 0

    return _kill(scanner, args.port, info.process.pid, args.force, console)


def cmd_fix(scanner: PortScanner, args: argparse.Namespace, console: Console) -> int:
    info = scanner.check(args.port)
    if info.is_free:
        console.print(f"Port {args.port} is [green]FREE[/green]")
        return 0

    console.print(render_port_info(info))
    console.print(
        "\nChoose action:\n"
        "1. Kill the process\n"
        "2. Use alternative port (suggest free port)\n"
        "3. Show detailed process info\n"
        "4. Cancel\n"
    )
    choice = Prompt.ask("Enter choice", choices=["1", "2", "3", "4"], default="4", console=console)

    if choice == "1":
        if info.process is None:
            console.print("[red]Could not find process information[/red]")
            return 1
        return _kill(scanner, args.port, info.process.pid, False, console)
    if choice == "2":
        console.print(render_suggestions(scanner.suggest_free_ports(3)))
    elif choice == "3":
        console.print(render_detailed_info(info))
    else:
        console.print("Cancelled")
    return 0


def run(args: argparse.Namespace, scanner: PortScanner, console: Console) -> int:
    """Dispatch a parsed command, returning the process exit status."""
    if args.command == "scan":
        console.print("Scanning common development ports...\n")
        console.print(render_scan_results(scanner.scan_dev_ports()))
    elif args.command == "check":
        console.print(render_port_info(scanner.check(args.port)))
    elif args.command == "info":
        console.print(render_detailed_info(scanner.check(args.port)))
    elif args.command == "list":
        console.print(render_active_ports(scanner.list_active()))
    elif args.command == "suggest":
        console.print(render_suggestions(scanner.suggest_free_ports(args.count)))
    elif args.command == "kill":
        return cmd_kill(scanner, args, console)
    elif args.command == "fix":
        return cmd_fix(scanner, args, console)
    elif args.command == "tui":
        from zohd.app import PortsApp

        PortsApp(scanner=scanner).run()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point for the zohd command."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    console = Console()

    try:
        scanner = PortScanner(config=ScanConfig.from_env())
        return run(args, scanner, console)
    except ZohdError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
