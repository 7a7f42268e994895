"""Port queries and termination for zohd."""

import logging
from collections import defaultdict
from collections.abc import Iterable

from zohd import control
from zohd.config import ScanConfig
from zohd.models import MAX_PORT, MIN_PORT, ListeningSocket, PortInfo, PortStatus
from zohd.procfs import ProcFS, ProcSource
from zohd.resolver import Resolver

logger = logging.getLogger(__name__)


def _validate_port(port: int) -> None:
    if not MIN_PORT <= port <= MAX_PORT:
        raise ValueError(f"port must be between {MIN_PORT} and {MAX_PORT}, got {port}")


def _group_by_port(sockets: Iterable[ListeningSocket]) -> dict[int, list[int]]:
    inodes: dict[int, list[int]] = defaultdict(list)
    for sock in sockets:
        inodes[sock.port].append(sock.inode)
    return inodes


class PortScanner:
    """
    Caller-facing port queries.

    Holds no state between calls: every operation re-reads the kernel tables,
    so results are best-effort snapshots that may already be stale.
    """

    def __init__(
        self,
        source: ProcSource | None = None,
        config: ScanConfig | None = None,
    ) -> None:
        """
        Initialize the PortScanner.

        Args:
            source: Kernel state provider. Defaults to ProcFS at config.proc_root.
            config: Port lists used by scan_dev_ports and suggest_free_ports.
        """
        self._config = config if config is not None else ScanConfig()
        if source is None:
            source = ProcFS(self._config.proc_root)
        self._resolver = Resolver(source)

    @property
    def config(self) -> ScanConfig:
        return self._config

    @property
    def resolver(self) -> Resolver:
        return self._resolver

    def check(self, port: int) -> PortInfo:
        """Snapshot a single port, resolving its owner only if it is in use."""
        _validate_port(port)
        inodes = [
            sock.inode
            for sock in self._resolver.enumerate_listening_sockets()
            if sock.port == port
        ]
        if not inodes:
            return PortInfo(port=port, status=PortStatus.FREE)

        for inode in inodes:
            pid = self._resolver.resolve_owner(inode)
            if pid is not None:
                return PortInfo(
                    port=port,
                    status=PortStatus.IN_USE,
                    process=self._resolver.describe_process(pid),
                )

        logger.info("Port %d is in use but its owner could not be identified", port)
        return PortInfo(port=port, status=PortStatus.IN_USE)

    def _snapshot(self, ports: Iterable[int], inodes: dict[int, list[int]]) -> list[PortInfo]:
        index = self._resolver.build_owner_index() if inodes else {}
        results = []
        for port in ports:
            if port not in inodes:
                results.append(PortInfo(port=port, status=PortStatus.FREE))
                continue
            pid = next((index[i] for i in inodes[port] if i in index), None)
            process = self._resolver.describe_process(pid) if pid is not None else None
            results.append(PortInfo(port=port, status=PortStatus.IN_USE, process=process))
        return results

    def scan(self, ports: Iterable[int]) -> list[PortInfo]:
        """Snapshot each of ``ports``, in the order given."""
        ports = list(ports)
        for port in ports:
            _validate_port(port)

        wanted = set(ports)
        listening = _group_by_port(
            sock
            for sock in self._resolver.enumerate_listening_sockets()
            if sock.port in wanted
        )
        return self._snapshot(ports, listening)

    def scan_dev_ports(self) -> list[PortInfo]:
        """Snapshot the configured development ports."""
        return self.scan(self._config.dev_ports)

    def list_active(self) -> list[PortInfo]:
        """Snapshot every listening port on the host, one entry per port, ascending."""
        listening = _group_by_port(self._resolver.enumerate_listening_sockets())
        return self._snapshot(sorted(listening), listening)

    def suggest_free(self, count: int, port_range: tuple[int, int]) -> list[int]:
        """
        Find up to ``count`` free ports in the inclusive ``port_range``.

        Ports are tried in ascending order and the search stops as soon as
        ``count`` have been found. Fewer are returned if the range runs out.
        """
        start, end = port_range
        if count < 0:
            raise ValueError(f"count must not be negative, got {count}")
        _validate_port(start)
        _validate_port(end)
        if start > end:
            raise ValueError(f"invalid port range {start}-{end}")
        if count == 0:
            return []

        busy = {sock.port for sock in self._resolver.enumerate_listening_sockets()}
        free: list[int] = []
        for port in range(start, end + 1):
            if port in busy:
                continue
            free.append(port)
            if len(free) == count:
                break
        return free

    def suggest_free_ports(self, count: int) -> list[int]:
        """Suggest free ports across the configured ranges, in range order."""
        suggestions: list[int] = []
        for port_range in self._config.suggest_ranges:
            if len(suggestions) >= count:
                break
            suggestions.extend(self.suggest_free(count - len(suggestions), port_range))
        return suggestions

    def terminate(self, port: int, force: bool = False) -> bool:
        """
        Signal the process owning ``port``.

        Args:
            port: Port whose owner should be stopped.
            force: Send SIGKILL instead of SIGTERM.

        Returns:
            True if the signal was accepted. False if the port is free, its
            owner is unknown, or the kernel rejected the signal.
        """
        info = self.check(port)
        if info.process is None:
            logger.info("No owning process to signal on port %d", port)
            return False

        pid = info.process.pid
        sent = control.signal_kill(pid) if force else control.signal_terminate(pid)
        if sent:
            logger.info("Sent %s to pid %d on port %d", "SIGKILL" if force else "SIGTERM", pid, port)
        else:
            logger.warning("Signal to pid %d on port %d was rejected", pid, port)
        return sent
