"""Port-to-process resolution engine for zohd."""

import logging
from collections.abc import Iterator

from zohd.errors import SourceUnavailable
from zohd.models import MAX_PORT, MIN_PORT, ListeningSocket, ProcessInfo
from zohd.procfs import ProcFS, ProcSource

logger = logging.getLogger(__name__)

SOCKET_TABLES = ("tcp", "tcp6")
TCP_LISTEN = 0x0A

# Row layout: sl local_address rem_address st tx:rx tr:when retrnsmt uid timeout inode
_LOCAL_ADDRESS = 1
_STATE = 3
_INODE = 9

# Field 22 of /proc/<pid>/stat, counted after the "(comm)" field
_STARTTIME_AFTER_COMM = 22 - 3


def parse_socket_row(line: str) -> ListeningSocket | None:
    """
    Parse one data row of a kernel TCP table.

    Returns None for rows that are not in the listening state and for rows
    that fail to parse; a bad row never aborts the surrounding scan.
    """
    fields = line.split()
    if len(fields) <= _INODE:
        return None

    try:
        if int(fields[_STATE], 16) != TCP_LISTEN:
            return None
        # The port sub-field is the plain hex value, only the IP part is byte-swapped
        _, _, port_hex = fields[_LOCAL_ADDRESS].rpartition(":")
        port = int(port_hex, 16)
        inode = int(fields[_INODE])
    except ValueError:
        logger.debug("Skipping malformed socket row: %r", line)
        return None

    if not MIN_PORT <= port <= MAX_PORT:
        logger.debug("Skipping socket row with invalid port %d", port)
        return None
    return ListeningSocket(port=port, inode=inode)


class Resolver:
    """
    Resolves listening TCP ports to the processes owning them.

    Every call re-reads the kernel state through the ProcSource; nothing is
    retained between calls.
    """

    def __init__(self, source: ProcSource | None = None) -> None:
        """
        Initialize the Resolver.

        Args:
            source: Kernel state provider. Defaults to the live /proc tree.
        """
        self._source = source if source is not None else ProcFS()

    @property
    def source(self) -> ProcSource:
        return self._source

    def _iter_tables(self) -> Iterator[list[str]]:
        """Yield the data rows of each readable TCP table."""
        missing = []
        for name in SOCKET_TABLES:
            try:
                text = self._source.socket_table(name)
            except OSError as e:
                logger.debug("Socket table %s unavailable: %s", name, e)
                missing.append(name)
                continue
            # First line is the column header
            yield text.splitlines()[1:]

        if len(missing) == len(SOCKET_TABLES):
            logger.warning("No TCP socket table could be read")
            raise SourceUnavailable("TCP socket tables", ", ".join(missing) + " unreadable")

    def enumerate_listening_sockets(self) -> list[ListeningSocket]:
        """
        Collect every listening socket from the IPv4 and IPv6 tables.

        The result is unordered and may hold the same port twice when a
        service binds both address families.

        Raises:
            SourceUnavailable: Neither table could be read.
        """
        sockets: list[ListeningSocket] = []
        for rows in self._iter_tables():
            for line in rows:
                entry = parse_socket_row(line)
                if entry is not None:
                    sockets.append(entry)
        return sockets

    def is_port_listening(self, port: int) -> bool:
        """Check whether any socket listens on ``port``, stopping at the first hit."""
        for rows in self._iter_tables():
            for line in rows:
                entry = parse_socket_row(line)
                if entry is not None and entry.port == port:
                    return True
        return False

    def _pids(self) -> list[int]:
        try:
            return list(self._source.pids())
        except OSError as e:
            logger.warning("Process listing unavailable: %s", e)
            raise SourceUnavailable("process listing", str(e)) from e

    def _fd_targets(self, pid: int) -> list[str]:
        try:
            return list(self._source.fd_targets(pid))
        except OSError as e:
            # Exited, or owned by another user
            logger.debug("Cannot list descriptors of pid %d: %s", pid, e)
            return []

    def resolve_owner(self, inode: int) -> int | None:
        """
        Find a process holding the socket with the given inode.

        Processes are walked in listing order and the first match wins, so
        when a socket is shared (e.g. inherited by forked workers) this
        returns an arbitrary one of its owners.

        Raises:
            SourceUnavailable: The process listing could not be opened.
        """
        if inode <= 0:
            return None

        reference = f"socket:[{inode}]"
        for pid in self._pids():
            if reference in self._fd_targets(pid):
                return pid
        return None

    def build_owner_index(self) -> dict[int, int]:
        """
        Map every socket inode to an owning pid in a single pass.

        Shared sockets map to whichever owner was listed first.

        Raises:
            SourceUnavailable: The process listing could not be opened.
        """
        index: dict[int, int] = {}
        for pid in self._pids():
            for target in self._fd_targets(pid):
                if not (target.startswith("socket:[") and target.endswith("]")):
                    continue
                try:
                    inode = int(target[8:-1])
                except ValueError:
                    continue
                index.setdefault(inode, pid)
        return index

    def describe_process(self, pid: int) -> ProcessInfo:
        """
        Build a ProcessInfo for ``pid``.

        Each field is read independently and falls back to its default when
        unreadable, so this never raises for a vanished or foreign process.
        """
        name, launch_token = self._read_launch_token(pid)
        return ProcessInfo(
            pid=pid,
            name=name,
            launch_token=launch_token,
            user=self._read_user(pid),
            start_time=self._read_start_time(pid),
        )

    def _read_launch_token(self, pid: int) -> tuple[str, str]:
        try:
            raw = self._source.cmdline(pid)
        except OSError as e:
            logger.debug("Cannot read cmdline of pid %d: %s", pid, e)
            return "unknown", ""

        token = raw.split(b"\0", 1)[0].decode("utf-8", errors="replace")
        if not token:
            # Kernel threads and zombies have an empty record
            return "unknown", ""

        name = token.rsplit("/", 1)[-1].split(" ", 1)[0]
        return name or "unknown", token

    def _read_start_time(self, pid: int) -> int:
        try:
            stat = self._source.stat(pid)
            # comm may contain spaces and parentheses, fields resume after the last ")"
            fields = stat[stat.rindex(")") + 1 :].split()
            start_ticks = int(fields[_STARTTIME_AFTER_COMM])
            started_after_boot = start_ticks / self._source.clock_ticks()
            uptime = self._source.uptime()
            start_time = int(self._source.now() - (uptime - started_after_boot))
        except (OSError, ValueError, IndexError, ZeroDivisionError) as e:
            logger.debug("Cannot compute start time of pid %d: %s", pid, e)
            return 0
        return start_time if start_time > 0 else 0

    def _read_user(self, pid: int) -> str:
        try:
            status = self._source.status(pid)
        except OSError as e:
            logger.debug("Cannot read status of pid %d: %s", pid, e)
            return ""

        for line in status.splitlines():
            if not line.startswith("Uid:"):
                continue
            fields = line.split()
            try:
                uid = int(fields[1])
            except (IndexError, ValueError):
                return ""
            name = self._source.user_name(uid)
            return name if name else str(uid)
        return ""
