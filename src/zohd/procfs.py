"""Kernel introspection sources.

The resolution engine never touches the filesystem directly. It talks to a
``ProcSource``, so the live ``/proc`` tree can be swapped for an in-memory
table in tests or pointed at a mounted copy of another host's procfs.

Every method raises ``OSError`` when the underlying record cannot be read.
Deciding whether that is fatal is left to the caller.
"""

import os
import pwd
import time
from abc import ABC, abstractmethod
from collections.abc import Iterator


class ProcSource(ABC):
    """Read-only view of the kernel state zohd needs."""

    @abstractmethod
    def socket_table(self, name: str) -> str:
        """Return the raw text of ``net/<name>`` (``tcp`` or ``tcp6``)."""

    @abstractmethod
    def pids(self) -> Iterator[int]:
        """Yield the identifiers of all running processes."""

    @abstractmethod
    def fd_targets(self, pid: int) -> Iterator[str]:
        """Yield the symbolic target of each open descriptor of ``pid``."""

    @abstractmethod
    def cmdline(self, pid: int) -> bytes:
        """Return the raw NUL-delimited invocation record."""

    @abstractmethod
    def stat(self, pid: int) -> str:
        """Return the single-line stat record."""

    @abstractmethod
    def status(self, pid: int) -> str:
        """Return the ``Key:\\tvalue`` status table."""

    @abstractmethod
    def uptime(self) -> float:
        """Return seconds since boot."""

    @abstractmethod
    def clock_ticks(self) -> int:
        """Return the kernel tick rate (ticks per second)."""

    @abstractmethod
    def now(self) -> float:
        """Return the current wall-clock time in epoch seconds."""

    @abstractmethod
    def user_name(self, uid: int) -> str | None:
        """Map a numeric uid to an account name, ``None`` if unmapped."""


class ProcFS(ProcSource):
    """``ProcSource`` backed by a mounted procfs tree."""

    def __init__(self, root: str = "/proc") -> None:
        self._root = root

    @property
    def root(self) -> str:
        return self._root

    def _path(self, *parts: object) -> str:
        return os.path.join(self._root, *(str(part) for part in parts))

    def socket_table(self, name: str) -> str:
        with open(self._path("net", name), encoding="ascii", errors="replace") as f:
            return f.read()

    def pids(self) -> Iterator[int]:
        # listdir raises here, before the first yield, if the root is unreadable
        entries = os.listdir(self._root)

        def _numeric() -> Iterator[int]:
            for entry in entries:
                if entry.isdigit():
                    yield int(entry)

        return _numeric()

    def fd_targets(self, pid: int) -> Iterator[str]:
        fd_dir = self._path(pid, "fd")
        entries = os.listdir(fd_dir)

        def _targets() -> Iterator[str]:
            for fd in entries:
                try:
                    yield os.readlink(os.path.join(fd_dir, fd))
                except OSError:
                    # Descriptor closed since the listing
                    continue

        return _targets()

    def cmdline(self, pid: int) -> bytes:
        with open(self._path(pid, "cmdline"), "rb") as f:
            return f.read()

    def stat(self, pid: int) -> str:
        with open(self._path(pid, "stat"), encoding="utf-8", errors="replace") as f:
            return f.read()

    def status(self, pid: int) -> str:
        with open(self._path(pid, "status"), encoding="utf-8", errors="replace") as f:
            return f.read()

    def uptime(self) -> float:
        with open(self._path("uptime"), encoding="ascii") as f:
            content = f.read().split()
        if not content:
            raise OSError(f"empty uptime record in {self._root}")
        try:
            return float(content[0])
        except ValueError as e:
            raise OSError(f"unparsable uptime record: {content[0]!r}") from e

    def clock_ticks(self) -> int:
        return os.sysconf("SC_CLK_TCK")

    def now(self) -> float:
        return time.time()

    def user_name(self, uid: int) -> str | None:
        try:
            return pwd.getpwuid(uid).pw_name
        except KeyError:
            return None
