"""Data models for zohd."""

from dataclasses import dataclass
from enum import Enum

MIN_PORT = 1
MAX_PORT = 65535


class PortStatus(Enum):
    """Binding state of a TCP port."""

    FREE = "free"
    IN_USE = "in_use"


@dataclass(slots=True, frozen=True)
class ProcessInfo:
    """Immutable snapshot of the process owning a port."""

    pid: int
    name: str = "unknown"
    launch_token: str = ""  # First NUL-delimited token of cmdline
    user: str = ""
    start_time: int = 0  # Epoch seconds, 0 when not computed

    @property
    def command_line(self) -> str:
        """Alias of launch_token, shown as "Command" in reports."""
        return self.launch_token


@dataclass(slots=True, frozen=True)
class PortInfo:
    """Immutable snapshot of one port's binding state."""

    port: int
    status: PortStatus
    process: ProcessInfo | None = None

    def __post_init__(self) -> None:
        if not MIN_PORT <= self.port <= MAX_PORT:
            raise ValueError(f"port out of range: {self.port}")
        if self.process is not None and self.status is not PortStatus.IN_USE:
            raise ValueError("a free port cannot have an owning process")

    @property
    def is_free(self) -> bool:
        return self.status is PortStatus.FREE

    @property
    def is_in_use(self) -> bool:
        return self.status is PortStatus.IN_USE


@dataclass(slots=True, frozen=True)
class ListeningSocket:
    """A listening row from the kernel TCP tables."""

    port: int
    inode: int
