"""Configuration for zohd."""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from zohd.errors import ConfigError
from zohd.models import MAX_PORT, MIN_PORT

DEFAULT_DEV_PORTS: tuple[int, ...] = (
    3000,  # React / Node
    3001,
    4200,  # Angular
    5000,  # Flask
    5173,  # Vite
    5432,  # PostgreSQL
    6379,  # Redis
    8000,  # Django
    8080,
    8888,  # Jupyter
    9000,
    27017,  # MongoDB
)

DEFAULT_SUGGEST_RANGES: tuple[tuple[int, int], ...] = (
    (3000, 3999),
    (5000, 5999),
    (8000, 8999),
)


def _parse_port(value: str, variable: str) -> int:
    try:
        port = int(value.strip())
    except ValueError:
        raise ConfigError(f"{variable}: not a port number: {value!r}") from None
    if not MIN_PORT <= port <= MAX_PORT:
        raise ConfigError(f"{variable}: port out of range: {port}")
    return port


def parse_ports(value: str, variable: str = "ports") -> tuple[int, ...]:
    """Parse a comma-separated port list such as ``"3000,8080"``."""
    ports = tuple(_parse_port(item, variable) for item in value.split(",") if item.strip())
    if not ports:
        raise ConfigError(f"{variable}: empty port list")
    return ports


def parse_ranges(value: str, variable: str = "ranges") -> tuple[tuple[int, int], ...]:
    """Parse comma-separated inclusive ranges such as ``"3000-3999,8000-8999"``."""
    ranges = []
    for item in value.split(","):
        if not item.strip():
            continue
        low, sep, high = item.partition("-")
        if not sep:
            raise ConfigError(f"{variable}: expected LOW-HIGH, got {item!r}")
        start, end = _parse_port(low, variable), _parse_port(high, variable)
        if start > end:
            raise ConfigError(f"{variable}: inverted range {item!r}")
        ranges.append((start, end))
    if not ranges:
        raise ConfigError(f"{variable}: empty range list")
    return tuple(ranges)


@dataclass(slots=True, frozen=True)
class ScanConfig:
    """Ports zohd looks at by default and where it reads kernel state from."""

    dev_ports: tuple[int, ...] = DEFAULT_DEV_PORTS
    suggest_ranges: tuple[tuple[int, int], ...] = DEFAULT_SUGGEST_RANGES
    proc_root: str = "/proc"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ScanConfig":
        """
        Build a config from ``ZOHD_*`` environment variables.

        Unset variables keep their defaults.

        Raises:
            ConfigError: A variable is set to a malformed value.
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, object] = {}
        if env.get("ZOHD_DEV_PORTS"):
            kwargs["dev_ports"] = parse_ports(env["ZOHD_DEV_PORTS"], "ZOHD_DEV_PORTS")
        if env.get("ZOHD_SUGGEST_RANGES"):
            kwargs["suggest_ranges"] = parse_ranges(
                env["ZOHD_SUGGEST_RANGES"], "ZOHD_SUGGEST_RANGES"
            )
        if env.get("ZOHD_PROC_ROOT"):
            kwargs["proc_root"] = env["ZOHD_PROC_ROOT"]
        return cls(**kwargs)
