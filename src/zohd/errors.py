"""Exceptions raised by zohd."""


class ZohdError(Exception):
    """Base class for errors surfaced to callers."""


class SourceUnavailable(ZohdError):
    """A kernel introspection source could not be opened at all."""

    def __init__(self, source: str, reason: str = "") -> None:
        self.source = source
        self.reason = reason
        message = f"could not read {source}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ConfigError(ZohdError):
    """Invalid configuration value."""
