"""Signal-based process control for zohd."""

import logging
import os
import pwd
import signal
import time

logger = logging.getLogger(__name__)


def _send(pid: int, sig: int) -> bool:
    """Send ``sig`` to ``pid``, returning whether the kernel accepted it."""
    if pid <= 0:
        # 0 and negatives address process groups, never a single process
        return False
    try:
        os.kill(pid, sig)
    except ProcessLookupError:
        logger.debug("Signal %d to pid %d rejected: no such process", sig, pid)
        return False
    except PermissionError:
        logger.debug("Signal %d to pid %d rejected: permission denied", sig, pid)
        return False
    except OverflowError:
        logger.debug("Signal %d to pid %d rejected: pid out of range", sig, pid)
        return False
    return True


def signal_terminate(pid: int) -> bool:
    """Ask ``pid`` to terminate gracefully (SIGTERM)."""
    return _send(pid, signal.SIGTERM)


def signal_kill(pid: int) -> bool:
    """Terminate ``pid`` immediately (SIGKILL)."""
    return _send(pid, signal.SIGKILL)


def is_alive(pid: int) -> bool:
    """Check that ``pid`` exists and is signalable by the caller."""
    return _send(pid, 0)


def wait_for_exit(pid: int, timeout: float = 5.0, interval: float = 0.1) -> bool:
    """
    Poll until ``pid`` is gone.

    Args:
        pid: Process to wait for.
        timeout: How long to wait (seconds).
        interval: Delay between liveness probes (seconds).

    Returns:
        True if the process exited within ``timeout``.
    """
    deadline = time.monotonic() + timeout
    while is_alive(pid):
        if time.monotonic() >= deadline:
            return False
        time.sleep(interval)
    return True


def current_user() -> str:
    """Get the account name of the invoking user."""
    try:
        return pwd.getpwuid(os.getuid()).pw_name
    except KeyError:
        return "unknown"
