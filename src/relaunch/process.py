"""Process liveness helpers."""
from __future__ import annotations

import logging
import time

import psutil

logger = logging.getLogger(__name__)


def pid_alive(pid: int) -> bool:
    """Report whether ``pid`` names a live process.

    Zombies count as dead: they have exited and only wait to be reaped.
    """
    if pid <= 0:
        return False
    try:
        if not psutil.pid_exists(pid):
            return False
    except OverflowError:
        # Larger than pid_t can hold, so no such process can exist.
        return False
    try:
        return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False
    except psutil.Error:
        # Exists but cannot be inspected (e.g. owned by another user).
        return True


def wait_until_dead(pid: int, *, interval: float, timeout: float) -> bool:
    """Poll until ``pid`` is gone or ``timeout`` seconds pass. Returns True if it died."""
    deadline = time.monotonic() + timeout
    while pid_alive(pid):
        if time.monotonic() >= deadline:
            logger.warning("Process %s still alive after %.2fs, giving up", pid, timeout)
            return False
        time.sleep(interval)
    return True
