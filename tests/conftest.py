import subprocess
import time
from pathlib import Path

import pytest

from relaunch.config import SupervisorConfig
from relaunch.pidfile import PidPair
from relaunch.pidfile import read_record


@pytest.fixture()
def config() -> SupervisorConfig:
    return SupervisorConfig(
        settle_interval_ms=10,
        settle_timeout_ms=2000,
        restart_grace_ms=0,
        idle_command=["sleep", "0.2"],
    )


@pytest.fixture()
def dead_pid() -> int:
    proc = subprocess.Popen(["true"])
    proc.wait()
    return proc.pid


@pytest.fixture(autouse=True)
def _clear_relaunch_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RELAUNCH_LOG_LEVEL", raising=False)


def wait_for(predicate, timeout: float = 5.0, interval: float = 0.02):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        value = predicate()
        if value:
            return value
        time.sleep(interval)
    raise AssertionError(f"condition not met within {timeout}s")


def wait_for_record(path: Path, timeout: float = 5.0) -> PidPair:
    return wait_for(lambda: read_record(path), timeout=timeout)


def wait_for_child_record(path: Path, timeout: float = 5.0) -> PidPair:
    """Wait past the claim record (supervisor named twice) to the first forked child."""

    def forked():
        record = read_record(path)
        return record if record and record.child_pid != record.supervisor_pid else None

    return wait_for(forked, timeout=timeout)
