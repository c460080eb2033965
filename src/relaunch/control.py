"""Controller operations issued against a running supervisor from another process."""
from __future__ import annotations

import logging
import os
import signal
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .config import SupervisorConfig
from .pidfile import MalformedRecordError
from .pidfile import PidPair
from .pidfile import read_record
from .pidfile import remove_record
from .process import pid_alive

logger = logging.getLogger(__name__)


class RestartResult(str, Enum):
    SUCCESS = "success"
    NO_RECORD = "no_record"
    SUPERVISOR_DEAD = "supervisor_dead"
    CHILD_DEAD = "child_dead"

    @property
    def exit_code(self) -> int:
        return _RESTART_EXIT_CODES[self]


class StopResult(str, Enum):
    SUCCESS = "success"
    NOT_RUNNING = "not_running"

    @property
    def exit_code(self) -> int:
        return 0 if self is StopResult.SUCCESS else 2


_RESTART_EXIT_CODES = {
    RestartResult.SUCCESS: 0,
    RestartResult.NO_RECORD: 2,
    RestartResult.SUPERVISOR_DEAD: 3,
    RestartResult.CHILD_DEAD: 4,
}


@dataclass(frozen=True)
class SupervisorStatus:
    directory: Path
    record: PidPair | None
    supervisor_alive: bool = False
    child_alive: bool = False

    @property
    def running(self) -> bool:
        return self.record is not None and self.supervisor_alive


def load_record(directory: Path, config: SupervisorConfig | None = None) -> PidPair | None:
    path = (config or SupervisorConfig()).marker_path(directory)
    try:
        return read_record(path)
    except MalformedRecordError as exc:
        logger.warning("Ignoring unreadable marker %s: %s", path, exc)
        return None


def _send(pid: int, signum: signal.Signals) -> bool:
    try:
        os.kill(pid, signum)
    except ProcessLookupError:
        logger.debug("Process %s vanished before %s could be delivered", pid, signum.name)
        return False
    logger.debug("Sent %s to %s", signum.name, pid)
    return True


def request_restart(directory: Path, config: SupervisorConfig | None = None) -> RestartResult:
    """Ask the supervisor owning ``directory`` to restart its command.

    The supervisor is signalled before the child so the restart flag is set by
    the time the child's exit wakes the supervisor up.
    """
    config = config or SupervisorConfig()
    record = load_record(directory, config)
    if record is None:
        return RestartResult.NO_RECORD
    if not pid_alive(record.supervisor_pid):
        return RestartResult.SUPERVISOR_DEAD
    if not pid_alive(record.child_pid):
        return RestartResult.CHILD_DEAD

    if not _send(record.supervisor_pid, config.restart_signum):
        return RestartResult.SUPERVISOR_DEAD
    # A freshly claimed record names the supervisor twice: nothing is forked yet.
    if record.child_pid != record.supervisor_pid:
        _send(record.child_pid, signal.SIGTERM)
        # Programs that ask for confirmation on the first interrupt get a second one.
        _send(record.child_pid, signal.SIGINT)
    logger.info("Restart requested for supervisor %s (child %s)", record.supervisor_pid, record.child_pid)
    return RestartResult.SUCCESS


def request_stop(directory: Path, config: SupervisorConfig | None = None) -> StopResult:
    """Terminate both recorded processes and delete the marker without waiting."""
    config = config or SupervisorConfig()
    record = load_record(directory, config)
    if record is None:
        return StopResult.NOT_RUNNING
    for pid in dict.fromkeys((record.supervisor_pid, record.child_pid)):
        _send(pid, signal.SIGTERM)
    remove_record(config.marker_path(directory))
    logger.info("Stop requested for supervisor %s (child %s)", record.supervisor_pid, record.child_pid)
    return StopResult.SUCCESS


def describe(directory: Path, config: SupervisorConfig | None = None) -> SupervisorStatus:
    record = load_record(directory, config)
    if record is None:
        return SupervisorStatus(directory=directory, record=None)
    return SupervisorStatus(
        directory=directory,
        record=record,
        supervisor_alive=pid_alive(record.supervisor_pid),
        child_alive=pid_alive(record.child_pid),
    )
