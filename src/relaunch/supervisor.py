"""Supervision loop: keep one command alive and restart it on request."""
from __future__ import annotations

import logging
import os
import signal
import subprocess
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any
from typing import Sequence

from .config import SupervisorConfig
from .pidfile import MalformedRecordError
from .pidfile import PidPair
from .pidfile import create_record
from .pidfile import read_record
from .pidfile import remove_record
from .pidfile import write_record
from .process import pid_alive
from .process import wait_until_dead
from .terminal import Terminal

logger = logging.getLogger(__name__)


class SupervisorState(str, Enum):
    STARTING_REAL_COMMAND = "STARTING_REAL_COMMAND"
    COMMAND_RUNNING = "COMMAND_RUNNING"
    COMMAND_EXITED_NATURALLY = "COMMAND_EXITED_NATURALLY"
    IDLE_SLEEP = "IDLE_SLEEP"
    RESTART_REQUESTED = "RESTART_REQUESTED"
    STOPPED = "STOPPED"


class AlreadySupervisedError(RuntimeError):
    """Another live supervisor owns the directory."""

    def __init__(self, directory: Path, record: PidPair) -> None:
        super().__init__(
            f"{directory} is already supervised by pid {record.supervisor_pid} (child {record.child_pid})"
        )
        self.directory = directory
        self.record = record


@dataclass
class SupervisionSession:
    command: str
    directory: Path
    preserve_output: bool = False
    restart_requested: bool = False


class Supervisor:
    """Runs ``session.command`` forever inside ``session.directory``.

    The restart signal handler only sets ``session.restart_requested``; the loop
    reads it after the current wait returns. Whoever requests the restart is
    expected to kill the running child (see ``relaunch.control``). The one
    process the supervisor kills itself is its own idle placeholder, which the
    restart handler terminates so an idle supervisor restarts without delay.
    """

    def __init__(
        self,
        session: SupervisionSession,
        config: SupervisorConfig | None = None,
        terminal: Terminal | None = None,
    ) -> None:
        self.session = session
        self.config = config or SupervisorConfig()
        self.terminal = terminal or Terminal()
        self.marker_path = self.config.marker_path(session.directory)
        self.state = SupervisorState.STARTING_REAL_COMMAND
        self._stopping = False
        self._idle_pid: int | None = None
        self._previous_handlers: dict[int, Any] = {}

    # Ownership -----------------------------------------------------------
    def claim(self, attempts: int = 3) -> None:
        """Create the marker, refusing when a live supervisor already owns the directory.

        Until the first fork the record names this process on both sides.
        Creation is exclusive, so of two supervisors started together only one
        wins. Removing a stale marker is not exclusive: two starters replacing
        the same crash leftover can still both proceed.
        """
        own = PidPair(os.getpid(), os.getpid())
        for _ in range(attempts):
            if create_record(self.marker_path, own):
                return
            try:
                existing = read_record(self.marker_path)
            except MalformedRecordError as exc:
                logger.warning("Replacing unreadable marker %s: %s", self.marker_path, exc)
                remove_record(self.marker_path)
                continue
            if existing is None:
                continue
            if existing.supervisor_pid == os.getpid():
                return
            if pid_alive(existing.supervisor_pid):
                raise AlreadySupervisedError(self.session.directory, existing)
            logger.warning(
                "Replacing stale marker %s left by dead supervisor %s",
                self.marker_path,
                existing.supervisor_pid,
            )
            remove_record(self.marker_path)
        raise RuntimeError(f"could not claim {self.marker_path} after {attempts} attempts")

    def release(self) -> None:
        """Delete the marker if it still names this process."""
        try:
            existing = read_record(self.marker_path)
        except MalformedRecordError:
            existing = None
        if existing is None or existing.supervisor_pid == os.getpid():
            remove_record(self.marker_path)

    # Signals ---------------------------------------------------------------
    def install_signal_handlers(self) -> None:
        restart = self.config.restart_signum
        self._previous_handlers[restart] = signal.signal(restart, self._on_restart_signal)
        for signum in self.config.shutdown_signums:
            self._previous_handlers[signum] = signal.signal(signum, self._on_shutdown_signal)

    def restore_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            if handler is not None:
                signal.signal(signum, handler)
        self._previous_handlers.clear()

    def _on_restart_signal(self, signum: int, frame: Any) -> None:  # noqa: ARG002
        self.session.restart_requested = True
        # The placeholder belongs to us, not to the user; end it so an idle
        # supervisor restarts as quickly as a busy one.
        if self._idle_pid is not None:
            try:
                os.kill(self._idle_pid, signal.SIGTERM)
            except ProcessLookupError:
                pass

    def _on_shutdown_signal(self, signum: int, frame: Any) -> None:  # noqa: ARG002
        logger.info("Received %s, shutting down", signal.Signals(signum).name)
        self.shutdown()

    def shutdown(self) -> None:
        """Remove the marker and terminate the whole process group, ourselves excepted."""
        if self._stopping:
            return
        self._stopping = True
        self.release()
        self.terminal.clear_title()
        for signum in {*self.config.shutdown_signums, signal.SIGTERM}:
            signal.signal(signum, signal.SIG_IGN)
        os.killpg(os.getpgrp(), signal.SIGTERM)

    @property
    def stopping(self) -> bool:
        return self._stopping

    # Fork and wait ---------------------------------------------------------
    def command_argv(self) -> list[str]:
        return [self.config.shell, "-c", self.session.command]

    def fork_and_wait(self, argv: Sequence[str], *, announce: bool) -> int:
        """Spawn ``argv``, record the pid pair, and block until the child is gone."""
        if announce:
            if not self.session.preserve_output:
                self.terminal.clear()
            self.terminal.set_title(self.session.command)
            self.terminal.announce_start(self.session.command)

        proc = subprocess.Popen(list(argv), cwd=str(self.session.directory))
        if not announce:
            self._idle_pid = proc.pid
        try:
            if self._stopping:
                # Shutdown landed between the loop check and the fork.
                proc.terminate()
            else:
                write_record(self.marker_path, PidPair(os.getpid(), proc.pid))
            exit_code = proc.wait()
        finally:
            self._idle_pid = None
        wait_until_dead(
            proc.pid,
            interval=self.config.settle_interval_ms / 1000.0,
            timeout=self.config.settle_timeout_ms / 1000.0,
        )
        logger.debug("Process %s exited with code %s", proc.pid, exit_code)

        if announce and not self._stopping and not self._restart_requested_after_exit():
            self.terminal.announce_finish(self.session.command, exit_code)
        return exit_code

    def _restart_requested_after_exit(self) -> bool:
        """Read the restart flag, giving a late signal ``restart_grace_ms`` to land."""
        if self.session.restart_requested:
            return True
        if self.config.restart_grace_ms:
            time.sleep(self.config.restart_grace_ms / 1000.0)
        return self.session.restart_requested

    # Loop --------------------------------------------------------------------
    def _transition(self, state: SupervisorState) -> SupervisorState:
        logger.debug("%s -> %s", self.state.value, state.value)
        self.state = state
        return state

    def run_once(self) -> SupervisorState:
        """Run one loop iteration: the real command, then idle sleep if it ended on its own."""
        self.session.restart_requested = False
        self._transition(SupervisorState.STARTING_REAL_COMMAND)
        self._transition(SupervisorState.COMMAND_RUNNING)
        exit_code = self.fork_and_wait(self.command_argv(), announce=True)

        if self._stopping:
            return self._transition(SupervisorState.STOPPED)
        if self.session.restart_requested:
            logger.info("Restarting %r", self.session.command)
            return self._transition(SupervisorState.RESTART_REQUESTED)

        self._transition(SupervisorState.COMMAND_EXITED_NATURALLY)
        logger.info("Command %r exited with code %s; idling until restart", self.session.command, exit_code)
        self._transition(SupervisorState.IDLE_SLEEP)
        self.fork_and_wait(self.config.idle_command, announce=False)
        if self._stopping:
            return self._transition(SupervisorState.STOPPED)
        return self.state

    def run_forever(self) -> int:
        self.claim()
        self.install_signal_handlers()
        logger.info("Supervising %r in %s (pid %s)", self.session.command, self.session.directory, os.getpid())
        try:
            while not self._stopping:
                self.run_once()
        finally:
            self.restore_signal_handlers()
            # A shutdown racing the last record write can leave our marker behind.
            self.release()
        logger.info("Supervisor stopped")
        return 0


def run_supervised(
    command: str,
    directory: Path,
    *,
    preserve_output: bool = False,
    config: SupervisorConfig | None = None,
    terminal: Terminal | None = None,
) -> int:
    session = SupervisionSession(command=command, directory=Path(directory).resolve(), preserve_output=preserve_output)
    return Supervisor(session, config=config, terminal=terminal).run_forever()
