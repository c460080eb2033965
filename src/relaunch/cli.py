"""Command line entry point for relaunch."""
from __future__ import annotations

import argparse
import logging
import shlex
import sys
from pathlib import Path
from typing import Sequence

from rich.console import Console
from rich.logging import RichHandler

from .config import SupervisorConfig
from .config import load_config
from .control import describe
from .control import request_restart
from .control import request_stop
from .control import RestartResult
from .supervisor import run_supervised

_RESTART_MESSAGES = {
    RestartResult.NO_RECORD: "no supervisor is running in {directory}",
    RestartResult.SUPERVISOR_DEAD: "recorded supervisor process is not alive (stale marker in {directory})",
    RestartResult.CHILD_DEAD: "recorded child process is not alive (stale marker in {directory})",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="relaunch", description="Keep a command running and restart it on demand")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (default from config, INFO)")
    sub = parser.add_subparsers(dest="action", required=True)

    def add_common(cmd: argparse.ArgumentParser) -> None:
        cmd.add_argument("--dir", type=Path, default=None, help="Supervised directory (default: current directory)")
        cmd.add_argument("--config", type=Path, default=None, help="Path to a relaunch YAML config")

    run_cmd = sub.add_parser("run", help="Run a command under supervision")
    add_common(run_cmd)
    run_cmd.add_argument("--keep-output", action="store_true", help="Do not clear the terminal before each start")
    run_cmd.add_argument("command_args", nargs=argparse.REMAINDER, metavar="COMMAND", help="Shell command to supervise")

    add_common(sub.add_parser("restart", help="Restart the command of a running supervisor"))
    add_common(sub.add_parser("stop", help="Stop a running supervisor and its command"))
    add_common(sub.add_parser("status", help="Show the supervisor recorded for a directory"))
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _command_string(parts: Sequence[str]) -> str:
    """A single word is already a shell string; several words are re-quoted as argv."""
    if parts and parts[0] == "--":
        parts = parts[1:]
    if len(parts) == 1:
        return parts[0].strip()
    return shlex.join(parts)


def cmd_run(args: argparse.Namespace, directory: Path, config: SupervisorConfig) -> int:
    command = _command_string(args.command_args)
    if not command:
        raise SystemExit("relaunch run: a command is required")
    return run_supervised(command, directory, preserve_output=args.keep_output, config=config)


def cmd_restart(directory: Path, config: SupervisorConfig) -> int:
    result = request_restart(directory, config)
    if result is not RestartResult.SUCCESS:
        print(f"error: {_RESTART_MESSAGES[result].format(directory=directory)}", file=sys.stderr)
    return result.exit_code


def cmd_stop(directory: Path, config: SupervisorConfig) -> int:
    result = request_stop(directory, config)
    if result.exit_code:
        print(f"error: no supervisor is running in {directory}", file=sys.stderr)
    return result.exit_code


def cmd_status(directory: Path, config: SupervisorConfig) -> int:
    status = describe(directory, config)
    if status.record is None:
        print(f"{directory}: not supervised")
        return 2
    sup = "alive" if status.supervisor_alive else "dead"
    child = "alive" if status.child_alive else "dead"
    print(
        f"{directory}: supervisor {status.record.supervisor_pid} ({sup}), "
        f"child {status.record.child_pid} ({child})"
    )
    return 0 if status.running else 3


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    directory = (args.dir or Path.cwd()).resolve()

    try:
        config = load_config(directory, args.config)
    except (OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    configure_logging(args.log_level or config.log_level)

    try:
        if args.action == "run":
            return cmd_run(args, directory, config)
        if args.action == "restart":
            return cmd_restart(directory, config)
        if args.action == "stop":
            return cmd_stop(directory, config)
        if args.action == "status":
            return cmd_status(directory, config)
        parser.print_help()  # pragma: no cover - argparse enforces the choices
        return 1
    except (RuntimeError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
