"""Keep a command running in a directory and restart or stop it from another shell."""

from .control import RestartResult, StopResult, request_restart, request_stop
from .supervisor import AlreadySupervisedError, Supervisor, run_supervised

__all__ = [
    "AlreadySupervisedError",
    "RestartResult",
    "StopResult",
    "Supervisor",
    "request_restart",
    "request_stop",
    "run_supervised",
]
