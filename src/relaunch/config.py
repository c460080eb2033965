"""Configuration loading for relaunch."""
from __future__ import annotations

import os
import signal
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel
from pydantic import Field
from pydantic import ValidationError
from pydantic import field_validator

CONFIG_FILE = ".relaunch.yaml"
MARKER_FILE = ".relaunch.pid"


def _resolve_signal(name: str) -> signal.Signals:
    candidate = name.strip().upper()
    if not candidate.startswith("SIG"):
        candidate = f"SIG{candidate}"
    try:
        return signal.Signals[candidate]
    except KeyError as exc:
        raise ValueError(f"unknown signal name: {name}") from exc


class SupervisorConfig(BaseModel):
    """Tunables shared by the supervisor and controller invocations."""

    marker_name: str = MARKER_FILE
    restart_signal: str = "SIGUSR1"
    shutdown_signals: list[str] = Field(default_factory=lambda: ["SIGTERM", "SIGINT", "SIGHUP"])
    settle_interval_ms: int = 50
    settle_timeout_ms: int = 5000
    restart_grace_ms: int = 100
    idle_command: list[str] = Field(default_factory=lambda: ["sleep", "2147483647"])
    shell: str = "/bin/sh"
    log_level: str = "INFO"

    @field_validator("restart_signal")
    @classmethod
    def _check_restart_signal(cls, value: str) -> str:
        return _resolve_signal(value).name

    @field_validator("shutdown_signals")
    @classmethod
    def _check_shutdown_signals(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("at least one shutdown signal is required")
        return [_resolve_signal(item).name for item in value]

    @field_validator("settle_interval_ms", "settle_timeout_ms", "restart_grace_ms")
    @classmethod
    def _check_positive(cls, value: int) -> int:
        if value < 0:
            raise ValueError("durations must not be negative")
        return value

    @field_validator("idle_command")
    @classmethod
    def _check_idle_command(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("idle_command must not be empty")
        return value

    @field_validator("marker_name")
    @classmethod
    def _check_marker_name(cls, value: str) -> str:
        if not value or "/" in value:
            raise ValueError("marker_name must be a plain file name")
        return value

    @property
    def restart_signum(self) -> signal.Signals:
        return signal.Signals[self.restart_signal]

    @property
    def shutdown_signums(self) -> list[signal.Signals]:
        return [signal.Signals[name] for name in self.shutdown_signals]

    def marker_path(self, directory: Path) -> Path:
        return Path(directory) / self.marker_name


def load_yaml(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle)


def load_config(directory: Path, path: Path | None = None) -> SupervisorConfig:
    """Load config from ``path`` or ``<directory>/.relaunch.yaml``, falling back to defaults."""
    source = path if path is not None else Path(directory) / CONFIG_FILE
    raw: Any = {}
    if path is not None or source.exists():
        raw = load_yaml(source) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid relaunch config at {source}: expected a mapping")

    env_level = os.getenv("RELAUNCH_LOG_LEVEL")
    if env_level:
        raw = {**raw, "log_level": env_level}

    try:
        return SupervisorConfig.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid relaunch config at {source}: {exc}") from exc
