"""The on-disk PID-pair record a supervisor keeps in its directory."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# pid_t is a signed 32-bit integer on every supported platform.
PID_MAX = 2**31 - 1


class MalformedRecordError(ValueError):
    """The marker file exists but does not hold two process ids."""


@dataclass(frozen=True)
class PidPair:
    supervisor_pid: int
    child_pid: int

    def to_line(self) -> str:
        return f"{self.supervisor_pid} {self.child_pid}\n"

    @classmethod
    def from_line(cls, text: str) -> "PidPair":
        parts = text.split()
        if len(parts) != 2:
            raise MalformedRecordError(f"expected two process ids, got {text.strip()!r}")
        try:
            supervisor_pid, child_pid = (int(part) for part in parts)
        except ValueError as exc:
            raise MalformedRecordError(f"non-numeric process id in {text.strip()!r}") from exc
        if not (0 < supervisor_pid <= PID_MAX and 0 < child_pid <= PID_MAX):
            raise MalformedRecordError(f"process ids out of range in {text.strip()!r}")
        return cls(supervisor_pid=supervisor_pid, child_pid=child_pid)


def read_record(path: Path) -> PidPair | None:
    """Return the record at ``path``, or None when no supervisor claims the directory.

    Raises MalformedRecordError when the file exists but cannot be parsed.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    return PidPair.from_line(text)


def write_record(path: Path, record: PidPair) -> None:
    """Atomically replace the record at ``path``."""
    temp_path = path.with_name(f"{path.name}.tmp")
    try:
        temp_path.write_text(record.to_line(), encoding="utf-8")
        temp_path.replace(path)
    finally:
        temp_path.unlink(missing_ok=True)
    logger.debug("Recorded %s -> %s", record, path)


def remove_record(path: Path) -> bool:
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    logger.debug("Removed record %s", path)
    return True


def create_record(path: Path, record: PidPair) -> bool:
    """Create the record only if none exists. Returns False when another one is already there.

    The content is written to a private file first and hard-linked into place,
    so readers never observe a half-written record.
    """
    temp_path = path.with_name(f"{path.name}.{os.getpid()}.tmp")
    try:
        temp_path.write_text(record.to_line(), encoding="utf-8")
        os.link(temp_path, path)
    except FileExistsError:
        return False
    finally:
        temp_path.unlink(missing_ok=True)
    logger.debug("Created record %s -> %s", record, path)
    return True
