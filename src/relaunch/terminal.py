"""Terminal cosmetics: start/finish notices, window title, scrollback clearing."""
from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import Any

from rich.console import Console
from rich.markup import escape

CLEAR_SCROLLBACK = "\x1b[3J"


class Terminal:
    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def announce_start(self, command: str) -> None:
        self.console.rule(f"[bold cyan]▶ {escape(command)}", align="left")

    def announce_finish(self, command: str, exit_code: int) -> None:
        if exit_code == 0:
            status = "[green]finished[/green]"
        elif exit_code < 0:
            status = f"[red]killed by signal {-exit_code}[/red]"
        else:
            status = f"[red]exited with code {exit_code}[/red]"
        self.console.rule(f"[bold]■ {escape(command)}[/bold] {status}", align="left")

    def set_title(self, text: str) -> None:
        if self.console.is_terminal:
            self.console.set_window_title(text)

    def clear_title(self) -> None:
        self.set_title("")

    def clear(self) -> None:
        if not self.console.is_terminal:
            return
        self.console.clear()
        self.console.file.write(CLEAR_SCROLLBACK)
        self.console.file.flush()


@dataclass
class RecordingTerminal(Terminal):
    """Test double that records every call instead of writing escape sequences."""

    calls: list[tuple[str, Any]] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__init__(Console(quiet=True))

    def announce_start(self, command: str) -> None:
        self.calls.append(("start", command))

    def announce_finish(self, command: str, exit_code: int) -> None:
        self.calls.append(("finish", (command, exit_code)))

    def set_title(self, text: str) -> None:
        self.calls.append(("title", text))

    def clear(self) -> None:
        self.calls.append(("clear", None))

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]
