import io

from rich.console import Console

from relaunch.terminal import CLEAR_SCROLLBACK
from relaunch.terminal import Terminal


def make_terminal(is_terminal: bool) -> tuple[Terminal, io.StringIO]:
    buffer = io.StringIO()
    console = Console(file=buffer, force_terminal=is_terminal, width=80, color_system=None)
    return Terminal(console), buffer


def test_announcements_mention_command_and_status():
    terminal, buffer = make_terminal(False)
    terminal.announce_start("make watch")
    terminal.announce_finish("make watch", 2)
    terminal.announce_finish("make watch", -15)
    terminal.announce_finish("make watch", 0)
    output = buffer.getvalue()
    assert "make watch" in output
    assert "exited with code 2" in output
    assert "killed by signal 15" in output
    assert "finished" in output


def test_no_escape_sequences_when_not_a_terminal():
    terminal, buffer = make_terminal(False)
    terminal.set_title("demo")
    terminal.clear()
    assert buffer.getvalue() == ""


def test_clear_wipes_scrollback_on_terminal():
    terminal, buffer = make_terminal(True)
    terminal.clear()
    assert CLEAR_SCROLLBACK in buffer.getvalue()
