import os
import subprocess

from relaunch.process import pid_alive
from relaunch.process import wait_until_dead


def test_current_process_is_alive():
    assert pid_alive(os.getpid())


def test_exited_process_is_dead(dead_pid):
    assert pid_alive(dead_pid) is False


def test_invalid_pids_are_dead():
    assert pid_alive(0) is False
    assert pid_alive(-5) is False
    assert pid_alive(2**22 + 12345) is False


def test_unreaped_child_counts_as_dead():
    proc = subprocess.Popen(["true"])
    try:
        # Exited but not yet waited on: a zombie.
        wait_until_dead(proc.pid, interval=0.01, timeout=5)
        assert pid_alive(proc.pid) is False
    finally:
        proc.wait()


def test_wait_until_dead_gives_up_on_live_process():
    assert wait_until_dead(os.getpid(), interval=0.01, timeout=0.05) is False


def test_wait_until_dead_returns_for_dead_process(dead_pid):
    assert wait_until_dead(dead_pid, interval=0.01, timeout=1) is True


def test_pid_beyond_pid_t_is_dead():
    assert pid_alive(99999999999) is False
