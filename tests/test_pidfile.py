import pytest

from relaunch.pidfile import MalformedRecordError
from relaunch.pidfile import PidPair
from relaunch.pidfile import create_record
from relaunch.pidfile import read_record
from relaunch.pidfile import remove_record
from relaunch.pidfile import write_record


def test_missing_record_reads_as_none(tmp_path):
    assert read_record(tmp_path / ".relaunch.pid") is None


def test_write_then_read(tmp_path):
    path = tmp_path / ".relaunch.pid"
    write_record(path, PidPair(100, 200))
    assert path.read_text() == "100 200\n"
    assert read_record(path) == PidPair(supervisor_pid=100, child_pid=200)
    assert not (tmp_path / ".relaunch.pid.tmp").exists()


def test_write_overwrites_previous_pair(tmp_path):
    path = tmp_path / ".relaunch.pid"
    write_record(path, PidPair(100, 200))
    write_record(path, PidPair(100, 201))
    assert read_record(path).child_pid == 201


def test_tolerates_extra_whitespace(tmp_path):
    path = tmp_path / ".relaunch.pid"
    path.write_text("  42\t43  \n\n")
    assert read_record(path) == PidPair(42, 43)


@pytest.mark.parametrize("content", ["", "12", "12 13 14", "abc 12", "0 5", "12 99999999999"])
def test_malformed_record(tmp_path, content):
    path = tmp_path / ".relaunch.pid"
    path.write_text(content)
    with pytest.raises(MalformedRecordError):
        read_record(path)


def test_remove_record(tmp_path):
    path = tmp_path / ".relaunch.pid"
    write_record(path, PidPair(1, 2))
    assert remove_record(path) is True
    assert remove_record(path) is False
    assert read_record(path) is None


def test_create_record_is_exclusive(tmp_path):
    path = tmp_path / ".relaunch.pid"
    assert create_record(path, PidPair(10, 10)) is True
    assert create_record(path, PidPair(20, 20)) is False
    assert read_record(path) == PidPair(10, 10)
    assert sorted(p.name for p in tmp_path.iterdir()) == [".relaunch.pid"]
