"""Shared fixtures: a fake /proc tree for the readers to parse."""

from pathlib import Path

import pytest

STAT_LINE = (
    "1234 (python3) S 1 1234 1234 34816 1234 4194304 1500 0 2 0 250 50 10 5 20 0 1 0 "
    "100 25000000 3000 18446744073709551615 94000000 94100000 140730000000 0 0 0 0 "
    "16781312 134234626 0 0 0 17 3 0 0 0 0 0 94200000 94210000 95000000 140730001000 "
    "140730001100 140730001100 140730002000 0\n"
)

IO_CONTENT = "rchar: 100\nwchar: 200\nsyscr: 3\nsyscw: 4\n"

SCHED_CONTENT = """\
python3 (1234, #threads: 1)
-------------------------------------------------------------------
se.exec_start                                :        255053.510047
se.vruntime                                  :            31.503358
se.sum_exec_runtime                          :             0.032232
se.nr_migrations                             :                    0
se.statistics.wait_sum                       :             2.500000
iowait_sum                                   :          1500.000000
iowait_count                                 :                    7
nr_switches                                  :                   12
policy                                       :                    0
prio                                         :                  120
clock-delta                                  :                   38
numa_preferred_nid                           :                   -1
current_node=0, numa_group_id=0
"""

CMDLINE_CONTENT = b"python3\x00-m\x00pytest\x00tests/\x00"

UPTIME_CONTENT = "12345.67 10000.00\n"


def stat_with_fields(count: int) -> str:
    """The fixture stat line cut down to its first count fields."""
    return " ".join(STAT_LINE.split()[:count]) + "\n"


class FakeProc:
    """Writes /proc style files below a temporary directory."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def write_uptime(self, content: str = UPTIME_CONTENT) -> None:
        (self.root / "uptime").write_text(content)

    def write(self, name: str, content: str | bytes, pid: str = "self") -> Path:
        directory = self.root / pid
        directory.mkdir(exist_ok=True)
        path = directory / name
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content)
        return path

    def populate(self, pid: str = "self") -> "FakeProc":
        self.write_uptime()
        self.write("stat", STAT_LINE, pid)
        self.write("io", IO_CONTENT, pid)
        self.write("sched", SCHED_CONTENT, pid)
        self.write("cmdline", CMDLINE_CONTENT, pid)
        return self

    def remove(self, name: str, pid: str = "self") -> None:
        (self.root / pid / name).unlink()


@pytest.fixture
def fake_proc(tmp_path: Path) -> FakeProc:
    """An empty fake /proc tree."""
    return FakeProc(tmp_path / "proc")


@pytest.fixture
def populated_proc(fake_proc: FakeProc) -> FakeProc:
    """A fake /proc tree with every file for the calling process."""
    return fake_proc.populate()
