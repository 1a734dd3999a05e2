"""
Readers for the Linux process information pseudo-filesystem.

Each reader decodes one file below /proc. Readers raise ReadError when a file
cannot be read and FormatError when its content is not in a layout they know.
"""

import os
import re

from procusage.errors import FormatError, ReadError
from procusage.models import ProcessIoCounters, ProcessSchedStats, ProcessStatus, StatValue

SELF = 0

# Layout of /proc/<pid>/stat as printed by do_task_stat() in fs/proc/array.c.
# "s" is the parenthesised command name, "c" a single character and "d" an
# integer. Trailing fields appeared over kernel releases 2.6 to 3.5.
STAT_FIELDS: tuple[tuple[str, str], ...] = (
    ("pid", "d"),
    ("comm", "s"),
    ("state", "c"),
    ("ppid", "d"),
    ("pgrp", "d"),
    ("session", "d"),
    ("tty_nr", "d"),
    ("tpgid", "d"),
    ("flags", "d"),
    ("minflt", "d"),
    ("cminflt", "d"),
    ("majflt", "d"),
    ("cmajflt", "d"),
    ("utime", "d"),
    ("stime", "d"),
    ("cutime", "d"),
    ("cstime", "d"),
    ("priority", "d"),
    ("nice", "d"),
    ("num_threads", "d"),
    ("itrealvalue", "d"),  # Zero since 2.6.17
    ("starttime", "d"),
    ("vsize", "d"),
    ("rss", "d"),
    ("rsslim", "d"),
    ("startcode", "d"),
    ("endcode", "d"),
    ("startstack", "d"),
    ("kstkesp", "d"),
    ("kstkeip", "d"),
    ("signal", "d"),
    ("blocked", "d"),
    ("sigignore", "d"),
    ("sigcatch", "d"),
    ("wchan", "d"),
    ("nswap", "d"),
    ("cnswap", "d"),
    ("exit_signal", "d"),  # 2.1.22
    ("processor", "d"),  # 2.2.8
    ("rt_priority", "d"),  # 2.5.19
    ("policy", "d"),  # 2.5.19
    ("delayacct_blkio_ticks", "d"),  # 2.6.18
    ("guest_time", "d"),  # 2.6.24
    ("cguest_time", "d"),  # 2.6.24
    ("start_data", "d"),  # 3.3
    ("end_data", "d"),  # 3.3
    ("start_brk", "d"),  # 3.3
    ("arg_start", "d"),  # 3.5
    ("arg_end", "d"),  # 3.5
    ("env_start", "d"),  # 3.5
    ("env_end", "d"),  # 3.5
    ("exit_code", "d"),  # 3.5
)

MIN_STAT_FIELDS = 42

_SCHED_LINE = re.compile(r"^\s*(?:[\w.]*\.)?(?P<key>\w+)\s+:\s+(?P<value>\d+(?:\.\d+)?)\s*$")


def _read_bytes(path: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as exc:
        raise ReadError(f"Could not read {path}: {exc.strerror or exc}", path) from exc


def _read_text(path: str) -> str:
    return _read_bytes(path).decode("utf-8", errors="replace")


class _ProcessFileReader:
    """Base for readers of a single file below /proc/<pid>/."""

    filename: str = ""

    def __init__(self, proc_root: str = "/proc") -> None:
        self._proc_root = proc_root

    def path_for(self, pid: int) -> str:
        """Path of the file for pid, where pid 0 means the calling process."""
        if pid < 0:
            raise ValueError(f"Invalid pid: {pid}")
        target = "self" if pid == SELF else str(pid)
        return os.path.join(self._proc_root, target, self.filename)


class UptimeReader:
    """Reads the number of seconds since boot from /proc/uptime."""

    def __init__(self, proc_root: str = "/proc") -> None:
        self._path = os.path.join(proc_root, "uptime")

    def read(self) -> float:
        content = _read_text(self._path)
        parts = content.split()
        if len(parts) != 2:
            raise FormatError(f"Could not understand {self._path}: {content!r}", self._path)
        try:
            uptime, _idle = (float(part) for part in parts)
        except ValueError as exc:
            raise FormatError(f"Could not understand {self._path}: {content!r}", self._path) from exc
        return uptime


class ProcessStatReader(_ProcessFileReader):
    """
    Reads /proc/<pid>/stat into a ProcessStatus.

    The record is a single line of positional fields. The command name is
    wrapped in parentheses and may itself contain spaces and parentheses, so
    it runs up to the last closing parenthesis on the line.
    """

    filename = "stat"

    def read(self, pid: int = SELF) -> ProcessStatus:
        path = self.path_for(pid)
        values = self.parse(_read_text(path), path)
        return ProcessStatus(values)

    @staticmethod
    def parse(content: str, path: str | None = None) -> dict[str, StatValue]:
        """Parse stat content, keeping only the fields actually present."""
        tokens = _split_stat(content)
        values: dict[str, StatValue] = {}

        for (name, kind), token in zip(STAT_FIELDS, tokens):
            value = _convert_stat_token(kind, token)
            if value is None:
                break
            values[name] = value

        if len(values) < MIN_STAT_FIELDS:
            raise FormatError(
                f"Could not understand the format of {path or 'stat'}: "
                f"parsed {len(values)} fields, need at least {MIN_STAT_FIELDS}",
                path,
            )
        return values


def _split_stat(content: str) -> list[str]:
    line = content.strip()
    open_paren = line.find("(")
    close_paren = line.rfind(")")
    if open_paren == -1 or close_paren < open_paren:
        return line.split()

    head = line[:open_paren].split()
    comm = line[open_paren : close_paren + 1]
    tail = line[close_paren + 1 :].split()
    return head + [comm] + tail


def _convert_stat_token(kind: str, token: str) -> StatValue | None:
    if kind == "s":
        if len(token) >= 2 and token.startswith("(") and token.endswith(")"):
            return token[1:-1]
        return None
    if kind == "c":
        return token if len(token) == 1 else None
    try:
        return int(token)
    except ValueError:
        return None


class ProcessIoReader(_ProcessFileReader):
    """Reads the I/O accounting counters from /proc/<pid>/io."""

    filename = "io"

    def read(self, pid: int = SELF) -> ProcessIoCounters:
        path = self.path_for(pid)
        content = _read_text(path)

        counters: ProcessIoCounters = {}
        for line in content.strip().splitlines():
            key, sep, value = line.partition(": ")
            if not sep:
                raise FormatError(f"Unexpected line in {path}: {line!r}", path)
            try:
                counters[key] = int(value.strip())
            except ValueError as exc:
                raise FormatError(f"Non-numeric counter in {path}: {line!r}", path) from exc
        return counters


class ProcessSchedReader(_ProcessFileReader):
    """
    Reads scheduler statistics from /proc/<pid>/sched.

    Lines look like ``se.statistics.iowait_sum : 1500.000000``. Header and
    separator lines do not match and are skipped. Values printed with a
    decimal point are returned as float, others as int.
    """

    filename = "sched"

    def read(self, pid: int = SELF) -> ProcessSchedStats:
        path = self.path_for(pid)
        content = _read_text(path)

        stats: ProcessSchedStats = {}
        for line in content.splitlines():
            match = _SCHED_LINE.match(line)
            if match is None:
                continue
            raw = match.group("value")
            stats[match.group("key")] = float(raw) if "." in raw else int(raw)
        return stats


class CommandLineReader(_ProcessFileReader):
    """
    Reads /proc/<pid>/cmdline as a space separated string.

    The result is not escaped and is only useful for logging.
    """

    filename = "cmdline"

    def read(self, pid: int = SELF) -> str:
        raw = _read_bytes(self.path_for(pid))
        args = raw.rstrip(b"\x00").split(b"\x00")
        return " ".join(arg.decode("utf-8", errors="replace") for arg in args)
