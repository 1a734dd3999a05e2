"""Combines the /proc readers into a single usage record."""

import time
from collections.abc import Callable
from datetime import datetime
from typing import TypeVar

from procusage.config import UsageConfig
from procusage.diagnostics import get_logger
from procusage.errors import AggregationError, ProcUsageError
from procusage.models import UsageRecord
from procusage.procfs import (
    SELF,
    CommandLineReader,
    ProcessIoReader,
    ProcessSchedReader,
    ProcessStatReader,
    UptimeReader,
)

logger = get_logger(__name__)

T = TypeVar("T")

IO_COUNTERS = ("rchar", "wchar", "syscr", "syscw")
IOWAIT_KEY = "iowait_sum"


class StatsAggregator:
    """
    Calculates the resource usage of a process from /proc.

    Every source is read before anything is derived. If any of them fails the
    whole measurement is dropped; a record is never built from partial data.
    """

    def __init__(
        self,
        config: UsageConfig | None = None,
        clock: Callable[[], float] = time.time,
        *,
        uptime_reader: UptimeReader | None = None,
        stat_reader: ProcessStatReader | None = None,
        io_reader: ProcessIoReader | None = None,
        sched_reader: ProcessSchedReader | None = None,
        cmdline_reader: CommandLineReader | None = None,
    ) -> None:
        """
        Initialize the StatsAggregator.

        Args:
            config: Clock ticks and the /proc root to read from.
            clock: Returns the current wall clock time in seconds.
            uptime_reader, stat_reader, io_reader, sched_reader, cmdline_reader:
                Replacement readers, built from config.proc_root when omitted.
        """
        self._config = config or UsageConfig()
        self._clock = clock
        root = self._config.proc_root
        self._uptime_reader = uptime_reader or UptimeReader(root)
        self._stat_reader = stat_reader or ProcessStatReader(root)
        self._io_reader = io_reader or ProcessIoReader(root)
        self._sched_reader = sched_reader or ProcessSchedReader(root)
        self._cmdline_reader = cmdline_reader or CommandLineReader(root)

    @property
    def clock_ticks(self) -> int:
        """Clock ticks per second used to convert tick counters."""
        return self._config.clock_ticks

    def calculate(self, pid: int = SELF) -> UsageRecord:
        """
        Build the usage record for pid (0 for the calling process).

        Raises:
            AggregationError: If any source could not be read or lacks a
                required value.
        """
        failures: dict[str, Exception] = {}

        def attempt(name: str, read: Callable[[], T]) -> T | None:
            try:
                return read()
            except ProcUsageError as exc:
                logger.warning("Reading %s failed (%s): %s", name, type(exc).__name__, exc)
                failures[name] = exc
                return None

        uptime = attempt("uptime", self._uptime_reader.read)
        cmdline = attempt("cmdline", lambda: self._cmdline_reader.read(pid))
        stat = attempt("stat", lambda: self._stat_reader.read(pid))
        io = attempt("io", lambda: self._io_reader.read(pid))
        sched = attempt("sched", lambda: self._sched_reader.read(pid))

        if uptime is None or cmdline is None or stat is None or io is None or sched is None:
            raise AggregationError(
                f"Failed to acquire statistics for pid {pid}: {', '.join(failures)}",
                failures,
            )

        missing = [key for key in IO_COUNTERS if key not in io]
        if IOWAIT_KEY not in sched:
            missing.append(IOWAIT_KEY)
        if missing:
            logger.warning("Statistics missing for pid %d: %s", pid, ", ".join(missing))
            raise AggregationError(
                f"Missing statistics for pid {pid}: {', '.join(missing)}",
                {key: KeyError(key) for key in missing},
            )

        ticks = self._config.clock_ticks
        real = uptime - int(stat["starttime"]) / ticks
        started = datetime.fromtimestamp(self._clock() - real).astimezone()

        return UsageRecord(
            pid=int(stat["pid"]),
            start=started.isoformat(timespec="seconds"),
            nice=int(stat["nice"]),
            real=real,
            utime=int(stat["utime"]) / ticks,
            stime=int(stat["stime"]) / ticks,
            cutime=int(stat["cutime"]) / ticks,
            cstime=int(stat["cstime"]) / ticks,
            rchar=io["rchar"],
            wchar=io["wchar"],
            syscr=io["syscr"],
            syscw=io["syscw"],
            iowait=sched[IOWAIT_KEY] / 1000.0,
            cmdline=cmdline,
        )
