"""Data models for procusage."""

from collections.abc import Iterator, Mapping
from dataclasses import astuple, dataclass, fields

StatValue = int | str
SchedValue = int | float

# One entry per line of /proc/<pid>/io
ProcessIoCounters = dict[str, int]

# Integral counters stay int, fractional ones (milliseconds) are float
ProcessSchedStats = dict[str, SchedValue]


@dataclass(slots=True, frozen=True)
class ProcessStatus(Mapping[str, StatValue]):
    """
    Positional fields of /proc/<pid>/stat, keyed by name.

    Only the fields the running kernel printed are present, so the number of
    entries varies between kernel versions.
    """

    values: dict[str, StatValue]

    def __getitem__(self, key: str) -> StatValue:
        return self.values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)

    @property
    def field_count(self) -> int:
        """Number of positional fields that were parsed."""
        return len(self.values)


@dataclass(slots=True, frozen=True)
class UsageRecord:
    """Resource usage of one process execution, one row of the usage log."""

    pid: int
    start: str  # ISO-8601
    nice: int
    real: float  # Seconds since the process started
    utime: float
    stime: float
    cutime: float
    cstime: float
    rchar: int  # Bytes
    wchar: int  # Bytes
    syscr: int
    syscw: int
    iowait: float  # Seconds
    cmdline: str

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        """Column names in log order."""
        return tuple(f.name for f in fields(cls))

    def as_row(self) -> list[str]:
        """Render the record as CSV cells."""
        return [_format_cell(value) for value in astuple(self)]

    @classmethod
    def from_row(cls, row: Mapping[str, str]) -> "UsageRecord":
        """Parse a CSV row keyed by column name."""
        kwargs: dict[str, object] = {}
        for f in fields(cls):
            raw = row[f.name]
            if f.type in (int, "int"):
                kwargs[f.name] = int(raw)
            elif f.type in (float, "float"):
                kwargs[f.name] = float(raw)
            else:
                kwargs[f.name] = raw
        return cls(**kwargs)  # type: ignore[arg-type]


def _format_cell(value: object) -> str:
    if isinstance(value, float):
        return format(value, ".15g")
    return str(value)
