"""Configuration for procusage."""

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class UsageConfig:
    """Where statistics are read from and where records are written."""

    clock_ticks: int = 100  # Must match `getconf CLK_TCK`
    log_path: str = "/var/log/procusage.csv"
    proc_root: str = "/proc"
    syslog_address: str | None = "/dev/log"

    def __post_init__(self) -> None:
        if self.clock_ticks <= 0:
            raise ValueError("clock_ticks must be a positive number of ticks per second")

    @classmethod
    def for_testing(cls, proc_root: str, log_path: str) -> "UsageConfig":
        """Configuration reading a fixture tree and never touching syslog."""
        return cls(log_path=log_path, proc_root=proc_root, syslog_address=None)
