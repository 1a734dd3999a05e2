"""Exceptions raised while collecting and recording process usage."""


class ProcUsageError(RuntimeError):
    """Base class for usage collection errors."""


class ReadError(ProcUsageError):
    """Raised when a process information source cannot be read."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class FormatError(ReadError):
    """Raised when a source was read but its content is not understood."""


class AggregationError(ProcUsageError):
    """Raised when a usage record cannot be built from its sources."""

    def __init__(self, message: str, failures: dict[str, Exception] | None = None) -> None:
        super().__init__(message)
        self.failures = failures or {}


class SinkError(ProcUsageError):
    """Raised when a usage record cannot be appended to the log."""
