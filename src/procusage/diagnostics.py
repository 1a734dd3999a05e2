"""Diagnostic channel for procusage.

Failures are reported to the system log and nowhere else, so a measured
program never sees extra output on stderr.
"""

import logging
import logging.handlers
import os

LOGGER_NAME = "procusage"

logging.getLogger(LOGGER_NAME).addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    """Logger for a procusage module, below the package logger."""
    return logging.getLogger(name)


class QuietSysLogHandler(logging.handlers.SysLogHandler):
    """SysLogHandler that drops records it cannot deliver."""

    def handleError(self, record: logging.LogRecord) -> None:
        # The syslog daemon may go away after we connected
        pass

    @property
    def connected(self) -> bool:
        """Whether the socket to the syslog daemon is open."""
        return self.socket is not None and self.socket.fileno() != -1


def configure_syslog(address: str | None = "/dev/log") -> bool:
    """
    Route procusage diagnostics to syslog.

    Args:
        address: Path of the syslog socket. None leaves diagnostics discarded.

    Returns:
        True if a syslog handler is attached.
    """
    package_logger = logging.getLogger(LOGGER_NAME)
    package_logger.propagate = False

    for handler in list(package_logger.handlers):
        if isinstance(handler, logging.handlers.SysLogHandler):
            return True

    if address is None:
        return False

    try:
        handler = QuietSysLogHandler(
            address=address,
            facility=logging.handlers.SysLogHandler.LOG_USER,
        )
    except OSError:
        return False

    # Python 3.11+ keeps a closed socket instead of raising
    if not handler.connected:
        handler.close()
        return False

    handler.ident = f"{LOGGER_NAME}[{os.getpid()}]: "
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.INFO)
    return True
