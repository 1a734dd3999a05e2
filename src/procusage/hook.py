"""
Process exit hook.

install() registers log_usage() with atexit so the usage of the current
process is appended to the log when the interpreter shuts down, including
after sys.exit() or an uncaught exception. Nothing runs after os._exit() or
a fatal signal.
"""

import atexit

from procusage.aggregator import StatsAggregator
from procusage.config import UsageConfig
from procusage.diagnostics import configure_syslog, get_logger
from procusage.errors import AggregationError, ProcUsageError, SinkError
from procusage.procfs import SELF
from procusage.sink import CsvRecordSink

logger = get_logger(__name__)

_installed = False


def log_usage(config: UsageConfig | None = None) -> bool:
    """
    Append the usage of the calling process to the usage log.

    Never raises; failures go to the diagnostic log only.

    Returns:
        True if a record was written.
    """
    config = config or UsageConfig()
    try:
        record = StatsAggregator(config).calculate(SELF)
        CsvRecordSink(config.log_path).append(record)
    except AggregationError as exc:
        logger.warning("Failed to acquire needed statistics: %s", exc)
        return False
    except SinkError as exc:
        logger.error("Failed to record usage: %s", exc)
        return False
    except ProcUsageError as exc:
        logger.error("Usage collection failed: %s", exc)
        return False
    except Exception:
        # Exit hooks must not disturb the host program
        logger.exception("Unexpected error while logging usage")
        return False
    return True


def install(config: UsageConfig | None = None) -> bool:
    """
    Log the usage of this process when it exits.

    Returns:
        True if the hook was registered, False if it already was.
    """
    global _installed
    if _installed:
        return False

    config = config or UsageConfig()
    configure_syslog(config.syslog_address)
    atexit.register(log_usage, config)
    _installed = True
    return True
