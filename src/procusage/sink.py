"""Append-only CSV log of usage records."""

import csv
import fcntl
import os

from procusage.diagnostics import get_logger
from procusage.errors import SinkError
from procusage.models import UsageRecord

logger = get_logger(__name__)


class CsvRecordSink:
    """
    CSV file shared by every measured process on the host.

    Appends hold an exclusive flock(2) on the file for the duration of one
    row, so concurrent writers never interleave. The header row is written by
    whichever writer finds the file empty.
    """

    def __init__(self, path: str) -> None:
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    def append(self, record: UsageRecord) -> None:
        """
        Append one record, writing the header first if the file is empty.

        Raises:
            SinkError: If the file cannot be opened or locked.
        """
        try:
            handle = open(self._path, "a", newline="", encoding="utf-8")
        except OSError as exc:
            raise SinkError(f"Could not open {self._path}: {exc}") from exc

        with handle:
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            except OSError as exc:
                raise SinkError(f"Failed to acquire lock for {self._path}: {exc}") from exc

            try:
                writer = csv.writer(handle, lineterminator="\n")
                if os.fstat(handle.fileno()).st_size == 0:
                    writer.writerow(UsageRecord.field_names())
                writer.writerow(record.as_row())
                handle.flush()
            except OSError as exc:
                raise SinkError(f"Could not write to {self._path}: {exc}") from exc
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

        logger.debug("Appended usage of pid %d to %s", record.pid, self._path)

    def read_records(self) -> list[UsageRecord]:
        """
        Read every record currently in the log.

        Rows that do not parse are skipped. A missing log is empty.

        Raises:
            SinkError: If the file exists but cannot be read.
        """
        try:
            handle = open(self._path, newline="", encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise SinkError(f"Could not open {self._path}: {exc}") from exc

        records: list[UsageRecord] = []
        with handle:
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_SH)
            except OSError as exc:
                raise SinkError(f"Failed to acquire lock for {self._path}: {exc}") from exc

            try:
                for line_number, row in enumerate(csv.DictReader(handle), start=2):
                    try:
                        records.append(UsageRecord.from_row(row))
                    except (KeyError, TypeError, ValueError):
                        logger.warning("Skipping malformed row %d in %s", line_number, self._path)
            except (OSError, csv.Error) as exc:
                raise SinkError(f"Could not read {self._path}: {exc}") from exc
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

        return records
