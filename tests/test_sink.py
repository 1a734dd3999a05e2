"""Tests for CsvRecordSink."""

import csv
import multiprocessing

import pytest

from procusage.errors import SinkError
from procusage.models import UsageRecord
from procusage.sink import CsvRecordSink

HEADER = "pid,start,nice,real,utime,stime,cutime,cstime,rchar,wchar,syscr,syscw,iowait,cmdline"


def make_record(pid: int = 1234, cmdline: str = "python3 script.py") -> UsageRecord:
    return UsageRecord(
        pid=pid,
        start="2015-03-02T10:11:12+01:00",
        nice=0,
        real=12344.67,
        utime=2.5,
        stime=0.5,
        cutime=0.1,
        cstime=0.05,
        rchar=100,
        wchar=200,
        syscr=3,
        syscw=4,
        iowait=1.5,
        cmdline=cmdline,
    )


def append_worker(path: str, pid: int, count: int) -> None:
    """Append records from a separate process."""
    sink = CsvRecordSink(path)
    for _ in range(count):
        sink.append(make_record(pid=pid, cmdline=f"worker {pid} " + "x" * 2000))


class TestCsvRecordSink:
    """Tests for appending to the usage log."""

    def test_header_written_once(self, tmp_path):
        """Test an empty log gets a header before the first row only."""
        path = tmp_path / "usage.csv"
        sink = CsvRecordSink(str(path))

        sink.append(make_record(pid=1))
        sink.append(make_record(pid=2))

        lines = path.read_text().splitlines()
        assert lines[0] == HEADER
        assert len(lines) == 3
        assert lines[1].startswith("1,2015-03-02T10:11:12+01:00,0,12344.67,2.5,0.5,0.1,0.05,")

    def test_existing_file_gets_no_header(self, tmp_path):
        """Test rows are appended after existing content."""
        path = tmp_path / "usage.csv"
        path.write_text(HEADER + "\n")

        CsvRecordSink(str(path)).append(make_record())

        lines = path.read_text().splitlines()
        assert lines.count(HEADER) == 1
        assert len(lines) == 2

    def test_rows_end_with_newline(self, tmp_path):
        """Test rows use bare newlines like rows already in the log."""
        path = tmp_path / "usage.csv"
        path.write_bytes((HEADER + "\n").encode())
        CsvRecordSink(str(path)).append(make_record())

        content = path.read_bytes()
        assert b"\r" not in content
        assert content.count(b"\n") == 2

    def test_command_line_is_quoted(self, tmp_path):
        """Test commas and quotes in the command line survive."""
        path = tmp_path / "usage.csv"
        sink = CsvRecordSink(str(path))
        sink.append(make_record(cmdline='php -r "echo 1, 2;"'))

        with open(path, newline="") as f:
            rows = list(csv.DictReader(f))
        assert rows[0]["cmdline"] == 'php -r "echo 1, 2;"'

    def test_unopenable_log(self, tmp_path):
        """Test a missing directory is a sink error."""
        sink = CsvRecordSink(str(tmp_path / "missing" / "usage.csv"))
        with pytest.raises(SinkError):
            sink.append(make_record())

    def test_read_records(self, tmp_path):
        """Test appended records can be read back."""
        sink = CsvRecordSink(str(tmp_path / "usage.csv"))
        sink.append(make_record(pid=1))
        sink.append(make_record(pid=2))

        records = sink.read_records()
        assert [record.pid for record in records] == [1, 2]
        assert records[0] == make_record(pid=1)

    def test_read_missing_log(self, tmp_path):
        """Test a log that does not exist yet is empty."""
        assert CsvRecordSink(str(tmp_path / "usage.csv")).read_records() == []

    def test_read_skips_malformed_rows(self, tmp_path):
        """Test rows that do not parse are skipped."""
        path = tmp_path / "usage.csv"
        sink = CsvRecordSink(str(path))
        sink.append(make_record(pid=1))
        with open(path, "a") as f:
            f.write("not,a,record\n")
        sink.append(make_record(pid=3))

        assert [record.pid for record in sink.read_records()] == [1, 3]


class TestConcurrentAppend:
    """Many processes appending to the same log."""

    def test_no_interleaved_rows(self, tmp_path):
        """Test N writers produce one header and N intact rows."""
        path = str(tmp_path / "usage.csv")
        num_processes = 16
        per_process = 5

        processes = [
            multiprocessing.Process(target=append_worker, args=(path, pid, per_process))
            for pid in range(1, num_processes + 1)
        ]
        for p in processes:
            p.start()
        for p in processes:
            p.join(timeout=30.0)
            assert p.exitcode == 0

        with open(path, newline="") as f:
            rows = list(csv.reader(f))

        assert rows[0] == HEADER.split(",")
        assert len(rows) == num_processes * per_process + 1
        for row in rows[1:]:
            assert len(row) == len(UsageRecord.field_names())
            assert row[-1] == f"worker {row[0]} " + "x" * 2000
