"""Binary log sizes from SHOW BINARY LOGS."""

from __future__ import annotations

import re
from typing import Any, Iterator

from .collector import NAMESPACE, Instance, Scraper
from .metrics import Desc, Metric, ValueType, build_fq_name

SUBSYSTEM = "binlog"
LOGBIN_QUERY = "SELECT @@log_bin"
BINLOG_QUERY = "SHOW BINARY LOGS"

BINLOG_SIZE_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "size_bytes"),
    "Combined size of all registered binlog files.",
)
BINLOG_FILES_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "files"),
    "Number of registered binlog files.",
)
BINLOG_FILE_NUMBER_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "file_number"),
    "The last binlog file number.",
)

_DIGITS = re.compile(r"\d+", re.ASCII)


def _as_str(value: Any) -> str:
    if value is None:
        raise ValueError("converting NULL to string is unsupported")
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _as_uint(value: Any, limit: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        number = value
    else:
        text = _as_str(value)
        if not _DIGITS.fullmatch(text):
            raise ValueError(f"cannot convert {text!r} to an unsigned integer")
        number = int(text)
    if not 0 <= number < limit:
        raise ValueError(f"value {number} out of range")
    return number


class ScrapeBinlogSize(Scraper):
    """Collects the combined size and count of the binary logs."""

    name = "binlog_size"
    help = "Collect the current size of all registered binlog files"
    version = 5.1

    def scrape(self, instance: Instance) -> Iterator[Metric]:
        rows = instance.query(LOGBIN_QUERY)
        if not rows:
            raise LookupError(f"no rows returned by {LOGBIN_QUERY!r}")
        # SHOW BINARY LOGS fails on a server with binary logging off.
        if _as_uint(rows[0][0], 1 << 8) == 0:
            return

        columns, log_rows = instance.query_with_columns(BINLOG_QUERY)
        size = 0
        count = 0
        filename = ""
        for row in log_rows:
            if len(columns) not in (2, 3):
                raise ValueError(f"invalid number of columns: {len(columns)}")
            try:
                filename = _as_str(row[0])
                filesize = _as_uint(row[1], 1 << 64)
                if len(columns) == 3:
                    _as_str(row[2])
            except (ValueError, IndexError):
                return
            size += filesize
            count += 1

        yield BINLOG_SIZE_DESC.metric(ValueType.GAUGE, size)
        yield BINLOG_FILES_DESC.metric(ValueType.GAUGE, count)

        parts = filename.split(".")
        if len(parts) < 2:
            raise ValueError(f"binlog file name has no number: {filename!r}")
        try:
            number = float(parts[1])
        except ValueError:
            number = 0.0
        yield BINLOG_FILE_NUMBER_DESC.metric(ValueType.GAUGE, number)