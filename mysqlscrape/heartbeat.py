"""Replication heartbeat timestamps read from a heartbeat table."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterator

from .collector import NAMESPACE, Instance, Scraper
from .metrics import Desc, Metric, ValueType, build_fq_name

SUBSYSTEM = "heartbeat"
HEARTBEAT_QUERY = "SELECT UNIX_TIMESTAMP(ts), UNIX_TIMESTAMP({now}), server_id from `{database}`.`{table}`"

HEARTBEAT_STORED_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "stored_timestamp_seconds"),
    "Timestamp stored in the heartbeat table.",
    ("server_id",),
)
HEARTBEAT_NOW_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "now_timestamp_seconds"),
    "Timestamp of the current server.",
    ("server_id",),
)

_INTEGER = re.compile(r"[+-]?\d+", re.ASCII)


def _raw_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _as_float(value: Any) -> float:
    text = _raw_text(value)
    if not text or text != text.strip() or "_" in text:
        raise ValueError(f"cannot parse {text!r} as a number")
    return float(text)


def _as_int(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if value is None:
        raise ValueError("converting NULL to int is unsupported")
    text = _raw_text(value)
    if not _INTEGER.fullmatch(text):
        raise ValueError(f"cannot parse {text!r} as an integer")
    return int(text)


@dataclass(frozen=True)
class ScrapeHeartbeat(Scraper):
    """Collects stored and current timestamps from a pt-heartbeat style table.

    The table needs a ``ts`` column with the stored timestamp and a
    ``server_id`` column identifying the writing server.
    """

    database: str = "heartbeat"
    table: str = "heartbeat"
    utc: bool = False

    name = "heartbeat"
    help = "Collect from heartbeat"
    version = 5.1

    def now_expr(self) -> str:
        """SQL expression for the current server time."""
        return "UTC_TIMESTAMP(6)" if self.utc else "NOW(6)"

    def query(self) -> str:
        """The query that reads the heartbeat table."""
        return HEARTBEAT_QUERY.format(
            now=self.now_expr(), database=self.database, table=self.table
        )

    def scrape(self, instance: Instance) -> Iterator[Metric]:
        for row in instance.query(self.query()):
            if len(row) != 3:
                raise ValueError(f"expected 3 columns, got {len(row)}")
            raw_ts, raw_now, raw_server_id = row
            server_id = _as_int(raw_server_id)
            stored = _as_float(raw_ts)
            now = _as_float(raw_now)
            label = str(server_id)
            yield HEARTBEAT_NOW_DESC.metric(ValueType.GAUGE, now, label)
            yield HEARTBEAT_STORED_DESC.metric(ValueType.GAUGE, stored, label)