"""Generic metrics from SHOW ENGINE TOKUDB STATUS."""

from __future__ import annotations

from typing import Any, Iterator

from .collector import Instance, Scraper, new_desc, parse_status
from .metrics import Metric, ValueType

SUBSYSTEM = "engine_tokudb"
ENGINE_TOKUDB_STATUS_QUERY = "SHOW ENGINE TOKUDB STATUS"

_REPLACEMENTS = str.maketrans(
    {
        ">": "",
        ",": "",
        ":": "",
        "(": "",
        ")": "",
        " ": "_",
        "-": "_",
        "+": "and",
        "/": "and",
    }
)


def _as_str(value: Any) -> str:
    if value is None:
        raise ValueError("converting NULL to string is unsupported")
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def sanitize_tokudb_metric(metric_name: str) -> str:
    """Turn a TokuDB status name into a metric name fragment."""
    return metric_name.translate(_REPLACEMENTS)


class ScrapeEngineTokudbStatus(Scraper):
    """Collects every numeric TokuDB status value as an untyped metric."""

    name = "engine_tokudb_status"
    help = "Collect from SHOW ENGINE TOKUDB STATUS"
    version = 5.6

    def scrape(self, instance: Instance) -> Iterator[Metric]:
        for row in instance.query(ENGINE_TOKUDB_STATUS_QUERY):
            if len(row) != 3:
                raise ValueError(f"expected 3 columns, got {len(row)}")
            _as_str(row[0])
            key = _as_str(row[1]).lower()
            value = parse_status(row[2])
            if value is not None:
                desc = new_desc(
                    SUBSYSTEM,
                    sanitize_tokudb_metric(key),
                    "Generic metric from SHOW ENGINE TOKUDB STATUS.",
                )
                yield desc.metric(ValueType.UNTYPED, value)