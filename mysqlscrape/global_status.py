"""Server status counters from SHOW GLOBAL STATUS."""

from __future__ import annotations

import re
from typing import Any, Iterator

from .collector import NAMESPACE, Instance, Scraper, new_desc, parse_status
from .metrics import Desc, Metric, ValueType, build_fq_name

SUBSYSTEM = "global_status"
GLOBAL_STATUS_QUERY = "SHOW GLOBAL STATUS"

_GLOBAL_STATUS_RE = re.compile(
    r"(com|handler|connection_errors|innodb_buffer_pool_pages|innodb_rows|performance_schema)_(.*)"
)
_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_]")

GLOBAL_COMMANDS_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "commands_total"),
    "Total number of executed MySQL commands.",
    ("command",),
)
GLOBAL_HANDLER_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "handlers_total"),
    "Total number of executed MySQL handlers.",
    ("handler",),
)
GLOBAL_CONNECTION_ERRORS_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "connection_errors_total"),
    "Total number of MySQL connection errors.",
    ("error",),
)
GLOBAL_BUFFER_POOL_PAGES_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "buffer_pool_pages"),
    "Innodb buffer pool pages by state.",
    ("state",),
)
GLOBAL_BUFFER_POOL_DIRTY_PAGES_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "buffer_pool_dirty_pages"),
    "Innodb buffer pool dirty pages.",
)
GLOBAL_BUFFER_POOL_PAGE_CHANGES_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "buffer_pool_page_changes_total"),
    "Innodb buffer pool page state changes.",
    ("operation",),
)
GLOBAL_INNODB_ROW_OPS_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "innodb_row_ops_total"),
    "Total number of MySQL InnoDB row operations.",
    ("operation",),
)
GLOBAL_PERFORMANCE_SCHEMA_LOST_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "performance_schema_lost_total"),
    "Total number of MySQL instrumentations that could not be loaded or created due to memory constraints.",
    ("instrumentation",),
)
GALERA_STATUS_INFO_DESC = Desc(
    build_fq_name(NAMESPACE, "galera", "status_info"),
    "PXC/Galera status information.",
    ("wsrep_local_state_uuid", "wsrep_cluster_state_uuid", "wsrep_provider_version"),
)

_EVS_LATENCY = (
    ("min_seconds", "PXC/Galera group communication latency. Min value."),
    ("avg_seconds", "PXC/Galera group communication latency. Avg value."),
    ("max_seconds", "PXC/Galera group communication latency. Max value."),
    ("stdev", "PXC/Galera group communication latency. Standard Deviation."),
    ("sample_size", "PXC/Galera group communication latency. Sample Size."),
)

_TEXT_ITEMS = (
    "wsrep_local_state_uuid",
    "wsrep_cluster_state_uuid",
    "wsrep_provider_version",
    "wsrep_evs_repl_latency",
)

_PAGE_STATES = frozenset({"data", "free", "misc", "old"})


def _as_str(value: Any) -> str:
    if value is None:
        raise ValueError("converting NULL to string is unsupported")
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _raw_text(value: Any) -> str:
    if value is None:
        return ""
    return _as_str(value)


def _metric_name(key: str) -> str:
    return _INVALID_NAME_CHARS.sub("_", key).lower()


def _strict_float(text: str) -> float | None:
    if not text or text != text.strip() or "_" in text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _grouped_metric(group: str, item: str, value: float) -> Metric | None:
    if group == "com":
        return GLOBAL_COMMANDS_DESC.metric(ValueType.COUNTER, value, item)
    if group == "handler":
        return GLOBAL_HANDLER_DESC.metric(ValueType.COUNTER, value, item)
    if group == "connection_errors":
        return GLOBAL_CONNECTION_ERRORS_DESC.metric(ValueType.COUNTER, value, item)
    if group == "innodb_buffer_pool_pages":
        if item in _PAGE_STATES:
            return GLOBAL_BUFFER_POOL_PAGES_DESC.metric(ValueType.GAUGE, value, item)
        if item == "dirty":
            return GLOBAL_BUFFER_POOL_DIRTY_PAGES_DESC.metric(ValueType.GAUGE, value)
        if item == "total":
            return None
        return GLOBAL_BUFFER_POOL_PAGE_CHANGES_DESC.metric(ValueType.COUNTER, value, item)
    if group == "innodb_rows":
        return GLOBAL_INNODB_ROW_OPS_DESC.metric(ValueType.COUNTER, value, item)
    if group == "performance_schema":
        return GLOBAL_PERFORMANCE_SCHEMA_LOST_DESC.metric(ValueType.COUNTER, value, item)
    return None


def _evs_latency(text: str) -> Iterator[Metric]:
    parts = text.split("/")
    if len(parts) != len(_EVS_LATENCY):
        return
    values = [_strict_float(part) for part in parts]
    if any(value is None for value in values):
        return
    for (name, help_text), value in zip(_EVS_LATENCY, values):
        desc = Desc(build_fq_name(NAMESPACE, "galera_evs_repl_latency", name), help_text)
        yield desc.metric(ValueType.GAUGE, value)


class ScrapeGlobalStatus(Scraper):
    """Collects every numeric global status value, grouping the well-known families."""

    name = SUBSYSTEM
    help = "Collect from SHOW GLOBAL STATUS"
    version = 5.1

    def scrape(self, instance: Instance) -> Iterator[Metric]:
        text_items = dict.fromkeys(_TEXT_ITEMS, "")

        for row in instance.query(GLOBAL_STATUS_QUERY):
            if len(row) != 2:
                raise ValueError(f"expected 2 columns, got {len(row)}")
            key = _as_str(row[0])
            raw = row[1]
            value = parse_status(raw)
            if value is None:
                # Unparsable values are skipped unless they are known text items.
                if key in text_items:
                    text_items[key] = _raw_text(raw)
                continue

            key = _metric_name(key)
            match = _GLOBAL_STATUS_RE.fullmatch(key)
            if match is None:
                desc = new_desc(SUBSYSTEM, key, "Generic metric from SHOW GLOBAL STATUS.")
                yield desc.metric(ValueType.UNTYPED, value)
                continue
            metric = _grouped_metric(match[1], match[2], value)
            if metric is not None:
                yield metric

        if text_items["wsrep_local_state_uuid"]:
            yield GALERA_STATUS_INFO_DESC.metric(
                ValueType.GAUGE,
                1,
                text_items["wsrep_local_state_uuid"],
                text_items["wsrep_cluster_state_uuid"],
                text_items["wsrep_provider_version"],
            )

        if text_items["wsrep_evs_repl_latency"]:
            yield from _evs_latency(text_items["wsrep_evs_repl_latency"])