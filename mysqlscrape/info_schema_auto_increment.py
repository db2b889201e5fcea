"""Auto-increment column values and their limits from information_schema."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterator

from .collector import INFORMATION_SCHEMA, NAMESPACE, Instance, Scraper
from .metrics import Desc, Metric, ValueType, build_fq_name

INFO_SCHEMA_AUTO_INCREMENT_QUERY = """
		SELECT c.table_schema, c.table_name, column_name, auto_increment,
		  pow(2, case data_type
		    when 'tinyint'   then 7
		    when 'smallint'  then 15
		    when 'mediumint' then 23
		    when 'int'       then 31
		    when 'bigint'    then 63
		    end+(column_type like '% unsigned'))-1 as max_int
		  FROM information_schema.columns c
		  STRAIGHT_JOIN information_schema.tables t ON (BINARY c.table_schema=t.table_schema AND BINARY c.table_name=t.table_name)
		  WHERE c.extra = 'auto_increment' AND t.auto_increment IS NOT NULL
		"""

AUTO_INCREMENT_DESC = Desc(
    build_fq_name(NAMESPACE, INFORMATION_SCHEMA, "auto_increment_column"),
    "The current value of an auto_increment column from information_schema.",
    ("schema", "table", "column"),
)
AUTO_INCREMENT_MAX_DESC = Desc(
    build_fq_name(NAMESPACE, INFORMATION_SCHEMA, "auto_increment_column_max"),
    "The max value of an auto_increment column from information_schema.",
    ("schema", "table", "column"),
)


def _as_str(value: Any) -> str:
    if value is None:
        raise ValueError("converting NULL to string is unsupported")
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _as_float(value: Any) -> float:
    if value is None:
        raise ValueError("converting NULL to float is unsupported")
    if isinstance(value, bool):
        raise ValueError(f"cannot convert {value!r} to a float")
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    text = _as_str(value)
    if not text or text != text.strip() or "_" in text:
        raise ValueError(f"cannot parse {text!r} as a number")
    return float(text)


class ScrapeAutoIncrementColumns(Scraper):
    """Collects the current and maximum value of every auto_increment column."""

    name = "auto_increment.columns"
    help = "Collect auto_increment columns and max values from information_schema"
    version = 5.1

    def scrape(self, instance: Instance) -> Iterator[Metric]:
        for row in instance.query(INFO_SCHEMA_AUTO_INCREMENT_QUERY):
            if len(row) != 5:
                raise ValueError(f"expected 5 columns, got {len(row)}")
            schema, table, column = (_as_str(item) for item in row[:3])
            value = _as_float(row[3])
            maximum = _as_float(row[4])
            yield AUTO_INCREMENT_DESC.metric(ValueType.GAUGE, value, schema, table, column)
            yield AUTO_INCREMENT_MAX_DESC.metric(ValueType.GAUGE, maximum, schema, table, column)