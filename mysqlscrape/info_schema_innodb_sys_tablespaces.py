"""Tablespace sizes from information_schema.innodb_(sys_)tablespaces."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterator

from .collector import INFORMATION_SCHEMA, NAMESPACE, Flavor, Instance, Scraper
from .metrics import Desc, Metric, ValueType, build_fq_name

INNODB_TABLESPACES_TABLENAME_QUERY = """
	SELECT
	    table_name
	  FROM information_schema.tables
	  WHERE table_name = 'INNODB_SYS_TABLESPACES'
	    OR table_name = 'INNODB_TABLESPACES'
	"""

INNODB_TABLESPACES_QUERY_MYSQL = """
	SELECT
	    SPACE,
	    NAME,
	    ifnull((SELECT column_name
			FROM information_schema.COLUMNS
			WHERE TABLE_SCHEMA = 'information_schema'
			  AND TABLE_NAME = '{table}'
			  AND COLUMN_NAME = 'FILE_FORMAT' LIMIT 1), 'NONE') as FILE_FORMAT,
	    ifnull(ROW_FORMAT, 'NONE') as ROW_FORMAT,
	    ifnull(SPACE_TYPE, 'NONE') as SPACE_TYPE,
	    FILE_SIZE,
	    ALLOCATED_SIZE
	  FROM information_schema.`{table}`"""

# MariaDB 10.5 dropped the SPACE_TYPE column.
INNODB_TABLESPACES_QUERY_MARIADB = """
	SELECT
	    SPACE,
	    NAME,
	    ifnull((SELECT column_name
			FROM information_schema.COLUMNS
			WHERE TABLE_SCHEMA = 'information_schema'
			  AND TABLE_NAME = '{table}'
			  AND COLUMN_NAME = 'FILE_FORMAT' LIMIT 1), 'NONE') as FILE_FORMAT,
	    ifnull(ROW_FORMAT, 'NONE') as ROW_FORMAT,
	    FILE_SIZE,
	    ALLOCATED_SIZE
	  FROM information_schema.`{table}`"""

TABLESPACE_INFO_DESC = Desc(
    build_fq_name(NAMESPACE, INFORMATION_SCHEMA, "innodb_tablespace_space_info"),
    "The Tablespace information and Space ID.",
    ("tablespace_name", "file_format", "row_format", "space_type"),
)
TABLESPACE_FILE_SIZE_DESC = Desc(
    build_fq_name(NAMESPACE, INFORMATION_SCHEMA, "innodb_tablespace_file_size_bytes"),
    "The apparent size of the file, which represents the maximum size of the file, uncompressed.",
    ("tablespace_name",),
)
TABLESPACE_ALLOCATED_SIZE_DESC = Desc(
    build_fq_name(NAMESPACE, INFORMATION_SCHEMA, "innodb_tablespace_allocated_size_bytes"),
    "The actual size of the file, which is the amount of space allocated on disk.",
    ("tablespace_name",),
)

_TABLE_NAMES = frozenset({"INNODB_SYS_TABLESPACES", "INNODB_TABLESPACES"})
_MARIADB_WITHOUT_SPACE_TYPE = (10, 5, 0)


def _as_str(value: Any) -> str:
    if value is None:
        raise ValueError("converting NULL to string is unsupported")
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _as_uint(value: Any, limit: int) -> int:
    if isinstance(value, bool):
        raise ValueError(f"cannot convert {value!r} to an unsigned integer")
    if isinstance(value, int):
        number = value
    elif isinstance(value, Decimal) and value == value.to_integral_value():
        number = int(value)
    else:
        text = _as_str(value)
        if not text.isascii() or not text.isdigit():
            raise ValueError(f"cannot convert {text!r} to an unsigned integer")
        number = int(text)
    if not 0 <= number < limit:
        raise ValueError(f"value {number} out of range")
    return number


def _without_space_type(instance: Instance) -> bool:
    return (
        instance.flavor is Flavor.MARIADB
        and tuple(instance.version) >= _MARIADB_WITHOUT_SPACE_TYPE
    )


def _tablespaces_table(instance: Instance) -> str:
    rows = instance.query(INNODB_TABLESPACES_TABLENAME_QUERY)
    if not rows:
        raise LookupError("no rows in result set")
    name = _as_str(rows[0][0])
    if name not in _TABLE_NAMES:
        raise LookupError(
            "Couldn't find INNODB_SYS_TABLESPACES or INNODB_TABLESPACES in information_schema."
        )
    return name


class ScrapeInfoSchemaInnodbTablespaces(Scraper):
    """Collects space id, file size and allocated size of every InnoDB tablespace."""

    name = INFORMATION_SCHEMA + ".innodb_tablespaces"
    help = "Collect metrics from information_schema.innodb_sys_tablespaces"
    version = 5.7

    def scrape(self, instance: Instance) -> Iterator[Metric]:
        table = _tablespaces_table(instance)
        no_space_type = _without_space_type(instance)
        template = (
            INNODB_TABLESPACES_QUERY_MARIADB if no_space_type else INNODB_TABLESPACES_QUERY_MYSQL
        )

        space_type = ""
        expected = 6 if no_space_type else 7
        for row in instance.query(template.format(table=table)):
            if len(row) != expected:
                raise ValueError(f"expected {expected} columns, got {len(row)}")
            if no_space_type:
                raw_space, raw_name, raw_file_format, raw_row_format, raw_size, raw_alloc = row
            else:
                (raw_space, raw_name, raw_file_format, raw_row_format,
                 raw_space_type, raw_size, raw_alloc) = row
                space_type = _as_str(raw_space_type)
            space = _as_uint(raw_space, 1 << 32)
            table_name = _as_str(raw_name)
            file_format = _as_str(raw_file_format)
            row_format = _as_str(raw_row_format)
            file_size = _as_uint(raw_size, 1 << 64)
            allocated_size = _as_uint(raw_alloc, 1 << 64)

            yield TABLESPACE_INFO_DESC.metric(
                ValueType.GAUGE, space, table_name, file_format, row_format, space_type
            )
            yield TABLESPACE_FILE_SIZE_DESC.metric(ValueType.GAUGE, file_size, table_name)
            yield TABLESPACE_ALLOCATED_SIZE_DESC.metric(
                ValueType.GAUGE, allocated_size, table_name
            )