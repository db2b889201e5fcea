"""Database instance wrapper, scraper base class and value parsing helpers."""

from __future__ import annotations

import abc
import calendar
import re
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Iterator

from .metrics import Desc, Metric, build_fq_name

NAMESPACE = "mysql"
INFORMATION_SCHEMA = "info_schema"
PICO_SECONDS = 1e12
USERSTAT_CHECK_QUERY = (
    "SHOW GLOBAL VARIABLES WHERE Variable_Name='userstat'\n"
    "\t\tOR Variable_Name='userstat_running'"
)

_LOG_RE = re.compile(r".+\.(\d+)\Z")
_STAMP_RE = re.compile(
    r"([A-Za-z]{3}) {1,2}(\d{1,2}) (\d{1,2}):(\d{2}):(\d{2})(?:[.,]\d+)? (\d{4}) [A-Z]{3,5}",
    re.ASCII,
)
_DATETIME_RE = re.compile(
    r"(\d{4})-(\d{2})-(\d{2}) (\d{1,2}):(\d{2}):(\d{2})(?:[.,]\d+)?", re.ASCII
)
_MONTHS = {
    name: number
    for number, name in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"),
        start=1,
    )
}
_STATUS_WORDS = {
    "yes": 1.0,
    "on": 1.0,
    "no": 0.0,
    "off": 0.0,
    "disabled": 0.0,
    "connecting": 0.0,
    "primary": 1.0,
    "non-primary": 0.0,
    "disconnected": 0.0,
}


class Flavor(Enum):
    """Server distribution."""

    MYSQL = "mysql"
    MARIADB = "mariadb"


class Instance:
    """A connected server: a DB-API connection plus what is known about the server."""

    def __init__(
        self,
        connection: Any,
        flavor: Flavor = Flavor.MYSQL,
        version: tuple[int, int, int] = (0, 0, 0),
    ) -> None:
        self.connection = connection
        self.flavor = flavor
        self.version = tuple(version)

    @property
    def version_major_minor(self) -> float:
        return float(f"{self.version[0]}.{self.version[1]}")

    def query_with_columns(self, sql: str) -> tuple[list[str], list[tuple]]:
        """Run a query and return its column names and all rows."""
        cursor = self.connection.cursor()
        try:
            cursor.execute(sql)
            columns = [column[0] for column in cursor.description or ()]
            rows = [tuple(row) for row in cursor.fetchall()]
        finally:
            cursor.close()
        return columns, rows

    def query(self, sql: str) -> list[tuple]:
        """Run a query and return all rows."""
        return self.query_with_columns(sql)[1]

    def close(self) -> None:
        self.connection.close()

    def __enter__(self) -> Instance:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class Scraper(abc.ABC):
    """One source of metrics on a server."""

    name: ClassVar[str]
    help: ClassVar[str]
    version: ClassVar[float]

    @abc.abstractmethod
    def scrape(self, instance: Instance) -> Iterator[Metric]:
        """Yield the metrics read from the instance."""


def _text(data: Any) -> str:
    if data is None:
        return ""
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data).decode("utf-8", errors="replace")
    return str(data)


def _parse_float(text: str) -> float | None:
    if not text or text != text.strip() or "_" in text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    if value in (float("inf"), float("-inf")):
        if text.lstrip("+-").lower() not in ("inf", "infinity"):
            return None
    return value


def _timestamp(year: int, month: int, day: int, hour: int, minute: int, second: int) -> float | None:
    try:
        moment = datetime(year, month, day, hour, minute, second)
    except ValueError:
        return None
    return float(calendar.timegm(moment.timetuple()))


def parse_status(data: Any) -> float | None:
    """Turn a status or variable value into a number, or None when it is not one."""
    text = _text(data)
    word = _STATUS_WORDS.get(text.lower())
    if word is not None:
        return word

    match = _STAMP_RE.fullmatch(text)
    if match and match[1].lower() in _MONTHS:
        stamp = _timestamp(
            int(match[6]), _MONTHS[match[1].lower()], int(match[2]),
            int(match[3]), int(match[4]), int(match[5]),
        )
        if stamp is not None:
            return stamp

    match = _DATETIME_RE.fullmatch(text)
    if match:
        stamp = _timestamp(*(int(group) for group in match.groups()))
        if stamp is not None:
            return stamp

    match = _LOG_RE.search(text)
    if match:
        return _parse_float(match[0])
    return _parse_float(text)


def parse_privilege(data: Any) -> float | None:
    """Map a privilege flag 'Y'/'N' to 1/0, anything else to None."""
    text = _text(data)
    if text == "Y":
        return 1.0
    if text == "N":
        return 0.0
    return None


def new_desc(subsystem: str, name: str, help: str) -> Desc:
    """Descriptor without labels in the exporter namespace."""
    return Desc(build_fq_name(NAMESPACE, subsystem, name), help)