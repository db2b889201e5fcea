"""Runs the scrapers against one server and adds exporter health metrics."""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterator, Sequence

from .collector import NAMESPACE, Instance, Scraper
from .metrics import Desc, Metric, ValueType, build_fq_name

SUBSYSTEM = "exporter"
SESSION_SETTINGS_PARAM = "log_slow_filter=%27tmp_table_on_disk,filesort_on_disk%27"
TIMEOUT_PARAM = "lock_wait_timeout={}"
DEFAULT_LOCK_WAIT_TIMEOUT = 2

MYSQL_UP_DESC = Desc(
    build_fq_name(NAMESPACE, "", "up"),
    "Whether the MySQL server is up.",
)
SCRAPE_COLLECTOR_SUCCESS_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "collector_success"),
    "mysqld_exporter: Whether a collector succeeded.",
    ("collector",),
)
SCRAPE_DURATION_SECONDS_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "collector_duration_seconds"),
    "Collector time duration.",
    ("collector",),
)

_DEFAULT_PORT = "3306"

logger = logging.getLogger(__name__)


def build_dsn(dsn: str, lock_wait_timeout: int, slow_log_filter: bool) -> str:
    """Append the session parameters the exporter sets on its connection."""
    params = [TIMEOUT_PARAM.format(lock_wait_timeout)]
    if slow_log_filter:
        params.append(SESSION_SETTINGS_PARAM)
    separator = "&" if "?" in dsn else "?"
    return dsn + separator + "&".join(params)


def _has_port(addr: str) -> bool:
    if addr.startswith("["):
        close = addr.find("]")
        return close != -1 and addr[close + 1:close + 2] == ":"
    return addr.count(":") == 1


def _with_port(addr: str) -> str:
    if _has_port(addr):
        return addr
    if ":" in addr:
        return f"[{addr}]:{_DEFAULT_PORT}"
    return f"{addr}:{_DEFAULT_PORT}"


def target_from_dsn(dsn: str) -> str:
    """Return the server address named by a DSN of the form
    ``[user[:password]@][net[(addr)]]/dbname[?params]``."""
    slash = dsn.rfind("/")
    if slash == -1:
        if dsn:
            raise ValueError("invalid DSN: missing the slash separating the database name")
        head = ""
    else:
        head = dsn[:slash]

    at = head.rfind("@")
    location = head[at + 1:] if at != -1 else head

    net, addr = location, ""
    paren = location.find("(")
    if paren != -1:
        if not location.endswith(")"):
            raise ValueError(
                "invalid DSN: network address not terminated (missing closing brace)"
            )
        net, addr = location[:paren], location[paren + 1:-1]

    net = net or "tcp"
    if not addr:
        if net == "tcp":
            addr = f"127.0.0.1:{_DEFAULT_PORT}"
        elif net == "unix":
            addr = "/tmp/mysql.sock"
        else:
            raise ValueError(f"default addr for network {net!r} unknown")
    elif net == "tcp":
        addr = _with_port(addr)
    return addr


def _ping(instance: Instance) -> None:
    ping = getattr(instance.connection, "ping", None)
    if callable(ping):
        ping()


class Exporter:
    """Collects MySQL metrics from one server through a set of scrapers.

    ``connect`` opens an :class:`Instance` for the final DSN. Scrapers run one
    after another on the single connection, each guarded so that a failure
    only marks that collector as unsuccessful.
    """

    def __init__(
        self,
        dsn: str,
        scrapers: Sequence[Scraper],
        connect: Callable[[str], Instance],
        lock_wait_timeout: int = DEFAULT_LOCK_WAIT_TIMEOUT,
        slow_log_filter: bool = False,
    ) -> None:
        self.dsn = build_dsn(dsn, lock_wait_timeout, slow_log_filter)
        self.scrapers = list(scrapers)
        self._connect = connect

    def describe(self) -> list[Desc]:
        """The descriptors of the metrics the exporter itself produces."""
        return [MYSQL_UP_DESC, SCRAPE_DURATION_SECONDS_DESC, SCRAPE_COLLECTOR_SUCCESS_DESC]

    def collect(self) -> Iterator[Metric]:
        """Yield all scraped metrics followed by ``mysql_up``."""
        up = yield from self._scrape()
        yield MYSQL_UP_DESC.metric(ValueType.GAUGE, up)

    def target(self) -> str:
        """Server address from the DSN, or '' when the DSN cannot be parsed."""
        try:
            return target_from_dsn(self.dsn)
        except ValueError as err:
            logger.error("Error parsing DSN: %s", err)
            return ""

    def _scrape(self) -> Iterator[Metric]:
        started = time.perf_counter()
        try:
            instance = self._connect(self.dsn)
        except Exception as err:
            logger.error("Error opening connection to database: %s", err)
            return 0.0

        try:
            try:
                _ping(instance)
            except Exception as err:
                logger.error("Error pinging mysqld: %s", err)
                return 0.0

            yield SCRAPE_DURATION_SECONDS_DESC.metric(
                ValueType.GAUGE, time.perf_counter() - started, "connection"
            )

            version = instance.version_major_minor
            for scraper in self.scrapers:
                if version < scraper.version:
                    continue
                yield from self._run_scraper(scraper, instance)
        finally:
            instance.close()
        return 1.0

    def _run_scraper(self, scraper: Scraper, instance: Instance) -> Iterator[Metric]:
        label = "collect." + scraper.name
        started = time.perf_counter()
        success = 1.0
        try:
            yield from scraper.scrape(instance)
        except Exception as err:
            logger.error(
                "Error from scraper %s (target %s): %s", scraper.name, self.target(), err
            )
            success = 0.0
        yield SCRAPE_COLLECTOR_SUCCESS_DESC.metric(ValueType.GAUGE, success, label)
        yield SCRAPE_DURATION_SECONDS_DESC.metric(
            ValueType.GAUGE, time.perf_counter() - started, label
        )