import pytest

from mysqlscrape.collector import Instance, Scraper
from mysqlscrape.exporter import (
    SESSION_SETTINGS_PARAM,
    Exporter,
    build_dsn,
    target_from_dsn,
)
from mysqlscrape.global_status import GLOBAL_STATUS_QUERY, ScrapeGlobalStatus
from mysqlscrape.metrics import Desc, ValueType

DSN = "root@/mysql"


class _Cursor:
    def __init__(self, connection):
        self._connection = connection
        self.description = None
        self._rows = []

    def execute(self, sql):
        columns, rows = self._connection.results[sql]
        self.description = [(name,) for name in columns]
        self._rows = list(rows)

    def fetchall(self):
        return self._rows

    def close(self):
        pass


class _Connection:
    def __init__(self, results=None, ping_error=None):
        self.results = results or {}
        self.ping_error = ping_error
        self.closed = False

    def cursor(self):
        return _Cursor(self)

    def ping(self):
        if self.ping_error is not None:
            raise self.ping_error

    def close(self):
        self.closed = True


class _FixedScraper(Scraper):
    name = "fixed"
    help = "Fixed value"
    version = 5.1

    def scrape(self, instance):
        yield Desc("mysql_test_value", "A test value.").metric(ValueType.GAUGE, 42)


class _FailingScraper(Scraper):
    name = "failing"
    help = "Always fails"
    version = 5.1

    def scrape(self, instance):
        yield Desc("mysql_test_partial", "Partial value.").metric(ValueType.GAUGE, 7)
        raise RuntimeError("boom")


class _FutureScraper(Scraper):
    name = "future"
    help = "Needs a newer server"
    version = 99.0

    def scrape(self, instance):
        yield Desc("mysql_test_future", "Never produced.").metric(ValueType.GAUGE, 1)


def _by_name(metrics, name):
    return [m for m in metrics if m.name == name]


def test_build_dsn_appends_timeout():
    assert build_dsn("root@/mysql", 2, False) == "root@/mysql?lock_wait_timeout=2"


def test_build_dsn_extends_existing_params_and_slow_filter():
    assert build_dsn("root@/mysql?tls=true", 5, True) == (
        "root@/mysql?tls=true&lock_wait_timeout=5&" + SESSION_SETTINGS_PARAM
    )


@pytest.mark.parametrize(
    "dsn, expected",
    [
        ("root@/mysql", "127.0.0.1:3306"),
        ("user:password@tcp(db.example.com)/x", "db.example.com:3306"),
        ("user:password@tcp(db.example.com:3307)/x?a=b", "db.example.com:3307"),
        ("user@unix(/var/run/mysqld.sock)/x", "/var/run/mysqld.sock"),
        ("user@unix/x", "/tmp/mysql.sock"),
        ("user@tcp(::1)/x", "[::1]:3306"),
        ("user@tcp([::1]:3310)/x", "[::1]:3310"),
    ],
)
def test_target_from_dsn(dsn, expected):
    assert target_from_dsn(dsn) == expected


def test_target_from_dsn_missing_slash():
    with pytest.raises(ValueError, match="missing the slash"):
        target_from_dsn("root@localhost")


def test_target_from_dsn_unterminated_address():
    with pytest.raises(ValueError, match="missing closing brace"):
        target_from_dsn("root@tcp(localhost/mysql")


def test_exporter_target_falls_back_to_empty():
    exporter = Exporter("root@tcp(localhost", [], connect=lambda dsn: None)
    assert exporter.target() == ""
    assert Exporter(DSN, [], connect=lambda dsn: None).target() == "127.0.0.1:3306"


def test_describe_lists_exporter_metrics():
    exporter = Exporter(DSN, [], connect=lambda dsn: None)
    assert [d.fq_name for d in exporter.describe()] == [
        "mysql_up",
        "mysql_exporter_collector_duration_seconds",
        "mysql_exporter_collector_success",
    ]


def test_collect_with_global_status_reports_up():
    connection = _Connection({GLOBAL_STATUS_QUERY: (["Variable_name", "Value"], [("Uptime", "10")])})
    seen_dsns = []

    def connect(dsn):
        seen_dsns.append(dsn)
        return Instance(connection, version=(8, 0, 30))

    metrics = list(Exporter(DSN, [ScrapeGlobalStatus()], connect=connect).collect())

    assert seen_dsns == ["root@/mysql?lock_wait_timeout=2"]
    assert metrics[-1].name == "mysql_up"
    assert metrics[-1].value == 1
    uptime = _by_name(metrics, "mysql_global_status_uptime")
    assert [m.value for m in uptime] == [10]
    success = _by_name(metrics, "mysql_exporter_collector_success")
    assert [(m.labels, m.value) for m in success] == [
        ({"collector": "collect.global_status"}, 1)
    ]
    durations = _by_name(metrics, "mysql_exporter_collector_duration_seconds")
    assert [m.labels["collector"] for m in durations] == [
        "connection",
        "collect.global_status",
    ]
    assert all(m.value >= 0 for m in durations)
    assert connection.closed


def test_failing_scraper_marks_collector_unsuccessful():
    connection = _Connection()
    exporter = Exporter(
        DSN,
        [_FailingScraper(), _FixedScraper(), _FutureScraper()],
        connect=lambda dsn: Instance(connection, version=(5, 7, 0)),
    )
    metrics = list(exporter.collect())

    success = {
        m.labels["collector"]: m.value
        for m in _by_name(metrics, "mysql_exporter_collector_success")
    }
    assert success == {"collect.failing": 0, "collect.fixed": 1}
    assert [m.value for m in _by_name(metrics, "mysql_test_partial")] == [7]
    assert [m.value for m in _by_name(metrics, "mysql_test_value")] == [42]
    assert _by_name(metrics, "mysql_test_future") == []
    assert metrics[-1].name == "mysql_up" and metrics[-1].value == 1


def test_connection_failure_reports_down():
    def connect(dsn):
        raise ConnectionError("refused")

    metrics = list(Exporter(DSN, [_FixedScraper()], connect=connect).collect())
    assert [(m.name, m.value) for m in metrics] == [("mysql_up", 0)]


def test_ping_failure_reports_down_and_closes():
    connection = _Connection(ping_error=OSError("gone"))
    exporter = Exporter(
        DSN, [_FixedScraper()], connect=lambda dsn: Instance(connection, version=(8, 0, 0))
    )
    metrics = list(exporter.collect())
    assert [(m.name, m.value) for m in metrics] == [("mysql_up", 0)]
    assert connection.closed