# mysqlscrape

`mysqlscrape` turns what a MySQL-compatible server reports about itself
into Prometheus-style metrics. Each scraper runs one kind of query and
yields `mysqlscrape.metrics.Metric` objects, each carrying a descriptor
(fully qualified name, help text, label names), a value type
(`ValueType.COUNTER`, `GAUGE` or `UNTYPED`), a float value and a dict of
label values.

The package has no dependencies outside the standard library.

## Scrapers

| Class | Module | Source of data |
|-------|--------|----------------|
| `ScrapeBinlogSize` | `mysqlscrape.binlog` | `SELECT @@log_bin`, `SHOW BINARY LOGS` |
| `ScrapeEngineTokudbStatus` | `mysqlscrape.engine_tokudb` | `SHOW ENGINE TOKUDB STATUS` |
| `ScrapeGlobalStatus` | `mysqlscrape.global_status` | `SHOW GLOBAL STATUS` |
| `ScrapeHeartbeat` | `mysqlscrape.heartbeat` | a pt-heartbeat style table |
| `ScrapeAutoIncrementColumns` | `mysqlscrape.info_schema_auto_increment` | auto_increment columns in `information_schema` |
| `ScrapeClientStat` | `mysqlscrape.info_schema_clientstats` | `information_schema.client_statistics` (when `userstat` is on) |
| `ScrapeInfoSchemaInnodbTablespaces` | `mysqlscrape.info_schema_innodb_sys_tablespaces` | `INNODB_SYS_TABLESPACES` / `INNODB_TABLESPACES` |

Every scraper subclasses `mysqlscrape.collector.Scraper` and has the class
attributes `name`, `help` and `version` (the lowest server version, as
`major.minor`, it applies to). Its `scrape(instance)` method is a generator
over metrics. Database errors, and rows of an unexpected shape, propagate
as exceptions.

`ScrapeHeartbeat` is a dataclass with the fields `database` and `table`
(both default to `"heartbeat"`) and `utc` (default `False`, which uses
`NOW(6)`; `True` uses `UTC_TIMESTAMP(6)`). `query()` returns the SQL it
runs.

## Connecting to a server

`mysqlscrape.collector.Instance` wraps any DB-API 2.0 connection:

```python
from mysqlscrape.collector import Flavor, Instance
from mysqlscrape.global_status import ScrapeGlobalStatus

instance = Instance(connection, flavor=Flavor.MYSQL, version=(8, 0, 36))
with instance:
    for metric in ScrapeGlobalStatus().scrape(instance):
        print(metric.name, metric.labels, metric.value)
```

`Instance.query(sql)` returns all rows, `query_with_columns(sql)` returns
column names and rows, and `close()` (also called on leaving a `with`
block) closes the connection. `flavor` and `version` tell scrapers which
query form to use; MariaDB 10.5 and later, for example, gets a tablespace
query without `SPACE_TYPE`.

## The exporter

`mysqlscrape.exporter.Exporter(dsn, scrapers, connect, lock_wait_timeout=2,
slow_log_filter=False)` runs a set of scrapers against one server:

- the DSN is extended with `lock_wait_timeout=<n>` and, if asked, a
  `log_slow_filter` setting (see `build_dsn`);
- `connect` is a callable you supply that takes that DSN and returns an
  `Instance`;
- `collect()` opens the instance, calls the connection's `ping()` if it
  has one, yields a `mysql_exporter_collector_duration_seconds` metric for
  the connection, then runs every scraper whose `version` is not above the
  server's `major.minor`, one after another. After each it yields
  `mysql_exporter_collector_success` and
  `mysql_exporter_collector_duration_seconds` labelled
  `collect.<scraper name>`. A failing scraper is logged and marked 0; it
  does not stop the others. Last comes `mysql_up`: 1, or 0 if connecting
  or pinging failed.
- `describe()` lists the three descriptors the exporter itself produces;
  `target()` gives the server address from the DSN, or `""` if it cannot be
  parsed.

## Helpers

```python
from mysqlscrape.collector import parse_privilege, parse_status
from mysqlscrape.engine_tokudb import sanitize_tokudb_metric
from mysqlscrape.exporter import build_dsn, target_from_dsn

sanitize_tokudb_metric("ft: promotion: stopped anyway, after locking the child")
# 'ft_promotion_stopped_anyway_after_locking_the_child'

build_dsn("root@/mysql", 2, False)
# 'root@/mysql?lock_wait_timeout=2'

target_from_dsn("root@tcp(db.example.com)/mysql")
# 'db.example.com:3306'

parse_status("ON")         # 1.0
parse_status("Primary")    # 1.0
parse_status("12.5")       # 12.5
parse_status("Linux")      # None
parse_privilege("Y")       # 1.0
```

`parse_status` also accepts `YES`/`NO`, `OFF`, `DISABLED`, `Connecting`,
`non-Primary`, `Disconnected` (any case), and timestamps of the forms
`2006-01-02 15:04:05` and `Jan  2 15:04:05 2006 UTC`, which become Unix
seconds. `mysqlscrape.metrics.build_fq_name` joins the non-empty parts of a
metric name with underscores.

## What the package does not do

- It is a library only: there is no command-line program and no HTTP
  server publishing a `/metrics` page. Serving or pushing the metrics is
  left to the caller.
- It ships no MySQL driver and does not parse credentials or open
  connections itself; the `connect` callable and the `Instance` you build
  decide that.
- It has no scrapers for `SHOW GLOBAL VARIABLES`,
  `SHOW ENGINE INNODB STATUS`, `information_schema.innodb_cmp`,
  `innodb_cmpmem` or `innodb_metrics`.

## Running the tests

```
pip install -e .[test]
pytest
```

The tests need no running database; the scrapers are exercised against
in-memory stand-ins for a connection.