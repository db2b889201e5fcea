import pytest

from mysqlscrape.collector import Flavor, Instance
from mysqlscrape.info_schema_innodb_sys_tablespaces import (
    INNODB_TABLESPACES_QUERY_MARIADB,
    INNODB_TABLESPACES_QUERY_MYSQL,
    INNODB_TABLESPACES_TABLENAME_QUERY,
    ScrapeInfoSchemaInnodbTablespaces,
)
from mysqlscrape.metrics import ValueType


class _Cursor:
    def __init__(self, connection):
        self._connection = connection
        self.description = None
        self._rows = []

    def execute(self, sql):
        self._connection.executed.append(sql)
        columns, rows = self._connection.results[sql]
        self.description = [(name,) for name in columns]
        self._rows = list(rows)

    def fetchall(self):
        return self._rows

    def close(self):
        pass


class _Connection:
    def __init__(self, results):
        self.results = results
        self.executed = []

    def cursor(self):
        return _Cursor(self)

    def close(self):
        pass


def _summary(metrics):
    return [(m.labels, m.value, m.value_type) for m in metrics]


def test_scrape_mysql_tablespaces():
    table = "INNODB_SYS_TABLESPACES"
    query = INNODB_TABLESPACES_QUERY_MYSQL.format(table=table)
    connection = _Connection({
        INNODB_TABLESPACES_TABLENAME_QUERY: (["TABLE_NAME"], [(table,)]),
        query: (
            ["SPACE", "NAME", "FILE_FORMAT", "ROW_FORMAT", "SPACE_TYPE", "FILE_SIZE", "ALLOCATED_SIZE"],
            [
                (1, "sys/sys_config", "Barracuda", "Dynamic", "Single", 100, 100),
                (2, "db/compressed", "Barracuda", "Compressed", "Single", 300, 200),
            ],
        ),
    })
    instance = Instance(connection, flavor=Flavor.MYSQL)

    got = _summary(ScrapeInfoSchemaInnodbTablespaces().scrape(instance))

    gauge = ValueType.GAUGE
    assert got == [
        ({"tablespace_name": "sys/sys_config", "file_format": "Barracuda",
          "row_format": "Dynamic", "space_type": "Single"}, 1, gauge),
        ({"tablespace_name": "sys/sys_config"}, 100, gauge),
        ({"tablespace_name": "sys/sys_config"}, 100, gauge),
        ({"tablespace_name": "db/compressed", "file_format": "Barracuda",
          "row_format": "Compressed", "space_type": "Single"}, 2, gauge),
        ({"tablespace_name": "db/compressed"}, 300, gauge),
        ({"tablespace_name": "db/compressed"}, 200, gauge),
    ]
    assert connection.executed == [INNODB_TABLESPACES_TABLENAME_QUERY, query]


def test_scrape_mariadb_tablespaces_without_space_type():
    table = "INNODB_SYS_TABLESPACES"
    query = INNODB_TABLESPACES_QUERY_MARIADB.format(table=table)
    connection = _Connection({
        INNODB_TABLESPACES_TABLENAME_QUERY: (["TABLE_NAME"], [(table,)]),
        query: (
            ["SPACE", "NAME", "FILE_FORMAT", "ROW_FORMAT", "FILE_SIZE", "ALLOCATED_SIZE"],
            [
                (1, "sys/sys_config", "Barracuda", "Dynamic", 100, 100),
                (2, "db/compressed", "Barracuda", "Compressed", 300, 200),
            ],
        ),
    })
    instance = Instance(connection, flavor=Flavor.MARIADB, version=(10, 5, 0))

    got = _summary(ScrapeInfoSchemaInnodbTablespaces().scrape(instance))

    gauge = ValueType.GAUGE
    assert got == [
        ({"tablespace_name": "sys/sys_config", "file_format": "Barracuda",
          "row_format": "Dynamic", "space_type": ""}, 1, gauge),
        ({"tablespace_name": "sys/sys_config"}, 100, gauge),
        ({"tablespace_name": "sys/sys_config"}, 100, gauge),
        ({"tablespace_name": "db/compressed", "file_format": "Barracuda",
          "row_format": "Compressed", "space_type": ""}, 2, gauge),
        ({"tablespace_name": "db/compressed"}, 300, gauge),
        ({"tablespace_name": "db/compressed"}, 200, gauge),
    ]
    assert connection.executed == [INNODB_TABLESPACES_TABLENAME_QUERY, query]


def test_older_mariadb_uses_mysql_query():
    table = "INNODB_TABLESPACES"
    query = INNODB_TABLESPACES_QUERY_MYSQL.format(table=table)
    connection = _Connection({
        INNODB_TABLESPACES_TABLENAME_QUERY: (["TABLE_NAME"], [(table,)]),
        query: (["SPACE"], []),
    })
    instance = Instance(connection, flavor=Flavor.MARIADB, version=(10, 4, 9))

    assert list(ScrapeInfoSchemaInnodbTablespaces().scrape(instance)) == []
    assert connection.executed[-1] == query


def test_unknown_table_name_raises():
    connection = _Connection({
        INNODB_TABLESPACES_TABLENAME_QUERY: (["TABLE_NAME"], [("SOMETHING_ELSE",)]),
    })
    with pytest.raises(LookupError, match="Couldn't find INNODB_SYS_TABLESPACES"):
        list(ScrapeInfoSchemaInnodbTablespaces().scrape(Instance(connection)))


def test_missing_table_raises():
    connection = _Connection({INNODB_TABLESPACES_TABLENAME_QUERY: (["TABLE_NAME"], [])})
    with pytest.raises(LookupError):
        list(ScrapeInfoSchemaInnodbTablespaces().scrape(Instance(connection)))


def test_negative_size_raises():
    table = "INNODB_SYS_TABLESPACES"
    query = INNODB_TABLESPACES_QUERY_MYSQL.format(table=table)
    connection = _Connection({
        INNODB_TABLESPACES_TABLENAME_QUERY: (["TABLE_NAME"], [(table,)]),
        query: (["SPACE"], [(1, "t", "A", "B", "C", -5, 10)]),
    })
    with pytest.raises(ValueError):
        list(ScrapeInfoSchemaInnodbTablespaces().scrape(Instance(connection)))