"""
Table sync against a file-based SQLite database.
"""
import sqlite3
from unittest.mock import patch

import pytest
from griddata.exceptions import ExportError, InsertError, SchemaError
from griddata.sync import TableSync
from griddata.types import ColumnType, GridRecords, LogicalColumn, StorageType


def test_three_records(sqlite_conn, letter_records, table_rows):
    result = TableSync().sync('letters', letter_records.columns, letter_records, sqlite_conn)

    assert result.row_count == 3
    assert table_rows('letters') == [
        {'id': 1, 'name': 'a'},
        {'id': 2, 'name': 'b'},
        {'id': 3, 'name': 'c'},
    ]


def test_physical_columns_round_trip(sqlite_conn, price_records):
    result = TableSync().sync('Prices', price_records.columns, price_records, sqlite_conn)

    names = [col.name for col in result.physical_columns]
    assert [n.casefold() for n in names] == ['id', 'name', 'price', 'traded']
    assert [col.storage_type for col in result.physical_columns] == [
        StorageType.INTEGER, StorageType.TEXT, StorageType.REAL, StorageType.TEXT]
    assert result.physical_columns[0].allows_null is False
    assert result.physical_columns[2].allows_null is True


def test_special_values(sqlite_conn, price_records, table_rows):
    TableSync('yyyy-MM-dd HH:mm:ss').sync('prices', price_records.columns, price_records,
                                         sqlite_conn)

    rows = table_rows('prices')
    assert rows[0] == {'id': 1, 'name': 'apple', 'price': 1.5, 'traded': '2024-01-02 09:30:00'}
    assert rows[1]['price'] == 'Infinity'
    assert rows[2]['price'] is None
    assert rows[2]['traded'] is None


def test_default_applies_to_columns_not_inserted(sqlite_conn, price_records):
    TableSync().sync('prices', price_records.columns, price_records, sqlite_conn)
    sqlite_conn.execute('INSERT INTO prices (id) VALUES (?)', 99)
    rows = sqlite_conn.select('SELECT name FROM prices WHERE id = ?', 99)
    assert rows == [{'name': 'n/a'}]


def test_sync_is_idempotent(sqlite_conn, letter_columns, table_rows):
    engine = TableSync()
    rows = [(1, 'a'), (2, 'b')]

    engine.sync('letters', letter_columns, GridRecords(letter_columns, rows), sqlite_conn)
    first = table_rows('letters')
    engine.sync('letters', letter_columns, GridRecords(letter_columns, rows), sqlite_conn)

    assert table_rows('letters') == first
    assert len(first) == 2


def test_duplicate_key_commits_nothing(sqlite_conn, letter_columns, table_rows):
    records = GridRecords(letter_columns, [(1, 'a'), (2, 'b'), (1, 'c')])

    with pytest.raises(ExportError) as excinfo:
        TableSync().sync('letters', letter_columns, records, sqlite_conn)

    err = excinfo.value
    assert err.table_name == 'letters'
    assert isinstance(err.cause, InsertError)
    assert err.cause.row_index == 2
    assert isinstance(err.cause.cause, sqlite3.IntegrityError)
    assert str(err).startswith('There was a problem exporting. Table=letters Err=')
    assert table_rows('letters') == []


def test_failed_sync_leaves_connection_usable(sqlite_conn, letter_columns):
    records = GridRecords(letter_columns, [(1, 'a'), (1, 'b')])
    with pytest.raises(ExportError):
        TableSync().sync('letters', letter_columns, records, sqlite_conn)

    assert sqlite_conn.in_transaction is False
    assert sqlite_conn.dbapi_connection.driver_connection.isolation_level is None
    sqlite_conn.execute('INSERT INTO letters VALUES (?, ?)', 5, 'e')
    assert sqlite_conn.select('SELECT COUNT(*) AS n FROM letters') == [{'n': 1}]


def test_empty_columns_touch_nothing(sqlite_conn, table_rows):
    sqlite_conn.execute('CREATE TABLE keep (id INTEGER)')
    sqlite_conn.execute('INSERT INTO keep VALUES (1)')

    with pytest.raises(ExportError) as excinfo:
        TableSync().sync('keep', [], GridRecords([], []), sqlite_conn)

    assert isinstance(excinfo.value.cause, SchemaError)
    assert table_rows('keep') == [{'id': 1}]


def test_two_key_columns_fail_as_schema_error(sqlite_conn):
    columns = [LogicalColumn('a', ColumnType.INTEGER, is_key=True),
               LogicalColumn('b', ColumnType.INTEGER, is_key=True)]

    with pytest.raises(ExportError) as excinfo:
        TableSync().sync('pairs', columns, GridRecords(columns, [(1, 2)]), sqlite_conn)

    assert isinstance(excinfo.value.cause, SchemaError)
    assert 'more than one primary key' in str(excinfo.value)


def test_unparseable_values_become_null(sqlite_conn, table_rows):
    columns = [LogicalColumn('id', ColumnType.INTEGER, is_key=True),
               LogicalColumn('qty', ColumnType.INTEGER),
               LogicalColumn('asof', ColumnType.DATETIME)]
    records = GridRecords(columns, [(1, 'lots', 'someday')])

    TableSync().sync('stock', columns, records, sqlite_conn)

    assert table_rows('stock') == [{'id': 1, 'qty': None, 'asof': None}]


def test_records_from_generator(sqlite_conn, letter_columns):
    def generate():
        for i in (3, 1, 2):
            yield (i, chr(ord('a') + i - 1))

    result = TableSync().sync('letters', letter_columns, GridRecords(letter_columns, generate()),
                              sqlite_conn)

    assert result.row_count == 3
    assert [row['id'] for row in sqlite_conn.select('SELECT id FROM letters')] == [1, 2, 3]


def test_sync_logs_completion(sqlite_conn, letter_records, caplog):
    TableSync().sync('letters', letter_records.columns, letter_records, sqlite_conn)
    assert 'Exported 3 rows to letters' in caplog.text


def test_command_timeout_aborts(sqlite_conn):
    sqlite_conn.timeout = 0.2
    forever = ('WITH RECURSIVE c(x) AS (SELECT 1 UNION ALL SELECT x + 1 FROM c) '
               'SELECT count(*) AS n FROM c')
    with pytest.raises(sqlite3.OperationalError, match='interrupted'):
        sqlite_conn.select(forever)


class SteppingClock:
    """Monotonic clock that advances by `step` seconds on every reading"""

    def __init__(self):
        self.now = 0.0
        self.step = 0.0

    def __call__(self):
        self.now += self.step
        return self.now


def test_insert_past_timeout_aborts_sync(sqlite_conn, letter_columns, table_rows):
    clock = SteppingClock()

    def records():
        yield (1, 'a')
        clock.step = 10.0
        yield (2, 'b')

    with patch('griddata.strategy.sqlite.PROGRESS_HANDLER_STEPS', 1), \
         patch('griddata.strategy.sqlite.time', monotonic=clock):
        with pytest.raises(ExportError) as excinfo:
            TableSync().sync('letters', letter_columns,
                             GridRecords(letter_columns, records()), sqlite_conn, timeout=5)

    err = excinfo.value
    assert isinstance(err.cause, InsertError)
    assert err.cause.row_index == 1
    assert isinstance(err.cause.cause, sqlite3.OperationalError)
    assert 'interrupted' in str(err)
    assert table_rows('letters') == []


def test_sync_timeout_does_not_outlive_call(sqlite_conn, letter_records):
    assert sqlite_conn.timeout == 5
    TableSync().sync('letters', letter_records.columns, letter_records, sqlite_conn, timeout=9)
    assert sqlite_conn.timeout == 5

    failing = GridRecords(letter_records.columns, [(1, 'a'), (1, 'b')])
    with pytest.raises(ExportError):
        TableSync().sync('letters', failing.columns, failing, sqlite_conn, timeout=9)
    assert sqlite_conn.timeout == 5
