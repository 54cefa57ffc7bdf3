import sqlite3

import pytest
from griddata.strategy import get_db_strategy, get_strategy
from griddata.strategy import is_supported_dialect
from griddata.strategy.postgres import PostgresStrategy
from griddata.strategy.sqlite import SQLiteStrategy
from griddata.types import StorageType


def test_registry():
    assert is_supported_dialect('sqlite')
    assert is_supported_dialect('postgresql')
    assert not is_supported_dialect('mssql')
    assert isinstance(get_strategy('sqlite'), SQLiteStrategy)
    assert get_strategy('postgresql') is get_strategy('postgresql')
    with pytest.raises(ValueError, match='Unsupported dialect'):
        get_strategy('mssql')


def test_strategy_from_raw_connection():
    conn = sqlite3.connect(':memory:')
    try:
        assert isinstance(get_db_strategy(conn), SQLiteStrategy)
    finally:
        conn.close()


def test_storage_type_names():
    sqlite = get_strategy('sqlite')
    postgres = get_strategy('postgresql')
    assert [sqlite.storage_type_name(t) for t in StorageType] == ['INTEGER', 'REAL', 'TEXT']
    assert [postgres.storage_type_name(t) for t in StorageType] == ['BIGINT', 'DOUBLE PRECISION', 'TEXT']
    assert sqlite.get_placeholder_style() == '?'
    assert postgres.get_placeholder_style() == '%s'


def test_engine_kwargs():
    assert SQLiteStrategy().get_engine_kwargs(5) == {
        'connect_args': {'check_same_thread': False, 'timeout': 5}}
    assert PostgresStrategy().get_engine_kwargs(5) == {
        'connect_args': {'connect_timeout': 5, 'options': '-c statement_timeout=5000'}}


def test_sqlite_autocommit_toggle():
    conn = sqlite3.connect(':memory:')
    strategy = SQLiteStrategy()
    try:
        strategy.configure_connection(conn)
        assert conn.isolation_level is None
        strategy.disable_autocommit(conn)
        assert conn.isolation_level == 'DEFERRED'
    finally:
        conn.close()


def test_sqlite_command_timeout_interrupts():
    conn = sqlite3.connect(':memory:')
    forever = ('WITH RECURSIVE c(x) AS (SELECT 1 UNION ALL SELECT x + 1 FROM c) '
               'SELECT count(*) FROM c')
    try:
        with pytest.raises(sqlite3.OperationalError, match='interrupted'):
            with SQLiteStrategy().command_timeout(conn, 0.2):
                conn.execute(forever).fetchall()
        assert conn.execute('SELECT 1').fetchall() == [(1,)]
    finally:
        conn.close()
