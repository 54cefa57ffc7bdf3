"""
Unit tests for connection string parsing, engine creation and the retry decorator.
"""
import sqlite3
from unittest.mock import MagicMock

import pytest
import sqlalchemy as sa
from griddata.connection import check_connection, get_engine
from griddata.connection import parse_connection_string
from griddata.exceptions import ConnectionFailure, is_retryable_error


@pytest.mark.parametrize(('connection_string', 'database'), [
    ('URI=file:C:\\temp\\test.db', 'C:\\temp\\test.db'),
    ('Data Source=test.db;Version=3', 'test.db'),
    ('data source = /tmp/grid.db ; Version=3;', '/tmp/grid.db'),
    ('sqlite:///grid.db', 'grid.db'),
])
def test_sqlite_connection_strings(connection_string, database):
    url = parse_connection_string(connection_string)
    assert url.get_backend_name() == 'sqlite'
    assert url.database == database


def test_postgres_uses_psycopg():
    url = parse_connection_string('postgresql://user:pw@localhost:5432/grid')
    assert url.drivername == 'postgresql+psycopg'
    assert url.database == 'grid'
    url = parse_connection_string('postgresql+psycopg://user:pw@localhost/grid')
    assert url.drivername == 'postgresql+psycopg'


@pytest.mark.parametrize('connection_string', ['Version=3', 'nonsense', ''])
def test_missing_database(connection_string):
    with pytest.raises(ConnectionFailure):
        parse_connection_string(connection_string)


def test_engine_registry_reuses_engines():
    factory = MagicMock()
    url = sa.make_url('sqlite:///registry.db')
    first = get_engine(url, timeout=7, engine_factory=factory)
    second = get_engine(url, timeout=7, engine_factory=factory)
    assert first is second
    factory.assert_called_once()
    kwargs = factory.call_args.kwargs
    assert kwargs['poolclass'] is sa.pool.NullPool
    assert kwargs['connect_args']['timeout'] == 7


def test_engine_rejects_unsupported_dialect():
    with pytest.raises(ConnectionFailure, match='Unsupported database type'):
        get_engine(sa.make_url('mysql://user@localhost/grid'), engine_factory=MagicMock())


@pytest.mark.parametrize('error', [
    sa.exc.NoSuchModuleError("Can't load plugin: sqlalchemy.dialects:sqlite.nosuchdriver"),
    ImportError('No module named psycopg'),
])
def test_engine_creation_errors_are_connection_failures(error):
    factory = MagicMock(side_effect=error)
    url = sa.make_url('sqlite:///broken.db')

    with pytest.raises(ConnectionFailure, match='Cannot create engine for sqlite'):
        get_engine(url, engine_factory=factory)
    with pytest.raises(ConnectionFailure):
        get_engine(url, engine_factory=factory)
    assert factory.call_count == 2


@pytest.mark.parametrize(('message', 'expected'), [
    ('database is locked', True),
    ('unable to open database file', True),
    ('server closed the connection unexpectedly', True),
    ('Connection refused', True),
    ('near "SELEC": syntax error', False),
    ('UNIQUE constraint failed: t.id', False),
    ('interrupted', False),
])
def test_is_retryable_error(message, expected):
    assert is_retryable_error(Exception(message)) is expected


def test_check_connection_retries_once():
    sleep = MagicMock()
    func = MagicMock(side_effect=[sqlite3.OperationalError('database is locked'), 'ok'])
    assert check_connection(func, sleep_func=sleep)() == 'ok'
    assert func.call_count == 2
    sleep.assert_called_once()


def test_check_connection_gives_up_after_second_attempt():
    func = MagicMock(side_effect=sqlite3.OperationalError('database is locked'))
    with pytest.raises(sqlite3.OperationalError):
        check_connection(func, sleep_func=MagicMock())()
    assert func.call_count == 2


def test_check_connection_does_not_retry_other_errors():
    func = MagicMock(side_effect=sqlite3.OperationalError('no such table: t'))
    with pytest.raises(sqlite3.OperationalError):
        check_connection(func, sleep_func=MagicMock())()
    assert func.call_count == 1

    func = MagicMock(side_effect=ValueError('database is locked'))
    with pytest.raises(ValueError):
        check_connection(func, sleep_func=MagicMock())()
    assert func.call_count == 1
