"""
Fixtures for SQLite integration tests.
"""
import pytest


@pytest.fixture
def table_rows(sqlite_conn):
    """Read a table's rows in insertion order"""
    def read(table_name):
        return sqlite_conn.select(f'SELECT * FROM "{table_name}" ORDER BY rowid')
    return read
