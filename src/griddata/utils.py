"""Low-level connection utilities with no internal dependencies.

These utilities work with any database connection type (ConnectionWrapper,
SQLAlchemy connections, raw DBAPI connections) and have no imports from
other griddata modules, making them safe to import without circular
dependency concerns.
"""
import logging
from typing import Any

logger = logging.getLogger(__name__)


def get_dialect_name(obj: Any) -> str:
    """Get dialect name for a database connection or engine.
    """
    if hasattr(obj, 'dialect'):
        dialect = obj.dialect
        if isinstance(dialect, str):
            return dialect.lower()
        return str(dialect.name).lower()

    if hasattr(obj, 'engine') and hasattr(obj.engine, 'dialect'):
        return str(obj.engine.dialect.name).lower()

    type_name = f'{type(obj).__module__}.{type(obj).__name__}'
    if 'psycopg' in type_name:
        return 'postgresql'
    if 'sqlite3' in type_name:
        return 'sqlite'

    raise AttributeError(f'Cannot determine dialect for {type(obj)}')


def get_raw_connection(connection: Any) -> Any:
    """Extract the raw DBAPI connection from a wrapper."""
    raw_conn = connection
    if hasattr(connection, 'dbapi_connection'):
        raw_conn = connection.dbapi_connection
    if hasattr(raw_conn, 'driver_connection'):
        raw_conn = raw_conn.driver_connection
    return raw_conn
