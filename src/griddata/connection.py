"""
Database connection handling with SQLAlchemy.

This module provides:
1. The `connect()` function for opening a connection from grid options
2. The `ConnectionWrapper` class that wraps SQLAlchemy connections with
   timed, logged execution
3. Engine creation and management through a thread-safe registry
4. Connection string parsing for SQLAlchemy URLs and ADO-style SQLite strings
"""
import atexit
import logging
import threading
import time
from collections.abc import Callable
from typing import Any, Self, TypeVar

import sqlalchemy as sa
from griddata.cursor import Cursor
from griddata.exceptions import ConnectionFailure, DbConnectionError
from griddata.exceptions import is_retryable_error
from griddata.options import GridDataOptions, load_grid_options
from griddata.strategy import get_db_strategy, get_strategy, is_supported_dialect
from griddata.utils import get_dialect_name, get_raw_connection
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

__all__ = [
    'ConnectionWrapper',
    'connect',
    'check_connection',
    'parse_connection_string',
    'get_engine',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

T = TypeVar('T')
_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()

_ADO_DATABASE_KEYS = ('data source', 'datasource', 'uri', 'filename')


def parse_connection_string(connection_string: str) -> sa.URL:
    """Convert a connection string to a SQLAlchemy URL.

    Accepts SQLAlchemy URLs, and ADO-style SQLite strings such as
    `Data Source=C:\\temp\\test.db;Version=3` or `URI=file:C:\\temp\\test.db`.

    Raises
        ConnectionFailure: If no database can be found in the string
    """
    connection_string = connection_string.strip()
    if '://' in connection_string:
        try:
            url = sa.make_url(connection_string)
        except sa.exc.ArgumentError as err:
            raise ConnectionFailure(f'Invalid connection string: {err}') from err
        if url.drivername in {'postgresql', 'postgres'}:
            url = url.set(drivername='postgresql+psycopg')
        return url

    pairs: dict[str, str] = {}
    for part in connection_string.split(';'):
        key, sep, value = part.partition('=')
        if sep:
            pairs[key.strip().lower()] = value.strip()

    for key in _ADO_DATABASE_KEYS:
        if pairs.get(key):
            database = pairs[key]
            if database.lower().startswith('file:'):
                database = database[len('file:'):]
            return sa.URL.create(drivername='sqlite', database=database)

    raise ConnectionFailure(f'Cannot find a database in connection string {connection_string!r}')


def check_connection(func: Callable[..., T] | None = None, *, max_retries: int = 2,
                     retry_delay: float = 0.5, retry_errors: type | tuple[type, ...] | None = None,
                     sleep_func: Callable[[float], None] = time.sleep) -> Callable[..., T]:
    """Connection retry decorator.

    Retries the operation when it fails with a connection-class error whose
    message looks transient. The default of two attempts means one reopen
    before failing.

    Supports both @check_connection and @check_connection() syntax.
    """
    def decorator(f: Callable[..., T]) -> Callable[..., T]:
        from functools import wraps

        @wraps(f)
        def inner(*args: Any, **kwargs: Any) -> T:
            error_types = retry_errors if retry_errors is not None else DbConnectionError

            tries = 0
            while True:
                try:
                    return f(*args, **kwargs)
                except error_types as err:
                    tries += 1
                    if tries >= max_retries or not is_retryable_error(err):
                        raise
                    logger.warning(f'Connection error (attempt {tries}/{max_retries}): {err}')
                    sleep_func(retry_delay)

        return inner

    if func is None:
        return decorator
    return decorator(func)


def get_engine(url: sa.URL, timeout: int = 0,
               engine_factory: Callable[..., Engine] = sa.create_engine) -> Engine:
    """Get or create a SQLAlchemy engine for a URL and timeout.

    Engines use NullPool: every connection is opened fresh and closed on release.
    """
    key = f'{url.render_as_string(hide_password=False)}_{timeout}'

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {url.get_backend_name()}')
            return _engine_registry[key]

        dialect = url.get_backend_name()
        if not is_supported_dialect(dialect):
            raise ConnectionFailure(f'Unsupported database type: {dialect}')

        engine_kwargs: dict[str, Any] = {'echo': False, 'poolclass': NullPool}
        engine_kwargs.update(get_strategy(dialect).get_engine_kwargs(timeout))

        try:
            engine = engine_factory(url, **engine_kwargs)
        except (sa.exc.ArgumentError, ImportError) as err:
            raise ConnectionFailure(f'Cannot create engine for {url.drivername}: {err}') from err
        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {dialect}')

        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        for engine in _engine_registry.values():
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)


class ConnectionWrapper:
    """Wraps a SQLAlchemy connection object to track calls and execution time

    This class provides a thin wrapper around SQLAlchemy connection objects that:
    1. Tracks query execution counts and timing
    2. Bounds every command by the configured timeout
    3. Supports context manager protocol for guaranteed release
    4. Tracks whether a Transaction is active so statements skip autocommit
    """

    def __init__(self, sa_connection: sa.engine.Connection,
                 options: GridDataOptions | None = None) -> None:
        self.sa_connection = sa_connection
        self.engine = sa_connection.engine
        self.options = options
        self.dbapi_connection = sa_connection.connection
        self._dialect = get_dialect_name(sa_connection)
        self.timeout = options.timeout if options else 0
        self.calls = 0
        self.time = 0
        self.in_transaction = False

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        """Release the connection on every exit path
        """
        self.close()

    @property
    def dialect(self) -> str:
        """Return the dialect name ('postgresql' or 'sqlite')."""
        return self._dialect

    @property
    def closed(self) -> bool:
        return self.sa_connection.closed

    def cursor(self) -> Cursor:
        """Get a wrapped cursor for this connection
        """
        if self.closed:
            raise ConnectionFailure('Connection is closed')
        return Cursor(self.dbapi_connection.cursor(), self, get_db_strategy(self))

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    def commit(self) -> None:
        get_raw_connection(self).commit()

    def rollback(self) -> None:
        get_raw_connection(self).rollback()

    def ping(self) -> None:
        """Run a trivial statement, raising if the session is unusable.
        """
        with self.cursor() as cursor:
            cursor.execute('SELECT 1')
            cursor.fetchall()

    def close(self) -> None:
        """Close the SQLAlchemy connection
        """
        if self.sa_connection.closed:
            return
        self.sa_connection.close()
        logger.debug(f'Connection closed: {self.calls} queries in {self.time:.2f}s (avg: {self.time/max(1,self.calls):.3f}s per query)')

    def execute(self, sql: str, *args: Any) -> int:
        """Execute a SQL statement with bound parameters and return affected row count.
        """
        with self.cursor() as cursor:
            rowcount = cursor.execute(sql, args)
        if not self.in_transaction:
            self.commit()
        return rowcount

    def select(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        """Execute a query and return rows as dicts keyed by column name.
        """
        with self.cursor() as cursor:
            cursor.execute(sql, args)
            names = [desc[0] for desc in cursor.description or ()]
            return [dict(zip(names, row)) for row in cursor.fetchall()]


def configure_connection(sa_connection: sa.engine.Connection) -> None:
    """Configure a SQLAlchemy connection with database-specific settings.
    """
    strategy = get_db_strategy(sa_connection)
    strategy.configure_connection(sa_connection.connection)


@check_connection
def _open(options: GridDataOptions) -> ConnectionWrapper:
    url = parse_connection_string(options.connection_string)
    engine = get_engine(url, timeout=options.timeout)
    sa_connection = engine.connect()
    configure_connection(sa_connection)
    logger.debug(f'Opened {engine.dialect.name} connection')
    return ConnectionWrapper(sa_connection, options)


def connect(options: GridDataOptions | dict[str, Any] | str,
            config: Any | None = None, **kw: Any) -> ConnectionWrapper:
    """Open a database connection from grid options

    Args:
        options: Can be:
                - GridDataOptions (or ExportOptions/ImportOptions) object
                - String name of a configuration setting
                - Dictionary of options
        config: Configuration object (for loading from config files)
        **kw: Additional keyword arguments to override options

    Returns
        ConnectionWrapper object for the database

    Raises
        ConnectionFailure: If the connection cannot be opened after one retry
    """
    options = load_grid_options(GridDataOptions, options, config, **kw)
    try:
        return _open(options)
    except DbConnectionError as err:
        if isinstance(err, ConnectionFailure):
            raise
        raise ConnectionFailure(f'Cannot open connection: {err}') from err
