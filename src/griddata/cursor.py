"""
Database cursor wrapper with SQL logging and per-command timeouts.

Implements the subset of the Python DB-API 2.0 specification (PEP-249) the
export and import paths need.
"""
import logging
import time
from collections.abc import Sequence
from functools import wraps
from typing import Any

from griddata.strategy import get_db_strategy
from griddata.utils import get_raw_connection

logger = logging.getLogger(__name__)


def dumpsql(func):
    """Decorator for logging SQL queries and parameters."""
    @wraps(func)
    def wrapper(self, operation: str, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{operation}\nargs: {args}')
        try:
            return func(self, operation, *args, **kwargs)
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{operation}\nargs: {args}')
            raise
        finally:
            elapsed = time.time() - start
            self.connwrapper.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


class Cursor:
    """Cursor wrapper that bounds every command by the connection's timeout.

    Uses the strategy pattern to apply the dialect's command timeout.
    """

    def __init__(self, cursor: Any, connection_wrapper: Any, strategy: Any = None) -> None:
        """Initialize cursor wrapper.

        Args:
            cursor: The underlying database cursor
            connection_wrapper: The connection wrapper that created this cursor
            strategy: Optional database strategy (auto-detected from connection if not provided)
        """
        self.dbapi_cursor = cursor
        self.connwrapper = connection_wrapper
        self._strategy = strategy

    @property
    def strategy(self) -> Any:
        """Get the database strategy, lazily initializing if needed."""
        if self._strategy is None:
            self._strategy = get_db_strategy(self.connwrapper)
        return self._strategy

    def __enter__(self) -> 'Cursor':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def description(self) -> Sequence[tuple] | None:
        """Column descriptions for last query."""
        return self.dbapi_cursor.description

    @property
    def rowcount(self) -> int:
        """Number of rows produced/affected by last operation."""
        return self.dbapi_cursor.rowcount

    def close(self) -> None:
        """Close cursor."""
        self.dbapi_cursor.close()

    def fetchone(self) -> tuple | None:
        """Fetch next row."""
        return self.dbapi_cursor.fetchone()

    def fetchall(self) -> list[tuple]:
        """Fetch all remaining rows within the command timeout.

        SQLite steps the statement lazily, so fetching is still part of
        the command.
        """
        raw_conn = get_raw_connection(self.connwrapper)
        with self.strategy.command_timeout(raw_conn, self.connwrapper.timeout):
            return self.dbapi_cursor.fetchall()

    @dumpsql
    def execute(self, operation: str, params: Sequence[Any] | None = None) -> int:
        """Execute a database operation within the command timeout."""
        raw_conn = get_raw_connection(self.connwrapper)
        with self.strategy.command_timeout(raw_conn, self.connwrapper.timeout):
            if params:
                self.dbapi_cursor.execute(operation, tuple(params))
            else:
                self.dbapi_cursor.execute(operation)
        return self.dbapi_cursor.rowcount
