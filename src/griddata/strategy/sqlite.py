"""
SQLite-specific strategy implementation.

This module implements the DatabaseStrategy interface for SQLite:
- Busy timeout through the driver's `timeout` connect argument
- Per-command timeouts through a progress handler that interrupts the statement
- Autocommit toggled through `isolation_level`
"""
import logging
import sqlite3
import time
from contextlib import contextmanager
from typing import Any

from griddata.strategy.base import DatabaseStrategy, register_strategy

logger = logging.getLogger(__name__)

# Virtual machine instructions between progress handler calls
PROGRESS_HANDLER_STEPS = 1000


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):
    """SQLite-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def get_engine_kwargs(self, timeout: int) -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQLite."""
        connect_args: dict[str, Any] = {'check_same_thread': False}
        if timeout:
            connect_args['timeout'] = timeout
        return {'connect_args': connect_args}

    def configure_connection(self, conn: Any) -> None:
        """Configure connection settings for SQLite.
        """
        sqlite_conn = conn
        if hasattr(conn, 'driver_connection'):
            sqlite_conn = conn.driver_connection

        sqlite_conn.execute('PRAGMA foreign_keys = ON')
        self.enable_autocommit(sqlite_conn)

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for SQLite.
        """
        raw_conn.isolation_level = None

    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode for SQLite.
        """
        raw_conn.isolation_level = 'DEFERRED'

    @contextmanager
    def command_timeout(self, raw_conn: Any, seconds: float | None):
        """Interrupt the running statement once `seconds` have elapsed.

        SQLite has no statement timeout; the progress handler returning a
        true value aborts the statement with `sqlite3.OperationalError`.
        """
        if not seconds:
            yield
            return

        deadline = time.monotonic() + seconds

        def _check_deadline() -> int:
            return 1 if time.monotonic() > deadline else 0

        raw_conn.set_progress_handler(_check_deadline, PROGRESS_HANDLER_STEPS)
        try:
            yield
        except sqlite3.OperationalError as err:
            if 'interrupted' in str(err).lower():
                logger.warning(f'Command exceeded timeout of {seconds}s')
            raise
        finally:
            raw_conn.set_progress_handler(None, PROGRESS_HANDLER_STEPS)
