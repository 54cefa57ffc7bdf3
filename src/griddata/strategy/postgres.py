"""
PostgreSQL-specific strategy implementation.

This module implements the DatabaseStrategy interface for PostgreSQL:
- `connect_timeout` and a session `statement_timeout` set at connect time
- 64-bit INTEGER and double precision REAL storage types
- Autocommit toggled through the psycopg connection attribute
"""
import logging
from contextlib import contextmanager
from typing import Any

from griddata.strategy.base import DatabaseStrategy, register_strategy
from griddata.types import StorageType

logger = logging.getLogger(__name__)

_STORAGE_TYPE_NAMES = {
    StorageType.INTEGER: 'BIGINT',
    StorageType.REAL: 'DOUBLE PRECISION',
    StorageType.TEXT: 'TEXT',
    }


@register_strategy('postgresql')
class PostgresStrategy(DatabaseStrategy):
    """PostgreSQL-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for PostgreSQL."""
        return 'postgresql'

    def get_engine_kwargs(self, timeout: int) -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for PostgreSQL.

        The statement timeout applies to every command on the session.
        """
        if not timeout:
            return {}
        return {
            'connect_args': {
                'connect_timeout': timeout,
                'options': f'-c statement_timeout={int(timeout * 1000)}',
                }
            }

    def configure_connection(self, conn: Any) -> None:
        """Configure connection settings for PostgreSQL.
        """
        pg_conn = conn
        if hasattr(conn, 'driver_connection'):
            pg_conn = conn.driver_connection
        self.enable_autocommit(pg_conn)

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for PostgreSQL.
        """
        raw_conn.autocommit = True

    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode for PostgreSQL.
        """
        raw_conn.autocommit = False

    @contextmanager
    def command_timeout(self, raw_conn: Any, seconds: float | None):
        """Statement timeout is a session setting applied at connect time.
        """
        yield

    def storage_type_name(self, storage_type: StorageType) -> str:
        """Return PostgreSQL column type names for storage affinities.
        """
        return _STORAGE_TYPE_NAMES[storage_type]

    def get_placeholder_style(self) -> str:
        """Return PostgreSQL's placeholder marker.
        """
        return '%s'
