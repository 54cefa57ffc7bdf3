"""
Base strategy interface for dialect-specific operations.

Defines the abstract base class that all database-specific strategy implementations
must inherit from. The strategy pattern keeps dialect behaviors (connection setup,
autocommit toggling, command timeouts, storage type names) behind one interface
so the sync engine works against any supported database.
"""
from abc import ABC, abstractmethod
from typing import Any

from griddata.types import StorageType

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('sqlite')
        class SQLiteStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for database-specific operations.
    """

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier (e.g., 'postgresql', 'sqlite')."""

    @abstractmethod
    def get_engine_kwargs(self, timeout: int) -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for this dialect.

        Args:
            timeout: Connection timeout in seconds

        Returns
            Dictionary of keyword arguments for create_engine
        """

    @abstractmethod
    def configure_connection(self, conn: Any) -> None:
        """Configure connection settings.

        Args:
            conn: Raw DBAPI connection to configure
        """

    @abstractmethod
    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode on a raw database connection.

        Args:
            raw_conn: The raw DBAPI connection (not wrapped)
        """

    @abstractmethod
    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode on a raw database connection.

        Args:
            raw_conn: The raw DBAPI connection (not wrapped)
        """

    @abstractmethod
    def command_timeout(self, raw_conn: Any, seconds: float | None):
        """Context manager bounding one command to `seconds`.

        Exceeding the limit must fail the running statement with a
        driver error.

        Args:
            raw_conn: The raw DBAPI connection (not wrapped)
            seconds: Limit in seconds; None or 0 means unbounded
        """

    def storage_type_name(self, storage_type: StorageType) -> str:
        """Return the column type name emitted in CREATE TABLE.
        """
        return storage_type.value

    def get_placeholder_style(self) -> str:
        """Return the dialect's positional parameter marker.
        """
        return '?'
