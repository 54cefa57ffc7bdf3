"""
Transaction handling and auto-commit management for export inserts.
"""
import logging
import threading
from typing import Any

from griddata.strategy import get_db_strategy
from griddata.utils import get_raw_connection

logger = logging.getLogger(__name__)


_local = threading.local()


def enable_auto_commit(connection: Any) -> None:
    """Enable auto-commit mode on a connection wrapper through its strategy.
    """
    strategy = get_db_strategy(connection)
    strategy.enable_autocommit(get_raw_connection(connection))


def disable_auto_commit(connection: Any) -> None:
    """Disable auto-commit mode on a connection wrapper through its strategy.
    """
    strategy = get_db_strategy(connection)
    strategy.disable_autocommit(get_raw_connection(connection))


class Transaction:
    """Context manager for running multiple commands in a transaction.

    This implementation uses thread-local storage to track transaction state,
    making it safe to use in multi-threaded environments. Nested transactions
    on the same connection within a thread are not supported.

    Leaving the block normally commits; leaving it with an exception rolls
    back, so either every statement is persisted or none is.

    Examples
        with Transaction(cn) as tx:
            tx.execute('insert into ...', args)
            tx.execute('insert into ...', args)
    """

    def __init__(self, cn: Any) -> None:
        self.connection = cn

        if not hasattr(_local, 'active_transactions'):
            _local.active_transactions = {}

        if id(cn) in _local.active_transactions:
            raise RuntimeError('Nested transactions are not supported')

    def __enter__(self):
        _local.active_transactions[id(self.connection)] = True
        self.connection.in_transaction = True

        disable_auto_commit(self.connection)
        logger.debug(f'Started transaction for connection {id(self.connection)}')

        return self

    def __exit__(self, exc_type: type | None, value: Exception | None, traceback: Any | None) -> None:
        try:
            if exc_type is not None:
                self.connection.rollback()
                logger.warning('Rolling back the current transaction')
            else:
                self.connection.commit()
                logger.debug(f'Committed transaction for connection {id(self.connection)}')
        finally:
            _local.active_transactions.pop(id(self.connection), None)
            enable_auto_commit(self.connection)
            self.connection.in_transaction = False

            logger.debug(f'Transaction cleanup complete for connection {id(self.connection)}')

    def execute(self, sql: str, *args: Any) -> int:
        """Execute SQL within transaction context"""
        with self.connection.cursor() as cursor:
            return cursor.execute(sql, args)
