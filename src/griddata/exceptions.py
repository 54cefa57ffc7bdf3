"""
Grid data exception classes.
"""
import re
import sqlite3

import psycopg
import sqlalchemy.exc

RETRYABLE_PATTERNS = [
    # Connection drops
    r'connection.*(closed|reset|refused|lost|terminated|broken)',
    r'server closed',
    r'broken pipe',
    r'connection reset',
    # Network issues
    r'could not connect',
    r'no route to host',
    r'network.*(unreachable|error)',
    # Database unavailable
    r'database.*(unavailable|is locked)',
    r'unable to open database',
    r'too many connections',
]

_RETRYABLE_REGEX = re.compile('|'.join(RETRYABLE_PATTERNS), re.IGNORECASE)


def is_retryable_error(exc: BaseException) -> bool:
    """Check if an exception represents a connection problem worth one reopen.

    Returns True for dropped, refused, locked or unavailable connections.
    Returns False for syntax errors, constraint violations, type mismatches
    and statement timeouts, which fail the same way on a fresh connection.

    :param exc: The exception to check.
    :returns: True if reopening the connection may help.
    """
    error_msg = str(exc).lower()
    return bool(_RETRYABLE_REGEX.search(error_msg))


class GridDataError(Exception):
    """Base class for all grid data errors.
    """


class ConfigurationError(GridDataError):
    """Missing or invalid option value, detected before any database I/O.
    """


class ConnectionFailure(GridDataError):
    """Error establishing or maintaining the database session.
    """


class SchemaError(GridDataError):
    """No columns to create, or the table DDL failed to execute.
    """


BuildError = SchemaError


class FormatError(GridDataError):
    """A field value could not be coerced to its declared type.

    The formatter never raises this; failed coercions become NULL.
    """


class InsertError(GridDataError):
    """A row failed to insert. Fatal for the whole export.
    """

    def __init__(self, row_index: int, cause: BaseException) -> None:
        self.row_index = row_index
        self.cause = cause
        super().__init__(f'Row {row_index} failed to insert: {cause}')


class ExportError(GridDataError):
    """An export failed; nothing was committed.
    """

    def __init__(self, table_name: str, cause: BaseException) -> None:
        self.table_name = table_name
        self.cause = cause
        super().__init__(f'There was a problem exporting. Table={table_name} Err={cause}')


class QueryError(GridDataError):
    """Error executing an import statement.
    """


class StreamExhausted(GridDataError):
    """A result stream was iterated after its single pass completed.
    """


DbConnectionError = (
    psycopg.OperationalError,
    psycopg.InterfaceError,
    sqlite3.OperationalError,
    sqlite3.InterfaceError,
    sqlalchemy.exc.OperationalError,
    sqlalchemy.exc.InterfaceError,
    ConnectionFailure,
    )

IntegrityError = (
    psycopg.IntegrityError,
    sqlite3.IntegrityError,
    sqlalchemy.exc.IntegrityError,
    )
