"""
Utilities for SQL statement generation for table export.
"""
import logging
from collections.abc import Sequence

from griddata.exceptions import SchemaError
from griddata.formatting import DEFAULT_DATETIME_FORMAT, format_value
from griddata.sql import make_placeholders, quote_identifier, quote_literal
from griddata.strategy import get_strategy
from griddata.type_mapping import map_storage_type
from griddata.types import CultureMode, LogicalColumn

logger = logging.getLogger(__name__)


def build_column_clause(column: LogicalColumn, dialect: str = 'sqlite',
                        datetime_format: str | None = DEFAULT_DATETIME_FORMAT) -> str:
    """Generate one column definition of a CREATE TABLE statement.

    Key columns are NOT NULL PRIMARY KEY with no default. Other columns are
    nullable, with a DEFAULT when the column has a default value whose
    formatted form is non-empty.
    """
    strategy = get_strategy(dialect)
    name = quote_identifier(column.name, dialect)
    type_name = strategy.storage_type_name(map_storage_type(column.declared_type))

    if column.is_key:
        return f'{name} {type_name} NOT NULL PRIMARY KEY'

    if column.default_value is not None and column.default_string:
        formatted = format_value(column.default_string, column.default_value,
                                 column.declared_type, CultureMode.INVARIANT,
                                 datetime_format)
        if formatted:
            return f'{name} {type_name} NULL DEFAULT {quote_literal(formatted)}'

    return f'{name} {type_name} NULL'


def build_create_table(table_name: str, columns: Sequence[LogicalColumn],
                       dialect: str = 'sqlite',
                       datetime_format: str | None = DEFAULT_DATETIME_FORMAT) -> str:
    """Generate a CREATE TABLE statement from logical columns.

    Args:
        table_name: Target table name
        columns: Logical columns in declaration order
        dialect: Database dialect ('sqlite', 'postgresql')
        datetime_format: Pattern used to format DateTime defaults

    Returns
        SQL statement string

    Raises
        SchemaError: If there are no columns to create
    """
    if not columns:
        raise SchemaError(f'No columns available to create table {table_name}')

    clauses = ', '.join(build_column_clause(col, dialect, datetime_format) for col in columns)
    return f'CREATE TABLE {quote_identifier(table_name, dialect)} ({clauses})'


def build_drop_table(table_name: str, dialect: str = 'sqlite') -> str:
    """Generate an idempotent DROP TABLE statement."""
    return f'DROP TABLE IF EXISTS {quote_identifier(table_name, dialect)}'


def build_probe_sql(table_name: str, dialect: str = 'sqlite') -> str:
    """Generate a zero-row SELECT used to read a table's live columns."""
    return f'SELECT * FROM {quote_identifier(table_name, dialect)} WHERE 1 = 0'


def build_insert_sql(table_name: str, count: int, dialect: str = 'sqlite') -> str:
    """Generate a positional INSERT with `count` bound parameters.

    Returns
        SQL query string with placeholders
    """
    quoted_table = quote_identifier(table_name, dialect)
    return f'INSERT INTO {quoted_table} VALUES ({make_placeholders(count, dialect)})'
