"""
SQL text helpers for statement generation.

- `quote_identifier()` - Quote table/column names
- `quote_literal()` - Quote a string literal for interpolation into DDL
- `make_placeholders()` - Bound parameter markers for a dialect
"""
import logging

from griddata.strategy import get_strategy

logger = logging.getLogger(__name__)


def quote_identifier(identifier: str, dialect: str = 'sqlite') -> str:
    """Safely quote database identifiers.

    Tolerates reserved words and embedded spaces; embedded double quotes
    are doubled.

    Parameters
        identifier: Table or column name
        dialect: Database dialect

    Returns
        Quoted identifier

    Raises
        ValueError: If dialect is unsupported
    """
    if dialect in {'postgresql', 'sqlite'}:
        return '"' + identifier.replace('"', '""') + '"'

    raise ValueError(f'Unknown dialect: {dialect}')


def quote_literal(value: str) -> str:
    """Quote a string literal, doubling embedded single quotes.

    The value is still interpolated into the SQL text; only DDL defaults
    go through here; row values are bound as parameters.
    """
    return "'" + value.replace("'", "''") + "'"


def make_placeholders(count: int, dialect: str = 'sqlite') -> str:
    """Return `count` comma separated parameter markers for a dialect.

    Raises
        ValueError: If dialect is unsupported
    """
    marker = get_strategy(dialect).get_placeholder_style()
    return ', '.join([marker] * count)
