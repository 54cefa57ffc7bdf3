"""
Live schema introspection.

Physical columns are always read from the database after the table is
created, never from the logical column list that produced the DDL, so
the insert path binds exactly what the database reports.
"""
import datetime
import logging
from dataclasses import dataclass
from typing import Any

import sqlalchemy as sa
from griddata.exceptions import SchemaError
from griddata.sql_generation import build_probe_sql
from griddata.type_mapping import storage_type_from_declared
from griddata.types import PhysicalColumn, StorageType

logger = logging.getLogger(__name__)

__all__ = [
    'get_physical_columns',
    'get_reported_columns',
    'ResultColumn',
    'columns_from_cursor',
]


def get_reported_columns(cn: Any, table_name: str) -> dict[str, dict[str, Any]]:
    """Return the inspector's column info keyed by casefolded column name.
    """
    inspector = sa.inspect(cn.sa_connection)
    try:
        reported = inspector.get_columns(table_name)
    except sa.exc.NoSuchTableError as err:
        raise SchemaError(f'Table {table_name} does not exist') from err
    return {str(col['name']).casefold(): col for col in reported}


def get_physical_columns(cn: Any, table_name: str) -> list[PhysicalColumn]:
    """Read a table's columns, in table order, from the live database.

    Names and order come from a zero-row probe query; declared types and
    nullability come from the SQLAlchemy inspector. A column the inspector
    does not report is treated as nullable TEXT.
    """
    with cn.cursor() as cursor:
        cursor.execute(build_probe_sql(table_name, cn.dialect))
        names = [desc[0] for desc in cursor.description or ()]
        cursor.fetchall()

    reported = get_reported_columns(cn, table_name)

    columns = []
    for name in names:
        info = reported.get(str(name).casefold())
        if info is None:
            columns.append(PhysicalColumn(name, StorageType.TEXT))
            continue
        declared = str(info['type'])
        columns.append(PhysicalColumn(
            name=name,
            storage_type=storage_type_from_declared(declared),
            allows_null=bool(info.get('nullable', True)),
            declared_type=declared))

    logger.debug(f'Table {table_name} has columns {[col.name for col in columns]}')
    return columns


@dataclass(frozen=True)
class ResultColumn:
    """A result set column seen by the import path."""
    name: str
    python_type: type | None = None

    @property
    def is_datetime(self) -> bool:
        return self.python_type is not None and issubclass(
            self.python_type, datetime.date | datetime.datetime)


def _first_value_type(rows: list[tuple], index: int) -> type | None:
    for row in rows:
        if row[index] is not None:
            return type(row[index])
    return None


def columns_from_cursor(description: Any, rows: list[tuple]) -> list[ResultColumn]:
    """Build result columns from a cursor description.

    Drivers do not reliably report Python types in the description (sqlite3
    never does), so each column's type is the type of its first non-null
    value, or None for an all-null column.
    """
    if not description:
        return []
    return [ResultColumn(str(desc[0]), _first_value_type(rows, i))
            for i, desc in enumerate(description)]
