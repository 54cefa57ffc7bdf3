"""
Column reconciliation and row projection.

Reconciliation binds each physical column, in table order, to the logical
column of the same name. Projection turns one host record into the tuple of
formatted values bound to the INSERT, one slot per physical column.
"""
import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

from griddata.formatting import DEFAULT_DATETIME_FORMAT, format_value
from griddata.types import LogicalColumn, LogicalRecord, PhysicalColumn

logger = logging.getLogger(__name__)

__all__ = [
    'reconcile',
    'ColumnProjection',
    'project_row',
    'project_rows',
]


def _find_logical_index(name: str, logical_columns: Sequence[LogicalColumn]) -> int | None:
    folded = name.casefold()
    for index, column in enumerate(logical_columns):
        if column.name.casefold() == folded:
            return index
    return None


def reconcile(physical_columns: Sequence[PhysicalColumn],
              logical_columns: Sequence[LogicalColumn]) -> list[int | None]:
    """Map each physical column to the index of its logical column.

    Matching is case-insensitive and always picks the first logical column
    with the name, so duplicate logical names all bind to the first one.

    Returns
        One entry per physical column: a logical index, or None when no
        logical column has that name
    """
    mapping = [_find_logical_index(col.name, logical_columns) for col in physical_columns]
    unmatched = [col.name for col, index in zip(physical_columns, mapping) if index is None]
    if unmatched:
        logger.debug(f'Physical columns with no logical column, written as NULL: {unmatched}')
    return mapping


def project_row(record: LogicalRecord, mapping: Sequence[int | None],
                logical_columns: Sequence[LogicalColumn],
                datetime_format: str = DEFAULT_DATETIME_FORMAT) -> tuple[str | None, ...]:
    """Format one record into insert values, ordered by physical column.
    """
    values = []
    for index in mapping:
        if index is None:
            values.append(None)
            continue
        column = logical_columns[index]
        values.append(format_value(record.get_string(index), record.get_native(index),
                                   column.declared_type, column.culture_mode,
                                   datetime_format))
    return tuple(values)


def project_rows(records: Iterable[LogicalRecord], mapping: Sequence[int | None],
                 logical_columns: Sequence[LogicalColumn],
                 datetime_format: str = DEFAULT_DATETIME_FORMAT) -> Iterator[tuple]:
    """Lazily project records in host order."""
    for record in records:
        yield project_row(record, mapping, logical_columns, datetime_format)


@dataclass
class ColumnProjection:
    """A reconciled mapping reused for every record of one export.

    Examples
        projection = ColumnProjection.build(physical, logical, '%Y-%m-%d')
        for values in projection.rows(records):
            ...
    """
    physical_columns: list[PhysicalColumn]
    logical_columns: list[LogicalColumn]
    mapping: list[int | None]
    datetime_format: str = DEFAULT_DATETIME_FORMAT

    @classmethod
    def build(cls, physical_columns: Sequence[PhysicalColumn],
              logical_columns: Sequence[LogicalColumn],
              datetime_format: str = DEFAULT_DATETIME_FORMAT) -> 'ColumnProjection':
        return cls(list(physical_columns), list(logical_columns),
                   reconcile(physical_columns, logical_columns), datetime_format)

    @property
    def width(self) -> int:
        return len(self.mapping)

    def row(self, record: LogicalRecord) -> tuple:
        return project_row(record, self.mapping, self.logical_columns, self.datetime_format)

    def rows(self, records: Iterable[LogicalRecord]) -> Iterator[tuple]:
        return project_rows(records, self.mapping, self.logical_columns, self.datetime_format)
