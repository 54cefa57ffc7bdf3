"""
Grid data model shared by the export and import paths.

This module provides:
- ColumnType / StorageType: host declared types and database storage affinity
- LogicalColumn: a host column definition for one export call
- PhysicalColumn: a column as it exists in the database after creation
- GridRecord / GridRecords: plain record stream implementations of the host
  grid contract (string and native accessors per column)
"""
import datetime
import logging
import math
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, Self

import numpy as np
import pandas as pd

from libb import is_null

logger = logging.getLogger(__name__)


class ColumnType(Enum):
    """Declared type of a host column."""
    INTEGER = 'Integer'
    REAL = 'Real'
    TEXT = 'Text'
    DATETIME = 'DateTime'

    @classmethod
    def coerce(cls, value: Any) -> Self | None:
        """Resolve an enum member, type name or Python/numpy type.

        Returns None for anything unrecognized; downstream treats that
        as an unknown type (TEXT storage, pass-through formatting).
        """
        if value is None or isinstance(value, cls):
            return value

        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if lowered in {member.name.lower(), member.value.lower()}:
                    return member
            return None

        if isinstance(value, type):
            if issubclass(value, bool):
                return None
            if issubclass(value, (int, np.integer)):
                return cls.INTEGER
            if issubclass(value, (float, np.floating)):
                return cls.REAL
            if issubclass(value, (datetime.datetime, datetime.date, np.datetime64)):
                return cls.DATETIME
            if issubclass(value, str):
                return cls.TEXT
            return None

        if isinstance(value, np.dtype) or pd.api.types.is_extension_array_dtype(value):
            return _coerce_dtype(value)

        return None


def _coerce_dtype(dtype: Any) -> ColumnType | None:
    """Map a numpy or pandas dtype to a declared column type."""
    if pd.api.types.is_bool_dtype(dtype):
        return None
    if pd.api.types.is_integer_dtype(dtype):
        return ColumnType.INTEGER
    if pd.api.types.is_float_dtype(dtype):
        return ColumnType.REAL
    if pd.api.types.is_datetime64_any_dtype(dtype):
        return ColumnType.DATETIME
    if pd.api.types.is_string_dtype(dtype) or pd.api.types.is_object_dtype(dtype):
        return ColumnType.TEXT
    return None


class StorageType(Enum):
    """Database column type affinity."""
    INTEGER = 'INTEGER'
    REAL = 'REAL'
    TEXT = 'TEXT'


class CultureMode(Enum):
    """Which numeric conventions to parse a value with."""
    INVARIANT = 'invariant'
    CURRENT = 'current'


class ColumnKind(Enum):
    """Where a host column comes from.

    Table property values are always written invariant; per-record field
    values are written in the caller's active locale.
    """
    TABLE_PROPERTY = 'table_property'
    FIELD = 'field'


@dataclass(frozen=True, slots=True)
class LogicalColumn:
    """A host column definition, immutable for one export call."""
    name: str
    declared_type: ColumnType | None = ColumnType.TEXT
    is_key: bool = False
    default_value: Any = None
    default_string: str | None = None
    kind: ColumnKind = ColumnKind.TABLE_PROPERTY

    def __post_init__(self):
        object.__setattr__(self, 'declared_type', ColumnType.coerce(self.declared_type))
        if self.default_value is not None and self.default_string is None:
            object.__setattr__(self, 'default_string', to_grid_string(self.default_value))

    @property
    def culture_mode(self) -> CultureMode:
        if self.kind is ColumnKind.TABLE_PROPERTY:
            return CultureMode.INVARIANT
        return CultureMode.CURRENT


@dataclass(frozen=True, slots=True)
class PhysicalColumn:
    """A column as reported by the live database."""
    name: str
    storage_type: StorageType
    allows_null: bool = True
    declared_type: str | None = None


class LogicalRecord(Protocol):
    """One host record aligned to the export's logical columns."""

    def get_string(self, index: int) -> str: ...

    def get_native(self, index: int) -> Any: ...


def to_grid_string(value: Any) -> str:
    """Render a native value the way a host grid displays it, invariant.
    """
    if isinstance(value, float | np.floating):
        if math.isnan(value):
            return 'NaN'
        if math.isinf(value):
            return 'Infinity' if value > 0 else '-Infinity'
        return repr(float(value))
    if is_null(value):
        return ''
    if isinstance(value, np.integer):
        return str(value.item())
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime().isoformat(sep=' ')
    if isinstance(value, datetime.datetime):
        return value.isoformat(sep=' ')
    if isinstance(value, datetime.date):
        return value.isoformat()
    return str(value)


class GridRecord:
    """A record over a sequence of native values.

    String forms are derived from the native values unless given.
    """

    __slots__ = ('_natives', '_strings')

    def __init__(self, natives: Sequence[Any], strings: Sequence[str] | None = None) -> None:
        self._natives = tuple(natives)
        if strings is not None and len(strings) != len(self._natives):
            raise ValueError('strings must be same length as natives')
        self._strings = tuple(strings) if strings is not None else None

    def __len__(self) -> int:
        return len(self._natives)

    def __repr__(self) -> str:
        return f'GridRecord({self._natives!r})'

    def get_string(self, index: int) -> str:
        if self._strings is not None:
            return self._strings[index]
        return to_grid_string(self._natives[index])

    def get_native(self, index: int) -> Any:
        return self._natives[index]


@dataclass
class GridRecords:
    """A host grid: ordered logical columns plus a lazily iterable record source.

    Examples
        records = GridRecords(
            [LogicalColumn('id', ColumnType.INTEGER, is_key=True),
             LogicalColumn('name', ColumnType.TEXT)],
            [(1, 'a'), (2, 'b')])
    """
    columns: list[LogicalColumn]
    rows: Iterable[Any] = field(default_factory=list)

    def __iter__(self) -> Iterator[LogicalRecord]:
        for row in self.rows:
            if hasattr(row, 'get_string') and hasattr(row, 'get_native'):
                yield row
            else:
                yield GridRecord(row)

    @classmethod
    def from_dicts(cls, columns: list[LogicalColumn],
                   rows: Iterable[Mapping[str, Any]]) -> Self:
        """Build re-iterable records from dicts keyed by column name (missing keys are None)."""
        names = [col.name for col in columns]
        return cls(columns, [tuple(row.get(name) for name in names) for row in rows])

    @classmethod
    def from_frame(cls, df: pd.DataFrame, keys: Sequence[str] = (),
                   kind: ColumnKind = ColumnKind.TABLE_PROPERTY) -> Self:
        """Build records from a DataFrame, declaring column types from dtypes.
        """
        missing = set(keys) - set(df.columns)
        if missing:
            raise ValueError(f'Key columns not in frame: {sorted(missing)}')

        columns = [
            LogicalColumn(
                name=str(name),
                declared_type=_coerce_dtype(dtype),
                is_key=name in keys,
                kind=kind)
            for name, dtype in df.dtypes.items()
            ]
        logger.debug(f'Derived {len(columns)} columns from frame')
        return cls(columns, list(df.itertuples(index=False, name=None)))
