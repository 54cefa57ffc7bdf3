"""
Storage type resolution for grid columns.

Maps host declared column types to database storage affinities on the way
out, and database declared type names back to storage affinities and Python
types on the way in.
"""
import logging
from typing import Any

from griddata.types import ColumnType, StorageType

logger = logging.getLogger(__name__)

_STORAGE_BY_DECLARED: dict[ColumnType, StorageType] = {
    ColumnType.REAL: StorageType.REAL,
    ColumnType.INTEGER: StorageType.INTEGER,
}

_PYTHON_BY_STORAGE: dict[StorageType, type] = {
    StorageType.INTEGER: int,
    StorageType.REAL: float,
    StorageType.TEXT: str,
}

# Substring rules checked in order, after SQLite's column affinity rules
_AFFINITY_RULES: list[tuple[tuple[str, ...], StorageType]] = [
    (('INT',), StorageType.INTEGER),
    (('CHAR', 'CLOB', 'TEXT'), StorageType.TEXT),
    (('REAL', 'FLOA', 'DOUB', 'NUMERIC', 'DECIMAL'), StorageType.REAL),
]


def map_storage_type(declared_type: Any) -> StorageType:
    """Map a logical column's declared type to a storage affinity.

    Real maps to REAL and Integer to INTEGER. Everything else, including
    Text, DateTime and unrecognized types, maps to TEXT.
    """
    return _STORAGE_BY_DECLARED.get(ColumnType.coerce(declared_type), StorageType.TEXT)


def storage_type_from_declared(type_name: Any) -> StorageType:
    """Resolve a database declared type name (e.g. 'INTEGER', 'VARCHAR(20)',
    'double precision') to a storage affinity.
    """
    if isinstance(type_name, StorageType):
        return type_name
    if not type_name:
        return StorageType.TEXT

    upper = str(type_name).upper()
    for fragments, storage_type in _AFFINITY_RULES:
        if any(fragment in upper for fragment in fragments):
            return storage_type

    logger.debug(f'No affinity rule for declared type {type_name!r}, using TEXT')
    return StorageType.TEXT


def python_type_for(storage_type: StorageType) -> type:
    """Return the Python type values of a storage affinity read back as."""
    return _PYTHON_BY_STORAGE[storage_type]
