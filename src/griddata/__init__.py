"""
Bridge between tabular host grids and relational database tables.

Export drops and recreates a table from a grid's columns and loads its
records in one transaction. Import runs a statement and exposes its result
as a single-pass record stream.

    exporter = GridDataExporter()
    result = exporter.open_data(
        {'connection_string': 'sqlite:///prices.db', 'table_name': 'prices'},
        GridRecords.from_frame(df, keys=['id']))
"""
__version__ = '0.1.0'

from griddata.connection import ConnectionWrapper, connect
from griddata.exceptions import BuildError, ConfigurationError
from griddata.exceptions import ConnectionFailure, DbConnectionError
from griddata.exceptions import ExportError, FormatError, GridDataError
from griddata.exceptions import InsertError, IntegrityError, QueryError
from griddata.exceptions import SchemaError, StreamExhausted
from griddata.exporter import GridDataExporter
from griddata.formatting import format_value
from griddata.importer import GridDataImporter, ImportedRecord, ImportSession
from griddata.importer import ResultStream
from griddata.introspection import get_physical_columns
from griddata.options import ExportOptions, GridDataOptions, ImportOptions
from griddata.reconcile import ColumnProjection, project_row, reconcile
from griddata.results import ExportResult, ImportResult
from griddata.sql_generation import build_create_table
from griddata.sync import SyncResult, TableSync
from griddata.transaction import Transaction as transaction
from griddata.type_mapping import map_storage_type
from griddata.types import ColumnKind, ColumnType, CultureMode, GridRecord
from griddata.types import GridRecords, LogicalColumn, PhysicalColumn
from griddata.types import StorageType

__all__ = [
    # Entry points
    'GridDataExporter',
    'GridDataImporter',
    'ImportSession',
    'ResultStream',
    'ImportedRecord',
    'ExportResult',
    'ImportResult',
    # Options
    'GridDataOptions',
    'ExportOptions',
    'ImportOptions',
    # Data model
    'ColumnType',
    'StorageType',
    'CultureMode',
    'ColumnKind',
    'LogicalColumn',
    'PhysicalColumn',
    'GridRecord',
    'GridRecords',
    # Pipeline
    'format_value',
    'map_storage_type',
    'build_create_table',
    'get_physical_columns',
    'reconcile',
    'project_row',
    'ColumnProjection',
    'TableSync',
    'SyncResult',
    # Connections
    'connect',
    'ConnectionWrapper',
    'transaction',
    # Exceptions
    'GridDataError',
    'ConfigurationError',
    'ConnectionFailure',
    'SchemaError',
    'BuildError',
    'FormatError',
    'InsertError',
    'ExportError',
    'QueryError',
    'StreamExhausted',
    'DbConnectionError',
    'IntegrityError',
]
