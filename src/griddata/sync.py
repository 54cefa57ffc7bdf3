"""
Table synchronization: materialize a grid as a freshly created table.

Each sync drops the target table, recreates it from the logical columns,
re-reads the physical schema from the database and loads every record in a
single transaction. Any failure rolls the inserts back and surfaces as one
ExportError.
"""
import logging
import threading
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from griddata.exceptions import ExportError, InsertError, SchemaError
from griddata.formatting import DEFAULT_DATETIME_FORMAT
from griddata.introspection import get_physical_columns
from griddata.reconcile import ColumnProjection
from griddata.sql_generation import build_create_table, build_drop_table
from griddata.sql_generation import build_insert_sql
from griddata.transaction import Transaction
from griddata.types import LogicalColumn, LogicalRecord, PhysicalColumn

logger = logging.getLogger(__name__)

__all__ = ['TableSync', 'SyncResult']


@dataclass
class SyncResult:
    """Outcome of one successful sync."""
    table_name: str
    row_count: int
    physical_columns: list[PhysicalColumn] = field(default_factory=list)
    elapsed: float = 0.0


class TableSync:
    """Drop, create and load a table from logical columns and records.

    One engine serializes its syncs; two threads calling `sync` on the same
    instance never interleave.

    Examples
        engine = TableSync()
        with connect(options) as cn:
            result = engine.sync('prices', records.columns, records, cn)
    """

    def __init__(self, datetime_format: str = DEFAULT_DATETIME_FORMAT) -> None:
        self.datetime_format = datetime_format
        self._lock = threading.Lock()

    def sync(self, table_name: str, logical_columns: Sequence[LogicalColumn],
             records: Iterable[LogicalRecord], cn: Any,
             timeout: int | None = None) -> SyncResult:
        """Replace `table_name` with the given records.

        Args:
            table_name: Target table, dropped if it exists
            logical_columns: Host columns in declaration order
            records: Host records, read once in order
            cn: Open ConnectionWrapper, left open
            timeout: Per-command timeout in seconds for this call (defaults to the
                connection's); the connection's own timeout is restored afterwards

        Returns
            SyncResult with the inserted row count and the table's columns

        Raises
            ExportError: Wrapping a SchemaError or InsertError cause
        """
        with self._lock:
            previous_timeout = cn.timeout
            if timeout is not None:
                cn.timeout = timeout
            start = time.time()
            try:
                physical_columns = self._create_table(table_name, logical_columns, cn)
                row_count = self._load(table_name, physical_columns, logical_columns,
                                       records, cn)
            except Exception as err:
                logger.error(f'Export to {table_name} failed: {err}')
                raise ExportError(table_name, err) from err
            finally:
                cn.timeout = previous_timeout

            elapsed = time.time() - start
            logger.info(f'Exported {row_count} rows to {table_name} in {elapsed:.2f}s')
            return SyncResult(table_name, row_count, physical_columns, elapsed)

    def _create_table(self, table_name: str, logical_columns: Sequence[LogicalColumn],
                      cn: Any) -> list[PhysicalColumn]:
        create_sql = build_create_table(table_name, logical_columns, cn.dialect,
                                        self.datetime_format)
        try:
            cn.execute(build_drop_table(table_name, cn.dialect))
            cn.execute(create_sql)
            return get_physical_columns(cn, table_name)
        except SchemaError:
            raise
        except Exception as err:
            raise SchemaError(f'Cannot create table {table_name}: {err}') from err

    def _load(self, table_name: str, physical_columns: list[PhysicalColumn],
              logical_columns: Sequence[LogicalColumn],
              records: Iterable[LogicalRecord], cn: Any) -> int:
        projection = ColumnProjection.build(physical_columns, logical_columns,
                                            self.datetime_format)
        insert_sql = build_insert_sql(table_name, projection.width, cn.dialect)

        count = 0
        with Transaction(cn) as tx:
            for values in projection.rows(records):
                try:
                    tx.execute(insert_sql, *values)
                except Exception as err:
                    raise InsertError(count, err) from err
                count += 1
        return count
