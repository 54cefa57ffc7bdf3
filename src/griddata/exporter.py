"""
Grid export: write a host grid to a database table.

`GridDataExporter.open_data` is the host-facing entry point. It validates
options before touching the database, owns one connection for the duration
of the call and reports the outcome as an ExportResult instead of raising.
"""
import logging
import threading
from typing import Any

from griddata.connection import connect
from griddata.exceptions import ExportError, GridDataError
from griddata.options import ExportOptions, load_grid_options
from griddata.results import ExportResult
from griddata.sync import TableSync
from griddata.types import GridRecords

logger = logging.getLogger(__name__)

__all__ = ['GridDataExporter']


class GridDataExporter:
    """Export host grids to database tables.

    Calls on one exporter are serialized: the lock is held from connection
    open through commit and close.

    Examples
        exporter = GridDataExporter()
        result = exporter.open_data(
            {'connection_string': 'sqlite:///prices.db', 'table_name': 'prices'},
            GridRecords.from_frame(df, keys=['id']))
        if not result:
            print(result.message)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.last_result: ExportResult | None = None

    def get_data_summary(self, options: ExportOptions | dict[str, Any] | str,
                         config: Any | None = None, **kw: Any) -> str | None:
        """Describe where an export writes, e.g. `Exporting to <cs> : <table> table`.

        Returns None when no table name is set.
        """
        options = load_grid_options(ExportOptions, options, config, **kw)
        if not options.table_name:
            return None
        return f'Exporting to {options.connection_string} : {options.table_name} table'

    def open_data(self, options: ExportOptions | dict[str, Any] | str,
                  records: GridRecords, config: Any | None = None,
                  **kw: Any) -> ExportResult:
        """Replace the options' table with `records`.

        Args:
            options: ExportOptions, a dict of option values or a config setting name
            records: Host grid with logical columns and records
            config: Configuration object (for loading from config files)
            **kw: Additional keyword arguments to override options

        Returns
            ExportResult; failed with a user-facing message on any error
        """
        try:
            options = load_grid_options(ExportOptions, options, config, **kw)
        except (TypeError, ValueError) as err:
            return self._finish(ExportResult.failure(f'Invalid export options: {err}'))

        message = options.validate()
        if message:
            logger.warning(message)
            return self._finish(ExportResult.failure(message, options.table_name))

        with self._lock:
            try:
                with connect(options) as cn:
                    engine = TableSync(options.datetime_format)
                    synced = engine.sync(options.table_name, records.columns, records,
                                         cn, options.timeout)
            except ExportError as err:
                return self._finish(ExportResult.failure(str(err), options.table_name))
            except GridDataError as err:
                error = ExportError(options.table_name, err)
                logger.error(str(error))
                return self._finish(ExportResult.failure(str(error), options.table_name))

        return self._finish(ExportResult.success(synced.table_name, synced.row_count))

    def _finish(self, result: ExportResult) -> ExportResult:
        self.last_result = result
        return result
