"""
Grid import: expose the result of a SQL statement as host records.

This module provides:
1. `ImportSession`, the long-lived connection shared by a host session
2. `ResultStream`, a single-pass record stream over one statement's result
3. `GridDataImporter`, the host-facing entry point returning ImportResult
"""
import datetime
import logging
from collections.abc import Iterator, Sequence
from typing import Any

import pandas as pd
from griddata.connection import ConnectionWrapper, connect
from griddata.exceptions import ConnectionFailure, DbConnectionError
from griddata.exceptions import GridDataError, QueryError, StreamExhausted
from griddata.introspection import ResultColumn, columns_from_cursor
from griddata.options import ImportOptions, load_grid_options
from griddata.results import ImportResult
from griddata.types import to_grid_string

logger = logging.getLogger(__name__)

__all__ = [
    'ImportSession',
    'ImportedRecord',
    'ResultStream',
    'GridDataImporter',
]


class ImportSession:
    """One lazily opened connection for the lifetime of a host session.

    The connection opens on first use, is replaced when the connection
    string changes and is reopened once if it stops responding.
    """

    def __init__(self) -> None:
        self.options: ImportOptions | None = None
        self._cn: ConnectionWrapper | None = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def connection(self) -> ConnectionWrapper | None:
        return self._cn

    @property
    def is_open(self) -> bool:
        return self._cn is not None and not self._cn.closed

    def ensure_open(self, options: ImportOptions) -> ConnectionWrapper:
        """Return an open connection for `options`, opening or replacing as needed.
        """
        if self.options is not None and self.options.connection_string != options.connection_string:
            logger.debug('Connection string changed, closing the previous connection')
            self.close()
        self.options = options
        if not self.is_open:
            self._cn = connect(options)
        else:
            self._cn.timeout = options.timeout
        return self._cn

    def check(self) -> ConnectionWrapper:
        """Return a usable connection, reopening a dead one once.

        Raises
            ConnectionFailure: If there are no options, or the reopened
            connection is still unusable
        """
        if self.options is None:
            raise ConnectionFailure('Import session has not been opened')

        if self.is_open:
            try:
                self._cn.ping()
                return self._cn
            except DbConnectionError as err:
                logger.warning(f'Import connection is unusable, reopening: {err}')
                self.close()

        self._cn = connect(self.options)
        try:
            self._cn.ping()
        except DbConnectionError as err:
            self.close()
            raise ConnectionFailure(f'Connection is unusable after reopening: {err}') from err
        return self._cn

    def close(self) -> None:
        """Close the connection if open. Safe to call repeatedly."""
        if self._cn is None:
            return
        cn, self._cn = self._cn, None
        try:
            cn.close()
        except Exception as err:
            logger.debug(f'Error closing import connection: {err}')


class ImportedRecord:
    """One result row, read by column index as invariant text.

    Datetimes are rendered with `str()` so the host parses them in its
    own locale; `is_datetime` tells the host which columns those are.
    """

    __slots__ = ('_values',)

    def __init__(self, values: Sequence[Any]) -> None:
        self._values = tuple(values)

    def __len__(self) -> int:
        return len(self._values)

    def __getitem__(self, index: int) -> str:
        value = self._values[index]
        if isinstance(value, datetime.date | datetime.time):
            return str(value)
        return to_grid_string(value)

    def __repr__(self) -> str:
        return f'ImportedRecord({self._values!r})'

    def get_native(self, index: int) -> Any:
        return self._values[index]

    def is_datetime(self, index: int) -> bool:
        return isinstance(self._values[index], datetime.date | datetime.time)


class ResultStream:
    """Single-pass stream over the result of one statement.

    The statement runs at most once: the first access to `columns` or the
    first iteration executes it and caches the fetched rows. After one full
    pass the stream is exhausted and iterating it again raises
    StreamExhausted.

    Examples
        stream = ResultStream(session, 'select * from prices')
        names = [col.name for col in stream.columns]
        for record in stream:
            print(record[0])
    """

    def __init__(self, session: ImportSession, sql_statement: str) -> None:
        self.session = session
        self.sql_statement = sql_statement
        self._columns: list[ResultColumn] | None = None
        self._rows: list[tuple] | None = None
        self._started = False
        self.exhausted = False

    def _execute(self) -> None:
        if self._rows is not None:
            return
        cn = self.session.check()
        try:
            with cn.cursor() as cursor:
                cursor.execute(self.sql_statement)
                description = cursor.description
                rows = [tuple(row) for row in cursor.fetchall()] if description else []
        except Exception as err:
            raise QueryError(f'Error executing statement: {err}') from err
        self._rows = rows
        self._columns = columns_from_cursor(description, rows)
        logger.debug(f'Statement returned {len(rows)} rows in {len(self._columns)} columns')

    @property
    def columns(self) -> list[ResultColumn]:
        """Result columns, executing the statement if it has not run yet."""
        self._execute()
        return self._columns

    def __iter__(self) -> Iterator[ImportedRecord]:
        if self.exhausted or self._started:
            raise StreamExhausted('Result stream has already been read')
        self._execute()
        self._started = True
        return self._iter_records()

    def _iter_records(self) -> Iterator[ImportedRecord]:
        for row in self._rows:
            yield ImportedRecord(row)
        self.exhausted = True

    def to_frame(self) -> pd.DataFrame:
        """Load the result into a DataFrame with the result's column names.
        """
        self._execute()
        return pd.DataFrame.from_records(self._rows, columns=[col.name for col in self._columns])


class GridDataImporter:
    """Bind SQL statements to host grids.

    Examples
        importer = GridDataImporter()
        result = importer.open_data({'connection_string': 'sqlite:///prices.db',
                                     'sql_statement': 'select * from prices'})
        if result:
            frame = result.records.to_frame()
        importer.close()
    """

    def __init__(self, session: ImportSession | None = None) -> None:
        self.session = session or ImportSession()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def get_data_summary(self, options: ImportOptions | dict[str, Any] | str,
                         config: Any | None = None, **kw: Any) -> str | None:
        """Describe what an import reads, e.g. `Bound to <cs> : '<sql>' statement`.

        Returns None when no statement is set.
        """
        options = load_grid_options(ImportOptions, options, config, **kw)
        if not options.sql_statement:
            return None
        return f"Bound to {options.connection_string} : '{options.sql_statement}' statement"

    def open_data(self, options: ImportOptions | dict[str, Any] | str,
                  config: Any | None = None, **kw: Any) -> ImportResult:
        """Open the session's connection and bind the statement.

        The statement itself runs when the stream is first read.

        Returns
            ImportResult carrying a ResultStream; failed with a user-facing
            message on invalid options or connection failure
        """
        try:
            options = load_grid_options(ImportOptions, options, config, **kw)
        except (TypeError, ValueError) as err:
            return ImportResult.failure(f'Invalid import options: {err}')

        message = options.validate()
        if message:
            logger.warning(message)
            return ImportResult.failure(message)

        try:
            self.session.ensure_open(options)
        except GridDataError as err:
            logger.error(f'There was a problem importing. Err={err}')
            return ImportResult.failure(f'There was a problem importing. Err={err}')

        return ImportResult.success(ResultStream(self.session, options.sql_statement))

    def close(self) -> None:
        self.session.close()
