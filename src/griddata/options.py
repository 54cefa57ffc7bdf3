from dataclasses import dataclass, fields, replace
from typing import Any

from griddata.exceptions import ConfigurationError
from griddata.formatting import DEFAULT_DATETIME_FORMAT

from libb import ConfigOptions, load_options

__all__ = [
    'GridDataOptions',
    'ExportOptions',
    'ImportOptions',
    'load_grid_options',
]


def _is_blank(value: Any) -> bool:
    return value is None or not str(value).strip()


@dataclass
class GridDataOptions(ConfigOptions):
    """Options shared by export and import

    connection_string: SQLAlchemy URL (`sqlite:///data.db`,
        `postgresql+psycopg://user:pw@host/db`) or an ADO-style SQLite
        string (`Data Source=data.db;Version=3`, `URI=file:data.db`)
    timeout: seconds allowed for connecting and for each command; must be > 0
    """
    connection_string: str = None
    timeout: int = 30

    def __post_init__(self):
        try:
            self.timeout = int(str(self.timeout).strip())
        except (TypeError, ValueError):
            self.timeout = 0

    def validate(self) -> str | None:
        """Return the first user-facing problem with these options, or None.
        """
        if _is_blank(self.connection_string):
            return 'The Connection String parameter is not specified'
        if self.timeout <= 0:
            return 'The Connection TimeOut parameter needs to be greater than zero'
        return None

    def require_valid(self) -> None:
        """Raise ConfigurationError if `validate` reports a problem."""
        message = self.validate()
        if message:
            raise ConfigurationError(message)


@dataclass
class ExportOptions(GridDataOptions):
    """Export options

    datetime_format: strftime pattern (or .NET-style, e.g. yyyy-MM-dd HH:mm:ss)
        DateTime values are written with
    table_name: target table, dropped and recreated on every export
    """
    datetime_format: str = DEFAULT_DATETIME_FORMAT
    table_name: str = None

    def validate(self) -> str | None:
        message = super().validate()
        if message:
            return message
        if _is_blank(self.datetime_format):
            return 'The DateTime Format parameter is not specified'
        if _is_blank(self.table_name):
            return 'The Database Table Name parameter is not specified'
        return None


@dataclass
class ImportOptions(GridDataOptions):
    """Import options

    sql_statement: statement whose result set is exposed as records
    """
    sql_statement: str = None

    def validate(self) -> str | None:
        message = super().validate()
        if message:
            return message
        if _is_blank(self.sql_statement):
            return 'The SQL Statement parameter is not specified'
        return None


def load_grid_options(cls: type[GridDataOptions], options: Any,
                      config: Any | None = None, **kw: Any) -> GridDataOptions:
    """Load `cls` options from an instance, a dict or a config setting name.

    Keyword arguments naming an option field override the loaded value; an
    instance is copied rather than modified.
    """
    if isinstance(options, cls):
        overrides = {f.name: kw[f.name] for f in fields(options) if f.name in kw}
        return replace(options, **overrides) if overrides else options
    options_func = load_options(cls=cls)(lambda o, c: o)
    return options_func(options, config, **kw)
