"""
Type-directed value formatting for export.

Converts one field value, given as both its string form and its native form,
into the normalized string that is bound for the database:

    (raw string, native value) → classify native → parse string → canonical text

Every failure path returns None, which is written as SQL NULL. Nothing in this
module raises on bad input.
"""
import datetime
import decimal
import locale
import logging
import math
import re
from typing import Any

import dateutil.parser
import numpy as np
import pandas as pd
from griddata.types import ColumnType, CultureMode

from libb import is_null

logger = logging.getLogger(__name__)

POSITIVE_INFINITY = 'Infinity'
NEGATIVE_INFINITY = '-Infinity'
DEFAULT_DATETIME_FORMAT = '%Y-%m-%d %H:%M:%S'

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

_NUMBER = re.compile(r'[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')
_POSITIVE_INFINITY_TOKENS = {'infinity', '+infinity', 'inf', '+inf', '∞', '+∞'}
_NEGATIVE_INFINITY_TOKENS = {'-infinity', '-inf', '-∞'}
_NAN_TOKENS = {'nan', '+nan', '-nan'}

# .NET-style date/time tokens, longest first
_DOTNET_TOKENS = re.compile(r'yyyy|yy|MMMM|MMM|MM|dddd|ddd|dd|HH|hh|mm|ss|tt')
_DOTNET_TO_STRFTIME = {
    'yyyy': '%Y', 'yy': '%y',
    'MMMM': '%B', 'MMM': '%b', 'MM': '%m',
    'dddd': '%A', 'ddd': '%a', 'dd': '%d',
    'HH': '%H', 'hh': '%I', 'mm': '%M', 'ss': '%S', 'tt': '%p',
}


def strftime_pattern(fmt: str | None) -> str:
    """Return a strftime pattern for `fmt`.

    Patterns containing '%' are used as-is. Otherwise .NET-style tokens
    (yyyy-MM-dd HH:mm:ss) are translated so configurations written for the
    host's native format keep working.

    >>> strftime_pattern('yyyy-MM-dd HH:mm:ss')
    '%Y-%m-%d %H:%M:%S'
    >>> strftime_pattern('%d/%m/%Y')
    '%d/%m/%Y'
    """
    if not fmt:
        return DEFAULT_DATETIME_FORMAT
    if '%' in fmt:
        return fmt
    return _DOTNET_TOKENS.sub(lambda m: _DOTNET_TO_STRFTIME[m.group(0)], fmt)


def _separators(culture: CultureMode) -> tuple[str, str]:
    """Return (decimal point, group separator) for a culture."""
    if culture is CultureMode.INVARIANT:
        return '.', ','
    conv = locale.localeconv()
    return conv.get('decimal_point') or '.', conv.get('thousands_sep') or ''


def _normalize_number(text: str, culture: CultureMode) -> str | None:
    """Strip group separators and convert the decimal point to '.'.

    Returns None when the result is not a plain decimal/exponent literal.
    """
    point, group = _separators(culture)
    text = text.strip()
    if group:
        text = text.replace(group, '')
        if group.isspace():
            text = text.replace('\xa0', '').replace('\u202f', '').replace(' ', '')
    if point != '.':
        if '.' in text:
            return None
        text = text.replace(point, '.')
    if not _NUMBER.fullmatch(text):
        return None
    return text


def parse_integer(text: str | None, culture: CultureMode = CultureMode.INVARIANT) -> int | None:
    """Parse a 64-bit signed integer in the given culture.

    A fractional part is accepted only when it is zero ('12.0' → 12).
    """
    if not text:
        return None
    normalized = _normalize_number(text, culture)
    if normalized is None:
        return None
    try:
        number = decimal.Decimal(normalized)
    except decimal.InvalidOperation:
        return None
    # More than 19 integer digits is outside int64
    if number.adjusted() > 18 or number != number.to_integral_value():
        return None
    value = int(number)
    if not INT64_MIN <= value <= INT64_MAX:
        return None
    return value


def parse_real(text: str | None, culture: CultureMode = CultureMode.INVARIANT) -> float | None:
    """Parse a double in the given culture, including infinity and NaN tokens.
    """
    if not text:
        return None
    token = text.strip().lower()
    if token in _POSITIVE_INFINITY_TOKENS:
        return math.inf
    if token in _NEGATIVE_INFINITY_TOKENS:
        return -math.inf
    if token in _NAN_TOKENS:
        return math.nan
    normalized = _normalize_number(text, culture)
    if normalized is None:
        return None
    try:
        return float(normalized)
    except (ValueError, OverflowError):
        return None


def _native_float(value: Any) -> float | None:
    """Return `value` as a float if it is a native floating or NA value."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float | np.floating):
        return float(value)
    if is_null(value):
        return math.nan
    return None


def format_real(value: float) -> str | None:
    """Render a float invariant, with infinity tokens and NaN as NULL."""
    if math.isnan(value):
        return None
    if math.isinf(value):
        return POSITIVE_INFINITY if value > 0 else NEGATIVE_INFINITY
    return repr(value)


def _native_datetime(value: Any) -> datetime.datetime | datetime.date | None:
    if is_null(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, np.datetime64):
        return pd.Timestamp(value).to_pydatetime()
    if isinstance(value, datetime.datetime | datetime.date):
        return value
    return None


def _format_integer(raw: str, culture: CultureMode) -> str | None:
    value = parse_integer(raw, culture)
    return None if value is None else str(value)


def _format_real(raw: str, native: Any, culture: CultureMode) -> str | None:
    value = _native_float(native)
    if value is None:
        value = parse_real(raw, culture)
    if value is None:
        return None
    return format_real(value)


def _format_datetime(raw: str, native: Any, datetime_format: str | None) -> str | None:
    if not raw:
        return None
    value = _native_datetime(native)
    if value is None:
        try:
            value = dateutil.parser.parse(raw)
        except (ValueError, OverflowError):
            return None
    try:
        return value.strftime(strftime_pattern(datetime_format))
    except ValueError:
        return None


def format_value(raw: str | None, native: Any, declared_type: ColumnType | None,
                 culture: CultureMode = CultureMode.CURRENT,
                 datetime_format: str | None = DEFAULT_DATETIME_FORMAT) -> str | None:
    """Convert one field value into its database-ready string, or None for NULL.

    Parameters
        raw: String form of the value as the host displays it
        native: Native typed form; used to detect infinities/NaN and datetimes
        declared_type: The column's declared type (None for unknown)
        culture: INVARIANT for table properties, CURRENT for per-record fields
        datetime_format: strftime (or .NET-style) pattern for DateTime values

    Returns
        Formatted string, or None when the value is empty or fails to parse.
        Unknown/Text types pass `raw` through unchanged ('' allowed).
    """
    raw = '' if raw is None else str(raw)

    if declared_type is ColumnType.INTEGER:
        result = _format_integer(raw, culture) if raw else None
    elif declared_type is ColumnType.REAL:
        result = _format_real(raw, native, culture)
    elif declared_type is ColumnType.DATETIME:
        result = _format_datetime(raw, native, datetime_format)
    else:
        return raw

    if result is None and raw and logger.isEnabledFor(logging.DEBUG):
        logger.debug(f'Value {raw!r} could not be formatted as {declared_type.value}, writing NULL')
    return result
