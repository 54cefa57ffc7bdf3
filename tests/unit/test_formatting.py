"""
Unit tests for type-directed value formatting.
"""
import datetime
import math
from unittest.mock import patch

import numpy as np
import pandas as pd
import pytest
from griddata.formatting import format_value, parse_integer, parse_real
from griddata.formatting import strftime_pattern
from griddata.types import ColumnType, CultureMode

INVARIANT = CultureMode.INVARIANT
CURRENT = CultureMode.CURRENT

# Decimal comma with dot grouping, as in de_DE
COMMA_LOCALE = {'decimal_point': ',', 'thousands_sep': '.'}


@pytest.mark.parametrize(('raw', 'expected'), [
    ('42', '42'),
    (' -7 ', '-7'),
    ('+15', '15'),
    ('1,234,567', '1234567'),
    ('12.0', '12'),
    ('12.5', None),
    ('abc', None),
    ('', None),
    ('9223372036854775807', '9223372036854775807'),
    ('9223372036854775808', None),
    ('-9223372036854775809', None),
    ('1e18', '1000000000000000000'),
    ('1e19', None),
    ('1e5000000', None),
    ('-1e50000000', None),
    ('1e-5000000', None),
])
def test_integer_invariant(raw, expected):
    assert format_value(raw, None, ColumnType.INTEGER, INVARIANT) == expected


def test_integer_current_locale():
    with patch('griddata.formatting.locale.localeconv', return_value=COMMA_LOCALE):
        assert format_value('1.234', None, ColumnType.INTEGER, CURRENT) == '1234'
        assert format_value('1,5', None, ColumnType.INTEGER, CURRENT) is None


@pytest.mark.parametrize(('native', 'expected'), [
    (float('inf'), 'Infinity'),
    (float('-inf'), '-Infinity'),
    (float('nan'), None),
    (np.float64('inf'), 'Infinity'),
    (np.float32(2.5), '2.5'),
    (pd.NA, None),
    (pd.NaT, None),
    (1.5, '1.5'),
])
def test_real_native_classification(native, expected):
    """Native floats are classified before the string form is looked at"""
    assert format_value('ignored', native, ColumnType.REAL, INVARIANT) == expected


@pytest.mark.parametrize('culture', [INVARIANT, CURRENT])
def test_real_special_values_ignore_locale(culture):
    with patch('griddata.formatting.locale.localeconv', return_value=COMMA_LOCALE):
        assert format_value('x', math.inf, ColumnType.REAL, culture) == 'Infinity'
        assert format_value('x', -math.inf, ColumnType.REAL, culture) == '-Infinity'
        assert format_value('x', math.nan, ColumnType.REAL, culture) is None


@pytest.mark.parametrize(('raw', 'expected'), [
    ('3.25', '3.25'),
    ('1,000.5', '1000.5'),
    ('1e3', '1000.0'),
    ('Infinity', 'Infinity'),
    ('-Infinity', '-Infinity'),
    ('+Infinity', 'Infinity'),
    ('inf', 'Infinity'),
    ('NaN', None),
    ('', None),
    ('three', None),
])
def test_real_from_string(raw, expected):
    assert format_value(raw, None, ColumnType.REAL, INVARIANT) == expected


def test_real_current_locale_never_writes_decimal_comma():
    with patch('griddata.formatting.locale.localeconv', return_value=COMMA_LOCALE):
        assert format_value('1.234,5', None, ColumnType.REAL, CURRENT) == '1234.5'
        assert format_value('1,5', None, ColumnType.REAL, CURRENT) == '1.5'


def test_datetime_native():
    value = datetime.datetime(2024, 1, 2, 9, 30)
    assert format_value(str(value), value, ColumnType.DATETIME, CURRENT,
                        'yyyy-MM-dd HH:mm:ss') == '2024-01-02 09:30:00'
    assert format_value(str(value), pd.Timestamp(value), ColumnType.DATETIME, CURRENT,
                        '%d/%m/%Y') == '02/01/2024'


def test_datetime_parsed_from_string():
    assert format_value('2024-03-05T10:00:00', None, ColumnType.DATETIME,
                        CURRENT) == '2024-03-05 10:00:00'
    assert format_value('March 5, 2024', None, ColumnType.DATETIME,
                        CURRENT, 'yyyy-MM-dd') == '2024-03-05'


@pytest.mark.parametrize(('raw', 'native'), [
    ('', None),
    ('not a date', None),
    ('', pd.NaT),
    ('NaT', pd.NaT),
    ('NaT', np.datetime64('NaT')),
])
def test_datetime_failures_are_null(raw, native):
    assert format_value(raw, native, ColumnType.DATETIME, CURRENT) is None


@pytest.mark.parametrize('declared_type', [ColumnType.INTEGER, ColumnType.REAL, ColumnType.DATETIME])
def test_empty_input_is_null(declared_type):
    assert format_value('', None, declared_type, INVARIANT) is None


@pytest.mark.parametrize('declared_type', [ColumnType.TEXT, None])
def test_text_and_unknown_pass_through(declared_type):
    assert format_value('O\'Brien', None, declared_type) == "O'Brien"
    assert format_value('', None, declared_type) == ''
    assert format_value(None, None, declared_type) == ''


def test_downgrade_is_logged(caplog):
    format_value('abc', None, ColumnType.INTEGER, INVARIANT)
    assert "'abc' could not be formatted as Integer" in caplog.text


def test_parsers():
    assert parse_integer('1,000') == 1000
    assert parse_integer(None) is None
    assert parse_real('2.5') == 2.5
    assert math.isnan(parse_real('nan'))
    assert parse_real('-inf') == -math.inf


@pytest.mark.parametrize(('fmt', 'expected'), [
    ('yyyy-MM-dd HH:mm:ss', '%Y-%m-%d %H:%M:%S'),
    ('dd/MM/yy hh:mm tt', '%d/%m/%y %I:%M %p'),
    ('dddd, MMMM dd', '%A, %B %d'),
    ('%d.%m.%Y', '%d.%m.%Y'),
    ('', '%Y-%m-%d %H:%M:%S'),
    (None, '%Y-%m-%d %H:%M:%S'),
])
def test_strftime_pattern(fmt, expected):
    assert strftime_pattern(fmt) == expected


if __name__ == '__main__':
    __import__('pytest').main([__file__])
