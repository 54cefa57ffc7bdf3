import logging
import pathlib
import site

import pytest
from griddata.connection import dispose_all_engines

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture(autouse=True)
def dispose_engines():
    """Dispose cached engines after each test so temp database files can be removed."""
    yield
    dispose_all_engines()


@pytest.fixture(autouse=True)
def debug_logging(caplog):
    caplog.set_level(logging.DEBUG, logger='griddata')


pytest_plugins = [
    'tests.fixtures.records',
    'tests.fixtures.sqlite',
]
