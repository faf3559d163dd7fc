import pathlib
import site

import pytest
from dbcontext.settings import connection_strings

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture(autouse=True)
def clear_connection_strings():
    """Clear the process-wide connection strings around each test."""
    connection_strings.clear()
    yield
    connection_strings.clear()


pytest_plugins = [
    'tests.fixtures.providers',
    'tests.fixtures.sqlite',
    'tests.fixtures.postgres',
]
