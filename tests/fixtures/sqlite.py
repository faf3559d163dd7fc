import sqlite3
import uuid

import pytest
from dbcontext import DbContext, register_provider, unregister_provider
from dbcontext.providers import SQLiteProvider


@pytest.fixture
def test_provider():
    """Register 'test.provider' as a shared in-memory SQLite database.

    Every context on `Data Source=:memory:` sees the same database while
    the fixture keeps its own connection open. Table `t (id integer)` is
    created up front.
    """
    name = f'dbcontext_{uuid.uuid4().hex}'
    keeper = sqlite3.connect(f'file:{name}?mode=memory&cache=shared', uri=True)
    keeper.execute('create table t (id integer)')
    keeper.commit()

    register_provider('test.provider', factory=lambda: SQLiteProvider(shared_cache_name=name))

    yield name

    unregister_provider('test.provider')
    keeper.close()


@pytest.fixture
def sqlite_file(tmp_path):
    """Connection string for a file database with a populated test_table."""
    connection_string = f'Data Source={tmp_path / "test.db"}'

    with DbContext('sqlite3', connection_string, open=True) as ctx:
        ctx.execute_non_query("""
CREATE TABLE test_table (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    value INTEGER NOT NULL
)
""")
        ctx.execute_non_query("""
INSERT INTO test_table (name, value) VALUES
('Alice', 10),
('Bob', 20),
('Charlie', 30)
""")

    return connection_string


@pytest.fixture
def sqlite_ctx(sqlite_file):
    """Open context on the populated file database."""
    ctx = DbContext('sqlite3', sqlite_file, open=True)
    yield ctx
    ctx.dispose()
