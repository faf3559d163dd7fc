"""Unit tests for the provider registry and provider connection settings."""

import sqlite3

import pytest
from dbcontext import InvalidArgument, ProviderFactory, ProviderUnavailable
from dbcontext import get_available_providers, get_factory, is_registered_provider
from dbcontext import register_provider, unregister_provider
from dbcontext.providers import PostgresProvider, SQLAlchemyProvider, SQLiteProvider
from dbcontext.providers.alchemy import url_from_connection_string
from dbcontext.providers.dbapi import prepare_command
from dbcontext.types import DbType, IsolationLevel


class TestRegistry:

    def test_builtin_providers_registered(self):
        available = get_available_providers()
        for name in ['sqlite3', 'sqlite', 'psycopg', 'postgresql', 'sqlalchemy']:
            assert name in available

    def test_lookup_is_case_insensitive(self):
        assert isinstance(get_factory('SQLite3'), SQLiteProvider)
        assert isinstance(get_factory(' postgresql '), PostgresProvider)

    def test_factories_are_reused(self):
        assert get_factory('sqlite3') is get_factory('sqlite3')

    def test_factories_satisfy_protocol(self):
        assert isinstance(get_factory('sqlite3'), ProviderFactory)
        assert isinstance(get_factory('psycopg'), ProviderFactory)
        assert isinstance(get_factory('sqlalchemy'), ProviderFactory)

    def test_unknown_provider(self):
        with pytest.raises(ProviderUnavailable) as exc_info:
            get_factory('bogus.provider')
        assert exc_info.value.provider_name == 'bogus.provider'
        assert 'bogus.provider' in str(exc_info.value)

    def test_failing_factory_reports_provider(self):
        def broken():
            raise ImportError('driver missing')

        register_provider('broken.provider', factory=broken)
        try:
            with pytest.raises(ProviderUnavailable) as exc_info:
                get_factory('broken.provider')
            assert exc_info.value.provider_name == 'broken.provider'
            assert isinstance(exc_info.value.__cause__, ImportError)
        finally:
            unregister_provider('broken.provider')

    def test_decorator_registration(self):
        @register_provider('decorated.a', 'decorated.b')
        class Decorated(SQLiteProvider):
            pass

        try:
            assert is_registered_provider('decorated.a')
            assert isinstance(get_factory('decorated.b'), Decorated)
        finally:
            unregister_provider('decorated.a')
            unregister_provider('decorated.b')
        assert not is_registered_provider('decorated.a')

    def test_reregistration_replaces_instance(self):
        register_provider('swap.provider', factory=lambda: SQLiteProvider('one'))
        first = get_factory('swap.provider')
        register_provider('swap.provider', factory=lambda: SQLiteProvider('two'))
        try:
            assert get_factory('swap.provider') is not first
            assert get_factory('swap.provider').shared_cache_name == 'two'
        finally:
            unregister_provider('swap.provider')


class TestSQLiteSettings:

    def test_file_database(self):
        args = SQLiteProvider().connect_args('Data Source=app.db;Timeout=2')
        assert args['database'] == 'app.db'
        assert args['timeout'] == 2.0
        assert args['isolation_level'] is None
        assert args['detect_types'] == sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES
        assert 'uri' not in args

    @pytest.mark.parametrize('key', ['Data Source', 'DataSource', 'Database', 'Filename'])
    def test_data_source_synonyms(self, key):
        assert SQLiteProvider().connect_args(f'{key}=app.db')['database'] == 'app.db'

    def test_mode_opens_uri(self):
        args = SQLiteProvider().connect_args('Data Source=app.db;Mode=ro')
        assert args['database'] == 'file:app.db?mode=ro'
        assert args['uri'] is True

    def test_shared_memory_name(self):
        args = SQLiteProvider(shared_cache_name='shared1').connect_args('Data Source=:memory:')
        assert args['database'] == 'file:shared1?mode=memory&cache=shared'
        assert args['uri'] is True

    def test_plain_memory_without_shared_name(self):
        assert SQLiteProvider().connect_args('Data Source=:memory:')['database'] == ':memory:'

    def test_data_source_required(self):
        with pytest.raises(InvalidArgument):
            SQLiteProvider().connect_args('Timeout=2')

    def test_chaos_rejected(self):
        with pytest.raises(InvalidArgument):
            SQLiteProvider().begin(sqlite3.connect(':memory:'), IsolationLevel.CHAOS)


class TestPostgresSettings:

    def test_keys_map_to_conninfo(self):
        conninfo = PostgresProvider().conninfo(
            'Server=db.local;Port=5433;Initial Catalog=app;User Id=me;Pwd=pw;Timeout=10')
        for part in ['host=db.local', 'port=5433', 'dbname=app', 'user=me',
                     'password=pw', 'connect_timeout=10']:
            assert part in conninfo

    def test_url_passes_through(self):
        url = 'postgresql://me:pw@db.local:5432/app'
        assert PostgresProvider().conninfo(url) == url

    def test_unknown_key_rejected(self):
        with pytest.raises(InvalidArgument):
            PostgresProvider().conninfo('Host=x;Flavor=vanilla')

    def test_begin_statements(self, mocker):
        provider = PostgresProvider()
        run = mocker.patch.object(provider._executor, 'run')
        handle = object()

        provider.begin(handle, IsolationLevel.SERIALIZABLE)
        provider.begin(handle, IsolationLevel.SNAPSHOT)
        provider.begin(handle, IsolationLevel.UNSPECIFIED)

        assert [c.args[1] for c in run.call_args_list] == [
            'BEGIN ISOLATION LEVEL SERIALIZABLE',
            'BEGIN ISOLATION LEVEL REPEATABLE READ',
            'BEGIN',
            ]

    def test_chaos_rejected(self):
        with pytest.raises(InvalidArgument):
            PostgresProvider().begin(object(), IsolationLevel.CHAOS)


class TestSQLAlchemySettings:

    def test_bare_url(self):
        assert url_from_connection_string('sqlite:///app.db') == 'sqlite:///app.db'
        url = 'postgresql+psycopg://me:pw@db/app?sslmode=require'
        assert url_from_connection_string(url) == url

    def test_url_key(self):
        assert url_from_connection_string('Url=sqlite:///app.db') == 'sqlite:///app.db'

    def test_missing_url(self):
        with pytest.raises(InvalidArgument):
            url_from_connection_string('Host=x')

    def test_builder(self):
        assert SQLAlchemyProvider().create_connection_string_builder() is not None


class TestSQLAlchemyExecute:

    @pytest.fixture
    def handle(self, mocker):
        handle = mocker.MagicMock()
        handle.dialect.paramstyle = 'pyformat'
        handle.in_transaction.return_value = False
        handle.exec_driver_sql.return_value.rowcount = 1
        handle.exec_driver_sql.return_value.returns_rows = False
        return handle

    def test_text_without_markers_sends_no_parameters(self, handle, command):
        command.command_text = "select 'a%b' where 10 % 3 = 1"

        SQLAlchemyProvider().execute(handle, command)

        handle.exec_driver_sql.assert_called_once_with(
            "select 'a%b' where 10 % 3 = 1", execution_options={'no_parameters': True})
        handle.commit.assert_called_once()

    def test_markers_escape_percent(self, handle, command):
        command.command_text = "select 'a%b' where 10 % @n = 1"
        command.add_parameter('n', DbType.INT32, 3)

        SQLAlchemyProvider().execute(handle, command)

        handle.exec_driver_sql.assert_called_once_with(
            "select 'a%%b' where 10 %% %(n)s = 1", {'n': 3})

    def test_failure_outside_transaction_rolls_back(self, handle, command):
        command.command_text = 'select 1'
        handle.exec_driver_sql.side_effect = RuntimeError('boom')
        handle.in_transaction.side_effect = [False, True]

        with pytest.raises(RuntimeError):
            SQLAlchemyProvider().execute(handle, command)

        handle.rollback.assert_called_once()
        handle.commit.assert_not_called()


class TestPrepareCommand:

    @pytest.mark.parametrize('db_type', [DbType.STRING, DbType.BINARY, DbType.GUID, DbType.DECIMAL])
    def test_db_type_does_not_change_driver_value(self, command, db_type):
        command.command_text = 'select @x, @y'
        command.add_parameter('x', db_type, 'abc')
        command.add_parameter('y', db_type, None)

        sql, params = prepare_command(command, 'pyformat')

        assert sql == 'select %(x)s, %(y)s'
        assert params == {'x': 'abc', 'y': None}
