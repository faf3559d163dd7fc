"""
SQLAlchemy provider.

The connection string is a SQLAlchemy URL, either bare or under a `Url`
key:

    DbContext('sqlalchemy', 'sqlite:///app.db')
    DbContext('sqlalchemy', 'Url=postgresql+psycopg://user:pw@host/db')

Engines are created once per URL without pooling and disposed at exit.
Statements run as driver SQL in the dialect's paramstyle.
"""
import atexit
import logging
import sqlite3
import threading
from typing import Any

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from dbcontext.command import Command, ExecutionResult
from dbcontext.connection import Connection
from dbcontext.connection_string import ConnectionStringBuilder
from dbcontext.exceptions import InvalidArgument
from dbcontext.parameter import Parameter
from dbcontext.providers.base import register_provider
from dbcontext.providers.dbapi import collect_outputs, prepare_command, scalar_from_row
from dbcontext.types import CommandType, IsolationLevel, format_isolation

__all__ = ['SQLAlchemyProvider', 'get_engine', 'dispose_all_engines']

logger = logging.getLogger(__name__)

SYNONYMS = {'connection url': 'url', 'uri': 'url'}

_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()


def url_from_connection_string(connection_string: str) -> str:
    value = (connection_string or '').strip()
    if '://' in value.split(';', 1)[0].split('=', 1)[0]:
        return value
    builder = ConnectionStringBuilder(value, synonyms=SYNONYMS)
    url = builder.get('url', '').strip()
    if not url:
        raise InvalidArgument('connection_string', 'A SQLAlchemy URL is required.')
    return url


def get_engine(url: str) -> Engine:
    """Get or create the engine for a URL.
    """
    with _engine_registry_lock:
        if url in _engine_registry:
            return _engine_registry[url]

        engine_kwargs: dict[str, Any] = {'poolclass': NullPool}
        parsed = sa.make_url(url)
        if parsed.get_backend_name() == 'sqlite':
            engine_kwargs['connect_args'] = {
                'detect_types': sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES
            }

        engine = sa.create_engine(parsed, **engine_kwargs)
        _engine_registry[url] = engine
        logger.debug(f'Created new engine for {parsed.get_backend_name()}')
        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        for engine in list(_engine_registry.values()):
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)


@register_provider('sqlalchemy')
class SQLAlchemyProvider:
    """Any database SQLAlchemy has a dialect for.

    Outside a transaction each statement is committed on success and
    rolled back on failure.
    """

    name = 'sqlalchemy'
    parameter_marker = '@'

    def create_connection(self) -> Connection:
        return Connection(self)

    def create_command(self) -> Command:
        return Command(self)

    def create_parameter(self) -> Parameter:
        return Parameter()

    def create_connection_string_builder(self) -> ConnectionStringBuilder:
        return ConnectionStringBuilder(synonyms=SYNONYMS)

    def open_handle(self, connection_string: str) -> sa.Connection:
        return get_engine(url_from_connection_string(connection_string)).connect()

    def close_handle(self, handle: sa.Connection) -> None:
        handle.close()

    def begin(self, handle: sa.Connection, level: IsolationLevel) -> tuple[sa.Transaction, bool]:
        """Begin on the SQLAlchemy connection.

        The isolation level is applied only when the dialect supports it;
        the token records whether it has to be reset afterwards.
        """
        if level == IsolationLevel.CHAOS:
            raise InvalidArgument('level', 'The CHAOS isolation level is not supported.')
        changed = False
        if level not in {IsolationLevel.UNSPECIFIED, IsolationLevel.SNAPSHOT}:
            name = format_isolation(level)
            dbapi_connection = handle.connection.dbapi_connection
            if name in handle.dialect.get_isolation_level_values(dbapi_connection):
                handle.execution_options(isolation_level=name)
                changed = True
            else:
                logger.debug(f'{handle.dialect.name} does not support {name}, using default')
        return handle.begin(), changed

    def _end(self, handle: sa.Connection, changed: bool) -> None:
        if changed and not handle.closed:
            handle.execution_options(isolation_level=handle.default_isolation_level)

    def commit(self, handle: sa.Connection, token: tuple[sa.Transaction, bool]) -> None:
        transaction, changed = token
        transaction.commit()
        self._end(handle, changed)

    def rollback(self, handle: sa.Connection, token: tuple[sa.Transaction, bool]) -> None:
        transaction, changed = token
        if transaction.is_active:
            transaction.rollback()
        self._end(handle, changed)

    def execute(self, handle: sa.Connection, command: Command,
                scalar: bool = False) -> ExecutionResult:
        sql, params = prepare_command(command, handle.dialect.paramstyle, self.parameter_marker)
        if isinstance(params, list):
            params = tuple(params)
        logger.debug(f'Executing: {sql}')
        autocommit = not handle.in_transaction()
        try:
            if params is None:
                # no parameters reach the driver, so `%` stays literal
                cursor = handle.exec_driver_sql(sql, execution_options={'no_parameters': True})
            else:
                cursor = handle.exec_driver_sql(sql, params)
            result = ExecutionResult(rowcount=cursor.rowcount)
            if cursor.returns_rows and (
                    scalar or command.command_type == CommandType.STORED_PROCEDURE):
                row = cursor.fetchone()
                result.scalar = scalar_from_row(row)
                if command.command_type == CommandType.STORED_PROCEDURE:
                    result.outputs = collect_outputs(command, list(cursor.keys()), row)
            cursor.close()
        except Exception:
            if autocommit and handle.in_transaction():
                handle.rollback()
            raise
        if autocommit:
            handle.commit()
        return result
