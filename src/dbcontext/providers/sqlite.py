"""
SQLite provider.

Connection string keys:
- Data Source (DataSource, Database, Filename): file path or :memory:
- Timeout: seconds to wait on a locked database
- Mode: ro, rw, rwc or memory (opens the database as a URI)
- Cache: shared or private (opens the database as a URI)
- Foreign Keys: enforce foreign keys, on unless set false

The driver connection runs in autocommit mode; transactions are explicit
BEGIN statements. SQLite has no stored procedures.
"""
import datetime
import logging
import sqlite3
import uuid
from decimal import Decimal
from urllib.parse import quote, urlencode

import dateutil.parser

from dbcontext.command import Command, ExecutionResult
from dbcontext.connection import Connection
from dbcontext.connection_string import ConnectionStringBuilder
from dbcontext.exceptions import InvalidArgument, InvalidOperation
from dbcontext.parameter import Parameter
from dbcontext.providers.base import register_provider
from dbcontext.providers.dbapi import DbApiExecutor
from dbcontext.types import CommandType, IsolationLevel

__all__ = ['SQLiteProvider']

logger = logging.getLogger(__name__)

SYNONYMS = {
    'datasource': 'data source',
    'database': 'data source',
    'filename': 'data source',
    'foreignkeys': 'foreign keys',
    'default timeout': 'timeout',
}

MEMORY = ':memory:'


def convert_date(value: bytes) -> datetime.date:
    return dateutil.parser.isoparse(value.decode()).date()


def convert_datetime(value: bytes) -> datetime.datetime:
    return dateutil.parser.isoparse(value.decode())


def convert_boolean(value: bytes) -> bool:
    return value.strip().lower() in {b'1', b'true', b't', b'yes'}


def convert_decimal(value: bytes) -> Decimal:
    return Decimal(value.decode())


def register_types() -> None:
    """Register SQLite adapters (Python -> SQLite) and converters (SQLite -> Python).
    """
    sqlite3.register_adapter(Decimal, str)
    sqlite3.register_adapter(uuid.UUID, str)
    sqlite3.register_adapter(datetime.datetime, lambda v: v.isoformat(' '))
    sqlite3.register_adapter(datetime.date, lambda v: v.isoformat())
    sqlite3.register_adapter(datetime.time, lambda v: v.isoformat())

    sqlite3.register_converter('date', convert_date)
    sqlite3.register_converter('datetime', convert_datetime)
    sqlite3.register_converter('timestamp', convert_datetime)
    sqlite3.register_converter('boolean', convert_boolean)
    sqlite3.register_converter('decimal', convert_decimal)


@register_provider('sqlite3', 'sqlite')
class SQLiteProvider:
    """SQLite through the standard library driver.

    `shared_cache_name` turns `Data Source=:memory:` into a named
    shared-cache in-memory database, so every connection of this provider
    sees the same data for as long as one of them stays open.
    """

    name = 'sqlite3'
    parameter_marker = '@'

    def __init__(self, shared_cache_name: str | None = None) -> None:
        self.shared_cache_name = shared_cache_name
        self._executor = DbApiExecutor(sqlite3.paramstyle, self.parameter_marker)
        register_types()

    def create_connection(self) -> Connection:
        return Connection(self)

    def create_command(self) -> Command:
        return Command(self)

    def create_parameter(self) -> Parameter:
        return Parameter()

    def create_connection_string_builder(self) -> ConnectionStringBuilder:
        return ConnectionStringBuilder(synonyms=SYNONYMS)

    def connect_args(self, connection_string: str) -> dict:
        """sqlite3.connect() keyword arguments for a connection string.
        """
        builder = ConnectionStringBuilder(connection_string, synonyms=SYNONYMS)
        database = builder.get('data source', '').strip()
        if not database:
            raise InvalidArgument('connection_string', 'Data Source is required for SQLite.')

        query = {}
        if database == MEMORY and self.shared_cache_name:
            database = self.shared_cache_name
            query = {'mode': 'memory', 'cache': 'shared'}
        if builder.get('mode'):
            query['mode'] = builder['mode'].strip().lower()
        if builder.get('cache'):
            query['cache'] = builder['cache'].strip().lower()

        args = {
            'database': database,
            'isolation_level': None,
            'detect_types': sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
            }
        if query:
            args['database'] = f'file:{quote(database)}?{urlencode(query)}'
            args['uri'] = True
        timeout = builder.get_float('timeout')
        if timeout is not None:
            args['timeout'] = timeout
        return args

    def open_handle(self, connection_string: str) -> sqlite3.Connection:
        builder = ConnectionStringBuilder(connection_string, synonyms=SYNONYMS)
        args = self.connect_args(connection_string)
        logger.debug(f'Connecting to SQLite database {args["database"]}')
        handle = sqlite3.connect(**args)
        try:
            if builder.get_bool('foreign keys', default=True):
                handle.execute('PRAGMA foreign_keys = ON')
        except sqlite3.Error:
            handle.close()
            raise
        return handle

    def close_handle(self, handle: sqlite3.Connection) -> None:
        handle.close()

    def begin(self, handle: sqlite3.Connection, level: IsolationLevel) -> None:
        if level == IsolationLevel.CHAOS:
            raise InvalidArgument('level', 'SQLite does not support the CHAOS isolation level.')
        uncommitted = 1 if level == IsolationLevel.READ_UNCOMMITTED else 0
        self._executor.run(handle, f'PRAGMA read_uncommitted = {uncommitted}')
        if level == IsolationLevel.SERIALIZABLE:
            self._executor.run(handle, 'BEGIN IMMEDIATE')
        else:
            self._executor.run(handle, 'BEGIN')

    def commit(self, handle: sqlite3.Connection, token: None) -> None:
        self._executor.run(handle, 'COMMIT')

    def rollback(self, handle: sqlite3.Connection, token: None) -> None:
        if handle.in_transaction:
            self._executor.run(handle, 'ROLLBACK')

    def execute(self, handle: sqlite3.Connection, command: Command,
                scalar: bool = False) -> ExecutionResult:
        if command.command_type == CommandType.STORED_PROCEDURE:
            raise InvalidOperation('SQLite does not support stored procedures')
        return self._executor.execute(handle, command, scalar)
