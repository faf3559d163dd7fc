"""
PostgreSQL provider.

Connection string keys:
- Host (Server, Data Source)
- Port
- Database (Initial Catalog, DbName)
- Username (User Id, User, Uid)
- Password (Pwd)
- Timeout (Connect Timeout)
- Application Name
- SslMode

A `postgresql://` or `postgres://` URL is passed to psycopg unchanged.
The driver connection runs in autocommit mode; transactions are explicit
BEGIN ISOLATION LEVEL statements.
"""
import logging

import psycopg
from psycopg.conninfo import conninfo_to_dict, make_conninfo

from dbcontext.command import Command, ExecutionResult
from dbcontext.connection import Connection
from dbcontext.connection_string import ConnectionStringBuilder
from dbcontext.exceptions import InvalidArgument
from dbcontext.parameter import Parameter
from dbcontext.providers.base import register_provider
from dbcontext.providers.dbapi import DbApiExecutor
from dbcontext.types import IsolationLevel, format_isolation

__all__ = ['PostgresProvider']

logger = logging.getLogger(__name__)

SYNONYMS = {
    'server': 'host',
    'data source': 'host',
    'initial catalog': 'database',
    'dbname': 'database',
    'user id': 'username',
    'user': 'username',
    'uid': 'username',
    'pwd': 'password',
    'connect timeout': 'timeout',
    'applicationname': 'application name',
}

# connection string key -> libpq keyword
CONNINFO_KEYS = {
    'host': 'host',
    'port': 'port',
    'database': 'dbname',
    'username': 'user',
    'password': 'password',
    'timeout': 'connect_timeout',
    'application name': 'application_name',
    'sslmode': 'sslmode',
}


def is_url(connection_string: str) -> bool:
    return connection_string.strip().lower().startswith(('postgresql://', 'postgres://'))


@register_provider('psycopg', 'postgresql')
class PostgresProvider:
    """PostgreSQL through psycopg 3.
    """

    name = 'psycopg'
    parameter_marker = '@'

    def __init__(self) -> None:
        self._executor = DbApiExecutor(psycopg.paramstyle, self.parameter_marker)

    def create_connection(self) -> Connection:
        return Connection(self)

    def create_command(self) -> Command:
        return Command(self)

    def create_parameter(self) -> Parameter:
        return Parameter()

    def create_connection_string_builder(self) -> ConnectionStringBuilder:
        return ConnectionStringBuilder(synonyms=SYNONYMS)

    def conninfo(self, connection_string: str) -> str:
        """libpq conninfo for a connection string.
        """
        if is_url(connection_string):
            return connection_string.strip()
        builder = ConnectionStringBuilder(connection_string, synonyms=SYNONYMS)
        unknown = [k for k in builder if k not in CONNINFO_KEYS]
        if unknown:
            raise InvalidArgument('connection_string',
                                  f'Unsupported PostgreSQL connection string keys: {unknown}')
        kwargs = {CONNINFO_KEYS[k]: v for k, v in builder.items() if v != ''}
        if 'connect_timeout' in kwargs:
            kwargs['connect_timeout'] = str(int(builder.get_float('timeout')))
        return make_conninfo('', **kwargs)

    def open_handle(self, connection_string: str) -> psycopg.Connection:
        conninfo = self.conninfo(connection_string)
        params = conninfo_to_dict(conninfo)
        logger.debug(f'Connecting to PostgreSQL database {params.get("dbname")} on {params.get("host")}')
        return psycopg.connect(conninfo, autocommit=True)

    def close_handle(self, handle: psycopg.Connection) -> None:
        handle.close()

    def begin(self, handle: psycopg.Connection, level: IsolationLevel) -> None:
        if level == IsolationLevel.CHAOS:
            raise InvalidArgument('level', 'PostgreSQL does not support the CHAOS isolation level.')
        if level == IsolationLevel.UNSPECIFIED:
            self._executor.run(handle, 'BEGIN')
            return
        if level == IsolationLevel.SNAPSHOT:
            level = IsolationLevel.REPEATABLE_READ
        self._executor.run(handle, f'BEGIN ISOLATION LEVEL {format_isolation(level)}')

    def commit(self, handle: psycopg.Connection, token: None) -> None:
        self._executor.run(handle, 'COMMIT')

    def rollback(self, handle: psycopg.Connection, token: None) -> None:
        if not handle.closed:
            self._executor.run(handle, 'ROLLBACK')

    def execute(self, handle: psycopg.Connection, command: Command,
                scalar: bool = False) -> ExecutionResult:
        return self._executor.execute(handle, command, scalar)
