"""
Database context with providers for SQLite, PostgreSQL and SQLAlchemy.

A DbContext owns one connection and at most one transaction. Commands are
written with `@name` markers and bound with ParameterValue objects:

    from dbcontext import DbContext, DbType, ParameterValue, get_db_integer

    with DbContext('sqlite3', 'Data Source=app.db', begin=True) as ctx:
        ctx.execute_non_query('insert into t values (@id)',
                              ParameterValue('id', DbType.INT32, 42))
        ctx.complete()

The binder and scalar helpers are also module functions so they can be
used on any command or returned value.
"""
__version__ = '0.1.0'

from dbcontext.binder import add_parameter, add_parameter_value, add_parameters
from dbcontext.binder import coerce_value, normalize_name, set_parameter
from dbcontext.command import Command, ExecutionResult
from dbcontext.connection import Connection
from dbcontext.connection_string import ConnectionStringBuilder, parse_connection_string
from dbcontext.context import DbContext
from dbcontext.exceptions import ConfigurationError, ContextDisposed, DatabaseError
from dbcontext.exceptions import DbConnectionError, IntegrityError, InvalidArgument
from dbcontext.exceptions import InvalidCast, InvalidOperation, OperationalError
from dbcontext.exceptions import ProgrammingError, ProviderUnavailable
from dbcontext.parameter import Parameter, ParameterCollection, ParameterValue
from dbcontext.providers import ProviderFactory, get_available_providers, get_factory
from dbcontext.providers import is_registered_provider, register_provider
from dbcontext.providers import unregister_provider
from dbcontext.scalars import get_db_boolean, get_db_byte, get_db_bytes, get_db_datetime
from dbcontext.scalars import get_db_decimal, get_db_double, get_db_integer, get_db_long
from dbcontext.scalars import get_db_short, get_db_string
from dbcontext.settings import ConnectionStrings, ConnectionStringSettings
from dbcontext.settings import connection_strings, load_connection_strings
from dbcontext.transaction import Transaction
from dbcontext.types import NO_VALUE, CommandType, ConnectionState, ContextState
from dbcontext.types import DbType, IsolationLevel, NoValue, ParameterDirection
from dbcontext.types import is_absent

__all__ = [
    'DbContext',
    'Connection',
    'Transaction',
    'Command',
    'ExecutionResult',
    'Parameter',
    'ParameterCollection',
    'ParameterValue',
    'ConnectionStringBuilder',
    'parse_connection_string',
    'ConnectionStrings',
    'ConnectionStringSettings',
    'connection_strings',
    'load_connection_strings',
    'ProviderFactory',
    'register_provider',
    'unregister_provider',
    'get_factory',
    'get_available_providers',
    'is_registered_provider',
    'DbType',
    'ParameterDirection',
    'IsolationLevel',
    'CommandType',
    'ConnectionState',
    'ContextState',
    'NoValue',
    'NO_VALUE',
    'is_absent',
    'normalize_name',
    'coerce_value',
    'add_parameter',
    'add_parameter_value',
    'add_parameters',
    'set_parameter',
    'get_db_string',
    'get_db_boolean',
    'get_db_datetime',
    'get_db_bytes',
    'get_db_byte',
    'get_db_short',
    'get_db_integer',
    'get_db_long',
    'get_db_decimal',
    'get_db_double',
    'DatabaseError',
    'InvalidArgument',
    'ProviderUnavailable',
    'ConfigurationError',
    'InvalidCast',
    'InvalidOperation',
    'ContextDisposed',
    'DbConnectionError',
    'IntegrityError',
    'ProgrammingError',
    'OperationalError',
]
