"""
Database context exception classes.

Errors raised by this package are validation and lifecycle errors. Errors
raised by the underlying drivers (connection failures, SQL errors,
constraint violations) are never wrapped; the tuples at the bottom of this
module group them per family so callers can catch them across providers.
"""
import sqlite3

import psycopg
import sqlalchemy.exc


class DatabaseError(Exception):
    """Base class for all dbcontext errors.
    """


class InvalidArgument(DatabaseError, ValueError):
    """A required argument is missing or empty.
    """

    def __init__(self, param_name: str, message: str | None = None) -> None:
        self.param_name = param_name
        super().__init__(message or f'Argument [{param_name}] is required.')


class ProviderUnavailable(InvalidArgument):
    """The provider factory cannot be located or cannot build its objects.
    """

    def __init__(self, provider_name: str, message: str | None = None) -> None:
        self.provider_name = provider_name
        super().__init__(
            'provider_name',
            message or f'Database provider name [{provider_name}] is not valid.')


class ConfigurationError(DatabaseError):
    """No matching or no available connection-string entry.
    """


class InvalidCast(DatabaseError, TypeError):
    """A returned value does not have the requested runtime type.
    """


class InvalidOperation(DatabaseError):
    """The object is not in a state that allows the operation.
    """


class ContextDisposed(InvalidOperation):
    """The database context has been disposed.
    """


DbConnectionError = (
    psycopg.OperationalError,
    psycopg.InterfaceError,
    sqlite3.OperationalError,
    sqlite3.InterfaceError,
    sqlalchemy.exc.OperationalError,
    sqlalchemy.exc.InterfaceError,
    )

IntegrityError = (
    psycopg.IntegrityError,
    sqlite3.IntegrityError,
    sqlalchemy.exc.IntegrityError,
    )

ProgrammingError = (
    psycopg.ProgrammingError,
    psycopg.DatabaseError,
    sqlite3.ProgrammingError,
    sqlite3.DatabaseError,
    sqlalchemy.exc.ProgrammingError,
    sqlalchemy.exc.DatabaseError,
    )

OperationalError = (
    psycopg.OperationalError,
    sqlite3.OperationalError,
    sqlalchemy.exc.OperationalError,
    )
