"""
Database context: one connection, at most one transaction.

The context owns its connection and transaction and is their only
releaser. Typical use:

    with DbContext('sqlite3', 'Data Source=app.db', begin=True) as ctx:
        ctx.execute_non_query('insert into t values (@id)',
                              ParameterValue('id', DbType.INT32, 42))
        ctx.complete()

    with DbContext.from_settings('main') as ctx:
        count = get_db_integer(ctx.execute_scalar('select count(*) from t'))

States move between CONFIGURED, CONNECTED and IN_TRANSACTION; close()
returns to CONFIGURED from any of them. dispose() is terminal: afterwards
every operation raises ContextDisposed except close() and dispose(), which
do nothing.
"""
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Self

from dbcontext.binder import add_parameters
from dbcontext.command import Command
from dbcontext.connection import Connection
from dbcontext.exceptions import ContextDisposed, InvalidArgument, InvalidOperation
from dbcontext.exceptions import ProviderUnavailable
from dbcontext.parameter import ParameterValue
from dbcontext.providers import ProviderFactory, get_factory
from dbcontext.settings import ConnectionStrings, connection_strings
from dbcontext.transaction import Transaction
from dbcontext.types import CommandType, ConnectionState, ContextState, IsolationLevel

from libb import attrdict

__all__ = ['DbContext']

logger = logging.getLogger(__name__)


class DbContext:
    """Connection and transaction lifecycle over a provider.

    Without a provider name and connection string the first configured
    connection string is used. `begin=True` implies `open=True`. If opening
    or beginning fails during construction, whatever was acquired is
    released before the error propagates.
    """

    def __init__(self, provider_name: str | None = None, connection_string: str | None = None, *,
                 open: bool = False, begin: bool = False,
                 level: IsolationLevel = IsolationLevel.READ_COMMITTED,
                 settings: ConnectionStrings | None = None) -> None:
        self._factory: ProviderFactory | None = None
        self._provider_name: str | None = ''
        self._connection_string: str | None = ''
        self._connection: Connection | None = None
        self._transaction: Transaction | None = None

        if provider_name is None and connection_string is None:
            entry = (connection_strings if settings is None else settings).resolve()
            provider_name, connection_string = entry.provider_name, entry.connection_string

        self._configure(provider_name, connection_string)

        if open or begin:
            try:
                if begin:
                    self.begin(level)
                else:
                    self.open()
            except Exception:
                self.close()
                raise

    @classmethod
    def from_settings(cls, name: str | None = None, *, open: bool = False, begin: bool = False,
                      level: IsolationLevel = IsolationLevel.READ_COMMITTED,
                      settings: ConnectionStrings | None = None) -> Self:
        """Context for a named connection string; the first one when name is empty.
        """
        entry = (connection_strings if settings is None else settings).resolve(name)
        return cls(entry.provider_name, entry.connection_string,
                   open=open, begin=begin, level=level)

    def _configure(self, provider_name: str | None, connection_string: str | None) -> None:
        provider_name = (provider_name or '').strip()
        if not provider_name:
            raise InvalidArgument('provider_name')
        connection_string = (connection_string or '').strip()
        if not connection_string:
            raise InvalidArgument('connection_string')

        factory = get_factory(provider_name)
        try:
            builder = factory.create_connection_string_builder()
        except Exception as exc:
            raise ProviderUnavailable(
                provider_name, f'Database provider name [{provider_name}] is not supported: {exc}') from exc
        if builder is None:
            raise ProviderUnavailable(
                provider_name, f'Database provider name [{provider_name}] is not supported.')

        self._factory = factory
        self._provider_name = provider_name
        self._connection_string = connection_string
        logger.debug(f'Configured database context for {provider_name}')

    @property
    def state(self) -> ContextState:
        if self._factory is None:
            # dispose() clears the provider name, construction leaves it empty
            if self._provider_name is None:
                return ContextState.DISPOSED
            return ContextState.UNCONFIGURED
        if self._transaction is not None and self._transaction.is_pending:
            return ContextState.IN_TRANSACTION
        if self._connection is not None and self._connection.state == ConnectionState.OPEN:
            return ContextState.CONNECTED
        return ContextState.CONFIGURED

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    @property
    def connection_string(self) -> str | None:
        return self._connection_string

    @property
    def factory(self) -> ProviderFactory | None:
        return self._factory

    @property
    def connection(self) -> Connection | None:
        return self._connection

    @property
    def active_transaction(self) -> Transaction | None:
        return self._transaction

    def _check_live(self) -> ProviderFactory:
        if self._factory is None:
            raise ContextDisposed('Database context has been disposed.')
        return self._factory

    def _release_transaction(self) -> None:
        transaction, self._transaction = self._transaction, None
        if transaction is not None:
            transaction.dispose()

    def _release_connection(self) -> None:
        try:
            self._release_transaction()
        finally:
            connection, self._connection = self._connection, None
            if connection is not None:
                connection.dispose()

    def open(self) -> None:
        """Connect; does nothing when already connected.
        """
        factory = self._check_live()
        if self._connection is not None and self._connection.state == ConnectionState.OPEN:
            return
        self._release_connection()
        self._connection = factory.create_connection()
        self._connection.connection_string = self._connection_string
        self._connection.open()
        logger.debug(f'Database context connected ({self._provider_name})')

    def begin(self, level: IsolationLevel = IsolationLevel.READ_COMMITTED) -> None:
        """Start a transaction, abandoning (not committing) any pending one.
        """
        self.open()
        self.rollback()
        self._transaction = self._connection.begin_transaction(level)

    def complete(self) -> None:
        """Commit the pending transaction if its connection is still open.
        """
        self._check_live()
        transaction = self._transaction
        if transaction is None:
            return
        try:
            connection = transaction.connection
            if connection is not None and connection.state == ConnectionState.OPEN:
                transaction.commit()
        finally:
            self._release_transaction()

    def rollback(self) -> None:
        """Release the pending transaction; releasing it rolls it back.
        """
        self._check_live()
        self._release_transaction()

    def close(self) -> None:
        """Release the transaction, then the connection. Safe in any state.
        """
        if self.state == ContextState.DISPOSED:
            return
        self._release_connection()

    def dispose(self) -> None:
        if self.state == ContextState.DISPOSED:
            return
        try:
            self.close()
        finally:
            self._factory = None
            self._provider_name = None
            self._connection_string = None
            logger.debug('Database context disposed')

    @contextmanager
    def transaction(self, level: IsolationLevel = IsolationLevel.READ_COMMITTED) -> Iterator[Self]:
        """Begin; complete on normal exit, roll back when the block raises.

            with ctx.transaction(IsolationLevel.SERIALIZABLE):
                ctx.execute_non_query('update t set n = n + 1')
        """
        self.begin(level)
        try:
            yield self
        except BaseException:
            self.rollback()
            raise
        self.complete()

    def create_command(self, is_stored_procedure: bool, command_text: str,
                       *parameters: ParameterValue) -> Command | None:
        """Provider command with its type, trimmed text and parameters.

        The command is not attached to the connection. Returns None when
        the provider cannot produce a command.
        """
        factory = self._check_live()
        command = factory.create_command()
        if command is None:
            return None
        command.command_type = CommandType.STORED_PROCEDURE if is_stored_procedure else CommandType.TEXT
        command.command_text = (command_text or '').strip()
        add_parameters(command, parameters)
        return command

    def _link(self, command: Command, parameters: tuple) -> Command:
        add_parameters(command, parameters)
        command.connection = self._connection
        command.transaction = self._transaction
        return command

    @contextmanager
    def _inline_command(self, head: Any, parameters: tuple,
                        stored_procedure: bool) -> Iterator[Command]:
        if isinstance(head, bool):
            if not parameters or not isinstance(parameters[0], str):
                raise InvalidArgument('command_text')
            stored_procedure, command_text, parameters = head, parameters[0], parameters[1:]
        elif isinstance(head, str):
            command_text = head
        else:
            raise InvalidArgument('command')
        command = self.create_command(stored_procedure, command_text, *parameters)
        if command is None:
            raise InvalidOperation(f'Provider [{self._provider_name}] could not create a command.')
        try:
            yield command
        finally:
            command.dispose()

    def execute_non_query(self, command: Command | bool | str, *parameters: Any,
                          stored_procedure: bool = False) -> int:
        """Execute and return the number of affected rows.

        Accepts a command, `(is_stored_procedure, command_text, *parameters)`
        or `(command_text, *parameters)`. A passed command is attached to
        this context's connection and transaction.
        """
        self._check_live()
        if isinstance(command, Command):
            return self._link(command, parameters).execute_non_query()
        with self._inline_command(command, parameters, stored_procedure) as inline:
            return self._link(inline, ()).execute_non_query()

    def execute_scalar(self, command: Command | bool | str, *parameters: Any,
                       stored_procedure: bool = False) -> Any:
        """Execute and return the first column of the first row.

        None when no row is produced, NO_VALUE when the value is NULL.
        """
        self._check_live()
        if isinstance(command, Command):
            return self._link(command, parameters).execute_scalar()
        with self._inline_command(command, parameters, stored_procedure) as inline:
            return self._link(inline, ()).execute_scalar()

    def diagnose(self) -> attrdict:
        """Describe the context for debugging.
        """
        connection_state = self._connection.state if self._connection is not None else ConnectionState.CLOSED
        transaction = self._transaction if self._transaction is not None and self._transaction.is_pending else None
        return attrdict(
            provider=self._provider_name,
            state=self.state.name,
            connection_state=connection_state.name,
            in_transaction=transaction is not None,
            isolation_level=transaction.isolation_level.name if transaction else None,
            )

    def __enter__(self) -> Self:
        self._check_live()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.dispose()

    def __repr__(self) -> str:
        return f'DbContext({self._provider_name!r}, {self.state.name})'
