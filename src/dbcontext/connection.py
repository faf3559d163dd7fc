"""
Connection handle.

A Connection wraps one driver connection opened by its provider. It is
created closed, receives a connection string, and is opened explicitly:

    cn = factory.create_connection()
    cn.connection_string = 'Data Source=app.db'
    cn.open()
    tx = cn.begin_transaction()
    ...
    cn.close()
"""
import logging
from typing import TYPE_CHECKING, Any, Self

from dbcontext.exceptions import InvalidOperation
from dbcontext.transaction import Transaction
from dbcontext.types import ConnectionState, IsolationLevel

if TYPE_CHECKING:
    from dbcontext.command import Command
    from dbcontext.providers.base import ProviderFactory

__all__ = ['Connection']

logger = logging.getLogger(__name__)


class Connection:
    """Provider connection with at most one pending transaction.
    """

    def __init__(self, provider: 'ProviderFactory', connection_string: str = '') -> None:
        self.provider = provider
        self._connection_string = connection_string or ''
        self._handle: Any = None
        self._transaction: Transaction | None = None

    @property
    def connection_string(self) -> str:
        return self._connection_string

    @connection_string.setter
    def connection_string(self, value: str) -> None:
        if self.state == ConnectionState.OPEN:
            raise InvalidOperation('Cannot change the connection string of an open connection')
        self._connection_string = value or ''

    @property
    def state(self) -> ConnectionState:
        return ConnectionState.CLOSED if self._handle is None else ConnectionState.OPEN

    @property
    def handle(self) -> Any:
        """Underlying driver connection, None while closed."""
        return self._handle

    @property
    def transaction(self) -> Transaction | None:
        """Pending transaction, if any."""
        return self._transaction

    def open(self) -> None:
        if self._handle is not None:
            raise InvalidOperation('Connection is already open')
        if not self._connection_string:
            raise InvalidOperation('Connection string has not been set')
        self._handle = self.provider.open_handle(self._connection_string)
        logger.debug(f'Opened {self.provider.name} connection')

    def close(self) -> None:
        """Roll back any pending transaction, then release the driver connection.
        """
        if self._handle is None:
            return
        try:
            if self._transaction is not None:
                self._transaction.dispose()
        finally:
            handle, self._handle = self._handle, None
            self._transaction = None
            self.provider.close_handle(handle)
            logger.debug(f'Closed {self.provider.name} connection')

    def begin_transaction(self, level: IsolationLevel = IsolationLevel.READ_COMMITTED) -> Transaction:
        if self._handle is None:
            raise InvalidOperation('Connection must be open to begin a transaction')
        if self._transaction is not None:
            raise InvalidOperation('Connection already has a pending transaction')
        token = self.provider.begin(self._handle, level)
        self._transaction = Transaction(self, level, token)
        logger.debug(f'Began transaction at {level.name}')
        return self._transaction

    def _release_transaction(self, transaction: Transaction) -> None:
        if self._transaction is transaction:
            self._transaction = None

    def create_command(self) -> 'Command | None':
        """Command from the provider, already attached to this connection."""
        command = self.provider.create_command()
        if command is not None:
            command.connection = self
        return command

    def dispose(self) -> None:
        self.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.dispose()

    def __repr__(self) -> str:
        return f'Connection({self.provider.name}, {self.state.name})'
