"""
Transaction handle.

A Transaction is created by Connection.begin_transaction() and stays
pending until it is committed, rolled back or disposed. Disposing a
pending transaction rolls it back:

    with cn.begin_transaction(IsolationLevel.SERIALIZABLE) as tx:
        cmd.transaction = tx
        cmd.execute_non_query()
        tx.commit()
"""
import logging
from typing import TYPE_CHECKING, Any, Self

from dbcontext.exceptions import InvalidOperation
from dbcontext.types import ConnectionState, IsolationLevel

if TYPE_CHECKING:
    from dbcontext.connection import Connection

__all__ = ['Transaction']

logger = logging.getLogger(__name__)


class Transaction:
    """Pending unit of work on one connection.
    """

    def __init__(self, connection: 'Connection', isolation_level: IsolationLevel,
                 token: Any = None) -> None:
        self._connection: Connection | None = connection
        self._token = token
        self.isolation_level = isolation_level

    @property
    def connection(self) -> 'Connection | None':
        """Owning connection, None once the transaction has finished."""
        return self._connection

    @property
    def is_pending(self) -> bool:
        return self._connection is not None

    def _pending_connection(self, operation: str) -> 'Connection':
        if self._connection is None:
            raise InvalidOperation(f'Cannot {operation}: transaction has already completed')
        return self._connection

    def _finish(self) -> None:
        connection, self._connection = self._connection, None
        self._token = None
        if connection is not None:
            connection._release_transaction(self)

    def commit(self) -> None:
        connection = self._pending_connection('commit')
        connection.provider.commit(connection.handle, self._token)
        self._finish()
        logger.debug('Transaction committed')

    def rollback(self) -> None:
        connection = self._pending_connection('rollback')
        try:
            connection.provider.rollback(connection.handle, self._token)
        finally:
            self._finish()
        logger.debug('Transaction rolled back')

    def dispose(self) -> None:
        """Roll back if still pending. Safe to call repeatedly.
        """
        if self._connection is None:
            return
        if self._connection.state == ConnectionState.OPEN:
            logger.debug('Rolling back pending transaction on dispose')
            self.rollback()
        else:
            self._finish()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.dispose()

    def __repr__(self) -> str:
        status = 'pending' if self.is_pending else 'finished'
        return f'Transaction({self.isolation_level.name}, {status})'
