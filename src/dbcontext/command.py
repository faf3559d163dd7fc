"""
Command handle.

A Command carries SQL text (or a stored procedure name), its bound
parameters, and the connection and transaction it runs on. Command text
uses the provider's parameter marker:

    cmd = factory.create_command()
    cmd.command_text = 'insert into t values (@id)'
    cmd.add_parameter('id', DbType.INT32, 42)
    cmd.connection = cn
    cmd.execute_non_query()
"""
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Self

from dbcontext import binder
from dbcontext.exceptions import InvalidOperation
from dbcontext.parameter import Parameter, ParameterCollection, ParameterValue
from dbcontext.types import NO_VALUE, CommandType, ConnectionState, DbType
from dbcontext.types import ParameterDirection, to_native

if TYPE_CHECKING:
    from dbcontext.connection import Connection
    from dbcontext.providers.base import ProviderFactory
    from dbcontext.transaction import Transaction

__all__ = ['Command', 'ExecutionResult']


@dataclass
class ExecutionResult:
    """What a driver reports back for one command execution."""
    rowcount: int = -1
    scalar: Any = None
    outputs: dict[str, Any] = field(default_factory=dict)


class Command:
    """SQL statement or stored procedure call bound to a provider.
    """

    def __init__(self, provider: 'ProviderFactory', command_text: str = '',
                 command_type: CommandType = CommandType.TEXT) -> None:
        self.provider = provider
        self.command_text = command_text
        self.command_type = command_type
        self.parameters = ParameterCollection()
        self.connection: Connection | None = None
        self.transaction: Transaction | None = None

    def create_parameter(self) -> Parameter:
        return self.provider.create_parameter()

    def add_parameter(self, name: 'str | ParameterValue | Iterable[ParameterValue]',
                      db_type: DbType = DbType.STRING, value: Any = None,
                      direction: ParameterDirection = ParameterDirection.INPUT) -> Self:
        binder.add_parameter(self, name, db_type, value, direction)
        return self

    def add_parameters(self, parameters: Iterable[ParameterValue] | None) -> Self:
        binder.add_parameters(self, parameters)
        return self

    def set_parameter(self, name: str, value: Any) -> Self:
        binder.set_parameter(self, name, value)
        return self

    def _check_executable(self) -> 'Connection':
        connection = self.connection
        if connection is None:
            raise InvalidOperation('Command has no connection')
        if connection.state != ConnectionState.OPEN:
            raise InvalidOperation('Command connection is not open')
        if self.transaction is not None:
            if self.transaction.connection is None:
                raise InvalidOperation('Command transaction has already completed')
            if self.transaction.connection is not connection:
                raise InvalidOperation('Command transaction belongs to another connection')
        elif connection.transaction is not None:
            raise InvalidOperation(
                'Connection has a pending transaction the command is not enlisted in')
        if not (self.command_text or '').strip():
            raise InvalidOperation('Command text has not been set')
        return connection

    def _execute(self, scalar: bool) -> ExecutionResult:
        connection = self._check_executable()
        result = self.provider.execute(connection.handle, self, scalar)
        for key, value in result.outputs.items():
            parameter = self.parameters.get(key)
            if parameter is not None and parameter.direction.is_output:
                value = to_native(value)
                parameter.value = NO_VALUE if value is None else value
        return result

    def execute_non_query(self) -> int:
        """Execute and return the number of affected rows (-1 when unknown).
        """
        return self._execute(scalar=False).rowcount

    def execute_scalar(self) -> Any:
        """First column of the first row.

        None when no row is produced, NO_VALUE when the value is NULL.
        """
        return self._execute(scalar=True).scalar

    def dispose(self) -> None:
        self.connection = None
        self.transaction = None

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.dispose()

    def __repr__(self) -> str:
        return f'Command({self.command_type.name}, {self.command_text!r})'
