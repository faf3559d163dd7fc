"""
Shared execution for DB-API 2.0 drivers.

Drivers run in autocommit mode; transactions are explicit BEGIN / COMMIT /
ROLLBACK statements issued on the same connection. A provider composes a
DbApiExecutor configured with its driver's paramstyle.
"""
import logging
from collections.abc import Sequence
from typing import Any

from dbcontext.command import Command, ExecutionResult
from dbcontext.sql import build_procedure_call, translate_markers
from dbcontext.types import NO_VALUE, CommandType, ParameterDirection, to_driver

__all__ = ['DbApiExecutor', 'prepare_command', 'collect_outputs', 'scalar_from_row']

logger = logging.getLogger(__name__)


def prepare_command(command: Command, paramstyle: str,
                    marker: str = '@') -> tuple[str, dict[str, Any] | list[Any] | None]:
    """Driver SQL and driver parameters for a command.
    """
    sql = command.command_text.strip()
    if command.command_type == CommandType.STORED_PROCEDURE:
        sql = build_procedure_call(sql, list(command.parameters), marker)
    values = {p.key: to_driver(p.value) for p in command.parameters}
    return translate_markers(sql, values, paramstyle, marker)


def scalar_from_row(row: Sequence[Any] | None) -> Any:
    """None when there is no row, NO_VALUE when the first column is NULL."""
    if row is None:
        return None
    value = row[0]
    return NO_VALUE if value is None else value


def collect_outputs(command: Command, columns: Sequence[str],
                    row: Sequence[Any] | None) -> dict[str, Any]:
    """Map the row returned by a procedure call onto its output parameters.

    A return value is the first column. Other output parameters match a
    column of the same name, falling back to their position among the
    output parameters.
    """
    if row is None:
        return {}
    outputs: dict[str, Any] = {}
    columns = [str(c).lower() for c in columns]
    by_name = dict(zip(columns, row))
    returns = [p for p in command.parameters if p.direction == ParameterDirection.RETURN_VALUE]
    if returns:
        outputs[returns[0].key] = row[0]
        return outputs
    others = [p for p in command.parameters if p.direction.is_output]
    for position, parameter in enumerate(others):
        if parameter.key in by_name:
            outputs[parameter.key] = by_name[parameter.key]
        elif position < len(row):
            outputs[parameter.key] = row[position]
    return outputs


class DbApiExecutor:
    """Runs commands and transaction statements on a DB-API connection.
    """

    def __init__(self, paramstyle: str, marker: str = '@') -> None:
        self.paramstyle = paramstyle
        self.marker = marker

    def run(self, handle: Any, sql: str) -> None:
        """Execute a statement with no parameters and no result."""
        logger.debug(f'Executing: {sql}')
        cursor = handle.cursor()
        try:
            cursor.execute(sql)
        finally:
            cursor.close()

    def execute(self, handle: Any, command: Command, scalar: bool = False) -> ExecutionResult:
        sql, params = prepare_command(command, self.paramstyle, self.marker)
        logger.debug(f'Executing: {sql}')
        cursor = handle.cursor()
        try:
            if params is None:
                cursor.execute(sql)
            else:
                cursor.execute(sql, params)
            result = ExecutionResult(rowcount=cursor.rowcount)
            if cursor.description is not None and (
                    scalar or command.command_type == CommandType.STORED_PROCEDURE):
                row = cursor.fetchone()
                result.scalar = scalar_from_row(row)
                if command.command_type == CommandType.STORED_PROCEDURE:
                    columns = [d[0] for d in cursor.description]
                    result.outputs = collect_outputs(command, columns, row)
        finally:
            cursor.close()
        return result
