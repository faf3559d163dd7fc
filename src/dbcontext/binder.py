"""
Parameter binding for commands.

Names are normalized in one place so callers may pass 'id' or '@id'
interchangeably, and values are coerced so the driver never sees a
parameter object or an ambiguous native None:

    add_parameter(cmd, 'id', DbType.INT32, 42)
    add_parameter(cmd, ParameterValue('name', DbType.STRING, 'Alice'))
    add_parameters(cmd, [ParameterValue('a', DbType.INT32, 1), ...])
    set_parameter(cmd, 'id', 43)
"""
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from more_itertools import collapse

from dbcontext.exceptions import InvalidArgument
from dbcontext.parameter import Parameter, ParameterValue
from dbcontext.types import NO_VALUE, DbType, ParameterDirection, to_native

if TYPE_CHECKING:
    from dbcontext.command import Command

__all__ = [
    'normalize_name',
    'coerce_value',
    'add_parameter',
    'add_parameter_value',
    'add_parameters',
    'set_parameter',
]

logger = logging.getLogger(__name__)

DEFAULT_MARKER = '@'


def normalize_name(name: str | None, marker: str = DEFAULT_MARKER) -> str:
    """Trim the name and prefix the marker unless already present.

    An empty name stays empty so the caller can reject it.
    """
    result = (name or '').strip()
    if not result:
        return result
    if not result.startswith(marker):
        result = marker + result
    return result


def coerce_value(value: Any) -> Any:
    """Turn a caller value into a bindable value.

    Parameter-like objects are unwrapped to their inner value, NumPy and
    Pandas scalars become plain Python values, and anything absent becomes
    NO_VALUE.
    """
    if isinstance(value, Parameter | ParameterValue):
        value = value.value
    value = to_native(value)
    if value is None:
        return NO_VALUE
    return value


def _marker_for(command: 'Command') -> str:
    provider = getattr(command, 'provider', None)
    return getattr(provider, 'parameter_marker', DEFAULT_MARKER)


def _checked_name(command: 'Command | None', name: str | None) -> str:
    if command is None:
        raise InvalidArgument('command')
    parameter_name = normalize_name(name, _marker_for(command))
    if not parameter_name:
        raise InvalidArgument('name')
    return parameter_name


def add_parameter(command: 'Command', name: 'str | ParameterValue | Iterable[ParameterValue] | None',
                  db_type: DbType = DbType.STRING, value: Any = None,
                  direction: ParameterDirection = ParameterDirection.INPUT) -> None:
    """Bind a parameter to the command, reconfiguring it if already bound.

    `name` may also be a ParameterValue or an iterable of them, in which case
    the remaining arguments are ignored.
    """
    if isinstance(name, ParameterValue):
        add_parameter_value(command, name)
        return
    if name is not None and not isinstance(name, str) and isinstance(name, Iterable):
        add_parameters(command, name)
        return

    parameter_name = _checked_name(command, name)

    parameter = command.parameters.get(parameter_name)
    if parameter is None:
        parameter = command.create_parameter()
        parameter.name = parameter_name
        command.parameters.add(parameter)
    else:
        logger.debug(f'Reconfiguring bound parameter {parameter_name}')

    parameter.db_type = db_type
    parameter.direction = direction
    parameter.value = coerce_value(value)


def add_parameter_value(command: 'Command', parameter: ParameterValue | None) -> None:
    """Bind a ParameterValue to the command.
    """
    if parameter is None:
        raise InvalidArgument('parameter')
    add_parameter(command, parameter.name, parameter.db_type,
                  parameter.value, parameter.direction)


def add_parameters(command: 'Command', parameters: Iterable[ParameterValue] | None) -> None:
    """Bind each ParameterValue in order; None binds nothing.
    """
    if parameters is None:
        return
    for parameter in collapse(parameters, base_type=ParameterValue):
        add_parameter_value(command, parameter)


def set_parameter(command: 'Command', name: str | None, value: Any) -> None:
    """Assign a value to an already-bound parameter.

    Setting a name that was never bound does nothing: callers conditionally
    set parameters that were conditionally added.
    """
    parameter_name = _checked_name(command, name)
    parameter = command.parameters.get(parameter_name)
    if parameter is not None:
        parameter.value = coerce_value(value)
