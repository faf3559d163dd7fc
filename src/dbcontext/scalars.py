"""
Typed extraction of values returned by the database.

Every helper returns its default when the value is absent (None or the
NULL marker) and otherwise requires the value's runtime type to match the
column's declared type; a mismatch raises InvalidCast.

    count = get_db_integer(ctx.execute_scalar('select count(*) from t'))
    name = get_db_string(ctx.execute_scalar('select name from t where id = @id', p))
"""
import datetime
from decimal import Decimal
from typing import Any

from dbcontext.exceptions import InvalidCast
from dbcontext.types import is_absent

__all__ = [
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
]

_INT_RANGES = {
    'byte': (0, 2**8 - 1),
    'short': (-2**15, 2**15 - 1),
    'integer': (-2**31, 2**31 - 1),
    'long': (-2**63, 2**63 - 1),
}


def _cast_error(value: Any, target: str) -> InvalidCast:
    return InvalidCast(f'Cannot cast {type(value).__name__} value {value!r} to {target}')


def _get_int(value: Any, default: int, kind: str) -> int:
    if is_absent(value):
        return default
    if not isinstance(value, int) or isinstance(value, bool):
        raise _cast_error(value, kind)
    low, high = _INT_RANGES[kind]
    if not low <= value <= high:
        raise _cast_error(value, kind)
    return value


def get_db_string(value: Any, default: str = '') -> str:
    if is_absent(value):
        return default
    if not isinstance(value, str):
        raise _cast_error(value, 'str')
    return value


def get_db_boolean(value: Any, default: bool = False) -> bool:
    if is_absent(value):
        return default
    if not isinstance(value, bool):
        raise _cast_error(value, 'bool')
    return value


def get_db_datetime(value: Any,
                    default: datetime.datetime = datetime.datetime.min) -> datetime.datetime:
    """Timestamp column value; datetime.min when NULL.
    """
    if is_absent(value):
        return default
    if not isinstance(value, datetime.datetime):
        raise _cast_error(value, 'datetime')
    return value


def get_db_bytes(value: Any, default: bytes = b'') -> bytes:
    """Binary column value; empty bytes when NULL.
    """
    if is_absent(value):
        return default
    if not isinstance(value, bytes | bytearray | memoryview):
        raise _cast_error(value, 'bytes')
    return bytes(value)


def get_db_byte(value: Any, default: int = 0) -> int:
    """Unsigned 8-bit integer column value.
    """
    return _get_int(value, default, 'byte')


def get_db_short(value: Any, default: int = 0) -> int:
    """16-bit integer column value.
    """
    return _get_int(value, default, 'short')


def get_db_integer(value: Any, default: int = 0) -> int:
    """32-bit integer column value.
    """
    return _get_int(value, default, 'integer')


def get_db_long(value: Any, default: int = 0) -> int:
    """64-bit integer column value.
    """
    return _get_int(value, default, 'long')


def get_db_decimal(value: Any, default: Decimal = Decimal(0)) -> Decimal:
    if is_absent(value):
        return default
    if not isinstance(value, Decimal):
        raise _cast_error(value, 'Decimal')
    return value


def get_db_double(value: Any, default: float = 0.0) -> float:
    if is_absent(value):
        return default
    if not isinstance(value, float):
        raise _cast_error(value, 'float')
    return value
