"""
Enumerations and value handling shared by every layer.

This module provides:
- DbType, ParameterDirection, IsolationLevel, CommandType: descriptor enums
- ConnectionState, ContextState: lifecycle states
- NoValue / NO_VALUE: the database NULL marker
- to_native: normalize NumPy and Pandas scalars to driver-friendly values
"""
import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

import numpy as np
import pandas as pd

__all__ = [
    'DbType',
    'ParameterDirection',
    'IsolationLevel',
    'CommandType',
    'ConnectionState',
    'ContextState',
    'NoValue',
    'NO_VALUE',
    'is_absent',
    'to_native',
    'to_driver',
]


class DbType(Enum):
    """Database type of a bound parameter."""
    ANSI_STRING = auto()
    BINARY = auto()
    BYTE = auto()
    BOOLEAN = auto()
    CURRENCY = auto()
    DATE = auto()
    DATETIME = auto()
    DATETIME_OFFSET = auto()
    DECIMAL = auto()
    DOUBLE = auto()
    GUID = auto()
    INT16 = auto()
    INT32 = auto()
    INT64 = auto()
    OBJECT = auto()
    SINGLE = auto()
    STRING = auto()
    TIME = auto()
    XML = auto()


class ParameterDirection(Enum):
    """Direction of a bound parameter."""
    INPUT = auto()
    OUTPUT = auto()
    INPUT_OUTPUT = auto()
    RETURN_VALUE = auto()

    @property
    def is_output(self) -> bool:
        return self is not ParameterDirection.INPUT


class IsolationLevel(Enum):
    """Transaction isolation level."""
    UNSPECIFIED = auto()
    CHAOS = auto()
    READ_UNCOMMITTED = auto()
    READ_COMMITTED = auto()
    REPEATABLE_READ = auto()
    SERIALIZABLE = auto()
    SNAPSHOT = auto()


class CommandType(Enum):
    """How command text is interpreted."""
    TEXT = auto()
    STORED_PROCEDURE = auto()


class ConnectionState(Enum):
    CLOSED = auto()
    OPEN = auto()


class ContextState(Enum):
    """Lifecycle of a DbContext.

    DISPOSED is terminal; every other state falls back to CONFIGURED on close().
    """
    UNCONFIGURED = auto()
    CONFIGURED = auto()
    CONNECTED = auto()
    IN_TRANSACTION = auto()
    DISPOSED = auto()


@dataclass(frozen=True, slots=True)
class NoValue:
    """Database NULL.

    Distinguishes "the field holds NULL" (a NoValue instance) from
    "nothing was returned" (None). Test with isinstance or is_absent(),
    every instance compares equal.
    """

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return 'NO_VALUE'


NO_VALUE = NoValue()


def is_absent(value: Any) -> bool:
    """True for native None and for the database NULL marker."""
    return value is None or isinstance(value, NoValue)


def to_native(value: Any) -> Any:
    """Convert NumPy and Pandas scalars to plain Python values.

    Missing-value scalars (NaN, NaT, pd.NA) become None.
    """
    if is_absent(value):
        return value

    if isinstance(value, float) and math.isnan(value):
        return None

    if isinstance(value, type(pd.NaT)):
        return None

    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()

    if isinstance(value, np.datetime64):
        if np.isnat(value):
            return None
        return pd.Timestamp(value).to_pydatetime()

    if isinstance(value, (np.floating, np.integer, np.bool_)):
        return to_native(value.item())

    if pd.api.types.is_scalar(value) and pd.isna(value):
        return None

    return value


def to_driver(value: Any) -> Any:
    """Value handed to a DB-API driver: NULL marker becomes None."""
    if isinstance(value, NoValue):
        return None
    return value


def format_isolation(level: IsolationLevel) -> str:
    """SQL spelling of an isolation level, e.g. 'READ COMMITTED'."""
    return level.name.replace('_', ' ')
