"""
Parameter descriptors.

ParameterValue is what callers build; Parameter is what a command holds once
a ParameterValue (or a name/type/value triple) has been bound to it.
"""
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from dbcontext.exceptions import InvalidArgument
from dbcontext.types import NO_VALUE, DbType, ParameterDirection

__all__ = ['ParameterValue', 'Parameter', 'ParameterCollection']


@dataclass(frozen=True)
class ParameterValue:
    """Named, typed, directioned value supplied by a caller.

    Examples
        ParameterValue('id', DbType.INT32, 42)
        ParameterValue('@total', DbType.DECIMAL, direction=ParameterDirection.OUTPUT)
    """
    name: str
    db_type: DbType = DbType.STRING
    value: Any = NO_VALUE
    direction: ParameterDirection = ParameterDirection.INPUT

    def __post_init__(self) -> None:
        name = (self.name or '').strip()
        if not name:
            raise InvalidArgument('name')
        object.__setattr__(self, 'name', name)
        if self.value is None:
            object.__setattr__(self, 'value', NO_VALUE)


@dataclass
class Parameter:
    """A parameter bound to a command.

    The name always carries the provider's parameter marker. `db_type`
    describes the parameter; drivers receive the value as it is.
    """
    name: str = ''
    db_type: DbType = DbType.STRING
    value: Any = NO_VALUE
    direction: ParameterDirection = ParameterDirection.INPUT

    @property
    def key(self) -> str:
        """Case-insensitive lookup key (name without the marker)."""
        return _key(self.name)


def _key(name: str) -> str:
    return name.lstrip('@:$?').lower()


@dataclass
class ParameterCollection:
    """Ordered parameters of a command, looked up by name case-insensitively.
    """
    _items: dict[str, Parameter] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Parameter]:
        return iter(list(self._items.values()))

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and _key(name) in self._items

    def __getitem__(self, name: str | int) -> Parameter:
        if isinstance(name, int):
            return list(self._items.values())[name]
        try:
            return self._items[_key(name)]
        except KeyError:
            raise KeyError(f'Parameter {name} is not bound') from None

    def contains(self, name: str) -> bool:
        return name in self

    def get(self, name: str, default: Parameter | None = None) -> Parameter | None:
        return self._items.get(_key(name), default)

    def add(self, parameter: Parameter) -> Parameter:
        """Append a parameter; a name that is already bound is rejected."""
        if parameter.key in self._items:
            raise InvalidArgument('parameter', f'Parameter {parameter.name} is already bound.')
        self._items[parameter.key] = parameter
        return parameter

    def remove(self, name: str) -> None:
        self._items.pop(_key(name), None)

    def clear(self) -> None:
        self._items.clear()

    def names(self) -> list[str]:
        return [p.name for p in self._items.values()]
