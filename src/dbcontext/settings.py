"""
Named connection strings.

Entries pair a provider identifier with a connection string. They are
usually loaded from a configuration module of libb Settings:

    # config.py
    from libb import Setting

    Setting.unlock()
    main = Setting()
    main.provider = 'sqlite3'
    main.connection_string = 'Data Source=app.db'
    Setting.lock()

    # application
    import config
    from dbcontext import DbContext, load_connection_strings

    load_connection_strings(config)
    with DbContext.from_settings('main') as ctx:
        ...

Without a name, the first entry is used.
"""
import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Self

from dbcontext.exceptions import ConfigurationError

__all__ = [
    'ConnectionStringSettings',
    'ConnectionStrings',
    'connection_strings',
    'load_connection_strings',
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionStringSettings:
    name: str
    provider_name: str
    connection_string: str


def _read(entry: Any, key: str) -> Any:
    if isinstance(entry, Mapping):
        return entry.get(key)
    return getattr(entry, key, None)


def _is_entry(entry: Any) -> bool:
    return _read(entry, 'provider') is not None and _read(entry, 'connection_string') is not None


class ConnectionStrings:
    """Ordered collection of named connection strings.

    Names are case-insensitive; insertion order defines the first entry.
    """

    def __init__(self, entries: 'Iterator[ConnectionStringSettings] | list | None' = None) -> None:
        self._entries: dict[str, ConnectionStringSettings] = {}
        for entry in entries or []:
            self.add(entry)

    @classmethod
    def from_config(cls, config: Any) -> Self:
        """Build from a mapping of entries or a module/object of entries.

        Each entry is a mapping or an object (e.g. a libb Setting) with
        `provider` and `connection_string` keys. Private names are skipped.
        """
        if isinstance(config, Mapping):
            items = config.items()
        else:
            items = vars(config).items()
        instance = cls()
        for name, entry in items:
            if name.startswith('_') or not _is_entry(entry):
                continue
            instance.add(ConnectionStringSettings(
                name, _read(entry, 'provider'), _read(entry, 'connection_string')))
        return instance

    def add(self, entry: ConnectionStringSettings) -> ConnectionStringSettings:
        self._entries[entry.name.lower()] = entry
        logger.debug(f'Added connection string {entry.name} ({entry.provider_name})')
        return entry

    def remove(self, name: str) -> None:
        self._entries.pop(name.lower(), None)

    def clear(self) -> None:
        self._entries.clear()

    def get(self, name: str) -> ConnectionStringSettings | None:
        return self._entries.get((name or '').lower())

    def first(self) -> ConnectionStringSettings | None:
        return next(iter(self._entries.values()), None)

    def resolve(self, name: str | None = None) -> ConnectionStringSettings:
        """Named entry, or the first entry when name is empty.
        """
        if not (name or '').strip():
            entry = self.first()
            if entry is None:
                raise ConfigurationError('No connection strings are configured.')
            return entry
        entry = self.get(name.strip())
        if entry is None:
            raise ConfigurationError(f'Connection string [{name}] is not configured.')
        return entry

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ConnectionStringSettings]:
        return iter(list(self._entries.values()))

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._entries

    def __getitem__(self, key: str | int) -> ConnectionStringSettings:
        if isinstance(key, int):
            return list(self._entries.values())[key]
        return self._entries[key.lower()]

    def __repr__(self) -> str:
        return f'ConnectionStrings({list(self._entries.values())!r})'


connection_strings = ConnectionStrings()


def load_connection_strings(config: Any, target: ConnectionStrings | None = None) -> ConnectionStrings:
    """Replace the entries of `target` (the process-wide collection by default).
    """
    target = connection_strings if target is None else target
    loaded = ConnectionStrings.from_config(config)
    target.clear()
    for entry in loaded:
        target.add(entry)
    return target
