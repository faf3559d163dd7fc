"""
Provider factory interface and registry.

A provider is a small capability set rather than a class hierarchy: it
creates connections, commands, parameters and connection-string builders,
and performs the handful of driver operations those objects delegate to.
Providers are looked up by identifier:

    @register_provider('sqlite3', 'sqlite')
    class SQLiteProvider:
        ...

    factory = get_factory('sqlite3')
"""
import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from dbcontext.command import Command, ExecutionResult
from dbcontext.connection_string import ConnectionStringBuilder
from dbcontext.exceptions import ProviderUnavailable
from dbcontext.types import IsolationLevel

if TYPE_CHECKING:
    from dbcontext.connection import Connection
    from dbcontext.parameter import Parameter

__all__ = [
    'ExecutionResult',
    'ProviderFactory',
    'register_provider',
    'unregister_provider',
    'get_factory',
    'get_available_providers',
    'is_registered_provider',
]

logger = logging.getLogger(__name__)


@runtime_checkable
class ProviderFactory(Protocol):
    """Capabilities a database provider must offer.
    """
    name: str
    parameter_marker: str

    def create_connection(self) -> 'Connection': ...

    def create_command(self) -> Command | None: ...

    def create_parameter(self) -> 'Parameter': ...

    def create_connection_string_builder(self) -> ConnectionStringBuilder | None: ...

    def open_handle(self, connection_string: str) -> Any:
        """Open and return a driver connection."""

    def close_handle(self, handle: Any) -> None: ...

    def begin(self, handle: Any, level: IsolationLevel) -> Any:
        """Start a transaction; returns a driver token passed to commit/rollback."""

    def commit(self, handle: Any, token: Any) -> None: ...

    def rollback(self, handle: Any, token: Any) -> None: ...

    def execute(self, handle: Any, command: Command, scalar: bool = False) -> ExecutionResult: ...


_PROVIDER_REGISTRY: dict[str, Callable[[], ProviderFactory]] = {}
_INSTANCES: dict[str, ProviderFactory] = {}
_registry_lock = threading.RLock()


def _key(name: str) -> str:
    return (name or '').strip().lower()


def register_provider(*names: str, factory: Callable[[], ProviderFactory] | None = None):
    """Register a provider factory under one or more identifiers.

    Usable as a class decorator or as a direct call:

        @register_provider('postgresql', 'psycopg')
        class PostgresProvider: ...

        register_provider('test.provider', factory=lambda: SQLiteProvider(...))
    """
    def decorator(cls: Callable[[], ProviderFactory]) -> Callable[[], ProviderFactory]:
        with _registry_lock:
            for name in names:
                _PROVIDER_REGISTRY[_key(name)] = cls
                _INSTANCES.pop(_key(name), None)
                logger.debug(f'Registered database provider {name}')
        return cls

    if factory is not None:
        return decorator(factory)
    return decorator


def unregister_provider(name: str) -> None:
    with _registry_lock:
        _PROVIDER_REGISTRY.pop(_key(name), None)
        _INSTANCES.pop(_key(name), None)


def get_factory(name: str) -> ProviderFactory:
    """Get the provider factory for an identifier.

    Factories are instantiated once per identifier. A missing registration
    or a factory that fails to construct (e.g. its driver cannot be
    imported) raises ProviderUnavailable naming the identifier.
    """
    key = _key(name)
    with _registry_lock:
        if key in _INSTANCES:
            return _INSTANCES[key]
        if key not in _PROVIDER_REGISTRY:
            available = get_available_providers()
            raise ProviderUnavailable(
                name, f'Database provider name [{name}] is not valid. Available: {available}')
        try:
            instance = _PROVIDER_REGISTRY[key]()
        except Exception as exc:
            raise ProviderUnavailable(
                name, f'Database provider name [{name}] is not supported: {exc}') from exc
        _INSTANCES[key] = instance
        return instance


def get_available_providers() -> list[str]:
    """Return list of registered provider identifiers."""
    with _registry_lock:
        return list(_PROVIDER_REGISTRY.keys())


def is_registered_provider(name: str) -> bool:
    with _registry_lock:
        return _key(name) in _PROVIDER_REGISTRY
