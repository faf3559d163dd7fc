"""
Key/value connection strings.

    builder = ConnectionStringBuilder('Data Source=app.db;Timeout=5')
    builder['timeout']           # '5'
    builder['Foreign Keys'] = 'true'
    builder.connection_string    # 'data source=app.db;timeout=5;foreign keys=true'

Keys are case-insensitive and may be declared with synonyms, so
'DataSource', 'Database' and 'Data Source' can all land on one canonical key.
"""
from collections.abc import Iterator, Mapping, MutableMapping

from dbcontext.exceptions import InvalidArgument

__all__ = ['ConnectionStringBuilder', 'parse_connection_string']


def _at_value_start(current: list[str]) -> bool:
    segment = ''.join(current)
    key, sep, value = segment.partition('=')
    return bool(sep) and not value.strip()


def _split(connection_string: str) -> Iterator[str]:
    """Split on ';' outside a quoted value."""
    current: list[str] = []
    quote = None
    i = 0
    while i < len(connection_string):
        char = connection_string[i]
        i += 1
        if quote:
            current.append(char)
            if char == quote:
                # doubled quote is an escaped quote
                if connection_string[i:i + 1] == quote:
                    current.append(quote)
                    i += 1
                else:
                    quote = None
        elif char in '"\'' and _at_value_start(current):
            quote = char
            current.append(char)
        elif char == ';':
            yield ''.join(current)
            current = []
        else:
            current.append(char)
    if quote:
        raise InvalidArgument('connection_string', 'Unterminated quote in connection string.')
    yield ''.join(current)


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in '"\'':
        q = value[0]
        return value[1:-1].replace(q * 2, q)
    return value


def _quote(value: str) -> str:
    if any(c in value for c in ';="\'') or value != value.strip():
        return '"' + value.replace('"', '""') + '"'
    return value


def parse_connection_string(connection_string: str) -> dict[str, str]:
    """Parse 'key=value;key=value' into a dict with lower-case keys.
    """
    pairs: dict[str, str] = {}
    for segment in _split(connection_string or ''):
        if not segment.strip():
            continue
        key, sep, value = segment.partition('=')
        key = ' '.join(key.split()).lower()
        if not sep or not key:
            raise InvalidArgument('connection_string',
                                  f'Format of the connection string is invalid near [{segment.strip()}].')
        pairs[key] = _unquote(value)
    return pairs


class ConnectionStringBuilder(MutableMapping[str, str]):
    """Mutable view of a connection string.

    `synonyms` maps alternative (lower-case) key spellings to the canonical key.
    """

    def __init__(self, connection_string: str = '',
                 synonyms: Mapping[str, str] | None = None) -> None:
        self._synonyms = {k.lower(): v.lower() for k, v in (synonyms or {}).items()}
        self._values: dict[str, str] = {}
        self.connection_string = connection_string

    def _canonical(self, key: str) -> str:
        key = ' '.join(key.split()).lower()
        return self._synonyms.get(key, key)

    @property
    def connection_string(self) -> str:
        return ';'.join(f'{k}={_quote(str(v))}' for k, v in self._values.items())

    @connection_string.setter
    def connection_string(self, value: str) -> None:
        self._values = {}
        for key, val in parse_connection_string(value).items():
            self[key] = val

    def __getitem__(self, key: str) -> str:
        return self._values[self._canonical(key)]

    def __setitem__(self, key: str, value: str) -> None:
        self._values[self._canonical(key)] = value

    def __delitem__(self, key: str) -> None:
        del self._values[self._canonical(key)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._canonical(key) in self._values

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key)
        if value is None:
            return default
        return value.strip().lower() in {'true', 'yes', '1', 'on'}

    def get_float(self, key: str, default: float | None = None) -> float | None:
        value = self.get(key)
        if value is None or not value.strip():
            return default
        try:
            return float(value)
        except ValueError:
            raise InvalidArgument('connection_string',
                                  f'Invalid numeric value [{value}] for [{key}].') from None

    def __repr__(self) -> str:
        safe = {k: ('***' if k in {'password', 'pwd'} else v) for k, v in self._values.items()}
        return f'{type(self).__name__}({safe!r})'
