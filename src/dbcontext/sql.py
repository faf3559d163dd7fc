"""
Parameter-marker rewriting.

Commands are written with provider markers (`@name`). Drivers expect their
own paramstyle, so command text is tokenized once and rebuilt:

    SQL + bound parameters → Tokenize → Rewrite markers → (driver SQL, driver params)

String literals, quoted identifiers and comments are copied untouched,
except that percent signs are doubled for the percent-based paramstyles.
`@@name` (server variables) and the `@>` / `<@` operators are not markers.
"""
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum, auto
from functools import lru_cache
from typing import Any

from dbcontext.exceptions import InvalidOperation
from dbcontext.types import ParameterDirection

__all__ = [
    'TokenType',
    'Token',
    'tokenize_sql',
    'find_markers',
    'translate_markers',
    'build_procedure_call',
    'PARAMSTYLES',
]

PARAMSTYLES = ('named', 'pyformat', 'qmark', 'format', 'numeric')


class TokenType(Enum):
    """Token types identified during SQL parsing."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    QUOTED_IDENT = auto()
    COMMENT = auto()
    OPERATOR = auto()
    MARKER = auto()


@dataclass(slots=True)
class Token:
    """Token from SQL parsing."""
    type: TokenType
    text: str
    name: str | None = None


@lru_cache(maxsize=8)
def _tokenizer(marker: str) -> re.Pattern:
    m = re.escape(marker)
    return re.compile(rf"""
        (?P<string>'(?:[^']|'')*')
        |(?P<ident>"(?:[^"]|"")*"|`[^`]*`)
        |(?P<comment>--[^\n]*|/\*.*?\*/)
        |(?P<operator>{m}{m}\w*|{m}>|<{m})
        |(?P<marker>{m}(?P<name>[A-Za-z_]\w*))
    """, re.VERBOSE | re.DOTALL)


def tokenize_sql(sql: str, marker: str = '@') -> list[Token]:
    """Parse SQL into tokens in a single pass.

    Returns
        List of tokens preserving all SQL text
    """
    tokens = []
    last_end = 0

    for match in _tokenizer(marker).finditer(sql):
        start, end = match.span()
        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start]))

        if match.group('string'):
            tokens.append(Token(TokenType.STRING_LITERAL, match.group(0)))
        elif match.group('ident'):
            tokens.append(Token(TokenType.QUOTED_IDENT, match.group(0)))
        elif match.group('comment'):
            tokens.append(Token(TokenType.COMMENT, match.group(0)))
        elif match.group('operator'):
            tokens.append(Token(TokenType.OPERATOR, match.group(0)))
        else:
            tokens.append(Token(TokenType.MARKER, match.group(0), match.group('name')))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:]))

    return tokens


def find_markers(sql: str, marker: str = '@') -> list[str]:
    """Names of the markers in SQL, in order of appearance (repeats kept)."""
    return [t.name for t in tokenize_sql(sql, marker) if t.type == TokenType.MARKER]


def _placeholder(paramstyle: str, key: str, position: int) -> str:
    if paramstyle == 'named':
        return f':{key}'
    if paramstyle == 'pyformat':
        return f'%({key})s'
    if paramstyle == 'qmark':
        return '?'
    if paramstyle == 'format':
        return '%s'
    return f':{position}'


def translate_markers(sql: str, values: Mapping[str, Any], paramstyle: str,
                      marker: str = '@') -> tuple[str, dict[str, Any] | list[Any] | None]:
    """Rewrite `@name` markers for a DB-API paramstyle.

    Parameters
        sql: command text written with provider markers
        values: driver values keyed by lower-case name without the marker
        paramstyle: one of PARAMSTYLES
        marker: provider parameter marker

    Returns
        Tuple of (driver_sql, driver_params); params is None when the SQL has
        no markers, a dict for named styles and a list for positional styles
    """
    if paramstyle not in PARAMSTYLES:
        raise ValueError(f'Unsupported paramstyle: {paramstyle}')

    tokens = tokenize_sql(sql, marker)
    if not any(t.type == TokenType.MARKER for t in tokens):
        return sql, None

    escape_percent = paramstyle in {'pyformat', 'format'}
    named = paramstyle in {'named', 'pyformat'}
    result: list[str] = []
    named_params: dict[str, Any] = {}
    positional: list[Any] = []
    numeric_order: list[str] = []

    for token in tokens:
        if token.type != TokenType.MARKER:
            result.append(token.text.replace('%', '%%') if escape_percent else token.text)
            continue

        key = token.name.lower()
        if key not in values:
            raise InvalidOperation(f'Parameter {marker}{token.name} is referenced but not bound')

        if named:
            named_params[key] = values[key]
            result.append(_placeholder(paramstyle, key, 0))
        elif paramstyle == 'numeric':
            if key not in numeric_order:
                numeric_order.append(key)
                positional.append(values[key])
            result.append(_placeholder(paramstyle, key, numeric_order.index(key) + 1))
        else:
            positional.append(values[key])
            result.append(_placeholder(paramstyle, key, len(positional)))

    return ''.join(result), named_params if named else positional


def build_procedure_call(procedure: str, parameters: Sequence[Any],
                         marker: str = '@') -> str:
    """Build the statement that invokes a stored procedure.

    Every parameter except the return value is passed positionally in
    binding order. A RETURN_VALUE parameter selects the routine as a
    function so its result can be read back.
    """
    procedure = procedure.strip()

    args = ', '.join(
        p.name if p.name.startswith(marker) else marker + p.name
        for p in parameters
        if p.direction != ParameterDirection.RETURN_VALUE
    )
    returns = any(p.direction == ParameterDirection.RETURN_VALUE for p in parameters)
    if returns:
        return f'SELECT {procedure}({args})'
    return f'CALL {procedure}({args})'
