"""Unit tests for parameter-marker rewriting."""

import pytest
from dbcontext import InvalidOperation, Parameter, ParameterDirection
from dbcontext.sql import TokenType, build_procedure_call, find_markers
from dbcontext.sql import tokenize_sql, translate_markers


class TestTokenize:

    def test_preserves_text(self):
        sql = "select * from t where a = @a and b = 'x@y' -- @c\n and d = \"@col\""
        assert ''.join(t.text for t in tokenize_sql(sql)) == sql

    def test_markers_found_in_order(self):
        sql = 'update t set a = @a, b = @B where id = @id and a = @a'
        assert find_markers(sql) == ['a', 'B', 'id', 'a']

    @pytest.mark.parametrize('sql', [
        "select '@a'",
        'select "@a"',
        'select 1 -- @a',
        'select 1 /* @a\n @b */',
        'select @@version',
        "select tags @> '{x}'",
        'select a <@ b',
        "select 'it''s @a'",
    ])
    def test_not_markers(self, sql):
        assert find_markers(sql) == []

    def test_token_types(self):
        tokens = tokenize_sql("select @a, 'lit' -- note")
        types = [t.type for t in tokens]
        assert TokenType.MARKER in types
        assert TokenType.STRING_LITERAL in types
        assert TokenType.COMMENT in types


class TestTranslateMarkers:

    VALUES = {'a': 1, 'b': 'two'}

    def test_named(self):
        sql, params = translate_markers('select @a, @B', self.VALUES, 'named')
        assert sql == 'select :a, :b'
        assert params == {'a': 1, 'b': 'two'}

    def test_pyformat(self):
        sql, params = translate_markers('select @a, @b', self.VALUES, 'pyformat')
        assert sql == 'select %(a)s, %(b)s'
        assert params == {'a': 1, 'b': 'two'}

    def test_qmark_repeats_values(self):
        sql, params = translate_markers('select @a, @b, @a', self.VALUES, 'qmark')
        assert sql == 'select ?, ?, ?'
        assert params == [1, 'two', 1]

    def test_format(self):
        sql, params = translate_markers('select @b, @a', self.VALUES, 'format')
        assert sql == 'select %s, %s'
        assert params == ['two', 1]

    def test_numeric_reuses_positions(self):
        sql, params = translate_markers('select @a, @b, @a', self.VALUES, 'numeric')
        assert sql == 'select :1, :2, :1'
        assert params == [1, 'two']

    def test_percent_escaped_for_percent_styles(self):
        sql, _ = translate_markers("select * from t where name like 'A%' and id = @a",
                                   self.VALUES, 'pyformat')
        assert sql == "select * from t where name like 'A%%' and id = %(a)s"

    def test_percent_untouched_for_qmark(self):
        sql, _ = translate_markers("select 'A%', @a", self.VALUES, 'qmark')
        assert sql == "select 'A%', ?"

    def test_literals_and_comments_untouched(self):
        sql, params = translate_markers("select '@a', @a -- @b", self.VALUES, 'qmark')
        assert sql == "select '@a', ? -- @b"
        assert params == [1]

    def test_no_markers_returns_sql_unchanged(self):
        sql, params = translate_markers("select '100%'", self.VALUES, 'pyformat')
        assert sql == "select '100%'"
        assert params is None

    def test_unbound_marker(self):
        with pytest.raises(InvalidOperation, match='@missing'):
            translate_markers('select @missing', self.VALUES, 'qmark')

    def test_unknown_paramstyle(self):
        with pytest.raises(ValueError, match='paramstyle'):
            translate_markers('select @a', self.VALUES, 'dollar')


class TestBuildProcedureCall:

    def test_call(self):
        parameters = [Parameter('@a'), Parameter('@total', direction=ParameterDirection.OUTPUT)]
        assert build_procedure_call('  add_order ', parameters) == 'CALL add_order(@a, @total)'

    def test_no_parameters(self):
        assert build_procedure_call('refresh', []) == 'CALL refresh()'

    def test_return_value_selects_function(self):
        parameters = [
            Parameter('@result', direction=ParameterDirection.RETURN_VALUE),
            Parameter('@a'),
            Parameter('@b'),
            ]
        assert build_procedure_call('add', parameters) == 'SELECT add(@a, @b)'
