"""Unit tests for parameter binding on commands."""

import math

import numpy as np
import pandas as pd
import pytest
from dbcontext import NO_VALUE, DbType, InvalidArgument, NoValue, Parameter
from dbcontext import ParameterDirection, ParameterValue, add_parameter
from dbcontext import add_parameter_value, add_parameters, coerce_value
from dbcontext import normalize_name, set_parameter

# =============================================================================
# Name normalization
# =============================================================================


class TestNormalizeName:
    """Marker prefixing of parameter names."""

    @pytest.mark.parametrize('name', ['id', '@id', '  id ', ' @id', 'Customer_Id', '@@id'])
    def test_idempotent(self, name):
        once = normalize_name(name)
        assert normalize_name(once) == once

    def test_prefixes_marker_once(self):
        assert normalize_name('id') == '@id'
        assert normalize_name('@id') == '@id'
        assert normalize_name('  id  ') == '@id'

    def test_custom_marker(self):
        assert normalize_name('id', ':') == ':id'
        assert normalize_name(':id', ':') == ':id'

    @pytest.mark.parametrize('name', ['', '   ', None])
    def test_empty_stays_empty(self, name):
        assert normalize_name(name) == ''


# =============================================================================
# Value coercion
# =============================================================================


class TestCoerceValue:
    """Values handed to the binder become bindable values."""

    def test_none_becomes_no_value(self):
        assert isinstance(coerce_value(None), NoValue)

    def test_no_value_is_kept(self):
        assert isinstance(coerce_value(NO_VALUE), NoValue)

    def test_unwraps_parameter_value(self):
        assert coerce_value(ParameterValue('x', DbType.INT32, 7)) == 7

    def test_unwraps_bound_parameter(self):
        assert coerce_value(Parameter('@x', DbType.STRING, 'abc')) == 'abc'

    def test_unwrapped_none_becomes_no_value(self):
        assert isinstance(coerce_value(Parameter('@x', value=None)), NoValue)

    def test_numpy_and_pandas_scalars(self):
        assert coerce_value(np.int64(5)) == 5
        assert type(coerce_value(np.int64(5))) is int
        assert coerce_value(np.float64(1.5)) == 1.5
        assert isinstance(coerce_value(np.nan), NoValue)
        assert isinstance(coerce_value(pd.NaT), NoValue)
        assert isinstance(coerce_value(pd.NA), NoValue)

    def test_infinity_is_kept(self):
        assert coerce_value(math.inf) == math.inf
        assert coerce_value(np.float64('-inf')) == -math.inf

    def test_falsy_values_are_not_absent(self):
        assert coerce_value(0) == 0
        assert coerce_value('') == ''
        assert coerce_value(False) is False


# =============================================================================
# add_parameter / set_parameter
# =============================================================================


class TestAddParameter:
    """Binding parameters to a command."""

    def test_adds_normalized_parameter(self, command):
        add_parameter(command, 'id', DbType.INT32, 42)

        assert len(command.parameters) == 1
        parameter = command.parameters['@id']
        assert parameter.name == '@id'
        assert parameter.db_type == DbType.INT32
        assert parameter.value == 42
        assert parameter.direction == ParameterDirection.INPUT

    def test_same_name_reconfigures_in_place(self, command):
        add_parameter(command, 'id', DbType.INT32, 1)
        add_parameter(command, '@ID', DbType.INT64, 2, ParameterDirection.INPUT_OUTPUT)

        assert len(command.parameters) == 1
        parameter = command.parameters['id']
        assert parameter.db_type == DbType.INT64
        assert parameter.value == 2
        assert parameter.direction == ParameterDirection.INPUT_OUTPUT

    def test_none_value_is_stored_as_no_value(self, command):
        add_parameter(command, 'x', DbType.STRING, None)
        assert isinstance(command.parameters['x'].value, NoValue)

    def test_empty_name_names_argument(self, command):
        with pytest.raises(InvalidArgument) as exc_info:
            add_parameter(command, '', DbType.INT32, 1)
        assert exc_info.value.param_name == 'name'
        assert len(command.parameters) == 0

    def test_blank_name_rejected(self, command):
        with pytest.raises(InvalidArgument) as exc_info:
            add_parameter(command, '   ', DbType.INT32, 1)
        assert exc_info.value.param_name == 'name'

    def test_missing_command(self):
        with pytest.raises(InvalidArgument) as exc_info:
            add_parameter(None, 'id', DbType.INT32, 1)
        assert exc_info.value.param_name == 'command'

    def test_parameter_value_form(self, command):
        add_parameter(command, ParameterValue('name', DbType.ANSI_STRING, 'Alice'))
        assert command.parameters['name'].db_type == DbType.ANSI_STRING
        assert command.parameters['name'].value == 'Alice'

    def test_missing_parameter_value(self, command):
        with pytest.raises(InvalidArgument) as exc_info:
            add_parameter_value(command, None)
        assert exc_info.value.param_name == 'parameter'

    def test_list_form_binds_in_order(self, command):
        add_parameters(command, [
            ParameterValue('b', DbType.INT32, 2),
            ParameterValue('a', DbType.INT32, 1),
            ])
        assert command.parameters.names() == ['@b', '@a']

    def test_nested_lists_are_flattened(self, command):
        add_parameters(command, [
            ParameterValue('a', DbType.INT32, 1),
            (ParameterValue('b', DbType.INT32, 2), [ParameterValue('c', DbType.INT32, 3)]),
            ])
        assert command.parameters.names() == ['@a', '@b', '@c']

    def test_none_list_is_noop(self, command):
        add_parameters(command, None)
        assert len(command.parameters) == 0

    def test_copying_parameter_between_commands(self, recording_provider):
        source = recording_provider.create_command()
        target = recording_provider.create_command()
        add_parameter(source, 'id', DbType.INT32, 5)

        add_parameter(target, 'id', DbType.INT32, source.parameters['id'])

        assert target.parameters['id'].value == 5

    def test_command_methods_delegate(self, command):
        command.add_parameter('id', DbType.INT32, 1).set_parameter('id', 2)
        assert command.parameters['id'].value == 2


class TestSetParameter:
    """Assigning values to bound parameters."""

    def test_sets_bound_parameter(self, command):
        add_parameter(command, 'id', DbType.INT32, 1)
        set_parameter(command, '@id', 9)
        assert command.parameters['id'].value == 9

    def test_keeps_type_and_direction(self, command):
        add_parameter(command, 'id', DbType.INT32, 1, ParameterDirection.INPUT_OUTPUT)
        set_parameter(command, 'id', 9)
        assert command.parameters['id'].db_type == DbType.INT32
        assert command.parameters['id'].direction == ParameterDirection.INPUT_OUTPUT

    def test_unbound_name_is_noop(self, command):
        add_parameter(command, 'id', DbType.INT32, 1)

        set_parameter(command, 'missing', 9)

        assert command.parameters.names() == ['@id']
        assert command.parameters['id'].value == 1

    def test_none_becomes_no_value(self, command):
        add_parameter(command, 'id', DbType.INT32, 1)
        set_parameter(command, 'id', None)
        assert isinstance(command.parameters['id'].value, NoValue)

    def test_validates_arguments(self, command):
        with pytest.raises(InvalidArgument) as exc_info:
            set_parameter(command, ' ', 1)
        assert exc_info.value.param_name == 'name'

        with pytest.raises(InvalidArgument) as exc_info:
            set_parameter(None, 'id', 1)
        assert exc_info.value.param_name == 'command'
