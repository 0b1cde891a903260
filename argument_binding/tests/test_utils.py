import logging
import warnings
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Optional

import pytest

from ..errors import (
    ConstructionFailed,
    DuplicateKey,
    InvalidEnumMapping,
    NotAContainer,
    SchemaError,
    TypeMismatch,
)
from ..types import (
    NOT_REQUIRED,
    EnumField,
    Enumerated,
    FieldKind,
    Flag,
    FlagField,
    Value,
    ValueField,
    ValueKind,
)
from ..utils import arguments_container, extract_schema, is_container


class Axis(Enum):
    X = 'x'
    Y = 'y'
    Z = 'z'


@arguments_container
class PrimitiveArguments:
    int_field: int = ValueField('--intField', 'Error in intField', required=False)
    float_field: float = ValueField(
        '--floatField', 'Error in floatField', required=False
    )
    double_field: float = ValueField('--doubleField', 'Error in doubleField')
    long_field: int = ValueField('--longField', 'Error in longField')
    string_field: str = ValueField('--stringField', 'Error in stringField')
    comment: str = 'not bound'


@arguments_container
class MixedArguments:
    verbose: bool = FlagField('--verbose')
    quiet: bool = FlagField('--quiet', default=True)
    axis: Axis = EnumField(
        '--axis', 'Error in axis', mapping=[('-X', 'X'), ('-Y', 'Y')]
    )
    count: Annotated[int, Value('--count', 'Error in count'), NOT_REQUIRED] = 3
    label: Optional[str] = field(
        default=None,
        metadata={
            'value': Value('--label'),
            'not_required': NOT_REQUIRED
        }
    )


@arguments_container
class ValueOnBool:
    field: bool = ValueField('--field', 'Error in --field')


@arguments_container
class FlagOnInt:
    field: int = FlagField('--field')


@arguments_container
class EnumeratedOnStr:
    field: str = EnumField('--field', 'Error in --field', mapping={'-X': 'X'})


@arguments_container
class WrongEnumMapping:
    test_enum: Axis = EnumField(
        '--testEnum',
        'Error',
        mapping=[('-X', '-X'), ('-Z', '-Y'), ('-Y', '-Z')]
    )


@arguments_container
class SameKeys:
    first: str = ValueField('--field')
    second: int = ValueField('--field')


@arguments_container
class SameKeysAndMismatch:
    first: str = ValueField('--field')
    second: int = ValueField('--field')
    third: str = FlagField('--third')


@arguments_container
class Unconstructible:
    extra: int
    name: str = ValueField('--name')


@arguments_container
@dataclass
class PrebuiltOptionalWithoutDefault:
    name: str = ValueField('--name')
    nick: str = ValueField('--nick', required=False)


@dataclass
class PlainDataclass:
    name: str = ValueField('--name')


class DerivedArguments(PrimitiveArguments):
    pass


def test_extract_primitives():
    schema = extract_schema(PrimitiveArguments)

    assert list(schema) == [
        '--intField', '--floatField', '--doubleField', '--longField',
        '--stringField'
    ]
    assert schema.required_keys == (
        '--doubleField', '--longField', '--stringField'
    )
    assert schema['--doubleField'].value_kind is ValueKind.Float
    assert schema['--longField'].value_type is int
    assert schema['--stringField'].kind is FieldKind.Value
    assert schema['--intField'].error_description == 'Error in intField'
    assert 'comment' not in [spec.name for spec in schema.values()]
    assert schema.container is PrimitiveArguments


def test_extract_is_idempotent():
    first = extract_schema(MixedArguments)
    second = extract_schema(MixedArguments)

    assert first is not second
    assert dict(first.fields) == dict(second.fields)
    assert first == second


def test_extract_flags_enums_and_annotated():
    schema = extract_schema(MixedArguments)

    verbose = schema['--verbose']
    assert verbose.kind is FieldKind.Flag
    assert verbose.required is False
    assert verbose.default_flag_value is False
    assert schema['--quiet'].default_flag_value is True

    axis = schema['--axis']
    assert axis.kind is FieldKind.Enumerated
    assert axis.value_type is Axis
    assert axis.mapping == (('-X', 'X'), ('-Y', 'Y'))
    assert axis.required

    count = schema['--count']
    assert count.value_kind is ValueKind.Int
    assert not count.required

    label = schema['--label']
    assert label.value_type is str
    assert not label.required


def test_zero_defaults():
    args = PrimitiveArguments()
    assert args.int_field == 0
    assert args.float_field == 0.0
    assert args.string_field == ''
    assert args.comment == 'not bound'

    mixed = MixedArguments()
    assert mixed.verbose is False
    assert mixed.quiet is True
    assert mixed.axis is None
    assert mixed.count == 3
    assert mixed.label is None


def test_not_a_container():
    for clz in (PlainDataclass, DerivedArguments, Axis, PrimitiveArguments()):
        with pytest.raises(NotAContainer):
            extract_schema(clz)

    assert is_container(PrimitiveArguments)
    assert not is_container(DerivedArguments)


def test_type_mismatch():
    with pytest.raises(TypeMismatch) as e:
        extract_schema(ValueOnBool)
    assert e.value.field_name == 'field'
    assert 'Field field must be' in str(e.value)

    with pytest.raises(TypeMismatch):
        extract_schema(FlagOnInt)
    with pytest.raises(TypeMismatch):
        extract_schema(EnumeratedOnStr)


def test_invalid_enum_mapping():
    with pytest.raises(InvalidEnumMapping) as e:
        extract_schema(WrongEnumMapping)

    assert e.value.field_name == 'test_enum'
    assert e.value.member_name == '-X'
    assert isinstance(e.value, SchemaError)


def test_duplicate_key():
    with pytest.raises(DuplicateKey) as e:
        extract_schema(SameKeys)

    assert e.value.key == '--field'
    assert (e.value.first_field, e.value.second_field) == ('first', 'second')


def test_type_checks_run_before_key_checks():
    with pytest.raises(TypeMismatch):
        extract_schema(SameKeysAndMismatch)


def test_construction_checked_upfront():
    with pytest.raises(ConstructionFailed) as e:
        extract_schema(Unconstructible)
    assert 'extra' in str(e.value)

    with pytest.raises(ConstructionFailed) as e:
        extract_schema(PrebuiltOptionalWithoutDefault)
    assert 'nick' in str(e.value)


def test_several_annotations_are_not_bound():

    @arguments_container
    class Ambiguous:
        both: Annotated[bool, Flag('--both'), Value('--both-value')] = False
        name: str = ValueField('--name')

    with pytest.warns(UserWarning, match='binding annotations'):
        schema = extract_schema(Ambiguous)

    assert list(schema) == ['--name']


def test_repeated_enum_token_warns():

    @arguments_container
    class Repeated:
        axis: Axis = EnumField(
            '--axis', mapping=[('-A', 'X'), ('-A', 'Y'), ('-B', 'Z')]
        )

    with pytest.warns(UserWarning, match='mapped twice'):
        schema = extract_schema(Repeated)

    assert schema['--axis'].mapping[0] == ('-A', 'X')


def test_enumerated_annotation_in_metadata():

    @arguments_container
    class FromMetadata:
        axis: Optional[Axis] = field(
            default=None,
            metadata={
                'enumerated': Enumerated('--axis', 'bad axis', {'-z': 'Z'}),
                'not_required': NOT_REQUIRED
            }
        )

    with warnings.catch_warnings():
        warnings.simplefilter('error')
        schema = extract_schema(FromMetadata)

    assert schema['--axis'].mapping == (('-z', 'Z'), )
    assert schema['--axis'].value_type is Axis


def test_options_ignored_on_existing_dataclass():
    with pytest.warns(UserWarning, match='already a dataclass'):

        @arguments_container(frozen=True)
        @dataclass
        class AlreadyDataclass:
            name: str = ValueField('--name', default='x')

    assert is_container(AlreadyDataclass)


def test_extract_logs_fields(caplog):
    caplog.set_level(logging.DEBUG, logger='argument_binding')

    extract_schema(PrimitiveArguments)

    assert 'Extracted 5 bound fields from PrimitiveArguments' in caplog.text


def test_construction_tried_with_zero_values():

    @arguments_container
    @dataclass
    class NeedsPositive:
        count: int = ValueField('--count')
        verbose: bool = FlagField('--verbose')

        def __post_init__(self):
            if self.count <= 0:
                raise ValueError(f'count must be positive, got {self.count}')

    with pytest.raises(ConstructionFailed) as e:
        extract_schema(NeedsPositive)

    assert 'count must be positive, got 0' in str(e.value)
    assert isinstance(e.value.__cause__, ValueError)
