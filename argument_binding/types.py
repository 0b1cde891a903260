'''
defined the annotations and the data classes used to bind the command-line tokens to a container.
'''
from dataclasses import MISSING, dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import (
    Any,
    Dict,
    ItemsView,
    Iterator,
    KeysView,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
    Union,
    ValuesView,
)

DataclassType = TypeVar('DataclassType')

# Set on the class itself by `@arguments_container`, looked up in `__dict__` so it is not inherited.
CONTAINER_MARKER = '__arguments_container__'

# Local names of the scope the container was declared in, used to resolve string annotations.
LOCALS_ATTR = '__arguments_locals__'

ZERO_VALUES: Dict[type, Any] = {int: 0, float: 0.0, str: '', bool: False}


class FieldKind(Enum):
    '''
        Enum representing how a field is selected on the command-line.

        Kinds:
        - Value: the key is followed by one value token.
        - Flag: the presence of the key alone sets the field to True.
        - Enumerated: the key is followed by an external token mapped to an enum member.
    '''
    Value = 'value'
    Flag = 'flag'
    Enumerated = 'enumerated'


class ValueKind(Enum):
    '''
        Enum representing the conversion applied to the raw token of a field.

        Value Kinds:
        - Int: integers, including values beyond 32 or 64 bits.
        - Float: floating point numbers.
        - String: the token is assigned verbatim.
        - Bool: flags, never converted from a token.
        - Enumerated: looked up in the mapping of the field.

        The set is closed, any other field type is rejected while the schema is extracted.
    '''
    Int = 'int'
    Float = 'float'
    String = 'string'
    Bool = 'bool'
    Enumerated = 'enumerated'

    @staticmethod
    def of_type(dtype: Any) -> Optional['ValueKind']:
        if dtype is int:
            return ValueKind.Int
        elif dtype is float:
            return ValueKind.Float
        elif dtype is str:
            return ValueKind.String
        elif dtype is bool:
            return ValueKind.Bool
        elif isinstance(dtype, type) and issubclass(dtype, Enum):
            return ValueKind.Enumerated
        return None


@dataclass(frozen=True)
class Value:
    '''
        Bind a field to a key followed by one value, e.g. `--age 25`.

        Attributes:
        - key (str): the command-line token that selects the field.
        - error_description (str): the message shown when the field is missing or invalid.
    '''
    key: str
    error_description: str = ''


@dataclass(frozen=True)
class Flag:
    '''
        Bind a boolean field to a key without value, e.g. `--verbose`.

        Attributes:
        - key (str): the command-line token that selects the field.
        - default (bool): the value used when the key is absent.
    '''
    key: str
    default: bool = False


@dataclass(frozen=True)
class Enumerated:
    '''
        Bind an enum field to a key followed by an external token, e.g. `--level -d`.

        Attributes:
        - key (str): the command-line token that selects the field.
        - error_description (str): the message shown when the field is missing or invalid.
        - mapping (Tuple[Tuple[str, str], ...]):
            Ordered pairs of (external token, enum member name). A dict is accepted as well.
    '''
    key: str
    error_description: str = ''
    mapping: Tuple[Tuple[str, str], ...] = ()

    def __post_init__(self) -> None:
        pairs = self.mapping.items() if isinstance(self.mapping, Mapping) else self.mapping
        object.__setattr__(
            self, 'mapping', tuple((str(token), str(name)) for token, name in pairs)
        )


@dataclass(frozen=True)
class NotRequired:
    '''
        Marker for `Value` and `Enumerated` fields that may be left out of the command-line.
    '''


NOT_REQUIRED = NotRequired()

BINDING_ANNOTATIONS = (Value, Flag, Enumerated)

BindingAnnotation = Union[Value, Flag, Enumerated]


@dataclass(frozen=True)
class FieldSpec:
    '''
        The resolved binding information of one container field.

        Attributes:
        - name (str): The attribute name in the container.
        - key (str): The command-line token selecting the field.
        - kind (FieldKind): How the field is selected.
        - value_type (type): The type the raw token is converted into.
        - value_kind (ValueKind): The conversion applied to the raw token.
        - required (bool): Whether the key must be supplied. Always False for flags.
        - default_flag_value (Optional[bool]): The value of an absent flag, None for other kinds.
        - error_description (str): The message shown when the field is missing or invalid.
        - mapping (Tuple[Tuple[str, str], ...]): (external token, member name) pairs for enums.
    '''
    name: str
    key: str
    kind: FieldKind
    value_type: type
    value_kind: ValueKind
    required: bool = True
    default_flag_value: Optional[bool] = None
    error_description: str = ''
    mapping: Tuple[Tuple[str, str], ...] = ()

    @property
    def is_flag(self) -> bool:
        return self.kind is FieldKind.Flag


@dataclass(frozen=True)
class Schema:
    '''
        All the field specs of one container class, keyed by their command-line token.

        The schema is immutable and can be reused for any number of parses of the same class.
    '''
    container: type
    fields: Mapping[str, FieldSpec]

    def __post_init__(self) -> None:
        if not isinstance(self.fields, MappingProxyType):
            object.__setattr__(self, 'fields', MappingProxyType(dict(self.fields)))

    def __contains__(self, key: object) -> bool:
        return key in self.fields

    def __getitem__(self, key: str) -> FieldSpec:
        return self.fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def get(self, key: str) -> Optional[FieldSpec]:
        return self.fields.get(key)

    def keys(self) -> KeysView[str]:
        return self.fields.keys()

    def values(self) -> ValuesView[FieldSpec]:
        return self.fields.values()

    def items(self) -> ItemsView[str, FieldSpec]:
        return self.fields.items()

    @property
    def required_keys(self) -> Tuple[str, ...]:
        return tuple(key for key, spec in self.fields.items() if spec.required)


@dataclass
class BindingTable:
    '''
        The tokens matched against a schema during one parse, before any conversion.

        Attributes:
        - values (Dict[str, str]): raw tokens of the supplied `Value` and `Enumerated` keys.
        - flags (Dict[str, bool]): every `Flag` key, supplied or defaulted.
    '''
    values: Dict[str, str] = field(default_factory=dict)
    flags: Dict[str, bool] = field(default_factory=dict)


def _binding_field(
    annotation: BindingAnnotation,
    required: bool,
    default: Any,
    default_factory: Any
):
    meta_info: Dict[str, Any] = {type(annotation).__name__.lower(): annotation}
    if not required:
        meta_info['not_required'] = NOT_REQUIRED

    if default is not MISSING:
        return field(default=default, metadata=meta_info)
    elif default_factory is not MISSING:
        return field(default_factory=default_factory, metadata=meta_info)
    return field(metadata=meta_info)


def ValueField(
    key: str,
    error_description: str = '',
    required: bool = True,
    default: Any = MISSING,
    default_factory: Any = MISSING
):
    '''
        Create a dataclass field bound to a key followed by one value.

        Parameters:
        - key (`str`): The command-line token, e.g. `--name`.
        - error_description (`str`, optional): The message shown when the field is missing or invalid.
        - required (`bool`, optional): Whether the key must be supplied. Defaults to True.
        - default (`Any`, optional):
            The value kept when an optional key is absent. The zero value of the type is used if it is MISSING.
        - default_factory (`Optional[Callable]`, optional): Default factory for the field.

        Returns:
        - `dataclasses.Field`: A dataclass field with the binding metadata.
    '''
    return _binding_field(
        Value(key, error_description), required, default, default_factory
    )


def FlagField(key: str, default: bool = False):
    '''
        Create a boolean dataclass field set to True when the key is present.

        Parameters:
        - key (`str`): The command-line token, e.g. `--verbose`.
        - default (`bool`, optional): The value when the key is absent. Defaults to False.

        Returns:
        - `dataclasses.Field`: A dataclass field with the binding metadata.
    '''
    return _binding_field(Flag(key, default), True, default, MISSING)


def EnumField(
    key: str,
    error_description: str = '',
    mapping: Union[Sequence[Tuple[str, str]], Mapping[str, str]] = (),
    required: bool = True,
    default: Any = MISSING
):
    '''
        Create an enum dataclass field selected through a table of external tokens.

        Parameters:
        - key (`str`): The command-line token, e.g. `--level`.
        - error_description (`str`, optional): The message shown when the field is missing or invalid.
        - mapping (`Sequence[Tuple[str, str]]` or `Mapping[str, str]`):
            Ordered (external token, enum member name) pairs.
        - required (`bool`, optional): Whether the key must be supplied. Defaults to True.
        - default (`Any`, optional): The member kept when an optional key is absent, None if MISSING.

        Returns:
        - `dataclasses.Field`: A dataclass field with the binding metadata.
    '''
    return _binding_field(
        Enumerated(key, error_description, mapping), required, default, MISSING
    )


def zero_value(dtype: Any) -> Any:
    return ZERO_VALUES.get(dtype, None)
