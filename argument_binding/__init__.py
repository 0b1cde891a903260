'''
Bind the command-line arguments to the fields of a dataclass through declarative field annotations.
'''
from .errors import (
    BindingError,
    ConstructionFailed,
    DuplicateKey,
    InvalidEnumMapping,
    InvalidValue,
    MissingRequiredArgument,
    MissingValue,
    NotAContainer,
    ParseError,
    RepeatedArgument,
    SchemaError,
    TypeMismatch,
    UnknownArgument,
)
from .parser import BindingParser, bind, materialize, parse_args
from .types import (
    NOT_REQUIRED,
    BindingTable,
    EnumField,
    Enumerated,
    FieldKind,
    FieldSpec,
    Flag,
    FlagField,
    NotRequired,
    Schema,
    Value,
    ValueField,
    ValueKind,
)
from .utils import arguments_container, extract_schema, is_container
