'''
methods to extract the binding schema from a container class and to convert the raw tokens.
'''
import logging
import sys
import types
import typing
import warnings
from dataclasses import MISSING, Field, dataclass, fields, is_dataclass
from enum import Enum
from inspect import get_annotations, isclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import (
    ConstructionFailed,
    DuplicateKey,
    InvalidEnumMapping,
    InvalidValue,
    NotAContainer,
    TypeMismatch,
)
from .types import (
    BINDING_ANNOTATIONS,
    CONTAINER_MARKER,
    LOCALS_ATTR,
    BindingAnnotation,
    Enumerated,
    FieldKind,
    FieldSpec,
    Flag,
    NotRequired,
    Schema,
    ValueKind,
    zero_value,
)

logger = logging.getLogger(__name__)


def _strip_annotated(dtype) -> Tuple[Any, Tuple[Any, ...]]:
    if typing.get_origin(dtype) is typing.Annotated:
        dtype_args = typing.get_args(dtype)
        return dtype_args[0], tuple(dtype_args[1:])
    return dtype, ()


def _strip_optional(dtype) -> Tuple[Any, bool]:
    origin_type = typing.get_origin(dtype)
    if origin_type is Union or origin_type is types.UnionType:
        dtype_generics = [x for x in typing.get_args(dtype) if x is not type(None)]
        if len(dtype_generics) == 1:
            return dtype_generics[0], True
    return dtype, False


def _analysis_type(dtype) -> Tuple[Any, Tuple[Any, ...], bool]:
    '''
        Split a field type into its base type, its `Annotated` extras and whether it is `Optional`.

        `Annotated[Optional[int], ...]`, `Optional[Annotated[int, ...]]` and `int | None` are all
        reduced to `int`.
    '''
    dtype, extras = _strip_annotated(dtype)
    dtype, optional = _strip_optional(dtype)
    dtype, inner_extras = _strip_annotated(dtype)

    return dtype, extras + inner_extras, optional


def _collect_annotations(
    metadata: Mapping[Any, Any], extras: Sequence[Any]
) -> Tuple[List[BindingAnnotation], bool]:
    candidates = list(metadata.values()) + list(extras)
    binding = [item for item in candidates if isinstance(item, BINDING_ANNOTATIONS)]
    not_required = any(isinstance(item, NotRequired) for item in candidates)

    return binding, not_required


def _resolve_annotation(
    annotation: Any, globalns: Dict[str, Any], localns: Optional[Dict[str, Any]]
) -> Any:
    if not isinstance(annotation, str):
        return annotation
    try:
        return eval(annotation, globalns, localns)
    except (NameError, AttributeError) as e:
        logger.debug('Cannot resolve the annotation %r: %s', annotation, e)
        return annotation


def _resolve_type_hints(clz: type, localns: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    '''
        Resolve the annotations of a class, including the string ones of
        `from __future__ import annotations`.

        Names are looked up in the module of each class of the MRO, then in `localns`. When a
        name cannot be found the annotations are resolved one by one, and the unresolved ones
        are kept as strings.
    '''
    try:
        return typing.get_type_hints(clz, localns=localns, include_extras=True)
    except NameError as e:
        logger.debug('Cannot resolve all the type hints of %s: %s', clz.__qualname__, e)

    hints: Dict[str, Any] = {}
    for base in reversed(clz.__mro__):
        module = sys.modules.get(base.__module__)
        globalns = getattr(module, '__dict__', {})
        for name, annotation in get_annotations(base).items():
            hints[name] = _resolve_annotation(annotation, globalns, localns)
    return hints


def _caller_locals(frame) -> Optional[Dict[str, Any]]:
    # Module and class scopes are already searched through the module of the class.
    if frame is None or frame.f_locals is frame.f_globals:
        return None
    return dict(frame.f_locals)


def _fill_zero_defaults(clz: type, localns: Optional[Dict[str, Any]]) -> None:
    hints = _resolve_type_hints(clz, localns)
    for name, annotation in get_annotations(clz).items():
        dtype, extras, optional = _analysis_type(hints.get(name, annotation))
        default = clz.__dict__.get(name, MISSING)
        metadata = default.metadata if isinstance(default, Field) else {}
        binding, _ = _collect_annotations(metadata, extras)
        if len(binding) != 1:
            continue

        if isinstance(binding[0], Flag):
            zero = binding[0].default
        elif optional:
            zero = None
        else:
            zero = zero_value(dtype)

        if isinstance(default, Field):
            if default.default is MISSING and default.default_factory is MISSING:
                default.default = zero
        elif default is MISSING:
            setattr(clz, name, zero)


def arguments_container(clz: Optional[type] = None, **dataclass_kwargs):
    '''
        Mark a class as a container of command-line arguments.

        The class is turned into a dataclass if it is not one yet. Every bound field without
        default gets the zero value of its type (`0`, `0.0`, `''`, `False`, or None for enums
        and `Optional` types), so that the container can be created without arguments.

        The mark belongs to the decorated class only, subclasses have to be decorated again.

        String annotations are resolved against the module of the class and the local names
        of the scope the class is declared in, as they are when the class is decorated.

        Parameters:
        - clz (`type`): The class to decorate.
        - dataclass_kwargs: Options passed to `dataclasses.dataclass`, e.g. `frozen=True`.

        Example:
        ```python
        @arguments_container
        class Arguments:
            name: str = ValueField('--name', 'Argument --name must be string')
            age: int = ValueField('--age', 'Argument --age must be a number')
            verbose: bool = FlagField('--verbose')
        ```
    '''
    def wrap(clz: type, localns: Optional[Dict[str, Any]]) -> type:
        if not is_dataclass(clz):
            _fill_zero_defaults(clz, localns)
            clz = dataclass(clz, **dataclass_kwargs)
        elif dataclass_kwargs:
            warnings.warn(
                f'"{clz.__qualname__}" is already a dataclass, the options {sorted(dataclass_kwargs)} are ignored.',
                UserWarning
            )
        setattr(clz, LOCALS_ATTR, localns)
        setattr(clz, CONTAINER_MARKER, True)
        return clz

    if clz is None:
        return lambda clz: wrap(clz, _caller_locals(sys._getframe(1)))
    return wrap(clz, _caller_locals(sys._getframe(1)))


def is_container(clz: Any) -> bool:
    return isclass(clz) and clz.__dict__.get(CONTAINER_MARKER) is True and is_dataclass(clz)


def _check_enum_mapping(
    name: str, mapping: Sequence[Tuple[str, str]], enum_type: type
) -> None:
    seen = set()
    for token, member_name in mapping:
        if member_name not in enum_type.__members__:
            raise InvalidEnumMapping(name, member_name, enum_type)
        if token in seen:
            warnings.warn(
                f'The token "{token}" is mapped twice for the field "{name}", only the first pair is used.',
                UserWarning
            )
        seen.add(token)


def analysis_field(field: Field, dtype: Any) -> Optional[FieldSpec]:
    base_type, extras, _ = _analysis_type(dtype)
    binding, not_required = _collect_annotations(field.metadata, extras)

    if not binding:
        return None
    if len(binding) > 1:
        warnings.warn(
            f'The field "{field.name}" has {len(binding)} binding annotations, it is not bound.',
            UserWarning
        )
        return None
    if not field.init:
        warnings.warn(
            f'The field "{field.name}" is not an init field, it is not bound.',
            UserWarning
        )
        return None

    annotation = binding[0]
    value_kind = ValueKind.of_type(base_type)

    if isinstance(annotation, Flag):
        if value_kind is not ValueKind.Bool:
            raise TypeMismatch(field.name, 'bool for a Flag', dtype)
        return FieldSpec(
            name=field.name,
            key=annotation.key,
            kind=FieldKind.Flag,
            value_type=bool,
            value_kind=ValueKind.Bool,
            required=False,
            default_flag_value=annotation.default
        )

    if isinstance(annotation, Enumerated):
        if value_kind is not ValueKind.Enumerated:
            raise TypeMismatch(field.name, 'an Enum for an Enumerated', dtype)
        _check_enum_mapping(field.name, annotation.mapping, base_type)
        return FieldSpec(
            name=field.name,
            key=annotation.key,
            kind=FieldKind.Enumerated,
            value_type=base_type,
            value_kind=ValueKind.Enumerated,
            required=not not_required,
            error_description=annotation.error_description,
            mapping=annotation.mapping
        )

    if value_kind not in (ValueKind.Int, ValueKind.Float, ValueKind.String):
        raise TypeMismatch(field.name, 'int, float or str for a Value', dtype)
    return FieldSpec(
        name=field.name,
        key=annotation.key,
        kind=FieldKind.Value,
        value_type=base_type,
        value_kind=value_kind,
        required=not not_required,
        error_description=annotation.error_description
    )


def _check_constructible(clz: type, specs: Mapping[str, FieldSpec]) -> None:
    # Required values and flags are always passed to the constructor, the other fields need a default.
    always_bound = {
        spec.name
        for spec in specs.values() if spec.required or spec.is_flag
    }
    for field in fields(clz):
        if not field.init or field.name in always_bound:
            continue
        if field.default is MISSING and field.default_factory is MISSING:
            raise ConstructionFailed(
                clz, f'the field "{field.name}" may be left unset but has no default value'
            )


def _try_construct(clz: type, specs: Mapping[str, FieldSpec]) -> None:
    # The fields without default are always bound, they get the zero value of their type.
    by_name = {spec.name: spec for spec in specs.values()}
    init_kwargs: Dict[str, Any] = {}
    for field in fields(clz):
        if not field.init or field.default is not MISSING or field.default_factory is not MISSING:
            continue
        spec = by_name[field.name]
        init_kwargs[field.name] = spec.default_flag_value if spec.is_flag else zero_value(spec.value_type)

    try:
        clz(**init_kwargs)
    except Exception as e:
        raise ConstructionFailed(clz, f'{type(e).__name__}: {e}') from e


def extract_schema(clz: type) -> Schema:
    '''
        Extract the binding schema of a container class.

        Parameters:
        - clz (`type`): A class decorated with `@arguments_container`.

        Returns:
        - `Schema`: The field specs keyed by their command-line token, in declaration order.

        Raises:
        - `NotAContainer`: The class is not decorated with `@arguments_container`.
        - `TypeMismatch`: An annotation does not fit the type of its field.
        - `InvalidEnumMapping`: An enum mapping names a member that does not exist.
        - `DuplicateKey`: Two fields share the same command-line token.
        - `ConstructionFailed`:
            A field that may be left unset has no default value, or the container cannot be
            created from the zero values of its fields.
    '''
    if not is_container(clz):
        raise NotAContainer(clz)

    hints = _resolve_type_hints(clz, clz.__dict__.get(LOCALS_ATTR))
    specs: List[FieldSpec] = []
    for field in fields(clz):
        spec = analysis_field(field, hints.get(field.name, field.type))
        if spec is not None:
            specs.append(spec)

    by_key: Dict[str, FieldSpec] = {}
    for spec in specs:
        if spec.key in by_key:
            raise DuplicateKey(spec.key, by_key[spec.key].name, spec.name)
        by_key[spec.key] = spec

    _check_constructible(clz, by_key)
    _try_construct(clz, by_key)

    logger.debug(
        'Extracted %d bound fields from %s: %s', len(by_key), clz.__qualname__,
        ', '.join(by_key)
    )
    return Schema(container=clz, fields=by_key)


def enum_type_fn(val: str, spec: FieldSpec) -> Enum:
    '''
        Convert an external token to the enum member it is mapped to.

        The mapping pairs of the field are searched in order and the first pair whose token
        equals `val` wins.

        Parameters:
        - val (`str`): The raw token from the command-line.
        - spec (`FieldSpec`): The field spec holding the mapping and the enum type.

        Returns:
        - `Enum`: The enum member named by the matching pair.

        Raises:
        - `InvalidValue`: If no pair matches the token.
    '''
    for token, member_name in spec.mapping:
        if token == val:
            return spec.value_type[member_name]

    raise InvalidValue(spec.error_description)


def coerce_value(spec: FieldSpec, val: str) -> Any:
    if spec.value_kind is ValueKind.String:
        return val
    elif spec.value_kind is ValueKind.Int or spec.value_kind is ValueKind.Float:
        # A number token holds no digit separator and no surrounding whitespace.
        if '_' in val or val != val.strip():
            raise InvalidValue(spec.error_description, val)
        try:
            return spec.value_type(val)
        except ValueError as e:
            raise InvalidValue(spec.error_description, val) from e
    elif spec.value_kind is ValueKind.Enumerated:
        return enum_type_fn(val, spec)

    raise AssertionError(
        f'No conversion from a token for the field "{spec.name}" of kind {spec.value_kind}.'
    )
