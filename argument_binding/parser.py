'''
A parser that matches the command-line tokens against the schema of a container and builds the container.
'''
import logging
import os
import sys
from typing import Any, Callable, Dict, List, NoReturn, Optional, Sequence, Type

from .errors import (
    InvalidValue,
    MissingRequiredArgument,
    MissingValue,
    ParseError,
    RepeatedArgument,
    UnknownArgument,
)
from .types import BindingTable, DataclassType, FieldKind, Schema
from .utils import coerce_value, extract_schema

logger = logging.getLogger(__name__)


def bind(schema: Schema, tokens: Sequence[str]) -> BindingTable:
    '''
        Match the command-line tokens against a schema.

        The tokens are scanned from left to right. A flag key consumes one token, any other key
        consumes itself and the token after it, which is taken verbatim even if it looks like a key.
        Once the scan is over, the absent flags get their default and the absent required keys
        are reported, so an unknown or a repeated argument is always reported first.

        Parameters:
        - schema (`Schema`): The schema of the container.
        - tokens (`Sequence[str]`): The command-line tokens, without the program name.

        Returns:
        - `BindingTable`: The raw values and the flags of this parse.

        Raises:
        - `UnknownArgument`: A token is not a key of the schema.
        - `RepeatedArgument`: A key appears twice, even for flags or with the same value.
        - `MissingValue`: A value key is the last token.
        - `MissingRequiredArgument`: A required key is absent.
    '''
    tokens = list(tokens)
    table = BindingTable()
    used_keys = set()

    i = 0
    while i < len(tokens):
        token = tokens[i]
        spec = schema.get(token)
        if spec is None:
            raise UnknownArgument(token)
        if token in used_keys:
            raise RepeatedArgument(token)
        used_keys.add(token)

        if spec.kind is FieldKind.Flag:
            table.flags[token] = True
            i += 1
        else:
            if i + 1 == len(tokens):
                raise MissingValue(token)
            table.values[token] = tokens[i + 1]
            i += 2

    for key, spec in schema.items():
        if key in used_keys:
            continue
        if spec.kind is FieldKind.Flag:
            table.flags[key] = spec.default_flag_value
        elif spec.required:
            raise MissingRequiredArgument(key, spec.error_description)

    logger.debug(
        'Bound %d values and %d flags for %s', len(table.values),
        len(table.flags), schema.container.__qualname__
    )
    return table


def materialize(
    schema: Schema,
    table: BindingTable,
    factory: Optional[Callable[..., DataclassType]] = None
) -> DataclassType:
    '''
        Convert the bound tokens and build the container.

        The converted values are passed as keyword arguments to `factory` in a single call, so
        nothing is built when a value is invalid. Fields without an entry in the table are not
        passed and keep their default.

        Parameters:
        - schema (`Schema`): The schema the table was bound with.
        - table (`BindingTable`): The result of `bind`.
        - factory (`Optional[Callable]`, optional):
            Called with the field values as keyword arguments. Defaults to the container class.

        Returns:
        - The container instance.

        Raises:
        - `InvalidValue`:
            A raw value cannot be converted to the type of its field, or the factory rejected
            the converted values with a `ValueError` or a `TypeError`.
    '''
    init_kwargs: Dict[str, Any] = {}
    for key, val in table.values.items():
        spec = schema[key]
        init_kwargs[spec.name] = coerce_value(spec, val)
    for key, flag in table.flags.items():
        init_kwargs[schema[key].name] = flag

    if factory is None:
        factory = schema.container
    # The container was built without arguments when the schema was extracted, so a failure here
    # comes from the values on the command-line.
    try:
        return factory(**init_kwargs)
    except (ValueError, TypeError) as e:
        raise InvalidValue(
            f'Invalid arguments for {schema.container.__qualname__}: {e}'
        ) from e


class BindingParser:
    '''
        A command-line argument parser bound to one container class.

        The schema of the class is extracted and validated once, when the parser is created,
        and reused by every call to `parse_args`.

        Parameters:
        - clz (`type`): A class decorated with `@arguments_container`.
        - factory (`Optional[Callable]`, optional):
            Builds the result from the field values given as keyword arguments. Defaults to `clz`.
        - prog (`Optional[str]`, optional): The program name used in error messages.
        - exit_on_error (`bool`, optional):
            Print a `ParseError` to stderr and exit with status 2 instead of raising it. Defaults to False.

        Example:
        ```python
        @arguments_container
        class Arguments:
            name: str = ValueField('--name', 'Argument --name must be string')
            age: int = ValueField('--age', 'Argument --age must be a number')

        parser = BindingParser(Arguments)
        args = parser.parse_args(['--name', 'Ada', '--age', '36'])
        print(args.name, args.age)
        ```
    '''

    def __init__(
        self,
        clz: Type[DataclassType],
        *,
        factory: Optional[Callable[..., DataclassType]] = None,
        prog: Optional[str] = None,
        exit_on_error: bool = False
    ) -> None:
        self._schema = extract_schema(clz)
        self._factory = factory
        self.prog = prog if prog is not None else os.path.basename(sys.argv[0])
        self.exit_on_error = exit_on_error

    @property
    def schema(self) -> Schema:
        return self._schema

    def parse_args(self, args: Optional[Sequence[str]] = None) -> DataclassType:
        '''
            Parse the command-line tokens into a container instance.

            Parameters:
            - args (`Optional[Sequence[str]]`, optional):
                The tokens to parse. If not provided, `sys.argv[1:]` is used.

            Returns:
            - The container instance.
        '''
        tokens: List[str] = list(sys.argv[1:] if args is None else args)
        try:
            table = bind(self._schema, tokens)
            return materialize(self._schema, table, self._factory)
        except ParseError as e:
            if self.exit_on_error:
                self.error(str(e))
            raise

    def error(self, message: str) -> NoReturn:
        sys.stderr.write(f'{self.prog}: error: {message}\n')
        sys.exit(2)


def parse_args(
    clz: Type[DataclassType],
    args: Optional[Sequence[str]] = None,
    *,
    factory: Optional[Callable[..., DataclassType]] = None
) -> DataclassType:
    parser = BindingParser(clz, factory=factory)
    return parser.parse_args(args)
