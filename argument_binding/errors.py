'''
exceptions raised while binding the command-line arguments to a container.

There are two disjoint families:
- `SchemaError`: the container class itself is declared wrongly. It only depends on the class,
  so it repeats identically on every call and is a programming defect.
- `ParseError`: the command-line tokens are wrong. It is expected at runtime and its message
  is meant to be shown to the user.
'''
from typing import Any, Optional


class BindingError(Exception):
    '''
        Base class of all the errors raised by the binding engine.
    '''

    def __init__(self, message: str) -> None:
        super(BindingError, self).__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class SchemaError(BindingError, TypeError):
    '''
        The container class is not a valid target for binding.
    '''


class NotAContainer(SchemaError):

    def __init__(self, clz: Any) -> None:
        self.clz = clz
        name = getattr(clz, '__qualname__', repr(clz))
        super(NotAContainer, self).__init__(
            f'Class {name} must be decorated with @arguments_container'
        )


class TypeMismatch(SchemaError):

    def __init__(self, field_name: str, expected: str, actual: Any) -> None:
        self.field_name = field_name
        self.expected = expected
        self.actual = actual
        actual_name = getattr(actual, '__name__', None) or repr(actual)
        super(TypeMismatch, self).__init__(
            f'Field {field_name} must be {expected}, but it is {actual_name}.'
        )


class InvalidEnumMapping(SchemaError):

    def __init__(self, field_name: str, member_name: str, enum_type: Any = None) -> None:
        self.field_name = field_name
        self.member_name = member_name
        self.enum_type = enum_type
        target = getattr(enum_type, '__name__', 'the enumeration')
        super(InvalidEnumMapping, self).__init__(
            f'Field {field_name} maps to "{member_name}", which is not a member of {target}.'
        )


class DuplicateKey(SchemaError):

    def __init__(self, key: str, first_field: str, second_field: str) -> None:
        self.key = key
        self.first_field = first_field
        self.second_field = second_field
        super(DuplicateKey, self).__init__(
            f'Same key {key} for fields {first_field} and {second_field}'
        )


class ConstructionFailed(SchemaError):

    def __init__(self, clz: Any, reason: str) -> None:
        self.clz = clz
        self.reason = reason
        name = getattr(clz, '__qualname__', repr(clz))
        super(ConstructionFailed, self).__init__(
            f'Cannot construct {name}: {reason}'
        )


class ParseError(BindingError, ValueError):
    '''
        The command-line tokens do not match the container.
    '''


class UnknownArgument(ParseError):

    def __init__(self, token: str) -> None:
        self.token = token
        super(UnknownArgument, self).__init__(f'No expected argument: {token}')


class RepeatedArgument(ParseError):

    def __init__(self, token: str) -> None:
        self.token = token
        super(RepeatedArgument, self).__init__(f'The argument is repeated: {token}')


class MissingValue(ParseError):

    def __init__(self, token: str) -> None:
        self.token = token
        super(MissingValue, self).__init__(f'No value for argument: {token}')


class MissingRequiredArgument(ParseError):

    def __init__(self, key: str, error_description: str = '') -> None:
        self.key = key
        self.error_description = error_description
        message = f'No required argument: {key}'
        if error_description:
            message += f'\nDescription= {error_description}'
        super(MissingRequiredArgument, self).__init__(message)


class InvalidValue(ParseError):

    def __init__(self, error_description: str, value: Optional[str] = None) -> None:
        self.error_description = error_description
        self.value = value
        message = error_description or 'Invalid value'
        if value is not None:
            message = f'{message}\nBut argument was: {value}'
        super(InvalidValue, self).__init__(message)
