import sys
from enum import Enum

from argument_binding import (
    BindingParser,
    EnumField,
    FlagField,
    ParseError,
    ValueField,
    arguments_container,
)


class LogLevel(Enum):
    DEBUG = 'debug'
    INFO = 'info'
    WARNING = 'warning'
    ERROR = 'error'


@arguments_container
class Arguments:

    name: str = ValueField('--name', 'Argument --name must be string')
    second_name: str = ValueField(
        '--second-name', 'Argument --second-name must be string', required=False
    )
    age: int = ValueField('--age', 'Argument --age must be a number')
    verbose: bool = FlagField('--verbose')
    logging_level: LogLevel = EnumField(
        '--level',
        'Argument --level must be one of -d, -i, -w, -e',
        mapping=[('-d', 'DEBUG'), ('-i', 'INFO'), ('-w', 'WARNING'), ('-e', 'ERROR')],
        required=False,
        default=LogLevel.WARNING
    )


if __name__ == '__main__':
    parser = BindingParser(Arguments)

    try:
        options = parser.parse_args()
    except ParseError as e:
        print(e, file=sys.stderr)
        sys.exit(1)

    print(options)
