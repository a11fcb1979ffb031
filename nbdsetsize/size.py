"""
Parsing of size literals. A size is an unsigned 64-bit integer written the way
C programmers write integer literals: in decimal, in hexadecimal with a `0x`
prefix, or in octal with a leading zero. Python's own `int(text, 0)` is not a
drop-in replacement, since it rejects `010` and accepts `0o10`, `0b10`, and
`1_000`.
"""

import re


__all__ = ('MAX_SIZE', 'SizeError', 'parse_size')


MAX_SIZE = 2 ** 64 - 1


_SIZE_LITERAL = re.compile(
    r"""
        [ \t\n\v\f\r]*
        [+]?
        (?:
            0[xX] (?P<hex> [0-9A-Fa-f]+ )
            | (?P<oct> 0[0-7]* )
            | (?P<dec> [1-9][0-9]* )
        )
    """,
    re.VERBOSE
)


class SizeError(ValueError):
    """An error indicating a malformed or out-of-range size literal."""
    pass


def parse_size(text: str) -> int:
    """
    Parse the text as a size. Like `strtoull()`, this function skips leading
    whitespace. Beyond that, the entire text must be a literal; trailing
    characters, including whitespace, and a minus sign all are errors, as is a
    value that does not fit into 64 bits.
    """
    match = _SIZE_LITERAL.fullmatch(text)
    if match is None:
        raise SizeError(f'malformed size "{text}"')

    if (digits := match.group('hex')) is not None:
        value = int(digits, 16)
    elif (digits := match.group('oct')) is not None:
        value = int(digits, 8)
    else:
        value = int(match.group('dec'), 10)

    if value > MAX_SIZE:
        raise SizeError(f'size "{text}" exceeds {MAX_SIZE}')
    return value
