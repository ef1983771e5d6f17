"""
Utility functions for working with text streams, plus the numeric count grammar
shared by every mangling dialect.
"""

import re
from contextlib import contextmanager
from io import StringIO, TextIOBase
from typing import Iterator, Optional

from classic_demangler.errors import CountOverflow, IncompleteInput, StructuralMismatch

# Counts are limited to the range of a 32-bit unsigned integer.
UINT32_MAX: int = 0xFFFFFFFF

_HEX_RE = re.compile(r"\s*([+-]?)(?:0[xX](?=[0-9a-fA-F]))?([0-9a-fA-F]+)")


def read_exact(src: TextIOBase, size: int) -> str:
    """
    Read exactly `size` chars from `src`, or raise an `IncompleteInput` error.
    """
    value = src.read(size)
    if len(value) != size:
        raise IncompleteInput(f"Unable to read {size} chars; got {value!r}")
    return value


@contextmanager
def peeking(src: TextIOBase, offset: int = 0) -> Iterator[None]:
    """
    Store the current offset in `src`,
    and restore it at the end of the context.
    An optional offset can be added to start peeking further ahead from the current
    location.
    """
    ptr = src.tell()
    if offset:
        src.seek(ptr + offset)

    try:
        yield
    finally:
        src.seek(ptr)


def peek(src: TextIOBase, n: int = 1, offset: int = 0) -> str:
    """
    Read up to `n` chars from `src` without advancing the offset.
    An optional offset can be added to peek starting further ahead of
    the current location.
    """
    with peeking(src, offset=offset):
        return src.read(n)


def peek_exact(src: TextIOBase, n: int = 1, offset: int = 0) -> str:
    """
    Try to read exactly `n` chars from `src` without advancing the offset.
    If there are not enough chars in the buffer, return "".
    """
    string = peek(src, n, offset=offset)
    if len(string) != n:
        string = ""
    return string


def peek_rest(src: TextIOBase) -> str:
    """
    Return everything left in `src` without advancing the offset.
    """
    with peeking(src):
        return src.read()


def read_rest(src: TextIOBase) -> str:
    """
    Consume and return everything left in `src`.
    """
    return src.read()


def read_span(src: TextIOBase, start: int, end: Optional[int] = None) -> str:
    """
    Return the text between two absolute offsets of `src` (`end` defaults to the
    current offset). The current offset is not modified.
    """
    if end is None:
        end = src.tell()
    with peeking(src):
        src.seek(start)
        return src.read(end - start)


def bytes_left(src: TextIOBase, offset: int = 0) -> int:
    """
    Retrieve the number of chars left in `src`.
    An optional offset can be added.
    """
    start: int = src.tell() + offset
    with peeking(src):
        src.seek(0, 2)
        end: int = src.tell()

    return max(end - start, 0)


def at_end(src: TextIOBase) -> bool:
    return peek(src) == ""


def lookahead_for_substring(src: TextIOBase, string: str, base_offset: int = 0) -> Optional[int]:
    """
    Look ahead in the buffer for a given substring. An optional "base_offset" can be
    provided to start from a later point in the buffer.

    If one is found, return the number of chars that need to be read in order
    to reach the start of the substring (starting from [current location + base offset]).

    If the substring is not found in the buffer, returns None.
    """
    rest = peek_rest(src)
    if base_offset > len(rest):
        return None

    found = rest.find(string, base_offset)
    if found == -1:
        return None
    return found - base_offset


def lookahead_while(src: TextIOBase, chars: str, base_offset: int = 0) -> int:
    """
    Look ahead in the buffer as long as the buffer contains characters in the given set.
    Return the number of subsequent characters found.
    An optional offset can be passed to start from a later point in the buffer.
    """
    num_chars: int = 0
    with peeking(src, offset=base_offset):
        char = src.read(1)
        while char and char in chars:
            num_chars += 1
            char = src.read(1)

    return num_chars


@contextmanager
def as_stringio(src: str) -> Iterator[StringIO]:
    """Wrap `src` in a `StringIO`, and assert it was fully consumed at the end of the context"""
    buf = StringIO(src)
    yield buf
    leftover = buf.read()
    if leftover:
        raise StructuralMismatch(f"Unable to parse full input, leftover chars: {leftover!r}")


def peek_number(src: TextIOBase) -> Optional[tuple[int, int]]:
    """
    Peek subsequent numeric characters from the source and return them as a positive
    base-10 integer.

    The first element of the tuple contains the read count.
    The second element of the tuple contains the offset from the current base which
    points to the first character after the sequence of digits.

    If a number cannot be read, `None` will be returned. A number that does not fit
    in 32 unsigned bits raises `CountOverflow`.
    """
    offset = 0
    number = 0

    with peeking(src):
        char = src.read(1)
        while char and char in "0123456789":
            number = number * 10 + int(char)
            if number > UINT32_MAX:
                raise CountOverflow("Count overflows a 32-bit unsigned integer")
            offset += 1
            char = src.read(1)

    if offset == 0:
        return None
    return (number, offset)


def try_read_number(src: TextIOBase) -> Optional[int]:
    """
    Like `read_number`, but return `None` (consuming nothing) if the buffer does not
    point at a digit.
    """
    result = peek_number(src)
    if result is None:
        return None

    number, next_offset = result
    read_exact(src, next_offset)
    return number


def read_number(src: TextIOBase, allow_zero: bool = True) -> int:
    """
    Read subsequent numeric characters from the source and return them as a positive
    base-10 integer.

    If a number cannot be read, an error will be thrown.
    If the read number is zero and `allow_zero` is False, an error will be thrown.
    """
    number = try_read_number(src)
    if number is None:
        raise StructuralMismatch(f"Expected a count, got {peek(src)!r}")

    if not allow_zero and number == 0:
        raise StructuralMismatch("Count must be positive")

    return number


def read_number_with_underscores(src: TextIOBase) -> int:
    """
    Given a buffer which matches one of the following cases, read the number as a
    base-10 decimal and return it.
    - A count surrounded by single underscores (example: `_21_`)
    - A single digit (example: `0`)

    In the first case, the surrounding `_` chars will also be consumed from the buffer.
    Note that this function can return `0` as a valid value.
    """
    if peek(src) == "_":
        # Consume the underscore prefix.
        read_exact(src, 1)
        number = read_number(src)

        if peek(src) != "_":
            raise IncompleteInput(f"Expected trailing `_` character after number {number}!")

        # Consume the underscore suffix.
        read_exact(src, 1)
        return number

    char = peek(src)
    if not (char and char in "0123456789"):
        raise StructuralMismatch(f"Expected to read single decimal digit, got {char!r}!")
    return int(read_exact(src, 1))


def read_odd_count(src: TextIOBase) -> Optional[int]:
    """
    Read the given buffer expecting a count in a mangled name. If the buffer
    does not currently point to a count, returns `None` and consumes nothing.

    This function handles several special cases:
    - If the buffer points to a string of digits followed by an underscore,
      the returned count will contain the whole number, and the buffer will point
      to the first character after the underscore.
    - If the buffer points to a string of digits *not* followed by an underscore,
      only the first digit will be consumed and returned.

    These special cases exist for the `N` repeat code, where a single digit repeat
    count is directly followed by the index of the first repeated argument.
    """
    first = peek(src)
    if not (first and first in "0123456789"):
        return None

    digits = lookahead_while(src, "0123456789")
    if digits > 1 and peek(src, offset=digits) == "_":
        number = read_number(src)
        read_exact(src, 1)
        return number

    return int(read_exact(src, 1))


def scan_hex_width(text: str) -> int:
    """
    Parse a leading hexadecimal number from `text` the way `%x` does, returning 0
    if there is none.
    """
    match = _HEX_RE.match(text)
    if not match:
        return 0

    value = int(match.group(2), 16)
    return -value if match.group(1) == "-" else value
