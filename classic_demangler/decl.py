"""
Module implementing the textual building blocks of a demangled declaration.

Declarations are built "outward-in": modifiers such as `*` or `const` are prepended
to what has been produced so far, while parameter lists and array bounds are
appended. `DeclBuffer` supports both directions in amortized constant time.
"""

from enum import Enum, IntFlag
from typing import Union


class DeclBuffer:
    """
    Growable text accumulator with cheap append and prepend.

    Prepended chunks are kept in reverse order in `_head`, appended chunks in order
    in `_tail`; the text is only joined when it is read.
    """

    __slots__ = ("_head", "_tail", "_length")

    def __init__(self, text: str = ""):
        self._head: list[str] = []
        self._tail: list[str] = [text] if text else []
        self._length: int = len(text)

    def append(self, text: Union[str, "DeclBuffer"]) -> "DeclBuffer":
        """
        Append `text` to the end of the buffer.
        """
        text = str(text)
        if text:
            self._tail.append(text)
            self._length += len(text)
        return self

    def prepend(self, text: Union[str, "DeclBuffer"]) -> "DeclBuffer":
        """
        Prepend `text` to the start of the buffer.
        """
        text = str(text)
        if text:
            self._head.append(text)
            self._length += len(text)
        return self

    def append_blank(self) -> "DeclBuffer":
        """
        Append a single space, unless the buffer is empty.
        """
        if self:
            self.append(" ")
        return self

    def prepend_blank(self) -> "DeclBuffer":
        """
        Prepend a single space, unless the buffer is empty.
        """
        if self:
            self.prepend(" ")
        return self

    def clear(self) -> "DeclBuffer":
        self._head.clear()
        self._tail.clear()
        self._length = 0
        return self

    def reset(self, text: str) -> "DeclBuffer":
        """
        Replace the whole content of the buffer with `text`.
        """
        return self.clear().append(text)

    def drop_last(self) -> "DeclBuffer":
        """
        Remove the final character of the buffer, if there is one.
        """
        if self:
            self.reset(str(self)[:-1])
        return self

    def first_char(self) -> str:
        """
        Return the first character of the buffer, or "" if it is empty.
        """
        if self._head:
            return self._head[-1][0]
        for chunk in self._tail:
            return chunk[0]
        return ""

    def _collapse(self) -> str:
        text = "".join(reversed(self._head)) + "".join(self._tail)
        self._head = []
        self._tail = [text] if text else []
        return text

    def __str__(self) -> str:
        if not self._head and len(self._tail) == 1:
            return self._tail[0]
        return self._collapse()

    def __len__(self) -> int:
        return self._length

    def __bool__(self) -> bool:
        return self._length > 0

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (str, DeclBuffer)):
            return str(self) == str(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"DeclBuffer({str(self)!r})"


class TypeKind(Enum):
    """
    Coarse classification of a demangled type. Template value parameters pick the
    grammar of their literal based on this.
    """

    INTEGRAL = 1
    BOOL = 2
    CHAR = 3
    REAL = 4
    POINTER = 5
    REFERENCE = 6

    def is_address(self) -> bool:
        return self in [TypeKind.POINTER, TypeKind.REFERENCE]


class Qualifier(IntFlag):
    """
    ANSI type qualifiers, combinable with `|`.
    """

    NONE = 0
    CONST = 1
    VOLATILE = 2
    RESTRICT = 4

    @staticmethod
    def from_code(code: str) -> "Qualifier":
        """
        Map a mangled qualifier code (`C`, `V` or `u`) to its qualifier.
        """
        return _QUALIFIER_CODES.get(code, Qualifier.NONE)

    def spelling(self) -> str:
        """
        Return the qualifiers as they are printed, e.g. `const volatile`.
        """
        words = []
        if self & Qualifier.CONST:
            words.append("const")
        if self & Qualifier.VOLATILE:
            words.append("volatile")
        if self & Qualifier.RESTRICT:
            words.append("__restrict")
        return " ".join(words)


_QUALIFIER_CODES: dict[str, Qualifier] = {
    "C": Qualifier.CONST,
    "V": Qualifier.VOLATILE,
    "u": Qualifier.RESTRICT,
}
