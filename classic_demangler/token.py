"""
Module implementing variant types for mangled type codes, operator names and the
special prefixes recognized before the generic grammar runs.

These variants are mostly used to improve the readability of the parser.
"""

from dataclasses import dataclass
from io import TextIOBase
from typing import ClassVar, NamedTuple, Optional

from strenum import StrEnum

from classic_demangler.io_util import peek, peek_exact, peek_rest, read_exact

# Characters used by g++ to separate the parts of some special names.
MARKERS: str = "$."


def is_marker(char: str) -> bool:
    return bool(char) and char in MARKERS


def is_digit(char: str) -> bool:
    return bool(char) and char in "0123456789"


@dataclass(frozen=True)
class Token:
    """
    Variant type for individual type codes/tokens.
    """

    class Kind(StrEnum):
        # Abnormal types
        UNKNOWN = "unknown"
        DIGIT = "digit"
        MARKER = "marker"

        # CV qualifiers
        CONST = "C"
        VOLATILE = "V"
        RESTRICT = "u"
        # Type specifiers
        UNSIGNED = "U"
        SIGNED = "S"  # Also a static member function in a signature
        COMPLEX = "J"
        # Fundamental types
        VOID = "v"
        LONG_LONG = "x"
        LONG = "l"
        INT = "i"
        SHORT = "s"
        BOOL = "b"
        CHAR = "c"
        WCHAR = "w"
        LONG_DOUBLE = "r"
        DOUBLE = "d"
        FLOAT = "f"
        FIXED_WIDTH_INT = "I"
        FIXED_WIDTH_INT_G = "G"  # Also skipped in front of a type
        # Memory types
        POINTER = "p"  # Also "P"
        LVALUE_REFERENCE = "R"
        RVALUE_REFERENCE = "O"
        ARRAY = "A"
        MEMBER = "M"
        # Complex types
        FUNCTION = "F"
        QUALIFIED = "Q"
        QUALIFIED_NOREM = "K"
        # Back references
        BACKREF = "B"
        BACKREF_TYPE = "T"
        REPEAT = "N"
        SQUANGLE_REPEAT = "n"
        # Templates
        TEMPLATE = "t"
        TEMPLATE_GPP = "H"
        TEMPLATE_TYPPARM = "Z"  # Template type parameter
        TEMPLATE_TEMPARM = "z"  # Template template parameter
        TEMPLATE_PARM = "X"  # Reference to a template parameter (or HP specialization)
        TEMPLATE_VALUE_PARM = "Y"  # Reference to a template value parameter
        EXPRESSION = "E"
        EXPRESSION_END = "W"
        NEGATE = "m"
        LITERAL = "L"  # Cfront literal, or HP local class

        # Other types
        ELLIPSIS = "e"
        UNDERSCORE = "_"

    _QUALI_KINDS: ClassVar[set[Kind]] = {Kind.CONST, Kind.VOLATILE, Kind.RESTRICT}
    _SPEC_NAMES: ClassVar[dict[Kind, str]] = {
        Kind.UNSIGNED: "unsigned",
        Kind.SIGNED: "signed",
        Kind.COMPLEX: "__complex",
    }
    _PRIM_NAMES: ClassVar[dict[Kind, str]] = {
        Kind.VOID: "void",
        Kind.LONG_LONG: "long long",
        Kind.LONG: "long",
        Kind.INT: "int",
        Kind.SHORT: "short",
        Kind.BOOL: "bool",
        Kind.CHAR: "char",
        Kind.WCHAR: "wchar_t",
        Kind.LONG_DOUBLE: "long double",
        Kind.DOUBLE: "double",
        Kind.FLOAT: "float",
    }

    kind: Kind
    content: str

    def is_cv_quali(self) -> bool:
        """
        Determine if this is a CV qualifier code.
        """
        return self.kind in self._QUALI_KINDS

    def is_type_spec(self) -> bool:
        """
        Determine if this is a type specifier (signedness or `__complex`).
        """
        return self.kind in self._SPEC_NAMES

    def is_primitive(self) -> bool:
        """
        Determine if this is a fundamental primitive type.
        """
        return self.kind in self._PRIM_NAMES

    def is_digit(self) -> bool:
        return self.kind == Token.Kind.DIGIT

    def is_marker(self) -> bool:
        return self.kind == Token.Kind.MARKER

    def is_underscore(self) -> bool:
        return self.kind == Token.Kind.UNDERSCORE

    def is_qualified(self) -> bool:
        """
        Determine if this starts a qualified name (`Q` or squangled `K`).
        """
        return self.kind in [Token.Kind.QUALIFIED, Token.Kind.QUALIFIED_NOREM]

    def is_template_parm(self) -> bool:
        """
        Determine if this references a template parameter.
        """
        return self.kind in [Token.Kind.TEMPLATE_PARM, Token.Kind.TEMPLATE_VALUE_PARM]

    def spelling(self) -> str:
        """
        Return the C++ spelling of a type specifier or fundamental type.
        """
        if self.is_type_spec():
            return self._SPEC_NAMES[self.kind]
        return self._PRIM_NAMES[self.kind]

    def __bool__(self) -> bool:
        return self.kind != Token.Kind.UNKNOWN or bool(self.content)

    @staticmethod
    def from_char(char: str) -> "Token":
        """
        Construct this variant with the given character and determine its type code.
        The empty string (end of input) yields a falsy `UNKNOWN` token.
        """
        if char == "P":
            kind = Token.Kind.POINTER  # Pointer can be upper or lowercase
        elif is_digit(char):
            kind = Token.Kind.DIGIT
        elif is_marker(char):
            kind = Token.Kind.MARKER
        elif char and char in _CODE_CHARS:
            kind = Token.Kind(char)
        else:
            kind = Token.Kind.UNKNOWN

        return Token(kind=kind, content=char)

    @staticmethod
    def peek(src: TextIOBase, offset: int = 0) -> "Token":
        """
        Construct this variant by peeking the next character in the given buffer.
        The buffer is not modified.
        """
        return Token.from_char(peek(src, 1, offset=offset))

    @staticmethod
    def read(src: TextIOBase) -> "Token":
        """
        Construct this variant by reading the next character in the given buffer.
        An error will be thrown if there are no characters remaining in the buffer.
        """
        return Token.from_char(read_exact(src, 1))

    @staticmethod
    def scan_for_marker(src: TextIOBase) -> Optional[int]:
        """
        Look ahead in the buffer and scan for the next token of type `MARKER`.
        If a marker is found, return its offset from the current buffer location.
        Otherwise, return `None`.
        """
        for offset, char in enumerate(peek_rest(src)):
            if is_marker(char):
                return offset
        return None

    def __str__(self) -> str:
        return self.content


_CODE_CHARS: frozenset[str] = frozenset(
    kind.value for kind in Token.Kind if len(kind.value) == 1
)


class OperatorEntry(NamedTuple):
    """
    A mangled operator name, its printed spelling and whether it is one of the
    (two or three letter) ANSI encodings.
    """

    token: str
    spelling: str
    ansi: bool


# Table order is significant: lookups return the first match.
OPERATORS: tuple[OperatorEntry, ...] = (
    OperatorEntry("nw", " new", True),
    OperatorEntry("dl", " delete", True),
    OperatorEntry("new", " new", False),
    OperatorEntry("delete", " delete", False),
    OperatorEntry("vn", " new []", True),
    OperatorEntry("vd", " delete []", True),
    OperatorEntry("as", "=", True),
    OperatorEntry("ne", "!=", True),
    OperatorEntry("eq", "==", True),
    OperatorEntry("ge", ">=", True),
    OperatorEntry("gt", ">", True),
    OperatorEntry("le", "<=", True),
    OperatorEntry("lt", "<", True),
    OperatorEntry("plus", "+", False),
    OperatorEntry("pl", "+", True),
    OperatorEntry("apl", "+=", True),
    OperatorEntry("minus", "-", False),
    OperatorEntry("mi", "-", True),
    OperatorEntry("ami", "-=", True),
    OperatorEntry("mult", "*", False),
    OperatorEntry("ml", "*", True),
    OperatorEntry("amu", "*=", True),
    OperatorEntry("aml", "*=", True),
    OperatorEntry("convert", "+", False),
    OperatorEntry("negate", "-", False),
    OperatorEntry("trunc_mod", "%", False),
    OperatorEntry("md", "%", True),
    OperatorEntry("amd", "%=", True),
    OperatorEntry("trunc_div", "/", False),
    OperatorEntry("dv", "/", True),
    OperatorEntry("adv", "/=", True),
    OperatorEntry("truth_andif", "&&", False),
    OperatorEntry("aa", "&&", True),
    OperatorEntry("truth_orif", "||", False),
    OperatorEntry("oo", "||", True),
    OperatorEntry("truth_not", "!", False),
    OperatorEntry("nt", "!", True),
    OperatorEntry("postincrement", "++", False),
    OperatorEntry("pp", "++", True),
    OperatorEntry("postdecrement", "--", False),
    OperatorEntry("mm", "--", True),
    OperatorEntry("bit_ior", "|", False),
    OperatorEntry("or", "|", True),
    OperatorEntry("aor", "|=", True),
    OperatorEntry("bit_xor", "^", False),
    OperatorEntry("er", "^", True),
    OperatorEntry("aer", "^=", True),
    OperatorEntry("bit_and", "&", False),
    OperatorEntry("ad", "&", True),
    OperatorEntry("aad", "&=", True),
    OperatorEntry("bit_not", "~", False),
    OperatorEntry("co", "~", True),
    OperatorEntry("call", "()", False),
    OperatorEntry("cl", "()", True),
    OperatorEntry("alshift", "<<", False),
    OperatorEntry("ls", "<<", True),
    OperatorEntry("als", "<<=", True),
    OperatorEntry("arshift", ">>", False),
    OperatorEntry("rs", ">>", True),
    OperatorEntry("ars", ">>=", True),
    OperatorEntry("component", "->", False),
    OperatorEntry("pt", "->", True),  # Lucid
    OperatorEntry("rf", "->", True),  # ARM/GNU
    OperatorEntry("indirect", "*", False),
    OperatorEntry("method_call", "->()", False),
    OperatorEntry("addr", "&", False),
    OperatorEntry("array", "[]", False),
    OperatorEntry("vc", "[]", True),
    OperatorEntry("compound", ", ", False),
    OperatorEntry("cm", ", ", True),
    OperatorEntry("cond", "?:", False),
    OperatorEntry("cn", "?:", True),
    OperatorEntry("max", ">?", False),
    OperatorEntry("mx", ">?", True),
    OperatorEntry("min", "<?", False),
    OperatorEntry("mn", "<?", True),
    OperatorEntry("nop", "", False),  # operator=
    OperatorEntry("rm", "->*", True),
    OperatorEntry("sz", "sizeof ", True),
)


class Operator:
    """
    Lookups in the operator table.
    """

    @staticmethod
    def lookup(token: str, ansi_only: bool = False) -> Optional[OperatorEntry]:
        """
        Return the first operator whose mangled name is exactly `token`.
        """
        for entry in OPERATORS:
            if entry.token == token and (entry.ansi or not ansi_only):
                return entry
        return None

    @staticmethod
    def lookup_prefix(text: str) -> Optional[OperatorEntry]:
        """
        Return the first operator (in table order) whose mangled name starts `text`.
        """
        for entry in OPERATORS:
            if text.startswith(entry.token):
                return entry
        return None

    @staticmethod
    def name_for(func_name: str) -> Optional[str]:
        """
        Given a raw function name, return the `operator...` name it encodes, or `None`
        if it is not an operator with a fixed spelling. Type conversion operators are
        not handled here since they need the type grammar.
        """
        entry: Optional[OperatorEntry] = None
        suffix = ""

        if func_name.startswith("op") and is_marker(func_name[2:3]):
            if func_name[3:10] == "assign_":
                entry = Operator.lookup(func_name[10:])
                suffix = "="
            else:
                entry = Operator.lookup(func_name[3:])

        elif func_name.startswith("__") and _is_lower_alpha(func_name[2:4]):
            if len(func_name) == 4:
                entry = Operator.lookup(func_name[2:], ansi_only=True)
            elif len(func_name) == 5 and func_name[2] == "a":
                # Assignment.
                entry = Operator.lookup(func_name[2:], ansi_only=True)

        if entry is None:
            return None
        return f"operator{entry.spelling}{suffix}"

    @staticmethod
    def conversion_type(func_name: str) -> Optional[str]:
        """
        If `func_name` is a type conversion operator, return the mangled type it
        converts to.
        """
        if len(func_name) >= 5 and func_name.startswith("type") and is_marker(func_name[4]):
            return func_name[5:]
        if func_name.startswith("__op"):
            return func_name[4:]
        return None


def _is_lower_alpha(text: str) -> bool:
    return len(text) == 2 and all("a" <= char <= "z" for char in text)


@dataclass
class Special:
    """
    Variant type for special mangled prefixes.
    """

    class Kind(StrEnum):
        UNKNOWN = "unknown"
        DLL_IMPORT = "dll_imported"
        DTOR = "destructor"
        VTABLE = "vtable"
        STATIC_DATA = "static_data"
        GLOBAL_CTOR = "global_ctor"
        GLOBAL_DTOR = "global_dtor"
        ARM_GLOBAL_CTOR = "arm_global_ctor"
        ARM_GLOBAL_DTOR = "arm_global_dtor"
        ARM_VTABLE = "arm_vtable"
        VTHUNK = "virtual_thunk"
        TINFO_NODE = "typeinfo_node"
        TINFO_FUNC = "typeinfo_func"

    _DATA_CHARS: ClassVar[str] = "0123456789Qt"
    _GLOBAL_MAP: ClassVar[dict[str, Kind]] = {
        "I": Kind.GLOBAL_CTOR,
        "D": Kind.GLOBAL_DTOR,
    }
    _ARM_GLOBAL_MAP: ClassVar[dict[str, Kind]] = {
        "__sti__": Kind.ARM_GLOBAL_CTOR,
        "__std__": Kind.ARM_GLOBAL_DTOR,
    }

    kind: Kind
    content: str

    def is_type_info(self) -> bool:
        return self.kind in [Special.Kind.TINFO_NODE, Special.Kind.TINFO_FUNC]

    def is_ctor(self) -> bool:
        return self.kind in [Special.Kind.GLOBAL_CTOR, Special.Kind.ARM_GLOBAL_CTOR]

    def __bool__(self) -> bool:
        return self.kind != Special.Kind.UNKNOWN

    @staticmethod
    def peek(src: TextIOBase) -> "Special":
        """
        Try to peek into the given buffer to read a g++ special prefix: a destructor,
        a virtual table, a static data member, a thunk or a type_info symbol.

        If no special prefix can be parsed, the returned `Special` object will have
        `Kind == UNKNOWN`, and `content` will be empty.
        """
        content: str = peek_exact(src, 3)
        if content and content[0] == "_" and is_marker(content[1]) and content[2] == "_":
            # Destructor.
            return Special(kind=Special.Kind.DTOR, content=content)

        content = peek_exact(src, 5)
        if content == "__vt_":
            # Virtual table (new style, with thunks)
            return Special(kind=Special.Kind.VTABLE, content=content)

        content = peek_exact(src, 4)
        if content.startswith("_vt") and is_marker(content[3]):
            # Old-style virtual table, no thunks
            return Special(kind=Special.Kind.VTABLE, content=content)

        content = peek_exact(src, 2)
        if (
            content.startswith("_")
            and content[1] in Special._DATA_CHARS
            and Token.scan_for_marker(src) is not None
        ):
            # Static data member.
            # The demangler needs to read the second character itself, so we don't
            # include that in "content".
            return Special(kind=Special.Kind.STATIC_DATA, content="_")

        content = peek_exact(src, 8)
        if content == "__thunk_":
            # Virtual table thunk function
            return Special(kind=Special.Kind.VTHUNK, content=content)

        content = peek_exact(src, 4)
        if content == "__ti":
            return Special(kind=Special.Kind.TINFO_NODE, content=content)
        elif content == "__tf":
            return Special(kind=Special.Kind.TINFO_FUNC, content=content)

        # Couldn't parse any tokens.
        return Special(kind=Special.Kind.UNKNOWN, content="")

    @staticmethod
    def peek_for_dllimport(src: TextIOBase) -> Optional["Special"]:
        """
        Try to peek into the given buffer, looking specifically for a DLL import
        prefix followed by a name.

        If a DLL import token is found, returns the token. Otherwise, returns `None`.
        """
        content = peek_exact(src, 7)[:6]
        if content in ["_imp__", "__imp_"]:
            return Special(kind=Special.Kind.DLL_IMPORT, content=content)

        return None

    @staticmethod
    def peek_for_global(src: TextIOBase) -> Optional["Special"]:
        """
        Try to peek into the given buffer, looking specifically for a `_GLOBAL_$I$` or
        `_GLOBAL_$D$` prefix.

        If a global constructor/destructor prefix is not found, returns `None`.
        """
        content = peek_exact(src, 11)
        if content.startswith("_GLOBAL_"):
            marked_chunk = content[8:]
            if is_marker(marked_chunk[0]) and marked_chunk[0] == marked_chunk[2]:
                kind = Special._GLOBAL_MAP.get(marked_chunk[1])
                if kind:
                    return Special(kind=kind, content=content)

        return None

    @staticmethod
    def peek_for_arm_global(src: TextIOBase) -> Optional["Special"]:
        """
        Try to peek into the given buffer, looking for the cfront `__sti__`/`__std__`
        global constructor/destructor prefixes.
        """
        content = peek_exact(src, 7)
        kind = Special._ARM_GLOBAL_MAP.get(content)
        if kind:
            return Special(kind=kind, content=content)

        return None

    @staticmethod
    def peek_for_arm_vtable(src: TextIOBase) -> Optional["Special"]:
        """
        Try to peek into the given buffer, looking for a cfront `__vtbl__` prefix.
        """
        content = peek_exact(src, 8)
        if content == "__vtbl__":
            return Special(kind=Special.Kind.ARM_VTABLE, content=content)

        return None

    @staticmethod
    def is_anonymous_namespace(name: str) -> bool:
        """
        Determine if a class name is the cfront spelling of the anonymous namespace,
        `_GLOBAL_$N$...`.
        """
        return (
            len(name) > 10
            and name.startswith("_GLOBAL_")
            and name[9] == "N"
            and is_marker(name[8])
            and name[8] == name[10]
        )
