"""
Python package which implements a demangler for C++ symbols mangled by pre-ABI
compilers (GNU g++ v2, Lucid, cfront/ARM, HP aCC and EDG).
"""

from classic_demangler.demangler import Demangler, demangle, parse
from classic_demangler.errors import (
    CountOverflow,
    DemangleError,
    IncompleteInput,
    IndexOutOfRange,
    StructuralMismatch,
    UnsupportedForm,
)
from classic_demangler.options import (
    DemangleOptions,
    Style,
    get_default_style,
    set_default_style,
)

__all__ = [
    "parse",
    "demangle",
    "Demangler",
    "DemangleOptions",
    "Style",
    "get_default_style",
    "set_default_style",
    "DemangleError",
    "StructuralMismatch",
    "IndexOutOfRange",
    "CountOverflow",
    "IncompleteInput",
    "UnsupportedForm",
]
