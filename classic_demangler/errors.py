"""
Errors raised while demangling.

Every error is a `ValueError`, so callers that only care whether a symbol could be
demangled can catch that.
"""


class DemangleError(ValueError):
    """
    Base class for every demangling failure.
    """


class StructuralMismatch(DemangleError):
    """
    The next token does not match any production the active dialect recognizes.
    """


class IndexOutOfRange(DemangleError):
    """
    A back reference points past the end of the table it refers to.
    """


class CountOverflow(DemangleError):
    """
    A decimal count does not fit in a 32-bit unsigned integer.
    """


class IncompleteInput(DemangleError):
    """
    The input ended before an expected terminator or argument.
    """


class UnsupportedForm(DemangleError):
    """
    The construct exists in another dialect, but not in the active one.
    """
