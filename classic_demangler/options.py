"""
Demangling options and mangling dialects.

The dialect used when a caller does not pick one is a process-wide setting. It is
read once, when a call starts, and copied into that call's options.
"""

from dataclasses import dataclass, replace
from typing import Optional

from strenum import StrEnum


class Style(StrEnum):
    """
    Supported mangling dialects.
    """

    AUTO = "auto"
    GNU = "gnu"
    LUCID = "lucid"
    ARM = "arm"
    HP = "hp"
    EDG = "edg"

    def is_gnu_family(self) -> bool:
        """
        Determine if GNU special forms and implicit argument lists are recognized.
        """
        return self in [Style.AUTO, Style.GNU]

    def is_cfront_family(self) -> bool:
        """
        Determine if this is one of the cfront-derived dialects, which mark argument
        lists explicitly with `F` and spell constructors as `__ct`/`__dt`.
        """
        return self in [Style.LUCID, Style.ARM, Style.HP, Style.EDG]

    def has_one_based_backrefs(self) -> bool:
        """
        Type back references count from one, starting at the argument list.
        """
        return self.is_cfront_family()

    def forgets_types_at_args(self) -> bool:
        """
        Types seen before an argument list implied by a class name are not
        available for back references.
        """
        return self in [Style.LUCID, Style.ARM, Style.EDG]

    def has_wide_backref_indices(self) -> bool:
        """
        Back reference indices may take more than one digit once ten types are known.
        """
        return self in [Style.ARM, Style.HP, Style.EDG]

    def uses_first_separator(self) -> bool:
        """
        The name/signature separator is the first `__`, never a later one.
        """
        return self in [Style.ARM, Style.HP]

    def has_cfront_locals(self) -> bool:
        """
        Local variables are mangled as `__<nesting level><name>`.
        """
        return self in [Style.LUCID, Style.ARM, Style.HP]

    def has_arm_globals(self) -> bool:
        """
        Global constructors/destructors are marked with `__sti__`/`__std__`.
        """
        return self in [Style.ARM, Style.HP, Style.EDG]

    def has_arm_templates(self) -> bool:
        """
        Templates are anchored by `__pt__`.
        """
        return self in [Style.ARM, Style.HP]

    def has_edg_templates(self) -> bool:
        """
        Templates are anchored by `__tm__`, `__ps__`, `__pt__` or `__S`.
        """
        return self in [Style.AUTO, Style.EDG]

    def reads_return_type_after_args(self) -> bool:
        """
        An explicit argument list may be followed by `_` and a return type.
        """
        return self in [Style.AUTO, Style.EDG]

    def expects_args_after_class(self) -> bool:
        """
        An argument list directly follows a class name in the signature.
        """
        return self in [Style.AUTO, Style.GNU, Style.EDG]


_default_style: Style = Style.GNU


def get_default_style() -> Style:
    """
    Return the dialect used when a call does not choose one.
    """
    return _default_style


def set_default_style(style: Style) -> None:
    """
    Change the dialect used when a call does not choose one. Calls already in
    progress are not affected.
    """
    global _default_style
    _default_style = Style(style)


@dataclass(frozen=True)
class DemangleOptions:
    """
    Options for a single demangling call.

    - `params`: print the parameter types of functions.
    - `ansi`: print `const`/`volatile`/`__restrict` qualifiers.
    - `java`: separate scopes with `.` instead of `::`, and print Java arrays.
    - `style`: the mangling dialect. `None` means the process-wide default.
    """

    params: bool = True
    ansi: bool = True
    java: bool = False
    style: Optional[Style] = None

    def resolve(self) -> "DemangleOptions":
        """
        Return a copy of these options with the dialect filled in.
        """
        if self.style is not None:
            return self
        return replace(self, style=get_default_style())

    @property
    def scope(self) -> str:
        """
        The separator printed between the components of a qualified name.
        """
        return "." if self.java else "::"
