"""
Per-call demangling state.

A `Context` is created for every top-level call, and for every embedded name that is
demangled on its own (thunk targets, template literal arguments). Nothing in it is
shared between calls.
"""

import copy
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional

from classic_demangler.decl import Qualifier
from classic_demangler.errors import CountOverflow, IndexOutOfRange
from classic_demangler.options import DemangleOptions, Style


# Arguments replayed by one repeat code. No function has more parameters than this.
MAX_REPEAT_COUNT = 256


def check_repeat_count(count: int) -> int:
    if count > MAX_REPEAT_COUNT:
        raise CountOverflow(f"Repeat count {count} is above the limit of {MAX_REPEAT_COUNT}")
    return count


@dataclass
class RepeatCache:
    """
    The most recently demangled plain argument, and the number of times it still
    has to be replayed.
    """

    previous: Optional[str] = None
    pending: int = 0

    def take(self) -> Optional[str]:
        """
        Consume one pending replay, returning the cached argument (or `None` if no
        argument has been cached yet).
        """
        assert self.pending > 0
        self.pending -= 1
        return self.previous


@dataclass
class Context:
    """
    Mutable state threaded through one demangling call.
    """

    options: DemangleOptions

    # Types seen so far, as mangled text. Only the entries from `types_base` onward
    # can be referenced by `T`/`N` codes.
    types: list[str] = field(default_factory=list)
    types_base: int = 0
    # Squangling tables: `B` codes reference `btypes`, `K` codes reference `ktypes`.
    # `B` slots are reserved when a name starts and filled when it is complete.
    btypes: list[Optional[str]] = field(default_factory=list)
    ktypes: list[str] = field(default_factory=list)
    # Arguments of the innermost function template, for `X`/`Y` references. Slots
    # are filled as the arguments are demangled.
    tmpl_argvec: Optional[list[Optional[str]]] = None

    constructor: int = 0
    destructor: int = 0
    static_type: bool = False
    type_quals: Qualifier = Qualifier.NONE
    # Offset of the template arguments in the class name last demangled.
    # -1 means it has not been computed yet.
    temp_start: int = 0
    dllimported: bool = False

    forgetting_types: int = 0
    repeats: RepeatCache = field(default_factory=RepeatCache)

    @property
    def style(self) -> Style:
        return self.options.style

    @property
    def scope(self) -> str:
        return self.options.scope

    @property
    def ntypes(self) -> int:
        """
        The number of types that back references can currently reach.
        """
        return len(self.types) - self.types_base

    def remember_type(self, mangled: str) -> None:
        if self.forgetting_types:
            return
        self.types.append(mangled)

    def forget_types(self) -> None:
        """
        Make every type seen so far unreachable, so that the next type gets index 0.
        """
        self.types_base = len(self.types)

    def get_type(self, index: int) -> str:
        if not 0 <= index < self.ntypes:
            raise IndexOutOfRange(f"Type index {index} out of range (have {self.ntypes})")
        return self.types[self.types_base + index]

    def register_btype(self) -> int:
        """
        Reserve a `B` slot and return its index.
        """
        self.btypes.append(None)
        return len(self.btypes) - 1

    def remember_btype(self, text: str, index: int) -> None:
        self.btypes[index] = text

    def get_btype(self, index: int) -> str:
        if not 0 <= index < len(self.btypes):
            raise IndexOutOfRange(f"B index {index} out of range (have {len(self.btypes)})")
        return self.btypes[index] or ""

    def remember_ktype(self, text: str) -> None:
        self.ktypes.append(text)

    def get_ktype(self, index: int) -> str:
        if not 0 <= index < len(self.ktypes):
            raise IndexOutOfRange(f"K index {index} out of range (have {len(self.ktypes)})")
        return self.ktypes[index]

    def get_template_arg(self, index: int) -> str:
        """
        Return the function template argument at `index`. There must be an active
        function template.
        """
        assert self.tmpl_argvec is not None
        if not 0 <= index < len(self.tmpl_argvec):
            raise IndexOutOfRange(
                f"Template argument index {index} out of range (have {len(self.tmpl_argvec)})"
            )
        return self.tmpl_argvec[index] or ""

    @contextmanager
    def nested_arguments(self) -> Iterator[None]:
        """
        Demangle an argument list nested in a function or member pointer type: no
        types are remembered, and repeat codes only see arguments of the nested list.
        """
        saved = self.repeats
        self.repeats = RepeatCache()
        self.forgetting_types += 1
        try:
            yield
        finally:
            self.forgetting_types -= 1
            self.repeats = saved

    def snapshot(self) -> "Context":
        return copy.deepcopy(self)

    def restore(self, other: "Context") -> None:
        """
        Roll this context back to a state previously captured with `snapshot`.
        """
        self.__dict__.update(copy.deepcopy(other).__dict__)
