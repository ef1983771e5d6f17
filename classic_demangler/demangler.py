"""
Demangler for C++ symbols produced by pre-ABI compilers: GNU g++ v2, Lucid,
cfront/ARM, HP aCC and EDG.

This implementation follows the classic libiberty `cplus-dem.c` demangler: the
output is built as text, outward-in, and every production either consumes its
tokens or raises a `DemangleError`.
"""

import logging
from dataclasses import replace
from io import StringIO, TextIOBase
from typing import Optional, Union

from classic_demangler.context import Context, check_repeat_count
from classic_demangler.decl import DeclBuffer, Qualifier, TypeKind
from classic_demangler.errors import (
    DemangleError,
    IncompleteInput,
    StructuralMismatch,
    UnsupportedForm,
)
from classic_demangler.io_util import (
    as_stringio,
    at_end,
    bytes_left,
    lookahead_for_substring,
    lookahead_while,
    peek,
    peek_exact,
    peek_rest,
    read_exact,
    read_number,
    read_number_with_underscores,
    read_odd_count,
    read_rest,
    read_span,
    scan_hex_width,
    try_read_number,
)
from classic_demangler.options import DemangleOptions, Style
from classic_demangler.token import Operator, Special, Token

log = logging.getLogger(__name__)

_DIGITS: str = "0123456789"

_KIND_OF_PRIMITIVE: dict[Token.Kind, TypeKind] = {
    Token.Kind.BOOL: TypeKind.BOOL,
    Token.Kind.CHAR: TypeKind.CHAR,
    Token.Kind.WCHAR: TypeKind.CHAR,
    Token.Kind.LONG_DOUBLE: TypeKind.REAL,
    Token.Kind.DOUBLE: TypeKind.REAL,
    Token.Kind.FLOAT: TypeKind.REAL,
}


def _read_digits(src: TextIOBase) -> str:
    """
    Consume and return the run of decimal digits at the current location.
    """
    return src.read(lookahead_while(src, _DIGITS))


class Demangler:
    """
    Demangler object.

    One instance may be used for any number of symbols; every call to `parse` starts
    with a fresh `Context`.
    """

    def __init__(self, options: Optional[DemangleOptions] = None):
        self.options: DemangleOptions = (options or DemangleOptions()).resolve()
        self._ctx: Context = Context(self.options)

    @property
    def style(self) -> Style:
        return self.options.style

    def parse(self, symbol: Union[str, bytes]) -> str:
        """
        Demangle `symbol`, raising a `DemangleError` if it is not a mangled name in
        the configured dialect.
        """
        if isinstance(symbol, bytes):
            symbol = symbol.decode("latin-1")
        if not symbol:
            raise StructuralMismatch("Cannot demangle an empty symbol")

        self._ctx = Context(self.options)
        try:
            with as_stringio(symbol) as buf:
                return self._parse(buf)
        except RecursionError as e:
            # Back references can be made to refer to themselves.
            raise StructuralMismatch(f"Back references in {symbol!r} nest too deeply") from e

    def _parse(self, src: TextIOBase) -> str:
        ctx = self._ctx
        decl = DeclBuffer()

        if not (self.style.is_gnu_family() and self._try_gnu_special(src, decl)):
            self._demangle_prefix(src, decl)

        if not at_end(src):
            self._demangle_signature(src, decl)

        if ctx.constructor == 2:
            decl.prepend("global constructors keyed to ")
        elif ctx.destructor == 2:
            decl.prepend("global destructors keyed to ")
        elif ctx.dllimported:
            decl.prepend("import stub for ")

        return str(decl)

    def _demangle_embedded(self, name: str) -> str:
        """
        Demangle a name embedded in the symbol. Embedded names are mangled on their own,
        so they get a fresh context. If the name cannot be demangled, it is returned
        as-is.
        """
        try:
            return Demangler(self.options).parse(name)
        except DemangleError as e:
            log.debug("Keeping embedded name %r as is: %s", name, e)
            return name

    def _try_gnu_special(self, src: TextIOBase, decl: DeclBuffer) -> bool:
        """
        Try to demangle one of the g++ special forms into `decl`.

        If no special form is recognized, or demangling it fails, the buffer and parser
        state are left untouched and `False` is returned.
        """
        special = Special.peek(src)
        if not special:
            return False

        base = src.tell()
        saved = self._ctx.snapshot()
        scratch = DeclBuffer()
        try:
            self._gnu_special(src, special, scratch)
        except DemangleError as e:
            log.debug("Special form %s did not match: %s", special.kind, e)
            src.seek(base)
            self._ctx.restore(saved)
            return False

        decl.append(scratch)
        return True

    def _gnu_special(self, src: TextIOBase, special: Special, decl: DeclBuffer):
        """
        Process special g++ mangling forms that don't fit the normal pattern.

        Examples:
        _$_3foo                 (destructor for class foo)
        _vt$foo                 (foo virtual table)
        _vt$foo$bar             (foo::bar virtual table)
        __vt_foo                (foo virtual table, new style with thunks)
        _3foo$varname           (static data member)
        _Q22rs2tu$vw            (static data member)
        __thunk_4__$_7ostream   (virtual function thunk)
        __tf3foo                (type_info function for foo)
        """
        ctx = self._ctx
        read_exact(src, len(special.content))

        if special.kind == Special.Kind.DTOR:
            # The class name follows as the signature.
            ctx.destructor += 1

        elif special.kind == Special.Kind.VTABLE:
            while not at_end(src):
                next = Token.peek(src)
                if next.is_qualified():
                    self._demangle_qualified(src, decl, is_funcname=False, append=True)
                elif next.kind == Token.Kind.TEMPLATE:
                    self._demangle_template(src, decl, None, is_type=True, remember=True)
                elif next.is_digit():
                    length = read_number(src)
                    # A length that is too big may be a `.<digits>` static local
                    # symbol; skip it.
                    if length <= bytes_left(src):
                        decl.append(read_exact(src, length))
                else:
                    to_read = Token.scan_for_marker(src)
                    decl.append(read_rest(src) if to_read is None else read_exact(src, to_read))

                marker = Token.scan_for_marker(src)
                if marker == 0:
                    read_exact(src, 1)
                    decl.append(ctx.scope)
                elif marker is not None:
                    raise StructuralMismatch(
                        f"Expected a marker after virtual table component, got {peek(src)!r}"
                    )

            decl.append(" virtual table")

        elif special.kind == Special.Kind.STATIC_DATA:
            marker = Token.scan_for_marker(src)
            start = src.tell()

            next = Token.peek(src)
            if next.is_qualified():
                self._demangle_qualified(src, decl, is_funcname=False, append=True)
            elif next.kind == Token.Kind.TEMPLATE:
                self._demangle_template(src, decl, None, is_type=True, remember=True)
            else:
                length = read_number(src)
                if length > bytes_left(src):
                    raise IncompleteInput(f"Class name of length {length} runs past the end")
                decl.append(read_exact(src, length))

            if src.tell() != start + marker:
                raise StructuralMismatch("Expected marker before variable name of static data")
            read_exact(src, 1)
            decl.append(ctx.scope)
            decl.append(read_rest(src))

        elif special.kind == Special.Kind.VTHUNK:
            delta = read_number(src)
            # Any one character separates the delta from the target, usually `_`.
            read_exact(src, 1)

            # The thunk target is a complete symbol of its own.
            method = Demangler(self.options).parse(read_rest(src))
            decl.append(f"virtual function thunk (delta:{-delta}) for ")
            decl.append(method)

        elif special.is_type_info():
            next = Token.peek(src)
            if next.is_qualified():
                self._demangle_qualified(src, decl, is_funcname=False, append=True)
            elif next.kind == Token.Kind.TEMPLATE:
                self._demangle_template(src, decl, None, is_type=True, remember=True)
            else:
                self._demangle_fund_type(src, decl)

            if not at_end(src):
                raise StructuralMismatch(f"Unexpected {peek_rest(src)!r} after type_info type")
            if special.kind == Special.Kind.TINFO_NODE:
                decl.append(" type_info node")
            else:
                decl.append(" type_info function")

        else:
            raise AssertionError(f"Unhandled special prefix {special.kind}")

    def _try_arm_special(self, src: TextIOBase, decl: DeclBuffer) -> bool:
        """
        Process the cfront virtual table form `__vtbl__3foo__3bar` (`bar::foo virtual
        table`). On failure nothing is consumed and `False` is returned.
        """
        special = Special.peek_for_arm_vtable(src)
        if not special:
            return False

        name = DeclBuffer()
        cur = StringIO(peek_rest(src)[len(special.content) :])
        try:
            while not at_end(cur):
                length = try_read_number(cur)
                if length is None or length > bytes_left(cur):
                    raise StructuralMismatch(f"Invalid virtual table component at {peek_rest(cur)!r}")
                name.prepend(read_exact(cur, length))
                if peek_exact(cur, 2) == "__":
                    read_exact(cur, 2)
                    name.prepend("::")
        except DemangleError as e:
            log.debug("Not a cfront virtual table: %s", e)
            return False

        read_rest(src)
        decl.append(name)
        decl.append(" virtual table")
        return True

    def _demangle_prefix(self, src: TextIOBase, decl: DeclBuffer):
        """
        Consume and demangle the prefix of the mangled name: the root function name,
        an operator name, or one of the forms that consume the whole symbol.

        On return the buffer points at the start of the signature.
        """
        ctx = self._ctx
        style = self.style

        special = Special.peek_for_dllimport(src)
        if special is not None:
            # This is a symbol from a PE dynamic library.
            read_exact(src, len(special.content))
            ctx.dllimported = True
        else:
            special = Special.peek_for_global(src)
            if special is not None:
                read_exact(src, len(special.content))
                if special.is_ctor():
                    ctx.constructor = 2
                else:
                    ctx.destructor = 2
                if self._try_gnu_special(src, decl):
                    return
            elif style.has_arm_globals():
                special = Special.peek_for_arm_global(src)
                if special is not None:
                    read_exact(src, len(special.content))
                    if special.is_ctor():
                        ctx.constructor = 2
                    else:
                        ctx.destructor = 2

        rest = peek_rest(src)
        scan = rest.find("__")
        if scan == -1:
            return self._prefix_failed(src, decl, "No `__` separator in symbol")

        # Start at the last pair of a run of underscores.
        run = lookahead_while(src, "_", base_offset=scan)
        if run > 2:
            scan += run - 2

        after = Token.from_char(rest[scan + 2 : scan + 3])
        after_pair = rest[scan + 2 : scan + 4]

        if scan == 0 and (
            after.is_digit()
            or after.is_qualified()
            or after.kind in [Token.Kind.TEMPLATE, Token.Kind.TEMPLATE_GPP]
        ):
            if style.has_cfront_locals() and after.is_digit():
                # cfront local variable: `__<nesting level><name>`.
                read_exact(src, 2)
                read_number(src)
                decl.append(read_rest(src))
                return

            # A g++ constructor starts with `__[0-9QtKH]`. cfront uses names like
            # `__Q2_3foo3bar` for nested types instead.
            if not style.is_cfront_family():
                ctx.constructor += 1
            read_exact(src, 2)

        elif (style == Style.ARM and after_pair == "pt") or (
            style == Style.EDG and after_pair in ["tm", "ps", "pt"]
        ):
            # cfront/EDG parameterized type, which is the whole symbol.
            self._demangle_arm_hp_template(src, bytes_left(src), decl)

        elif scan == 0 and not (after.is_digit() or after.kind == Token.Kind.TEMPLATE):
            # The name starts with `__`. Skip the leading `_` characters, then find the
            # separator between the prefix and the signature.
            if style.is_cfront_family() and self._try_arm_special(src, decl):
                return

            sep = rest.find("__", lookahead_while(src, "_"))
            if sep == -1:
                return self._prefix_failed(src, decl, "No `__` separator after leading `__`")
            if not style.uses_first_separator():
                # Use the last `__`, allowing names to have a `__` in them.
                next_sep = rest.find("__", sep + 2)
                while next_sep != -1:
                    sep = next_sep
                    next_sep = rest.find("__", sep + 2)
            if sep + 2 == len(rest):
                return self._prefix_failed(src, decl, "Empty signature after `__`")
            self._demangle_function_name(src, decl, sep)

        elif scan + 2 < len(rest):
            # Looks like a global function name followed by a signature.
            self._demangle_function_name(src, decl, scan)

        else:
            return self._prefix_failed(src, decl, "Nothing follows the `__` separator")

    def _prefix_failed(self, src: TextIOBase, decl: DeclBuffer, reason: str):
        """
        Handle a symbol whose prefix could not be located. Global constructors and
        destructors may be keyed to a plain variable name; anything else is an error.
        """
        ctx = self._ctx
        if ctx.constructor == 2 or ctx.destructor == 2:
            decl.append(read_rest(src))
            return
        raise StructuralMismatch(reason)

    def _demangle_function_name(self, src: TextIOBase, decl: DeclBuffer, separator_offset: int):
        """
        Consume the function name up to the `__` at `separator_offset`, and the
        separator itself. Constructors, destructors and operators are rewritten.
        """
        ctx = self._ctx
        decl.append(read_exact(src, separator_offset))
        read_exact(src, 2)

        # HP template function: foo__Xt1t2_Ft3t4, the arguments follow the `X`.
        if self.style == Style.HP and Token.peek(src).kind == Token.Kind.TEMPLATE_PARM:
            self._demangle_arm_hp_template(src, 0, decl)

        name = str(decl)
        if self.style.is_cfront_family():
            # The class name is only known once the signature has been read.
            if name == "__ct":
                ctx.constructor += 1
                decl.clear()
                return
            elif name == "__dt":
                ctx.destructor += 1
                decl.clear()
                return

        operator = Operator.name_for(name)
        if operator is not None:
            decl.reset(operator)
            return

        conversion = Operator.conversion_type(name)
        if conversion is not None:
            try:
                typ, _ = self._do_type(StringIO(conversion))
            except DemangleError as e:
                log.debug("Keeping conversion operator %r as is: %s", name, e)
                return
            decl.reset(f"operator {typ}")

    def _demangle_signature(self, src: TextIOBase, decl: DeclBuffer):
        """
        Consume and demangle the signature portion of the mangled name. `decl` holds
        the root name on entry.

        g++ has no explicit token for the start of the outermost argument list, so
        after a class name the arguments are expected right away.
        """
        ctx = self._ctx
        style = self.style

        func_done = False
        expect_func = False
        expect_return_type = False
        # Start of the mangled text of the current type, for remembering it.
        oldmangled: Optional[int] = None

        while not at_end(src):
            next = Token.peek(src)

            if next.kind == Token.Kind.QUALIFIED:
                oldmangled = src.tell()
                self._demangle_qualified(src, decl, is_funcname=True, append=False)
                ctx.remember_type(read_span(src, oldmangled))
                if style.is_gnu_family():
                    expect_func = True
                oldmangled = None

            elif next.kind == Token.Kind.QUALIFIED_NOREM:
                self._demangle_qualified(src, decl, is_funcname=True, append=False)
                if style.is_gnu_family():
                    expect_func = True
                oldmangled = None

            elif next.kind == Token.Kind.SIGNED:
                # Static member function
                if oldmangled is None:
                    oldmangled = src.tell()
                read_exact(src, 1)
                ctx.static_type = True

            elif next.is_cv_quali():
                # Qualified member function
                ctx.type_quals |= Qualifier.from_code(next.content)
                if oldmangled is None:
                    oldmangled = src.tell()
                read_exact(src, 1)

            elif next.kind == Token.Kind.LITERAL:
                # HP local class: the name follows `Lnnn_`.
                if style != Style.HP:
                    raise UnsupportedForm("Local class names are only used by HP aCC")
                offset = lookahead_for_substring(src, "_")
                if offset is None:
                    raise IncompleteInput("Expected `_` after local class number")
                read_exact(src, offset + 1)

            elif next.is_digit():
                if oldmangled is None:
                    oldmangled = src.tell()
                ctx.temp_start = -1
                self._demangle_class(src, decl)
                ctx.remember_type(read_span(src, oldmangled))
                # cfront-style dialects mark the arguments with `F`.
                if style.expects_args_after_class() and peek(src) != "F":
                    expect_func = True
                oldmangled = None

            elif next.kind == Token.Kind.BACKREF:
                typ, _ = self._do_type(src)
                decl.prepend(typ + ctx.scope)
                oldmangled = None
                expect_func = True

            elif next.kind == Token.Kind.FUNCTION:
                oldmangled = None
                func_done = True
                read_exact(src, 1)

                # cfront dialects only count types from the argument list.
                if style.is_cfront_family():
                    ctx.forget_types()
                self._demangle_args(src, decl)

                if style.reads_return_type_after_args() and peek(src) == "_":
                    read_exact(src, 1)
                    # The return type is not printed at this level.
                    self._do_type(src)

            elif next.kind == Token.Kind.TEMPLATE:
                if oldmangled is None:
                    oldmangled = src.tell()
                tname = DeclBuffer()
                trawname = DeclBuffer()
                self._demangle_template(src, tname, trawname, is_type=True, remember=True)
                ctx.remember_type(read_span(src, oldmangled))

                tname.append(ctx.scope)
                decl.prepend(tname)
                if ctx.destructor & 1:
                    trawname.prepend("~")
                    decl.append(trawname)
                    ctx.destructor -= 1
                if (ctx.constructor & 1) or (ctx.destructor & 1):
                    decl.append(trawname)
                    ctx.constructor -= 1
                oldmangled = None
                expect_func = True

            elif next.is_underscore():
                if style == Style.GNU and expect_return_type:
                    read_exact(src, 1)
                    return_type, _ = self._do_type(src)
                    decl.prepend(f"{return_type} " if return_type else "")
                elif style == Style.HP:
                    # `_nnn` marks an alternate entry point.
                    read_exact(src, 1)
                    _read_digits(src)
                else:
                    raise StructuralMismatch("Unexpected `_` in signature")

            elif next.kind == Token.Kind.TEMPLATE_GPP and style == Style.GNU:
                # g++ function template: read the template arguments.
                self._demangle_template(src, decl, None, is_type=False, remember=False)
                if not ctx.constructor & 1:
                    expect_return_type = True
                read_exact(src, 1)

            elif style.is_gnu_family():
                # This must be the first argument of the outermost function.
                func_done = True
                self._demangle_args(src, decl)

            else:
                raise StructuralMismatch(f"Unexpected {next.content!r} in signature")

            if expect_func:
                func_done = True
                if style.forgets_types_at_args():
                    ctx.forget_types()
                self._demangle_args(src, decl)
                # Templates include their return types; only read one argument list.
                expect_func = False

        if not func_done and style.is_gnu_family():
            # With g++, `bar__3foo` is `foo::bar(void)`. With cfront it names a static
            # data member.
            self._demangle_args(src, decl)

        if self.options.params:
            if ctx.static_type:
                decl.append(" static")
            if ctx.type_quals != Qualifier.NONE:
                decl.append_blank()
                decl.append(ctx.type_quals.spelling())

    def _demangle_args(self, src: TextIOBase, decl: DeclBuffer):
        """
        Demangle an argument list, up to a `_`, an ellipsis or the end of the buffer.

        g++ numbers back references from zero and counts every type seen, cfront
        dialects count from one and only count argument types.
        """
        ctx = self._ctx
        style = self.style
        params = self.options.params

        if params:
            decl.append("(")
            if at_end(src):
                decl.append("void")

        need_comma = False
        while peek(src) not in ["_", "", "e"] or ctx.repeats.pending > 0:
            next = Token.peek(src)
            if next.kind in [Token.Kind.REPEAT, Token.Kind.BACKREF_TYPE]:
                read_exact(src, 1)
                if next.kind == Token.Kind.REPEAT:
                    count = read_odd_count(src)
                    if count is None:
                        raise StructuralMismatch("Expected a repeat count after `N`")
                    check_repeat_count(count)
                else:
                    count = 1

                if style.has_wide_backref_indices() and ctx.ntypes >= 10:
                    # The index may have more than one digit here, so read all of them.
                    index = read_number(src, allow_zero=False)
                else:
                    index = read_odd_count(src)
                    if index is None:
                        raise StructuralMismatch(f"Expected a type index after `{next}`")
                if style.has_one_based_backrefs():
                    index -= 1

                mangled_type = ctx.get_type(index)
                while ctx.repeats.pending > 0 or count > 0:
                    if ctx.repeats.pending <= 0:
                        count -= 1
                    if need_comma and params:
                        decl.append(", ")
                    arg = self._do_arg(StringIO(mangled_type))
                    if params:
                        decl.append(arg)
                    need_comma = True
            else:
                if need_comma and params:
                    decl.append(", ")
                arg = self._do_arg(src)
                if params:
                    decl.append(arg)
                need_comma = True

        if peek(src) == "e":
            read_exact(src, 1)
            if params:
                if need_comma:
                    decl.append(",")
                decl.append("...")

        if params:
            decl.append(")")

    def _demangle_nested_args(self, src: TextIOBase, decl: DeclBuffer):
        """
        Demangle the argument list of a function or method pointer type.
        """
        with self._ctx.nested_arguments():
            self._demangle_args(src, decl)

    def _do_arg(self, src: TextIOBase) -> str:
        """
        Demangle the next argument, replaying the previous one if a repeat is pending.
        """
        ctx = self._ctx
        start = src.tell()

        if ctx.repeats.pending > 0:
            previous = ctx.repeats.take()
            if previous is None:
                raise StructuralMismatch("Repeat code without a previous argument")
            return previous

        if peek(src) == "n":
            # A squangling-style repeat.
            read_exact(src, 1)
            count = try_read_number(src)
            if not count:
                raise StructuralMismatch("Expected a positive repeat count after `n`")
            if count > 9:
                if peek(src) != "_":
                    raise IncompleteInput(f"Expected `_` after repeat count {count}")
                read_exact(src, 1)
            ctx.repeats.pending = check_repeat_count(count)
            return self._do_arg(src)

        typ, _ = self._do_type(src)
        ctx.repeats.previous = typ
        ctx.remember_type(read_span(src, start))
        return typ

    def _do_type(self, src: TextIOBase) -> tuple[str, TypeKind]:
        """
        Demangle a type: any number of declarator codes (pointers, references, arrays,
        functions, member pointers, qualifiers) followed by a base type.

        Returns the demangled type and its coarse kind, which is integral unless the
        type is known to be something else.
        """
        ctx = self._ctx
        ansi = self.options.ansi
        decl = DeclBuffer()
        kind: Optional[TypeKind] = None

        # A `T` back reference continues the type from the remembered text.
        cur = src
        done = False
        while not done:
            next = Token.peek(cur)

            if next.kind == Token.Kind.POINTER:
                read_exact(cur, 1)
                if not self.options.java:
                    decl.prepend("*")
                kind = kind or TypeKind.POINTER

            elif next.kind == Token.Kind.LVALUE_REFERENCE:
                read_exact(cur, 1)
                decl.prepend("&")
                kind = kind or TypeKind.REFERENCE

            elif next.kind == Token.Kind.RVALUE_REFERENCE:
                read_exact(cur, 1)
                decl.prepend("&&")
                kind = kind or TypeKind.REFERENCE

            elif next.kind == Token.Kind.ARRAY:
                read_exact(cur, 1)
                if decl.first_char() in ["*", "&"]:
                    decl.prepend("(").append(")")
                decl.append("[")
                if peek(cur) != "_":
                    self._demangle_template_value_parm(cur, decl, TypeKind.INTEGRAL)
                if peek(cur) == "_":
                    read_exact(cur, 1)
                decl.append("]")

            elif next.kind == Token.Kind.BACKREF_TYPE:
                read_exact(cur, 1)
                index = read_odd_count(cur)
                if index is None:
                    raise StructuralMismatch("Expected a type index after `T`")
                cur = StringIO(ctx.get_type(index))

            elif next.kind == Token.Kind.FUNCTION:
                read_exact(cur, 1)
                if decl.first_char() in ["*", "&"]:
                    decl.prepend("(").append(")")
                self._demangle_nested_args(cur, decl)
                # The return type follows a `_`.
                if peek(cur) not in ["_", ""]:
                    raise StructuralMismatch(f"Expected `_` after function arguments, got {peek(cur)!r}")
                if peek(cur) == "_":
                    read_exact(cur, 1)

            elif next.kind == Token.Kind.MEMBER:
                self._do_member_pointer(cur, decl)

            elif next.kind == Token.Kind.FIXED_WIDTH_INT_G:
                read_exact(cur, 1)

            elif next.is_cv_quali():
                if ansi:
                    decl.prepend_blank()
                    decl.prepend(Qualifier.from_code(next.content).spelling())
                read_exact(cur, 1)

            else:
                done = True

        result = DeclBuffer()
        next = Token.peek(cur)
        if next.is_qualified():
            self._demangle_qualified(cur, result, is_funcname=False, append=True)

        elif next.kind == Token.Kind.BACKREF:
            # A back reference to a squangled type
            read_exact(cur, 1)
            index = read_odd_count(cur)
            if index is None:
                raise StructuralMismatch("Expected a type index after `B`")
            result.append(ctx.get_btype(index))

        elif next.is_template_parm():
            read_exact(cur, 1)
            result.append(self._template_parm_ref(cur))

        else:
            fund_kind = self._demangle_fund_type(cur, result)
            kind = kind or fund_kind

        if decl:
            result.append(" ")
            result.append(decl)

        return str(result), kind or TypeKind.INTEGRAL

    def _do_member_pointer(self, src: TextIOBase, decl: DeclBuffer):
        """
        Demangle a pointer to member function, `M<class>[CVu]F<args>_`, into `decl`.
        The return type follows.
        """
        ctx = self._ctx
        quals = Qualifier.NONE

        read_exact(src, 1)
        decl.append(")")
        decl.prepend(ctx.scope)

        next = Token.peek(src)
        if next.is_digit():
            length = read_number(src)
            if length > bytes_left(src):
                raise IncompleteInput(f"Class name of length {length} runs past the end")
            decl.prepend(read_exact(src, length))
        elif next.is_template_parm():
            typ, _ = self._do_type(src)
            decl.prepend(typ)
        elif next.kind == Token.Kind.TEMPLATE:
            temp = DeclBuffer()
            self._demangle_template(src, temp, None, is_type=True, remember=True)
            decl.prepend(temp)
        else:
            raise StructuralMismatch(f"Unexpected {next.content!r} for member pointer class")
        decl.prepend("(")

        next = Token.peek(src)
        if next.is_cv_quali():
            quals |= Qualifier.from_code(next.content)
            read_exact(src, 1)

        if Token.read(src).kind != Token.Kind.FUNCTION:
            raise StructuralMismatch("Expected `F` in member pointer type")
        self._demangle_nested_args(src, decl)
        if peek(src) != "_":
            raise IncompleteInput("Expected `_` before member function return type")
        read_exact(src, 1)

        if self.options.ansi and quals != Qualifier.NONE:
            decl.append_blank()
            decl.append(quals.spelling())

    def _demangle_fund_type(self, src: TextIOBase, result: DeclBuffer) -> TypeKind:
        """
        Demangle a fundamental type, with its qualifiers and specifiers, into `result`.

        For example:
            "Ci"    =>  "const int"
            "Sl"    =>  "signed long"
            "CUs"   =>  "const unsigned short"
        """
        ctx = self._ctx
        kind = TypeKind.INTEGRAL

        # Qualifiers and specifiers come first; there can be more than one.
        next = Token.peek(src)
        while next.is_cv_quali() or next.is_type_spec():
            read_exact(src, 1)
            if next.is_cv_quali():
                if self.options.ansi:
                    result.prepend_blank()
                    result.prepend(Qualifier.from_code(next.content).spelling())
            else:
                result.append_blank()
                result.append(next.spelling())
            next = Token.peek(src)

        # There can be only one fundamental type.
        if not next or next.is_underscore():
            pass

        elif next.is_primitive():
            read_exact(src, 1)
            result.append_blank()
            result.append(next.spelling())
            kind = _KIND_OF_PRIMITIVE.get(next.kind, TypeKind.INTEGRAL)

        elif next.kind in [Token.Kind.FIXED_WIDTH_INT, Token.Kind.FIXED_WIDTH_INT_G]:
            read_exact(src, 1)
            if next.kind == Token.Kind.FIXED_WIDTH_INT_G:
                if not Token.peek(src).is_digit():
                    raise StructuralMismatch("Expected a digit after `G`")
                read_exact(src, 1)

            if peek(src) == "_":
                read_exact(src, 1)
                width_text = ""
                while len(width_text) < 9 and peek(src) not in ["", "_"]:
                    width_text += read_exact(src, 1)
                if peek(src) != "_":
                    raise IncompleteInput("Expected `_` after fixed width integer size")
                read_exact(src, 1)
            else:
                width_text = src.read(2)

            width = scan_hex_width(width_text)
            if not 8 <= width <= 64:
                raise StructuralMismatch(f"Invalid fixed width integer size {width}")
            result.append_blank()
            result.append(f"int{width}_t")

        elif next.is_digit():
            # An explicit type, such as "6mytype" or "7integer"
            bindex = ctx.register_btype()
            btype = DeclBuffer()
            self._demangle_class_name(src, btype)
            ctx.remember_btype(str(btype), bindex)
            result.append_blank()
            result.append(btype)

        elif next.kind == Token.Kind.TEMPLATE:
            btype = DeclBuffer()
            self._demangle_template(src, btype, None, is_type=True, remember=True)
            result.append(btype)

        else:
            raise StructuralMismatch(f"Unknown fundamental type {next.content!r}")

        return kind

    def _template_parm_ref(self, src: TextIOBase) -> str:
        """
        Read a reference to a template parameter (after its `X`/`Y`/`z` code), and
        return the argument it refers to, or a `T<index>` placeholder outside of a
        function template.
        """
        ctx = self._ctx
        index = read_number_with_underscores(src)
        read_number_with_underscores(src)

        if ctx.tmpl_argvec is None:
            return f"T{index}"
        return ctx.get_template_arg(index)

    def _demangle_template(
        self,
        src: TextIOBase,
        tname: DeclBuffer,
        trawname: Optional[DeclBuffer],
        is_type: bool,
        remember: bool,
    ):
        """
        Demangle a template (`t`) or a g++ function template (`H`) into `tname`.

        The name without the template arguments is placed in `trawname`, if given.
        Type templates are remembered as squangled types if `remember` is set. Function
        templates have no name, and make their arguments available to `X`/`Y`
        references.
        """
        ctx = self._ctx
        java = self.options.java
        is_java_array = False
        bindex: Optional[int] = None

        read_exact(src, 1)
        if is_type:
            if remember:
                bindex = ctx.register_btype()

            if peek(src) == "z":
                # The template is itself a template parameter.
                read_exact(src, 2)
                name = self._template_parm_ref(src)
                tname.append(name)
                if trawname is not None:
                    trawname.append(name)
            else:
                length = try_read_number(src)
                if not length or length > bytes_left(src):
                    raise StructuralMismatch("Expected the length of a template name")
                is_java_array = java and peek(src, 8) == "JArray1Z"
                name = read_exact(src, length)
                if not is_java_array:
                    tname.append(name)
                if trawname is not None:
                    trawname.append(name)

        if not is_java_array:
            tname.append("<")

        count = read_odd_count(src)
        if count is None:
            raise StructuralMismatch("Expected the number of template arguments")
        if count == 0:
            raise StructuralMismatch("Template has no arguments")
        # Every argument takes up at least one character.
        if count > bytes_left(src):
            raise IncompleteInput(f"Template with {count} arguments runs past the end")
        if not is_type:
            ctx.tmpl_argvec = [None] * count

        for i in range(count):
            if i:
                tname.append(", ")

            next = Token.peek(src)
            if next.kind == Token.Kind.TEMPLATE_TYPPARM:
                read_exact(src, 1)
                typ, _ = self._do_type(src)
                tname.append(typ)
                if not is_type:
                    ctx.tmpl_argvec[i] = typ

            elif next.kind == Token.Kind.TEMPLATE_TEMPARM:
                read_exact(src, 1)
                self._demangle_template_template_parm(src, tname)
                length = try_read_number(src)
                if length and length <= bytes_left(src):
                    name = read_exact(src, length)
                    tname.append(" ")
                    tname.append(name)
                    if not is_type:
                        ctx.tmpl_argvec[i] = name

            else:
                # A value parameter; its type selects the literal grammar.
                _, kind = self._do_type(src)
                value = tname if is_type else DeclBuffer()
                self._demangle_template_value_parm(src, value, kind)
                if not is_type:
                    ctx.tmpl_argvec[i] = str(value)
                    tname.append(value)

        tname.append("[]" if is_java_array else ">")

        if bindex is not None:
            ctx.remember_btype(str(tname), bindex)

    def _demangle_template_template_parm(self, src: TextIOBase, tname: DeclBuffer):
        tname.append("template <")
        count = read_odd_count(src) or 0
        if count > bytes_left(src):
            raise IncompleteInput(f"Template parameter list of {count} runs past the end")

        for i in range(count):
            if i:
                tname.append(", ")
            if at_end(src):
                raise IncompleteInput(f"Template parameter list ends after {i} of {count}")

            next = Token.peek(src)
            if next.kind == Token.Kind.TEMPLATE_TYPPARM:
                read_exact(src, 1)
                tname.append("class")
            elif next.kind == Token.Kind.TEMPLATE_TEMPARM:
                read_exact(src, 1)
                self._demangle_template_template_parm(src, tname)
            else:
                typ, _ = self._do_type(src)
                tname.append(typ)

        tname.append("> class")

    def _demangle_template_value_parm(self, src: TextIOBase, s: DeclBuffer, kind: TypeKind):
        """
        Demangle the value of a non-type template argument of the given kind into `s`.
        """
        if Token.peek(src).kind == Token.Kind.TEMPLATE_VALUE_PARM:
            # The value is a template parameter.
            read_exact(src, 1)
            s.append(self._template_parm_ref(src))

        elif kind == TypeKind.INTEGRAL:
            self._demangle_integral_value(src, s)

        elif kind == TypeKind.CHAR:
            if peek(src) == "m":
                read_exact(src, 1)
                s.append("-")
            s.append("'")
            value = try_read_number(src)
            if not value or value > 0xFF:
                raise StructuralMismatch(f"Invalid character literal {value}")
            s.append(chr(value))
            s.append("'")

        elif kind == TypeKind.BOOL:
            value = try_read_number(src)
            if value == 0:
                s.append("false")
            elif value == 1:
                s.append("true")
            else:
                raise StructuralMismatch(f"Invalid boolean literal {value}")

        elif kind == TypeKind.REAL:
            if peek(src) == "m":
                read_exact(src, 1)
                s.append("-")
            s.append(_read_digits(src))
            if peek(src) == ".":
                # Fraction
                read_exact(src, 1)
                s.append(".")
                s.append(_read_digits(src))
            if peek(src) == "e":
                # Exponent
                read_exact(src, 1)
                s.append("e")
                s.append(_read_digits(src))

        elif kind.is_address():
            if Token.peek(src).kind == Token.Kind.QUALIFIED:
                self._demangle_qualified(src, s, is_funcname=False, append=True)
                return

            length = try_read_number(src)
            if length is None:
                raise StructuralMismatch("Expected the length of a symbol literal")
            if length == 0:
                s.append("0")
                return
            if length > bytes_left(src):
                raise IncompleteInput(f"Symbol literal of length {length} runs past the end")

            # The symbol is mangled on its own.
            symbol = read_exact(src, length)
            if kind == TypeKind.POINTER:
                s.append("&")
            s.append(self._demangle_embedded(symbol))

    def _demangle_integral_value(self, src: TextIOBase, s: DeclBuffer):
        """
        Demangle an integral literal, a qualified name or a constant expression
        `E<value><op><value>...W` into `s`.
        """
        next = Token.peek(src)
        if next.kind == Token.Kind.EXPRESSION:
            read_exact(src, 1)
            s.append("(")
            need_operator = False
            while peek(src) not in ["W", ""]:
                if need_operator:
                    entry = Operator.lookup_prefix(peek_rest(src))
                    if entry is None:
                        raise StructuralMismatch(f"Expected an operator at {peek_rest(src)!r}")
                    read_exact(src, len(entry.token))
                    s.append(f" {entry.spelling} ")
                else:
                    need_operator = True
                self._demangle_template_value_parm(src, s, TypeKind.INTEGRAL)

            if peek(src) != "W":
                raise IncompleteInput("Expected `W` at the end of a constant expression")
            read_exact(src, 1)
            s.append(")")

        elif next.is_qualified():
            self._demangle_qualified(src, s, is_funcname=False, append=True)

        else:
            if next.kind == Token.Kind.NEGATE:
                read_exact(src, 1)
                s.append("-")
            digits = _read_digits(src)
            if not digits:
                raise StructuralMismatch(f"Expected an integral literal, got {peek(src)!r}")
            s.append(digits)

    def _demangle_qualified(
        self, src: TextIOBase, result: DeclBuffer, is_funcname: bool, append: bool
    ):
        """
        Demangle a qualified name, such as "Q25Outer5Inner" (`Outer::Inner`), or a
        squangled `K` reference to one.

        If `is_funcname` is set and a constructor or destructor is being demangled, the
        last component is repeated as the member name (`Outer::Inner::~Inner`). The
        name is appended to `result` if `append` is set, and prepended otherwise.
        """
        ctx = self._ctx
        style = self.style
        bindex = ctx.register_btype()
        is_funcname = is_funcname and bool((ctx.constructor & 1) or (ctx.destructor & 1))

        temp = DeclBuffer()
        last_name = DeclBuffer()
        qualifiers = 0

        if Token.read(src).kind == Token.Kind.QUALIFIED_NOREM:
            # Squangled qualified name
            temp.append(ctx.get_ktype(read_number_with_underscores(src)))
        else:
            next = peek(src)
            if next == "_":
                # More than 9 qualifiers: the count is surrounded by underscores.
                read_exact(src, 1)
                if peek(src) in ["", "0"]:
                    raise StructuralMismatch("Invalid number of name qualifiers")
                qualifiers = read_number(src)
                if peek(src) != "_":
                    raise IncompleteInput("Expected `_` after number of name qualifiers")
                read_exact(src, 1)
            elif next and next in "123456789":
                qualifiers = int(read_exact(src, 1))
                # cfront may put an underscore after the count.
                if peek(src) == "_":
                    read_exact(src, 1)
            else:
                raise StructuralMismatch(f"Invalid number of name qualifiers {next!r}")

        for remaining in range(qualifiers - 1, -1, -1):
            remember_k = True
            last_name.clear()

            if peek(src) == "_":
                read_exact(src, 1)

            next = Token.peek(src)
            if next.kind == Token.Kind.TEMPLATE:
                # The template is not remembered here, to match g++.
                self._demangle_template(src, temp, last_name, is_type=True, remember=False)
            elif next.kind == Token.Kind.QUALIFIED_NOREM:
                read_exact(src, 1)
                temp.append(ctx.get_ktype(read_number_with_underscores(src)))
                remember_k = False
            elif style == Style.EDG:
                # EDG components may be templates, which are mangled on their own.
                length = read_number(src)
                if length > bytes_left(src):
                    raise IncompleteInput(f"Name of length {length} runs past the end")
                temp.append(self._demangle_embedded(read_exact(src, length)))
            else:
                name, _ = self._do_type(src)
                last_name.reset(name)
                temp.append(name)

            if remember_k:
                ctx.remember_ktype(str(temp))
            if remaining:
                temp.append(ctx.scope)

        ctx.remember_btype(str(temp), bindex)

        if is_funcname:
            temp.append(ctx.scope)
            if ctx.destructor & 1:
                temp.append("~")
            temp.append(last_name)

        if append:
            result.append(temp)
        else:
            if result:
                temp.append(ctx.scope)
            result.prepend(temp)

    def _demangle_class_name(self, src: TextIOBase, decl: DeclBuffer):
        """
        Demangle a class name, possibly a cfront template with arguments.
        """
        length = read_number(src)
        if length > bytes_left(src):
            raise IncompleteInput(f"Class name of length {length} runs past the end")
        self._demangle_arm_hp_template(src, length, decl)

    def _demangle_class(self, src: TextIOBase, decl: DeclBuffer):
        """
        Demangle a class name such as "3foo" and prepend "foo::" to `decl`.

        If a constructor or destructor is pending, "foo::foo" or "foo::~foo" is
        prepended instead, and the pending count is consumed.
        """
        ctx = self._ctx
        bindex = ctx.register_btype()
        class_name = DeclBuffer()
        self._demangle_class_name(src, class_name)
        name = str(class_name)

        if (ctx.constructor & 1) or (ctx.destructor & 1):
            # Leave out the template arguments.
            short_name = name
            if ctx.temp_start not in [0, -1]:
                short_name = name[: ctx.temp_start]
            decl.prepend(short_name)
            if ctx.destructor & 1:
                decl.prepend("~")
                ctx.destructor -= 1
            else:
                ctx.constructor -= 1

        ctx.remember_ktype(name)
        ctx.remember_btype(name, bindex)
        decl.prepend(ctx.scope)
        decl.prepend(name)

    def _arm_pt(self, rest: str, length: int) -> Optional[tuple[int, int]]:
        """
        Check if the class name of `length` chars at the start of `rest` is a cfront
        or EDG template, such as `foo__pt__4_Zi`.

        Returns the offsets of the anchor and of the first template argument.
        """
        style = self.style
        if style.has_arm_templates():
            found = self._match_template_anchor(rest, length, "__pt__")
            if found is not None:
                return found

        if style.has_edg_templates():
            for anchor in ["__tm__", "__ps__", "__pt__"]:
                if anchor in rest:
                    return self._match_template_anchor(rest, length, anchor)
            if "__S" in rest:
                return self._match_template_anchor(rest, length, "__S")

        return None

    @staticmethod
    def _match_template_anchor(rest: str, length: int, anchor: str) -> Optional[tuple[int, int]]:
        start = rest.find(anchor)
        if start == -1:
            return None

        cur = StringIO(rest)
        cur.seek(start + len(anchor))
        args_length = try_read_number(cur)
        if args_length is None:
            return None

        # The arguments must run up to exactly the end of the class name.
        args = cur.tell()
        if args + args_length != length or rest[args : args + 1] != "_":
            return None
        return start, args + 1

    def _demangle_arm_hp_template(self, src: TextIOBase, length: int, decl: DeclBuffer):
        """
        Demangle a class name of `length` chars into `decl`. The name may be an HP aCC
        template specialization, a cfront/EDG template or the anonymous namespace.
        """
        ctx = self._ctx
        rest = peek_rest(src)

        if self.style == Style.HP and rest[length : length + 1] == "X":
            # HP aCC template specialization `classXt1t2_`. Pseudo-arguments such as
            # "Spec<#1,#1.*>" are left out.
            less_than = rest.find("<")
            if less_than != -1 and less_than < length:
                decl.append(rest[:less_than])
            else:
                decl.append(rest[:length])
            read_exact(src, length + 1)

            if ctx.temp_start == -1:
                ctx.temp_start = len(decl)
            decl.append("<")
            while True:
                next = Token.peek(src)
                if next.kind == Token.Kind.BACKREF_TYPE:
                    # Type parameter
                    read_exact(src, 1)
                    arg, _ = self._do_type(src)
                elif next.kind in [Token.Kind.UNSIGNED, Token.Kind.SIGNED]:
                    arg = self._do_hpacc_template_const_value(src)
                elif next.kind == Token.Kind.ARRAY:
                    arg = self._do_hpacc_template_literal(src)
                else:
                    break

                decl.append(arg)
                # The arguments end with the symbol, or with `_` for a function.
                if peek(src) in ["", "_"]:
                    break
                decl.append(",")

            decl.append(">")
            if peek(src) == "_":
                read_exact(src, 1)
            return

        anchor = self._arm_pt(rest, length)
        if anchor is not None:
            start, args = anchor
            decl.append(rest[:start])
            if ctx.temp_start == -1:
                ctx.temp_start = len(decl)
            decl.append("<")

            with as_stringio(rest[args:length]) as arg_src:
                while not at_end(arg_src):
                    next = Token.peek(arg_src)
                    if next.kind == Token.Kind.TEMPLATE_PARM:
                        # Typed constant `X<type>L<literal>`
                        read_exact(arg_src, 1)
                        typ, _ = self._do_type(arg_src)
                        if Token.read(arg_src).kind != Token.Kind.LITERAL:
                            raise StructuralMismatch("Expected `L` after typed template constant")
                        decl.append(f"({typ}){self._snarf_numeric_literal(arg_src)}")
                    elif next.kind == Token.Kind.LITERAL:
                        read_exact(arg_src, 1)
                        decl.append(self._snarf_numeric_literal(arg_src))
                    else:
                        typ, _ = self._do_type(arg_src)
                        decl.append(typ)
                    decl.append(",")

            if str(decl).endswith(","):
                decl.drop_last()
            decl.append(">")

        elif Special.is_anonymous_namespace(rest[:length]):
            decl.append("{anonymous}")

        else:
            if ctx.temp_start == -1:
                ctx.temp_start = 0
            decl.append(rest[:length])

        read_exact(src, length)

    @staticmethod
    def _snarf_numeric_literal(src: TextIOBase) -> str:
        sign = ""
        if peek(src) == "-":
            read_exact(src, 1)
            sign = "-"
        elif peek(src) == "+":
            read_exact(src, 1)

        digits = _read_digits(src)
        if not digits:
            raise StructuralMismatch(f"Expected a numeric literal, got {peek(src)!r}")
        return sign + digits

    @staticmethod
    def _do_hpacc_template_const_value(src: TextIOBase) -> str:
        """
        Demangle an HP aCC integral template argument: `U` or `S`, then `N` (negative)
        or `P` (positive) and the digits. `M` stands for the minimum 32-bit value.
        """
        unsigned = read_exact(src, 1) == "U"

        sign = read_exact(src, 1)
        if sign == "M":
            return "-2147483648"
        if sign not in ["N", "P"]:
            raise StructuralMismatch(f"Unexpected {sign!r} in template constant")

        digits = _read_digits(src)
        if not digits:
            raise StructuralMismatch("Expected digits in template constant")

        value = f"-{digits}" if sign == "N" else digits
        return f"{value}U" if unsigned else value

    def _do_hpacc_template_literal(self, src: TextIOBase) -> str:
        """
        Demangle an HP aCC literal template argument `A<length><name>`, printed as the
        address of the named entity.
        """
        read_exact(src, 1)
        length = try_read_number(src)
        if not length:
            raise StructuralMismatch("Expected the length of a template literal")
        if length > bytes_left(src):
            raise IncompleteInput(f"Template literal of length {length} runs past the end")

        return "&" + self._demangle_embedded(read_exact(src, length))


def parse(
    mangled: Union[str, bytes], options: Optional[DemangleOptions] = None, **flags
) -> str:
    """
    Demangle `mangled`, raising a `DemangleError` on failure.

    Options may be given as a `DemangleOptions`, as keyword arguments (`params`,
    `ansi`, `java`, `style`), or both, in which case the keywords win.
    """
    if options is None:
        options = DemangleOptions(**flags)
    elif flags:
        options = replace(options, **flags)

    if isinstance(options.style, str):
        options = replace(options, style=Style(options.style))

    return Demangler(options).parse(mangled)


def demangle(
    mangled: Union[str, bytes], options: Optional[DemangleOptions] = None, **flags
) -> Optional[str]:
    """
    Like `parse`, but return `None` if `mangled` cannot be demangled.
    """
    try:
        return parse(mangled, options, **flags)
    except DemangleError as e:
        log.debug("Unable to demangle %r: %s", mangled, e)
        return None
