"""
Tests for demangler.
"""

from dataclasses import dataclass
from typing import Optional

import pytest

from classic_demangler import (
    CountOverflow,
    DemangleError,
    DemangleOptions,
    IncompleteInput,
    IndexOutOfRange,
    StructuralMismatch,
    Style,
    demangle,
    get_default_style,
    parse,
    set_default_style,
)


@dataclass
class CaseData:
    input: str
    expected: str
    expected_no_params: str
    style: Optional[Style] = None

    def test(self):
        """
        Run the demangler on the input and verify output matches, with and without
        parameter types.
        """
        for params, expected in [(True, self.expected), (False, self.expected_no_params)]:
            try:
                actual = parse(self.input, params=params, style=self.style)
            except Exception as e:
                raise AssertionError(f"Failed on input `{self.input}` (params={params})") from e

            assert expected == actual, (
                "\n" f"Input:    {self.input}\n" f"Expected: {expected}\n" f"Actual:   {actual}\n"
            )


def test_basic():
    """
    Test very basic mangled function names with no special cases.
    """
    test_data = [
        CaseData(
            input="saveOnQuitOverlay__Fv",
            expected="saveOnQuitOverlay(void)",
            expected_no_params="saveOnQuitOverlay",
        ),
        CaseData(
            input="textShake__FiPi",
            expected="textShake(int, int *)",
            expected_no_params="textShake",
        ),
        CaseData(
            input="InitRTState__5Shell",
            expected="Shell::InitRTState(void)",
            expected_no_params="Shell::InitRTState",
        ),
        CaseData(
            input="Check__6UArrayi",
            expected="UArray::Check(int)",
            expected_no_params="UArray::Check",
        ),
        CaseData(
            input="updateBlimpWeaponState__16PrisonLevelSoundii",
            expected="PrisonLevelSound::updateBlimpWeaponState(int, int)",
            expected_no_params="PrisonLevelSound::updateBlimpWeaponState",
        ),
        CaseData(input="Round__Ff", expected="Round(float)", expected_no_params="Round"),
        CaseData(input="foo__1Ai", expected="A::foo(int)", expected_no_params="A::foo"),
        CaseData(input="foo__1Afe", expected="A::foo(float,...)", expected_no_params="A::foo"),
        CaseData(input="foo__Fe", expected="foo(...)", expected_no_params="foo"),
    ]

    for test in test_data:
        test.test()


def test_basic_tricky():
    """
    Test fairly basic mangled function names which use tricky characters, like
    qualified class names.
    """
    test_data = [
        CaseData(
            input="AddAlignment__9ivTSolverUiP12ivInteractorP7ivTGlue",
            expected="ivTSolver::AddAlignment(unsigned int, ivInteractor *, ivTGlue *)",
            expected_no_params="ivTSolver::AddAlignment",
        ),
        CaseData(
            input="ArrowheadIntersects__9ArrowLineP9ArrowheadR6BoxObjP7Graphic",
            expected="ArrowLine::ArrowheadIntersects(Arrowhead *, BoxObj &, Graphic *)",
            expected_no_params="ArrowLine::ArrowheadIntersects",
        ),
        CaseData(
            input="CoreConstDecls__8TextCodeO7ostream",
            expected="TextCode::CoreConstDecls(ostream &&)",
            expected_no_params="TextCode::CoreConstDecls",
        ),
        CaseData(
            input="Done__9ComponentG8Iterator",
            expected="Component::Done(Iterator)",
            expected_no_params="Component::Done",
        ),
        CaseData(
            input="IsAGroup__FP11GraphicViewP11GraphicComp",
            expected="IsAGroup(GraphicView *, GraphicComp *)",
            expected_no_params="IsAGroup",
        ),
        CaseData(
            input="IsA__10ButtonCodeUl",
            expected="ButtonCode::IsA(unsigned long)",
            expected_no_params="ButtonCode::IsA",
        ),
        CaseData(
            input="ReadName__FR7istreamPc",
            expected="ReadName(istream &, char *)",
            expected_no_params="ReadName",
        ),
        CaseData(
            input="InsertBody__15H_PullrightMenuii",
            expected="H_PullrightMenu::InsertBody(int, int)",
            expected_no_params="H_PullrightMenu::InsertBody",
        ),
        CaseData(
            input="Set__5DFacePcii",
            expected="DFace::Set(char *, int, int)",
            expected_no_params="DFace::Set",
        ),
        CaseData(
            input="Set__14ivControlState13ControlStatusUi",
            expected="ivControlState::Set(ControlStatus, unsigned int)",
            expected_no_params="ivControlState::Set",
        ),
    ]

    for test in test_data:
        test.test()


def test_multi_memory():
    """
    Verify that parameters with multiple memory tokens are printed with no spaces inbetween.
    """
    test_data = [
        CaseData(
            input="FindFixed__FRP4CNetP4CNet",
            expected="FindFixed(CNet *&, CNet *)",
            expected_no_params="FindFixed",
        ),
        CaseData(
            input="FindFixed__FOP4CNetP4CNet",
            expected="FindFixed(CNet *&&, CNet *)",
            expected_no_params="FindFixed",
        ),
        CaseData(
            input="Fix48_abort__FR8twolongs",
            expected="Fix48_abort(twolongs &)",
            expected_no_params="Fix48_abort",
        ),
    ]

    for test in test_data:
        test.test()


def test_qualifiers():
    """
    Verify that qualifiers are printed after the type they apply to, and that member
    function qualifiers follow the parameter list.
    """
    test_data = [
        CaseData(
            input="GetBgColor__C9ivPainter",
            expected="ivPainter::GetBgColor(void) const",
            expected_no_params="ivPainter::GetBgColor",
        ),
        CaseData(
            input="Rotated__C13ivTransformerf",
            expected="ivTransformer::Rotated(float) const",
            expected_no_params="ivTransformer::Rotated",
        ),
        CaseData(
            input="foo__FPCc",
            expected="foo(char const *)",
            expected_no_params="foo",
        ),
        CaseData(
            input="foo__FCUl",
            expected="foo(unsigned long const)",
            expected_no_params="foo",
        ),
        CaseData(
            input="foo__S3bar",
            expected="bar::foo(void) static",
            expected_no_params="bar::foo",
        ),
    ]

    for test in test_data:
        test.test()


def test_no_ansi_qualifiers():
    assert parse("foo__FPCc", ansi=False) == "foo(char *)"
    assert parse("foo__FCUl", ansi=False) == "foo(unsigned long)"
    # Member function qualifiers are part of the signature.
    assert parse("GetBgColor__C9ivPainter", ansi=False) == "ivPainter::GetBgColor(void) const"


def test_backreferenced_types():
    """
    Verify that backreferenced "T" and "N" type codes are demangled as expected.
    """
    test_data = [
        CaseData(
            input="GetBarInfo__15iv2_6_VScrollerP13ivPerspectiveRiT2",
            expected="iv2_6_VScroller::GetBarInfo(ivPerspective *, int &, int &)",
            expected_no_params="iv2_6_VScroller::GetBarInfo",
        ),
        CaseData(
            input="InsertToplevel__7ivWorldP12ivInteractorT1iiUi",
            expected="ivWorld::InsertToplevel(ivInteractor *, ivInteractor *, int, int, unsigned int)",
            expected_no_params="ivWorld::InsertToplevel",
        ),
        CaseData(
            input="VConvert__9ivTSolverP12ivInteractorRP8TElementT2",
            expected="ivTSolver::VConvert(ivInteractor *, TElement *&, TElement *&)",
            expected_no_params="ivTSolver::VConvert",
        ),
        CaseData(
            input="__3fooiN31",
            expected="foo::foo(int, int, int, int)",
            expected_no_params="foo::foo",
        ),
        CaseData(
            input="__3fooiRT0iT2iT2",
            expected="foo::foo(int, foo &, int, foo &, int, foo &)",
            expected_no_params="foo::foo",
        ),
    ]

    for test in test_data:
        test.test()


def test_backreference_bounds():
    with pytest.raises(IndexOutOfRange):
        parse("foo__FiT5")
    with pytest.raises(IndexOutOfRange):
        parse("foo__FT0")
    with pytest.raises(IndexOutOfRange):
        parse("foo__FiN25")
    with pytest.raises(StructuralMismatch):
        # Nothing to repeat yet.
        parse("foo__Fn2")


def test_squangling():
    """
    Verify the `K`, `B` and `n` codes emitted by g++ with squangling enabled.
    """
    test_data = [
        CaseData(
            input="foo__Q21A1BK1",
            expected="A::B::foo(A::B)",
            expected_no_params="A::B::foo",
        ),
        CaseData(
            input="foo__Q21A1BK0",
            expected="A::B::foo(A)",
            expected_no_params="A::B::foo",
        ),
        CaseData(
            input="foo__Q21A1BB0",
            expected="A::B::foo(A::B)",
            expected_no_params="A::B::foo",
        ),
        CaseData(
            input="foo__Fin2",
            expected="foo(int, int, int)",
            expected_no_params="foo",
        ),
    ]

    for test in test_data:
        test.test()

    with pytest.raises(IndexOutOfRange):
        parse("foo__Q21A1BK7")
    with pytest.raises(IncompleteInput):
        # A repeat count above 9 must be followed by `_`.
        parse("foo__Fin12")


def test_operator_overload():
    """
    Verify that operator overloads are demangled correctly.
    """
    test_data = [
        CaseData(
            input="__aml__5Fix16i",
            expected="Fix16::operator*=(int)",
            expected_no_params="Fix16::operator*=",
        ),
        CaseData(
            input="__aa__3fooRT0",
            expected="foo::operator&&(foo &)",
            expected_no_params="foo::operator&&",
        ),
        CaseData(
            input="__als__3fooRT0",
            expected="foo::operator<<=(foo &)",
            expected_no_params="foo::operator<<=",
        ),
        CaseData(
            input="__as__3fooRT0",
            expected="foo::operator=(foo &)",
            expected_no_params="foo::operator=",
        ),
        CaseData(
            input="__cl__6Stringii",
            expected="String::operator()(int, int)",
            expected_no_params="String::operator()",
        ),
        CaseData(
            input="__cm__3fooRT0",
            expected="foo::operator, (foo &)",
            expected_no_params="foo::operator, ",
        ),
        CaseData(
            input="__co__3foo", expected="foo::operator~(void)", expected_no_params="foo::operator~"
        ),
        CaseData(
            input="__dl__3fooPv",
            expected="foo::operator delete(void *)",
            expected_no_params="foo::operator delete",
        ),
        CaseData(
            input="__nw__FUi",
            expected="operator new(unsigned int)",
            expected_no_params="operator new",
        ),
        CaseData(
            input="op$assign_plus__3fooRT0",
            expected="foo::operator+=(foo &)",
            expected_no_params="foo::operator+=",
        ),
    ]

    for test in test_data:
        test.test()


def test_conversion_operator():
    test_data = [
        CaseData(
            input="__opi__3foo",
            expected="foo::operator int(void)",
            expected_no_params="foo::operator int",
        ),
        CaseData(
            input="type$i__3foo",
            expected="foo::operator int(void)",
            expected_no_params="foo::operator int",
        ),
    ]

    for test in test_data:
        test.test()


def test_constructor():
    """
    Verify that standard (non-global) constructors are demangled correctly.
    """
    test_data = [
        CaseData(
            input="__10ivTelltaleiP7ivGlyph",
            expected="ivTelltale::ivTelltale(int, ivGlyph *)",
            expected_no_params="ivTelltale::ivTelltale",
        ),
        CaseData(
            input="__10ostrstream",
            expected="ostrstream::ostrstream(void)",
            expected_no_params="ostrstream::ostrstream",
        ),
        CaseData(
            input="__20DisplayList_IteratorR11DisplayList",
            expected="DisplayList_Iterator::DisplayList_Iterator(DisplayList &)",
            expected_no_params="DisplayList_Iterator::DisplayList_Iterator",
        ),
        CaseData(
            input="__Q23foo3bar", expected="foo::bar::bar(void)", expected_no_params="foo::bar::bar"
        ),
        CaseData(
            input="__Q33foo3bar4bell",
            expected="foo::bar::bell::bell(void)",
            expected_no_params="foo::bar::bell::bell",
        ),
        CaseData(
            input="__t3foo1Zi",
            expected="foo<int>::foo(void)",
            expected_no_params="foo<int>::foo",
        ),
    ]

    for test in test_data:
        test.test()


def test_destructor():
    """
    Verify that standard (non-global) destructors are demangled correctly.
    """
    test_data = [
        CaseData(
            input="_$_10BitmapComp",
            expected="BitmapComp::~BitmapComp(void)",
            expected_no_params="BitmapComp::~BitmapComp",
        ),
        CaseData(
            input="_$_9__io_defs",
            expected="__io_defs::~__io_defs(void)",
            expected_no_params="__io_defs::~__io_defs",
        ),
        CaseData(
            input="_._3foo",
            expected="foo::~foo(void)",
            expected_no_params="foo::~foo",
        ),
        CaseData(
            input="_$_Q33foo3bar4bell",
            expected="foo::bar::bell::~bell(void)",
            expected_no_params="foo::bar::bell::~bell",
        ),
    ]

    for test in test_data:
        test.test()


def test_type_info():
    """
    Verify that type info symbols are demangled correctly.
    """
    test_data = [
        CaseData(
            input="__tiv", expected="void type_info node", expected_no_params="void type_info node"
        ),
        CaseData(
            input="__tiSc",
            expected="signed char type_info node",
            expected_no_params="signed char type_info node",
        ),
        CaseData(
            input="__ti9type_info",
            expected="type_info type_info node",
            expected_no_params="type_info type_info node",
        ),
        CaseData(
            input="__tiQ210Pedestrian8Strategy",
            expected="Pedestrian::Strategy type_info node",
            expected_no_params="Pedestrian::Strategy type_info node",
        ),
        CaseData(
            input="__tf13bad_exception",
            expected="bad_exception type_info function",
            expected_no_params="bad_exception type_info function",
        ),
        CaseData(
            input="__tfUx",
            expected="unsigned long long type_info function",
            expected_no_params="unsigned long long type_info function",
        ),
    ]

    for test in test_data:
        test.test()


def test_global_xtors():
    """
    Verify that global constructors and destructors are demangled correctly.
    """
    test_data = [
        CaseData(
            input="_GLOBAL_$I$_10Pedestrian$s_animConfig",
            expected="global constructors keyed to Pedestrian::s_animConfig",
            expected_no_params="global constructors keyed to Pedestrian::s_animConfig",
        ),
        CaseData(
            input="_GLOBAL_$D$hudInfo",
            expected="global destructors keyed to hudInfo",
            expected_no_params="global destructors keyed to hudInfo",
        ),
        CaseData(
            input="_GLOBAL_.I.hudInfo",
            expected="global constructors keyed to hudInfo",
            expected_no_params="global constructors keyed to hudInfo",
        ),
        CaseData(
            input="_GLOBAL_$I$foo__1Ai",
            expected="global constructors keyed to A::foo(int)",
            expected_no_params="global constructors keyed to A::foo",
        ),
        # The keyed constructor counts as a pending constructor itself, which
        # suppresses the banner.
        CaseData(
            input="_GLOBAL_$I$__Q27CsColor4Data",
            expected="CsColor::Data::Data(void)",
            expected_no_params="CsColor::Data::Data",
        ),
        CaseData(
            input="__sti__foo_c_",
            expected="global constructors keyed to foo_c_",
            expected_no_params="global constructors keyed to foo_c_",
            style=Style.ARM,
        ),
        CaseData(
            input="__std__foo_c_",
            expected="global destructors keyed to foo_c_",
            expected_no_params="global destructors keyed to foo_c_",
            style=Style.EDG,
        ),
    ]

    for test in test_data:
        test.test()


def test_dll_import():
    test_data = [
        CaseData(
            input="_imp__foo__1Ai",
            expected="import stub for A::foo(int)",
            expected_no_params="import stub for A::foo",
        ),
        CaseData(
            input="__imp_foo__1Ai",
            expected="import stub for A::foo(int)",
            expected_no_params="import stub for A::foo",
        ),
    ]

    for test in test_data:
        test.test()


def test_static_data():
    """
    Verify that static data fields are demangled correctly.
    """
    test_data = [
        CaseData(
            input="_10PageButton$__both",
            expected="PageButton::__both",
            expected_no_params="PageButton::__both",
        ),
        CaseData(
            input="_5IComp$_release",
            expected="IComp::_release",
            expected_no_params="IComp::_release",
        ),
        CaseData(
            input="_Q23foo3bar$baz",
            expected="foo::bar::baz",
            expected_no_params="foo::bar::baz",
        ),
    ]

    for test in test_data:
        test.test()


def test_vtable():
    """
    Verify that virtual table symbols are demangled correctly.
    """
    test_data = [
        CaseData(
            input="_vt$10AttractPed",
            expected="AttractPed virtual table",
            expected_no_params="AttractPed virtual table",
        ),
        CaseData(
            input="_vt$17__array_type_info",
            expected="__array_type_info virtual table",
            expected_no_params="__array_type_info virtual table",
        ),
        CaseData(
            input="_vt$3foo$3bar",
            expected="foo::bar virtual table",
            expected_no_params="foo::bar virtual table",
        ),
        CaseData(
            input="_vt$foo$bar",
            expected="foo::bar virtual table",
            expected_no_params="foo::bar virtual table",
        ),
        CaseData(
            input="__vt_Q23foo3bar",
            expected="foo::bar virtual table",
            expected_no_params="foo::bar virtual table",
        ),
        CaseData(
            input="__vtbl__3foo__3bar",
            expected="bar::foo virtual table",
            expected_no_params="bar::foo virtual table",
            style=Style.ARM,
        ),
    ]

    for test in test_data:
        test.test()


def test_thunk():
    test_data = [
        CaseData(
            input="__thunk_4__$_7ostream",
            expected="virtual function thunk (delta:-4) for ostream::~ostream(void)",
            expected_no_params="virtual function thunk (delta:-4) for ostream::~ostream",
        ),
        CaseData(
            input="__thunk_16_foo__1Ai",
            expected="virtual function thunk (delta:-16) for A::foo(int)",
            expected_no_params="virtual function thunk (delta:-16) for A::foo",
        ),
        CaseData(
            input="__thunk_1Cfoo__1Ai",
            expected="virtual function thunk (delta:-1) for A::foo(int)",
            expected_no_params="virtual function thunk (delta:-1) for A::foo",
        ),
    ]

    for test in test_data:
        test.test()


def test_template_types():
    """
    Verify that template types are demangled correctly.
    """

    test_data = [
        CaseData(
            input="find__t8_Rb_tree2ZUsZUs",
            expected="_Rb_tree<unsigned short, unsigned short>::find(void)",
            expected_no_params="_Rb_tree<unsigned short, unsigned short>::find",
        ),
        CaseData(
            input="find__t8_Rb_tree5ZUsZt4pair2ZCUsZUsZt10_Select1st1Zt4pair2ZCUsZUsZt4less1ZUsZt9allocator1ZUsRCUs",
            expected="_Rb_tree<unsigned short, pair<unsigned short const, unsigned short>, _Select1st<pair<unsigned short const, unsigned short>>, less<unsigned short>, allocator<unsigned short>>::find(unsigned short const &)",
            expected_no_params="_Rb_tree<unsigned short, pair<unsigned short const, unsigned short>, _Select1st<pair<unsigned short const, unsigned short>>, less<unsigned short>, allocator<unsigned short>>::find",
        ),
        CaseData(
            input="_$_t13_Rb_tree_base2Zt4pair2ZCUsZUsZt9allocator1ZUs",
            expected="_Rb_tree_base<pair<unsigned short const, unsigned short>, allocator<unsigned short>>::~_Rb_tree_base(void)",
            expected_no_params="_Rb_tree_base<pair<unsigned short const, unsigned short>, allocator<unsigned short>>::~_Rb_tree_base",
        ),
        CaseData(
            input="_S_oom_malloc__t23__malloc_alloc_template1i0Ui",
            expected="__malloc_alloc_template<0>::_S_oom_malloc(unsigned int)",
            expected_no_params="__malloc_alloc_template<0>::_S_oom_malloc",
        ),
        CaseData(
            input="_S_chunk_alloc__t24__default_alloc_template2b0i0UiRi",
            expected="__default_alloc_template<false, 0>::_S_chunk_alloc(unsigned int, int &)",
            expected_no_params="__default_alloc_template<false, 0>::_S_chunk_alloc",
        ),
        CaseData(
            input="_M_insert__t8_Rb_tree5ZUiZt4pair2ZCUiZUsZt10_Select1st1Zt4pair2ZCUiZUsZt4less1ZUiZt9allocator1ZUsP18_Rb_tree_node_baseT1RCt4pair2ZCUiZUs",
            expected="_Rb_tree<unsigned int, pair<unsigned int const, unsigned short>, _Select1st<pair<unsigned int const, unsigned short>>, less<unsigned int>, allocator<unsigned short>>::_M_insert(_Rb_tree_node_base *, _Rb_tree_node_base *, pair<unsigned int const, unsigned short> const &)",
            expected_no_params="_Rb_tree<unsigned int, pair<unsigned int const, unsigned short>, _Select1st<pair<unsigned int const, unsigned short>>, less<unsigned int>, allocator<unsigned short>>::_M_insert",
        ),
    ]

    for test in test_data:
        test.test()


def test_template_values():
    """
    Verify the literal grammar of non-type template arguments.
    """
    test_data = [
        CaseData(
            input="baz__t3bar1c97",
            expected="bar<'a'>::baz(void)",
            expected_no_params="bar<'a'>::baz",
        ),
        CaseData(
            input="baz__t3bar1im5",
            expected="bar<-5>::baz(void)",
            expected_no_params="bar<-5>::baz",
        ),
        CaseData(
            input="baz__t3bar1b1",
            expected="bar<true>::baz(void)",
            expected_no_params="bar<true>::baz",
        ),
        CaseData(
            input="baz__t3bar1iE1pl2W",
            expected="bar<(1 + 2)>::baz(void)",
            expected_no_params="bar<(1 + 2)>::baz",
        ),
        CaseData(
            input="baz__t3bar1Pi3foo",
            expected="bar<&foo>::baz(void)",
            expected_no_params="bar<&foo>::baz",
        ),
    ]

    for test in test_data:
        test.test()

    with pytest.raises(StructuralMismatch):
        # Booleans are 0 or 1.
        parse("baz__t3bar1b2")
    with pytest.raises(StructuralMismatch):
        # A template needs at least one argument.
        parse("baz__t3bar0")


def test_nested_functions():
    """
    Verify that nested function arguments are demangled as expected.
    """
    test_data = [
        CaseData(
            input="dbsTraverse__FPP9_hierheadPFP9_hierheadP8_fvectorPA3_f_vP8_fvector",
            expected="dbsTraverse(_hierhead **, void (*)(_hierhead *, _fvector *, float (*)[3]), _fvector *)",
            expected_no_params="dbsTraverse",
        ),
        CaseData(
            input="foo__FPM3barFi_v",
            expected="foo(void (bar::*)(int))",
            expected_no_params="foo",
        ),
        CaseData(
            input="foo__FPM3barCFi_v",
            expected="foo(void (bar::*)(int) const)",
            expected_no_params="foo",
        ),
        CaseData(
            input="foo__FPA10_i",
            expected="foo(int (*)[10])",
            expected_no_params="foo",
        ),
    ]

    for test in test_data:
        test.test()


def test_fixed_width_integers():
    assert parse("foo__FI20") == "foo(int32_t)"
    assert parse("foo__FI_40_") == "foo(int64_t)"
    with pytest.raises(StructuralMismatch):
        parse("foo__FI02")


def test_template_functions():
    """
    Verify that templated function with backreferences are demangled correctly.
    """
    test_data = [
        CaseData(
            input="lexicographical_compare__H2ZPCScZPCSc_X01X11_b",
            expected="bool lexicographical_compare<signed char const *, signed char const *>(signed char const *, signed char const *)",
            expected_no_params="bool lexicographical_compare<signed char const *, signed char const *>",
        ),
    ]

    for test in test_data:
        test.test()


def test_arm_style():
    """
    Verify cfront/ARM conventions: explicit `F`, `__ct`/`__dt` names, one-based back
    references and `__pt__` templates.
    """
    test_data = [
        CaseData(
            input="__ct__3fooFv",
            expected="foo::foo(void)",
            expected_no_params="foo::foo",
            style=Style.ARM,
        ),
        CaseData(
            input="__dt__3fooFv",
            expected="foo::~foo(void)",
            expected_no_params="foo::~foo",
            style=Style.ARM,
        ),
        CaseData(
            input="foo__3barFiT1",
            expected="bar::foo(int, int)",
            expected_no_params="bar::foo",
            style=Style.ARM,
        ),
        CaseData(
            input="foo__13bar__pt__3_iiFv",
            expected="bar<int,int>::foo(void)",
            expected_no_params="bar<int,int>::foo",
            style=Style.ARM,
        ),
        CaseData(
            input="__1x",
            expected="x",
            expected_no_params="x",
            style=Style.LUCID,
        ),
    ]

    for test in test_data:
        test.test()


def test_hp_style():
    test_data = [
        CaseData(
            input="foo__3barXTiTc_Fv",
            expected="bar<int,char>::foo(void)",
            expected_no_params="bar<int,char>::foo",
            style=Style.HP,
        ),
        CaseData(
            input="foo__3barXTiUP5_Fv",
            expected="bar<int,5U>::foo(void)",
            expected_no_params="bar<int,5U>::foo",
            style=Style.HP,
        ),
        CaseData(
            input="foo__3barXSN3_Fv",
            expected="bar<-3>::foo(void)",
            expected_no_params="bar<-3>::foo",
            style=Style.HP,
        ),
        CaseData(
            input="foo__3barXSM_Fv",
            expected="bar<-2147483648>::foo(void)",
            expected_no_params="bar<-2147483648>::foo",
            style=Style.HP,
        ),
        CaseData(
            input="foo__3barFi_2",
            expected="bar::foo(int)",
            expected_no_params="bar::foo",
            style=Style.HP,
        ),
    ]

    for test in test_data:
        test.test()


def test_edg_style():
    test_data = [
        CaseData(
            input="foo__tm__2_i",
            expected="foo<int>",
            expected_no_params="foo<int>",
            style=Style.EDG,
        ),
        CaseData(
            input="foo__Fi_v",
            expected="foo(int)",
            expected_no_params="foo",
            style=Style.EDG,
        ),
        CaseData(
            input="foo__Fi_v",
            expected="foo(int)",
            expected_no_params="foo",
            style=Style.AUTO,
        ),
    ]

    for test in test_data:
        test.test()

    # g++ does not mangle return types after the arguments.
    with pytest.raises(StructuralMismatch):
        parse("foo__Fi_v", style=Style.GNU)


def test_java():
    options = DemangleOptions(java=True)
    assert parse("foo__Q23bar3baz", options) == "bar.baz.foo(void)"
    assert parse("foo__FP3bar", options) == "foo(bar)"
    assert parse("foo__FPt6JArray1Zi", options) == "foo(int[])"


def test_java_scope_separator():
    for symbol in ["foo__Q23bar3baz", "foo__Q23bar3bazi", "foo__t3bar1Zi"]:
        assert parse(symbol, java=True) == parse(symbol).replace("::", ".")


def test_not_mangled():
    for symbol in ["not_mangled", "foo__", "__", "_", "$", "__Q", "__thunk_", "main"]:
        with pytest.raises(DemangleError):
            parse(symbol)
        assert demangle(symbol) is None


def test_empty_symbol():
    with pytest.raises(StructuralMismatch):
        parse("")
    assert demangle("") is None


def test_count_overflow():
    with pytest.raises(CountOverflow):
        parse("foo__F99999999999i")
    assert demangle("foo__F99999999999i") is None


def test_huge_counts_terminate():
    with pytest.raises(IncompleteInput):
        parse("foo__H4294967295_")
    with pytest.raises(IncompleteInput):
        parse("foo__t3bar1z4294967295_")
    with pytest.raises(IncompleteInput):
        parse("foo__t3bar1z2z2ZZ")
    with pytest.raises(CountOverflow):
        parse("foo__Fin4294967295_")
    with pytest.raises(CountOverflow):
        parse("foo__FiN4294967295_0")


def test_first_separator():
    """
    A name without a leading `__` ends at its first `__`, even when a later split
    would give a valid signature.
    """
    for symbol in ["v__dt__3fooFv", "H__cl__e6Stringii", "foo__FPA10__i"]:
        with pytest.raises(DemangleError):
            parse(symbol)

    # The last pair of a run of underscores is the separator.
    assert parse("foo___1Ai") == "A::foo_(int)"


def test_bytes_input():
    assert parse(b"foo__1Ai") == "A::foo(int)"


def test_options_keywords_override():
    options = DemangleOptions(params=False)
    assert parse("foo__1Ai", options) == "A::foo"
    assert parse("foo__1Ai", options, params=True) == "A::foo(int)"
    assert parse("__ct__3fooFv", style="arm") == "foo::foo(void)"


def test_default_style():
    assert get_default_style() == Style.GNU

    set_default_style(Style.ARM)
    try:
        assert parse("__ct__3fooFv") == "foo::foo(void)"
        # An explicit dialect wins over the default; g++ has no `__ct` names.
        assert demangle("__ct__3fooFv", style=Style.GNU) == "foo::__ct(void)"
    finally:
        set_default_style(Style.GNU)
