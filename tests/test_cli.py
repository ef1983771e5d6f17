"""
Tests for the command line interface.
"""

import io

import pytest

from classic_demangler.cli import main
from classic_demangler.errors import StructuralMismatch


def test_symbols_from_arguments(capsys):
    main(["foo__1Ai", "textShake__FiPi"])
    assert capsys.readouterr().out == "A::foo(int)\ntextShake(int, int *)\n"


def test_failure_prints_symbol(capsys):
    main(["not_mangled"])
    assert capsys.readouterr().out == "not_mangled\n"


def test_error_on_failure():
    with pytest.raises(StructuralMismatch):
        main(["--error-on-failure", "not_mangled"])


def test_options(capsys):
    main(["--no-params", "foo__1Ai"])
    main(["--no-ansi", "foo__FPCc"])
    main(["--java", "foo__Q23bar3baz"])
    main(["--style", "arm", "__ct__3fooFv"])
    assert capsys.readouterr().out == "A::foo\nfoo(char *)\nbar.baz.foo(void)\nfoo::foo(void)\n"


def test_symbols_from_stdin(capsys, monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO("foo__1Ai\n\n  _vt$3foo  \n"))
    main([])
    assert capsys.readouterr().out == "A::foo(int)\nfoo virtual table\n"
