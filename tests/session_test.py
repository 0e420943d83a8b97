import io

import pytest
from colorama import Fore, Style

from ast_helpers import call, fn, ident, if_, infix, let, prog, string
from errors import ArityError, MonkeyTypeError, UnresolvedNameError
from objects import NULL, Integer
from session import Session


def test_globals_persist_across_units():
    session = Session()
    assert session.execute(prog(let("x", 5), ident("x"))) == Integer(5)

    session.execute(prog(let("x", 10)))
    assert session.execute(prog(ident("x"))) == Integer(10)


def test_functions_persist_across_units():
    session = Session()
    session.execute(prog(let("add", fn(["a", "b"], infix(ident("a"), "+", ident("b"))))))
    assert session.execute(prog(call("add", 2, 3))) == Integer(5)


def test_recursive_count_down():
    count_down = fn(["x"], if_(
        infix(ident("x"), "==", 0),
        [0],
        [call("countDown", infix(ident("x"), "-", 1))],
    ))
    session = Session()
    assert session.execute(prog(let("countDown", count_down), call("countDown", 3))) == Integer(0)


def test_arity_error_does_not_corrupt_later_runs():
    session = Session()
    session.execute(prog(let("one", fn(["a"], ident("a"))), let("kept", 41)))

    with pytest.raises(ArityError):
        session.execute(prog(call("one")))

    assert session.execute(prog(infix(ident("kept"), "+", 1))) == Integer(42)
    assert session.execute(prog(call("one", 7))) == Integer(7)


def test_compile_error_leaves_session_untouched():
    session = Session()
    session.execute(prog(let("y", 1)))

    with pytest.raises(UnresolvedNameError):
        session.execute(prog(let("z", 2), ident("missing")))

    with pytest.raises(UnresolvedNameError):
        session.execute(prog(ident("z")))
    assert session.execute(prog(ident("y"))) == Integer(1)


def test_globals_assigned_before_a_runtime_error_remain():
    session = Session()
    with pytest.raises(MonkeyTypeError):
        session.execute(prog(let("g", 7), let("h", infix(1, "+", True))))

    assert session.execute(prog(ident("g"))) == Integer(7)
    assert session.execute(prog(ident("h"))) is NULL


def test_len_builtin():
    session = Session()
    assert session.execute(prog(call("len", string("hello")))) == Integer(5)
    with pytest.raises(MonkeyTypeError):
        session.execute(prog(call("len", 1)))


def test_builtin_output_goes_to_session_stream():
    out = io.StringIO()
    session = Session(out=out)
    session.execute(prog(call("puts", string("first"))))
    session.execute(prog(call("puts", string("second"))))
    assert out.getvalue() == "first\nsecond\n"


def test_evaluate_renders_values_and_errors():
    session = Session()
    assert session.evaluate(prog(infix(1, "+", 2))) == "3"
    assert session.evaluate(prog(let("x", 1))) == "null"

    text = session.evaluate(prog(ident("nope")))
    assert text.startswith("Woops! Compilation failed:")
    assert "undefined variable nope" in text

    text = session.evaluate(prog(call("len", 1)))
    assert text.startswith("Woops! Executing bytecode failed:")
    assert "argument to `len` not supported, got INTEGER" in text


def test_colored_errors():
    session = Session(color=True)
    text = session.evaluate(prog(ident("nope")))
    assert text.startswith(Fore.RED)
    assert text.endswith(Style.RESET_ALL)

    # values are never colored
    assert session.evaluate(prog(1)) == "1"


def test_last_bytecode_is_kept_for_diagnostics():
    session = Session()
    session.execute(prog(infix(1, "+", 2)))
    dump = session.last_bytecode.dump()
    assert "0006 OpAdd" in dump


def test_let_renders_null_after_an_expression_unit():
    session = Session()
    out = session.evaluate(prog(infix(1, "+", 2)))
    if out != "3":
        raise AssertionError(f"Expected 3.\nOUT:\n{out}")

    out = session.evaluate(prog(let("x", 5)))
    if out != "null":
        raise AssertionError(f"Expected null after a let.\nOUT:\n{out}")

    out = session.evaluate(prog(ident("x")))
    if out != "5":
        raise AssertionError(f"Expected 5.\nOUT:\n{out}")


if __name__ == "__main__":
    test_globals_persist_across_units()
    test_functions_persist_across_units()
    test_recursive_count_down()
    test_arity_error_does_not_corrupt_later_runs()
    test_compile_error_leaves_session_untouched()
    test_globals_assigned_before_a_runtime_error_remain()
    test_len_builtin()
    test_builtin_output_goes_to_session_stream()
    test_evaluate_renders_values_and_errors()
    test_colored_errors()
    test_last_bytecode_is_kept_for_diagnostics()
    test_let_renders_null_after_an_expression_unit()
    print("ok")
