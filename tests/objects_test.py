import pytest

from ast_helpers import array, fn, infix, let, ident, prog
from ast_nodes import IntegerLiteral
from errors import MonkeyTypeError
from objects import (
    FALSE, NULL, TRUE, Array, Boolean, Builtin, Closure, CompiledFunction, Hash, HashPair,
    Integer, String, hash_key_of, is_truthy,
)


def test_string_hash_key():
    hello1 = String("Hello World")
    hello2 = String("Hello World")
    diff = String("My name is johnny")
    assert hello1.hash_key() == hello2.hash_key()
    assert hello1.hash_key() != diff.hash_key()


def test_hash_keys_differ_by_kind():
    assert Integer(1).hash_key() != TRUE.hash_key()
    assert Integer(0).hash_key() != FALSE.hash_key()
    assert String("1").hash_key() != Integer(1).hash_key()


def test_unhashable():
    with pytest.raises(MonkeyTypeError):
        hash_key_of(Array([]))
    with pytest.raises(MonkeyTypeError):
        hash_key_of(NULL)


def test_truthiness():
    assert is_truthy(TRUE)
    assert not is_truthy(FALSE)
    assert not is_truthy(NULL)
    assert is_truthy(Integer(0))
    assert is_truthy(String(""))
    assert is_truthy(Array([]))


def test_inspect():
    key = Integer(1)
    h = Hash({key.hash_key(): HashPair(key, String("one"))})
    assert Integer(-3).inspect() == "-3"
    assert Boolean(True).inspect() == "true"
    assert NULL.inspect() == "null"
    assert Array([Integer(1), String("a")]).inspect() == "[1, a]"
    assert h.inspect() == "{1: one}"
    assert Builtin("len", None).inspect() == "builtin function"
    assert CompiledFunction(b"").inspect().startswith("CompiledFunction[")
    assert Closure(CompiledFunction(b"")).inspect().startswith("Closure[")


def test_ast_renders_source():
    program = prog(let("add", fn(["a", "b"], infix(ident("a"), "+", ident("b")))), array(1, IntegerLiteral(2)))
    assert str(program) == "let add = fn(a, b) (a + b);[1, 2]"
