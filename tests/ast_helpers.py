"""Small constructors for building ASTs in tests without a parser."""

from ast_nodes import (
    Program, LetStatement, ReturnStatement, ExpressionStatement, BlockStatement,
    Identifier, IntegerLiteral, StringLiteral, Boolean,
    PrefixExpression, InfixExpression, IfExpression,
    FunctionLiteral, CallExpression,
    ArrayLiteral, HashLiteral, IndexExpression,
)

_STATEMENTS = (LetStatement, ReturnStatement, ExpressionStatement, BlockStatement)


def lit(value):
    # bool first: bool is an int subclass
    if isinstance(value, bool):
        return Boolean(value)
    if isinstance(value, int):
        return IntegerLiteral(value)
    return value


def stmt(node):
    if isinstance(node, _STATEMENTS):
        return node
    return ExpressionStatement(lit(node))


def prog(*statements):
    return Program([stmt(s) for s in statements])


def block(*statements):
    return BlockStatement([stmt(s) for s in statements])


def ident(name):
    return Identifier(name)


def string(value):
    return StringLiteral(value)


def let(name, value):
    return LetStatement(Identifier(name), lit(value))


def ret(value=None):
    return ReturnStatement(lit(value) if value is not None else None)


def infix(left, op, right):
    return InfixExpression(lit(left), op, lit(right))


def prefix(op, right):
    return PrefixExpression(op, lit(right))


def if_(condition, consequence, alternative=None):
    alt = block(*alternative) if alternative is not None else None
    return IfExpression(lit(condition), block(*consequence), alt)


def fn(params, *body, name=None):
    return FunctionLiteral([Identifier(p) for p in params], block(*body), name=name)


def call(function, *args):
    if isinstance(function, str):
        function = Identifier(function)
    return CallExpression(function, [lit(a) for a in args])


def array(*elements):
    return ArrayLiteral([lit(e) for e in elements])


def hash_(*pairs):
    return HashLiteral([(lit(k), lit(v)) for k, v in pairs])


def index(left, idx):
    return IndexExpression(lit(left), lit(idx))
