class ASTNode:
    # Optional source line (1-based). Parser may set this.
    line: int | None = None


class Program(ASTNode):
    def __init__(self, statements):
        self.statements = statements

    def __str__(self):
        return "".join(str(s) for s in self.statements)


# -------- statements --------

class LetStatement(ASTNode):
    def __init__(self, name, value):
        self.name = name    # Identifier
        self.value = value  # expression

    def __str__(self):
        return f"let {self.name} = {self.value};"


class ReturnStatement(ASTNode):
    def __init__(self, return_value=None):
        self.return_value = return_value  # expression | None

    def __str__(self):
        if self.return_value is None:
            return "return;"
        return f"return {self.return_value};"


class ExpressionStatement(ASTNode):
    def __init__(self, expression):
        self.expression = expression

    def __str__(self):
        return str(self.expression)


class BlockStatement(ASTNode):
    def __init__(self, statements):
        self.statements = statements

    def __str__(self):
        return "".join(str(s) for s in self.statements)


# -------- expressions --------

class Identifier(ASTNode):
    def __init__(self, value):
        self.value = value

    def __str__(self):
        return self.value


class IntegerLiteral(ASTNode):
    def __init__(self, value):
        self.value = value

    def __str__(self):
        return str(self.value)


class StringLiteral(ASTNode):
    def __init__(self, value):
        self.value = value

    def __str__(self):
        return self.value


class Boolean(ASTNode):
    def __init__(self, value):
        self.value = value

    def __str__(self):
        return "true" if self.value else "false"


class PrefixExpression(ASTNode):
    def __init__(self, operator, right):
        self.operator = operator  # "!" or "-"
        self.right = right

    def __str__(self):
        return f"({self.operator}{self.right})"


class InfixExpression(ASTNode):
    def __init__(self, left, operator, right):
        self.left = left
        self.operator = operator
        self.right = right

    def __str__(self):
        return f"({self.left} {self.operator} {self.right})"


class IfExpression(ASTNode):
    def __init__(self, condition, consequence, alternative=None):
        self.condition = condition
        self.consequence = consequence  # BlockStatement
        self.alternative = alternative  # BlockStatement | None

    def __str__(self):
        out = f"if{self.condition} {self.consequence}"
        if self.alternative is not None:
            out += f"else {self.alternative}"
        return out


class FunctionLiteral(ASTNode):
    def __init__(self, parameters, body, name=None):
        self.parameters = parameters  # list[Identifier]
        self.body = body              # BlockStatement
        self.name = name              # set when bound by let

    def __str__(self):
        params = ", ".join(str(p) for p in self.parameters)
        label = f"<{self.name}>" if self.name else ""
        return f"fn{label}({params}) {self.body}"


class CallExpression(ASTNode):
    def __init__(self, function, arguments):
        self.function = function    # Identifier or FunctionLiteral (any expression)
        self.arguments = arguments  # list[expr]

    def __str__(self):
        args = ", ".join(str(a) for a in self.arguments)
        return f"{self.function}({args})"


class ArrayLiteral(ASTNode):
    def __init__(self, elements):
        self.elements = elements  # list[expr]

    def __str__(self):
        return "[" + ", ".join(str(e) for e in self.elements) + "]"


class HashLiteral(ASTNode):
    def __init__(self, pairs):
        self.pairs = pairs  # list[(key_expr, value_expr)], source order

    def __str__(self):
        return "{" + ", ".join(f"{k}:{v}" for k, v in self.pairs) + "}"


class IndexExpression(ASTNode):
    def __init__(self, left, index):
        self.left = left
        self.index = index

    def __str__(self):
        return f"({self.left}[{self.index}])"
