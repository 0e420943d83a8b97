class MonkeyError(Exception):
    pass


class BytecodeError(MonkeyError):
    pass


class CompileError(MonkeyError):
    def __init__(self, message: str, node=None):
        super().__init__(message)
        self.message = message
        self.node = node

    def __str__(self) -> str:
        line = getattr(self.node, "line", None)
        if line is None:
            return f"Compile error: {self.message}"
        return f"Compile error (line {line}): {self.message}"


class UnresolvedNameError(CompileError):
    def __init__(self, name: str, node=None):
        super().__init__(f"undefined variable {name}", node)
        self.name = name


class UnknownOperatorError(CompileError):
    def __init__(self, operator: str, node=None):
        super().__init__(f"unknown operator {operator}", node)
        self.operator = operator


class MonkeyRuntimeError(MonkeyError):
    def __init__(self, message: str, ip: int | None = None, frames=None):
        super().__init__(message)
        self.message = message
        self.ip = ip
        self.frames = frames or []  # most recent first

    def format(self, indent: str = "") -> str:
        lines = [f"{indent}Runtime error: {self.message}"]
        if self.ip is not None:
            lines.append(f"{indent}  ip={self.ip:04d}")
        for fr in self.frames:
            func = fr.get("func") or "<anonymous>"
            lines.append(f"{indent}  at func {func} (ip={fr.get('ip', '?')})")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.format()


class MonkeyTypeError(MonkeyRuntimeError):
    pass


class ArityError(MonkeyRuntimeError):
    def __init__(self, want: int, got: int):
        super().__init__(f"wrong number of arguments: want={want}, got={got}")
        self.want = want
        self.got = got


class IntegerOverflowError(MonkeyRuntimeError):
    pass


class DivisionByZeroError(MonkeyRuntimeError):
    pass


class ResourceExhaustedError(MonkeyRuntimeError):
    pass


class StackOverflowError(ResourceExhaustedError):
    pass


class FrameOverflowError(ResourceExhaustedError):
    pass


class StepLimitError(ResourceExhaustedError):
    pass
