from enum import IntEnum

from errors import BytecodeError


class Opcode(IntEnum):
    CONSTANT = 0
    ADD = 1
    SUB = 2
    MUL = 3
    DIV = 4
    POP = 5
    TRUE = 6
    FALSE = 7
    NULL = 8
    EQUAL = 9
    NOT_EQUAL = 10
    GREATER_THAN = 11
    MINUS = 12
    BANG = 13
    JUMP_NOT_TRUTHY = 14
    JUMP = 15
    GET_GLOBAL = 16
    SET_GLOBAL = 17
    GET_LOCAL = 18
    SET_LOCAL = 19
    GET_BUILTIN = 20
    GET_FREE = 21
    CURRENT_CLOSURE = 22
    ARRAY = 23
    HASH = 24
    INDEX = 25
    CALL = 26
    RETURN_VALUE = 27
    RETURN = 28
    CLOSURE = 29


class Definition:
    def __init__(self, name: str, operand_widths):
        self.name = name
        self.operand_widths = tuple(operand_widths)

    @property
    def size(self) -> int:
        # opcode byte + operand bytes
        return 1 + sum(self.operand_widths)

    def __repr__(self) -> str:
        return f"Definition({self.name!r}, {list(self.operand_widths)!r})"


DEFINITIONS = {
    Opcode.CONSTANT: Definition("OpConstant", [2]),
    Opcode.ADD: Definition("OpAdd", []),
    Opcode.SUB: Definition("OpSub", []),
    Opcode.MUL: Definition("OpMul", []),
    Opcode.DIV: Definition("OpDiv", []),
    Opcode.POP: Definition("OpPop", []),
    Opcode.TRUE: Definition("OpTrue", []),
    Opcode.FALSE: Definition("OpFalse", []),
    Opcode.NULL: Definition("OpNull", []),
    Opcode.EQUAL: Definition("OpEqual", []),
    Opcode.NOT_EQUAL: Definition("OpNotEqual", []),
    Opcode.GREATER_THAN: Definition("OpGreaterThan", []),
    Opcode.MINUS: Definition("OpMinus", []),
    Opcode.BANG: Definition("OpBang", []),
    Opcode.JUMP_NOT_TRUTHY: Definition("OpJumpNotTruthy", [2]),
    Opcode.JUMP: Definition("OpJump", [2]),
    Opcode.GET_GLOBAL: Definition("OpGetGlobal", [2]),
    Opcode.SET_GLOBAL: Definition("OpSetGlobal", [2]),
    Opcode.GET_LOCAL: Definition("OpGetLocal", [1]),
    Opcode.SET_LOCAL: Definition("OpSetLocal", [1]),
    Opcode.GET_BUILTIN: Definition("OpGetBuiltin", [1]),
    Opcode.GET_FREE: Definition("OpGetFree", [1]),
    Opcode.CURRENT_CLOSURE: Definition("OpCurrentClosure", []),
    Opcode.ARRAY: Definition("OpArray", [2]),
    Opcode.HASH: Definition("OpHash", [2]),
    Opcode.INDEX: Definition("OpIndex", []),
    Opcode.CALL: Definition("OpCall", [1]),
    Opcode.RETURN_VALUE: Definition("OpReturnValue", []),
    Opcode.RETURN: Definition("OpReturn", []),
    Opcode.CLOSURE: Definition("OpClosure", [2, 1]),
}

_OPCODES_BY_NAME = {d.name: op for op, d in DEFINITIONS.items()}


def lookup(op: int) -> Definition:
    try:
        return DEFINITIONS[Opcode(op)]
    except ValueError:
        raise BytecodeError(f"opcode {op} undefined") from None


def lookup_name(name: str) -> Opcode:
    if name not in _OPCODES_BY_NAME:
        raise BytecodeError(f"unknown mnemonic: {name}")
    return _OPCODES_BY_NAME[name]


def make(op: int, *operands: int) -> bytes:
    definition = lookup(op)
    widths = definition.operand_widths
    if len(operands) != len(widths):
        raise BytecodeError(
            f"{definition.name}: operand len {len(operands)} does not match defined {len(widths)}"
        )

    out = bytearray([op])
    for operand, width in zip(operands, widths):
        if not isinstance(operand, int) or operand < 0 or operand >= 1 << (8 * width):
            raise BytecodeError(f"{definition.name}: operand {operand} does not fit in {width} byte(s)")
        out += operand.to_bytes(width, "big")
    return bytes(out)


def read_operands(definition: Definition, ins, offset: int = 0):
    # returns (operands, bytes read)
    operands = []
    read = 0
    for width in definition.operand_widths:
        start = offset + read
        operands.append(int.from_bytes(ins[start:start + width], "big"))
        read += width
    return operands, read


def read_uint16(ins, offset: int) -> int:
    return (ins[offset] << 8) | ins[offset + 1]


def read_uint8(ins, offset: int) -> int:
    return ins[offset]


def format_instruction(definition: Definition, operands) -> str:
    count = len(definition.operand_widths)
    if len(operands) != count:
        return f"ERROR: operand len {len(operands)} does not match defined {count}"
    if count == 0:
        return definition.name
    return definition.name + " " + " ".join(str(o) for o in operands)


def iter_instructions(ins):
    """Yield (offset, definition, operands) for each instruction in ``ins``."""
    i = 0
    n = len(ins)
    while i < n:
        definition = lookup(ins[i])
        if i + definition.size > n:
            raise BytecodeError(f"truncated {definition.name} at offset {i}")
        operands, read = read_operands(definition, ins, i + 1)
        yield i, definition, operands
        i += 1 + read


def disassemble(ins) -> str:
    out = []
    for offset, definition, operands in iter_instructions(ins):
        out.append(f"{offset:04d} {format_instruction(definition, operands)}\n")
    return "".join(out)


def assemble(text: str) -> bytes:
    """Encode disassembled text back into instruction bytes.

    Each non-blank line is ``[offset] Mnemonic [operand ...]``; the leading
    byte offset is optional and ignored.
    """
    out = bytearray()
    for raw in text.splitlines():
        parts = raw.split()
        if not parts:
            continue
        if parts[0].isdigit():
            parts = parts[1:]
        if not parts:
            raise BytecodeError(f"missing mnemonic: {raw!r}")

        op = lookup_name(parts[0])
        try:
            operands = [int(p) for p in parts[1:]]
        except ValueError:
            raise BytecodeError(f"invalid operand: {raw!r}") from None
        out += make(op, *operands)
    return bytes(out)


class Bytecode:
    def __init__(self, instructions, constants):
        self.instructions = bytes(instructions)
        self.constants = constants  # shared with the compiler; append-only

    def dump(self) -> str:
        lines = ["CONSTS:"]
        for i, c in enumerate(self.constants):
            lines.append(f"  [{i}] {c.inspect()}")
            nested = getattr(c, "instructions", None)
            if nested is not None:
                for text in disassemble(nested).splitlines():
                    lines.append(f"        {text}")

        lines.append("")
        lines.append("INSTRUCTIONS:")
        for text in disassemble(self.instructions).splitlines():
            lines.append(f"  {text}")
        return "\n".join(lines)
