import sys

from builtin_functions import BUILTINS
from bytecode import Opcode, format_instruction, lookup, read_operands, read_uint8, read_uint16
from errors import (
    ArityError,
    BytecodeError,
    DivisionByZeroError,
    FrameOverflowError,
    IntegerOverflowError,
    MonkeyRuntimeError,
    MonkeyTypeError,
    StackOverflowError,
    StepLimitError,
)
from objects import (
    INT_MAX,
    INT_MIN,
    NULL,
    TRUE,
    FALSE,
    Array,
    Boolean,
    Builtin,
    Closure,
    CompiledFunction,
    Hash,
    HashPair,
    Integer,
    Null,
    String,
    hash_key_of,
    is_hashable,
    is_truthy,
    native_bool_to_boolean,
)


STACK_SIZE = 2048
GLOBALS_SIZE = 65536
MAX_FRAMES = 1024


def new_globals_store():
    # unassigned globals read as null
    return [NULL] * GLOBALS_SIZE


class Frame:
    def __init__(self, closure, base_pointer: int):
        self.closure = closure
        self.ip = 0
        self.base_pointer = base_pointer

    @property
    def instructions(self):
        return self.closure.fn.instructions


class VM:
    def __init__(
        self,
        bytecode,
        globals=None,
        out=None,
        stack_size: int = STACK_SIZE,
        max_frames: int = MAX_FRAMES,
        max_steps: int | None = None,
        trace: bool = False,
    ):
        self.constants = bytecode.constants
        self.globals = globals if globals is not None else new_globals_store()
        self.out = out if out is not None else sys.stdout

        self.stack_size = stack_size
        self.max_frames = max_frames
        self.max_steps = max_steps  # set to an int to guard against infinite loops
        self.trace_enabled = trace

        self.stack = [NULL] * stack_size
        self.sp = 0     # next free slot; top of stack is stack[sp - 1]
        self.ip = 0     # start of the instruction being executed
        self.steps = 0
        self.last_popped = NULL  # value of the last top-level expression statement

        main_fn = CompiledFunction(bytecode.instructions, name="<main>")
        self.frames = [Frame(Closure(main_fn), 0)]

    # -------- frames / stack --------
    @property
    def current_frame(self) -> Frame:
        return self.frames[-1]

    def push_frame(self, frame: Frame):
        if len(self.frames) >= self.max_frames:
            raise FrameOverflowError(f"frame overflow (max {self.max_frames} frames)")
        self.frames.append(frame)

    def pop_frame(self) -> Frame:
        if len(self.frames) == 1:
            raise MonkeyRuntimeError("return outside of function")
        return self.frames.pop()

    def push(self, obj):
        if self.sp >= self.stack_size:
            raise StackOverflowError("stack overflow")
        self.stack[self.sp] = obj
        self.sp += 1

    def pop(self):
        if self.sp == 0:
            raise MonkeyRuntimeError("stack underflow")
        self.sp -= 1
        return self.stack[self.sp]

    # -------- diagnostics --------
    def build_stacktrace(self):
        frames = []
        for depth, fr in enumerate(reversed(self.frames)):
            # callers have already advanced past their 2-byte OpCall
            ip = self.ip if depth == 0 else fr.ip - 2
            frames.append({"func": fr.closure.fn.name, "ip": ip})
        return frames

    def _trace(self, ins, ip: int):
        definition = lookup(ins[ip])
        operands, _ = read_operands(definition, ins, ip + 1)
        print(f"TRACE ip={ip:04d} {format_instruction(definition, operands)} stack={self.sp}", file=self.out)

    # -------- execution --------
    def run(self):
        try:
            while self.current_frame.ip < len(self.current_frame.instructions):
                self.step()
        except MonkeyRuntimeError as e:
            if e.ip is None:
                e.ip = self.ip
            if not e.frames:
                e.frames = self.build_stacktrace()
            raise
        except BytecodeError as e:
            raise MonkeyRuntimeError(str(e), ip=self.ip, frames=self.build_stacktrace()) from e
        return self.last_popped

    def step(self):
        frame = self.current_frame
        ins = frame.instructions
        ip = frame.ip
        self.ip = ip
        op = ins[ip]

        if self.max_steps is not None:
            self.steps += 1
            if self.steps > self.max_steps:
                raise StepLimitError(f"step limit exceeded ({self.max_steps})")

        if self.trace_enabled:
            self._trace(ins, ip)

        if op == Opcode.CONSTANT:
            const_index = read_uint16(ins, ip + 1)
            frame.ip += 3
            self.push(self.constants[const_index])
            return

        if op in (Opcode.ADD, Opcode.SUB, Opcode.MUL, Opcode.DIV):
            frame.ip += 1
            self.execute_binary_operation(op)
            return

        if op in (Opcode.EQUAL, Opcode.NOT_EQUAL, Opcode.GREATER_THAN):
            frame.ip += 1
            self.execute_comparison(op)
            return

        if op == Opcode.POP:
            frame.ip += 1
            value = self.pop()
            if len(self.frames) == 1:
                self.last_popped = value
            return

        if op == Opcode.TRUE:
            frame.ip += 1
            self.push(TRUE)
            return

        if op == Opcode.FALSE:
            frame.ip += 1
            self.push(FALSE)
            return

        if op == Opcode.NULL:
            frame.ip += 1
            self.push(NULL)
            return

        if op == Opcode.BANG:
            frame.ip += 1
            self.push(native_bool_to_boolean(not is_truthy(self.pop())))
            return

        if op == Opcode.MINUS:
            frame.ip += 1
            operand = self.pop()
            if not isinstance(operand, Integer):
                raise MonkeyTypeError(f"unsupported type for negation: {operand.type.value}")
            self.push(Integer(self.check_int(-operand.value)))
            return

        if op == Opcode.JUMP:
            frame.ip = read_uint16(ins, ip + 1)
            return

        if op == Opcode.JUMP_NOT_TRUTHY:
            pos = read_uint16(ins, ip + 1)
            frame.ip += 3
            if not is_truthy(self.pop()):
                frame.ip = pos
            return

        if op == Opcode.SET_GLOBAL:
            global_index = read_uint16(ins, ip + 1)
            frame.ip += 3
            self.globals[global_index] = self.pop()
            return

        if op == Opcode.GET_GLOBAL:
            global_index = read_uint16(ins, ip + 1)
            frame.ip += 3
            self.push(self.globals[global_index])
            return

        if op == Opcode.SET_LOCAL:
            local_index = read_uint8(ins, ip + 1)
            frame.ip += 2
            self.stack[frame.base_pointer + local_index] = self.pop()
            return

        if op == Opcode.GET_LOCAL:
            local_index = read_uint8(ins, ip + 1)
            frame.ip += 2
            self.push(self.stack[frame.base_pointer + local_index])
            return

        if op == Opcode.GET_BUILTIN:
            builtin_index = read_uint8(ins, ip + 1)
            frame.ip += 2
            if builtin_index >= len(BUILTINS):
                raise MonkeyRuntimeError(f"unknown builtin index: {builtin_index}")
            self.push(BUILTINS[builtin_index])
            return

        if op == Opcode.GET_FREE:
            free_index = read_uint8(ins, ip + 1)
            frame.ip += 2
            self.push(frame.closure.free[free_index])
            return

        if op == Opcode.CURRENT_CLOSURE:
            frame.ip += 1
            self.push(frame.closure)
            return

        if op == Opcode.ARRAY:
            num_elements = read_uint16(ins, ip + 1)
            frame.ip += 3
            elements = self.stack[self.sp - num_elements:self.sp]
            self.sp -= num_elements
            self.push(Array(elements))
            return

        if op == Opcode.HASH:
            num_elements = read_uint16(ins, ip + 1)
            frame.ip += 3
            hash_obj = self.build_hash(self.sp - num_elements, self.sp)
            self.sp -= num_elements
            self.push(hash_obj)
            return

        if op == Opcode.INDEX:
            frame.ip += 1
            index = self.pop()
            left = self.pop()
            self.execute_index_expression(left, index)
            return

        if op == Opcode.CALL:
            num_args = read_uint8(ins, ip + 1)
            frame.ip += 2
            self.execute_call(num_args)
            return

        if op == Opcode.RETURN_VALUE:
            return_value = self.pop()
            returning = self.pop_frame()
            # drop callee, arguments and locals
            self.sp = returning.base_pointer - 1
            self.push(return_value)
            return

        if op == Opcode.RETURN:
            returning = self.pop_frame()
            self.sp = returning.base_pointer - 1
            self.push(NULL)
            return

        if op == Opcode.CLOSURE:
            const_index = read_uint16(ins, ip + 1)
            num_free = read_uint8(ins, ip + 3)
            frame.ip += 4
            self.push_closure(const_index, num_free)
            return

        raise MonkeyRuntimeError(f"unhandled opcode: {lookup(op).name}")

    # -------- operations --------
    def check_int(self, value: int) -> int:
        if value < INT_MIN or value > INT_MAX:
            raise IntegerOverflowError(f"integer overflow: {value}")
        return value

    def execute_binary_operation(self, op):
        right = self.pop()
        left = self.pop()

        if isinstance(left, Integer) and isinstance(right, Integer):
            self.push(Integer(self.execute_integer_operation(op, left.value, right.value)))
            return

        if isinstance(left, String) and isinstance(right, String):
            if op != Opcode.ADD:
                raise MonkeyTypeError(f"unknown string operator: {lookup(op).name}")
            self.push(String(left.value + right.value))
            return

        raise MonkeyTypeError(
            f"unsupported types for binary operation: {left.type.value} {right.type.value}"
        )

    def execute_integer_operation(self, op, left: int, right: int) -> int:
        if op == Opcode.ADD:
            result = left + right
        elif op == Opcode.SUB:
            result = left - right
        elif op == Opcode.MUL:
            result = left * right
        elif op == Opcode.DIV:
            if right == 0:
                raise DivisionByZeroError("division by zero")
            # truncate toward zero
            result = abs(left) // abs(right)
            if (left < 0) != (right < 0):
                result = -result
        else:
            raise MonkeyTypeError(f"unknown integer operator: {lookup(op).name}")
        return self.check_int(result)

    def execute_comparison(self, op):
        right = self.pop()
        left = self.pop()

        if isinstance(left, Integer) and isinstance(right, Integer):
            if op == Opcode.EQUAL:
                result = left.value == right.value
            elif op == Opcode.NOT_EQUAL:
                result = left.value != right.value
            else:
                result = left.value > right.value
            self.push(native_bool_to_boolean(result))
            return

        if op == Opcode.GREATER_THAN:
            raise MonkeyTypeError(f"unknown operator: {left.type.value} > {right.type.value}")

        equal = values_equal(left, right)
        self.push(native_bool_to_boolean(equal if op == Opcode.EQUAL else not equal))

    def build_hash(self, start: int, end: int) -> Hash:
        pairs = {}
        for i in range(start, end, 2):
            key = self.stack[i]
            value = self.stack[i + 1]
            pairs[hash_key_of(key)] = HashPair(key, value)
        return Hash(pairs)

    def execute_index_expression(self, left, index):
        if isinstance(left, Array):
            if isinstance(index, Integer) and 0 <= index.value < len(left.elements):
                self.push(left.elements[index.value])
            else:
                self.push(NULL)
            return

        if isinstance(left, Hash):
            if not is_hashable(index):
                self.push(NULL)
                return
            pair = left.pairs.get(index.hash_key())
            self.push(pair.value if pair is not None else NULL)
            return

        raise MonkeyTypeError(f"index operator not supported: {left.type.value}")

    def execute_call(self, num_args: int):
        callee = self.stack[self.sp - 1 - num_args]
        if isinstance(callee, Closure):
            self.call_closure(callee, num_args)
        elif isinstance(callee, Builtin):
            self.call_builtin(callee, num_args)
        else:
            raise MonkeyTypeError(f"calling non-function and non-built-in: {callee.type.value}")

    def call_closure(self, cl: Closure, num_args: int):
        fn = cl.fn
        if num_args != fn.num_parameters:
            raise ArityError(fn.num_parameters, num_args)

        base_pointer = self.sp - num_args
        top = base_pointer + fn.num_locals
        if top > self.stack_size:
            raise StackOverflowError("stack overflow")

        self.push_frame(Frame(cl, base_pointer))
        # locals beyond the parameters start out null
        for i in range(self.sp, top):
            self.stack[i] = NULL
        self.sp = top

    def call_builtin(self, builtin: Builtin, num_args: int):
        args = self.stack[self.sp - num_args:self.sp]
        result = builtin.fn(self, args)
        self.sp = self.sp - num_args - 1
        self.push(result if result is not None else NULL)

    def push_closure(self, const_index: int, num_free: int):
        constant = self.constants[const_index]
        if not isinstance(constant, CompiledFunction):
            raise MonkeyTypeError(f"not a function: {constant.type.value}")

        free = self.stack[self.sp - num_free:self.sp]
        self.sp -= num_free
        self.push(Closure(constant, free))


def values_equal(left, right) -> bool:
    # scalars compare by value within their kind, everything else by identity
    if isinstance(left, (Integer, Boolean, String, Null)):
        return left == right
    return left is right
