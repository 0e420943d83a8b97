from ast_nodes import (
    Program, LetStatement, ReturnStatement, ExpressionStatement, BlockStatement,
    Identifier, IntegerLiteral, StringLiteral, Boolean,
    PrefixExpression, InfixExpression, IfExpression,
    FunctionLiteral, CallExpression,
    ArrayLiteral, HashLiteral, IndexExpression,
)
from builtin_functions import BUILTINS
from bytecode import Bytecode, Opcode, make
from errors import BytecodeError, CompileError, UnknownOperatorError, UnresolvedNameError
from objects import INT_MAX, INT_MIN, CompiledFunction, Integer, String
from symbol_table import SymbolScope, SymbolTable


class EmittedInstruction:
    def __init__(self, opcode, position):
        self.opcode = opcode
        self.position = position


class CompilationScope:
    def __init__(self, symbol_table):
        self.instructions = bytearray()
        self.last_instruction = None      # EmittedInstruction | None
        self.previous_instruction = None  # EmittedInstruction | None
        self.symbol_table = symbol_table


def new_symbol_table():
    """Global symbol table seeded with the builtins at their fixed indexes."""
    table = SymbolTable()
    for i, builtin in enumerate(BUILTINS):
        table.define_builtin(i, builtin.name)
    return table


class Compiler:
    def __init__(self, symbol_table=None, constants=None):
        # Both may be shared across units (REPL-style sessions).
        self.constants = constants if constants is not None else []
        self.global_table = symbol_table if symbol_table is not None else new_symbol_table()
        self.scopes = [CompilationScope(self.global_table)]

    @property
    def scope(self):
        return self.scopes[-1]

    @property
    def scope_index(self):
        return len(self.scopes) - 1

    @property
    def symbol_table(self):
        return self.scope.symbol_table

    def compile(self, node):
        # entry point
        if not isinstance(node, Program):
            raise CompileError("Compiler expects a Program node at the top", node)

        self.scopes = [CompilationScope(self.global_table)]
        table_mark = self.global_table.mark()
        num_constants = len(self.constants)
        try:
            for stmt in node.statements:
                self.compile_stmt(stmt)
        except CompileError:
            # leave the shared session state as it was before this unit
            self.global_table.reset(table_mark)
            del self.constants[num_constants:]
            self.scopes = [CompilationScope(self.global_table)]
            raise
        return self.bytecode()

    def bytecode(self):
        return Bytecode(self.scope.instructions, self.constants)

    # -------- emission --------
    def emit(self, op, *operands):
        try:
            ins = make(op, *operands)
        except BytecodeError as e:
            raise CompileError(str(e)) from e
        pos = self.add_instruction(ins)
        self.set_last_instruction(op, pos)
        return pos

    def add_instruction(self, ins):
        pos = len(self.scope.instructions)
        self.scope.instructions += ins
        return pos

    def add_constant(self, obj):
        self.constants.append(obj)
        return len(self.constants) - 1

    def set_last_instruction(self, op, pos):
        self.scope.previous_instruction = self.scope.last_instruction
        self.scope.last_instruction = EmittedInstruction(op, pos)

    def last_instruction_is(self, op):
        last = self.scope.last_instruction
        if not self.scope.instructions or last is None:
            return False
        return last.opcode == op

    def remove_last_pop(self):
        last = self.scope.last_instruction
        del self.scope.instructions[last.position:]
        self.scope.last_instruction = self.scope.previous_instruction

    def replace_instruction(self, pos, new_instruction):
        self.scope.instructions[pos:pos + len(new_instruction)] = new_instruction

    def change_operand(self, op_pos, operand):
        """Backpatch: rewrite the operand of the instruction at ``op_pos``."""
        op = Opcode(self.scope.instructions[op_pos])
        try:
            new_instruction = make(op, operand)
        except BytecodeError as e:
            raise CompileError(str(e)) from e
        self.replace_instruction(op_pos, new_instruction)

    def replace_last_pop_with_return(self):
        last_pos = self.scope.last_instruction.position
        self.replace_instruction(last_pos, make(Opcode.RETURN_VALUE))
        self.scope.last_instruction.opcode = Opcode.RETURN_VALUE

    def enter_scope(self):
        self.scopes.append(CompilationScope(SymbolTable(outer=self.symbol_table)))

    def leave_scope(self):
        return self.scopes.pop().instructions

    # -------- statements --------
    def compile_stmt(self, node):
        if isinstance(node, ExpressionStatement):
            self.compile_expr(node.expression)
            self.emit(Opcode.POP)
            return

        if isinstance(node, LetStatement):
            name = node.name.value
            if isinstance(node.value, FunctionLiteral) and not node.value.name:
                # a bound function literal can refer to itself by the binding name
                self.compile_function(node.value, name)
            else:
                self.compile_expr(node.value)

            symbol = self.symbol_table.define(name)
            if symbol.scope == SymbolScope.GLOBAL:
                self.emit(Opcode.SET_GLOBAL, symbol.index)
            else:
                self.emit(Opcode.SET_LOCAL, symbol.index)
            return

        if isinstance(node, ReturnStatement):
            if self.scope_index == 0:
                raise CompileError("return used outside of a function", node)
            if node.return_value is None:
                self.emit(Opcode.NULL)
            else:
                self.compile_expr(node.return_value)
            self.emit(Opcode.RETURN_VALUE)
            return

        if isinstance(node, BlockStatement):
            self.compile_block(node)
            return

        raise CompileError(f"Unknown statement node: {node.__class__.__name__}", node)

    def compile_block(self, block):
        for stmt in block.statements:
            self.compile_stmt(stmt)

    def compile_branch(self, block):
        # an if-branch always leaves exactly one value on the stack
        start = len(self.scope.instructions)
        if block is not None:
            self.compile_block(block)
        last = self.scope.last_instruction
        if self.last_instruction_is(Opcode.POP) and last.position >= start:
            self.remove_last_pop()
        else:
            self.emit(Opcode.NULL)

    def compile_if(self, node):
        # 1) condition
        self.compile_expr(node.condition)

        # 2) jump over the consequence if falsy (patched below)
        jmp_not_truthy_pos = self.emit(Opcode.JUMP_NOT_TRUTHY, 9999)

        # 3) consequence
        self.compile_branch(node.consequence)

        # 4) jump over the alternative
        jmp_pos = self.emit(Opcode.JUMP, 9999)

        # 5) falsy condition lands here
        self.change_operand(jmp_not_truthy_pos, len(self.scope.instructions))

        # 6) alternative, or null when absent
        self.compile_branch(node.alternative)

        # 7) end
        self.change_operand(jmp_pos, len(self.scope.instructions))

    def compile_function(self, node, name=None):
        name = name or node.name
        self.enter_scope()

        if name:
            self.symbol_table.define_function_name(name)
        for param in node.parameters:
            self.symbol_table.define(param.value)

        self.compile_block(node.body)

        # implicit return of the last expression, else return null
        if self.last_instruction_is(Opcode.POP):
            self.replace_last_pop_with_return()
        if not self.last_instruction_is(Opcode.RETURN_VALUE):
            self.emit(Opcode.RETURN)

        free_symbols = self.symbol_table.free_symbols
        num_locals = self.symbol_table.num_definitions
        instructions = self.leave_scope()

        # captured values, in capture order, as seen by the enclosing scope
        for symbol in free_symbols:
            self.load_symbol(symbol)

        fn = CompiledFunction(
            bytes(instructions),
            num_locals=num_locals,
            num_parameters=len(node.parameters),
            name=name,
        )
        self.emit(Opcode.CLOSURE, self.add_constant(fn), len(free_symbols))

    def load_symbol(self, symbol):
        if symbol.scope == SymbolScope.GLOBAL:
            self.emit(Opcode.GET_GLOBAL, symbol.index)
        elif symbol.scope == SymbolScope.LOCAL:
            self.emit(Opcode.GET_LOCAL, symbol.index)
        elif symbol.scope == SymbolScope.BUILTIN:
            self.emit(Opcode.GET_BUILTIN, symbol.index)
        elif symbol.scope == SymbolScope.FREE:
            self.emit(Opcode.GET_FREE, symbol.index)
        elif symbol.scope == SymbolScope.FUNCTION:
            self.emit(Opcode.CURRENT_CLOSURE)
        else:
            raise CompileError(f"Unknown symbol scope: {symbol.scope}")

    # -------- expressions --------
    def compile_expr(self, node):
        if isinstance(node, IntegerLiteral):
            if not isinstance(node.value, int) or not INT_MIN <= node.value <= INT_MAX:
                raise CompileError(f"integer literal out of range: {node.value}", node)
            self.emit(Opcode.CONSTANT, self.add_constant(Integer(node.value)))
            return

        if isinstance(node, StringLiteral):
            self.emit(Opcode.CONSTANT, self.add_constant(String(node.value)))
            return

        if isinstance(node, Boolean):
            self.emit(Opcode.TRUE if node.value else Opcode.FALSE)
            return

        if isinstance(node, Identifier):
            try:
                symbol = self.symbol_table.resolve(node.value)
            except UnresolvedNameError as e:
                e.node = node
                raise
            self.load_symbol(symbol)
            return

        if isinstance(node, PrefixExpression):
            self.compile_expr(node.right)
            if node.operator == "!":
                self.emit(Opcode.BANG)
            elif node.operator == "-":
                self.emit(Opcode.MINUS)
            else:
                raise UnknownOperatorError(node.operator, node)
            return

        if isinstance(node, InfixExpression):
            if node.operator == "<":
                # a < b is compiled as b > a
                self.compile_expr(node.right)
                self.compile_expr(node.left)
                self.emit(Opcode.GREATER_THAN)
                return

            self.compile_expr(node.left)
            self.compile_expr(node.right)
            self.emit(self.binary_op_to_opcode(node))
            return

        if isinstance(node, IfExpression):
            self.compile_if(node)
            return

        if isinstance(node, ArrayLiteral):
            for element in node.elements:
                self.compile_expr(element)
            self.emit(Opcode.ARRAY, len(node.elements))
            return

        if isinstance(node, HashLiteral):
            for key_node, value_node in node.pairs:
                self.compile_expr(key_node)
                self.compile_expr(value_node)
            self.emit(Opcode.HASH, len(node.pairs) * 2)
            return

        if isinstance(node, IndexExpression):
            self.compile_expr(node.left)
            self.compile_expr(node.index)
            self.emit(Opcode.INDEX)
            return

        if isinstance(node, FunctionLiteral):
            self.compile_function(node)
            return

        if isinstance(node, CallExpression):
            self.compile_expr(node.function)
            for arg in node.arguments:
                self.compile_expr(arg)
            self.emit(Opcode.CALL, len(node.arguments))
            return

        raise CompileError(f"Unknown expression node: {node.__class__.__name__}", node)

    def binary_op_to_opcode(self, node):
        mapping = {
            "+": Opcode.ADD,
            "-": Opcode.SUB,
            "*": Opcode.MUL,
            "/": Opcode.DIV,
            "==": Opcode.EQUAL,
            "!=": Opcode.NOT_EQUAL,
            ">": Opcode.GREATER_THAN,
        }
        if node.operator not in mapping:
            raise UnknownOperatorError(node.operator, node)
        return mapping[node.operator]
