"""Persistent compile-and-run state for interactive hosts.

A host (a REPL, an editor plugin) parses input into an AST and hands each
program to the same ``Session``. Top-level bindings survive between calls
because the symbol table, constant pool and globals store are shared.
"""

import sys

import colorama
from colorama import Fore, Style

from compiler import Compiler, new_symbol_table
from errors import CompileError, MonkeyError, MonkeyRuntimeError
from vm import VM, new_globals_store


class Session:
    def __init__(self, out=None, color: bool = False, trace: bool = False, max_steps: int | None = None):
        self.out = out if out is not None else sys.stdout
        self.color = color
        self.trace = trace
        self.max_steps = max_steps

        self.constants = []
        self.globals = new_globals_store()
        self.symbol_table = new_symbol_table()
        self.last_bytecode = None

        if color:
            # enables ANSI escapes on Windows terminals; no-op elsewhere
            colorama.just_fix_windows_console()

    def compile(self, program):
        compiler = Compiler(symbol_table=self.symbol_table, constants=self.constants)
        bytecode = compiler.compile(program)
        self.last_bytecode = bytecode
        return bytecode

    def run(self, bytecode):
        vm = VM(
            bytecode,
            globals=self.globals,
            out=self.out,
            max_steps=self.max_steps,
            trace=self.trace,
        )
        return vm.run()

    def execute(self, program):
        return self.run(self.compile(program))

    def evaluate(self, program) -> str:
        """Execute ``program`` and render its value, or the error that stopped it."""
        try:
            return self.format_result(self.execute(program))
        except MonkeyError as e:
            return self.format_error(e)

    def format_result(self, value) -> str:
        return value.inspect()

    def format_error(self, err: MonkeyError) -> str:
        if isinstance(err, CompileError):
            text = f"Woops! Compilation failed:\n {err}"
        elif isinstance(err, MonkeyRuntimeError):
            text = f"Woops! Executing bytecode failed:\n{err.format(indent=' ')}"
        else:
            text = str(err)

        if not self.color:
            return text
        return f"{Fore.RED}{text}{Style.RESET_ALL}"
