from dataclasses import dataclass
from enum import Enum

from errors import UnresolvedNameError


class SymbolScope(str, Enum):
    GLOBAL = "GLOBAL"
    LOCAL = "LOCAL"
    BUILTIN = "BUILTIN"
    FREE = "FREE"
    FUNCTION = "FUNCTION"


@dataclass(frozen=True)
class Symbol:
    name: str
    scope: SymbolScope
    index: int


class SymbolTable:
    """Name -> Symbol mapping for one lexical scope.

    ``outer`` is the enclosing table (None at global level). Resolving a name
    that lives in an enclosing function scope records it in ``free_symbols``,
    which is the capture list the compiler turns into closure loads.
    """

    def __init__(self, outer: "SymbolTable | None" = None):
        self.outer = outer
        self.store = {}
        self.num_definitions = 0
        self.free_symbols = []  # outer symbols as seen by the enclosing scope

    def define(self, name: str) -> Symbol:
        scope = SymbolScope.GLOBAL if self.outer is None else SymbolScope.LOCAL
        symbol = Symbol(name, scope, self.num_definitions)
        self.store[name] = symbol
        self.num_definitions += 1
        return symbol

    def define_builtin(self, index: int, name: str) -> Symbol:
        symbol = Symbol(name, SymbolScope.BUILTIN, index)
        self.store[name] = symbol
        return symbol

    def define_function_name(self, name: str) -> Symbol:
        symbol = Symbol(name, SymbolScope.FUNCTION, 0)
        self.store[name] = symbol
        return symbol

    def _define_free(self, original: Symbol) -> Symbol:
        self.free_symbols.append(original)
        symbol = Symbol(original.name, SymbolScope.FREE, len(self.free_symbols) - 1)
        # stored locally so a second lookup reuses the same slot
        self.store[original.name] = symbol
        return symbol

    def resolve(self, name: str) -> Symbol:
        if name in self.store:
            return self.store[name]
        if self.outer is None:
            raise UnresolvedNameError(name)

        symbol = self.outer.resolve(name)
        if symbol.scope in (SymbolScope.GLOBAL, SymbolScope.BUILTIN):
            return symbol
        return self._define_free(symbol)

    def mark(self):
        return dict(self.store), self.num_definitions, list(self.free_symbols)

    def reset(self, mark) -> None:
        store, num_definitions, free_symbols = mark
        self.store = store
        self.num_definitions = num_definitions
        self.free_symbols = free_symbols
