"""Runtime values the VM operates on.

The set of kinds is closed: Integer, Boolean, Null, String, Array, Hash,
CompiledFunction, Closure and Builtin. Every value has a ``type`` tag and an
``inspect()`` rendering.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from errors import MonkeyTypeError


# Integers are 64-bit signed.
INT_MIN = -(1 << 63)
INT_MAX = (1 << 63) - 1


class ObjectType(str, Enum):
    INTEGER = "INTEGER"
    BOOLEAN = "BOOLEAN"
    NULL = "NULL"
    STRING = "STRING"
    ARRAY = "ARRAY"
    HASH = "HASH"
    COMPILED_FUNCTION = "COMPILED_FUNCTION"
    CLOSURE = "CLOSURE"
    BUILTIN = "BUILTIN"


@dataclass(frozen=True)
class HashKey:
    type: ObjectType
    value: object


@dataclass(frozen=True)
class Integer:
    value: int
    type = ObjectType.INTEGER

    def inspect(self) -> str:
        return str(self.value)

    def hash_key(self) -> HashKey:
        return HashKey(self.type, self.value)


@dataclass(frozen=True)
class Boolean:
    value: bool
    type = ObjectType.BOOLEAN

    def inspect(self) -> str:
        return "true" if self.value else "false"

    def hash_key(self) -> HashKey:
        return HashKey(self.type, 1 if self.value else 0)


@dataclass(frozen=True)
class Null:
    type = ObjectType.NULL

    def inspect(self) -> str:
        return "null"


@dataclass(frozen=True)
class String:
    value: str
    type = ObjectType.STRING

    def inspect(self) -> str:
        return self.value

    def hash_key(self) -> HashKey:
        return HashKey(self.type, self.value)


@dataclass(eq=False)
class Array:
    elements: list
    type = ObjectType.ARRAY

    def inspect(self) -> str:
        return "[" + ", ".join(e.inspect() for e in self.elements) + "]"


@dataclass(eq=False)
class HashPair:
    key: object
    value: object


@dataclass(eq=False)
class Hash:
    pairs: dict  # HashKey -> HashPair, insertion ordered
    type = ObjectType.HASH

    def inspect(self) -> str:
        items = [f"{p.key.inspect()}: {p.value.inspect()}" for p in self.pairs.values()]
        return "{" + ", ".join(items) + "}"


@dataclass(frozen=True)
class CompiledFunction:
    instructions: bytes
    num_locals: int = 0
    num_parameters: int = 0
    name: str | None = field(default=None, compare=False)
    type = ObjectType.COMPILED_FUNCTION

    def inspect(self) -> str:
        return f"CompiledFunction[{id(self):#x}]"


@dataclass(eq=False)
class Closure:
    fn: CompiledFunction
    free: list = field(default_factory=list)  # captured values, in free-symbol order
    type = ObjectType.CLOSURE

    def inspect(self) -> str:
        return f"Closure[{id(self):#x}]"


@dataclass(eq=False)
class Builtin:
    name: str
    fn: Callable
    type = ObjectType.BUILTIN

    def inspect(self) -> str:
        return "builtin function"


Object = Integer | Boolean | Null | String | Array | Hash | CompiledFunction | Closure | Builtin

TRUE = Boolean(True)
FALSE = Boolean(False)
NULL = Null()


def native_bool_to_boolean(value: bool) -> Boolean:
    return TRUE if value else FALSE


def is_truthy(obj: Object) -> bool:
    if isinstance(obj, Boolean):
        return obj.value
    if isinstance(obj, Null):
        return False
    return True


def is_hashable(obj: Object) -> bool:
    return isinstance(obj, (Integer, Boolean, String))


def hash_key_of(obj: Object) -> HashKey:
    if not is_hashable(obj):
        raise MonkeyTypeError(f"unusable as hash key: {obj.type.value}")
    return obj.hash_key()
