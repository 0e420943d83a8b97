from errors import ArityError, MonkeyTypeError
from objects import NULL, Array, Builtin, Integer, String


def _check_argc(args, want: int):
    if len(args) != want:
        raise ArityError(want, len(args))


def _require_array(name: str, value) -> Array:
    if not isinstance(value, Array):
        raise MonkeyTypeError(f"argument to `{name}` must be ARRAY, got {value.type.value}")
    return value


def builtin_len(vm, args):
    _check_argc(args, 1)
    arg = args[0]
    if isinstance(arg, String):
        return Integer(len(arg.value))
    if isinstance(arg, Array):
        return Integer(len(arg.elements))
    raise MonkeyTypeError(f"argument to `len` not supported, got {arg.type.value}")


def builtin_puts(vm, args):
    for arg in args:
        print(arg.inspect(), file=vm.out)
    return NULL


def builtin_first(vm, args):
    _check_argc(args, 1)
    arr = _require_array("first", args[0])
    if arr.elements:
        return arr.elements[0]
    return NULL


def builtin_last(vm, args):
    _check_argc(args, 1)
    arr = _require_array("last", args[0])
    if arr.elements:
        return arr.elements[-1]
    return NULL


def builtin_rest(vm, args):
    _check_argc(args, 1)
    arr = _require_array("rest", args[0])
    if arr.elements:
        return Array(list(arr.elements[1:]))
    return NULL


def builtin_push(vm, args):
    _check_argc(args, 2)
    arr = _require_array("push", args[0])
    return Array(list(arr.elements) + [args[1]])


# Index order is part of the bytecode contract (OpGetBuiltin operand).
BUILTINS = [
    Builtin("len", builtin_len),
    Builtin("puts", builtin_puts),
    Builtin("first", builtin_first),
    Builtin("last", builtin_last),
    Builtin("rest", builtin_rest),
    Builtin("push", builtin_push),
]
