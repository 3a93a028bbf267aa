"""Built-in function implementations for the expression evaluator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .constants import DEFAULT_MAX_ITERATIONS
from .errors import EvalError, LimitExceededError, ValueTypeError
from .values import Function, is_truthy, py_repr, py_str, type_name


@dataclass
class CallContext:
    """What a built-in may touch: the working output buffer and the loop bound."""

    output: list[str] = field(default_factory=list)
    max_iterations: int = DEFAULT_MAX_ITERATIONS


def _arity(name: str, args: list[Any], low: int, high: int) -> None:
    if low <= len(args) <= high:
        return
    if low == high:
        expected = "no arguments" if low == 0 else f"exactly {low} argument{'s' * (low != 1)}"
        raise EvalError(f"{name}() takes {expected} ({len(args)} given)")
    if len(args) < low:
        raise EvalError(f"{name}() expected at least {low} argument{'s' * (low != 1)}, got {len(args)}")
    raise EvalError(f"{name}() expected at most {high} arguments, got {len(args)}")


def _require_int(name: str, value: Any) -> int:
    if not isinstance(value, int):
        raise ValueTypeError(
            f"'{type_name(value)}' object cannot be interpreted as an integer"
        )
    return value


def _iterable_items(name: str, value: Any) -> list[Any]:
    if isinstance(value, (list, str)):
        return list(value)
    if isinstance(value, dict):
        return list(value.keys())
    raise ValueTypeError(f"'{type_name(value)}' object is not iterable")


def render_print_line(args: list[Any]) -> str:
    """Render print arguments: each with repr rules, joined by one space."""
    return " ".join(py_repr(a) for a in args)


def _builtin_print(args: list[Any], ctx: CallContext) -> Any:
    ctx.output.append(render_print_line(args))
    return None


def _builtin_range(args: list[Any], ctx: CallContext) -> Any:
    _arity("range", args, 1, 3)
    bounds = [_require_int("range", a) for a in args]
    if len(bounds) == 3 and bounds[2] == 0:
        raise EvalError("range() arg 3 must not be zero")
    span = range(*bounds)
    if len(span) > ctx.max_iterations:
        raise LimitExceededError(
            f"range() of length {len(span)} exceeds the iteration limit of {ctx.max_iterations}"
        )
    return list(span)


def _builtin_len(args: list[Any], ctx: CallContext) -> Any:
    _arity("len", args, 1, 1)
    val = args[0]
    if isinstance(val, (list, str, dict)):
        return len(val)
    raise ValueTypeError(f"object of type '{type_name(val)}' has no len()")


def _builtin_int(args: list[Any], ctx: CallContext) -> Any:
    _arity("int", args, 0, 2)
    if not args:
        return 0
    val = args[0]
    if len(args) == 2:
        if not isinstance(val, str):
            raise ValueTypeError("int() can't convert non-string with explicit base")
        base = _require_int("int", args[1])
        try:
            return int(val, base)
        except ValueError as exc:
            raise EvalError(str(exc)) from exc
    if isinstance(val, (bool, int, float, str)):
        try:
            return int(val)
        except (ValueError, OverflowError) as exc:
            raise EvalError(str(exc)) from exc
    raise ValueTypeError(
        "int() argument must be a string, a bytes-like object or a real number, "
        f"not '{type_name(val)}'"
    )


def _builtin_float(args: list[Any], ctx: CallContext) -> Any:
    _arity("float", args, 0, 1)
    if not args:
        return 0.0
    val = args[0]
    if isinstance(val, (bool, int, float, str)):
        try:
            return float(val)
        except (ValueError, OverflowError) as exc:
            raise EvalError(str(exc)) from exc
    raise ValueTypeError(
        f"float() argument must be a string or a real number, not '{type_name(val)}'"
    )


def _builtin_str(args: list[Any], ctx: CallContext) -> Any:
    _arity("str", args, 0, 1)
    return py_str(args[0]) if args else ""


def _builtin_bool(args: list[Any], ctx: CallContext) -> Any:
    _arity("bool", args, 0, 1)
    return is_truthy(args[0]) if args else False


def _builtin_abs(args: list[Any], ctx: CallContext) -> Any:
    _arity("abs", args, 1, 1)
    val = args[0]
    if isinstance(val, (int, float)):
        return abs(val)
    raise ValueTypeError(f"bad operand type for abs(): '{type_name(val)}'")


def _extremum(name: str, args: list[Any], pick) -> Any:
    if not args:
        raise EvalError(f"{name} expected at least 1 argument, got 0")
    items = _iterable_items(name, args[0]) if len(args) == 1 else list(args)
    if not items:
        raise EvalError(f"{name}() arg is an empty sequence")
    try:
        return pick(items)
    except TypeError as exc:
        raise ValueTypeError(str(exc)) from exc


def _builtin_max(args: list[Any], ctx: CallContext) -> Any:
    return _extremum("max", args, max)


def _builtin_min(args: list[Any], ctx: CallContext) -> Any:
    return _extremum("min", args, min)


def _builtin_sum(args: list[Any], ctx: CallContext) -> Any:
    _arity("sum", args, 1, 2)
    total = args[1] if len(args) == 2 else 0
    if isinstance(total, str):
        raise ValueTypeError("sum() can't sum strings [use ''.join(seq) instead]")
    for item in _iterable_items("sum", args[0]):
        if isinstance(item, Function) or isinstance(total, Function):
            raise ValueTypeError(
                f"unsupported operand type(s) for +: '{type_name(total)}' and '{type_name(item)}'"
            )
        try:
            total = total + item
        except TypeError as exc:
            raise ValueTypeError(
                f"unsupported operand type(s) for +: '{type_name(total)}' and '{type_name(item)}'"
            ) from exc
    return total


def _builtin_sorted(args: list[Any], ctx: CallContext) -> Any:
    _arity("sorted", args, 1, 1)
    items = _iterable_items("sorted", args[0])
    try:
        return sorted(items)
    except TypeError as exc:
        raise ValueTypeError(str(exc)) from exc


def _builtin_round(args: list[Any], ctx: CallContext) -> Any:
    _arity("round", args, 1, 2)
    val = args[0]
    if not isinstance(val, (int, float)):
        raise ValueTypeError(
            f"type {type_name(val)} doesn't define __round__ method"
        )
    if len(args) == 1 or args[1] is None:
        try:
            return round(val)
        except (ValueError, OverflowError) as exc:
            raise EvalError(str(exc)) from exc
    return round(val, _require_int("round", args[1]))


class Builtins:
    """Table of built-in function implementations."""

    TABLE: dict[str, Any] = {
        "print": _builtin_print,
        "range": _builtin_range,
        "len": _builtin_len,
        "int": _builtin_int,
        "float": _builtin_float,
        "str": _builtin_str,
        "bool": _builtin_bool,
        "abs": _builtin_abs,
        "max": _builtin_max,
        "min": _builtin_min,
        "sum": _builtin_sum,
        "sorted": _builtin_sorted,
        "round": _builtin_round,
    }

    @classmethod
    def is_builtin(cls, name: str) -> bool:
        return name in cls.TABLE
