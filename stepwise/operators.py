"""Operator evaluation over the closed Value set."""

from __future__ import annotations

import logging
from typing import Any

from .constants import MAX_INT_EXPONENT, MAX_SEQUENCE_LENGTH
from .errors import EvalError, LimitExceededError, ValueTypeError
from .values import Function, is_truthy, type_name

logger = logging.getLogger(__name__)


def _power(a: Any, b: Any) -> Any:
    if (
        isinstance(a, int)
        and isinstance(b, int)
        and abs(b) > MAX_INT_EXPONENT
        and a not in (0, 1, -1)
    ):
        raise LimitExceededError(f"exponent {b} is too large")
    return a**b


def _repeat(a: Any, b: Any) -> Any:
    seq, count = (a, b) if isinstance(a, (str, list)) else (b, a)
    if (
        isinstance(seq, (str, list))
        and isinstance(count, int)
        and len(seq) * count > MAX_SEQUENCE_LENGTH
    ):
        raise LimitExceededError(
            f"repetition would create a sequence longer than {MAX_SEQUENCE_LENGTH}"
        )
    return a * b


def _shift_left(a: Any, b: Any) -> Any:
    if isinstance(b, int) and b > MAX_INT_EXPONENT:
        raise LimitExceededError(f"shift count {b} is too large")
    return a << b


def _contains(a: Any, b: Any) -> bool:
    if not isinstance(b, (str, list, dict)):
        raise ValueTypeError(f"argument of type '{type_name(b)}' is not iterable")
    return a in b


def _identical(a: Any, b: Any) -> bool:
    if isinstance(a, (list, dict, Function)) or isinstance(b, (list, dict, Function)):
        return a is b
    return type(a) is type(b) and a == b


class Operators:
    """Binary, unary and comparison operators with Python semantics.

    Failures surface as ``EvalError`` subclasses carrying Python's own
    wording, except that every division by zero reads ``division by zero``.
    """

    BINOP_TABLE: dict[str, Any] = {
        "+": lambda a, b: a + b,
        "-": lambda a, b: a - b,
        "*": _repeat,
        "/": lambda a, b: a / b,
        "//": lambda a, b: a // b,
        "%": lambda a, b: a % b,
        "**": _power,
        "&": lambda a, b: a & b,
        "|": lambda a, b: a | b,
        "^": lambda a, b: a ^ b,
        "<<": _shift_left,
        ">>": lambda a, b: a >> b,
    }

    COMPARE_TABLE: dict[str, Any] = {
        "==": lambda a, b: a == b,
        "!=": lambda a, b: a != b,
        "<": lambda a, b: a < b,
        ">": lambda a, b: a > b,
        "<=": lambda a, b: a <= b,
        ">=": lambda a, b: a >= b,
        "in": _contains,
        "not in": lambda a, b: not _contains(a, b),
        "is": _identical,
        "is not": lambda a, b: not _identical(a, b),
    }

    UNOP_TABLE: dict[str, Any] = {
        "-": lambda a: -a,
        "+": lambda a: +a,
        "~": lambda a: ~a,
    }

    @classmethod
    def eval_binop(cls, op: str, lhs: Any, rhs: Any) -> Any:
        fn = cls.BINOP_TABLE.get(op)
        if fn is None:
            raise EvalError(f"unsupported operator '{op}'")
        if isinstance(lhs, Function) or isinstance(rhs, Function):
            raise _operand_error(op, lhs, rhs)
        return _apply(fn, (lhs, rhs), lambda: _operand_error(op, lhs, rhs))

    @classmethod
    def eval_compare(cls, op: str, lhs: Any, rhs: Any) -> bool:
        fn = cls.COMPARE_TABLE.get(op)
        if fn is None:
            raise EvalError(f"unsupported comparison '{op}'")
        return _apply(
            fn,
            (lhs, rhs),
            lambda: ValueTypeError(
                f"'{op}' not supported between instances of "
                f"'{type_name(lhs)}' and '{type_name(rhs)}'"
            ),
        )

    @classmethod
    def eval_unop(cls, op: str, operand: Any) -> Any:
        if op == "not":
            return not is_truthy(operand)
        fn = cls.UNOP_TABLE.get(op)
        if fn is None:
            raise EvalError(f"unsupported operator '{op}'")
        if isinstance(operand, Function):
            raise ValueTypeError(f"bad operand type for unary {op}: 'function'")
        return _apply(
            fn,
            (operand,),
            lambda: ValueTypeError(f"bad operand type for unary {op}: '{type_name(operand)}'"),
        )


def _operand_error(op: str, lhs: Any, rhs: Any) -> ValueTypeError:
    if op == "+" and isinstance(lhs, str):
        return ValueTypeError(
            f'can only concatenate str (not "{type_name(rhs)}") to str'
        )
    return ValueTypeError(
        f"unsupported operand type(s) for {op}: "
        f"'{type_name(lhs)}' and '{type_name(rhs)}'"
    )


def _apply(fn, args: tuple, type_error) -> Any:
    try:
        return fn(*args)
    except ZeroDivisionError as exc:
        raise EvalError("division by zero") from exc
    except TypeError as exc:
        logger.debug("Operator type error: %s", exc)
        raise type_error() from exc
    except (OverflowError, ValueError) as exc:
        raise EvalError(str(exc)) from exc
