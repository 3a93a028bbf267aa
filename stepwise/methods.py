"""Methods on List, Dict and String values.

Every implementation takes ``(receiver, args, label)`` and returns a
``MethodOutcome``; ``label`` names the receiver in the human-readable
summary (the variable name when called as a statement).  List and dict
methods mutate the receiver in place, exactly like their Python
counterparts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .errors import EvalError, KeyLookupError, ValueTypeError
from .values import Function, check_key, py_repr, type_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MethodOutcome:
    """Return value of a method call plus a one-line description of its effect."""

    result: Any
    summary: str


def _arity(name: str, args: list[Any], low: int, high: int) -> None:
    if low <= len(args) <= high:
        return
    if low == high:
        raise EvalError(f"{name}() takes exactly {low} argument{'s' * (low != 1)} ({len(args)} given)")
    if len(args) < low:
        raise EvalError(f"{name}() expected at least {low} argument{'s' * (low != 1)}, got {len(args)}")
    raise EvalError(f"{name}() expected at most {high} argument{'s' * (high != 1)}, got {len(args)}")


def _index_arg(value: Any) -> int:
    if not isinstance(value, int):
        raise ValueTypeError(
            f"'{type_name(value)}' object cannot be interpreted as an integer"
        )
    return value


def _as_items(value: Any) -> list[Any]:
    if isinstance(value, (list, str)):
        return list(value)
    if isinstance(value, dict):
        return list(value.keys())
    raise ValueTypeError(f"'{type_name(value)}' object is not iterable")


# ── list ─────────────────────────────────────────────────────────


def _list_append(lst: list, args: list[Any], label: str) -> MethodOutcome:
    _arity("append", args, 1, 1)
    lst.append(args[0])
    return MethodOutcome(None, f"Appended {py_repr(args[0])} to {label}")


def _list_extend(lst: list, args: list[Any], label: str) -> MethodOutcome:
    _arity("extend", args, 1, 1)
    lst.extend(_as_items(args[0]))
    return MethodOutcome(None, f"Extended {label} with {py_repr(args[0])}")


def _list_remove(lst: list, args: list[Any], label: str) -> MethodOutcome:
    _arity("remove", args, 1, 1)
    if args[0] not in lst:
        raise EvalError("list.remove(x): x not in list")
    lst.remove(args[0])
    return MethodOutcome(None, f"Removed first occurrence of {py_repr(args[0])} from {label}")


def _list_pop(lst: list, args: list[Any], label: str) -> MethodOutcome:
    _arity("pop", args, 0, 1)
    if not lst:
        raise EvalError("pop from empty list")
    if not args:
        popped = lst.pop()
        return MethodOutcome(popped, f"Popped last element ({py_repr(popped)}) from {label}")
    index = _index_arg(args[0])
    if not -len(lst) <= index < len(lst):
        raise EvalError("pop index out of range")
    popped = lst.pop(index)
    return MethodOutcome(
        popped, f"Popped element at index {index} ({py_repr(popped)}) from {label}"
    )


def _list_insert(lst: list, args: list[Any], label: str) -> MethodOutcome:
    _arity("insert", args, 2, 2)
    index = _index_arg(args[0])
    lst.insert(index, args[1])
    return MethodOutcome(None, f"Inserted {py_repr(args[1])} at index {index} in {label}")


def _list_clear(lst: list, args: list[Any], label: str) -> MethodOutcome:
    _arity("clear", args, 0, 0)
    lst.clear()
    return MethodOutcome(None, f"Cleared {label}")


def _list_sort(lst: list, args: list[Any], label: str) -> MethodOutcome:
    _arity("sort", args, 0, 0)
    if any(isinstance(v, Function) for v in lst):
        raise ValueTypeError("'<' not supported between instances of 'function'")
    try:
        lst.sort()
    except TypeError as exc:
        raise ValueTypeError(str(exc)) from exc
    return MethodOutcome(None, f"Sorted {label}")


def _list_reverse(lst: list, args: list[Any], label: str) -> MethodOutcome:
    _arity("reverse", args, 0, 0)
    lst.reverse()
    return MethodOutcome(None, f"Reversed {label}")


def _list_index(lst: list, args: list[Any], label: str) -> MethodOutcome:
    _arity("index", args, 1, 1)
    if args[0] not in lst:
        raise EvalError(f"{py_repr(args[0])} is not in list")
    index = lst.index(args[0])
    return MethodOutcome(index, f"Found {py_repr(args[0])} at index {index} in {label}")


def _list_count(lst: list, args: list[Any], label: str) -> MethodOutcome:
    _arity("count", args, 1, 1)
    n = lst.count(args[0])
    return MethodOutcome(n, f"Counted {n} occurrence(s) of {py_repr(args[0])} in {label}")


# ── dict ─────────────────────────────────────────────────────────


def _dict_get(d: dict, args: list[Any], label: str) -> MethodOutcome:
    _arity("get", args, 1, 2)
    key = check_key(args[0])
    default = args[1] if len(args) == 2 else None
    value = d.get(key, default)
    return MethodOutcome(value, f"Got {py_repr(value)} for key {py_repr(key)} from {label}")


def _dict_keys(d: dict, args: list[Any], label: str) -> MethodOutcome:
    _arity("keys", args, 0, 0)
    return MethodOutcome(list(d.keys()), f"Listed {len(d)} key(s) of {label}")


def _dict_values(d: dict, args: list[Any], label: str) -> MethodOutcome:
    _arity("values", args, 0, 0)
    return MethodOutcome(list(d.values()), f"Listed {len(d)} value(s) of {label}")


def _dict_items(d: dict, args: list[Any], label: str) -> MethodOutcome:
    _arity("items", args, 0, 0)
    return MethodOutcome([[k, v] for k, v in d.items()], f"Listed {len(d)} item(s) of {label}")


def _dict_update(d: dict, args: list[Any], label: str) -> MethodOutcome:
    _arity("update", args, 1, 1)
    other = args[0]
    if isinstance(other, dict):
        pairs = list(other.items())
    elif isinstance(other, list) and all(isinstance(p, list) and len(p) == 2 for p in other):
        pairs = [(check_key(p[0]), p[1]) for p in other]
    else:
        raise ValueTypeError(f"'{type_name(other)}' object is not a mapping")
    d.update(pairs)
    return MethodOutcome(None, f"Updated {label} with {py_repr(other)}")


def _dict_pop(d: dict, args: list[Any], label: str) -> MethodOutcome:
    _arity("pop", args, 1, 2)
    key = check_key(args[0])
    if key in d:
        value = d.pop(key)
        return MethodOutcome(value, f"Popped key {py_repr(key)} ({py_repr(value)}) from {label}")
    if len(args) == 2:
        return MethodOutcome(
            args[1], f"Key {py_repr(key)} not in {label}; returned default {py_repr(args[1])}"
        )
    raise KeyLookupError(f"key {py_repr(key)} not found in {label}")


def _dict_setdefault(d: dict, args: list[Any], label: str) -> MethodOutcome:
    _arity("setdefault", args, 1, 2)
    key = check_key(args[0])
    if key in d:
        return MethodOutcome(d[key], f"Key {py_repr(key)} already in {label}")
    d[key] = args[1] if len(args) == 2 else None
    return MethodOutcome(d[key], f"Set default {py_repr(d[key])} for key {py_repr(key)} in {label}")


def _dict_clear(d: dict, args: list[Any], label: str) -> MethodOutcome:
    _arity("clear", args, 0, 0)
    d.clear()
    return MethodOutcome(None, f"Cleared {label}")


# ── str ──────────────────────────────────────────────────────────

_STR_METHOD_ARITY: dict[str, tuple[int, int]] = {
    "upper": (0, 0),
    "lower": (0, 0),
    "strip": (0, 1),
    "lstrip": (0, 1),
    "rstrip": (0, 1),
    "split": (0, 2),
    "join": (1, 1),
    "replace": (2, 3),
    "startswith": (1, 1),
    "endswith": (1, 1),
    "find": (1, 1),
    "count": (1, 1),
    "title": (0, 0),
    "capitalize": (0, 0),
    "isdigit": (0, 0),
    "isalpha": (0, 0),
}


def _call_str_method(s: str, method: str, args: list[Any], label: str) -> MethodOutcome:
    low, high = _STR_METHOD_ARITY[method]
    _arity(method, args, low, high)
    if method == "join":
        items = _as_items(args[0])
        for i, item in enumerate(items):
            if not isinstance(item, str):
                raise ValueTypeError(
                    f"sequence item {i}: expected str instance, {type_name(item)} found"
                )
        args = [items]
    elif any(isinstance(a, (list, dict, Function)) for a in args):
        bad = next(a for a in args if isinstance(a, (list, dict, Function)))
        raise ValueTypeError(f"must be str, not {type_name(bad)}")
    try:
        result = getattr(s, method)(*args)
    except (TypeError, ValueError) as exc:
        raise ValueTypeError(str(exc)) from exc
    return MethodOutcome(result, f"Called {method}() on {label}")


class Methods:
    """Dispatch tables for container and string methods."""

    LIST_TABLE: dict[str, Any] = {
        "append": _list_append,
        "extend": _list_extend,
        "remove": _list_remove,
        "pop": _list_pop,
        "insert": _list_insert,
        "clear": _list_clear,
        "sort": _list_sort,
        "reverse": _list_reverse,
        "index": _list_index,
        "count": _list_count,
    }

    DICT_TABLE: dict[str, Any] = {
        "get": _dict_get,
        "keys": _dict_keys,
        "values": _dict_values,
        "items": _dict_items,
        "update": _dict_update,
        "pop": _dict_pop,
        "setdefault": _dict_setdefault,
        "clear": _dict_clear,
    }

    STR_METHODS: frozenset[str] = frozenset(_STR_METHOD_ARITY)

    @classmethod
    def call(cls, receiver: Any, method: str, args: list[Any], label: str = "") -> MethodOutcome:
        """Call *method* on *receiver*; unknown methods raise ``ValueTypeError``."""
        label = label or type_name(receiver)
        if isinstance(receiver, list) and method in cls.LIST_TABLE:
            outcome = cls.LIST_TABLE[method](receiver, args, label)
        elif isinstance(receiver, dict) and method in cls.DICT_TABLE:
            outcome = cls.DICT_TABLE[method](receiver, args, label)
        elif isinstance(receiver, str) and method in cls.STR_METHODS:
            outcome = _call_str_method(receiver, method, args, label)
        else:
            raise ValueTypeError(
                f"'{type_name(receiver)}' object has no attribute '{method}'"
            )
        logger.debug("%s.%s → %s", label, method, outcome.summary)
        return outcome
