"""Runtime value variants, representation, and snapshot helpers."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Union

from .errors import ValueTypeError
from .segmenter import LogicalLine

# ── Data types ───────────────────────────────────────────────────


@dataclass(frozen=True)
class Function:
    """A user-defined function captured by a ``def`` header.

    ``closure`` is a by-value snapshot of the defining environment, held
    as a read-only mapping over a private copy.  The function is shared,
    not copied, by environment snapshots; each invocation deep-copies the
    closure into a fresh scope.
    """

    name: str
    params: tuple[str, ...] = ()
    body: tuple[LogicalLine, ...] = ()
    closure: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "closure", MappingProxyType(dict(self.closure)))

    def __deepcopy__(self, memo) -> Function:
        return self

    def signature(self) -> str:
        return f"def {self.name}({', '.join(self.params)})"

    def to_dict(self) -> dict:
        return {
            "__function__": True,
            "name": self.name,
            "params": list(self.params),
            "body_lines": [line.original_index for line in self.body],
        }


Value = Union[None, bool, int, float, str, list, dict, Function]
Environment = dict[str, Value]

_HASHABLE_KEY_TYPES = (str, int, float, bool, type(None))


def type_name(value: Any) -> str:
    """Return the Python type name of a Value; reject anything outside the set."""
    if value is None:
        return "NoneType"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "str"
    if isinstance(value, list):
        return "list"
    if isinstance(value, dict):
        return "dict"
    if isinstance(value, Function):
        return "function"
    raise ValueTypeError(f"unsupported value of type '{type(value).__name__}'")


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float))


def check_key(key: Any) -> Any:
    """Validate a dict key: only primitive values are hashable here."""
    if not isinstance(key, _HASHABLE_KEY_TYPES):
        raise ValueTypeError(f"unhashable type: '{type_name(key)}'")
    return key


def is_truthy(value: Any) -> bool:
    if isinstance(value, Function):
        return True
    return bool(value)


def py_repr(value: Any) -> str:
    """Render *value* the way Python's ``repr`` does."""
    return _repr(value, set())


def _repr(value: Any, active: set[int]) -> str:
    if value is None or isinstance(value, (bool, int, float, str)):
        return repr(value)
    if isinstance(value, Function):
        return f"<function {value.name}>"
    if isinstance(value, list):
        if id(value) in active:
            return "[...]"
        active.add(id(value))
        try:
            return "[" + ", ".join(_repr(v, active) for v in value) + "]"
        finally:
            active.discard(id(value))
    if isinstance(value, dict):
        if id(value) in active:
            return "{...}"
        active.add(id(value))
        try:
            items = (f"{_repr(k, active)}: {_repr(v, active)}" for k, v in value.items())
            return "{" + ", ".join(items) + "}"
        finally:
            active.discard(id(value))
    raise ValueTypeError(f"unsupported value of type '{type(value).__name__}'")


def py_str(value: Any) -> str:
    """Render *value* the way Python's ``str`` does."""
    if isinstance(value, str):
        return value
    return py_repr(value)


def snapshot(value: Any) -> Any:
    """Deep, self-contained copy of an environment, output list, or value."""
    return copy.deepcopy(value)


def serialize_value(value: Any) -> Any:
    """Convert a Value into JSON-compatible data.

    A container that contains itself is written as ``"[...]"`` or
    ``"{...}"`` at the point of recursion, as ``repr`` does.
    """
    return _serialize(value, set())


def _serialize(value: Any, active: set[int]) -> Any:
    if isinstance(value, Function):
        return value.to_dict()
    if isinstance(value, (list, dict)):
        if id(value) in active:
            return "[...]" if isinstance(value, list) else "{...}"
        active.add(id(value))
        try:
            if isinstance(value, list):
                return [_serialize(v, active) for v in value]
            return {py_str(k): _serialize(v, active) for k, v in value.items()}
        finally:
            active.discard(id(value))
    return value
