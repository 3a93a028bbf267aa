"""Trace data types for step-by-step execution replay."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

from .run_types import TraceStats
from .segmenter import LogicalLine
from .values import serialize_value


class ActionKind(str, Enum):
    """What a step records."""

    ASSIGN = "assign"
    REASSIGN = "reassign"
    AUGMENTED_ASSIGN = "augmented_assign"
    LIST_OPERATION = "list_operation"
    DICT_OPERATION = "dict_operation"
    PRINT = "print"
    FUNCTION_DEFINITION = "function_definition"
    FUNCTION_CALL = "function_call"
    FOR_LOOP_START = "for_loop_start"
    FOR_LOOP_ITERATION = "for_loop_iteration"
    FOR_LOOP_END = "for_loop_end"
    IF_STATEMENT = "if_statement"
    WHILE_LOOP_START = "while_loop_start"
    EXECUTE = "execute"
    ERROR = "error"


@dataclass(frozen=True)
class Step:
    """A single step in the execution trace.

    ``variables`` and ``output`` are deep-copied snapshots taken when the
    step was recorded; nothing executed later can change them.
    """

    index: int
    line: int
    action: ActionKind
    variables: dict[str, Any] = field(default_factory=dict)
    output: list[str] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.details.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "line": self.line,
            "action": self.action.value,
            "variables": serialize_value(self.variables),
            "output": list(self.output),
            **{k: serialize_value(v) for k, v in self.details.items()},
        }


@dataclass(frozen=True)
class Trace:
    """Complete, immutable trace of one program.

    Contains the logical lines the program was segmented into and one
    Step per recorded event, in execution order.
    """

    steps: tuple[Step, ...] = ()
    lines: tuple[LogicalLine, ...] = ()
    stats: TraceStats = field(default_factory=TraceStats)
    truncated: bool = False

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    def step_at(self, i: int) -> Step:
        if not 0 <= i < len(self.steps):
            raise IndexError(f"step index {i} out of range (0..{len(self.steps) - 1})")
        return self.steps[i]

    @property
    def final_variables(self) -> dict[str, Any]:
        return self.steps[-1].variables if self.steps else {}

    @property
    def final_output(self) -> list[str]:
        return self.steps[-1].output if self.steps else []

    def to_dict(self) -> dict[str, Any]:
        return {
            "lines": [line.text for line in self.lines],
            "steps": [s.to_dict() for s in self.steps],
            "stats": {
                "steps": self.stats.steps,
                "errors": self.stats.errors,
                "function_calls": self.stats.function_calls,
                "loop_iterations": self.stats.loop_iterations,
                "statements": self.stats.statements,
            },
            "truncated": self.truncated,
        }
