"""Trace-building configuration and statistics (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass

from .constants import (
    DEFAULT_MAX_CALL_DEPTH,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_MAX_STATEMENTS,
    DEFAULT_MAX_STEPS,
)


@dataclass(frozen=True)
class TraceConfig:
    """Groups trace-building limits and feature switches."""

    max_steps: int = DEFAULT_MAX_STEPS
    max_statements: int = DEFAULT_MAX_STATEMENTS
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH
    structured_control_flow: bool = False


@dataclass
class TraceStats:
    """Counters gathered while a trace is built."""

    steps: int = 0
    errors: int = 0
    function_calls: int = 0
    loop_iterations: int = 0
    statements: int = 0

    def report(self) -> str:
        return (
            f"{self.steps} steps, {self.errors} errors, "
            f"{self.function_calls} function calls, "
            f"{self.loop_iterations} loop iterations, "
            f"{self.statements} statements"
        )
