"""Trace Assembler — numbers steps, snapshots state, enforces budgets."""

from __future__ import annotations

import logging
from typing import Any

from .errors import BudgetExhausted
from .run_types import TraceConfig, TraceStats
from .segmenter import LogicalLine
from .statements import StepEvent
from .trace_types import ActionKind, Step, Trace
from .values import snapshot

logger = logging.getLogger(__name__)


class TraceAssembler:
    """Accumulates Steps for one build.

    Each recorded step gets a deep copy of the environment, the output and
    the details it was given, so nothing executed afterwards can reach it.
    """

    def __init__(self, config: TraceConfig = TraceConfig()):
        self._config = config
        self._steps: list[Step] = []
        self.stats = TraceStats()

    @property
    def steps(self) -> list[Step]:
        return self._steps

    def record(self, line: int, event: StepEvent) -> Step:
        if len(self._steps) >= self._config.max_steps:
            raise BudgetExhausted("step", self._config.max_steps)
        step = self._append(line, event.action, event.env, event.output, event.details)
        logger.debug("[step %d] line %d %s", step.index, line + 1, step.action.value)
        return step

    def count_statement(self) -> None:
        self.stats.statements += 1
        if self.stats.statements > self._config.max_statements:
            raise BudgetExhausted("statement", self._config.max_statements)

    def count_iteration(self) -> None:
        self.stats.loop_iterations += 1

    def count_call(self) -> None:
        self.stats.function_calls += 1

    def truncate(self, reason: BudgetExhausted) -> None:
        """Append the closing ``error`` step of a truncated trace."""
        last = self._steps[-1] if self._steps else None
        line = last.line if last else 0
        env = last.variables if last else {}
        output = last.output if last else []
        self._append(line, ActionKind.ERROR, env, output, {"error": str(reason)})
        logger.info("Trace truncated after %d steps: %s", len(self._steps), reason)

    def build(self, lines: list[LogicalLine], truncated: bool = False) -> Trace:
        self.stats.steps = len(self._steps)
        return Trace(
            steps=tuple(self._steps),
            lines=tuple(lines),
            stats=self.stats,
            truncated=truncated,
        )

    def _append(
        self,
        line: int,
        action: ActionKind,
        env: dict[str, Any],
        output: list[str],
        details: dict[str, Any],
    ) -> Step:
        if action == ActionKind.ERROR:
            self.stats.errors += 1
        step = Step(
            index=len(self._steps),
            line=line,
            action=action,
            variables=snapshot(env),
            output=list(output),
            details=snapshot(details),
        )
        self._steps.append(step)
        return step
