"""Block Expander — walks logical lines, expanding loops and capturing functions."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from . import constants
from .assembler import TraceAssembler
from .errors import LimitExceededError
from .run_types import TraceConfig
from .segmenter import LogicalLine, is_blank_or_comment, join_continuation, strip_comment
from .statements import (
    DEF_RE,
    FOR_RE,
    ExecutionState,
    StatementInterpreter,
    StatementResult,
    StepEvent,
)
from .trace_types import ActionKind
from .values import Value

logger = logging.getLogger(__name__)


@dataclass
class BlockOutcome:
    state: ExecutionState
    returned: bool = False
    return_value: Value = None


def body_end(lines: list[LogicalLine], header_end: int, indent: int) -> int:
    """Index one past the last body line of the header ending at *header_end*.

    The body is every following line indented deeper than the header;
    blank and comment lines never end it.
    """
    end = header_end + 1
    j = header_end + 1
    while j < len(lines):
        if is_blank_or_comment(lines[j]):
            j += 1
            continue
        if lines[j].indent <= indent:
            break
        j += 1
        end = j
    return end


def _keyword(text: str) -> str:
    parts = text.split(None, 1)
    return parts[0].rstrip(constants.HEADER_SUFFIX) if parts else ""


class BlockExpander:
    """Runs a sequence of logical lines, threading one ExecutionState.

    ``state`` is updated in place after every statement, so a caller that
    catches an exception still sees the output written before the failure.
    With ``in_function`` set, a failing statement raises instead of being
    turned into an ``error`` step.
    """

    def __init__(
        self,
        interpreter: StatementInterpreter,
        assembler: TraceAssembler,
        config: TraceConfig = TraceConfig(),
    ):
        self._interp = interpreter
        self._assembler = assembler
        self._config = config

    def run(
        self,
        lines: list[LogicalLine],
        state: ExecutionState,
        recording: bool = True,
        in_function: bool = False,
    ) -> BlockOutcome:
        i = 0
        while i < len(lines):
            if is_blank_or_comment(lines[i]):
                i += 1
                continue
            line, end = join_continuation(lines, i)
            self._assembler.count_statement()
            text = strip_comment(line.trimmed)

            if not text.endswith(constants.HEADER_SUFFIX):
                result = self._interp.execute(line, state, in_function)
                self._apply(line, result, state, recording, in_function)
                if result.returned:
                    return BlockOutcome(state, True, result.return_value)
                i = end + 1
                continue

            stop = body_end(lines, end, line.indent)
            body = lines[end + 1 : stop]
            keyword = _keyword(text)

            if FOR_RE.match(text):
                outcome = self._run_for(line, body, state, recording, in_function)
                if outcome is not None:
                    return outcome
                i = stop
            elif DEF_RE.match(text):
                result = self._interp.execute_define(line, tuple(body), state)
                self._apply(line, result, state, recording, in_function)
                i = stop
            elif self._config.structured_control_flow and keyword == constants.KEYWORD_IF:
                i, outcome = self._run_if_chain(lines, i, state, recording, in_function)
                if outcome is not None:
                    return outcome
            elif self._config.structured_control_flow and keyword == constants.KEYWORD_WHILE:
                outcome = self._run_while(line, body, state, recording, in_function)
                if outcome is not None:
                    return outcome
                i = stop
            elif self._config.structured_control_flow and keyword in (
                constants.KEYWORD_ELIF,
                constants.KEYWORD_ELSE,
            ):
                logger.debug("Skipping orphan %s clause on line %d", keyword, line.original_index + 1)
                i = stop
            else:
                # Guard recorded once; the body follows in sequence.
                result = self._interp.execute(line, state, in_function)
                self._apply(line, result, state, recording, in_function)
                i = end + 1
        return BlockOutcome(state)

    # ── bookkeeping ──────────────────────────────────────────────

    def _emit(self, line: LogicalLine, event: StepEvent, recording: bool) -> None:
        if recording:
            self._assembler.record(line.original_index, event)

    def _apply(
        self,
        line: LogicalLine,
        result: StatementResult,
        state: ExecutionState,
        recording: bool,
        in_function: bool,
    ) -> bool:
        """Record *result*, commit its state, and report whether it failed."""
        for event in result.steps:
            self._emit(line, event, recording)
        state.env = result.state.env
        state.output = result.state.output
        if result.error is not None and in_function:
            raise result.error
        return result.error is not None

    def _fail(
        self,
        line: LogicalLine,
        exc: LimitExceededError,
        state: ExecutionState,
        recording: bool,
        in_function: bool,
    ) -> None:
        if in_function:
            raise exc
        event = StepEvent(ActionKind.ERROR, {"error": str(exc)}, state.env, state.output)
        self._emit(line, event, recording)

    # ── for ──────────────────────────────────────────────────────

    def _run_for(
        self,
        line: LogicalLine,
        body: list[LogicalLine],
        state: ExecutionState,
        recording: bool,
        in_function: bool,
    ) -> BlockOutcome | None:
        result = self._interp.start_for(line, tuple(body), state)
        if self._apply(line, result, state, recording, in_function):
            return None
        var = result.steps[0].details["iter_var"]
        elements = result.iteration_values
        logger.debug("Unrolling loop over %s: %d iteration(s)", var, len(elements))
        for index, element in enumerate(elements):
            self._assembler.count_iteration()
            state.env[var] = element
            details = {
                "iter_var": var,
                "current_value": element,
                "iteration_index": index,
                "total_iterations": len(elements),
            }
            self._emit(
                line,
                StepEvent(ActionKind.FOR_LOOP_ITERATION, details, state.env, state.output),
                recording,
            )
            outcome = self.run(body, state, recording, in_function)
            if outcome.returned:
                return outcome
        self._emit(
            line,
            StepEvent(ActionKind.FOR_LOOP_END, {"iter_var": var}, state.env, state.output),
            recording,
        )
        return None

    # ── structured if / while ────────────────────────────────────

    def _run_if_chain(
        self,
        lines: list[LogicalLine],
        start: int,
        state: ExecutionState,
        recording: bool,
        in_function: bool,
    ) -> tuple[int, BlockOutcome | None]:
        """Run an ``if``/``elif``/``else`` chain; only the first true branch executes."""
        i = start
        chain_indent = lines[start].indent
        taken = False
        failed = False
        while True:
            line, end = join_continuation(lines, i)
            keyword = _keyword(strip_comment(line.trimmed))
            stop = body_end(lines, end, line.indent)
            body = lines[end + 1 : stop]

            run_body = False
            if keyword == constants.KEYWORD_ELSE:
                run_body = not taken and not failed
            elif not taken and not failed:
                result = self._interp.execute_guard(line, state)
                failed = self._apply(line, result, state, recording, in_function)
                run_body = not failed and bool(result.return_value)
            if run_body:
                taken = True
                outcome = self.run(body, state, recording, in_function)
                if outcome.returned:
                    return stop, outcome

            i = stop
            while i < len(lines) and is_blank_or_comment(lines[i]):
                i += 1
            if i >= len(lines) or lines[i].indent != chain_indent:
                return stop, None
            next_keyword = _keyword(strip_comment(lines[i].trimmed))
            if next_keyword not in (constants.KEYWORD_ELIF, constants.KEYWORD_ELSE):
                return stop, None
            if keyword == constants.KEYWORD_ELSE:
                return stop, None
            self._assembler.count_statement()

    def _run_while(
        self,
        line: LogicalLine,
        body: list[LogicalLine],
        state: ExecutionState,
        recording: bool,
        in_function: bool,
    ) -> BlockOutcome | None:
        iteration = 0
        while True:
            result = self._interp.execute_guard(line, state, {"iteration": iteration})
            if self._apply(line, result, state, recording, in_function):
                return None
            if not result.return_value:
                return None
            if iteration >= self._config.max_iterations:
                self._fail(
                    line,
                    LimitExceededError(
                        f"while loop exceeded the iteration limit of {self._config.max_iterations}"
                    ),
                    state,
                    recording,
                    in_function,
                )
                return None
            self._assembler.count_iteration()
            outcome = self.run(body, state, recording, in_function)
            if outcome.returned:
                return outcome
            iteration += 1
            self._assembler.count_statement()
