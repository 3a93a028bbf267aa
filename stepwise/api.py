"""Composable API functions for building and inspecting execution traces.

Each function corresponds to a CLI workflow (listing, --json, --step) but is
callable programmatically without argparse.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional

from .assembler import TraceAssembler
from .blocks import BlockExpander
from .errors import BudgetExhausted, ParseError
from .evaluator import Evaluator
from .invoker import FunctionInvoker
from .run_types import TraceConfig
from .segmenter import LogicalLine, expand_inline_bodies, segment
from .statements import ExecutionState, StatementInterpreter
from .trace_types import ActionKind, Step, Trace
from .values import Environment, Value, py_repr, snapshot

logger = logging.getLogger(__name__)


def _wire(config: TraceConfig, assembler: TraceAssembler) -> tuple[Evaluator, BlockExpander]:
    """Connect evaluator, interpreter, expander and invoker for one build."""
    evaluator = Evaluator(max_iterations=config.max_iterations)
    interpreter = StatementInterpreter(evaluator)
    expander = BlockExpander(interpreter, assembler, config)
    invoker = FunctionInvoker(assembler, config)
    invoker.bind(expander)
    evaluator.bind_invoker(invoker.invoke)
    return evaluator, expander


def segment_source(source: str) -> list[LogicalLine]:
    """Split source text into logical lines.

    Args:
        source: The program text.

    Returns:
        One LogicalLine per raw line, in order.
    """
    return segment(source)


def build_trace(source: str, config: TraceConfig = TraceConfig()) -> Trace:
    """Execute *source* statement by statement and record every step.

    Runtime failures on a line become ``error`` steps and execution
    continues; exhausting ``max_steps`` or ``max_statements`` ends the
    trace early with a final ``error`` step and ``truncated=True``.

    Args:
        source: The program text.
        config: Limits and feature switches for the build.

    Returns:
        An immutable Trace.

    Raises:
        ParseError: If *source* is not a string or the program nests too
            deeply to be traced.
    """
    if not isinstance(source, str):
        raise ParseError(f"source must be a string, not {type(source).__name__}")

    lines = segment(source)
    logger.info("Building trace for %d lines", len(lines))
    assembler = TraceAssembler(config)
    _, expander = _wire(config, assembler)

    truncated = False
    try:
        expander.run(expand_inline_bodies(lines), ExecutionState())
    except BudgetExhausted as exc:
        assembler.truncate(exc)
        truncated = True
    except RecursionError as exc:
        raise ParseError("program nests too deeply to trace") from exc

    trace = assembler.build(lines, truncated)
    logger.info("Trace built: %s", trace.stats.report())
    return trace


def evaluate_expression(
    expr: str,
    env: Optional[Environment] = None,
    config: TraceConfig = TraceConfig(),
) -> Value:
    """Evaluate a single expression against an environment.

    Functions bound in *env* can be called.  *env* itself is not modified.

    Args:
        expr: Expression text, e.g. ``"x ** 2 + 1"``.
        env: Variable bindings; empty when omitted.
        config: Limits applied while evaluating.

    Returns:
        The resulting Value.
    """
    evaluator, _ = _wire(config, TraceAssembler(config))
    working = snapshot(dict(env or {}))
    return evaluator.evaluate(expr, working, [])


_DESCRIBE: dict[ActionKind, Callable[[Step], str]] = {
    ActionKind.ASSIGN: lambda s: f"{s.get('variable')} = {py_repr(s.get('value'))}",
    ActionKind.REASSIGN: lambda s: (
        f"{s.get('variable')} = {py_repr(s.get('value'))}"
        f" (was {py_repr(s.get('old_value'))})"
    ),
    ActionKind.AUGMENTED_ASSIGN: lambda s: (
        f"{s.get('variable')} {s.get('operator')} {py_repr(s.get('right_value'))}"
        f" → {py_repr(s.get('value'))}"
    ),
    ActionKind.LIST_OPERATION: lambda s: s.get("operation_result"),
    ActionKind.DICT_OPERATION: lambda s: s.get("operation_result"),
    ActionKind.PRINT: lambda s: s.get("output_text"),
    ActionKind.FUNCTION_DEFINITION: lambda s: (
        f"def {s.get('function_name')}({', '.join(s.get('params'))})"
    ),
    ActionKind.FUNCTION_CALL: lambda s: (
        f"{s.get('function_name')}({', '.join(py_repr(a) for a in s.get('args'))})"
        f" → {py_repr(s.get('return_value'))}"
    ),
    ActionKind.FOR_LOOP_START: lambda s: f"for {s.get('iter_var')} in {s.get('iterable')}",
    ActionKind.FOR_LOOP_ITERATION: lambda s: (
        f"{s.get('iter_var')} = {py_repr(s.get('current_value'))}"
        f" ({s.get('iteration_index') + 1}/{s.get('total_iterations')})"
    ),
    ActionKind.FOR_LOOP_END: lambda s: f"end for {s.get('iter_var')}",
    ActionKind.IF_STATEMENT: lambda s: f"{s.get('condition')} → {s.get('condition_result')}",
    ActionKind.WHILE_LOOP_START: lambda s: f"{s.get('condition')} → {s.get('condition_result')}",
    ActionKind.EXECUTE: lambda s: s.get("code"),
    ActionKind.ERROR: lambda s: s.get("error"),
}


def describe_step(step: Step) -> str:
    """One-line human-readable summary of *step*."""
    return str(_DESCRIBE[step.action](step))


def dump_trace(trace: Trace, show_variables: bool = False) -> str:
    """Render a trace as a human-readable listing.

    Args:
        trace: The trace to render.
        show_variables: Append the variable snapshot under each step.

    Returns:
        A multi-line string with one step per line and a statistics footer.
    """
    rows: list[str] = []
    for step in trace:
        rows.append(
            f"[{step.index:>4}] line {step.line + 1:<4} "
            f"{step.action.value:<19} {describe_step(step)}"
        )
        if show_variables:
            bindings = ", ".join(f"{k}={py_repr(v)}" for k, v in step.variables.items())
            rows.append(f"{'':>7}vars: {{{bindings}}}")
    rows.append(f"── {trace.stats.report()}{' (truncated)' if trace.truncated else ''}")
    return "\n".join(rows)


def trace_to_json(trace: Trace, indent: Optional[int] = 2) -> str:
    """Serialize a trace to JSON text.

    Args:
        trace: The trace to serialize.
        indent: JSON indentation; ``None`` for compact output.

    Returns:
        The JSON document produced from ``trace.to_dict()``.
    """
    payload: dict[str, Any] = trace.to_dict()
    return json.dumps(payload, indent=indent, ensure_ascii=False)
