"""Command-line entry point: trace a script and print the steps."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional

from . import constants
from .api import build_trace, describe_step, dump_trace, trace_to_json
from .run_types import TraceConfig
from .trace_types import Step
from .values import py_repr, serialize_value

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stepwise", description="Step-through tracer for small Python scripts"
    )
    parser.add_argument("file", nargs="?", help="Source file to trace")
    parser.add_argument("--json", action="store_true", help="Print the trace as JSON")
    parser.add_argument(
        "--step", "-s", type=int, default=None, help="Print only step N (0-based)"
    )
    parser.add_argument(
        "--structured",
        action="store_true",
        help="Run if/elif/else and while bodies conditionally",
    )
    parser.add_argument(
        "--max-steps",
        "-n",
        type=int,
        default=constants.DEFAULT_MAX_STEPS,
        help=f"Maximum recorded steps (default: {constants.DEFAULT_MAX_STEPS})",
    )
    parser.add_argument(
        "--vars", action="store_true", help="Show variables under each step"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Log statement-level detail"
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.file:
        # Demo mode: use a built-in example
        source = constants.DEMO_SOURCE
        print("No file provided. Using built-in demo:\n")
        print(source)
    else:
        with open(args.file) as f:
            source = f.read()

    config = TraceConfig(
        max_steps=args.max_steps, structured_control_flow=args.structured
    )
    logger.info("Tracing %s", args.file or "demo source")
    trace = build_trace(source, config)

    if args.step is not None:
        try:
            step = trace.step_at(args.step)
        except IndexError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2
        if args.json:
            print(json.dumps(step.to_dict(), indent=2, ensure_ascii=False))
        else:
            print(dump_trace_step(step))
        return 0

    if args.json:
        print(trace_to_json(trace))
        return 0

    print("═══ Trace ═══")
    print(dump_trace(trace, show_variables=args.vars))
    print("\n═══ Final Variables ═══")
    print(json.dumps(serialize_value(trace.final_variables), indent=2, ensure_ascii=False))
    print("\n═══ Output ═══")
    for text in trace.final_output:
        print(text)
    return 0


def dump_trace_step(step: Step) -> str:
    lines = [
        f"step {step.index} (line {step.line + 1}): {step.action.value}",
        f"  {describe_step(step)}",
        "  variables:",
    ]
    lines.extend(f"    {k} = {py_repr(v)}" for k, v in step.variables.items())
    lines.append("  output:")
    lines.extend(f"    {text}" for text in step.output)
    return "\n".join(lines)


if __name__ == "__main__":
    sys.exit(main())
