"""Step-through interpreter and execution-trace builder for a Python subset."""

from .api import (  # noqa: F401
    build_trace,
    dump_trace,
    evaluate_expression,
    segment_source,
    trace_to_json,
)
from .errors import (  # noqa: F401
    EvalError,
    ParseError,
    StepwiseError,
)
from .run_types import TraceConfig, TraceStats  # noqa: F401
from .trace_types import ActionKind, Step, Trace  # noqa: F401
