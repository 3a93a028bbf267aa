"""Function Invoker — binds arguments and runs a function body."""

from __future__ import annotations

import logging
from typing import Any, Optional

from .assembler import TraceAssembler
from .blocks import BlockExpander
from .errors import EvalError, FunctionCallError, RecursionLimitError, UndefinedNameError
from .run_types import TraceConfig
from .statements import ExecutionState
from .values import Function, Value, snapshot, type_name

logger = logging.getLogger(__name__)


class FunctionInvoker:
    """Calls user functions on behalf of the evaluator.

    The body runs through the block expander without recording steps, in
    a fresh scope built from the function's closure.  Output the body
    writes is appended to the caller's *output*, including when the call
    fails part-way.
    """

    def __init__(self, assembler: TraceAssembler, config: TraceConfig = TraceConfig()):
        self._assembler = assembler
        self._config = config
        self._expander: Optional[BlockExpander] = None
        self._depth = 0

    def bind(self, expander: BlockExpander) -> None:
        self._expander = expander

    def invoke(self, fn: Any, args: list[Value], output: list[str]) -> Value:
        if not isinstance(fn, Function):
            raise UndefinedNameError(
                type_name(fn), f"'{type_name(fn)}' object is not a function"
            )
        if self._expander is None:
            raise EvalError(f"cannot call function '{fn.name}': no block expander bound")
        if self._depth >= self._config.max_call_depth:
            raise RecursionLimitError(
                f"maximum call depth of {self._config.max_call_depth} exceeded "
                f"calling '{fn.name}'"
            )

        scope = snapshot(dict(fn.closure))
        scope.setdefault(fn.name, fn)
        for param, arg in zip(fn.params, args):
            scope[param] = arg
        local = ExecutionState(env=scope, output=[])

        self._assembler.count_call()
        self._depth += 1
        logger.debug("→ %s%s depth=%d", fn.name, tuple(args), self._depth)
        try:
            outcome = self._expander.run(list(fn.body), local, recording=False, in_function=True)
        except RecursionLimitError:
            raise
        except EvalError as exc:
            raise FunctionCallError(fn.name, exc) from exc
        finally:
            self._depth -= 1
            output.extend(local.output)

        result = outcome.return_value if outcome.returned else None
        logger.debug("← %s returned %r", fn.name, result)
        return result
