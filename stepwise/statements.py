"""Statement Interpreter — classifies and executes one logical line."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from . import constants
from .builtins import Builtins, render_print_line
from .errors import EvalError, UndefinedNameError, ValueTypeError
from .evaluator import Evaluator, iterable_elements
from .expr import ExprKind
from .lowering import parse_expression
from .methods import Methods
from .operators import Operators
from .segmenter import LogicalLine, find_matching, split_top_level, strip_comment
from .trace_types import ActionKind
from .values import Environment, Function, Value, check_key, is_truthy, py_repr, py_str, snapshot, type_name

logger = logging.getLogger(__name__)

_NAME = r"[A-Za-z_]\w*"
_AUG_OPS = "|".join(re.escape(op) for op in constants.AUGMENTED_OPERATORS)

ASSIGN_RE = re.compile(rf"^({_NAME})\s*=(?!=)\s*(.+)$")
ITEM_TARGET_RE = re.compile(rf"^({_NAME})\s*\[")
AUGMENTED_RE = re.compile(rf"^({_NAME})\s*({_AUG_OPS})=\s*(.+)$")
METHOD_CALL_RE = re.compile(rf"^({_NAME})\s*\.\s*({_NAME})\s*\(")
PRINT_RE = re.compile(rf"^{constants.PRINT_FUNCTION}\s*\(")
DEF_RE = re.compile(rf"^def\s+({_NAME})\s*\(([^)]*)\)\s*:$")
CALL_RE = re.compile(rf"^({_NAME})\s*\(")
FOR_RE = re.compile(rf"^for\s+({_NAME})\s+in\s+(.+):$")
GUARD_RE = re.compile(r"^(if|elif|while)\s+(.+):$")
RETURN_RE = re.compile(r"^return(?:\b\s*(.*))?$")
COMPREHENSION_RE = re.compile(r"^\[.*\bfor\b.+\bin\b.*\]$")


@dataclass
class ExecutionState:
    """Environment and output threaded from statement to statement."""

    env: Environment = field(default_factory=dict)
    output: list[str] = field(default_factory=list)

    def working_copy(self) -> ExecutionState:
        """New binding table and output list over the same value objects.

        Rebinding a name in the copy leaves this state alone; mutating a
        list or dict reaches every name bound to it, as in Python.
        """
        return ExecutionState(env=dict(self.env), output=list(self.output))


@dataclass(frozen=True)
class StepEvent:
    """A step to be recorded, with the state it should snapshot."""

    action: ActionKind
    details: dict[str, Any]
    env: Environment
    output: list[str]


@dataclass
class StatementResult:
    steps: list[StepEvent]
    state: ExecutionState
    returned: bool = False
    return_value: Value = None
    error: Optional[EvalError] = None
    iteration_values: list = field(default_factory=list)


def _call_closes_at_end(text: str, match: re.Match) -> bool:
    return find_matching(text, match.end() - 1) == len(text) - 1


def split_params(params: str) -> tuple[str, ...]:
    names = tuple(p.strip() for p in split_top_level(params))
    for name in names:
        if not re.fullmatch(_NAME, name):
            raise EvalError(f"unsupported parameter: {name}")
    return names


class StatementInterpreter:
    """Executes a single logical line against an ExecutionState.

    Classifiers run in a fixed priority order and the first one that
    recognises the line handles it.  Every line runs against a working
    copy of the state whose bindings are committed only on success; an
    ``EvalError`` produces one ``error`` step that carries the
    pre-statement bindings and the output written so far.  In-place
    mutations made before the failure stay, as they would in Python.
    """

    def __init__(self, evaluator: Evaluator):
        self._ev = evaluator
        self._CLASSIFIERS: list[Callable] = [
            self._try_assign,
            self._try_item_assign,
            self._try_augmented_assign,
            self._try_container_method,
            self._try_print,
            self._try_def,
            self._try_call,
            self._try_header,
            self._try_return,
        ]

    @property
    def evaluator(self) -> Evaluator:
        return self._ev

    def execute(
        self, line: LogicalLine, state: ExecutionState, in_function: bool = False
    ) -> StatementResult:
        text = strip_comment(line.trimmed)
        if not text:
            return StatementResult([], state)
        return self._guarded(line, state, lambda work: self._classify(text, work, in_function))

    def execute_define(
        self, line: LogicalLine, body: tuple[LogicalLine, ...], state: ExecutionState
    ) -> StatementResult:
        """Execute a ``def`` header whose body lines were captured by the caller."""
        text = strip_comment(line.trimmed)
        return self._guarded(line, state, lambda work: self.define(text, body, work))

    def start_for(
        self, line: LogicalLine, body: tuple[LogicalLine, ...], state: ExecutionState
    ) -> StatementResult:
        """Evaluate a ``for`` header once; the elements land in ``iteration_values``."""
        text = strip_comment(line.trimmed)

        def run(work: ExecutionState) -> StatementResult:
            var, iterable_text, elements = self.for_header(text, work)
            details = {
                "iter_var": var,
                "iterable": iterable_text,
                "loop_body": [b.original_index for b in body],
            }
            result = self._done(ActionKind.FOR_LOOP_START, details, work)
            result.iteration_values = elements
            return result

        return self._guarded(line, state, run)

    def execute_guard(
        self, line: LogicalLine, state: ExecutionState, extra: Optional[dict] = None
    ) -> StatementResult:
        """Evaluate an ``if``/``elif``/``while`` guard; the outcome is in ``return_value``."""
        text = strip_comment(line.trimmed)

        def run(work: ExecutionState) -> StatementResult:
            m = GUARD_RE.match(text)
            if m is None:
                raise EvalError(f"invalid condition header: {text}")
            result = self._guard_step(m.group(1), m.group(2).strip(), work, extra or {})
            result.return_value = result.steps[0].details["condition_result"]
            return result

        return self._guarded(line, state, run)

    def _guarded(
        self,
        line: LogicalLine,
        state: ExecutionState,
        run: Callable[[ExecutionState], StatementResult],
    ) -> StatementResult:
        work = state.working_copy()
        try:
            return run(work)
        except EvalError as exc:
            logger.debug("Line %d failed: %s", line.original_index + 1, exc)
            failed = ExecutionState(env=state.env, output=work.output)
            event = StepEvent(ActionKind.ERROR, {"error": str(exc)}, failed.env, failed.output)
            return StatementResult([event], failed, error=exc)

    def _classify(self, text: str, work: ExecutionState, in_function: bool) -> StatementResult:
        for classify in self._CLASSIFIERS:
            result = classify(text, work, in_function)
            if result is not None:
                return result
        return self._execute_other(text, work)

    # ── shared helpers ───────────────────────────────────────────

    def _eval(self, expr, work: ExecutionState) -> Value:
        return self._ev.evaluate(expr, work.env, work.output)

    def _done(self, action: ActionKind, details: dict, work: ExecutionState) -> StatementResult:
        return StatementResult([StepEvent(action, details, work.env, work.output)], work)

    def _lookup(self, name: str, env: Environment) -> Value:
        if name not in env:
            raise UndefinedNameError(name)
        return env[name]

    # ── 2. assignment ────────────────────────────────────────────

    def _try_assign(self, text: str, work: ExecutionState, in_function: bool):
        m = ASSIGN_RE.match(text)
        if m is None:
            return None
        name, rhs = m.group(1), m.group(2).strip()
        value = self._evaluate_rhs(rhs, work)
        details: dict[str, Any] = {"variable": name, "value": value, "expression": rhs}
        action = ActionKind.ASSIGN
        if name in work.env:
            action = ActionKind.REASSIGN
            details["old_value"] = work.env[name]
        work.env[name] = value
        return self._done(action, details, work)

    def _evaluate_rhs(self, rhs: str, work: ExecutionState) -> Value:
        is_structured = rhs[:1] in ("[", "{") and not COMPREHENSION_RE.match(rhs)
        if not is_structured:
            return self._eval(rhs, work)
        try:
            return self._eval(rhs, work)
        except EvalError as exc:
            logger.debug("Keeping structured literal as text (%s): %s", exc, rhs)
            return rhs

    def _try_item_assign(self, text: str, work: ExecutionState, in_function: bool):
        m = ITEM_TARGET_RE.match(text)
        if m is None:
            return None
        close = find_matching(text, m.end() - 1)
        if close < 0:
            return None
        rest = re.match(r"^\s*=(?!=)\s*(.+)$", text[close + 1 :])
        if rest is None:
            return None
        name = m.group(1)
        container = self._lookup(name, work.env)
        key = self._eval(text[m.end() : close], work)
        value = self._eval(rest.group(1), work)
        old = snapshot(container)
        if isinstance(container, list):
            if not isinstance(key, int):
                raise ValueTypeError(
                    f"list indices must be integers or slices, not {type_name(key)}"
                )
            if not -len(container) <= key < len(container):
                raise EvalError("list assignment index out of range")
            action, kind = ActionKind.LIST_OPERATION, "list"
        elif isinstance(container, dict):
            key = check_key(key)
            action, kind = ActionKind.DICT_OPERATION, "dict"
        else:
            raise ValueTypeError(
                f"'{type_name(container)}' object does not support item assignment"
            )
        container[key] = value
        details = {
            kind: name,
            "operation": constants.SETITEM_OPERATION,
            "key": key,
            "value": container,
            "old_value": old,
            "operation_result": f"Set {name}[{py_repr(key)}] to {py_repr(value)}",
            "result_value": None,
        }
        return self._done(action, details, work)

    # ── 3. augmented assignment ──────────────────────────────────

    def _try_augmented_assign(self, text: str, work: ExecutionState, in_function: bool):
        m = AUGMENTED_RE.match(text)
        if m is None:
            return None
        name, op, rhs = m.group(1), m.group(2), m.group(3).strip()
        old = self._lookup(name, work.env)
        right = self._eval(rhs, work)
        if op == "+" and (isinstance(old, str) or isinstance(right, str)):
            value = py_str(old) + py_str(right)
        else:
            value = Operators.eval_binop(op, old, right)
        work.env[name] = value
        details = {
            "variable": name,
            "operator": f"{op}=",
            "value": value,
            "old_value": old,
            "right_value": right,
        }
        return self._done(ActionKind.AUGMENTED_ASSIGN, details, work)

    # ── 4./5. list and dict methods ──────────────────────────────

    def _try_container_method(self, text: str, work: ExecutionState, in_function: bool):
        m = METHOD_CALL_RE.match(text)
        if m is None or not _call_closes_at_end(text, m):
            return None
        name, method = m.group(1), m.group(2)
        is_list_method = method in constants.LIST_MUTATORS | constants.LIST_QUERIES
        is_dict_method = method in constants.DICT_MUTATORS | constants.DICT_QUERIES
        if not (is_list_method or is_dict_method):
            return None
        receiver = self._lookup(name, work.env)
        if isinstance(receiver, str):
            return None
        if isinstance(receiver, dict) and is_dict_method:
            action, kind = ActionKind.DICT_OPERATION, "dict"
        elif isinstance(receiver, list) and is_list_method:
            action, kind = ActionKind.LIST_OPERATION, "list"
        else:
            raise ValueTypeError(f"'{type_name(receiver)}' object has no attribute '{method}'")

        node = parse_expression(text)
        args = [self._eval(arg, work) for arg in node.children[1:]]
        old = snapshot(receiver)
        outcome = Methods.call(receiver, method, args, name)
        details = {
            kind: name,
            "operation": method,
            "args": args,
            "value": receiver,
            "old_value": old,
            "operation_result": outcome.summary,
            "result_value": outcome.result,
        }
        return self._done(action, details, work)

    # ── 6. print ─────────────────────────────────────────────────

    def _try_print(self, text: str, work: ExecutionState, in_function: bool):
        m = PRINT_RE.match(text)
        if m is None or not _call_closes_at_end(text, m):
            return None
        if isinstance(work.env.get(constants.PRINT_FUNCTION), Function):
            return None
        node = parse_expression(text)
        if node.kind != ExprKind.CALL:
            return None
        args = [self._eval(arg, work) for arg in node.children]
        output_text = render_print_line(args)
        work.output.append(output_text)
        return self._done(
            ActionKind.PRINT, {"value": args, "output_text": output_text}, work
        )

    # ── 7. def header ────────────────────────────────────────────

    def _try_def(self, text: str, work: ExecutionState, in_function: bool):
        if DEF_RE.match(text) is None:
            return None
        return self.define(text, (), work)

    def define(
        self, header: str, body: tuple[LogicalLine, ...], work: ExecutionState
    ) -> StatementResult:
        """Bind a Function for *header* with the captured *body* lines."""
        m = DEF_RE.match(strip_comment(header.strip()))
        if m is None:
            raise EvalError(f"invalid function header: {header}")
        name, params = m.group(1), split_params(m.group(2))
        fn = Function(name=name, params=params, body=body, closure=snapshot(work.env))
        work.env[name] = fn
        logger.debug("Defined %s with %d body line(s)", fn.signature(), len(body))
        details = {
            "function_name": name,
            "params": list(params),
            "body_lines": [line.original_index for line in body],
        }
        return self._done(ActionKind.FUNCTION_DEFINITION, details, work)

    # ── 8. standalone call ───────────────────────────────────────

    def _try_call(self, text: str, work: ExecutionState, in_function: bool):
        m = CALL_RE.match(text)
        if m is None or not _call_closes_at_end(text, m):
            return None
        name = m.group(1)
        if name in (constants.KEYWORD_IF, constants.KEYWORD_WHILE, constants.KEYWORD_RETURN):
            return None
        if name in work.env:
            target = work.env[name]
            if not isinstance(target, Function):
                raise UndefinedNameError(name, f"'{type_name(target)}' object is not callable")
            node = parse_expression(text)
            args = [self._eval(arg, work) for arg in node.children]
            result = self._ev.call_function(target, args, work.output)
            details = {"function_name": name, "args": args, "return_value": result}
            return self._done(ActionKind.FUNCTION_CALL, details, work)
        if Builtins.is_builtin(name):
            self._eval(text, work)
            return self._done(ActionKind.EXECUTE, {"code": text}, work)
        raise UndefinedNameError(name)

    # ── 9. headers ───────────────────────────────────────────────

    def _try_header(self, text: str, work: ExecutionState, in_function: bool):
        if not text.endswith(constants.HEADER_SUFFIX):
            return None
        if FOR_RE.match(text):
            var, iterable_text, elements = self.for_header(text, work)
            details = {"iter_var": var, "iterable": iterable_text, "loop_body": []}
            return self._done(ActionKind.FOR_LOOP_START, details, work)
        m = GUARD_RE.match(text)
        if m is not None and m.group(1) != constants.KEYWORD_ELIF:
            return self._guard_step(m.group(1), m.group(2).strip(), work, {})
        return StatementResult([], work)

    def _guard_step(
        self, keyword: str, condition: str, work: ExecutionState, extra: dict
    ) -> StatementResult:
        result = self.guard(condition, work)
        action = (
            ActionKind.WHILE_LOOP_START
            if keyword == constants.KEYWORD_WHILE
            else ActionKind.IF_STATEMENT
        )
        details = {"condition": condition, "condition_result": result, **extra}
        return self._done(action, details, work)

    def for_header(self, text: str, work: ExecutionState) -> tuple[str, str, list]:
        """Evaluate a ``for`` header once: ``(var, iterable_text, elements)``."""
        m = FOR_RE.match(text)
        if m is None:
            raise EvalError(f"invalid for header: {text}")
        var, iterable_text = m.group(1), m.group(2).strip()
        elements = iterable_elements(self._eval(iterable_text, work), self._ev.max_iterations)
        return var, iterable_text, elements

    def guard(self, condition: str, work: ExecutionState) -> bool:
        return is_truthy(self._eval(condition, work))

    # ── 10. return ───────────────────────────────────────────────

    def _try_return(self, text: str, work: ExecutionState, in_function: bool):
        m = RETURN_RE.match(text)
        if m is None:
            return None
        if not in_function:
            raise EvalError("'return' outside function")
        expr = (m.group(1) or "").strip()
        value = self._eval(expr, work) if expr else None
        return StatementResult([], work, returned=True, return_value=value)

    # ── 11. anything else ────────────────────────────────────────

    def _execute_other(self, text: str, work: ExecutionState) -> StatementResult:
        try:
            node = parse_expression(text)
        except EvalError:
            node = None
        if node is not None:
            self._eval(node, work)
        return self._done(ActionKind.EXECUTE, {"code": text}, work)
