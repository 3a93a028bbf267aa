"""Expression Evaluator — reduces an ExprNode tree to a Value."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .builtins import Builtins, CallContext
from .constants import DEFAULT_MAX_ITERATIONS
from .errors import (
    EvalError,
    KeyLookupError,
    LimitExceededError,
    NotIterableError,
    UndefinedNameError,
    ValueTypeError,
)
from .expr import ExprKind, ExprNode
from .lowering import parse_expression
from .methods import Methods
from .operators import Operators
from .values import Environment, Function, Value, check_key, is_truthy, py_repr, py_str, type_name

logger = logging.getLogger(__name__)

FunctionHook = Callable[[Function, list, list], Value]


def iterable_elements(value: Any, max_iterations: int) -> list[Any]:
    """Elements of a for-loop or comprehension source (List or String only)."""
    if not isinstance(value, (list, str)):
        raise NotIterableError(f"'{type_name(value)}' object is not iterable")
    if len(value) > max_iterations:
        raise LimitExceededError(
            f"iterating over {len(value)} elements exceeds the iteration limit of {max_iterations}"
        )
    return list(value)


class Evaluator:
    """Tree-walking evaluator.

    ``env`` is the working environment of the statement being executed:
    mutating methods called inside an expression change it in place.
    ``output`` is the working output buffer that ``print`` appends to.
    Calls to user functions go through *invoke*, supplied by the function
    invoker; without it such calls fail.
    """

    def __init__(
        self,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        invoke: Optional[FunctionHook] = None,
    ):
        self.max_iterations = max_iterations
        self._invoke = invoke
        self._DISPATCH: dict[ExprKind, Callable] = {
            ExprKind.CONST: self._eval_const,
            ExprKind.NAME: self._eval_name,
            ExprKind.BINOP: self._eval_binop,
            ExprKind.BOOLOP: self._eval_boolop,
            ExprKind.NOT: self._eval_not,
            ExprKind.UNARY: self._eval_unary,
            ExprKind.COMPARE: self._eval_compare,
            ExprKind.CONDITIONAL: self._eval_conditional,
            ExprKind.CALL: self._eval_call,
            ExprKind.METHOD_CALL: self._eval_method_call,
            ExprKind.SUBSCRIPT: self._eval_subscript,
            ExprKind.LIST: self._eval_list,
            ExprKind.DICT: self._eval_dict,
            ExprKind.LIST_COMP: self._eval_list_comp,
            ExprKind.FSTRING: self._eval_fstring,
            ExprKind.FORMAT: self._eval_format,
        }

    def bind_invoker(self, invoke: FunctionHook) -> None:
        self._invoke = invoke

    def evaluate(self, expr: str | ExprNode, env: Environment, output: list[str]) -> Value:
        """Evaluate *expr* (text or a lowered tree) against *env*."""
        node = parse_expression(expr.strip()) if isinstance(expr, str) else expr
        return self._eval(node, env, output)

    def call_function(self, fn: Function, args: list, output: list[str]) -> Value:
        if self._invoke is None:
            raise EvalError(f"cannot call function '{fn.name}' without an invoker")
        return self._invoke(fn, args, output)

    def call_builtin(self, name: str, args: list, output: list[str]) -> Value:
        ctx = CallContext(output=output, max_iterations=self.max_iterations)
        return Builtins.TABLE[name](args, ctx)

    # ── dispatch ─────────────────────────────────────────────────

    def _eval(self, node: ExprNode, env: Environment, output: list[str]) -> Value:
        handler = self._DISPATCH.get(node.kind)
        if handler is None:
            raise EvalError(f"cannot evaluate {node.kind.value} here")
        return handler(node, env, output)

    def _eval_all(self, nodes: list[ExprNode], env: Environment, output: list[str]) -> list:
        return [self._eval(n, env, output) for n in nodes]

    def _eval_const(self, node: ExprNode, env: Environment, output: list[str]) -> Value:
        return node.value

    def _eval_name(self, node: ExprNode, env: Environment, output: list[str]) -> Value:
        name = node.value
        if name in env:
            return env[name]
        if Builtins.is_builtin(name):
            raise ValueTypeError(f"built-in function '{name}' can only be called")
        raise UndefinedNameError(name)

    # ── operators ────────────────────────────────────────────────

    def _eval_binop(self, node: ExprNode, env: Environment, output: list[str]) -> Value:
        lhs = self._eval(node.children[0], env, output)
        rhs = self._eval(node.children[1], env, output)
        return Operators.eval_binop(node.value, lhs, rhs)

    def _eval_boolop(self, node: ExprNode, env: Environment, output: list[str]) -> Value:
        lhs = self._eval(node.children[0], env, output)
        if node.value == "and":
            return self._eval(node.children[1], env, output) if is_truthy(lhs) else lhs
        return lhs if is_truthy(lhs) else self._eval(node.children[1], env, output)

    def _eval_not(self, node: ExprNode, env: Environment, output: list[str]) -> Value:
        return not is_truthy(self._eval(node.children[0], env, output))

    def _eval_unary(self, node: ExprNode, env: Environment, output: list[str]) -> Value:
        operand = self._eval(node.children[0], env, output)
        return Operators.eval_unop(node.value, operand)

    def _eval_compare(self, node: ExprNode, env: Environment, output: list[str]) -> Value:
        lhs = self._eval(node.children[0], env, output)
        for op, rhs_node in zip(node.ops, node.children[1:]):
            rhs = self._eval(rhs_node, env, output)
            if not Operators.eval_compare(op, lhs, rhs):
                return False
            lhs = rhs
        return True

    def _eval_conditional(self, node: ExprNode, env: Environment, output: list[str]) -> Value:
        cond, when_true, when_false = node.children
        if is_truthy(self._eval(cond, env, output)):
            return self._eval(when_true, env, output)
        return self._eval(when_false, env, output)

    # ── calls ────────────────────────────────────────────────────

    def _eval_call(self, node: ExprNode, env: Environment, output: list[str]) -> Value:
        name = node.value
        target = env.get(name)
        if name not in env and not Builtins.is_builtin(name):
            raise UndefinedNameError(name)
        args = self._eval_all(node.children, env, output)
        if name in env:
            if not isinstance(target, Function):
                raise UndefinedNameError(name, f"'{type_name(target)}' object is not callable")
            logger.debug("Calling %s with %d argument(s)", name, len(args))
            return self.call_function(target, args, output)
        return self.call_builtin(name, args, output)

    def _eval_method_call(self, node: ExprNode, env: Environment, output: list[str]) -> Value:
        receiver_node, *arg_nodes = node.children
        receiver = self._eval(receiver_node, env, output)
        args = self._eval_all(arg_nodes, env, output)
        label = receiver_node.value if receiver_node.kind == ExprKind.NAME else ""
        return Methods.call(receiver, node.value, args, label).result

    # ── access ───────────────────────────────────────────────────

    def _eval_subscript(self, node: ExprNode, env: Environment, output: list[str]) -> Value:
        obj = self._eval(node.children[0], env, output)
        index_node = node.children[1]
        if index_node.kind == ExprKind.SLICE:
            bounds = self._eval_all(index_node.children, env, output)
            return _slice(obj, bounds)
        return subscript(obj, self._eval(index_node, env, output))

    # ── constructors ─────────────────────────────────────────────

    def _eval_list(self, node: ExprNode, env: Environment, output: list[str]) -> Value:
        return self._eval_all(node.children, env, output)

    def _eval_dict(self, node: ExprNode, env: Environment, output: list[str]) -> Value:
        result: dict = {}
        pairs = node.children
        for i in range(0, len(pairs), 2):
            key = check_key(self._eval(pairs[i], env, output))
            result[key] = self._eval(pairs[i + 1], env, output)
        return result

    def _eval_list_comp(self, node: ExprNode, env: Environment, output: list[str]) -> Value:
        body, *clauses = node.children
        collected: list = []
        self._comprehend(body, clauses, dict(env), output, collected)
        return collected

    def _comprehend(
        self,
        body: ExprNode,
        clauses: list[ExprNode],
        scope: Environment,
        output: list[str],
        collected: list,
    ) -> None:
        if not clauses:
            collected.append(self._eval(body, scope, output))
            return
        clause, rest = clauses[0], clauses[1:]
        if clause.kind == ExprKind.COMP_IF:
            if is_truthy(self._eval(clause.children[0], scope, output)):
                self._comprehend(body, rest, scope, output, collected)
            return
        source = self._eval(clause.children[0], scope, output)
        for element in iterable_elements(source, self.max_iterations):
            scope[clause.value] = element
            self._comprehend(body, rest, scope, output, collected)

    def _eval_fstring(self, node: ExprNode, env: Environment, output: list[str]) -> Value:
        return "".join(py_str(self._eval(part, env, output)) for part in node.children)

    def _eval_format(self, node: ExprNode, env: Environment, output: list[str]) -> Value:
        conversion, spec = node.value
        value = self._eval(node.children[0], env, output)
        if conversion == "r":
            value = py_repr(value)
        elif conversion == "a":
            value = ascii(py_repr(value))[1:-1]
        elif conversion == "s":
            value = py_str(value)
        if not spec:
            return py_str(value)
        if isinstance(value, (list, dict, Function)) or value is None:
            raise ValueTypeError(
                f"unsupported format string passed to {type_name(value)}.__format__"
            )
        try:
            return format(value, spec)
        except (ValueError, TypeError) as exc:
            raise EvalError(str(exc)) from exc


def subscript(obj: Value, index: Value) -> Value:
    """``obj[index]`` for List, String and Dict receivers."""
    if isinstance(obj, dict):
        key = check_key(index)
        if key not in obj:
            raise KeyLookupError(f"key {py_repr(key)} not found")
        return obj[key]
    if isinstance(obj, (list, str)):
        kind = type_name(obj)
        if not isinstance(index, int):
            raise ValueTypeError(
                f"{kind} indices must be integers or slices, not {type_name(index)}"
            )
        if not -len(obj) <= index < len(obj):
            raise EvalError(f"{'string' if kind == 'str' else kind} index out of range")
        return obj[index]
    raise ValueTypeError(f"'{type_name(obj)}' object is not subscriptable")


def _slice(obj: Value, bounds: list) -> Value:
    if not isinstance(obj, (list, str)):
        raise ValueTypeError(f"'{type_name(obj)}' object is not subscriptable")
    for bound in bounds:
        if bound is not None and not isinstance(bound, int):
            raise ValueTypeError(
                "slice indices must be integers or None or have an __index__ method"
            )
    start, stop, step = bounds
    if step == 0:
        raise EvalError("slice step cannot be zero")
    return obj[start:stop:step]


def evaluate(expr: str, env: Environment, output: Optional[list[str]] = None) -> Value:
    """Evaluate *expr* against *env* with a throwaway evaluator.

    Calls to user functions are not available here; use
    ``stepwise.api.evaluate_expression`` for that.
    """
    return Evaluator().evaluate(expr, env, output if output is not None else [])
