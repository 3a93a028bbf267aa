"""ExpressionLowerer — tree-sitter Python CST → ExprNode tree."""

from __future__ import annotations

import ast
import logging
from functools import lru_cache
from typing import Callable

from .errors import EvalError
from .expr import NO_SPAN, ExprKind, ExprNode, SourceSpan
from .parser import Parser, TreeSitterParserFactory

logger = logging.getLogger(__name__)

_DEFAULT_PARSER = Parser(TreeSitterParserFactory())


class ExpressionLowerer:
    """Lowers the tree-sitter parse of a single Python expression.

    Dispatch mirrors the node types of the Python grammar; anything not in
    ``_EXPR_DISPATCH`` is rejected as unsupported syntax.
    """

    COMMENT_TYPES: frozenset[str] = frozenset({"comment"})
    PUNCTUATION: frozenset[str] = frozenset({"(", ")", "[", "]", "{", "}", ",", ":"})

    def __init__(self, parser: Parser = _DEFAULT_PARSER):
        self._parser = parser
        self._source: bytes = b""
        self._EXPR_DISPATCH: dict[str, Callable] = {
            "identifier": self._lower_identifier,
            "integer": self._lower_number,
            "float": self._lower_number,
            "string": self._lower_string,
            "concatenated_string": self._lower_concatenated_string,
            "true": self._lower_keyword_const,
            "false": self._lower_keyword_const,
            "none": self._lower_keyword_const,
            "binary_operator": self._lower_binop,
            "boolean_operator": self._lower_boolop,
            "not_operator": self._lower_not,
            "unary_operator": self._lower_unary,
            "comparison_operator": self._lower_comparison,
            "conditional_expression": self._lower_conditional_expr,
            "parenthesized_expression": self._lower_paren,
            "call": self._lower_call,
            "print_statement": self._lower_print_statement,
            "subscript": self._lower_subscript,
            "list": self._lower_list_literal,
            "dictionary": self._lower_dict_literal,
            "list_comprehension": self._lower_list_comprehension,
        }

    # ── entry point ──────────────────────────────────────────────

    def lower(self, text: str) -> ExprNode:
        """Parse *text* as one expression and lower it."""
        if not text.strip():
            raise EvalError("empty expression")
        tree = self._parser.parse(text)
        self._source = text.encode("utf-8")
        root = tree.root_node
        if root.has_error:
            raise EvalError(f"invalid syntax: {text}")

        statements = self._named(root)
        if len(statements) != 1:
            raise EvalError(f"expected a single expression: {text}")
        stmt = statements[0]
        if stmt.type == "print_statement":
            return self._lower_print_statement(stmt)
        if stmt.type != "expression_statement":
            raise EvalError(f"expected an expression, got {stmt.type}: {text}")

        exprs = self._named(stmt)
        if len(exprs) != 1:
            raise EvalError(f"tuples are not supported: {text}")
        return self._lower_expr(exprs[0])

    # ── helpers ──────────────────────────────────────────────────

    def _node_text(self, node) -> str:
        return self._source[node.start_byte : node.end_byte].decode("utf-8")

    def _column(self, byte_offset: int) -> int:
        """Character column of *byte_offset*; tree-sitter reports bytes."""
        line_start = self._source.rfind(b"\n", 0, byte_offset) + 1
        return len(self._source[line_start:byte_offset].decode("utf-8", errors="replace"))

    def _span(self, node) -> SourceSpan:
        return SourceSpan(
            start_col=self._column(node.start_byte),
            end_col=self._column(node.end_byte),
        )

    def _named(self, node) -> list:
        return [
            c for c in node.children if c.is_named and c.type not in self.COMMENT_TYPES
        ]

    def _unsupported(self, node) -> EvalError:
        return EvalError(
            f"unsupported syntax '{node.type}' at column {self._column(node.start_byte)}: "
            f"{self._node_text(node)}"
        )

    def _lower_expr(self, node) -> ExprNode:
        handler = self._EXPR_DISPATCH.get(node.type)
        if handler is None:
            raise self._unsupported(node)
        return handler(node)

    # ── leaves ───────────────────────────────────────────────────

    def _lower_identifier(self, node) -> ExprNode:
        return ExprNode(kind=ExprKind.NAME, value=self._node_text(node), span=self._span(node))

    def _lower_keyword_const(self, node) -> ExprNode:
        value = {"true": True, "false": False, "none": None}[node.type]
        return ExprNode(kind=ExprKind.CONST, value=value, span=self._span(node))

    def _lower_number(self, node) -> ExprNode:
        text = self._node_text(node)
        if text[-1] in "jJ":
            raise self._unsupported(node)
        try:
            value = int(text, 0) if node.type == "integer" else float(text)
        except ValueError as exc:
            raise EvalError(f"invalid number literal: {text}") from exc
        return ExprNode(kind=ExprKind.CONST, value=value, span=self._span(node))

    def _string_prefix(self, node) -> str:
        start = next((c for c in node.children if c.type == "string_start"), None)
        text = self._node_text(start) if start is not None else self._node_text(node)
        return "".join(ch for ch in text if ch.isalpha()).lower()

    def _lower_string(self, node) -> ExprNode:
        prefix = self._string_prefix(node)
        if "b" in prefix:
            raise EvalError(f"bytes literals are not supported: {self._node_text(node)}")
        if "f" in prefix:
            return self._lower_fstring(node, raw="r" in prefix)
        text = self._node_text(node)
        try:
            value = ast.literal_eval(text)
        except (ValueError, SyntaxError) as exc:
            raise EvalError(f"invalid string literal: {text}") from exc
        return ExprNode(kind=ExprKind.CONST, value=value, span=self._span(node))

    def _lower_concatenated_string(self, node) -> ExprNode:
        parts = [self._lower_string(c) for c in self._named(node)]
        if all(p.kind == ExprKind.CONST for p in parts):
            value = "".join(p.value for p in parts)
            return ExprNode(kind=ExprKind.CONST, value=value, span=self._span(node))
        children: list[ExprNode] = []
        for p in parts:
            children.extend(p.children if p.kind == ExprKind.FSTRING else [p])
        return ExprNode(kind=ExprKind.FSTRING, children=children, span=self._span(node))

    def _lower_fstring(self, node, raw: bool) -> ExprNode:
        children: list[ExprNode] = []
        for child in node.children:
            if child.type == "string_content":
                text = self._node_text(child).replace("{{", "{").replace("}}", "}")
                if not raw:
                    text = _decode_escapes(text)
                children.append(ExprNode(kind=ExprKind.CONST, value=text))
            elif child.type == "interpolation":
                children.append(self._lower_interpolation(child))
        return ExprNode(kind=ExprKind.FSTRING, children=children, span=self._span(node))

    def _lower_interpolation(self, node) -> ExprNode:
        expr_node = node.child_by_field_name("expression")
        if expr_node is None:
            raise self._unsupported(node)
        conversion = ""
        conv_node = node.child_by_field_name("type_conversion")
        if conv_node is not None:
            conversion = self._node_text(conv_node).lstrip("!")
        spec = ""
        spec_node = node.child_by_field_name("format_specifier")
        if spec_node is not None:
            if any(c.type == "interpolation" for c in spec_node.children):
                raise self._unsupported(spec_node)
            spec = self._node_text(spec_node)
            spec = spec[1:] if spec.startswith(":") else spec
        return ExprNode(
            kind=ExprKind.FORMAT,
            value=(conversion, spec),
            children=[self._lower_expr(expr_node)],
            span=self._span(node),
        )

    # ── operators ────────────────────────────────────────────────

    def _lower_binop(self, node) -> ExprNode:
        lhs = node.child_by_field_name("left")
        op = node.child_by_field_name("operator")
        rhs = node.child_by_field_name("right")
        return ExprNode(
            kind=ExprKind.BINOP,
            value=self._node_text(op),
            children=[self._lower_expr(lhs), self._lower_expr(rhs)],
            span=self._span(node),
        )

    def _lower_boolop(self, node) -> ExprNode:
        lhs = node.child_by_field_name("left")
        op = node.child_by_field_name("operator")
        rhs = node.child_by_field_name("right")
        return ExprNode(
            kind=ExprKind.BOOLOP,
            value=self._node_text(op),
            children=[self._lower_expr(lhs), self._lower_expr(rhs)],
            span=self._span(node),
        )

    def _lower_not(self, node) -> ExprNode:
        operand = node.child_by_field_name("argument")
        return ExprNode(
            kind=ExprKind.NOT,
            children=[self._lower_expr(operand)],
            span=self._span(node),
        )

    def _lower_unary(self, node) -> ExprNode:
        op = node.child_by_field_name("operator")
        operand = node.child_by_field_name("argument")
        return ExprNode(
            kind=ExprKind.UNARY,
            value=self._node_text(op),
            children=[self._lower_expr(operand)],
            span=self._span(node),
        )

    def _lower_comparison(self, node) -> ExprNode:
        operands: list[ExprNode] = []
        ops: list[str] = []
        # "not in" and "is not" arrive as two operator tokens
        pending: list[str] = []
        for child in node.children:
            if child.type in self.COMMENT_TYPES:
                continue
            if child.is_named:
                if pending:
                    ops.append(" ".join(pending))
                    pending = []
                operands.append(self._lower_expr(child))
            else:
                pending.extend(self._node_text(child).split())
        if len(ops) != len(operands) - 1:
            raise self._unsupported(node)
        return ExprNode(
            kind=ExprKind.COMPARE,
            ops=ops,
            children=operands,
            span=self._span(node),
        )

    def _lower_conditional_expr(self, node) -> ExprNode:
        true_expr, cond_expr, false_expr = self._named(node)
        return ExprNode(
            kind=ExprKind.CONDITIONAL,
            children=[
                self._lower_expr(cond_expr),
                self._lower_expr(true_expr),
                self._lower_expr(false_expr),
            ],
            span=self._span(node),
        )

    def _lower_paren(self, node) -> ExprNode:
        inner = self._named(node)
        if len(inner) != 1:
            raise self._unsupported(node)
        return self._lower_expr(inner[0])

    # ── calls and access ─────────────────────────────────────────

    def _lower_arguments(self, args_node) -> list[ExprNode]:
        if args_node is None:
            return []
        if args_node.type != "argument_list":
            raise self._unsupported(args_node)
        return [self._lower_expr(c) for c in self._named(args_node)]

    def _lower_call(self, node) -> ExprNode:
        func_node = node.child_by_field_name("function")
        args = self._lower_arguments(node.child_by_field_name("arguments"))

        # Method call: obj.method(...)
        if func_node.type == "attribute":
            obj_node = func_node.child_by_field_name("object")
            attr_node = func_node.child_by_field_name("attribute")
            return ExprNode(
                kind=ExprKind.METHOD_CALL,
                value=self._node_text(attr_node),
                children=[self._lower_expr(obj_node)] + args,
                span=self._span(node),
            )

        # Plain function call
        if func_node.type == "identifier":
            return ExprNode(
                kind=ExprKind.CALL,
                value=self._node_text(func_node),
                children=args,
                span=self._span(node),
            )

        raise self._unsupported(func_node)

    def _lower_print_statement(self, node) -> ExprNode:
        args = [self._lower_expr(c) for c in self._named(node)]
        return ExprNode(kind=ExprKind.CALL, value="print", children=args, span=self._span(node))

    def _lower_subscript(self, node) -> ExprNode:
        obj_node = node.child_by_field_name("value")
        indexes = node.children_by_field_name("subscript")
        if len(indexes) != 1:
            raise self._unsupported(node)
        idx_node = indexes[0]
        index = (
            self._lower_slice(idx_node)
            if idx_node.type == "slice"
            else self._lower_expr(idx_node)
        )
        return ExprNode(
            kind=ExprKind.SUBSCRIPT,
            children=[self._lower_expr(obj_node), index],
            span=self._span(node),
        )

    def _lower_slice(self, node) -> ExprNode:
        """Lower ``start:stop:step``; omitted parts become CONST None."""
        parts: list[ExprNode] = [ExprNode(kind=ExprKind.CONST, value=None)]
        for child in node.children:
            if child.type == ":":
                parts.append(ExprNode(kind=ExprKind.CONST, value=None))
            elif child.is_named and child.type not in self.COMMENT_TYPES:
                parts[-1] = self._lower_expr(child)
        while len(parts) < 3:
            parts.append(ExprNode(kind=ExprKind.CONST, value=None))
        return ExprNode(kind=ExprKind.SLICE, children=parts, span=self._span(node))

    # ── constructors ─────────────────────────────────────────────

    def _lower_list_literal(self, node) -> ExprNode:
        elems = [self._lower_expr(c) for c in self._named(node)]
        return ExprNode(kind=ExprKind.LIST, children=elems, span=self._span(node))

    def _lower_dict_literal(self, node) -> ExprNode:
        children: list[ExprNode] = []
        for pair in self._named(node):
            if pair.type != "pair":
                raise self._unsupported(pair)
            children.append(self._lower_expr(pair.child_by_field_name("key")))
            children.append(self._lower_expr(pair.child_by_field_name("value")))
        return ExprNode(kind=ExprKind.DICT, children=children, span=self._span(node))

    def _lower_list_comprehension(self, node) -> ExprNode:
        body = node.child_by_field_name("body")
        clauses: list[ExprNode] = []
        for child in self._named(node):
            if child.type == "for_in_clause":
                clauses.append(self._lower_for_in_clause(child))
            elif child.type == "if_clause":
                cond = self._named(child)
                clauses.append(
                    ExprNode(
                        kind=ExprKind.COMP_IF,
                        children=[self._lower_expr(cond[0])],
                        span=self._span(child),
                    )
                )
        return ExprNode(
            kind=ExprKind.LIST_COMP,
            children=[self._lower_expr(body)] + clauses,
            span=self._span(node),
        )

    def _lower_for_in_clause(self, node) -> ExprNode:
        left = node.child_by_field_name("left")
        rights = node.children_by_field_name("right")
        if left.type != "identifier" or len(rights) != 1:
            raise self._unsupported(node)
        return ExprNode(
            kind=ExprKind.COMP_FOR,
            value=self._node_text(left),
            children=[self._lower_expr(rights[0])],
            span=self._span(node),
        )


def _decode_escapes(text: str) -> str:
    """Decode backslash escapes without mangling non-ASCII characters."""
    if "\\" not in text:
        return text
    try:
        return text.encode("latin-1", "backslashreplace").decode("unicode_escape")
    except UnicodeDecodeError as exc:
        raise EvalError(f"invalid escape sequence in: {text}") from exc


_LOWERER = ExpressionLowerer()


@lru_cache(maxsize=1024)
def parse_expression(text: str) -> ExprNode:
    """Lower *text* to an expression tree, cached per distinct text."""
    try:
        node = _LOWERER.lower(text)
    except RecursionError as exc:
        raise EvalError(f"expression is nested too deeply: {text[:40]}") from exc
    logger.debug("Lowered %r → %s", text, node)
    return node


__all__ = ["ExpressionLowerer", "parse_expression", "NO_SPAN"]
