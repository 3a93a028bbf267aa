"""Expression tree — the lowered form of one expression string."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel


class ExprKind(str, Enum):
    # Leaves
    CONST = "CONST"
    NAME = "NAME"
    # Operators
    BINOP = "BINOP"
    BOOLOP = "BOOLOP"
    NOT = "NOT"
    UNARY = "UNARY"
    COMPARE = "COMPARE"
    CONDITIONAL = "CONDITIONAL"
    # Calls and access
    CALL = "CALL"
    METHOD_CALL = "METHOD_CALL"
    SUBSCRIPT = "SUBSCRIPT"
    SLICE = "SLICE"
    # Constructors
    LIST = "LIST"
    DICT = "DICT"
    LIST_COMP = "LIST_COMP"
    COMP_FOR = "COMP_FOR"
    COMP_IF = "COMP_IF"
    FSTRING = "FSTRING"
    FORMAT = "FORMAT"


class SourceSpan(BaseModel):
    """Character-column span of a node inside its expression text."""

    start_col: int
    end_col: int

    def is_unknown(self) -> bool:
        return self.start_col == 0 and self.end_col == 0

    def __str__(self) -> str:
        if self.is_unknown():
            return "<unknown>"
        return f"{self.start_col}-{self.end_col}"


NO_SPAN = SourceSpan(start_col=0, end_col=0)


class ExprNode(BaseModel):
    """One node of the expression tree.

    ``value`` carries the payload of the node: the constant for CONST, the
    identifier for NAME, the operator for BINOP/BOOLOP/UNARY, the method name
    for METHOD_CALL, the loop variable for COMP_FOR, and the
    ``(conversion, format_spec)`` pair for FORMAT.  COMPARE keeps its
    operators in ``ops``, one per adjacent operand pair.
    """

    kind: ExprKind
    value: Any = None
    ops: list[str] = []
    children: list[ExprNode] = []
    span: SourceSpan = NO_SPAN

    def __str__(self) -> str:
        if self.kind == ExprKind.CONST:
            return repr(self.value)
        if self.kind == ExprKind.NAME:
            return str(self.value)
        parts = [self.kind.value.lower()]
        if self.value is not None:
            parts.append(str(self.value))
        parts.extend(self.ops)
        inner = " ".join(str(c) for c in self.children)
        return f"({' '.join(parts)}{' ' + inner if inner else ''})"


ExprNode.model_rebuild()
