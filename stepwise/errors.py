"""Exception hierarchy for trace building and expression evaluation."""

from __future__ import annotations


class StepwiseError(Exception):
    """Base class for every error raised by this package."""


class EvalError(StepwiseError):
    """An expression or statement could not be reduced to a value.

    Every per-line runtime failure derives from this class; the block
    expander converts it into a single ``error`` step.
    """


class ValueTypeError(EvalError):
    """An operation was applied to an incompatible value variant."""


class UndefinedNameError(EvalError):
    """An identifier is unbound, or a call target is not a function."""

    def __init__(self, name: str, message: str = ""):
        self.name = name
        super().__init__(message or f"name '{name}' is not defined")


class KeyLookupError(EvalError):
    """A dict key is missing and no default was supplied."""


class NotIterableError(ValueTypeError):
    """A for-loop or comprehension source is not a List or String."""


class FunctionCallError(EvalError):
    """A statement inside a called function body failed."""

    def __init__(self, function_name: str, cause: Exception):
        self.function_name = function_name
        self.cause = cause
        super().__init__(f"Error in function '{function_name}': {cause}")


class LimitExceededError(EvalError):
    """A configured resource bound (iterations, range length) was exceeded."""


class RecursionLimitError(LimitExceededError):
    """Nested function calls went deeper than ``max_call_depth``."""


class ParseError(StepwiseError):
    """The trace as a whole could not be built."""


class BudgetExhausted(StepwiseError):
    """Raised internally when the step or statement budget runs out.

    Not an ``EvalError``: per-line recovery never catches it.
    """

    def __init__(self, limit_name: str, limit: int):
        self.limit_name = limit_name
        self.limit = limit
        super().__init__(f"{limit_name} limit of {limit} reached; trace truncated")
