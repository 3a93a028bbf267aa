"""Tests for function definition, invocation, closures and recursion."""

from stepwise.api import build_trace
from stepwise.run_types import TraceConfig
from stepwise.trace_types import ActionKind
from stepwise.values import Function

ADD_SOURCE = """\
def add(a, b):
    return a + b

r = add(2, 3)
"""


def _actions(trace):
    return [step.action for step in trace]


class TestDefinition:
    def test_definition_step(self):
        trace = build_trace(ADD_SOURCE)
        step = trace.step_at(0)
        assert step.action == ActionKind.FUNCTION_DEFINITION
        assert step.get("function_name") == "add"
        assert step.get("params") == ["a", "b"]
        assert step.get("body_lines") == [1]
        assert isinstance(step.variables["add"], Function)

    def test_body_is_not_executed_at_definition(self):
        trace = build_trace("def f():\n    print('inside')\nx = 1")
        assert _actions(trace) == [ActionKind.FUNCTION_DEFINITION, ActionKind.ASSIGN]
        assert trace.final_output == []

    def test_unsupported_parameter_list(self):
        trace = build_trace("def f(a=1):\n    return a")
        assert trace.step_at(0).action == ActionKind.ERROR


class TestInvocation:
    def test_call_in_assignment(self):
        trace = build_trace(ADD_SOURCE)
        assert _actions(trace) == [ActionKind.FUNCTION_DEFINITION, ActionKind.ASSIGN]
        assert trace.final_variables["r"] == 5

    def test_body_steps_are_not_recorded(self):
        trace = build_trace("def f(n):\n    m = n * 2\n    return m\nv = f(4)")
        assert len(trace) == 2
        assert "m" not in trace.final_variables

    def test_standalone_call_step(self):
        trace = build_trace("def hello(name):\n    print('hi', name)\nhello('Ann')")
        step = trace.step_at(1)
        assert step.action == ActionKind.FUNCTION_CALL
        assert step.get("function_name") == "hello"
        assert step.get("args") == ["Ann"]
        assert step.get("return_value") is None
        assert step.output == ["'hi' 'Ann'"]

    def test_missing_return_gives_none(self):
        trace = build_trace("def f():\n    x = 1\nr = f()")
        assert trace.final_variables["r"] is None

    def test_extra_args_ignored_and_missing_params_unbound(self):
        source = "def f(a, b):\n    return a\nr = f(1, 2, 3)\ns = f(7)"
        trace = build_trace(source)
        assert trace.final_variables["r"] == 1
        assert trace.final_variables["s"] == 7

    def test_return_inside_loop_ends_call(self):
        source = (
            "def first_even(xs):\n"
            "    for x in xs:\n"
            "        if x % 2 == 0:\n"
            "            return x\n"
            "    return None\n"
            "r = first_even([1, 2, 3])"
        )
        trace = build_trace(source)
        # default if semantics: the body runs regardless, so 1 is returned
        assert trace.final_variables["r"] == 1

    def test_return_inside_loop_with_structured_control_flow(self):
        source = (
            "def first_even(xs):\n"
            "    for x in xs:\n"
            "        if x % 2 == 0:\n"
            "            return x\n"
            "    return None\n"
            "r = first_even([1, 2, 3])"
        )
        trace = build_trace(source, TraceConfig(structured_control_flow=True))
        assert trace.final_variables["r"] == 2

    def test_function_used_in_comprehension(self):
        source = "def sq(n):\n    return n * n\nys = [sq(x) for x in range(3)]"
        trace = build_trace(source)
        assert trace.final_variables["ys"] == [0, 1, 4]

    def test_print_inside_function_reaches_caller_output(self):
        source = "def shout(w):\n    print(w.upper())\n    return len(w)\nn = shout('hey')"
        trace = build_trace(source)
        assert trace.final_output == ["'HEY'"]
        assert trace.final_variables["n"] == 3

    def test_call_statistics(self):
        trace = build_trace(ADD_SOURCE + "s = add(r, 1)\n")
        assert trace.stats.function_calls == 2

    def test_function_mutates_list_argument(self):
        source = "def add_item(lst):\n    lst.append(1)\nnums = []\nadd_item(nums)\nprint(nums)"
        trace = build_trace(source)
        assert trace.final_output == ["[1]"]

    def test_rebinding_a_parameter_leaves_caller_alone(self):
        source = "def reset(lst):\n    lst = [0]\nnums = [5]\nreset(nums)"
        trace = build_trace(source)
        assert trace.final_variables["nums"] == [5]

    def test_one_line_definition(self):
        trace = build_trace("def double(n): return n * 2\nr = double(4)")
        assert trace.step_at(0).get("body_lines") == [0]
        assert trace.final_variables["r"] == 8


class TestFailures:
    def test_error_inside_function(self):
        trace = build_trace("def f():\n    return missing\nr = f()")
        step = trace.step_at(1)
        assert step.action == ActionKind.ERROR
        assert step.get("error") == "Error in function 'f': name 'missing' is not defined"
        assert "r" not in step.variables

    def test_partial_output_is_kept(self):
        source = "def f():\n    print('before')\n    x = 1 / 0\n    print('after')\nf()"
        trace = build_trace(source)
        step = trace.step_at(1)
        assert step.action == ActionKind.ERROR
        assert step.output == ["'before'"]
        assert "division by zero" in step.get("error")

    def test_undefined_function(self):
        trace = build_trace("r = nothing(1)")
        assert trace.step_at(0).action == ActionKind.ERROR
        assert "nothing" in trace.step_at(0).get("error")


class TestClosures:
    def test_closure_is_a_snapshot(self):
        source = "base = 10\ndef f():\n    return base\nbase = 99\nr = f()"
        trace = build_trace(source)
        assert trace.final_variables["r"] == 10

    def test_closure_list_not_shared(self):
        source = "xs = [1]\ndef f():\n    return len(xs)\nxs.append(2)\nr = f()"
        trace = build_trace(source)
        assert trace.final_variables["r"] == 1

    def test_function_does_not_change_caller_bindings(self):
        source = "x = 1\ndef f():\n    x = 5\n    return x\nr = f()"
        trace = build_trace(source)
        assert trace.final_variables["x"] == 1
        assert trace.final_variables["r"] == 5

    def test_nested_function_definition(self):
        source = (
            "def outer(n):\n"
            "    def inner(m):\n"
            "        return m + 1\n"
            "    return inner(n) * 2\n"
            "r = outer(3)"
        )
        trace = build_trace(source)
        assert trace.final_variables["r"] == 8

    def test_earlier_function_visible_to_later_one(self):
        source = "def a():\n    return 1\ndef b():\n    return a() + 1\nr = b()"
        trace = build_trace(source)
        assert trace.final_variables["r"] == 2


class TestRecursion:
    def test_recursive_factorial(self):
        source = (
            "def fact(n):\n"
            "    if n <= 1:\n"
            "        return 1\n"
            "    return n * fact(n - 1)\n"
            "r = fact(5)"
        )
        trace = build_trace(source, TraceConfig(structured_control_flow=True))
        assert trace.final_variables["r"] == 120

    def test_runaway_recursion_is_an_error_step(self):
        source = "def loop(n):\n    return loop(n + 1)\nr = loop(0)\ny = 1"
        trace = build_trace(source, TraceConfig(max_call_depth=10))
        step = trace.step_at(1)
        assert step.action == ActionKind.ERROR
        assert "maximum call depth of 10" in step.get("error")
        assert trace.final_variables["y"] == 1
