"""Tests for conditional if/elif/else and repeating while (structured_control_flow)."""

from stepwise.api import build_trace
from stepwise.run_types import TraceConfig
from stepwise.trace_types import ActionKind

STRUCTURED = TraceConfig(structured_control_flow=True)

CHAIN_SOURCE = """\
if x > 10:
    s = 'big'
elif x > 5:
    s = 'mid'
else:
    s = 'small'
print(s)
"""


def _actions(trace):
    return [step.action for step in trace]


def _chain(x):
    return build_trace(f"x = {x}\n" + CHAIN_SOURCE, STRUCTURED)


class TestIfChains:
    def test_first_true_branch_runs(self):
        trace = _chain(7)
        assert _actions(trace) == [
            ActionKind.ASSIGN,
            ActionKind.IF_STATEMENT,
            ActionKind.IF_STATEMENT,
            ActionKind.ASSIGN,
            ActionKind.PRINT,
        ]
        assert trace.step_at(2).get("condition") == "x > 5"
        assert trace.step_at(2).get("condition_result") is True
        assert trace.final_output == ["'mid'"]

    def test_if_branch_skips_remaining_guards(self):
        trace = _chain(20)
        assert len([s for s in trace if s.action == ActionKind.IF_STATEMENT]) == 1
        assert trace.final_variables["s"] == "big"

    def test_else_runs_when_all_guards_fail(self):
        trace = _chain(1)
        assert trace.final_variables["s"] == "small"

    def test_guard_error_skips_whole_chain(self):
        trace = build_trace("if missing:\n    x = 1\nelse:\n    x = 2\ny = 0", STRUCTURED)
        assert _actions(trace) == [ActionKind.ERROR, ActionKind.ASSIGN]
        assert "x" not in trace.final_variables

    def test_default_mode_visits_every_body(self):
        trace = build_trace("if False:\n    x = 1\nelse:\n    x = 2")
        assert _actions(trace) == [
            ActionKind.IF_STATEMENT,
            ActionKind.ASSIGN,
            ActionKind.REASSIGN,
        ]

    def test_if_inside_loop(self):
        source = "for n in range(4):\n    if n % 2 == 0:\n        print(n)"
        trace = build_trace(source, STRUCTURED)
        assert trace.final_output == ["0", "2"]

    def test_one_line_branches(self):
        source = "x = 0\nif x > 1: s = 'big'\nelse: s = 'small'"
        trace = build_trace(source, STRUCTURED)
        assert trace.final_variables["s"] == "small"
        assert _actions(trace) == [
            ActionKind.ASSIGN,
            ActionKind.IF_STATEMENT,
            ActionKind.ASSIGN,
        ]


class TestWhileLoops:
    def test_body_repeats_until_guard_false(self):
        trace = build_trace("i = 0\nwhile i < 3:\n    i += 1\nprint(i)", STRUCTURED)
        guards = [s for s in trace if s.action == ActionKind.WHILE_LOOP_START]
        assert [g.get("condition_result") for g in guards] == [True, True, True, False]
        assert [g.get("iteration") for g in guards] == [0, 1, 2, 3]
        assert trace.final_output == ["3"]
        assert trace.stats.loop_iterations == 3

    def test_false_guard_skips_body(self):
        trace = build_trace("i = 5\nwhile i < 3:\n    i += 1", STRUCTURED)
        assert _actions(trace) == [ActionKind.ASSIGN, ActionKind.WHILE_LOOP_START]
        assert trace.final_variables["i"] == 5

    def test_iteration_limit(self):
        config = TraceConfig(structured_control_flow=True, max_iterations=5)
        trace = build_trace("i = 0\nwhile True:\n    i += 1\nprint(i)", config)
        errors = [s for s in trace if s.action == ActionKind.ERROR]
        assert len(errors) == 1
        assert "iteration limit of 5" in errors[0].get("error")
        assert trace.final_output == ["5"]
        assert not trace.truncated

    def test_while_in_function(self):
        source = (
            "def count_down(n):\n"
            "    while n > 0:\n"
            "        n -= 1\n"
            "    return n\n"
            "r = count_down(4)"
        )
        trace = build_trace(source, STRUCTURED)
        assert trace.final_variables["r"] == 0
