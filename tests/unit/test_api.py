"""Tests for the composable API functions."""

import json

import pytest

from stepwise import constants
from stepwise.api import (
    build_trace,
    describe_step,
    dump_trace,
    evaluate_expression,
    segment_source,
    trace_to_json,
)
from stepwise.errors import ParseError, UndefinedNameError
from stepwise.trace_types import ActionKind

ADD_SOURCE = "def add(a, b):\n    return a + b\n"


class TestBuildTrace:
    def test_rejects_non_string_source(self):
        with pytest.raises(ParseError):
            build_trace(b"x = 1")

    def test_empty_source(self):
        trace = build_trace("")
        assert len(trace) == 0
        assert trace.final_variables == {}
        assert trace.final_output == []

    def test_demo_source_runs_cleanly(self):
        trace = build_trace(constants.DEMO_SOURCE)
        assert trace.stats.errors == 0
        assert trace.final_output[-1] == "'Final total:' 15"
        assert trace.final_variables["greeting"] == "Hello, Bob!"
        assert trace.final_variables["squares"] == [0, 1, 4, 9, 16]


class TestEvaluateExpression:
    def test_plain_expression(self):
        assert evaluate_expression("x ** 2 + 1", {"x": 3}) == 10

    def test_calls_functions_from_env(self):
        env = build_trace(ADD_SOURCE).final_variables
        assert evaluate_expression("add(1, 2) * 10", env) == 30

    def test_env_is_not_modified(self):
        env = {"xs": [1, 2]}
        evaluate_expression("[x for x in xs]", env)
        assert env == {"xs": [1, 2]}

    def test_env_is_not_mutated_by_methods(self):
        env = {"xs": [1, 2]}
        assert evaluate_expression("xs.append(3)", env) is None
        assert env == {"xs": [1, 2]}

    def test_unbound_name(self):
        with pytest.raises(UndefinedNameError):
            evaluate_expression("y + 1")


class TestSegmentSource:
    def test_one_line_per_raw_line(self):
        lines = segment_source("a = 1\n\n    b = 2")
        assert [line.original_index for line in lines] == [0, 1, 2]
        assert lines[2].indent == 4


class TestRendering:
    def test_dump_trace_lists_steps_and_stats(self):
        text = dump_trace(build_trace("x = 1\nprint(x)"))
        rows = text.splitlines()
        assert rows[0].startswith("[   0] line 1")
        assert "assign" in rows[0] and "x = 1" in rows[0]
        assert "print" in rows[1]
        assert "2 steps" in rows[-1]

    def test_dump_trace_with_variables(self):
        text = dump_trace(build_trace("x = 1"), show_variables=True)
        assert "vars: {x=1}" in text

    def test_truncation_is_flagged(self):
        from stepwise.run_types import TraceConfig

        text = dump_trace(build_trace("for i in range(9):\n    y = i", TraceConfig(max_steps=3)))
        assert text.endswith("(truncated)")

    def test_every_action_has_a_description(self):
        trace = build_trace(constants.DEMO_SOURCE + "\nz = nothing\n")
        for step in trace:
            assert isinstance(describe_step(step), str)
        assert trace.step_at(len(trace) - 1).action == ActionKind.ERROR

    def test_trace_to_json_round_trips_through_json(self):
        data = json.loads(trace_to_json(build_trace("x = [1, 2]\nprint(x)")))
        assert data["lines"] == ["x = [1, 2]", "print(x)"]
        assert data["steps"][0]["action"] == "assign"
        assert data["steps"][1]["output_text"] == "[1, 2]"
        assert data["stats"]["steps"] == 2
        assert data["truncated"] is False

    def test_self_containing_containers_serialize(self):
        source = "a = [1]\na.append(a)\nd = {}\nd['me'] = d"
        data = json.loads(trace_to_json(build_trace(source)))
        final = data["steps"][-1]["variables"]
        assert final["a"] == [1, "[...]"]
        assert final["d"] == {"me": "{...}"}
