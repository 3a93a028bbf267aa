"""Tests for the stepwise command-line entry point."""

import json

import pytest

from stepwise.cli import main

SOURCE = "x = 2\ny = x * 3\nprint(y)\n"


@pytest.fixture
def script(tmp_path):
    path = tmp_path / "prog.py"
    path.write_text(SOURCE)
    return str(path)


class TestListing:
    def test_prints_trace_variables_and_output(self, script, capsys):
        assert main([script]) == 0
        out = capsys.readouterr().out
        assert "═══ Trace ═══" in out
        assert "y = 6" in out
        assert '"y": 6' in out
        assert out.rstrip().endswith("6")

    def test_demo_mode_without_file(self, capsys):
        assert main([]) == 0
        out = capsys.readouterr().out
        assert out.startswith("No file provided")
        assert "'Final total:' 15" in out

    def test_structured_flag(self, tmp_path, capsys):
        path = tmp_path / "branch.py"
        path.write_text("if False:\n    x = 1\nelse:\n    x = 2\n")
        assert main(["--structured", "--json", str(path)]) == 0
        data = json.loads(capsys.readouterr().out)
        assert [s["action"] for s in data["steps"]] == ["if_statement", "assign"]


class TestJson:
    def test_whole_trace(self, script, capsys):
        assert main(["--json", script]) == 0
        data = json.loads(capsys.readouterr().out)
        assert len(data["steps"]) == 3
        assert data["steps"][2]["output"] == ["6"]

    def test_max_steps(self, script, capsys):
        assert main(["--json", "-n", "1", script]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["truncated"] is True
        assert data["steps"][-1]["action"] == "error"


class TestSingleStep:
    def test_text(self, script, capsys):
        assert main(["--step", "1", script]) == 0
        out = capsys.readouterr().out
        assert out.startswith("step 1 (line 2): assign")
        assert "y = 6" in out

    def test_json(self, script, capsys):
        assert main(["--step", "0", "--json", script]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["variable"] == "x"
        assert data["value"] == 2

    def test_out_of_range(self, script, capsys):
        assert main(["--step", "99", script]) == 2
        assert "out of range" in capsys.readouterr().err
