"""Tests for the line segmenter and its text helpers."""

import pytest
from pydantic import ValidationError

from stepwise.segmenter import (
    LogicalLine,
    bracket_balance,
    expand_inline_bodies,
    find_matching,
    find_top_level,
    is_blank_or_comment,
    join_continuation,
    segment,
    split_inline_body,
    split_top_level,
    strip_comment,
)


class TestSegment:
    def test_one_line_per_raw_line(self):
        lines = segment("x = 1\n\ny = 2")
        assert [line.text for line in lines] == ["x = 1", "", "y = 2"]
        assert [line.original_index for line in lines] == [0, 1, 2]

    def test_indent_and_trimmed(self):
        line = segment("    total += n  ")[0]
        assert line.indent == 4
        assert line.trimmed == "total += n"

    def test_tab_counts_as_one_column(self):
        assert segment("\tx = 1")[0].indent == 1

    def test_carriage_return_removed(self):
        lines = segment("a = 1\r\nb = 2\r\n")
        assert lines[0].text == "a = 1"
        assert lines[1].text == "b = 2"
        assert lines[2].text == ""

    def test_empty_source_gives_single_blank_line(self):
        lines = segment("")
        assert len(lines) == 1
        assert is_blank_or_comment(lines[0])

    def test_lines_are_frozen(self):
        line = segment("x = 1")[0]
        with pytest.raises(ValidationError):
            line.text = "y = 2"

    def test_str_uses_one_based_line_number(self):
        assert str(segment("x = 1")[0]) == "1: x = 1"


class TestCommentsAndBrackets:
    def test_strip_trailing_comment(self):
        assert strip_comment("x = 1  # set x") == "x = 1"

    def test_hash_inside_string_is_kept(self):
        assert strip_comment('s = "a # b"  # note') == 's = "a # b"'

    def test_comment_line_detected(self):
        assert is_blank_or_comment(segment("   # only a comment")[0])
        assert not is_blank_or_comment(segment("x = 1 # c")[0])

    def test_bracket_balance(self):
        assert bracket_balance("d = {") == 1
        assert bracket_balance("f([1, 2], {3: 4})") == 0
        assert bracket_balance("s = '('") == 0

    def test_find_matching(self):
        text = "f(a, (b + c))"
        assert find_matching(text, 1) == len(text) - 1
        assert find_matching(text, 5) == len(text) - 2
        assert find_matching("f(a", 1) == -1


class TestSplitTopLevel:
    def test_respects_nesting_and_quotes(self):
        assert split_top_level('1, [2, 3], "a,b", f(4, 5)') == [
            "1",
            "[2, 3]",
            '"a,b"',
            "f(4, 5)",
        ]

    def test_trailing_separator_dropped(self):
        assert split_top_level("a, b,") == ["a", "b"]

    def test_empty_text(self):
        assert split_top_level("") == []


class TestJoinContinuation:
    def test_balanced_line_unchanged(self):
        lines = segment("x = [1, 2]\ny = 3")
        line, end = join_continuation(lines, 0)
        assert line is lines[0]
        assert end == 0

    def test_multi_line_dict_joined(self):
        lines = segment('student = {\n    "name": "Alice",  # who\n    "age": 21\n}\nz = 1')
        line, end = join_continuation(lines, 0)
        assert end == 3
        assert line.original_index == 0
        assert line.trimmed == 'student = { "name": "Alice", "age": 21 }'

    def test_unterminated_line_left_alone(self):
        lines = segment("x = [1,\n2")
        line, end = join_continuation(lines, 0)
        assert line is lines[0]
        assert end == 0

    def test_joined_line_keeps_indent(self):
        lines = segment("    print(1,\n          2)")
        line, end = join_continuation(lines, 0)
        assert isinstance(line, LogicalLine)
        assert line.indent == 4
        assert line.text == "    print(1, 2)"
        assert end == 1


class TestInlineBodies:
    def test_header_and_body_are_split(self):
        header, body = split_inline_body(segment("  while x: x -= 1")[0])
        assert header.trimmed == "while x:"
        assert header.indent == 2
        assert body.trimmed == "x -= 1"
        assert body.indent == 3
        assert header.original_index == body.original_index == 0

    def test_colons_inside_brackets_are_skipped(self):
        header, body = split_inline_body(segment("for k in {1: 2}: print(k[0:1])")[0])
        assert header.trimmed == "for k in {1: 2}:"
        assert body.trimmed == "print(k[0:1])"

    @pytest.mark.parametrize("text", ["else:", "x = {1: 2}", "if ok:  # note", "elsewhere = 1"])
    def test_lines_left_alone(self, text):
        assert split_inline_body(segment(text)[0]) is None

    def test_expand_keeps_other_lines(self):
        lines = expand_inline_bodies(segment("a = 1\nif a: b = 2\nc = 3"))
        assert [line.trimmed for line in lines] == ["a = 1", "if a:", "b = 2", "c = 3"]
        assert [line.original_index for line in lines] == [0, 1, 1, 2]

    def test_find_top_level(self):
        assert find_top_level("f(a: b): c", ":") == 7
        assert find_top_level("'a:b'", ":") == -1
