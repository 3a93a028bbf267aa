"""Tests for list, dict and string methods and their summaries."""

import pytest

from stepwise.errors import EvalError, KeyLookupError, ValueTypeError
from stepwise.methods import Methods


class TestListMethods:
    def test_append(self):
        nums = [1, 2]
        outcome = Methods.call(nums, "append", [3], "nums")
        assert nums == [1, 2, 3]
        assert outcome.result is None
        assert outcome.summary == "Appended 3 to nums"

    def test_extend(self):
        nums = [1]
        outcome = Methods.call(nums, "extend", [[2, 3]], "nums")
        assert nums == [1, 2, 3]
        assert outcome.summary == "Extended nums with [2, 3]"

    def test_remove(self):
        words = ["a", "b", "a"]
        outcome = Methods.call(words, "remove", ["a"], "words")
        assert words == ["b", "a"]
        assert outcome.summary == "Removed first occurrence of 'a' from words"

    def test_remove_missing(self):
        with pytest.raises(EvalError, match="x not in list"):
            Methods.call([1], "remove", [2], "nums")

    def test_pop_last(self):
        nums = [1, 2]
        outcome = Methods.call(nums, "pop", [], "nums")
        assert outcome.result == 2
        assert outcome.summary == "Popped last element (2) from nums"

    def test_pop_index(self):
        nums = [5, 6, 7]
        outcome = Methods.call(nums, "pop", [0], "nums")
        assert nums == [6, 7]
        assert outcome.summary == "Popped element at index 0 (5) from nums"

    def test_pop_empty(self):
        with pytest.raises(EvalError, match="pop from empty list"):
            Methods.call([], "pop", [], "nums")

    def test_insert(self):
        nums = [1, 3]
        outcome = Methods.call(nums, "insert", [1, 2], "nums")
        assert nums == [1, 2, 3]
        assert outcome.summary == "Inserted 2 at index 1 in nums"

    def test_sort_reverse_clear(self):
        nums = [3, 1, 2]
        Methods.call(nums, "sort", [], "nums")
        assert nums == [1, 2, 3]
        Methods.call(nums, "reverse", [], "nums")
        assert nums == [3, 2, 1]
        Methods.call(nums, "clear", [], "nums")
        assert nums == []

    def test_sort_mixed_types(self):
        with pytest.raises(ValueTypeError):
            Methods.call([1, "a"], "sort", [], "xs")

    def test_queries(self):
        assert Methods.call([4, 5, 4], "index", [5], "xs").result == 1
        assert Methods.call([4, 5, 4], "count", [4], "xs").result == 2

    def test_wrong_arity(self):
        with pytest.raises(EvalError, match="append"):
            Methods.call([], "append", [], "xs")


class TestDictMethods:
    def test_get_with_and_without_default(self):
        d = {"a": 1}
        assert Methods.call(d, "get", ["a"], "d").result == 1
        assert Methods.call(d, "get", ["z"], "d").result is None
        assert Methods.call(d, "get", ["z", 0], "d").result == 0

    def test_views_are_lists(self):
        d = {"a": 1, "b": 2}
        assert Methods.call(d, "keys", [], "d").result == ["a", "b"]
        assert Methods.call(d, "values", [], "d").result == [1, 2]
        assert Methods.call(d, "items", [], "d").result == [["a", 1], ["b", 2]]

    def test_update(self):
        d = {"a": 1}
        Methods.call(d, "update", [{"b": 2}], "d")
        assert d == {"a": 1, "b": 2}

    def test_pop(self):
        d = {"a": 1}
        assert Methods.call(d, "pop", ["a"], "d").result == 1
        assert d == {}
        assert Methods.call(d, "pop", ["a", "dflt"], "d").result == "dflt"

    def test_pop_missing_without_default(self):
        with pytest.raises(KeyLookupError):
            Methods.call({}, "pop", ["a"], "d")

    def test_setdefault(self):
        d = {}
        assert Methods.call(d, "setdefault", ["k", []], "d").result == []
        assert d == {"k": []}

    def test_unhashable_key(self):
        with pytest.raises(ValueTypeError, match="unhashable"):
            Methods.call({}, "get", [[1]], "d")


class TestStringMethods:
    def test_common_methods(self):
        assert Methods.call("  Hi ", "strip", []).result == "Hi"
        assert Methods.call("a b", "split", []).result == ["a", "b"]
        assert Methods.call("hello", "replace", ["l", "L"]).result == "heLLo"
        assert Methods.call("hello", "startswith", ["he"]).result is True
        assert Methods.call("hello", "find", ["z"]).result == -1
        assert Methods.call("hello world", "title", []).result == "Hello World"
        assert Methods.call("123", "isdigit", []).result is True

    def test_join_requires_strings(self):
        with pytest.raises(ValueTypeError, match="expected str instance, int found"):
            Methods.call(",", "join", [["a", 1]])

    def test_strings_are_not_mutated(self):
        with pytest.raises(ValueTypeError, match="'str' object has no attribute 'append'"):
            Methods.call("abc", "append", ["d"])
