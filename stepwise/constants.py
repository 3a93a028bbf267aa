"""Named constants — eliminates magic strings across the codebase."""

from __future__ import annotations

SOURCE_LANGUAGE = "python"

COMMENT_PREFIX = "#"
HEADER_SUFFIX = ":"

BLOCK_KEYWORDS: frozenset[str] = frozenset({"def", "for", "if", "elif", "else", "while"})

KEYWORD_IF = "if"
KEYWORD_ELIF = "elif"
KEYWORD_ELSE = "else"
KEYWORD_WHILE = "while"
KEYWORD_RETURN = "return"

PRINT_FUNCTION = "print"

# Augmented assignment operators, longest first so "//=" wins over "/=".
AUGMENTED_OPERATORS: tuple[str, ...] = ("//", "**", "+", "-", "*", "/", "%")

LIST_MUTATORS: frozenset[str] = frozenset(
    {"append", "extend", "remove", "pop", "insert", "clear", "sort", "reverse"}
)
LIST_QUERIES: frozenset[str] = frozenset({"index", "count"})
DICT_MUTATORS: frozenset[str] = frozenset({"update", "pop", "setdefault", "clear"})
DICT_QUERIES: frozenset[str] = frozenset({"get", "keys", "values", "items"})

SETITEM_OPERATION = "setitem"

MAX_INT_EXPONENT = 10_000
MAX_SEQUENCE_LENGTH = 1_000_000

DEFAULT_MAX_STEPS = 10_000
DEFAULT_MAX_STATEMENTS = 200_000
DEFAULT_MAX_ITERATIONS = 10_000
DEFAULT_MAX_CALL_DEPTH = 40

DEMO_SOURCE = """\
# Python Code Visualizer Demo
numbers = [1, 2, 3]
print("Initial array:", numbers)

# Multi-line dictionary
student = {
    "name": "Alice",
    "age": 21,
    "courses": ["Math", "Physics"]
}
print("Student:", student)

numbers.append(4)
numbers.append(5)
print("After adding 4 and 5:", numbers)

def greet(name):
    message = "Hello, " + name + "!"
    return message

greeting = greet("Bob")
print("Greeting:", greeting)

squares = [x**2 for x in range(5)]
evens = [x for x in range(10) if x % 2 == 0]
print("Squares:", squares, "Evens:", evens)

total = 0
for num in numbers:
    total += num
    print("Current sum:", total)

print("Final total:", total)
"""
