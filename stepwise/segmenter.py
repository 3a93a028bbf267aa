"""Line Segmenter — raw source text into logical lines, plus text helpers."""

from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict

from .constants import BLOCK_KEYWORDS, COMMENT_PREFIX, HEADER_SUFFIX

_OPENERS = "([{"
_CLOSERS = ")]}"
_QUOTES = "'\""
_WORD_RE = re.compile(r"[A-Za-z_]\w*")


class LogicalLine(BaseModel):
    """One source line with its stable 0-based index and indentation width."""

    model_config = ConfigDict(frozen=True)

    original_index: int
    text: str
    trimmed: str
    indent: int

    def __str__(self) -> str:
        return f"{self.original_index + 1}: {self.text}"


def segment(source: str) -> list[LogicalLine]:
    """Split *source* into one LogicalLine per raw line, dropping nothing."""
    lines: list[LogicalLine] = []
    for i, raw in enumerate(source.split("\n")):
        text = raw[:-1] if raw.endswith("\r") else raw
        stripped = text.lstrip()
        lines.append(
            LogicalLine(
                original_index=i,
                text=text,
                trimmed=text.strip(),
                indent=len(text) - len(stripped),
            )
        )
    return lines


def is_blank_or_comment(line: LogicalLine) -> bool:
    return line.trimmed == "" or line.trimmed.startswith(COMMENT_PREFIX)


def _scan(text: str):
    """Yield ``(index, char, in_string)`` for *text*, tracking quotes and escapes."""
    quote = ""
    escaped = False
    for i, ch in enumerate(text):
        if quote:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = ""
                yield i, ch, True
                continue
            yield i, ch, True
            continue
        if ch in _QUOTES:
            quote = ch
            yield i, ch, True
            continue
        yield i, ch, False


def strip_comment(text: str) -> str:
    """Remove a trailing ``# ...`` comment that is not inside a string literal."""
    for i, ch, in_string in _scan(text):
        if ch == COMMENT_PREFIX and not in_string:
            return text[:i].rstrip()
    return text


def bracket_balance(text: str) -> int:
    """Return opened-minus-closed bracket count outside string literals."""
    depth = 0
    for _i, ch, in_string in _scan(text):
        if in_string:
            continue
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
    return depth


def split_top_level(text: str, sep: str = ",") -> list[str]:
    """Split *text* on *sep* at bracket depth zero, outside string literals.

    Empty trailing segments are dropped, so ``"a, b,"`` gives ``["a", "b"]``.
    """
    parts: list[str] = []
    depth = 0
    start = 0
    for i, ch, in_string in _scan(text):
        if in_string:
            continue
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
        elif ch == sep and depth == 0:
            parts.append(text[start:i].strip())
            start = i + 1
    tail = text[start:].strip()
    if tail:
        parts.append(tail)
    return parts


def find_matching(text: str, open_index: int) -> int:
    """Return the index of the bracket closing the one at *open_index*, or -1."""
    depth = 0
    for i, ch, in_string in _scan(text):
        if i < open_index or in_string:
            continue
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
            if depth == 0:
                return i
    return -1


def join_continuation(lines: list[LogicalLine], start: int) -> tuple[LogicalLine, int]:
    """Join ``lines[start]`` with following lines until its brackets balance.

    Returns the (possibly joined) line, reported at the first line's index,
    and the index of the last physical line consumed.  A line that is
    already balanced, or that never balances, is returned unchanged.
    """
    first = lines[start]
    code = strip_comment(first.trimmed)
    if bracket_balance(code) <= 0:
        return first, start

    parts = [code]
    depth = bracket_balance(code)
    end = start
    while depth > 0 and end + 1 < len(lines):
        end += 1
        piece = strip_comment(lines[end].trimmed)
        if piece:
            parts.append(piece)
        depth = bracket_balance(" ".join(parts))
    if depth != 0:
        return first, start

    joined = " ".join(parts)
    return (
        LogicalLine(
            original_index=first.original_index,
            text=first.text[: first.indent] + joined,
            trimmed=joined,
            indent=first.indent,
        ),
        end,
    )


def find_top_level(text: str, target: str) -> int:
    """Index of the first *target* char at bracket depth zero outside strings, or -1."""
    depth = 0
    for i, ch, in_string in _scan(text):
        if in_string:
            continue
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
        elif ch == target and depth == 0:
            return i
    return -1


def split_inline_body(line: LogicalLine) -> Optional[tuple[LogicalLine, LogicalLine]]:
    """Split ``for x in xs: body`` into a header line and a deeper body line.

    Both halves keep the line's ``original_index``.  Returns None when the
    line is not a block header or has nothing after its colon.
    """
    code = strip_comment(line.trimmed)
    word = _WORD_RE.match(code)
    if word is None or word.group(0) not in BLOCK_KEYWORDS:
        return None
    colon = find_top_level(code, HEADER_SUFFIX)
    if colon < 0:
        return None
    body = code[colon + 1 :].strip()
    if not body:
        return None
    header = code[: colon + 1]
    pad = line.text[: line.indent]
    return (
        LogicalLine(
            original_index=line.original_index,
            text=pad + header,
            trimmed=header,
            indent=line.indent,
        ),
        LogicalLine(
            original_index=line.original_index,
            text=pad + " " + body,
            trimmed=body,
            indent=line.indent + 1,
        ),
    )


def expand_inline_bodies(lines: list[LogicalLine]) -> list[LogicalLine]:
    """Move every one-line block body onto its own, deeper-indented line."""
    expanded: list[LogicalLine] = []
    for line in lines:
        parts = split_inline_body(line)
        expanded.extend(parts if parts is not None else (line,))
    return expanded
