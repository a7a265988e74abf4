"""
Minimal lexical view of Go source.

Not a parser: it only knows where comments, string literals and rune literals
start and end, so brace counting and pattern search ignore braces that live
inside them.
"""
from __future__ import annotations

from typing import Iterator, Optional, Tuple

LINE_COMMENT = "//"


def iter_code(content: str, start: int = 0) -> Iterator[Tuple[int, str]]:
    """Yield (offset, char) for every character at or after ``start`` that is live code."""
    i = 0
    n = len(content)
    while i < n:
        ch = content[i]
        if ch == "/" and content.startswith("//", i):
            nl = content.find("\n", i)
            i = n if nl == -1 else nl
            continue
        if ch == "/" and content.startswith("/*", i):
            end = content.find("*/", i + 2)
            i = n if end == -1 else end + 2
            continue
        if ch in "\"'":
            i = _skip_quoted(content, i, ch)
            continue
        if ch == "`":
            end = content.find("`", i + 1)
            i = n if end == -1 else end + 1
            continue
        if i >= start:
            yield i, ch
        i += 1


def _skip_quoted(content: str, i: int, quote: str) -> int:
    j = i + 1
    while j < len(content):
        c = content[j]
        if c == "\\":
            j += 2
            continue
        if c == quote or c == "\n":
            return j + 1
        j += 1
    return j


def is_code_offset(content: str, offset: int) -> bool:
    for i, _ in iter_code(content, offset):
        return i == offset
    return False


def find_in_code(content: str, pattern: str, start: int = 0) -> int:
    """First occurrence of ``pattern`` that begins in live code, or -1."""
    idx = content.find(pattern, start)
    while idx != -1:
        if is_code_offset(content, idx):
            return idx
        idx = content.find(pattern, idx + 1)
    return -1


def matching_brace(content: str, body_start: int) -> Optional[int]:
    """Offset of the ``}`` closing a ``{`` that ends right before ``body_start``.

    Depth starts at 1; returns None when the input ends first.
    """
    depth = 1
    for i, ch in iter_code(content, body_start):
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


def is_comment_line(line: str) -> bool:
    return line.strip().startswith(LINE_COMMENT)


def line_start(content: str, offset: int) -> int:
    return content.rfind("\n", 0, offset) + 1


def line_indent(content: str, offset: int) -> str:
    start = line_start(content, offset)
    end = start
    while end < len(content) and content[end] in " \t":
        end += 1
    return content[start:end]
