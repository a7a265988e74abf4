"""
Go type expressions accepted in field specifications.

validate_type() turns a token such as ``map[string][]*User`` into a small tree of
frozen dataclasses. Unknown identifiers are accepted as user-defined types; the
only semantic rule enforced is that map keys must be comparable.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Tuple, Union

from .errors import ErrorKind, TypeValidationError

MAX_TYPE_DEPTH = 32

BASIC_TYPES = frozenset({
    "string", "bool", "byte", "rune", "error",
    "int", "int8", "int16", "int32", "int64",
    "uint", "uint8", "uint16", "uint32", "uint64", "uintptr",
    "float32", "float64", "complex64", "complex128",
    "time.Time",
})

GO_KEYWORDS = frozenset({
    "break", "case", "chan", "const", "continue", "default", "defer", "else",
    "fallthrough", "for", "func", "go", "goto", "if", "import", "interface",
    "map", "package", "range", "return", "select", "struct", "switch", "type", "var",
})

IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
DIGITS_RE = re.compile(r"^[0-9]+$")

PAIRS = {"[": "]", "(": ")", "{": "}"}
CLOSERS = {v: k for k, v in PAIRS.items()}

# ---------------- variants ----------------

@dataclass(frozen=True)
class Basic:
    name: str

    comparable = True

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Slice:
    inner: "TypeExpression"

    comparable = False

    def __str__(self) -> str:
        return f"[]{self.inner}"


@dataclass(frozen=True)
class Array:
    size: int
    inner: "TypeExpression"

    @property
    def comparable(self) -> bool:
        return self.inner.comparable

    def __str__(self) -> str:
        return f"[{self.size}]{self.inner}"


@dataclass(frozen=True)
class Pointer:
    inner: "TypeExpression"

    comparable = True

    def __str__(self) -> str:
        return f"*{self.inner}"


@dataclass(frozen=True)
class Map:
    key: "TypeExpression"
    value: "TypeExpression"

    comparable = False

    def __str__(self) -> str:
        return f"map[{self.key}]{self.value}"


@dataclass(frozen=True)
class Channel:
    direction: str  # both | send | recv
    inner: "TypeExpression"

    comparable = True

    def __str__(self) -> str:
        if self.direction == "recv":
            return f"<-chan {self.inner}"
        if self.direction == "send":
            return f"chan<- {self.inner}"
        # "chan <-chan T" would read back as a send channel
        if isinstance(self.inner, Channel) and self.inner.direction == "recv":
            return f"chan ({self.inner})"
        return f"chan {self.inner}"


@dataclass(frozen=True)
class Function:
    params: Tuple["TypeExpression", ...] = ()
    results: Tuple["TypeExpression", ...] = ()
    variadic: bool = False

    comparable = False

    def __str__(self) -> str:
        params = [str(x) for x in self.params]
        if self.variadic and params:
            params[-1] = "..." + params[-1]
        out = "func(" + ", ".join(params) + ")"
        if len(self.results) == 1:
            out += f" {self.results[0]}"
        elif self.results:
            out += " (" + ", ".join(str(x) for x in self.results) + ")"
        return out


@dataclass(frozen=True)
class Interface:
    comparable = True

    def __str__(self) -> str:
        return "interface{}"


@dataclass(frozen=True)
class Qualified:
    package: str
    name: str
    args: Tuple["TypeExpression", ...] = ()

    comparable = True

    def __str__(self) -> str:
        return f"{self.package}.{self.name}{_render_args(self.args)}"


@dataclass(frozen=True)
class Custom:
    name: str
    args: Tuple["TypeExpression", ...] = ()

    comparable = True

    def __str__(self) -> str:
        return f"{self.name}{_render_args(self.args)}"


TypeExpression = Union[Basic, Slice, Array, Pointer, Map, Channel, Function, Interface, Qualified, Custom]


def _render_args(args: Tuple["TypeExpression", ...]) -> str:
    return "[" + ", ".join(str(a) for a in args) + "]" if args else ""

# ---------------- scanning helpers ----------------

def split_top_level(text: str, sep: str = ",") -> List[str]:
    """Split on ``sep`` only where no bracket, paren or brace is open."""
    parts: List[str] = []
    depth = 0
    start = 0
    for i, ch in enumerate(text):
        if ch in PAIRS:
            depth += 1
        elif ch in CLOSERS:
            depth = max(0, depth - 1)
        elif ch == sep and depth == 0:
            parts.append(text[start:i])
            start = i + 1
    parts.append(text[start:])
    return parts


def _matching(token: str, open_idx: int) -> int:
    stack: List[str] = []
    for i in range(open_idx, len(token)):
        ch = token[i]
        if ch in PAIRS:
            stack.append(ch)
        elif ch in CLOSERS:
            if not stack or stack[-1] != CLOSERS[ch]:
                raise TypeValidationError(ErrorKind.SYNTAX_ERROR, token, f"unexpected '{ch}' in '{token}'")
            stack.pop()
            if not stack:
                return i
    raise TypeValidationError(ErrorKind.SYNTAX_ERROR, token, f"unbalanced brackets in '{token}'")


def _starts_with_keyword(token: str, kw: str) -> bool:
    if not token.startswith(kw):
        return False
    rest = token[len(kw):]
    return not rest or not (rest[0].isalnum() or rest[0] == "_")

# ---------------- parser ----------------

def validate_type(token: str) -> TypeExpression:
    """Parse one type token. Raises TypeValidationError."""
    if token is None or not token.strip():
        raise TypeValidationError(ErrorKind.EMPTY_TYPE, token or "", "type cannot be empty")
    return _parse(token.strip(), 0)


def is_valid_type(token: str) -> bool:
    try:
        validate_type(token)
    except TypeValidationError:
        return False
    return True


def _syntax(token: str, detail: str) -> TypeValidationError:
    return TypeValidationError(ErrorKind.SYNTAX_ERROR, token, detail)


def _parse(token: str, depth: int) -> TypeExpression:
    if depth > MAX_TYPE_DEPTH:
        raise _syntax(token, f"type nesting deeper than {MAX_TYPE_DEPTH}")
    t = token.strip()
    if not t:
        raise _syntax(token, "missing element type")

    if t in BASIC_TYPES:
        return Basic(t)
    if t in ("interface{}", "any"):
        return Interface()

    if t.startswith("("):
        if _matching(t, 0) != len(t) - 1:
            raise _syntax(t, f"unexpected text after ')' in '{t}'")
        return _parse(t[1:-1], depth + 1)

    if t.startswith("[]"):
        return Slice(_parse(t[2:], depth + 1))

    if t.startswith("["):
        close = _matching(t, 0)
        size = t[1:close].strip()
        if not DIGITS_RE.match(size):
            raise TypeValidationError(ErrorKind.INVALID_ARRAY_SIZE, t, f"array size must be digits, got '{size}'")
        return Array(int(size), _parse(t[close + 1:], depth + 1))

    if t.startswith("*"):
        return Pointer(_parse(t[1:], depth + 1))

    if t.startswith("map["):
        close = _matching(t, 3)
        key = _parse(t[4:close], depth + 1)
        value = _parse(t[close + 1:], depth + 1)
        if not key.comparable:
            raise TypeValidationError(
                ErrorKind.NON_COMPARABLE_MAP_KEY, t,
                f"map key '{key}' is not comparable (slices, maps and funcs cannot be keys)",
            )
        return Map(key, value)

    if t.startswith("<-"):
        rest = t[2:].lstrip()
        if not _starts_with_keyword(rest, "chan"):
            raise _syntax(t, "'<-' must be followed by 'chan'")
        return Channel("recv", _parse(rest[4:], depth + 1))

    if _starts_with_keyword(t, "chan"):
        rest = t[4:].lstrip()
        if rest.startswith("<-"):
            return Channel("send", _parse(rest[2:], depth + 1))
        return Channel("both", _parse(rest, depth + 1))

    if _starts_with_keyword(t, "func"):
        return _parse_func(t, depth)

    if _starts_with_keyword(t, "interface"):
        raise _syntax(t, "only the empty interface{} is supported")

    return _parse_named(t, depth)


def _parse_func(t: str, depth: int) -> Function:
    rest = t[4:].lstrip()
    if not rest.startswith("("):
        raise _syntax(t, "expected '(' after func")
    close = _matching(rest, 0)

    params: List[TypeExpression] = []
    variadic = False
    inner = rest[1:close]
    if inner.strip():
        raw = split_top_level(inner)
        for i, part in enumerate(raw):
            part = part.strip()
            if part.startswith("..."):
                if i != len(raw) - 1:
                    raise _syntax(t, "only the last parameter can be variadic")
                variadic = True
                part = part[3:]
            params.append(_parse(part, depth + 1))

    results: List[TypeExpression] = []
    tail = rest[close + 1:].strip()
    if tail.startswith("(") and _matching(tail, 0) == len(tail) - 1:
        for part in split_top_level(tail[1:-1]):
            results.append(_parse(part, depth + 1))
    elif tail:
        results.append(_parse(tail, depth + 1))

    return Function(tuple(params), tuple(results), variadic)


def _parse_named(t: str, depth: int) -> TypeExpression:
    name = t
    args: Tuple[TypeExpression, ...] = ()
    if "[" in t and t.endswith("]"):
        idx = t.index("[")
        if _matching(t, idx) != len(t) - 1:
            raise _syntax(t, f"malformed type arguments in '{t}'")
        name = t[:idx]
        args = tuple(_parse(a, depth + 1) for a in split_top_level(t[idx + 1:-1]))
    elif any(ch in t for ch in "[](){}"):
        raise _syntax(t, f"unbalanced brackets in '{t}'")

    if name.count(".") == 1:
        pkg, ident = name.split(".")
        if IDENT_RE.match(pkg) and IDENT_RE.match(ident) and pkg not in GO_KEYWORDS:
            return Qualified(pkg, ident, args)
    elif "." not in name and IDENT_RE.match(name):
        if name in GO_KEYWORDS:
            raise _syntax(t, f"'{name}' is a Go keyword, not a type")
        return Custom(name, args)

    raise _syntax(t, f"'{t}' is not a valid Go type")
