"""Reading node and gateway settings from #define-style configuration headers."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

_DEFINE = re.compile(r"#\s*define\s+([A-Za-z_]\w*)(?:\s+(.*))?$")
_UNDEF = re.compile(r"#\s*undef\s+([A-Za-z_]\w*)")
_LEXEME = re.compile(
    r"\s*(?:(0[xX][0-9a-fA-F]+|\d+)[uUlL]*|([A-Za-z_]\w*)|(<<|>>|[()+\-*/%|&^~]))"
)
_BINARY = {"|": 1, "^": 2, "&": 3, "<<": 4, ">>": 4, "+": 5, "-": 5, "*": 6, "/": 6, "%": 6}


def _strip_comments(text: str) -> str:
    """Remove // and /* */ comments that are not inside string or char literals."""
    out = []
    i = 0
    quote = None
    while i < len(text):
        ch = text[i]
        if quote:
            out.append(ch)
            if ch == "\\" and i + 1 < len(text):
                out.append(text[i + 1])
                i += 2
                continue
            if ch == quote:
                quote = None
            i += 1
        elif ch in "\"'":
            quote = ch
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = len(text) if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            out.append(" ")
            i = len(text) if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _tokenize(expr: str) -> list[Union[int, str]]:
    tokens: list[Union[int, str]] = []
    pos = 0
    expr = expr.rstrip()
    while pos < len(expr):
        match = _LEXEME.match(expr, pos)
        if not match:
            raise ValueError(f"cannot evaluate {expr!r}")
        number, name, op = match.groups()
        if number is not None:
            tokens.append(int(number, 0) if not number.startswith("0") or number == "0"
                          or number[1] in "xX" else int(number, 8))
        elif name is not None:
            tokens.append("$" + name)
        else:
            tokens.append(op)
        pos = match.end()
    return tokens


def _c_div(a: int, b: int) -> int:
    if b == 0:
        raise ValueError("division by zero")
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


@dataclass
class Config:
    """The names defined by a configuration header and their raw values."""

    defines: dict[str, str] = field(default_factory=dict)

    def has(self, name: str) -> bool:
        """Whether name is defined (with or without a value)."""
        return name in self.defines

    def __contains__(self, name: object) -> bool:
        return name in self.defines

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """The value of name, without quotes if it is a string literal."""
        if name not in self.defines:
            return default
        value = self.defines[name]
        if len(value) >= 2 and value[0] == value[-1] == '"':
            return value[1:-1]
        return value

    def get_int(self, name: str, default: Optional[int] = None) -> Optional[int]:
        """The value of name evaluated as an integer constant expression."""
        if name not in self.defines:
            return default
        return self._evaluate_name(name, frozenset())

    def _evaluate_name(self, name: str, seen: frozenset) -> int:
        if name in seen:
            raise ValueError(f"{name} refers to itself")
        if name not in self.defines:
            raise ValueError(f"{name} is not defined")
        value = self.defines[name]
        if not value.strip():
            raise ValueError(f"{name} has no value")
        tokens = _tokenize(value)
        result, pos = self._expression(tokens, 0, 1, seen | {name})
        if pos != len(tokens):
            raise ValueError(f"cannot evaluate {value!r}")
        return result

    def _expression(self, tokens, pos, min_prec, seen):
        left, pos = self._unary(tokens, pos, seen)
        while pos < len(tokens):
            op = tokens[pos]
            prec = _BINARY.get(op) if isinstance(op, str) else None
            if prec is None or prec < min_prec:
                break
            right, pos = self._expression(tokens, pos + 1, prec + 1, seen)
            left = self._apply(op, left, right)
        return left, pos

    def _unary(self, tokens, pos, seen):
        if pos >= len(tokens):
            raise ValueError("unexpected end of expression")
        item = tokens[pos]
        if item == "-":
            value, pos = self._unary(tokens, pos + 1, seen)
            return -value, pos
        if item == "+":
            return self._unary(tokens, pos + 1, seen)
        if item == "~":
            value, pos = self._unary(tokens, pos + 1, seen)
            return ~value, pos
        if item == "(":
            value, pos = self._expression(tokens, pos + 1, 1, seen)
            if pos >= len(tokens) or tokens[pos] != ")":
                raise ValueError("unbalanced parentheses")
            return value, pos + 1
        if isinstance(item, int):
            return item, pos + 1
        if isinstance(item, str) and item.startswith("$"):
            return self._evaluate_name(item[1:], seen), pos + 1
        raise ValueError(f"unexpected symbol {item!r}")

    @staticmethod
    def _apply(op: str, a: int, b: int) -> int:
        if op == "+":
            return a + b
        if op == "-":
            return a - b
        if op == "*":
            return a * b
        if op == "/":
            return _c_div(a, b)
        if op == "%":
            return a - _c_div(a, b) * b
        if op == "<<":
            return a << b
        if op == ">>":
            return a >> b
        if op == "&":
            return a & b
        if op == "^":
            return a ^ b
        return a | b


def parse_config(text: str) -> Config:
    """Collect the #define and #undef directives of a configuration header."""
    text = re.sub(r"\\\r?\n", " ", text)
    text = _strip_comments(text)
    defines: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        match = _DEFINE.match(line)
        if match:
            defines[match.group(1)] = (match.group(2) or "").strip()
            continue
        match = _UNDEF.match(line)
        if match:
            defines.pop(match.group(1), None)
    return Config(defines=defines)


def load_config(path: Union[str, Path]) -> Config:
    """Read and parse a configuration header file."""
    return parse_config(Path(path).read_text(encoding="utf-8"))