"""
Minimal ATerm reader for Nix derivation files.

Grammar covered (everything a ``.drv`` file uses):

    term   := IDENT "(" [term ("," term)*] ")" | "(" ... ")" | "[" ... "]" | STRING
    STRING := '"' (escape | char)* '"'

Constructor applications come back as ``Constructor``, tuples as Python
tuples, lists as Python lists and strings as ``str``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

_ESCAPES: Final[dict[str, str]] = {
    '"': '"',
    "\\": "\\",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}


class ATermSyntaxError(ValueError):
    """Raised when input is not a well-formed ATerm."""

    def __init__(self, message: str, offset: int) -> None:
        self.offset = offset
        super().__init__(f"{message} at offset {offset}")


@dataclass(frozen=True, slots=True)
class Constructor:
    name: str
    args: tuple[ATerm, ...]


ATerm = str | tuple["ATerm", ...] | list["ATerm"] | Constructor


def parse_aterm(text: str) -> ATerm:
    """Parse a complete ATerm document. Trailing whitespace is allowed, trailing data is not."""

    reader = _Reader(text)
    term = reader.term()
    reader.skip_whitespace()
    if not reader.at_end():
        raise ATermSyntaxError("unexpected trailing data", reader.pos)
    return term


class _Reader:
    __slots__ = ("pos", "text")

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def skip_whitespace(self) -> None:
        while not self.at_end() and self.text[self.pos].isspace():
            self.pos += 1

    def peek(self) -> str:
        if self.at_end():
            raise ATermSyntaxError("unexpected end of input", self.pos)
        return self.text[self.pos]

    def expect(self, char: str) -> None:
        self.skip_whitespace()
        if self.peek() != char:
            raise ATermSyntaxError(f"expected {char!r}, found {self.peek()!r}", self.pos)
        self.pos += 1

    def term(self) -> ATerm:
        self.skip_whitespace()
        char = self.peek()
        if char == '"':
            return self.string()
        if char == "(":
            return tuple(self.sequence("(", ")"))
        if char == "[":
            return self.sequence("[", "]")
        if char.isalpha():
            name = self.identifier()
            return Constructor(name, tuple(self.sequence("(", ")")))
        raise ATermSyntaxError(f"unexpected character {char!r}", self.pos)

    def sequence(self, opening: str, closing: str) -> list[ATerm]:
        self.expect(opening)
        items: list[ATerm] = []
        self.skip_whitespace()
        if self.peek() == closing:
            self.pos += 1
            return items
        while True:
            items.append(self.term())
            self.skip_whitespace()
            char = self.peek()
            self.pos += 1
            if char == closing:
                return items
            if char != ",":
                raise ATermSyntaxError(f"expected ',' or {closing!r}, found {char!r}", self.pos - 1)

    def identifier(self) -> str:
        start = self.pos
        while not self.at_end() and (self.text[self.pos].isalnum() or self.text[self.pos] == "_"):
            self.pos += 1
        return self.text[start : self.pos]

    def string(self) -> str:
        self.expect('"')
        chunks: list[str] = []
        while True:
            char = self.peek()
            self.pos += 1
            if char == '"':
                return "".join(chunks)
            if char == "\\":
                escaped = self.peek()
                self.pos += 1
                chunks.append(_ESCAPES.get(escaped, escaped))
                continue
            chunks.append(char)


__all__ = ["ATerm", "ATermSyntaxError", "Constructor", "parse_aterm"]
