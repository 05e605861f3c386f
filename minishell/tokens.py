"""Splitting a command line into typed tokens."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

_OPERATORS = "<>|"
_REDIRECTS = "<>"
_QUOTES = "'\""


class TokenType(Enum):
    """Kinds of token produced by the tokenizer."""

    WORD = auto()
    PIPE = auto()
    REDIRECT_IN = auto()
    REDIRECT_OUT = auto()
    APPEND = auto()
    HEREDOC = auto()


@dataclass
class Token:
    """One piece of a command line."""

    value: str
    type: TokenType = TokenType.WORD


def _char(text: str, index: int) -> str:
    """Return the character at ``index``, or '' past either end."""
    return text[index] if 0 <= index < len(text) else ""


def _blank(ch: str) -> bool:
    """True for the end of the text, spaces and control characters."""
    return ch == "" or ord(ch) <= 32


def _starts_word(line: str, index: int) -> bool:
    if index == 0:
        return True
    prev = line[index - 1]
    return _blank(prev) or prev in _OPERATORS


def _count_words(line: str) -> int:
    """Count how many pieces ``split_line`` will produce."""
    n = len(line)
    i = 0
    while i < n and _blank(line[i]):
        i += 1
    count = 0
    quote = ""
    while i < n:
        ch = line[i]
        if ch in _QUOTES and not quote:
            if _starts_word(line, i):
                count += 1
            quote = ch
        if ch in _OPERATORS and not quote:
            if _char(line, i + 1) == ch:
                i += 1
            count += 1
        elif not _blank(ch) and not quote and _starts_word(line, i):
            count += 1
        i += 1
        if quote and _char(line, i) == quote:
            quote = ""
            i += 1
    return count


def _read_word(line: str, start: int) -> tuple[str, int]:
    """Read one piece starting at ``start``; return it and the next index."""
    n = len(line)
    i = start
    while i < n:
        ch = line[i]
        if ch == "|":
            return "|", i + 1
        if ch in _REDIRECTS:
            if _char(line, i + 1) == ch:
                i += 1
            return line[start:i + 1], i + 1
        if ch in _QUOTES:
            i += 1
            while i < n and line[i] != ch:
                i += 1
            if i >= n:
                return line[start:i], i
        following = _char(line, i + 1)
        if _blank(following) or following in _OPERATORS:
            return line[start:i + 1], i + 1
        i += 1
    return line[start:i], i


def split_line(line: str) -> list[str]:
    """Split a command line into words, quoted runs and operators."""
    words = _count_words(line)
    pieces: list[str] = []
    i = 0
    while i < len(line) and len(pieces) < words:
        while i < len(line) and _blank(line[i]):
            i += 1
        piece, i = _read_word(line, i)
        pieces.append(piece)
    return pieces


def classify(value: str) -> TokenType:
    """Give the token type for one piece of a command line."""
    first, second = _char(value, 0), _char(value, 1)
    if first == "|":
        return TokenType.PIPE
    if first == "<":
        return TokenType.HEREDOC if second == "<" else TokenType.REDIRECT_IN
    if first == ">":
        return TokenType.APPEND if second != ">" else TokenType.REDIRECT_OUT
    return TokenType.WORD


def tokenize(line: str) -> list[Token]:
    """Split ``line`` and type every piece."""
    return [Token(piece, classify(piece)) for piece in split_line(line)]