"""Expansion of variables and quotes inside words."""

from __future__ import annotations

import re
from typing import Optional

from minishell.environment import Environment
from minishell.tokens import Token, TokenType

_DIGITS = "0123456789"
_QUOTES = "'\""
_BLANKS = re.compile(r"[\x00-\x20]+")
_SKIPPED_TARGET = (TokenType.HEREDOC, TokenType.REDIRECT_OUT, TokenType.APPEND)


class UnmatchedQuoteError(ValueError):
    """Raised when a quoted run has no closing quote."""


def _is_name(ch: str) -> bool:
    return (ch.isascii() and ch.isalnum()) or ch == "_"


def _join(left: Optional[str], right: Optional[str]) -> Optional[str]:
    if left is None and right is None:
        return None
    return (left or "") + (right or "")


def _read_name(text: str, i: int, allow_status: bool) -> tuple[str, int]:
    """Read a variable name starting at ``i``; ``$?`` yields the status key."""
    start = i
    while i < len(text) and (_is_name(text[i]) or (allow_status and text[i] == "?")):
        i += 1
        if text[i - 1] == "?":
            start -= 1
            break
    return text[start:i], i


def expand_quoted(text: str, env: Environment, quote: str) -> str:
    """Expand a run that starts and ends with ``quote``.

    Variables are expanded inside double quotes only; the quotes are dropped.
    """
    if len(text) < 2 or text[-1] != quote:
        raise UnmatchedQuoteError("Error: Unmatched quotes")
    out: Optional[str] = None
    n = len(text)
    i = 0
    while i < n:
        ch = text[i]
        if ch == '"':
            i += 1
            while i < n and text[i] != '"':
                if text[i] == "$" and i + 1 < n and (_is_name(text[i + 1]) or text[i + 1] == "?"):
                    i += 1
                    if text[i] in _DIGITS:
                        i += 1
                        continue
                    name, i = _read_name(text, i, True)
                    out = _join(out, env.get_value(name))
                    if i < n and text[i] == '"':
                        i += 1
                if i < n:
                    out = _join(out, text[i])
                i += 1
        elif ch == "'":
            i += 1
            while i < n and text[i] != "'":
                out = _join(out, text[i])
                i += 1
            i += 1
        else:
            out = _join(out, ch)
            i += 1
    return out or ""


def _quoted_run(text: str, i: int) -> int:
    """Return the index just past the quoted run opening at ``i``."""
    quote = text[i]
    i += 1
    while i < len(text) and text[i] != quote:
        i += 1
    return i + 1 if i < len(text) else i


def expand_word(text: str, env: Environment) -> str:
    """Expand a redirection target, keeping quoted runs marked by single quotes."""
    out: Optional[str] = None
    n = len(text)
    i = 0
    while i < n:
        ch = text[i]
        if ch == "$" and i + 1 < n and _is_name(text[i + 1]):
            i += 1
            if text[i] in _DIGITS:
                i += 1
                continue
            name, i = _read_name(text, i, False)
            out = _join(out, env.get_value(name))
        elif ch in _QUOTES:
            start = i
            i = _quoted_run(text, i)
            inner = expand_quoted(text[start:i], env, ch)
            out = _join(out, "'") + inner + (text[i - 1] if ch == "'" else "'")
        else:
            out = _join(out, ch)
            i += 1
    return out or ""


def _split_value(words: list[str], acc: Optional[str], value: Optional[str]) -> Optional[str]:
    """Word-split an unquoted value onto ``acc``; return the open word."""
    if value is None:
        return acc
    combined = (acc or "") + value
    pieces = [piece for piece in _BLANKS.split(combined) if piece]
    if not pieces:
        return acc or None
    words.extend(pieces[:-1])
    if ord(combined[-1]) <= 32:
        words.append(pieces[-1])
        return None
    return pieces[-1]


def _expand_value(value: str, env: Environment) -> list[str]:
    words: list[str] = []
    acc: Optional[str] = None
    n = len(value)
    i = 0
    while i < n:
        ch = value[i]
        if ch == "$" and i + 1 < n and (_is_name(value[i + 1]) or value[i + 1] == "?"):
            i += 1
            if value[i] in _DIGITS:
                i += 1
                continue
            name, i = _read_name(value, i, True)
            if value[i - 1] == "?":
                acc = _join(acc, env.get_value(name))
            else:
                acc = _split_value(words, acc, env.get_value(name))
        elif ch in _QUOTES:
            start = i
            i = _quoted_run(value, i)
            acc = _join(acc, expand_quoted(value[start:i], env, ch))
        else:
            acc = _join(acc, ch)
            i += 1
    if acc is not None:
        words.append(acc)
    return words


def expand_tokens(tokens: list[Token], env: Environment) -> list[Token]:
    """Expand every word token; heredoc and output targets stay as written."""
    result: list[Token] = []
    skip_next = False
    for token in tokens:
        if skip_next:
            result.append(token)
            skip_next = False
            continue
        if token.type is TokenType.WORD:
            words = _expand_value(token.value, env)
            if not words and result and result[-1].type is not TokenType.WORD \
                    and result[-1].type is not TokenType.PIPE:
                words = [""]
            result.extend(Token(word, TokenType.WORD) for word in words)
        else:
            result.append(token)
            skip_next = token.type in _SKIPPED_TARGET
    return result