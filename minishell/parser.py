"""Turning tokens into commands, reading here-documents and checking syntax."""

from __future__ import annotations

import os
import sys
import tempfile
from dataclasses import dataclass, field
from typing import Callable, Optional

from minishell.environment import Environment
from minishell.expansion import expand_word
from minishell.tokens import Token, TokenType

REDIRECT_IN = 0
REDIRECT_OUT = 1
APPEND = 2
HEREDOC = 3
INTERRUPTED = "ctrlC"
MAX_HEREDOCS = 16

_OPERATOR_KINDS = {"<": REDIRECT_IN, ">": REDIRECT_OUT, ">>": APPEND, "<<": HEREDOC}
_REDIRECT_TYPES = (
    TokenType.HEREDOC,
    TokenType.APPEND,
    TokenType.REDIRECT_IN,
    TokenType.REDIRECT_OUT,
)
_DIGITS = "0123456789"


@dataclass
class Redirection:
    """A redirection: kind 0 '<', 1 '>', 2 '>>', 3 '<<'."""

    filename: Optional[str]
    kind: int


@dataclass
class Command:
    """One stage of a pipeline."""

    args: list[str] = field(default_factory=list)
    redirections: list[Redirection] = field(default_factory=list)
    heredoc: Optional[str] = None


class ParseError(Exception):
    """A syntax error; ``status`` is the exit status it leaves behind."""

    def __init__(self, message: str, status: int, fatal: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.fatal = fatal


def _segments(tokens: list[Token]) -> list[list[Token]]:
    segments: list[list[Token]] = [[]]
    for token in tokens:
        if token.type is TokenType.PIPE:
            segments.append([])
        else:
            segments[-1].append(token)
    if not segments[-1] and len(segments) > 1:
        segments.pop()
    return segments


def build_commands(tokens: list[Token]) -> list[Command]:
    """Group tokens into commands split at pipes."""
    commands = []
    for segment in _segments(tokens):
        command = Command()
        i = 0
        while i < len(segment):
            token = segment[i]
            if token.type in _REDIRECT_TYPES:
                target = segment[i + 1].value if i + 1 < len(segment) else None
                command.redirections.append(
                    Redirection(target, _OPERATOR_KINDS.get(token.value, -1))
                )
                i += 2
                continue
            command.args.append(token.value)
            i += 1
        commands.append(command)
    return commands


def quotes_closed(text: str) -> bool:
    """True when every quote in ``text`` has its partner."""
    i = 0
    while i < len(text):
        if text[i] in "'\"":
            closing = text.find(text[i], i + 1)
            if closing == -1:
                return False
            i = closing
        i += 1
    return True


def move_quote(text: str) -> str:
    """Drop the first pair of quotes and wrap the whole text in that quote."""
    for i, ch in enumerate(text):
        if ch in "'\"":
            closing = text.find(ch, i + 1)
            if closing == -1:
                return ch + text[:i] + text[i + 1:]
            return ch + text[:i] + text[i + 1:closing] + text[closing + 1:] + ch
    return text


def remove_quotes(text: str) -> str:
    """Remove every quote pair, keeping what they enclose."""
    out = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch in "'\"":
            i += 1
            while i < len(text) and text[i] != ch:
                out.append(text[i])
                i += 1
            if i < len(text):
                i += 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def expand_heredoc_line(line: str, env: Environment) -> str:
    """Expand ``$NAME`` and ``$?`` in one here-document line."""
    out = []
    n = len(line)
    i = 0
    while i < n:
        nxt = line[i + 1] if i + 1 < n else ""
        if line[i] == "$" and nxt and ((nxt.isascii() and nxt.isalnum()) or nxt in "_?"):
            i += 1
            if line[i] in _DIGITS:
                i += 1
                continue
            start = i
            while i < n and ((line[i].isascii() and line[i].isalnum()) or line[i] in "_?"):
                i += 1
                if line[i - 1] == "?":
                    start -= 1
                    break
            out.append(env.get_value(line[start:i]) or "")
        else:
            out.append(line[i])
            i += 1
    return "".join(out)


def _read_heredoc(path: str, raw: str, env: Environment,
                  read_line: Callable[[str], Optional[str]]) -> None:
    quoted = move_quote(raw)[:1] in ("'", '"')
    delimiter = remove_quotes(raw)
    count = 0
    with open(path, "w", encoding="utf-8") as handle:
        while True:
            count += 1
            line = read_line("> ")
            if line is None:
                print("minishell: warning: here-document at line"
                      f"{count} delimited by end-of-file (wanted `{delimiter}')")
                return
            if line == delimiter:
                return
            if not quoted:
                line = expand_heredoc_line(line, env)
            handle.write(line + "\n")


def collect_heredocs(tokens: list[Token], commands: list[Command], env: Environment,
                     read_line: Callable[[str], Optional[str]]) -> None:
    """Read every here-document into a temporary file named on its command."""
    for i, token in enumerate(tokens):
        following = tokens[i + 1] if i + 1 < len(tokens) else None
        if token.type is TokenType.HEREDOC and following and following.type is not TokenType.WORD:
            print("minishell: syntax error near unexpected token `<<'")
            break
    index = 0
    for i, token in enumerate(tokens):
        following = tokens[i + 1] if i + 1 < len(tokens) else None
        if token.type is TokenType.HEREDOC:
            if following is None:
                env.status = 1
                sys.stderr.write("minishell: syntax error near unexpected token `newline'\n")
                return
            if following.type is not TokenType.WORD:
                return
            command = commands[index]
            if command.heredoc and command.heredoc != INTERRUPTED:
                try:
                    os.remove(command.heredoc)
                except OSError:
                    pass
            try:
                fd, path = tempfile.mkstemp(prefix="heredoc+")
                os.close(fd)
            except OSError:
                env.status = 1
                sys.stderr.write("minishell: i can not open the file\n")
                return
            command.heredoc = path
            if not quotes_closed(following.value):
                sys.stderr.write("minishell: unexpected EOF while looking for matching \"'\n"
                                 "minishell:syntax error:unexpected end of file\n")
                break
            try:
                _read_heredoc(path, following.value, env, read_line)
            except KeyboardInterrupt:
                os.remove(path)
                command.heredoc = INTERRUPTED
                env.status = 2
                print()
                break
        elif token.type is TokenType.PIPE:
            index += 1


def check_ambiguous_redirects(commands: list[Command], env: Environment) -> None:
    """Expand output targets; raise ParseError when one splits into words."""
    for command in commands:
        for redir in command.redirections:
            if redir.kind not in (REDIRECT_OUT, APPEND) or redir.filename is None:
                continue
            name = move_quote(expand_word(redir.filename, env))
            if not name.startswith("'") and any(ord(ch) <= 32 for ch in name):
                env.status = 1
                raise ParseError("minishell: ambiguous redirect", 1)
            redir.filename = remove_quotes(name)


def parse_tokens(tokens: list[Token], commands: list[Command], env: Environment,
                 read_line: Callable[[str], Optional[str]]) -> None:
    """Check syntax, read here-documents and resolve redirection targets."""
    if sum(token.type is TokenType.HEREDOC for token in tokens) > MAX_HEREDOCS:
        env.status = 2
        raise ParseError("minishell: maximum here-document count exceeded", 2, fatal=True)
    if not tokens:
        return
    pipe_error = "minishell: syntax error near unexpected token `|'"
    if tokens[0].type is TokenType.PIPE:
        env.status = 2
        raise ParseError(pipe_error, 2)
    for i, token in enumerate(tokens):
        if token.type is TokenType.PIPE:
            following = tokens[i + 1] if i + 1 < len(tokens) else None
            if following is None or following.type is TokenType.PIPE:
                env.status = 2
                raise ParseError(pipe_error, 2)
    collect_heredocs(tokens, commands, env, read_line)
    check_ambiguous_redirects(commands, env)