"""The interactive loop: reading lines and running them."""

from __future__ import annotations

import os
import signal
import sys
from typing import IO, Callable, Mapping, Optional

try:
    import readline as _readline
except ImportError:  # pragma: no cover
    _readline = None

from minishell.builtins import ShellExit
from minishell.environment import Environment
from minishell.executor import execute_pipeline
from minishell.expansion import UnmatchedQuoteError, expand_tokens
from minishell.parser import INTERRUPTED, Command, ParseError, build_commands, parse_tokens
from minishell.tokens import tokenize

PROMPT = "minishell$ "

ReadLine = Callable[[str], Optional[str]]


def _prompt(prompt: str) -> Optional[str]:
    """Read one line from the terminal; None at end of input."""
    try:
        return input(prompt)
    except EOFError:
        return None


def _discard_heredocs(commands: list[Command]) -> None:
    for command in commands:
        if command.heredoc and command.heredoc != INTERRUPTED:
            try:
                os.remove(command.heredoc)
            except OSError:
                pass


class Shell:
    """A shell session: its variables, output streams and line reader."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None,
                 stdout: Optional[IO[str]] = None, stderr: Optional[IO[str]] = None,
                 read_line: Optional[ReadLine] = None) -> None:
        self.env = Environment.from_environ(os.environ if environ is None else environ)
        self.stdout = sys.stdout if stdout is None else stdout
        self.stderr = sys.stderr if stderr is None else stderr
        self.read_line = _prompt if read_line is None else read_line

    def run_line(self, line: str) -> int:
        """Run one command line and return the resulting status.

        Raises ShellExit when the line ends the shell.
        """
        if not line:
            return self.env.status
        if _readline is not None:
            _readline.add_history(line)
        commands: list[Command] = []
        try:
            tokens = expand_tokens(tokenize(line), self.env)
            if not tokens:
                return self.env.status
            commands = build_commands(tokens)
            try:
                parse_tokens(tokens, commands, self.env, self.read_line)
            except ParseError as exc:
                self.stderr.write(f"{exc.message}\n")
                if exc.fatal:
                    raise ShellExit(exc.status) from exc
                return self.env.status
            execute_pipeline(commands, self.env, None, self.stdout, self.stderr)
        except UnmatchedQuoteError as exc:
            self.stdout.write(f"{exc}\n")
            raise ShellExit(1) from exc
        finally:
            _discard_heredocs(commands)
        return self.env.status

    def run(self, read_line: ReadLine) -> int:
        """Read and run lines until end of input or ``exit``; return the status."""
        self.read_line = read_line
        while True:
            try:
                line = read_line(PROMPT)
            except KeyboardInterrupt:
                self.stdout.write("\n")
                continue
            if line is None:
                self.stdout.write("exit\n")
                return 0
            try:
                self.run_line(line)
            except ShellExit as exc:
                return exc.status
            except KeyboardInterrupt:
                self.stdout.write("\n")


def main(argv: Optional[list[str]] = None) -> int:
    """Start an interactive session; no arguments are accepted."""
    args = sys.argv[1:] if argv is None else list(argv)
    if args:
        sys.stderr.write("Error: Too many arguments\n")
        return 127
    shell = Shell()
    if hasattr(signal, "SIGQUIT"):
        signal.signal(signal.SIGQUIT, signal.SIG_IGN)
    status = shell.run(_prompt)
    if _readline is not None:
        _readline.clear_history()
    return status


if __name__ == "__main__":
    sys.exit(main())