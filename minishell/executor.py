"""Running commands: redirections, built-ins, external programs and pipelines."""

from __future__ import annotations

import copy
import os
import sys
import threading
from contextlib import ExitStack
from dataclasses import dataclass
from typing import IO, Optional

from minishell.builtins import ShellExit, launch, run_builtin
from minishell.environment import Environment
from minishell.parser import (
    APPEND,
    HEREDOC,
    INTERRUPTED,
    REDIRECT_IN,
    REDIRECT_OUT,
    Command,
    Redirection,
)

_OUTPUT_KINDS = (REDIRECT_OUT, APPEND)


def _report(err: IO[str], name: Optional[str], exc: OSError) -> None:
    err.write(f"minishell: {name or ''}: {exc.strerror}\n")


def prepare_output(redirections: list[Redirection], env: Environment,
                   err: IO[str]) -> Optional[Redirection]:
    """Create every output file in order and return the last output redirection.

    '>' truncates, '>>' keeps what is there. When a file cannot be opened the
    error is reported, the status set to 1 and the OSError raised again.
    """
    last = None
    for redir in redirections:
        if redir.kind not in _OUTPUT_KINDS:
            continue
        mode = "w" if redir.kind == REDIRECT_OUT else "a"
        try:
            with open(redir.filename or "", mode, encoding="utf-8"):
                pass
        except OSError as exc:
            env.status = 1
            _report(err, redir.filename, exc)
            raise
        last = redir
    return last


def prepare_input(command: Command, env: Environment, err: IO[str]) -> Optional[str]:
    """Return the file the command reads from, or None to keep its input.

    The last '<' or '<<' wins. An interrupted here-document gives INTERRUPTED,
    meaning the command must not run. A file that cannot be read is reported,
    the status set to 1 and the OSError raised again.
    """
    source = None
    for redir in command.redirections:
        if redir.kind == REDIRECT_IN:
            path = redir.filename
        elif redir.kind == HEREDOC:
            if command.heredoc == INTERRUPTED:
                return INTERRUPTED
            path = command.heredoc
        else:
            continue
        try:
            with open(path or "", encoding="utf-8"):
                pass
        except OSError as exc:
            env.status = 1
            _report(err, path, exc)
            raise
        source = path
    return source


def execute_command(command: Command, env: Environment, stdin: Optional[IO[str]] = None,
                    stdout: Optional[IO[str]] = None,
                    stderr: Optional[IO[str]] = None) -> int:
    """Run one command with its redirections applied and return its status."""
    stdout = sys.stdout if stdout is None else stdout
    stderr = sys.stderr if stderr is None else stderr
    try:
        target = prepare_output(command.redirections, env, stderr)
        source = prepare_input(command, env, stderr)
    except OSError:
        return env.status
    if source == INTERRUPTED or not command.args:
        return env.status
    with ExitStack() as stack:
        if target is not None:
            stdout = stack.enter_context(open(target.filename or "", "a", encoding="utf-8"))
        if source is not None:
            stdin = stack.enter_context(open(source, encoding="utf-8"))
        if not run_builtin(command.args, env, stdout, stderr):
            launch(command.args, env, stdin, stdout, stderr)
    return env.status


@dataclass
class _Stage:
    """One pipeline stage running on its own copy of the environment."""

    command: Command
    env: Environment
    stdin: Optional[IO[str]]
    stdout: IO[str]
    owns_stdin: bool
    owns_stdout: bool
    status: int = 0

    def run(self, stderr: IO[str]) -> None:
        try:
            self.status = execute_command(self.command, self.env, self.stdin,
                                          self.stdout, stderr)
        except ShellExit as exc:
            self.status = exc.status
        except BrokenPipeError:
            self.status = 1
        finally:
            for stream, owned in ((self.stdout, self.owns_stdout),
                                  (self.stdin, self.owns_stdin)):
                if owned and stream is not None:
                    try:
                        stream.close()
                    except OSError:
                        pass


def _current_dir() -> Optional[str]:
    try:
        return os.getcwd()
    except OSError:
        return None


def execute_pipeline(commands: list[Command], env: Environment,
                     stdin: Optional[IO[str]] = None, stdout: Optional[IO[str]] = None,
                     stderr: Optional[IO[str]] = None) -> int:
    """Run commands joined by pipes; the last one's status becomes the shell's.

    A lone command runs in the shell itself, so built-ins change its state.
    Stages of a longer pipeline each work on a copy of the environment.
    """
    if not commands:
        return env.status
    stdout = sys.stdout if stdout is None else stdout
    stderr = sys.stderr if stderr is None else stderr
    if len(commands) == 1:
        return execute_command(commands[0], env, stdin, stdout, stderr)

    cwd = _current_dir()
    stages: list[_Stage] = []
    source = stdin
    for position, command in enumerate(commands):
        if position == len(commands) - 1:
            sink, reader = stdout, None
        else:
            read_fd, write_fd = os.pipe()
            sink = os.fdopen(write_fd, "w", encoding="utf-8")
            reader = os.fdopen(read_fd, "r", encoding="utf-8")
        stages.append(_Stage(command, copy.deepcopy(env), source, sink,
                             owns_stdin=position > 0, owns_stdout=reader is not None))
        source = reader

    threads = [threading.Thread(target=stage.run, args=(stderr,)) for stage in stages]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    if cwd is not None and _current_dir() != cwd:
        try:
            os.chdir(cwd)
        except OSError:
            pass
    env.status = stages[-1].status
    return env.status