"""Built-in commands and the launching of external programs."""

from __future__ import annotations

import os
import signal
import stat
import subprocess
import sys
from typing import IO, Optional

from minishell.environment import (
    EnvVar,
    Environment,
    atoi,
    is_valid_identifier,
    sorted_declarations,
)

BUILTINS = ("pwd", "env", "echo", "cd", "export", "unset", "exit")
SELF_COMMAND = "./minishell"


class ShellExit(Exception):
    """Raised by ``exit``: the shell should stop with ``status``."""

    def __init__(self, status: int) -> None:
        super().__init__(status)
        self.status = status


def _set_var(env: Environment, key: str, value: Optional[str]) -> None:
    var = env.find(key)
    if var is None:
        env.variables.append(EnvVar(key, value, True))
    else:
        var.value = value
        var.has_equal = True


def echo(args: list[str], env: Environment, out: IO[str]) -> None:
    """Print the arguments separated by spaces; ``-n`` drops the newline."""
    words = args[1:]
    newline = True
    if words and words[0] == "-n":
        newline = False
        words = words[1:]
    out.write(" ".join(words))
    if newline:
        out.write("\n")
    env.status = 0


def pwd(env: Environment, out: IO[str]) -> None:
    """Print the current directory as recorded in PWD."""
    value = env.get_value("PWD")
    if value is None:
        value = os.getcwd()
    out.write(f"{value}\n")
    env.status = 0


def print_env(args: list[str], env: Environment, out: IO[str], err: IO[str]) -> None:
    """Print every variable that has a non-empty value."""
    if len(args) > 1:
        err.write("No such file or directory\n")
        env.status = 1
        return
    for entry in env.to_env_list():
        _, eq, value = entry.partition("=")
        if eq and value:
            out.write(f"{entry}\n")
    env.status = 0


def cd(args: list[str], env: Environment, err: IO[str]) -> None:
    """Change directory and update PWD and OLDPWD."""
    if len(args) < 2:
        err.write("cd: missing argument\n")
        env.status = 1
        return
    if len(args) > 2:
        err.write("too many arguments\n")
        env.status = 1
        return
    target = args[1]
    if target == "~":
        home = os.environ.get("HOME")
        if home is not None:
            try:
                os.chdir(home)
            except OSError:
                pass
    else:
        try:
            os.chdir(target)
        except OSError as exc:
            env.status = 1
            err.write(f"cd: {exc.strerror}\n")
            return
    _set_var(env, "OLDPWD", env.get_value("PWD"))
    try:
        cwd = os.getcwd()
    except OSError as exc:
        env.status = 1
        err.write(f"getcwd() error: {exc.strerror}\n")
        return
    _set_var(env, "PWD", cwd)
    env.status = 0


def is_number(text: str) -> bool:
    """True when ``text`` is an optional sign followed only by digits."""
    if text[:1] in ("-", "+"):
        text = text[1:]
    return all(ch in "0123456789" for ch in text)


def exit_builtin(args: list[str], env: Environment, err: IO[str]) -> None:
    """Leave the shell by raising ShellExit, unless given too many arguments."""
    if len(args) < 2:
        err.write("exit\n")
        raise ShellExit(atoi(str(env.status)))
    if len(args) > 2:
        err.write("exit\ntoo many arguments\n")
        env.status = 1
        return
    if is_number(args[1]):
        err.write("exit\n")
        raise ShellExit(atoi(args[1]) % 256)
    err.write("exit\nnumeric argument required\n")
    raise ShellExit(2)


def export(args: list[str], env: Environment, out: IO[str], err: IO[str]) -> None:
    """Set variables, or list them all sorted when given no arguments."""
    if len(args) < 2:
        for line in sorted_declarations(env.to_export_list()):
            out.write(f"{line}\n")
        env.status = 0
        return
    for word in args[1:]:
        if not is_valid_identifier(word):
            err.write(" not a valid identifier\n")
            env.status = 1
            return
        env.set(word)
    env.status = 0


def unset(args: list[str], env: Environment) -> None:
    """Remove the named variables."""
    env.unset(args[1:])
    env.status = 0


def split_nonempty(text: str, sep: str) -> list[str]:
    """Split on ``sep`` and drop the empty pieces."""
    return [piece for piece in text.split(sep) if piece]


def is_executable(path: str) -> bool:
    """True when ``path`` exists and its owner may execute it."""
    try:
        mode = os.stat(path).st_mode
    except OSError:
        return False
    return bool(mode & stat.S_IXUSR)


def search_path(name: str, path: Optional[str]) -> Optional[str]:
    """Find ``name`` in the colon-separated directories of ``path``."""
    if name == SELF_COMMAND:
        return SELF_COMMAND
    if path is None:
        return None
    for directory in split_nonempty(path, ":"):
        candidate = f"{directory}/{name}"
        if is_executable(candidate):
            return candidate
    return None


def _child_environ(env: Environment) -> dict[str, str]:
    environ = {}
    for entry in env.to_env_list():
        key, eq, value = entry.partition("=")
        if eq:
            environ[key] = value
    return environ


def _has_fileno(stream: object) -> bool:
    try:
        stream.fileno()  # type: ignore[attr-defined]
    except (AttributeError, OSError, ValueError):
        return False
    return True


def _reset_quit() -> None:
    signal.signal(signal.SIGQUIT, signal.SIG_DFL)


def launch(args: list[str], env: Environment, stdin: Optional[IO[str]],
           stdout: IO[str], err: IO[str]) -> int:
    """Run an external program and record its exit status."""
    if env.find("PATH") is None:
        err.write("No such file or directory\n")
        env.status = 127
        return env.status
    name = args[0]
    full_path = name if "/" in name else search_path(name, env.get_value("PATH"))
    if full_path is None:
        err.write("command not found\n")
        env.status = 127
        return env.status

    data: Optional[bytes] = None
    if stdin is None:
        in_target: object = None
    elif _has_fileno(stdin):
        in_target = stdin
    else:
        data = stdin.read().encode()
        in_target = subprocess.PIPE
    targets = []
    for stream in (stdout, err):
        if _has_fileno(stream):
            stream.flush()
            targets.append(stream)
        else:
            targets.append(subprocess.PIPE)

    try:
        proc = subprocess.Popen(
            args,
            executable=full_path,
            env=_child_environ(env),
            stdin=in_target,
            stdout=targets[0],
            stderr=targets[1],
            preexec_fn=_reset_quit if hasattr(signal, "SIGQUIT") else None,
        )
    except OSError:
        err.write("command not found\n")
        env.status = 127
        return env.status

    while True:
        try:
            captured_out, captured_err = proc.communicate(input=data)
            break
        except KeyboardInterrupt:
            data = None
    if captured_out:
        stdout.write(captured_out.decode(errors="replace"))
    if captured_err:
        err.write(captured_err.decode(errors="replace"))

    code = proc.returncode
    if code >= 0:
        env.status = code
    else:
        sig = -code
        if sig == signal.SIGINT:
            stdout.write("\n")
        elif hasattr(signal, "SIGQUIT") and sig == signal.SIGQUIT:
            err.write("Quit (core dumped)\n")
            env.status = 128 + sig
    return env.status


def run_builtin(args: list[str], env: Environment, out: IO[str], err: IO[str]) -> bool:
    """Run ``args`` if it names a built-in; return whether it did."""
    if not args or args[0] not in BUILTINS:
        return False
    name = args[0]
    if name == "pwd":
        pwd(env, out)
    elif name == "env":
        print_env(args, env, out, err)
    elif name == "echo":
        echo(args, env, out)
    elif name == "cd":
        cd(args, env, err)
    elif name == "export":
        export(args, env, out, err)
    elif name == "unset":
        unset(args, env)
    else:
        exit_builtin(args, env, err)
    return True


if sys.platform == "win32":  # pragma: no cover
    BUILTINS = BUILTINS