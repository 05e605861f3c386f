"""Shell variables, the last exit status and the helpers built around them."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping

STATUS_KEY = "$?"

_LONG_MAX = 2**63 - 1
_NUMBER = re.compile(r"[ \t\n\v\f\r]*([+-]?)([0-9]*)")
_DIGITS = "0123456789"


def _wrap32(number: int) -> int:
    return (number + 2**31) % 2**32 - 2**31


def atoi(text: str) -> int:
    """Parse a leading integer the way the shell does, wrapping to 32 bits.

    Leading blanks and one sign are accepted; parsing stops at the first
    non-digit. A value too large for a long gives -1 (or 0 when negative).
    """
    match = _NUMBER.match(text)
    sign = -1 if match.group(1) == "-" else 1
    number = 0
    for digit in match.group(2):
        value = ord(digit) - 48
        if number > (_LONG_MAX - value) // 10:
            return -1 if sign == 1 else 0
        number = number * 10 + value
    return _wrap32(_wrap32(number) * sign)


def is_valid_identifier(word: str) -> bool:
    """Check an ``export`` argument: the name before '=' must be well formed."""
    if word == "=":
        return False
    if word and word[0] in _DIGITS:
        return False
    name = word.split("=", 1)[0]
    for ch in name:
        if 32 <= ord(ch) < 127 and not (ch.isascii() and ch.isalnum()) and ch != "_":
            return False
    return True


def sorted_declarations(entries: Iterable[str]) -> list[str]:
    """Sort entries and format them as ``declare -x`` lines."""
    return [f"declare -x {entry}" for entry in sorted(entries)]


@dataclass
class EnvVar:
    """One variable; ``has_equal`` is False for names exported without a value."""

    key: str
    value: str | None = None
    has_equal: bool = True


def _next_shell_level(value: str) -> str:
    level = atoi(value) + 1
    if level > 999:
        print(f"warning: shell level ({level}) too high, resetting to 1")
        level = 1
    elif level < 0:
        level = 0
    return str(level)


class Environment:
    """Ordered shell variables plus the status of the last command."""

    def __init__(self, variables: Iterable[EnvVar] = (), status: int = 0) -> None:
        self.variables: list[EnvVar] = list(variables)
        self.status = status

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> "Environment":
        """Build from a process environment, raising SHLVL by one."""
        env = cls()
        for key, value in environ.items():
            if key == "SHLVL":
                value = _next_shell_level(value)
            env.variables.append(EnvVar(key, value, True))
        return env

    def __iter__(self) -> Iterator[EnvVar]:
        return iter(self.variables)

    def __len__(self) -> int:
        return len(self.variables)

    def __contains__(self, key: object) -> bool:
        return self.find(key) is not None  # type: ignore[arg-type]

    def find(self, key: str) -> EnvVar | None:
        """Return the variable named ``key``, or None."""
        return next((var for var in self.variables if var.key == key), None)

    def get_value(self, key: str) -> str | None:
        """Return the value of ``key``; ``$?`` gives the last status."""
        if key == STATUS_KEY:
            return str(self.status)
        var = self.find(key)
        return var.value if var else None

    def set(self, assignment: str) -> None:
        """Apply ``NAME``, ``NAME=value`` or ``NAME+=value``."""
        name, eq, rest = assignment.partition("=")
        if not eq:
            if self.find(assignment) is None:
                self.variables.append(EnvVar(assignment, None, False))
            return
        for var in self.variables:
            if var.key == name:
                var.value = rest
                var.has_equal = True
                return
            if name.endswith("+") and var.key == name[:-1]:
                var.value = (var.value or "") + rest
                var.has_equal = True
                return
        self.variables.append(EnvVar(name, rest, True))

    def unset(self, names: Iterable[str]) -> None:
        """Remove every variable whose name is listed."""
        doomed = set(names)
        self.variables = [var for var in self.variables if var.key not in doomed]

    def to_env_list(self) -> list[str]:
        """Entries as ``KEY=value`` strings for a child process."""
        return [
            f"{var.key}={var.value or ''}" if var.has_equal else var.key
            for var in self.variables
        ]

    def to_export_list(self) -> list[str]:
        """Entries as shown by ``export``: values in double quotes."""
        entries = []
        for var in self.variables:
            if var.has_equal and var.value is not None:
                entries.append(f'{var.key}="{var.value}"')
            elif var.has_equal:
                entries.append(f"{var.key}=")
            else:
                entries.append(var.key)
        return entries