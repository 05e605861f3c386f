import pytest

from minishell.environment import (
    EnvVar,
    Environment,
    atoi,
    is_valid_identifier,
    sorted_declarations,
)


def test_from_environ_keeps_order_and_values():
    env = Environment.from_environ({"HOME": "/h", "USER": "me"})
    assert [v.key for v in env] == ["HOME", "USER"]
    assert env.get_value("HOME") == "/h"
    assert env.find("USER") == EnvVar("USER", "me", True)


def test_shell_level_is_raised():
    env = Environment.from_environ({"SHLVL": "1"})
    assert env.get_value("SHLVL") == "2"


def test_shell_level_too_high_resets(capsys):
    env = Environment.from_environ({"SHLVL": "999"})
    assert env.get_value("SHLVL") == "1"
    out = capsys.readouterr().out
    assert "too high, resetting to 1" in out


def test_shell_level_negative_becomes_zero():
    env = Environment.from_environ({"SHLVL": "-5"})
    assert env.get_value("SHLVL") == "0"


def test_missing_shell_level_not_added():
    env = Environment.from_environ({"A": "b"})
    assert env.find("SHLVL") is None
    assert "A" in env


def test_status_lookup():
    env = Environment()
    assert env.get_value("$?") == "0"
    env.status = 127
    assert env.get_value("$?") == "127"


def test_set_and_replace():
    env = Environment()
    env.set("A=1")
    assert env.get_value("A") == "1"
    env.set("A=2")
    assert env.get_value("A") == "2"
    assert len(env) == 1


def test_set_append():
    env = Environment()
    env.set("A=1")
    env.set("A+=x")
    assert env.get_value("A") == "1x"


def test_set_without_value():
    env = Environment()
    env.set("B")
    env.set("B")
    assert env.to_env_list() == ["B"]
    env.set("B=v")
    assert env.to_env_list() == ["B=v"]


def test_value_may_contain_equals():
    env = Environment()
    env.set("X=a=b")
    assert env.get_value("X") == "a=b"


def test_unset_removes_any_variable():
    env = Environment.from_environ({"A": "1", "B": "2", "C": "3"})
    env.unset(["A", "C", "missing"])
    assert [v.key for v in env] == ["B"]


def test_env_and_export_lists():
    env = Environment([EnvVar("A", "1"), EnvVar("E", None, True), EnvVar("N", None, False)])
    assert env.to_env_list() == ["A=1", "E=", "N"]
    assert env.to_export_list() == ['A="1"', "E=", "N"]


@pytest.mark.parametrize(
    "text, expected",
    [("42", 42), ("  -7", -7), ("+3x", 3), ("abc", 0), ("", 0)],
)
def test_atoi(text, expected):
    assert atoi(text) == expected


def test_atoi_overflow():
    assert atoi("99999999999999999999") == -1
    assert atoi("-99999999999999999999") == 0


def test_atoi_wraps_to_32_bits():
    assert atoi(str(2**32 + 5)) == atoi("5")


@pytest.mark.parametrize(
    "word, expected",
    [
        ("A_1=x", True),
        ("name", True),
        ("A=b-c", True),
        ("1A", False),
        ("A-B=c", False),
        ("A+=c", False),
        ("=", False),
    ],
)
def test_is_valid_identifier(word, expected):
    assert is_valid_identifier(word) is expected


def test_sorted_declarations():
    lines = sorted_declarations(["b=1", "a", "C"])
    assert lines == ["declare -x C", "declare -x a", "declare -x b=1"]
    assert lines == sorted(lines)
    assert sorted_declarations([]) == []