import io
import os
import stat

import pytest

from minishell.builtins import (
    ShellExit,
    cd,
    echo,
    exit_builtin,
    export,
    is_executable,
    is_number,
    launch,
    print_env,
    pwd,
    run_builtin,
    search_path,
    split_nonempty,
    unset,
)
from minishell.environment import EnvVar, Environment


def _env(*pairs, status=0):
    return Environment([EnvVar(k, v, has) for k, v, has in pairs], status=status)


def _script(directory, name, body):
    path = directory / name
    path.write_text("#!/bin/sh\n" + body + "\n")
    path.chmod(0o755)
    return path


def test_echo_joins_arguments_with_newline():
    env = _env(status=5)
    out = io.StringIO()
    echo(["echo", "a", "b"], env, out)
    assert out.getvalue() == "a b\n"
    assert env.status == 0


def test_echo_dash_n_drops_newline():
    env = _env()
    out = io.StringIO()
    echo(["echo", "-n", "a", "b"], env, out)
    assert out.getvalue() == "a b"


def test_pwd_prints_recorded_value():
    env = _env(("PWD", "/some/where", True), status=3)
    out = io.StringIO()
    pwd(env, out)
    assert out.getvalue() == "/some/where\n"
    assert env.status == 0


def test_print_env_shows_only_nonempty_values():
    env = _env(("A", "1", True), ("B", "", True), ("C", None, False))
    out, err = io.StringIO(), io.StringIO()
    print_env(["env"], env, out, err)
    assert out.getvalue() == "A=1\n"
    assert env.status == 0


def test_print_env_rejects_arguments():
    env = _env(("A", "1", True))
    out, err = io.StringIO(), io.StringIO()
    print_env(["env", "x"], env, out, err)
    assert err.getvalue() == "No such file or directory\n"
    assert out.getvalue() == ""
    assert env.status == 1


def test_cd_missing_argument():
    env = _env()
    err = io.StringIO()
    cd(["cd"], env, err)
    assert err.getvalue() == "cd: missing argument\n"
    assert env.status == 1


def test_cd_too_many_arguments():
    env = _env()
    err = io.StringIO()
    cd(["cd", "a", "b"], env, err)
    assert err.getvalue() == "too many arguments\n"
    assert env.status == 1


def test_cd_updates_pwd_and_oldpwd(tmp_path, monkeypatch):
    start = os.getcwd()
    monkeypatch.chdir(start)
    env = _env(("PWD", start, True), ("OLDPWD", "", True))
    err = io.StringIO()
    cd(["cd", str(tmp_path)], env, err)
    assert os.path.samefile(os.getcwd(), tmp_path)
    assert env.get_value("PWD") == os.getcwd()
    assert env.get_value("OLDPWD") == start
    assert env.status == 0


def test_cd_failure_sets_status(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    env = _env(("PWD", str(tmp_path), True))
    err = io.StringIO()
    cd(["cd", str(tmp_path / "missing")], env, err)
    assert err.getvalue().startswith("cd: ")
    assert env.status == 1
    assert env.get_value("PWD") == str(tmp_path)


@pytest.mark.parametrize(
    "text, expected",
    [("42", True), ("-7", True), ("+3", True), ("4a", False), ("abc", False), ("--1", False)],
)
def test_is_number(text, expected):
    assert is_number(text) is expected


def test_exit_without_argument_uses_last_status():
    env = _env(status=7)
    err = io.StringIO()
    with pytest.raises(ShellExit) as info:
        exit_builtin(["exit"], env, err)
    assert info.value.status == env.status
    assert err.getvalue() == "exit\n"


def test_exit_with_number():
    with pytest.raises(ShellExit) as info:
        exit_builtin(["exit", "42"], _env(), io.StringIO())
    assert info.value.status == 42


def test_exit_wraps_negative():
    with pytest.raises(ShellExit) as info:
        exit_builtin(["exit", "-1"], _env(), io.StringIO())
    assert info.value.status == 255


def test_exit_non_numeric():
    err = io.StringIO()
    with pytest.raises(ShellExit) as info:
        exit_builtin(["exit", "abc"], _env(), err)
    assert info.value.status == 2
    assert "numeric argument required" in err.getvalue()


def test_exit_too_many_arguments_stays():
    env = _env()
    err = io.StringIO()
    exit_builtin(["exit", "1", "2"], env, err)
    assert env.status == 1
    assert err.getvalue() == "exit\ntoo many arguments\n"


def test_export_lists_sorted():
    env = _env(("B", "2", True), ("A", "1", True))
    out = io.StringIO()
    export(["export"], env, out, io.StringIO())
    assert out.getvalue() == 'declare -x A="1"\ndeclare -x B="2"\n'


def test_export_sets_variables():
    env = _env(status=1)
    export(["export", "NAME=value", "FLAG"], env, io.StringIO(), io.StringIO())
    assert env.get_value("NAME") == "value"
    assert "FLAG" in env
    assert env.status == 0


def test_export_invalid_identifier():
    env = _env()
    err = io.StringIO()
    export(["export", "1abc=x"], env, io.StringIO(), err)
    assert err.getvalue() == " not a valid identifier\n"
    assert env.status == 1
    assert "1abc" not in env


def test_unset_removes_names():
    env = _env(("A", "1", True), ("B", "2", True), status=4)
    unset(["unset", "A"], env)
    assert [var.key for var in env] == ["B"]
    assert env.status == 0


def test_split_nonempty_drops_empty_pieces():
    assert split_nonempty("a::b:", ":") == ["a", "b"]
    assert split_nonempty("", ":") == []


def test_is_executable(tmp_path):
    plain = tmp_path / "plain"
    plain.write_text("x")
    plain.chmod(stat.S_IRUSR | stat.S_IWUSR)
    script = _script(tmp_path, "run", "exit 0")
    assert is_executable(str(script)) is True
    assert is_executable(str(plain)) is False
    assert is_executable(str(tmp_path / "absent")) is False


def test_search_path_finds_executable(tmp_path):
    script = _script(tmp_path, "tool", "exit 0")
    path = f"/nonexistent-dir:{tmp_path}"
    assert search_path("tool", path) == f"{tmp_path}/tool"
    assert os.path.samefile(search_path("tool", path), script)
    assert search_path("absent", path) is None
    assert search_path("tool", None) is None
    assert search_path("./minishell", None) == "./minishell"


def test_launch_returns_exit_status(tmp_path):
    _script(tmp_path, "fail", "exit 3")
    env = _env(("PATH", str(tmp_path), True))
    status = launch(["fail"], env, None, io.StringIO(), io.StringIO())
    assert status == 3
    assert env.status == 3


def test_launch_captures_output_and_environment(tmp_path):
    _script(tmp_path, "show", 'printf "%s %s" "$1" "$GREETING"')
    env = _env(("PATH", str(tmp_path), True), ("GREETING", "hello", True))
    out = io.StringIO()
    launch(["show", "arg"], env, None, out, io.StringIO())
    assert out.getvalue() == "arg hello"
    assert env.status == 0


def test_launch_command_not_found(tmp_path):
    env = _env(("PATH", str(tmp_path), True))
    err = io.StringIO()
    assert launch(["nothing-here"], env, None, io.StringIO(), err) == 127
    assert err.getvalue() == "command not found\n"


def test_launch_without_path_variable():
    env = _env()
    err = io.StringIO()
    assert launch(["ls"], env, None, io.StringIO(), err) == 127
    assert err.getvalue() == "No such file or directory\n"


def test_run_builtin_dispatches():
    env = _env()
    out = io.StringIO()
    assert run_builtin(["echo", "x"], env, out, io.StringIO()) is True
    assert out.getvalue() == "x\n"
    assert run_builtin(["ls"], env, out, io.StringIO()) is False
    assert run_builtin([], env, out, io.StringIO()) is False


def test_run_builtin_exit_raises():
    with pytest.raises(ShellExit) as info:
        run_builtin(["exit", "5"], _env(), io.StringIO(), io.StringIO())
    assert info.value.status == 5