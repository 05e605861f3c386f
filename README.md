# minishell

A small interactive shell. It reads command lines at a `minishell$ `
prompt and runs them. It supports:

- pipelines joined by `|`
- output redirection with `>` (truncate) and `>>` (append), input
  redirection with `<`
- here-documents with `<<`; `$NAME` and `$?` are expanded in their lines
  unless the delimiter is quoted
- single and double quotes; variables are expanded inside double quotes
  only
- `$NAME` variable expansion with word splitting of unquoted values, and
  `$?` for the status of the last command
- the built-in commands `echo` (with `-n`), `cd`, `pwd`, `env`,
  `export` (including `NAME+=value`), `unset` and `exit`
- any other program found in the directories listed in `PATH`

`SHLVL` is raised by one when the shell starts.

## Installing

```
pip install .
```

## Running

```
minishell
```

The shell takes no arguments; given any, it prints
`Error: Too many arguments` and exits with status 127. Typing `exit`
(optionally with a numeric status) or pressing Ctrl-D at the prompt
leaves it. Lines are added to the line-editing history when the
`readline` module is available.

## Examples

```
minishell$ export GREETING=hello
minishell$ echo "$GREETING world" | cat > out.txt
minishell$ cat < out.txt
hello world
minishell$ cat << END
> value is $GREETING
> END
value is hello
minishell$ echo $?
0
```

## Behaviour worth knowing

- A command on its own runs in the shell, so `cd`, `export` and `unset`
  change the session. In a pipeline of two or more commands, each stage
  works on its own copy of the variables, so such changes do not last.
- `cd` needs exactly one argument; `~` means the directory in `HOME`.
- `env` prints only variables that have a non-empty value and rejects
  any argument.
- With no arguments, `export` lists every variable, sorted, as
  `declare -x NAME="value"` lines.
- A syntax error with `|` sets the status to 2; an output target that
  expands to several words is reported as an ambiguous redirect and sets
  the status to 1.
- More than 16 here-documents on one line ends the shell with status 2.
  A quote left unclosed inside a word prints `Error: Unmatched quotes`
  and ends the shell with status 1.
- Here-documents are written to temporary files, which are removed once
  the line has run.

## What it does not do

There is no `;`, `&&` or `||`, no background jobs or job control, no
wildcard expansion, no subshells and no scripts read from files: the
shell only runs lines typed at its prompt (or passed to it from Python).

## Using it from Python

The `Shell` class in `minishell.shell` drives the shell from code.
`Shell(environ=None, stdout=None, stderr=None, read_line=None)` builds a
session from a mapping of variables (the process environment by
default). `Shell.run_line(line)` runs one command line and returns the
resulting status, raising `minishell.builtins.ShellExit` when the line
ends the shell. `Shell.run(read_line)` calls `read_line(prompt)` for each
line until it returns `None` or the shell exits, and returns the final
status. `minishell.shell.main(argv=None)` is the command's entry point.

The parts can also be used on their own:

- `minishell.tokens.tokenize(line)` splits a line into `Token` objects
  typed by `TokenType`.
- `minishell.environment.Environment` holds the variables and the last
  status (`Environment.from_environ`, `set`, `unset`, `get_value`).
- `minishell.expansion.expand_tokens(tokens, env)` expands variables and
  quotes in word tokens.
- `minishell.parser.build_commands(tokens)` groups tokens into `Command`
  objects with their `Redirection`s, and `parse_tokens(tokens, commands,
  env, read_line)` checks syntax, reads here-documents and resolves
  redirection targets, raising `ParseError` on errors.
- `minishell.executor.execute_pipeline(commands, env, stdin, stdout,
  stderr)` runs the commands and returns the status of the last one.

## Running the tests

```
pip install ".[test]"
pytest
```