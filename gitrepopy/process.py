"""Run external commands and capture their results.

`CommandRunner.run()` is the only place where gitrepopy starts child processes. It is a
single blocking attempt per call:

- stdout and stderr are captured to completion (text mode, UTF-8 with replacement);
- a non-zero exit code is returned, never raised, so callers decide whether it is fatal;
- if the executable cannot be started at all (`OSError`: not found, permission denied)
  the result has exit code `-1` and the error text as `stderr`.

Environment overrides
`env_overrides` adjusts the inherited environment of the child: a key mapped to `None`
is removed, a key mapped to a string is set, keys not mentioned are inherited unchanged.

No timeout is enforced; a hung child hangs the CLI.
"""

from __future__ import annotations

import os
import shlex
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from .log import Logger

EXEC_FAILURE = -1


@dataclass(frozen=True)
class CommandResult:
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def child_environment(
    env_overrides: Mapping[str, str | None] | None,
    *,
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    env = dict(os.environ if base is None else base)
    for key, value in (env_overrides or {}).items():
        if value is None:
            env.pop(key, None)
        else:
            env[key] = value
    return env


class CommandRunner:
    def __init__(self, *, log: Logger) -> None:
        self.log = log

    def run(
        self,
        command: str | Path,
        args: Sequence[str] = (),
        *,
        cwd: Path | None = None,
        env_overrides: Mapping[str, str | None] | None = None,
        log_output: bool = True,
    ) -> CommandResult:
        argv = [str(command), *args]
        if log_output:
            self.log.info(f"Executing: {shlex.join(argv)}")
        env = child_environment(env_overrides) if env_overrides else None
        try:
            p = subprocess.run(
                argv,
                cwd=str(cwd) if cwd is not None else None,
                env=env,
                text=True,
                encoding="utf-8",
                errors="replace",
                capture_output=True,
                check=False,
            )
        except OSError as exc:
            self.log.warn(f"Failed to execute command '{shlex.join(argv)}': {exc}")
            return CommandResult(exit_code=EXEC_FAILURE, stdout="", stderr=str(exc))

        stdout = p.stdout or ""
        stderr = p.stderr or ""
        if log_output:
            if stdout.strip():
                self.log.info(f"STDOUT:\n{stdout.rstrip()}")
            if stderr.strip():
                self.log.warn(f"STDERR:\n{stderr.rstrip()}")
        return CommandResult(exit_code=p.returncode, stdout=stdout, stderr=stderr)
