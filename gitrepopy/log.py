"""Console logging and the fatal-error type.

Three severities are used across the package:

- info: normal progress, always printed to stdout.
- warning: recoverable problems, printed to stderr only when verbose.
- error: printed to stderr regardless of verbosity. Components never print errors
  themselves; they raise `FatalError` and `gitrepopy.cli.main` logs it and exits 1.

Each line is `[LEVEL] YYYY-mm-dd HH:MM:SS message`, wrapped in an ANSI color when the
target stream is a terminal and `NO_COLOR` is not set.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TextIO

INFO_COLOR = "\033[32m"
WARN_COLOR = "\033[33m"
ERROR_COLOR = "\033[31m"
RESET_COLOR = "\033[0m"


class FatalError(RuntimeError):
    """An unrecoverable condition; the current operation stops with exit status 1."""

    exit_code = 1


def _stdout() -> TextIO:
    return sys.stdout


def _stderr() -> TextIO:
    return sys.stderr


def colors_enabled(stream: TextIO) -> bool:
    if os.environ.get("NO_COLOR") is not None:
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


@dataclass(frozen=True)
class Logger:
    verbose: bool = False
    out: Callable[[], TextIO] = field(default=_stdout)
    err: Callable[[], TextIO] = field(default=_stderr)
    now: Callable[[], datetime] = field(default=datetime.now)

    def info(self, message: str) -> None:
        self._emit(self.out(), "INFO", INFO_COLOR, message)

    def warn(self, message: str) -> None:
        if not self.verbose:
            return
        self._emit(self.err(), "WARN", WARN_COLOR, message)

    def error(self, message: str) -> None:
        self._emit(self.err(), "ERROR", ERROR_COLOR, message)

    def plain(self, message: str = "") -> None:
        stream = self.out()
        print(message, file=stream)
        stream.flush()

    def _emit(self, stream: TextIO, level: str, color: str, message: str) -> None:
        stamp = self.now().strftime("%Y-%m-%d %H:%M:%S")
        line = f"[{level}] {stamp} {message}"
        if colors_enabled(stream):
            line = f"{color}{line}{RESET_COLOR}"
        print(line, file=stream)
        stream.flush()
