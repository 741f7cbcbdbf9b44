"""Make the bin directory discoverable on the user's executable search path.

- If the bin directory is already on the current process `PATH`, nothing changes.
- Windows: the directory is appended to the persisted *user* `PATH` through PowerShell
  (`[Environment]::SetEnvironmentVariable('PATH', ..., 'User')`). Entries are compared
  case-insensitively, so running setup repeatedly never duplicates the entry. The new
  value is only seen by terminals opened afterwards.
- POSIX: there is no single profile file to edit safely, so the `export` line is printed
  together with instructions instead.

Failures are warnings: a project that is not on `PATH` is still usable through its full
launcher path.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from .log import Logger
from .platforms import Platform
from .process import CommandRunner

_PS_APPEND_USER_PATH = r"""
$dir = $args[0]
$curr = [Environment]::GetEnvironmentVariable('PATH', 'User')
$parts = @()
if ($curr) { $parts = $curr.Split([IO.Path]::PathSeparator) | Where-Object { $_ } }
if ($parts | Where-Object { $_.TrimEnd('\') -ieq $dir.TrimEnd('\') }) {
  Write-Output 'NOCHANGE'
} else {
  $new = if ($curr) { $curr.TrimEnd([IO.Path]::PathSeparator) + [IO.Path]::PathSeparator + $dir } else { $dir }
  [Environment]::SetEnvironmentVariable('PATH', $new, 'User')
  Write-Output 'CHANGED'
}
""".strip()


def _normalize(entry: str, *, case_insensitive: bool) -> str:
    norm = os.path.normpath(entry.strip().rstrip("\\/")) if entry.strip() else ""
    return norm.lower() if case_insensitive else norm


def on_search_path(bin_dir: Path, *, path_value: str, case_insensitive: bool = False) -> bool:
    target = _normalize(str(bin_dir), case_insensitive=case_insensitive)
    return any(
        _normalize(entry, case_insensitive=case_insensitive) == target
        for entry in path_value.split(os.pathsep)
        if entry.strip()
    )


def ensure_bin_on_path(
    bin_dir: Path,
    *,
    platform: Platform,
    runner: CommandRunner,
    log: Logger,
    environ: Mapping[str, str] | None = None,
) -> bool:
    """Returns True when a persistent PATH change was made."""
    env = os.environ if environ is None else environ
    windows = platform.name == "windows"
    if on_search_path(bin_dir, path_value=env.get("PATH", ""), case_insensitive=windows):
        log.info(f"'{bin_dir}' is already on PATH. Skipping PATH update.")
        return False

    if windows:
        return _append_user_path_windows(bin_dir, runner=runner, log=log)

    log.info(
        "To make project executables globally available, add the following line to your shell's "
        "profile file (e.g., ~/.bashrc, ~/.zshrc):"
    )
    log.plain(f'  export PATH="$PATH:{bin_dir}"')
    log.info("After adding, run 'source ~/.bashrc' (or your shell's profile file) or open a new terminal window.")
    return False


def _append_user_path_windows(bin_dir: Path, *, runner: CommandRunner, log: Logger) -> bool:
    res = runner.run(
        "powershell",
        ["-NoProfile", "-ExecutionPolicy", "Bypass", "-Command", _PS_APPEND_USER_PATH, str(bin_dir)],
        log_output=False,
    )
    out = res.stdout.strip()
    if res.ok and "CHANGED" in out:
        log.info(f"Added '{bin_dir}' to the current user's PATH environment variable.")
        log.info("Please open a NEW terminal window for the PATH changes to take effect.")
        return True
    if res.ok and "NOCHANGE" in out:
        log.info(f"'{bin_dir}' is already in the current user's PATH environment variable. Skipping addition.")
        return False
    detail = res.stderr.strip() or out or f"exit code {res.exit_code}"
    log.warn(f"Failed to add '{bin_dir}' to PATH: {detail}. You may need to add it manually.")
    return False
