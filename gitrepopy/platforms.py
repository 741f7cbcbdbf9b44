"""Platform capability sets.

Everything that differs between POSIX-like systems and Windows lives here, behind one
small protocol, so the lifecycle code has no `sys.platform` checks of its own. One
implementation is selected at startup by `detect_platform()` and passed around
explicitly.

| capability                | PosixPlatform           | WindowsPlatform            |
|---------------------------|-------------------------|----------------------------|
| interpreter for `-m venv` | `python3`               | `python`                   |
| venv scripts directory    | `bin`                   | `Scripts`                  |
| pip inside the venv       | `bin/pip`               | `Scripts/pip.exe`          |
| execute bits              | chmod +x                | no-op (extension based)    |
| launcher                  | `<bin>/<name>` (bash)   | `<bin>/<name>.cmd` (batch) |
| link project `run.sh`     | yes, unless forced      | never                      |
| run project `build.sh`    | yes                     | no                         |
| default base / bin dirs   | /usr/local/tools, /usr/local/bin | ~/Tools, ~/Tools/Bin |

`wrapper_variants()` lists every file name a launcher for a project might have on any
platform; setup and remove clear all of them so stale duplicates never survive.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .wrapper import render_posix_wrapper, render_windows_wrapper

WRAPPER_SUFFIXES = ("", ".cmd", ".bat", ".exe")


class Platform(Protocol):
    name: str
    python_command: str
    scripts_dirname: str
    executable_bits: bool
    links_run_script: bool
    runs_build_script: bool

    def default_base_dir(self, home: Path) -> Path: ...

    def default_bin_dir(self, home: Path) -> Path: ...

    def pip_path(self, venv_dir: Path) -> Path: ...

    def wrapper_path(self, bin_dir: Path, name: str) -> Path: ...

    def render_wrapper(self, project_root: Path, *, version: str) -> str: ...


def wrapper_variants(bin_dir: Path, name: str) -> list[Path]:
    return [bin_dir / f"{name}{suffix}" for suffix in WRAPPER_SUFFIXES]


@dataclass(frozen=True)
class PosixPlatform:
    name: str = "posix"
    python_command: str = "python3"
    scripts_dirname: str = "bin"
    executable_bits: bool = True
    links_run_script: bool = True
    runs_build_script: bool = True

    def default_base_dir(self, home: Path) -> Path:
        return Path("/usr/local/tools")

    def default_bin_dir(self, home: Path) -> Path:
        return Path("/usr/local/bin")

    def pip_path(self, venv_dir: Path) -> Path:
        return venv_dir / self.scripts_dirname / "pip"

    def wrapper_path(self, bin_dir: Path, name: str) -> Path:
        return bin_dir / name

    def render_wrapper(self, project_root: Path, *, version: str) -> str:
        return render_posix_wrapper(project_root, version=version, scripts_dirname=self.scripts_dirname)


@dataclass(frozen=True)
class WindowsPlatform:
    name: str = "windows"
    python_command: str = "python"
    scripts_dirname: str = "Scripts"
    executable_bits: bool = False
    links_run_script: bool = False
    runs_build_script: bool = False

    def default_base_dir(self, home: Path) -> Path:
        return home / "Tools"

    def default_bin_dir(self, home: Path) -> Path:
        return home / "Tools" / "Bin"

    def pip_path(self, venv_dir: Path) -> Path:
        return venv_dir / self.scripts_dirname / "pip.exe"

    def wrapper_path(self, bin_dir: Path, name: str) -> Path:
        return bin_dir / f"{name}.cmd"

    def render_wrapper(self, project_root: Path, *, version: str) -> str:
        return render_windows_wrapper(project_root, version=version)


def detect_platform(sys_platform: str | None = None) -> Platform:
    plat = sys.platform if sys_platform is None else sys_platform
    if plat.startswith("win"):
        return WindowsPlatform()
    return PosixPlatform()
