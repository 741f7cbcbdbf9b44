"""Process-wide configuration, built once at startup.

`ToolConfig.from_env()` reads two environment variables and falls back to the selected
platform's defaults:

- `TOOLS_BASE_DIR`: directory holding one clone per managed project.
- `TOOLS_BIN_DIR`: directory holding one launcher per managed project; expected to be on
  `PATH`.

Both are made absolute (with `~` expanded) so later containment checks compare like with
like. The resulting object is frozen and passed explicitly to every component.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from . import __version__
from .platforms import Platform

BASE_DIR_ENV = "TOOLS_BASE_DIR"
BIN_DIR_ENV = "TOOLS_BIN_DIR"


@dataclass(frozen=True)
class ToolConfig:
    base_dir: Path
    bin_dir: Path
    version: str = __version__

    @property
    def lock_dir(self) -> Path:
        return self.base_dir / ".locks"

    @classmethod
    def from_env(
        cls,
        *,
        platform: Platform,
        environ: Mapping[str, str] | None = None,
        home: Path | None = None,
    ) -> "ToolConfig":
        env = os.environ if environ is None else environ
        home_dir = Path.home() if home is None else home

        base_raw = env.get(BASE_DIR_ENV)
        bin_raw = env.get(BIN_DIR_ENV)
        base_dir = Path(base_raw).expanduser() if base_raw else platform.default_base_dir(home_dir)
        bin_dir = Path(bin_raw).expanduser() if bin_raw else platform.default_bin_dir(home_dir)
        return cls(base_dir=base_dir.absolute(), bin_dir=bin_dir.absolute())
