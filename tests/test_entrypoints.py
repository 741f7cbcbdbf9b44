from __future__ import annotations

import runpy
import sys

import pytest


def test_init_exports_version() -> None:
    import gitrepopy

    assert gitrepopy.__all__ == ["__version__"]
    assert gitrepopy.__version__ == "1.9.0"


def test_main_module_import_exposes_cli_main() -> None:
    import gitrepopy.__main__ as main_mod
    import gitrepopy.cli as cli

    assert main_mod.main is cli.main


def test_main_module_exec_uses_cli_return_code(monkeypatch: pytest.MonkeyPatch) -> None:
    import gitrepopy.cli as cli

    monkeypatch.setattr(cli, "main", lambda: 17)

    with pytest.raises(SystemExit) as exc:
        runpy.run_module("gitrepopy.__main__", run_name="__main__")

    assert exc.value.code == 17


def test_main_module_prints_version(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setattr(sys, "argv", ["gitrepopy", "--version"])

    with pytest.raises(SystemExit) as exc:
        runpy.run_module("gitrepopy.__main__", run_name="__main__")

    assert exc.value.code == 0
    assert capsys.readouterr().out.strip() == "git-repo-py 1.9.0"
