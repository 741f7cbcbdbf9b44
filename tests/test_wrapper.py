from __future__ import annotations

import json
import shutil
import subprocess
import sys
from pathlib import Path, PurePosixPath, PureWindowsPath

import pytest

from gitrepopy import wrapper

needs_bash = pytest.mark.skipif(
    sys.platform.startswith("win") or shutil.which("bash") is None,
    reason="generated POSIX launcher needs bash",
)


def test_posix_wrapper_structure() -> None:
    text = wrapper.render_posix_wrapper(PurePosixPath("/usr/local/tools/demo"), version="1.9.0")
    lines = text.splitlines()

    assert lines[0] == "#!/bin/bash"
    assert "Version: 1.9.0" in lines[1]
    assert 'PROJECT_ROOT="/usr/local/tools/demo"' in lines
    assert 'ACTIVATE_SCRIPT="${VENV_DIR}/bin/activate"' in lines
    assert 'python "$MAIN_PYTHON_SCRIPT" "$@"' in lines
    assert lines[-1] == "exit $RUN_STATUS"
    assert "\r" not in text


def test_windows_wrapper_structure() -> None:
    text = wrapper.render_windows_wrapper(PureWindowsPath(r"C:\Users\me\Tools\demo"), version="1.9.0")
    lines = text.split("\r\n")

    assert text.endswith("\r\n")
    assert lines[0] == "@echo off"
    assert r'set "PROJECT_ROOT=C:\Users\me\Tools\demo"' in lines
    assert r'set "ACTIVATE_SCRIPT=%VENV_DIR%\Scripts\activate.bat"' in lines
    assert 'python "%MAIN_PYTHON_SCRIPT%" %*' in lines
    assert "endlocal & exit /b %RUN_STATUS%" in lines
    assert "bash" not in text
    assert "run.sh" not in text


@pytest.mark.parametrize(
    "root",
    [
        "/usr/local/tools/demo",
        "/home/me/my tools/demo",
        '/odd/pa"th/$HOME/`x`/back\\slash',
    ],
)
def test_extract_project_root_from_posix_wrapper(root: str) -> None:
    text = wrapper.render_posix_wrapper(PurePosixPath(root), version="1.9.0")

    assert wrapper.extract_project_root(text) == Path(root)


def test_extract_project_root_from_windows_wrapper() -> None:
    root = r"C:\Users\me\100%\Tools\demo"
    text = wrapper.render_windows_wrapper(PureWindowsPath(root), version="1.9.0")

    assert "100%%" in text
    assert wrapper.extract_project_root(text) == Path(root)


def test_extract_project_root_without_marker() -> None:
    assert wrapper.extract_project_root("#!/bin/bash\nexec python main.py\n") is None
    assert wrapper.extract_project_root("") is None


def _fake_project(root: Path, *, exit_code: int) -> None:
    """A project whose `.venv/bin/activate` puts the current interpreter on PATH as `python`."""
    fakebin = root / ".venv" / "fakebin"
    fakebin.mkdir(parents=True)
    (fakebin / "python").symlink_to(sys.executable)
    (root / ".venv" / "bin").mkdir()
    (root / ".venv" / "bin" / "activate").write_text(
        "\n".join(
            [
                f'export PATH="{fakebin}:$PATH"',
                "export FAKE_VENV_ACTIVE=1",
                "deactivate () { echo deactivated >&2; }",
                "",
            ]
        ),
        encoding="utf-8",
    )
    (root / "main.py").write_text(
        "\n".join(
            [
                "import json, os, sys",
                "print(json.dumps({'args': sys.argv[1:], 'venv': os.environ.get('FAKE_VENV_ACTIVE')}))",
                f"sys.exit({exit_code})",
                "",
            ]
        ),
        encoding="utf-8",
    )


def _write_launcher(tmp_path: Path, root: Path) -> Path:
    launcher = tmp_path / "bin" / "demo"
    launcher.parent.mkdir()
    launcher.write_text(wrapper.render_posix_wrapper(root, version="1.9.0"), encoding="utf-8")
    launcher.chmod(0o755)
    return launcher


@needs_bash
def test_posix_wrapper_runs_main_in_venv_and_forwards_exit_code(tmp_path: Path) -> None:
    root = tmp_path / "tools dir" / "demo"
    root.mkdir(parents=True)
    _fake_project(root, exit_code=7)
    launcher = _write_launcher(tmp_path, root)

    p = subprocess.run([str(launcher), "two words", "--flag", "$HOME"], capture_output=True, text=True, check=False)

    assert p.returncode == 7
    assert json.loads(p.stdout) == {"args": ["two words", "--flag", "$HOME"], "venv": "1"}
    assert "deactivated" in p.stderr


@needs_bash
def test_posix_wrapper_fails_without_main_script(tmp_path: Path) -> None:
    root = tmp_path / "demo"
    root.mkdir()
    _fake_project(root, exit_code=0)
    (root / "main.py").unlink()
    launcher = _write_launcher(tmp_path, root)

    p = subprocess.run([str(launcher)], capture_output=True, text=True, check=False)

    assert p.returncode == 1
    assert "Main Python script" in p.stderr


@needs_bash
def test_posix_wrapper_fails_without_venv(tmp_path: Path) -> None:
    root = tmp_path / "demo"
    root.mkdir()
    (root / "main.py").write_text("print('never')\n", encoding="utf-8")
    launcher = _write_launcher(tmp_path, root)

    p = subprocess.run([str(launcher)], capture_output=True, text=True, check=False)

    assert p.returncode == 1
    assert "activation script not found" in p.stderr
    assert not (root / ".venv").exists()


@needs_bash
def test_posix_wrapper_fails_without_project_root(tmp_path: Path) -> None:
    launcher = _write_launcher(tmp_path, tmp_path / "gone")

    p = subprocess.run([str(launcher)], capture_output=True, text=True, check=False)

    assert p.returncode == 1
    assert "not found or accessible" in p.stderr
