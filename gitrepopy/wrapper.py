'''Launcher script generation.

A launcher runs a managed project's `main.py` inside the project's `.venv`. The logic is
the same on every platform; only the syntax differs:

1) Define the project root, the venv directory, the entry point and the activation
   script.
2) Project root missing -> error on stderr, exit 1.
3) `main.py` missing -> error, exit 1.
4) Activation script missing -> error, exit 1. The launcher never creates a venv; that
   is setup's job.
5) Activate the venv; failure -> error, exit 1.
6) Run `python main.py` with all arguments forwarded verbatim and capture its status.
7) Deactivate if the venv provides a way to (best-effort).
8) Exit with the status captured in 6, not the deactivation status.

Two renderers exist:
- `render_posix_wrapper()`: a bash script (`#!/bin/bash`).
- `render_windows_wrapper()`: a `.cmd` batch file. It always targets `main.py` directly
  and never calls into a POSIX shell script, so bash is not needed on Windows.

Project-root marker
The first assignment of `PROJECT_ROOT` in a generated launcher is the only metadata the
tool keeps about a project. `extract_project_root()` reads it back for `--list`:
- bash: `PROJECT_ROOT="/usr/local/tools/demo"`
- batch: `set "PROJECT_ROOT=C:\\Users\\me\\Tools\\demo"`
Values are escaped for their shell when rendered and unescaped when extracted.
'''

from __future__ import annotations

import re
from pathlib import Path, PurePath

ENTRY_POINT = "main.py"
VENV_DIRNAME = ".venv"

_POSIX_MARKER = re.compile(r'^PROJECT_ROOT="((?:[^"\\]|\\.)*)"\s*$', re.MULTILINE)
_BATCH_MARKER = re.compile(r'^\s*set "PROJECT_ROOT=([^"\r\n]*)"\s*$', re.MULTILINE | re.IGNORECASE)
_SH_ESCAPES = re.compile(r"\\([\\\"$`])")


def _sh_double_quote(value: str) -> str:
    escaped = re.sub(r'([\\"$`])', r"\\\1", value)
    return f'"{escaped}"'


def _batch_escape(value: str) -> str:
    return value.replace("%", "%%")


def render_posix_wrapper(project_root: PurePath, *, version: str, scripts_dirname: str = "bin") -> str:
    lines = [
        "#!/bin/bash",
        f"# This script was automatically generated by git-repo-py (Version: {version}).",
        "# It acts as a wrapper to run the main Python application within its virtual environment.",
        "",
        f"PROJECT_ROOT={_sh_double_quote(str(project_root))}",
        f'VENV_DIR="${{PROJECT_ROOT}}/{VENV_DIRNAME}"',
        f'MAIN_PYTHON_SCRIPT="${{PROJECT_ROOT}}/{ENTRY_POINT}"',
        f'ACTIVATE_SCRIPT="${{VENV_DIR}}/{scripts_dirname}/activate"',
        "",
        "# Basic checks",
        'if [ ! -d "$PROJECT_ROOT" ]; then',
        "    echo \"ERROR: Project directory '$PROJECT_ROOT' not found or accessible.\" >&2",
        "    exit 1",
        "fi",
        "",
        'if [ ! -f "$MAIN_PYTHON_SCRIPT" ]; then',
        "    echo \"ERROR: Main Python script '$MAIN_PYTHON_SCRIPT' not found in project directory.\" >&2",
        f"    echo \"Please ensure '{ENTRY_POINT}' exists in '$PROJECT_ROOT' or adjust the generated script.\" >&2",
        "    exit 1",
        "fi",
        "",
        'if [ ! -f "$ACTIVATE_SCRIPT" ]; then',
        "    echo \"ERROR: Virtual environment activation script not found at '$ACTIVATE_SCRIPT'.\" >&2",
        "    echo \"Please ensure the virtual environment is correctly set up in '$VENV_DIR'.\" >&2",
        "    exit 1",
        "fi",
        "",
        "# Activate the virtual environment",
        'source "$ACTIVATE_SCRIPT"',
        "if [ $? -ne 0 ]; then",
        "    echo \"ERROR: Failed to activate virtual environment at '$ACTIVATE_SCRIPT'.\" >&2",
        "    exit 1",
        "fi",
        "",
        "# Execute the main Python script with all passed arguments",
        'python "$MAIN_PYTHON_SCRIPT" "$@"',
        "RUN_STATUS=$?",
        "",
        "# Deactivate the virtual environment if the function exists",
        "if declare -f deactivate &>/dev/null; then",
        "    deactivate",
        "fi",
        "",
        "exit $RUN_STATUS",
    ]
    return "\n".join(lines) + "\n"


def render_windows_wrapper(project_root: PurePath, *, version: str) -> str:
    lines = [
        "@echo off",
        f"rem This script was automatically generated by git-repo-py (Version: {version}).",
        "rem It acts as a wrapper to run the main Python application within its virtual environment.",
        "setlocal",
        "",
        f'set "PROJECT_ROOT={_batch_escape(str(project_root))}"',
        f'set "VENV_DIR=%PROJECT_ROOT%\\{VENV_DIRNAME}"',
        f'set "MAIN_PYTHON_SCRIPT=%PROJECT_ROOT%\\{ENTRY_POINT}"',
        'set "ACTIVATE_SCRIPT=%VENV_DIR%\\Scripts\\activate.bat"',
        'set "DEACTIVATE_SCRIPT=%VENV_DIR%\\Scripts\\deactivate.bat"',
        "",
        "rem Basic checks",
        'if not exist "%PROJECT_ROOT%\\" (',
        "    echo ERROR: Project directory '%PROJECT_ROOT%' not found or accessible. 1>&2",
        "    exit /b 1",
        ")",
        "",
        'if not exist "%MAIN_PYTHON_SCRIPT%" (',
        "    echo ERROR: Main Python script '%MAIN_PYTHON_SCRIPT%' not found in project directory. 1>&2",
        f"    echo Please ensure '{ENTRY_POINT}' exists in '%PROJECT_ROOT%' or adjust the generated script. 1>&2",
        "    exit /b 1",
        ")",
        "",
        'if not exist "%ACTIVATE_SCRIPT%" (',
        "    echo ERROR: Virtual environment activation script not found at '%ACTIVATE_SCRIPT%'. 1>&2",
        "    echo Please ensure the virtual environment is correctly set up in '%VENV_DIR%'. 1>&2",
        "    exit /b 1",
        ")",
        "",
        "rem Activate the virtual environment",
        'call "%ACTIVATE_SCRIPT%"',
        "if errorlevel 1 (",
        "    echo ERROR: Failed to activate virtual environment at '%ACTIVATE_SCRIPT%'. 1>&2",
        "    exit /b 1",
        ")",
        "",
        "rem Execute the main Python script with all passed arguments",
        'python "%MAIN_PYTHON_SCRIPT%" %*',
        'set "RUN_STATUS=%ERRORLEVEL%"',
        "",
        'if exist "%DEACTIVATE_SCRIPT%" call "%DEACTIVATE_SCRIPT%"',
        "",
        "endlocal & exit /b %RUN_STATUS%",
    ]
    return "\r\n".join(lines) + "\r\n"


def extract_project_root(text: str) -> Path | None:
    """Return the project root recorded in a generated launcher, or None."""
    m = _POSIX_MARKER.search(text)
    if m is not None:
        return Path(_SH_ESCAPES.sub(r"\1", m.group(1)))
    m = _BATCH_MARKER.search(text)
    if m is not None:
        return Path(m.group(1).replace("%%", "%"))
    return None
