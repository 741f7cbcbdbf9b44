"""Module entrypoint for ``python -m gitrepopy``.

How it works
------------
Running ``python -m gitrepopy ...`` executes this module, which is intentionally a thin
wrapper around :func:`gitrepopy.cli.main`. It delegates all argument parsing and
orchestration to the CLI module and then raises ``SystemExit(main())`` so that the CLI
return code is used as the process exit status.

This is equivalent to invoking the console-script entrypoint ``git-repo-py`` (configured
as ``gitrepopy.cli:main`` in ``pyproject.toml``).

Inputs
------
- Command-line arguments (see ``python -m gitrepopy --help``):
  - ``<name> <url> [--branch <b>]``: set up a project
  - ``--force-create-run <name> <url>``: set up and always generate the launcher
  - ``--update <name>``, ``--remove <name>``, ``--list``, ``--help``, ``--version``,
    ``--verbose``
- Environment variables:
  - ``TOOLS_BASE_DIR``: where project clones live (default ``/usr/local/tools`` on
    POSIX, ``~/Tools`` on Windows)
  - ``TOOLS_BIN_DIR``: where launchers are registered (default ``/usr/local/bin`` on
    POSIX, ``~/Tools/Bin`` on Windows)
  - ``NO_COLOR``: disable ANSI colors
- External tools: ``git`` and ``python3`` (``python`` on Windows); ``powershell`` on
  Windows for the user PATH update.

Outputs and side effects
------------------------
- Progress lines on stdout (``[INFO] <timestamp> ...``); warnings on stderr when
  ``--verbose`` is given; errors on stderr always.
- ``<base>/<name>/`` (clone + ``.venv``), ``<bin>/<name>`` (or ``<name>.cmd``) and a
  short-lived lock directory under ``<base>/.locks/``.

Failure modes and exit behavior
-------------------------------
Every fatal condition surfaces as :class:`gitrepopy.log.FatalError`, which the CLI turns
into an error line and exit status 1. Usage errors also exit with 1. A cancelled removal
and ``--help`` exit with 0; Ctrl-C exits with 130.
"""

from __future__ import annotations

from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
