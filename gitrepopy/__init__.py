"""gitrepopy: lifecycle management for Python projects cloned from Git repositories.

This package implements the `git-repo-py` CLI (`gitrepopy.cli:main`, runnable via
`python -m gitrepopy`). Given a project name and a repository URL it clones the project
under a base directory, creates a `.venv` next to the sources, installs dependencies and
registers a launcher in a bin directory that is expected to be on `PATH`.

What gitrepopy provides
- A CLI entrypoint (`gitrepopy.cli:main`) that maps one invocation to exactly one
  operation: setup, forced wrapper regeneration, update, remove, list, help or version.
- A lifecycle orchestrator (`gitrepopy.lifecycle.ProjectLifecycle`) that:
  - clones with a sanitized environment (no interactive prompts, no ambient tokens),
  - creates the virtual environment and installs `requirements.txt` (or runs `build.sh`),
  - generates a launcher (bash on POSIX, `.cmd` on Windows) or links the project's own
    `run.sh`,
  - updates with stash/pull/pop and removes projects behind a containment check.
- Platform capability objects (`gitrepopy.platforms`) that isolate everything that
  differs between POSIX and Windows.

What gitrepopy intentionally does not do
- Resolve dependencies or interpret `requirements.txt`; pip does that.
- Keep any metadata outside the file system itself: project state is always derived by
  probing the base directory and the bin directory.
- Manage several versions of one project side by side.

Key exports from this module
- `__version__`: the package version string. (`__all__` is intentionally limited to this.)

Important invariants and conventions
- Every step of setup is skip-if-done, so an interrupted setup is resumed by running it
  again.
- Nothing is deleted recursively unless it resolves to the base directory or a path
  below it.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "1.9.0"
