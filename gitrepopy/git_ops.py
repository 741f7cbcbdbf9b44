"""Git operations for managed projects.

`GitClient` is a thin layer over `CommandRunner`: every method maps to a single git
command (or, for `has_local_changes()`, a short sequence of read-only ones), so callers
can reason about side effects.

GitClient API (public methods)
- `clone(url, dest, branch=None) -> CommandResult`
  Runs `git clone [--branch <branch>] -- <url> <dest>` with a sanitized environment:
  - `HOME` points at a fresh temporary directory, so user-level git config (credential
    helpers, `insteadOf` rewrites, hooks) is not consulted;
  - `GIT_ASKPASS=""`, `SSH_ASKPASS=""` and `GIT_TERMINAL_PROMPT=0` turn every credential
    prompt into an immediate failure instead of a hang;
  - `GITHUB_TOKEN`, `GH_TOKEN` and `GIT_SSH_COMMAND` are removed from the child.
  Private repositories therefore fail to clone unless the URL itself carries access.
- `has_local_changes(cwd=...) -> bool`
  True if the worktree has unstaged changes (`git diff --quiet --exit-code`), staged
  changes (`git diff --cached --quiet --exit-code`) or untracked, non-ignored files
  (`git ls-files --others --exclude-standard`).
- `stash_push(cwd=..., message=...)`: `git stash push -u -m <message>` (untracked files
  included).
- `pull(cwd=...)`: `git pull` against the configured upstream.
- `stash_pop(cwd=...)`: `git stash pop`.

Side effects and safety notes
- Non-zero exits are returned as `CommandResult`, never raised; the lifecycle decides
  whether a failure is fatal (clone) or a warning (stash, pull, pop).
- `stash_pop()` can leave conflict markers in the worktree; git reports that on stderr
  and the stash entry is kept.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

from .process import CommandResult, CommandRunner

_CLONE_ENV_REMOVED = ("GITHUB_TOKEN", "GH_TOKEN", "GIT_SSH_COMMAND")


def clone_environment(home: Path) -> dict[str, str | None]:
    env: dict[str, str | None] = {
        "HOME": str(home),
        "GIT_ASKPASS": "",
        "SSH_ASKPASS": "",
        "GIT_TERMINAL_PROMPT": "0",
    }
    for key in _CLONE_ENV_REMOVED:
        env[key] = None
    return env


class GitClient:
    def __init__(self, *, runner: CommandRunner, git: str = "git") -> None:
        self.runner = runner
        self.git = git

    def clone(self, url: str, dest: Path, *, branch: str | None = None) -> CommandResult:
        args = ["clone"]
        if branch:
            args += ["--branch", branch]
        args += ["--", url, str(dest)]
        with tempfile.TemporaryDirectory(prefix="git-repo-py-home-") as home:
            return self.runner.run(self.git, args, env_overrides=clone_environment(Path(home)))

    def has_local_changes(self, *, cwd: Path) -> bool:
        unstaged = self._git(["diff", "--quiet", "--exit-code"], cwd=cwd)
        if not unstaged.ok:
            return True
        staged = self._git(["diff", "--cached", "--quiet", "--exit-code"], cwd=cwd)
        if not staged.ok:
            return True
        untracked = self._git(["ls-files", "--others", "--exclude-standard"], cwd=cwd)
        return untracked.ok and bool(untracked.stdout.strip())

    def stash_push(self, *, cwd: Path, message: str) -> CommandResult:
        return self.runner.run(self.git, ["stash", "push", "-u", "-m", message], cwd=cwd)

    def pull(self, *, cwd: Path) -> CommandResult:
        return self.runner.run(self.git, ["pull"], cwd=cwd)

    def stash_pop(self, *, cwd: Path) -> CommandResult:
        return self.runner.run(self.git, ["stash", "pop"], cwd=cwd)

    def _git(self, args: list[str], *, cwd: Path) -> CommandResult:
        return self.runner.run(self.git, args, cwd=cwd, log_output=False)
