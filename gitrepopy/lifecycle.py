"""Project lifecycle: setup, update, remove and list managed projects.

A managed project is a git clone at `<base>/<name>` with a `.venv` inside it and a
launcher at `<bin>/<name>` (`<bin>/<name>.cmd` on Windows). No metadata file is kept:
every decision below is made by probing the file system, so interrupted runs resume by
simply running the same command again.

Setup (`ProjectLifecycle.setup`)
States advance `Absent -> Cloned -> VenvReady -> DependenciesHandled ->
WrapperRegistered -> OnPath`; each step skips itself when its result already exists.
0) `git` and the platform's python must be runnable (`check_dependencies()`).
1) Base and bin directories are created if missing.
2) Clone `url` (optionally `--branch`) into the project root with a sanitized git
   environment (see `git_ops`). An existing root is reused as-is.
3) `<python> -m venv .venv` inside the root, unless `.venv` exists.
4) POSIX: the venv's `bin/` entries are made executable (best-effort).
5) Dependencies: a project `build.sh` wins (POSIX only); otherwise
   `requirements.txt` is installed with the venv's pip. Failures here are warnings.
6) Every known launcher variant for the name is removed, then either `run.sh` is
   symlinked (POSIX, when present and not forced) or a launcher is generated.
7) The bin directory is put on `PATH` (Windows) or instructions are printed (POSIX).
Fatal errors abort without rollback.

Update (`ProjectLifecycle.update`)
Every `__pycache__` directory (the venv's included) is deleted, local changes are
stashed, `git pull` runs and the stash is popped again whatever the pull did. Only a
missing root or missing `.git` is fatal; everything after that is a warning.

Remove (`ProjectLifecycle.remove`)
The project root must resolve inside the base directory; this is checked before the
confirmation prompt and before anything is touched. Launchers are removed best-effort,
then the root is deleted with `fs_ops.robust_delete`.

List (`ProjectLifecycle.list_projects`)
The bin directory is the index. Each entry leads back to a project root either through
its symlink target (run.sh links) or through the `PROJECT_ROOT` marker in a generated
launcher. Entries whose root lacks `.git` or `.venv` are skipped with a warning.

Setup and Update hold the per-project lock from `gitrepopy.lock` while they mutate the
project; Remove takes it only when the project root exists.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .config import ToolConfig
from .fs_ops import create_symlink, ensure_within, remove_file, robust_delete, set_executable
from .git_ops import GitClient
from .lock import ProjectLock, project_lock
from .log import FatalError, Logger
from .path_registry import ensure_bin_on_path
from .platforms import Platform, wrapper_variants
from .process import CommandRunner
from .wrapper import ENTRY_POINT, VENV_DIRNAME, extract_project_root

CONFIRM_PROMPT = "Are you absolutely sure you want to proceed? (type 'yes' to confirm): "
STASH_MESSAGE = "git-repo-py update: temporary stash for {name}"
RESERVED_NAMES = frozenset({".locks"})
# Launchers are small text files; anything bigger is not ours.
_MAX_LAUNCHER_BYTES = 1024 * 1024
_PYCACHE_PRUNE = frozenset({".git"})


@dataclass(frozen=True)
class ManagedProject:
    name: str
    root: Path

    @classmethod
    def for_name(cls, base_dir: Path, name: str) -> "ManagedProject":
        if not name or name in {".", ".."} or "/" in name or "\\" in name:
            raise FatalError(
                f"Invalid project name '{name}'. Names must be non-empty, must not be '.' or '..', "
                "and must not contain path separators."
            )
        if name in RESERVED_NAMES:
            raise FatalError(f"Invalid project name '{name}': the name is reserved by git-repo-py.")
        return cls(name=name, root=base_dir / name)

    @property
    def venv_dir(self) -> Path:
        return self.root / VENV_DIRNAME

    @property
    def git_dir(self) -> Path:
        return self.root / ".git"

    @property
    def run_script(self) -> Path:
        return self.root / "run.sh"

    @property
    def main_script(self) -> Path:
        return self.root / ENTRY_POINT

    @property
    def requirements(self) -> Path:
        return self.root / "requirements.txt"

    @property
    def build_script(self) -> Path:
        return self.root / "build.sh"


@dataclass(frozen=True)
class ProjectListing:
    name: str
    root: Path
    venv_status: str
    created: datetime


def _created_at(path: Path) -> datetime:
    st = path.stat()
    ts = getattr(st, "st_birthtime", None)
    return datetime.fromtimestamp(ts if ts else st.st_ctime)


class ProjectLifecycle:
    def __init__(
        self,
        cfg: ToolConfig,
        *,
        platform: Platform,
        runner: CommandRunner,
        git: GitClient,
        log: Logger,
        confirm: Callable[[str], str] = input,
        lock_timeout_seconds: float = 10,
    ) -> None:
        self.cfg = cfg
        self.platform = platform
        self.runner = runner
        self.git = git
        self.log = log
        self.confirm = confirm
        self.lock_timeout_seconds = lock_timeout_seconds

    # -- dependency check -------------------------------------------------------------

    def check_dependencies(self) -> None:
        missing = []
        for tool in ("git", self.platform.python_command):
            res = self.runner.run(tool, ["--version"], log_output=False)
            if not res.ok:
                missing.append(tool)
        if missing:
            raise FatalError(
                f"Required tools are missing or not runnable: {', '.join(missing)}. "
                "Please install them and make sure they are on PATH "
                "(the Python installation must include the 'venv' module, e.g. 'sudo apt install python3-venv')."
            )
        self.log.info("All required dependencies (git, python) are available.")

    # -- setup ------------------------------------------------------------------------

    def setup(
        self,
        name: str,
        url: str,
        *,
        branch: str | None = None,
        force_wrapper: bool = False,
    ) -> ManagedProject:
        project = ManagedProject.for_name(self.cfg.base_dir, name)
        self.check_dependencies()
        self._ensure_directory(self.cfg.base_dir, "base")
        self._ensure_directory(self.cfg.bin_dir, "bin")

        with self._lock(project.name):
            self._clone(project, url, branch=branch)
            self._create_venv(project)
            self._mark_venv_executables(project)
            self._install_dependencies(project)
            self._register_wrapper(project, force=force_wrapper)

        ensure_bin_on_path(self.cfg.bin_dir, platform=self.platform, runner=self.runner, log=self.log)
        self.log.info(f"Setup for project '{project.name}' completed successfully.")
        return project

    def _ensure_directory(self, path: Path, label: str) -> None:
        if path.is_dir():
            return
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FatalError(
                f"Failed to create {label} directory '{path}': {exc}. "
                "Check permissions or run with appropriate privileges."
            ) from exc
        self.log.info(f"Created {label} directory '{path}'.")

    def _clone(self, project: ManagedProject, url: str, *, branch: str | None) -> None:
        if project.root.exists():
            self.log.warn(f"Project directory '{project.root}' already exists. Skipping cloning.")
            return
        suffix = f" (branch '{branch}')" if branch else ""
        self.log.info(f"Cloning '{url}'{suffix} into '{project.root}'...")
        res = self.git.clone(url, project.root, branch=branch)
        if not res.ok:
            detail = res.stderr.strip() or f"exit code {res.exit_code}"
            raise FatalError(f"Failed to clone repository '{url}': {detail}")

    def _create_venv(self, project: ManagedProject) -> None:
        if project.venv_dir.exists():
            self.log.warn(f"Virtual environment '{project.venv_dir}' already exists. Skipping creation.")
            return
        self.log.info(f"Creating virtual environment in '{project.venv_dir}'...")
        res = self.runner.run(
            self.platform.python_command,
            ["-m", "venv", str(project.venv_dir)],
            cwd=project.root,
        )
        if not res.ok:
            detail = res.stderr.strip() or f"exit code {res.exit_code}"
            raise FatalError(
                f"Failed to create virtual environment in '{project.venv_dir}': {detail}. "
                "Make sure the 'venv' module is installed (e.g. 'sudo apt install python3-venv')."
            )

    def _mark_venv_executables(self, project: ManagedProject) -> None:
        if not self.platform.executable_bits:
            return
        scripts = project.venv_dir / self.platform.scripts_dirname
        if not scripts.is_dir():
            return
        for entry in sorted(scripts.iterdir()):
            # python/python3 are links into the system interpreter.
            if entry.is_file() and not entry.is_symlink():
                set_executable(entry, log=self.log)

    def _install_dependencies(self, project: ManagedProject) -> None:
        if self.platform.runs_build_script and project.build_script.is_file():
            self.log.info(f"Found '{project.build_script.name}'; running it instead of installing requirements.")
            set_executable(project.build_script, log=self.log)
            res = self.runner.run(project.build_script, cwd=project.root)
            if not res.ok:
                self.log.warn(f"Build script '{project.build_script}' failed with exit code {res.exit_code}.")
            return

        if not project.requirements.is_file():
            self.log.warn(
                f"No build.sh or requirements.txt found in '{project.root}'. Skipping dependency installation."
            )
            return

        pip = self.platform.pip_path(project.venv_dir)
        if not pip.exists():
            self.log.warn(f"pip not found at '{pip}'. Skipping dependency installation.")
            return
        self.log.info(f"Installing dependencies from '{project.requirements}'...")
        res = self.runner.run(
            pip,
            ["install", "-r", str(project.requirements), "--no-input", "--disable-pip-version-check"],
            cwd=project.root,
            env_overrides={"PIP_NO_INPUT": "1"},
        )
        if not res.ok:
            self.log.warn(
                f"Dependency installation failed with exit code {res.exit_code}. "
                f"You may need to run '{pip} install -r requirements.txt' manually."
            )

    def _register_wrapper(self, project: ManagedProject, *, force: bool) -> None:
        for variant in wrapper_variants(self.cfg.bin_dir, project.name):
            try:
                remove_file(variant, log=self.log)
            except OSError as exc:
                raise FatalError(f"Failed to remove existing launcher '{variant}': {exc}") from exc

        if self.platform.links_run_script and not force and project.run_script.is_file():
            set_executable(project.run_script, log=self.log)
            create_symlink(project.run_script, self.cfg.bin_dir / project.name, log=self.log)
            return

        target = self.platform.wrapper_path(self.cfg.bin_dir, project.name)
        text = self.platform.render_wrapper(project.root, version=self.cfg.version)
        try:
            with target.open("w", encoding="utf-8", newline="") as fh:
                fh.write(text)
        except OSError as exc:
            raise FatalError(f"Failed to write launcher '{target}': {exc}") from exc
        self.log.info(f"Generated launcher '{target}'.")
        set_executable(target, log=self.log, supported=self.platform.executable_bits)

    # -- update -----------------------------------------------------------------------

    def update(self, name: str) -> None:
        project = ManagedProject.for_name(self.cfg.base_dir, name)
        if not project.root.is_dir():
            raise FatalError(f"Project directory '{project.root}' does not exist. Cannot update '{name}'.")
        if not project.git_dir.exists():
            raise FatalError(f"'{project.root}' is not a git repository. Cannot update '{name}'.")

        with self._lock(project.name):
            self._clean_pycache(project.root)

            stashed = False
            if self.git.has_local_changes(cwd=project.root):
                self.log.info("Local changes detected; stashing them before pulling.")
                res = self.git.stash_push(cwd=project.root, message=STASH_MESSAGE.format(name=project.name))
                if res.ok:
                    stashed = "No local changes to save" not in res.stdout
                else:
                    self.log.warn(f"Failed to stash local changes (exit code {res.exit_code}). Pulling anyway.")

            res = self.git.pull(cwd=project.root)
            if not res.ok:
                self.log.warn(f"'git pull' failed with exit code {res.exit_code}.")

            if stashed:
                res = self.git.stash_pop(cwd=project.root)
                if not res.ok:
                    self.log.warn(
                        f"Failed to re-apply stashed changes (exit code {res.exit_code}). "
                        "Your changes are still in 'git stash list'; resolve them manually."
                    )

        self.log.info(f"Update for project '{project.name}' completed.")

    def _clean_pycache(self, root: Path) -> None:
        found: list[Path] = []
        for dirpath, dirnames, _ in os.walk(root):
            for d in list(dirnames):
                if d in _PYCACHE_PRUNE:
                    dirnames.remove(d)
                elif d == "__pycache__":
                    found.append(Path(dirpath) / d)
                    dirnames.remove(d)
        for path in found:
            try:
                robust_delete(path, log=self.log)
            except FatalError as exc:
                self.log.warn(f"Could not delete '{path}': {exc}")

    # -- remove -----------------------------------------------------------------------

    def remove(self, name: str) -> bool:
        project = ManagedProject.for_name(self.cfg.base_dir, name)
        ensure_within(project.root, self.cfg.base_dir)

        self.log.info(
            f"This will permanently delete '{project.root}' and every launcher for '{project.name}' "
            f"in '{self.cfg.bin_dir}'."
        )
        try:
            answer = self.confirm(CONFIRM_PROMPT)
        except EOFError:
            answer = ""
        if answer.strip().lower() != "yes":
            self.log.info("Removal cancelled.")
            return False

        # A missing root needs no guard, and locking it would create <base>/.locks.
        present = project.root.exists() or project.root.is_symlink()
        with self._lock(project.name) if present else nullcontext():
            for variant in wrapper_variants(self.cfg.bin_dir, project.name):
                try:
                    remove_file(variant, log=self.log)
                except OSError as exc:
                    self.log.warn(f"Failed to remove launcher '{variant}': {exc}")

            if present:
                robust_delete(project.root, log=self.log)
            else:
                self.log.warn(f"Project directory '{project.root}' does not exist. Skipping directory removal.")

        self.log.info(f"Project '{project.name}' removed.")
        return True

    # -- list -------------------------------------------------------------------------

    def list_projects(self) -> list[ProjectListing]:
        bin_dir = self.cfg.bin_dir
        if not bin_dir.is_dir():
            self.log.warn(f"Bin directory '{bin_dir}' does not exist.")
            self.log.info("Found 0 managed project(s).")
            return []

        listings: list[ProjectListing] = []
        seen: set[Path] = set()
        for entry in sorted(bin_dir.iterdir()):
            if entry.is_dir() and not entry.is_symlink():
                continue
            root = self._recover_root(entry)
            if root is None:
                self.log.warn(f"Skipping '{entry}': not a git-repo-py launcher.")
                continue
            if root in seen:
                continue
            if not (root / ".git").exists() or not (root / VENV_DIRNAME).is_dir():
                self.log.warn(f"Skipping '{entry}': '{root}' is missing .git or {VENV_DIRNAME}.")
                continue
            seen.add(root)
            has_requirements = (root / "requirements.txt").is_file()
            listings.append(
                ProjectListing(
                    name=root.name,
                    root=root,
                    venv_status="venv ready, requirements.txt present"
                    if has_requirements
                    else "venv ready, no requirements.txt",
                    created=_created_at(root),
                )
            )

        for item in listings:
            self.log.plain(f"  {item.name}")
            self.log.plain(f"    Path:    {item.root}")
            self.log.plain(f"    Status:  {item.venv_status}")
            self.log.plain(f"    Created: {item.created:%Y-%m-%d %H:%M:%S}")
        self.log.info(f"Found {len(listings)} managed project(s).")
        return listings

    def _recover_root(self, entry: Path) -> Path | None:
        if entry.is_symlink():
            base = self.cfg.base_dir.resolve()
            target = entry.resolve()
            if base in target.parents:
                return base / target.relative_to(base).parts[0]
        try:
            if entry.stat().st_size > _MAX_LAUNCHER_BYTES:
                return None
            text = entry.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return None
        return extract_project_root(text)

    @contextmanager
    def _lock(self, name: str) -> Iterator[ProjectLock]:
        with project_lock(
            self.cfg.lock_dir,
            name,
            log=self.log,
            timeout_seconds=self.lock_timeout_seconds,
        ) as held:
            yield held
