"""gitrepopy.cli

Command-line entrypoint for git-repo-py, a lifecycle manager for Python projects that
live in git repositories. One invocation performs exactly one operation:
1) setup: clone, create `.venv`, install dependencies, register a launcher;
2) update: stash local changes, pull, re-apply them;
3) remove: delete the launcher(s) and the clone after confirmation;
4) list: show every project with a launcher in the bin directory.

Entry points
- `gitrepopy.cli:main` (installed as `git-repo-py`)
- `python3 -m gitrepopy ...` (delegates to this module)

Usage
- `git-repo-py <name> <url> [-b <branch>]`: setup
- `git-repo-py -fcr <name> <url> [-b <branch>]`: setup, always generating the launcher
  even if the project ships `run.sh`
- `git-repo-py -bpr <name> <url>`: legacy alias of setup
- `git-repo-py -u <name>` / `-r <name>` / `-l`
- `-v/--verbose` shows warnings; `-h/--help` and `--version` print and exit 0.

Parsing rules
- Mode flags are mutually exclusive; combining two is a usage error.
- Flags and positionals may be interleaved (`parse_known_intermixed_args`).
- Unrecognized flags and stray positionals are collected on `Operation.ignored` and
  reported as warnings; they never abort the run.
- `--branch` only applies to setup; elsewhere it is reported as ignored.
- No arguments, a setup with only a name, or a flag missing its values is a usage
  error: message on stderr, exit status 1.

`parse_operation()` is pure (argv in, `Operation` out) so it can be tested without
touching the file system. `main()` wires `ToolConfig`, the platform, the runner and the
git client into a `ProjectLifecycle` and maps exceptions to exit codes:
- `FatalError` -> logged as an error, exit 1;
- `KeyboardInterrupt` -> exit 130.
"""

from __future__ import annotations

import argparse
import enum
import sys
from dataclasses import dataclass, field

from . import __version__
from .config import BASE_DIR_ENV, BIN_DIR_ENV, ToolConfig
from .git_ops import GitClient
from .lifecycle import ProjectLifecycle
from .log import FatalError, Logger
from .platforms import detect_platform
from .process import CommandRunner

PROG = "git-repo-py"
INTERRUPTED_EXIT_CODE = 130


class UsageError(FatalError):
    pass


class Mode(enum.Enum):
    SETUP = "setup"
    REMOVE = "remove"
    UPDATE = "update"
    LIST = "list"
    FORCE_CREATE_RUN = "force-create-run"
    HELP = "help"
    VERSION = "version"


@dataclass(frozen=True)
class Operation:
    mode: Mode
    name: str | None = None
    url: str | None = None
    branch: str | None = None
    verbose: bool = False
    ignored: tuple[str, ...] = field(default=())


class _Parser(argparse.ArgumentParser):
    def error(self, message: str):  # type: ignore[override]
        raise UsageError(message)


def _epilog(cfg: ToolConfig | None) -> str:
    lines = [
        "environment:",
        f"  {BASE_DIR_ENV}    directory holding the project clones",
        f"  {BIN_DIR_ENV}     directory holding the launchers (should be on PATH)",
        "  NO_COLOR          disable colored output",
    ]
    if cfg is not None:
        lines += [
            "",
            "current configuration:",
            f"  base directory: {cfg.base_dir}",
            f"  bin directory:  {cfg.bin_dir}",
        ]
    lines += ["", f"version {__version__}"]
    return "\n".join(lines)


def build_parser(cfg: ToolConfig | None = None) -> argparse.ArgumentParser:
    p = _Parser(
        prog=PROG,
        description="Set up, update, remove and list Python projects cloned from git repositories.",
        epilog=_epilog(cfg),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        allow_abbrev=False,
    )
    p.add_argument("name", nargs="?", help="Project name (directory under the base directory).")
    p.add_argument("url", nargs="?", help="Git repository URL to clone.")

    modes = p.add_mutually_exclusive_group()
    modes.add_argument("-r", "--remove", metavar="NAME", help="Remove a project and its launcher.")
    modes.add_argument("-u", "--update", metavar="NAME", help="Stash local changes, pull, and re-apply them.")
    modes.add_argument(
        "-fcr",
        "--force-create-run",
        nargs=2,
        metavar=("NAME", "URL"),
        help="Set up a project, always generating the launcher (ignores the project's run.sh).",
    )
    modes.add_argument(
        "-bpr",
        "--build-python-run",
        nargs=2,
        metavar=("NAME", "URL"),
        help="Set up a project (legacy alias).",
    )
    modes.add_argument("-l", "--list", action="store_true", help="List managed projects.")

    p.add_argument("-b", "--branch", default=None, help="Branch to clone (setup only).")
    p.add_argument("-v", "--verbose", action="store_true", help="Show warnings.")
    p.add_argument("-h", "--help", action="store_true", help="Show this help and exit.")
    p.add_argument("--version", action="store_true", help="Show the version and exit.")
    return p


def parse_operation(argv: list[str]) -> Operation:
    if not argv:
        raise UsageError("No arguments provided. Use --help for usage.")

    verbose = "-v" in argv or "--verbose" in argv
    # Help wins over everything else, including arguments that would not parse.
    if "-h" in argv or "--help" in argv:
        return Operation(mode=Mode.HELP, verbose=verbose)
    if "--version" in argv:
        return Operation(mode=Mode.VERSION, verbose=verbose)

    args, extras = build_parser().parse_known_intermixed_args(argv)
    ignored = list(extras)
    positionals = [v for v in (args.name, args.url) if v is not None]

    if args.remove is not None or args.update is not None or args.list:
        ignored += positionals
        if args.branch is not None:
            ignored += ["--branch", args.branch]
        if args.remove is not None:
            return Operation(mode=Mode.REMOVE, name=args.remove, verbose=args.verbose, ignored=tuple(ignored))
        if args.update is not None:
            return Operation(mode=Mode.UPDATE, name=args.update, verbose=args.verbose, ignored=tuple(ignored))
        return Operation(mode=Mode.LIST, verbose=args.verbose, ignored=tuple(ignored))

    if args.force_create_run or args.build_python_run:
        ignored += positionals
        name, url = args.force_create_run or args.build_python_run
        mode = Mode.FORCE_CREATE_RUN if args.force_create_run else Mode.SETUP
        return Operation(
            mode=mode,
            name=name,
            url=url,
            branch=args.branch,
            verbose=args.verbose,
            ignored=tuple(ignored),
        )

    if args.name is None:
        raise UsageError("No operation specified. Use --help for usage.")
    if args.url is None:
        raise UsageError(f"Missing repository URL for project '{args.name}'. Usage: {PROG} <name> <url>")
    return Operation(
        mode=Mode.SETUP,
        name=args.name,
        url=args.url,
        branch=args.branch,
        verbose=args.verbose,
        ignored=tuple(ignored),
    )


def main(argv: list[str] | None = None) -> int:
    raw_argv = list(sys.argv[1:] if argv is None else argv)
    log = Logger(verbose="-v" in raw_argv or "--verbose" in raw_argv)
    try:
        return _run(raw_argv, log=log)
    except UsageError as exc:
        log.error(str(exc))
        print(build_parser().format_usage(), end="", file=sys.stderr)
        return exc.exit_code
    except FatalError as exc:
        log.error(str(exc))
        return exc.exit_code
    except KeyboardInterrupt:
        log.error("Operation interrupted by user.")
        return INTERRUPTED_EXIT_CODE


def _run(raw_argv: list[str], *, log: Logger) -> int:
    op = parse_operation(raw_argv)
    platform = detect_platform()
    cfg = ToolConfig.from_env(platform=platform)

    if op.mode is Mode.HELP:
        log.plain(build_parser(cfg).format_help().rstrip())
        return 0
    if op.mode is Mode.VERSION:
        log.plain(f"{PROG} {__version__}")
        return 0

    for token in op.ignored:
        log.warn(f"Ignoring unrecognized argument '{token}'.")

    runner = CommandRunner(log=log)
    lifecycle = ProjectLifecycle(
        cfg,
        platform=platform,
        runner=runner,
        git=GitClient(runner=runner),
        log=log,
    )

    if op.mode in (Mode.SETUP, Mode.FORCE_CREATE_RUN):
        assert op.name is not None and op.url is not None
        lifecycle.setup(op.name, op.url, branch=op.branch, force_wrapper=op.mode is Mode.FORCE_CREATE_RUN)
    elif op.mode is Mode.UPDATE:
        assert op.name is not None
        lifecycle.update(op.name)
    elif op.mode is Mode.REMOVE:
        assert op.name is not None
        lifecycle.remove(op.name)
    elif op.mode is Mode.LIST:
        lifecycle.list_projects()
    return 0
