"""Idempotent file-system primitives used by the lifecycle orchestrator.

- `set_executable`: add the execute bits for owner, group and others. Platforms where
  executability is decided by file extension pass `supported=False` and get a warning.
- `create_symlink`: link to an existing file or directory; a missing target or a failed
  link is fatal.
- `robust_delete`: recursive removal that first clears read-only attributes and retries
  a bounded number of times on "in use" / "access denied" failures. No backoff: the
  delay between attempts is constant.
- `ensure_within`: the containment guard every destructive call site uses before
  deleting anything.

All fatal conditions are raised as `FatalError`; everything else is logged as a warning
and the caller continues.
"""

from __future__ import annotations

import errno
import os
import shutil
import stat
import time
from collections.abc import Callable
from pathlib import Path

from .log import FatalError, Logger

# ERROR_ACCESS_DENIED, ERROR_SHARING_VIOLATION
_TRANSIENT_WINERRORS = frozenset({5, 32})
_TRANSIENT_ERRNOS = frozenset({errno.EACCES, errno.EPERM, errno.EBUSY})

_EXEC_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


def set_executable(path: Path, *, log: Logger, supported: bool = True) -> None:
    if not supported:
        log.warn(
            f"Skipping executable permission set for '{path}'. "
            "Executability is determined by file association/extension on this platform."
        )
        return
    try:
        mode = path.stat().st_mode
        path.chmod(mode | _EXEC_BITS)
        log.info(f"Set executable permissions for '{path}'.")
    except OSError as exc:
        log.warn(f"Could not set executable permissions for '{path}': {exc}")


def create_symlink(target: Path, link: Path, *, log: Logger) -> None:
    if target.is_file():
        kind = "file"
    elif target.is_dir():
        kind = "directory"
    else:
        raise FatalError(f"Target '{target}' does not exist for symbolic link creation.")

    try:
        link.symlink_to(target, target_is_directory=(kind == "directory"))
    except OSError as exc:
        raise FatalError(
            f"Failed to create symbolic link from '{target}' to '{link}': {exc}. "
            "This might require administrator/root privileges (or Developer Mode on Windows)."
        ) from exc
    log.info(f"Created symbolic {kind} link from '{target}' to '{link}'.")


def remove_file(path: Path, *, log: Logger) -> bool:
    """Remove a file or symlink (dangling links included). Returns False if nothing was there."""
    if not path.is_symlink() and not path.exists():
        return False
    path.unlink()
    log.info(f"Removed '{path}'.")
    return True


def ensure_within(path: Path, base: Path) -> Path:
    """Return `path` resolved, or raise unless it is `base` or lies below it."""
    resolved = path.resolve()
    base_resolved = base.resolve()
    if resolved != base_resolved and base_resolved not in resolved.parents:
        raise FatalError(
            f"Attempted to remove an invalid or potentially dangerous path: '{resolved}' "
            f"is not inside '{base_resolved}'. Refusing to proceed."
        )
    return resolved


def _is_transient(exc: OSError) -> bool:
    if isinstance(exc, PermissionError):
        return True
    if getattr(exc, "winerror", None) in _TRANSIENT_WINERRORS:
        return True
    return exc.errno in _TRANSIENT_ERRNOS


def _make_writable(path: Path, *, log: Logger) -> None:
    try:
        mode = path.lstat().st_mode
        if stat.S_ISLNK(mode):
            return
        wanted = stat.S_IWUSR | stat.S_IRUSR
        if stat.S_ISDIR(mode):
            wanted |= stat.S_IXUSR
        if mode & wanted != wanted:
            os.chmod(path, stat.S_IMODE(mode) | wanted)
    except OSError as exc:
        kind = "directory" if path.is_dir() else "file"
        log.warn(f"Could not clear read-only attribute for {kind} '{path}': {exc}")


def clear_readonly(path: Path, *, log: Logger) -> None:
    """Best-effort: make `path` and everything below it writable by the owner."""
    _make_writable(path, log=log)
    if path.is_symlink() or not path.is_dir():
        return
    # Top-down, so each directory is opened up before os.walk lists it.
    for root, dirs, files in os.walk(path):
        for name in dirs + files:
            _make_writable(Path(root) / name, log=log)


def _delete(path: Path, *, recursive: bool) -> None:
    if path.is_symlink() or not path.is_dir():
        path.unlink()
    elif recursive:
        shutil.rmtree(path)
    else:
        path.rmdir()


def robust_delete(
    path: Path,
    *,
    log: Logger,
    recursive: bool = True,
    max_retries: int = 3,
    retry_delay_ms: int = 100,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    if not path.exists() and not path.is_symlink():
        log.warn(f"Directory '{path}' does not exist. Skipping robust deletion.")
        return

    for attempt in range(1, max_retries + 1):
        try:
            clear_readonly(path, log=log)
            _delete(path, recursive=recursive)
        except OSError as exc:
            if not _is_transient(exc):
                raise FatalError(
                    f"An unexpected error occurred during robust directory deletion of '{path}': {exc}"
                ) from exc
            log.warn(
                f"Failed to delete directory '{path}' (Attempt {attempt}/{max_retries}): {exc}. "
                f"Retrying in {retry_delay_ms}ms..."
            )
            sleep(retry_delay_ms / 1000)
            continue
        log.info(f"Directory '{path}' deleted successfully on attempt {attempt}.")
        return

    raise FatalError(
        f"Failed to delete directory '{path}' after {max_retries} attempts. Manual removal may be required. "
        "Please check for processes holding locks on files within this directory or verify permissions."
    )
