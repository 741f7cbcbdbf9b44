"""Advisory per-project lock.

Setup, Update and Remove of the same project from two shells at once would interleave
clones, pulls and deletes. `project_lock()` serializes them:

- The lock is the directory `<base>/.locks/<name>.lock`, created with a single atomic
  `mkdir`. An `owner.json` inside records the pid and acquisition time.
- A lock older than `ttl_seconds` (default one hour), or one whose owner file is
  missing or unreadable for longer than the grace period, is considered abandoned and
  reclaimed.
- If the lock is still held after `timeout_seconds`, `FatalError` is raised and the
  operation does not start.

The lock is advisory: it only coordinates gitrepopy invocations, nothing else.
"""

from __future__ import annotations

import json
import os
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from .log import FatalError, Logger

OWNER_FILE = "owner.json"
# An owner file is written right after mkdir; give a concurrent acquirer time to do so.
_MISSING_OWNER_GRACE_SECONDS = 5.0


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ProjectLock:
    path: Path
    pid: int

    def release(self) -> None:
        (self.path / OWNER_FILE).unlink(missing_ok=True)
        if self.path.exists():
            self.path.rmdir()


def lock_path(lock_dir: Path, name: str) -> Path:
    return lock_dir / f"{name}.lock"


def _is_stale(path: Path, *, ttl_seconds: float, now: datetime) -> bool:
    owner = path / OWNER_FILE
    try:
        payload = json.loads(owner.read_text(encoding="utf-8"))
        acquired = datetime.fromisoformat(str(payload["acquired_at"]))
    except (OSError, ValueError, KeyError, TypeError):
        try:
            age = now.timestamp() - path.stat().st_mtime
        except FileNotFoundError:
            return False
        return age > _MISSING_OWNER_GRACE_SECONDS
    if acquired.tzinfo is None:
        acquired = acquired.replace(tzinfo=timezone.utc)
    return (now - acquired).total_seconds() > ttl_seconds


def _reclaim(path: Path, *, log: Logger) -> None:
    try:
        (path / OWNER_FILE).unlink(missing_ok=True)
        path.rmdir()
    except FileNotFoundError:
        return
    except OSError as exc:
        log.warn(f"Could not reclaim stale lock '{path}': {exc}")
        return
    log.warn(f"Reclaimed stale lock '{path}'.")


def acquire(
    lock_dir: Path,
    name: str,
    *,
    log: Logger,
    ttl_seconds: float = 3600,
    timeout_seconds: float = 10,
    poll_interval_seconds: float = 0.2,
    now: Callable[[], datetime] = _utc_now,
    monotonic: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> ProjectLock:
    try:
        lock_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FatalError(f"Failed to create lock directory '{lock_dir}': {exc}") from exc

    path = lock_path(lock_dir, name)
    started = monotonic()
    while True:
        try:
            path.mkdir()
        except FileExistsError:
            if _is_stale(path, ttl_seconds=ttl_seconds, now=now()):
                _reclaim(path, log=log)
                continue
            if monotonic() - started >= timeout_seconds:
                raise FatalError(
                    f"Project '{name}' is locked by another git-repo-py invocation ('{path}'). "
                    "Wait for it to finish, or remove the lock directory if no other invocation is running."
                ) from None
            sleep(poll_interval_seconds)
            continue
        except OSError as exc:
            raise FatalError(f"Failed to create lock '{path}': {exc}") from exc

        payload = {"pid": os.getpid(), "acquired_at": now().isoformat(timespec="seconds")}
        (path / OWNER_FILE).write_text(json.dumps(payload) + "\n", encoding="utf-8")
        return ProjectLock(path=path, pid=payload["pid"])


@contextmanager
def project_lock(lock_dir: Path, name: str, *, log: Logger, **kwargs) -> Iterator[ProjectLock]:
    held = acquire(lock_dir, name, log=log, **kwargs)
    try:
        yield held
    finally:
        held.release()
