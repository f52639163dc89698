"""Timestamped PostgreSQL dumps under ``backups/``.

Dumps are named ``db_backup_<YYYYMMDD_HHMMSS>.sql``. Timestamps have
one-second resolution, so a second dump within the same second gets a
numeric suffix (``db_backup_<ts>_1.sql``) instead of replacing the first.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import IO

from .cli_shared import GlobalOpts
from .compose import CommandFailed, ComposeRunner

BACKUP_PREFIX = "db_backup_"
BACKUP_SUFFIX = ".sql"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
DEFAULT_MAX_AGE_DAYS = 90

_BACKUP_NAME_RE = re.compile(r"^db_backup_\d{8}_\d{6}(?:_\d+)?\.sql$")

_MAX_COLLISIONS = 1000
_SECONDS_PER_DAY = 86400


def backup_filename(now: datetime, *, attempt: int = 0) -> str:
    stamp = now.strftime(TIMESTAMP_FORMAT)
    if attempt:
        return f"{BACKUP_PREFIX}{stamp}_{attempt}{BACKUP_SUFFIX}"
    return f"{BACKUP_PREFIX}{stamp}{BACKUP_SUFFIX}"


def is_backup_file(path: Path) -> bool:
    return path.is_file() and bool(_BACKUP_NAME_RE.match(path.name))


def open_new_backup(backups_dir: Path, now: datetime) -> tuple[Path, IO[bytes]]:
    """Create and open a backup file that did not exist before."""
    backups_dir.mkdir(parents=True, exist_ok=True)
    for attempt in range(_MAX_COLLISIONS):
        path = backups_dir / backup_filename(now, attempt=attempt)
        try:
            fh = open(path, "xb")
        except FileExistsError:
            continue
        return path, fh
    raise FileExistsError(f"too many backups for timestamp {now.strftime(TIMESTAMP_FORMAT)} in {backups_dir}")


def pg_dump_args(g: GlobalOpts) -> list[str]:
    # -T: no TTY, the dump is streamed to a file
    return ["exec", "-T", g.db_service, "pg_dump", "-U", g.db_user, g.db_name]


def create_backup(runner: ComposeRunner, g: GlobalOpts, *, now: datetime | None = None) -> Path:
    path, fh = open_new_backup(g.resolved_backups_dir(), now or datetime.now())
    argv = runner.compose_argv(*pg_dump_args(g))
    try:
        with fh:
            code = runner.run_to_file(argv, fh)
    except BaseException:
        path.unlink(missing_ok=True)
        raise
    if code != 0:
        path.unlink(missing_ok=True)
        raise CommandFailed(argv, code, "backup failed")
    return path


@dataclass(frozen=True)
class PruneResult:
    removed: list[Path]
    kept: list[Path]


def prune_backups(
    backups_dir: Path,
    *,
    max_age_days: int = DEFAULT_MAX_AGE_DAYS,
    now: float | None = None,
    dry_run: bool = False,
) -> PruneResult:
    """Delete backup dumps more than ``max_age_days`` whole days old.

    Age is counted like ``find -mtime +N``: the fractional part of a day is
    dropped, so with 90 a dump goes once it is at least 91 days old.
    """
    if max_age_days < 0:
        raise ValueError("max_age_days must be >= 0")
    if not backups_dir.is_dir():
        return PruneResult(removed=[], kept=[])
    now = time.time() if now is None else now
    removed: list[Path] = []
    kept: list[Path] = []
    for path in sorted(backups_dir.iterdir()):
        if not is_backup_file(path):
            continue
        if int((now - path.stat().st_mtime) // _SECONDS_PER_DAY) > max_age_days:
            if not dry_run:
                path.unlink()
            removed.append(path)
        else:
            kept.append(path)
    return PruneResult(removed=removed, kept=kept)
