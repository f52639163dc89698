from __future__ import annotations

import argparse
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from . import backup
from .cli_shared import GlobalOpts, OpError, Reporter, UsageError, reporter_for
from .compose import CommandFailed, ComposeRunner, build_runner

FULL_RESET_PHRASE = "DELETE ALL DATA"
_FULL_RESET_GRACE_SECONDS = 2


class CleanupLevel(str, Enum):
    LIGHT = "light"
    MEDIUM = "medium"
    DEEP = "deep"
    FULL = "full"


_LEVEL_ALIASES = {
    "1": CleanupLevel.LIGHT,
    "2": CleanupLevel.MEDIUM,
    "3": CleanupLevel.DEEP,
    "4": CleanupLevel.FULL,
}


def parse_level(raw: str) -> CleanupLevel:
    key = (raw or "").strip().lower()
    if key in _LEVEL_ALIASES:
        return _LEVEL_ALIASES[key]
    try:
        return CleanupLevel(key)
    except ValueError:
        raise UsageError(f"unknown cleanup level: {raw!r} (expected light, medium, deep or full)") from None


@dataclass(frozen=True)
class CleanupStep:
    label: str
    done: str
    args: tuple[str, ...]
    compose: bool = False
    best_effort: bool = False

    def argv(self, runner: ComposeRunner) -> list[str]:
        if self.compose:
            return runner.compose_argv(*self.args)
        return runner.docker_argv(*self.args)


LIGHT_STEPS: tuple[CleanupStep, ...] = (
    CleanupStep("Stopping running containers...", "Containers stopped", ("down",), compose=True, best_effort=True),
    CleanupStep("Removing stopped containers...", "Stopped containers removed", ("container", "prune", "-f")),
    CleanupStep("Removing dangling images...", "Dangling images removed", ("image", "prune", "-f")),
    CleanupStep("Removing build cache...", "Build cache cleaned", ("builder", "prune", "-f")),
)

MEDIUM_STEPS: tuple[CleanupStep, ...] = LIGHT_STEPS + (
    CleanupStep("Removing all unused images...", "Unused images removed", ("image", "prune", "-a", "-f")),
    CleanupStep("Removing unused networks...", "Unused networks removed", ("network", "prune", "-f")),
)

DEEP_STEPS: tuple[CleanupStep, ...] = MEDIUM_STEPS + (
    CleanupStep("Removing unused volumes...", "Unused volumes removed", ("volume", "prune", "-f")),
)

_LADDER = {
    CleanupLevel.LIGHT: LIGHT_STEPS,
    CleanupLevel.MEDIUM: MEDIUM_STEPS,
    CleanupLevel.DEEP: DEEP_STEPS,
}

_LEVEL_INTRO = {
    CleanupLevel.LIGHT: (
        "Level 1: Light Cleanup (SAFE)",
        [
            "  • Remove stopped containers",
            "  • Remove dangling images",
            "  • Remove unused build cache",
        ],
    ),
    CleanupLevel.MEDIUM: (
        "Level 2: Medium Cleanup (MODERATE RISK)",
        [
            "  • Do everything in Level 1",
            "  • Remove ALL unused images",
            "  • Remove unused networks",
            "  ⚠ WARNING: Images will need to be rebuilt",
        ],
    ),
    CleanupLevel.DEEP: (
        "Level 3: Deep Cleanup (HIGH RISK - DATA LOSS POSSIBLE)",
        [
            "  • Do everything in Level 1 and 2",
            "  • Remove ALL unused volumes (except named volumes)",
            "  • ⚠ DATA LOSS: Temporary volumes will be deleted",
        ],
    ),
}


def cleanup_steps(level: CleanupLevel) -> tuple[CleanupStep, ...]:
    if level is CleanupLevel.FULL:
        raise ValueError("full reset is not a prune ladder level; use full_reset()")
    return _LADDER[level]


def _run_steps(
    runner: ComposeRunner,
    out: Reporter,
    steps: tuple[CleanupStep, ...],
) -> list[CleanupStep]:
    failed: list[CleanupStep] = []
    for step in steps:
        out.warning(step.label)
        argv = step.argv(runner)
        if step.best_effort:
            code = runner.run(argv, check=False)
            if code != 0:
                out.warning(f"{step.label.rstrip('.')} failed (exit {code}), continuing")
                failed.append(step)
                continue
        else:
            runner.run(argv)
        out.success(step.done)
    return failed


def run_level(
    runner: ComposeRunner,
    out: Reporter,
    level: CleanupLevel,
    *,
    assume_yes: bool = False,
) -> bool:
    """Run one rung of the ladder. Returns False when the user cancels."""
    title, lines = _LEVEL_INTRO[level]
    out.banner(title)
    if level is CleanupLevel.DEEP:
        out.info("WARNING: This is destructive!", style="red")
    out.line("This will:")
    for line in lines:
        out.line(line)
    out.line()
    if level is CleanupLevel.DEEP:
        out.error("This operation may delete data!")

    if not out.confirm("Continue?", assume_yes=assume_yes):
        out.warning("Cancelled")
        return False

    _run_steps(runner, out, cleanup_steps(level))
    out.success(f"Level {list(_LADDER).index(level) + 1} cleanup complete!")
    return True


def _full_reset_steps(runner: ComposeRunner) -> list[tuple[str, Callable[[], list[str] | None]]]:
    """Full-reset command lines, resolved lazily so ids are listed after ``down -v``.

    A resolver returning ``None`` means there is nothing to remove.
    """

    def _rm(ls_args: tuple[str, ...], rm_args: tuple[str, ...]) -> Callable[[], list[str] | None]:
        def resolve() -> list[str] | None:
            ids = runner.docker_ids(*ls_args)
            if not ids:
                return None
            return runner.docker_argv(*rm_args, *ids)

        return resolve

    return [
        ("Stopping containers...", lambda: runner.compose_argv("down", "-v")),
        ("Removing all containers...", _rm(("container", "ls", "-aq"), ("container", "rm", "-f"))),
        ("Removing all images...", _rm(("image", "ls", "-aq"), ("image", "rm", "-f"))),
        ("Removing all volumes...", _rm(("volume", "ls", "-q"), ("volume", "rm", "-f"))),
        ("Removing all networks...", _rm(("network", "ls", "-q", "--filter", "type=custom"), ("network", "rm"))),
        ("Removing all build cache...", lambda: runner.docker_argv("builder", "prune", "-a", "-f")),
    ]


def full_reset(
    runner: ComposeRunner,
    out: Reporter,
    *,
    confirmation: str | None = None,
) -> bool:
    """Delete every container, image, volume, network and build cache.

    Nothing runs unless ``confirmation`` (or the typed answer) equals
    ``DELETE ALL DATA`` exactly. Each removal is attempted even when an
    earlier one fails; failures are collected and raised at the end.
    """
    out.banner("Level 4: FULL RESET (⚠️ EXTREME DANGER - COMPLETE DATA LOSS)")
    out.info("═" * 35, style="red")
    out.info("DANGER: THIS WILL DELETE ALL DATA!", style="red")
    out.info("═" * 35, style="red")
    out.line()
    out.line("This will:")
    out.line("  • Delete ALL containers")
    out.line("  • Delete ALL images")
    out.line("  • Delete ALL volumes (⚠️ DATABASE DATA WILL BE LOST)")
    out.line("  • Delete ALL networks")
    out.line("  • Delete ALL build cache")
    out.line()

    if confirmation is None:
        out.error(f"Type '{FULL_RESET_PHRASE}' (without quotes) to confirm")
        confirmation = out.ask(">")
    if confirmation.strip() != FULL_RESET_PHRASE:
        out.warning("Cancelled")
        return False

    out.error("Starting full system reset...")
    time.sleep(_FULL_RESET_GRACE_SECONDS)

    failures: list[str] = []
    for label, resolve in _full_reset_steps(runner):
        out.warning(label)
        try:
            argv = resolve()
        except CommandFailed as e:
            out.error(f"{label.rstrip('.')} failed: {e}")
            failures.append(f"{label.rstrip('.')} (exit {e.returncode})")
            continue
        if argv is None:
            out.info("  nothing to remove")
            continue
        code = runner.run(argv, check=False)
        if code != 0:
            out.error(f"{label.rstrip('.')} failed (exit {code})")
            failures.append(f"{label.rstrip('.')} (exit {code})")

    if failures:
        raise OpError("full reset incomplete; failed steps: " + "; ".join(failures))
    out.success("Full system reset complete!")
    out.warning("You will need to rebuild everything")
    return True


def show_disk_usage(runner: ComposeRunner, out: Reporter) -> None:
    out.info("Current Docker Disk Usage:", style="blue")
    code = runner.docker("system", "df", check=False)
    if code != 0:
        out.warning(f"docker system df failed (exit {code})")
    out.line()


def reset_database(runner: ComposeRunner, out: Reporter, g: GlobalOpts) -> None:
    out.warning("Dropping database...")
    code = runner.compose("exec", g.web_service, "rails", "db:drop", "--force", check=False)
    if code != 0:
        out.warning(f"Database drop failed (exit {code}); it may not exist yet")
    else:
        out.success("Database dropped")

    out.warning("Creating database...")
    runner.compose("run", "--rm", g.cli_service, "db:create")
    out.success("Database created")

    out.warning("Running migrations...")
    runner.compose("run", "--rm", g.cli_service, "db:migrate")
    out.success("Migrations complete")
    out.success("Database reset complete!")


def backup_database(runner: ComposeRunner, out: Reporter, g: GlobalOpts) -> str:
    out.warning(f"Backing up database to {g.resolved_backups_dir()}...")
    try:
        path = backup.create_backup(runner, g)
    except CommandFailed:
        out.error("Backup failed")
        raise
    out.success("Database backed up successfully")
    out.success(f"Backup location: {path}")
    return str(path)


_DB_ACTIONS = {"1": "reset", "2": "backup", "3": "cancel"}


def cmd_cleanup_level(args: argparse.Namespace, g: GlobalOpts) -> int:
    level = parse_level(str(args.level))
    out = reporter_for(g)
    runner = build_runner(g)
    if level is CleanupLevel.FULL:
        full_reset(runner, out, confirmation=getattr(args, "confirm_text", None))
    else:
        run_level(runner, out, level, assume_yes=g.assume_yes)
    if bool(getattr(args, "show_usage", True)):
        show_disk_usage(runner, out)
    return 0


def cmd_disk_usage(args: argparse.Namespace, g: GlobalOpts) -> int:
    del args
    show_disk_usage(build_runner(g), reporter_for(g))
    return 0


def cmd_db_cleanup(args: argparse.Namespace, g: GlobalOpts) -> int:
    out = reporter_for(g)
    runner = build_runner(g)
    out.banner("Database Cleanup")

    action = str(getattr(args, "action", None) or "").strip().lower()
    if not action:
        out.line("Options:")
        out.line("1. Clean data (reset database)")
        out.line("2. Backup database")
        out.line("3. Cancel")
        out.line()
        choice = out.ask("Select option (1-3)").strip()
        action = _DB_ACTIONS.get(choice, "")
        if not action:
            out.error("Invalid option")
            return 1

    if action == "reset":
        if not out.confirm("Reset database (data will be lost)?", assume_yes=g.assume_yes):
            out.warning("Cancelled")
            return 0
        reset_database(runner, out, g)
        return 0
    if action == "backup":
        backup_database(runner, out, g)
        return 0
    if action == "cancel":
        out.warning("Cancelled")
        return 0
    raise UsageError(f"unknown db action: {action!r} (expected reset or backup)")
