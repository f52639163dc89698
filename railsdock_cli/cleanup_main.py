from __future__ import annotations

import sys

import typer

from .cleanup_commands import (
    CleanupLevel,
    cmd_cleanup_level,
    cmd_db_cleanup,
    cmd_disk_usage,
    full_reset,
    run_level,
    show_disk_usage,
)
from .cli_shared import GlobalOpts, OpError, reporter_for
from .compose import build_runner
from .runtime_core import (
    BACKUPS_DIR_OPTION,
    COMPOSE_CMD_OPTION,
    COMPOSE_FILE_OPTION,
    DB_NAME_OPTION,
    DB_USER_OPTION,
    PROJECT_ROOT_OPTION,
    QUIET_OPTION,
    YES_OPTION,
    _ctx_global,
    _invoke,
    _namespace,
    _rich_error,
    _run_cli,
    _store_global,
    _version_callback_for,
)
from .service_commands import cmd_db_backup

PROG_NAME = "railsdock-cleanup"

CLEANUP_HELP = f"""
Docker Cleanup Utility

Usage: {PROG_NAME} [OPTION]

Options:
  1, light      Run light cleanup (safe)
  2, medium     Run medium cleanup (moderate risk)
  3, deep       Run deep cleanup (high risk)
  4, full       Run full reset (EXTREME DANGER)
  db            Database-specific cleanup
  status        Show disk usage
  help          Show this help message

Examples:
  {PROG_NAME} light
  {PROG_NAME} medium
  {PROG_NAME} db
  {PROG_NAME} status

Safety Levels:
  Level 1 (Light):   Safe, removes stopped containers and dangling images
  Level 2 (Medium):  Moderate, removes all unused images
  Level 3 (Deep):    Risky, removes unused volumes (may lose data)
  Level 4 (Full):    DANGEROUS, complete system reset, DATA LOSS

Recommendations:
  • Use Level 1 weekly: {PROG_NAME} light
  • Use Level 2 monthly: {PROG_NAME} medium
  • Use Level 3 only when low on disk: {PROG_NAME} deep
  • Avoid Level 4 unless absolutely necessary

Before cleanup:
  • Backup important data
  • Stop all services gracefully
  • Review what will be deleted
"""

_MENU = (
    ("1", "Light cleanup (safe)"),
    ("2", "Medium cleanup (moderate risk)"),
    ("3", "Deep cleanup (high risk)"),
    ("4", "Full reset (EXTREME DANGER)"),
    ("5", "Database cleanup"),
    ("6", "Show disk usage"),
    ("0", "Exit"),
)

app = typer.Typer(
    name=PROG_NAME,
    help="Safe cleanup of Docker containers, images, and volumes with warnings.",
    invoke_without_command=True,
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def app_callback(
    ctx: typer.Context,
    project_root: str | None = PROJECT_ROOT_OPTION,
    compose_file: str | None = COMPOSE_FILE_OPTION,
    compose_cmd: str | None = COMPOSE_CMD_OPTION,
    db_user: str | None = DB_USER_OPTION,
    db_name: str | None = DB_NAME_OPTION,
    backups_dir: str | None = BACKUPS_DIR_OPTION,
    yes: bool = YES_OPTION,
    quiet: bool = QUIET_OPTION,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback_for(PROG_NAME),
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    del version
    if ctx.invoked_subcommand == "help":
        typer.echo(CLEANUP_HELP)
        raise typer.Exit(code=0)
    ns = _namespace(
        project_root=project_root,
        compose_file=compose_file,
        compose_cmd=compose_cmd,
        db_user=db_user,
        db_name=db_name,
        backups_dir=backups_dir,
        yes=yes,
        quiet=quiet,
    )
    _store_global(ctx, ns)
    if ctx.invoked_subcommand is None:
        raise typer.Exit(code=_interactive_menu(_ctx_global(ctx)))


def _menu_action(choice: str, g: GlobalOpts) -> None:
    out = reporter_for(g)
    runner = build_runner(g)
    if choice in ("1", "2", "3"):
        level = {"1": CleanupLevel.LIGHT, "2": CleanupLevel.MEDIUM, "3": CleanupLevel.DEEP}[choice]
        run_level(runner, out, level, assume_yes=g.assume_yes)
    elif choice == "4":
        full_reset(runner, out)
    elif choice == "5":
        cmd_db_cleanup(_namespace(action=None), g)
    elif choice == "6":
        show_disk_usage(runner, out)


def _interactive_menu(g: GlobalOpts) -> int:
    out = reporter_for(g)
    runner = build_runner(g)
    while True:
        out.banner("Docker Cleanup Utility")
        show_disk_usage(runner, out)
        out.line("Select cleanup level:")
        for key, label in _MENU:
            out.line(f"  {key}) {label}")
        out.line()

        choice = out.ask("Enter your choice (0-6)", default="0").strip()
        if choice == "0":
            out.success("Goodbye!")
            return 0
        if choice not in {k for k, _ in _MENU}:
            out.error("Invalid option")
            continue

        try:
            _menu_action(choice, g)
        except OpError as e:
            # report and return to the menu
            _rich_error(str(e))

        out.line()
        if not out.confirm("Run another cleanup?"):
            out.success("Goodbye!")
            return 0


@app.command("light", help="Level 1: remove stopped containers, dangling images and build cache (safe).")
def light(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_cleanup_level, level=CleanupLevel.LIGHT.value)


@app.command("medium", help="Level 2: light cleanup plus all unused images and networks (moderate risk).")
def medium(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_cleanup_level, level=CleanupLevel.MEDIUM.value)


@app.command("deep", help="Level 3: medium cleanup plus unused volumes (high risk, data loss possible).")
def deep(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_cleanup_level, level=CleanupLevel.DEEP.value)


@app.command("full", help="Level 4: delete ALL containers, images, volumes, networks and build cache.")
def full(
    ctx: typer.Context,
    confirm_text: str | None = typer.Option(
        None,
        "--confirm-text",
        help="Pass the confirmation phrase non-interactively (must be exactly: DELETE ALL DATA)",
    ),
) -> None:
    _invoke(ctx, cmd_cleanup_level, level=CleanupLevel.FULL.value, confirm_text=confirm_text)


@app.command("1", hidden=True, help="Alias for light.")
def level_1(ctx: typer.Context) -> None:
    light(ctx)


@app.command("2", hidden=True, help="Alias for medium.")
def level_2(ctx: typer.Context) -> None:
    medium(ctx)


@app.command("3", hidden=True, help="Alias for deep.")
def level_3(ctx: typer.Context) -> None:
    deep(ctx)


@app.command("4", hidden=True, help="Alias for full.")
def level_4(ctx: typer.Context) -> None:
    full(ctx, confirm_text=None)


@app.command("db", help="Database cleanup: reset or back up the database.")
def db(
    ctx: typer.Context,
    action: str | None = typer.Option(None, "--action", help="reset or backup (default: interactive menu)"),
) -> None:
    _invoke(ctx, cmd_db_cleanup, action=action)


@app.command("database", hidden=True, help="Alias for db.")
def database(
    ctx: typer.Context,
    action: str | None = typer.Option(None, "--action", help="reset or backup (default: interactive menu)"),
) -> None:
    db(ctx, action=action)


@app.command("backup", help="Back up the database to backups/db_backup_<timestamp>.sql.")
def backup(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_db_backup)


@app.command("status", help="Show Docker disk usage.")
def status(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_disk_usage)


@app.command("usage", hidden=True, help="Alias for status.")
def usage(ctx: typer.Context) -> None:
    status(ctx)


@app.command("help", help="Show this help message.")
def show_help() -> None:
    # printed by the callback
    return None


def main(argv: list[str] | None = None) -> int:
    return _run_cli(root_app=app, prog_name=PROG_NAME, argv=argv)


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
