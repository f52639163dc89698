from __future__ import annotations

import sys

import typer

from .. import backup
from ..cleanup_commands import CleanupLevel, cmd_cleanup_level, cmd_db_cleanup
from ..guide import cmd_guide, cmd_services
from ..runtime_core import (
    APP_URL_OPTION,
    BACKUPS_DIR_OPTION,
    COMPOSE_CMD_OPTION,
    COMPOSE_FILE_OPTION,
    DB_NAME_OPTION,
    DB_USER_OPTION,
    PLAIN_JSON_OPTION,
    PROJECT_ROOT_OPTION,
    QUIET_OPTION,
    YES_OPTION,
    _invoke,
    _invoke_from_locals,
    _namespace,
    _run_cli,
    _store_global,
    _version_callback_for,
)
from ..service_commands import (
    PANEL_ASSETS,
    PANEL_COMPOSE,
    PANEL_DATABASE,
    PANEL_LIFECYCLE,
    PANEL_MAINTENANCE,
    PANEL_RAILS,
    PASSTHROUGH_TARGETS,
    Target,
    cmd_add_gem,
    cmd_config,
    cmd_db_backup,
    cmd_db_backup_prune,
    cmd_down_full,
    cmd_logs,
    cmd_migrate_reset,
    cmd_passthrough,
    cmd_start,
    cmd_status,
    cmd_test,
)
from ..setup_commands import READINESS_WAIT_SECONDS, cmd_setup

PROG_NAME = "railsdock"

PANEL_SETUP = "Setup Commands"
PANEL_SHORTCUTS = "Shortcuts"

app = typer.Typer(
    name=PROG_NAME,
    help="Rails Docker management: every target delegates to docker-compose/docker.",
    invoke_without_command=True,
    add_completion=False,
)


@app.callback()
def app_callback(
    ctx: typer.Context,
    project_root: str | None = PROJECT_ROOT_OPTION,
    compose_file: str | None = COMPOSE_FILE_OPTION,
    compose_cmd: str | None = COMPOSE_CMD_OPTION,
    db_user: str | None = DB_USER_OPTION,
    db_name: str | None = DB_NAME_OPTION,
    app_url: str | None = APP_URL_OPTION,
    backups_dir: str | None = BACKUPS_DIR_OPTION,
    yes: bool = YES_OPTION,
    quiet: bool = QUIET_OPTION,
    plain_json: bool = PLAIN_JSON_OPTION,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback_for(PROG_NAME),
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    del version
    if ctx.invoked_subcommand is None or ctx.invoked_subcommand == "help":
        typer.echo(ctx.get_help())
        raise typer.Exit(code=0)
    ns = _namespace(
        project_root=project_root,
        compose_file=compose_file,
        compose_cmd=compose_cmd,
        db_user=db_user,
        db_name=db_name,
        app_url=app_url,
        backups_dir=backups_dir,
        yes=yes,
        quiet=quiet,
        plain_json=plain_json,
    )
    _store_global(ctx, ns)


@app.command("help", help="Show all commands.")
def show_help() -> None:
    # printed by the callback
    return None


@app.command("setup", help="Run complete setup (builds images, creates DB, etc.).", rich_help_panel=PANEL_SETUP)
def setup(
    ctx: typer.Context,
    skip_final_checks: bool = typer.Option(False, "--skip-final-checks", help="Do not start services at the end"),
    wait_seconds: float = typer.Option(
        READINESS_WAIT_SECONDS,
        "--wait-seconds",
        help="Seconds to wait after 'up -d' before checking service status",
    ),
) -> None:
    _invoke_from_locals(ctx, cmd_setup, locals())


@app.command("start", help="Start all services.", rich_help_panel=PANEL_LIFECYCLE)
def start(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_start, wait_seconds=0)


@app.command("logs", help="Follow logs (all services, or the named ones).", rich_help_panel=PANEL_LIFECYCLE)
def logs(
    ctx: typer.Context,
    services: list[str] | None = typer.Argument(None, help="Optional service names"),
) -> None:
    _invoke(ctx, cmd_logs, services=services)


def _register_target(name: str, target: Target) -> None:
    def _command(ctx: typer.Context) -> None:
        _invoke(ctx, cmd_passthrough, target=name)

    _command.__name__ = "target_" + name.replace("-", "_")
    app.command(name, help=f"{target.help}.", rich_help_panel=target.panel)(_command)


for _name, _target in PASSTHROUGH_TARGETS.items():
    _register_target(_name, _target)


@app.command("migrate-reset", help="Reset database (DATA LOSS; type 'reset' to confirm).", rich_help_panel=PANEL_DATABASE)
def migrate_reset(
    ctx: typer.Context,
    confirm_text: str | None = typer.Option(None, "--confirm-text", help="Pass 'reset' non-interactively"),
) -> None:
    _invoke_from_locals(ctx, cmd_migrate_reset, locals())


@app.command("db-backup", help="Back up the database to backups/db_backup_<timestamp>.sql.", rich_help_panel=PANEL_DATABASE)
def db_backup(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_db_backup)


@app.command("db-backup-prune", help="Delete database backups more than --days whole days old (like find -mtime +N).", rich_help_panel=PANEL_DATABASE)
def db_backup_prune(
    ctx: typer.Context,
    days: int = typer.Option(backup.DEFAULT_MAX_AGE_DAYS, "--days", help="Maximum backup age in days"),
    dry_run: bool = typer.Option(False, "--dry-run", help="List what would be deleted without deleting"),
) -> None:
    _invoke_from_locals(ctx, cmd_db_backup_prune, locals())


@app.command("test", help="Run tests (optionally limited to spec paths).", rich_help_panel=PANEL_RAILS)
def test(
    ctx: typer.Context,
    paths: list[str] | None = typer.Argument(None, help="Optional spec files or directories"),
) -> None:
    _invoke(ctx, cmd_test, paths=paths)


@app.command("add-gem", help="Add a gem via the bundler service.", rich_help_panel=PANEL_ASSETS)
def add_gem(ctx: typer.Context, name: str = typer.Argument(..., help="Gem name")) -> None:
    _invoke(ctx, cmd_add_gem, name=name)


@app.command("status", help="Show detailed status and disk usage.", rich_help_panel=PANEL_MAINTENANCE)
def status(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_status, with_stats=True)


@app.command("clean", help="Safe cleanup (light).", rich_help_panel=PANEL_MAINTENANCE)
def clean(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_cleanup_level, level=CleanupLevel.LIGHT.value)


@app.command("clean-medium", help="Medium cleanup (moderate risk).", rich_help_panel=PANEL_MAINTENANCE)
def clean_medium(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_cleanup_level, level=CleanupLevel.MEDIUM.value)


@app.command("clean-deep", help="Deep cleanup, removes unused volumes (high risk).", rich_help_panel=PANEL_MAINTENANCE)
def clean_deep(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_cleanup_level, level=CleanupLevel.DEEP.value)


@app.command("clean-full", help="Full reset (EXTREME DANGER; type 'DELETE ALL DATA').", rich_help_panel=PANEL_MAINTENANCE)
def clean_full(
    ctx: typer.Context,
    confirm_text: str | None = typer.Option(None, "--confirm-text", help="Pass the confirmation phrase non-interactively"),
) -> None:
    _invoke(ctx, cmd_cleanup_level, level=CleanupLevel.FULL.value, confirm_text=confirm_text)


@app.command("clean-db", help="Database cleanup menu (reset or backup).", rich_help_panel=PANEL_MAINTENANCE)
def clean_db(
    ctx: typer.Context,
    action: str | None = typer.Option(None, "--action", help="reset or backup (default: interactive menu)"),
) -> None:
    _invoke_from_locals(ctx, cmd_db_cleanup, locals())


@app.command("down-full", help="Remove all containers, networks, and volumes (down -v).", rich_help_panel=PANEL_COMPOSE)
def down_full(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_down_full)


@app.command("dev", help="Start services and follow logs.", rich_help_panel=PANEL_SHORTCUTS)
def dev(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_start, wait_seconds=0)
    _invoke(ctx, cmd_logs, services=None)


@app.command("prod-like", help="Build images, then start services.", rich_help_panel=PANEL_SHORTCUTS)
def prod_like(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_passthrough, target="build")
    _invoke(ctx, cmd_start, wait_seconds=0)


@app.command("test-all", help="Run all tests.", rich_help_panel=PANEL_SHORTCUTS)
def test_all(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_test, paths=None)


@app.command("ship", help="Run the linter, then the tests.", rich_help_panel=PANEL_SHORTCUTS)
def ship(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_passthrough, target="lint")
    _invoke(ctx, cmd_test, paths=None)


@app.command("guide", help="Show the project structure guide.", rich_help_panel=PANEL_SHORTCUTS)
def guide(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_guide)


@app.command("services", help="Show the service and port map.", rich_help_panel=PANEL_SHORTCUTS)
def services(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_services)


@app.command("config", help="Print the resolved configuration as JSON.", rich_help_panel=PANEL_SHORTCUTS)
def config(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_config)


def main(argv: list[str] | None = None) -> int:
    return _run_cli(root_app=app, prog_name=PROG_NAME, argv=argv)


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
