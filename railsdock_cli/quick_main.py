from __future__ import annotations

import sys

import typer

from .runtime_core import (
    APP_URL_OPTION,
    COMPOSE_CMD_OPTION,
    COMPOSE_FILE_OPTION,
    PROJECT_ROOT_OPTION,
    QUIET_OPTION,
    _invoke,
    _namespace,
    _run_cli,
    _store_global,
    _version_callback_for,
)
from .service_commands import (
    DISK_USAGE_HEAD_LINES,
    START_WAIT_SECONDS,
    cmd_add_gem,
    cmd_logs,
    cmd_passthrough,
    cmd_start,
    cmd_status,
    cmd_test,
)

PROG_NAME = "railsdock-quick"

QUICK_HELP = f"""
Quick Docker Management

Usage: {PROG_NAME} <command> [options]

Commands:
  start              Start all services
  stop               Stop all services
  logs [service]     View logs (default: web)
  status             Show service status
  console            Open Rails console
  shell              Get shell access
  migrate            Run database migrations
  test [path]        Run tests
  add_gem <name>     Add a new gem
  help               Show this help

Examples:
  {PROG_NAME} start
  {PROG_NAME} logs sidekiq
  {PROG_NAME} add_gem devise
  {PROG_NAME} test spec/models/user_spec.rb
  {PROG_NAME} console
"""

app = typer.Typer(
    name=PROG_NAME,
    help="Simple commands for daily development.",
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
    app_url: str | None = APP_URL_OPTION,
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
    if ctx.invoked_subcommand is None or ctx.invoked_subcommand == "help":
        typer.echo(QUICK_HELP)
        raise typer.Exit(code=0)
    ns = _namespace(
        project_root=project_root,
        compose_file=compose_file,
        compose_cmd=compose_cmd,
        app_url=app_url,
        quiet=quiet,
    )
    _store_global(ctx, ns)


@app.command("start", help="Start all services.")
def start(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_start, header="Starting Services", wait_seconds=START_WAIT_SECONDS)


@app.command("stop", help="Stop all services.")
def stop(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_passthrough, target="stop", header="Stopping Services")


@app.command("logs", help="Follow service logs (default: web).")
def logs(
    ctx: typer.Context,
    services: list[str] | None = typer.Argument(None, help="Service names (default: web)"),
    follow: bool = typer.Option(True, "--follow", "-f", hidden=True, help="Accepted for compatibility; logs always follow"),
) -> None:
    del follow
    _invoke(ctx, cmd_logs, services=services, default_service="{web}", header="Service Logs")


@app.command("console", help="Open Rails console.")
def console(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_passthrough, target="console", header="Rails Console")


@app.command("migrate", help="Run database migrations.")
def migrate(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_passthrough, target="migrate", header="Running Migrations")


@app.command("test", help="Run the RSpec suite (default path: .).")
def test(
    ctx: typer.Context,
    paths: list[str] | None = typer.Argument(None, help="Spec files or directories (default: .)"),
) -> None:
    _invoke(ctx, cmd_test, paths=paths or ["."], header="Running Tests")


@app.command("add_gem", help="Add a gem via the bundler service.")
def add_gem(
    ctx: typer.Context,
    name: str | None = typer.Argument(None, help="Gem name"),
) -> None:
    _invoke(ctx, cmd_add_gem, name=name)


@app.command("shell", help="Get shell access in the web container.")
def shell(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_passthrough, target="shell", header="Shell Access")


@app.command("status", help="Show service status and Docker disk usage.")
def status(ctx: typer.Context) -> None:
    _invoke(ctx, cmd_status, header="Service Status", disk_usage_lines=DISK_USAGE_HEAD_LINES)


@app.command("help", help="Show this help.")
def show_help() -> None:
    # printed by the callback
    return None


def main(argv: list[str] | None = None) -> int:
    return _run_cli(root_app=app, prog_name=PROG_NAME, argv=argv)


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
