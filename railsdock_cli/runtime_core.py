from __future__ import annotations

import argparse
import contextlib
import io
import os
import shlex
import sys
from pathlib import Path
from typing import Any

import click
import typer
from dotenv import find_dotenv, load_dotenv
from rich.console import Console

from . import __version__
from .cli_shared import (
    DEFAULT_APP_URL,
    DEFAULT_COMPOSE_CMD,
    DEFAULT_DB_NAME,
    DEFAULT_DB_USER,
    RAILSDOCK_APP_URL,
    RAILSDOCK_BACKUPS_DIR,
    RAILSDOCK_COMPOSE_CMD,
    RAILSDOCK_COMPOSE_FILE,
    RAILSDOCK_DB_NAME,
    RAILSDOCK_DB_USER,
    RAILSDOCK_PROJECT_ROOT,
    GlobalOpts,
    OpError,
    UsageError,
    _eprint,
    _env_or_none,
    _find_project_root,
)
from .compose import CommandFailed
from .env_files import postgres_defaults

_ERROR_CONSOLE = Console(stderr=True)

PROJECT_ROOT_OPTION = typer.Option(
    None,
    "--project-root",
    help=f"Directory holding the compose file (env {RAILSDOCK_PROJECT_ROOT}; default: nearest ancestor with one)",
)
COMPOSE_FILE_OPTION = typer.Option(
    None,
    "--compose-file",
    help=f"Compose file passed as -f (env {RAILSDOCK_COMPOSE_FILE})",
)
COMPOSE_CMD_OPTION = typer.Option(
    None,
    "--compose-cmd",
    help=f"Compose executable, e.g. 'docker compose' (env {RAILSDOCK_COMPOSE_CMD}; default {DEFAULT_COMPOSE_CMD})",
)
DB_USER_OPTION = typer.Option(
    None,
    "--db-user",
    help=f"Database user for pg_dump (env {RAILSDOCK_DB_USER}, then POSTGRES_USER in env/postgres.env)",
)
DB_NAME_OPTION = typer.Option(
    None,
    "--db-name",
    help=f"Database name for pg_dump (env {RAILSDOCK_DB_NAME}, then POSTGRES_DB in env/postgres.env)",
)
APP_URL_OPTION = typer.Option(None, "--app-url", help=f"Application URL shown after start (env {RAILSDOCK_APP_URL})")
BACKUPS_DIR_OPTION = typer.Option(
    None,
    "--backups-dir",
    help=f"Backup directory (env {RAILSDOCK_BACKUPS_DIR}; default <project-root>/backups)",
)
YES_OPTION = typer.Option(False, "--yes", "-y", help="Answer yes to y/n confirmations")
QUIET_OPTION = typer.Option(False, "--quiet", help="Reduce status output")
PLAIN_JSON_OPTION = typer.Option(False, "--plain-json", help="Emit compact JSON output")


def _rich_error(msg: str) -> None:
    _ERROR_CONSOLE.print(f"[bold red]error:[/bold red] {msg}", highlight=False)


def _bootstrap_env() -> None:
    # Load .env from the working directory without overriding exported values.
    load_dotenv(find_dotenv(usecwd=True))


def _namespace(**kwargs: Any) -> argparse.Namespace:
    return argparse.Namespace(**kwargs)


def _parse_compose_cmd(raw: str) -> tuple[str, ...]:
    parts = tuple(shlex.split(raw))
    if not parts:
        raise UsageError("compose command cannot be empty")
    return parts


def _apply_global_env(args: argparse.Namespace) -> GlobalOpts:
    raw_root = getattr(args, "project_root", None) or _env_or_none(RAILSDOCK_PROJECT_ROOT)
    if raw_root:
        project_root = Path(str(raw_root)).expanduser().resolve()
        if not project_root.is_dir():
            raise UsageError(f"project root is not a directory: {project_root}")
    else:
        project_root = _find_project_root(Path.cwd())

    compose_file: Path | None = None
    raw_file = getattr(args, "compose_file", None) or _env_or_none(RAILSDOCK_COMPOSE_FILE)
    if raw_file:
        compose_file = Path(str(raw_file)).expanduser()
        if not compose_file.is_absolute():
            compose_file = project_root / compose_file
        if not compose_file.is_file():
            raise UsageError(f"compose file not found: {compose_file}")

    compose_cmd = _parse_compose_cmd(
        getattr(args, "compose_cmd", None) or _env_or_none(RAILSDOCK_COMPOSE_CMD) or DEFAULT_COMPOSE_CMD
    )

    pg_user, pg_db = postgres_defaults(project_root / "env")
    db_user = getattr(args, "db_user", None) or _env_or_none(RAILSDOCK_DB_USER) or pg_user or DEFAULT_DB_USER
    db_name = getattr(args, "db_name", None) or _env_or_none(RAILSDOCK_DB_NAME) or pg_db or DEFAULT_DB_NAME
    app_url = getattr(args, "app_url", None) or _env_or_none(RAILSDOCK_APP_URL) or DEFAULT_APP_URL

    backups_dir: Path | None = None
    raw_backups = getattr(args, "backups_dir", None) or _env_or_none(RAILSDOCK_BACKUPS_DIR)
    if raw_backups:
        backups_dir = Path(str(raw_backups)).expanduser()
        if not backups_dir.is_absolute():
            backups_dir = project_root / backups_dir

    return GlobalOpts(
        project_root=project_root,
        compose_cmd=compose_cmd,
        compose_file=compose_file,
        db_user=str(db_user).strip(),
        db_name=str(db_name).strip(),
        app_url=str(app_url).strip(),
        backups_dir=backups_dir,
        assume_yes=bool(getattr(args, "yes", False)),
        quiet=bool(getattr(args, "quiet", False)),
        pretty=not bool(getattr(args, "plain_json", False)),
    )


def _version_callback_for(prog_name: str) -> Any:
    def _version_callback(value: bool) -> None:
        if value:
            typer.echo(f"{prog_name} {__version__}")
            raise typer.Exit(code=0)

    return _version_callback


def _root_help_text(*, root_app: typer.Typer, prog_name: str) -> str:
    buf = io.StringIO()
    try:
        with contextlib.redirect_stdout(buf):
            try:
                root_app(args=["--help"], prog_name=prog_name, standalone_mode=False)
            except (typer.Exit, click.ClickException):
                pass
    except Exception:
        return ""
    return str(buf.getvalue() or "").strip()


def _ctx_help_text(ctx: typer.Context) -> str:
    # rich help is printed to stdout rather than returned
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        text = str(ctx.get_help() or "")
    return (buf.getvalue() + text).strip()


def _render_usage_error_with_help(
    *,
    message: str,
    ctx: typer.Context | None = None,
    fallback_help: str = "",
) -> None:
    _rich_error(message)
    help_text = ""
    if ctx is not None:
        try:
            help_text = _ctx_help_text(ctx)
        except Exception:
            help_text = ""
    if not help_text:
        help_text = str(fallback_help or "").strip()
    if help_text:
        _eprint("")
        _eprint(help_text)


def _store_global(ctx: typer.Context, ns: argparse.Namespace) -> None:
    try:
        g = _apply_global_env(ns)
    except UsageError as e:
        _render_usage_error_with_help(message=str(e), ctx=ctx)
        raise typer.Exit(code=2)
    ctx.obj = {"g": g}


def _ctx_global(ctx: typer.Context) -> GlobalOpts:
    root = ctx.find_root()
    for obj in (ctx.obj, root.obj):
        if isinstance(obj, dict) and isinstance(obj.get("g"), GlobalOpts):
            return obj["g"]
    try:
        return _apply_global_env(_namespace())
    except UsageError as e:
        _render_usage_error_with_help(message=str(e), ctx=ctx)
        raise typer.Exit(code=2)


def _invoke(ctx: typer.Context, func: Any, **kwargs: Any) -> None:
    g = _ctx_global(ctx)
    args = _namespace(**kwargs)
    try:
        code = int(func(args, g))
    except UsageError as e:
        _render_usage_error_with_help(message=str(e), ctx=ctx)
        raise typer.Exit(code=2)
    except CommandFailed as e:
        _rich_error(str(e))
        raise typer.Exit(code=e.returncode or 1)
    except OpError as e:
        _rich_error(str(e))
        raise typer.Exit(code=1)

    if code:
        raise typer.Exit(code=code)


def _invoke_from_locals(
    ctx: typer.Context,
    func: Any,
    local_vars: dict[str, Any],
    *,
    drop: tuple[str, ...] = ("ctx",),
) -> None:
    _invoke(ctx, func, **{k: v for k, v in local_vars.items() if k not in drop})


def _run_cli(*, root_app: typer.Typer, prog_name: str, argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    _bootstrap_env()
    try:
        result = root_app(args=argv, prog_name=prog_name, standalone_mode=False)
        if result is None:
            return 0
        return int(result)
    except typer.Exit as e:
        return int(e.exit_code)
    except typer.Abort:
        _rich_error("aborted")
        return 130
    except click.ClickException as e:
        if isinstance(e, click.UsageError):
            _render_usage_error_with_help(
                message=e.format_message(),
                ctx=getattr(e, "ctx", None),
                fallback_help=_root_help_text(root_app=root_app, prog_name=prog_name),
            )
            return int(e.exit_code)
        _rich_error(e.format_message())
        return int(e.exit_code)
    except UsageError as e:
        _render_usage_error_with_help(
            message=str(e),
            fallback_help=_root_help_text(root_app=root_app, prog_name=prog_name),
        )
        return 2
    except CommandFailed as e:
        _rich_error(str(e))
        return e.returncode or 1
    except OpError as e:
        _rich_error(str(e))
        return 1
    except KeyboardInterrupt:
        _eprint("")
        return 130
