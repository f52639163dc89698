from __future__ import annotations

import argparse
import time
from dataclasses import dataclass
from typing import Any

from . import backup
from .cleanup_commands import backup_database
from .cli_shared import GlobalOpts, Reporter, UsageError, _print_json, _require_str, reporter_for
from .compose import ComposeRunner, build_runner

START_WAIT_SECONDS = 2
DISK_USAGE_HEAD_LINES = 10

PANEL_LIFECYCLE = "Development Commands"
PANEL_DATABASE = "Database Commands"
PANEL_RAILS = "Rails Commands"
PANEL_ASSETS = "Asset & Gem Commands"
PANEL_MAINTENANCE = "Maintenance Commands"
PANEL_COMPOSE = "Docker Compose Helpers"


@dataclass(frozen=True)
class Target:
    """One fixed external command line, addressed by a subcommand name."""

    help: str
    args: tuple[str, ...]
    success: str = ""
    docker: bool = False
    panel: str = PANEL_COMPOSE

    def argv(self, runner: ComposeRunner, g: GlobalOpts) -> list[str]:
        expanded = [_expand(a, g) for a in self.args]
        if self.docker:
            return runner.docker_argv(*expanded)
        return runner.compose_argv(*expanded)


def _expand(arg: str, g: GlobalOpts) -> str:
    return arg.format(
        web=g.web_service,
        db=g.db_service,
        cli=g.cli_service,
        bundler=g.bundler_service,
        npm=g.npm_service,
    )


PASSTHROUGH_TARGETS: dict[str, Target] = {
    "stop": Target("Stop all services", ("stop",), "Services stopped", panel=PANEL_LIFECYCLE),
    "restart": Target("Restart all services", ("restart",), "Services restarted", panel=PANEL_LIFECYCLE),
    "logs-web": Target("Show Rails web server logs", ("logs", "-f", "{web}"), panel=PANEL_LIFECYCLE),
    "logs-db": Target("Show database logs", ("logs", "-f", "{db}"), panel=PANEL_LIFECYCLE),
    "logs-sidekiq": Target("Show Sidekiq worker logs", ("logs", "-f", "sidekiq"), panel=PANEL_LIFECYCLE),
    "logs-nginx": Target("Show Nginx logs", ("logs", "-f", "nginx"), panel=PANEL_LIFECYCLE),
    "migrate": Target(
        "Run database migrations",
        ("exec", "{web}", "rails", "db:migrate"),
        "Migrations complete",
        panel=PANEL_DATABASE,
    ),
    "migrate-status": Target(
        "Check migration status",
        ("exec", "{web}", "rails", "db:migrate:status"),
        panel=PANEL_DATABASE,
    ),
    "seed": Target("Run database seeds", ("exec", "{web}", "rails", "db:seed"), "Database seeded", panel=PANEL_DATABASE),
    "console": Target("Open Rails console", ("exec", "{web}", "rails", "console"), panel=PANEL_RAILS),
    "shell": Target("Get container shell", ("exec", "{web}", "bash"), panel=PANEL_RAILS),
    "test-watch": Target("Run tests continuously with guard", ("run", "--rm", "{web}", "bundle", "exec", "guard"), panel=PANEL_RAILS),
    "lint": Target("Run RuboCop linter", ("run", "--rm", "{web}", "bundle", "exec", "rubocop"), panel=PANEL_RAILS),
    "lint-fix": Target(
        "Run RuboCop with autocorrect",
        ("run", "--rm", "{web}", "bundle", "exec", "rubocop", "-a"),
        panel=PANEL_RAILS,
    ),
    "security": Target("Run Brakeman security scan", ("run", "--rm", "{web}", "bundle", "exec", "brakeman"), panel=PANEL_RAILS),
    "assets": Target(
        "Precompile assets",
        ("exec", "{web}", "rails", "assets:precompile"),
        "Assets precompiled",
        panel=PANEL_ASSETS,
    ),
    "assets-clean": Target(
        "Remove compiled assets",
        ("exec", "{web}", "rails", "assets:clobber"),
        "Assets cleaned",
        panel=PANEL_ASSETS,
    ),
    "gem-list": Target("List installed gems", ("run", "--rm", "{bundler}", "list"), panel=PANEL_ASSETS),
    "gem-update": Target("Update all gems", ("run", "--rm", "{bundler}", "update"), "Gems updated", panel=PANEL_ASSETS),
    "npm-install": Target(
        "Install Node dependencies",
        ("run", "--rm", "{npm}", "install"),
        "NPM dependencies installed",
        panel=PANEL_ASSETS,
    ),
    "npm-build": Target("Build JavaScript assets", ("run", "--rm", "{npm}", "run", "build"), "JavaScript built", panel=PANEL_ASSETS),
    "npm-watch": Target("Rebuild JavaScript on change", ("run", "--rm", "{npm}", "run", "watch"), panel=PANEL_ASSETS),
    "ps": Target("Show service status", ("ps",), panel=PANEL_MAINTENANCE),
    "docker-stats": Target("Show Docker statistics", ("stats",), docker=True, panel=PANEL_MAINTENANCE),
    "build": Target("Build service images", ("build",)),
    "up": Target("Start services detached", ("up", "-d")),
    "down": Target("Stop and remove containers and networks", ("down",)),
}


def _header(out: Reporter, args: argparse.Namespace) -> None:
    title = str(getattr(args, "header", "") or "").strip()
    if title:
        out.header(title)


def run_target(runner: ComposeRunner, out: Reporter, g: GlobalOpts, name: str) -> None:
    try:
        target = PASSTHROUGH_TARGETS[name]
    except KeyError:
        raise UsageError(f"unknown target: {name}") from None
    runner.run(target.argv(runner, g))
    if target.success:
        out.success(target.success)


def cmd_passthrough(args: argparse.Namespace, g: GlobalOpts) -> int:
    out = reporter_for(g)
    _header(out, args)
    run_target(build_runner(g), out, g, str(args.target))
    return 0


def cmd_start(args: argparse.Namespace, g: GlobalOpts) -> int:
    out = reporter_for(g)
    _header(out, args)
    build_runner(g).compose("up", "-d")
    wait = getattr(args, "wait_seconds", START_WAIT_SECONDS)
    if wait:
        time.sleep(wait)
    out.success("Services started")
    out.info(f"Application: {g.app_url}", style="blue")
    return 0


def cmd_logs(args: argparse.Namespace, g: GlobalOpts) -> int:
    out = reporter_for(g)
    _header(out, args)
    services = [s for s in (getattr(args, "services", None) or []) if str(s).strip()]
    default = str(getattr(args, "default_service", "") or "").strip()
    if not services and default:
        services = [_expand(default, g)]
    build_runner(g).compose("logs", "-f", *services)
    return 0


def cmd_test(args: argparse.Namespace, g: GlobalOpts) -> int:
    out = reporter_for(g)
    _header(out, args)
    paths = [p for p in (getattr(args, "paths", None) or []) if str(p).strip()]
    build_runner(g).compose("run", "--rm", g.web_service, "bundle", "exec", "rspec", *paths)
    return 0


def cmd_add_gem(args: argparse.Namespace, g: GlobalOpts) -> int:
    name = _require_str(getattr(args, "name", None), "gem name", hint="usage: add_gem <gem_name>")
    out = reporter_for(g)
    out.header(f"Adding Gem: {name}")
    build_runner(g).compose("run", "--rm", g.bundler_service, "add", name)
    out.success(f"Gem added: {name}")
    return 0


def cmd_status(args: argparse.Namespace, g: GlobalOpts) -> int:
    out = reporter_for(g)
    _header(out, args)
    runner = build_runner(g)
    runner.compose("ps")
    out.line()
    out.info("Docker Disk Usage:", style="blue")
    head = getattr(args, "disk_usage_lines", None)
    if head:
        df = runner.docker_output("system", "df")
        out.output("".join(line + "\n" for line in df.splitlines()[: int(head)]))
    else:
        runner.docker("system", "df")
    if bool(getattr(args, "with_stats", False)):
        out.line()
        out.info("Container Memory:", style="blue")
        code = runner.docker("stats", "--no-stream", check=False)
        if code != 0:
            out.line("Docker stats not available")
    return 0


def cmd_migrate_reset(args: argparse.Namespace, g: GlobalOpts) -> int:
    out = reporter_for(g)
    runner = build_runner(g)
    out.warning("This will DELETE all data!")
    answer = getattr(args, "confirm_text", None)
    if answer is None:
        answer = out.ask("Type 'reset' to confirm")
    if str(answer).strip() != "reset":
        out.warning("Cancelled")
        return 0
    code = runner.compose("exec", g.web_service, "rails", "db:drop", "--force", check=False)
    if code != 0:
        out.warning(f"Database drop failed (exit {code}); it may not exist yet")
    runner.compose("run", "--rm", g.cli_service, "db:create")
    runner.compose("exec", g.web_service, "rails", "db:migrate")
    out.success("Database reset complete")
    return 0


def cmd_db_backup(args: argparse.Namespace, g: GlobalOpts) -> int:
    del args
    backup_database(build_runner(g), reporter_for(g), g)
    return 0


def cmd_db_backup_prune(args: argparse.Namespace, g: GlobalOpts) -> int:
    out = reporter_for(g)
    days = int(getattr(args, "days", backup.DEFAULT_MAX_AGE_DAYS))
    if days < 0:
        raise UsageError("--days must be >= 0")
    dry_run = bool(getattr(args, "dry_run", False))
    result = backup.prune_backups(g.resolved_backups_dir(), max_age_days=days, dry_run=dry_run)
    verb = "Would remove" if dry_run else "Removed"
    for path in result.removed:
        out.warning(f"{verb} {path.name}")
    out.success(f"{verb} {len(result.removed)} backup(s) more than {days} days old; kept {len(result.kept)}")
    return 0


def cmd_down_full(args: argparse.Namespace, g: GlobalOpts) -> int:
    del args
    build_runner(g).compose("down", "-v")
    reporter_for(g).success("All containers, networks, and volumes removed")
    return 0


def config_payload(g: GlobalOpts) -> dict[str, Any]:
    return {
        "kind": "railsdock.config.v1",
        "projectRoot": str(g.project_root),
        "composeCommand": list(g.compose_cmd),
        "composeFile": str(g.compose_file) if g.compose_file else None,
        "services": {
            "web": g.web_service,
            "db": g.db_service,
            "cli": g.cli_service,
            "bundler": g.bundler_service,
            "npm": g.npm_service,
        },
        "database": {"user": g.db_user, "name": g.db_name},
        "appUrl": g.app_url,
        "backupsDir": str(g.resolved_backups_dir()),
    }


def cmd_config(args: argparse.Namespace, g: GlobalOpts) -> int:
    del args
    _print_json(config_payload(g), pretty=g.pretty)
    return 0
