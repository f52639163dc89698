from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.prompt import Confirm, Prompt


class RailsDockError(Exception):
    pass


class UsageError(RailsDockError):
    pass


class OpError(RailsDockError):
    pass


RAILSDOCK_PROJECT_ROOT = "RAILSDOCK_PROJECT_ROOT"
RAILSDOCK_COMPOSE_FILE = "RAILSDOCK_COMPOSE_FILE"
RAILSDOCK_COMPOSE_CMD = "RAILSDOCK_COMPOSE_CMD"
RAILSDOCK_DB_USER = "RAILSDOCK_DB_USER"
RAILSDOCK_DB_NAME = "RAILSDOCK_DB_NAME"
RAILSDOCK_APP_URL = "RAILSDOCK_APP_URL"
RAILSDOCK_BACKUPS_DIR = "RAILSDOCK_BACKUPS_DIR"

DEFAULT_COMPOSE_CMD = "docker-compose"
DEFAULT_DB_USER = "rails_user"
DEFAULT_DB_NAME = "rails_development"
DEFAULT_APP_URL = "http://localhost:3000"

COMPOSE_FILE_NAMES = (
    "docker-compose.yaml",
    "docker-compose.yml",
    "compose.yaml",
    "compose.yml",
)


def _eprint(msg: str) -> None:
    print(msg, file=sys.stderr)


@dataclass(frozen=True)
class GlobalOpts:
    project_root: Path
    compose_cmd: tuple[str, ...] = (DEFAULT_COMPOSE_CMD,)
    compose_file: Path | None = None
    web_service: str = "web"
    db_service: str = "db"
    cli_service: str = "rails_cli"
    bundler_service: str = "bundler"
    npm_service: str = "npm"
    db_user: str = DEFAULT_DB_USER
    db_name: str = DEFAULT_DB_NAME
    app_url: str = DEFAULT_APP_URL
    backups_dir: Path | None = None
    assume_yes: bool = False
    quiet: bool = False
    pretty: bool = True

    @property
    def src_dir(self) -> Path:
        return self.project_root / "src"

    @property
    def env_dir(self) -> Path:
        return self.project_root / "env"

    def resolved_backups_dir(self) -> Path:
        if self.backups_dir is not None:
            return self.backups_dir
        return self.project_root / "backups"


def _env_or_none(*names: str) -> str | None:
    for n in names:
        v = (os.environ.get(n) or "").strip()
        if v:
            return v
    return None


def _require_str(val: str | None, name: str, *, hint: str) -> str:
    v = (val or "").strip()
    if not v:
        raise UsageError(f"missing {name} ({hint})")
    return v


def _find_project_root(start: Path) -> Path:
    """Nearest ancestor of ``start`` holding a compose file, else ``start``."""
    start = start.resolve()
    for candidate in (start, *start.parents):
        for name in COMPOSE_FILE_NAMES:
            if (candidate / name).is_file():
                return candidate
    return start


def _print_json(obj: Any, *, pretty: bool) -> None:
    if pretty:
        sys.stdout.write(json.dumps(obj, indent=2, sort_keys=True) + "\n")
    else:
        sys.stdout.write(json.dumps(obj, separators=(",", ":"), sort_keys=True) + "\n")


class Reporter:
    """Coloured status lines: ✓ success, ⚠ warning, ✗ error."""

    def __init__(self, *, quiet: bool = False) -> None:
        self.console = Console(quiet=quiet, highlight=False, soft_wrap=True)
        # prompts stay visible under --quiet
        self.prompt_console = Console(highlight=False, soft_wrap=True)

    def banner(self, title: str) -> None:
        rule = "=" * 34
        self.console.print()
        self.console.print(rule, style="blue", markup=False)
        self.console.print(title, style="blue", markup=False)
        self.console.print(rule, style="blue", markup=False)
        self.console.print()

    def header(self, title: str) -> None:
        self.console.print()
        self.console.print(f"=== {title} ===", style="blue", markup=False)
        self.console.print()

    def success(self, msg: str) -> None:
        self.console.print(f"✓ {msg}", style="green", markup=False)

    def warning(self, msg: str) -> None:
        self.console.print(f"⚠ {msg}", style="yellow", markup=False)

    def error(self, msg: str) -> None:
        self.console.print(f"✗ {msg}", style="red", markup=False)

    def info(self, msg: str, *, style: str | None = None) -> None:
        self.console.print(msg, style=style, markup=False)

    def line(self, msg: str = "") -> None:
        self.console.print(msg, markup=False)

    def output(self, text: str) -> None:
        # wrapped-tool output, never silenced
        self.prompt_console.print(text, markup=False, end="")

    def confirm(self, prompt: str, *, assume_yes: bool = False) -> bool:
        if assume_yes:
            return True
        try:
            return bool(Confirm.ask(f"[yellow]{prompt}[/yellow]", console=self.prompt_console))
        except EOFError:
            return False

    def ask(self, prompt: str, *, default: str = "") -> str:
        try:
            return str(Prompt.ask(prompt, console=self.prompt_console, default=default, show_default=False))
        except EOFError:
            return default


def reporter_for(g: GlobalOpts) -> Reporter:
    return Reporter(quiet=g.quiet)
