from __future__ import annotations

import argparse
from dataclasses import dataclass

from rich.console import Console
from rich.table import Table

from .cli_shared import GlobalOpts


@dataclass(frozen=True)
class ServiceInfo:
    name: str
    container: str
    port: str
    purpose: str


SERVICES: tuple[ServiceInfo, ...] = (
    ServiceInfo("web", "ror_rails", "3000", "Rails Puma server"),
    ServiceInfo("db", "ror_postgres", "5432", "PostgreSQL database"),
    ServiceInfo("redis", "ror_redis", "6379", "Cache & Sidekiq queue"),
    ServiceInfo("sidekiq", "ror_sidekiq", "-", "Background job worker"),
    ServiceInfo("nginx", "ror_nginx", "80/443", "Reverse proxy & static files"),
    ServiceInfo("bundler", "-", "-", "Gem dependency manager"),
    ServiceInfo("rails_cli", "-", "-", "Rails commands/generators"),
    ServiceInfo("npm", "-", "-", "Node package manager"),
)

VOLUMES: tuple[tuple[str, str, str], ...] = (
    ("./src", "/app", "Host: ./src (YOUR CODE)"),
    ("postgres_data", "/var/lib/postgresql/data", "Named volume (persistent)"),
    ("redis_data", "/data", "Named volume (persistent)"),
    ("/app/vendor", "-", "Named volume (gems cache)"),
    ("/app/node_modules", "-", "Named volume (npm cache)"),
)

STRUCTURE = """\
<project>/
├── docker-compose.yaml           Main orchestration file
├── dockerfiles/
│   ├── rails.dockerfile          Rails/Ruby container
│   └── nginx.dockerfile          Nginx web server
├── nginx/
│   ├── nginx.conf                Reverse proxy config
│   └── ssl/                      SSL certificates directory
├── env/
│   ├── postgres.env              PostgreSQL variables
│   ├── rails.env                 Rails variables
│   └── .env.production.example   Production template
├── src/                          YOUR RAILS APPLICATION (edit directly)
│   ├── Gemfile / Gemfile.lock
│   ├── app/ config/ db/ public/
│   └── ...
└── backups/                      Database backups (auto-created)
    └── db_backup_*.sql
"""

WORKFLOW = (
    ("Start of day", "railsdock start && railsdock logs"),
    ("Database changes", "railsdock migrate"),
    ("Add dependencies", "railsdock-quick add_gem <name>  /  railsdock npm-install"),
    ("Run tests", "railsdock test  /  railsdock lint"),
    ("Debugging", "railsdock console  /  railsdock shell  /  railsdock logs-web"),
    ("End of day", "railsdock stop"),
    ("Weekly", "railsdock clean"),
    ("Monthly", "railsdock clean-medium  /  railsdock status"),
)

REMINDERS = (
    "Change POSTGRES_PASSWORD in env/postgres.env before the first run.",
    "Generate SECRET_KEY_BASE (railsdock setup does this) into env/rails.env.",
    "Named volumes survive `down`; `down -v` and `clean-full` delete database data.",
)


def services_table() -> Table:
    table = Table(title="Services & Ports", title_justify="left")
    table.add_column("Service", style="bold")
    table.add_column("Container")
    table.add_column("Port")
    table.add_column("Purpose")
    for svc in SERVICES:
        table.add_row(svc.name, svc.container, svc.port, svc.purpose)
    return table


def volumes_table() -> Table:
    table = Table(title="Volumes & Persistence", title_justify="left")
    table.add_column("Volume", style="bold")
    table.add_column("Mount Point")
    table.add_column("Storage Location")
    for row in VOLUMES:
        table.add_row(*row)
    return table


def render_guide(console: Console) -> None:
    console.rule("[bold blue]Rails Docker Project Structure")
    console.print(STRUCTURE, markup=False, highlight=False)
    console.print(services_table())
    console.print()
    console.print(volumes_table())
    console.print()
    console.rule("[bold blue]Typical Development Workflow")
    for when, what in WORKFLOW:
        console.print(f"  [bold]{when}:[/bold] {what}", highlight=False)
    console.print()
    console.rule("[bold yellow]Important Reminders")
    for line in REMINDERS:
        console.print(f"  • {line}", markup=False, highlight=False)
    console.print()


def cmd_guide(args: argparse.Namespace, g: GlobalOpts) -> int:
    del args, g
    render_guide(Console(highlight=False))
    return 0


def cmd_services(args: argparse.Namespace, g: GlobalOpts) -> int:
    del args, g
    Console(highlight=False).print(services_table())
    return 0
