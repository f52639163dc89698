"""Complete setup automation for the Rails Docker environment.

Steps run in order: prerequisites, the Rails application check (new vs.
existing), directories, image build, secret, dependencies, database, a
readiness check and a summary. The first failing required step stops setup.
"""

from __future__ import annotations

import argparse
import time

from .cli_shared import GlobalOpts, OpError, Reporter, reporter_for
from .compose import CommandFailed, ComposeRunner, build_runner
from .env_files import secret_key_configured, write_secret_key_base

BRANCH_NEW_APP = "new"
BRANCH_EXISTING_APP = "existing"

READINESS_WAIT_SECONDS = 5

APP_DIRECTORIES = ("public", "tmp/pids", "tmp/cache", "log")


def check_prerequisites(runner: ComposeRunner, out: Reporter, g: GlobalOpts) -> None:
    out.banner("Checking Prerequisites")

    if not runner.which("docker"):
        out.error("Docker is not installed")
        raise OpError("Docker is not installed")
    version = runner.docker_output("--version").strip()
    out.success(f"Docker is installed ({version})")

    compose_bin = g.compose_cmd[0]
    if not runner.which(compose_bin):
        out.error("Docker Compose is not installed")
        raise OpError(f"Docker Compose is not installed ({compose_bin} not found)")
    try:
        compose_version = runner.capture([*g.compose_cmd, "version"]).strip()
    except CommandFailed as e:
        out.error("Docker Compose is not installed")
        raise OpError(f"Docker Compose is not available: {e}") from e
    out.success(f"Docker Compose is installed ({compose_version})")

    if runner.docker("info", check=False) != 0:
        out.error("Docker daemon is not running")
        raise OpError("Docker daemon is not running")
    out.success("Docker daemon is running")


def rails_app_exists(g: GlobalOpts) -> bool:
    return (g.src_dir / "Gemfile").is_file()


def ensure_rails_app(runner: ComposeRunner, out: Reporter, g: GlobalOpts) -> str:
    if rails_app_exists(g):
        out.success("Rails application found")
        return BRANCH_EXISTING_APP
    out.warning("Rails application not found in src/ directory")
    out.warning("Setting up new Rails application...")
    runner.compose("run", "--rm", g.cli_service, "new", "src", "--database=postgresql", "--skip-test")
    return BRANCH_NEW_APP


def setup_directories(out: Reporter, g: GlobalOpts) -> None:
    out.banner("Setting Up Directories")
    for rel in APP_DIRECTORIES:
        (g.src_dir / rel).mkdir(parents=True, exist_ok=True)
    out.success("Directories created/verified")


def build_images(runner: ComposeRunner, out: Reporter) -> None:
    out.banner("Building Docker Images")
    try:
        runner.compose("build")
    except CommandFailed:
        out.error("Failed to build Docker images")
        raise
    out.success("Docker images built successfully")


def generate_secret(runner: ComposeRunner, out: Reporter, g: GlobalOpts) -> bool:
    """Write SECRET_KEY_BASE to env/rails.env unless a real one is set."""
    out.banner("Generating Rails Secret")
    rails_env = g.env_dir / "rails.env"
    if secret_key_configured(rails_env):
        out.success("SECRET_KEY_BASE already configured")
        return False

    out.warning("Generating new SECRET_KEY_BASE...")
    raw = runner.compose_output("run", "--rm", g.cli_service, "secret")
    lines = [line.strip() for line in raw.splitlines() if line.strip()]
    if not lines:
        raise OpError("rails secret produced no output")
    write_secret_key_base(rails_env, lines[-1])
    out.success("SECRET_KEY_BASE updated in env/rails.env")
    return True


def install_dependencies(runner: ComposeRunner, out: Reporter, g: GlobalOpts) -> None:
    out.banner("Installing Dependencies")

    if not (g.src_dir / "Gemfile.lock").is_file():
        out.warning("Installing Ruby gems...")
        runner.compose("run", "--rm", g.bundler_service, "install")
        out.success("Ruby gems installed")
    else:
        out.success("Gemfile.lock already exists")

    if (g.src_dir / "package.json").is_file():
        if out.confirm("Install Node dependencies?", assume_yes=g.assume_yes):
            out.warning("Installing Node packages...")
            runner.compose("run", "--rm", g.npm_service, "install")
            out.success("Node packages installed")


def setup_database(runner: ComposeRunner, out: Reporter, g: GlobalOpts) -> None:
    out.banner("Setting Up Database")

    out.warning("Creating PostgreSQL database...")
    if runner.compose("run", "--rm", g.cli_service, "db:create", check=False) == 0:
        out.success("Database created")
    else:
        out.warning("Database might already exist (continuing...)")

    out.warning("Running migrations...")
    try:
        runner.compose("run", "--rm", g.cli_service, "db:migrate")
    except CommandFailed:
        out.error("Migration failed")
        raise
    out.success("Migrations completed")

    if (g.src_dir / "db" / "seeds.rb").is_file():
        if out.confirm("Run database seeds?", assume_yes=g.assume_yes):
            out.warning("Seeding database...")
            runner.compose("run", "--rm", g.cli_service, "db:seed")
            out.success("Database seeded")


def final_checks(runner: ComposeRunner, out: Reporter, *, wait_seconds: float = READINESS_WAIT_SECONDS) -> None:
    out.banner("Final Checks")

    out.warning("Starting services (this may take a moment)...")
    try:
        runner.compose_output("up", "-d")
    except CommandFailed:
        out.error("Failed to start services")
        raise

    time.sleep(wait_seconds)

    out.warning("Checking service status...")
    ps = runner.compose_output("ps")
    if "unhealthy" in ps:
        out.warning("Some services are not healthy yet")
        out.warning("View logs with: docker-compose logs -f")

    if "Up" not in ps:
        out.error("Services failed to start")
        raise OpError("Services failed to start")
    out.success("Services started successfully")


def show_summary(out: Reporter, g: GlobalOpts) -> None:
    out.banner("Setup Complete!")
    steps = (
        ("1. View application logs:", f"docker-compose logs -f {g.web_service}"),
        ("2. Access the application:", g.app_url),
        ("3. Open Rails console:", f"docker-compose exec {g.web_service} rails console"),
        ("4. Run database commands:", f"docker-compose exec {g.web_service} rails db:migrate:status"),
        ("5. Stop services:", "docker-compose down"),
    )
    out.line("Next steps:")
    out.line()
    for title, hint in steps:
        out.info(title, style="blue")
        out.line(f"   {hint}")
        out.line()


def cmd_setup(args: argparse.Namespace, g: GlobalOpts) -> int:
    out = reporter_for(g)
    runner = build_runner(g)
    out.banner("Rails Docker Setup")

    check_prerequisites(runner, out, g)
    ensure_rails_app(runner, out, g)

    setup_directories(out, g)
    build_images(runner, out)
    generate_secret(runner, out, g)
    install_dependencies(runner, out, g)
    setup_database(runner, out, g)
    if not bool(getattr(args, "skip_final_checks", False)):
        final_checks(runner, out, wait_seconds=float(getattr(args, "wait_seconds", READINESS_WAIT_SECONDS)))
    show_summary(out, g)
    return 0
