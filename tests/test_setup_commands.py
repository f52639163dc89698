from __future__ import annotations

import argparse

import pytest

from railsdock_cli import setup_commands
from railsdock_cli.cli_shared import OpError, Reporter
from railsdock_cli.compose import CommandFailed
from railsdock_cli.env_files import read_env_file

SECRET_CMD = "docker-compose run --rm rails_cli secret"


def _existing_app(g, *, lock: bool = True) -> None:
    g.src_dir.mkdir(parents=True, exist_ok=True)
    (g.src_dir / "Gemfile").write_text("source 'https://rubygems.org'\n")
    if lock:
        (g.src_dir / "Gemfile.lock").write_text("GEM\n")


def test_new_app_branch_generates_rails_app(fake_runner, g):
    branch = setup_commands.ensure_rails_app(fake_runner, Reporter(quiet=True), g)
    assert branch == setup_commands.BRANCH_NEW_APP
    assert fake_runner.joined() == ["docker-compose run --rm rails_cli new src --database=postgresql --skip-test"]


def test_existing_app_branch_skips_generation(fake_runner, g):
    _existing_app(g)
    branch = setup_commands.ensure_rails_app(fake_runner, Reporter(quiet=True), g)
    assert branch == setup_commands.BRANCH_EXISTING_APP
    assert fake_runner.calls == []


def test_missing_docker_stops_setup(fake_runner, g):
    fake_runner.missing.add("docker")
    with pytest.raises(OpError, match="Docker is not installed"):
        setup_commands.check_prerequisites(fake_runner, Reporter(quiet=True), g)
    assert fake_runner.calls == []


def test_stopped_daemon_stops_setup(fake_runner, g):
    fake_runner.codes["docker info"] = 1
    with pytest.raises(OpError, match="daemon"):
        setup_commands.check_prerequisites(fake_runner, Reporter(quiet=True), g)


def test_secret_written_from_last_output_line(fake_runner, g):
    fake_runner.outputs[SECRET_CMD] = "Creating rails_cli_run ... done\nabc123def\n"
    assert setup_commands.generate_secret(fake_runner, Reporter(quiet=True), g) is True
    assert read_env_file(g.env_dir / "rails.env")["SECRET_KEY_BASE"] == "abc123def"


def test_secret_kept_when_configured(fake_runner, g):
    g.env_dir.mkdir()
    (g.env_dir / "rails.env").write_text("RAILS_ENV=development\nSECRET_KEY_BASE=existing\n")
    assert setup_commands.generate_secret(fake_runner, Reporter(quiet=True), g) is False
    assert fake_runner.calls == []


def test_secret_placeholder_is_replaced(fake_runner, g):
    g.env_dir.mkdir()
    (g.env_dir / "rails.env").write_text("RAILS_ENV=development\nSECRET_KEY_BASE=change_me\n")
    fake_runner.outputs[SECRET_CMD] = "fresh\n"
    assert setup_commands.generate_secret(fake_runner, Reporter(quiet=True), g) is True
    values = read_env_file(g.env_dir / "rails.env")
    assert values == {"RAILS_ENV": "development", "SECRET_KEY_BASE": "fresh"}


def test_empty_secret_output_is_an_error(fake_runner, g):
    with pytest.raises(OpError):
        setup_commands.generate_secret(fake_runner, Reporter(quiet=True), g)


def test_db_create_failure_continues(fake_runner, g):
    fake_runner.codes["docker-compose run --rm rails_cli db:create"] = 1
    setup_commands.setup_database(fake_runner, Reporter(quiet=True), g)
    assert fake_runner.joined()[-1] == "docker-compose run --rm rails_cli db:migrate"


def test_db_migrate_failure_raises(fake_runner, g):
    fake_runner.codes["docker-compose run --rm rails_cli db:migrate"] = 1
    with pytest.raises(CommandFailed):
        setup_commands.setup_database(fake_runner, Reporter(quiet=True), g)


def test_seeds_run_when_present(fake_runner, g):
    (g.src_dir / "db").mkdir(parents=True)
    (g.src_dir / "db" / "seeds.rb").write_text("")
    setup_commands.setup_database(fake_runner, Reporter(quiet=True), g)
    assert fake_runner.joined()[-1] == "docker-compose run --rm rails_cli db:seed"


def test_final_checks_require_running_services(fake_runner):
    fake_runner.outputs["docker-compose ps"] = "NAME   STATUS\nror_rails   Exit 1\n"
    with pytest.raises(OpError, match="failed to start"):
        setup_commands.final_checks(fake_runner, Reporter(quiet=True), wait_seconds=0)


def test_final_checks_pass_when_up(fake_runner):
    fake_runner.outputs["docker-compose ps"] = "ror_rails   Up (healthy)\n"
    setup_commands.final_checks(fake_runner, Reporter(quiet=True), wait_seconds=0)
    assert fake_runner.joined() == ["docker-compose up -d", "docker-compose ps"]


def test_full_setup_on_fresh_project(fake_runner, g):
    fake_runner.outputs[SECRET_CMD] = "s3cr3t\n"
    fake_runner.outputs["docker-compose ps"] = "ror_rails   Up\n"

    code = setup_commands.cmd_setup(argparse.Namespace(skip_final_checks=False, wait_seconds=0), g)

    assert code == 0
    calls = fake_runner.joined()
    assert calls.index("docker-compose run --rm rails_cli new src --database=postgresql --skip-test") < calls.index(
        "docker-compose build"
    )
    assert calls.index("docker-compose build") < calls.index(SECRET_CMD)
    assert "docker-compose run --rm bundler install" in calls
    assert calls[-2:] == ["docker-compose up -d", "docker-compose ps"]
    for rel in setup_commands.APP_DIRECTORIES:
        assert (g.src_dir / rel).is_dir()
    assert read_env_file(g.env_dir / "rails.env")["SECRET_KEY_BASE"] == "s3cr3t"


def test_setup_on_existing_app_skips_install_and_final_checks(fake_runner, g):
    _existing_app(g)
    fake_runner.outputs[SECRET_CMD] = "s3cr3t\n"

    setup_commands.cmd_setup(argparse.Namespace(skip_final_checks=True, wait_seconds=0), g)

    calls = fake_runner.joined()
    assert not any(" new src " in c for c in calls)
    assert "docker-compose run --rm bundler install" not in calls
    assert "docker-compose up -d" not in calls


def test_build_failure_aborts_setup(fake_runner, g):
    _existing_app(g)
    fake_runner.codes["docker-compose build"] = 2
    with pytest.raises(CommandFailed) as exc:
        setup_commands.cmd_setup(argparse.Namespace(skip_final_checks=False, wait_seconds=0), g)
    assert exc.value.returncode == 2
    assert SECRET_CMD not in fake_runner.joined()
