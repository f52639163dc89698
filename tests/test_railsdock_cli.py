from __future__ import annotations

import json
import os
import time

import pytest
import typer
from typer.testing import CliRunner

from railsdock_cli.apps import railsdock_cli as cli
from railsdock_cli.service_commands import PASSTHROUGH_TARGETS


def _invoke(tmp_path, *args, input=None):
    return CliRunner().invoke(cli.app, ["--project-root", str(tmp_path), *args], input=input)


def test_every_command_has_help():
    group = typer.main.get_command(cli.app)
    missing = [name for name, cmd in group.commands.items() if not (cmd.help or "").strip()]
    assert missing == []


def test_every_target_is_registered():
    group = typer.main.get_command(cli.app)
    assert set(PASSTHROUGH_TARGETS) <= set(group.commands)


def test_no_args_prints_help(tmp_path, fake_runner):
    result = _invoke(tmp_path)
    assert result.exit_code == 0
    assert "clean-full" in result.output
    assert fake_runner.calls == []


@pytest.mark.parametrize(
    "command,expected",
    [
        ("stop", "docker-compose stop"),
        ("restart", "docker-compose restart"),
        ("logs-web", "docker-compose logs -f web"),
        ("logs-db", "docker-compose logs -f db"),
        ("logs-sidekiq", "docker-compose logs -f sidekiq"),
        ("logs-nginx", "docker-compose logs -f nginx"),
        ("migrate", "docker-compose exec web rails db:migrate"),
        ("migrate-status", "docker-compose exec web rails db:migrate:status"),
        ("seed", "docker-compose exec web rails db:seed"),
        ("console", "docker-compose exec web rails console"),
        ("shell", "docker-compose exec web bash"),
        ("test-watch", "docker-compose run --rm web bundle exec guard"),
        ("lint", "docker-compose run --rm web bundle exec rubocop"),
        ("lint-fix", "docker-compose run --rm web bundle exec rubocop -a"),
        ("security", "docker-compose run --rm web bundle exec brakeman"),
        ("assets", "docker-compose exec web rails assets:precompile"),
        ("assets-clean", "docker-compose exec web rails assets:clobber"),
        ("gem-list", "docker-compose run --rm bundler list"),
        ("gem-update", "docker-compose run --rm bundler update"),
        ("npm-install", "docker-compose run --rm npm install"),
        ("npm-build", "docker-compose run --rm npm run build"),
        ("npm-watch", "docker-compose run --rm npm run watch"),
        ("ps", "docker-compose ps"),
        ("docker-stats", "docker stats"),
        ("build", "docker-compose build"),
        ("up", "docker-compose up -d"),
        ("down", "docker-compose down"),
        ("down-full", "docker-compose down -v"),
        ("start", "docker-compose up -d"),
        ("logs", "docker-compose logs -f"),
        ("test", "docker-compose run --rm web bundle exec rspec"),
        ("test-all", "docker-compose run --rm web bundle exec rspec"),
    ],
)
def test_target_issues_single_command(tmp_path, fake_runner, command, expected):
    result = _invoke(tmp_path, command)
    assert result.exit_code == 0, result.output
    assert fake_runner.joined() == [expected]


def test_logs_named_services(tmp_path, fake_runner):
    _invoke(tmp_path, "logs", "web", "sidekiq")
    assert fake_runner.joined() == ["docker-compose logs -f web sidekiq"]


def test_compose_file_option_adds_f(tmp_path, fake_runner):
    (tmp_path / "docker-compose.dev.yml").write_text("services: {}\n")
    result = _invoke(tmp_path, "--compose-file", "docker-compose.dev.yml", "stop")
    assert result.exit_code == 0, result.output
    compose_file = tmp_path.resolve() / "docker-compose.dev.yml"
    assert fake_runner.calls == [["docker-compose", "-f", str(compose_file), "stop"]]


def test_missing_compose_file_is_usage_error(tmp_path, fake_runner):
    result = _invoke(tmp_path, "--compose-file", "nope.yml", "stop")
    assert result.exit_code == 2
    assert "compose file not found" in result.output
    assert fake_runner.calls == []


def test_status_includes_stats(tmp_path, fake_runner):
    fake_runner.codes["docker stats --no-stream"] = 1
    result = _invoke(tmp_path, "status")
    assert result.exit_code == 0, result.output
    assert fake_runner.joined() == ["docker-compose ps", "docker system df", "docker stats --no-stream"]
    assert "Docker stats not available" in result.output


def test_add_gem_requires_name(tmp_path, fake_runner):
    result = _invoke(tmp_path, "add-gem")
    assert result.exit_code == 2
    assert fake_runner.calls == []


def test_migrate_reset_with_confirmation(tmp_path, fake_runner):
    result = _invoke(tmp_path, "migrate-reset", "--confirm-text", "reset")
    assert result.exit_code == 0, result.output
    assert fake_runner.joined() == [
        "docker-compose exec web rails db:drop --force",
        "docker-compose run --rm rails_cli db:create",
        "docker-compose exec web rails db:migrate",
    ]


def test_migrate_reset_cancelled_by_typed_answer(tmp_path, fake_runner):
    result = _invoke(tmp_path, "migrate-reset", input="yes\n")
    assert result.exit_code == 0
    assert "Cancelled" in result.output
    assert fake_runner.calls == []


def test_clean_full_requires_phrase(tmp_path, fake_runner):
    result = _invoke(tmp_path, "--yes", "clean-full", "--confirm-text", "yes")
    assert result.exit_code == 0
    assert "docker-compose down -v" not in fake_runner.joined()


def test_clean_deep_removes_volumes(tmp_path, fake_runner):
    result = _invoke(tmp_path, "--yes", "clean-deep")
    assert result.exit_code == 0, result.output
    assert "docker volume prune -f" in fake_runner.joined()


def test_db_backup_and_prune(tmp_path, fake_runner):
    result = _invoke(tmp_path, "db-backup")
    assert result.exit_code == 0, result.output
    backups = tmp_path / "backups"
    fresh = list(backups.glob("db_backup_*.sql"))
    assert len(fresh) == 1

    stale = backups / "db_backup_20200101_000000.sql"
    stale.write_text("-- old\n")
    old = time.time() - 120 * 86400
    os.utime(stale, (old, old))
    (backups / "notes.txt").write_text("keep me\n")

    result = _invoke(tmp_path, "db-backup-prune", "--days", "90")
    assert result.exit_code == 0, result.output
    assert not stale.exists()
    assert fresh[0].exists()
    assert (backups / "notes.txt").exists()


def test_db_backup_prune_dry_run(tmp_path, fake_runner):
    backups = tmp_path / "backups"
    backups.mkdir()
    stale = backups / "db_backup_20200101_000000.sql"
    stale.write_text("-- old\n")
    old = time.time() - 120 * 86400
    os.utime(stale, (old, old))

    result = _invoke(tmp_path, "db-backup-prune", "--dry-run")
    assert result.exit_code == 0, result.output
    assert stale.exists()
    assert "Would remove" in result.output


def test_config_plain_json(tmp_path, fake_runner):
    result = _invoke(tmp_path, "--plain-json", "--db-name", "shop_dev", "config")
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["kind"] == "railsdock.config.v1"
    assert payload["projectRoot"] == str(tmp_path.resolve())
    assert payload["composeCommand"] == ["docker-compose"]
    assert payload["database"] == {"user": "rails_user", "name": "shop_dev"}
    assert payload["backupsDir"] == str(tmp_path.resolve() / "backups")
    assert "\n" not in result.output.strip()


def test_ship_stops_when_lint_fails(tmp_path, fake_runner):
    fake_runner.codes["docker-compose run --rm web bundle exec rubocop"] = 1
    result = _invoke(tmp_path, "ship")
    assert result.exit_code == 1
    assert fake_runner.joined() == ["docker-compose run --rm web bundle exec rubocop"]


def test_prod_like_builds_then_starts(tmp_path, fake_runner):
    result = _invoke(tmp_path, "prod-like")
    assert result.exit_code == 0, result.output
    assert fake_runner.joined() == ["docker-compose build", "docker-compose up -d"]


def test_guide_and_services(tmp_path, fake_runner):
    result = _invoke(tmp_path, "guide")
    assert result.exit_code == 0, result.output
    assert "Typical Development Workflow" in result.output
    result = _invoke(tmp_path, "services")
    assert result.exit_code == 0
    assert "ror_postgres" in result.output
    assert fake_runner.calls == []


def test_main_unknown_command(tmp_path, fake_runner, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert cli.main(["frobnicate"]) == 2
    err = capsys.readouterr().err
    assert "frobnicate" in err
    assert "Usage" in err


def test_main_passes_through_exit_code(tmp_path, fake_runner, monkeypatch):
    monkeypatch.chdir(tmp_path)
    fake_runner.codes["docker-compose stop"] = 5
    assert cli.main(["stop"]) == 5
