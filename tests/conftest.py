from __future__ import annotations

import subprocess
import time
from pathlib import Path

import pytest

from railsdock_cli.cli_shared import GlobalOpts
from railsdock_cli.compose import ComposeRunner


class FakeRunner(ComposeRunner):
    """Records argv instead of executing; results are keyed by the joined argv."""

    def __init__(self, project_root: Path) -> None:
        super().__init__(project_root=project_root)
        self.calls: list[list[str]] = []
        self.codes: dict[str, int] = {}
        self.outputs: dict[str, str] = {}
        self.file_payloads: dict[str, bytes] = {}
        self.missing: set[str] = set()

    def _exec(self, argv, *, capture=False, stdout=None):
        self.calls.append(list(argv))
        key = " ".join(argv)
        code = self.codes.get(key, 0)
        if stdout is not None:
            stdout.write(self.file_payloads.get(key, b"-- dump\n"))
        out = self.outputs.get(key, "") if capture else None
        return subprocess.CompletedProcess(argv, code, stdout=out, stderr="" if capture else None)

    def which(self, name: str) -> str | None:
        if name in self.missing:
            return None
        return f"/usr/bin/{name}"

    def joined(self) -> list[str]:
        return [" ".join(c) for c in self.calls]


_BUILD_RUNNER_SITES = (
    "railsdock_cli.cleanup_commands.build_runner",
    "railsdock_cli.service_commands.build_runner",
    "railsdock_cli.setup_commands.build_runner",
    "railsdock_cli.cleanup_main.build_runner",
)


@pytest.fixture
def fake_runner(tmp_path: Path, monkeypatch) -> FakeRunner:
    fake = FakeRunner(tmp_path)

    def _build(g: GlobalOpts) -> FakeRunner:
        fake.project_root = g.project_root
        fake.compose_cmd = tuple(g.compose_cmd)
        fake.compose_file = g.compose_file
        return fake

    for site in _BUILD_RUNNER_SITES:
        monkeypatch.setattr(site, _build)
    monkeypatch.setattr(time, "sleep", lambda _s: None)
    for name in (
        "RAILSDOCK_PROJECT_ROOT",
        "RAILSDOCK_COMPOSE_FILE",
        "RAILSDOCK_COMPOSE_CMD",
        "RAILSDOCK_DB_USER",
        "RAILSDOCK_DB_NAME",
        "RAILSDOCK_APP_URL",
        "RAILSDOCK_BACKUPS_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    return fake


@pytest.fixture
def g(tmp_path: Path) -> GlobalOpts:
    return GlobalOpts(project_root=tmp_path, assume_yes=True, quiet=True)
