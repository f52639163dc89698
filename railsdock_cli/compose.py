from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Sequence

from .cli_shared import GlobalOpts, OpError


class CommandFailed(OpError):
    """A wrapped docker/docker-compose invocation exited non-zero."""

    def __init__(self, argv: Sequence[str], returncode: int, detail: str = "") -> None:
        self.argv = list(argv)
        self.returncode = int(returncode)
        msg = f"command failed (exit {self.returncode}): {' '.join(self.argv)}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


@dataclass
class ComposeRunner:
    project_root: Path
    compose_cmd: tuple[str, ...] = ("docker-compose",)
    compose_file: Path | None = None

    def compose_argv(self, *args: str) -> list[str]:
        argv = list(self.compose_cmd)
        if self.compose_file is not None:
            argv += ["-f", str(self.compose_file)]
        argv += list(args)
        return argv

    def docker_argv(self, *args: str) -> list[str]:
        return ["docker", *args]

    def _exec(
        self,
        argv: list[str],
        *,
        capture: bool = False,
        stdout: IO[bytes] | None = None,
    ) -> subprocess.CompletedProcess:
        kwargs: dict[str, object] = {"cwd": str(self.project_root)}
        if capture:
            kwargs["capture_output"] = True
            kwargs["text"] = True
        elif stdout is not None:
            kwargs["stdout"] = stdout
        try:
            return subprocess.run(argv, check=False, **kwargs)
        except FileNotFoundError as e:
            raise OpError(f"command not found: {argv[0]}") from e

    def run(self, argv: list[str], *, check: bool = True) -> int:
        proc = self._exec(argv)
        if check and proc.returncode != 0:
            raise CommandFailed(argv, proc.returncode)
        return int(proc.returncode)

    def capture(self, argv: list[str], *, check: bool = True) -> str:
        proc = self._exec(argv, capture=True)
        if check and proc.returncode != 0:
            detail = str(proc.stderr or "").strip()
            raise CommandFailed(argv, proc.returncode, detail)
        return str(proc.stdout or "")

    def run_to_file(self, argv: list[str], fh: IO[bytes]) -> int:
        return int(self._exec(argv, stdout=fh).returncode)

    def compose(self, *args: str, check: bool = True) -> int:
        return self.run(self.compose_argv(*args), check=check)

    def docker(self, *args: str, check: bool = True) -> int:
        return self.run(self.docker_argv(*args), check=check)

    def compose_output(self, *args: str, check: bool = True) -> str:
        return self.capture(self.compose_argv(*args), check=check)

    def docker_output(self, *args: str, check: bool = True) -> str:
        return self.capture(self.docker_argv(*args), check=check)

    def docker_ids(self, *args: str) -> list[str]:
        out = self.docker_output(*args)
        return [line.strip() for line in out.splitlines() if line.strip()]

    def which(self, name: str) -> str | None:
        return shutil.which(name)


def build_runner(g: GlobalOpts) -> ComposeRunner:
    return ComposeRunner(
        project_root=g.project_root,
        compose_cmd=tuple(g.compose_cmd),
        compose_file=g.compose_file,
    )
