"""Thin adapter over the ``docker`` CLI.

Only the handful of commands the extractor needs are exposed. The runner
callables are injectable so tests can record command lines instead of
spawning processes.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from server_styles.utils.subprocess import probe_cmd, run_cmd

Runner = Callable[[list[str]], str]
Prober = Callable[[list[str]], tuple[int, str]]


class DockerRuntime:
    def __init__(
        self,
        docker_bin: str = "docker",
        *,
        runner: Runner = run_cmd,
        prober: Prober = probe_cmd,
    ) -> None:
        self.docker_bin = docker_bin
        self._run = runner
        self._probe = prober

    def _inspect(self, name: str, template: str) -> str | None:
        returncode, output = self._probe([self.docker_bin, "inspect", "-f", template, name])
        if returncode != 0:
            return None
        return output.strip() or None

    def status(self, name: str) -> str | None:
        """Return the container state (``created``, ``running``, ``exited``...) or None if absent."""
        return self._inspect(name, "{{.State.Status}}")

    def is_running(self, name: str) -> bool:
        return self._inspect(name, "{{.State.Running}}") == "true"

    def create(self, name: str, *, version: str, port: int, image: str) -> None:
        """Create and start a detached container serving ``version`` on ``port``."""
        self._run(
            [
                self.docker_bin,
                "run",
                "-d",
                "-e",
                f"SERVER_BRANCH={version}",
                "--name",
                name,
                "-p",
                f"{port}:443",
                image,
            ]
        )

    def start(self, name: str) -> None:
        self._run([self.docker_bin, "start", name])

    def remove(self, name: str) -> None:
        self._run([self.docker_bin, "rm", "--force", name])

    def copy_from(self, name: str, source: str, destination: Path) -> None:
        """Copy ``source`` out of the container into ``destination`` on the host."""
        self._run([self.docker_bin, "cp", f"{name}:{source}", str(destination)])
