"""Host execution of podman and bootc via subprocess.

Every call blocks until the child exits. There is no timeout: a hung
podman build hangs the caller.
"""

from __future__ import annotations

import shlex
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass

from trellis.models import CommandOutput


@dataclass(slots=True)
class PodmanExecutor:
    name: str = "podman"
    podman_bin: str = "podman"
    bootc_bin: str = "bootc"

    def build(self, args: Sequence[str]) -> CommandOutput:
        return self._capture([self.podman_bin, "build", *args])

    def build_streaming(self, args: Sequence[str]) -> int:
        return self._stream([self.podman_bin, "build", *args])

    def run(self, args: Sequence[str]) -> CommandOutput:
        return self._capture([self.podman_bin, "run", *args])

    def run_streaming(self, args: Sequence[str]) -> int:
        return self._stream([self.podman_bin, "run", *args])

    def images(self, args: Sequence[str]) -> CommandOutput:
        return self._capture([self.podman_bin, "images", *args])

    def rmi(self, args: Sequence[str]) -> CommandOutput:
        return self._capture([self.podman_bin, "rmi", *args])

    def commit(self, args: Sequence[str]) -> CommandOutput:
        return self._capture([self.podman_bin, "commit", *args])

    def bootc(self, args: Sequence[str]) -> CommandOutput:
        return self._capture([self.bootc_bin, *args])

    def bootc_streaming(self, args: Sequence[str]) -> int:
        return self._stream([self.bootc_bin, *args])

    def execute(self, command: str, args: Sequence[str]) -> CommandOutput:
        return self._capture([command, *args])

    def check_command_in_container(self, image: str, command: str) -> bool:
        result = self._capture(
            [
                self.podman_bin,
                "run",
                "--rm",
                "--entrypoint",
                "/bin/sh",
                image,
                "-c",
                f"command -v {shlex.quote(command)}",
            ]
        )
        return result.success

    def _capture(self, cmd: list[str]) -> CommandOutput:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            check=False,
        )
        return CommandOutput(
            returncode=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )

    def _stream(self, cmd: list[str]) -> int:
        result = subprocess.run(cmd, check=False)
        return result.returncode
