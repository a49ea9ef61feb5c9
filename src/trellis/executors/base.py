"""Protocol for external command executors."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from trellis.models import CommandOutput


class CommandExecutor(Protocol):
    """Runs the external operations trellis depends on.

    Captured variants return a :class:`CommandOutput`; streaming variants
    let output pass through to the terminal and return only the exit
    status. Implementations raise :class:`OSError` when a command cannot be
    spawned at all.
    """

    name: str

    def build(self, args: Sequence[str]) -> CommandOutput:
        """Run ``podman build`` with *args*."""

    def build_streaming(self, args: Sequence[str]) -> int:
        """Run ``podman build`` with live output."""

    def run(self, args: Sequence[str]) -> CommandOutput:
        """Run ``podman run`` with *args*."""

    def run_streaming(self, args: Sequence[str]) -> int:
        """Run ``podman run`` with live output."""

    def images(self, args: Sequence[str]) -> CommandOutput:
        """List images with ``podman images``."""

    def rmi(self, args: Sequence[str]) -> CommandOutput:
        """Remove images with ``podman rmi``."""

    def commit(self, args: Sequence[str]) -> CommandOutput:
        """Commit a container with ``podman commit``."""

    def bootc(self, args: Sequence[str]) -> CommandOutput:
        """Run ``bootc`` with *args*."""

    def bootc_streaming(self, args: Sequence[str]) -> int:
        """Run ``bootc`` with live output."""

    def execute(self, command: str, args: Sequence[str]) -> CommandOutput:
        """Run an arbitrary *command*."""

    def check_command_in_container(self, image: str, command: str) -> bool:
        """Return whether *command* resolves inside *image*."""
