"""Resolved trellis configuration and pre-flight checks."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from trellis.constants import (
    DEFAULT_BUILDER_TAG,
    DEFAULT_ROOTFS_BASE,
    DEFAULT_ROOTFS_TAG,
    DEFAULT_SRC_DIR,
)
from trellis.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class TrellisConfig:
    """Fully-resolved values consumed by the build, clean, and run commands.

    Loading and merging (CLI over file over defaults) happens before this
    object is built; nothing here reads the environment or disk.
    """

    builder_stages: tuple[str, ...] = ()
    rootfs_stages: tuple[str, ...] = ()
    builder_tag: str = DEFAULT_BUILDER_TAG
    rootfs_tag: str = DEFAULT_ROOTFS_TAG
    rootfs_base: str = DEFAULT_ROOTFS_BASE
    podman_build_cache: bool = False
    auto_clean: bool = False
    pacman_cache: Path | None = None
    aur_cache: Path | None = None
    hooks_dir: Path | None = None
    extra_contexts: tuple[str, ...] = ()
    extra_mounts: tuple[Path, ...] = ()
    src_dir: Path = field(default_factory=lambda: DEFAULT_SRC_DIR)
    quiet: bool = False


def ensure_stages(stages: Sequence[str], *, kind: str) -> None:
    if not stages:
        raise ConfigurationError(
            f"No {kind} stages defined",
            hint=f"Configure at least one entry in {kind}_stages.",
            context={"operation": f"build_{kind}"},
        )
