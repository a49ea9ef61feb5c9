"""Default paths, naming prefixes, and limits shared across trellis."""

from __future__ import annotations

from pathlib import Path

DEFAULT_SRC_DIR = Path("/var/lib/trellis/src")

DEFAULT_BUILDER_TAG = "trellis-builder"
DEFAULT_ROOTFS_TAG = "trellis-rootfs"
DEFAULT_ROOTFS_BASE = "scratch"

LOCALHOST_PREFIX = "localhost/"
BUILDER_PREFIX = "trellis-builder"
STAGE_PREFIX = "trellis-stage"
SCRATCH_IMAGE = "scratch"

BUILDER_TEMP_NAME = "builder"
ROOTFS_TEMP_NAME = "stage"

# Guest-side mount points for the package caches.
PACMAN_CACHE_MOUNT = "/var/cache/pacman/pkg"
AUR_CACHE_MOUNT = "/var/cache/trellis/aur"

CONTAINERFILE_PREFIX = "Containerfile."
MAX_SEARCH_DEPTH = 20
DISCOVERY_CACHE_CAPACITY = 100

BUILDAH_LAYERS_ENV = "BUILDAH_LAYERS"

IMAGE_LIST_FORMAT = "{{.Repository}}:{{.Tag}}"


def containerfile_name(group: str) -> str:
    return f"{CONTAINERFILE_PREFIX}{group}"


def local_image(tag: str) -> str:
    return f"{LOCALHOST_PREFIX}{tag}"
