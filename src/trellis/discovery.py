"""Containerfile discovery with an mtime-invalidated lookup cache.

A stage group ``base`` is built from a file literally named
``Containerfile.base`` found anywhere under the source directory. When the
same name exists at several levels, the most deeply nested file wins so a
subtree can override a shared definition.

The cache is coarse: any change to the source directory's own mtime drops
every entry. Entries whose file has disappeared are dropped individually.
"""

from __future__ import annotations

import os
import threading
import warnings
from collections import OrderedDict
from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path

from trellis.constants import (
    CONTAINERFILE_PREFIX,
    DISCOVERY_CACHE_CAPACITY,
    MAX_SEARCH_DEPTH,
    containerfile_name,
)
from trellis.errors import ContainerfileNotFoundError, MissingContainerfilesError
from trellis.models import DiscoveryCacheEntry
from trellis.observability import StructuredLogger


class DiscoveryWarning(UserWarning):
    """Warning raised when part of the source tree cannot be searched."""


def parse_stage_name(build_stage: str) -> tuple[str, str]:
    """Split ``group:stage`` on the first colon; a bare name is its own group."""
    group, sep, stage = build_stage.partition(":")
    if not sep:
        return build_stage, build_stage
    return group, stage


def group_from_filename(filename: str) -> str | None:
    if not filename.startswith(CONTAINERFILE_PREFIX):
        return None
    group = filename[len(CONTAINERFILE_PREFIX) :]
    return group or None


class DiscoveryCache:
    """LRU map of group to resolved path, tied to one source-tree mtime snapshot."""

    def __init__(self, capacity: int = DISCOVERY_CACHE_CAPACITY) -> None:
        self.capacity = capacity
        self.src_dir_mtime: float | None = None
        self._entries: OrderedDict[str, DiscoveryCacheEntry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, group: object) -> bool:
        return group in self._entries

    def refresh(self, src_dir: Path) -> bool:
        """Drop everything if *src_dir* changed since the snapshot.

        Returns ``True`` when the cache was invalidated.
        """
        current = _mtime(src_dir)
        if (
            current is not None
            and self.src_dir_mtime is not None
            and current <= self.src_dir_mtime
        ):
            return False
        self.invalidate()
        self.src_dir_mtime = current
        return True

    def get(self, group: str) -> DiscoveryCacheEntry | None:
        entry = self._entries.get(group)
        if entry is not None:
            self._entries.move_to_end(group)
        return entry

    def put(self, group: str, path: Path) -> DiscoveryCacheEntry:
        entry = DiscoveryCacheEntry(
            group=group,
            path=path,
            captured_at=self.src_dir_mtime if self.src_dir_mtime is not None else 0.0,
        )
        self._entries[group] = entry
        self._entries.move_to_end(group)
        while len(self._entries) > self.capacity:
            self._entries.popitem(last=False)
        return entry

    def pop(self, group: str) -> DiscoveryCacheEntry | None:
        return self._entries.pop(group, None)

    def invalidate(self) -> None:
        self._entries.clear()
        self.src_dir_mtime = None


class ContainerfileDiscovery:
    def __init__(
        self,
        src_dir: str | Path,
        *,
        max_depth: int = MAX_SEARCH_DEPTH,
        cache: DiscoveryCache | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        self.src_dir = Path(src_dir)
        self.max_depth = max_depth
        self.cache = cache if cache is not None else DiscoveryCache()
        self.logger = logger if logger is not None else StructuredLogger()
        self._lock = threading.Lock()

    def find_containerfile(self, group: str) -> Path:
        """Return the definition file for *group*, using the cache when still valid."""
        with self._lock:
            self.cache.refresh(self.src_dir)

            entry = self.cache.get(group)
            if entry is not None:
                if entry.path.is_file():
                    return entry.path
                self.cache.pop(group)

            path = self._find_uncached(group)
            self.cache.put(group, path)
            return path

    def find_multiple_containerfiles(self, groups: Iterable[str]) -> dict[str, Path]:
        """Resolve many groups with one walk; groups without a file are absent."""
        wanted = set(groups)
        if not wanted:
            return {}

        best: dict[str, tuple[int, Path]] = {}
        for path, depth in self._walk():
            group = group_from_filename(path.name)
            if group is None or group not in wanted:
                continue
            current = best.get(group)
            if current is None or depth > current[0]:
                best[group] = (depth, path)

        found = {group: path for group, (_, path) in best.items()}
        with self._lock:
            self.cache.refresh(self.src_dir)
            for group, path in found.items():
                self.cache.put(group, path)
        return found

    def validate_stages(self, stages: Sequence[str]) -> None:
        """Fail with every missing definition file at once, before anything is built."""
        if not stages:
            return

        groups = list(dict.fromkeys(parse_stage_name(stage)[0] for stage in stages))
        found = self.find_multiple_containerfiles(groups)
        missing = [containerfile_name(group) for group in groups if group not in found]
        if missing:
            raise MissingContainerfilesError(missing, src_dir=str(self.src_dir))

    def _find_uncached(self, group: str) -> Path:
        filename = containerfile_name(group)
        best: tuple[int, Path] | None = None
        for path, depth in self._walk():
            if path.name != filename:
                continue
            # Strictly greater keeps the first match among equally deep files.
            if best is None or depth > best[0]:
                best = (depth, path)

        if best is None:
            raise ContainerfileNotFoundError(filename=filename, src_dir=str(self.src_dir))
        return best[1]

    def _walk(self) -> Iterator[tuple[Path, int]]:
        """Yield regular files under the source directory with their path depth.

        Symlinks are never followed. Directories are visited in sorted order
        so results do not depend on filesystem enumeration order.
        """
        root_parts = len(self.src_dir.parts)
        for dirpath, dirnames, filenames in os.walk(
            self.src_dir,
            followlinks=False,
            onerror=self._on_walk_error,
        ):
            current = Path(dirpath)
            level = len(current.parts) - root_parts
            dirnames.sort()
            if level + 1 >= self.max_depth:
                dirnames[:] = []
            for filename in sorted(filenames):
                path = current / filename
                if path.is_symlink() or not path.is_file():
                    continue
                yield path, len(path.parts)

    def _on_walk_error(self, error: OSError) -> None:
        message = f"Error accessing directory: {error}"
        self.logger.log(
            operation="discover",
            message=message,
            level="warning",
            extra={"path": str(error.filename) if error.filename else ""},
        )
        warnings.warn(message, DiscoveryWarning, stacklevel=2)


def _mtime(path: Path) -> float | None:
    try:
        return path.stat().st_mtime
    except OSError:
        return None
