"""Core typed dataclasses for build plans, images, and command results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path


class BuildType(StrEnum):
    BUILDER = "builder"
    ROOTFS = "rootfs"


class CleanMode(StrEnum):
    """Which trellis-owned images a cleanup pass removes."""

    FULL = "full"
    AUTO = "auto"


class ImageRole(StrEnum):
    FINAL = "final"
    INTERMEDIATE = "intermediate"


@dataclass(frozen=True, slots=True)
class MountSpec:
    source: Path
    target: str
    read_only: bool = False

    def as_volume(self) -> str:
        volume = f"{self.source}:{self.target}"
        if self.read_only:
            volume += ":ro"
        return volume


@dataclass(frozen=True, slots=True)
class ResolvedStage:
    """One stage token parsed and positioned within a build."""

    spec: str
    group: str
    stage: str
    index: int
    tag: str
    base_image: str

    @property
    def qualified(self) -> bool:
        return self.group != self.stage


@dataclass(frozen=True, slots=True)
class BuildPlan:
    stages: tuple[ResolvedStage, ...]
    final_tag: str
    build_type: BuildType
    temp_name: str

    @property
    def specs(self) -> tuple[str, ...]:
        return tuple(stage.spec for stage in self.stages)

    def tags(self) -> tuple[str, ...]:
        return tuple(stage.tag for stage in self.stages)


@dataclass(frozen=True, slots=True)
class DiscoveryCacheEntry:
    group: str
    path: Path
    captured_at: float


@dataclass(frozen=True, slots=True)
class ImageRecord:
    repository: str
    tag: str

    @property
    def reference(self) -> str:
        return f"{self.repository}:{self.tag}"


@dataclass(frozen=True, slots=True)
class ImageClassification:
    owned: bool
    role: ImageRole | None = None

    @property
    def final(self) -> bool:
        return self.role is ImageRole.FINAL

    @property
    def intermediate(self) -> bool:
        return self.role is ImageRole.INTERMEDIATE


@dataclass(frozen=True, slots=True)
class CommandOutput:
    """Captured result of one external command."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0
