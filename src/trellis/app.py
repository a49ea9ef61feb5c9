"""Top-level trellis commands wired to a shared executor and logger."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from trellis.builder import ContainerBuilder
from trellis.cleaner import ImageCleaner
from trellis.config import TrellisConfig
from trellis.constants import BUILDER_TEMP_NAME, ROOTFS_TEMP_NAME
from trellis.discovery import ContainerfileDiscovery
from trellis.executors import PodmanExecutor
from trellis.executors.base import CommandExecutor
from trellis.models import BuildPlan, BuildType
from trellis.observability import StructuredLogger
from trellis.runner import ContainerRunner


@dataclass(slots=True)
class Trellis:
    config: TrellisConfig
    executor: CommandExecutor = field(default_factory=PodmanExecutor)
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    builder: ContainerBuilder = field(init=False, repr=False)
    cleaner: ImageCleaner = field(init=False, repr=False)
    runner: ContainerRunner = field(init=False, repr=False)

    def __post_init__(self) -> None:
        discovery = ContainerfileDiscovery(self.config.src_dir, logger=self.logger)
        self.builder = ContainerBuilder(
            self.config, self.executor, discovery=discovery, logger=self.logger
        )
        self.cleaner = ImageCleaner(self.config, self.executor, logger=self.logger)
        self.runner = ContainerRunner(self.config, self.executor, logger=self.logger)

    def build_builder(self) -> BuildPlan:
        build_plan = self.builder.build_multistage_container(
            BUILDER_TEMP_NAME,
            self.config.builder_tag,
            self.config.builder_stages,
            BuildType.BUILDER,
        )
        self.logger.log(operation="build_builder", message="Builder container built successfully")
        self.cleaner.auto_clean()
        return build_plan

    def build_rootfs(self) -> BuildPlan:
        build_plan = self.builder.build_multistage_container(
            ROOTFS_TEMP_NAME,
            self.config.rootfs_tag,
            self.config.rootfs_stages,
            BuildType.ROOTFS,
        )
        self.logger.log(operation="build_rootfs", message="Rootfs container built successfully")
        self.cleaner.auto_clean()
        return build_plan

    def clean(self) -> int:
        return self.cleaner.clean_all()

    def run(self, args: Sequence[str] = ()) -> None:
        self.runner.run_container(self.config.rootfs_tag, args)

    def update(self) -> None:
        self.build_rootfs()
        self.runner.run_bootc_upgrade()

    def quick_update(self) -> None:
        self.runner.quick_update_rootfs()
