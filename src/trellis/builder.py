"""Multi-stage container builds driven stage by stage through podman.

Each stage is built from its group's Containerfile on top of the previous
stage's image. Intermediate stages get derived ``trellis-*`` tags; the last
stage gets the caller's final tag. A failing stage stops the build and the
intermediates already produced stay in the image store until the next
cleanup.
"""

from __future__ import annotations

import os
from collections.abc import Iterator, Sequence
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from trellis.config import TrellisConfig, ensure_stages
from trellis.constants import (
    AUR_CACHE_MOUNT,
    BUILDAH_LAYERS_ENV,
    PACMAN_CACHE_MOUNT,
    SCRATCH_IMAGE,
    local_image,
)
from trellis.discovery import ContainerfileDiscovery, parse_stage_name
from trellis.errors import CommandExecutionError, ConfigurationError
from trellis.executors.base import CommandExecutor
from trellis.models import BuildPlan, BuildType, MountSpec, ResolvedStage
from trellis.observability import StructuredLogger

BUILD_FAILURE_HINT = (
    "Check podman logs for details. Ensure sufficient disk space and proper permissions."
)


@contextmanager
def scoped_env(key: str, value: str) -> Iterator[None]:
    """Set an environment variable for the duration of the block.

    The previous value is restored, or the variable removed if it was unset,
    however the block exits.
    """
    previous = os.environ.get(key)
    os.environ[key] = value
    try:
        yield
    finally:
        if previous is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = previous


def stage_tag(
    group: str,
    stage: str,
    *,
    index: int,
    total: int,
    final_tag: str,
    temp_name: str,
) -> str:
    if index == total - 1:
        return final_tag
    if group != stage:
        return f"trellis-{temp_name}-{group}-{stage}"
    return f"trellis-{temp_name}-{stage}"


def determine_base_image(
    index: int,
    build_type: BuildType,
    previous_tag: str | None,
    *,
    rootfs_base: str,
) -> str:
    if index == 0 or not previous_tag:
        if build_type is BuildType.ROOTFS:
            return rootfs_base
        return SCRATCH_IMAGE
    return local_image(previous_tag)


def plan(
    stages: Sequence[str],
    *,
    final_tag: str,
    temp_name: str,
    build_type: BuildType,
    rootfs_base: str,
) -> BuildPlan:
    resolved: list[ResolvedStage] = []
    previous_tag: str | None = None
    for index, spec in enumerate(stages):
        group, stage = parse_stage_name(spec)
        tag = stage_tag(
            group,
            stage,
            index=index,
            total=len(stages),
            final_tag=final_tag,
            temp_name=temp_name,
        )
        resolved.append(
            ResolvedStage(
                spec=spec,
                group=group,
                stage=stage,
                index=index,
                tag=tag,
                base_image=determine_base_image(
                    index, build_type, previous_tag, rootfs_base=rootfs_base
                ),
            )
        )
        previous_tag = tag
    return BuildPlan(
        stages=tuple(resolved),
        final_tag=final_tag,
        build_type=build_type,
        temp_name=temp_name,
    )


def base_build_args(
    *,
    containerfile: Path,
    base_image: str,
    target: str,
    tag: str,
    no_cache: bool,
) -> list[str]:
    args = [
        "--net",
        "host",
        "--cap-add",
        "sys_admin",
        "--cap-add",
        "mknod",
        "--squash",
        "-f",
        str(containerfile),
        "--build-arg",
        f"BASE_IMAGE={base_image}",
        "--target",
        target,
        "-t",
        tag,
    ]
    if no_cache:
        args.append("--no-cache")
    return args


@dataclass(slots=True)
class ContainerBuilder:
    config: TrellisConfig
    executor: CommandExecutor
    discovery: ContainerfileDiscovery | None = None
    logger: StructuredLogger = field(default_factory=StructuredLogger)

    def __post_init__(self) -> None:
        if self.discovery is None:
            self.discovery = ContainerfileDiscovery(self.config.src_dir, logger=self.logger)

    def plan(
        self,
        stages: Sequence[str],
        *,
        final_tag: str,
        temp_name: str,
        build_type: BuildType,
    ) -> BuildPlan:
        return plan(
            stages,
            final_tag=final_tag,
            temp_name=temp_name,
            build_type=build_type,
            rootfs_base=self.config.rootfs_base,
        )

    def build_multistage_container(
        self,
        temp_name: str,
        final_tag: str,
        stages: Sequence[str],
        build_type: BuildType,
    ) -> BuildPlan:
        ensure_stages(stages, kind=build_type.value)
        build_plan = self.plan(
            stages,
            final_tag=final_tag,
            temp_name=temp_name,
            build_type=build_type,
        )
        self.execute(build_plan)
        return build_plan

    def execute(self, build_plan: BuildPlan) -> None:
        self._discovery().validate_stages(build_plan.specs)
        extra_args: list[str] = []
        if build_plan.build_type is BuildType.ROOTFS:
            extra_args = self.rootfs_args()

        with ExitStack() as stack:
            if not self.config.podman_build_cache:
                stack.enter_context(scoped_env(BUILDAH_LAYERS_ENV, "false"))
            total = len(build_plan.stages)
            for stage in build_plan.stages:
                self._build_stage(stage, extra_args=extra_args, total=total)

    def rootfs_args(self) -> list[str]:
        """Extra build arguments only applied to rootfs builds."""
        args: list[str] = []
        for context in self.config.extra_contexts:
            args.extend(["--build-context", context])

        if self.config.pacman_cache is not None:
            self._prepare_cache_dir(self.config.pacman_cache, "pacman")
            mount = MountSpec(source=self.config.pacman_cache, target=PACMAN_CACHE_MOUNT)
            args.extend(["-v", mount.as_volume()])
            args.extend(["--build-arg", f"PACMAN_CACHE={PACMAN_CACHE_MOUNT}"])

        if self.config.aur_cache is not None:
            self._prepare_cache_dir(self.config.aur_cache, "AUR")
            mount = MountSpec(source=self.config.aur_cache, target=AUR_CACHE_MOUNT)
            args.extend(["-v", mount.as_volume()])
            args.extend(["--build-arg", f"AUR_CACHE={AUR_CACHE_MOUNT}"])

        if self.config.hooks_dir is not None:
            hooks = str(self.config.hooks_dir)
            args.extend(["-v", MountSpec(source=self.config.hooks_dir, target=hooks).as_volume()])
            args.extend(["--build-arg", f"HOOKS_DIR={hooks}"])

        for extra in self.config.extra_mounts:
            args.extend(["-v", MountSpec(source=extra, target=str(extra)).as_volume()])
        return args

    def _build_stage(
        self, stage: ResolvedStage, *, extra_args: Sequence[str], total: int
    ) -> None:
        containerfile = self._discovery().find_containerfile(stage.group)
        self.logger.log(
            operation="build_stage",
            stage=stage.spec,
            group=stage.group,
            image=stage.tag,
            message=f"Building stage {stage.index + 1}/{total}: {stage.spec} -> {stage.tag}",
            extra={"containerfile": str(containerfile), "base_image": stage.base_image},
        )

        args = base_build_args(
            containerfile=containerfile,
            base_image=stage.base_image,
            target=stage.stage,
            tag=stage.tag,
            no_cache=not self.config.podman_build_cache,
        )
        args.extend(extra_args)

        context = {
            "stage": stage.spec,
            "position": f"{stage.index + 1}/{total}",
            "tag": stage.tag,
            "containerfile": str(containerfile),
        }
        stderr = ""
        try:
            if self.config.quiet:
                output = self.executor.build(args)
                returncode = output.returncode
                stderr = output.stderr
            else:
                returncode = self.executor.build_streaming(args)
        except OSError as exc:
            raise CommandExecutionError(
                f"Failed to build stage: {stage.spec}",
                hint="Ensure podman is installed and on PATH.",
                context={**context, "error": str(exc)},
            ) from exc

        if returncode != 0:
            raise CommandExecutionError(
                f"Podman build failed for stage {stage.spec} with exit code {returncode}.",
                hint=BUILD_FAILURE_HINT,
                context={
                    **context,
                    "returncode": str(returncode),
                    "stderr": stderr[:2000],
                },
            )

    def _prepare_cache_dir(self, path: Path, label: str) -> None:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except PermissionError as exc:
            self._cache_warning(f"Failed to create {label} cache directory: {path} - {exc}")
            raise ConfigurationError(
                f"Permission denied creating {label} cache directory.",
                hint="Try running with elevated privileges or choose a different cache location.",
                context={"path": str(path)},
            ) from exc
        except OSError as exc:
            self._cache_warning(f"Failed to create {label} cache directory: {path} - {exc}")
            raise ConfigurationError(
                f"Failed to create {label} cache directory.",
                context={"path": str(path), "error": str(exc)},
            ) from exc

        if not path.is_dir() or not os.access(path, os.W_OK):
            self._cache_warning(f"{label} cache directory is not writable: {path}")
            raise ConfigurationError(
                f"{label} cache directory is not writable.",
                hint="Fix the directory permissions or choose a different cache location.",
                context={"path": str(path)},
            )
        self.logger.log(operation="cache_mount", message=f"Using {label} cache: {path}")

    def _cache_warning(self, message: str) -> None:
        self.logger.log(operation="cache_mount", message=message, level="warning")

    def _discovery(self) -> ContainerfileDiscovery:
        assert self.discovery is not None
        return self.discovery
