from collections.abc import Callable
from pathlib import Path

import pytest

from trellis.app import Trellis
from trellis.config import TrellisConfig
from trellis.errors import ConfigurationError
from trellis.executors import ScriptedExecutor
from trellis.models import BuildType, CommandOutput
from trellis.observability import StructuredLogger

MakeConfig = Callable[..., TrellisConfig]
WriteContainerfile = Callable[..., Path]


def test_components_share_discovery_and_logger(
    make_config: MakeConfig, executor: ScriptedExecutor, logger: StructuredLogger
) -> None:
    app = Trellis(make_config(), executor, logger)

    assert app.builder.logger is logger
    assert app.cleaner.logger is logger
    assert app.runner.logger is logger
    assert app.builder.discovery is not None
    assert app.builder.discovery.logger is logger


def test_build_builder_uses_builder_settings(
    make_config: MakeConfig,
    executor: ScriptedExecutor,
    logger: StructuredLogger,
    containerfile: WriteContainerfile,
) -> None:
    containerfile("base")
    containerfile("tools")
    config = make_config(builder_stages=("base", "tools"), builder_tag="my-builder")

    build_plan = Trellis(config, executor, logger).build_builder()

    assert build_plan.build_type is BuildType.BUILDER
    assert build_plan.tags() == ("trellis-builder-base", "my-builder")
    assert executor.calls_for("images") == []


def test_build_rootfs_runs_auto_clean_when_enabled(
    make_config: MakeConfig,
    executor: ScriptedExecutor,
    logger: StructuredLogger,
    containerfile: WriteContainerfile,
) -> None:
    containerfile("base")
    containerfile("desktop")
    executor.script(
        "images",
        CommandOutput(
            returncode=0,
            stdout="localhost/trellis-stage-base:latest\nlocalhost/my-rootfs:latest\n",
        ),
    )
    config = make_config(
        rootfs_stages=("base", "desktop"),
        rootfs_tag="my-rootfs",
        rootfs_base="quay.io/example/os:latest",
        auto_clean=True,
    )

    build_plan = Trellis(config, executor, logger).build_rootfs()

    assert build_plan.stages[0].base_image == "quay.io/example/os:latest"
    assert executor.operations() == ["build", "build", "images", "rmi"]
    assert executor.calls_for("rmi")[0].args == ("-f", "localhost/trellis-stage-base:latest")


def test_build_rootfs_without_stages(
    make_config: MakeConfig, executor: ScriptedExecutor, logger: StructuredLogger
) -> None:
    with pytest.raises(ConfigurationError, match="No rootfs stages defined"):
        Trellis(make_config(), executor, logger).build_rootfs()


def test_run_uses_rootfs_tag(
    make_config: MakeConfig, executor: ScriptedExecutor, logger: StructuredLogger
) -> None:
    Trellis(make_config(rootfs_tag="my-rootfs"), executor, logger).run(["bash"])

    (run,) = executor.calls_for("run")
    assert run.args[-2:] == ("localhost/my-rootfs", "bash")


def test_update_builds_rootfs_then_upgrades(
    make_config: MakeConfig,
    executor: ScriptedExecutor,
    logger: StructuredLogger,
    containerfile: WriteContainerfile,
) -> None:
    containerfile("base")
    config = make_config(rootfs_stages=("base",))

    Trellis(config, executor, logger).update()

    assert executor.operations() == ["build", "bootc", "bootc"]


def test_clean_returns_removed_count(
    make_config: MakeConfig, executor: ScriptedExecutor, logger: StructuredLogger
) -> None:
    executor.script(
        "images",
        CommandOutput(returncode=0, stdout="localhost/trellis-rootfs:latest\n"),
    )

    assert Trellis(make_config(), executor, logger).clean() == 1


def test_quick_update_delegates_to_runner(
    make_config: MakeConfig, executor: ScriptedExecutor, logger: StructuredLogger
) -> None:
    Trellis(make_config(), executor, logger).quick_update()

    assert "commit" in executor.operations()
