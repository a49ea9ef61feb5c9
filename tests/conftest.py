"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from trellis.config import TrellisConfig
from trellis.discovery import ContainerfileDiscovery
from trellis.executors import ScriptedExecutor
from trellis.observability import StructuredLogger


@pytest.fixture
def executor() -> ScriptedExecutor:
    """Provide a scripted executor so no test spawns podman."""
    return ScriptedExecutor()


@pytest.fixture
def logger() -> StructuredLogger:
    return StructuredLogger(echo=False)


@pytest.fixture
def src_dir(tmp_path: Path) -> Path:
    path = tmp_path / "src"
    path.mkdir()
    return path


@pytest.fixture
def containerfile(src_dir: Path) -> Callable[..., Path]:
    """Write ``Containerfile.<group>`` under the source tree, optionally nested."""

    def _write(group: str, *subdirs: str) -> Path:
        directory = src_dir.joinpath(*subdirs)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"Containerfile.{group}"
        path.write_text(f"ARG BASE_IMAGE\nFROM $BASE_IMAGE AS {group}\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def discovery(src_dir: Path, logger: StructuredLogger) -> ContainerfileDiscovery:
    return ContainerfileDiscovery(src_dir, logger=logger)


@pytest.fixture
def make_config(src_dir: Path) -> Callable[..., TrellisConfig]:
    def _make(**overrides: object) -> TrellisConfig:
        values: dict[str, object] = {"src_dir": src_dir, "quiet": True}
        values.update(overrides)
        return TrellisConfig(**values)  # type: ignore[arg-type]

    return _make
