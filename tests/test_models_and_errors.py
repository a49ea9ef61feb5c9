from pathlib import Path

import pytest

from trellis.config import TrellisConfig, ensure_stages
from trellis.constants import containerfile_name, local_image
from trellis.errors import (
    CommandExecutionError,
    ConfigurationError,
    ContainerfileNotFoundError,
    DiscoveryError,
    ErrorCode,
    MissingContainerfilesError,
    TrellisError,
)
from trellis.models import CommandOutput, ImageRecord, MountSpec


def test_error_string_includes_hint_and_non_empty_context() -> None:
    error = CommandExecutionError(
        "Podman build failed.",
        hint="Check podman logs.",
        context={"stage": "base", "stderr": ""},
    )

    text = str(error)

    assert text.splitlines()[0] == "Podman build failed."
    assert "Hint: Check podman logs." in text
    assert "  stage: base" in text
    assert "stderr" not in text


def test_error_to_dict() -> None:
    error = ConfigurationError("No rootfs stages defined")

    payload = error.to_dict()

    assert payload == {
        "code": "E_CONFIGURATION",
        "message": "No rootfs stages defined",
        "context": {},
    }


def test_discovery_errors_share_a_code() -> None:
    single = ContainerfileNotFoundError(filename="Containerfile.a", src_dir="/src")
    many = MissingContainerfilesError(["Containerfile.a", "Containerfile.b"], src_dir="/src")

    for error in (single, many):
        assert isinstance(error, DiscoveryError)
        assert isinstance(error, TrellisError)
        assert error.code == ErrorCode.DISCOVERY.value
    assert str(many).startswith("Missing required containerfiles: Containerfile.a, Containerfile.b")


def test_ensure_stages() -> None:
    ensure_stages(["base"], kind="builder")
    with pytest.raises(ConfigurationError, match="No builder stages defined"):
        ensure_stages([], kind="builder")


def test_config_defaults() -> None:
    config = TrellisConfig()

    assert config.builder_tag == "trellis-builder"
    assert config.rootfs_tag == "trellis-rootfs"
    assert config.rootfs_base == "scratch"
    assert config.podman_build_cache is False
    assert config.auto_clean is False
    assert config.pacman_cache is None


def test_mount_spec_volume() -> None:
    assert MountSpec(source=Path("/a"), target="/b").as_volume() == "/a:/b"
    assert MountSpec(source=Path("/a"), target="/b", read_only=True).as_volume() == "/a:/b:ro"


def test_small_helpers() -> None:
    assert containerfile_name("base") == "Containerfile.base"
    assert local_image("my-rootfs") == "localhost/my-rootfs"
    assert ImageRecord(repository="localhost/a", tag="v1").reference == "localhost/a:v1"
    assert CommandOutput(returncode=0).success
    assert not CommandOutput(returncode=1).success
