import subprocess
from typing import Any

import pytest

from trellis.executors import PodmanExecutor


class FakeRun:
    def __init__(
        self, returncode: int = 0, stdout: str | None = "", stderr: str | None = ""
    ) -> None:
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.calls: list[tuple[list[str], dict[str, Any]]] = []

    def __call__(self, cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        self.calls.append((cmd, kwargs))
        return subprocess.CompletedProcess(cmd, self.returncode, self.stdout, self.stderr)


def test_build_captures_output(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakeRun(returncode=0, stdout="built\n", stderr="")
    monkeypatch.setattr("trellis.executors.podman.subprocess.run", fake)

    output = PodmanExecutor().build(["-t", "x"])

    assert output.success
    assert output.stdout == "built\n"
    cmd, kwargs = fake.calls[0]
    assert cmd == ["podman", "build", "-t", "x"]
    assert kwargs == {"capture_output": True, "text": True, "check": False}


def test_streaming_calls_inherit_terminal(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakeRun(returncode=3, stdout=None, stderr=None)
    monkeypatch.setattr("trellis.executors.podman.subprocess.run", fake)

    assert PodmanExecutor().run_streaming(["--rm", "img"]) == 3
    cmd, kwargs = fake.calls[0]
    assert cmd == ["podman", "run", "--rm", "img"]
    assert kwargs == {"check": False}


def test_missing_output_becomes_empty_string(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "trellis.executors.podman.subprocess.run", FakeRun(stdout=None, stderr=None)
    )

    output = PodmanExecutor().images(["--format", "{{.Repository}}"])

    assert output.stdout == ""
    assert output.stderr == ""


def test_bootc_and_custom_binaries(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakeRun()
    monkeypatch.setattr("trellis.executors.podman.subprocess.run", fake)
    executor = PodmanExecutor(podman_bin="/opt/podman", bootc_bin="/opt/bootc")

    executor.bootc(["--version"])
    executor.rmi(["-f", "a"])
    executor.execute("podman", ["image", "exists", "a"])

    assert [cmd for cmd, _ in fake.calls] == [
        ["/opt/bootc", "--version"],
        ["/opt/podman", "rmi", "-f", "a"],
        ["podman", "image", "exists", "a"],
    ]


def test_check_command_in_container(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakeRun(returncode=1)
    monkeypatch.setattr("trellis.executors.podman.subprocess.run", fake)

    assert PodmanExecutor().check_command_in_container("localhost/img", "topgrade") is False
    cmd, _ = fake.calls[0]
    assert cmd[:6] == ["podman", "run", "--rm", "--entrypoint", "/bin/sh", "localhost/img"]
    assert cmd[-1] == "command -v topgrade"


def test_spawn_errors_propagate(monkeypatch: pytest.MonkeyPatch) -> None:
    def boom(cmd: list[str], **kwargs: Any) -> None:
        raise FileNotFoundError(2, "No such file or directory", cmd[0])

    monkeypatch.setattr("trellis.executors.podman.subprocess.run", boom)

    with pytest.raises(FileNotFoundError):
        PodmanExecutor().commit(["c", "img"])
