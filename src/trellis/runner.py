"""Running the rootfs image and applying updates to the host."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field

from trellis.config import TrellisConfig
from trellis.constants import local_image
from trellis.errors import CommandExecutionError, ImageNotFoundError
from trellis.executors.base import CommandExecutor
from trellis.models import CommandOutput
from trellis.observability import StructuredLogger

QUICK_UPDATE_COMMAND = "topgrade"


def run_args(image: str, args: Sequence[str]) -> list[str]:
    return ["--net", "host", "--cap-add", "all", "--rm", "-it", image, *args]


@dataclass(slots=True)
class ContainerRunner:
    config: TrellisConfig
    executor: CommandExecutor
    logger: StructuredLogger = field(default_factory=StructuredLogger)

    def run_container(self, tag: str, args: Sequence[str] = ()) -> None:
        image = self.ensure_image_exists(tag)
        self._run(run_args(image, args), operation="run", image=image)

    def run_bootc_upgrade(self) -> None:
        self.logger.log(operation="update", message="Running bootc upgrade...")
        self._ensure_bootc_available()

        try:
            if self.config.quiet:
                output = self.executor.bootc(["upgrade"])
                returncode, stderr = output.returncode, output.stderr
            else:
                returncode, stderr = self.executor.bootc_streaming(["upgrade"]), ""
        except OSError as exc:
            raise CommandExecutionError(
                "Failed to execute bootc upgrade.",
                context={"operation": "update", "error": str(exc)},
            ) from exc

        if returncode != 0:
            raise CommandExecutionError(
                f"bootc upgrade failed with exit code {returncode}.",
                context={
                    "operation": "update",
                    "returncode": str(returncode),
                    "stderr": stderr.strip(),
                },
            )
        self.logger.log(operation="update", message="Update completed successfully")

    def quick_update_rootfs(self) -> None:
        """Run topgrade inside the current rootfs image and commit the result in place.

        The temporary container is always removed, including when the
        upgrade or the commit fails.
        """
        image = self.ensure_image_exists(self.config.rootfs_tag)
        if not self.executor.check_command_in_container(image, QUICK_UPDATE_COMMAND):
            raise CommandExecutionError(
                f"{QUICK_UPDATE_COMMAND} is not available in the rootfs container.",
                hint=f"Add {QUICK_UPDATE_COMMAND} to one of the rootfs stages and rebuild.",
                context={"operation": "quick_update", "image": image},
            )

        container = f"trellis-quick-update-{uuid.uuid4().hex[:12]}"
        self.logger.log(
            operation="quick_update",
            image=image,
            message=f"Running {QUICK_UPDATE_COMMAND} in {container}...",
        )
        try:
            update_args = ["--net", "host", "--cap-add", "all", "--name", container]
            self._run(
                [*update_args, image, QUICK_UPDATE_COMMAND],
                operation="quick_update",
                image=image,
            )
            output = self._commit(container, image)
            if not output.success:
                raise CommandExecutionError(
                    f"Failed to commit container {container}: {output.stderr.strip()}",
                    context={"operation": "quick_update", "image": image},
                )
        finally:
            self._remove_container(container)
        self.logger.log(operation="quick_update", image=image, message="Quick update completed")

    def ensure_image_exists(self, tag: str) -> str:
        image = local_image(tag)
        try:
            output = self.executor.execute("podman", ["image", "exists", image])
        except OSError as exc:
            raise CommandExecutionError(
                "Failed to check if image exists.",
                context={"image": image, "error": str(exc)},
            ) from exc
        if not output.success:
            raise ImageNotFoundError(
                f"Container image not found: {image}.",
                hint="Run 'trls build' first.",
                context={"image": image},
            )
        return image

    def _run(self, args: list[str], *, operation: str, image: str) -> None:
        try:
            if self.config.quiet:
                output = self.executor.run(args)
                returncode, stderr = output.returncode, output.stderr
            else:
                returncode, stderr = self.executor.run_streaming(args), ""
        except OSError as exc:
            raise CommandExecutionError(
                "Failed to execute podman run command.",
                context={"operation": operation, "image": image, "error": str(exc)},
            ) from exc
        if returncode != 0:
            raise CommandExecutionError(
                f"Podman run failed with exit code {returncode}.",
                context={
                    "operation": operation,
                    "image": image,
                    "returncode": str(returncode),
                    "stderr": stderr.strip(),
                },
            )

    def _commit(self, container: str, image: str) -> CommandOutput:
        try:
            return self.executor.commit([container, image])
        except OSError as exc:
            raise CommandExecutionError(
                f"Failed to commit container {container}.",
                context={"operation": "quick_update", "image": image, "error": str(exc)},
            ) from exc

    def _remove_container(self, container: str) -> None:
        try:
            output = self.executor.execute("podman", ["rm", "-f", container])
        except OSError as exc:
            self.logger.log(
                operation="quick_update",
                message=f"Failed to remove temporary container {container}: {exc}",
                level="warning",
            )
            return
        if not output.success:
            self.logger.log(
                operation="quick_update",
                message=f"Failed to remove temporary container {container}: "
                f"{output.stderr.strip()}",
                level="warning",
            )

    def _ensure_bootc_available(self) -> None:
        try:
            output = self.executor.bootc(["--version"])
        except OSError as exc:
            raise CommandExecutionError(
                "bootc is not available. Please install bootc to use the update command.",
                context={"operation": "update", "error": str(exc)},
            ) from exc
        if not output.success:
            raise CommandExecutionError(
                "bootc is available but not responding correctly.",
                context={"operation": "update", "returncode": str(output.returncode)},
            )
