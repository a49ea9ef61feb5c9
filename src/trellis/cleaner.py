"""Removal of trellis-built images from the local image store."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from trellis.config import TrellisConfig
from trellis.constants import BUILDER_PREFIX, IMAGE_LIST_FORMAT, STAGE_PREFIX, local_image
from trellis.errors import ImageListingError
from trellis.executors.base import CommandExecutor
from trellis.models import CleanMode, ImageClassification, ImageRecord, ImageRole
from trellis.observability import StructuredLogger

NOT_OWNED = ImageClassification(owned=False)


def parse_image_listing(text: str) -> list[ImageRecord]:
    """Parse ``repository:tag`` lines, skipping anything that does not fit.

    The tag is taken after the last colon so registry ports in the
    repository survive.
    """
    records: list[ImageRecord] = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        repository, sep, tag = line.rpartition(":")
        if not sep or not repository or not tag or "/" in tag:
            continue
        if repository == "<none>" or tag == "<none>":
            continue
        records.append(ImageRecord(repository=repository, tag=tag))
    return records


def classify_image(
    record: ImageRecord,
    *,
    builder_tag: str,
    rootfs_tag: str,
) -> ImageClassification:
    finals = {f"{local_image(builder_tag)}:latest", f"{local_image(rootfs_tag)}:latest"}
    if record.reference in finals:
        return ImageClassification(owned=True, role=ImageRole.FINAL)
    if record.repository.startswith(
        (local_image(BUILDER_PREFIX), local_image(STAGE_PREFIX))
    ):
        return ImageClassification(owned=True, role=ImageRole.INTERMEDIATE)
    return NOT_OWNED


@dataclass(slots=True)
class ImageCleaner:
    config: TrellisConfig
    executor: CommandExecutor
    logger: StructuredLogger = field(default_factory=StructuredLogger)

    def clean_all(self) -> int:
        self.logger.log(operation="clean", message="Cleaning trls-generated images...")
        removed = self.clean_images(CleanMode.FULL)
        if removed == 0:
            self.logger.log(operation="clean", message="No trls-generated images removed")
        else:
            self.logger.log(
                operation="clean",
                message=f"Cleanup completed - removed {removed} images",
            )
        return removed

    def auto_clean(self) -> int:
        if not self.config.auto_clean:
            return 0
        removed = self.clean_images(CleanMode.AUTO)
        if removed > 0:
            self.logger.log(
                operation="auto_clean",
                message=f"Auto-cleanup removed {removed} intermediate images",
            )
        return removed

    def select_images(self, records: Sequence[ImageRecord], mode: CleanMode) -> list[str]:
        selected: list[str] = []
        for record in records:
            classification = classify_image(
                record,
                builder_tag=self.config.builder_tag,
                rootfs_tag=self.config.rootfs_tag,
            )
            if not classification.owned:
                continue
            if mode is CleanMode.AUTO and classification.final:
                continue
            if record.reference not in selected:
                selected.append(record.reference)
        return selected

    def clean_images(self, mode: CleanMode) -> int:
        """Remove trellis-owned images for *mode* and return how many went away."""
        records = parse_image_listing(self._list_images())
        images = self.select_images(records, mode)
        if not images:
            self.logger.log(
                operation="clean",
                message=f"Found no {_describe(mode)} images to remove",
                extra={"mode": mode.value},
            )
            return 0

        self.logger.log(
            operation="clean",
            message=f"Found {len(images)} {_describe(mode)} images to remove",
            extra={"mode": mode.value, "images": images},
        )
        return self._remove_images(images)

    def _list_images(self) -> str:
        args = ["--format", IMAGE_LIST_FORMAT]
        try:
            output = self.executor.images(args)
        except OSError as exc:
            raise ImageListingError(
                "Failed to list podman images.",
                hint="Ensure podman is installed and on PATH.",
                context={"operation": "clean", "error": str(exc)},
            ) from exc
        if not output.success:
            raise ImageListingError(
                "Failed to list images.",
                context={
                    "operation": "clean",
                    "returncode": str(output.returncode),
                    "stderr": output.stderr.strip(),
                },
            )
        return output.stdout

    def _remove_images(self, images: Sequence[str]) -> int:
        if len(images) == 1:
            return self._remove_single_image(images[0])

        try:
            output = self.executor.rmi(["-f", *images])
        except OSError as exc:
            self._warn(f"Failed to execute batch removal: {exc}")
        else:
            if output.success:
                self.logger.log(operation="rmi", message=f"Batch removed {len(images)} images")
                return len(images)
            self.logger.log(
                operation="rmi",
                message=f"Batch removal failed: {output.stderr.strip()}",
            )

        self.logger.log(operation="rmi", message="Trying individual removal...")
        return sum(self._remove_single_image(image) for image in images)

    def _remove_single_image(self, image: str) -> int:
        try:
            output = self.executor.rmi(["-f", image])
        except OSError as exc:
            self._warn(f"Failed to remove image {image}: {exc}", image=image)
            return 0
        if output.success:
            self.logger.log(operation="rmi", image=image, message=f"Removed image: {image}")
            return 1
        self._warn(f"Failed to remove image {image}: {output.stderr.strip()}", image=image)
        return 0

    def _warn(self, message: str, *, image: str | None = None) -> None:
        self.logger.log(operation="rmi", image=image, message=message, level="warning")


def _describe(mode: CleanMode) -> str:
    if mode is CleanMode.FULL:
        return "trls-generated"
    return "intermediate trls-generated"
