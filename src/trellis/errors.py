"""Typed trellis error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across trellis commands."""

    DISCOVERY = "E_DISCOVERY"
    CONFIGURATION = "E_CONFIGURATION"
    COMMAND = "E_COMMAND"
    IMAGE_NOT_FOUND = "E_IMAGE_NOT_FOUND"
    IMAGE_LISTING = "E_IMAGE_LISTING"


class TrellisError(Exception):
    """Base error class that carries code, optional hint, and context."""

    code: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.context:
            for k, v in self.context.items():
                if v:
                    parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class DiscoveryError(TrellisError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.DISCOVERY, hint=hint, context=context)


class ContainerfileNotFoundError(DiscoveryError):
    """A single ``Containerfile.<group>`` could not be located."""

    def __init__(self, *, filename: str, src_dir: str) -> None:
        super().__init__(
            f"Containerfile not found: {filename} "
            f"(searched recursively in {src_dir} and all subdirectories)",
            hint=(
                "Ensure the file exists and has correct permissions. "
                f"Use 'find {src_dir} -name \"{filename}\"' to verify file location."
            ),
            context={"filename": filename, "src_dir": src_dir},
        )
        self.filename = filename


class MissingContainerfilesError(DiscoveryError):
    """Aggregated failure listing every definition file a stage list is missing."""

    def __init__(self, missing: Sequence[str], *, src_dir: str) -> None:
        super().__init__(
            f"Missing required containerfiles: {', '.join(missing)}",
            hint="Add the files under the source directory or remove the stages.",
            context={"src_dir": src_dir},
        )
        self.missing = tuple(missing)


class ConfigurationError(TrellisError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.CONFIGURATION, hint=hint, context=context)


class CommandExecutionError(TrellisError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.COMMAND, hint=hint, context=context)


class ImageNotFoundError(TrellisError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.IMAGE_NOT_FOUND, hint=hint, context=context)


class ImageListingError(TrellisError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.IMAGE_LISTING, hint=hint, context=context)


__all__ = [
    "CommandExecutionError",
    "ConfigurationError",
    "ContainerfileNotFoundError",
    "DiscoveryError",
    "ErrorCode",
    "ImageListingError",
    "ImageNotFoundError",
    "MissingContainerfilesError",
    "TrellisError",
]
