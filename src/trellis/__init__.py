"""Public package entrypoint for the trellis build engine."""

from .app import Trellis
from .builder import ContainerBuilder, determine_base_image, plan, scoped_env
from .cleaner import ImageCleaner, classify_image, parse_image_listing
from .config import TrellisConfig
from .discovery import ContainerfileDiscovery, DiscoveryWarning, parse_stage_name
from .errors import (
    CommandExecutionError,
    ConfigurationError,
    ContainerfileNotFoundError,
    DiscoveryError,
    ImageListingError,
    ImageNotFoundError,
    MissingContainerfilesError,
    TrellisError,
)
from .executors import CommandExecutor, PodmanExecutor, ScriptedExecutor
from .models import (
    BuildPlan,
    BuildType,
    CleanMode,
    CommandOutput,
    ImageClassification,
    ImageRecord,
    ImageRole,
    ResolvedStage,
)
from .runner import ContainerRunner

__all__ = [
    "BuildPlan",
    "BuildType",
    "CleanMode",
    "CommandExecutionError",
    "CommandExecutor",
    "CommandOutput",
    "ConfigurationError",
    "ContainerBuilder",
    "ContainerRunner",
    "ContainerfileDiscovery",
    "ContainerfileNotFoundError",
    "DiscoveryError",
    "DiscoveryWarning",
    "ImageCleaner",
    "ImageClassification",
    "ImageListingError",
    "ImageNotFoundError",
    "ImageRecord",
    "ImageRole",
    "MissingContainerfilesError",
    "PodmanExecutor",
    "ResolvedStage",
    "ScriptedExecutor",
    "Trellis",
    "TrellisConfig",
    "TrellisError",
    "classify_image",
    "determine_base_image",
    "parse_image_listing",
    "parse_stage_name",
    "plan",
    "scoped_env",
]
