"""Public package entrypoint for the bootforge image pipeline."""

from .config import component_specs, layout, resolve_config
from .errors import (
    BootforgeError,
    BuildError,
    CapacityError,
    ConfigurationError,
    LaunchError,
    PackagingError,
    StagingError,
)
from .freshness import is_stale
from .models import (
    Artifact,
    BuildConfig,
    BuildLayout,
    CommandSpec,
    ComponentSpec,
    DiscImage,
    DiskImage,
    LaunchResult,
)
from .pipeline import Pipeline
from .report import PipelineReport

__all__ = [
    "Artifact",
    "BootforgeError",
    "BuildConfig",
    "BuildError",
    "BuildLayout",
    "CapacityError",
    "CommandSpec",
    "ComponentSpec",
    "ConfigurationError",
    "DiscImage",
    "DiskImage",
    "LaunchError",
    "LaunchResult",
    "PackagingError",
    "Pipeline",
    "PipelineReport",
    "StagingError",
    "component_specs",
    "is_stale",
    "layout",
    "resolve_config",
]
