"""Typed interfaces for component toolchain builders."""

from __future__ import annotations

from typing import Protocol

from bootforge.models import Artifact, BuildConfig, ComponentSpec


class Builder(Protocol):
    def build(self, spec: ComponentSpec, config: BuildConfig) -> Artifact:
        """Bring the component's artifact up to date and return it."""

    def clean(self, spec: ComponentSpec, config: BuildConfig) -> None:
        """Reset the component's toolchain cache to a pristine state."""
