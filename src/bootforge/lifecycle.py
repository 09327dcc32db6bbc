"""Removal of generated output for one configuration."""

from __future__ import annotations

import shutil

from bootforge.builders import Builder
from bootforge.config import component_specs, layout
from bootforge.models import BuildConfig


def clean(config: BuildConfig, builder: Builder) -> None:
    """Delete this configuration's build directory and reset both toolchains.

    Build directories of other (architecture, profile) pairs are left alone.
    Safe to call on an already-clean tree.
    """
    build_dir = layout(config).build_dir
    if build_dir.exists():
        shutil.rmtree(build_dir)
    for spec in component_specs(config).values():
        builder.clean(spec, config)
