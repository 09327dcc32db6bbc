"""Component builder contracts and implementations."""

from .base import Builder
from .materialize import publish_file
from .xargo import XargoBuilder

__all__ = [
    "Builder",
    "XargoBuilder",
    "publish_file",
]
