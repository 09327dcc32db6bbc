"""Timestamp-based freshness checks for incremental rebuilds."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from pathlib import Path


def iter_source_files(paths: Iterable[Path]) -> Iterator[Path]:
    """Yield every file in *paths*, walking directories recursively."""
    for path in paths:
        if path.is_dir():
            yield from sorted(p for p in path.rglob("*") if p.is_file())
        elif path.is_file():
            yield path


def newest_mtime(paths: Iterable[Path]) -> float | None:
    newest: float | None = None
    for source in iter_source_files(paths):
        mtime = source.stat().st_mtime
        if newest is None or mtime > newest:
            newest = mtime
    return newest


def is_stale(artifact: Path, source_set: Iterable[Path]) -> bool:
    """Return True when *artifact* is missing or older than any source file."""
    if not artifact.is_file():
        return True
    built_at = artifact.stat().st_mtime
    return any(source.stat().st_mtime > built_at for source in iter_source_files(source_set))
