"""Atomic publication of toolchain outputs."""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path


def publish_file(source: Path, destination: Path) -> Path:
    """Copy *source* to *destination* through a temp file and an atomic rename.

    A reader of *destination* sees either the previous file or the complete
    new one, never a partial copy. The published file is stamped with the
    publication time so it compares as fresh against the sources it was
    built from.
    """
    destination.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(prefix=f".{destination.name}-", dir=str(destination.parent))
    os.close(fd)
    temp_path = Path(temp_name)
    try:
        shutil.copyfile(source, temp_path)
        shutil.copymode(source, temp_path)
        os.replace(temp_path, destination)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
    return destination
