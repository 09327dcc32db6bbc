"""Shared helpers for integration tests against the real image tools."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest


def require_tools(*names: str) -> pytest.MarkDecorator:
    missing = [name for name in names if shutil.which(name) is None]
    return pytest.mark.skipif(bool(missing), reason=f"missing tools: {', '.join(missing)}")


def mtools(*argv: str) -> str:
    """Run an mtools command and return its stdout."""
    result = subprocess.run(
        list(argv),
        capture_output=True,
        text=True,
        check=True,
        env={"MTOOLS_SKIP_CHECK": "1", "PATH": "/usr/bin:/bin:/usr/local/bin"},
    )
    return result.stdout


@pytest.fixture
def artifacts(tmp_path: Path) -> tuple[Path, Path]:
    root = tmp_path / "artifacts"
    root.mkdir()
    kernel = root / "kernel"
    bootloader = root / "bootloader-uefi.efi"
    kernel.write_bytes(b"\x7fELF" + b"\0" * 4092)
    bootloader.write_bytes(b"MZ" + b"\0" * 2046)
    return kernel, bootloader
