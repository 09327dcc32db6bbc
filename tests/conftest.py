"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
from support import SOURCE_MTIME, FakeRunner, touch

from bootforge.config import resolve_config
from bootforge.models import BuildConfig


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A workspace with kernel and bootloader crates whose sources are old."""
    root = tmp_path / "project"
    for crate, files in (
        ("kernel", ("src/main.rs", "src/memory/paging.rs")),
        ("bootloader-uefi", ("src/main.rs",)),
    ):
        for rel in files:
            source = root / crate / rel
            source.parent.mkdir(parents=True, exist_ok=True)
            source.write_text("// source\n", encoding="utf-8")
            touch(source, SOURCE_MTIME)
    (root / "x86_64-rust_os.json").write_text("{}\n", encoding="utf-8")
    (root / "x86_64-pc-uefi.json").write_text("{}\n", encoding="utf-8")
    return root


@pytest.fixture
def config(project: Path) -> BuildConfig:
    firmware = project / "OVMF.fd"
    firmware.write_bytes(b"ovmf")
    return resolve_config("x86_64", firmware, "debug", project_root=project)
