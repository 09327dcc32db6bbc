"""Core typed dataclasses for build configuration, artifacts and images."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

Arch = Literal["x86_64", "aarch64", "i686", "riscv64"]
Profile = Literal["debug", "release"]
ComponentName = Literal["kernel", "bootloader"]
LaunchMode = Literal["test", "debug"]
TaskStatus = Literal["ran", "skipped"]

ESP_SIZE_BYTES = 64 * 1024 * 1024
ESP_LABEL = "EFISys"


@dataclass(frozen=True, slots=True)
class CommandSpec:
    argv: tuple[str, ...]
    env: Mapping[str, str] = field(default_factory=dict)
    cwd: Path | None = None

    def display(self) -> str:
        return " ".join(self.argv)


@dataclass(frozen=True, slots=True)
class ArchInfo:
    boot_file: str
    qemu_binary: str


@dataclass(frozen=True, slots=True)
class BuildConfig:
    """Resolved, immutable inputs for one pipeline invocation."""

    architecture: Arch = "x86_64"
    firmware_path: Path = Path("/usr/share/ovmf/OVMF.fd")
    profile: Profile = "debug"
    project_root: Path = Path(".")


@dataclass(frozen=True, slots=True)
class BuildLayout:
    """Every path derived from a :class:`BuildConfig`."""

    build_dir: Path
    artifacts_dir: Path
    staging_dir: Path
    esp_image: Path
    iso_dir: Path
    iso_image: Path
    target_path: Path


@dataclass(frozen=True, slots=True)
class ComponentSpec:
    name: ComponentName
    source_root: Path
    toolchain_target_triple: str
    output_artifact_path: Path
    toolchain_output_path: Path

    @property
    def source_dir(self) -> Path:
        return self.source_root / "src"


@dataclass(frozen=True, slots=True)
class Artifact:
    component: ComponentName
    path: Path
    rebuilt: bool = False
    sha256: str | None = None


@dataclass(frozen=True, slots=True)
class DiskImage:
    path: Path
    sources: tuple[Path, ...] = ()
    size_bytes: int = ESP_SIZE_BYTES
    label: str = ESP_LABEL


@dataclass(frozen=True, slots=True)
class DiscImage:
    path: Path
    disk_image: DiskImage


@dataclass(frozen=True, slots=True)
class LaunchResult:
    mode: LaunchMode
    command: CommandSpec
    returncode: int


@dataclass(slots=True)
class TaskOutcome:
    name: str
    status: TaskStatus
    duration_s: float = 0.0
    value: object | None = None
