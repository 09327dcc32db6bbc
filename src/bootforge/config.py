"""Configuration resolution and the path layout derived from it.

Every path the pipeline touches is a pure function of :class:`BuildConfig`,
so two configurations differing in architecture or profile never share a
build directory. The project root is made absolute once, here, because the
image tools run with the build directory as their working directory.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import get_args

from bootforge.errors import ConfigurationError
from bootforge.models import (
    Arch,
    ArchInfo,
    BuildConfig,
    BuildLayout,
    ComponentName,
    ComponentSpec,
    Profile,
)

DEFAULT_ARCH: Arch = "x86_64"
DEFAULT_FIRMWARE = Path("/usr/share/ovmf/OVMF.fd")
DEFAULT_PROFILE: Profile = "debug"

ENV_ARCH = "BOOTFORGE_ARCH"
ENV_FIRMWARE = "BOOTFORGE_FIRMWARE"
ENV_PROFILE = "BOOTFORGE_PROFILE"

ARCHITECTURES: dict[str, ArchInfo] = {
    "x86_64": ArchInfo(boot_file="BOOTX64.EFI", qemu_binary="qemu-system-x86_64"),
    "aarch64": ArchInfo(boot_file="BOOTAA64.EFI", qemu_binary="qemu-system-aarch64"),
    "i686": ArchInfo(boot_file="BOOTIA32.EFI", qemu_binary="qemu-system-i386"),
    "riscv64": ArchInfo(boot_file="BOOTRISCV64.EFI", qemu_binary="qemu-system-riscv64"),
}

KERNEL_DIR = "kernel"
BOOTLOADER_DIR = "bootloader-uefi"
KERNEL_VENDOR_DIR = "RustOs"
KERNEL_FILE = "Kernel"
ISO_NAME = "rust_os.iso"
ESP_NAME = "EFISys.img"


def resolve_config(
    architecture: str | None = None,
    firmware_path: str | Path | None = None,
    profile: str | None = None,
    *,
    project_root: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> BuildConfig:
    """Build a :class:`BuildConfig` from overrides, then ``environ``, then defaults."""
    env = environ or {}
    arch = _pick(architecture, env.get(ENV_ARCH), DEFAULT_ARCH)
    firmware = _pick(firmware_path, env.get(ENV_FIRMWARE), DEFAULT_FIRMWARE)
    selected_profile = _pick(profile, env.get(ENV_PROFILE), DEFAULT_PROFILE)

    if selected_profile not in get_args(Profile):
        raise ConfigurationError(
            f"Unknown build profile: {selected_profile!r}",
            hint=f"Use one of: {', '.join(get_args(Profile))}.",
            context={"stage": "configure", "profile": str(selected_profile)},
        )
    if arch not in ARCHITECTURES:
        raise ConfigurationError(
            f"Unsupported architecture: {arch!r}",
            hint=f"Use one of: {', '.join(sorted(ARCHITECTURES))}.",
            context={"stage": "configure", "architecture": str(arch)},
        )
    if not str(firmware):
        raise ConfigurationError(
            "Firmware path must be non-empty.",
            context={"stage": "configure"},
        )

    return BuildConfig(
        architecture=arch,  # type: ignore[arg-type]
        firmware_path=Path(firmware),
        profile=selected_profile,  # type: ignore[arg-type]
        project_root=Path(project_root if project_root is not None else ".").resolve(),
    )


def arch_info(config: BuildConfig) -> ArchInfo:
    return ARCHITECTURES[config.architecture]


def layout(config: BuildConfig) -> BuildLayout:
    build_dir = config.project_root / "target" / config.architecture / config.profile
    iso_dir = build_dir / "iso"
    return BuildLayout(
        build_dir=build_dir,
        artifacts_dir=build_dir / "artifacts",
        staging_dir=build_dir / "esp",
        esp_image=build_dir / ESP_NAME,
        iso_dir=iso_dir,
        iso_image=iso_dir / ISO_NAME,
        target_path=config.project_root.resolve(),
    )


def component_specs(config: BuildConfig) -> dict[ComponentName, ComponentSpec]:
    root = config.project_root
    artifacts_dir = layout(config).artifacts_dir
    kernel_triple = f"{config.architecture}-rust_os"
    bootloader_triple = f"{config.architecture}-pc-uefi"
    return {
        "kernel": ComponentSpec(
            name="kernel",
            source_root=root / KERNEL_DIR,
            toolchain_target_triple=kernel_triple,
            output_artifact_path=artifacts_dir / "kernel",
            toolchain_output_path=(
                root / KERNEL_DIR / "target" / kernel_triple / config.profile / "kernel"
            ),
        ),
        "bootloader": ComponentSpec(
            name="bootloader",
            source_root=root / BOOTLOADER_DIR,
            toolchain_target_triple=bootloader_triple,
            output_artifact_path=artifacts_dir / "bootloader-uefi.efi",
            toolchain_output_path=(
                root
                / BOOTLOADER_DIR
                / "target"
                / bootloader_triple
                / config.profile
                / "bootloader-uefi.efi"
            ),
        ),
    }


def profile_flags(profile: Profile) -> tuple[str, ...]:
    # The default profile takes no flag at all; an empty token would be a
    # malformed argument to the toolchain.
    if profile == DEFAULT_PROFILE:
        return ()
    return (f"--{profile}",)


def toolchain_env(config: BuildConfig, base: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return the environment map for toolchain invocations."""
    env = dict(base or {})
    env["RUST_TARGET_PATH"] = str(layout(config).target_path)
    return env


def _pick(explicit: str | Path | None, from_env: str | None, default: str | Path) -> str | Path:
    if explicit is not None:
        return explicit
    if from_env:
        return from_env
    return default
