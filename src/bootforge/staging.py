"""ESP assembly: stage the artifacts into a directory tree, then into a FAT32 image.

The staging tree mirrors the final volume::

    esp/
      EFI/BOOT/BOOTX64.EFI      (bootloader, UEFI default boot file name)
      EFI/RustOs/Kernel         (kernel)

Nothing is written into the formatted image without first passing through
this tree. The image itself is assembled at a temporary path and renamed
into place only after every tool succeeded.
"""

from __future__ import annotations

import errno
import hashlib
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from bootforge.config import KERNEL_FILE, KERNEL_VENDOR_DIR, arch_info, layout
from bootforge.errors import CapacityError, StagingError
from bootforge.freshness import newest_mtime
from bootforge.models import (
    ESP_LABEL,
    ESP_SIZE_BYTES,
    Artifact,
    BuildConfig,
    CommandSpec,
    DiskImage,
)
from bootforge.process import SubprocessRunner, ToolRunner, tail

DISK_FULL_MARKERS = ("disk full", "no space")


def volume_id(config: BuildConfig) -> str:
    """Return a stable 32-bit FAT volume serial for *config*."""
    seed = f"{config.architecture}:{config.profile}:{ESP_LABEL}".encode()
    return hashlib.sha256(seed).hexdigest()[:8]


@dataclass(slots=True)
class ImageStager:
    mkfs_tool: str = "mkfs.vfat"
    mcopy_tool: str = "mcopy"
    size_bytes: int = ESP_SIZE_BYTES
    runner: ToolRunner = field(default_factory=SubprocessRunner)

    def stage(
        self,
        kernel_artifact: Artifact,
        bootloader_artifact: Artifact,
        config: BuildConfig,
    ) -> DiskImage:
        for artifact in (kernel_artifact, bootloader_artifact):
            if not artifact.path.is_file():
                raise StagingError(
                    f"Missing {artifact.component} artifact; refusing to stage.",
                    hint=f"Run `build-{artifact.component}` first.",
                    context={"artifact": str(artifact.path)},
                )

        payload = kernel_artifact.path.stat().st_size + bootloader_artifact.path.stat().st_size
        if payload > self.size_bytes:
            raise CapacityError(
                "Artifacts do not fit in the ESP image.",
                required=payload,
                available=self.size_bytes,
                hint="Shrink the kernel or bootloader, e.g. build with --profile release.",
            )

        paths = layout(config)
        image_path = paths.esp_image
        temp_image = image_path.with_name(f".{image_path.name}.tmp")
        try:
            staged = self._populate_staging_tree(
                staging_dir=paths.staging_dir,
                kernel=kernel_artifact.path,
                bootloader=bootloader_artifact.path,
                boot_file=arch_info(config).boot_file,
            )
            image_path.parent.mkdir(parents=True, exist_ok=True)
            image_path.unlink(missing_ok=True)
            temp_image.unlink(missing_ok=True)
            epoch = newest_mtime(staged)
            if epoch is not None:
                _pin_directory_times(paths.staging_dir, epoch)
        except OSError as exc:
            raise _host_failure(
                "Could not prepare the staging tree.", exc, paths.staging_dir
            ) from exc

        env = {"MTOOLS_SKIP_CHECK": "1"}
        if epoch is not None:
            env["SOURCE_DATE_EPOCH"] = str(int(epoch))

        try:
            with temp_image.open("wb") as handle:
                handle.truncate(self.size_bytes)
            self._run(
                self.mkfs_tool,
                CommandSpec(
                    argv=(
                        self.mkfs_tool,
                        "-F",
                        "32",
                        "-n",
                        ESP_LABEL,
                        "-i",
                        volume_id(config),
                        str(temp_image),
                    ),
                    env=env,
                    cwd=paths.build_dir,
                ),
            )
            for entry in sorted(paths.staging_dir.iterdir()):
                self._run(
                    self.mcopy_tool,
                    CommandSpec(
                        argv=(
                            self.mcopy_tool,
                            "-i",
                            str(temp_image),
                            "-s",
                            "-m",
                            "-Q",
                            str(entry),
                            "::",
                        ),
                        env=env,
                        cwd=paths.build_dir,
                    ),
                )
            os.replace(temp_image, image_path)
        except OSError as exc:
            temp_image.unlink(missing_ok=True)
            raise _host_failure("Could not write the ESP image.", exc, temp_image) from exc
        except BaseException:
            temp_image.unlink(missing_ok=True)
            raise

        return DiskImage(
            path=image_path,
            sources=(kernel_artifact.path, bootloader_artifact.path),
            size_bytes=self.size_bytes,
            label=ESP_LABEL,
        )

    def _populate_staging_tree(
        self,
        *,
        staging_dir: Path,
        kernel: Path,
        bootloader: Path,
        boot_file: str,
    ) -> list[Path]:
        if staging_dir.exists():
            shutil.rmtree(staging_dir)
        boot_dir = staging_dir / "EFI" / "BOOT"
        vendor_dir = staging_dir / "EFI" / KERNEL_VENDOR_DIR
        boot_dir.mkdir(parents=True)
        vendor_dir.mkdir(parents=True)
        staged_bootloader = boot_dir / boot_file
        staged_kernel = vendor_dir / KERNEL_FILE
        shutil.copy2(bootloader, staged_bootloader)
        shutil.copy2(kernel, staged_kernel)
        return [staged_bootloader, staged_kernel]

    def _run(self, tool: str, command: CommandSpec) -> None:
        result = self.runner.run(command)
        if result.returncode == 0:
            return
        context = {"command": command.display(), "output": tail(result.output)}
        if any(marker in result.output.lower() for marker in DISK_FULL_MARKERS):
            raise CapacityError(
                f"{tool} ran out of space in the ESP image.",
                available=self.size_bytes,
                tool=tool,
                exit_status=result.returncode,
                context=context,
            )
        raise StagingError(
            f"{tool} failed with exit status {result.returncode}.",
            tool=tool,
            exit_status=result.returncode,
            hint="Ensure dosfstools and mtools are installed.",
            context=context,
        )


def _pin_directory_times(root: Path, epoch: float) -> None:
    # mcopy -m copies directory times into the image as well.
    for directory in (root, *root.rglob("*")):
        if directory.is_dir():
            os.utime(directory, (epoch, epoch))


def _host_failure(message: str, exc: OSError, path: Path) -> StagingError:
    context = {"path": str(path), "error": str(exc)}
    if exc.errno == errno.ENOSPC:
        return CapacityError(
            message,
            hint="Free space on the host filesystem holding the build directory.",
            context=context,
        )
    return StagingError(
        message,
        hint="Check permissions in the build directory.",
        context=context,
    )
