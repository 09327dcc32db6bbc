"""Wrap a staged ESP image into a no-emulation El Torito ISO."""

from __future__ import annotations

import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from bootforge.config import layout
from bootforge.errors import PackagingError
from bootforge.freshness import is_stale
from bootforge.models import BuildConfig, CommandSpec, DiscImage, DiskImage
from bootforge.process import SubprocessRunner, ToolRunner, tail


@dataclass(slots=True)
class DiscPackager:
    tool: str = "xorriso"
    runner: ToolRunner = field(default_factory=SubprocessRunner)

    def package(self, disk_image: DiskImage, config: BuildConfig) -> DiscImage:
        if not disk_image.path.is_file():
            raise PackagingError(
                "ESP image is missing; refusing to package.",
                hint="Stage the ESP image first.",
                context={"disk_image": str(disk_image.path)},
            )
        if is_stale(disk_image.path, disk_image.sources):
            raise PackagingError(
                "ESP image is older than the artifacts it was staged from.",
                hint="Re-stage the ESP image before packaging.",
                context={"disk_image": str(disk_image.path)},
            )

        paths = layout(config)
        iso_path = paths.iso_image
        temp_iso = iso_path.with_name(f".{iso_path.name}.tmp")
        try:
            paths.iso_dir.mkdir(parents=True, exist_ok=True)
            scratch = Path(tempfile.mkdtemp(prefix=".iso-root-", dir=str(paths.build_dir)))
        except OSError as exc:
            raise _host_failure(
                "Could not prepare the ISO scratch root.", exc, paths.build_dir
            ) from exc
        try:
            try:
                shutil.copy2(disk_image.path, scratch / disk_image.path.name)
            except OSError as exc:
                raise _host_failure("Could not copy the ESP image.", exc, scratch) from exc
            command = CommandSpec(
                argv=(
                    self.tool,
                    "-as",
                    "mkisofs",
                    "-o",
                    str(temp_iso),
                    "-e",
                    disk_image.path.name,
                    "-no-emul-boot",
                    str(scratch),
                ),
                cwd=paths.build_dir,
            )
            result = self.runner.run(command)
            if result.returncode != 0:
                raise PackagingError(
                    f"{self.tool} failed with exit status {result.returncode}.",
                    tool=self.tool,
                    exit_status=result.returncode,
                    hint="Ensure xorriso is installed.",
                    context={"command": command.display(), "output": tail(result.output)},
                )
            if not temp_iso.is_file():
                raise PackagingError(
                    f"{self.tool} reported success but wrote no ISO.",
                    tool=self.tool,
                    exit_status=result.returncode,
                    context={"command": command.display()},
                )
            try:
                os.replace(temp_iso, iso_path)
            except OSError as exc:
                raise _host_failure("Could not publish the ISO.", exc, iso_path) from exc
        except BaseException:
            temp_iso.unlink(missing_ok=True)
            raise
        finally:
            shutil.rmtree(scratch, ignore_errors=True)

        return DiscImage(path=iso_path, disk_image=disk_image)


def _host_failure(message: str, exc: OSError, path: Path) -> PackagingError:
    return PackagingError(
        message,
        hint="Check free space and permissions in the build directory.",
        context={"path": str(path), "error": str(exc)},
    )
