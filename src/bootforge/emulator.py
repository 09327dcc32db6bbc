"""QEMU launcher for the packaged disc image.

Supports two modes:
- ``test``: boot the ISO under OVMF with networking disabled
- ``debug``: same, plus a gdb stub on tcp::1234 with the CPU halted at the
  first instruction until a debugger attaches
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field

from bootforge.config import arch_info
from bootforge.errors import LaunchError
from bootforge.freshness import is_stale
from bootforge.models import BuildConfig, CommandSpec, DiscImage, LaunchMode, LaunchResult
from bootforge.process import SubprocessRunner, ToolRunner

DEBUG_STUB_ARGS = ("-s", "-S")


@dataclass(slots=True)
class EmulationLauncher:
    qemu_binary: str | None = None
    extra_args: list[str] = field(default_factory=list)
    runner: ToolRunner = field(default_factory=SubprocessRunner)

    def command_for(
        self,
        disc_image: DiscImage,
        mode: LaunchMode,
        config: BuildConfig,
    ) -> CommandSpec:
        if mode not in ("test", "debug"):
            raise LaunchError(f"Unknown launch mode: {mode!r}", hint="Use 'test' or 'debug'.")
        cmd: list[str] = [
            self._binary(config),
            "-net", "none",
            "-bios", str(config.firmware_path),
            "-cdrom", str(disc_image.path),
        ]
        if mode == "debug":
            cmd.extend(DEBUG_STUB_ARGS)
        cmd.extend(self.extra_args)
        return CommandSpec(argv=tuple(cmd))

    def run(self, disc_image: DiscImage, mode: LaunchMode, config: BuildConfig) -> LaunchResult:
        command = self.command_for(disc_image, mode, config)
        self._check_preconditions(disc_image, config)

        # Foreground: the guest console stays attached to the caller's terminal.
        result = self.runner.run(command, capture=False)
        if result.returncode != 0:
            raise LaunchError(
                f"Emulator exited with status {result.returncode}.",
                exit_status=result.returncode,
                context={"tool": command.argv[0], "mode": mode, "command": command.display()},
            )
        return LaunchResult(mode=mode, command=command, returncode=result.returncode)

    def _binary(self, config: BuildConfig) -> str:
        return self.qemu_binary or arch_info(config).qemu_binary

    def _check_preconditions(self, disc_image: DiscImage, config: BuildConfig) -> None:
        if not disc_image.path.is_file():
            raise LaunchError(
                "Disc image is missing.",
                hint="Run the pipeline through packaging before launching.",
                context={"disc_image": str(disc_image.path)},
            )
        if is_stale(disc_image.path, [disc_image.disk_image.path]):
            raise LaunchError(
                "Disc image is older than its ESP image.",
                hint="Re-package the disc image before launching.",
                context={"disc_image": str(disc_image.path)},
            )
        if not config.firmware_path.is_file():
            raise LaunchError(
                f"Firmware image not found: {config.firmware_path}",
                hint="Install OVMF or pass --firmware with the path to OVMF.fd.",
                context={"firmware": str(config.firmware_path)},
            )
        binary = self._binary(config)
        if shutil.which(binary) is None:
            raise LaunchError(
                f"QEMU binary not found: {binary}",
                hint="Install QEMU and ensure it is in PATH.",
                context={"binary": binary},
            )
