"""Test doubles and helpers shared by the test modules."""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from bootforge.models import CommandSpec
from bootforge.process import ToolResult

# Fixed timestamps well in the past so "touching" a source can move it
# forward without ever overtaking the clock.
SOURCE_MTIME = 1_000_000_000
TOUCHED_MTIME = 1_500_000_000


@dataclass
class FakeRunner:
    """Stands in for xargo, mkfs.vfat, mcopy, xorriso and qemu.

    ``returncodes`` maps either a tool name (``"mcopy"``) or a tool bound to
    a working directory (``"xargo@bootloader-uefi"``) to a forced exit status.
    """

    returncodes: dict[str, int] = field(default_factory=dict)
    outputs: dict[str, str] = field(default_factory=dict)
    calls: list[CommandSpec] = field(default_factory=list)

    def run(self, command: CommandSpec, *, capture: bool = True) -> ToolResult:
        self.calls.append(command)
        tool = command.argv[0]
        keys = [tool]
        if command.cwd is not None:
            keys.insert(0, f"{tool}@{Path(command.cwd).name}")
        for key in keys:
            if key in self.returncodes and self.returncodes[key] != 0:
                return ToolResult(
                    returncode=self.returncodes[key], stderr=self.outputs.get(key, "")
                )

        if tool == "xargo":
            self._xargo(command)
        elif tool == "mkfs.vfat":
            with _argv_path(command, -1).open("r+b") as image:
                image.write(b"FAT32:EFISys:" + command.argv[command.argv.index("-i") + 1].encode())
        elif tool == "mcopy":
            image_path = _argv_path(command, command.argv.index("-i") + 1)
            source = _argv_path(command, -2)
            listing = sorted(
                str(p.relative_to(source.parent)) for p in source.rglob("*") if p.is_file()
            )
            with image_path.open("r+b") as image:
                image.seek(4096)
                image.write("\n".join(listing).encode())
        elif tool == "xorriso":
            output = _argv_path(command, command.argv.index("-o") + 1)
            boot_entry = command.argv[command.argv.index("-e") + 1]
            root = _argv_path(command, -1)
            output.write_bytes(b"ISO9660:" + (root / boot_entry).read_bytes()[:64])
        return ToolResult(returncode=0)

    def tools(self) -> list[str]:
        return [call.argv[0] for call in self.calls]

    def calls_for(self, tool: str, cwd_name: str | None = None) -> list[CommandSpec]:
        return [
            call
            for call in self.calls
            if call.argv[0] == tool
            and (cwd_name is None or (call.cwd is not None and Path(call.cwd).name == cwd_name))
        ]

    def _xargo(self, command: CommandSpec) -> None:
        assert command.cwd is not None
        crate = Path(command.cwd)
        if command.argv[1] == "clean":
            shutil.rmtree(crate / "target", ignore_errors=True)
            return
        triple = command.argv[2].removeprefix("--target=")
        profile = "release" if "--release" in command.argv else "debug"
        name = "kernel" if crate.name == "kernel" else "bootloader-uefi.efi"
        output = crate / "target" / triple / profile / name
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(f"{crate.name}:{triple}:{profile}\n".encode())


def touch(path: Path, mtime: float = TOUCHED_MTIME) -> None:
    os.utime(path, (mtime, mtime))


def _argv_path(command: CommandSpec, index: int) -> Path:
    """Resolve a path argument against the tool's working directory, as the tool would."""
    path = Path(command.argv[index])
    if command.cwd is not None and not path.is_absolute():
        return Path(command.cwd) / path
    return path


