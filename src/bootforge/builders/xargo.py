"""Xargo builder for the kernel and UEFI bootloader crates."""

from __future__ import annotations

from dataclasses import dataclass, field

from bootforge.builders.materialize import publish_file
from bootforge.config import profile_flags, toolchain_env
from bootforge.errors import BuildError
from bootforge.freshness import is_stale
from bootforge.models import Artifact, BuildConfig, CommandSpec, ComponentSpec
from bootforge.process import SubprocessRunner, ToolRunner, tail
from bootforge.report import file_digest


@dataclass(slots=True)
class XargoBuilder:
    tool: str = "xargo"
    runner: ToolRunner = field(default_factory=SubprocessRunner)

    def build_command(self, spec: ComponentSpec, config: BuildConfig) -> CommandSpec:
        return CommandSpec(
            argv=(
                self.tool,
                "build",
                f"--target={spec.toolchain_target_triple}",
                *profile_flags(config.profile),
            ),
            env=toolchain_env(config),
            cwd=spec.source_root,
        )

    def build(self, spec: ComponentSpec, config: BuildConfig) -> Artifact:
        if not is_stale(spec.output_artifact_path, [spec.source_dir]):
            return self._artifact(spec, rebuilt=False)

        command = self.build_command(spec, config)
        result = self.runner.run(command)
        if result.returncode != 0:
            raise BuildError(
                spec.name,
                result.returncode,
                hint=f"Fix the {spec.name} build and re-run `build-{spec.name}`.",
                context={
                    "tool": self.tool,
                    "command": command.display(),
                    "cwd": str(spec.source_root),
                    "stderr": tail(result.stderr),
                },
            )
        if not spec.toolchain_output_path.is_file():
            raise BuildError(
                spec.name,
                result.returncode,
                message=f"{self.tool} reported success but produced no {spec.name} artifact.",
                hint="Check the target triple and profile of the crate.",
                context={
                    "tool": self.tool,
                    "expected_output": str(spec.toolchain_output_path),
                },
            )

        try:
            publish_file(spec.toolchain_output_path, spec.output_artifact_path)
        except OSError as exc:
            raise BuildError(
                spec.name,
                None,
                message=f"Could not publish the {spec.name} artifact.",
                hint="Check free space and permissions in the build directory.",
                context={
                    "artifact": str(spec.output_artifact_path),
                    "error": str(exc),
                },
            ) from exc
        return self._artifact(spec, rebuilt=True)

    def clean(self, spec: ComponentSpec, config: BuildConfig) -> None:
        if not spec.source_root.is_dir():
            return
        command = CommandSpec(
            argv=(self.tool, "clean"),
            env=toolchain_env(config),
            cwd=spec.source_root,
        )
        result = self.runner.run(command)
        if result.returncode != 0:
            raise BuildError(
                spec.name,
                result.returncode,
                message=f"{self.tool} clean failed for {spec.name}.",
                context={
                    "stage": "clean",
                    "tool": self.tool,
                    "command": command.display(),
                    "stderr": tail(result.stderr),
                },
            )

    def _artifact(self, spec: ComponentSpec, *, rebuilt: bool) -> Artifact:
        return Artifact(
            component=spec.name,
            path=spec.output_artifact_path,
            rebuilt=rebuilt,
            sha256=file_digest(spec.output_artifact_path),
        )
