"""Pipeline facade: the named operations wired onto the task graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import cast

from bootforge import lifecycle
from bootforge.builders import Builder, XargoBuilder
from bootforge.config import component_specs, layout
from bootforge.emulator import EmulationLauncher
from bootforge.graph import Task, TaskGraph
from bootforge.models import (
    Artifact,
    BuildConfig,
    CommandSpec,
    ComponentName,
    DiscImage,
    DiskImage,
    LaunchMode,
    LaunchResult,
    TaskOutcome,
)
from bootforge.observability import StructuredLogger
from bootforge.packaging import DiscPackager
from bootforge.process import ToolRunner
from bootforge.report import PipelineReport, file_digest
from bootforge.staging import ImageStager

BUILD_TASKS: tuple[ComponentName, ...] = ("kernel", "bootloader")


@dataclass(slots=True)
class Pipeline:
    """Build, assemble and launch the boot images for one :class:`BuildConfig`."""

    config: BuildConfig
    builder: Builder = field(default_factory=XargoBuilder)
    stager: ImageStager = field(default_factory=ImageStager)
    packager: DiscPackager = field(default_factory=DiscPackager)
    launcher: EmulationLauncher = field(default_factory=EmulationLauncher)
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    max_workers: int = 2
    _outcomes: dict[str, TaskOutcome] = field(init=False, default_factory=dict, repr=False)

    @classmethod
    def with_runner(
        cls,
        config: BuildConfig,
        runner: ToolRunner,
        *,
        logger: StructuredLogger | None = None,
        max_workers: int = 2,
    ) -> Pipeline:
        """Create a pipeline whose every external tool goes through *runner*."""
        return cls(
            config=config,
            builder=XargoBuilder(runner=runner),
            stager=ImageStager(runner=runner),
            packager=DiscPackager(runner=runner),
            launcher=EmulationLauncher(runner=runner),
            logger=logger or StructuredLogger(),
            max_workers=max_workers,
        )

    def graph(self) -> TaskGraph:
        specs = component_specs(self.config)
        paths = layout(self.config)
        artifacts = tuple(specs[name].output_artifact_path for name in BUILD_TASKS)

        graph = TaskGraph(logger=self.logger, profile=self.config.profile)
        for name in BUILD_TASKS:
            graph.add(
                Task(
                    name=name,
                    action=lambda name=name: self._build(name),
                    inputs=(specs[name].source_dir,),
                    outputs=(specs[name].output_artifact_path,),
                ),
            )
        graph.add(
            Task(
                name="esp",
                action=self._stage,
                deps=BUILD_TASKS,
                inputs=artifacts,
                outputs=(paths.esp_image,),
            ),
        )
        graph.add(
            Task(
                name="iso",
                action=self._package,
                deps=("esp",),
                inputs=(paths.esp_image,),
                outputs=(paths.iso_image,),
            ),
        )
        graph.add(Task(name="run-test", action=lambda: self._launch("test"), deps=("iso",)))
        graph.add(Task(name="run-debug", action=lambda: self._launch("debug"), deps=("iso",)))
        return graph

    def build_kernel(self) -> Artifact:
        self._run("kernel")
        return self.artifact("kernel")

    def build_bootloader(self) -> Artifact:
        self._run("bootloader")
        return self.artifact("bootloader")

    def build_all(self) -> tuple[Artifact, Artifact]:
        self._run(*BUILD_TASKS)
        return self.artifact("kernel"), self.artifact("bootloader")

    def stage(self) -> DiskImage:
        self._run("esp")
        return self.disk_image()

    def package(self) -> DiscImage:
        self._run("iso")
        return self.disc_image()

    def run_test(self) -> LaunchResult:
        return self._run_launch("test")

    def run_debug(self) -> LaunchResult:
        return self._run_launch("debug")

    def launch_command(self, mode: LaunchMode) -> CommandSpec:
        """Bring the disc image up to date and return the emulator command for *mode*."""
        disc = self.package()
        return self.launcher.command_for(disc, mode, self.config)

    def clean(self) -> None:
        self.logger.log(
            operation="clean",
            profile=self.config.profile,
            stage="clean",
            component=None,
            message=f"Removing {layout(self.config).build_dir}.",
        )
        lifecycle.clean(self.config, self.builder)
        self._outcomes = {}

    def artifact(self, name: ComponentName) -> Artifact:
        outcome = self._outcomes.get(name)
        if outcome is not None and isinstance(outcome.value, Artifact):
            return outcome.value
        path = component_specs(self.config)[name].output_artifact_path
        return Artifact(
            component=name,
            path=path,
            rebuilt=False,
            sha256=file_digest(path) if path.is_file() else None,
        )

    def disk_image(self) -> DiskImage:
        specs = component_specs(self.config)
        return DiskImage(
            path=layout(self.config).esp_image,
            sources=tuple(specs[name].output_artifact_path for name in BUILD_TASKS),
            size_bytes=self.stager.size_bytes,
        )

    def disc_image(self) -> DiscImage:
        return DiscImage(path=layout(self.config).iso_image, disk_image=self.disk_image())

    def report(self) -> PipelineReport:
        paths = layout(self.config)
        produced: dict[str, Path] = {
            name: spec.output_artifact_path for name, spec in component_specs(self.config).items()
        }
        produced["esp"] = paths.esp_image
        produced["iso"] = paths.iso_image
        return PipelineReport(config=self.config, outcomes=dict(self._outcomes), artifacts=produced)

    def _run(self, *targets: str) -> dict[str, TaskOutcome]:
        outcomes = self.graph().run(targets, max_workers=self.max_workers)
        self._outcomes.update(outcomes)
        return outcomes

    def _run_launch(self, mode: LaunchMode) -> LaunchResult:
        name = f"run-{mode}"
        outcome = self._run(name)[name]
        return cast(LaunchResult, outcome.value)

    def _build(self, name: ComponentName) -> Artifact:
        spec = component_specs(self.config)[name]
        artifact = self.builder.build(spec, self.config)
        self.logger.log(
            operation="build",
            profile=self.config.profile,
            stage="build",
            component=name,
            message="Rebuilt artifact." if artifact.rebuilt else "Artifact is up to date.",
            extra={"path": str(artifact.path), "sha256": artifact.sha256},
        )
        return artifact

    def _stage(self) -> DiskImage:
        return self.stager.stage(self.artifact("kernel"), self.artifact("bootloader"), self.config)

    def _package(self) -> DiscImage:
        return self.packager.package(self.disk_image(), self.config)

    def _launch(self, mode: LaunchMode) -> LaunchResult:
        return self.launcher.run(self.disc_image(), mode, self.config)
