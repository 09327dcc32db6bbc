from pathlib import Path

import pytest
from support import FakeRunner, touch

from bootforge.config import layout, resolve_config
from bootforge.emulator import EmulationLauncher
from bootforge.errors import LaunchError
from bootforge.models import BuildConfig, DiscImage, DiskImage


def _disc(config: BuildConfig) -> DiscImage:
    paths = layout(config)
    paths.iso_dir.mkdir(parents=True)
    paths.esp_image.write_bytes(b"esp")
    paths.iso_image.write_bytes(b"iso")
    touch(paths.esp_image, 1_000)
    touch(paths.iso_image, 2_000)
    return DiscImage(path=paths.iso_image, disk_image=DiskImage(path=paths.esp_image))


@pytest.fixture
def qemu_on_path(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("bootforge.emulator.shutil.which", lambda name: f"/usr/bin/{name}")


def test_test_mode_command(config: BuildConfig) -> None:
    disc = _disc(config)

    command = EmulationLauncher().command_for(disc, "test", config)

    assert command.argv == (
        "qemu-system-x86_64",
        "-net", "none",
        "-bios", str(config.firmware_path),
        "-cdrom", str(disc.path),
    )


def test_debug_mode_halts_for_debugger(config: BuildConfig) -> None:
    command = EmulationLauncher().command_for(_disc(config), "debug", config)

    assert command.argv[-2:] == ("-s", "-S")


def test_emulator_binary_follows_architecture(project: Path) -> None:
    config = resolve_config("i686", project_root=project)
    command = EmulationLauncher().command_for(_disc(config), "test", config)

    assert command.argv[0] == "qemu-system-i386"


@pytest.mark.usefixtures("qemu_on_path")
def test_run_is_foreground_and_uncaptured(config: BuildConfig) -> None:
    captured: list[bool] = []

    class RecordingRunner(FakeRunner):
        def run(self, command, *, capture=True):  # type: ignore[no-untyped-def]
            captured.append(capture)
            return super().run(command, capture=capture)

    runner = RecordingRunner()
    result = EmulationLauncher(runner=runner).run(_disc(config), "debug", config)

    assert result.returncode == 0
    assert result.mode == "debug"
    assert captured == [False]


@pytest.mark.usefixtures("qemu_on_path")
def test_nonzero_emulator_exit_is_surfaced(config: BuildConfig, runner: FakeRunner) -> None:
    runner.returncodes["qemu-system-x86_64"] = 3

    with pytest.raises(LaunchError) as excinfo:
        EmulationLauncher(runner=runner).run(_disc(config), "test", config)

    assert excinfo.value.exit_status == 3
    assert excinfo.value.code == "E_LAUNCH"
    assert len(runner.calls) == 1


@pytest.mark.usefixtures("qemu_on_path")
def test_stale_disc_image_is_rejected(config: BuildConfig, runner: FakeRunner) -> None:
    disc = _disc(config)
    touch(disc.disk_image.path, 3_000)

    with pytest.raises(LaunchError, match="older than its ESP image"):
        EmulationLauncher(runner=runner).run(disc, "test", config)

    assert runner.calls == []


@pytest.mark.usefixtures("qemu_on_path")
def test_missing_firmware_is_rejected(project: Path, runner: FakeRunner) -> None:
    config = resolve_config(firmware_path=project / "missing.fd", project_root=project)

    with pytest.raises(LaunchError, match="Firmware image not found"):
        EmulationLauncher(runner=runner).run(_disc(config), "test", config)


def test_missing_qemu_binary_is_rejected(
    config: BuildConfig,
    runner: FakeRunner,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr("bootforge.emulator.shutil.which", lambda _: None)

    with pytest.raises(LaunchError, match="QEMU binary not found"):
        EmulationLauncher(runner=runner).run(_disc(config), "test", config)


def test_unknown_mode_is_rejected(config: BuildConfig) -> None:
    with pytest.raises(LaunchError, match="Unknown launch mode"):
        EmulationLauncher().command_for(_disc(config), "smoke", config)  # type: ignore[arg-type]
