"""Command-line entry point.

Usage:
    bootforge build-kernel
    bootforge --profile release build-all
    bootforge --arch x86_64 --firmware /usr/share/ovmf/OVMF.fd run-test
    bootforge run-debug --dry-run
    bootforge --log build.jsonl clean
"""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from bootforge.config import ARCHITECTURES, resolve_config
from bootforge.errors import BootforgeError, ConfigurationError, LaunchError
from bootforge.models import LaunchMode
from bootforge.observability import StructuredLogger, format_record
from bootforge.pipeline import Pipeline

EXIT_FAILURE = 1
EXIT_CONFIGURATION = 2


def cmd_build_kernel(pipeline: Pipeline, args: argparse.Namespace) -> None:
    artifact = pipeline.build_kernel()
    print(f"kernel: {artifact.path}")


def cmd_build_bootloader(pipeline: Pipeline, args: argparse.Namespace) -> None:
    artifact = pipeline.build_bootloader()
    print(f"bootloader: {artifact.path}")


def cmd_build_all(pipeline: Pipeline, args: argparse.Namespace) -> None:
    for artifact in pipeline.build_all():
        print(f"{artifact.component}: {artifact.path}")


def cmd_run(pipeline: Pipeline, args: argparse.Namespace) -> None:
    mode: LaunchMode = "debug" if args.command == "run-debug" else "test"
    if args.dry_run:
        print(pipeline.launch_command(mode).display())
        return
    if mode == "debug":
        print("Waiting for debugger on tcp::1234 (gdb: target remote :1234)", file=sys.stderr)
        pipeline.run_debug()
    else:
        pipeline.run_test()


def cmd_clean(pipeline: Pipeline, args: argparse.Namespace) -> None:
    pipeline.clean()


COMMANDS = {
    "build-kernel": cmd_build_kernel,
    "build-bootloader": cmd_build_bootloader,
    "build-all": cmd_build_all,
    "run-test": cmd_run,
    "run-debug": cmd_run,
    "clean": cmd_clean,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bootforge",
        description="Build the kernel and UEFI bootloader, assemble boot images, run under QEMU",
    )
    parser.add_argument("--arch", choices=sorted(ARCHITECTURES), help="Target architecture")
    parser.add_argument("--firmware", type=Path, help="UEFI firmware image (OVMF.fd)")
    parser.add_argument("--profile", help="Build profile: debug or release")
    parser.add_argument(
        "--project-root",
        type=Path,
        default=Path("."),
        help="Directory holding kernel/, bootloader-uefi/ and the target JSON files",
    )
    parser.add_argument("--jobs", type=int, default=2, help="Parallel component builds")
    parser.add_argument("--report", type=Path, help="Write a JSON (or .cbor) run report")
    parser.add_argument("--log", type=Path, help="Write structured log records as JSON lines")
    parser.add_argument("-v", "--verbose", action="store_true", help="Echo log records")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("build-kernel", help="Build the kernel artifact")
    sub.add_parser("build-bootloader", help="Build the UEFI bootloader artifact")
    sub.add_parser("build-all", help="Build both artifacts")
    for name, help_text in (
        ("run-test", "Build, stage, package and boot under QEMU"),
        ("run-debug", "Same as run-test, halted for a gdb attach on :1234"),
    ):
        run_p = sub.add_parser(name, help=help_text)
        run_p.add_argument(
            "--dry-run",
            action="store_true",
            help="Build the disc image and print the emulator command instead of running it",
        )
    sub.add_parser("clean", help="Remove build output for this configuration")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logger = StructuredLogger()
    if args.verbose:
        logger.sink = lambda record: print(format_record(record), file=sys.stderr)

    pipeline: Pipeline | None = None
    try:
        config = resolve_config(
            args.arch,
            args.firmware,
            args.profile,
            project_root=args.project_root,
            environ=os.environ,
        )
        pipeline = Pipeline(config=config, logger=logger, max_workers=args.jobs)
        COMMANDS[args.command](pipeline, args)
    except ConfigurationError as exc:
        print(f"error [{exc.code}]: {exc}", file=sys.stderr)
        return EXIT_CONFIGURATION
    except LaunchError as exc:
        print(f"error [{exc.code}]: {exc}", file=sys.stderr)
        return exc.exit_status or EXIT_FAILURE
    except BootforgeError as exc:
        print(f"error [{exc.code}]: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    finally:
        if args.report is not None and pipeline is not None:
            pipeline.report().write(args.report)
        if args.log is not None:
            logger.to_json_lines(args.log)
    return 0


if __name__ == "__main__":
    sys.exit(main())
