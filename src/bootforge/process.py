"""External tool invocation with explicit working directory and environment."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from typing import Protocol

from bootforge.models import CommandSpec


@dataclass(frozen=True, slots=True)
class ToolResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def output(self) -> str:
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


class ToolRunner(Protocol):
    def run(self, command: CommandSpec, *, capture: bool = True) -> ToolResult:
        """Run *command* to completion and return its exit status."""


@dataclass(slots=True)
class SubprocessRunner:
    """Runs commands with ``subprocess.run``.

    ``command.env`` is overlaid on the parent environment for the child only;
    the parent's environment and working directory are never modified.
    """

    inherit_env: bool = True

    def run(self, command: CommandSpec, *, capture: bool = True) -> ToolResult:
        env = dict(os.environ) if self.inherit_env else {}
        env.update(command.env)
        try:
            result = subprocess.run(
                list(command.argv),
                cwd=str(command.cwd) if command.cwd is not None else None,
                env=env,
                capture_output=capture,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            # Mirror the shell's "command not found" status.
            return ToolResult(returncode=127, stderr=str(exc))
        return ToolResult(
            returncode=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )


def tail(text: str, limit: int = 2000) -> str:
    return text[-limit:] if text else ""
