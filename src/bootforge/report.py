"""Run report export for a pipeline invocation."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from pathlib import Path

import cbor2

from bootforge.models import BuildConfig, TaskOutcome


def file_digest(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


@dataclass(frozen=True, slots=True)
class PipelineReport:
    config: BuildConfig
    outcomes: dict[str, TaskOutcome] = field(default_factory=dict)
    artifacts: dict[str, Path] = field(default_factory=dict)
    schema_version: int = 1

    def to_json(self, path: str | Path | None = None) -> str:
        encoded = json.dumps(self._payload(), indent=2, sort_keys=True) + "\n"
        if path is not None:
            Path(path).write_text(encoded, encoding="utf-8")
        return encoded

    def to_cbor(self, path: str | Path | None = None) -> bytes:
        encoded = cbor2.dumps(self._payload(), canonical=True)
        if path is not None:
            Path(path).write_bytes(encoded)
        return encoded

    def write(self, path: str | Path) -> Path:
        """Write the report, choosing CBOR for a ``.cbor`` suffix and JSON otherwise."""
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        if output_path.suffix == ".cbor":
            self.to_cbor(output_path)
        else:
            self.to_json(output_path)
        return output_path

    def _payload(self) -> dict[str, object]:
        return {
            "schema_version": self.schema_version,
            "config": {
                "architecture": self.config.architecture,
                "profile": self.config.profile,
                "firmware_path": str(self.config.firmware_path),
            },
            "tasks": {
                name: outcome.status for name, outcome in sorted(self.outcomes.items())
            },
            "artifacts": {
                name: {"path": str(path), "sha256": file_digest(path)}
                for name, path in sorted(self.artifacts.items())
                if path.is_file()
            },
        }
