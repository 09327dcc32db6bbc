"""Structured logging and observability helpers."""

from __future__ import annotations

import json
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

RecordSink = Callable[[dict[str, Any]], None]


@dataclass(slots=True)
class StructuredLogger:
    records: list[dict[str, Any]] = field(default_factory=list)
    sink: RecordSink | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def log(
        self,
        *,
        operation: str,
        profile: str | None,
        stage: str | None,
        component: str | None,
        message: str,
        level: str = "info",
        extra: dict[str, Any] | None = None,
    ) -> None:
        record: dict[str, Any] = {
            "level": level,
            "operation": operation,
            "profile": profile,
            "stage": stage,
            "component": component,
            "message": message,
        }
        if extra is not None:
            record["extra"] = extra
        # Builders log from worker threads.
        with self._lock:
            self.records.append(record)
        if self.sink is not None:
            self.sink(record)

    def records_for_stage(self, stage: str) -> list[dict[str, Any]]:
        with self._lock:
            return [record for record in self.records if record.get("stage") == stage]

    def to_json_lines(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            lines = [json.dumps(record, sort_keys=True) for record in self.records]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path


def format_record(record: dict[str, Any]) -> str:
    """Render a record as a single human-readable line."""
    scope = "/".join(part for part in (record.get("stage"), record.get("component")) if part)
    prefix = f"[{record['level']}]"
    if scope:
        prefix = f"{prefix} {scope}:"
    return f"{prefix} {record['message']}"
