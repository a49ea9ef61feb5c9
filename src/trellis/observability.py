"""Structured logging and terminal messaging helpers."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

Level = Literal["info", "warning", "error"]

MESSAGE_PREFIXES: dict[str, str] = {
    "info": "====> ",
    "warning": "====> WARNING: ",
    "error": "====> ERROR: ",
}


@dataclass(slots=True)
class StructuredLogger:
    records: list[dict[str, Any]] = field(default_factory=list)
    echo: bool = True

    def log(
        self,
        *,
        operation: str,
        message: str,
        level: Level = "info",
        stage: str | None = None,
        group: str | None = None,
        image: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        record: dict[str, Any] = {
            "level": level,
            "operation": operation,
            "stage": stage,
            "group": group,
            "image": image,
            "message": message,
        }
        if extra is not None:
            record["extra"] = extra
        self.records.append(record)
        if self.echo:
            self._emit(level, message)

    def records_for_stage(self, stage: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("stage") == stage]

    def records_at_level(self, level: Level) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("level") == level]

    def to_json_lines(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(record, sort_keys=True) for record in self.records]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path

    def _emit(self, level: Level, message: str) -> None:
        stream = sys.stdout if level == "info" else sys.stderr
        print(f"{MESSAGE_PREFIXES[level]}{message}", file=stream)
