"""Structured JSONL audit log of processed edits."""

from __future__ import annotations

import json
import threading
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path

_LABEL_KEYS = {"file_type_hint", "fingerprint_strategy", "file_category"}


@dataclass(slots=True, frozen=True)
class EditAuditEvent:
    """Sanitized record of a single edit attempt."""

    timestamp: str
    session_id: str
    sequence: int
    file_path: str
    ok: bool
    error_code: str | None
    warnings: list[str]
    metadata: dict[str, object]


def utc_timestamp() -> str:
    """Return an ISO-8601 UTC timestamp."""
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sanitize_edit_metadata(metadata: dict[str, object]) -> dict[str, object]:
    """Keep coordinates and counts; reduce text payloads to presence and length."""
    sanitized: dict[str, object] = {}
    for key, value in sorted(metadata.items()):
        if _is_verbatim(key, value):
            sanitized[key] = value
        else:
            sanitized.update(_summarize(key, value))
    return sanitized


def _is_verbatim(key: str, value: object) -> bool:
    if value is None or isinstance(value, (bool, int, float)):
        return True
    return key in _LABEL_KEYS and isinstance(value, str)


def _summarize(key: str, value: object) -> dict[str, object]:
    if isinstance(value, str):
        return {f"{key}_present": True, f"{key}_length": len(value)}
    if isinstance(value, (list, tuple)):
        return {f"{key}_type": "list", f"{key}_length": len(value)}
    if isinstance(value, dict):
        return {f"{key}_type": "dict", f"{key}_keys": sorted(map(str, value))}
    return {f"{key}_type": type(value).__name__}


class JsonlAuditLogger:
    """Append-only JSONL audit logger and bounded reader."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        """Return on-disk JSONL path."""
        return self._path

    def append(self, event: EditAuditEvent) -> None:
        """Append one event as a single JSON object line."""
        line = json.dumps(asdict(event), sort_keys=True)
        with self._lock, self._path.open("a", encoding="utf-8") as handle:
            handle.write(line)
            handle.write("\n")

    def read(self, since: str | None = None, limit: int = 50) -> list[dict[str, object]]:
        """Read recent events, optionally filtered by timestamp lower bound."""
        if limit < 1:
            return []
        entries: list[dict[str, object]] = []
        if not self._path.exists():
            return entries
        with self._path.open("r", encoding="utf-8") as handle:
            for line in handle:
                stripped = line.strip()
                if not stripped:
                    continue
                try:
                    record = json.loads(stripped)
                except json.JSONDecodeError:
                    continue
                if since is not None:
                    ts = record.get("timestamp")
                    if not isinstance(ts, str) or ts < since:
                        continue
                entries.append(record)
        return entries[-limit:]
