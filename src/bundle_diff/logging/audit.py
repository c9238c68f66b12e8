"""Structured JSONL audit log utilities."""

from __future__ import annotations

import json
import threading
import uuid
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path

OPERATION_DIFF = "archive.diff"
OPERATION_LINK = "patch.link"


@dataclass(slots=True, frozen=True)
class AuditEvent:
    """Summary of a single diff or link operation."""

    timestamp: str
    operation_id: str
    operation: str
    ok: bool
    error_code: str | None
    metadata: dict[str, object]


def utc_timestamp() -> str:
    """Return an ISO-8601 UTC timestamp."""
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_operation_id(operation: str) -> str:
    """Return a unique id prefixed with the operation's leading segment."""
    prefix = operation.split(".", 1)[0]
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


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

    def append(self, event: AuditEvent) -> None:
        """Append an event as one JSON object per line."""
        line = json.dumps(asdict(event), sort_keys=True)
        with self._lock, self._path.open("a", encoding="utf-8") as handle:
            handle.write(line)
            handle.write("\n")

    def record(
        self,
        operation: str,
        *,
        ok: bool,
        error_code: str | None = None,
        metadata: dict[str, object] | None = None,
    ) -> AuditEvent:
        """Build, append, and return an event stamped with the current time."""
        event = AuditEvent(
            timestamp=utc_timestamp(),
            operation_id=new_operation_id(operation),
            operation=operation,
            ok=ok,
            error_code=error_code,
            metadata=dict(metadata or {}),
        )
        self.append(event)
        return event

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
        if len(entries) <= limit:
            return entries
        return entries[-limit:]
