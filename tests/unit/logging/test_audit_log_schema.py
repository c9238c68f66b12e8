from __future__ import annotations

import json
from pathlib import Path

from bundle_diff.logging import OPERATION_DIFF, OPERATION_LINK, JsonlAuditLogger


def test_audit_log_writes_jsonl_schema(tmp_path: Path) -> None:
    logger = JsonlAuditLogger(path=tmp_path / "nested" / "audit.jsonl")

    event = logger.record(OPERATION_DIFF, ok=True, metadata={"added": 2})

    lines = logger.path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    payload = json.loads(lines[0])
    assert set(payload.keys()) == {
        "error_code",
        "metadata",
        "ok",
        "operation",
        "operation_id",
        "timestamp",
    }
    assert payload["operation"] == "archive.diff"
    assert payload["operation_id"] == event.operation_id
    assert payload["operation_id"].startswith("archive-")
    assert payload["ok"] is True
    assert payload["error_code"] is None
    assert payload["metadata"] == {"added": 2}
    assert payload["timestamp"].endswith("Z")


def test_read_applies_since_and_limit(tmp_path: Path) -> None:
    logger = JsonlAuditLogger(path=tmp_path / "audit.jsonl")
    for index in range(5):
        logger.record(OPERATION_LINK, ok=index % 2 == 0, error_code=None, metadata={"i": index})
    with logger.path.open("a", encoding="utf-8") as handle:
        handle.write("not json\n\n")

    recent = logger.read(limit=2)

    assert [item["metadata"]["i"] for item in recent] == [3, 4]
    assert logger.read(since="9999") == []
    assert logger.read(limit=0) == []


def test_read_missing_log_returns_empty(tmp_path: Path) -> None:
    assert JsonlAuditLogger(path=tmp_path / "audit.jsonl").read() == []
