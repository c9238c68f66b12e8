"""Structured logging utilities."""

from .audit import (
    OPERATION_DIFF,
    OPERATION_LINK,
    AuditEvent,
    JsonlAuditLogger,
    new_operation_id,
    utc_timestamp,
)

__all__ = [
    "AuditEvent",
    "JsonlAuditLogger",
    "OPERATION_DIFF",
    "OPERATION_LINK",
    "new_operation_id",
    "utc_timestamp",
]
