"""Content hashing for archive entries."""

from __future__ import annotations

import hashlib
from pathlib import Path

from bundle_diff.archive.entries import iter_archive_files
from bundle_diff.archive.models import PathHashes, freeze_path_hashes


def sha256_bytes(data: bytes) -> str:
    """Return the lowercase hex SHA-256 digest of data."""
    return hashlib.sha256(data).hexdigest()


def sha256_text(text: str) -> str:
    """Hash text as UTF-8."""
    return sha256_bytes(text.encode("utf-8"))


def raw_path_hashes(archive_path: Path | str) -> PathHashes:
    """Hash every file entry from its raw extracted bytes."""
    return freeze_path_hashes(
        {entry.path: sha256_bytes(entry.content) for entry in iter_archive_files(archive_path)}
    )


def apply_overlays(base: PathHashes, *overlays: PathHashes) -> PathHashes:
    """Merge overlay hashes over a base mapping, returning a new read-only mapping."""
    merged = dict(base)
    for overlay in overlays:
        merged.update(overlay)
    return freeze_path_hashes(merged)
