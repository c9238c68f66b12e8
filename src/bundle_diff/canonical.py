"""Canonical hashing for entries that embed build-time nondeterminism.

Signed executables carry a code signature and an LC_UUID that change on every
build; compiled asset catalogs embed their creation timestamp. Both are
normalized before hashing. When the host cannot run the required tool the
entry is hashed without that step, which may report a spurious change.
"""

from __future__ import annotations

import re
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from bundle_diff.archive.entries import iter_archive_files
from bundle_diff.archive.hashing import sha256_bytes, sha256_text
from bundle_diff.archive.macho import zero_uuid
from bundle_diff.archive.models import ArchiveEntry, PathHashes, freeze_path_hashes
from bundle_diff.host.tools import HostTools
from bundle_diff.platforms.base import ArchivePolicy

TIMESTAMP_LINE_PATTERN = re.compile(r'^\W*"Timestamp"\s*:\s*\d+,?\s*$')
_SCRATCH_PREFIX = "bundle-diff-"


def strip_timestamp_lines(text: str) -> str:
    """Drop asset catalog description lines holding a numeric Timestamp field."""
    kept = [line for line in text.splitlines() if not TIMESTAMP_LINE_PATTERN.match(line)]
    return "\n".join(kept)


@dataclass(slots=True, frozen=True)
class Canonicalizer:
    """Selects and normalizes entries according to an archive policy."""

    policy: ArchivePolicy
    host_tools: HostTools

    def is_signed_executable(self, path: str) -> bool:
        return any(pattern.search(path) for pattern in self.policy.executable_patterns)

    def is_asset_catalog(self, path: str) -> bool:
        name = self.policy.asset_catalog_name
        return name is not None and PurePosixPath(path).name == name

    def executable_hash(self, entry: ArchiveEntry) -> str:
        """Hash an executable without its code signature and build UUID."""
        data = entry.content
        if self.host_tools.can_strip_signature():
            with _scratch_file(entry.path, data) as scratch:
                if self.host_tools.strip_signature(scratch):
                    data = scratch.read_bytes()
        return sha256_bytes(zero_uuid(data))

    def asset_catalog_hash(self, entry: ArchiveEntry) -> str:
        """Hash the textual description of a compiled asset catalog, less its timestamp."""
        data = entry.content
        if not self.host_tools.can_describe_asset_catalog():
            return sha256_bytes(data)
        with _scratch_file(entry.path, data) as scratch:
            description = scratch.with_name(f"{scratch.name}.json")
            if not self.host_tools.describe_asset_catalog(scratch, description):
                return sha256_bytes(data)
            text = description.read_text(encoding="utf-8", errors="replace")
        return sha256_text(strip_timestamp_lines(text))

    def executable_overlay(self, archive_path: Path | str) -> PathHashes:
        """Canonical hashes for every signed executable in the archive."""
        return freeze_path_hashes(
            {
                entry.path: self.executable_hash(entry)
                for entry in iter_archive_files(archive_path, self.is_signed_executable)
            }
        )

    def asset_catalog_overlay(self, archive_path: Path | str) -> PathHashes:
        """Canonical hashes for every compiled asset catalog in the archive."""
        return freeze_path_hashes(
            {
                entry.path: self.asset_catalog_hash(entry)
                for entry in iter_archive_files(archive_path, self.is_asset_catalog)
            }
        )


@contextmanager
def _scratch_file(entry_path: str, data: bytes) -> Iterator[Path]:
    """Write data to a private temporary directory removed on exit."""
    with tempfile.TemporaryDirectory(prefix=_SCRATCH_PREFIX) as temp_dir:
        scratch = Path(temp_dir) / (PurePosixPath(entry_path).name or "entry")
        scratch.write_bytes(data)
        yield scratch
