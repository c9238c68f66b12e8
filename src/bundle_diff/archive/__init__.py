"""Zip container reading, hashing, and set differences."""

from .entries import ArchiveFormatError, iter_archive_entries, iter_archive_files
from .hashing import apply_overlays, raw_path_hashes, sha256_bytes, sha256_text
from .macho import is_macho, zero_uuid
from .models import ArchiveEntry, FileSetDiff, PathHashes, freeze_path_hashes

__all__ = [
    "ArchiveEntry",
    "ArchiveFormatError",
    "FileSetDiff",
    "PathHashes",
    "apply_overlays",
    "freeze_path_hashes",
    "is_macho",
    "iter_archive_entries",
    "iter_archive_files",
    "raw_path_hashes",
    "sha256_bytes",
    "sha256_text",
    "zero_uuid",
]
