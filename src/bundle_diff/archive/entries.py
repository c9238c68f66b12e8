"""Zip container entry listing."""

from __future__ import annotations

import zipfile
import zlib
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path

from bundle_diff.archive.models import ArchiveEntry


@dataclass(slots=True, frozen=True)
class ArchiveFormatError(ValueError):
    """Raised when an archive is missing or is not a valid zip container."""

    path: str
    reason: str

    def __str__(self) -> str:
        return f"{self.reason}: {self.path}"


def iter_archive_entries(archive_path: Path | str) -> Iterator[ArchiveEntry]:
    """Yield every entry in central-directory order.

    Each call opens the archive independently, so separate passes never share
    a stream. Entry content is only readable while the iterator is active.
    """
    path = Path(archive_path)
    if not path.is_file():
        raise ArchiveFormatError(path=str(path), reason="Archive does not exist")
    try:
        archive = zipfile.ZipFile(path)
    except (zipfile.BadZipFile, OSError) as exc:
        raise ArchiveFormatError(path=str(path), reason="Archive is not a valid zip file") from exc
    with archive:
        for info in archive.infolist():
            yield ArchiveEntry(
                path=info.filename,
                is_file=not info.is_dir(),
                _loader=_entry_loader(archive, info),
            )


def iter_archive_files(
    archive_path: Path | str,
    predicate: Callable[[str], bool] | None = None,
) -> Iterator[ArchiveEntry]:
    """Yield file entries, optionally restricted to paths matching predicate."""
    for entry in iter_archive_entries(archive_path):
        if not entry.is_file:
            continue
        if predicate is not None and not predicate(entry.path):
            continue
        yield entry


def _entry_loader(archive: zipfile.ZipFile, info: zipfile.ZipInfo) -> Callable[[], bytes]:
    def load() -> bytes:
        try:
            return archive.read(info)
        except (
            zipfile.BadZipFile,
            zipfile.LargeZipFile,
            zlib.error,
            EOFError,
            NotImplementedError,
            RuntimeError,
        ) as exc:
            raise ArchiveFormatError(
                path=f"{archive.filename}!{info.filename}",
                reason="Archive entry could not be decompressed",
            ) from exc

    return load
