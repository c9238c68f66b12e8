"""Archive differ: hash, canonicalize, and diff two archives."""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TypeVar

from bundle_diff.archive import (
    ArchiveFormatError,
    FileSetDiff,
    PathHashes,
    apply_overlays,
    raw_path_hashes,
)
from bundle_diff.canonical import Canonicalizer
from bundle_diff.host import HostTools, NullHostTools
from bundle_diff.logging import OPERATION_DIFF, JsonlAuditLogger
from bundle_diff.platforms import ArchivePolicy, DiffClassification, classify_diff

_T = TypeVar("_T")


class ArchiveDiffer:
    """Finds added, removed, and changed files between two archives.

    Signed executables and compiled asset catalogs are canonicalized before
    hashing so that byte-different but semantically identical builds compare
    equal. The two archives, and the two canonicalization passes within one
    archive, are processed on worker threads when max_workers allows.
    """

    def __init__(
        self,
        policy: ArchivePolicy,
        host_tools: HostTools | None = None,
        *,
        max_workers: int = 2,
        audit_logger: JsonlAuditLogger | None = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1.")
        self._policy = policy
        self._host_tools: HostTools = host_tools or NullHostTools()
        self._canonicalizer = Canonicalizer(policy=policy, host_tools=self._host_tools)
        self._max_workers = max_workers
        self._audit_logger = audit_logger

    @property
    def policy(self) -> ArchivePolicy:
        return self._policy

    @property
    def canonicalizer(self) -> Canonicalizer:
        return self._canonicalizer

    def file_hashes(self, archive_path: Path | str) -> PathHashes:
        """Hash every file entry from its raw bytes."""
        return raw_path_hashes(archive_path)

    def path_hashes(self, archive_path: Path | str) -> PathHashes:
        """Raw hashes overlaid with canonical hashes for normalized entries."""
        base, executables, catalogs = self._run_all(
            lambda: self.file_hashes(archive_path),
            lambda: self._canonicalizer.executable_overlay(archive_path),
            lambda: self._canonicalizer.asset_catalog_overlay(archive_path),
        )
        return apply_overlays(base, executables, catalogs)

    def changed_files(self, old_archive: Path | str, new_archive: Path | str) -> FileSetDiff:
        """Files added, removed, or changed between the old and new archives."""
        try:
            old_hashes, new_hashes = self._run_all(
                lambda: self.path_hashes(old_archive),
                lambda: self.path_hashes(new_archive),
            )
        except ArchiveFormatError as exc:
            self._audit(ok=False, error_code="ARCHIVE_FORMAT", metadata={"error": str(exc)})
            raise
        except Exception as exc:
            self._audit(
                ok=False,
                error_code="DIFF_FAILED",
                metadata={"error": str(exc), "error_type": type(exc).__name__},
            )
            raise
        diff = FileSetDiff.from_path_hashes(old_hashes, new_hashes)
        self._audit(
            ok=True,
            error_code=None,
            metadata={
                "old_archive": Path(old_archive).name,
                "new_archive": Path(new_archive).name,
                "added": len(diff.added_paths),
                "removed": len(diff.removed_paths),
                "changed": len(diff.changed_paths),
            },
        )
        return diff

    def classify(self, diff: FileSetDiff) -> DiffClassification:
        """Annotate diff with this differ's policy categories."""
        return classify_diff(self._policy, diff)

    def changed_files_classified(
        self, old_archive: Path | str, new_archive: Path | str
    ) -> DiffClassification:
        return self.classify(self.changed_files(old_archive, new_archive))

    def _run_all(self, *tasks: Callable[[], _T]) -> list[_T]:
        if self._max_workers == 1:
            return [task() for task in tasks]
        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(tasks))) as pool:
            futures = [pool.submit(task) for task in tasks]
            return [future.result() for future in futures]

    def _audit(self, *, ok: bool, error_code: str | None, metadata: dict[str, object]) -> None:
        if self._audit_logger is None:
            return
        payload: dict[str, object] = {
            "policy": self._policy.name,
            "signature_stripping": self._host_tools.can_strip_signature(),
            "asset_catalog_description": self._host_tools.can_describe_asset_catalog(),
        }
        payload.update(metadata)
        self._audit_logger.record(OPERATION_DIFF, ok=ok, error_code=error_code, metadata=payload)
