"""Archive policy protocol and diff classification."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

from bundle_diff.archive.models import FileSetDiff

CATEGORY_ASSET = "asset"
CATEGORY_NATIVE = "native"
CATEGORY_MANAGED_CODE = "managed-code"
CATEGORY_OTHER = "other"


class ArchivePolicy(Protocol):
    """Per-package-format path rules.

    The three predicates only annotate a diff. Canonicalization inputs
    (executable_patterns, asset_catalog_name) decide which entries are
    normalized before hashing.
    """

    name: str
    archive_suffixes: tuple[str, ...]
    executable_patterns: tuple[re.Pattern[str], ...]
    asset_catalog_name: str | None

    def is_asset_path(self, path: str) -> bool:
        """Return True for bundled asset paths."""

    def is_native_path(self, path: str) -> bool:
        """Return True for native executable paths."""

    def is_managed_code_path(self, path: str) -> bool:
        """Return True for compiled managed (Dart) code paths."""


@dataclass(slots=True, frozen=True)
class PathClassification:
    """Every category a path matched under one policy."""

    path: str
    matches: tuple[str, ...]

    @property
    def category(self) -> str:
        """The single matched category; "other" when none or several matched."""
        if len(self.matches) == 1:
            return self.matches[0]
        return CATEGORY_OTHER

    @property
    def is_ambiguous(self) -> bool:
        return len(self.matches) > 1


@dataclass(slots=True, frozen=True)
class DiffClassification:
    """A FileSetDiff annotated by an archive policy."""

    diff: FileSetDiff
    asset_diff: FileSetDiff
    native_diff: FileSetDiff
    managed_code_diff: FileSetDiff
    paths: Mapping[str, PathClassification]

    @property
    def categories(self) -> dict[str, str]:
        """Map each differing path to its category label."""
        return {path: self.paths[path].category for path in sorted(self.paths)}

    @property
    def ambiguous_paths(self) -> tuple[str, ...]:
        return tuple(sorted(path for path, item in self.paths.items() if item.is_ambiguous))

    @property
    def contains_potentially_breaking_asset_diffs(self) -> bool:
        return not self.asset_diff.is_empty

    @property
    def contains_potentially_breaking_native_diffs(self) -> bool:
        return not self.native_diff.is_empty

    @property
    def is_asset_only(self) -> bool:
        """Return True when every differing path is an asset and nothing else."""
        if self.diff.is_empty:
            return False
        return all(item.matches == (CATEGORY_ASSET,) for item in self.paths.values())


def classify_path(policy: ArchivePolicy, path: str) -> PathClassification:
    """Apply each policy predicate; overlapping matches are kept, not resolved."""
    matches: list[str] = []
    if policy.is_asset_path(path):
        matches.append(CATEGORY_ASSET)
    if policy.is_native_path(path):
        matches.append(CATEGORY_NATIVE)
    if policy.is_managed_code_path(path):
        matches.append(CATEGORY_MANAGED_CODE)
    return PathClassification(path=path, matches=tuple(matches))


def classify_diff(policy: ArchivePolicy, diff: FileSetDiff) -> DiffClassification:
    """Classify every added, removed, and changed path of diff."""
    return DiffClassification(
        diff=diff,
        asset_diff=diff.only(policy.is_asset_path),
        native_diff=diff.only(policy.is_native_path),
        managed_code_diff=diff.only(policy.is_managed_code_path),
        paths={path: classify_path(policy, path) for path in diff.all_paths},
    )
