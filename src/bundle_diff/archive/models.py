"""Typed models for archive diffing state."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

PathHashes = Mapping[str, str]


def freeze_path_hashes(hashes: Mapping[str, str]) -> PathHashes:
    """Return a read-only copy of a path -> hash mapping."""
    return MappingProxyType(dict(hashes))


@dataclass(slots=True, frozen=True)
class ArchiveEntry:
    """Single entry of a zip container; content is read on demand."""

    path: str
    is_file: bool
    _loader: Callable[[], bytes] = field(repr=False, compare=False)

    @property
    def content(self) -> bytes:
        """Read the decompressed entry bytes."""
        return self._loader()


@dataclass(slots=True, frozen=True)
class FileSetDiff:
    """Added, removed, and changed paths between two archives."""

    added_paths: frozenset[str] = frozenset()
    removed_paths: frozenset[str] = frozenset()
    changed_paths: frozenset[str] = frozenset()

    @classmethod
    def from_path_hashes(cls, old_hashes: PathHashes, new_hashes: PathHashes) -> FileSetDiff:
        """Compute the three-way set difference of two path -> hash mappings."""
        old_paths = set(old_hashes.keys())
        new_paths = set(new_hashes.keys())
        changed = {path for path in old_paths & new_paths if old_hashes[path] != new_hashes[path]}
        return cls(
            added_paths=frozenset(new_paths - old_paths),
            removed_paths=frozenset(old_paths - new_paths),
            changed_paths=frozenset(changed),
        )

    @property
    def is_empty(self) -> bool:
        """Return True when no path was added, removed, or changed."""
        return not (self.added_paths or self.removed_paths or self.changed_paths)

    @property
    def all_paths(self) -> frozenset[str]:
        """Union of every differing path."""
        return self.added_paths | self.removed_paths | self.changed_paths

    def only(self, predicate: Callable[[str], bool]) -> FileSetDiff:
        """Return the sub-diff whose paths satisfy predicate."""
        return FileSetDiff(
            added_paths=frozenset(path for path in self.added_paths if predicate(path)),
            removed_paths=frozenset(path for path in self.removed_paths if predicate(path)),
            changed_paths=frozenset(path for path in self.changed_paths if predicate(path)),
        )

    def pretty_string(self) -> str:
        """Render sorted, indented sections for each non-empty path set."""
        sections: list[str] = []
        for title, paths in (
            ("Added files", self.added_paths),
            ("Removed files", self.removed_paths),
            ("Changed files", self.changed_paths),
        ):
            if not paths:
                continue
            lines = [f"{title}:"]
            lines.extend(f"  {path}" for path in sorted(paths))
            sections.append("\n".join(lines))
        return "\n".join(sections)
