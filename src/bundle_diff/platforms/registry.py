"""Policy registry with deterministic selection behavior."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from bundle_diff.platforms.base import ArchivePolicy


@dataclass(slots=True)
class PolicyRegistry:
    """Ordered archive policy registry."""

    _policies: list[ArchivePolicy] = field(default_factory=list)

    def register(self, policy: ArchivePolicy) -> None:
        """Register a policy in deterministic insertion order."""
        if policy.name in self.names():
            raise ValueError(f"Policy already registered: {policy.name}")
        self._policies.append(policy)

    def get(self, name: str) -> ArchivePolicy:
        """Return a policy by name."""
        for policy in self._policies:
            if policy.name == name:
                return policy
        raise LookupError(f"Unknown archive policy: {name}")

    def select(self, archive_path: Path | str) -> ArchivePolicy:
        """Select the first policy whose suffixes match the archive file name."""
        file_name = Path(archive_path).name.lower()
        for policy in self._policies:
            if any(file_name.endswith(suffix) for suffix in policy.archive_suffixes):
                return policy
        raise LookupError(f"No archive policy supports path: {archive_path}")

    def names(self) -> tuple[str, ...]:
        """Return registered policy names in deterministic order."""
        return tuple(policy.name for policy in self._policies)
