"""Optional host tools used to canonicalize signed and compiled entries."""

from __future__ import annotations

import shutil
import subprocess
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

Runner = Callable[..., subprocess.CompletedProcess]
Which = Callable[[str], str | None]


class HostTools(Protocol):
    """Capability object describing which host tools can run."""

    def can_strip_signature(self) -> bool:
        """Return True when embedded code signatures can be removed."""

    def strip_signature(self, path: Path) -> bool:
        """Remove the code signature of path in place; return True on success."""

    def can_describe_asset_catalog(self) -> bool:
        """Return True when compiled asset catalogs can be described as text."""

    def describe_asset_catalog(self, catalog: Path, output: Path) -> bool:
        """Write a textual description of catalog to output; return True on success."""


@dataclass(slots=True, frozen=True)
class NullHostTools:
    """Host without code-signing or asset catalog tooling."""

    def can_strip_signature(self) -> bool:
        return False

    def strip_signature(self, path: Path) -> bool:
        _ = path
        return False

    def can_describe_asset_catalog(self) -> bool:
        return False

    def describe_asset_catalog(self, catalog: Path, output: Path) -> bool:
        _ = catalog
        _ = output
        return False


@dataclass(slots=True, frozen=True)
class SystemHostTools:
    """codesign and assetutil, available only on macOS hosts."""

    codesign: str = "codesign"
    assetutil: str = "assetutil"
    platform: str = sys.platform
    which: Which = shutil.which
    runner: Runner = subprocess.run

    def can_strip_signature(self) -> bool:
        return self._available(self.codesign)

    def strip_signature(self, path: Path) -> bool:
        if not self.can_strip_signature():
            return False
        return self._run([self.codesign, "--remove-signature", str(path)])

    def can_describe_asset_catalog(self) -> bool:
        return self._available(self.assetutil)

    def describe_asset_catalog(self, catalog: Path, output: Path) -> bool:
        if not self.can_describe_asset_catalog():
            return False
        if not self._run([self.assetutil, "--info", str(catalog), "-o", str(output)]):
            return False
        return output.is_file()

    def _available(self, executable: str) -> bool:
        return self.platform == "darwin" and self.which(executable) is not None

    def _run(self, command: Sequence[str]) -> bool:
        try:
            completed = self.runner(list(command), capture_output=True, text=True, check=False)
        except OSError:
            return False
        return completed.returncode == 0
