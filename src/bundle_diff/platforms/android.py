"""Path rules for Android app bundles and APKs."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath

MANAGED_CODE_LIBRARY = "libapp.so"
_ASSET_ROOTS = (("assets",), ("base", "assets"))


@dataclass(slots=True, frozen=True)
class AndroidPolicy:
    """Android archive rules. Entries are unsigned in place, so nothing is canonicalized."""

    name: str = "android"
    archive_suffixes: tuple[str, ...] = (".aab", ".apk")
    executable_patterns: tuple[re.Pattern[str], ...] = ()
    asset_catalog_name: str | None = None

    def is_asset_path(self, path: str) -> bool:
        parts = PurePosixPath(path).parts
        if "flutter_assets" in parts:
            return True
        return any(parts[: len(root)] == root for root in _ASSET_ROOTS)

    def is_native_path(self, path: str) -> bool:
        pure = PurePosixPath(path)
        if pure.suffix == ".dex":
            return True
        return pure.suffix == ".so" and pure.name != MANAGED_CODE_LIBRARY

    def is_managed_code_path(self, path: str) -> bool:
        return PurePosixPath(path).name == MANAGED_CODE_LIBRARY
