"""Path rules for IPAs, zipped xcframeworks/xcarchives, and zipped macOS apps.

Zipped macOS apps must unzip to a ``Contents`` directory; the top-level
``.app`` directory is not part of the archive.

Asset changes land in ``Assets.car`` (the compiled ``.xcassets`` catalogs) and
in the ``flutter_assets`` directory. Dart changes land in the
``App.framework/App`` executable. Native changes land in the application
executable and in frameworks other than ``App.framework`` and
``Flutter.framework``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath

ASSET_CATALOG_NAME = "Assets.car"
FLUTTER_ASSETS_DIR = "flutter_assets"

FRAMEWORK_BINARY_PATTERNS = (
    re.compile(r"App\.framework/(Versions/[^/]+/)?App$"),
    re.compile(r"Flutter\.framework/(Versions/[^/]+/)?Flutter$"),
)
XCARCHIVE_APP_PATTERN = re.compile(r"^Products/Applications/[\w\-. ]+\.app/[\w\- ]+$")
IPA_APP_PATTERN = re.compile(r"^Payload/[\w\-. ]+\.app/[\w\- ]+$")
MACOS_APP_PATTERN = re.compile(r"^Contents/MacOS/.+$")
NESTED_FRAMEWORK_PATTERN = re.compile(
    r"(^|/)Frameworks/(?!App\.framework/|Flutter\.framework/)"
    r"(?P<name>[\w\-. ]+)\.framework/(Versions/[^/]+/)?(?P=name)$"
)
_MANAGED_CODE_PATTERN = FRAMEWORK_BINARY_PATTERNS[0]


@dataclass(slots=True, frozen=True)
class ApplePolicy:
    """Apple-family archive rules."""

    name: str = "apple"
    archive_suffixes: tuple[str, ...] = (
        ".ipa",
        ".xcarchive.zip",
        ".xcframework.zip",
        ".app.zip",
        ".zip",
    )
    executable_patterns: tuple[re.Pattern[str], ...] = (
        *FRAMEWORK_BINARY_PATTERNS,
        XCARCHIVE_APP_PATTERN,
        IPA_APP_PATTERN,
        MACOS_APP_PATTERN,
        NESTED_FRAMEWORK_PATTERN,
    )
    asset_catalog_name: str | None = ASSET_CATALOG_NAME

    def is_asset_path(self, path: str) -> bool:
        parts = PurePosixPath(path).parts
        if not parts:
            return False
        return parts[-1] == ASSET_CATALOG_NAME or FLUTTER_ASSETS_DIR in parts

    def is_native_path(self, path: str) -> bool:
        return any(
            pattern.search(path)
            for pattern in (
                XCARCHIVE_APP_PATTERN,
                IPA_APP_PATTERN,
                MACOS_APP_PATTERN,
                NESTED_FRAMEWORK_PATTERN,
            )
        )

    def is_managed_code_path(self, path: str) -> bool:
        return _MANAGED_CODE_PATTERN.search(path) is not None
