from __future__ import annotations

import zipfile
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from bundle_diff.archive import sha256_bytes, sha256_text
from bundle_diff.canonical import Canonicalizer, strip_timestamp_lines
from bundle_diff.host import NullHostTools
from bundle_diff.platforms import ApplePolicy

CATALOG_PATH = "Payload/Runner.app/Assets.car"


def _catalog(timestamp: int, images: str = "AppIcon") -> bytes:
    lines = [
        "[",
        "  {",
        '    "AssetStorageVersion" : "Xcode 15.0",',
        f'    "Timestamp" : {timestamp}',
        "  },",
        "  {",
        f'    "Name" : "{images}"',
        "  }",
        "]",
    ]
    return "\n".join(lines).encode("utf-8")


@dataclass(slots=True)
class CopyingDescriber:
    described: list[Path] = field(default_factory=list)
    succeed: bool = True

    def can_strip_signature(self) -> bool:
        return False

    def strip_signature(self, path: Path) -> bool:
        _ = path
        return False

    def can_describe_asset_catalog(self) -> bool:
        return True

    def describe_asset_catalog(self, catalog: Path, output: Path) -> bool:
        self.described.append(catalog)
        if not self.succeed:
            return False
        output.write_bytes(catalog.read_bytes())
        return True


@dataclass(slots=True)
class CrashingDescriber(CopyingDescriber):
    def describe_asset_catalog(self, catalog: Path, output: Path) -> bool:
        _ = output
        self.described.append(catalog)
        raise OSError("assetutil crashed")


def _archive(tmp_path: Path, name: str, content: bytes) -> Path:
    archive = tmp_path / name
    with zipfile.ZipFile(archive, "w") as handle:
        handle.writestr(CATALOG_PATH, content)
    return archive


def _catalog_hash(canonicalizer: Canonicalizer, archive: Path) -> str:
    return canonicalizer.asset_catalog_overlay(archive)[CATALOG_PATH]


def test_strip_timestamp_lines_removes_only_numeric_timestamps() -> None:
    text = "\n".join(
        [
            "{",
            '  "Timestamp" : 1700000000,',
            '    "Timestamp" : 1700000001',
            '  "Timestamp" : "yesterday"',
            '  "Name" : "Timestamp"',
            "}",
        ]
    )

    assert strip_timestamp_lines(text) == "\n".join(
        [
            "{",
            '  "Timestamp" : "yesterday"',
            '  "Name" : "Timestamp"',
            "}",
        ]
    )


def test_catalog_selection_uses_base_filename() -> None:
    canonicalizer = Canonicalizer(policy=ApplePolicy(), host_tools=NullHostTools())

    assert canonicalizer.is_asset_catalog("Assets.car")
    assert canonicalizer.is_asset_catalog("Contents/Resources/Assets.car")
    assert not canonicalizer.is_asset_catalog("Contents/Resources/OtherAssets.car")


def test_catalogs_differing_only_in_timestamp_hash_identically(tmp_path: Path) -> None:
    old = _archive(tmp_path, "old.ipa", _catalog(1700000000))
    new = _archive(tmp_path, "new.ipa", _catalog(1800000000))
    tools = CopyingDescriber()
    canonicalizer = Canonicalizer(policy=ApplePolicy(), host_tools=tools)

    assert _catalog_hash(canonicalizer, old) == _catalog_hash(canonicalizer, new)
    assert len(tools.described) == 2
    assert all(not path.parent.exists() for path in tools.described)


def test_catalog_content_changes_are_detected(tmp_path: Path) -> None:
    old = _archive(tmp_path, "old.ipa", _catalog(1, images="AppIcon"))
    new = _archive(tmp_path, "new.ipa", _catalog(1, images="LaunchImage"))
    canonicalizer = Canonicalizer(policy=ApplePolicy(), host_tools=CopyingDescriber())

    assert _catalog_hash(canonicalizer, old) != _catalog_hash(canonicalizer, new)


def test_description_hash_is_over_text_without_timestamp(tmp_path: Path) -> None:
    content = _catalog(42)
    archive = _archive(tmp_path, "app.ipa", content)
    canonicalizer = Canonicalizer(policy=ApplePolicy(), host_tools=CopyingDescriber())

    expected = sha256_text(strip_timestamp_lines(content.decode("utf-8")))
    assert _catalog_hash(canonicalizer, archive) == expected


def test_missing_describer_hashes_raw_bytes(tmp_path: Path) -> None:
    content = _catalog(1700000000)
    archive = _archive(tmp_path, "app.ipa", content)
    canonicalizer = Canonicalizer(policy=ApplePolicy(), host_tools=NullHostTools())

    assert _catalog_hash(canonicalizer, archive) == sha256_bytes(content)


def test_failed_description_hashes_raw_bytes(tmp_path: Path) -> None:
    content = _catalog(5)
    archive = _archive(tmp_path, "app.ipa", content)
    tools = CopyingDescriber(succeed=False)
    canonicalizer = Canonicalizer(policy=ApplePolicy(), host_tools=tools)

    assert _catalog_hash(canonicalizer, archive) == sha256_bytes(content)
    assert len(tools.described) == 1
    assert not tools.described[0].parent.exists()


def test_scratch_directory_is_removed_when_describer_raises(tmp_path: Path) -> None:
    archive = _archive(tmp_path, "app.ipa", _catalog(7))
    tools = CrashingDescriber()
    canonicalizer = Canonicalizer(policy=ApplePolicy(), host_tools=tools)

    with pytest.raises(OSError, match="assetutil crashed"):
        canonicalizer.asset_catalog_overlay(archive)

    assert len(tools.described) == 1
    assert not tools.described[0].parent.exists()
