from __future__ import annotations

import struct
import zipfile
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from bundle_diff.archive import sha256_bytes
from bundle_diff.canonical import Canonicalizer
from bundle_diff.host import NullHostTools
from bundle_diff.platforms import AndroidPolicy, ApplePolicy

SIGNATURE_MARKER = b"__CODESIGN__"


def _macho(uuid: bytes, signature: bytes) -> bytes:
    uuid_command = struct.pack("<II", 0x1B, 24) + uuid
    header = struct.pack("<IiiIIIII", 0xFEEDFACF, 0x0100000C, 0, 2, 1, 24, 0, 0)
    return header + uuid_command + b"\x90" * 16 + SIGNATURE_MARKER + signature


@dataclass(slots=True)
class SignatureStrippingTools:
    stripped: list[Path] = field(default_factory=list)

    def can_strip_signature(self) -> bool:
        return True

    def strip_signature(self, path: Path) -> bool:
        self.stripped.append(path)
        data = path.read_bytes()
        path.write_bytes(data.split(SIGNATURE_MARKER, 1)[0])
        return True

    def can_describe_asset_catalog(self) -> bool:
        return False

    def describe_asset_catalog(self, catalog: Path, output: Path) -> bool:
        _ = catalog
        _ = output
        return False


@dataclass(slots=True)
class FailingStripTools(SignatureStrippingTools):
    def strip_signature(self, path: Path) -> bool:
        self.stripped.append(path)
        return False


@dataclass(slots=True)
class CrashingStripTools(SignatureStrippingTools):
    def strip_signature(self, path: Path) -> bool:
        self.stripped.append(path)
        raise OSError("codesign crashed")


def _entry(tmp_path: Path, name: str, path: str, content: bytes) -> Path:
    archive = tmp_path / name
    with zipfile.ZipFile(archive, "w") as handle:
        handle.writestr(path, content)
    return archive


def _hash_single(canonicalizer: Canonicalizer, archive: Path) -> str:
    return dict(canonicalizer.executable_overlay(archive)).popitem()[1]


def test_apple_signed_executable_paths_are_selected() -> None:
    canonicalizer = Canonicalizer(policy=ApplePolicy(), host_tools=NullHostTools())

    assert canonicalizer.is_signed_executable("Payload/Runner.app/Frameworks/App.framework/App")
    assert canonicalizer.is_signed_executable(
        "Payload/Runner.app/Frameworks/Flutter.framework/Flutter"
    )
    assert canonicalizer.is_signed_executable("Products/Applications/Runner.app/Runner")
    assert canonicalizer.is_signed_executable("Contents/MacOS/Runner")
    assert not canonicalizer.is_signed_executable("Payload/Runner.app/Info.plist")
    assert not canonicalizer.is_signed_executable("Payload/Runner.app/Assets.car")


def test_android_policy_selects_nothing() -> None:
    canonicalizer = Canonicalizer(policy=AndroidPolicy(), host_tools=NullHostTools())

    assert not canonicalizer.is_signed_executable("lib/arm64-v8a/libapp.so")
    assert not canonicalizer.is_asset_catalog("assets/Assets.car")


def test_signature_and_uuid_differences_normalize_to_same_hash(tmp_path: Path) -> None:
    path = "Payload/Runner.app/Frameworks/App.framework/App"
    old = _entry(tmp_path, "old.ipa", path, _macho(b"\x01" * 16, b"signed-by-build-1"))
    new = _entry(tmp_path, "new.ipa", path, _macho(b"\x02" * 16, b"signed-by-build-2"))
    tools = SignatureStrippingTools()
    canonicalizer = Canonicalizer(policy=ApplePolicy(), host_tools=tools)

    assert _hash_single(canonicalizer, old) == _hash_single(canonicalizer, new)
    assert len(tools.stripped) == 2
    assert all(not scratch.exists() for scratch in tools.stripped)


def test_code_changes_still_differ_after_normalization(tmp_path: Path) -> None:
    path = "Payload/Runner.app/Frameworks/App.framework/App"
    old = _entry(tmp_path, "old.ipa", path, _macho(b"\x01" * 16, b"sig"))
    changed = _macho(b"\x01" * 16, b"sig").replace(b"\x90" * 16, b"\x91" * 16)
    new = _entry(tmp_path, "new.ipa", path, changed)
    canonicalizer = Canonicalizer(policy=ApplePolicy(), host_tools=SignatureStrippingTools())

    assert _hash_single(canonicalizer, old) != _hash_single(canonicalizer, new)


def test_without_signature_tool_only_uuid_is_neutralized(tmp_path: Path) -> None:
    path = "Contents/MacOS/Runner"
    same_sig_old = _entry(tmp_path, "a.zip", path, _macho(b"\x01" * 16, b"sig"))
    same_sig_new = _entry(tmp_path, "b.zip", path, _macho(b"\x02" * 16, b"sig"))
    other_sig = _entry(tmp_path, "c.zip", path, _macho(b"\x02" * 16, b"other"))
    canonicalizer = Canonicalizer(policy=ApplePolicy(), host_tools=NullHostTools())

    assert _hash_single(canonicalizer, same_sig_old) == _hash_single(canonicalizer, same_sig_new)
    assert _hash_single(canonicalizer, same_sig_old) != _hash_single(canonicalizer, other_sig)


def test_failed_signature_removal_falls_back_to_extracted_bytes(tmp_path: Path) -> None:
    path = "Products/Applications/Runner.app/Runner"
    content = _macho(b"\x07" * 16, b"sig")
    archive = _entry(tmp_path, "app.xcarchive.zip", path, content)
    canonicalizer = Canonicalizer(policy=ApplePolicy(), host_tools=FailingStripTools())

    expected = sha256_bytes(content.replace(b"\x07" * 16, bytes(16)))
    assert _hash_single(canonicalizer, archive) == expected


def test_non_macho_executable_is_hashed_as_is(tmp_path: Path) -> None:
    path = "Payload/Runner.app/Runner"
    archive = _entry(tmp_path, "app.ipa", path, b"#!/bin/sh\necho hi\n")
    canonicalizer = Canonicalizer(policy=ApplePolicy(), host_tools=NullHostTools())

    assert _hash_single(canonicalizer, archive) == sha256_bytes(b"#!/bin/sh\necho hi\n")


def test_scratch_directory_is_removed_when_signature_tool_raises(tmp_path: Path) -> None:
    path = "Payload/Runner.app/Frameworks/App.framework/App"
    archive = _entry(tmp_path, "app.ipa", path, _macho(b"\x01" * 16, b"sig"))
    tools = CrashingStripTools()
    canonicalizer = Canonicalizer(policy=ApplePolicy(), host_tools=tools)

    with pytest.raises(OSError, match="codesign crashed"):
        canonicalizer.executable_overlay(archive)

    assert len(tools.stripped) == 1
    assert not tools.stripped[0].parent.exists()
