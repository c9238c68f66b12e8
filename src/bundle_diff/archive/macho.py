"""Mach-O detection and build UUID neutralization."""

from __future__ import annotations

import struct
from collections.abc import Iterator

MH_MAGIC = 0xFEEDFACE
MH_MAGIC_64 = 0xFEEDFACF
FAT_MAGIC = 0xCAFEBABE
FAT_MAGIC_64 = 0xCAFEBABF
LC_UUID = 0x1B

_HEADER_SIZE_32 = 28
_HEADER_SIZE_64 = 32
_FAT_ARCH_SIZE = 20
_FAT_ARCH_64_SIZE = 32
_UUID_SIZE = 16
# Java class files share FAT_MAGIC; their version field reads as a large arch count.
_MAX_FAT_ARCHS = 30


def is_macho(data: bytes) -> bool:
    """Return True for thin (either byte order) or universal Mach-O bytes."""
    if _thin_byte_order(data, 0) is not None:
        return True
    return _fat_arch_count(data) is not None


def zero_uuid(data: bytes) -> bytes:
    """Return data with every LC_UUID payload zeroed; other bytes are untouched."""
    if not is_macho(data):
        return data
    patched = bytearray(data)
    for start, end in _thin_slices(data):
        _zero_slice_uuids(patched, start, end)
    return bytes(patched)


def _thin_byte_order(data: bytes, offset: int) -> str | None:
    if offset + 4 > len(data):
        return None
    for order in ("<", ">"):
        (magic,) = struct.unpack_from(f"{order}I", data, offset)
        if magic in (MH_MAGIC, MH_MAGIC_64):
            return order
    return None


def _fat_arch_count(data: bytes) -> int | None:
    if len(data) < 8:
        return None
    magic, count = struct.unpack_from(">II", data, 0)
    if magic not in (FAT_MAGIC, FAT_MAGIC_64):
        return None
    if count < 1 or count > _MAX_FAT_ARCHS:
        return None
    return count


def _thin_slices(data: bytes) -> Iterator[tuple[int, int]]:
    count = _fat_arch_count(data)
    if count is None:
        yield 0, len(data)
        return
    (magic,) = struct.unpack_from(">I", data, 0)
    is_64 = magic == FAT_MAGIC_64
    entry_size = _FAT_ARCH_64_SIZE if is_64 else _FAT_ARCH_SIZE
    cursor = 8
    for _ in range(count):
        if cursor + entry_size > len(data):
            return
        if is_64:
            _, _, offset, size, _, _ = struct.unpack_from(">IIQQII", data, cursor)
        else:
            _, _, offset, size, _ = struct.unpack_from(">IIIII", data, cursor)
        cursor += entry_size
        end = min(offset + size, len(data))
        if _thin_byte_order(data, offset) is not None:
            yield offset, end


def _zero_slice_uuids(buffer: bytearray, start: int, end: int) -> None:
    order = _thin_byte_order(buffer, start)
    if order is None:
        return
    (magic,) = struct.unpack_from(f"{order}I", buffer, start)
    header_size = _HEADER_SIZE_64 if magic == MH_MAGIC_64 else _HEADER_SIZE_32
    if start + header_size > end:
        return
    (ncmds,) = struct.unpack_from(f"{order}I", buffer, start + 16)
    cursor = start + header_size
    for _ in range(ncmds):
        if cursor + 8 > end:
            return
        cmd, cmdsize = struct.unpack_from(f"{order}II", buffer, cursor)
        if cmdsize < 8:
            return
        if cmd == LC_UUID and cmdsize >= 8 + _UUID_SIZE and cursor + 8 + _UUID_SIZE <= end:
            buffer[cursor + 8 : cursor + 8 + _UUID_SIZE] = bytes(_UUID_SIZE)
        cursor += cmdsize
