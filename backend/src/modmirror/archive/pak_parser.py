"""Parser for Unreal Engine .pak package files.

Reads only the footer and the index to recover the mount point and the
list of packed record paths.  Entry payloads are never decompressed.

Format reference:
  https://github.com/trumank/repak
  https://github.com/EpicGames/UnrealEngine (FPakInfo / FPakEntry)
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

PAK_MAGIC = 0x5A6F12E1
HASH_SIZE = 20
GUID_SIZE = 16
COMPRESSION_NAME_SIZE = 32
MAX_FSTRING_BYTES = 64 * 1024
MAX_RECORDS = 10_000_000

VERSION_INITIAL = 1
VERSION_COMPRESSION_ENCRYPTION = 3
VERSION_INDEX_ENCRYPTION = 4
VERSION_ENCRYPTION_KEY_GUID = 7
VERSION_FNAME_COMPRESSION = 8
VERSION_FROZEN_INDEX = 9
VERSION_PATH_HASH_INDEX = 10
VERSION_LATEST = 11

_FOOTER_CORE_FMT = "<IIQQ"  # magic, version, index offset, index size
_FOOTER_CORE_SIZE = struct.calcsize(_FOOTER_CORE_FMT)


class PakFormatError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class FooterLayout:
    min_version: int
    max_version: int
    compression_names: int = 0
    narrow_compression_index: bool = False

    @property
    def has_encryption_guid(self) -> bool:
        return self.min_version >= VERSION_ENCRYPTION_KEY_GUID

    @property
    def has_encrypted_flag(self) -> bool:
        return self.min_version >= VERSION_INDEX_ENCRYPTION

    @property
    def has_frozen_flag(self) -> bool:
        return self.min_version == VERSION_FROZEN_INDEX

    @property
    def magic_offset(self) -> int:
        return (GUID_SIZE if self.has_encryption_guid else 0) + (
            1 if self.has_encrypted_flag else 0
        )

    @property
    def size(self) -> int:
        return (
            self.magic_offset
            + _FOOTER_CORE_SIZE
            + HASH_SIZE
            + (1 if self.has_frozen_flag else 0)
            + self.compression_names * COMPRESSION_NAME_SIZE
        )


# Newest first; v8 exists in two footer flavours (4 or 5 compression names).
FOOTER_LAYOUTS: tuple[FooterLayout, ...] = (
    FooterLayout(VERSION_PATH_HASH_INDEX, VERSION_LATEST, compression_names=5),
    FooterLayout(VERSION_FROZEN_INDEX, VERSION_FROZEN_INDEX, compression_names=5),
    FooterLayout(VERSION_FNAME_COMPRESSION, VERSION_FNAME_COMPRESSION, compression_names=5),
    FooterLayout(
        VERSION_FNAME_COMPRESSION,
        VERSION_FNAME_COMPRESSION,
        compression_names=4,
        narrow_compression_index=True,
    ),
    FooterLayout(VERSION_ENCRYPTION_KEY_GUID, VERSION_ENCRYPTION_KEY_GUID),
    FooterLayout(VERSION_INDEX_ENCRYPTION, 6),
    FooterLayout(VERSION_INITIAL, VERSION_COMPRESSION_ENCRYPTION),
)


@dataclass(frozen=True, slots=True)
class PakFooter:
    layout: FooterLayout
    version: int
    index_offset: int
    index_size: int
    encrypted_index: bool


@dataclass(frozen=True, slots=True)
class PakIndex:
    version: int
    mount_point: str
    records: list[str]


class _Reader:
    """Bounds-checked little-endian cursor over a byte buffer."""

    def __init__(self, data: bytes | memoryview, what: str) -> None:
        self._data = memoryview(data)
        self._pos = 0
        self._what = what

    def take(self, size: int) -> memoryview:
        end = self._pos + size
        if size < 0 or end > len(self._data):
            raise PakFormatError(
                f"{self._what} truncated: need {size} bytes at offset {self._pos}, "
                f"have {len(self._data) - self._pos}"
            )
        chunk = self._data[self._pos : end]
        self._pos = end
        return chunk

    def skip(self, size: int) -> None:
        self.take(size)

    def _unpack(self, fmt: str) -> int:
        return struct.unpack(fmt, self.take(struct.calcsize(fmt)))[0]

    def u8(self) -> int:
        return self._unpack("<B")

    def u32(self) -> int:
        return self._unpack("<I")

    def i32(self) -> int:
        return self._unpack("<i")

    def u64(self) -> int:
        return self._unpack("<Q")

    def i64(self) -> int:
        return self._unpack("<q")

    def fstring(self) -> str:
        length = self.i32()
        if length == 0:
            return ""
        if length > 0:
            if length > MAX_FSTRING_BYTES:
                raise PakFormatError(f"{self._what}: string length {length} is unreasonable")
            raw = bytes(self.take(length))
            return raw.rstrip(b"\x00").decode("utf-8", errors="surrogateescape")
        units = -length
        if units > MAX_FSTRING_BYTES // 2:
            raise PakFormatError(f"{self._what}: string length {length} is unreasonable")
        raw = bytes(self.take(units * 2))
        return raw.decode("utf-16-le", errors="surrogatepass").rstrip("\x00")


def parse_pak_footer(data: bytes | memoryview) -> PakFooter:
    """Locate and parse the footer at the end of a pak buffer."""
    total = len(data)
    for layout in FOOTER_LAYOUTS:
        if total < layout.size:
            continue
        start = total - layout.size
        magic, version, index_offset, index_size = struct.unpack_from(
            _FOOTER_CORE_FMT, data, start + layout.magic_offset
        )
        if magic != PAK_MAGIC or not layout.min_version <= version <= layout.max_version:
            continue
        encrypted = False
        if layout.has_encrypted_flag:
            encrypted = data[start + layout.magic_offset - 1] != 0
        if index_offset + index_size > start:
            raise PakFormatError(
                f"Index ({index_offset}+{index_size}) overlaps footer at {start}"
            )
        return PakFooter(
            layout=layout,
            version=version,
            index_offset=index_offset,
            index_size=index_size,
            encrypted_index=encrypted,
        )
    raise PakFormatError("No pak footer found (bad magic or unsupported version)")


def _skip_entry(reader: _Reader, version: int, narrow_compression_index: bool) -> None:
    """Skip one serialized FPakEntry (pre-v10 index layout)."""
    reader.skip(8 * 3)  # offset, compressed size, uncompressed size
    if version >= VERSION_FNAME_COMPRESSION:
        compression = reader.u8() if narrow_compression_index else reader.u32()
    else:
        compression = reader.i32()
    if version == VERSION_INITIAL:
        reader.skip(8)  # timestamp
    reader.skip(HASH_SIZE)
    if version >= VERSION_COMPRESSION_ENCRYPTION:
        if compression != 0:
            blocks = reader.u32()
            reader.skip(blocks * 16)
        reader.skip(1 + 4)  # flags, compression block size


def _check_count(count: int, remaining: int, min_record_size: int) -> None:
    if count > MAX_RECORDS or count * min_record_size > remaining:
        raise PakFormatError(f"Unreasonable record count {count}, index likely corrupt")


def _slice(data: bytes | memoryview, offset: int, size: int, what: str) -> memoryview:
    if offset < 0 or size < 0 or offset + size > len(data):
        raise PakFormatError(f"{what} ({offset}+{size}) lies outside the file ({len(data)})")
    return memoryview(data)[offset : offset + size]


def _read_legacy_records(reader: _Reader, footer: PakFooter, remaining: int) -> list[str]:
    count = reader.u32()
    _check_count(count, remaining, 4 + 8 * 3 + HASH_SIZE)
    records: list[str] = []
    for _ in range(count):
        records.append(reader.fstring())
        _skip_entry(reader, footer.version, footer.layout.narrow_compression_index)
    return records


def _read_directory_index(reader: _Reader, data: bytes | memoryview) -> list[str]:
    reader.skip(4)  # record count, repeated in the directory index
    reader.skip(8)  # path hash seed
    if reader.u32():
        reader.skip(8 + 8 + HASH_SIZE)  # path hash index descriptor
    if not reader.u32():
        raise PakFormatError("Pak has no full directory index")
    dir_offset = reader.i64()
    dir_size = reader.i64()
    reader.skip(HASH_SIZE)

    dir_reader = _Reader(_slice(data, dir_offset, dir_size, "Directory index"), "Directory index")
    dir_count = dir_reader.u32()
    _check_count(dir_count, dir_size, 4 + 4)
    records: list[str] = []
    for _ in range(dir_count):
        dir_name = dir_reader.fstring()
        file_count = dir_reader.u32()
        _check_count(file_count, dir_size, 4 + 4)
        base = dir_name.lstrip("/")
        for _ in range(file_count):
            file_name = dir_reader.fstring()
            dir_reader.skip(4)  # encoded entry offset
            records.append(base + file_name)
    return records


def parse_pak_index(data: bytes | memoryview) -> PakIndex:
    """Parse the footer and index of an in-memory .pak file.

    Records are returned in serialization order.  Raises ``PakFormatError``
    for anything malformed, including encrypted indexes.
    """
    try:
        footer = parse_pak_footer(data)
    except struct.error as exc:
        raise PakFormatError(f"Footer unreadable: {exc}") from exc
    if footer.encrypted_index:
        raise PakFormatError("Pak index is encrypted")

    index = _slice(data, footer.index_offset, footer.index_size, "Index")
    reader = _Reader(index, "Index")
    mount_point = reader.fstring()
    if footer.version >= VERSION_PATH_HASH_INDEX:
        records = _read_directory_index(reader, data)
    else:
        records = _read_legacy_records(reader, footer, footer.index_size)
    return PakIndex(version=footer.version, mount_point=mount_point, records=records)
