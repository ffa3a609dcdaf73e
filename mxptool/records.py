from __future__ import annotations

import struct
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Tuple

from .constants import (
    MAX_PATH_LENGTH,
    MAX_SAFE_SIZE,
    MAX_UINT16,
    MAX_UINT32,
    TYPE_TAG_SIZE,
    ZERO_TYPE_TAG,
)
from .errors import (
    FieldRangeError,
    InvalidPathError,
    InvalidPathLengthError,
    InvalidTimestampError,
    OversizedFieldError,
    UnexpectedEndOfArchiveError,
)
from .pathutil import archive_to_local, local_to_archive


# Entry header (variable length)
#  - path_len u32
#  - path[path_len] (utf-8, backslash separated)
#  - year, month, day, hour, minute, second: u16 each
#  - type_tag[8] (opaque)
# followed by the block region:
#  - repeated (decompressed_len u32, compressed_len u32, compressed[compressed_len])
#  - terminator (0, 0)
_U16_STRUCT = struct.Struct("<H")
_U32_STRUCT = struct.Struct("<I")
_TIMESTAMP_STRUCT = struct.Struct("<6H")
BLOCK_PAIR_STRUCT = struct.Struct("<II")


@dataclass(frozen=True)
class EntryHeader:
    path: str
    timestamp: datetime
    type_tag: bytes


def pack_u16(value: int, field: str) -> bytes:
    if not 0 <= value <= MAX_UINT16:
        raise FieldRangeError(f"Value for unsigned 16-bit field '{field}' out of range: {value}")
    return _U16_STRUCT.pack(value)


def pack_u32(value: int, field: str) -> bytes:
    if not 0 <= value <= MAX_UINT32:
        raise FieldRangeError(f"Value for unsigned 32-bit field '{field}' out of range: {value}")
    return _U32_STRUCT.pack(value)


def read_exact(f: BinaryIO, n: int) -> bytes:
    off = f.tell()
    b = f.read(n)
    if len(b) != n:
        raise UnexpectedEndOfArchiveError(f"Unexpected end of archive reading {n} bytes", off)
    return b


def check_size(value: int, field: str, offset: int) -> int:
    if value > MAX_SAFE_SIZE:
        raise OversizedFieldError(
            f"{field} {value} at offset {offset} exceeds {MAX_SAFE_SIZE}; entries larger than 2GB are not supported"
        )
    return value


def unpack_block_pair(raw, offset: int) -> Tuple[int, int]:
    """Decode a (decompressed_len, compressed_len) pair and bound-check both."""
    ulen, clen = BLOCK_PAIR_STRUCT.unpack(raw)
    check_size(ulen, "decompressed block size", offset)
    check_size(clen, "compressed block size", offset + 4)
    return ulen, clen


def read_block_pair(f: BinaryIO) -> Tuple[int, int]:
    off = f.tell()
    return unpack_block_pair(read_exact(f, BLOCK_PAIR_STRUCT.size), off)


def pack_block_pair(decompressed_len: int, compressed_len: int) -> bytes:
    return pack_u32(decompressed_len, "decompressed block size") + pack_u32(compressed_len, "compressed block size")


def read_entry_header(f: BinaryIO) -> EntryHeader:
    off = f.tell()
    (path_len,) = _U32_STRUCT.unpack(read_exact(f, _U32_STRUCT.size))
    # Bound before allocating; corrupt lengths must not drive the read size
    if path_len == 0 or path_len > MAX_PATH_LENGTH:
        raise InvalidPathLengthError(f"Invalid file path length {path_len} at offset {off}")
    raw_path = read_exact(f, path_len)
    try:
        path = archive_to_local(raw_path.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise InvalidPathError(f"Entry path at offset {off} is not valid UTF-8: {exc}") from exc

    ts_off = f.tell()
    fields = _TIMESTAMP_STRUCT.unpack(read_exact(f, _TIMESTAMP_STRUCT.size))
    try:
        timestamp = datetime(*fields)
    except ValueError as exc:
        raise InvalidTimestampError(
            f"Invalid timestamp {fields} for '{path}' at offset {ts_off}: {exc}"
        ) from exc

    type_tag = read_exact(f, TYPE_TAG_SIZE)
    return EntryHeader(path=path, timestamp=timestamp, type_tag=type_tag)


def encode_path(path: str) -> bytes:
    raw = local_to_archive(path).encode("utf-8")
    if not raw or len(raw) > MAX_PATH_LENGTH:
        raise InvalidPathLengthError(
            f"Path '{path}' encodes to {len(raw)} bytes; must be between 1 and {MAX_PATH_LENGTH}"
        )
    return raw


def pack_entry_header(path: str, timestamp: datetime, type_tag: bytes = ZERO_TYPE_TAG) -> bytes:
    if len(type_tag) != TYPE_TAG_SIZE:
        raise FieldRangeError(f"type_tag must be {TYPE_TAG_SIZE} bytes")
    raw_path = encode_path(path)
    out = bytearray()
    out += pack_u32(len(raw_path), "path length")
    out += raw_path
    out += pack_u16(timestamp.year, "year")
    out += pack_u16(timestamp.month, "month")
    out += pack_u16(timestamp.day, "day")
    out += pack_u16(timestamp.hour, "hour")
    out += pack_u16(timestamp.minute, "minute")
    out += pack_u16(timestamp.second, "second")
    out += type_tag
    return bytes(out)
