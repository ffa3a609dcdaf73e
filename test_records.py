from __future__ import annotations

import io
import struct
import unittest
from datetime import datetime

from mxptool.constants import MAX_PATH_LENGTH, ZERO_TYPE_TAG
from mxptool.errors import (
    FieldRangeError,
    FormatError,
    InvalidPathError,
    InvalidPathLengthError,
    InvalidTimestampError,
    OversizedFieldError,
    UnexpectedEndOfArchiveError,
)
from mxptool.header import pack_header, read_header
from mxptool.pathutil import archive_to_local, local_to_archive
from mxptool.records import (
    pack_block_pair,
    pack_entry_header,
    pack_u16,
    pack_u32,
    read_block_pair,
    read_entry_header,
)


def _raw_entry_header(path: bytes, fields=(2021, 3, 4, 5, 6, 7), tag: bytes = ZERO_TYPE_TAG) -> bytes:
    return struct.pack("<I", len(path)) + path + struct.pack("<6H", *fields) + tag


class NumericFieldTests(unittest.TestCase):
    def test_u16_bounds(self):
        self.assertEqual(pack_u16(0, "x"), b"\x00\x00")
        self.assertEqual(pack_u16(65535, "x"), b"\xff\xff")
        with self.assertRaises(FieldRangeError):
            pack_u16(65536, "year")
        with self.assertRaises(FieldRangeError):
            pack_u16(-1, "year")

    def test_u32_bounds_and_byte_order(self):
        self.assertEqual(pack_u32(0x01020304, "x"), b"\x04\x03\x02\x01")
        self.assertEqual(pack_u32(4294967295, "x"), b"\xff\xff\xff\xff")
        with self.assertRaises(FieldRangeError) as ctx:
            pack_u32(4294967296, "compressed block size")
        self.assertIn("compressed block size", str(ctx.exception))

    def test_block_pair_roundtrip(self):
        f = io.BytesIO(pack_block_pair(1024, 700))
        self.assertEqual(read_block_pair(f), (1024, 700))

    def test_block_pair_rejects_sizes_above_signed_range(self):
        for pair in ((0x80000000, 1), (1, 0x80000000), (0xFFFFFFFF, 0xFFFFFFFF)):
            f = io.BytesIO(struct.pack("<II", *pair))
            with self.assertRaises(OversizedFieldError):
                read_block_pair(f)
        f = io.BytesIO(struct.pack("<II", 0x7FFFFFFF, 0x7FFFFFFF))
        self.assertEqual(read_block_pair(f), (0x7FFFFFFF, 0x7FFFFFFF))

    def test_short_block_pair(self):
        with self.assertRaises(UnexpectedEndOfArchiveError) as ctx:
            read_block_pair(io.BytesIO(b"\x00\x04\x00"))
        self.assertEqual(ctx.exception.offset, 0)


class HeaderTests(unittest.TestCase):
    def test_pack_header(self):
        self.assertEqual(pack_header(3), bytes([3, 0, 0, 0, 1, 0, 0, 0]))
        for bad in (0, 5, 255):
            with self.assertRaises(ValueError):
                pack_header(bad)

    def test_read_header_keeps_bytes_verbatim(self):
        raw = bytes([9, 1, 2, 3, 4, 5, 6, 7])
        hdr = read_header(io.BytesIO(raw + b"rest"))
        self.assertEqual(hdr.raw, raw)
        self.assertEqual(hdr.version, 9)

    def test_short_header(self):
        with self.assertRaises(UnexpectedEndOfArchiveError):
            read_header(io.BytesIO(b"\x03\x00\x00"))


class PathTests(unittest.TestCase):
    def test_separator_translation(self):
        self.assertEqual(local_to_archive("a/b/c.txt", sep="/"), "a\\b\\c.txt")
        self.assertEqual(archive_to_local("a\\b\\c.txt", sep="/"), "a/b/c.txt")
        # Backslash hosts keep archive paths untouched
        self.assertEqual(archive_to_local("a\\b\\c.txt", sep="\\"), "a\\b\\c.txt")
        self.assertEqual(local_to_archive("a\\b/c.txt", sep="\\"), "a\\b\\c.txt")

    def test_literal_backslash_does_not_roundtrip_on_slash_hosts(self):
        name = "odd\\name.txt"
        self.assertEqual(archive_to_local(local_to_archive(name, sep="/"), sep="/"), "odd/name.txt")

    def test_path_length_257_rejected_before_path_bytes(self):
        f = io.BytesIO(struct.pack("<I", MAX_PATH_LENGTH + 1) + b"x" * 300)
        with self.assertRaises(InvalidPathLengthError) as ctx:
            read_entry_header(f)
        self.assertIn("257", str(ctx.exception))
        self.assertEqual(f.tell(), 4)

    def test_zero_path_length_rejected(self):
        with self.assertRaises(InvalidPathLengthError):
            read_entry_header(io.BytesIO(_raw_entry_header(b"")))

    def test_path_length_256_accepted(self):
        path = b"p" * MAX_PATH_LENGTH
        hdr = read_entry_header(io.BytesIO(_raw_entry_header(path)))
        self.assertEqual(hdr.path, "p" * MAX_PATH_LENGTH)

    def test_invalid_utf8_path(self):
        with self.assertRaises(InvalidPathError):
            read_entry_header(io.BytesIO(_raw_entry_header(b"\xff\xfe.mxi")))

    def test_encode_rejects_overlong_path(self):
        with self.assertRaises(InvalidPathLengthError):
            pack_entry_header("q" * (MAX_PATH_LENGTH + 1), datetime(2020, 1, 1))


class EntryHeaderTests(unittest.TestCase):
    def test_roundtrip(self):
        ts = datetime(2019, 12, 31, 23, 59, 58)
        raw = pack_entry_header("lib/data.bin", ts)
        self.assertIn(b"lib\\data.bin", raw)
        hdr = read_entry_header(io.BytesIO(raw))
        self.assertEqual(hdr.timestamp, ts)
        self.assertEqual(hdr.type_tag, ZERO_TYPE_TAG)

    def test_type_tag_preserved(self):
        hdr = read_entry_header(io.BytesIO(_raw_entry_header(b"x.mxi", tag=b"ABCDEFGH")))
        self.assertEqual(hdr.type_tag, b"ABCDEFGH")

    def test_invalid_calendar_values(self):
        for fields in ((2020, 13, 1, 0, 0, 0), (2020, 1, 32, 0, 0, 0), (2020, 2, 30, 0, 0, 0), (2020, 1, 1, 24, 0, 0)):
            with self.assertRaises(InvalidTimestampError):
                read_entry_header(io.BytesIO(_raw_entry_header(b"x.mxi", fields=fields)))

    def test_truncated_header_is_format_error(self):
        raw = _raw_entry_header(b"x.mxi")
        for cut in range(len(raw)):
            with self.assertRaises(FormatError):
                read_entry_header(io.BytesIO(raw[:cut]))


if __name__ == "__main__":
    unittest.main()
