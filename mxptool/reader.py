from __future__ import annotations

import os
import shutil
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import BinaryIO, Dict, List, Optional, Union

from .constants import MANIFEST_EXTENSION
from .errors import (
    ClosedArchiveError,
    EmptyEntryError,
    ManifestNotFirstError,
    MissingManifestError,
    UnexpectedEndOfArchiveError,
)
from .header import ArchiveHeader, read_header
from .records import read_block_pair, read_entry_header
from .stream import BlockInflateStream


@dataclass(frozen=True)
class Entry:
    """One file stored in an MXP archive.

    Entries are identified by path alone: two entries compare (and hash)
    equal when their paths match, whatever their other fields hold.
    """

    path: str
    timestamp: datetime = field(compare=False)
    type_tag: bytes = field(compare=False, repr=False)
    compressed_size: int = field(compare=False)
    decompressed_size: int = field(compare=False)
    # Location of the raw block region (length pairs and terminator included).
    # Only meaningful for the entry held by the reader that produced it.
    data_offset: int = field(compare=False, repr=False)
    data_length: int = field(compare=False, repr=False)


EntryRef = Union[Entry, str]


class ArchiveReader:
    def __init__(self, path: str):
        self.path = path
        self.f: Optional[BinaryIO] = None
        self.header: Optional[ArchiveHeader] = None
        self.manifest: Optional[Entry] = None
        self._entries: Dict[str, Entry] = {}
        self._closed = False

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        if self.f is not None:
            return self
        if self._closed:
            raise ClosedArchiveError(f"Archive '{self.path}' has been closed")
        self.f = open(self.path, "rb")
        try:
            self._load_entries()
        except BaseException:
            # Ensure file handle is closed on failure to avoid leaks
            self.f.close()
            self.f = None
            raise
        return self

    def close(self):
        """Close the archive.

        Streams already handed out by get_input_stream() keep working; only
        new streams are refused.
        """
        if self.f is not None:
            self.f.close()
            self.f = None
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def version(self) -> int:
        if self.header is None:
            raise RuntimeError("Archive not open")
        return self.header.version

    def list(self) -> List[Entry]:
        return list(self._entries.values())

    def get_entry(self, path: str) -> Optional[Entry]:
        return self._entries.get(path)

    def get_input_stream(self, entry: EntryRef) -> Optional[BlockInflateStream]:
        """Return a fresh inflating stream for ``entry`` or None if unknown.

        Only the path of ``entry`` is used; offsets always come from this
        reader's own table.
        """
        if self._closed or self.f is None:
            raise ClosedArchiveError(f"Archive '{self.path}' is closed")
        path = entry if isinstance(entry, str) else entry.path
        canonical = self._entries.get(path)
        if canonical is None:
            return None
        return BlockInflateStream.from_file(
            self.f.fileno(), canonical.data_offset, canonical.data_length, path=canonical.path
        )

    def read(self, entry: EntryRef) -> bytes:
        stream = self.get_input_stream(entry)
        if stream is None:
            raise KeyError(entry if isinstance(entry, str) else entry.path)
        with stream:
            return stream.read()

    def extract(self, entry: EntryRef, out_path: str):
        stream = self.get_input_stream(entry)
        if stream is None:
            raise KeyError(entry if isinstance(entry, str) else entry.path)
        canonical = self._entries[entry if isinstance(entry, str) else entry.path]
        os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
        with stream, open(out_path, "wb") as wf:
            shutil.copyfileobj(stream, wf)
        mtime = time.mktime(canonical.timestamp.timetuple())
        os.utime(out_path, (mtime, mtime))

    # internals
    def _load_entries(self):
        """Walk the entry table once, front to back.

        1.  Read the 8-byte header verbatim.
        2.  Require a first entry and check that it is the MXI manifest.
        3.  Read every remaining entry until the file is exhausted; a later
            entry with the same path replaces the earlier one.

        Compressed bytes are skipped, not inflated; only block sizes are read.
        """
        assert self.f is not None
        size = os.fstat(self.f.fileno()).st_size
        self.header = read_header(self.f)
        if self.f.tell() >= size:
            raise MissingManifestError("archive must contain at least a manifest entry")

        manifest = self._read_entry(size)
        if not manifest.path.lower().endswith(MANIFEST_EXTENSION):
            raise ManifestNotFirstError(
                f"The first entry must be the MXI file, found '{manifest.path}'"
            )
        entries: Dict[str, Entry] = {manifest.path: manifest}
        while self.f.tell() < size:
            e = self._read_entry(size)
            entries[e.path] = e
        self.manifest = manifest
        self._entries = entries

    def _read_entry(self, size: int) -> Entry:
        assert self.f is not None
        hdr = read_entry_header(self.f)
        data_start = self.f.tell()
        decompressed = 0
        compressed = 0
        while True:
            ulen, clen = read_block_pair(self.f)
            if ulen + clen == 0:
                break
            decompressed += ulen
            compressed += clen
            body = self.f.tell()
            if body + clen > size:
                raise UnexpectedEndOfArchiveError(
                    f"Compressed block of {clen} bytes for '{hdr.path}' runs past end of archive", body
                )
            self.f.seek(body + clen)
        if decompressed <= 0 or compressed <= 0:
            raise EmptyEntryError(f"Entry '{hdr.path}' at offset {data_start} holds no data")
        return Entry(
            path=hdr.path,
            timestamp=hdr.timestamp,
            type_tag=hdr.type_tag,
            compressed_size=compressed,
            decompressed_size=decompressed,
            data_offset=data_start,
            data_length=self.f.tell() - data_start,
        )


def open_archive(path: str) -> ArchiveReader:
    return ArchiveReader(path).open()
