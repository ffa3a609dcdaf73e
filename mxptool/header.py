from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO

from .constants import HEADER_SIZE, HEADER_TAIL, MIN_MXP_VERSION, MAX_MXP_VERSION
from .errors import UnexpectedEndOfArchiveError


@dataclass(frozen=True)
class ArchiveHeader:
    raw: bytes

    @property
    def version(self) -> int:
        return self.raw[0]


def read_header(f: BinaryIO) -> ArchiveHeader:
    # The version byte is not validated on read; older tools wrote odd values.
    f.seek(0)
    raw = f.read(HEADER_SIZE)
    if len(raw) != HEADER_SIZE:
        raise UnexpectedEndOfArchiveError("Archive header too short", len(raw))
    return ArchiveHeader(raw=raw)


def pack_header(version: int) -> bytes:
    if not MIN_MXP_VERSION <= version <= MAX_MXP_VERSION:
        raise ValueError(f"MXP version must be between {MIN_MXP_VERSION} and {MAX_MXP_VERSION}, but was {version}")
    return bytes([version]) + HEADER_TAIL
