from __future__ import annotations

from dataclasses import dataclass, field
from typing import BinaryIO, List, Tuple

from .codec import Codec
from .constants import BLOCK_SIZE, BLOCK_TERMINATOR
from .records import pack_block_pair


@dataclass
class EmitResult:
    decompressed_size: int = 0
    compressed_size: int = 0
    # (decompressed_len, compressed_len) per block, terminator excluded
    blocks: List[Tuple[int, int]] = field(default_factory=list)


def emit_file_blocks(
    fh: BinaryIO,
    src: BinaryIO,
    *,
    codec: Codec,
    chunk_size: int = BLOCK_SIZE,
) -> EmitResult:
    """Copy ``src`` into ``fh`` as length-prefixed deflate blocks.

    Each chunk of up to ``chunk_size`` bytes is compressed as a complete
    stream on its own, written as (len(chunk), len(compressed)) followed by
    the compressed bytes. A (0, 0) terminator closes the series.
    """
    result = EmitResult()
    while True:
        raw = src.read(chunk_size)
        if not raw:
            break
        enc = codec.compress(raw)
        fh.write(pack_block_pair(len(raw), len(enc)))
        fh.write(enc)
        result.decompressed_size += len(raw)
        result.compressed_size += len(enc)
        result.blocks.append((len(raw), len(enc)))
    fh.write(BLOCK_TERMINATOR)
    return result
