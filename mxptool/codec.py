from __future__ import annotations

from typing import Optional

import zlib

from .constants import DEFLATE_LEVEL


class Codec:
    """Deflate (zlib framing) for MXP blocks.

    Every block is a complete stream of its own: nothing carries over from one
    block's compressor or decompressor to the next.
    """

    def __init__(self, level: Optional[int] = None):
        self.level = level if level is not None else DEFLATE_LEVEL

    def compress(self, data: bytes) -> bytes:
        return zlib.compress(data, self.level)

    def inflater(self):
        """Fresh incremental decompressor for a single block."""
        return zlib.decompressobj()
