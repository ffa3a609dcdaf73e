from __future__ import annotations

import io
import mmap
import zlib
from typing import Optional

from .codec import Codec
from .errors import BlockDecodeError, ClosedStreamError, UnexpectedEndOfArchiveError
from .records import BLOCK_PAIR_STRUCT, unpack_block_pair


STATE_NEED_BLOCK_HEADER = 0
STATE_HAVE_INPUT = 1
STATE_EOF = 2


class BlockInflateStream(io.RawIOBase):
    """Read-only stream that inflates one entry's block region on demand.

    Each file in an MXP archive is stored as a series of independently
    deflated blocks of no more than 1 KiB of input, every block preceded by
    its decompressed and compressed sizes and the series closed by a (0, 0)
    pair. The stream pulls one block at a time from ``view`` (an mmap or any
    bytes-like object) between ``start`` and ``end``, and never holds more
    than a single block's compressed bytes.

    The stream owns ``view``: closing the stream closes it when it is an mmap.
    """

    def __init__(
        self,
        view,
        start: int = 0,
        end: Optional[int] = None,
        *,
        base_offset: int = 0,
        path: Optional[str] = None,
    ):
        super().__init__()
        self._view = view
        self._pos = start
        self._end = len(view) if end is None else end
        self._base = base_offset
        self.path = path
        self._codec = Codec()
        self._state = STATE_NEED_BLOCK_HEADER
        self._inflater = None
        self._input = b""
        self._block_expected = 0
        self._block_produced = 0

    @classmethod
    def from_file(cls, fileno: int, offset: int, length: int, *, path: Optional[str] = None) -> "BlockInflateStream":
        """Map ``length`` bytes at ``offset`` of an open file read-only.

        The mapping keeps its own reference to the file, so the stream stays
        valid after the descriptor it was created from is closed.
        """
        start = offset - (offset % mmap.ALLOCATIONGRANULARITY)
        delta = offset - start
        mm = mmap.mmap(fileno, length + delta, access=mmap.ACCESS_READ, offset=start)
        return cls(mm, delta, delta + length, base_offset=start, path=path)

    @property
    def state(self) -> int:
        return self._state

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        if self.closed:
            raise ClosedStreamError("Attempt to read from closed stream")
        out = memoryview(b).cast("B")
        want = len(out)
        if want == 0:
            return 0
        while self._state != STATE_EOF:
            if self._state == STATE_NEED_BLOCK_HEADER:
                self._next_block()
                continue
            data = self._inflate(want)
            if data:
                n = len(data)
                out[:n] = data
                return n
        return 0

    def close(self) -> None:
        if self.closed:
            return
        self._inflater = None
        self._input = b""
        view, self._view = getattr(self, "_view", None), None
        if isinstance(view, mmap.mmap):
            view.close()
        super().close()

    # internals
    def _describe(self) -> str:
        return f"'{self.path}'" if self.path else "entry"

    def _next_block(self) -> None:
        pos = self._pos
        hdr_end = pos + BLOCK_PAIR_STRUCT.size
        if hdr_end > self._end:
            raise UnexpectedEndOfArchiveError(
                f"Block header for {self._describe()} runs past its data region", self._base + pos
            )
        ulen, clen = unpack_block_pair(self._view[pos:hdr_end], self._base + pos)
        # 8 consecutive zero bytes mark the end of the file data
        if ulen + clen == 0:
            self._pos = hdr_end
            self._state = STATE_EOF
            return
        body_end = hdr_end + clen
        if body_end > self._end:
            raise UnexpectedEndOfArchiveError(
                f"Compressed block for {self._describe()} runs past its data region", self._base + hdr_end
            )
        self._input = bytes(self._view[hdr_end:body_end])
        self._pos = body_end
        self._inflater = self._codec.inflater()
        self._block_expected = ulen
        self._block_produced = 0
        self._state = STATE_HAVE_INPUT

    def _inflate(self, max_length: int) -> bytes:
        try:
            data = self._inflater.decompress(self._input, max_length)
        except zlib.error as exc:
            raise BlockDecodeError(f"Error inflating file data for {self._describe()}: {exc}") from exc
        self._input = self._inflater.unconsumed_tail
        self._block_produced += len(data)
        if self._block_produced > self._block_expected:
            raise BlockDecodeError(
                f"Block for {self._describe()} inflates past its declared size of {self._block_expected} bytes"
            )
        if data:
            return data
        # Input used up without further output: the block is finished
        if not self._inflater.eof:
            raise BlockDecodeError(f"Truncated deflate stream in block for {self._describe()}")
        if self._block_produced != self._block_expected:
            raise BlockDecodeError(
                f"Block for {self._describe()} inflated to {self._block_produced} bytes, "
                f"expected {self._block_expected}"
            )
        self._inflater = None
        self._state = STATE_NEED_BLOCK_HEADER
        return data
