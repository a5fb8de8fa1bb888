"""Reed-Solomon error correction for byte streams.

Wraps the block codec so payloads of any length can be protected: data is
split into chunks of ``block_size - nsym`` bytes and each chunk becomes one
RS block. Every block is full-size except possibly the last, so block
boundaries can be recovered from the stream length alone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from ..fields.gf2p import GF2pField
from .reed_solomon import MAX_BLOCK_SIZE, ReedSolomon

logger = logging.getLogger(__name__)


@dataclass
class ECCConfig:
    """Error correction configuration.

    nsym: number of error-correction symbols per block. Higher = more
          redundancy. Each block can correct up to nsym//2 unknown symbol
          errors, or nsym erasures.
    block_size: encoded block size in bytes, at most 255.
    """
    nsym: int = 20  # ~20 bytes overhead per block → can correct 10 byte errors
    prime: int = 0x11D
    generator: int = 2
    block_size: int = MAX_BLOCK_SIZE

    @property
    def chunk_size(self) -> int:
        """Data bytes carried by each full block."""
        return self.block_size - self.nsym


class ECCCodec:
    """Reed-Solomon error correction encoder/decoder for arbitrary-length data."""

    def __init__(self, config: ECCConfig | None = None):
        self.config = config or ECCConfig()
        if not 0 < self.config.block_size <= MAX_BLOCK_SIZE:
            raise ValueError(f"block_size must be from 1 to {MAX_BLOCK_SIZE}")
        if self.config.chunk_size <= 0:
            raise ValueError("nsym must be smaller than block_size")
        self.field = GF2pField(8, self.config.prime, self.config.generator)
        self._rs = ReedSolomon(self.config.nsym, self.field)

    @property
    def overhead(self) -> int:
        """Number of bytes of ECC overhead added per block."""
        return self.config.nsym

    @property
    def rs(self) -> ReedSolomon:
        return self._rs

    def encode(self, data: bytes) -> bytes:
        """Add error correction codes to data.

        Returns the concatenated blocks, each laid out as parity + data.
        """
        chunk = self.config.chunk_size
        if not data:
            return self._rs.encode(b"")
        out = bytearray()
        for offset in range(0, len(data), chunk):
            out += self._rs.encode(data, offset, min(chunk, len(data) - offset))
        return bytes(out)

    def decode(self, data: bytes,
               erase_pos: Optional[Iterable[int]] = None) -> bytes | None:
        """Decode data with error correction.

        *erase_pos* lists stream offsets known to be corrupt. Returns the
        corrected original data, or None if any block is uncorrectable.
        """
        blocks = self._split(data)
        if blocks is None:
            return None

        erasures: dict[int, list[int]] = {}
        for pos in () if erase_pos is None else erase_pos:
            pos = int(pos)
            if not 0 <= pos < len(data):
                raise ValueError(f"erasure position {pos} is outside the data")
            erasures.setdefault(pos // self.config.block_size, []).append(
                pos % self.config.block_size)

        out = bytearray()
        for index, (offset, length) in enumerate(blocks):
            decoded = self._rs.decode(data, offset, length, erasures.get(index))
            if decoded is None:
                logger.debug("Block %d of %d is uncorrectable", index + 1, len(blocks))
                return None
            out += decoded
        return bytes(out)

    def check(self, data: bytes) -> bool:
        """True if every block of *data* is a valid codeword."""
        blocks = self._split(data)
        if blocks is None:
            return False
        return all(self._rs.check(data, offset, length) for offset, length in blocks)

    def max_payload(self, block_size: int) -> int:
        """Maximum payload bytes that fit in *block_size* bytes of encoded output."""
        full, rest = divmod(block_size, self.config.block_size)
        return full * self.config.chunk_size + max(0, rest - self.config.nsym)

    def _split(self, data: bytes) -> list[tuple[int, int]] | None:
        """(offset, length) of each block, or None if the tail is too short."""
        size = self.config.block_size
        blocks = [(offset, min(size, len(data) - offset))
                  for offset in range(0, len(data), size)]
        if not blocks or blocks[-1][1] < self.config.nsym:
            return None
        return blocks
